"""Records persisted by the topic and memory stores."""

from __future__ import annotations

import time
from dataclasses import dataclass, field

MIN_IMPORTANCE = 1
MAX_IMPORTANCE = 10
DEFAULT_IMPORTANCE = 5


def now_ms() -> int:
    """Current time in epoch milliseconds."""
    return int(time.time() * 1000)


def clamp_importance(value: int | float) -> int:
    return max(MIN_IMPORTANCE, min(MAX_IMPORTANCE, int(value)))


@dataclass
class Topic:
    """A named block of project knowledge. ``timestamp`` is creation time."""

    content: str
    tags: list[str] = field(default_factory=list)
    importance: int = DEFAULT_IMPORTANCE
    timestamp: int = 0
    last_modified: int = 0

    def to_dict(self) -> dict:
        return {
            "content": self.content,
            "tags": list(self.tags),
            "importance": self.importance,
            "timestamp": self.timestamp,
            "lastModified": self.last_modified,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Topic:
        timestamp = int(data.get("timestamp", 0))
        return cls(
            content=data["content"],
            tags=list(data.get("tags", [])),
            importance=int(data.get("importance", DEFAULT_IMPORTANCE)),
            timestamp=timestamp,
            last_modified=int(data.get("lastModified", timestamp)),
        )


@dataclass
class Memory:
    """An id-addressable memory record."""

    id: str
    content: str
    tags: list[str] = field(default_factory=list)
    importance: int = DEFAULT_IMPORTANCE
    timestamp: int = 0
    project_context: str = ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "content": self.content,
            "tags": list(self.tags),
            "importance": self.importance,
            "timestamp": self.timestamp,
            "projectContext": self.project_context,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Memory:
        return cls(
            id=data["id"],
            content=data["content"],
            tags=list(data.get("tags", [])),
            importance=int(data.get("importance", DEFAULT_IMPORTANCE)),
            timestamp=int(data.get("timestamp", 0)),
            project_context=data.get("projectContext", ""),
        )


@dataclass
class ProjectInfo:
    """Aggregate view of one project's topic document."""

    name: str
    created_at: int
    last_modified: int
    topic_count: int
    memory_count: int
    total_importance: int

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "createdAt": self.created_at,
            "lastModified": self.last_modified,
            "topicCount": self.topic_count,
            "memoryCount": self.memory_count,
            "totalImportance": self.total_importance,
        }
