"""Topic memory: one JSON document per project, keyed by topic name.

Every mutation reads the whole document, changes it in memory and replaces
the file atomically. Topic counts per project stay in the tens, so the write
amplification is acceptable.
"""

from __future__ import annotations

import logging
from pathlib import Path

from memory_bank.errors import PersistenceError, TopicNotFoundError
from memory_bank.memory.jsonfile import read_json, write_json_atomic
from memory_bank.memory.models import DEFAULT_IMPORTANCE, ProjectInfo, Topic, clamp_importance, now_ms
from memory_bank.memory.ranking import SearchHit, rank

logger = logging.getLogger(__name__)

FIXED_TOPICS = (
    "summary",
    "libraries",
    "change-history",
    "architecture",
    "todo",
    "bugs",
    "features",
    "documentation",
    "testing",
    "deployment",
)

SORT_KEYS = {
    "timestamp": lambda item: -item[1].last_modified,
    "importance": lambda item: (-item[1].importance, -item[1].last_modified),
}


class TopicStore:
    """Read/write access to per-project topic documents."""

    def __init__(self, root: Path) -> None:
        self.root = root
        self._ensure_root()

    # ── Files ─────────────────────────────────────────────

    def _ensure_root(self) -> None:
        """Create the storage root. Idempotent."""
        if self.root.is_dir():
            return
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PersistenceError(f"Failed to create memory root directory: {self.root}") from e
        logger.info("Created memory root directory: %s", self.root)

    def _project_path(self, project: str) -> Path:
        if not project or project in (".", "..") or any(c in project for c in "/\\\0"):
            raise ValueError(f"Invalid project name: {project!r}")
        return self.root / f"{project}.json"

    def _load(self, project: str, strict: bool = False) -> dict[str, Topic]:
        """Load a project's topics.

        Query paths (strict=False) treat an unreadable document as empty.
        Mutation paths (strict=True) raise instead, so a corrupt document is
        never overwritten with a fresh one.
        """
        path = self._project_path(project)
        if not path.exists():
            return {}
        try:
            data = read_json(path)
            if not isinstance(data, dict):
                raise ValueError("project document is not a JSON object")
            return {name: Topic.from_dict(topic) for name, topic in data.items()}
        except (OSError, ValueError, TypeError, KeyError, AttributeError) as e:
            if strict:
                raise PersistenceError(f"Failed to load project: {project}") from e
            logger.error("Error loading project %s: %s", project, e)
            return {}

    def _save(self, project: str, topics: dict[str, Topic]) -> None:
        path = self._project_path(project)
        try:
            write_json_atomic(path, {name: topic.to_dict() for name, topic in topics.items()})
        except OSError as e:
            logger.error("Error saving project %s: %s", project, e)
            raise PersistenceError(f"Failed to save project: {project}") from e

    # ── Topic CRUD ────────────────────────────────────────

    def store(
        self,
        project: str,
        topic: str,
        content: str,
        tags: list[str] | None = None,
        importance: int = DEFAULT_IMPORTANCE,
    ) -> Topic:
        """Insert or replace a topic, keeping its original creation time."""
        topics = self._load(project, strict=True)
        now = now_ms()
        existing = topics.get(topic)
        topics[topic] = Topic(
            content=content,
            tags=list(tags or []),
            importance=clamp_importance(importance),
            timestamp=existing.timestamp if existing else now,
            last_modified=now,
        )
        self._save(project, topics)
        return topics[topic]

    def get(self, project: str, topic: str) -> Topic | None:
        return self._load(project).get(topic)

    def list(self, project: str) -> list[str]:
        """Topic names in stored order."""
        return list(self._load(project))

    def list_all(
        self,
        project: str,
        sort_by: str | None = None,
        limit: int | None = None,
    ) -> dict[str, Topic]:
        """All topics, optionally ordered by "timestamp" or "importance"."""
        items = list(self._load(project).items())
        if sort_by is not None:
            if sort_by not in SORT_KEYS:
                raise ValueError(f"sort_by must be one of {sorted(SORT_KEYS)}, got {sort_by!r}")
            items.sort(key=SORT_KEYS[sort_by])
        if limit is not None:
            items = items[: max(limit, 0)]
        return dict(items)

    def search(self, project: str, query: str, limit: int = 100) -> list[SearchHit]:
        return rank(self._load(project).items(), query, limit)

    def update(
        self,
        project: str,
        topic: str,
        content: str | None = None,
        tags: list[str] | None = None,
        importance: int | None = None,
    ) -> Topic:
        """Change some fields of an existing topic. Raises TopicNotFoundError."""
        topics = self._load(project, strict=True)
        existing = topics.get(topic)
        if existing is None:
            raise TopicNotFoundError(project, topic)

        topics[topic] = Topic(
            content=content if content is not None else existing.content,
            tags=list(tags) if tags is not None else existing.tags,
            importance=(
                clamp_importance(importance) if importance is not None else existing.importance
            ),
            timestamp=existing.timestamp,
            last_modified=max(now_ms(), existing.timestamp),
        )
        self._save(project, topics)
        return topics[topic]

    def delete(self, project: str, topic: str) -> bool:
        """Remove a topic. Returns False (and writes nothing) if it was absent."""
        topics = self._load(project, strict=True)
        if topic not in topics:
            return False
        del topics[topic]
        self._save(project, topics)
        return True

    # ── Projects ──────────────────────────────────────────

    def info(self, project: str) -> ProjectInfo | None:
        if not self._project_path(project).exists():
            return None
        topics = list(self._load(project).values())
        return ProjectInfo(
            name=project,
            created_at=min([t.timestamp for t in topics] + [now_ms()]),
            last_modified=max([t.last_modified for t in topics] + [0]),
            topic_count=len(topics),
            memory_count=len(topics),
            total_importance=sum(t.importance for t in topics),
        )

    def list_projects(self) -> list[str]:
        try:
            return sorted(p.stem for p in self.root.glob("*.json") if p.is_file())
        except OSError as e:
            logger.error("Error listing projects: %s", e)
            return []

    def reset(self, project: str) -> None:
        """Delete the project's document and every topic in it."""
        path = self._project_path(project)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.error("Error resetting project %s: %s", project, e)
            raise PersistenceError(f"Failed to reset project: {project}") from e
        logger.info("Reset project: %s", project)

    # ── Fixed topics ──────────────────────────────────────

    def fixed_topics(self) -> tuple[str, ...]:
        return FIXED_TOPICS

    def initialize_fixed_topics(self, project: str) -> list[str]:
        """Add placeholder topics for missing fixed names. Returns those created."""
        topics = self._load(project, strict=True)
        now = now_ms()
        created = []
        for name in FIXED_TOPICS:
            if name in topics:
                continue
            topics[name] = Topic(
                content=f"# {name[0].upper() + name[1:]}\n\nAwaiting content...",
                tags=["fixed-topic", name],
                importance=DEFAULT_IMPORTANCE,
                timestamp=now,
                last_modified=now,
            )
            created.append(name)
        self._save(project, topics)
        return created
