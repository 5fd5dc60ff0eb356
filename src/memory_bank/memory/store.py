"""Id-addressable memories: one JSON file per memory, fronted by a TTL cache.

Files under ``<root>/<project>/`` are the source of truth. The cache only
saves a disk read on ``get_memory``; listing and search always scan the
directory.
"""

from __future__ import annotations

import logging
import re
import secrets
from dataclasses import replace
from datetime import timedelta
from pathlib import Path
from typing import TYPE_CHECKING

from memory_bank import __version__
from memory_bank.errors import PersistenceError
from memory_bank.memory.cache import TTLCache
from memory_bank.memory.jsonfile import read_json, write_json_atomic
from memory_bank.memory.models import DEFAULT_IMPORTANCE, Memory, clamp_importance, now_ms
from memory_bank.memory.ranking import by_importance_then_recency, by_recency, score

if TYPE_CHECKING:
    from memory_bank.project.resolver import ProjectIdentity

logger = logging.getLogger(__name__)

# Memories at or above this importance survive cleanup regardless of age.
RETENTION_IMPORTANCE = 5
DEFAULT_MAX_AGE = timedelta(days=30)

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"
_MEMORY_ID = re.compile(r"^[A-Za-z0-9_-]+$")


def _base36(n: int) -> str:
    digits = []
    while True:
        n, r = divmod(n, 36)
        digits.append(_BASE36[r])
        if n == 0:
            return "".join(reversed(digits))


def generate_memory_id() -> str:
    """Time-ordered prefix plus a random suffix; collisions are not checked."""
    return f"mem-{_base36(now_ms())}-{_base36(secrets.randbits(48))}"


def _has_any_tag(memory: Memory, tags: list[str] | None) -> bool:
    return not tags or any(tag in memory.tags for tag in tags)


def _detached(memory: Memory) -> Memory:
    """Copy that shares no mutable state with the cached record."""
    return replace(memory, tags=list(memory.tags))


class MemoryStore:
    """Read/write access to the current project's memories."""

    def __init__(
        self,
        root: Path,
        identity: ProjectIdentity,
        cache: TTLCache | None = None,
    ) -> None:
        self.root = root
        self.identity = identity
        self.memory_dir = root / identity.name
        self._cache = cache if cache is not None else TTLCache()
        self._ensure_initialized()

    # ── Files ─────────────────────────────────────────────

    def _ensure_initialized(self) -> None:
        """Create the project's memory directory. Idempotent."""
        if self.memory_dir.is_dir():
            return
        try:
            self.memory_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PersistenceError(f"Failed to create memory directory: {self.memory_dir}") from e

    def _path(self, memory_id: str) -> Path:
        if not _MEMORY_ID.match(memory_id or ""):
            raise ValueError(f"Invalid memory id: {memory_id!r}")
        return self.memory_dir / f"{memory_id}.json"

    def _read(self, memory_id: str) -> Memory | None:
        path = self._path(memory_id)
        if not path.exists():
            return None
        try:
            return Memory.from_dict(read_json(path))
        except (OSError, ValueError, TypeError, KeyError, AttributeError) as e:
            logger.error("Error loading memory %s: %s", memory_id, e)
            return None

    def _write(self, memory: Memory) -> None:
        try:
            write_json_atomic(self._path(memory.id), memory.to_dict())
        except OSError as e:
            logger.error("Error persisting memory %s: %s", memory.id, e)
            raise PersistenceError(f"Failed to persist memory: {memory.id}") from e

    def _load_all(self) -> list[Memory]:
        """Every readable memory on disk. Bad files are logged and skipped."""
        try:
            paths = sorted(self.memory_dir.glob("*.json"))
        except OSError as e:
            logger.error("Error loading memories: %s", e)
            return []
        memories = []
        for path in paths:
            try:
                memories.append(Memory.from_dict(read_json(path)))
            except (OSError, ValueError, TypeError, KeyError, AttributeError) as e:
                logger.warning("Error loading memory file %s: %s", path.name, e)
        return memories

    # ── CRUD ──────────────────────────────────────────────

    def store_memory(
        self,
        content: str,
        tags: list[str] | None = None,
        importance: int = DEFAULT_IMPORTANCE,
    ) -> Memory:
        memory = Memory(
            id=generate_memory_id(),
            content=content,
            tags=list(tags or []),
            importance=clamp_importance(importance),
            timestamp=now_ms(),
            project_context=self.identity.name,
        )
        self._write(memory)
        self._cache.set(memory.id, _detached(memory))
        return memory

    def get_memory(self, memory_id: str) -> Memory | None:
        cached = self._cache.get(memory_id)
        if cached is not None:
            return _detached(cached)
        memory = self._read(memory_id)
        if memory is not None:
            self._cache.set(memory_id, _detached(memory))
        return memory

    def update_memory(
        self,
        memory_id: str,
        content: str | None = None,
        tags: list[str] | None = None,
        importance: int | None = None,
    ) -> bool:
        """Merge new fields into an existing memory. False if it does not exist."""
        existing = self.get_memory(memory_id)
        if existing is None:
            return False
        updated = Memory(
            id=existing.id,
            content=content if content is not None else existing.content,
            tags=list(tags) if tags is not None else list(existing.tags),
            importance=(
                clamp_importance(importance) if importance is not None else existing.importance
            ),
            timestamp=existing.timestamp,
            project_context=existing.project_context,
        )
        self._write(updated)
        self._cache.set(memory_id, _detached(updated))
        return True

    def delete_memory(self, memory_id: str) -> bool:
        """Best effort. False only when the file could not be removed."""
        path = self._path(memory_id)
        self._cache.delete(memory_id)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.error("Error deleting memory %s: %s", memory_id, e)
            return False
        return True

    # ── Queries ───────────────────────────────────────────

    def search_memories(
        self,
        query: str,
        tags: list[str] | None = None,
        limit: int = 10,
    ) -> list[Memory]:
        """Content/tag matches, most important first, then most recent."""
        matches = [
            m
            for m in self._load_all()
            if score(query, m.content, m.tags) > 0 and _has_any_tag(m, tags)
        ]
        matches.sort(key=by_importance_then_recency)
        return matches[: max(limit, 0)]

    def list_memories(
        self,
        tags: list[str] | None = None,
        limit: int = 20,
        sort_by: str = "timestamp",
    ) -> list[Memory]:
        memories = [m for m in self._load_all() if _has_any_tag(m, tags)]
        memories.sort(key=by_importance_then_recency if sort_by == "importance" else by_recency)
        return memories[: max(limit, 0)]

    def get_memories_by_tags(self, tags: list[str]) -> list[Memory]:
        memories = [m for m in self._load_all() if any(tag in m.tags for tag in tags)]
        memories.sort(key=by_importance_then_recency)
        return memories

    def get_recent_memories(self, limit: int = 10) -> list[Memory]:
        memories = self._load_all()
        memories.sort(key=by_recency)
        return memories[: max(limit, 0)]

    # ── Maintenance ───────────────────────────────────────

    def cleanup_old_memories(self, max_age: timedelta = DEFAULT_MAX_AGE) -> int:
        """Delete low-importance memories older than max_age. Returns count removed."""
        cutoff = now_ms() - int(max_age.total_seconds() * 1000)
        removed = 0
        for memory in self._load_all():
            if memory.timestamp < cutoff and memory.importance < RETENTION_IMPORTANCE:
                if self.delete_memory(memory.id):
                    removed += 1
        if removed:
            logger.info("Removed %d old memories from %s", removed, self.identity.name)
        return removed

    def get_statistics(self) -> dict:
        memories = self._load_all()
        timestamps = [m.timestamp for m in memories]
        return {
            "total_memories": len(memories),
            "project_name": self.identity.name,
            "memory_path": str(self.memory_dir),
            "oldest_memory": min(timestamps) if timestamps else None,
            "newest_memory": max(timestamps) if timestamps else None,
        }

    def get_project_info(self) -> dict:
        return {
            "project_name": self.identity.name,
            "project_path": self.identity.path,
            "total_memories": len(self._load_all()),
            "memory_directory": str(self.memory_dir),
            "version": __version__,
        }

    def detection_info(self) -> dict:
        """How the storage namespace was chosen."""
        return {
            "project_name": self.identity.name,
            "detection_method": self.identity.method,
            "detection_source": self.identity.source,
            "project_path": self.identity.path,
            "memory_directory": str(self.memory_dir),
        }
