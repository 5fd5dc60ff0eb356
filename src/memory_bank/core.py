"""MemoryBank: wires configuration, project detection and both stores.

Responsibilities:
1. Resolve the project identity once, at construction
2. Own one TopicStore (explicit project names) and one MemoryStore
   (the detected project's namespace)
3. Hand both to the tool surface; nothing here is a module-level singleton
"""

from __future__ import annotations

import logging
from pathlib import Path

from memory_bank.config import MemoryBankConfig, load_config
from memory_bank.memory.cache import TTLCache
from memory_bank.memory.store import MemoryStore
from memory_bank.memory.topics import TopicStore
from memory_bank.project.resolver import ProjectIdentity, ProjectResolver
from memory_bank.project.strategies import DetectionContext

logger = logging.getLogger(__name__)


class MemoryBank:
    """Composition root handed to the transport layer."""

    def __init__(
        self,
        config: MemoryBankConfig | None = None,
        resolver: ProjectResolver | None = None,
    ) -> None:
        self.config = config or load_config()
        self.resolver = resolver or ProjectResolver(
            DetectionContext.from_environment(self.config.detection)
        )
        self.identity: ProjectIdentity = self.resolver.detect()
        self.topics = TopicStore(self.config.storage_root)
        self.memories = MemoryStore(
            self.config.storage_root,
            self.identity,
            cache=TTLCache(capacity=self.config.cache.capacity, ttl=self.config.cache.ttl),
        )
        logger.info(
            "Memory bank ready (root=%s, project=%s)", self.config.storage_root, self.identity.name
        )

    @property
    def storage_root(self) -> Path:
        return self.config.storage_root
