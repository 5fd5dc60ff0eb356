"""Exceptions raised by the storage layer."""

from __future__ import annotations


class MemoryBankError(Exception):
    """Base class for memory-bank failures."""


class NotFoundError(MemoryBankError):
    """A record that must already exist is missing."""


class TopicNotFoundError(NotFoundError):
    def __init__(self, project: str, topic: str) -> None:
        super().__init__(f"Topic '{topic}' not found in project '{project}'")
        self.project = project
        self.topic = topic


class PersistenceError(MemoryBankError):
    """Reading or writing a backing file failed."""
