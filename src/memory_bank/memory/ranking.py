"""Relevance scoring shared by topic and memory search.

A case-insensitive substring match earns points per field:

    content   3
    any tag   2
    name      1   (topic name; memories have no name field)

Zero-score items are dropped. Ties on score fall back to importance, then to
original order (``sorted`` is stable).
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import NamedTuple

from memory_bank.memory.models import Memory, Topic

CONTENT_POINTS = 3
TAG_POINTS = 2
NAME_POINTS = 1


class SearchHit(NamedTuple):
    topic: str
    memory: Topic
    score: int


def score(query: str, content: str, tags: Iterable[str], name: str | None = None) -> int:
    q = query.lower()
    points = 0
    if q in content.lower():
        points += CONTENT_POINTS
    if any(q in tag.lower() for tag in tags):
        points += TAG_POINTS
    if name is not None and q in name.lower():
        points += NAME_POINTS
    return points


def rank(entries: Iterable[tuple[str, Topic]], query: str, limit: int) -> list[SearchHit]:
    """Score ``(name, topic)`` pairs and return the best ``limit`` hits."""
    hits = []
    for name, topic in entries:
        points = score(query, topic.content, topic.tags, name)
        if points > 0:
            hits.append(SearchHit(name, topic, points))
    hits.sort(key=lambda h: (-h.score, -h.memory.importance))
    return hits[: max(limit, 0)]


def by_importance_then_recency(memory: Memory) -> tuple[int, int]:
    return (-memory.importance, -memory.timestamp)


def by_recency(memory: Memory) -> int:
    return -memory.timestamp
