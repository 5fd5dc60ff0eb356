"""Tools exposing the memory bank to an AI agent.

Each tool maps 1:1 onto a store method and renders a short text result.
The transport (MCP or otherwise) validates arguments against its own
schema and wraps the text in its response envelope; ``call_tool`` turns
store failures into error text carrying the tool name.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from memory_bank.errors import MemoryBankError
from memory_bank.memory.models import DEFAULT_IMPORTANCE

if TYPE_CHECKING:
    from memory_bank.core import MemoryBank
    from memory_bank.memory.models import Memory

logger = logging.getLogger(__name__)


def _when(ms: int | None) -> str:
    if not ms:
        return "-"
    return datetime.fromtimestamp(ms / 1000).isoformat(timespec="seconds")


def _bullets(items, empty: str) -> str:
    return "\n".join(f"- {item}" for item in items) if items else empty


def _memory_line(memory: Memory) -> str:
    tags = ", ".join(memory.tags) or "-"
    return f"[{memory.id}] ({memory.importance}/10, {tags}) {memory.content[:150]}"


def get_memory_tools(bank: MemoryBank) -> dict[str, Callable[..., str]]:
    """Return a dict of tool_name -> callable for memory operations.

    These can be registered as MCP tools or called directly.
    """
    topics = bank.topics
    memories = bank.memories

    # ── Topic memory ──────────────────────────────────────

    def store_topic_memory(
        project: str,
        topic: str,
        content: str,
        tags: list[str] | None = None,
        importance: int = DEFAULT_IMPORTANCE,
    ) -> str:
        """Store content under a topic of the project (fixed or custom topic)."""
        topics.store(project, topic, content, tags, importance)
        return f"Stored topic '{topic}' in project '{project}'"

    def get_topic_memory(project: str, topic: str) -> str:
        """Return the full content of a topic."""
        found = topics.get(project, topic)
        if found is None:
            return f"Topic '{topic}' not found in project '{project}'"
        return (
            f"**Topic: {topic}**\n\n{found.content}\n\n"
            f"**Tags:** {', '.join(found.tags)}\n"
            f"**Importance:** {found.importance}/10\n"
            f"**Modified:** {_when(found.last_modified)}"
        )

    def list_topics(project: str) -> str:
        names = topics.list(project)
        return f"**Topics in '{project}':**\n" + _bullets(names, "No topics found")

    def list_all_topic_memories(
        project: str, sort_by: str | None = None, limit: int | None = None
    ) -> str:
        """Every topic with importance and a content preview."""
        all_topics = topics.list_all(project, sort_by=sort_by, limit=limit)
        lines = [
            f"**{name}** ({t.importance}/10) - {t.content[:100]}" for name, t in all_topics.items()
        ]
        body = "\n\n".join(lines) or "No memories found"
        return f"**All memories in '{project}':**\n\n{body}"

    def search_topic_memories(project: str, query: str, limit: int = 100) -> str:
        hits = topics.search(project, query, limit)
        lines = [f"**{h.topic}** (score: {h.score}) - {h.memory.content[:150]}" for h in hits]
        body = "\n\n".join(lines) or "No results found"
        return f"**Results for '{query}' in '{project}':**\n\n{body}"

    def update_topic_memory(
        project: str,
        topic: str,
        content: str | None = None,
        tags: list[str] | None = None,
        importance: int | None = None,
    ) -> str:
        """Update fields of an existing topic; omitted fields keep their value."""
        topics.update(project, topic, content, tags, importance)
        return f"Updated topic '{topic}' in project '{project}'"

    def delete_topic_memory(project: str, topic: str) -> str:
        topics.delete(project, topic)
        return f"Removed topic '{topic}' from project '{project}'"

    def get_project_info(project: str) -> str:
        info = topics.info(project)
        if info is None:
            return f"Project '{project}' not found"
        return (
            f"**Project: {info.name}**\n\n"
            f"- Topics: {info.topic_count}\n"
            f"- Memories: {info.memory_count}\n"
            f"- Total importance: {info.total_importance}\n"
            f"- Created: {_when(info.created_at)}\n"
            f"- Modified: {_when(info.last_modified)}"
        )

    def list_projects() -> str:
        projects = topics.list_projects()
        return (
            "**Available projects:**\n"
            + _bullets(projects, "No projects found")
            + f"\n\n**Memory directory:** {topics.root}"
        )

    def reset_project(project: str, confirm_reset: bool = False) -> str:
        """Remove every topic of a project. Requires confirm_reset=True."""
        if not confirm_reset:
            return "Reset cancelled. Set confirm_reset to true to confirm."
        topics.reset(project)
        return f"Project '{project}' reset"

    def initialize_fixed_topics(project: str) -> str:
        created = topics.initialize_fixed_topics(project)
        return f"Fixed topics initialized in '{project}' ({len(created)} created):\n" + _bullets(
            topics.fixed_topics(), ""
        )

    def list_fixed_topics() -> str:
        return "**Fixed topics:**\n" + _bullets(topics.fixed_topics(), "")

    # ── Id-addressable memory ─────────────────────────────

    def store_memory(
        content: str, tags: list[str] | None = None, importance: int = DEFAULT_IMPORTANCE
    ) -> str:
        memory = memories.store_memory(content, tags, importance)
        return f"Stored memory {memory.id} in project '{memory.project_context}'"

    def get_memory(memory_id: str) -> str:
        memory = memories.get_memory(memory_id)
        if memory is None:
            return f"Memory {memory_id} not found"
        return (
            f"**Memory {memory.id}**\n\n{memory.content}\n\n"
            f"**Tags:** {', '.join(memory.tags)}\n"
            f"**Importance:** {memory.importance}/10\n"
            f"**Created:** {_when(memory.timestamp)}"
        )

    def update_memory(
        memory_id: str,
        content: str | None = None,
        tags: list[str] | None = None,
        importance: int | None = None,
    ) -> str:
        if not memories.update_memory(memory_id, content, tags, importance):
            return f"Memory {memory_id} not found"
        return f"Updated memory {memory_id}"

    def delete_memory(memory_id: str) -> str:
        if not memories.delete_memory(memory_id):
            return f"Could not delete memory {memory_id}"
        return f"Deleted memory {memory_id}"

    def search_memories(query: str, tags: list[str] | None = None, limit: int = 10) -> str:
        found = memories.search_memories(query, tags, limit)
        return f"**Memories matching '{query}':**\n" + _bullets(
            [_memory_line(m) for m in found], "No memories found"
        )

    def list_memories(
        tags: list[str] | None = None, limit: int = 20, sort_by: str = "timestamp"
    ) -> str:
        found = memories.list_memories(tags, limit, sort_by)
        return "**Memories:**\n" + _bullets([_memory_line(m) for m in found], "No memories found")

    def get_memories_by_tags(tags: list[str]) -> str:
        found = memories.get_memories_by_tags(tags)
        return f"**Memories tagged {', '.join(tags)}:**\n" + _bullets(
            [_memory_line(m) for m in found], "No memories found"
        )

    def get_recent_memories(limit: int = 10) -> str:
        found = memories.get_recent_memories(limit)
        return "**Recent memories:**\n" + _bullets(
            [_memory_line(m) for m in found], "No memories found"
        )

    def cleanup_old_memories(max_age_days: float = 30) -> str:
        removed = memories.cleanup_old_memories(timedelta(days=max_age_days))
        return f"Removed {removed} memories older than {max_age_days:g} days"

    def get_memory_statistics() -> str:
        stats = memories.get_statistics()
        return (
            f"**Project:** {stats['project_name']}\n"
            f"- Memories: {stats['total_memories']}\n"
            f"- Path: {stats['memory_path']}\n"
            f"- Oldest: {_when(stats['oldest_memory'])}\n"
            f"- Newest: {_when(stats['newest_memory'])}"
        )

    def get_memory_project_info() -> str:
        info = memories.get_project_info()
        return (
            f"**Project:** {info['project_name']} (memory-bank {info['version']})\n"
            f"- Path: {info['project_path']}\n"
            f"- Memories: {info['total_memories']}\n"
            f"- Directory: {info['memory_directory']}"
        )

    def get_detection_info() -> str:
        """How the current project namespace was detected."""
        info = memories.detection_info()
        return "\n".join(f"- {key}: {value}" for key, value in info.items())

    return {
        "store-topic-memory": store_topic_memory,
        "get-topic-memory": get_topic_memory,
        "list-topics": list_topics,
        "list-all-topic-memories": list_all_topic_memories,
        "search-topic-memories": search_topic_memories,
        "update-topic-memory": update_topic_memory,
        "delete-topic-memory": delete_topic_memory,
        "get-project-info": get_project_info,
        "list-projects": list_projects,
        "reset-project": reset_project,
        "initialize-fixed-topics": initialize_fixed_topics,
        "list-fixed-topics": list_fixed_topics,
        "store-memory": store_memory,
        "get-memory": get_memory,
        "update-memory": update_memory,
        "delete-memory": delete_memory,
        "search-memories": search_memories,
        "list-memories": list_memories,
        "get-memories-by-tags": get_memories_by_tags,
        "get-recent-memories": get_recent_memories,
        "cleanup-old-memories": cleanup_old_memories,
        "get-memory-statistics": get_memory_statistics,
        "get-memory-project-info": get_memory_project_info,
        "get-detection-info": get_detection_info,
    }


def call_tool(
    tools: dict[str, Callable[..., str]], name: str, arguments: dict | None = None
) -> tuple[str, bool]:
    """Run a tool by name. Returns (text, is_error); store failures never escape."""
    tool = tools.get(name)
    if tool is None:
        return f"Error running {name}: unknown tool", True
    try:
        return tool(**(arguments or {})), False
    except (MemoryBankError, ValueError, TypeError) as e:
        logger.error("Tool %s failed: %s", name, e)
        return f"Error running {name}: {e}", True
