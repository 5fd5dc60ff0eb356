"""Agent-facing tool functions over the memory bank."""

from memory_bank.tools.memory_tools import call_tool, get_memory_tools

__all__ = ["call_tool", "get_memory_tools"]
