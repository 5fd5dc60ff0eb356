"""Topic memory + id-addressable memory on plain JSON files.

Layout:
    ~/.advanced-memory-bank/           # or $MEMORY_BANK_ROOT
    ├── shop.json                      # TopicStore: {topic: {content, tags, ...}}
    ├── blog.json
    └── shop/                          # MemoryStore: one file per memory
        ├── mem-lz3k1a-9f2k3j1x.json
        └── mem-lz3k2b-0a8d7c6e.json

Topic documents are addressed by an explicit project name; the memory
directory is chosen by project detection (``memory_bank.project``).
"""

from memory_bank.memory.models import Memory, ProjectInfo, Topic
from memory_bank.memory.store import MemoryStore
from memory_bank.memory.topics import FIXED_TOPICS, TopicStore

__all__ = ["FIXED_TOPICS", "Memory", "MemoryStore", "ProjectInfo", "Topic", "TopicStore"]
