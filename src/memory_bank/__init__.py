"""Local, file-based project memory for AI assistant hosts.

Two subsystems:
- ``memory_bank.project``: decides which project namespace a request belongs to.
- ``memory_bank.memory``:  topic documents and id-addressable memories on disk.
"""

__version__ = "0.1.0"
