"""Key-value store implementations."""

from noorsync.infrastructure.storage.memory import MemoryStore
from noorsync.infrastructure.storage.sqlite import SQLiteStore

__all__ = ["MemoryStore", "SQLiteStore"]
