"""Durable key-value stores backing the cache."""

from .memory_store import MemoryKeyValueStore
from .sqlite_store import SQLiteKeyValueStore

__all__ = ["MemoryKeyValueStore", "SQLiteKeyValueStore"]
