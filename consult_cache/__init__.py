"""Consultation cache: expiring, bounded, persisted store for form drafts and templates."""

from .config import Settings
from .exceptions import CacheError, DeserializationError, QuotaExceededError, StorageError
from .interfaces.storage import KeyValueStore
from .main import cache_lifespan, create_smart_cache
from .models import CacheEntry, CacheStats, EntryMetadata, EntryType, FindCriteria, Priority
from .services.smart_cache import SmartCache
from .storage import MemoryKeyValueStore, SQLiteKeyValueStore

__all__ = [
    # Service
    "SmartCache",
    "create_smart_cache",
    "cache_lifespan",
    "Settings",
    # Models
    "CacheEntry",
    "CacheStats",
    "EntryMetadata",
    "EntryType",
    "FindCriteria",
    "Priority",
    # Storage
    "KeyValueStore",
    "MemoryKeyValueStore",
    "SQLiteKeyValueStore",
    # Errors
    "CacheError",
    "StorageError",
    "QuotaExceededError",
    "DeserializationError",
]
