from .cache_entry import CacheEntry, EntryMetadata, EntryType, Priority
from .query import FindCriteria
from .stats import CacheStats
from .snapshot import ExportSnapshot, SNAPSHOT_VERSION

__all__ = [
    "CacheEntry",
    "EntryMetadata",
    "EntryType",
    "Priority",
    "FindCriteria",
    "CacheStats",
    "ExportSnapshot",
    "SNAPSHOT_VERSION",
]
