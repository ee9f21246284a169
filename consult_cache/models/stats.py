from typing import Dict

from pydantic import BaseModel, Field

from .cache_entry import EntryType, Priority


def _zero_counts(enum_cls) -> Dict[str, int]:
    return {member.value: 0 for member in enum_cls}


class CacheStats(BaseModel):
    """Snapshot of cache contents and performance"""
    total_entries: int = 0
    max_entries: int = 0
    by_type: Dict[str, int] = Field(default_factory=lambda: _zero_counts(EntryType))
    by_priority: Dict[str, int] = Field(default_factory=lambda: _zero_counts(Priority))
    oldest_entry: int = 0
    newest_entry: int = 0
    storage_size: int = 0
    hits: int = 0
    misses: int = 0
    evictions: int = 0
    expired_removed: int = 0

    @property
    def hit_rate(self) -> float:
        """Calculate cache hit rate"""
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0
