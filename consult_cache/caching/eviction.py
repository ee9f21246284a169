"""
Eviction & capacity policy.

Entries rank by (priority, timestamp), both descending. Over capacity the
whole table is re-ranked and truncated, O(n log n) per insert beyond the
bound; fine for a table of a hundred entries. A heap keyed by rank would be
the next step if capacity grows by orders of magnitude.
"""

from typing import Dict, List, Tuple

from ..models.cache_entry import CacheEntry, EntryType, Priority

PRIORITY_RANK = {
    Priority.LOW: 1,
    Priority.MEDIUM: 2,
    Priority.HIGH: 3,
}


def rank_key(entry: CacheEntry) -> Tuple[int, int]:
    return PRIORITY_RANK[entry.priority], entry.timestamp


def rank_entries(entries: Dict[str, CacheEntry]) -> List[Tuple[str, CacheEntry]]:
    """
    Order entries from most to least worth keeping.

    Full ties keep table order (sorted() is stable under reverse=True).
    """
    return sorted(entries.items(), key=lambda item: rank_key(item[1]), reverse=True)


def enforce_capacity(
    entries: Dict[str, CacheEntry],
    max_entries: int
) -> Tuple[Dict[str, CacheEntry], List[str]]:
    """
    Keep the top max_entries ranked entries.

    Args:
        entries: Current table
        max_entries: Size bound

    Returns:
        (table to keep, evicted keys). The kept table is returned unchanged
        when already within bounds, otherwise rebuilt in rank order.
    """
    if len(entries) <= max_entries:
        return entries, []

    ranked = rank_entries(entries)
    kept = dict(ranked[:max_entries])
    evicted = [key for key, _ in ranked[max_entries:]]
    return kept, evicted


def emergency_prune_keys(entries: Dict[str, CacheEntry], now: int, max_age_ms: int) -> List[str]:
    """Keys of low-priority drafts last touched more than max_age_ms ago."""
    cutoff = now - max_age_ms
    return [
        key for key, entry in entries.items()
        if entry.type == EntryType.DRAFT
        and entry.priority == Priority.LOW
        and entry.timestamp < cutoff
    ]
