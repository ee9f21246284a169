"""
Query engine: criteria-based linear scan over live entries.
"""

from typing import Iterable, List

from ..models.cache_entry import CacheEntry
from ..models.query import FindCriteria


def matches(entry: CacheEntry, criteria: FindCriteria) -> bool:
    """Check an entry against every present criterion (AND)."""
    if criteria.type is not None and entry.type != criteria.type:
        return False

    metadata = entry.metadata
    if criteria.patient_id is not None:
        if metadata is None or metadata.patient_id != criteria.patient_id:
            return False

    if criteria.form_type is not None:
        if metadata is None or metadata.form_type != criteria.form_type:
            return False

    if criteria.since is not None and entry.timestamp < criteria.since:
        return False

    return True


def find_entries(entries: Iterable[CacheEntry], criteria: FindCriteria, now: int) -> List[CacheEntry]:
    """
    Select matching, unexpired entries.

    Expired entries are skipped but left in place; removing them is the
    job of get() and cleanup().

    Args:
        entries: Entries to scan
        criteria: Filters to apply
        now: Current time, epoch ms

    Returns:
        Matches sorted by timestamp, most recently touched first
    """
    results = [
        entry for entry in entries
        if not entry.is_expired(now) and matches(entry, criteria)
    ]
    results.sort(key=lambda entry: entry.timestamp, reverse=True)
    return results
