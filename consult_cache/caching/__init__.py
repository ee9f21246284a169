"""
Core cache machinery: entry table, eviction policy, expiry sweeps,
query engine and the recurring cleanup task.
"""

from .entry_table import EntryTable, epoch_ms
from .scheduler import CleanupScheduler

__all__ = [
    "EntryTable",
    "CleanupScheduler",
    "epoch_ms",
]
