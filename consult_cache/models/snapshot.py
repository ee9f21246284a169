"""
Export snapshot format.

    {"version": "1.0", "timestamp": <epoch ms>, "entries": [[key, entry], ...]}
"""

from typing import List, Tuple

from pydantic import BaseModel, Field

from .cache_entry import CacheEntry

SNAPSHOT_VERSION = "1.0"


class ExportSnapshot(BaseModel):
    version: str
    timestamp: int
    entries: List[Tuple[str, CacheEntry]] = Field(default_factory=list)
