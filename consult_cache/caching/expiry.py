from typing import Dict, List

from ..models.cache_entry import CacheEntry


def expired_keys(entries: Dict[str, CacheEntry], now: int) -> List[str]:
    """Keys whose expiresAt lies strictly before now."""
    return [key for key, entry in entries.items() if entry.is_expired(now)]
