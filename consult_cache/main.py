"""
Process entry points for the consultation cache.

Builds the one SmartCache a process should have and ties its cleanup task
to an explicit lifespan, so the task is cancelled on shutdown.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from .caching.entry_table import Clock
from .config import Settings
from .config import settings as default_settings
from .interfaces.storage import KeyValueStore
from .services.smart_cache import SmartCache
from .storage import MemoryKeyValueStore, SQLiteKeyValueStore

logger = logging.getLogger(__name__)


def configure_logging(settings: Optional[Settings] = None) -> None:
    settings = settings or default_settings
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def build_store(settings: Settings) -> KeyValueStore:
    """Create the durable store selected by settings.storage_backend."""
    if settings.storage_backend == "memory":
        return MemoryKeyValueStore(quota_bytes=settings.storage_quota_bytes)
    return SQLiteKeyValueStore(settings.storage_path, quota_bytes=settings.storage_quota_bytes)


def create_smart_cache(
    settings: Optional[Settings] = None,
    store: Optional[KeyValueStore] = None,
    clock: Optional[Clock] = None
) -> SmartCache:
    """
    Build a SmartCache from settings.

    Args:
        settings: Configuration (defaults to environment settings)
        store: Override the configured durable store
        clock: Override the wall clock (epoch ms)

    Returns:
        A loaded and swept cache; its cleanup task is not started yet
    """
    settings = settings or default_settings
    cache = SmartCache(store or build_store(settings), settings=settings, clock=clock)
    logger.info(
        "Smart cache ready: %d entries (backend=%s, max=%d)",
        len(cache.table),
        settings.storage_backend,
        settings.max_entries,
    )
    return cache


@asynccontextmanager
async def cache_lifespan(
    settings: Optional[Settings] = None,
    store: Optional[KeyValueStore] = None
) -> AsyncIterator[SmartCache]:
    """Startup and shutdown of the process-wide cache"""
    cache = create_smart_cache(settings, store=store)
    await cache.start()
    try:
        yield cache
    finally:
        await cache.stop()
        logger.info("Smart cache shut down")
