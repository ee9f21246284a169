"""
Error taxonomy for the consultation cache.

Not-found is never raised: lookups return None. Everything here is raised by
the storage adapters or the table codec and recovered inside the entry table,
so none of these reach a consumer of SmartCache.
"""


class CacheError(Exception):
    """Base class for all cache errors."""


class StorageError(CacheError):
    """The durable key-value store failed to read or write."""


class QuotaExceededError(StorageError):
    """A write would push the durable store over its size quota."""

    def __init__(self, message: str, required_bytes: int = 0, quota_bytes: int = 0):
        super().__init__(message)
        self.required_bytes = required_bytes
        self.quota_bytes = quota_bytes


class DeserializationError(CacheError):
    """A durable blob or import payload could not be parsed into entries."""
