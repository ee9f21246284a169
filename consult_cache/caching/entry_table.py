"""
Entry table: the in-memory mapping from key to cache entry.

Owns the entry lifecycle and keeps the durable copy in sync by rewriting
the whole table through the key-value store after every mutation. The
in-memory table is authoritative; a failed write leaves the durable copy
stale but never reaches the caller.
"""

import logging
import time
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from pydantic_core import PydanticSerializationError

from ..config import DAY_MS
from ..exceptions import DeserializationError, QuotaExceededError, StorageError
from ..interfaces.storage import KeyValueStore
from ..models.cache_entry import CacheEntry, EntryMetadata, EntryType, Priority
from ..models.query import FindCriteria
from ..utils.serialization import json_clone, to_json_safe
from .codec import decode_table, encode_table
from .eviction import emergency_prune_keys, enforce_capacity
from .expiry import expired_keys
from .query import find_entries

logger = logging.getLogger(__name__)

Clock = Callable[[], int]


def epoch_ms() -> int:
    return int(time.time() * 1000)


def _json_safe_metadata(metadata):
    """Reduce metadata, extra keys included, to its JSON-representable part."""
    if metadata is None:
        return None
    if isinstance(metadata, EntryMetadata):
        metadata = metadata.model_dump(by_alias=True, exclude_none=True)
    return to_json_safe(metadata)


class EntryTable:
    """
    Bounded, expiring entry table persisted as a single blob.

    Every mutating operation (set, refreshing get, delete, sweeps, replace)
    persists the table once before returning.
    """

    def __init__(
        self,
        store: KeyValueStore,
        storage_key: str = "smart_consultation_cache",
        max_entries: int = 100,
        default_ttl_ms: int = DAY_MS,
        emergency_prune_age_ms: int = 7 * DAY_MS,
        clock: Optional[Clock] = None
    ):
        """
        Initialize an empty table. Call load() to hydrate from the store.

        Args:
            store: Durable key-value store
            storage_key: Key the whole table is stored under
            max_entries: Capacity bound enforced after every insert
            default_ttl_ms: TTL applied when set() gets none
            emergency_prune_age_ms: Age beyond which low-priority drafts are
                dropped when the store reports a quota failure
            clock: Returns the current time in epoch ms
        """
        self._store = store
        self._entries: Dict[str, CacheEntry] = {}

        self.storage_key = storage_key
        self.max_entries = max_entries
        self.default_ttl_ms = default_ttl_ms
        self.emergency_prune_age_ms = emergency_prune_age_ms
        self.clock = clock or epoch_ms

        # Statistics
        self.hits = 0
        self.misses = 0
        self.evictions = 0
        self.expired_removed = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        """Live membership check; does not refresh the timestamp."""
        entry = self._entries.get(key)
        return entry is not None and not entry.is_expired(self.clock())

    # ------------------------------------------------------------------
    # Core operations
    # ------------------------------------------------------------------

    def set(
        self,
        key: str,
        data: Any,
        entry_type: Union[EntryType, str] = EntryType.DRAFT,
        priority: Union[Priority, str] = Priority.MEDIUM,
        ttl: Optional[int] = None,
        metadata: Optional[Union[EntryMetadata, Dict[str, Any]]] = None
    ) -> CacheEntry:
        """
        Store a deep copy of data under key, replacing any existing entry.

        Args:
            key: Entry key
            data: Payload; copied through JSON (see utils.serialization)
            entry_type: draft, completed or template
            priority: low, medium or high
            ttl: Time to live in ms; None or 0 uses the default TTL
            metadata: Query tags (patientId, formType, flowRoute, step)

        Returns:
            The stored entry
        """
        if ttl is not None and ttl < 0:
            raise ValueError(f"ttl must be non-negative, got {ttl}")

        now = self.clock()
        entry = CacheEntry(
            id=key,
            timestamp=now,
            data=json_clone(data),
            type=entry_type,
            priority=priority,
            expires_at=now + (ttl or self.default_ttl_ms),
            metadata=_json_safe_metadata(metadata),
        )
        self._entries[key] = entry
        logger.debug("Cache set: %s (type=%s, priority=%s)", key, entry.type.value, entry.priority.value)

        self.enforce_capacity()
        self.persist()
        return entry

    def get(self, key: str) -> Optional[Any]:
        """
        Retrieve a payload and refresh its timestamp.

        Expired entries are deleted on the way out.

        Args:
            key: Entry key

        Returns:
            A copy of the payload, or None if absent or expired
        """
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            logger.debug("Cache miss: %s", key)
            return None

        now = self.clock()
        if entry.is_expired(now):
            del self._entries[key]
            self.misses += 1
            self.expired_removed += 1
            logger.debug("Cache miss (expired): %s", key)
            self.persist()
            return None

        entry.timestamp = now
        self.hits += 1
        self.persist()
        return json_clone(entry.data)

    def delete(self, key: str) -> bool:
        """Remove a key. Returns True if it was present."""
        if key not in self._entries:
            return False
        del self._entries[key]
        self.persist()
        return True

    def find(self, criteria: FindCriteria) -> List[CacheEntry]:
        """Matching live entries, most recent first, as copies."""
        results = find_entries(self._entries.values(), criteria, self.clock())
        return [entry.model_copy(deep=True) for entry in results]

    def entries(self) -> List[CacheEntry]:
        """Copies of all stored entries, expired ones included, in table order."""
        return [entry.model_copy(deep=True) for entry in self._entries.values()]

    def items(self) -> List[tuple]:
        """(key, entry copy) pairs in table order."""
        return [(key, entry.model_copy(deep=True)) for key, entry in self._entries.items()]

    # ------------------------------------------------------------------
    # Sweeps
    # ------------------------------------------------------------------

    def remove_where(self, predicate: Callable[[CacheEntry], bool]) -> int:
        """
        Remove every entry matching predicate and persist once.

        Returns:
            Number of entries removed
        """
        doomed = [key for key, entry in self._entries.items() if predicate(entry)]
        return self._remove_keys(doomed)

    def cleanup(self) -> int:
        """
        Remove all expired entries and persist once.

        Safe to call at any time; a second call right after returns 0.

        Returns:
            Number of entries removed
        """
        removed = self._remove_keys(expired_keys(self._entries, self.clock()))
        self.expired_removed += removed
        if removed:
            logger.info("Cleanup removed %d expired entries", removed)
        return removed

    def _remove_keys(self, keys: Iterable[str]) -> int:
        count = 0
        for key in keys:
            if self._entries.pop(key, None) is not None:
                count += 1
        self.persist()
        return count

    def enforce_capacity(self) -> List[str]:
        """Evict the lowest-ranked entries beyond max_entries."""
        self._entries, evicted = enforce_capacity(self._entries, self.max_entries)
        if evicted:
            self.evictions += len(evicted)
            logger.debug("Evicted %d entries over capacity: %s", len(evicted), evicted)
        return evicted

    def replace_all(self, entries: Dict[str, CacheEntry]) -> None:
        """Swap in a whole new table, enforce capacity, and persist."""
        self._entries = dict(entries)
        self.enforce_capacity()
        self.persist()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load(self) -> int:
        """
        Hydrate the table from the store.

        An absent, unreadable or malformed blob leaves an empty table.

        Returns:
            Number of entries loaded
        """
        try:
            blob = self._store.read(self.storage_key)
        except StorageError as e:
            logger.warning("Could not read cache from storage, starting empty: %s", e)
            self._entries = {}
            return 0

        if blob is None:
            self._entries = {}
            return 0

        try:
            self._entries = decode_table(blob)
        except DeserializationError as e:
            logger.warning("Discarding unreadable cache blob '%s': %s", self.storage_key, e)
            self._entries = {}
            return 0

        logger.info("Loaded %d cache entries from storage", len(self._entries))
        return len(self._entries)

    def persist(self) -> bool:
        """
        Write the whole table to the store.

        On a quota failure, low-priority drafts older than the emergency
        prune age are dropped and the write is retried exactly once.

        Returns:
            True if the durable copy is up to date
        """
        blob = self._encode()
        if blob is None:
            return False

        try:
            self._store.write(self.storage_key, blob)
            return True
        except QuotaExceededError as e:
            logger.warning("Storage quota exceeded, pruning old low-priority drafts: %s", e)
        except StorageError as e:
            logger.error("Failed to save cache to storage: %s", e)
            return False

        pruned = emergency_prune_keys(self._entries, self.clock(), self.emergency_prune_age_ms)
        for key in pruned:
            del self._entries[key]
        logger.info("Emergency prune removed %d drafts", len(pruned))

        blob = self._encode()
        if blob is None:
            return False

        try:
            self._store.write(self.storage_key, blob)
            return True
        except StorageError as e:
            logger.error("Failed to save cache even after pruning, durable copy is stale: %s", e)
            return False

    def _encode(self) -> Optional[str]:
        try:
            return encode_table(self._entries)
        except (PydanticSerializationError, TypeError, ValueError) as e:
            logger.error("Failed to encode cache table, durable copy is stale: %s", e)
            return None

    def storage_size(self) -> int:
        """Length of the stored blob, 0 if absent or unreadable."""
        try:
            blob = self._store.read(self.storage_key)
        except StorageError:
            return 0
        return len(blob) if blob else 0
