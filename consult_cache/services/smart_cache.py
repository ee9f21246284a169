"""
Smart consultation cache service.

The single object consumers talk to: form flows autosave drafts, recover
the latest draft for a patient and store reusable templates through it.
Construct one per process (see consult_cache.main) and pass it around;
there is no module-level instance.
"""

import json
import logging
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError

from ..caching.codec import decode_pairs
from ..caching.entry_table import Clock, EntryTable
from ..caching.scheduler import CleanupScheduler
from ..config import Settings
from ..config import settings as default_settings
from ..exceptions import DeserializationError
from ..interfaces.storage import KeyValueStore
from ..models.cache_entry import CacheEntry, EntryMetadata, EntryType, Priority
from ..models.query import FindCriteria
from ..models.snapshot import SNAPSHOT_VERSION, ExportSnapshot
from ..models.stats import CacheStats

logger = logging.getLogger(__name__)

DRAFT_KEY_PREFIX = "draft"
TEMPLATE_KEY_PREFIX = "template"


def normalize_template_name(name: str) -> str:
    """Case-fold and collapse whitespace runs to underscores."""
    return "_".join(name.casefold().split())


def make_template_key(name: str, form_type: str) -> str:
    return f"{TEMPLATE_KEY_PREFIX}_{form_type}_{normalize_template_name(name)}"


class SmartCache:
    """
    Expiring, bounded cache of consultation drafts, submissions and templates.

    Loads its table from the store and sweeps expired entries on
    construction. Call start() from a running event loop to begin the
    hourly cleanup, and stop() (or use `async with`) to cancel it.
    """

    def __init__(
        self,
        store: KeyValueStore,
        settings: Optional[Settings] = None,
        clock: Optional[Clock] = None
    ):
        """
        Initialize the cache service.

        Args:
            store: Durable key-value store backing the cache
            settings: Limits and TTLs (defaults to environment settings)
            clock: Returns the current time in epoch ms (injectable for tests)
        """
        self.settings = settings or default_settings
        self.table = EntryTable(
            store,
            storage_key=self.settings.storage_key,
            max_entries=self.settings.max_entries,
            default_ttl_ms=self.settings.default_ttl_ms,
            emergency_prune_age_ms=self.settings.emergency_prune_age_ms,
            clock=clock,
        )
        self.scheduler = CleanupScheduler(
            self.cleanup,
            interval_seconds=self.settings.cleanup_interval_seconds,
        )

        self.table.load()
        self.cleanup()

    @property
    def clock(self) -> Clock:
        return self.table.clock

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Begin the recurring cleanup task."""
        await self.scheduler.start()

    async def stop(self) -> None:
        """Cancel the recurring cleanup task."""
        await self.scheduler.stop()

    async def __aenter__(self) -> "SmartCache":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    # ------------------------------------------------------------------
    # Generic operations
    # ------------------------------------------------------------------

    def set(
        self,
        key: str,
        data: Any,
        entry_type: Union[EntryType, str] = EntryType.DRAFT,
        priority: Union[Priority, str] = Priority.MEDIUM,
        ttl: Optional[int] = None,
        metadata: Optional[Union[EntryMetadata, Dict[str, Any]]] = None
    ) -> None:
        """Store a copy of data under key (see EntryTable.set)."""
        self.table.set(
            key,
            data,
            entry_type=entry_type,
            priority=priority,
            ttl=ttl,
            metadata=metadata,
        )

    def get(self, key: str) -> Optional[Any]:
        """Payload for key, or None if absent or expired."""
        return self.table.get(key)

    def delete(self, key: str) -> bool:
        return self.table.delete(key)

    def find(
        self,
        entry_type: Optional[Union[EntryType, str]] = None,
        patient_id: Optional[str] = None,
        form_type: Optional[str] = None,
        since: Optional[int] = None
    ) -> List[CacheEntry]:
        """
        Search live entries.

        Args:
            entry_type: Exact entry type
            patient_id: Exact metadata patientId
            form_type: Exact metadata formType
            since: Minimum timestamp (inclusive), epoch ms

        Returns:
            Matching entries, most recently touched first
        """
        criteria = FindCriteria(
            type=entry_type,
            patient_id=patient_id,
            form_type=form_type,
            since=since,
        )
        return self.table.find(criteria)

    def cleanup(self) -> int:
        """Remove expired entries; returns how many were removed."""
        return self.table.cleanup()

    def clear_by_type(self, entry_type: Union[EntryType, str]) -> int:
        """
        Remove every entry of a type.

        Returns:
            Number of entries removed
        """
        entry_type = EntryType(entry_type)
        removed = self.table.remove_where(lambda entry: entry.type == entry_type)
        logger.info("Cleared %d %s entries", removed, entry_type.value)
        return removed

    # ------------------------------------------------------------------
    # Consultation helpers
    # ------------------------------------------------------------------

    def auto_save(
        self,
        patient_id: str,
        form_data: Any,
        step: int,
        form_type: Optional[str] = None,
        flow_route: Optional[str] = None,
        progress: float = 0
    ) -> str:
        """
        Save a draft snapshot of an in-progress form.

        Every call creates a new entry; earlier autosaves for the same
        patient are kept until they expire or get evicted.

        Args:
            patient_id: Patient the form belongs to
            form_data: Current form values
            step: Current step of the form flow
            form_type: Form type tag (e.g. adult, pediatric)
            flow_route: Consultation flow route tag
            progress: Completion percentage reported by the form

        Returns:
            Key of the new draft
        """
        now = self.clock()
        key = f"{DRAFT_KEY_PREFIX}_{patient_id}_{now}"
        suffix = 1
        while key in self.table:
            key = f"{DRAFT_KEY_PREFIX}_{patient_id}_{now}_{suffix}"
            suffix += 1

        self.table.set(
            key,
            {
                "formData": form_data,
                "step": step,
                "progress": progress,
                "lastModified": now,
            },
            entry_type=EntryType.DRAFT,
            priority=Priority.HIGH,
            ttl=self.settings.draft_ttl_ms,
            metadata=EntryMetadata(
                patient_id=patient_id,
                form_type=form_type,
                flow_route=flow_route,
                step=step,
            ),
        )
        return key

    def get_latest_draft(self, patient_id: Optional[str] = None) -> Optional[Any]:
        """
        Most recent draft touched within the recovery window.

        Args:
            patient_id: Restrict to one patient (None = any patient)

        Returns:
            The draft payload, or None
        """
        drafts = self.find(
            entry_type=EntryType.DRAFT,
            patient_id=patient_id,
            since=self.clock() - self.settings.draft_recovery_window_ms,
        )
        return drafts[0].data if drafts else None

    def save_template(self, name: str, form_type: str, template: Any) -> str:
        """
        Save a reusable template.

        The key depends only on form_type and the normalized name, so
        saving "Diabetes Plan" and then "diabetes  plan" for the same form
        type leaves a single template holding the second payload.

        Returns:
            Template key
        """
        key = make_template_key(name, form_type)
        self.table.set(
            key,
            template,
            entry_type=EntryType.TEMPLATE,
            priority=Priority.MEDIUM,
            ttl=self.settings.template_ttl_ms,
            metadata=EntryMetadata(form_type=form_type, template_name=name),
        )
        return key

    def get_template(self, name: str, form_type: str) -> Optional[Any]:
        return self.table.get(make_template_key(name, form_type))

    def list_templates(self, form_type: Optional[str] = None) -> List[CacheEntry]:
        return self.find(entry_type=EntryType.TEMPLATE, form_type=form_type)

    # ------------------------------------------------------------------
    # Introspection, export and import
    # ------------------------------------------------------------------

    def get_stats(self) -> CacheStats:
        """Counts by type and priority, age range, storage size and hit rates."""
        now = self.clock()
        stats = CacheStats(
            total_entries=len(self.table),
            max_entries=self.table.max_entries,
            oldest_entry=now,
            newest_entry=0,
            storage_size=self.table.storage_size(),
            hits=self.table.hits,
            misses=self.table.misses,
            evictions=self.table.evictions,
            expired_removed=self.table.expired_removed,
        )

        for entry in self.table.entries():
            stats.by_type[entry.type.value] += 1
            stats.by_priority[entry.priority.value] += 1
            stats.oldest_entry = min(stats.oldest_entry, entry.timestamp)
            stats.newest_entry = max(stats.newest_entry, entry.timestamp)

        return stats

    def export_data(self) -> str:
        """Versioned JSON snapshot of every entry, for backup and debugging."""
        snapshot = ExportSnapshot(
            version=SNAPSHOT_VERSION,
            timestamp=self.clock(),
            entries=self.table.items(),
        )
        return json.dumps(snapshot.model_dump(mode="json", by_alias=True, exclude_none=True), indent=2)

    def import_data(self, blob: str) -> bool:
        """
        Replace the whole table with a snapshot from export_data().

        Args:
            blob: Snapshot JSON

        Returns:
            True on success; False if the snapshot cannot be parsed, in
            which case the current table is left untouched
        """
        try:
            raw = json.loads(blob)
            if not isinstance(raw, dict) or not raw.get("version") or "entries" not in raw:
                raise DeserializationError("Snapshot needs a version and an entries list")
            snapshot = ExportSnapshot(
                version=str(raw["version"]),
                timestamp=raw.get("timestamp") or self.clock(),
                entries=decode_pairs(raw["entries"]),
            )
        except (TypeError, ValueError, ValidationError, DeserializationError) as e:
            logger.error("Error importing cache data: %s", e)
            return False

        self.table.replace_all(dict(snapshot.entries))
        logger.info("Imported %d cache entries (snapshot version %s)", len(self.table), snapshot.version)
        return True
