"""
Tests for loading, saving and quota recovery against the durable store.
"""

import json

import pytest

from consult_cache.caching.codec import encode_table
from consult_cache.config import DAY_MS
from consult_cache.exceptions import QuotaExceededError, StorageError
from consult_cache.storage import MemoryKeyValueStore, SQLiteKeyValueStore


def test_cache_reloads_from_store(make_cache):
    first = make_cache()
    first.set("k1", {"name": "Ana"}, metadata={"patientId": "p1"})

    second = make_cache()

    assert second.get("k1") == {"name": "Ana"}
    assert second.find(patient_id="p1")[0].id == "k1"


def test_blob_uses_key_entry_pairs(cache, store, clock):
    cache.set("k1", {"a": 1}, priority="high", metadata={"patientId": "p1", "step": 2})

    pairs = json.loads(store.read("test_cache"))

    assert pairs == [[
        "k1",
        {
            "id": "k1",
            "timestamp": clock.now,
            "data": {"a": 1},
            "type": "draft",
            "priority": "high",
            "expiresAt": clock.now + DAY_MS,
            "metadata": {"patientId": "p1", "step": 2},
        },
    ]]


@pytest.mark.parametrize("blob", ["{not json", json.dumps({"entries": []}), json.dumps([["k", {"id": "k"}]])])
def test_malformed_blob_starts_empty(store, make_cache, blob):
    store.write("test_cache", blob)

    cache = make_cache()

    assert len(cache.table) == 0
    cache.set("fresh", 1)
    assert cache.get("fresh") == 1


def test_unreadable_store_starts_empty(store, make_cache):
    store.read_errors.append(StorageError("disk gone"))

    cache = make_cache()

    assert len(cache.table) == 0


def test_write_failure_never_reaches_caller(cache, store):
    store.write_errors.append(StorageError("disk full"))

    cache.set("k1", 1)

    assert cache.get("k1") == 1


def test_quota_failure_prunes_old_low_drafts_and_retries(cache, store, clock):
    cache.set("old_low_draft", 1, priority="low", ttl=30 * DAY_MS)
    cache.set("old_template", 2, entry_type="template", priority="low", ttl=30 * DAY_MS)
    clock.advance(8 * DAY_MS)
    cache.set("recent_low_draft", 3, priority="low")

    store.write_errors.append(QuotaExceededError("full"))
    attempts = store.write_attempts
    cache.set("new", 4)

    assert store.write_attempts == attempts + 2
    stored = [pair[0] for pair in json.loads(store.read("test_cache"))]
    assert stored == ["old_template", "recent_low_draft", "new"]
    assert cache.get("old_low_draft") is None


def test_second_quota_failure_leaves_memory_authoritative(cache, store):
    cache.set("k1", 1)
    durable_before = store.read("test_cache")

    store.write_errors.extend([QuotaExceededError("full"), QuotaExceededError("still full")])
    cache.set("k2", 2)

    assert store.read("test_cache") == durable_before
    assert cache.get("k2") == 2


def test_real_quota_is_recovered_by_pruning(test_settings, clock):
    from consult_cache.services.smart_cache import SmartCache

    store = MemoryKeyValueStore()
    cache = SmartCache(store, settings=test_settings, clock=clock)
    for i in range(5):
        cache.set(f"stale{i}", "x" * 200, priority="low", ttl=30 * DAY_MS)
    clock.advance(8 * DAY_MS)

    store.quota_bytes = store.used_bytes() + 100
    cache.set("new", "y" * 500, priority="high")

    stored = [pair[0] for pair in json.loads(store.read("test_cache"))]
    assert stored == ["new"]


def test_memory_store_rejects_writes_over_quota():
    store = MemoryKeyValueStore(quota_bytes=10)
    store.write("k", "12345")

    with pytest.raises(QuotaExceededError):
        store.write("k2", "123456789")
    assert store.read("k2") is None
    store.write("k", "123456789")  # replacing a value does not count it twice


class TestSQLiteKeyValueStore:

    @pytest.fixture
    def sqlite_store(self, tmp_path):
        return SQLiteKeyValueStore(str(tmp_path / "nested" / "cache.db"), quota_bytes=1000)

    def test_write_read_remove(self, sqlite_store):
        assert sqlite_store.read("k") is None
        sqlite_store.write("k", "v1")
        sqlite_store.write("k", "v2")
        assert sqlite_store.read("k") == "v2"

        sqlite_store.remove("k")
        assert sqlite_store.read("k") is None

    def test_values_survive_new_instances(self, tmp_path):
        path = str(tmp_path / "cache.db")
        SQLiteKeyValueStore(path).write("k", "persisted")

        assert SQLiteKeyValueStore(path).read("k") == "persisted"

    def test_quota_is_enforced(self, sqlite_store):
        sqlite_store.write("a", "x" * 600)

        with pytest.raises(QuotaExceededError):
            sqlite_store.write("b", "y" * 600)
        assert sqlite_store.read("b") is None
        sqlite_store.write("a", "z" * 900)

    def test_in_memory_database(self):
        store = SQLiteKeyValueStore(":memory:")
        store.write("k", encode_table({}))

        assert store.read("k") == "[]"
        store.close()

    def test_cache_round_trip_through_sqlite(self, tmp_path, test_settings, clock):
        from consult_cache.services.smart_cache import SmartCache

        path = str(tmp_path / "cache.db")
        SmartCache(SQLiteKeyValueStore(path), settings=test_settings, clock=clock).save_template(
            "Diabetes Plan", "adult", {"diet": "low sugar"}
        )

        reloaded = SmartCache(SQLiteKeyValueStore(path), settings=test_settings, clock=clock)

        assert reloaded.get_template("diabetes plan", "adult") == {"diet": "low sugar"}


def test_unserializable_metadata_is_dropped_and_persistence_keeps_working(cache, store):
    cache.set("ok", 1)
    cache.set("k", 1, metadata={"patientId": "p1", "onSave": lambda: None})

    assert cache.get("ok") == 1
    assert cache.find(patient_id="p1")[0].id == "k"
    stored = json.loads(store.read("test_cache"))
    assert [pair[0] for pair in stored] == ["ok", "k"]
    assert stored[1][1]["metadata"] == {"patientId": "p1"}


def test_encoding_failure_leaves_durable_copy_stale(cache, store):
    cache.set("ok", 1)
    durable_before = store.read("test_cache")
    # model_copy(update=...) skips validation, so the table holds a payload JSON cannot encode
    cache.table._entries["bad"] = cache.table.entries()[0].model_copy(update={"id": "bad", "data": object()})

    assert cache.table.persist() is False
    assert store.read("test_cache") == durable_before

    del cache.table._entries["bad"]
    assert cache.get("ok") == 1
    assert [pair[0] for pair in json.loads(store.read("test_cache"))] == ["ok"]
