"""Shared fixtures for the consultation cache tests."""

import pytest

from consult_cache.config import HOUR_MS, Settings
from consult_cache.services.smart_cache import SmartCache
from consult_cache.storage import MemoryKeyValueStore

START_MS = 1_700_000_000_000


class FakeClock:
    """Manually advanced epoch-millisecond clock."""

    def __init__(self, start: int = START_MS):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> int:
        self.now += ms
        return self.now

    def advance_hours(self, hours: float) -> int:
        return self.advance(int(hours * HOUR_MS))


class ScriptedStore(MemoryKeyValueStore):
    """Memory store that raises queued errors on upcoming reads/writes."""

    def __init__(self, quota_bytes=None):
        super().__init__(quota_bytes=quota_bytes)
        self.write_errors = []
        self.read_errors = []
        self.write_attempts = 0

    def read(self, key):
        if self.read_errors:
            raise self.read_errors.pop(0)
        return super().read(key)

    def write(self, key, value):
        self.write_attempts += 1
        if self.write_errors:
            raise self.write_errors.pop(0)
        super().write(key, value)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return ScriptedStore()


@pytest.fixture
def test_settings():
    """Settings independent of the environment and any .env file."""
    return Settings(
        _env_file=None,
        storage_backend="memory",
        storage_key="test_cache",
        max_entries=100,
        cleanup_interval_seconds=3600,
    )


@pytest.fixture
def make_cache(store, clock, test_settings):
    """Factory building a SmartCache over the shared store and clock."""
    def _make(**overrides):
        settings = test_settings.model_copy(update=overrides) if overrides else test_settings
        return SmartCache(store, settings=settings, clock=clock)
    return _make


@pytest.fixture
def cache(make_cache):
    return make_cache()


