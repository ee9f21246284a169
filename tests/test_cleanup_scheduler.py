"""
Tests for expiry sweeps and the recurring cleanup task.
"""

import asyncio

import pytest

from consult_cache.caching.scheduler import CleanupScheduler
from consult_cache.config import HOUR_MS


def test_cleanup_removes_exactly_the_expired_entries(cache, clock):
    cache.set("a", 1, ttl=1000)
    cache.set("b", 2, ttl=2000)
    cache.set("c", 3, ttl=5000)
    clock.advance(2500)

    assert cache.cleanup() == 2
    assert [entry.id for entry in cache.table.entries()] == ["c"]


def test_cleanup_is_idempotent(cache, clock):
    cache.set("a", 1, ttl=10)
    clock.advance(11)

    assert cache.cleanup() == 1
    assert cache.cleanup() == 0


def test_startup_sweeps_entries_that_expired_while_down(store, clock, make_cache):
    first = make_cache()
    first.set("short", 1, ttl=HOUR_MS)
    first.set("long", 2, ttl=10 * HOUR_MS)

    clock.advance_hours(2)
    second = make_cache()

    assert len(second.table) == 1
    assert second.get("long") == 2
    assert second.table.expired_removed == 1


def test_run_once_counts_runs():
    calls = []
    scheduler = CleanupScheduler(lambda: calls.append(1) or 3, interval_seconds=60)

    assert scheduler.run_once() == 3
    assert scheduler.runs == 1
    assert not scheduler.is_running


@pytest.mark.asyncio
async def test_scheduler_runs_periodically_until_stopped():
    calls = []
    scheduler = CleanupScheduler(lambda: calls.append(1) or 0, interval_seconds=0.01)

    await scheduler.start()
    await scheduler.start()  # second start is a no-op
    await asyncio.sleep(0.1)
    assert scheduler.is_running
    await scheduler.stop()

    runs = len(calls)
    assert runs >= 2
    await asyncio.sleep(0.05)
    assert len(calls) == runs
    assert not scheduler.is_running


@pytest.mark.asyncio
async def test_scheduler_survives_failing_cleanup():
    calls = []

    def failing_cleanup():
        calls.append(1)
        raise RuntimeError("boom")

    scheduler = CleanupScheduler(failing_cleanup, interval_seconds=0.01)
    await scheduler.start()
    await asyncio.sleep(0.1)

    assert scheduler.is_running
    assert len(calls) >= 2
    await scheduler.stop()


@pytest.mark.asyncio
async def test_cache_context_manager_owns_the_task(cache):
    async with cache as running:
        assert running is cache
        assert cache.scheduler.is_running

    assert not cache.scheduler.is_running
