"""
Recurring cleanup task.

One CleanupScheduler per cache service. The task sleeps first and then
sweeps, because the service already sweeps once right after loading. It is
an explicit handle: stop() cancels it, so nothing outlives a test run or a
reload.
"""

import asyncio
import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class CleanupScheduler:
    """Runs a cleanup callback on a fixed interval on the running event loop."""

    def __init__(self, cleanup: Callable[[], int], interval_seconds: float = 3600):
        """
        Args:
            cleanup: Synchronous sweep returning the number of entries removed
            interval_seconds: Delay between sweeps
        """
        self._cleanup = cleanup
        self.interval_seconds = interval_seconds
        self._running = False
        self._task: Optional[asyncio.Task] = None
        self.runs = 0

    @property
    def is_running(self) -> bool:
        return self._running and self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start the background task. A second start is a no-op."""
        if self.is_running:
            return
        self._running = True
        self._task = asyncio.create_task(self._cleanup_loop())
        logger.info("Cache cleanup scheduler started (interval=%ss)", self.interval_seconds)

    async def stop(self) -> None:
        """Cancel the background task and wait for it to finish."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Cache cleanup scheduler stopped")

    async def _cleanup_loop(self) -> None:
        while self._running:
            await asyncio.sleep(self.interval_seconds)
            try:
                self.run_once()
            except Exception as e:
                logger.error("Scheduled cache cleanup failed: %s", e)

    def run_once(self) -> int:
        """Run one sweep now. Useful for testing."""
        removed = self._cleanup()
        self.runs += 1
        return removed
