"""
Sync service - runs the polling cycle on a fixed interval.

One task, strictly sequential cycles: the next cycle starts only after the
previous one returned and the remainder of the interval has elapsed.
"""

import asyncio
import time
from typing import Any

import structlog

from src.config.settings import get_settings
from src.sync.engine import SyncEngine
from src.sync.schemas import CycleResult

logger = structlog.get_logger(__name__)


class SyncService:
    """
    Service that drives the sync engine.

    Usage:
        service = SyncService(engine)
        await service.start()  # Runs until stopped
    """

    def __init__(
        self,
        engine: SyncEngine,
        poll_interval: float | None = None,
    ):
        """
        Initialize sync service.

        Args:
            engine: Engine built by bootstrap_sync
            poll_interval: Seconds between cycle starts (or from config)
        """
        self._engine = engine
        self._poll_interval = (
            poll_interval if poll_interval is not None else get_settings().poll_interval_seconds
        )
        self._running = False
        self._task: asyncio.Task | None = None
        self._cycle_lock = asyncio.Lock()
        self._last_result: CycleResult | None = None
        self._cycles_run = 0

        logger.info("Sync service initialized", poll_interval=self._poll_interval)

    async def start(self) -> None:
        """
        Start the polling loop.

        Runs until stop() is called. The first cycle runs immediately.
        """
        self._running = True
        logger.info("Starting sync service")

        self._task = asyncio.create_task(self._run_loop(), name="sync_loop")
        try:
            await self._task
        except asyncio.CancelledError:
            logger.info("Sync service cancelled")
        finally:
            self._running = False
            self._task = None
            logger.info("Sync service stopped", cycles=self._cycles_run)

    async def stop(self) -> None:
        """Stop the service gracefully."""
        logger.info("Stopping sync service")
        self._running = False

        if self._task is not None and not self._task.done():
            self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)

    async def _run_loop(self) -> None:
        while self._running:
            start_time = time.monotonic()
            await self.run_once()

            elapsed = time.monotonic() - start_time
            await asyncio.sleep(max(0.0, self._poll_interval - elapsed))

    async def run_once(self) -> CycleResult:
        """
        Run one cycle.

        Calls made while a cycle is in flight wait for it to finish, so
        two cycles never overlap.
        """
        async with self._cycle_lock:
            result = await self._engine.run_cycle()
            self._last_result = result
            self._cycles_run += 1
            return result

    @property
    def is_running(self) -> bool:
        """Check if service is running."""
        return self._running

    @property
    def last_result(self) -> CycleResult | None:
        return self._last_result

    async def health_check(self) -> dict[str, Any]:
        """
        Report loop and context state.

        Returns:
            Dictionary with health status
        """
        context = self._engine.context
        return {
            "running": self._running,
            "cycles_run": self._cycles_run,
            "last_checked": context.checkpoint.last_checked.isoformat(),
            "identity_resolved": bool(context.member_id),
            "destinations": {
                category.value: folder.path for category, folder in context.destinations.items()
            },
            "last_cycle": self._last_result.summary() if self._last_result else None,
        }
