"""
Background scheduling for the dashboard engine.

Replaces the browser's intervals: one task runs an evaluation cycle every
``poll_seconds``, another refreshes the network clock every
``time_sync_seconds``, and a settings subscription schedules an out-of-band
cycle after user edits. Weather fetches and the cycle itself, including its
database write, run in worker threads.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Set

from .engine import DashboardEngine, DashboardSnapshot
from .settings_store import HomeSettings

logger = logging.getLogger(__name__)


class DashboardRuntime:
    """
    asyncio driver around a :class:`DashboardEngine`.

    A trigger arriving while a cycle (including its weather fetch) is in
    progress is dropped, never queued.

    Example:
        ```python
        runtime = DashboardRuntime(engine, poll_seconds=60)
        await runtime.start()
        ...
        await runtime.stop()
        ```
    """

    def __init__(
        self,
        engine: DashboardEngine,
        poll_seconds: float = 60.0,
        time_sync_seconds: float = 3600.0,
    ) -> None:
        self.engine = engine
        self.poll_seconds = poll_seconds
        self.time_sync_seconds = time_sync_seconds
        self._busy = False
        self._loop: asyncio.AbstractEventLoop | None = None
        self._tasks: list[asyncio.Task] = []
        self._pending: Set[asyncio.Task] = set()
        self._unsubscribe: Callable[[], None] | None = None

    @property
    def running(self) -> bool:
        return bool(self._tasks)

    @property
    def busy(self) -> bool:
        return self._busy or self.engine.busy

    async def start(self) -> None:
        if self.running:
            return
        self._loop = asyncio.get_running_loop()
        self._unsubscribe = self.engine.store.subscribe(self._on_settings_changed)
        self._tasks = [
            asyncio.create_task(self._sync_loop(), name="sim-home-time-sync"),
            asyncio.create_task(self._poll_loop(), name="sim-home-poll"),
        ]
        logger.info(
            "Runtime started (poll every %.0fs, time sync every %.0fs)",
            self.poll_seconds,
            self.time_sync_seconds,
        )

    async def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        tasks = self._tasks + list(self._pending)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks = []
        self._pending.clear()
        self._loop = None
        logger.info("Runtime stopped")

    async def trigger(self) -> DashboardSnapshot | None:
        """Run one cycle now unless one is already in progress."""
        if self.busy:
            logger.debug("Cycle trigger coalesced")
            return None
        self._busy = True
        try:
            weather = await asyncio.to_thread(self.engine.fetch_weather)
            return await asyncio.to_thread(self.engine.run_cycle, weather=weather)
        finally:
            self._busy = False

    def _on_settings_changed(self, settings: HomeSettings) -> None:
        # The engine's own write-backs arrive while it is busy.
        if self.busy or self._loop is None:
            return
        self._loop.call_soon_threadsafe(self._schedule)

    def _schedule(self) -> None:
        if self.busy or self._loop is None:
            return
        task = self._loop.create_task(self.trigger())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _poll_loop(self) -> None:
        while True:
            try:
                await self.trigger()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Evaluation cycle failed")
            await asyncio.sleep(self.poll_seconds)

    async def _sync_loop(self) -> None:
        sync = getattr(self.engine.clock, "sync", None)
        if sync is None:
            return
        while True:
            await asyncio.to_thread(sync)
            await asyncio.sleep(self.time_sync_seconds)
