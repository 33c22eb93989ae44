"""Timer-driven poll loop feeding GameStore.refresh()."""

from __future__ import annotations

import asyncio
import contextlib
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from tombola.session.store import GameStore

DEFAULT_POLL_INTERVAL_MS = 2000

logger = structlog.get_logger()


class PollScheduler:
    """Run store.refresh() immediately and then on a fixed interval.

    Each tick is its own task and the timer never waits for the previous
    tick, so a slow refresh can overlap the next one. Out-of-date results
    are the store's problem: it drops them by request tag.
    Call start() once the store exists and stop() on shutdown.
    """

    def __init__(self, store: GameStore, interval_ms: int = DEFAULT_POLL_INTERVAL_MS) -> None:
        if interval_ms <= 0:
            raise ValueError(f"interval_ms must be positive, got {interval_ms}")
        self._store = store
        self._interval = interval_ms / 1000
        self._loop_task: asyncio.Task[None] | None = None
        self._ticks: set[asyncio.Task[None]] = set()
        self._tick_count = 0

    @property
    def running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    @property
    def tick_count(self) -> int:
        """Ticks that found the store connected and issued a refresh."""
        return self._tick_count

    def start(self) -> None:
        if self.running:
            return
        self._loop_task = asyncio.create_task(self._run())
        logger.info("poll scheduler started", interval_ms=int(self._interval * 1000))

    async def stop(self) -> None:
        """Cancel the timer and every in-flight tick."""
        tasks = [t for t in (self._loop_task, *self._ticks) if t is not None]
        self._loop_task = None
        self._ticks.clear()
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        logger.info("poll scheduler stopped")

    async def tick(self) -> None:
        """Refresh once if the store is connected."""
        if not self._store.state.is_connected:
            return
        self._tick_count += 1
        await self._store.refresh()

    async def _run(self) -> None:
        while True:
            task = asyncio.create_task(self.tick())
            self._ticks.add(task)
            task.add_done_callback(self._on_tick_done)
            await asyncio.sleep(self._interval)

    def _on_tick_done(self, task: asyncio.Task[None]) -> None:
        self._ticks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("poll tick failed", exc_info=exc)
