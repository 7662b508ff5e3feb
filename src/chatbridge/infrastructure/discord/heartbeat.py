"""Repeating heartbeat timer for a gateway connection."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

import structlog

logger = structlog.get_logger(__name__)


class HeartbeatScheduler:
    """Runs ``beat`` every interval in a background task.

    At most one timer is live: :meth:`start` replaces a running one and
    :meth:`stop` is idempotent.
    """

    def __init__(self, beat: Callable[[], Awaitable[None]], *, name: str = "heartbeat") -> None:
        self._beat = beat
        self._name = name
        self._task: asyncio.Task[None] | None = None
        self.interval_ms: int | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self, interval_ms: int) -> None:
        await self.stop()
        self.interval_ms = interval_ms
        self._task = asyncio.create_task(self._run(interval_ms / 1000), name=self._name)
        logger.debug("heartbeat.started", interval_ms=interval_ms)

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        if task is not asyncio.current_task():
            try:
                await task
            except asyncio.CancelledError:
                pass
        logger.debug("heartbeat.stopped")

    async def _run(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                await self._beat()
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.warning("heartbeat.beat_failed", error=str(exc), error_type=type(exc).__name__)
