"""Periodic trigger for the connection liveness sweep."""

import asyncio
import contextlib
from collections.abc import Callable

import structlog

LIVENESS_SWEEP_INTERVAL = 30  # seconds between liveness sweeps

logger = structlog.get_logger()


class LivenessTicker:
    """Invoke a callback on a fixed period for the lifetime of the process.

    The callback only schedules the sweep; the sweep itself runs inside the
    coordinator's event loop so it never interleaves with message handling.
    """

    def __init__(self, interval: float = LIVENESS_SWEEP_INTERVAL) -> None:
        self._interval = interval
        self._task: asyncio.Task[None] | None = None

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, on_tick: Callable[[], None]) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = asyncio.create_task(self._tick_loop(on_tick))

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def _tick_loop(self, on_tick: Callable[[], None]) -> None:
        while True:
            await asyncio.sleep(self._interval)
            logger.debug("liveness sweep due")
            on_tick()
