from __future__ import annotations

import asyncio
import logging
from typing import Callable

LOGGER = logging.getLogger(__name__)


class PlaybackTimer:
    """Cancellable fixed-interval ticker on the running asyncio loop.

    ``on_tick`` returns whether playback should continue; returning ``False``
    ends the task. ``start`` never schedules a second task while one is live.
    """

    def __init__(self, on_tick: Callable[[], bool], interval_seconds: float) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0.")
        self._on_tick = on_tick
        self._interval = float(interval_seconds)
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> bool:
        if self.running:
            return False
        self._task = asyncio.get_running_loop().create_task(self._run())
        return True

    def stop(self) -> None:
        task, self._task = self._task, None
        if task is None or task.done():
            return
        try:
            current = asyncio.current_task()
        except RuntimeError:
            current = None
        # A tick that ends playback runs inside the task; let it return normally.
        if task is not current:
            task.cancel()

    async def wait(self) -> None:
        task = self._task
        if task is None:
            return
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            if not self._on_tick():
                LOGGER.debug("Playback finished")
                return
