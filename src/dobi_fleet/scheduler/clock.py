"""Event-loop backed clock used in production."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Awaitable, Callable

log = logging.getLogger(__name__)


class LoopClock:
    """Wall-clock time plus one-shot timers on the running asyncio loop.

    ``call_later`` returns the loop's ``TimerHandle``; cancelling it only
    affects timers that have not fired yet. A fired callback runs as its own
    task so it never blocks the loop's timer processing.
    """

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task] = set()

    def now(self) -> datetime:
        return datetime.now()

    def call_later(
        self, delay: float, callback: Callable[[], Awaitable[None]]
    ) -> asyncio.TimerHandle:
        loop = asyncio.get_running_loop()
        return loop.call_later(delay, self._spawn, callback)

    def _spawn(self, callback: Callable[[], Awaitable[None]]) -> None:
        task = asyncio.ensure_future(callback())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def drain(self) -> None:
        """Wait for callbacks that are currently running."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
