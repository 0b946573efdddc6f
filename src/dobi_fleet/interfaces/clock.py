"""Clock protocol - time source and one-shot timer registration."""

from __future__ import annotations

from datetime import datetime
from typing import Awaitable, Callable, Protocol


class TimerHandle(Protocol):
    def cancel(self) -> None:
        ...


class Clock(Protocol):
    """Injected into the scheduler so tests can fast-forward virtual time."""

    def now(self) -> datetime:
        """Current local (naive) server time."""
        ...

    def call_later(
        self, delay: float, callback: Callable[[], Awaitable[None]]
    ) -> TimerHandle:
        """Run ``callback()`` once after ``delay`` seconds."""
        ...
