"""Mock implementations of the chain gateway, clock and randomness."""

from __future__ import annotations

import random
from datetime import datetime, timedelta
from itertools import cycle
from typing import Awaitable, Callable

from dobi_fleet.errors import ExternalServiceError
from dobi_fleet.models.records import ChainTransaction

MASTER = "master"


class MockChain:
    """Implements ChainGateway protocol. Balances and history are staged."""

    def __init__(
        self,
        balance_wei: int = 0,
        fail_balance: bool = False,
        fail_send: bool = False,
    ) -> None:
        self.default_balance = balance_wei
        self.balances: dict[str, int] = {}
        self.history: dict[str, list[ChainTransaction]] = {}
        self.fail_balance = fail_balance
        self.fail_send = fail_send
        self.fail_history: set[str] = set()
        self.sent: list[tuple[str, str, int]] = []
        self.closed = False

    async def get_balance_wei(self, address: str) -> int:
        if self.fail_balance:
            raise ExternalServiceError("mock rpc unavailable")
        return self.balances.get(address, self.default_balance)

    async def send_value(self, private_key: str, to: str, value_wei: int) -> str:
        if self.fail_send:
            raise ExternalServiceError("mock transfer failure")
        self.sent.append((private_key, to, value_wei))
        return f"0x{len(self.sent):064x}"

    async def send_from_master(self, to: str, value_wei: int) -> str:
        return await self.send_value(MASTER, to, value_wei)

    async def get_transaction_history(self, address: str) -> list[ChainTransaction]:
        if address in self.fail_history:
            raise ExternalServiceError("mock block scan failure")
        return list(self.history.get(address, []))

    async def close(self) -> None:
        self.closed = True


class FakeTimer:
    """Implements TimerHandle protocol."""

    def __init__(self, due: datetime, callback: Callable[[], Awaitable[None]]) -> None:
        self.due = due
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeClock:
    """Implements Clock protocol on virtual time.

    Timers only run when a test calls ``advance()``; they run in due order
    and each callback is awaited before the next one starts.
    """

    def __init__(self, start: datetime = datetime(2026, 3, 2, 0, 0)) -> None:
        self._now = start
        self.timers: list[FakeTimer] = []

    def now(self) -> datetime:
        return self._now

    def call_later(
        self, delay: float, callback: Callable[[], Awaitable[None]]
    ) -> FakeTimer:
        timer = FakeTimer(self._now + timedelta(seconds=delay), callback)
        self.timers.append(timer)
        return timer

    @property
    def pending(self) -> list[FakeTimer]:
        return [t for t in self.timers if not t.cancelled and not t.fired]

    def set(self, when: datetime) -> None:
        """Test helper: jump to ``when`` without running timers."""
        self._now = when

    async def advance(self, seconds: float) -> int:
        """Move time forward, running every timer that falls due. Returns the count."""
        target = self._now + timedelta(seconds=seconds)
        ran = 0
        while True:
            due = [t for t in self.pending if t.due <= target]
            if not due:
                break
            timer = min(due, key=lambda t: t.due)
            timer.fired = True
            self._now = max(self._now, timer.due)
            await timer.callback()
            ran += 1
        self._now = target
        return ran


class ScriptedRandom(random.Random):
    """A Random whose draws are fixed by the test.

    ``randint`` gives the fire count, two-argument ``randrange`` cycles
    through ``hours``, one-argument ``randrange`` gives ``minute``,
    ``uniform`` returns ``amount`` (or the lower bound) and ``random``
    cycles through ``coins``.
    """

    def __init__(
        self,
        count: int = 2,
        hours: list[int] | None = None,
        minute: int = 30,
        amount: float | None = None,
        coins: list[float] | None = None,
    ) -> None:
        super().__init__(0)
        self.count = count
        self._hours = cycle(hours or [10, 12, 14, 16])
        self.minute = minute
        self.amount = amount
        self._coins = cycle(coins or [0.25])

    def randint(self, a: int, b: int) -> int:
        return max(a, min(self.count, b))

    def randrange(self, start: int, stop: int | None = None, step: int = 1) -> int:
        if stop is None:
            return self.minute
        return next(self._hours)

    def uniform(self, a: float, b: float) -> float:
        return a if self.amount is None else self.amount

    def random(self) -> float:
        return next(self._coins)
