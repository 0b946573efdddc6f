"""Deposit scheduler - randomized daily fire times per active charger."""

from __future__ import annotations

import logging
import random
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Callable

from dobi_fleet.economics.engine import EconomicsEngine, quantize_amount
from dobi_fleet.errors import FleetError
from dobi_fleet.interfaces.clock import Clock, TimerHandle
from dobi_fleet.interfaces.store import LedgerStore
from dobi_fleet.models.config import ScheduleConfig
from dobi_fleet.models.records import (
    ChargePlan,
    ChargerRecord,
    ChargerStatus,
    DepositResult,
    FireOutcome,
    FireReport,
)
from dobi_fleet.scheduler.clock import LoopClock
from dobi_fleet.scheduler.locks import ChargerLocks

log = logging.getLogger(__name__)


@dataclass(eq=False)
class ArmedCharge:
    """A timer armed for one charger at one moment today."""

    charger_id: str
    due: datetime
    handle: TimerHandle | None = field(default=None, repr=False)


class DepositScheduler:
    """Owns the day's plan: fired counters and armed timers.

    Planning draws 0..max_daily_charges fire times inside the configured
    hour window and arms a timer for each one still in the future. Planning
    is additive: planning a charger again arms more timers without touching
    the ones already armed. At fire time the charger is re-read; inactive
    chargers and chargers that hit the daily cap are skipped silently.

    Every fire yields a FireReport, passed to ``on_fire`` and kept in a
    bounded history. Fire errors are logged and reported as ``failed``;
    they never escape the timer callback.
    """

    def __init__(
        self,
        store: LedgerStore,
        engine: EconomicsEngine,
        locks: ChargerLocks,
        config: ScheduleConfig,
        clock: Clock | None = None,
        rng: random.Random | None = None,
        on_fire: Callable[[FireReport], None] | None = None,
        history_size: int = 200,
    ) -> None:
        self._store = store
        self._engine = engine
        self._locks = locks
        self._config = config
        self._clock: Clock = clock or LoopClock()
        self._rng = rng or random.Random()
        self._on_fire = on_fire
        self._fired_today: dict[str, int] = {}
        self._armed: list[ArmedCharge] = []
        self._recent: deque[FireReport] = deque(maxlen=history_size)
        self._day_started = self._clock.now()

    # ── State queries ──────────────────────────────────────

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def config(self) -> ScheduleConfig:
        return self._config

    @property
    def armed_count(self) -> int:
        return len(self._armed)

    def charges_today(self, charger_id: str) -> int:
        return self._fired_today.get(charger_id, 0)

    def remaining_today(self, charger_id: str) -> int:
        return max(0, self._config.max_daily_charges - self.charges_today(charger_id))

    def total_charges_today(self) -> int:
        return sum(self._fired_today.values())

    def pending(self, charger_id: str | None = None) -> list[datetime]:
        """Due times of armed, unfired timers."""
        return sorted(
            a.due for a in self._armed
            if charger_id is None or a.charger_id == charger_id
        )

    def next_fire_at(self, charger_id: str) -> datetime | None:
        due = self.pending(charger_id)
        return due[0] if due else None

    def next_reset_at(self) -> datetime:
        return self._day_started + timedelta(seconds=self._config.daily_reset_interval)

    def recent_reports(self, limit: int | None = None) -> list[FireReport]:
        reports = list(self._recent)
        return reports[-limit:] if limit else reports

    # ── Lifecycle ──────────────────────────────────────────

    async def initialize(self) -> None:
        """Start today's counters at zero for every known charger."""
        self._fired_today = {cid: 0 for cid in await self._store.list_charger_ids()}
        self._day_started = self._clock.now()

    def register(self, charger_id: str) -> None:
        self._fired_today.setdefault(charger_id, 0)

    def cancel_all(self) -> int:
        """Cancel every armed timer. Returns how many were cancelled."""
        cancelled = len(self._armed)
        for armed in self._armed:
            if armed.handle is not None:
                armed.handle.cancel()
        self._armed.clear()
        return cancelled

    async def reset_day(self) -> list[ChargePlan]:
        cancelled = self.cancel_all()
        await self.initialize()
        log.info(
            "Daily reset: cleared %d timers, zeroed %d counters, rescheduling",
            cancelled, len(self._fired_today),
        )
        return await self.plan_day()

    # ── Planning ───────────────────────────────────────────

    async def plan_day(self) -> list[ChargePlan]:
        """Plan every charger that is currently active."""
        plans = []
        for charger_id in await self._store.list_charger_ids(ChargerStatus.ACTIVE):
            plans.append(await self.plan_charger(charger_id))
        return plans

    async def plan_charger(self, charger_id: str) -> ChargePlan:
        charger = await self._store.get_charger(charger_id)
        if charger is None or not charger.is_active:
            return ChargePlan(charger_id=charger_id, planned=[], armed=[])

        self.register(charger_id)
        now = self._clock.now()
        planned = sorted(self._draw_fire_times(now))
        armed = []
        for due in planned:
            if due > now:
                self._arm(charger_id, due, (due - now).total_seconds())
                armed.append(due)

        log.info(
            "Scheduled %d transactions for charger %s (%d still ahead today)",
            len(planned), charger_id, len(armed),
        )
        return ChargePlan(charger_id=charger_id, planned=planned, armed=armed)

    def _draw_fire_times(self, now: datetime) -> list[datetime]:
        count = self._rng.randint(0, self._config.max_daily_charges)
        times = []
        for _ in range(count):
            hour = self._rng.randrange(self._config.window_start, self._config.window_end)
            minute = self._rng.randrange(60)
            times.append(now.replace(hour=hour, minute=minute, second=0, microsecond=0))
        return times

    def _arm(self, charger_id: str, due: datetime, delay: float) -> None:
        armed = ArmedCharge(charger_id=charger_id, due=due)

        async def _on_timer() -> None:
            if armed in self._armed:
                self._armed.remove(armed)
            await self.fire(charger_id)

        armed.handle = self._clock.call_later(delay, _on_timer)
        self._armed.append(armed)

    # ── Firing ─────────────────────────────────────────────

    async def fire(self, charger_id: str) -> FireReport:
        """Timer callback body: status check, cap check, random deposit."""
        now = self._clock.now()
        try:
            async with self._locks.for_charger(charger_id):
                charger = await self._store.get_charger(charger_id)
                if charger is None:
                    report = FireReport(charger_id, FireOutcome.SKIPPED_MISSING, now)
                elif not charger.is_active:
                    report = FireReport(charger_id, FireOutcome.SKIPPED_INACTIVE, now)
                else:
                    deposit = await self.deposit_random(charger)
                    outcome = FireOutcome.FIRED if deposit else FireOutcome.SKIPPED_CAP
                    report = FireReport(charger_id, outcome, now, deposit=deposit)
        except Exception as exc:
            log.error("Scheduled deposit for %s failed: %s", charger_id, exc)
            report = FireReport(charger_id, FireOutcome.FAILED, now, error=str(exc))

        self._recent.append(report)
        if self._on_fire is not None:
            try:
                self._on_fire(report)
            except Exception as exc:
                log.error("on_fire callback for %s failed: %s", charger_id, exc)
        return report

    async def deposit_random(self, charger: ChargerRecord) -> DepositResult | None:
        """Apply one random-amount deposit unless the daily cap is reached.

        The caller must hold the charger's lock. Returns None when capped.
        Errors propagate and leave the counter unchanged.
        """
        charger_id = charger.id_charger
        if self.charges_today(charger_id) >= self._config.max_daily_charges:
            log.debug("Charger %s reached its daily cap, skipping", charger_id)
            return None

        amount = self.draw_amount()
        deposit = await self._engine.apply_deposit(charger, amount)
        self._fired_today[charger_id] = self.charges_today(charger_id) + 1
        return deposit

    def draw_amount(self) -> Decimal:
        low = float(self._config.min_tx_eth)
        high = float(self._config.max_tx_eth)
        return quantize_amount(self._rng.uniform(low, high))

    # ── Background perturbation ────────────────────────────

    async def random_status_sweep(self) -> dict[str, ChargerStatus]:
        """Flip every charger to active or inactive at random, 50/50.

        Chargers that come out active are planned immediately.
        """
        changed: dict[str, ChargerStatus] = {}
        for charger_id in await self._store.list_charger_ids():
            status = (
                ChargerStatus.ACTIVE if self._rng.random() < 0.5 else ChargerStatus.INACTIVE
            )
            try:
                async with self._locks.for_charger(charger_id):
                    await self._store.set_status(charger_id, status)
            except FleetError as exc:
                log.error("Status flip for %s failed: %s", charger_id, exc)
                continue

            changed[charger_id] = status
            log.info("Charger %s status changed to %s", charger_id, status.value)
            if status == ChargerStatus.ACTIVE:
                await self.plan_charger(charger_id)
        return changed
