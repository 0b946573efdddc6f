"""Data API aggregator - builds fleet and log snapshots for HTTP clients."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone

from dobi_fleet.chain.wallets import format_eth
from dobi_fleet.errors import FleetError
from dobi_fleet.interfaces.chain import ChainGateway
from dobi_fleet.interfaces.store import LedgerStore
from dobi_fleet.models.config import FleetConfig
from dobi_fleet.models.records import ChainTransaction, ChargerRecord, LogRecord
from dobi_fleet.models.snapshots import (
    ActivityEntry,
    BlockchainInfo,
    ChainTransactionSnapshot,
    ChargerSnapshot,
    FleetSnapshot,
    FleetSummary,
    LogEntrySnapshot,
    LogsSnapshot,
    ScheduleInfo,
    SimulationWindow,
    SystemInfo,
)
from dobi_fleet.scheduler.daily import DepositScheduler

log = logging.getLogger(__name__)

RECENT_ACTIVITY = 5


def _iso_utc(ts: int) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


def _log_to_snapshot(entry: LogRecord) -> LogEntrySnapshot:
    return LogEntrySnapshot(
        id=entry.id,
        charger_id=entry.charger_id,
        message=entry.message,
        timestamp=entry.timestamp,
        transactions=entry.transactions,
        income_generated=float(entry.income_generated),
        cost_generated=float(entry.cost_generated),
        balance_total=float(entry.balance_total),
    )


def _tx_to_snapshot(
    charger: ChargerRecord, tx: ChainTransaction
) -> ChainTransactionSnapshot:
    if tx.status is None:
        status = "unknown"
    else:
        status = "success" if tx.status == 1 else "failed"
    incoming = (tx.to_address or "").lower() == charger.wallet_address.lower()
    return ChainTransactionSnapshot(
        charger_id=charger.id_charger,
        wallet_address=charger.wallet_address,
        tx_hash=tx.tx_hash,
        block_number=tx.block_number,
        timestamp=_iso_utc(tx.timestamp),
        from_address=tx.from_address,
        to_address=tx.to_address,
        value_eth=format_eth(tx.value_wei),
        gas_used=str(tx.gas_used) if tx.gas_used is not None else None,
        status=status,
        type="incoming" if incoming else "outgoing",
    )


class FleetDataAggregator:
    """Builds JSON-serializable snapshots from the ledger, scheduler and chain.

    Chain lookups are best effort: a failed balance read shows as ``"0"``
    and a failed history scan contributes no transactions. Both are logged.
    """

    def __init__(
        self,
        store: LedgerStore,
        scheduler: DepositScheduler,
        chain: ChainGateway,
        config: FleetConfig,
    ) -> None:
        self._store = store
        self._scheduler = scheduler
        self._chain = chain
        self._config = config

    @property
    def _window(self) -> SimulationWindow:
        sched = self._config.schedule
        return SimulationWindow(start=sched.window_start, end=sched.window_end)

    # ── Fleet view ─────────────────────────────────────────

    async def get_detailed(self) -> FleetSnapshot:
        chargers = await self._store.list_chargers()
        balances = await asyncio.gather(
            *(self._wallet_balance(c) for c in chargers)
        )
        snapshots = [
            await self._charger_snapshot(c, balance)
            for c, balance in zip(chargers, balances)
        ]
        return FleetSnapshot(
            summary=self._summary(chargers),
            chargers=snapshots,
            system_info=SystemInfo(
                simulation_mode=not self._config.send_onchain,
                min_tx_eth=float(self._config.schedule.min_tx_eth),
                max_tx_eth=float(self._config.schedule.max_tx_eth),
                simulation_hours=self._window,
                server_time=self._scheduler.clock.now().isoformat(),
            ),
        )

    async def _wallet_balance(self, charger: ChargerRecord) -> str:
        if not charger.wallet_address:
            return "0"
        try:
            return format_eth(await self._chain.get_balance_wei(charger.wallet_address))
        except FleetError as exc:
            log.warning("Could not fetch balance for %s: %s", charger.id_charger, exc)
            return "0"

    async def _charger_snapshot(
        self, charger: ChargerRecord, balance_eth: str
    ) -> ChargerSnapshot:
        charger_id = charger.id_charger
        next_fire = self._scheduler.next_fire_at(charger_id)
        recent = await self._store.get_logs(charger_id, limit=RECENT_ACTIVITY)
        return ChargerSnapshot(
            id_charger=charger_id,
            owner_address=charger.owner_address,
            wallet_address=charger.wallet_address,
            status=charger.status.value,
            transactions=charger.transactions,
            income_generated=float(charger.income_generated),
            cost_generated=float(charger.cost_generated),
            balance_total=float(charger.balance_total),
            schedule_info=ScheduleInfo(
                charges_today=self._scheduler.charges_today(charger_id),
                remaining_charges=self._scheduler.remaining_today(charger_id),
                max_daily_charges=self._config.schedule.max_daily_charges,
                next_scheduled=next_fire.isoformat() if next_fire else None,
                pending_timers=len(self._scheduler.pending(charger_id)),
                simulation_window=self._window,
            ),
            blockchain_info=BlockchainInfo(
                wallet_balance_eth=balance_eth,
                send_onchain_enabled=self._config.send_onchain,
            ),
            recent_activity=[
                ActivityEntry(message=e.message, timestamp=e.timestamp) for e in recent
            ],
            last_updated=datetime.now(timezone.utc).isoformat(),
        )

    def _summary(self, chargers: list[ChargerRecord]) -> FleetSummary:
        active = sum(1 for c in chargers if c.is_active)
        return FleetSummary(
            total_chargers=len(chargers),
            active_chargers=active,
            inactive_chargers=len(chargers) - active,
            total_transactions=sum(c.transactions for c in chargers),
            total_income=float(sum(c.income_generated for c in chargers)),
            total_costs=float(sum(c.cost_generated for c in chargers)),
            total_balance=float(sum(c.balance_total for c in chargers)),
            charges_scheduled_today=self._scheduler.total_charges_today(),
        )

    # ── Logs view ──────────────────────────────────────────

    async def get_logs(
        self, include_blockchain: bool = False, charger_id: str | None = None
    ) -> LogsSnapshot:
        rows = await self._store.get_logs(charger_id, limit=self._config.log_read_limit)
        snapshot = LogsSnapshot(database_logs=[_log_to_snapshot(r) for r in rows])
        if not include_blockchain:
            return snapshot

        if charger_id:
            charger = await self._store.get_charger(charger_id)
            chargers = [charger] if charger else []
        else:
            chargers = await self._store.list_chargers()

        txs: list[ChainTransactionSnapshot] = []
        for charger in chargers:
            try:
                history = await self._chain.get_transaction_history(charger.wallet_address)
            except FleetError as exc:
                log.error(
                    "Error fetching transactions for %s: %s", charger.id_charger, exc,
                )
                continue
            txs.extend(_tx_to_snapshot(charger, tx) for tx in history)

        txs.sort(key=lambda t: (t.timestamp, t.block_number), reverse=True)
        snapshot.blockchain_transactions = txs
        return snapshot
