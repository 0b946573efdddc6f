"""LedgerStore protocol - persists chargers and their append-only log."""

from __future__ import annotations

from decimal import Decimal
from typing import Protocol

from dobi_fleet.models.records import ChargerRecord, ChargerStatus, LogRecord


class LedgerStore(Protocol):
    """Persists charger state and the economics log."""

    # ── Lifecycle ──────────────────────────────────────────

    async def initialize(self) -> None:
        """Create tables if they don't exist."""
        ...

    async def close(self) -> None:
        """Close the database connection."""
        ...

    # ── Chargers ───────────────────────────────────────────

    async def create_charger(self, charger: ChargerRecord) -> bool:
        """Insert a charger. Returns False if the id already exists."""
        ...

    async def get_charger(self, charger_id: str) -> ChargerRecord | None:
        ...

    async def list_chargers(
        self, status: ChargerStatus | None = None
    ) -> list[ChargerRecord]:
        ...

    async def list_charger_ids(self, status: ChargerStatus | None = None) -> list[str]:
        ...

    async def set_status(self, charger_id: str, status: ChargerStatus) -> None:
        ...

    # ── Economics ──────────────────────────────────────────

    async def apply_deposit(
        self,
        charger_id: str,
        transactions: int,
        income_generated: Decimal,
        cost_generated: Decimal,
        balance_total: Decimal,
        message: str,
    ) -> LogRecord:
        """Update the four aggregates and append one log entry atomically."""
        ...

    # ── Logs ───────────────────────────────────────────────

    async def append_log(self, charger: ChargerRecord, message: str) -> LogRecord:
        """Append a log entry carrying the charger's current aggregates."""
        ...

    async def get_logs(
        self, charger_id: str | None = None, limit: int = 500
    ) -> list[LogRecord]:
        """Most recent log entries first."""
        ...
