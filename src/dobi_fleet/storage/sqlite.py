"""SQLite implementation of the LedgerStore protocol."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path

import aiosqlite

from dobi_fleet.errors import PersistenceError
from dobi_fleet.models.records import ChargerRecord, ChargerStatus, LogRecord

# Aggregates are stored as TEXT so Decimal arithmetic survives a round trip.
SCHEMA = """
-- One row per charger
CREATE TABLE IF NOT EXISTS chargers (
    id_charger TEXT PRIMARY KEY,
    owner_address TEXT NOT NULL,
    wallet_address TEXT NOT NULL,
    wallet_private_key TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'inactive',
    transactions INTEGER NOT NULL DEFAULT 0,
    income_generated TEXT NOT NULL DEFAULT '0',
    cost_generated TEXT NOT NULL DEFAULT '0',
    balance_total TEXT NOT NULL DEFAULT '0',
    created_at TEXT NOT NULL DEFAULT (datetime('now')),
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);
CREATE INDEX IF NOT EXISTS idx_chargers_status ON chargers(status);

-- Append-only economics/action log
CREATE TABLE IF NOT EXISTS logs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    charger_id TEXT NOT NULL,
    message TEXT NOT NULL,
    timestamp TEXT NOT NULL,
    transactions INTEGER NOT NULL,
    income_generated TEXT NOT NULL,
    cost_generated TEXT NOT NULL,
    balance_total TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_logs_charger ON logs(charger_id);
"""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class SQLiteLedgerStore:
    """SQLite-backed implementation of the LedgerStore protocol."""

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        self._db: aiosqlite.Connection | None = None

    async def initialize(self) -> None:
        if self._db is not None:
            return
        Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
        self._db = await aiosqlite.connect(self._db_path)
        self._db.row_factory = aiosqlite.Row
        await self._db.executescript(SCHEMA)
        await self._db.commit()

    async def close(self) -> None:
        if self._db:
            await self._db.close()
            self._db = None

    @property
    def db(self) -> aiosqlite.Connection:
        assert self._db is not None, "Store not initialized. Call initialize() first."
        return self._db

    async def _write(self, *statements: tuple[str, tuple]) -> aiosqlite.Cursor:
        """Run statements in one transaction, returning the last cursor."""
        try:
            cursor = None
            for sql, params in statements:
                cursor = await self.db.execute(sql, params)
            await self.db.commit()
        except aiosqlite.Error as exc:
            await self.db.rollback()
            raise PersistenceError(f"ledger write failed: {exc}") from exc
        assert cursor is not None
        return cursor

    # ── Chargers ───────────────────────────────────────────

    async def create_charger(self, charger: ChargerRecord) -> bool:
        now = _now()
        cursor = await self._write((
            "INSERT OR IGNORE INTO chargers"
            " (id_charger, owner_address, wallet_address, wallet_private_key, status,"
            "  transactions, income_generated, cost_generated, balance_total,"
            "  created_at, updated_at)"
            " VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                charger.id_charger, charger.owner_address, charger.wallet_address,
                charger.wallet_private_key, ChargerStatus(charger.status).value,
                charger.transactions, str(charger.income_generated),
                str(charger.cost_generated), str(charger.balance_total), now, now,
            ),
        ))
        return cursor.rowcount == 1

    async def get_charger(self, charger_id: str) -> ChargerRecord | None:
        async with self.db.execute(
            "SELECT * FROM chargers WHERE id_charger=?", (charger_id,)
        ) as cur:
            row = await cur.fetchone()
            return _row_to_charger(row) if row else None

    async def list_chargers(
        self, status: ChargerStatus | None = None
    ) -> list[ChargerRecord]:
        if status:
            async with self.db.execute(
                "SELECT * FROM chargers WHERE status=? ORDER BY id_charger",
                (ChargerStatus(status).value,),
            ) as cur:
                return [_row_to_charger(row) async for row in cur]
        async with self.db.execute("SELECT * FROM chargers ORDER BY id_charger") as cur:
            return [_row_to_charger(row) async for row in cur]

    async def list_charger_ids(self, status: ChargerStatus | None = None) -> list[str]:
        if status:
            async with self.db.execute(
                "SELECT id_charger FROM chargers WHERE status=? ORDER BY id_charger",
                (ChargerStatus(status).value,),
            ) as cur:
                return [row["id_charger"] async for row in cur]
        async with self.db.execute(
            "SELECT id_charger FROM chargers ORDER BY id_charger"
        ) as cur:
            return [row["id_charger"] async for row in cur]

    async def set_status(self, charger_id: str, status: ChargerStatus) -> None:
        await self._write((
            "UPDATE chargers SET status=?, updated_at=? WHERE id_charger=?",
            (ChargerStatus(status).value, _now(), charger_id),
        ))

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
        now = _now()
        cursor = await self._write(
            (
                "UPDATE chargers SET transactions=?, income_generated=?,"
                " cost_generated=?, balance_total=?, updated_at=? WHERE id_charger=?",
                (
                    transactions, str(income_generated), str(cost_generated),
                    str(balance_total), now, charger_id,
                ),
            ),
            (
                "INSERT INTO logs (charger_id, message, timestamp, transactions,"
                " income_generated, cost_generated, balance_total)"
                " VALUES (?, ?, ?, ?, ?, ?, ?)",
                (
                    charger_id, message, now, transactions, str(income_generated),
                    str(cost_generated), str(balance_total),
                ),
            ),
        )
        return LogRecord(
            id=cursor.lastrowid or 0,
            charger_id=charger_id,
            message=message,
            timestamp=now,
            transactions=transactions,
            income_generated=income_generated,
            cost_generated=cost_generated,
            balance_total=balance_total,
        )

    # ── Logs ───────────────────────────────────────────────

    async def append_log(self, charger: ChargerRecord, message: str) -> LogRecord:
        now = _now()
        cursor = await self._write((
            "INSERT INTO logs (charger_id, message, timestamp, transactions,"
            " income_generated, cost_generated, balance_total)"
            " VALUES (?, ?, ?, ?, ?, ?, ?)",
            (
                charger.id_charger, message, now, charger.transactions,
                str(charger.income_generated), str(charger.cost_generated),
                str(charger.balance_total),
            ),
        ))
        return LogRecord(
            id=cursor.lastrowid or 0,
            charger_id=charger.id_charger,
            message=message,
            timestamp=now,
            transactions=charger.transactions,
            income_generated=charger.income_generated,
            cost_generated=charger.cost_generated,
            balance_total=charger.balance_total,
        )

    async def get_logs(
        self, charger_id: str | None = None, limit: int = 500
    ) -> list[LogRecord]:
        if charger_id:
            async with self.db.execute(
                "SELECT * FROM logs WHERE charger_id=? ORDER BY id DESC LIMIT ?",
                (charger_id, limit),
            ) as cur:
                return [_row_to_log(row) async for row in cur]
        async with self.db.execute(
            "SELECT * FROM logs ORDER BY id DESC LIMIT ?", (limit,)
        ) as cur:
            return [_row_to_log(row) async for row in cur]


# ── Row converters ─────────────────────────────────────────


def _row_to_charger(row: aiosqlite.Row) -> ChargerRecord:
    return ChargerRecord(
        id_charger=row["id_charger"],
        owner_address=row["owner_address"],
        wallet_address=row["wallet_address"],
        wallet_private_key=row["wallet_private_key"],
        status=ChargerStatus(row["status"]),
        transactions=row["transactions"],
        income_generated=Decimal(row["income_generated"]),
        cost_generated=Decimal(row["cost_generated"]),
        balance_total=Decimal(row["balance_total"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _row_to_log(row: aiosqlite.Row) -> LogRecord:
    return LogRecord(
        id=row["id"],
        charger_id=row["charger_id"],
        message=row["message"],
        timestamp=row["timestamp"],
        transactions=row["transactions"],
        income_generated=Decimal(row["income_generated"]),
        cost_generated=Decimal(row["cost_generated"]),
        balance_total=Decimal(row["balance_total"]),
    )
