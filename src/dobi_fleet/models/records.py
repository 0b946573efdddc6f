"""Internal record types for ledger persistence and operation results."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum


class ChargerStatus(str, Enum):
    """Whether the scheduler may arm timers and fire deposits for a charger."""

    ACTIVE = "active"
    INACTIVE = "inactive"


class FireOutcome(str, Enum):
    """What happened when an armed timer elapsed."""

    FIRED = "fired"
    SKIPPED_INACTIVE = "skipped_inactive"
    SKIPPED_CAP = "skipped_cap"
    SKIPPED_MISSING = "skipped_missing"
    FAILED = "failed"


@dataclass
class ChargerRecord:
    """A charger row as persisted in the ledger store."""

    id_charger: str
    owner_address: str
    wallet_address: str
    wallet_private_key: str
    status: ChargerStatus = ChargerStatus.INACTIVE
    transactions: int = 0
    income_generated: Decimal = Decimal("0")
    cost_generated: Decimal = Decimal("0")
    balance_total: Decimal = Decimal("0")
    created_at: str = ""
    updated_at: str = ""

    @property
    def is_active(self) -> bool:
        return self.status == ChargerStatus.ACTIVE


@dataclass
class LogRecord:
    """A single append-only ledger log entry with its aggregate snapshot."""

    id: int
    charger_id: str
    message: str
    timestamp: str
    transactions: int
    income_generated: Decimal
    cost_generated: Decimal
    balance_total: Decimal


@dataclass(frozen=True)
class DepositSplit:
    """Economics of a single deposit."""

    income: Decimal
    cost: Decimal
    delta: Decimal


@dataclass
class DepositResult:
    """Post-operation aggregates after a deposit was applied."""

    charger_id: str
    amount: Decimal
    transactions: int
    income_generated: Decimal
    cost_generated: Decimal
    balance_total: Decimal
    tx_ref: str


@dataclass
class FireReport:
    """Outcome of one scheduled (or scheduler-delegated) fire."""

    charger_id: str
    outcome: FireOutcome
    at: datetime
    deposit: DepositResult | None = None
    error: str | None = None


@dataclass
class ChargePlan:
    """The fire times drawn for one charger in one planning pass."""

    charger_id: str
    planned: list[datetime]
    armed: list[datetime]

    @property
    def dropped(self) -> int:
        return len(self.planned) - len(self.armed)


@dataclass
class ActionResult:
    """Result of an imperative charger action."""

    success: bool
    message: str


@dataclass
class SimulationResult:
    """Result of a manual simulate_transaction request."""

    message: str
    tx_ref: str | None = None
    deposit: DepositResult | None = None


@dataclass
class WalletCredentials:
    """A freshly generated charger wallet."""

    address: str
    private_key: str


@dataclass
class ChainTransaction:
    """A transaction touching a wallet, as read from recent chain blocks."""

    tx_hash: str
    block_number: int
    timestamp: int  # unix seconds
    from_address: str
    to_address: str | None
    value_wei: int
    gas_used: int | None = None
    status: int | None = None
