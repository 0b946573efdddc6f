"""JSON-serializable snapshot models for the Data API / HTTP bridge."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any


def to_dict(obj: Any) -> dict:
    """Recursively convert a snapshot dataclass to a plain dict."""
    return asdict(obj)


# ---------------------------------------------------------------------------
# Detailed fleet view
# ---------------------------------------------------------------------------


@dataclass
class SimulationWindow:
    start: int
    end: int


@dataclass
class ScheduleInfo:
    charges_today: int
    remaining_charges: int
    max_daily_charges: int
    next_scheduled: str | None  # ISO 8601, local server time
    pending_timers: int
    simulation_window: SimulationWindow


@dataclass
class BlockchainInfo:
    wallet_balance_eth: str  # "0.000123"
    send_onchain_enabled: bool


@dataclass
class ActivityEntry:
    message: str
    timestamp: str


@dataclass
class ChargerSnapshot:
    """A charger as exposed to API clients. Never carries the private key."""

    id_charger: str
    owner_address: str
    wallet_address: str
    status: str
    transactions: int
    income_generated: float
    cost_generated: float
    balance_total: float
    schedule_info: ScheduleInfo
    blockchain_info: BlockchainInfo
    recent_activity: list[ActivityEntry] = field(default_factory=list)
    last_updated: str = ""


@dataclass
class FleetSummary:
    total_chargers: int = 0
    active_chargers: int = 0
    inactive_chargers: int = 0
    total_transactions: int = 0
    total_income: float = 0.0
    total_costs: float = 0.0
    total_balance: float = 0.0
    charges_scheduled_today: int = 0


@dataclass
class SystemInfo:
    simulation_mode: bool
    min_tx_eth: float
    max_tx_eth: float
    simulation_hours: SimulationWindow
    server_time: str


@dataclass
class FleetSnapshot:
    """Everything `GET /chargers/detailed` returns in one call."""

    summary: FleetSummary
    chargers: list[ChargerSnapshot]
    system_info: SystemInfo


# ---------------------------------------------------------------------------
# Logs view
# ---------------------------------------------------------------------------


@dataclass
class LogEntrySnapshot:
    id: int
    charger_id: str
    message: str
    timestamp: str
    transactions: int
    income_generated: float
    cost_generated: float
    balance_total: float


@dataclass
class ChainTransactionSnapshot:
    charger_id: str
    wallet_address: str
    tx_hash: str
    block_number: int
    timestamp: str
    from_address: str
    to_address: str | None
    value_eth: str
    gas_used: str | None
    status: str  # "success" | "failed" | "unknown"
    type: str  # "incoming" | "outgoing"


@dataclass
class LogsSnapshot:
    database_logs: list[LogEntrySnapshot] = field(default_factory=list)
    blockchain_transactions: list[ChainTransactionSnapshot] = field(default_factory=list)
