"""Data models for the dobi_fleet service."""

from dobi_fleet.models.config import (
    DEFAULT_OPERATOR_ADDRESS,
    MAX_DAILY_CHARGES,
    FleetConfig,
    ScheduleConfig,
)
from dobi_fleet.models.records import (
    ActionResult,
    ChainTransaction,
    ChargePlan,
    ChargerRecord,
    ChargerStatus,
    DepositResult,
    DepositSplit,
    FireOutcome,
    FireReport,
    LogRecord,
    SimulationResult,
    WalletCredentials,
)
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
    to_dict,
)

__all__ = [
    "DEFAULT_OPERATOR_ADDRESS", "MAX_DAILY_CHARGES", "FleetConfig", "ScheduleConfig",
    "ActionResult", "ChainTransaction", "ChargePlan", "ChargerRecord", "ChargerStatus",
    "DepositResult", "DepositSplit", "FireOutcome", "FireReport", "LogRecord",
    "SimulationResult", "WalletCredentials",
    "ActivityEntry", "BlockchainInfo", "ChainTransactionSnapshot", "ChargerSnapshot",
    "FleetSnapshot", "FleetSummary", "LogEntrySnapshot", "LogsSnapshot",
    "ScheduleInfo", "SimulationWindow", "SystemInfo", "to_dict",
]
