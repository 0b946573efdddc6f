"""Configuration models for the fleet service."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

MAX_DAILY_CHARGES = 4
DEFAULT_OPERATOR_ADDRESS = "0x57e56B49dcF7540a991ac6B4C9597eBa892A7168"


@dataclass
class ScheduleConfig:
    """Deposit scheduler configuration."""

    window_start: int = 8  # local hour, inclusive
    window_end: int = 22  # local hour, exclusive
    max_daily_charges: int = MAX_DAILY_CHARGES
    min_tx_eth: Decimal = Decimal("0.0001")
    max_tx_eth: Decimal = Decimal("0.0002")
    restart_delay: float = 3.0  # seconds before a restarted charger comes back
    daily_reset_interval: int = 86400  # seconds, measured from process start
    status_sweep_interval: int = 3600  # seconds between random status flips
    status_sweep_enabled: bool = True

    def validate(self) -> None:
        if not 0 <= self.window_start < self.window_end <= 24:
            raise ValueError(
                f"Invalid simulation window: {self.window_start}-{self.window_end}"
            )
        if self.min_tx_eth <= 0 or self.min_tx_eth > self.max_tx_eth:
            raise ValueError(
                f"Invalid deposit bounds: min={self.min_tx_eth} max={self.max_tx_eth}"
            )
        if self.max_daily_charges < 0:
            raise ValueError("max_daily_charges must be >= 0")


@dataclass
class FleetConfig:
    """Complete service configuration."""

    # Server
    host: str = "0.0.0.0"
    port: int = 6139
    log_level: str = "info"

    # Chain
    rpc_url: str = "https://mainnet.base.org"
    master_private_key: str = ""  # loaded from env var DOBI_MASTER_PRIVATE_KEY
    send_onchain: bool = False  # simulate only unless explicitly enabled
    operator_address: str = DEFAULT_OPERATOR_ADDRESS  # receives paid costs
    gas_buffer_eth: Decimal = Decimal("0.001")  # kept back on send_to_owner
    confirmation_timeout: int = 120  # seconds to wait for a receipt
    history_blocks: int = 50  # recent blocks scanned for wallet history
    history_limit: int = 100  # max transactions returned per wallet

    # Storage
    db_path: str = "~/.dobi_fleet/chargers.db"
    seed_path: str = "chargers.json"
    log_read_limit: int = 500

    # Support tickets
    ticket_url: str = ""  # empty: tickets are simulated
    ticket_timeout: int = 10

    # Scheduler
    schedule: ScheduleConfig = field(default_factory=ScheduleConfig)
