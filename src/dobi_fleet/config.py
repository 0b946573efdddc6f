"""Configuration loading: TOML file + environment variables."""

from __future__ import annotations

import os
import tomllib
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

from dobi_fleet.models.config import FleetConfig, ScheduleConfig

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


def _bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ValueError(f"Invalid boolean value: {value!r}")


def _decimal(value: Any) -> Decimal:
    try:
        # str() first so TOML floats keep their written digits
        return Decimal(str(value).strip())
    except InvalidOperation:
        raise ValueError(f"Invalid decimal value: {value!r}") from None


def load_config(
    config_path: str | Path | None = None,
    env_prefix: str = "DOBI_",
) -> FleetConfig:
    """Load service configuration from a TOML file and env vars.

    Priority (highest wins):
        1. Environment variables (DOBI_RPC_URL, DOBI_SEND_ONCHAIN, etc.)
        2. TOML config file
        3. Defaults from FleetConfig

    Raises ValueError when the resulting schedule is inconsistent.
    """
    raw: dict = {}
    if config_path is not None:
        p = Path(config_path).expanduser()
        if p.exists():
            with open(p, "rb") as f:
                raw = tomllib.load(f)

    cfg = FleetConfig()

    # ── Server section ─────────────────────────────────────
    server = raw.get("server", {})
    if v := server.get("host"):
        cfg.host = str(v)
    if v := server.get("port"):
        cfg.port = int(v)
    if v := server.get("log_level"):
        cfg.log_level = str(v)

    # ── Chain section ──────────────────────────────────────
    chain = raw.get("chain", {})
    if v := chain.get("rpc_url"):
        cfg.rpc_url = str(v)
    if v := chain.get("master_private_key"):
        cfg.master_private_key = str(v)
    if "send_onchain" in chain:
        cfg.send_onchain = _bool(chain["send_onchain"])
    if v := chain.get("operator_address"):
        cfg.operator_address = str(v)
    if (v := chain.get("gas_buffer_eth")) is not None:
        cfg.gas_buffer_eth = _decimal(v)
    if v := chain.get("confirmation_timeout"):
        cfg.confirmation_timeout = int(v)
    if v := chain.get("history_blocks"):
        cfg.history_blocks = int(v)
    if v := chain.get("history_limit"):
        cfg.history_limit = int(v)

    # ── Schedule section ───────────────────────────────────
    sched = raw.get("schedule", {})
    defaults = ScheduleConfig()
    cfg.schedule = ScheduleConfig(
        window_start=int(sched.get("window_start", defaults.window_start)),
        window_end=int(sched.get("window_end", defaults.window_end)),
        max_daily_charges=int(sched.get("max_daily_charges", defaults.max_daily_charges)),
        min_tx_eth=_decimal(sched.get("min_tx_eth", defaults.min_tx_eth)),
        max_tx_eth=_decimal(sched.get("max_tx_eth", defaults.max_tx_eth)),
        restart_delay=float(sched.get("restart_delay", defaults.restart_delay)),
        daily_reset_interval=int(
            sched.get("daily_reset_interval", defaults.daily_reset_interval)
        ),
        status_sweep_interval=int(
            sched.get("status_sweep_interval", defaults.status_sweep_interval)
        ),
        status_sweep_enabled=_bool(
            sched.get("status_sweep_enabled", defaults.status_sweep_enabled)
        ),
    )

    # ── Storage section ────────────────────────────────────
    storage = raw.get("storage", {})
    if v := storage.get("db_path"):
        cfg.db_path = str(v)
    if "seed_path" in storage:
        cfg.seed_path = str(storage["seed_path"])
    if v := storage.get("log_read_limit"):
        cfg.log_read_limit = int(v)

    # ── Support section ────────────────────────────────────
    support = raw.get("support", {})
    if v := support.get("ticket_url"):
        cfg.ticket_url = str(v)
    if v := support.get("ticket_timeout"):
        cfg.ticket_timeout = int(v)

    # ── Environment variable overrides (highest priority) ──
    env = os.environ
    if rpc := env.get(f"{env_prefix}RPC_URL"):
        cfg.rpc_url = rpc
    if key := env.get(f"{env_prefix}MASTER_PRIVATE_KEY"):
        cfg.master_private_key = key
    if (send := env.get(f"{env_prefix}SEND_ONCHAIN")) is not None:
        cfg.send_onchain = _bool(send)
    if v := env.get(f"{env_prefix}MIN_TX_ETH"):
        cfg.schedule.min_tx_eth = _decimal(v)
    if v := env.get(f"{env_prefix}MAX_TX_ETH"):
        cfg.schedule.max_tx_eth = _decimal(v)
    if v := env.get(f"{env_prefix}PORT"):
        cfg.port = int(v)
    if v := env.get(f"{env_prefix}HOST"):
        cfg.host = v
    if v := env.get(f"{env_prefix}DB_PATH"):
        cfg.db_path = v
    if v := env.get(f"{env_prefix}SEED_PATH"):
        cfg.seed_path = v
    if v := env.get(f"{env_prefix}LOG_LEVEL"):
        cfg.log_level = v

    # Expand ~ in paths
    if cfg.db_path != ":memory:":
        cfg.db_path = str(Path(cfg.db_path).expanduser())
    if cfg.seed_path:
        cfg.seed_path = str(Path(cfg.seed_path).expanduser())

    cfg.schedule.validate()
    return cfg
