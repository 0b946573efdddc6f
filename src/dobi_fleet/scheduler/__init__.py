"""Deposit scheduling - daily plans, timers and background sweeps."""

from dobi_fleet.scheduler.clock import LoopClock
from dobi_fleet.scheduler.daily import DepositScheduler
from dobi_fleet.scheduler.locks import ChargerLocks

__all__ = ["ChargerLocks", "DepositScheduler", "LoopClock"]
