"""Protocol interfaces for the dobi_fleet components."""

from dobi_fleet.interfaces.chain import ChainGateway
from dobi_fleet.interfaces.clock import Clock, TimerHandle
from dobi_fleet.interfaces.store import LedgerStore

__all__ = ["ChainGateway", "Clock", "TimerHandle", "LedgerStore"]
