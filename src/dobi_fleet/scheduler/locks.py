"""Per-charger mutual exclusion."""

from __future__ import annotations

import asyncio


class ChargerLocks:
    """One ``asyncio.Lock`` per charger id.

    Scheduled fires, status sweeps and manual actions for the same charger
    take this lock around their read-modify-write, so concurrent mutations
    are applied one after another instead of overwriting each other.
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}

    def for_charger(self, charger_id: str) -> asyncio.Lock:
        lock = self._locks.get(charger_id)
        if lock is None:
            lock = self._locks[charger_id] = asyncio.Lock()
        return lock
