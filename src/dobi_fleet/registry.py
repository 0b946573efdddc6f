"""Charger registry - creates chargers with fresh wallets and seeds the fleet."""

from __future__ import annotations

import json
import logging
from decimal import Decimal
from pathlib import Path
from typing import Any

from dobi_fleet.chain.wallets import generate_wallet
from dobi_fleet.economics.engine import quantize_amount, split_deposit
from dobi_fleet.errors import ValidationError
from dobi_fleet.interfaces.store import LedgerStore
from dobi_fleet.models.records import ChargerRecord, ChargerStatus
from dobi_fleet.scheduler.daily import DepositScheduler

log = logging.getLogger(__name__)

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def _parse_status(value: Any) -> ChargerStatus:
    if value is None or value == "":
        return ChargerStatus.INACTIVE
    try:
        return ChargerStatus(value)
    except ValueError:
        raise ValidationError(f"Invalid status: {value!r}") from None


def _seed_count(entry: dict[str, Any]) -> int:
    value = entry.get("transactions") or 0
    try:
        count = int(value)
    except (TypeError, ValueError):
        raise ValidationError(
            f"Invalid transactions for {entry['id_charger']}: {value!r}"
        ) from None
    if count < 0:
        raise ValidationError(f"Negative transactions for {entry['id_charger']}")
    return count


class ChargerRegistry:
    """Adds chargers to the ledger and to today's schedule."""

    def __init__(self, store: LedgerStore, scheduler: DepositScheduler) -> None:
        self._store = store
        self._scheduler = scheduler

    async def create_charger(
        self,
        id_charger: str | None,
        owner_address: str | None,
        status: str | None = None,
    ) -> ChargerRecord:
        if not id_charger or not owner_address:
            raise ValidationError("id_charger and owner_address are required")
        charger_status = _parse_status(status)

        wallet = generate_wallet()
        charger = ChargerRecord(
            id_charger=id_charger,
            owner_address=owner_address,
            wallet_address=wallet.address,
            wallet_private_key=wallet.private_key,
            status=charger_status,
        )
        if not await self._store.create_charger(charger):
            raise ValidationError(f"Charger {id_charger} already exists")

        self._scheduler.register(id_charger)
        log.info("Charger %s created (wallet %s)", id_charger, wallet.address)
        if charger_status == ChargerStatus.ACTIVE:
            await self._scheduler.plan_charger(id_charger)
        return charger

    async def seed_from_file(self, path: str | Path) -> list[str]:
        """Insert the chargers listed in a JSON file. Returns the ids added.

        Ids already in the ledger are left untouched. A missing file means
        an empty seed. Only income is read from an entry; cost and balance
        are derived from it. Seeded chargers are not planned here.
        """
        p = Path(path).expanduser()
        if not p.exists():
            log.info("No seed file at %s, starting with the existing ledger", p)
            return []

        with open(p) as f:
            entries = json.load(f)
        if not isinstance(entries, list):
            raise ValidationError(f"Seed file {p} must contain a JSON list")

        added = []
        for entry in entries:
            charger = self._seed_record(entry)
            if await self._store.create_charger(charger):
                self._scheduler.register(charger.id_charger)
                added.append(charger.id_charger)
                log.info("Charger %s loaded from seed", charger.id_charger)
            else:
                log.debug("Charger %s already exists, skipping", charger.id_charger)

        log.info("Seeded %d of %d chargers from %s", len(added), len(entries), p)
        return added

    def _seed_record(self, entry: dict[str, Any]) -> ChargerRecord:
        if not isinstance(entry, dict) or not entry.get("id_charger"):
            raise ValidationError(f"Seed entry without id_charger: {entry!r}")

        income = quantize_amount(entry.get("income_generated") or 0)
        if income < 0:
            raise ValidationError(f"Negative seed income for {entry['id_charger']}")
        split = split_deposit(income) if income else None

        wallet = generate_wallet()
        return ChargerRecord(
            id_charger=str(entry["id_charger"]),
            owner_address=entry.get("owner_address") or ZERO_ADDRESS,
            wallet_address=wallet.address,
            wallet_private_key=wallet.private_key,
            status=_parse_status(entry.get("status")),
            transactions=_seed_count(entry),
            income_generated=income,
            cost_generated=split.cost if split else Decimal("0"),
            balance_total=split.delta if split else Decimal("0"),
        )
