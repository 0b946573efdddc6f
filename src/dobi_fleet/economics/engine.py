"""Economics engine - splits deposits into income, cost and balance."""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from dobi_fleet.chain.wallets import eth_to_wei
from dobi_fleet.errors import ValidationError
from dobi_fleet.interfaces.chain import ChainGateway
from dobi_fleet.interfaces.store import LedgerStore
from dobi_fleet.models.records import ChargerRecord, DepositResult, DepositSplit

log = logging.getLogger(__name__)

COST_RATIO = Decimal("0.4")
AMOUNT_QUANTUM = Decimal("0.000001")  # deposits are applied with 6 decimals
SIMULATED_TX_REF = "simulated"


def quantize_amount(amount: Decimal | float | int | str) -> Decimal:
    """Round an ETH amount to 6 decimal places."""
    try:
        value = Decimal(str(amount))
        if not value.is_finite():
            raise ValidationError(f"Invalid amount: {amount!r}")
        return value.quantize(AMOUNT_QUANTUM, rounding=ROUND_HALF_UP)
    except InvalidOperation as exc:
        raise ValidationError(f"Invalid amount: {amount!r}") from exc


def split_deposit(amount: Decimal) -> DepositSplit:
    """Cost is always 40% of income; the remaining 60% goes to balance."""
    cost = amount * COST_RATIO
    return DepositSplit(income=amount, cost=cost, delta=amount - cost)


class EconomicsEngine:
    """Applies deposits to a charger's running totals.

    The aggregate update and its log entry are written in one ledger
    transaction, so a failed write leaves both the row and the log as they
    were. When on-chain sending is enabled the deposit is first transferred
    from the master wallet and the resulting tx hash becomes the log ref.
    """

    def __init__(
        self,
        store: LedgerStore,
        chain: ChainGateway | None = None,
        send_onchain: bool = False,
    ) -> None:
        self._store = store
        self._chain = chain
        self._send_onchain = send_onchain

    @property
    def send_onchain(self) -> bool:
        return self._send_onchain

    async def apply_deposit(
        self,
        charger: ChargerRecord,
        amount: Decimal,
        label: str = "completed deposit",
    ) -> DepositResult:
        if amount <= 0:
            raise ValidationError(f"Deposit amount must be positive, got {amount}")

        tx_ref = SIMULATED_TX_REF
        if self._send_onchain and self._chain is not None:
            tx_ref = await self._chain.send_from_master(
                charger.wallet_address, eth_to_wei(amount),
            )

        split = split_deposit(amount)
        transactions = charger.transactions + 1
        income = charger.income_generated + split.income
        cost = charger.cost_generated + split.cost
        balance = charger.balance_total + split.delta

        await self._store.apply_deposit(
            charger.id_charger,
            transactions=transactions,
            income_generated=income,
            cost_generated=cost,
            balance_total=balance,
            message=f"{label} ({tx_ref})",
        )
        log.info(
            "Deposit for %s -> +%s ETH | tx: %s", charger.id_charger, amount, tx_ref,
        )
        return DepositResult(
            charger_id=charger.id_charger,
            amount=amount,
            transactions=transactions,
            income_generated=income,
            cost_generated=cost,
            balance_total=balance,
            tx_ref=tx_ref,
        )
