"""Action executor - imperative charger actions and manual deposits."""

from __future__ import annotations

import logging
from decimal import Decimal
from enum import Enum
from typing import Any, Awaitable, Callable

import httpx

from dobi_fleet.chain.wallets import eth_to_wei, format_eth
from dobi_fleet.economics.engine import EconomicsEngine, quantize_amount
from dobi_fleet.errors import (
    ExternalServiceError,
    FleetError,
    NotFoundError,
    ValidationError,
)
from dobi_fleet.interfaces.chain import ChainGateway
from dobi_fleet.interfaces.clock import TimerHandle
from dobi_fleet.interfaces.store import LedgerStore
from dobi_fleet.models.config import FleetConfig
from dobi_fleet.models.records import (
    ActionResult,
    ChargerRecord,
    ChargerStatus,
    SimulationResult,
)
from dobi_fleet.scheduler.daily import DepositScheduler
from dobi_fleet.scheduler.locks import ChargerLocks

log = logging.getLogger(__name__)

COST_SHARE_PERCENT = 40


class ChargerAction(str, Enum):
    """The closed set of actions a caller may perform on a charger."""

    TURN_OFF = "turn_off"
    TURN_ON = "turn_on"
    RESTART = "restart"
    CREATE_TICKET = "create_ticket"
    PAY_COSTS = "pay_costs"
    SEND_TO_OWNER = "send_to_owner"


Handler = Callable[[ChargerRecord, dict[str, Any]], Awaitable[ActionResult]]


def _manual_amount(amount_eth: Any) -> Decimal | None:
    """A usable manual deposit amount, or None to fall back to a random one."""
    if isinstance(amount_eth, bool) or not isinstance(amount_eth, (int, float, Decimal)):
        return None
    try:
        amount = quantize_amount(amount_eth)
    except ValidationError:
        return None
    return amount if amount > 0 else None


class ActionExecutor:
    """Runs charger actions under the charger's lock.

    Every successful action appends exactly one ledger log entry carrying
    the charger's unchanged aggregates. Unknown chargers and unknown actions
    are rejected before anything is written. Chain failures propagate as
    ``ExternalServiceError`` and leave no log entry.
    """

    def __init__(
        self,
        store: LedgerStore,
        scheduler: DepositScheduler,
        engine: EconomicsEngine,
        chain: ChainGateway,
        locks: ChargerLocks,
        config: FleetConfig,
        ticket_transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._store = store
        self._scheduler = scheduler
        self._engine = engine
        self._chain = chain
        self._locks = locks
        self._config = config
        self._ticket_transport = ticket_transport
        self._restarts: dict[str, TimerHandle] = {}
        self._handlers: dict[ChargerAction, Handler] = {
            ChargerAction.TURN_OFF: self._turn_off,
            ChargerAction.TURN_ON: self._turn_on,
            ChargerAction.RESTART: self._restart,
            ChargerAction.CREATE_TICKET: self._create_ticket,
            ChargerAction.PAY_COSTS: self._pay_costs,
            ChargerAction.SEND_TO_OWNER: self._send_to_owner,
        }

    @property
    def pending_restarts(self) -> int:
        return len(self._restarts)

    def cancel_restarts(self) -> None:
        for handle in self._restarts.values():
            handle.cancel()
        self._restarts.clear()

    # ── Dispatch ───────────────────────────────────────────

    async def perform_action(
        self,
        charger_id: str,
        action: str,
        params: dict[str, Any] | None = None,
    ) -> ActionResult:
        if await self._store.get_charger(charger_id) is None:
            raise NotFoundError("Charger not found")
        try:
            kind = ChargerAction(action)
        except ValueError:
            raise ValidationError("Invalid action") from None

        async with self._locks.for_charger(charger_id):
            charger = await self._store.get_charger(charger_id)
            if charger is None:
                raise NotFoundError("Charger not found")
            result = await self._handlers[kind](charger, params or {})
            await self._store.append_log(charger, result.message)

        log.info("Action %s on %s: %s", kind.value, charger_id, result.message)
        return result

    # ── Status actions ─────────────────────────────────────

    async def _turn_off(self, charger: ChargerRecord, params: dict[str, Any]) -> ActionResult:
        await self._store.set_status(charger.id_charger, ChargerStatus.INACTIVE)
        return ActionResult(success=True, message="Charger turned off")

    async def _turn_on(self, charger: ChargerRecord, params: dict[str, Any]) -> ActionResult:
        await self._store.set_status(charger.id_charger, ChargerStatus.ACTIVE)
        await self._scheduler.plan_charger(charger.id_charger)
        return ActionResult(success=True, message="Charger turned on")

    async def _restart(self, charger: ChargerRecord, params: dict[str, Any]) -> ActionResult:
        charger_id = charger.id_charger
        await self._store.set_status(charger_id, ChargerStatus.INACTIVE)

        previous = self._restarts.pop(charger_id, None)
        if previous is not None:
            previous.cancel()

        async def _on_timer() -> None:
            self._restarts.pop(charger_id, None)
            await self._reactivate(charger_id)

        self._restarts[charger_id] = self._scheduler.clock.call_later(
            self._config.schedule.restart_delay, _on_timer,
        )
        return ActionResult(success=True, message="Charger restarted")

    async def _reactivate(self, charger_id: str) -> None:
        try:
            async with self._locks.for_charger(charger_id):
                await self._store.set_status(charger_id, ChargerStatus.ACTIVE)
            await self._scheduler.plan_charger(charger_id)
        except FleetError as exc:
            log.error("Reactivating %s after restart failed: %s", charger_id, exc)
            return
        log.info("Charger %s restarted and transactions scheduled", charger_id)

    # ── Support ────────────────────────────────────────────

    async def _create_ticket(
        self, charger: ChargerRecord, params: dict[str, Any]
    ) -> ActionResult:
        if not self._config.ticket_url:
            return ActionResult(success=True, message="Support ticket created (simulated)")

        payload = {
            "charger_id": charger.id_charger,
            "owner_address": charger.owner_address,
            "status": ChargerStatus(charger.status).value,
            **{k: v for k, v in params.items() if k != "action"},
        }
        try:
            async with httpx.AsyncClient(
                timeout=self._config.ticket_timeout,
                transport=self._ticket_transport,
            ) as client:
                resp = await client.post(self._config.ticket_url, json=payload)
                resp.raise_for_status()
        except httpx.HTTPError as exc:
            log.error("Support ticket for %s failed: %s", charger.id_charger, exc)
            raise ExternalServiceError(f"support ticket request failed: {exc}") from exc

        ref = _ticket_ref(resp)
        if ref:
            return ActionResult(success=True, message=f"Support ticket created ({ref})")
        return ActionResult(success=True, message="Support ticket created")

    # ── Wallet actions ─────────────────────────────────────

    async def _pay_costs(self, charger: ChargerRecord, params: dict[str, Any]) -> ActionResult:
        balance = await self._chain.get_balance_wei(charger.wallet_address)
        to_pay = balance * COST_SHARE_PERCENT // 100
        if to_pay <= 0:
            return ActionResult(success=False, message="Not enough balance to pay costs")

        if not self._engine.send_onchain:
            return ActionResult(
                success=True, message=f"Simulated costs payment: {format_eth(to_pay)} ETH",
            )

        tx_hash = await self._chain.send_value(
            charger.wallet_private_key, self._config.operator_address, to_pay,
        )
        log.info("Costs paid for %s (tx=%s)", charger.id_charger, tx_hash[:18])
        return ActionResult(success=True, message=f"Paid costs: {format_eth(to_pay)} ETH")

    async def _send_to_owner(
        self, charger: ChargerRecord, params: dict[str, Any]
    ) -> ActionResult:
        balance = await self._chain.get_balance_wei(charger.wallet_address)
        buffer = eth_to_wei(self._config.gas_buffer_eth)
        if balance <= buffer:
            return ActionResult(success=False, message="Not enough balance")

        value = balance - buffer
        if not self._engine.send_onchain:
            return ActionResult(
                success=True,
                message=f"Simulated transfer to owner: {format_eth(value)} ETH",
            )

        tx_hash = await self._chain.send_value(
            charger.wallet_private_key, charger.owner_address, value,
        )
        log.info("Balance sent to owner of %s (tx=%s)", charger.id_charger, tx_hash[:18])
        return ActionResult(success=True, message=f"Sent {format_eth(value)} ETH to owner")

    # ── Manual deposits ────────────────────────────────────

    async def simulate_transaction(
        self, charger_id: str, amount_eth: Any = None
    ) -> SimulationResult:
        """Apply a deposit now, outside the daily plan.

        A positive numeric ``amount_eth`` is deposited as given. Anything
        else takes the scheduler's random path, which honors the daily cap
        but not the charger's status.
        """
        if await self._store.get_charger(charger_id) is None:
            raise NotFoundError("Charger not found")
        amount = _manual_amount(amount_eth)

        async with self._locks.for_charger(charger_id):
            charger = await self._store.get_charger(charger_id)
            if charger is None:
                raise NotFoundError("Charger not found")

            if amount is not None:
                deposit = await self._engine.apply_deposit(
                    charger, amount, label="manual simulated deposit",
                )
                return SimulationResult(
                    message=f"Simulated {amount_eth} ETH deposit",
                    tx_ref=deposit.tx_ref,
                    deposit=deposit,
                )

            deposit = await self._scheduler.deposit_random(charger)

        if deposit is None:
            return SimulationResult(
                message=(
                    f"Daily limit of {self._scheduler.config.max_daily_charges}"
                    " transactions reached"
                ),
            )
        return SimulationResult(
            message="Simulated transaction executed",
            tx_ref=deposit.tx_ref,
            deposit=deposit,
        )


def _ticket_ref(resp: httpx.Response) -> str | None:
    try:
        body = resp.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    ref = body.get("ticket_id") or body.get("id")
    return str(ref) if ref is not None else None
