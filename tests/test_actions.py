"""Charger actions and manual simulated deposits."""

from __future__ import annotations

from decimal import Decimal

import httpx
import pytest

from dobi_fleet.actions.executor import ActionExecutor
from dobi_fleet.chain.wallets import eth_to_wei
from dobi_fleet.economics.engine import EconomicsEngine
from dobi_fleet.errors import ExternalServiceError, NotFoundError, ValidationError
from dobi_fleet.models.config import DEFAULT_OPERATOR_ADDRESS
from dobi_fleet.models.records import ChargerStatus

from tests.conftest import make_test_config
from tests.factories import OWNER, add_charger

ETH = 10**18


def onchain_executor(daemon, mock_chain, **config_overrides) -> ActionExecutor:
    """An executor sharing the daemon's scheduler but sending on-chain."""
    cfg = make_test_config(send_onchain=True, **config_overrides)
    engine = EconomicsEngine(daemon.store, mock_chain, send_onchain=True)
    return ActionExecutor(
        daemon.store, daemon.scheduler, engine, mock_chain, daemon.locks, cfg,
    )


# ── Validation ───────────────────────────────────────────────────


async def test_unknown_action_changes_nothing(daemon, store, executor):
    await add_charger(store, daemon.scheduler, id_charger="C1")

    with pytest.raises(ValidationError, match="Invalid action"):
        await executor.perform_action("C1", "frobnicate")

    charger = await store.get_charger("C1")
    assert charger.transactions == 0
    assert charger.status == ChargerStatus.ACTIVE
    assert await store.get_logs("C1") == []


async def test_unknown_charger_is_checked_before_action(executor, store):
    with pytest.raises(NotFoundError):
        await executor.perform_action("GHOST", "frobnicate")
    assert await store.get_logs() == []


# ── Status actions ───────────────────────────────────────────────


async def test_turn_off_then_armed_timer_skips(daemon, store, executor, fake_clock):
    await add_charger(store, daemon.scheduler, id_charger="C1")
    await daemon.scheduler.plan_charger("C1")
    assert daemon.scheduler.armed_count == 2

    result = await executor.perform_action("C1", "turn_off")

    assert result.message == "Charger turned off"
    # Turning off does not retract timers; they fire and exit at the status check
    assert daemon.scheduler.armed_count == 2
    await fake_clock.advance(86400)

    charger = await store.get_charger("C1")
    assert charger.status == ChargerStatus.INACTIVE
    assert charger.transactions == 0
    logs = await store.get_logs("C1")
    assert [e.message for e in logs] == ["Charger turned off"]


async def test_turn_on_plans_the_charger(daemon, store, executor):
    await add_charger(store, daemon.scheduler, id_charger="C1", status=ChargerStatus.INACTIVE)

    result = await executor.perform_action("C1", "turn_on")

    assert result.success
    assert result.message == "Charger turned on"
    assert (await store.get_charger("C1")).is_active
    assert len(daemon.scheduler.pending("C1")) == 2
    assert [e.message for e in await store.get_logs("C1")] == ["Charger turned on"]


async def test_restart_logs_now_and_reactivates_after_delay(daemon, store, executor, fake_clock):
    await add_charger(store, daemon.scheduler, id_charger="C1")

    result = await executor.perform_action("C1", "restart")

    assert result.message == "Charger restarted"
    assert not (await store.get_charger("C1")).is_active
    assert [e.message for e in await store.get_logs("C1")] == ["Charger restarted"]
    assert executor.pending_restarts == 1

    await fake_clock.advance(2)
    assert not (await store.get_charger("C1")).is_active

    await fake_clock.advance(1)
    assert (await store.get_charger("C1")).is_active
    assert len(daemon.scheduler.pending("C1")) == 2
    assert executor.pending_restarts == 0
    # Reactivation itself writes no ledger entry
    assert len(await store.get_logs("C1")) == 1


async def test_repeated_restart_reactivates_once(daemon, store, executor, fake_clock):
    await add_charger(store, daemon.scheduler, id_charger="C1")

    await executor.perform_action("C1", "restart")
    await fake_clock.advance(1)
    await executor.perform_action("C1", "restart")
    await fake_clock.advance(10)

    assert (await store.get_charger("C1")).is_active
    assert len(daemon.scheduler.pending("C1")) == 2


# ── Support tickets ──────────────────────────────────────────────


async def test_create_ticket_is_simulated_without_webhook(daemon, store, executor):
    await add_charger(store, daemon.scheduler, id_charger="C1")

    result = await executor.perform_action("C1", "create_ticket")

    assert result.message == "Support ticket created (simulated)"
    assert [e.message for e in await store.get_logs("C1")] == [result.message]


async def test_create_ticket_posts_to_webhook(daemon, store, mock_chain):
    await add_charger(store, daemon.scheduler, id_charger="C1")
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(201, json={"ticket_id": "T-42"})

    cfg = make_test_config(ticket_url="https://support.example.com/tickets")
    executor = ActionExecutor(
        store, daemon.scheduler, daemon.engine, mock_chain, daemon.locks, cfg,
        ticket_transport=httpx.MockTransport(handler),
    )

    result = await executor.perform_action(
        "C1", "create_ticket", {"subject": "Screen dead"},
    )

    assert result.message == "Support ticket created (T-42)"
    assert len(requests) == 1
    body = requests[0].read()
    assert b'"charger_id":"C1"' in body.replace(b" ", b"")
    assert b"Screen dead" in body


async def test_create_ticket_webhook_failure_writes_no_log(daemon, store, mock_chain):
    await add_charger(store, daemon.scheduler, id_charger="C1")
    cfg = make_test_config(ticket_url="https://support.example.com/tickets")
    executor = ActionExecutor(
        store, daemon.scheduler, daemon.engine, mock_chain, daemon.locks, cfg,
        ticket_transport=httpx.MockTransport(lambda request: httpx.Response(503)),
    )

    with pytest.raises(ExternalServiceError):
        await executor.perform_action("C1", "create_ticket")
    assert await store.get_logs("C1") == []


# ── Wallet actions ───────────────────────────────────────────────


async def test_pay_costs_with_zero_balance(daemon, store, executor):
    await add_charger(
        store, daemon.scheduler, id_charger="C1", transactions=2,
        income_generated=Decimal("0.0003"), cost_generated=Decimal("0.00012"),
        balance_total=Decimal("0.00018"),
    )

    result = await executor.perform_action("C1", "pay_costs")

    assert result.message == "Not enough balance to pay costs"
    assert not result.success
    logs = await store.get_logs("C1")
    assert len(logs) == 1
    assert logs[0].message == "Not enough balance to pay costs"
    assert logs[0].transactions == 2
    assert logs[0].income_generated == Decimal("0.0003")
    assert logs[0].balance_total == Decimal("0.00018")
    charger = await store.get_charger("C1")
    assert charger.balance_total == Decimal("0.00018")


async def test_pay_costs_simulated(daemon, store, executor, mock_chain):
    charger = await add_charger(store, daemon.scheduler, id_charger="C1")
    mock_chain.balances[charger.wallet_address] = ETH // 100

    result = await executor.perform_action("C1", "pay_costs")

    assert result.message == "Simulated costs payment: 0.004 ETH"
    assert mock_chain.sent == []


async def test_pay_costs_onchain_transfers_to_operator(daemon, store, mock_chain):
    charger = await add_charger(store, daemon.scheduler, id_charger="C1")
    mock_chain.balances[charger.wallet_address] = ETH // 100
    executor = onchain_executor(daemon, mock_chain)

    result = await executor.perform_action("C1", "pay_costs")

    assert result.message == "Paid costs: 0.004 ETH"
    assert mock_chain.sent == [
        (charger.wallet_private_key, DEFAULT_OPERATOR_ADDRESS, 4 * 10**15),
    ]


async def test_send_to_owner_keeps_gas_buffer(daemon, store, executor, mock_chain):
    charger = await add_charger(store, daemon.scheduler, id_charger="C1")
    mock_chain.balances[charger.wallet_address] = ETH // 100

    result = await executor.perform_action("C1", "send_to_owner")

    assert result.message == "Simulated transfer to owner: 0.009 ETH"


async def test_send_to_owner_below_buffer(daemon, store, executor, mock_chain):
    charger = await add_charger(store, daemon.scheduler, id_charger="C1")
    mock_chain.balances[charger.wallet_address] = eth_to_wei(Decimal("0.001"))

    result = await executor.perform_action("C1", "send_to_owner")

    assert result.message == "Not enough balance"
    assert [e.message for e in await store.get_logs("C1")] == ["Not enough balance"]


async def test_send_to_owner_onchain(daemon, store, mock_chain):
    charger = await add_charger(store, daemon.scheduler, id_charger="C1")
    mock_chain.balances[charger.wallet_address] = ETH // 100
    executor = onchain_executor(daemon, mock_chain)

    result = await executor.perform_action("C1", "send_to_owner")

    assert result.message == "Sent 0.009 ETH to owner"
    assert mock_chain.sent == [(charger.wallet_private_key, OWNER, 9 * 10**15)]


async def test_chain_failure_propagates_without_log(daemon, store, executor, mock_chain):
    await add_charger(store, daemon.scheduler, id_charger="C1")
    mock_chain.fail_balance = True

    with pytest.raises(ExternalServiceError):
        await executor.perform_action("C1", "pay_costs")
    assert await store.get_logs("C1") == []


# ── Manual deposits ──────────────────────────────────────────────


async def test_simulate_explicit_amount(daemon, store, executor):
    await add_charger(store, daemon.scheduler, id_charger="C1")

    result = await executor.simulate_transaction("C1", 0.5)

    assert result.message == "Simulated 0.5 ETH deposit"
    assert result.tx_ref == "simulated"
    charger = await store.get_charger("C1")
    assert charger.transactions == 1
    assert charger.income_generated == Decimal("0.5")
    assert charger.cost_generated == Decimal("0.2")
    assert charger.balance_total == Decimal("0.3")
    logs = await store.get_logs("C1")
    assert len(logs) == 1
    assert "manual simulated deposit" in logs[0].message
    # Manual amounts bypass the daily counter
    assert daemon.scheduler.charges_today("C1") == 0


@pytest.mark.parametrize("amount", [None, "abc", -1, 0, 0.0000001, True])
async def test_simulate_falls_back_to_random_deposit(daemon, store, executor, amount):
    await add_charger(store, daemon.scheduler, id_charger="C1")

    result = await executor.simulate_transaction("C1", amount)

    assert result.message == "Simulated transaction executed"
    charger = await store.get_charger("C1")
    assert charger.transactions == 1
    assert Decimal("0.0001") <= charger.income_generated <= Decimal("0.0002")
    assert daemon.scheduler.charges_today("C1") == 1


async def test_simulate_random_ignores_status_but_honors_cap(daemon, store, executor):
    await add_charger(store, daemon.scheduler, id_charger="C1", status=ChargerStatus.INACTIVE)

    messages = [(await executor.simulate_transaction("C1")).message for _ in range(5)]

    assert messages[:4] == ["Simulated transaction executed"] * 4
    assert "limit" in messages[4]
    assert (await store.get_charger("C1")).transactions == 4


async def test_simulate_unknown_charger(executor):
    with pytest.raises(NotFoundError):
        await executor.simulate_transaction("GHOST", 0.5)
