"""Wallet helpers and gateway error handling (no live RPC needed)."""

from __future__ import annotations

from decimal import Decimal

import pytest
from eth_account import Account

from dobi_fleet.chain.gateway import Web3ChainGateway
from dobi_fleet.chain.wallets import eth_to_wei, format_eth, generate_wallet, wei_to_eth
from dobi_fleet.errors import ExternalServiceError

# Nothing listens here, so every RPC call fails fast
DEAD_RPC = "http://127.0.0.1:9"


def test_generated_wallet_key_matches_address():
    wallet = generate_wallet()
    assert wallet.private_key.startswith("0x")
    assert Account.from_key(wallet.private_key).address == wallet.address


def test_unit_conversions():
    assert eth_to_wei(Decimal("0.0001")) == 10**14
    assert wei_to_eth(10**14) == Decimal("0.0001")
    assert format_eth(4 * 10**15) == "0.004"
    assert format_eth(10**19) == "10"
    assert format_eth(0) == "0"


async def test_send_from_master_requires_key():
    gateway = Web3ChainGateway(DEAD_RPC)
    try:
        with pytest.raises(ExternalServiceError, match="master"):
            await gateway.send_from_master(generate_wallet().address, 1)
    finally:
        await gateway.close()


async def test_unreachable_rpc_raises_external_error():
    gateway = Web3ChainGateway(DEAD_RPC)
    try:
        with pytest.raises(ExternalServiceError):
            await gateway.get_balance_wei(generate_wallet().address)
        with pytest.raises(ExternalServiceError):
            await gateway.get_transaction_history(generate_wallet().address)
    finally:
        await gateway.close()


async def test_malformed_master_key_raises_external_error():
    gateway = Web3ChainGateway(DEAD_RPC, master_private_key="not-a-key")
    try:
        with pytest.raises(ExternalServiceError, match="transfer failed"):
            await gateway.send_from_master(generate_wallet().address, 1)
    finally:
        await gateway.close()
