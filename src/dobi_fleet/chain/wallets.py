"""Charger wallet generation and ETH unit helpers."""

from __future__ import annotations

from decimal import Decimal

from eth_account import Account
from web3 import Web3

from dobi_fleet.models.records import WalletCredentials

WEI_PER_ETH = 10**18


def generate_wallet() -> WalletCredentials:
    """Create a fresh random keypair for a charger."""
    account = Account.create()
    return WalletCredentials(
        address=account.address,
        private_key=Web3.to_hex(account.key),
    )


def eth_to_wei(amount: Decimal) -> int:
    return int(Web3.to_wei(amount, "ether"))


def wei_to_eth(wei: int) -> Decimal:
    return Decimal(wei) / Decimal(WEI_PER_ETH)


def format_eth(wei: int) -> str:
    """Format wei as a plain decimal ETH string, e.g. ``"0.00012"``."""
    value = wei_to_eth(wei).normalize()
    return f"{value:f}"
