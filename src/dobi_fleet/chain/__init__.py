"""Settlement chain integration - wallets, balances, transfers."""

from dobi_fleet.chain.gateway import Web3ChainGateway
from dobi_fleet.chain.wallets import format_eth, generate_wallet

__all__ = ["Web3ChainGateway", "format_eth", "generate_wallet"]
