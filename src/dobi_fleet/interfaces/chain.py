"""ChainGateway protocol - the external settlement chain collaborator."""

from __future__ import annotations

from typing import Protocol

from dobi_fleet.models.records import ChainTransaction


class ChainGateway(Protocol):
    """Reads balances and moves value on the settlement chain.

    Every method is a coroutine so waiting on the RPC endpoint or a
    confirmation never blocks the event loop.
    """

    async def get_balance_wei(self, address: str) -> int:
        ...

    async def send_value(self, private_key: str, to: str, value_wei: int) -> str:
        """Sign, submit, wait for the receipt. Returns the tx hash."""
        ...

    async def send_from_master(self, to: str, value_wei: int) -> str:
        """Transfer from the configured master wallet. Returns the tx hash."""
        ...

    async def get_transaction_history(self, address: str) -> list[ChainTransaction]:
        ...

    async def close(self) -> None:
        ...
