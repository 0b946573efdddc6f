"""Async web3 gateway - balances, value transfers and recent wallet history."""

from __future__ import annotations

import logging

from eth_account import Account
from web3 import AsyncHTTPProvider, AsyncWeb3, Web3

from dobi_fleet.errors import ExternalServiceError
from dobi_fleet.models.records import ChainTransaction

log = logging.getLogger(__name__)

NATIVE_TRANSFER_GAS = 21_000


class Web3ChainGateway:
    """Talks to an EVM JSON-RPC endpoint through ``AsyncWeb3``.

    Transfers are signed locally with ``eth_account`` and submitted as raw
    transactions; the call returns once the receipt is mined (or the
    confirmation timeout expires).
    """

    def __init__(
        self,
        rpc_url: str,
        master_private_key: str = "",
        confirmation_timeout: int = 120,
        history_blocks: int = 50,
        history_limit: int = 100,
    ) -> None:
        self._rpc_url = rpc_url
        self._master_private_key = master_private_key
        self._confirmation_timeout = confirmation_timeout
        self._history_blocks = history_blocks
        self._history_limit = history_limit
        self._w3 = AsyncWeb3(AsyncHTTPProvider(rpc_url))

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        try:
            await self._w3.provider.disconnect()
        except Exception as exc:
            log.debug("provider disconnect failed: %s", exc)

    # ── Reads ──────────────────────────────────────────────

    async def get_balance_wei(self, address: str) -> int:
        try:
            return int(await self._w3.eth.get_balance(Web3.to_checksum_address(address)))
        except Exception as exc:
            raise ExternalServiceError(
                f"balance query for {address[:10]} failed: {exc}"
            ) from exc

    async def get_transaction_history(self, address: str) -> list[ChainTransaction]:
        """Scan the most recent blocks for transactions to or from ``address``.

        Blocks that fail to load are skipped; a failing head query raises.
        """
        target = address.lower()
        try:
            latest = await self._w3.eth.block_number
        except Exception as exc:
            raise ExternalServiceError(f"block number query failed: {exc}") from exc

        found: list[ChainTransaction] = []
        start = max(0, latest - self._history_blocks)
        for number in range(start, latest + 1):
            try:
                block = await self._w3.eth.get_block(number, full_transactions=True)
            except Exception as exc:
                log.debug("get_block(%d) failed: %s", number, exc)
                continue

            for tx in block.get("transactions", []):
                sender = (tx.get("from") or "").lower()
                recipient = (tx.get("to") or "").lower()
                if target not in (sender, recipient):
                    continue
                receipt = None
                try:
                    receipt = await self._w3.eth.get_transaction_receipt(tx["hash"])
                except Exception as exc:
                    log.debug("receipt for %s unavailable: %s", Web3.to_hex(tx["hash"]), exc)
                found.append(ChainTransaction(
                    tx_hash=Web3.to_hex(tx["hash"]),
                    block_number=number,
                    timestamp=int(block["timestamp"]),
                    from_address=tx["from"],
                    to_address=tx.get("to"),
                    value_wei=int(tx["value"]),
                    gas_used=int(receipt["gasUsed"]) if receipt else None,
                    status=int(receipt["status"]) if receipt else None,
                ))
                if len(found) >= self._history_limit:
                    return found
        return found

    # ── Transfers ──────────────────────────────────────────

    async def send_value(self, private_key: str, to: str, value_wei: int) -> str:
        try:
            account = Account.from_key(private_key)
            log.info(
                "Sending %d wei from %s to %s", value_wei, account.address[:10], to[:10],
            )
            nonce = await self._w3.eth.get_transaction_count(account.address, "pending")
            gas_price = await self._w3.eth.gas_price
            chain_id = await self._w3.eth.chain_id
            tx = {
                "to": Web3.to_checksum_address(to),
                "value": value_wei,
                "gas": NATIVE_TRANSFER_GAS,
                "gasPrice": gas_price,
                "nonce": nonce,
                "chainId": chain_id,
            }
            signed = account.sign_transaction(tx)
            tx_hash = await self._w3.eth.send_raw_transaction(signed.raw_transaction)
            receipt = await self._w3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=self._confirmation_timeout,
            )
        except Exception as exc:
            log.error("transfer to %s failed: %s", to[:10], exc)
            raise ExternalServiceError(f"transfer failed: {exc}") from exc

        tx_hex = Web3.to_hex(receipt["transactionHash"])
        if receipt["status"] != 1:
            raise ExternalServiceError(f"transfer reverted (tx={tx_hex})")
        log.info("Transfer confirmed (tx=%s)", tx_hex[:18])
        return tx_hex

    async def send_from_master(self, to: str, value_wei: int) -> str:
        if not self._master_private_key:
            raise ExternalServiceError("no master wallet configured")
        return await self.send_value(self._master_private_key, to, value_wei)
