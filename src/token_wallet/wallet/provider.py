"""Async Web3 provider: contract handles, transaction sending, event polling."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from eth_account import Account
from web3 import AsyncHTTPProvider, AsyncWeb3
from web3.middleware import ExtraDataToPOAMiddleware

from token_wallet.config import NetworkParams

logger = logging.getLogger("token_wallet.wallet.provider")

EventCallback = Callable[[Any], Awaitable[None]]
ErrorCallback = Callable[[Exception], Awaitable[None]]


class EventSubscription:
    """Handle for a background event-polling task."""

    def __init__(self, event_name: str, address: str, task: asyncio.Task) -> None:
        self.event_name = event_name
        self.address = address
        self._task = task

    @property
    def active(self) -> bool:
        return not self._task.done()

    async def unsubscribe(self) -> None:
        """Stop polling and wait for the task to wind down."""
        if self._task.done():
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass

    def __repr__(self) -> str:
        state = "active" if self.active else "stopped"
        return f"<EventSubscription {self.event_name}@{self.address} {state}>"


class Web3Service:
    """Wraps an ``AsyncWeb3`` connection for one network.

    Parameters
    ----------
    network:
        Resolved network parameters (chain id, RPC endpoint, gas limit).
    poll_interval:
        Seconds between event filter polls.
    w3:
        Pre-built ``AsyncWeb3`` instance; built from ``network.rpc_url`` when
        omitted.
    """

    def __init__(
        self,
        network: NetworkParams,
        poll_interval: float = 2.0,
        w3: Optional[AsyncWeb3] = None,
    ) -> None:
        self.network = network
        self.poll_interval = poll_interval
        self._w3 = w3

    @property
    def w3(self) -> AsyncWeb3:
        """Return the (cached) ``AsyncWeb3`` instance.

        Injects POA middleware for non-mainnet chains.
        """
        if self._w3 is None:
            w3 = AsyncWeb3(AsyncHTTPProvider(self.network.rpc_url))
            if self.network.chain_id != 1:
                w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)
            self._w3 = w3
        return self._w3

    async def get_contract(self, abi: list[dict], address: str) -> Any:
        """Build a contract handle for *address* using *abi*.

        Nothing checks that the bytecode at *address* matches *abi*; a
        mismatch only shows up when a method is called.
        """
        checksum = AsyncWeb3.to_checksum_address(address)
        return self.w3.eth.contract(address=checksum, abi=abi)

    async def send_transaction(self, tx: dict, private_key: bytes | str) -> Any:
        """Sign *tx* with *private_key*, broadcast it, and wait for the receipt.

        Fills in ``nonce`` and ``gasPrice`` when the caller left them out.
        Gas limit and chain id are taken from *tx* as given.
        """
        account = Account.from_key(private_key)
        tx = dict(tx)
        tx["to"] = AsyncWeb3.to_checksum_address(tx["to"])
        if "nonce" not in tx:
            tx["nonce"] = await self.w3.eth.get_transaction_count(account.address)
        if "gasPrice" not in tx and "maxFeePerGas" not in tx:
            tx["gasPrice"] = await self.w3.eth.gas_price

        signed = account.sign_transaction(tx)
        tx_hash = await self.w3.eth.send_raw_transaction(signed.raw_transaction)
        logger.info(f"Transaction broadcast from {account.address}: {tx_hash.hex()}")
        return await self.w3.eth.wait_for_transaction_receipt(tx_hash)

    def subscribe(
        self,
        contract: Any,
        event_name: str,
        callback: EventCallback,
        argument_filters: Optional[dict] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> EventSubscription:
        """Poll *contract* for new *event_name* logs and feed them to *callback*.

        An empty *argument_filters* matches every emission of the event. Errors
        raised while polling or inside *callback* go to *on_error* (or the log)
        and polling continues.
        """
        task = asyncio.create_task(
            self._poll_events(contract, event_name, callback, argument_filters or {}, on_error),
            name=f"{event_name}-events-{contract.address}",
        )
        return EventSubscription(event_name, contract.address, task)

    async def _poll_events(
        self,
        contract: Any,
        event_name: str,
        callback: EventCallback,
        argument_filters: dict,
        on_error: Optional[ErrorCallback],
    ) -> None:
        event = getattr(contract.events, event_name)
        event_filter = None
        while True:
            try:
                if event_filter is None:
                    event_filter = await event.create_filter(
                        from_block="latest",
                        argument_filters=argument_filters or None,
                    )
                for entry in await event_filter.get_new_entries():
                    await callback(entry)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                if on_error is not None:
                    await on_error(exc)
                else:
                    logger.error(f"{event_name} listener error on {contract.address}: {exc}")
            await asyncio.sleep(self.poll_interval)
