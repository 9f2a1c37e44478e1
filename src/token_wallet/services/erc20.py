"""ERC20 token service: tracked token list, balances, names, transfers."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Coroutine, Optional

from web3 import Web3

from token_wallet.config import NetworkParams
from token_wallet.contracts.erc20 import ERC20_ABI
from token_wallet.core.subject import BehaviorSubject
from token_wallet.storage.local import LocalStorage
from token_wallet.storage.models import Token
from token_wallet.wallet.keystore import KeyService
from token_wallet.wallet.provider import EventSubscription, Web3Service

logger = logging.getLogger("token_wallet.services.erc20")

DEFAULT_STORAGE_KEY = "bcg-tokens"


class Erc20Service:
    """Keeps the user's token list and talks to ERC20 contracts.

    The list lives in a :class:`BehaviorSubject` so views can follow it, and
    its addresses are mirrored to local storage under ``storage_key``.
    Call :meth:`load` once after construction to restore the saved list.
    """

    def __init__(
        self,
        key_service: KeyService,
        web3_service: Web3Service,
        storage: LocalStorage,
        network: NetworkParams,
        storage_key: str = DEFAULT_STORAGE_KEY,
    ) -> None:
        self._key_service = key_service
        self._web3_service = web3_service
        self._storage = storage
        self._network = network
        self._storage_key = storage_key
        self._tokens: BehaviorSubject[list[Token]] = BehaviorSubject([])
        self._locks: dict[str, asyncio.Lock] = {}
        self._tasks: set[asyncio.Task] = set()
        self._subscriptions: list[EventSubscription] = []

    # ------------------------------------------------------------------
    # Token list
    # ------------------------------------------------------------------

    async def load(self, enrich: bool = True) -> None:
        """Restore the token list from local storage.

        A corrupt entry is logged and wiped; nothing of it is kept. With
        *enrich* off the tokens stay address-only and no RPC call is made.
        """
        token_string = await self._storage.get_item(self._storage_key)
        if not token_string:
            return
        try:
            tokens = [Token(address=entry["address"]) for entry in json.loads(token_string)]
        except (ValueError, TypeError, KeyError):
            logger.warning("Error while parsing stored tokens. Resetting now...")
            await self._storage.set_item(self._storage_key, "")
            return

        await self._tokens.next(tokens)
        if enrich:
            for token in tokens:
                self._spawn(self._init_token(token))
        logger.info(f"Restored {len(tokens)} token(s) from storage")

    async def add_token(self, token: Token) -> None:
        """Add a token to the tracked list and persist it.

        Does not check for duplicates; use :meth:`has_token_with_address`
        first.
        """
        tokens = list(self._tokens.get_value())
        tokens.append(token)
        await self._tokens.next(tokens)
        await self._save_tokens()

    async def remove_token(self, address: str) -> bool:
        """Drop every entry for *address*. Returns whether anything was removed."""
        tokens = self._tokens.get_value()
        kept = [t for t in tokens if t.address != address]
        removed = [t for t in tokens if t.address == address]
        if not removed:
            return False
        for token in removed:
            await self._stop_listener(token)
        await self._tokens.next(kept)
        await self._save_tokens()
        return True

    def get_tokens(self) -> BehaviorSubject[list[Token]]:
        return self._tokens

    def has_token_with_address(self, address: str) -> bool:
        for token in self._tokens.get_value():
            if token.address == address:
                return True
        return False

    def get_token_by_address(self, token_address: str) -> Token:
        """Return the tracked token, or a fresh stub that fills in later.

        The stub is not added to the list and gets no Transfer listener. Its
        balance and name are fetched in the background, so right after this
        call they may still be empty.
        """
        for token in self._tokens.get_value():
            if token.address == token_address:
                return token
        token = Token(address=token_address)
        self._spawn(self._init_token(token))
        return token

    async def reset(self) -> None:
        """Forget every token."""
        for token in self._tokens.get_value():
            await self._stop_listener(token)
        await self._tokens.next([])
        await self._save_tokens()

    # ------------------------------------------------------------------
    # Contract reads
    # ------------------------------------------------------------------

    async def get_balance_of(self, erc20_address: str, account_address: Optional[str] = None) -> Any:
        """Get the balance of an account for an ERC20 token.

        *account_address* defaults to the wallet's own account. Returns the
        raw value from the node. If the bytecode at *erc20_address* does not
        match the ABI the call itself fails; nothing is checked earlier.
        """
        if account_address is None:
            account_address = self._key_service.get_address()
        contract = await self._get_contract(erc20_address)
        method = contract.functions.balanceOf(Web3.to_checksum_address(account_address))
        return await method.call()

    async def get_name(self, erc20_address: str) -> str:
        contract = await self._get_contract(erc20_address)
        return await contract.functions.name().call()

    async def get_decimals(self, erc20_address: str) -> int:
        contract = await self._get_contract(erc20_address)
        return int(await contract.functions.decimals().call())

    async def _try_decimals(self, erc20_address: str) -> Optional[int]:
        # decimals() is optional in ERC20
        try:
            return await self.get_decimals(erc20_address)
        except Exception as e:
            logger.debug(f"decimals() unavailable for {erc20_address}: {e}")
            return None

    async def is_valid_erc20(self, contract_address: str) -> bool:
        """Guess whether *contract_address* is an ERC20 token.

        True only if ``totalSupply()`` answers with a positive number. Any
        failure, network errors included, counts as "not a token".
        """
        try:
            contract = await self._get_contract(contract_address)
            if contract is not None:
                total_supply = await contract.functions.totalSupply().call()
                if total_supply is not None and int(total_supply) > 0:
                    return True
        except Exception as e:
            logger.debug(f"totalSupply() failed for {contract_address}: {e}")
        return False

    # ------------------------------------------------------------------
    # Transfers
    # ------------------------------------------------------------------

    async def transfer(
        self,
        erc20_address: str,
        private_key: bytes | str,
        to: str,
        amount: int,
    ) -> bool:
        """Transfer *amount* (raw token units) of a token to another account.

        The transaction goes to the token contract, not to *to*; the contract
        moves the balance. Gas limit and chain id come from configuration.
        Returns whether the receipt reports success.
        """
        contract = await self._get_contract(erc20_address)
        data = contract.encode_abi("transfer", args=[Web3.to_checksum_address(to), int(amount)])
        transaction = {
            "chainId": self._network.chain_id,
            "gas": self._network.gas,
            "to": erc20_address,
            "data": data,
        }
        receipt = await self._web3_service.send_transaction(transaction, private_key)
        success = bool(receipt) and bool(receipt.get("status"))
        logger.info(
            f"Transfer of {amount} on {erc20_address} to {to}: "
            f"{'succeeded' if success else 'failed'}"
        )
        return success

    # ------------------------------------------------------------------
    # Updates
    # ------------------------------------------------------------------

    async def update_token(self, token: Optional[Token]) -> None:
        """Refresh a tracked token's name, decimals and balance."""
        if token is None or not self.has_token_with_address(token.address):
            return
        async with self._lock_for(token.address):
            changed = False
            if not token.name:
                token.name = await self.get_name(token.address)
                changed = True
            new_balance = await self.get_balance_of(token.address)
            if new_balance is not None and str(new_balance) != token.balance:
                token.balance = str(new_balance)
                changed = True
            if token.decimals is None:
                token.decimals = await self._try_decimals(token.address)
                changed = changed or token.decimals is not None
            if changed:
                self._set_token(token)
                await self._tokens.next(list(self._tokens.get_value()))

    async def update_token_by_address(self, token_address: str) -> None:
        token = self.get_token_by_address(token_address)
        await self.update_token(token)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def wait_idle(self) -> None:
        """Wait for every background enrichment started so far."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def aclose(self) -> None:
        """Cancel background work and stop all event listeners."""
        for task in list(self._tasks):
            task.cancel()
        await asyncio.gather(*list(self._tasks), return_exceptions=True)
        for subscription in self._subscriptions:
            await subscription.unsubscribe()
        self._subscriptions.clear()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _get_contract(self, erc20_address: str) -> Any:
        return await self._web3_service.get_contract(ERC20_ABI, erc20_address)

    def _lock_for(self, address: str) -> asyncio.Lock:
        lock = self._locks.get(address)
        if lock is None:
            lock = self._locks[address] = asyncio.Lock()
        return lock

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        try:
            task = asyncio.get_running_loop().create_task(coro)
        except RuntimeError:
            # No event loop: the token stays a bare stub
            coro.close()
            return
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.warning(f"Token enrichment failed: {task.exception()}")

    async def _init_token(self, token: Token) -> None:
        async with self._lock_for(token.address):
            token.balance = str(await self.get_balance_of(token.address))
            token.name = await self.get_name(token.address)
            token.decimals = await self._try_decimals(token.address)
            if token.event_emitter is None:
                token.event_emitter = await self._init_token_event_listener(token)
        if self._is_tracked(token):
            await self._tokens.next(list(self._tokens.get_value()))
        elif not self.has_token_with_address(token.address):
            self._locks.pop(token.address, None)

    async def _init_token_event_listener(self, token: Token) -> Optional[EventSubscription]:
        contract = await self._get_contract(token.address)
        # Stubs and tokens dropped while enriching get no listener
        if not self._is_tracked(token):
            return None

        async def _on_transfer(event: Any) -> None:
            logger.debug(f"Transfer on {token.address}: {event.get('args')}")
            # Every Transfer on the contract triggers a refresh, whether or
            # not it touches our account.
            await self.update_token(token)

        async def _on_error(exc: Exception) -> None:
            logger.error(f"Transfer listener error on {token.address}: {exc}")

        subscription = self._web3_service.subscribe(
            contract, "Transfer", _on_transfer, argument_filters={}, on_error=_on_error
        )
        self._subscriptions.append(subscription)
        return subscription

    async def _stop_listener(self, token: Token) -> None:
        subscription = token.event_emitter
        if subscription is None:
            return
        token.event_emitter = None
        await subscription.unsubscribe()
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    def _is_tracked(self, token: Token) -> bool:
        return any(existing is token for existing in self._tokens.get_value())

    def _set_token(self, token: Token) -> None:
        tokens = self._tokens.get_value()
        for i, existing in enumerate(tokens):
            if existing.address == token.address:
                tokens[i] = token
                return

    async def _save_tokens(self) -> None:
        tokens = [token.to_storage() for token in self._tokens.get_value()]
        await self._storage.set_item(self._storage_key, json.dumps(tokens))
        logger.info(f"Saved {len(tokens)} token(s)")
