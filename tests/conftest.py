"""Shared test fixtures for the token wallet test suite."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

import pytest

from token_wallet.config import NetworkParams

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

TOKEN_A = "0x" + "1" * 40
TOKEN_B = "0x" + "4" * 40
ACCOUNT = "0x" + "2" * 40
RECIPIENT = "0x" + "3" * 40


class FakeCall:
    """A prepared contract call; ``await call()`` yields the configured value."""

    def __init__(self, contract: FakeContract, method: str, args: tuple) -> None:
        self._contract = contract
        self._method = method
        self._args = args

    async def call(self) -> Any:
        contract = self._contract
        contract.calls.append((self._method, self._args))
        contract.in_flight += 1
        contract.max_in_flight = max(contract.max_in_flight, contract.in_flight)
        try:
            await asyncio.sleep(contract.delay)
            value = contract.values.get(self._method)
            if isinstance(value, Exception):
                raise value
            return value
        finally:
            contract.in_flight -= 1


class _Functions:
    def __init__(self, contract: FakeContract) -> None:
        self._contract = contract

    def __getattr__(self, method: str):
        def _build(*args):
            return FakeCall(self._contract, method, args)

        return _build


class FakeContract:
    """Stands in for a web3 contract handle."""

    def __init__(self, address: str, **values: Any) -> None:
        self.address = address
        self.values: dict[str, Any] = {
            "name": "Token",
            "decimals": 18,
            "balanceOf": 0,
            "totalSupply": 1000,
        }
        self.values.update(values)
        self.functions = _Functions(self)
        self.calls: list[tuple[str, tuple]] = []
        self.delay = 0.0
        self.in_flight = 0
        self.max_in_flight = 0

    def encode_abi(self, fn_name: str, args: list) -> str:
        return f"{fn_name}:{','.join(str(a) for a in args)}"


class FakeSubscription:
    def __init__(self, contract, event_name, callback, argument_filters, on_error) -> None:
        self.contract = contract
        self.event_name = event_name
        self.callback = callback
        self.argument_filters = argument_filters
        self.on_error = on_error
        self.active = True

    async def unsubscribe(self) -> None:
        self.active = False

    async def emit(self, event: dict) -> None:
        """Deliver an event the way the polling loop would."""
        try:
            await self.callback(event)
        except Exception as exc:
            await self.on_error(exc)


class FakeWeb3Service:
    """In-memory replacement for :class:`Web3Service`."""

    def __init__(self) -> None:
        self.contracts: dict[str, FakeContract] = {}
        self.subscriptions: list[FakeSubscription] = []
        self.sent: list[tuple[dict, Any]] = []
        self.receipt: Any = {"status": True}
        self.send_error: Exception | None = None

    def add_contract(self, address: str, **values: Any) -> FakeContract:
        contract = FakeContract(address, **values)
        self.contracts[address] = contract
        return contract

    async def get_contract(self, abi: list[dict], address: str) -> FakeContract:
        if address not in self.contracts:
            raise ValueError(f"Could not decode contract function call at {address}")
        return self.contracts[address]

    async def send_transaction(self, tx: dict, private_key: Any) -> Any:
        self.sent.append((tx, private_key))
        if self.send_error is not None:
            raise self.send_error
        return self.receipt

    def subscribe(self, contract, event_name, callback, argument_filters=None, on_error=None):
        subscription = FakeSubscription(contract, event_name, callback, argument_filters, on_error)
        self.subscriptions.append(subscription)
        return subscription


class FakeKeyService:
    def __init__(self, address: str = ACCOUNT) -> None:
        self.address = address

    def get_address(self) -> str:
        return self.address


@pytest.fixture
def network() -> NetworkParams:
    return NetworkParams(
        chain="local",
        chain_id=1337,
        rpc_url="http://127.0.0.1:8545",
        gas=4_000_000,
    )


@pytest.fixture
def web3_service() -> FakeWeb3Service:
    return FakeWeb3Service()


@pytest.fixture
def key_service() -> FakeKeyService:
    return FakeKeyService()


@pytest.fixture
async def storage(tmp_path) -> AsyncIterator:
    """Provide a connected LocalStorage on a temporary SQLite file."""
    from token_wallet.storage.local import LocalStorage

    store = LocalStorage(tmp_path / "storage.db")
    await store.connect()
    yield store
    await store.close()


@pytest.fixture
async def erc20_service(key_service, web3_service, storage, network) -> AsyncIterator:
    """Provide an Erc20Service wired to fakes and a real storage file."""
    from token_wallet.services.erc20 import Erc20Service

    service = Erc20Service(key_service, web3_service, storage, network)
    yield service
    await service.aclose()
