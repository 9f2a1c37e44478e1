"""Tests for the key-value store and the Token model."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from conftest import TOKEN_A
from token_wallet.storage.local import LocalStorage
from token_wallet.storage.models import Token


class TestLocalStorage:
    """get_item / set_item / remove_item / clear."""

    async def test_missing_key(self, storage) -> None:
        assert await storage.get_item("nope") is None

    async def test_set_get_overwrite(self, storage) -> None:
        await storage.set_item("k", "one")
        await storage.set_item("k", "two")

        assert await storage.get_item("k") == "two"

    async def test_remove_and_clear(self, storage) -> None:
        await storage.set_item("a", "1")
        await storage.set_item("b", "2")

        await storage.remove_item("a")
        assert await storage.get_item("a") is None
        assert await storage.get_item("b") == "2"

        await storage.clear()
        assert await storage.get_item("b") is None

    async def test_values_survive_reconnect(self, tmp_path) -> None:
        """Data is on disk, not only in the connection."""
        path = tmp_path / "sub" / "storage.db"
        async with LocalStorage(path) as store:
            await store.set_item("k", "v")

        async with LocalStorage(path) as store:
            assert await store.get_item("k") == "v"

    async def test_in_memory(self) -> None:
        async with LocalStorage(":memory:") as store:
            await store.set_item("k", "v")
            assert await store.get_item("k") == "v"


class TestToken:
    """Token record."""

    def test_address_is_frozen(self) -> None:
        token = Token(address=TOKEN_A)
        with pytest.raises(ValidationError):
            token.address = "0x0"

    def test_other_fields_are_mutable(self) -> None:
        token = Token(address=TOKEN_A)
        token.name = "Alpha"
        token.balance = "12"
        assert (token.name, token.balance) == ("Alpha", "12")

    def test_storage_form_is_address_only(self) -> None:
        token = Token(address=TOKEN_A, name="Alpha", balance="1", decimals=6, event_emitter=object())

        assert token.to_storage() == {"address": TOKEN_A}
        assert "event_emitter" not in token.model_dump()
