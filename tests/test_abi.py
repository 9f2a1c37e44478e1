"""Tests for the ERC20 ABI the token service calls through."""

from __future__ import annotations

from token_wallet.contracts.erc20 import ERC20_ABI


def _entry(name: str) -> dict:
    return next(e for e in ERC20_ABI if e["name"] == name)


class TestErc20Abi:
    def test_every_function_is_complete(self) -> None:
        """Each function entry declares inputs, outputs and mutability."""
        for entry in ERC20_ABI:
            if entry["type"] != "function":
                continue
            assert set(entry) >= {"inputs", "name", "outputs", "stateMutability"}
            assert all(set(arg) == {"name", "type"} for arg in entry["inputs"])

    def test_read_methods_are_views(self) -> None:
        for name in ("name", "symbol", "decimals", "totalSupply", "balanceOf", "allowance"):
            assert _entry(name)["stateMutability"] == "view"

    def test_transfer_signature(self) -> None:
        """transfer(address,uint256) returns bool."""
        entry = _entry("transfer")

        assert [a["type"] for a in entry["inputs"]] == ["address", "uint256"]
        assert entry["outputs"] == [{"name": "", "type": "bool"}]
        assert entry["stateMutability"] == "nonpayable"

    def test_transfer_event_indexes_both_parties(self) -> None:
        entry = _entry("Transfer")

        assert entry["type"] == "event"
        assert [a["indexed"] for a in entry["inputs"]] == [True, True, False]
