"""Tests for configuration loading and network resolution."""

from __future__ import annotations

import pytest

from token_wallet.config import (
    AppConfig,
    NetworkConfig,
    get_root_dir,
    load_config,
    resolve_path,
    save_config,
)
from token_wallet.wallet.chains import get_chain, list_chain_names


class TestNetworkConfig:
    """resolve() merges overrides with the chain table."""

    def test_defaults_come_from_chain(self) -> None:
        params = NetworkConfig(chain="sepolia").resolve()
        chain = get_chain("sepolia")

        assert params.chain_id == chain.chain_id == 11155111
        assert params.rpc_url == chain.rpc_url
        assert params.gas == chain.gas_limit

    def test_overrides_win(self) -> None:
        params = NetworkConfig(
            chain="local", rpc_url="http://node:8545", chain_id=5777, gas=6_721_975
        ).resolve()

        assert (params.chain_id, params.rpc_url, params.gas) == (5777, "http://node:8545", 6_721_975)

    def test_unknown_chain(self) -> None:
        with pytest.raises(KeyError, match="Unknown chain"):
            NetworkConfig(chain="ropsten").resolve()

    def test_chain_names(self) -> None:
        assert {"ethereum", "sepolia", "local"} <= set(list_chain_names())

    def test_address_url(self) -> None:
        """Explorer links come from the chain table."""
        assert NetworkConfig(chain="sepolia").resolve().address_url("0xabc") == (
            "https://sepolia.etherscan.io/address/0xabc"
        )
        assert NetworkConfig(chain="local").resolve().address_url("0xabc") == ""


class TestLoadConfig:
    """YAML loading with env expansion."""

    def test_missing_file_gives_defaults(self, tmp_path) -> None:
        config = load_config(tmp_path / "config.yaml")

        assert config == AppConfig()
        assert config.storage.token_key == "bcg-tokens"

    def test_env_vars_are_expanded(self, tmp_path, monkeypatch) -> None:
        monkeypatch.setenv("TEST_RPC_URL", "http://expanded:8545")
        path = tmp_path / "config.yaml"
        path.write_text(
            "network:\n  chain: local\n  rpc_url: ${TEST_RPC_URL}\n  gas: 50000\n",
            encoding="utf-8",
        )

        config = load_config(path)

        assert config.network.rpc_url == "http://expanded:8545"
        assert config.network.resolve().gas == 50000

    def test_unset_env_var_is_left_in_place(self, tmp_path, monkeypatch) -> None:
        monkeypatch.delenv("TEST_UNSET_VAR", raising=False)
        path = tmp_path / "config.yaml"
        path.write_text("storage:\n  token_key: ${TEST_UNSET_VAR}\n", encoding="utf-8")

        assert load_config(path).storage.token_key == "${TEST_UNSET_VAR}"

    def test_save_then_load(self, tmp_path) -> None:
        path = tmp_path / "nested" / "config.yaml"
        config = AppConfig(network=NetworkConfig(chain="holesky", event_poll_interval=5.0))

        save_config(config, path)

        assert load_config(path) == config


class TestPaths:
    def test_root_dir(self, tmp_path) -> None:
        assert get_root_dir(tmp_path) == tmp_path / ".token-wallet"

    def test_resolve_path(self, tmp_path) -> None:
        assert resolve_path(tmp_path, "storage.db") == tmp_path / "storage.db"
        assert resolve_path(tmp_path, str(tmp_path / "abs.db")) == tmp_path / "abs.db"
