"""Configuration system for the token wallet.

Loads settings from `.token-wallet/config.yaml`, supports environment
variable expansion, and resolves the effective network parameters (chain id,
RPC endpoint, gas limit) against the built-in chain table.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field

from token_wallet.wallet.chains import Chain, get_chain


# ---------------------------------------------------------------------------
# Environment-variable expansion helper
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)\}")


def _expand_env_vars(value: str) -> str:
    """Replace ``${VAR_NAME}`` placeholders with their environment values.

    If the variable is not set the placeholder is left as-is so that
    validation can catch it later.
    """

    def _replace(match: re.Match) -> str:
        var_name = match.group(1)
        return os.environ.get(var_name, match.group(0))

    return _ENV_VAR_RE.sub(_replace, value)


def _expand_env_recursive(obj: object) -> object:
    """Walk an arbitrary nested structure and expand env vars in strings."""
    if isinstance(obj, str):
        return _expand_env_vars(obj)
    if isinstance(obj, dict):
        return {k: _expand_env_recursive(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_expand_env_recursive(item) for item in obj]
    return obj


# ---------------------------------------------------------------------------
# Pydantic v2 models
# ---------------------------------------------------------------------------


class NetworkParams(BaseModel):
    """Effective network parameters after overrides are applied."""

    chain: str
    chain_id: int
    rpc_url: str
    gas: int
    explorer_url: str = ""

    def address_url(self, address: str) -> str:
        """Explorer page of *address*, or "" on chains without an explorer."""
        if not self.explorer_url:
            return ""
        return f"{self.explorer_url}/address/{address}"


class NetworkConfig(BaseModel):
    """Which chain to talk to, plus optional overrides of its defaults."""

    chain: str = "sepolia"
    rpc_url: Optional[str] = None   # ${TOKEN_WALLET_RPC_URL}
    chain_id: Optional[int] = None
    gas: Optional[int] = None       # fixed gas limit for token transfers
    event_poll_interval: float = 2.0

    def resolve(self) -> NetworkParams:
        """Merge the overrides with the chain table entry.

        Raises ``KeyError`` if ``chain`` is not a known chain name.
        """
        chain: Chain = get_chain(self.chain)
        return NetworkParams(
            chain=chain.name,
            chain_id=self.chain_id if self.chain_id is not None else chain.chain_id,
            rpc_url=self.rpc_url or chain.rpc_url,
            gas=self.gas if self.gas is not None else chain.gas_limit,
            explorer_url=chain.explorer_url,
        )


class StorageConfig(BaseModel):
    """Local key-value storage settings."""

    db_file: str = "storage.db"
    token_key: str = "bcg-tokens"


class WalletConfig(BaseModel):
    """Keystore location."""

    keystore_dir: str = "wallet"


class AppConfig(BaseModel):
    """Root configuration object."""

    network: NetworkConfig = Field(default_factory=NetworkConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    wallet: WalletConfig = Field(default_factory=WalletConfig)


# ---------------------------------------------------------------------------
# Public helpers
# ---------------------------------------------------------------------------


def get_root_dir(base: Path | None = None) -> Path:
    """Return the ``.token-wallet/`` directory (no auto-create).

    Parameters
    ----------
    base:
        Parent directory that contains (or will contain) the root folder.
        Defaults to the current working directory.
    """
    if base is None:
        base = Path.cwd()
    return base / ".token-wallet"


def resolve_path(root: Path, value: str) -> Path:
    """Resolve a configured path relative to the root directory."""
    path = Path(value).expanduser()
    if path.is_absolute():
        return path
    return root / path


def load_config(path: Path) -> AppConfig:
    """Load and validate the configuration from a YAML file.

    A missing file yields the defaults. Environment variable placeholders
    (``${VAR}``) are expanded before validation.
    """
    if not path.exists():
        return AppConfig()
    raw_text = path.read_text(encoding="utf-8")
    raw_data = yaml.safe_load(raw_text) or {}
    expanded = _expand_env_recursive(raw_data)
    return AppConfig.model_validate(expanded)


def save_config(config: AppConfig, path: Path) -> None:
    """Serialize an :class:`AppConfig` to a YAML file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    data = config.model_dump(mode="python", exclude_none=True)
    with open(path, "w", encoding="utf-8") as fh:
        yaml.dump(data, fh, default_flow_style=False, sort_keys=False)
