"""Chain definitions for the networks a token wallet can talk to."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Chain:
    """An EVM-compatible blockchain network."""

    name: str
    chain_id: int
    rpc_url: str
    gas_limit: int
    explorer_url: str


CHAINS: dict[str, Chain] = {
    "ethereum": Chain(
        name="ethereum",
        chain_id=1,
        rpc_url="https://eth.llamarpc.com",
        gas_limit=100_000,
        explorer_url="https://etherscan.io",
    ),
    "sepolia": Chain(
        name="sepolia",
        chain_id=11155111,
        rpc_url="https://rpc.sepolia.org",
        gas_limit=100_000,
        explorer_url="https://sepolia.etherscan.io",
    ),
    "holesky": Chain(
        name="holesky",
        chain_id=17000,
        rpc_url="https://ethereum-holesky-rpc.publicnode.com",
        gas_limit=100_000,
        explorer_url="https://holesky.etherscan.io",
    ),
    "local": Chain(
        name="local",
        chain_id=1337,
        rpc_url="http://127.0.0.1:8545",
        gas_limit=4_000_000,
        explorer_url="",
    ),
}


def get_chain(name: str) -> Chain:
    """Get a chain by name. Raises ``KeyError`` if not found."""
    if name not in CHAINS:
        raise KeyError(
            f"Unknown chain '{name}'. Available: {list_chain_names()}"
        )
    return CHAINS[name]


def list_chain_names() -> list[str]:
    """Return the names of all known chains."""
    return list(CHAINS.keys())
