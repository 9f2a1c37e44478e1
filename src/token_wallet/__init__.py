"""Token Wallet - track ERC20 tokens, check balances, and send transfers."""

__version__ = "0.1.0"
