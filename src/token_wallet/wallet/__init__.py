"""Ethereum wallet plumbing for the token wallet.

Provides the encrypted keystore and active-account lookup, the chain table,
and the async Web3 adapter used to read contracts, send transactions, and
follow contract events.
"""
