"""Token wallet storage layer -- async key-value store and Pydantic models."""

from token_wallet.storage.local import LocalStorage
from token_wallet.storage.models import Token

__all__ = [
    "LocalStorage",
    "Token",
]
