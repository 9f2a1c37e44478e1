"""Pydantic models for the records the wallet tracks."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class Token(BaseModel):
    """An ERC20 token the user follows.

    Only ``address`` survives persistence; the other fields are refetched
    from the chain after a reload.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    address: str = Field(frozen=True)
    name: Optional[str] = None
    balance: Optional[str] = None  # raw integer units, as a decimal string
    decimals: Optional[int] = None
    # Handle of the Transfer event subscription, never persisted.
    event_emitter: Optional[Any] = Field(default=None, exclude=True, repr=False)

    def to_storage(self) -> dict:
        return {"address": self.address}
