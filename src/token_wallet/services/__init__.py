"""Application services: ERC20 tokens, wizard routing and access checks."""

from token_wallet.services.access import Part4ValidationService, PartValidationService
from token_wallet.services.erc20 import Erc20Service
from token_wallet.services.route import RouteService

__all__ = [
    "Erc20Service",
    "Part4ValidationService",
    "PartValidationService",
    "RouteService",
]
