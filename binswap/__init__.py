"""
binswap: a liquidity-bin automated market maker.

Liquidity sits in discrete price bins on an exponential curve; swaps walk the
bins outward from the active one.
"""

from .core import LiquidityBinPair, PairConfig, PriceCurve, PriceLimitPolicy
from .errors import (
    BinPoolError,
    InsufficientLiquidityError,
    InsufficientReserveError,
    InvalidInputError,
    InvariantViolationError,
    PriceRangeExceededError,
    UnauthorizedRedeemError,
)
from .state import ShareTable, TokenCustody, TokenSpec

__version__ = "0.1.0"

__all__ = [
    "LiquidityBinPair",
    "PairConfig",
    "PriceCurve",
    "PriceLimitPolicy",
    "BinPoolError",
    "InsufficientLiquidityError",
    "InsufficientReserveError",
    "InvalidInputError",
    "InvariantViolationError",
    "PriceRangeExceededError",
    "UnauthorizedRedeemError",
    "ShareTable",
    "TokenCustody",
    "TokenSpec",
]
