"""
Core bin pool algorithms
"""

from .config import PairConfig, PriceLimitPolicy, load_pair_config, pair_config_from_mapping
from .price_curve import MAX_PRICE, MIN_PRICE, ONE, PriceCurve, price_from_ratio
from .liquidity import BinDeposit, BinWithdrawal, BurnPlan, MintPlan, plan_burn, plan_mint
from .swap import BinFill, SwapQuote, quote_exact_in, quote_exact_out, traversal_bound
from .pair import BurnResult, LiquidityBinPair, MintResult, SwapResult

__all__ = [
    "PairConfig",
    "PriceLimitPolicy",
    "load_pair_config",
    "pair_config_from_mapping",
    "MAX_PRICE",
    "MIN_PRICE",
    "ONE",
    "PriceCurve",
    "price_from_ratio",
    "BinDeposit",
    "BinWithdrawal",
    "BurnPlan",
    "MintPlan",
    "plan_burn",
    "plan_mint",
    "BinFill",
    "SwapQuote",
    "quote_exact_in",
    "quote_exact_out",
    "traversal_bound",
    "BurnResult",
    "LiquidityBinPair",
    "MintResult",
    "SwapResult",
]
