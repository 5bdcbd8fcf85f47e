"""
State management for bin pools
"""

from .bins import BinLedger, BinView
from .custody import Custody, TokenCustody, TokenSpec, parse_units
from .global_state import GlobalState
from .shares import ShareLedger, ShareTable

__all__ = [
    "BinLedger",
    "BinView",
    "Custody",
    "TokenCustody",
    "TokenSpec",
    "parse_units",
    "GlobalState",
    "ShareLedger",
    "ShareTable",
]
