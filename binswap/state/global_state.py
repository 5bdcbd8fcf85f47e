"""Aggregate pool state and the invariants tying it to the bin ledger.

Each `inv_*` function returns True when its invariant holds, and
`check_all()` returns the list of violated invariant ids (empty = all pass).
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Callable, List, Optional, Tuple

from .types import Amount, AssetIndex
from .bins import BinLedger
from .custody import Custody


@dataclass(frozen=True)
class GlobalState:
    """
    Pool-wide totals and the active bin cursor.

    Attributes:
        reserve0: Sum of reserve0 over all bins
        reserve1: Sum of reserve1 over all bins
        current_id: Bin most recently touched by a swap (next walk starts here)
    """

    reserve0: Amount = 0
    reserve1: Amount = 0
    current_id: int = 0

    def __post_init__(self) -> None:
        for name, v in (("reserve0", self.reserve0), ("reserve1", self.reserve1), ("current_id", self.current_id)):
            if not isinstance(v, int) or isinstance(v, bool):
                raise TypeError(f"{name} must be an int")
        if self.reserve0 < 0 or self.reserve1 < 0:
            raise ValueError(f"Reserves must be non-negative: ({self.reserve0}, {self.reserve1})")

    def reserve(self, asset: AssetIndex) -> Amount:
        return self.reserve0 if asset == 0 else self.reserve1

    def with_deltas(self, delta0: int, delta1: int, current_id: Optional[int] = None) -> "GlobalState":
        return replace(
            self,
            reserve0=self.reserve0 + delta0,
            reserve1=self.reserve1 + delta1,
            current_id=self.current_id if current_id is None else current_id,
        )

    def as_tuple(self) -> Tuple[Amount, Amount, int]:
        return self.reserve0, self.reserve1, self.current_id


def inv_totals_match_bins(state: GlobalState, ledger: BinLedger, custody: Optional[Custody]) -> bool:
    return ledger.total_reserves() == (state.reserve0, state.reserve1)


def inv_bins_non_negative(state: GlobalState, ledger: BinLedger, custody: Optional[Custody]) -> bool:
    return ledger.verify_non_negative()


def inv_custody_covers_reserves(state: GlobalState, ledger: BinLedger, custody: Optional[Custody]) -> bool:
    if custody is None:
        return True
    return custody.pool_balance(0) >= state.reserve0 and custody.pool_balance(1) >= state.reserve1


_INVARIANTS: List[Tuple[str, Callable[[GlobalState, BinLedger, Optional[Custody]], bool]]] = [
    ("totals_match_bins", inv_totals_match_bins),
    ("bins_non_negative", inv_bins_non_negative),
    ("custody_covers_reserves", inv_custody_covers_reserves),
]


def check_all(state: GlobalState, ledger: BinLedger, custody: Optional[Custody] = None) -> List[str]:
    """Return the ids of every violated invariant."""
    return [name for name, fn in _INVARIANTS if not fn(state, ledger, custody)]
