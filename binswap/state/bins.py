"""
Sparse per-bin reserve ledger.

Bins are materialized the first time they are credited and never removed.
A sorted id index lets swaps jump straight to the next funded bin instead of
stepping through every empty id in between.
"""

from __future__ import annotations

from bisect import bisect_left, bisect_right, insort
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, Iterable, Iterator, List, Optional, Tuple

from ..errors import InsufficientReserveError, InvalidInputError
from .types import Amount, AssetIndex

if TYPE_CHECKING:
    from ..core.price_curve import PriceCurve

# Type alias
BinId = int

# Prior reserves of touched bins; None marks a bin that did not exist yet.
BinCheckpoint = Dict[BinId, Optional[Tuple[Amount, Amount]]]


@dataclass(frozen=True)
class BinView:
    """Read-only view of one bin; `price` is derived from the curve."""

    bin_id: BinId
    reserve0: Amount
    reserve1: Amount
    price: int

    def reserve(self, asset: AssetIndex) -> Amount:
        return self.reserve0 if asset == 0 else self.reserve1


def _require_amount(name: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise InvalidInputError(f"{name} must be an int")
    if value < 0:
        raise InvalidInputError(f"{name} must be non-negative: {value}")


class BinLedger:
    """
    Mapping bin_id -> (reserve0, reserve1).

    `credit` and `debit` are the only mutators; both keep every reserve
    non-negative.
    """

    def __init__(self, curve: PriceCurve) -> None:
        self._curve = curve
        self._reserves: Dict[BinId, Tuple[Amount, Amount]] = {}
        self._ids: List[BinId] = []

    @property
    def curve(self) -> PriceCurve:
        return self._curve

    def reserves(self, bin_id: BinId) -> Tuple[Amount, Amount]:
        """Reserves of a bin; untouched ids read as (0, 0)."""
        return self._reserves.get(bin_id, (0, 0))

    def reserve_of(self, bin_id: BinId, asset: AssetIndex) -> Amount:
        return self.reserves(bin_id)[asset]

    def get_bin(self, bin_id: BinId) -> BinView:
        reserve0, reserve1 = self.reserves(bin_id)
        return BinView(
            bin_id=bin_id,
            reserve0=reserve0,
            reserve1=reserve1,
            price=self._curve.price_from_id(bin_id),
        )

    def credit(self, bin_id: BinId, delta0: Amount, delta1: Amount) -> None:
        _require_amount("delta0", delta0)
        _require_amount("delta1", delta1)
        if delta0 == 0 and delta1 == 0:
            return
        reserve0, reserve1 = self.reserves(bin_id)
        if bin_id not in self._reserves:
            self._curve.price_from_id(bin_id)
            insort(self._ids, bin_id)
        self._reserves[bin_id] = (reserve0 + delta0, reserve1 + delta1)

    def debit(self, bin_id: BinId, delta0: Amount, delta1: Amount) -> None:
        _require_amount("delta0", delta0)
        _require_amount("delta1", delta1)
        if delta0 == 0 and delta1 == 0:
            return
        reserve0, reserve1 = self.reserves(bin_id)
        if delta0 > reserve0 or delta1 > reserve1:
            raise InsufficientReserveError(
                f"bin {bin_id}: debit ({delta0}, {delta1}) exceeds reserves ({reserve0}, {reserve1})"
            )
        self._reserves[bin_id] = (reserve0 - delta0, reserve1 - delta1)

    def next_funded_id(
        self,
        start_id: BinId,
        asset: AssetIndex,
        *,
        downward: bool,
        bound_id: BinId,
    ) -> Optional[BinId]:
        """
        First materialized id at or beyond `start_id` (in the walk direction,
        not past `bound_id`) holding a positive reserve of `asset`.
        """
        if downward:
            idx = bisect_right(self._ids, start_id) - 1
            while idx >= 0:
                bin_id = self._ids[idx]
                if bin_id < bound_id:
                    return None
                if self._reserves[bin_id][asset] > 0:
                    return bin_id
                idx -= 1
            return None

        idx = bisect_left(self._ids, start_id)
        while idx < len(self._ids):
            bin_id = self._ids[idx]
            if bin_id > bound_id:
                return None
            if self._reserves[bin_id][asset] > 0:
                return bin_id
            idx += 1
        return None

    def iter_bins(self) -> Iterator[Tuple[BinId, Amount, Amount]]:
        """Materialized bins in ascending id order."""
        for bin_id in self._ids:
            reserve0, reserve1 = self._reserves[bin_id]
            yield bin_id, reserve0, reserve1

    def total_reserves(self) -> Tuple[Amount, Amount]:
        total0 = 0
        total1 = 0
        for reserve0, reserve1 in self._reserves.values():
            total0 += reserve0
            total1 += reserve1
        return total0, total1

    def checkpoint(self, bin_ids: Iterable[BinId]) -> BinCheckpoint:
        return {bin_id: self._reserves.get(bin_id) for bin_id in bin_ids}

    def restore(self, checkpoint: BinCheckpoint) -> None:
        for bin_id, prior in checkpoint.items():
            if prior is None:
                if self._reserves.pop(bin_id, None) is not None:
                    self._ids.pop(bisect_left(self._ids, bin_id))
            else:
                if bin_id not in self._reserves:
                    insort(self._ids, bin_id)
                self._reserves[bin_id] = prior

    def verify_non_negative(self) -> bool:
        return all(r0 >= 0 and r1 >= 0 for r0, r1 in self._reserves.values())

    def __len__(self) -> int:
        return len(self._ids)

    def __repr__(self) -> str:
        return f"BinLedger({len(self._ids)} bins, bin_step={self._curve.bin_step})"
