"""
Exponential bin price curve.

    price(id) = base ** id,   base = 1 + bin_step / 10_000

Prices are Q128.128 integers quoting one unit of asset 1 in asset 0. Positive
ids are computed by binary exponentiation over a table of `base ** (2 ** k)`;
negative ids are the floored reciprocal of the positive price. The
representable range is real prices in [2**-64, 2**64), which keeps
`price(i) * price(-i)` within 2**-64 of one and the curve strictly increasing.

Algorithm Design:
- Type: Fixed-Point Integer Arithmetic / Binary Exponentiation
- Time Complexity: O(log |id|) multiplications per price
- Space Complexity: O(log max_id) precomputed powers
"""

from __future__ import annotations

from typing import List

from ..kernels.python.fixed_point_v1 import (
    BPS_DENOM,
    SCALE,
    SCALE_OFFSET,
    log2_q64,
    mul_shift_floor,
)
from ..errors import InvalidInputError, PriceRangeExceededError


PRICE_RANGE_BITS = 64
MAX_PRICE = 1 << (SCALE_OFFSET + PRICE_RANGE_BITS)  # exclusive
MIN_PRICE = 1 << (SCALE_OFFSET - PRICE_RANGE_BITS)
ONE = SCALE

_RECIPROCAL_NUMERATOR = 1 << (2 * SCALE_OFFSET)

MAX_BIN_STEP = BPS_DENOM


def price_from_ratio(numerator: int, denominator: int) -> int:
    """Encode `numerator / denominator` as a Q128.128 price (floor)."""
    if not isinstance(numerator, int) or isinstance(numerator, bool):
        raise TypeError("numerator must be an int")
    if not isinstance(denominator, int) or isinstance(denominator, bool):
        raise TypeError("denominator must be an int")
    if numerator <= 0 or denominator <= 0:
        raise ValueError("price ratio must be positive")
    return (numerator << SCALE_OFFSET) // denominator


class PriceCurve:
    """
    Pure mapping between bin ids and Q128.128 prices for one bin step.

    Holds no pool state; instances are safe to share between pairs with the
    same bin step.
    """

    def __init__(self, bin_step: int) -> None:
        if not isinstance(bin_step, int) or isinstance(bin_step, bool):
            raise TypeError("bin_step must be an int")
        if not (1 <= bin_step <= MAX_BIN_STEP):
            raise ValueError(f"bin_step must be in [1, {MAX_BIN_STEP}]: {bin_step}")

        self._bin_step = bin_step
        self._base = SCALE + (bin_step * SCALE) // BPS_DENOM
        self._log2_base = log2_q64(self._base)

        # base ** (2 ** k) for every k whose power is still representable.
        powers: List[int] = []
        p = self._base
        while p < MAX_PRICE:
            powers.append(p)
            p = mul_shift_floor(p, p)
        self._powers = powers

        self._max_id = self._search_max_id()

    @property
    def bin_step(self) -> int:
        return self._bin_step

    @property
    def base(self) -> int:
        return self._base

    @property
    def max_id(self) -> int:
        return self._max_id

    @property
    def min_id(self) -> int:
        return -self._max_id

    def _positive_price(self, magnitude: int) -> int:
        """base ** magnitude, or MAX_PRICE when it is not representable."""
        if magnitude >> len(self._powers):
            return MAX_PRICE
        result = ONE
        k = 0
        while magnitude:
            if magnitude & 1:
                result = mul_shift_floor(result, self._powers[k])
                if result >= MAX_PRICE:
                    return MAX_PRICE
            magnitude >>= 1
            k += 1
        return result

    def _search_max_id(self) -> int:
        lo, hi = 0, (1 << len(self._powers)) - 1
        while lo < hi:
            mid = (lo + hi + 1) // 2
            if self._positive_price(mid) < MAX_PRICE:
                lo = mid
            else:
                hi = mid - 1
        return lo

    def price_from_id(self, bin_id: int) -> int:
        """
        Price of a bin.

        Args:
            bin_id: Signed bin identifier

        Returns:
            Q128.128 price, strictly increasing in `bin_id`

        Raises:
            PriceRangeExceededError: If the price is outside [2**-64, 2**64)
        """
        if not isinstance(bin_id, int) or isinstance(bin_id, bool):
            raise InvalidInputError(f"bin_id must be an int: {bin_id!r}")

        magnitude = -bin_id if bin_id < 0 else bin_id
        if magnitude > self._max_id:
            kind = "overflow" if bin_id > 0 else "underflow"
            raise PriceRangeExceededError(
                f"price {kind}: bin_id {bin_id} outside [{self.min_id}, {self.max_id}]"
            )

        price = self._positive_price(magnitude)
        if bin_id < 0:
            price = _RECIPROCAL_NUMERATOR // price
        return price

    def id_from_price(self, price: int) -> int:
        """
        Largest bin id whose price does not exceed `price`.

        A fixed-point log2 gives the estimate; exact price comparisons settle
        the last step, so `id_from_price(price_from_id(i)) == i`.

        Raises:
            PriceRangeExceededError: If no representable bin satisfies the bound
        """
        if not isinstance(price, int) or isinstance(price, bool):
            raise InvalidInputError(f"price must be an int: {price!r}")
        if price <= 0:
            raise InvalidInputError(f"price must be positive: {price}")
        if price >= MAX_PRICE:
            raise PriceRangeExceededError(f"price overflow: {price} >= {MAX_PRICE}")
        if price < self.price_from_id(self.min_id):
            raise PriceRangeExceededError(f"price underflow: {price} below lowest bin price")

        estimate = log2_q64(price) // self._log2_base
        bin_id = max(self.min_id, min(self.max_id, estimate))

        while bin_id < self.max_id and self.price_from_id(bin_id + 1) <= price:
            bin_id += 1
        while self.price_from_id(bin_id) > price:
            bin_id -= 1
        return bin_id

    def __repr__(self) -> str:
        return f"PriceCurve(bin_step={self._bin_step}, ids=[{self.min_id}, {self.max_id}])"
