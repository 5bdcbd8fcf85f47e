"""
Multi-bin swap traversal.

A swap walks bins outward from `current_id`: asking for asset 0 walks toward
lower ids, asking for asset 1 walks toward higher ids. Each funded bin is
priced by the curve and traded by the single-bin kernel; empty ids are jumped
over through the ledger's sorted index.

Both quoting and execution use the functions here, so a quote and the swap
that follows it walk the same bins and charge the same amounts.

Algorithm Design:
- Type: Greedy walk over a sorted sparse index
- Time Complexity: O(F log B + F log |id|) for F funded bins visited, B materialized bins
- Space Complexity: O(F) fills
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import List, Tuple

from ..errors import InvalidInputError
from ..kernels.python.bin_swap_v1 import swap_exact_in_in_bin, swap_exact_out_in_bin
from ..state.types import Amount, AssetIndex
from ..state.bins import BinLedger
from ..state.global_state import GlobalState
from .config import PairConfig
from .price_curve import MAX_PRICE, PriceCurve


@dataclass(frozen=True)
class BinFill:
    """What one bin contributed to a swap (gross input, fee included)."""

    bin_id: int
    amount_in: Amount
    amount_out: Amount
    fee: Amount


@dataclass(frozen=True)
class SwapQuote:
    """
    Result of walking the bins for one request, without mutating anything.

    `amount_in` is the exact input a swap for `amount_out` will require.
    `filled` is False when the walk hit its bound (price limit, span cap or the
    last funded bin) before the request was satisfied.
    """

    asset_in: AssetIndex
    asset_out: AssetIndex
    amount_in: Amount
    amount_out: Amount
    fee_total: Amount
    fills: Tuple[BinFill, ...]
    start_id: int
    end_id: int
    bound_id: int
    filled: bool

    @property
    def amount0_in(self) -> Amount:
        return self.amount_in if self.asset_in == 0 else 0

    @property
    def amount1_in(self) -> Amount:
        return self.amount_in if self.asset_in == 1 else 0

    @property
    def amount0_out(self) -> Amount:
        return self.amount_out if self.asset_out == 0 else 0

    @property
    def amount1_out(self) -> Amount:
        return self.amount_out if self.asset_out == 1 else 0


def _require_asset(name: str, asset: int) -> None:
    if asset not in (0, 1) or isinstance(asset, bool):
        raise InvalidInputError(f"{name} must be 0 or 1: {asset!r}")


def _require_positive(name: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise InvalidInputError(f"{name} must be an int")
    if value <= 0:
        raise InvalidInputError(f"{name} must be positive: {value}")


def _limit_id(curve: PriceCurve, price_limit: int, *, downward: bool) -> int:
    """Furthest id a walk may reach under `price_limit` (may lie outside the curve)."""
    if price_limit >= MAX_PRICE:
        return curve.max_id + 1 if downward else curve.max_id
    if price_limit < curve.price_from_id(curve.min_id):
        return curve.min_id if downward else curve.min_id - 1

    floor_id = curve.id_from_price(price_limit)
    if downward and curve.price_from_id(floor_id) < price_limit:
        return floor_id + 1
    return floor_id


def traversal_bound(
    curve: PriceCurve,
    start_id: int,
    asset_out: AssetIndex,
    *,
    price_limit: int,
    max_bin_span: int,
) -> int:
    """
    Last id a walk from `start_id` may visit.

    The span cap and the optional price limit (0 = none) are composed by
    taking whichever is tighter. Walking down, bins priced below the limit are
    excluded; walking up, bins priced above it are.
    """
    if not isinstance(price_limit, int) or isinstance(price_limit, bool) or price_limit < 0:
        raise InvalidInputError(f"price_limit must be a non-negative int: {price_limit!r}")

    downward = asset_out == 0
    if downward:
        bound = max(start_id - max_bin_span, curve.min_id)
        if price_limit:
            bound = max(bound, _limit_id(curve, price_limit, downward=True))
    else:
        bound = min(start_id + max_bin_span, curve.max_id)
        if price_limit:
            bound = min(bound, _limit_id(curve, price_limit, downward=False))
    return bound


def _walk(
    ledger: BinLedger,
    config: PairConfig,
    *,
    start_id: int,
    bound_id: int,
    asset_out: AssetIndex,
    amount: Amount,
    exact_in: bool,
) -> Tuple[List[BinFill], bool]:
    downward = asset_out == 0
    step = -1 if downward else 1
    curve = ledger.curve

    fills: List[BinFill] = []
    remaining = amount
    cursor = start_id
    while remaining > 0:
        bin_id = ledger.next_funded_id(cursor, asset_out, downward=downward, bound_id=bound_id)
        if bin_id is None:
            return fills, False

        reserve_out = ledger.reserve_of(bin_id, asset_out)
        price = curve.price_from_id(bin_id)
        if exact_in:
            res = swap_exact_in_in_bin(
                reserve_out=reserve_out,
                amount_in=remaining,
                price=price,
                asset_out=asset_out,
                fee_bps=config.fee_bps,
            )
            if res.amount_out == 0:
                # Input left over is worth less than one unit of this bin.
                return fills, True
            remaining -= res.amount_in
        else:
            res = swap_exact_out_in_bin(
                reserve_out=reserve_out,
                amount_out=remaining,
                price=price,
                asset_out=asset_out,
                fee_bps=config.fee_bps,
            )
            remaining -= res.amount_out

        fills.append(BinFill(bin_id=bin_id, amount_in=res.amount_in, amount_out=res.amount_out, fee=res.fee))
        if not res.exhausted:
            return fills, True
        cursor = bin_id + step

    return fills, True


def _quote(
    *,
    asset_out: AssetIndex,
    start_id: int,
    bound_id: int,
    fills: List[BinFill],
    filled: bool,
) -> SwapQuote:
    return SwapQuote(
        asset_in=1 - asset_out,
        asset_out=asset_out,
        amount_in=sum(f.amount_in for f in fills),
        amount_out=sum(f.amount_out for f in fills),
        fee_total=sum(f.fee for f in fills),
        fills=tuple(fills),
        start_id=start_id,
        end_id=fills[-1].bin_id if fills else start_id,
        bound_id=bound_id,
        filled=filled,
    )


def quote_exact_out(
    ledger: BinLedger,
    state: GlobalState,
    config: PairConfig,
    *,
    asset_out: AssetIndex,
    amount_out: Amount,
    price_limit: int = 0,
    input_quantum: Amount = 1,
) -> SwapQuote:
    """
    Input required to receive exactly `amount_out` of `asset_out`.

    Args:
        ledger: Bin reserves (read only)
        state: Global state; the walk starts at `state.current_id`
        config: Pair config (fee, span cap)
        asset_out: 0 or 1
        amount_out: Requested output
        price_limit: Q128.128 bound on visited bin prices, 0 for none
        input_quantum: The input is rounded up to a multiple of this, so a
            caller that can only move whole native units can fund it exactly.
            The rounding goes to the last bin as fee.

    Returns:
        SwapQuote; `filled` is False if the bound was reached first
    """
    _require_asset("asset_out", asset_out)
    _require_positive("amount_out", amount_out)
    _require_positive("input_quantum", input_quantum)

    start_id = state.current_id
    bound_id = traversal_bound(
        ledger.curve, start_id, asset_out, price_limit=price_limit, max_bin_span=config.max_bin_span
    )
    fills, _ = _walk(
        ledger, config, start_id=start_id, bound_id=bound_id, asset_out=asset_out, amount=amount_out, exact_in=False
    )
    if fills and input_quantum > 1:
        total_in = sum(f.amount_in for f in fills)
        dust = -(-total_in // input_quantum) * input_quantum - total_in
        if dust:
            last = fills[-1]
            fills[-1] = replace(last, amount_in=last.amount_in + dust, fee=last.fee + dust)
    quote = _quote(asset_out=asset_out, start_id=start_id, bound_id=bound_id, fills=fills, filled=False)
    if quote.amount_out == amount_out:
        quote = _quote(asset_out=asset_out, start_id=start_id, bound_id=bound_id, fills=fills, filled=True)
    return quote


def quote_exact_in(
    ledger: BinLedger,
    state: GlobalState,
    config: PairConfig,
    *,
    asset_in: AssetIndex,
    amount_in: Amount,
    price_limit: int = 0,
) -> SwapQuote:
    """
    Largest output obtainable for at most `amount_in` of `asset_in`.

    The quote's `amount_in` is what a swap for the quoted output will charge,
    which never exceeds the supplied input.
    """
    _require_asset("asset_in", asset_in)
    _require_positive("amount_in", amount_in)

    asset_out = 1 - asset_in
    start_id = state.current_id
    bound_id = traversal_bound(
        ledger.curve, start_id, asset_out, price_limit=price_limit, max_bin_span=config.max_bin_span
    )
    fills, filled = _walk(
        ledger, config, start_id=start_id, bound_id=bound_id, asset_out=asset_out, amount=amount_in, exact_in=True
    )
    return _quote(asset_out=asset_out, start_id=start_id, bound_id=bound_id, fills=fills, filled=filled)
