"""
Single-bin swap kernel (v1 semantics).

A bin trades at one constant price. Prices are Q128.128 and quote one unit of
asset 1 in units of asset 0:

    asset 0 out  ->  net_in (asset 1) = ceil(amount_out * 2**128 / price)
    asset 1 out  ->  net_in (asset 0) = ceil(amount_out * price / 2**128)

The fee is charged on the *gross* input and stays in the bin:

    gross_in = ceil(net_in * 10_000 / (10_000 - fee_bps))
    fee      = gross_in - net_in

Exact-in steps use the matching floor rules, so the exact-out cost of an
exact-in result never exceeds the supplied input.
"""

from __future__ import annotations

from dataclasses import dataclass

from .fixed_point_v1 import BPS_DENOM, SCALE, ceil_div_nonneg, mul_div_ceil, mul_div_floor


def _require_int(name: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")


def _require_asset(asset_out: int) -> None:
    if asset_out not in (0, 1) or isinstance(asset_out, bool):
        raise ValueError(f"asset_out must be 0 or 1: {asset_out!r}")


def _require_fee_bps(fee_bps: int) -> None:
    _require_int("fee_bps", fee_bps)
    if not (0 <= fee_bps < BPS_DENOM):
        raise ValueError(f"fee_bps must be in [0, {BPS_DENOM}): {fee_bps}")


def _require_price(price: int) -> None:
    _require_int("price", price)
    if price <= 0:
        raise ValueError(f"price must be positive: {price}")


@dataclass(frozen=True)
class BinSwapResult:
    amount_in: int
    amount_out: int
    fee: int
    net_in: int
    exhausted: bool


def compute_gross_in(*, net_in: int, fee_bps: int) -> int:
    """`ceil(net_in * 10_000 / (10_000 - fee_bps))`."""
    _require_int("net_in", net_in)
    _require_fee_bps(fee_bps)
    if net_in < 0:
        raise ValueError("net_in must be non-negative")
    return ceil_div_nonneg(net_in * BPS_DENOM, BPS_DENOM - fee_bps)


def compute_net_in(*, gross_in: int, fee_bps: int) -> int:
    """`floor(gross_in * (10_000 - fee_bps) / 10_000)`."""
    _require_int("gross_in", gross_in)
    _require_fee_bps(fee_bps)
    if gross_in < 0:
        raise ValueError("gross_in must be non-negative")
    return (gross_in * (BPS_DENOM - fee_bps)) // BPS_DENOM


def net_in_for_out(*, amount_out: int, price: int, asset_out: int) -> int:
    """Input (before fee) needed to take `amount_out` from a bin, rounded up."""
    _require_asset(asset_out)
    _require_price(price)
    if asset_out == 0:
        return mul_div_ceil(amount_out, SCALE, price)
    return mul_div_ceil(amount_out, price, SCALE)


def out_for_net_in(*, net_in: int, price: int, asset_out: int) -> int:
    """Output bought by `net_in` (after fee) at a bin price, rounded down."""
    _require_asset(asset_out)
    _require_price(price)
    if asset_out == 0:
        return mul_div_floor(net_in, price, SCALE)
    return mul_div_floor(net_in, SCALE, price)


def swap_exact_out_in_bin(
    *,
    reserve_out: int,
    amount_out: int,
    price: int,
    asset_out: int,
    fee_bps: int,
) -> BinSwapResult:
    """
    Take up to `amount_out` from one bin.

    The bin supplies `min(amount_out, reserve_out)`; `exhausted` reports whether
    the bin's output reserve was fully consumed.
    """
    _require_int("reserve_out", reserve_out)
    _require_int("amount_out", amount_out)
    if reserve_out < 0:
        raise ValueError(f"reserve_out must be non-negative: {reserve_out}")
    if amount_out <= 0:
        raise ValueError(f"amount_out must be positive: {amount_out}")

    taken = min(amount_out, reserve_out)
    if taken == 0:
        return BinSwapResult(amount_in=0, amount_out=0, fee=0, net_in=0, exhausted=True)

    net_in = net_in_for_out(amount_out=taken, price=price, asset_out=asset_out)
    gross_in = compute_gross_in(net_in=net_in, fee_bps=fee_bps)
    return BinSwapResult(
        amount_in=gross_in,
        amount_out=taken,
        fee=gross_in - net_in,
        net_in=net_in,
        exhausted=taken == reserve_out,
    )


def swap_exact_in_in_bin(
    *,
    reserve_out: int,
    amount_in: int,
    price: int,
    asset_out: int,
    fee_bps: int,
) -> BinSwapResult:
    """
    Spend up to `amount_in` (gross) in one bin.

    If the input covers the whole bin, the bin is consumed at its exact-out
    cost and the rest of the input is left for the next bin. Otherwise the
    output is floored and `amount_in` reports only what that output costs.
    """
    _require_int("reserve_out", reserve_out)
    _require_int("amount_in", amount_in)
    if reserve_out < 0:
        raise ValueError(f"reserve_out must be non-negative: {reserve_out}")
    if amount_in <= 0:
        raise ValueError(f"amount_in must be positive: {amount_in}")

    if reserve_out == 0:
        return BinSwapResult(amount_in=0, amount_out=0, fee=0, net_in=0, exhausted=True)

    full = swap_exact_out_in_bin(
        reserve_out=reserve_out,
        amount_out=reserve_out,
        price=price,
        asset_out=asset_out,
        fee_bps=fee_bps,
    )
    if amount_in >= full.amount_in:
        return full

    net_available = compute_net_in(gross_in=amount_in, fee_bps=fee_bps)
    amount_out = out_for_net_in(net_in=net_available, price=price, asset_out=asset_out)
    if amount_out >= reserve_out:
        # Unreachable while costs are monotone; fail closed rather than over-deliver.
        raise ValueError("exact-in step would drain the bin below its exact-out cost")
    if amount_out == 0:
        return BinSwapResult(amount_in=0, amount_out=0, fee=0, net_in=0, exhausted=False)

    net_in = net_in_for_out(amount_out=amount_out, price=price, asset_out=asset_out)
    gross_in = compute_gross_in(net_in=net_in, fee_bps=fee_bps)
    if gross_in > amount_in:
        raise ValueError("exact-in step cost exceeds supplied input")
    return BinSwapResult(
        amount_in=gross_in,
        amount_out=amount_out,
        fee=gross_in - net_in,
        net_in=net_in,
        exhausted=False,
    )
