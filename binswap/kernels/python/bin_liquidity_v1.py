"""
Per-bin share kernel (v1 semantics).

Value is measured in asset-0 units scaled by 2**128, at the bin's own price:

    value = amount0 * 2**128 + amount1 * price

First deposit into a bin with no outstanding shares mints one share per unit of
value. Later deposits mint `value * supply // existing_value`, which preserves
the value per share. Redemptions floor every output.
"""

from __future__ import annotations

from dataclasses import dataclass

from .fixed_point_v1 import SCALE, SCALE_OFFSET


def _require_int(name: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")


@dataclass(frozen=True)
class MintSharesResult:
    shares: int


@dataclass(frozen=True)
class BurnSharesResult:
    amount0_out: int
    amount1_out: int


def bin_value(*, amount0: int, amount1: int, price: int) -> int:
    _require_int("amount0", amount0)
    _require_int("amount1", amount1)
    _require_int("price", price)
    if amount0 < 0 or amount1 < 0:
        raise ValueError("amounts must be non-negative")
    if price <= 0:
        raise ValueError("price must be positive")
    return amount0 * SCALE + amount1 * price


def mint_shares(
    *,
    reserve0: int,
    reserve1: int,
    total_supply: int,
    amount0: int,
    amount1: int,
    price: int,
) -> MintSharesResult:
    for name, v in (
        ("reserve0", reserve0),
        ("reserve1", reserve1),
        ("total_supply", total_supply),
    ):
        _require_int(name, v)
        if v < 0:
            raise ValueError(f"{name} must be non-negative")

    deposit_value = bin_value(amount0=amount0, amount1=amount1, price=price)
    if deposit_value == 0:
        raise ValueError("deposit must be non-zero")

    existing_value = bin_value(amount0=reserve0, amount1=reserve1, price=price)
    if total_supply == 0 or existing_value == 0:
        # Any stranded reserves in a share-less bin go to the new depositor.
        shares = deposit_value >> SCALE_OFFSET
    else:
        shares = (deposit_value * total_supply) // existing_value

    if shares <= 0:
        raise ValueError("deposit too small to mint shares")

    return MintSharesResult(shares=shares)


def burn_shares(
    *,
    reserve0: int,
    reserve1: int,
    total_supply: int,
    shares: int,
) -> BurnSharesResult:
    for name, v in (
        ("reserve0", reserve0),
        ("reserve1", reserve1),
        ("total_supply", total_supply),
        ("shares", shares),
    ):
        _require_int(name, v)
    if reserve0 < 0 or reserve1 < 0:
        raise ValueError("reserves must be non-negative")
    if shares <= 0:
        raise ValueError("shares must be positive")
    if shares > total_supply:
        raise ValueError(f"cannot burn more shares than supply: {shares} > {total_supply}")

    amount0_out = (reserve0 * shares) // total_supply
    amount1_out = (reserve1 * shares) // total_supply

    return BurnSharesResult(amount0_out=amount0_out, amount1_out=amount1_out)
