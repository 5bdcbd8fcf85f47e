"""
Fixed-point kernel (v1 semantics).

Prices are unsigned Q128.128 integers: the real value of `x` is `x / 2**128`.
Logarithms are returned as signed Q64.64 integers.

All rounding is explicit:
- `mul_div_floor` / `mul_div_ceil` for amount conversions,
- `mul_shift_floor` for Q128 products (used when building price tables).
"""

from __future__ import annotations


SCALE_OFFSET = 128
SCALE = 1 << SCALE_OFFSET

LOG_FRACTION_BITS = 64
LOG_ONE = 1 << LOG_FRACTION_BITS

BPS_DENOM = 10_000


def _require_int(name: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")


def ceil_div_nonneg(numerator: int, denominator: int) -> int:
    if denominator <= 0:
        raise ValueError("denominator must be positive")
    if numerator < 0:
        raise ValueError("numerator must be non-negative")
    return (numerator + denominator - 1) // denominator


def mul_div_floor(a: int, b: int, denominator: int) -> int:
    """`floor(a * b / denominator)` for non-negative operands."""
    _require_int("a", a)
    _require_int("b", b)
    _require_int("denominator", denominator)
    if a < 0 or b < 0:
        raise ValueError("operands must be non-negative")
    if denominator <= 0:
        raise ValueError("denominator must be positive")
    return (a * b) // denominator


def mul_div_ceil(a: int, b: int, denominator: int) -> int:
    """`ceil(a * b / denominator)` for non-negative operands."""
    _require_int("a", a)
    _require_int("b", b)
    _require_int("denominator", denominator)
    if a < 0 or b < 0:
        raise ValueError("operands must be non-negative")
    return ceil_div_nonneg(a * b, denominator)


def mul_shift_floor(x: int, y: int) -> int:
    """Q128 product: `floor(x * y / 2**128)`."""
    return (x * y) >> SCALE_OFFSET


def log2_q64(x: int) -> int:
    """
    Binary logarithm of a positive Q128.128 value, as a signed Q64.64 integer.

    Integer part from the bit length, fractional bits by repeated squaring of
    the mantissa normalized into [1, 2). The result is floored to 2**-64.
    """
    _require_int("x", x)
    if x <= 0:
        raise ValueError("log2 is undefined for non-positive values")

    msb = x.bit_length() - 1
    result = (msb - SCALE_OFFSET) << LOG_FRACTION_BITS

    # Mantissa in Q127: y / 2**127 in [1, 2).
    if msb >= 127:
        y = x >> (msb - 127)
    else:
        y = x << (127 - msb)

    two = 1 << 128
    bit = LOG_ONE >> 1
    while bit > 0:
        y = (y * y) >> 127
        if y >= two:
            result += bit
            y >>= 1
        bit >>= 1
    return result
