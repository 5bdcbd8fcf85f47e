"""Exception types for the bin pool engine.

Every error aborts the whole operation; the pair restores any touched state
before re-raising.
"""

from __future__ import annotations


class BinPoolError(Exception):
    """Base class for all engine errors."""


class InvalidInputError(BinPoolError, ValueError):
    """Raised for malformed amounts, ids or swap requests, or unfunded deposits."""


class PriceRangeExceededError(BinPoolError):
    """Raised when a bin id or price lies outside the representable curve."""


class InsufficientReserveError(BinPoolError):
    """Raised when a debit would drive a bin reserve negative."""


class InsufficientLiquidityError(BinPoolError):
    """Raised when a swap cannot be filled within its traversal bound."""


class UnauthorizedRedeemError(BinPoolError):
    """Raised when a burn asks for more shares than the sender holds."""


class InvariantViolationError(BinPoolError):
    """Raised when a post-state violates one or more invariants."""

    def __init__(self, violations: list[str]) -> None:
        self.violations = violations
        super().__init__(f"invariant violations: {', '.join(violations)}")
