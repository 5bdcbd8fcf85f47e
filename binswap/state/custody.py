"""
Custody adapter: token balances and precision normalization.

The engine works in one internal precision (`internal_decimals`). Each token
keeps its own native decimals; conversion into the engine multiplies by
`10 ** (internal_decimals - decimals)`, conversion out floors. Truncated dust
stays with the pool account.

Funds follow a pre-funded pull model: callers move tokens to the pool account
first, then invoke mint or swap, which read `pool_balance()`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Protocol, Tuple

from .types import Amount, AssetIndex, Holder


DEFAULT_INTERNAL_DECIMALS = 18
POOL_ACCOUNT = "pool"


class Custody(Protocol):
    def pool_balance(self, asset: AssetIndex) -> Amount: ...

    def quantum(self, asset: AssetIndex) -> Amount: ...

    def pay(self, recipient: Holder, asset: AssetIndex, amount: Amount) -> None: ...

    def reclaim(self, holder: Holder, asset: AssetIndex, amount: Amount) -> None: ...


@dataclass(frozen=True)
class TokenSpec:
    symbol: str
    decimals: int

    def __post_init__(self) -> None:
        if not isinstance(self.symbol, str) or not self.symbol:
            raise ValueError("symbol must be a non-empty string")
        if not isinstance(self.decimals, int) or isinstance(self.decimals, bool):
            raise TypeError("decimals must be an int")
        if not (0 <= self.decimals <= 36):
            raise ValueError(f"decimals must be in [0, 36]: {self.decimals}")


def parse_units(value: str, decimals: int) -> Amount:
    """
    Parse a decimal string into integer units, e.g. ("1.5", 6) -> 1_500_000.

    Raises:
        ValueError: If the string has more fractional digits than `decimals`
    """
    if not isinstance(value, str) or not value.strip():
        raise ValueError("value must be a non-empty decimal string")
    text = value.strip()
    if text.startswith("-"):
        raise ValueError(f"value must be non-negative: {value}")
    whole, _, frac = text.partition(".")
    if not (whole or frac) or not (whole + frac).isdigit():
        raise ValueError(f"invalid decimal string: {value!r}")
    if len(frac) > decimals:
        raise ValueError(f"too many decimal places for {decimals} decimals: {value}")
    return int(whole or "0") * 10**decimals + int(frac.ljust(decimals, "0") or "0")


class TokenCustody:
    """
    In-memory two-token custody for one pair.

    Balances are stored in native units; `pool_balance` and `pay` speak the
    engine's internal units.
    """

    def __init__(
        self,
        token0: TokenSpec,
        token1: TokenSpec,
        *,
        internal_decimals: int = DEFAULT_INTERNAL_DECIMALS,
        pool_account: Holder = POOL_ACCOUNT,
    ) -> None:
        if not isinstance(internal_decimals, int) or isinstance(internal_decimals, bool):
            raise TypeError("internal_decimals must be an int")
        for token in (token0, token1):
            if token.decimals > internal_decimals:
                raise ValueError(
                    f"{token.symbol} has more decimals ({token.decimals}) than internal precision ({internal_decimals})"
                )
        self._tokens: Tuple[TokenSpec, TokenSpec] = (token0, token1)
        self._internal_decimals = internal_decimals
        self._pool_account = pool_account
        # (holder, asset) -> native amount; zero balances are dropped.
        self._balances: Dict[Tuple[Holder, AssetIndex], Amount] = {}

    @property
    def pool_account(self) -> Holder:
        return self._pool_account

    @property
    def internal_decimals(self) -> int:
        return self._internal_decimals

    def token(self, asset: AssetIndex) -> TokenSpec:
        if asset not in (0, 1):
            raise ValueError(f"asset must be 0 or 1: {asset!r}")
        return self._tokens[asset]

    def _scale(self, asset: AssetIndex) -> int:
        return 10 ** (self._internal_decimals - self.token(asset).decimals)

    def to_internal(self, asset: AssetIndex, native_amount: Amount) -> Amount:
        if native_amount < 0:
            raise ValueError(f"amount must be non-negative: {native_amount}")
        return native_amount * self._scale(asset)

    def to_native(self, asset: AssetIndex, internal_amount: Amount) -> Amount:
        if internal_amount < 0:
            raise ValueError(f"amount must be non-negative: {internal_amount}")
        return internal_amount // self._scale(asset)

    def balance_of(self, holder: Holder, asset: AssetIndex) -> Amount:
        """Native balance of a holder."""
        self.token(asset)
        return self._balances.get((holder, asset), 0)

    def _adjust(self, holder: Holder, asset: AssetIndex, delta: int) -> None:
        new_balance = self._balances.get((holder, asset), 0) + delta
        if new_balance < 0:
            raise ValueError(f"insufficient {self._tokens[asset].symbol} balance for {holder}: short by {-new_balance}")
        if new_balance == 0:
            self._balances.pop((holder, asset), None)
        else:
            self._balances[(holder, asset)] = new_balance

    def mint(self, holder: Holder, asset: AssetIndex, native_amount: Amount) -> None:
        """Create native tokens out of thin air (test and demo faucet)."""
        self.token(asset)
        if native_amount < 0:
            raise ValueError(f"amount must be non-negative: {native_amount}")
        self._adjust(holder, asset, native_amount)

    def transfer(self, sender: Holder, recipient: Holder, asset: AssetIndex, native_amount: Amount) -> None:
        self.token(asset)
        if native_amount < 0:
            raise ValueError(f"amount must be non-negative: {native_amount}")
        self._adjust(sender, asset, -native_amount)
        self._adjust(recipient, asset, native_amount)

    def fund_pool(self, asset: AssetIndex, native_amount: Amount) -> None:
        """Mint native tokens straight into the pool account."""
        self.mint(self._pool_account, asset, native_amount)

    def pool_balance(self, asset: AssetIndex) -> Amount:
        return self.to_internal(asset, self.balance_of(self._pool_account, asset))

    def quantum(self, asset: AssetIndex) -> Amount:
        """Smallest internal amount that maps to a whole native unit."""
        return self._scale(asset)

    def pay(self, recipient: Holder, asset: AssetIndex, amount: Amount) -> None:
        """Pay an internal amount out of the pool, floored to native units."""
        native = self.to_native(asset, amount)
        if native:
            self.transfer(self._pool_account, recipient, asset, native)

    def reclaim(self, holder: Holder, asset: AssetIndex, amount: Amount) -> None:
        """Undo a `pay` of the same internal amount made earlier in the same call."""
        native = self.to_native(asset, amount)
        if native:
            self.transfer(holder, self._pool_account, asset, native)

    def __repr__(self) -> str:
        t0, t1 = self._tokens
        return f"TokenCustody({t0.symbol}/{t1.symbol}, internal_decimals={self._internal_decimals})"
