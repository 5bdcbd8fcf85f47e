"""
Liquidity bin pair: one pool of two assets spread over discrete price bins.

The pair owns the bin ledger and the global state. Share ownership and token
custody are injected collaborators. Every mutating call follows the same
shape:

    plan   = pure computation over current state
    checks = share balances, pre-funded custody, reserve sufficiency
    apply  = ledger and state writes under a checkpoint, then external effects

Any exception raised while applying restores the touched bins, the global
state, moved shares and payouts already made before it propagates, so
callers never observe a half-applied operation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from ..errors import InsufficientLiquidityError, InvalidInputError, InvariantViolationError
from ..state.types import Amount, AssetIndex, Holder
from ..state.bins import BinCheckpoint, BinId, BinLedger, BinView
from ..state.custody import Custody
from ..state.global_state import GlobalState, check_all
from ..state.shares import ShareLedger, ShareTable
from .config import PairConfig, PriceLimitPolicy
from .liquidity import MintPlan, plan_burn, plan_mint
from .price_curve import PriceCurve
from .swap import SwapQuote, quote_exact_in, quote_exact_out

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MintResult:
    """Shares minted per bin, aligned with the request arrays."""

    ids: Tuple[BinId, ...]
    shares: Tuple[Amount, ...]
    amount0: Amount
    amount1: Amount


@dataclass(frozen=True)
class BurnResult:
    """Amounts paid out per redeemed bin (internal units, floored)."""

    ids: Tuple[BinId, ...]
    amounts0: Tuple[Amount, ...]
    amounts1: Tuple[Amount, ...]


@dataclass(frozen=True)
class SwapResult:
    """
    Outcome of an executed swap.

    `amount0_in`/`amount1_in` include any pre-funded surplus that was credited
    to the last bin. `refund` is input returned to the recipient after a
    partial fill.
    """

    amount0_in: Amount
    amount1_in: Amount
    amount0_out: Amount
    amount1_out: Amount
    fee: Amount
    refund: Amount
    start_id: BinId
    end_id: BinId
    bins_crossed: int
    filled: bool


def _split_request(name: str, amount0: int, amount1: int) -> Tuple[AssetIndex, Amount]:
    """Return (asset, amount) for a request where exactly one side is non-zero."""
    for side, v in ((f"{name}0", amount0), (f"{name}1", amount1)):
        if not isinstance(v, int) or isinstance(v, bool):
            raise InvalidInputError(f"{side} must be an int")
        if v < 0:
            raise InvalidInputError(f"{side} must be non-negative: {v}")
    if (amount0 == 0) == (amount1 == 0):
        raise InvalidInputError(f"exactly one of {name}0/{name}1 must be non-zero: ({amount0}, {amount1})")
    return (0, amount0) if amount0 else (1, amount1)


class LiquidityBinPair:
    """
    A single bin pool.

    Args:
        config: Pair configuration (bin step, fee, traversal cap, limit policy)
        custody: Token custody; deposits and swap inputs must already sit in
            the pool account when the call is made
        shares: Share ledger; defaults to a fresh in-memory ShareTable
    """

    def __init__(
        self,
        config: Optional[PairConfig] = None,
        *,
        custody: Custody,
        shares: Optional[ShareLedger] = None,
    ) -> None:
        self._config = config if config is not None else PairConfig()
        self._curve = PriceCurve(self._config.bin_step)
        self._bins = BinLedger(self._curve)
        self._state = GlobalState()
        self._custody = custody
        self._shares: ShareLedger = shares if shares is not None else ShareTable()
        logger.info(
            "created bin pair: bin_step=%d fee_bps=%d ids=[%d, %d] policy=%s",
            self._config.bin_step,
            self._config.fee_bps,
            self._curve.min_id,
            self._curve.max_id,
            self._config.price_limit_policy.value,
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def config(self) -> PairConfig:
        return self._config

    @property
    def curve(self) -> PriceCurve:
        return self._curve

    @property
    def bins(self) -> BinLedger:
        return self._bins

    @property
    def shares(self) -> ShareLedger:
        return self._shares

    @property
    def custody(self) -> Custody:
        return self._custody

    def price_from_id(self, bin_id: BinId) -> int:
        return self._curve.price_from_id(bin_id)

    def id_from_price(self, price: int) -> BinId:
        return self._curve.id_from_price(price)

    def get_bin(self, bin_id: BinId) -> BinView:
        return self._bins.get_bin(bin_id)

    def get_global(self) -> GlobalState:
        return self._state

    def check_invariants(self) -> List[str]:
        """Ids of violated invariants, custody coverage included."""
        return check_all(self._state, self._bins, self._custody)

    def load_reserves(self, bins: Iterable[Tuple[BinId, Amount, Amount]], state: GlobalState) -> None:
        """
        Seed an empty pair with bin reserves and global state (snapshot restore).

        Raises:
            InvalidInputError: The pair already holds bins
            InvariantViolationError: The state does not match the bins
        """
        if len(self._bins) or self._state != GlobalState():
            raise InvalidInputError("load_reserves requires an empty pair")
        loaded = BinLedger(self._curve)
        for bin_id, reserve0, reserve1 in bins:
            loaded.credit(bin_id, reserve0, reserve1)
        violations = check_all(state, loaded)
        if violations:
            raise InvariantViolationError(violations)
        self._curve.price_from_id(state.current_id)
        self._bins = loaded
        self._state = state

    def funded(self, asset: AssetIndex) -> Amount:
        """Custody balance credited to the pool but not yet accounted in reserves."""
        return self._custody.pool_balance(asset) - self._state.reserve(asset)

    # ------------------------------------------------------------------
    # Atomic apply helpers
    # ------------------------------------------------------------------

    def _verify(self) -> None:
        if not self._config.verify_invariants:
            return
        violations = check_all(self._state, self._bins)
        if violations:
            raise InvariantViolationError(violations)

    def _rollback(self, op: str, checkpoint: BinCheckpoint, state: GlobalState, exc: BaseException) -> None:
        self._bins.restore(checkpoint)
        self._state = state
        logger.warning("%s rolled back: %s: %s", op, type(exc).__name__, exc)

    def _pay(
        self,
        recipient: Holder,
        payouts: Iterable[Tuple[AssetIndex, Amount]],
        paid: List[Tuple[AssetIndex, Amount]],
    ) -> None:
        for asset, amount in payouts:
            if amount:
                self._custody.pay(recipient, asset, amount)
                paid.append((asset, amount))

    def _reclaim(self, recipient: Holder, paid: List[Tuple[AssetIndex, Amount]]) -> None:
        for asset, amount in reversed(paid):
            self._custody.reclaim(recipient, asset, amount)

    def _require_funded(self, asset: AssetIndex, required: Amount) -> Amount:
        available = self.funded(asset)
        if available < 0:
            raise InvariantViolationError(["custody_covers_reserves"])
        if required > available:
            raise InvalidInputError(f"asset {asset}: pre-funded {available} is less than required {required}")
        return available

    # ------------------------------------------------------------------
    # Liquidity
    # ------------------------------------------------------------------

    def _active_after_mint(self, plan: MintPlan) -> BinId:
        """
        Active bin after a deposit, moved so the new liquidity is reachable.

        Asset 0 is sold walking down and asset 1 walking up. An asset-0 deposit
        above the active bin pulls it up to the highest such bin; otherwise an
        asset-1 deposit below it pulls it down to the lowest such bin.
        """
        current = self._state.current_id
        top0 = max((d.bin_id for d in plan.deposits if d.amount0), default=current)
        if top0 > current:
            return top0
        bottom1 = min((d.bin_id for d in plan.deposits if d.amount1), default=current)
        return min(bottom1, current)

    def mint(
        self,
        start_id: BinId,
        amounts0: Sequence[Amount],
        amounts1: Sequence[Amount],
        recipient: Holder,
    ) -> MintResult:
        """
        Deposit into bins `start_id .. start_id + len(amounts0) - 1`.

        The deposited totals must already be in custody on top of the current
        reserves. The active bin may move so the deposit is reachable by the
        next swap (see `_active_after_mint`).

        Raises:
            InvalidInputError: Malformed arrays, unfunded or dust deposits
            PriceRangeExceededError: A target bin is outside the curve
        """
        plan = plan_mint(self._bins, self._shares, start_id=start_id, amounts0=amounts0, amounts1=amounts1)
        self._require_funded(0, plan.total0)
        self._require_funded(1, plan.total1)

        prior_state = self._state
        checkpoint = self._bins.checkpoint(d.bin_id for d in plan.deposits)
        minted: List[Tuple[BinId, Amount]] = []
        try:
            for d in plan.deposits:
                self._bins.credit(d.bin_id, d.amount0, d.amount1)
            self._state = prior_state.with_deltas(plan.total0, plan.total1, current_id=self._active_after_mint(plan))
            self._verify()
            for d in plan.deposits:
                if d.shares:
                    self._shares.mint(recipient, d.bin_id, d.shares)
                    minted.append((d.bin_id, d.shares))
        except Exception as exc:
            for bin_id, amount in reversed(minted):
                self._shares.burn(recipient, bin_id, amount)
            self._rollback("mint", checkpoint, prior_state, exc)
            raise

        logger.debug(
            "mint: %d bins from %d to %s, amounts=(%d, %d)",
            len(plan.deposits),
            start_id,
            recipient,
            plan.total0,
            plan.total1,
        )
        return MintResult(
            ids=tuple(d.bin_id for d in plan.deposits),
            shares=tuple(d.shares for d in plan.deposits),
            amount0=plan.total0,
            amount1=plan.total1,
        )

    def burn(
        self,
        sender: Holder,
        ids: Sequence[BinId],
        share_amounts: Sequence[Amount],
        recipient: Holder,
    ) -> BurnResult:
        """
        Redeem `share_amounts[i]` of `sender`'s shares in bin `ids[i]` and pay
        `recipient`.

        Raises:
            InvalidInputError: Malformed or duplicate ids, non-positive amounts
            UnauthorizedRedeemError: The sender holds fewer shares than requested
        """
        plan = plan_burn(self._bins, self._shares, sender=sender, ids=ids, share_amounts=share_amounts)

        prior_state = self._state
        checkpoint = self._bins.checkpoint(w.bin_id for w in plan.withdrawals)
        burned: List[Tuple[BinId, Amount]] = []
        paid: List[Tuple[AssetIndex, Amount]] = []
        try:
            for w in plan.withdrawals:
                self._shares.burn(sender, w.bin_id, w.shares)
                burned.append((w.bin_id, w.shares))
            for w in plan.withdrawals:
                self._bins.debit(w.bin_id, w.amount0, w.amount1)
            self._state = prior_state.with_deltas(-plan.total0, -plan.total1)
            self._verify()
            self._pay(recipient, ((0, plan.total0), (1, plan.total1)), paid)
        except Exception as exc:
            self._reclaim(recipient, paid)
            for bin_id, amount in reversed(burned):
                self._shares.mint(sender, bin_id, amount)
            self._rollback("burn", checkpoint, prior_state, exc)
            raise

        logger.debug(
            "burn: %d bins by %s to %s, amounts=(%d, %d)",
            len(plan.withdrawals),
            sender,
            recipient,
            plan.total0,
            plan.total1,
        )
        return BurnResult(
            ids=tuple(w.bin_id for w in plan.withdrawals),
            amounts0=tuple(w.amount0 for w in plan.withdrawals),
            amounts1=tuple(w.amount1 for w in plan.withdrawals),
        )

    # ------------------------------------------------------------------
    # Swaps
    # ------------------------------------------------------------------

    def _accept_quote(self, quote: SwapQuote) -> None:
        if quote.amount_out == 0:
            raise InsufficientLiquidityError(
                f"no asset {quote.asset_out} liquidity between bins {quote.start_id} and {quote.bound_id}"
            )
        if not quote.filled and self._config.price_limit_policy is PriceLimitPolicy.FAIL:
            raise InsufficientLiquidityError(
                f"only {quote.amount_out} of asset {quote.asset_out} available before bin {quote.bound_id}"
            )

    def quote_swap_in(self, amount0_out: Amount, amount1_out: Amount, price_limit: int = 0) -> SwapQuote:
        """
        Full exact-output quote, honoring the configured limit policy.

        The input is rounded up to the custody quantum of the input asset, so
        pre-funding whole native units covers it with nothing left over.
        """
        asset_out, amount_out = _split_request("amount_out", amount0_out, amount1_out)
        quote = quote_exact_out(
            self._bins,
            self._state,
            self._config,
            asset_out=asset_out,
            amount_out=amount_out,
            price_limit=price_limit,
            input_quantum=self._custody.quantum(1 - asset_out),
        )
        self._accept_quote(quote)
        return quote

    def quote_swap_out(self, amount0_in: Amount, amount1_in: Amount, price_limit: int = 0) -> SwapQuote:
        """Full exact-input quote. Never raises for thin liquidity; the output may be 0."""
        asset_in, amount_in = _split_request("amount_in", amount0_in, amount1_in)
        return quote_exact_in(
            self._bins, self._state, self._config, asset_in=asset_in, amount_in=amount_in, price_limit=price_limit
        )

    def get_swap_in(self, amount0_out: Amount, amount1_out: Amount, price_limit: int = 0) -> Amount:
        """Input a `swap` for this output would consume. No state changes."""
        return self.quote_swap_in(amount0_out, amount1_out, price_limit).amount_in

    def get_swap_out(self, amount0_in: Amount, amount1_in: Amount, price_limit: int = 0) -> Amount:
        """Largest output obtainable for at most this input. No state changes."""
        return self.quote_swap_out(amount0_in, amount1_in, price_limit).amount_out

    def swap(
        self,
        amount0_out: Amount,
        amount1_out: Amount,
        recipient: Holder,
        price_limit: int = 0,
    ) -> SwapResult:
        """
        Buy exactly one asset with whatever of the other was pre-funded.

        Args:
            amount0_out: Asset 0 requested (walks bins downward), or 0
            amount1_out: Asset 1 requested (walks bins upward), or 0
            recipient: Receives the output (and any partial-fill refund)
            price_limit: Q128.128 price bound on visited bins, 0 for none

        Returns:
            SwapResult with the input consumed

        Raises:
            InvalidInputError: Both/neither outputs set, or input not pre-funded
            InsufficientLiquidityError: The request cannot be filled within the
                traversal bound under the FAIL policy
        """
        quote = self.quote_swap_in(amount0_out, amount1_out, price_limit)
        asset_in = quote.asset_in
        available = self._require_funded(asset_in, quote.amount_in)
        surplus = available - quote.amount_in
        refund = 0 if quote.filled else surplus
        amount_in = quote.amount_in + (surplus if quote.filled else 0)

        prior_state = self._state
        checkpoint = self._bins.checkpoint(f.bin_id for f in quote.fills)
        paid: List[Tuple[AssetIndex, Amount]] = []
        try:
            for f in quote.fills:
                if asset_in == 0:
                    self._bins.credit(f.bin_id, f.amount_in, 0)
                    self._bins.debit(f.bin_id, 0, f.amount_out)
                else:
                    self._bins.credit(f.bin_id, 0, f.amount_in)
                    self._bins.debit(f.bin_id, f.amount_out, 0)
            if quote.filled and surplus:
                # Surplus accrues to the LPs of the last bin crossed.
                if asset_in == 0:
                    self._bins.credit(quote.end_id, surplus, 0)
                else:
                    self._bins.credit(quote.end_id, 0, surplus)

            if asset_in == 0:
                delta0, delta1 = amount_in, -quote.amount_out
            else:
                delta0, delta1 = -quote.amount_out, amount_in
            self._state = prior_state.with_deltas(delta0, delta1, current_id=quote.end_id)
            self._verify()
            self._pay(recipient, ((quote.asset_out, quote.amount_out), (asset_in, refund)), paid)
        except Exception as exc:
            self._reclaim(recipient, paid)
            self._rollback("swap", checkpoint, prior_state, exc)
            raise

        logger.debug(
            "swap: %d of asset %d for %d of asset %d over %d bins (%d -> %d), fee=%d refund=%d",
            quote.amount_out,
            quote.asset_out,
            amount_in,
            asset_in,
            len(quote.fills),
            quote.start_id,
            quote.end_id,
            quote.fee_total,
            refund,
        )
        return SwapResult(
            amount0_in=amount_in if asset_in == 0 else 0,
            amount1_in=amount_in if asset_in == 1 else 0,
            amount0_out=quote.amount0_out,
            amount1_out=quote.amount1_out,
            fee=quote.fee_total,
            refund=refund,
            start_id=quote.start_id,
            end_id=quote.end_id,
            bins_crossed=len(quote.fills),
            filled=quote.filled,
        )

    def __repr__(self) -> str:
        s = self._state
        return (
            f"LiquidityBinPair(bin_step={self._config.bin_step}, reserves=({s.reserve0}, {s.reserve1}), "
            f"current_id={s.current_id}, bins={len(self._bins)})"
        )
