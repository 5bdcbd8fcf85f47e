"""
Liquidity planning: deposits into and withdrawals from bins.

Both functions are pure. They read the bin ledger and share ledger, validate the
request, and return a plan describing every bin change and share movement. The
pair applies the plan.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Tuple

from ..errors import InsufficientReserveError, InvalidInputError, UnauthorizedRedeemError
from ..kernels.python.bin_liquidity_v1 import burn_shares, mint_shares
from ..state.types import Amount, Holder
from ..state.bins import BinId, BinLedger
from ..state.shares import ShareLedger


@dataclass(frozen=True)
class BinDeposit:
    bin_id: BinId
    amount0: Amount
    amount1: Amount
    shares: Amount


@dataclass(frozen=True)
class MintPlan:
    """Per-bin deposits for one mint, in request order."""

    deposits: Tuple[BinDeposit, ...]
    total0: Amount
    total1: Amount


@dataclass(frozen=True)
class BinWithdrawal:
    bin_id: BinId
    shares: Amount
    amount0: Amount
    amount1: Amount


@dataclass(frozen=True)
class BurnPlan:
    withdrawals: Tuple[BinWithdrawal, ...]
    total0: Amount
    total1: Amount


def _require_amounts(name: str, values: Sequence[int]) -> None:
    for i, v in enumerate(values):
        if not isinstance(v, int) or isinstance(v, bool):
            raise InvalidInputError(f"{name}[{i}] must be an int")
        if v < 0:
            raise InvalidInputError(f"{name}[{i}] must be non-negative: {v}")


def plan_mint(
    ledger: BinLedger,
    shares: ShareLedger,
    *,
    start_id: BinId,
    amounts0: Sequence[Amount],
    amounts1: Sequence[Amount],
) -> MintPlan:
    """
    Plan a deposit of `amounts0[i]`/`amounts1[i]` into bin `start_id + i`.

    Shares are priced at each bin's own price. A (0, 0) entry is kept in the
    plan with zero shares so results line up with the request.

    Raises:
        InvalidInputError: Mismatched or empty arrays, bad amounts, or a
            deposit too small to mint a share
        PriceRangeExceededError: A target bin lies outside the curve
    """
    if not isinstance(start_id, int) or isinstance(start_id, bool):
        raise InvalidInputError("start_id must be an int")
    if len(amounts0) != len(amounts1):
        raise InvalidInputError(f"amount arrays differ in length: {len(amounts0)} != {len(amounts1)}")
    if not amounts0:
        raise InvalidInputError("amount arrays must not be empty")
    _require_amounts("amounts0", amounts0)
    _require_amounts("amounts1", amounts1)

    curve = ledger.curve
    deposits = []
    for offset, (amount0, amount1) in enumerate(zip(amounts0, amounts1)):
        bin_id = start_id + offset
        price = curve.price_from_id(bin_id)
        if amount0 == 0 and amount1 == 0:
            deposits.append(BinDeposit(bin_id=bin_id, amount0=0, amount1=0, shares=0))
            continue

        reserve0, reserve1 = ledger.reserves(bin_id)
        try:
            minted = mint_shares(
                reserve0=reserve0,
                reserve1=reserve1,
                total_supply=shares.total_supply(bin_id),
                amount0=amount0,
                amount1=amount1,
                price=price,
            )
        except ValueError as exc:
            raise InvalidInputError(f"bin {bin_id}: {exc}") from exc
        deposits.append(BinDeposit(bin_id=bin_id, amount0=amount0, amount1=amount1, shares=minted.shares))

    return MintPlan(
        deposits=tuple(deposits),
        total0=sum(amounts0),
        total1=sum(amounts1),
    )


def plan_burn(
    ledger: BinLedger,
    shares: ShareLedger,
    *,
    sender: Holder,
    ids: Sequence[BinId],
    share_amounts: Sequence[Amount],
) -> BurnPlan:
    """
    Plan redeeming `share_amounts[i]` of the sender's shares in `ids[i]`.

    Outputs are floored: `reserve * shares // supply`. The residue stays in
    the bin.

    Raises:
        InvalidInputError: Mismatched, empty or duplicate ids, non-positive amounts
        UnauthorizedRedeemError: An amount exceeds the sender's share balance
        InsufficientReserveError: A payout exceeds the bin's reserves
    """
    if len(ids) != len(share_amounts):
        raise InvalidInputError(f"ids and share_amounts differ in length: {len(ids)} != {len(share_amounts)}")
    if not ids:
        raise InvalidInputError("ids must not be empty")
    for bin_id in ids:
        if not isinstance(bin_id, int) or isinstance(bin_id, bool):
            raise InvalidInputError(f"bin id must be an int: {bin_id!r}")
    if len(set(ids)) != len(ids):
        raise InvalidInputError("ids must be distinct")
    _require_amounts("share_amounts", share_amounts)

    withdrawals = []
    for bin_id, amount in zip(ids, share_amounts):
        if amount == 0:
            raise InvalidInputError(f"bin {bin_id}: share amount must be positive")
        held = shares.balance_of(sender, bin_id)
        if amount > held:
            raise UnauthorizedRedeemError(f"bin {bin_id}: {sender} holds {held} shares, cannot redeem {amount}")

        reserve0, reserve1 = ledger.reserves(bin_id)
        burned = burn_shares(
            reserve0=reserve0,
            reserve1=reserve1,
            total_supply=shares.total_supply(bin_id),
            shares=amount,
        )
        if burned.amount0_out > reserve0 or burned.amount1_out > reserve1:
            raise InsufficientReserveError(f"bin {bin_id}: payout exceeds reserves")
        withdrawals.append(
            BinWithdrawal(bin_id=bin_id, shares=amount, amount0=burned.amount0_out, amount1=burned.amount1_out)
        )

    return BurnPlan(
        withdrawals=tuple(withdrawals),
        total0=sum(w.amount0 for w in withdrawals),
        total1=sum(w.amount1 for w in withdrawals),
    )
