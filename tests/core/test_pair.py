# [TESTER] v1

from __future__ import annotations

import logging

import pytest

from binswap.core.config import PairConfig, PriceLimitPolicy
from binswap.core.pair import LiquidityBinPair
from binswap.errors import (
    InsufficientLiquidityError,
    InvalidInputError,
    PriceRangeExceededError,
    UnauthorizedRedeemError,
)
from binswap.state.custody import TokenCustody, TokenSpec, parse_units
from binswap.state.shares import ShareTable


E18 = 10**18


def _fund(custody: TokenCustody, asset: int, internal: int) -> None:
    """Move enough native tokens into the pool to cover `internal` units."""
    scale = custody.to_internal(asset, 1)
    custody.fund_pool(asset, -(-internal // scale))


def _pair18(config: PairConfig | None = None) -> tuple[LiquidityBinPair, TokenCustody]:
    custody = TokenCustody(TokenSpec("A", 18), TokenSpec("B", 18))
    return LiquidityBinPair(config, custody=custody), custody


class _FailingCustody(TokenCustody):
    """Custody whose payouts of one asset always fail."""

    def __init__(self, fail_asset: int) -> None:
        super().__init__(TokenSpec("A", 18), TokenSpec("B", 18))
        self.fail_asset = fail_asset

    def pay(self, recipient, asset, amount):
        if asset == self.fail_asset:
            raise RuntimeError("custody offline")
        super().pay(recipient, asset, amount)


def _seed(pair: LiquidityBinPair, custody: TokenCustody, start_id: int, amounts0, amounts1, lp: str = "lp"):
    _fund(custody, 0, sum(amounts0))
    _fund(custody, 1, sum(amounts1))
    return pair.mint(start_id, amounts0, amounts1, lp)


class TestReads:
    def test_price_methods_delegate_to_curve(self) -> None:
        pair, _ = _pair18()
        assert pair.id_from_price(pair.price_from_id(-777)) == -777
        with pytest.raises(PriceRangeExceededError):
            pair.price_from_id(pair.curve.max_id + 1)

    def test_reads_are_idempotent(self) -> None:
        pair, custody = _pair18()
        _seed(pair, custody, 0, [E18], [E18])
        assert pair.get_bin(0) == pair.get_bin(0)
        assert pair.get_global() == pair.get_global()
        assert pair.get_swap_in(E18 // 2, 0) == pair.get_swap_in(E18 // 2, 0)
        assert pair.get_global().as_tuple() == (E18, E18, 0)

    def test_creation_logs(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.INFO, logger="binswap"):
            _pair18()
        assert "created bin pair" in caplog.text


class TestMint:
    def test_mixed_decimal_ladder(self) -> None:
        custody = TokenCustody(TokenSpec("USDC", 6), TokenSpec("TKN", 12))
        pair = LiquidityBinPair(custody=custody)
        u6 = lambda n: custody.to_internal(0, n * 10**6)  # noqa: E731
        u12 = lambda n: custody.to_internal(1, n * 10**12)  # noqa: E731
        custody.fund_pool(0, 150 * 10**6)
        custody.fund_pool(1, 150 * 10**12)

        start = 8_388
        result = pair.mint(start, [0, u6(50), u6(100)], [u12(100), u12(50), 0], "R")

        assert pair.get_bin(start).reserve0 == 0
        assert pair.get_bin(start).reserve1 == u12(100)
        assert (pair.get_bin(start + 1).reserve0, pair.get_bin(start + 1).reserve1) == (u6(50), u12(50))
        assert (pair.get_bin(start + 2).reserve0, pair.get_bin(start + 2).reserve1) == (u6(100), 0)
        assert pair.price_from_id(start) < pair.price_from_id(start + 1) < pair.price_from_id(start + 2)
        assert result.ids == (start, start + 1, start + 2)
        assert all(s > 0 for s in result.shares)
        assert pair.shares.balance_of("R", start + 1) == result.shares[1]
        assert pair.check_invariants() == []

    def test_unfunded_deposit_rejected(self) -> None:
        pair, custody = _pair18()
        _fund(custody, 0, E18 - 1)
        with pytest.raises(InvalidInputError, match="pre-funded"):
            pair.mint(0, [E18], [0], "lp")
        assert len(pair.bins) == 0

    def test_funds_are_counted_once(self) -> None:
        pair, custody = _pair18()
        _seed(pair, custody, 0, [E18], [0])
        with pytest.raises(InvalidInputError, match="pre-funded"):
            pair.mint(1, [E18], [0], "lp")

    def test_rolls_back_when_share_ledger_fails(self, caplog: pytest.LogCaptureFixture) -> None:
        class FailingShares(ShareTable):
            def mint(self, holder, bin_id, amount):
                if bin_id == 2:
                    raise RuntimeError("share ledger unavailable")
                super().mint(holder, bin_id, amount)

        custody = TokenCustody(TokenSpec("A", 18), TokenSpec("B", 18))
        shares = FailingShares()
        pair = LiquidityBinPair(custody=custody, shares=shares)
        _fund(custody, 0, 3 * E18)

        with caplog.at_level(logging.WARNING, logger="binswap"):
            with pytest.raises(RuntimeError, match="unavailable"):
                pair.mint(0, [E18, E18, E18], [0, 0, 0], "lp")

        assert "mint rolled back" in caplog.text
        assert len(pair.bins) == 0
        assert pair.get_global().as_tuple() == (0, 0, 0)
        assert shares.get_all_balances() == {}

    def test_deposit_moves_active_bin_within_reach(self) -> None:
        pair, custody = _pair18()
        _seed(pair, custody, -5, [0], [E18])
        assert pair.get_global().current_id == -5
        _seed(pair, custody, 3, [E18], [0])
        assert pair.get_global().current_id == 3
        # Deposits already on the reachable side leave it alone.
        _seed(pair, custody, -20, [E18], [0])
        _seed(pair, custody, 40, [0], [E18])
        assert pair.get_global().current_id == 3


class TestBurn:
    def test_full_burn_empties_bins_without_overpaying(self) -> None:
        pair, custody = _pair18()
        deposits0 = [0, 1_000, 333]
        deposits1 = [777, 1, 0]
        a = _seed(pair, custody, -1, deposits0, deposits1, lp="a")
        b = _seed(pair, custody, 0, [7], [3], lp="b")

        paid_a = pair.burn("a", list(a.ids), list(a.shares), "a")
        paid_b = pair.burn("b", list(b.ids), list(b.shares), "b")

        total0 = sum(paid_a.amounts0) + sum(paid_b.amounts0)
        total1 = sum(paid_a.amounts1) + sum(paid_b.amounts1)
        assert total0 <= sum(deposits0) + 7
        assert total1 <= sum(deposits1) + 3
        # Last holder out takes the residue, so every bin is empty.
        for bin_id in (-1, 0, 1):
            assert (pair.get_bin(bin_id).reserve0, pair.get_bin(bin_id).reserve1) == (0, 0)
        assert pair.get_global().as_tuple()[:2] == (0, 0)
        assert custody.balance_of("a", 0) + custody.balance_of("b", 0) == total0

    def test_partial_burn_floors_in_pool_favor(self) -> None:
        pair, custody = _pair18()
        _seed(pair, custody, 0, [1_000], [0], lp="a")
        _seed(pair, custody, 0, [1], [0], lp="b")
        paid = pair.burn("a", [0], [1_000], "a")
        assert paid.amounts0 == (1_000,)
        pair.burn("b", [0], [1], "b")
        assert pair.get_bin(0).reserve0 == 0

    def test_unauthorized(self) -> None:
        pair, custody = _pair18()
        r = _seed(pair, custody, 0, [E18], [0], lp="a")
        before = pair.get_global()
        with pytest.raises(UnauthorizedRedeemError):
            pair.burn("mallory", [0], [1], "mallory")
        with pytest.raises(UnauthorizedRedeemError):
            pair.burn("a", [0], [r.shares[0] + 1], "a")
        assert pair.get_global() == before
        assert pair.shares.balance_of("a", 0) == r.shares[0]

    def test_rolls_back_when_custody_payout_fails(self, caplog: pytest.LogCaptureFixture) -> None:
        custody = _FailingCustody(fail_asset=1)
        pair = LiquidityBinPair(custody=custody)
        r = _seed(pair, custody, 0, [E18], [E18])
        before = (pair.get_global(), pair.get_bin(0), pair.shares.balance_of("lp", 0))

        with caplog.at_level(logging.WARNING, logger="binswap"):
            with pytest.raises(RuntimeError, match="custody offline"):
                pair.burn("lp", [0], [r.shares[0]], "lp")

        assert "burn rolled back" in caplog.text
        assert (pair.get_global(), pair.get_bin(0), pair.shares.balance_of("lp", 0)) == before
        # The asset 0 payout made before the failure was taken back.
        assert custody.balance_of("lp", 0) == 0
        assert custody.pool_balance(0) == E18
        assert pair.check_invariants() == []


class TestSwap:
    def test_single_bin_with_fee(self) -> None:
        custody = TokenCustody(TokenSpec("USDC", 6), TokenSpec("TKN", 12), internal_decimals=12)
        pair = LiquidityBinPair(custody=custody)
        u6 = custody.to_internal(0, parse_units("1", 6))
        _seed(pair, custody, 0, [100 * u6], [0])

        amount_in = pair.get_swap_in(u6, 0)
        assert amount_in == -(-(10**12) * 10_000 // 9_970)
        assert 10**12 < amount_in < 10**12 * 1_0031 // 1_0000

        custody.mint("trader", 1, amount_in)
        custody.transfer("trader", custody.pool_account, 1, amount_in)
        before = pair.get_bin(0)
        result = pair.swap(u6, 0, "trader")
        after = pair.get_bin(0)

        assert before.reserve0 - after.reserve0 == u6
        assert after.reserve1 - before.reserve1 == amount_in
        assert result.amount1_in == amount_in and result.amount0_out == u6
        assert custody.balance_of("trader", 0) == 10**6
        assert pair.check_invariants() == []

    def test_quote_is_fundable_in_native_units(self) -> None:
        custody = TokenCustody(TokenSpec("USDC", 6), TokenSpec("TKN", 12))
        pair = LiquidityBinPair(custody=custody)
        one = custody.to_internal(0, parse_units("1", 6))
        _seed(pair, custody, 0, [100 * one], [0])

        amount_in = pair.get_swap_in(one, 0)
        # ceil(1e22 / 9970) rounded up to one native TKN unit (10**6 internal).
        assert amount_in == 1_003_009_027_082_000_000
        custody.mint("trader", 1, amount_in // custody.quantum(1))
        custody.transfer("trader", custody.pool_account, 1, custody.balance_of("trader", 1))
        result = pair.swap(one, 0, "trader")

        assert result.amount1_in == amount_in
        assert pair.get_bin(0).reserve1 == amount_in
        assert pair.funded(1) == 0
        assert custody.balance_of("trader", 0) == 10**6

    def test_single_bin_far_above_active(self) -> None:
        custody = TokenCustody(TokenSpec("USDC", 6), TokenSpec("TKN", 12))
        pair = LiquidityBinPair(custody=custody)
        deposit = custody.to_internal(0, parse_units("100", 6))
        one = custody.to_internal(0, parse_units("1", 6))
        _seed(pair, custody, 100_000, [deposit], [0])
        assert pair.get_global().current_id == 100_000

        amount_in = pair.get_swap_in(one, 0)
        custody.fund_pool(1, amount_in // custody.quantum(1))
        result = pair.swap(one, 0, "alice")

        assert result.bins_crossed == 1 and result.amount1_in == amount_in
        assert custody.balance_of("alice", 0) == 10**6
        assert custody.balance_of("alice", 1) == 0
        b = pair.get_bin(100_000)
        assert (b.reserve0, b.reserve1) == (deposit - one, amount_in)

    def test_asset0_on_both_sides_far_apart(self) -> None:
        custody = TokenCustody(TokenSpec("USDC", 6), TokenSpec("TKN", 12))
        pair = LiquidityBinPair(custody=custody)
        half = custody.to_internal(0, parse_units("50", 6))
        _seed(pair, custody, -10_000, [half], [0])
        _seed(pair, custody, 10_000, [half], [0])
        custody.fund_pool(1, 10**40)

        result = pair.swap(2 * half, 0, "alice")

        assert result.bins_crossed == 2
        assert (result.start_id, result.end_id) == (10_000, -10_000)
        assert custody.balance_of("alice", 0) == 100 * 10**6
        assert custody.balance_of("alice", 1) == 0
        g = pair.get_global()
        assert g.reserve0 == 0 and g.reserve1 == custody.pool_balance(1)
        assert pair.check_invariants() == []

    def test_rolls_back_when_refund_fails(self, caplog: pytest.LogCaptureFixture) -> None:
        custody = _FailingCustody(fail_asset=1)
        pair = LiquidityBinPair(PairConfig(price_limit_policy=PriceLimitPolicy.PARTIAL_FILL), custody=custody)
        _seed(pair, custody, -1, [E18], [0])
        _fund(custody, 1, 5 * E18)
        before = (pair.get_global(), pair.get_bin(-1))

        with caplog.at_level(logging.WARNING, logger="binswap"):
            with pytest.raises(RuntimeError, match="custody offline"):
                pair.swap(3 * E18, 0, "t")

        assert "swap rolled back" in caplog.text
        assert (pair.get_global(), pair.get_bin(-1)) == before
        assert custody.balance_of("t", 0) == 0
        assert pair.funded(1) == 5 * E18

    def test_quotes_mirror_execution(self) -> None:
        pair, custody = _pair18()
        _seed(pair, custody, -3, [E18, E18, E18, E18], [0, 0, 0, E18])
        target = 2 * E18 + 12_345

        amount_in = pair.get_swap_in(target, 0)
        out = pair.get_swap_out(0, amount_in)
        assert target <= out <= target + 2

        _fund(custody, 1, amount_in)
        result = pair.swap(target, 0, "t")
        assert (result.amount0_out, result.amount1_in) == (target, amount_in)
        assert custody.balance_of("t", 0) == target

    def test_swap_delivers_quoted_exact_in_output(self) -> None:
        pair, custody = _pair18()
        _seed(pair, custody, 0, [0, 0], [E18, E18])
        amount_in = 3 * E18 // 2
        out = pair.get_swap_out(amount_in, 0)
        _fund(custody, 0, amount_in)
        result = pair.swap(0, out, "t")
        assert result.amount1_out == out
        # Surplus over the exact cost stays with the last bin's LPs.
        assert result.amount0_in == amount_in
        assert pair.get_global().reserve0 == amount_in

    def test_sparse_bins_far_apart(self) -> None:
        pair, custody = _pair18()
        _seed(pair, custody, -10_000, [E18], [0])
        _seed(pair, custody, 10_000, [0], [E18])

        need = pair.get_swap_in(E18 // 2, 0)
        _fund(custody, 1, need)
        pair.swap(E18 // 2, 0, "t")
        g = pair.get_global()
        assert (g.reserve0, g.reserve1, g.current_id) == (E18 // 2, E18 + need, -10_000)

        # Bin -10000 now holds the asset 1 paid in; walking up drains it, then crosses to 10000.
        want1 = need + E18 // 2
        need0 = pair.get_swap_in(0, want1)
        _fund(custody, 0, need0)
        result = pair.swap(0, want1, "t")
        g = pair.get_global()
        assert (g.reserve0, g.reserve1, g.current_id) == (E18 // 2 + need0, E18 // 2, 10_000)
        assert result.bins_crossed == 2
        assert pair.get_bin(-10_000).reserve1 == 0
        assert pair.check_invariants() == []

    def test_request_validation(self) -> None:
        pair, custody = _pair18()
        _seed(pair, custody, 0, [E18], [E18])
        with pytest.raises(InvalidInputError, match="exactly one"):
            pair.swap(1, 1, "t")
        with pytest.raises(InvalidInputError, match="exactly one"):
            pair.swap(0, 0, "t")
        with pytest.raises(InvalidInputError, match="exactly one"):
            pair.get_swap_in(0, 0)
        with pytest.raises(InvalidInputError, match="pre-funded"):
            pair.swap(10, 0, "t")

    def test_fail_policy_raises_and_leaves_state(self) -> None:
        pair, custody = _pair18()
        _seed(pair, custody, -1, [E18], [0])
        _fund(custody, 1, 10 * E18)
        before = (pair.get_global(), pair.get_bin(-1))
        with pytest.raises(InsufficientLiquidityError):
            pair.swap(2 * E18, 0, "t")
        with pytest.raises(InsufficientLiquidityError):
            pair.get_swap_in(2 * E18, 0)
        with pytest.raises(InsufficientLiquidityError):
            pair.swap(0, 1, "t")  # no asset 1 anywhere
        assert (pair.get_global(), pair.get_bin(-1)) == before

    def test_price_limit_with_fail_policy(self) -> None:
        pair, custody = _pair18()
        _seed(pair, custody, -2, [E18, E18], [0, 0])
        limit = pair.price_from_id(-1)
        _fund(custody, 1, 10 * E18)
        with pytest.raises(InsufficientLiquidityError):
            pair.swap(E18 + 1, 0, "t", limit)
        result = pair.swap(E18, 0, "t", limit)
        assert result.end_id == -1

    def test_partial_fill_refunds_unused_input(self) -> None:
        pair, custody = _pair18(PairConfig(price_limit_policy=PriceLimitPolicy.PARTIAL_FILL))
        _seed(pair, custody, -1, [E18], [0])
        _fund(custody, 1, 5 * E18)

        quote = pair.get_swap_in(3 * E18, 0)
        result = pair.swap(3 * E18, 0, "t")

        assert not result.filled
        assert result.amount0_out == E18
        assert result.amount1_in == quote
        assert result.refund == 5 * E18 - quote
        assert custody.balance_of("t", 1) == result.refund
        assert pair.funded(1) == 0
        assert pair.get_global().current_id == -1

    def test_span_cap(self) -> None:
        pair, custody = _pair18(PairConfig(max_bin_span=100))
        _seed(pair, custody, -101, [E18], [0])
        with pytest.raises(InsufficientLiquidityError):
            pair.get_swap_in(1, 0)
        assert pair.get_swap_out(0, E18) == 0
