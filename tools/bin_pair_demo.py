#!/usr/bin/env python3

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from binswap.core import LiquidityBinPair, PairConfig, load_pair_config
from binswap.errors import BinPoolError
from binswap.integration import snapshot_from_pair
from binswap.state import TokenCustody, TokenSpec, parse_units


def _print_bins(pair: LiquidityBinPair, custody: TokenCustody) -> None:
    for bin_id, reserve0, reserve1 in pair.bins.iter_bins():
        print(
            f"[bin-demo]   bin {bin_id:>6}: "
            f"{custody.to_native(0, reserve0)} {custody.token(0).symbol} / "
            f"{custody.to_native(1, reserve1)} {custody.token(1).symbol}"
        )


def main() -> int:
    ap = argparse.ArgumentParser(description="Offline liquidity-bin pair demo: mint a ladder, quote and swap.")
    ap.add_argument("--config", type=str, default=None, help="YAML pair config (overrides --bin-step/--fee-bps)")
    ap.add_argument("--bin-step", type=int, default=2)
    ap.add_argument("--fee-bps", type=int, default=30)
    ap.add_argument("--bins", type=int, default=3, help="bins on each side of the active bin")
    ap.add_argument("--per-bin", type=str, default="100", help="deposit per bin, in whole tokens")
    ap.add_argument("--swap-out", type=str, default="150", help="asset 0 to buy, in whole tokens")
    ap.add_argument("--verbose", action="store_true")
    args = ap.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    try:
        if args.config:
            config = load_pair_config(args.config)
        else:
            config = PairConfig(bin_step=args.bin_step, fee_bps=args.fee_bps)

        custody = TokenCustody(TokenSpec("USDC", 6), TokenSpec("TKN", 12))
        pair = LiquidityBinPair(config, custody=custody)

        per_bin0 = parse_units(args.per_bin, 6)
        per_bin1 = parse_units(args.per_bin, 12)
        width = 2 * args.bins + 1
        # Asset 0 below the active bin, asset 1 above, both in the active bin.
        amounts0 = [custody.to_internal(0, per_bin0) if i <= args.bins else 0 for i in range(width)]
        amounts1 = [custody.to_internal(1, per_bin1) if i >= args.bins else 0 for i in range(width)]
        custody.fund_pool(0, custody.to_native(0, sum(amounts0)))
        custody.fund_pool(1, custody.to_native(1, sum(amounts1)))
        minted = pair.mint(-args.bins, amounts0, amounts1, "lp")
        print(f"[bin-demo] minted shares in bins {minted.ids[0]}..{minted.ids[-1]}")
        _print_bins(pair, custody)

        amount_out = custody.to_internal(0, parse_units(args.swap_out, 6))
        amount_in = pair.get_swap_in(amount_out, 0)
        print(f"[bin-demo] quote: {args.swap_out} USDC costs {custody.to_native(1, amount_in)} TKN units")

        custody.mint("trader", 1, amount_in // custody.quantum(1))
        custody.transfer("trader", custody.pool_account, 1, custody.balance_of("trader", 1))
        result = pair.swap(amount_out, 0, "trader")
    except (BinPoolError, OSError, ValueError) as exc:
        print(f"[bin-demo] FAIL: {exc}")
        return 1

    state = pair.get_global()
    print(f"[bin-demo] swap crossed {result.bins_crossed} bins, {result.start_id} -> {result.end_id}, fee={result.fee}")
    print(f"[bin-demo] trader USDC balance: {custody.balance_of('trader', 0)}")
    print(f"[bin-demo] global: reserve0={state.reserve0} reserve1={state.reserve1} current_id={state.current_id}")
    _print_bins(pair, custody)
    print(f"[bin-demo] snapshot commitment: {snapshot_from_pair(pair).commitment_hex()}")
    print("[bin-demo] OK")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
