"""
Bin pair snapshot encoding.

Goals:
- Deterministic JSON serialization for hashing / snapshot distribution.
- Round-trippable into a `LiquidityBinPair`.
- Explicit versioning.

Custody balances are not part of the snapshot; the restored pair is attached to
whatever custody the caller supplies.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from ..core.config import pair_config_from_mapping
from ..core.pair import LiquidityBinPair
from ..state.canonical import canonical_json_bytes, domain_sep_bytes, sha256_hex
from ..state.custody import Custody
from ..state.global_state import GlobalState
from ..state.shares import ShareTable


PAIR_SNAPSHOT_VERSION = 1


def _require_str(value: Any, *, name: str, max_len: int = 512) -> str:
    if not isinstance(value, str):
        raise TypeError(f"{name} must be a string")
    if not value:
        raise ValueError(f"{name} must be non-empty")
    if len(value) > max_len:
        raise ValueError(f"{name} too large")
    return value


def _require_int(value: Any, *, name: str, non_negative: bool = True) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")
    if non_negative and value < 0:
        raise ValueError(f"{name} must be non-negative")
    return int(value)


def _require_list(snapshot: Mapping[str, Any], key: str, max_len: int) -> list:
    entries = snapshot.get(key)
    if entries is None:
        return []
    if not isinstance(entries, list):
        raise TypeError(f"snapshot.{key} must be a list")
    if len(entries) > max_len:
        raise ValueError(f"too many {key} entries: {len(entries)} > {max_len}")
    return entries


@dataclass(frozen=True)
class PairSnapshot:
    """
    Deterministic, versioned snapshot of one pair.

    The commitment is not included inside `data` to avoid self-reference.
    """

    version: int
    data: Dict[str, Any]

    def canonical_bytes(self) -> bytes:
        return canonical_json_bytes(self.data)

    def commitment_bytes(self) -> bytes:
        payload = domain_sep_bytes("pair_snapshot", version=self.version) + self.canonical_bytes()
        return hashlib.sha256(payload).digest()

    def commitment_hex(self) -> str:
        payload = domain_sep_bytes("pair_snapshot", version=self.version) + self.canonical_bytes()
        return sha256_hex(payload)


def snapshot_from_pair(pair: LiquidityBinPair, *, version: int = PAIR_SNAPSHOT_VERSION) -> PairSnapshot:
    """
    Snapshot config, global state, materialized bins and (for a ShareTable)
    share balances. Entries are sorted, so insertion order never matters.
    """
    if not isinstance(version, int) or isinstance(version, bool) or version <= 0:
        raise ValueError("version must be a positive int")

    bins_entries = [
        {"bin_id": bin_id, "reserve0": int(reserve0), "reserve1": int(reserve1)}
        for bin_id, reserve0, reserve1 in pair.bins.iter_bins()
    ]

    share_entries: Optional[list] = None
    if isinstance(pair.shares, ShareTable):
        share_entries = [
            {"holder": holder, "bin_id": bin_id, "amount": int(amount)}
            for (holder, bin_id), amount in pair.shares.get_all_balances().items()
        ]
        share_entries.sort(key=lambda e: (e["holder"], e["bin_id"]))

    state = pair.get_global()
    data: Dict[str, Any] = {
        "version": int(version),
        "config": pair.config.to_dict(),
        "global": {
            "reserve0": int(state.reserve0),
            "reserve1": int(state.reserve1),
            "current_id": int(state.current_id),
        },
        "bins": bins_entries,
        "shares": share_entries,
    }
    return PairSnapshot(version=version, data=data)


def pair_from_snapshot(
    snapshot: Mapping[str, Any],
    *,
    custody: Custody,
    max_bins: int = 500_000,
    max_shares: int = 1_000_000,
) -> LiquidityBinPair:
    """
    Rebuild a pair from `PairSnapshot.data` (or its JSON-decoded form).

    Raises:
        TypeError / ValueError: Malformed snapshot data
        InvariantViolationError: Global totals do not match the bins
    """
    if not isinstance(snapshot, Mapping):
        raise TypeError("snapshot must be a mapping")

    version = snapshot.get("version", PAIR_SNAPSHOT_VERSION)
    if not isinstance(version, int) or isinstance(version, bool) or version <= 0:
        raise ValueError("snapshot.version must be a positive int")
    if version != PAIR_SNAPSHOT_VERSION:
        raise ValueError(f"unsupported snapshot version: {version}")

    config_obj = snapshot.get("config")
    if not isinstance(config_obj, Mapping):
        raise TypeError("snapshot.config must be an object")
    config = pair_config_from_mapping(config_obj)

    global_obj = snapshot.get("global")
    if not isinstance(global_obj, Mapping):
        raise TypeError("snapshot.global must be an object")
    state = GlobalState(
        reserve0=_require_int(global_obj.get("reserve0", 0), name="global.reserve0"),
        reserve1=_require_int(global_obj.get("reserve1", 0), name="global.reserve1"),
        current_id=_require_int(global_obj.get("current_id", 0), name="global.current_id", non_negative=False),
    )

    bins = []
    seen_bins: set[int] = set()
    for entry in _require_list(snapshot, "bins", max_bins):
        if not isinstance(entry, Mapping):
            raise TypeError("snapshot.bins entries must be objects")
        bin_id = _require_int(entry.get("bin_id"), name="bin.bin_id", non_negative=False)
        if bin_id in seen_bins:
            raise ValueError(f"duplicate bin entry: {bin_id}")
        seen_bins.add(bin_id)
        bins.append(
            (
                bin_id,
                _require_int(entry.get("reserve0", 0), name="bin.reserve0"),
                _require_int(entry.get("reserve1", 0), name="bin.reserve1"),
            )
        )

    shares = ShareTable()
    seen_shares: set[tuple[str, int]] = set()
    for entry in _require_list(snapshot, "shares", max_shares):
        if not isinstance(entry, Mapping):
            raise TypeError("snapshot.shares entries must be objects")
        holder = _require_str(entry.get("holder"), name="share.holder")
        bin_id = _require_int(entry.get("bin_id"), name="share.bin_id", non_negative=False)
        amount = _require_int(entry.get("amount"), name="share.amount")
        key = (holder, bin_id)
        if key in seen_shares:
            raise ValueError("duplicate share entry (holder, bin_id)")
        seen_shares.add(key)
        shares.mint(holder, bin_id, amount)

    pair = LiquidityBinPair(config, custody=custody, shares=shares)
    pair.load_reserves(bins, state)
    return pair
