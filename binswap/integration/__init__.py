"""
Snapshot and restore of bin pair state
"""

from .pair_snapshot import PAIR_SNAPSHOT_VERSION, PairSnapshot, pair_from_snapshot, snapshot_from_pair

__all__ = [
    "PAIR_SNAPSHOT_VERSION",
    "PairSnapshot",
    "pair_from_snapshot",
    "snapshot_from_pair",
]
