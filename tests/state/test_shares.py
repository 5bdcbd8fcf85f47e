# [TESTER] v1

from __future__ import annotations

import pytest

from binswap.state.shares import ShareTable


def test_mint_burn_track_supply() -> None:
    t = ShareTable()
    t.mint("alice", 3, 100)
    t.mint("bob", 3, 50)
    t.burn("alice", 3, 40)
    assert t.balance_of("alice", 3) == 60
    assert t.total_supply(3) == 110
    assert t.verify_supply()


def test_burn_more_than_held_raises() -> None:
    t = ShareTable()
    t.mint("alice", 0, 1)
    with pytest.raises(ValueError, match="Insufficient shares"):
        t.burn("alice", 0, 2)


def test_transfer_keeps_supply() -> None:
    t = ShareTable()
    t.mint("alice", -7, 10)
    t.transfer("alice", "pool", -7, 10)
    assert t.balance_of("alice", -7) == 0
    assert t.balance_of("pool", -7) == 10
    assert t.total_supply(-7) == 10
    assert t.get_all_balances() == {("pool", -7): 10}


def test_zero_entries_are_dropped() -> None:
    t = ShareTable()
    t.mint("alice", 1, 5)
    t.burn("alice", 1, 5)
    assert t.get_all_balances() == {}
    assert t.total_supply(1) == 0
