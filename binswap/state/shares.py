"""
Per-bin share ledger.

The engine never stores share balances itself; it talks to any object that
satisfies `ShareLedger`. `ShareTable` is the in-memory reference ledger keyed
by (holder, bin_id).
"""

from __future__ import annotations

from typing import Dict, Protocol, Tuple

from .types import Amount, Holder

# Type alias
BinId = int


class ShareLedger(Protocol):
    def mint(self, holder: Holder, bin_id: BinId, amount: Amount) -> None: ...

    def burn(self, holder: Holder, bin_id: BinId, amount: Amount) -> None: ...

    def transfer(self, sender: Holder, recipient: Holder, bin_id: BinId, amount: Amount) -> None: ...

    def balance_of(self, holder: Holder, bin_id: BinId) -> Amount: ...

    def total_supply(self, bin_id: BinId) -> Amount: ...


class ShareTable:
    """
    Share balance table mapping (holder, bin_id) -> shares, plus per-bin supply.

    Notes:
    - Balances and supplies are always non-negative.
    - Zero entries are omitted to keep the table sparse.
    """

    def __init__(self) -> None:
        self._balances: Dict[Tuple[Holder, BinId], Amount] = {}
        self._supply: Dict[BinId, Amount] = {}

    def balance_of(self, holder: Holder, bin_id: BinId) -> Amount:
        """Get share balance for (holder, bin_id). Returns 0 if not found."""
        return self._balances.get((holder, bin_id), 0)

    def total_supply(self, bin_id: BinId) -> Amount:
        return self._supply.get(bin_id, 0)

    def _set(self, holder: Holder, bin_id: BinId, amount: Amount) -> None:
        if amount < 0:
            raise ValueError(f"Share balance cannot be negative: {amount}")
        if amount == 0:
            self._balances.pop((holder, bin_id), None)
        else:
            self._balances[(holder, bin_id)] = amount

    def _set_supply(self, bin_id: BinId, amount: Amount) -> None:
        if amount < 0:
            raise ValueError(f"Share supply cannot be negative: {amount}")
        if amount == 0:
            self._supply.pop(bin_id, None)
        else:
            self._supply[bin_id] = amount

    def mint(self, holder: Holder, bin_id: BinId, amount: Amount) -> None:
        if amount < 0:
            raise ValueError(f"Mint amount must be non-negative: {amount}")
        self._set(holder, bin_id, self.balance_of(holder, bin_id) + amount)
        self._set_supply(bin_id, self.total_supply(bin_id) + amount)

    def burn(self, holder: Holder, bin_id: BinId, amount: Amount) -> None:
        if amount < 0:
            raise ValueError(f"Burn amount must be non-negative: {amount}")
        current = self.balance_of(holder, bin_id)
        if amount > current:
            raise ValueError(f"Insufficient shares: {current} < {amount}")
        self._set(holder, bin_id, current - amount)
        self._set_supply(bin_id, self.total_supply(bin_id) - amount)

    def transfer(self, sender: Holder, recipient: Holder, bin_id: BinId, amount: Amount) -> None:
        if amount < 0:
            raise ValueError(f"Transfer amount must be non-negative: {amount}")
        current = self.balance_of(sender, bin_id)
        if amount > current:
            raise ValueError(f"Insufficient shares: {current} < {amount}")
        self._set(sender, bin_id, current - amount)
        self._set(recipient, bin_id, self.balance_of(recipient, bin_id) + amount)

    def get_all_balances(self) -> Dict[Tuple[Holder, BinId], Amount]:
        """Return all share balances."""
        return dict(self._balances)

    def verify_supply(self) -> bool:
        """Verify per-bin supply equals the sum of holder balances."""
        totals: Dict[BinId, Amount] = {}
        for (_holder, bin_id), amount in self._balances.items():
            totals[bin_id] = totals.get(bin_id, 0) + amount
        return totals == self._supply

    def __repr__(self) -> str:
        return f"ShareTable({len(self._balances)} entries, {len(self._supply)} bins)"
