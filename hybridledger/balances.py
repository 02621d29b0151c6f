"""
balances.py - Fungible balance storage

BalanceStore maps account -> integer sub-unit balance. Accounts are created
lazily: an account never touched reads as zero and takes no space until its
first increase.

Total supply is tracked incrementally through issue()/redeem() (mint and burn)
rather than re-derived by scanning accounts; verify_invariants() in ledger.py
compares the two.
"""

from __future__ import annotations
from typing import Dict, Iterator, Tuple

from .core import InsufficientBalance


class BalanceStore:
    """Account -> fungible amount, plus the running total supply."""

    def __init__(self):
        self._balances: Dict[str, int] = {}
        self._total_supply: int = 0

    @property
    def total_supply(self) -> int:
        return self._total_supply

    def balance_of(self, account: str) -> int:
        return self._balances.get(account, 0)

    def increase(self, account: str, amount: int) -> int:
        """Add amount to account. Returns the new balance."""
        new_balance = self._balances.get(account, 0) + amount
        self._balances[account] = new_balance
        return new_balance

    def decrease(self, account: str, amount: int) -> int:
        """
        Subtract amount from account.

        Returns:
            The new balance.

        Raises:
            InsufficientBalance: If amount exceeds the current balance.
        """
        current = self._balances.get(account, 0)
        if amount > current:
            raise InsufficientBalance(
                f"{account}: balance {current} < {amount}"
            )
        new_balance = current - amount
        if new_balance:
            self._balances[account] = new_balance
        else:
            self._balances.pop(account, None)
        return new_balance

    def move(self, sender: str, recipient: str, amount: int) -> None:
        """Debit sender and credit recipient. Supply is unchanged."""
        self.decrease(sender, amount)
        self.increase(recipient, amount)

    def issue(self, account: str, amount: int) -> int:
        """Mint: credit account and grow total supply."""
        new_balance = self.increase(account, amount)
        self._total_supply += amount
        return new_balance

    def redeem(self, account: str, amount: int) -> int:
        """Burn: debit account and shrink total supply."""
        new_balance = self.decrease(account, amount)
        self._total_supply -= amount
        return new_balance

    def items(self) -> Iterator[Tuple[str, int]]:
        """Iterate (account, balance) over accounts with a non-zero balance, sorted by account."""
        return iter(sorted(self._balances.items()))

    def copy(self) -> BalanceStore:
        cloned = BalanceStore.__new__(BalanceStore)
        cloned._balances = dict(self._balances)
        cloned._total_supply = self._total_supply
        return cloned
