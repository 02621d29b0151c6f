"""
engine.py - Threshold-crossing piece accounting

=== THE ALGORITHM ===

A fungible move of `amount` from S to R changes two balances. Each side's
piece count is derived from its own balance alone:

    released(S) = floor(S.before / unit) - floor(S.after / unit)
    acquired(R) = floor(R.after / unit) - floor(R.before / unit)

The two counts are independent. Pieces released by S go to the bank; pieces
acquired by R come from the bank (most recently banked first) or are freshly
minted. Example with unit = 1.0:

    S 99.1 -> 95.9   releases 99 - 95 = 4
    R  0.9 ->  4.1   acquires  4 -  0 = 4

    S 100.0 -> 99.9  releases 1
    R   0.0 ->  0.1  acquires 0      (the released piece waits in the bank)

A whitelisted side contributes 0 regardless of its balances.

=== PURE FUNCTIONS ===

plan_transfer / plan_mint / plan_burn read a LedgerView, validate every
precondition that can fail, and return frozen plans. The ledger applies a
plan only after planning succeeded, so an operation never fails half way.
"""

from __future__ import annotations
from dataclasses import dataclass

from .core import (
    LedgerView,
    InsufficientBalance, MaxSupplyReached, NoPieceToTake,
    whole_units,
)


@dataclass(frozen=True, slots=True)
class PieceDelta:
    """
    One account's side of a balance change.

    Attributes:
        account: Account whose balance changes.
        balance_before: Fungible balance before the operation.
        balance_after: Fungible balance after the operation.
        unit: Sub-units per piece.
        exempt: True if the account is whitelisted (no piece accounting).
    """
    account: str
    balance_before: int
    balance_after: int
    unit: int
    exempt: bool = False

    @property
    def released(self) -> int:
        """Pieces the account must give up to the bank."""
        if self.exempt:
            return 0
        lost = whole_units(self.balance_before, self.unit) - whole_units(self.balance_after, self.unit)
        return max(lost, 0)

    @property
    def acquired(self) -> int:
        """Pieces the account must receive from the bank or fresh minting."""
        if self.exempt:
            return 0
        gained = whole_units(self.balance_after, self.unit) - whole_units(self.balance_before, self.unit)
        return max(gained, 0)


@dataclass(frozen=True, slots=True)
class TransferPlan:
    """Validated plan for a fungible transfer: sender side and recipient side."""
    amount: int
    sender: PieceDelta
    recipient: PieceDelta

    @property
    def banked(self) -> int:
        return self.sender.released

    @property
    def assigned(self) -> int:
        return self.recipient.acquired


def _debit(view: LedgerView, account: str, amount: int) -> PieceDelta:
    before = view.fungible_balance_of(account)
    if amount > before:
        raise InsufficientBalance(f"{account}: balance {before} < {amount}")
    delta = PieceDelta(
        account=account,
        balance_before=before,
        balance_after=before - amount,
        unit=view.unit,
        exempt=view.is_whitelisted(account),
    )
    held = view.piece_balance_of(account)
    if delta.released > held:
        raise NoPieceToTake(
            f"{account} must release {delta.released} pieces but owns {held}"
        )
    return delta


def plan_transfer(view: LedgerView, sender: str, recipient: str, amount: int) -> TransferPlan:
    """
    Plan the piece side effects of moving `amount` from sender to recipient.

    A self-transfer is planned sequentially: the sender side is released
    first, then the recipient side is acquired from the lowered balance, so
    the same pieces go through the bank and come straight back.

    Raises:
        InsufficientBalance: If sender holds less than amount.
        NoPieceToTake: If sender's ownership index is out of step with its balance.
    """
    sender_delta = _debit(view, sender, amount)
    if recipient == sender:
        recipient_before = sender_delta.balance_after
    else:
        recipient_before = view.fungible_balance_of(recipient)
    recipient_delta = PieceDelta(
        account=recipient,
        balance_before=recipient_before,
        balance_after=recipient_before + amount,
        unit=view.unit,
        exempt=view.is_whitelisted(recipient),
    )
    return TransferPlan(amount=amount, sender=sender_delta, recipient=recipient_delta)


def plan_mint(view: LedgerView, recipient: str, amount: int) -> PieceDelta:
    """
    Plan a mint of `amount` sub-units to recipient.

    Raises:
        MaxSupplyReached: If total supply would exceed the configured maximum.
    """
    cap = view.max_fungible_supply
    supply = view.total_supply()
    if cap is not None and supply + amount > cap:
        raise MaxSupplyReached(
            f"minting {amount} would take supply to {supply + amount} > max {cap}"
        )
    before = view.fungible_balance_of(recipient)
    return PieceDelta(
        account=recipient,
        balance_before=before,
        balance_after=before + amount,
        unit=view.unit,
        exempt=view.is_whitelisted(recipient),
    )


def plan_burn(view: LedgerView, account: str, amount: int) -> PieceDelta:
    """
    Plan a burn of `amount` sub-units from account.

    Raises:
        InsufficientBalance: If account holds less than amount.
        NoPieceToTake: If account's ownership index is out of step with its balance.
    """
    return _debit(view, account, amount)
