"""
approvals.py - Fungible allowances, piece approvals and operators

Three independent authorization tables:
    allowance[(owner, spender)] -> sub-units spender may move on owner's behalf
    piece_approval[piece_id]    -> single approved spender for that piece
    operators[(owner, operator)] -> blanket authority over all of owner's
                                    pieces and fungible balance

A piece approval is tied to the current owner: the ledger clears it on every
ownership change (transfer, banking, reuse, destruction).
"""

from __future__ import annotations
from typing import Dict, Optional, Set, Tuple

from .core import InsufficientAllowance, UNLIMITED_ALLOWANCE


class ApprovalRegistry:

    def __init__(self):
        self._allowances: Dict[Tuple[str, str], int] = {}
        self._piece_approvals: Dict[int, str] = {}
        self._operators: Set[Tuple[str, str]] = set()

    # ------------------------------------------------------------------
    # Fungible allowances
    # ------------------------------------------------------------------

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((owner, spender), 0)

    def set_allowance(self, owner: str, spender: str, amount: int) -> None:
        """Overwrite the allowance (approve semantics, not additive)."""
        if amount:
            self._allowances[(owner, spender)] = amount
        else:
            self._allowances.pop((owner, spender), None)

    def check_allowance(self, owner: str, spender: str, amount: int) -> None:
        """
        Raises:
            InsufficientAllowance: If spender may not move amount on owner's behalf.
        """
        remaining = self.allowance(owner, spender)
        if amount > remaining:
            raise InsufficientAllowance(
                f"{spender} may spend {remaining} of {owner}, requested {amount}"
            )

    def spend_allowance(self, owner: str, spender: str, amount: int) -> None:
        """Consume amount of the allowance. Unlimited allowances are left untouched."""
        self.check_allowance(owner, spender, amount)
        remaining = self.allowance(owner, spender)
        if remaining != UNLIMITED_ALLOWANCE:
            self.set_allowance(owner, spender, remaining - amount)

    # ------------------------------------------------------------------
    # Piece approvals
    # ------------------------------------------------------------------

    def approved_for(self, piece_id: int) -> Optional[str]:
        return self._piece_approvals.get(piece_id)

    def approve_piece(self, piece_id: int, spender: Optional[str]) -> None:
        """Set the single approved spender of a piece; None revokes."""
        if spender is None:
            self._piece_approvals.pop(piece_id, None)
        else:
            self._piece_approvals[piece_id] = spender

    def clear_piece(self, piece_id: int) -> None:
        self._piece_approvals.pop(piece_id, None)

    # ------------------------------------------------------------------
    # Operators
    # ------------------------------------------------------------------

    def is_approved_for_all(self, owner: str, operator: str) -> bool:
        return (owner, operator) in self._operators

    def set_approval_for_all(self, owner: str, operator: str, enabled: bool) -> None:
        if enabled:
            self._operators.add((owner, operator))
        else:
            self._operators.discard((owner, operator))

    def can_manage(self, caller: str, owner: str) -> bool:
        """Owner or operator: may approve spenders for any of owner's pieces."""
        return caller == owner or self.is_approved_for_all(owner, caller)

    def can_move_piece(self, caller: str, owner: str, piece_id: int) -> bool:
        """Owner, operator, or the piece's approved spender."""
        return self.can_manage(caller, owner) or self.approved_for(piece_id) == caller

    def copy(self) -> ApprovalRegistry:
        cloned = ApprovalRegistry.__new__(ApprovalRegistry)
        cloned._allowances = dict(self._allowances)
        cloned._piece_approvals = dict(self._piece_approvals)
        cloned._operators = set(self._operators)
        return cloned
