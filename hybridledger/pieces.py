"""
pieces.py - Piece id arena and ownership index

=== ID LIFECYCLE ===

Piece ids are allocated from an arena:
    - a monotonic high-water counter for fresh ids (1, 2, 3, ...)
    - a LIFO free-list (the bank) of ids not owned by any account

    mint_next()          -> ++high_water
    take_or_mint()       -> bank.pop() if the bank is non-empty, else mint_next()
    push(id)             -> id goes on top of the bank
    retire(id)           -> id is destroyed and never handed out again

Every id ever minted is in exactly one of: an account's owned set, the bank,
or the retired set.

=== OWNERSHIP ===

OwnershipIndex keeps piece id -> owner and, per account, an insertion-ordered
set of owned ids. The last inserted id is the first one given up
(take_last), so an account behaves as a stack of pieces.
"""

from __future__ import annotations
from typing import Dict, FrozenSet, Iterator, List, Optional, Set, Tuple

from .core import NoPieceToTake


class PieceBank:
    """Arena of piece ids: fresh-id counter plus a LIFO stack of reusable ids."""

    def __init__(self):
        self._stack: List[int] = []
        self._banked: Set[int] = set()
        self._retired: Set[int] = set()
        self._high_water: int = 0

    @property
    def minted(self) -> int:
        """Number of distinct ids ever created (the highest id issued)."""
        return self._high_water

    def __len__(self) -> int:
        return len(self._stack)

    def __contains__(self, piece_id: int) -> bool:
        return piece_id in self._banked

    def ids(self) -> Tuple[int, ...]:
        """Banked ids, bottom of the stack first."""
        return tuple(self._stack)

    def retired(self) -> FrozenSet[int]:
        return frozenset(self._retired)

    def is_retired(self, piece_id: int) -> bool:
        return piece_id in self._retired

    def mint_next(self) -> int:
        self._high_water += 1
        return self._high_water

    def push(self, piece_id: int) -> None:
        if piece_id in self._banked:
            raise ValueError(f"Piece {piece_id} is already banked")
        self._stack.append(piece_id)
        self._banked.add(piece_id)

    def pop(self) -> int:
        piece_id = self._stack.pop()
        self._banked.discard(piece_id)
        return piece_id

    def take_or_mint(self) -> int:
        """Reuse the most recently banked id, or mint a fresh one when the bank is empty."""
        if self._stack:
            return self.pop()
        return self.mint_next()

    def retire(self, piece_id: int) -> None:
        """Destroy an id permanently. It must not be banked."""
        if piece_id in self._banked:
            raise ValueError(f"Piece {piece_id} is banked and cannot be retired")
        self._retired.add(piece_id)

    def copy(self) -> PieceBank:
        cloned = PieceBank.__new__(PieceBank)
        cloned._stack = list(self._stack)
        cloned._banked = set(self._banked)
        cloned._retired = set(self._retired)
        cloned._high_water = self._high_water
        return cloned


class OwnershipIndex:
    """Piece id -> owner, and owner -> insertion-ordered set of piece ids."""

    def __init__(self):
        self._owner_of: Dict[int, str] = {}
        # dict used as an ordered set: keys are piece ids, values unused
        self._owned: Dict[str, Dict[int, None]] = {}

    def owner_of(self, piece_id: int) -> Optional[str]:
        return self._owner_of.get(piece_id)

    def owned(self, account: str) -> Tuple[int, ...]:
        return tuple(self._owned.get(account, ()))

    def count(self, account: str) -> int:
        return len(self._owned.get(account, ()))

    def assign(self, piece_id: int, account: str) -> None:
        """Append piece_id to account's owned set. The id must be unowned."""
        if piece_id in self._owner_of:
            raise ValueError(
                f"Piece {piece_id} already owned by {self._owner_of[piece_id]}"
            )
        self._owner_of[piece_id] = account
        self._owned.setdefault(account, {})[piece_id] = None

    def remove(self, piece_id: int) -> str:
        """Detach piece_id from its owner. Returns the previous owner."""
        account = self._owner_of.pop(piece_id)
        owned = self._owned[account]
        del owned[piece_id]
        if not owned:
            del self._owned[account]
        return account

    def take_last(self, account: str) -> int:
        """
        Detach and return the most recently assigned piece of an account.

        Raises:
            NoPieceToTake: If the account owns no pieces.
        """
        owned = self._owned.get(account)
        if not owned:
            raise NoPieceToTake(f"{account} owns no pieces")
        piece_id = next(reversed(owned))
        self.remove(piece_id)
        return piece_id

    def items(self) -> Iterator[Tuple[int, str]]:
        """Iterate (piece_id, owner) in ascending id order."""
        return iter(sorted(self._owner_of.items()))

    def accounts(self) -> List[str]:
        return sorted(self._owned)

    def copy(self) -> OwnershipIndex:
        cloned = OwnershipIndex.__new__(OwnershipIndex)
        cloned._owner_of = dict(self._owner_of)
        cloned._owned = {account: dict(ids) for account, ids in self._owned.items()}
        return cloned
