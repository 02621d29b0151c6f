"""
ledger.py - Stateful Hybrid Fungible/Piece Ledger

HybridLedger is the central state manager. It is the only module that mutates
state, and it keeps two views of one balance consistent: an integer fungible
balance per account and, for every non-whitelisted account, exactly
floor(balance / unit) uniquely identified pieces.

Key responsibilities:
    - Implements the LedgerView protocol for the pure planners in engine.py
    - Applies fungible transfers, mints and burns with their piece side effects
    - Dual-purpose approve/transfer_from (piece id vs fungible amount)
    - Whitelist exemption from automatic piece accounting
    - Emits events to an append-only log and to subscribers after commit

Every mutation is checked-then-applied: all preconditions are validated
before the first write, so a rejected operation leaves no trace.
"""

from __future__ import annotations
from dataclasses import replace
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from .core import (
    # Types
    TokenConfig, Gate, Event, Subscriber, BalanceMap,
    FungibleTransfer, PieceTransfer, FungibleApproval, PieceApproval,
    ApprovalForAll, WhitelistChanged,
    # Constants
    SINK_ADDRESS, ACTION_MINT, ACTION_BURN, ACTION_SET_WHITELIST,
    # Exceptions
    LedgerError, InsufficientBalance, InvalidRecipient, InvalidSpender,
    Unauthorized, NotFound,
    # Helper functions
    _check_account, _check_amount, event_summary,
)
from .access import allow_all
from .approvals import ApprovalRegistry
from .balances import BalanceStore
from .engine import plan_burn, plan_mint, plan_transfer
from .pieces import OwnershipIndex, PieceBank
from .whitelist import WhitelistPolicy


class HybridLedger:
    """
    Hybrid ledger: fungible balances with mechanically derived pieces.

    Callers are identified explicitly: every mutation takes the acting
    account as its first argument.

    Thread Safety:
        Not thread-safe. The host must serialize all calls on one instance.

    Example:
        ledger = HybridLedger(TokenConfig("Example", "EXM", max_pieces=100))
        ledger.mint("admin", "alice", to_sub_units("2.5"))
        ledger.piece_balance_of("alice")          # 2
        ledger.transfer("alice", "bob", to_sub_units("0.6"))
        ledger.piece_balance_of("alice")          # 1 (one piece banked)
    """

    def __init__(
        self,
        config: TokenConfig,
        gate: Gate = allow_all,
        verbose: bool = True,
    ):
        """
        Create a ledger.

        Args:
            config: Token configuration (name, symbol, decimals, supply cap)
            gate: Capability check for privileged operations (default: allow_all)
            verbose: Print a line per applied or rejected operation (default: True)
        """
        self.config = config
        self.gate = gate
        self.verbose = verbose
        self._balances = BalanceStore()
        self._bank = PieceBank()
        self._ownership = OwnershipIndex()
        self._approvals = ApprovalRegistry()
        self._whitelist = WhitelistPolicy()
        self._metadata: Dict[int, Any] = {}
        self.events: List[Event] = []
        self._pending: List[Event] = []
        self._subscribers: List[Subscriber] = []
        # Monotonic sequence counter stamped on committed events
        self._next_sequence: int = 0

    # ========================================================================
    # TOKEN METADATA
    # ========================================================================

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def symbol(self) -> str:
        return self.config.symbol

    @property
    def decimals(self) -> int:
        return self.config.decimals

    @property
    def unit(self) -> int:
        """Sub-units per whole piece."""
        return self.config.unit

    @property
    def max_pieces(self) -> Optional[int]:
        return self.config.max_pieces

    @property
    def max_fungible_supply(self) -> Optional[int]:
        return self.config.max_fungible_supply

    # ========================================================================
    # FUNGIBLE VIEW
    # ========================================================================

    def total_supply(self) -> int:
        """Fungible amount in circulation (minted minus burned)."""
        return self._balances.total_supply

    def fungible_balance_of(self, account: str) -> int:
        return self._balances.balance_of(account)

    def balance_of(self, account: str) -> int:
        """Alias of fungible_balance_of."""
        return self._balances.balance_of(account)

    def get_balances(self) -> BalanceMap:
        """Return all non-zero fungible balances, keyed by account."""
        return dict(self._balances.items())

    def allowance(self, owner: str, spender: str) -> int:
        return self._approvals.allowance(owner, spender)

    # ========================================================================
    # PIECE VIEW
    # ========================================================================

    def piece_balance_of(self, account: str) -> int:
        return self._ownership.count(account)

    def owned(self, account: str) -> Tuple[int, ...]:
        """Piece ids owned by account, oldest first (the last one is given up first)."""
        return self._ownership.owned(account)

    def owner_of_piece(self, piece_id: int) -> str:
        """
        Return the owner of a piece.

        Raises:
            NotFound: If the id was never minted, is banked, or was destroyed.
        """
        owner = self._ownership.owner_of(piece_id)
        if owner is None:
            raise NotFound(f"Piece {piece_id} is not owned by any account")
        return owner

    def get_approved_piece(self, piece_id: int) -> str:
        """
        Return the approved spender of a piece, or SINK_ADDRESS if none.

        Raises:
            NotFound: If the piece is not currently owned.
        """
        self.owner_of_piece(piece_id)
        return self._approvals.approved_for(piece_id) or SINK_ADDRESS

    def is_approved_for_all(self, owner: str, operator: str) -> bool:
        return self._approvals.is_approved_for_all(owner, operator)

    def minted_count(self) -> int:
        """Number of distinct piece ids ever created."""
        return self._bank.minted

    def banked_pieces(self) -> Tuple[int, ...]:
        """Ids waiting in the bank, bottom of the stack first (last is reused next)."""
        return self._bank.ids()

    def piece_metadata(self, piece_id: int) -> Any:
        """Opaque payload attached by the mint that materialised the piece (None if absent)."""
        self.owner_of_piece(piece_id)
        return self._metadata.get(piece_id)

    def is_whitelisted(self, account: str) -> bool:
        return self._whitelist.is_whitelisted(account)

    def whitelisted_accounts(self) -> List[str]:
        return sorted(self._whitelist.members())

    # ========================================================================
    # EVENTS
    # ========================================================================

    def subscribe(self, callback: Subscriber) -> None:
        """Register an observer called with each event after its operation commits."""
        self._subscribers.append(callback)

    def unsubscribe(self, callback: Subscriber) -> None:
        self._subscribers.remove(callback)

    def _emit(self, event: Event) -> None:
        self._pending.append(event)

    def _commit(self, label: str, operation: Callable[[], None]) -> Tuple[Event, ...]:
        """
        Run one operation, then log and publish its events.

        The operation validates before writing, so an exception here means no
        state changed. Subscribers run only after all state is applied and the
        events are in the log; their exceptions propagate to the caller.
        """
        self._pending = []
        try:
            operation()
        except LedgerError as e:
            self._pending = []
            if self.verbose:
                print(f"✗ REJECTED: {label}: {e}")
            raise

        emitted = []
        for event in self._pending:
            emitted.append(replace(event, sequence=self._next_sequence))
            self._next_sequence += 1
        self._pending = []
        self.events.extend(emitted)

        if self.verbose:
            print(f"✓ {label}: {event_summary(tuple(emitted))}")
        for event in emitted:
            for callback in list(self._subscribers):
                callback(event)
        return tuple(emitted)

    # ========================================================================
    # PIECE MOVEMENT PRIMITIVES (called only from inside _commit)
    # ========================================================================

    def _bank_last_piece(self, account: str) -> int:
        piece_id = self._ownership.take_last(account)
        self._bank.push(piece_id)
        self._approvals.clear_piece(piece_id)
        self._emit(PieceTransfer(account, SINK_ADDRESS, piece_id))
        return piece_id

    def _assign_next_piece(self, account: str, metadata: Any = None) -> int:
        piece_id = self._bank.take_or_mint()
        self._ownership.assign(piece_id, account)
        self._approvals.clear_piece(piece_id)
        if metadata is not None:
            self._metadata[piece_id] = metadata
        self._emit(PieceTransfer(SINK_ADDRESS, account, piece_id))
        return piece_id

    def _live_piece_owner(self, value: int) -> Optional[str]:
        """Owner of `value` read as a piece id, or None if it names no owned piece."""
        if 0 < value <= self._bank.minted:
            return self._ownership.owner_of(value)
        return None

    # ========================================================================
    # TRANSFERS
    # ========================================================================

    def _move_fungible(self, caller: str, sender: str, recipient: str, amount: int) -> None:
        if recipient == SINK_ADDRESS:
            raise InvalidRecipient("Cannot transfer to the sink address")
        spends_allowance = (
            caller != sender and not self._approvals.is_approved_for_all(sender, caller)
        )
        if spends_allowance:
            self._approvals.check_allowance(sender, caller, amount)
        plan = plan_transfer(self, sender, recipient, amount)

        if spends_allowance:
            self._approvals.spend_allowance(sender, caller, amount)
        self._balances.move(sender, recipient, amount)
        self._emit(FungibleTransfer(sender, recipient, amount))
        for _ in range(plan.banked):
            self._bank_last_piece(sender)
        for _ in range(plan.assigned):
            self._assign_next_piece(recipient)

    def _move_piece(self, owner: str, sender: str, recipient: str, piece_id: int) -> None:
        if recipient == SINK_ADDRESS:
            raise InvalidRecipient(f"Cannot transfer piece {piece_id} to the sink address")
        if owner != sender:
            raise Unauthorized(f"Piece {piece_id} is owned by {owner}, not {sender}")
        balance = self._balances.balance_of(sender)
        if balance < self.unit:
            raise InsufficientBalance(
                f"{sender}: balance {balance} < one unit ({self.unit}) for piece {piece_id}"
            )

        self._balances.move(sender, recipient, self.unit)
        self._ownership.remove(piece_id)
        self._ownership.assign(piece_id, recipient)
        self._approvals.clear_piece(piece_id)
        self._emit(FungibleTransfer(sender, recipient, self.unit))
        self._emit(PieceTransfer(sender, recipient, piece_id))

    def transfer(self, caller: str, recipient: str, amount: int) -> Tuple[Event, ...]:
        """
        Move `amount` sub-units from caller to recipient.

        Pieces released by the caller are banked; pieces gained by the
        recipient are reused from the bank or freshly minted.

        Returns:
            Events emitted by the transfer.

        Raises:
            InvalidRecipient: If recipient is the sink address.
            InsufficientBalance: If caller holds less than amount.
        """
        _check_account(caller, "caller")
        _check_account(recipient, "recipient")
        _check_amount(amount)
        return self._commit(
            "TRANSFER",
            lambda: self._move_fungible(caller, caller, recipient, amount),
        )

    def transfer_from(self, caller: str, sender: str, recipient: str, value_or_id: int) -> Tuple[Event, ...]:
        """
        Move value on sender's behalf; value_or_id is either a piece id or an amount.

        Resolution order:
            1. value_or_id is a currently owned piece id: caller must be that
               piece's owner, its operator, or its approved spender. Exactly
               that piece and one unit of balance move from sender.
            2. Otherwise: fungible transfer of value_or_id sub-units. Caller
               must be sender, an operator of sender, or hold enough allowance
               (which is consumed).

        Raises:
            InvalidRecipient: If recipient is the sink address.
            Unauthorized: If caller may not move the piece, or sender does not own it.
            InsufficientAllowance: If a fungible spend exceeds the allowance.
            InsufficientBalance: If sender holds too little.
        """
        _check_account(caller, "caller")
        _check_account(sender, "sender")
        _check_account(recipient, "recipient")
        _check_amount(value_or_id, "value_or_id")

        owner = self._live_piece_owner(value_or_id)
        if owner is not None:
            def move_piece():
                if not self._approvals.can_move_piece(caller, owner, value_or_id):
                    raise Unauthorized(
                        f"{caller} is not owner, operator or approved spender of piece {value_or_id}"
                    )
                self._move_piece(owner, sender, recipient, value_or_id)

            return self._commit("TRANSFER_PIECE", move_piece)
        return self._commit(
            "TRANSFER_FROM",
            lambda: self._move_fungible(caller, sender, recipient, value_or_id),
        )

    # ========================================================================
    # APPROVALS
    # ========================================================================

    def _approve_piece(self, owner: str, spender: str, piece_id: int) -> None:
        self._approvals.approve_piece(
            piece_id, None if spender == SINK_ADDRESS else spender
        )
        self._emit(PieceApproval(owner, spender, piece_id))

    def _approve_fungible(self, owner: str, spender: str, amount: int) -> None:
        if spender == SINK_ADDRESS:
            raise InvalidSpender("Cannot grant an allowance to the sink address")
        self._approvals.set_allowance(owner, spender, amount)
        self._emit(FungibleApproval(owner, spender, amount))

    def approve(self, caller: str, spender: str, value_or_id: int) -> Tuple[Event, ...]:
        """
        Dual-purpose approval.

        If value_or_id names a currently owned piece, spender becomes the
        piece's approved spender (SINK_ADDRESS revokes); caller must be the
        owner or an operator of the owner. Otherwise value_or_id is a fungible
        allowance that overwrites the previous one.

        Raises:
            Unauthorized: If the piece belongs to someone caller cannot act for.
            InvalidSpender: For a fungible allowance to the sink address.
        """
        _check_account(caller, "caller")
        _check_account(spender, "spender")
        _check_amount(value_or_id, "value_or_id")

        owner = self._live_piece_owner(value_or_id)
        if owner is not None:
            def approve_piece():
                if not self._approvals.can_manage(caller, owner):
                    raise Unauthorized(
                        f"{caller} is not owner or operator of piece {value_or_id}"
                    )
                self._approve_piece(owner, spender, value_or_id)

            return self._commit("APPROVE_PIECE", approve_piece)
        return self._commit(
            "APPROVE",
            lambda: self._approve_fungible(caller, spender, value_or_id),
        )

    def set_approval_for_all(self, caller: str, operator: str, enabled: bool) -> Tuple[Event, ...]:
        """
        Grant or revoke blanket authority over caller's pieces and balance.

        Raises:
            InvalidSpender: If operator is the sink address.
        """
        _check_account(caller, "caller")
        _check_account(operator, "operator")

        def operation():
            if operator == SINK_ADDRESS:
                raise InvalidSpender("The sink address cannot be an operator")
            self._approvals.set_approval_for_all(caller, operator, bool(enabled))
            self._emit(ApprovalForAll(caller, operator, bool(enabled)))

        return self._commit("APPROVE_FOR_ALL", operation)

    # ========================================================================
    # PRIVILEGED: MINT / BURN / WHITELIST
    # ========================================================================

    def mint(self, caller: str, recipient: str, amount: int, metadata: Any = None) -> Tuple[Event, ...]:
        """
        Create `amount` sub-units for recipient.

        A non-whitelisted recipient gains floor(new/unit) - floor(old/unit)
        pieces, reused from the bank or minted in ascending order. metadata is
        stored opaquely with each piece this mint materialises.

        Raises:
            AccessDenied: If the gate refuses caller.
            InvalidRecipient: If recipient is the sink address.
            MaxSupplyReached: If the supply cap would be exceeded.
        """
        _check_account(caller, "caller")
        _check_account(recipient, "recipient")
        _check_amount(amount)

        def operation():
            self.gate(caller, ACTION_MINT)
            if recipient == SINK_ADDRESS:
                raise InvalidRecipient("Cannot mint to the sink address")
            delta = plan_mint(self, recipient, amount)

            self._balances.issue(recipient, amount)
            self._emit(FungibleTransfer(SINK_ADDRESS, recipient, amount))
            for _ in range(delta.acquired):
                self._assign_next_piece(recipient, metadata)

        return self._commit("MINT", operation)

    def burn_from(self, caller: str, account: str, amount: int) -> Tuple[Event, ...]:
        """
        Destroy `amount` sub-units of account's balance.

        Released pieces are banked, not destroyed. A caller other than the
        account consumes allowance.

        Raises:
            AccessDenied: If the gate refuses caller.
            InsufficientAllowance: If caller != account and allowance is too small.
            InsufficientBalance: If account holds less than amount.
        """
        _check_account(caller, "caller")
        _check_account(account, "account")
        _check_amount(amount)

        def operation():
            self.gate(caller, ACTION_BURN)
            spends_allowance = caller != account
            if spends_allowance:
                self._approvals.check_allowance(account, caller, amount)
            delta = plan_burn(self, account, amount)

            if spends_allowance:
                self._approvals.spend_allowance(account, caller, amount)
            self._balances.redeem(account, amount)
            self._emit(FungibleTransfer(account, SINK_ADDRESS, amount))
            for _ in range(delta.released):
                self._bank_last_piece(account)

        return self._commit("BURN", operation)

    def burn_pieces_from(self, caller: str, account: str, piece_ids: Iterable[int]) -> Tuple[Event, ...]:
        """
        Destroy specific pieces of account, one unit of balance each.

        Destroyed ids never return to the bank.

        Raises:
            AccessDenied: If the gate refuses caller.
            NotFound: If an id is not currently owned (never minted, banked,
                destroyed, or repeated in piece_ids).
            Unauthorized: If an id belongs to another account, or caller is
                not owner, operator or approved spender.
            InsufficientBalance: If account holds less than one unit per piece.
        """
        _check_account(caller, "caller")
        _check_account(account, "account")
        ids = tuple(piece_ids)
        for piece_id in ids:
            _check_amount(piece_id, "piece_id")

        def operation():
            self.gate(caller, ACTION_BURN)
            seen = set()
            for piece_id in ids:
                owner = None if piece_id in seen else self._ownership.owner_of(piece_id)
                if owner is None:
                    raise NotFound(f"Piece {piece_id} is not owned by any account")
                if owner != account:
                    raise Unauthorized(f"Piece {piece_id} is owned by {owner}, not {account}")
                if not self._approvals.can_move_piece(caller, owner, piece_id):
                    raise Unauthorized(f"{caller} may not burn piece {piece_id} of {owner}")
                seen.add(piece_id)
            total = len(ids) * self.unit
            balance = self._balances.balance_of(account)
            if total > balance:
                raise InsufficientBalance(f"{account}: balance {balance} < {total}")
            if not ids:
                return

            self._balances.redeem(account, total)
            self._emit(FungibleTransfer(account, SINK_ADDRESS, total))
            for piece_id in ids:
                self._ownership.remove(piece_id)
                self._approvals.clear_piece(piece_id)
                self._bank.retire(piece_id)
                self._metadata.pop(piece_id, None)
                self._emit(PieceTransfer(account, SINK_ADDRESS, piece_id))

        return self._commit("BURN_PIECES", operation)

    def set_whitelist(self, caller: str, account: str, enabled: bool) -> Tuple[Event, ...]:
        """
        Grant or remove exemption from automatic piece accounting.

        Granting freezes the account's current pieces. Removal is allowed only
        below one whole unit of balance; any frozen pieces still held are then
        banked so the account satisfies the piece/balance invariant again.
        Removing an account that is not whitelisted changes nothing and emits
        no event.

        Raises:
            AccessDenied: If the gate refuses caller.
            CannotRemoveFromWhitelist: On removal with balance >= unit.
        """
        _check_account(caller, "caller")
        _check_account(account, "account")

        def operation():
            self.gate(caller, ACTION_SET_WHITELIST)
            if enabled:
                self._whitelist.grant(account)
                self._emit(WhitelistChanged(account, True))
                return
            if not self._whitelist.is_whitelisted(account):
                return
            self._whitelist.check_revocable(
                account, self._balances.balance_of(account), self.unit
            )
            self._whitelist.revoke(account)
            self._emit(WhitelistChanged(account, False))
            for _ in range(self._ownership.count(account)):
                self._bank_last_piece(account)

        return self._commit("SET_WHITELIST", operation)

    # ========================================================================
    # LEDGER OPERATIONS
    # ========================================================================

    def verify_invariants(self) -> Dict[str, Any]:
        """
        Check every structural invariant of the ledger.

        Checks:
            - conservation: total_supply equals the sum of all balances
            - piece_balance: each non-whitelisted account owns floor(balance/unit) pieces
            - piece_location: each minted id is owned, banked, or destroyed, exactly one of them

        Returns:
            Dict with keys:
            - 'valid': bool - True if every check passes
            - 'total_supply': int - tracked total supply
            - 'discrepancies': List[Dict] - one entry per violation, keyed by 'check'

        Example:
            result = ledger.verify_invariants()
            assert result['valid'], result['discrepancies']
        """
        discrepancies = []
        total = self._balances.total_supply

        balances = dict(self._balances.items())
        balance_sum = sum(balances.values())
        if balance_sum != total:
            discrepancies.append({
                'check': 'conservation',
                'expected': total,
                'actual': balance_sum,
            })

        accounts = set(balances) | set(self._ownership.accounts())
        for account in sorted(accounts):
            if self._whitelist.is_whitelisted(account):
                continue
            expected = balances.get(account, 0) // self.unit
            actual = self._ownership.count(account)
            if expected != actual:
                discrepancies.append({
                    'check': 'piece_balance',
                    'account': account,
                    'expected': expected,
                    'actual': actual,
                })

        owned_ids = {piece_id for piece_id, _ in self._ownership.items()}
        banked_list = self._bank.ids()
        banked_ids = set(banked_list)
        retired_ids = self._bank.retired()
        if len(banked_list) != len(banked_ids):
            discrepancies.append({
                'check': 'piece_location',
                'error': 'duplicate id in bank',
            })
        all_ids = owned_ids | banked_ids | retired_ids
        for piece_id in sorted(all_ids | set(range(1, self._bank.minted + 1))):
            locations = (
                (piece_id in owned_ids) + (piece_id in banked_ids) + (piece_id in retired_ids)
            )
            if locations != 1 or piece_id > self._bank.minted:
                discrepancies.append({
                    'check': 'piece_location',
                    'piece_id': piece_id,
                    'locations': locations,
                })

        return {
            'valid': len(discrepancies) == 0,
            'total_supply': total,
            'discrepancies': discrepancies,
        }

    def clone(self) -> HybridLedger:
        """
        Create an independent copy of this ledger.

        State, configuration and the event log are copied; subscribers are not.
        """
        cloned = HybridLedger.__new__(HybridLedger)
        cloned.config = self.config
        cloned.gate = self.gate
        cloned.verbose = self.verbose
        cloned._balances = self._balances.copy()
        cloned._bank = self._bank.copy()
        cloned._ownership = self._ownership.copy()
        cloned._approvals = self._approvals.copy()
        cloned._whitelist = self._whitelist.copy()
        cloned._metadata = dict(self._metadata)
        cloned.events = list(self.events)
        cloned._pending = []
        cloned._subscribers = []
        cloned._next_sequence = self._next_sequence
        return cloned
