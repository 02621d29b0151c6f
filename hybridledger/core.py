"""
Core types and pure functions for the hybrid ledger.

This module provides the foundational data structures shared by every component:
1. Protocols: LedgerView for read-only ledger access
2. Immutable data structures: TokenConfig and the event records
3. Exceptions: LedgerError and domain-specific error types
4. Type aliases and constants: Account, PieceId, SINK_ADDRESS, ...
5. Amount helpers: exact conversion between whole units and sub-units

A hybrid ledger keeps one fungible balance per account (an integer number of
sub-units) and, derived from it, a set of uniquely identified pieces: a
non-exempt account always owns exactly floor(balance / unit) pieces.

All functions in this module are pure. No function can mutate ledger state.
"""

from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal, ROUND_DOWN, InvalidOperation, localcontext
from typing import Any, Callable, Dict, Optional, Protocol, Tuple, Union, runtime_checkable


# ============================================================================
# CONSTANTS
# ============================================================================

# Designated "no owner" address. Mints originate here, banked and destroyed
# pieces are sent here, and it can never receive a transfer.
SINK_ADDRESS = "0x" + "0" * 40

# Decimal places of the fungible side (unit = 10 ** decimals sub-units).
DEFAULT_DECIMALS = 18

# Allowance sentinel: an allowance at this value is never decremented.
UNLIMITED_ALLOWANCE = 2 ** 256 - 1

# Privileged actions checked by the injected capability gate.
ACTION_MINT = "mint"
ACTION_BURN = "burn"
ACTION_SET_WHITELIST = "set_whitelist"

# Precision for Decimal amount conversions (enough for 256-bit sub-unit values).
_AMOUNT_PRECISION = 100


# ============================================================================
# TYPE ALIASES
# ============================================================================

# Account identifier (an address).
Account = str

# Positive integer piece identifier.
PieceId = int

# Mapping from account to fungible balance in sub-units.
BalanceMap = Dict[str, int]

# Capability check for privileged entry points: gate(caller, action).
# Returns None when the caller may perform the action, raises AccessDenied otherwise.
Gate = Callable[[str, str], None]


# ============================================================================
# EXCEPTIONS
# ============================================================================

class LedgerError(Exception):
    """Base exception for all ledger-related errors."""
    pass


class InsufficientBalance(LedgerError):
    """Raised when a decrease would take an account's fungible balance below zero."""
    pass


class InsufficientAllowance(LedgerError):
    """Raised when a spender moves more than its remaining allowance and is not owner or operator."""
    pass


class InvalidRecipient(LedgerError):
    """Raised when the target of a transfer or mint is the sink address."""
    pass


class InvalidSpender(LedgerError):
    """Raised when a fungible approval or operator grant targets the sink address."""
    pass


class Unauthorized(LedgerError):
    """Raised when a piece-level operation is attempted by a non-owner, non-approved, non-operator caller."""
    pass


class NotFound(LedgerError):
    """Raised when querying a piece id that was never minted, is banked, or was destroyed."""
    pass


class MaxSupplyReached(LedgerError):
    """Raised when a mint would exceed the configured maximum fungible supply."""
    pass


class CannotRemoveFromWhitelist(LedgerError):
    """Raised when exemption removal is attempted while the balance is at least one unit."""
    pass


class AccessDenied(LedgerError):
    """Raised by a capability gate when the caller lacks the role for a privileged action."""
    pass


class NoPieceToTake(LedgerError):
    """Raised when an account must give up a piece it does not hold (ownership index out of sync)."""
    pass


# ============================================================================
# PROTOCOLS
# ============================================================================

@runtime_checkable
class LedgerView(Protocol):
    """
    Read-only interface to hybrid ledger state.

    The transfer planning functions in engine.py accept a LedgerView to declare
    that they never mutate. HybridLedger implements this protocol.
    """

    @property
    def unit(self) -> int:
        """Number of sub-units in one whole piece."""
        ...

    @property
    def max_fungible_supply(self) -> Optional[int]:
        """Configured supply cap in sub-units, or None when unbounded."""
        ...

    def total_supply(self) -> int:
        """Return the fungible amount in circulation."""
        ...

    def fungible_balance_of(self, account: str) -> int:
        """Return an account's fungible balance (0 for untouched accounts)."""
        ...

    def piece_balance_of(self, account: str) -> int:
        """Return the number of pieces an account owns."""
        ...

    def is_whitelisted(self, account: str) -> bool:
        """Return True if the account is exempt from automatic piece accounting."""
        ...


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass(frozen=True, slots=True)
class TokenConfig:
    """
    Static configuration of a hybrid token.

    Attributes:
        name: Human-readable token name.
        symbol: Short ticker.
        decimals: Sub-unit precision; one piece is 10 ** decimals sub-units.
        max_pieces: Cap on total supply expressed in whole units (None = unbounded).
    """
    name: str
    symbol: str
    decimals: int = DEFAULT_DECIMALS
    max_pieces: Optional[int] = None

    def __post_init__(self):
        if not self.name or not self.name.strip():
            raise ValueError("Token name cannot be empty")
        if not self.symbol or not self.symbol.strip():
            raise ValueError("Token symbol cannot be empty")
        if not isinstance(self.decimals, int) or self.decimals < 0:
            raise ValueError(f"decimals must be a non-negative int, got {self.decimals!r}")
        if self.max_pieces is not None and self.max_pieces <= 0:
            raise ValueError(f"max_pieces must be positive, got {self.max_pieces}")

    @property
    def unit(self) -> int:
        return 10 ** self.decimals

    @property
    def max_fungible_supply(self) -> Optional[int]:
        if self.max_pieces is None:
            return None
        return self.max_pieces * self.unit


# ============================================================================
# EVENTS
# ============================================================================
#
# Every event carries a monotonic sequence number assigned by the ledger when
# the emitting operation commits. Records are built with sequence=0 and
# stamped on commit.

@dataclass(frozen=True, slots=True)
class FungibleTransfer:
    """Fungible amount moved. sender == SINK_ADDRESS for mints, recipient == SINK_ADDRESS for burns."""
    sender: str
    recipient: str
    amount: int
    sequence: int = 0

    def __repr__(self) -> str:
        return f"FungibleTransfer(#{self.sequence} {self.amount}: {self.sender}→{self.recipient})"


@dataclass(frozen=True, slots=True)
class PieceTransfer:
    """Piece changed hands, was materialised from the sink, or was banked/destroyed into it."""
    sender: str
    recipient: str
    piece_id: int
    sequence: int = 0

    def __repr__(self) -> str:
        return f"PieceTransfer(#{self.sequence} piece {self.piece_id}: {self.sender}→{self.recipient})"


@dataclass(frozen=True, slots=True)
class FungibleApproval:
    owner: str
    spender: str
    amount: int
    sequence: int = 0


@dataclass(frozen=True, slots=True)
class PieceApproval:
    """spender == SINK_ADDRESS means the piece approval was revoked."""
    owner: str
    spender: str
    piece_id: int
    sequence: int = 0


@dataclass(frozen=True, slots=True)
class ApprovalForAll:
    owner: str
    operator: str
    approved: bool
    sequence: int = 0


@dataclass(frozen=True, slots=True)
class WhitelistChanged:
    account: str
    enabled: bool
    sequence: int = 0


Event = Union[
    FungibleTransfer, PieceTransfer, FungibleApproval,
    PieceApproval, ApprovalForAll, WhitelistChanged,
]

# Observer callback registered with HybridLedger.subscribe().
Subscriber = Callable[[Any], None]


# ============================================================================
# VALIDATION HELPERS
# ============================================================================

def _check_account(account: str, role: str = "account") -> None:
    """Reject empty or non-string account identifiers."""
    if not isinstance(account, str) or not account.strip():
        raise ValueError(f"{role} must be a non-empty string, got {account!r}")


def _check_amount(amount: int, role: str = "amount") -> None:
    """Reject anything that is not a non-negative int (bool excluded)."""
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValueError(f"{role} must be an int number of sub-units, got {type(amount).__name__}")
    if amount < 0:
        raise ValueError(f"{role} must be non-negative, got {amount}")


# ============================================================================
# AMOUNT HELPERS
# ============================================================================

def to_sub_units(value: Union[str, int, Decimal], decimals: int = DEFAULT_DECIMALS) -> int:
    """
    Convert a whole-unit quantity to an integer number of sub-units.

    Strings and Decimals are converted exactly, so to_sub_units("0.9") is
    9 * 10**17 with no float error. Digits beyond the token precision are
    truncated (ROUND_DOWN).

    Args:
        value: Quantity in whole units (e.g. "99.1", 3, Decimal("0.25")).
        decimals: Token precision.

    Returns:
        Amount in sub-units.

    Raises:
        ValueError: If the value is negative, not a number, or infinite.
    """
    if isinstance(value, float):
        value = str(value)
    try:
        quantity = Decimal(value)
    except InvalidOperation:
        raise ValueError(f"Not a valid amount: {value!r}")
    if quantity.is_nan() or quantity.is_infinite():
        raise ValueError(f"Amount must be finite, got {value!r}")
    if quantity < 0:
        raise ValueError(f"Amount must be non-negative, got {value!r}")
    with localcontext() as ctx:
        ctx.prec = _AMOUNT_PRECISION
        scaled = quantity.scaleb(decimals)
        return int(scaled.quantize(Decimal(1), rounding=ROUND_DOWN))


def from_sub_units(amount: int, decimals: int = DEFAULT_DECIMALS) -> Decimal:
    """Convert an integer sub-unit amount back to a Decimal quantity of whole units."""
    _check_amount(amount)
    with localcontext() as ctx:
        ctx.prec = _AMOUNT_PRECISION
        return Decimal(amount).scaleb(-decimals)


def whole_units(balance: int, unit: int) -> int:
    """Number of pieces a non-exempt account holding `balance` sub-units must own."""
    return balance // unit


def event_summary(events: Tuple[Any, ...]) -> str:
    """Compact one-line description of an operation's events, used for console tracing."""
    fungible = sum(1 for e in events if isinstance(e, FungibleTransfer))
    pieces = sum(1 for e in events if isinstance(e, PieceTransfer))
    other = len(events) - fungible - pieces
    parts = [f"{fungible} fungible", f"{pieces} piece"]
    if other:
        parts.append(f"{other} other")
    return ", ".join(parts)
