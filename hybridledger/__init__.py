"""
hybridledger - Hybrid Fungible/Piece Ledger

A ledger where every account holds an integer fungible balance and, unless
whitelisted, exactly floor(balance / unit) uniquely identified pieces that
are created, banked and reused as the balance crosses whole-unit boundaries.

Usage:
    from hybridledger import HybridLedger, TokenConfig, to_sub_units

    ledger = HybridLedger(TokenConfig("Example", "EXM", max_pieces=100))
    ledger.mint("admin", "alice", to_sub_units("99.1"))
    ledger.mint("admin", "bob", to_sub_units("0.9"))

    # alice: 99.1 -> 95.9 (releases 4 pieces), bob: 0.9 -> 4.1 (acquires 4)
    ledger.transfer("alice", "bob", to_sub_units("3.2"))
    ledger.piece_balance_of("bob")   # 4
"""

# Core types
from .core import (
    LedgerView,
    TokenConfig,
    FungibleTransfer,
    PieceTransfer,
    FungibleApproval,
    PieceApproval,
    ApprovalForAll,
    WhitelistChanged,
    Event,
    LedgerError,
    InsufficientBalance,
    InsufficientAllowance,
    InvalidRecipient,
    InvalidSpender,
    Unauthorized,
    NotFound,
    MaxSupplyReached,
    CannotRemoveFromWhitelist,
    AccessDenied,
    NoPieceToTake,
    SINK_ADDRESS,
    DEFAULT_DECIMALS,
    UNLIMITED_ALLOWANCE,
    ACTION_MINT,
    ACTION_BURN,
    ACTION_SET_WHITELIST,
    to_sub_units,
    from_sub_units,
    whole_units,
)

# Components
from .balances import BalanceStore
from .pieces import PieceBank, OwnershipIndex
from .approvals import ApprovalRegistry
from .whitelist import WhitelistPolicy

# Threshold planning
from .engine import (
    PieceDelta,
    TransferPlan,
    plan_transfer,
    plan_mint,
    plan_burn,
)

# Access control
from .access import (
    allow_all,
    RoleRegistry,
    DEFAULT_ADMIN_ROLE,
    MINTER_ROLE,
    BURNER_ROLE,
    WHITELIST_ADMIN_ROLE,
)

# Ledger
from .ledger import HybridLedger

# Factories
from .tokens import create_hybrid_token


__all__ = [
    # Core
    'LedgerView', 'TokenConfig', 'Event',
    'FungibleTransfer', 'PieceTransfer', 'FungibleApproval', 'PieceApproval',
    'ApprovalForAll', 'WhitelistChanged',
    'LedgerError', 'InsufficientBalance', 'InsufficientAllowance', 'InvalidRecipient',
    'InvalidSpender', 'Unauthorized', 'NotFound', 'MaxSupplyReached',
    'CannotRemoveFromWhitelist', 'AccessDenied', 'NoPieceToTake',
    'SINK_ADDRESS', 'DEFAULT_DECIMALS', 'UNLIMITED_ALLOWANCE',
    'ACTION_MINT', 'ACTION_BURN', 'ACTION_SET_WHITELIST',
    'to_sub_units', 'from_sub_units', 'whole_units',
    # Components
    'BalanceStore', 'PieceBank', 'OwnershipIndex', 'ApprovalRegistry', 'WhitelistPolicy',
    # Threshold planning
    'PieceDelta', 'TransferPlan', 'plan_transfer', 'plan_mint', 'plan_burn',
    # Access control
    'allow_all', 'RoleRegistry',
    'DEFAULT_ADMIN_ROLE', 'MINTER_ROLE', 'BURNER_ROLE', 'WHITELIST_ADMIN_ROLE',
    # Ledger
    'HybridLedger',
    # Factories
    'create_hybrid_token',
]

__version__ = '0.1.0'
