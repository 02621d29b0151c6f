"""
tokens.py - Hybrid token factory

create_hybrid_token() builds a ledger the way a fresh deployment looks:
the initial recipient is whitelisted and receives the entire fungible supply
with no pieces, so minted_count() starts at 0 and pieces only appear once
balance reaches non-exempt accounts.
"""

from __future__ import annotations
from typing import Optional

from .access import RoleRegistry
from .core import DEFAULT_DECIMALS, Gate, TokenConfig
from .ledger import HybridLedger


def create_hybrid_token(
    name: str,
    symbol: str,
    max_pieces: int,
    initial_owner: str,
    initial_mint_recipient: Optional[str] = None,
    decimals: int = DEFAULT_DECIMALS,
    gate: Optional[Gate] = None,
    verbose: bool = True,
) -> HybridLedger:
    """
    Create a hybrid token with its full supply minted to one exempt account.

    Args:
        name: Token name.
        symbol: Token symbol.
        max_pieces: Supply cap in whole units; the full cap is minted.
        initial_owner: Account holding every privileged role (ignored when gate is given).
        initial_mint_recipient: Receives the supply (default: initial_owner).
        decimals: Sub-unit precision (default: 18).
        gate: Capability gate (default: RoleRegistry with initial_owner as admin).
        verbose: Console tracing.

    Returns:
        A HybridLedger whose total supply equals max_fungible_supply.

    Example:
        token = create_hybrid_token("Example", "EXM", 100, "deployer")
        token.total_supply() == 100 * 10**18
        token.minted_count() == 0
    """
    config = TokenConfig(name=name, symbol=symbol, decimals=decimals, max_pieces=max_pieces)
    if gate is None:
        gate = RoleRegistry(admin=initial_owner)
    recipient = initial_mint_recipient or initial_owner

    ledger = HybridLedger(config, gate=gate, verbose=verbose)
    ledger.set_whitelist(initial_owner, recipient, True)
    ledger.mint(initial_owner, recipient, config.max_fungible_supply)
    return ledger
