"""
conftest.py - Shared pytest fixtures for hybrid ledger tests

Provides common fixtures used across unit, conformance and functional tests:
- Empty ledgers (unbounded and capped supply)
- A deployed token whose whole supply sits in an exempt deployer account
- A ledger where "from" holds 100 whole units (100 pieces)
- Invariant checking helper
"""

import pytest
from typing import Callable

from hybridledger import (
    HybridLedger, TokenConfig, RoleRegistry,
    create_hybrid_token, to_sub_units,
)


UNIT = 10 ** 18


def units(value) -> int:
    """Whole-unit quantity (e.g. "0.9") to sub-units at 18 decimals."""
    return to_sub_units(value)


# =============================================================================
# BASIC FIXTURES
# =============================================================================

@pytest.fixture
def unit() -> int:
    return UNIT


@pytest.fixture
def ledger():
    """Fresh ledger, 18 decimals, room for 1000 pieces, every caller privileged."""
    return HybridLedger(TokenConfig("Example", "EXM", max_pieces=1000), verbose=False)


@pytest.fixture
def roles():
    """Role registry with 'admin' holding every role."""
    return RoleRegistry(admin="admin")


@pytest.fixture
def gated_ledger(roles):
    """Fresh ledger guarded by the 'roles' registry."""
    return HybridLedger(TokenConfig("Example", "EXM", max_pieces=1000), gate=roles, verbose=False)


# =============================================================================
# DEPLOYMENT FIXTURES
# =============================================================================

@pytest.fixture
def deployed():
    """100-piece token; the full supply sits with the exempt 'deployer'."""
    return create_hybrid_token("Example", "EXM", 100, "deployer", verbose=False)


@pytest.fixture
def funded(deployed):
    """
    Deployed token after the deployer sends all 100 units to 'from'.

    'from' is not exempt, so it now owns pieces 1..100.
    """
    deployed.transfer("deployer", "from", units(100))
    return deployed


# =============================================================================
# INVARIANTS
# =============================================================================

@pytest.fixture
def assert_consistent() -> Callable[[HybridLedger], None]:
    """Return a checker that fails the test with the discrepancy list."""
    def check(target: HybridLedger) -> None:
        result = target.verify_invariants()
        assert result['valid'], result['discrepancies']
    return check
