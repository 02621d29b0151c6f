"""
access.py - Capability gates for privileged entry points

mint, burn_from, burn_pieces_from and set_whitelist call the ledger's gate
before doing anything else:

    gate(caller, action)   # returns None, or raises AccessDenied

allow_all is the trivial gate for tests and single-operator deployments.
RoleRegistry maps each action to a role and checks role membership.
"""

from __future__ import annotations
from typing import Dict, Optional, Set

from .core import (
    AccessDenied,
    ACTION_MINT, ACTION_BURN, ACTION_SET_WHITELIST,
)


DEFAULT_ADMIN_ROLE = "DEFAULT_ADMIN_ROLE"
MINTER_ROLE = "MINTER_ROLE"
BURNER_ROLE = "BURNER_ROLE"
WHITELIST_ADMIN_ROLE = "WHITELIST_ADMIN_ROLE"

ACTION_ROLES: Dict[str, str] = {
    ACTION_MINT: MINTER_ROLE,
    ACTION_BURN: BURNER_ROLE,
    ACTION_SET_WHITELIST: WHITELIST_ADMIN_ROLE,
}


def allow_all(caller: str, action: str) -> None:
    """Gate that permits every caller."""
    return None


class RoleRegistry:
    """
    Role-based gate.

    The admin passed to the constructor receives DEFAULT_ADMIN_ROLE and every
    action role. Only DEFAULT_ADMIN_ROLE holders may grant or revoke roles.

    Example:
        roles = RoleRegistry(admin="deployer")
        roles.grant_role("deployer", MINTER_ROLE, "bridge")
        ledger = HybridLedger(config, gate=roles)
    """

    def __init__(self, admin: Optional[str] = None):
        self._members: Dict[str, Set[str]] = {}
        if admin is not None:
            self._add(DEFAULT_ADMIN_ROLE, admin)
            for role in ACTION_ROLES.values():
                self._add(role, admin)

    def _add(self, role: str, account: str) -> None:
        self._members.setdefault(role, set()).add(account)

    def has_role(self, role: str, account: str) -> bool:
        return account in self._members.get(role, ())

    def _require_admin(self, caller: str) -> None:
        if not self.has_role(DEFAULT_ADMIN_ROLE, caller):
            raise AccessDenied(f"{caller} lacks {DEFAULT_ADMIN_ROLE}")

    def grant_role(self, caller: str, role: str, account: str) -> None:
        self._require_admin(caller)
        self._add(role, account)

    def revoke_role(self, caller: str, role: str, account: str) -> None:
        self._require_admin(caller)
        self._members.get(role, set()).discard(account)

    def __call__(self, caller: str, action: str) -> None:
        role = ACTION_ROLES.get(action)
        if role is None:
            raise AccessDenied(f"Unknown privileged action: {action}")
        if not self.has_role(role, caller):
            raise AccessDenied(f"{caller} lacks {role} required for {action}")
