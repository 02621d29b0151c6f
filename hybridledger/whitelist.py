"""
whitelist.py - Exemption from automatic piece accounting

A whitelisted account's fungible balance moves freely without creating or
destroying pieces; whatever pieces it held when exempted stay frozen with it.

Exemption can always be granted. It can only be removed while the account
holds less than one whole unit, because materialising pieces for an
arbitrary historical balance has no well-defined id order.
"""

from __future__ import annotations
from typing import FrozenSet, Set

from .core import CannotRemoveFromWhitelist


class WhitelistPolicy:

    def __init__(self):
        self._members: Set[str] = set()

    def is_whitelisted(self, account: str) -> bool:
        return account in self._members

    def members(self) -> FrozenSet[str]:
        return frozenset(self._members)

    def grant(self, account: str) -> None:
        self._members.add(account)

    def check_revocable(self, account: str, balance: int, unit: int) -> None:
        """
        Raises:
            CannotRemoveFromWhitelist: If balance is one unit or more.
        """
        if balance >= unit:
            raise CannotRemoveFromWhitelist(
                f"{account} holds {balance} sub-units (>= one unit of {unit})"
            )

    def revoke(self, account: str) -> None:
        self._members.discard(account)

    def copy(self) -> WhitelistPolicy:
        cloned = WhitelistPolicy()
        cloned._members = set(self._members)
        return cloned
