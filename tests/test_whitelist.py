"""
test_whitelist.py - Exemption from automatic piece accounting

Tests:
- exempt senders and receivers skip piece movement on their side only
- granting exemption freezes held pieces
- removal below one unit banks leftover frozen pieces
- removal at or above one unit is rejected
"""

import pytest

from hybridledger import (
    PieceTransfer, WhitelistChanged,
    CannotRemoveFromWhitelist, SINK_ADDRESS, to_sub_units,
)


U = to_sub_units


class TestExemptSides:

    def test_exempt_sender_releases_nothing(self, deployed, assert_consistent):
        deployed.transfer("deployer", "alice", U("2.5"))

        assert deployed.piece_balance_of("deployer") == 0
        assert deployed.owned("alice") == (1, 2)
        assert deployed.banked_pieces() == ()
        assert_consistent(deployed)

    def test_exempt_receiver_acquires_nothing(self, funded, assert_consistent):
        funded.set_whitelist("deployer", "vault", True)
        funded.transfer("from", "vault", U(3))

        assert funded.piece_balance_of("vault") == 0
        assert funded.piece_balance_of("from") == 97
        assert funded.banked_pieces() == (100, 99, 98)
        assert_consistent(funded)

    def test_transfer_between_exempt_accounts(self, deployed):
        deployed.set_whitelist("deployer", "vault", True)
        events = deployed.transfer("deployer", "vault", U(10))

        assert not any(isinstance(e, PieceTransfer) for e in events)
        assert deployed.minted_count() == 0


class TestGrantExemption:

    def test_pieces_are_frozen(self, funded, assert_consistent):
        funded.set_whitelist("deployer", "from", True)
        funded.transfer("from", "bob", U("50.5"))

        assert funded.piece_balance_of("from") == 100
        assert funded.fungible_balance_of("from") == U("49.5")
        # bob's pieces are fresh: the frozen ones stay with 'from'
        assert funded.owned("bob")[0] == 101
        assert_consistent(funded)

    def test_event_and_listing(self, ledger):
        events = ledger.set_whitelist("admin", "vault", True)

        assert isinstance(events[0], WhitelistChanged)
        assert events[0].enabled
        assert ledger.whitelisted_accounts() == ["vault"]

    def test_grant_is_idempotent(self, ledger):
        ledger.set_whitelist("admin", "vault", True)
        ledger.set_whitelist("admin", "vault", True)
        assert ledger.whitelisted_accounts() == ["vault"]


class TestRemoveExemption:

    def test_rejected_at_one_unit(self, deployed):
        with pytest.raises(CannotRemoveFromWhitelist):
            deployed.set_whitelist("deployer", "deployer", False)
        assert deployed.is_whitelisted("deployer")

    def test_allowed_below_one_unit(self, ledger, assert_consistent):
        ledger.set_whitelist("admin", "vault", True)
        ledger.mint("admin", "vault", U("0.5"))
        ledger.set_whitelist("admin", "vault", False)

        assert not ledger.is_whitelisted("vault")
        assert ledger.piece_balance_of("vault") == 0
        assert_consistent(ledger)

    def test_removal_banks_frozen_pieces(self, funded, assert_consistent):
        funded.set_whitelist("deployer", "from", True)
        funded.transfer("from", "bob", U("99.5"))
        assert funded.piece_balance_of("from") == 100

        events = funded.set_whitelist("deployer", "from", False)

        assert funded.piece_balance_of("from") == 0
        assert len(funded.banked_pieces()) == 100
        assert funded.banked_pieces()[0] == 100
        banked = [e for e in events if isinstance(e, PieceTransfer)]
        assert len(banked) == 100
        assert all(e.recipient == SINK_ADDRESS for e in banked)
        assert_consistent(funded)

    def test_account_rejoins_piece_accounting(self, ledger, assert_consistent):
        ledger.set_whitelist("admin", "vault", True)
        ledger.set_whitelist("admin", "vault", False)
        ledger.mint("admin", "vault", U(2))

        assert ledger.owned("vault") == (1, 2)
        assert_consistent(ledger)

    def test_removing_non_member_is_a_no_op(self, funded, assert_consistent):
        logged = len(funded.events)
        events = funded.set_whitelist("deployer", "from", False)

        assert events == ()
        assert len(funded.events) == logged
        assert not funded.is_whitelisted("from")
        assert funded.piece_balance_of("from") == 100
        assert funded.banked_pieces() == ()
        assert_consistent(funded)
