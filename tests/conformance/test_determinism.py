"""
Determinism Conformance Tests

INVARIANT: Given identical inputs, the ledger produces identical outputs.

    ∀ operation sequence I:
        ledger1.process(I) = ledger2.process(I)

This guarantees:
- piece ids are assigned in a reproducible order (bank LIFO, then fresh ascending)
- event logs are identical, sequence numbers included
- a clone evolves exactly like its source
"""

from hypothesis import given, settings

from .operations import operation_lists, new_ledger, apply_operation, snapshot


class TestDeterminismProperties:
    """Property-based determinism tests."""

    @given(operation_lists)
    @settings(max_examples=100, deadline=None)
    def test_identical_sequences_produce_identical_state(self, ops):
        """
        PROPERTY: Two ledgers processing the same operations reach the same state.
        """
        ledger1 = new_ledger()
        ledger2 = new_ledger()
        for op in ops:
            apply_operation(ledger1, op)
            apply_operation(ledger2, op)

        assert snapshot(ledger1) == snapshot(ledger2)
        assert ledger1.events == ledger2.events

    @given(operation_lists, operation_lists)
    @settings(max_examples=100, deadline=None)
    def test_clone_evolves_like_source(self, setup, ops):
        """
        PROPERTY: clone() followed by the same operations matches the source.
        """
        ledger = new_ledger()
        for op in setup:
            apply_operation(ledger, op)

        cloned = ledger.clone()
        for op in ops:
            apply_operation(ledger, op)
            apply_operation(cloned, op)

        assert snapshot(cloned) == snapshot(ledger)
        assert cloned.events == ledger.events

    @given(operation_lists, operation_lists)
    @settings(max_examples=50, deadline=None)
    def test_clone_is_isolated(self, setup, ops):
        """
        PROPERTY: Operations on a clone never affect the source.
        """
        ledger = new_ledger()
        for op in setup:
            apply_operation(ledger, op)
        before = snapshot(ledger)

        cloned = ledger.clone()
        for op in ops:
            apply_operation(cloned, op)

        assert snapshot(ledger) == before


class TestDeterminismExamples:

    def test_reuse_order_is_last_banked_first(self):
        ledger = new_ledger()
        ledger.mint("admin", "alice", 500)            # pieces 1..5
        ledger.transfer("alice", "bob", 250)          # alice banks 5, 4, 3; bob takes 3, 4
        assert ledger.owned("bob") == (3, 4)
        assert ledger.banked_pieces() == (5,)

        ledger.mint("admin", "carol", 200)            # 5 from the bank, then fresh 6
        assert ledger.owned("carol") == (5, 6)
