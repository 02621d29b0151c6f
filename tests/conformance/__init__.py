"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the hybrid ledger.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. conservation.py - Supply equals the sum of balances
2. piece_consistency.py - Piece count tracks balance, every id has one home
3. atomicity.py - Rejected operations leave no trace
4. determinism.py - Reproducible behavior and id reuse order
5. approval_precedence.py - Piece path vs fungible path resolution

These tests use hypothesis for property-based testing. Random operation
sequences come from operations.py; rejected operations are part of the
sequence and must be harmless.
"""
