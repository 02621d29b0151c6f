"""
Unit tests for core types: TokenConfig, amount helpers, events, validation.
"""

import pytest
from decimal import Decimal

from hybridledger import (
    TokenConfig, FungibleTransfer, PieceTransfer, LedgerError,
    InsufficientBalance, AccessDenied, NoPieceToTake,
    to_sub_units, from_sub_units, whole_units,
    SINK_ADDRESS, DEFAULT_DECIMALS,
)
from hybridledger.core import _check_account, _check_amount


class TestTokenConfig:

    def test_defaults(self):
        config = TokenConfig("Example", "EXM")
        assert config.decimals == DEFAULT_DECIMALS
        assert config.unit == 10 ** 18
        assert config.max_pieces is None
        assert config.max_fungible_supply is None

    def test_capped_supply(self):
        config = TokenConfig("Example", "EXM", decimals=2, max_pieces=100)
        assert config.unit == 100
        assert config.max_fungible_supply == 10_000

    def test_zero_decimals(self):
        assert TokenConfig("Whole", "WHL", decimals=0).unit == 1

    @pytest.mark.parametrize("kwargs", [
        {"name": "", "symbol": "EXM"},
        {"name": "  ", "symbol": "EXM"},
        {"name": "Example", "symbol": ""},
        {"name": "Example", "symbol": "EXM", "decimals": -1},
        {"name": "Example", "symbol": "EXM", "decimals": 1.5},
        {"name": "Example", "symbol": "EXM", "max_pieces": 0},
    ])
    def test_invalid(self, kwargs):
        with pytest.raises(ValueError):
            TokenConfig(**kwargs)

    def test_frozen(self):
        config = TokenConfig("Example", "EXM")
        with pytest.raises(AttributeError):
            config.decimals = 6


class TestAmountHelpers:

    def test_exact_decimal_strings(self):
        assert to_sub_units("0.9") == 9 * 10 ** 17
        assert to_sub_units("99.1") == 991 * 10 ** 17
        assert to_sub_units(3) == 3 * 10 ** 18

    def test_custom_decimals(self):
        assert to_sub_units("1.25", decimals=2) == 125

    def test_truncates_excess_precision(self):
        assert to_sub_units("1.259", decimals=2) == 125

    def test_float_goes_through_repr(self):
        assert to_sub_units(0.1) == 10 ** 17

    @pytest.mark.parametrize("value", ["-1", "NaN", "Infinity", "abc"])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            to_sub_units(value)

    def test_from_sub_units(self):
        assert from_sub_units(9 * 10 ** 17) == Decimal("0.9")
        assert from_sub_units(125, decimals=2) == Decimal("1.25")

    def test_whole_units_floors(self):
        assert whole_units(999, 100) == 9
        assert whole_units(1000, 100) == 10
        assert whole_units(0, 100) == 0


class TestValidation:

    @pytest.mark.parametrize("account", ["", "   ", None, 42])
    def test_bad_accounts(self, account):
        with pytest.raises(ValueError):
            _check_account(account)

    @pytest.mark.parametrize("amount", [-1, 1.0, "5", True, None])
    def test_bad_amounts(self, amount):
        with pytest.raises(ValueError):
            _check_amount(amount)

    def test_zero_and_huge_amounts_ok(self):
        _check_amount(0)
        _check_amount(2 ** 256 - 1)

    def test_ledger_rejects_bad_input_before_commit(self, ledger):
        with pytest.raises(ValueError):
            ledger.transfer("alice", "bob", -1)
        with pytest.raises(ValueError):
            ledger.mint("admin", "", 1)
        assert ledger.events == []


class TestEvents:

    def test_reprs(self):
        assert repr(FungibleTransfer("a", "b", 5, sequence=3)) == "FungibleTransfer(#3 5: a→b)"
        assert repr(PieceTransfer(SINK_ADDRESS, "b", 7)).startswith("PieceTransfer(#0 piece 7:")

    def test_events_are_immutable(self):
        event = FungibleTransfer("a", "b", 5)
        with pytest.raises(AttributeError):
            event.amount = 6

    def test_events_compare_by_value(self):
        assert PieceTransfer("a", "b", 1, 4) == PieceTransfer("a", "b", 1, 4)
        assert PieceTransfer("a", "b", 1, 4) != PieceTransfer("a", "b", 1, 5)


class TestExceptions:

    @pytest.mark.parametrize("error", [InsufficientBalance, AccessDenied, NoPieceToTake])
    def test_hierarchy(self, error):
        assert issubclass(error, LedgerError)
