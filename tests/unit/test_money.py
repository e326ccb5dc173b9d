"""
Unit tests for fixed-point money helpers.

Verifies:
- Float and non-numeric rejection
- Percentage application without rounding
- Output-boundary rounding
"""

from decimal import ROUND_HALF_EVEN, Decimal

import pytest

from claims_kernel.domain.money import (
    ZERO,
    apply_percentage,
    money_str,
    round_money,
    to_money,
)
from claims_kernel.exceptions import InvalidMonetaryValueError


class TestToMoney:
    """Tests for to_money parsing."""

    def test_string(self):
        assert to_money("2889.60") == Decimal("2889.60")

    def test_int(self):
        assert to_money(15) == Decimal("15")

    def test_decimal_passthrough(self):
        value = Decimal("1.000000001")
        assert to_money(value) is value

    @pytest.mark.parametrize("empty", [None, ""])
    def test_empty_is_zero(self, empty):
        assert to_money(empty) == ZERO

    def test_float_rejected(self):
        """Floats have already lost precision."""
        with pytest.raises(InvalidMonetaryValueError) as exc_info:
            to_money(0.1, "labour")
        assert exc_info.value.field_name == "labour"
        assert exc_info.value.code == "INVALID_MONETARY_VALUE"

    @pytest.mark.parametrize("bad", ["abc", "1,000.00", True, "NaN", "Infinity", object()])
    def test_invalid_values_rejected(self, bad):
        with pytest.raises(InvalidMonetaryValueError):
            to_money(bad)


class TestPercentages:
    """Percentages are applied as value * (pct / 100)."""

    def test_vat_fifteen_percent(self):
        assert apply_percentage(Decimal("2889.60"), Decimal("15")) == Decimal("433.44")

    def test_no_rounding_applied(self):
        assert apply_percentage(Decimal("7387.30"), Decimal("15")) == Decimal("1108.095")

    def test_zero_percentage(self):
        assert apply_percentage(Decimal("100"), ZERO) == ZERO


class TestRounding:
    """round_money is only used at output."""

    def test_half_up_default(self):
        assert round_money(Decimal("8495.395")) == Decimal("8495.40")

    def test_negative_half_up(self):
        assert round_money(Decimal("-0.005")) == Decimal("-0.01")

    def test_explicit_mode(self):
        assert round_money(Decimal("0.125"), 2, ROUND_HALF_EVEN) == Decimal("0.12")

    def test_money_str_keeps_trailing_zeros(self):
        assert money_str(Decimal("10.50")) == "10.50"
        assert money_str(Decimal("1E+3")) == "1000"
