"""
Tests for the Money value object.

Covers:
- Construction and float rejection
- Half-up rounding on every scaling path
- Currency label enforcement
- Formatting
"""

from decimal import Decimal

import pytest

from billing_kernel.domain.values import Money, round_half_up_div
from billing_kernel.exceptions import CurrencyMismatchError


class TestRoundHalfUpDiv:

    def test_exact_division(self):
        assert round_half_up_div(10, 2) == 5

    def test_half_rounds_away_from_zero(self):
        assert round_half_up_div(5, 2) == 3
        assert round_half_up_div(-5, 2) == -3

    def test_below_half_rounds_down(self):
        assert round_half_up_div(420000, 23) == 18261  # 18260.87

    def test_negative_denominator(self):
        assert round_half_up_div(5, -2) == -3

    def test_zero_denominator_raises(self):
        with pytest.raises(ZeroDivisionError):
            round_half_up_div(1, 0)


class TestMoneyConstruction:

    def test_of_string(self):
        m = Money.of("182.61")
        assert m.minor_units == 18261
        assert m.currency == "USD"
        assert m.amount == Decimal("182.61")

    def test_of_int_is_major_units(self):
        assert Money.of(300).minor_units == 30000

    def test_of_rounds_sub_cent_half_up(self):
        assert Money.of("0.005").minor_units == 1
        assert Money.of("0.004").minor_units == 0
        assert Money.of("-0.005").minor_units == -1

    def test_of_rejects_float(self):
        with pytest.raises(TypeError):
            Money.of(1.5)

    def test_of_rejects_garbage(self):
        with pytest.raises(ValueError):
            Money.of("twelve")

    def test_minor_units_must_be_int(self):
        with pytest.raises(TypeError):
            Money(Decimal("1.00"))

    def test_currency_normalized(self):
        assert Money(100, "usd").currency == "USD"

    def test_invalid_currency(self):
        with pytest.raises(ValueError):
            Money(100, "US")

    def test_zero_and_sum(self):
        assert Money.zero().is_zero
        total = Money.sum([Money.of("1.10"), Money.of("2.20")])
        assert total == Money.of("3.30")
        assert Money.sum([], "EUR") == Money.zero("EUR")


class TestMoneyArithmetic:

    def test_add_and_subtract(self):
        assert Money.of("1.00") + Money.of("0.50") == Money.of("1.50")
        assert Money.of("1.00") - Money.of("1.50") == Money.of("-0.50")

    def test_mixed_currency_rejected(self):
        with pytest.raises(CurrencyMismatchError) as exc_info:
            Money.of("1.00", "USD") + Money.of("1.00", "EUR")
        assert exc_info.value.code == "CURRENCY_MISMATCH"

    def test_multiply_rounds_half_up(self):
        # 182.61 * 0.0825 = 15.065325
        assert Money.of("182.61").multiply(Decimal("0.0825")) == Money.of("15.07")

    def test_multiply_rejects_float(self):
        with pytest.raises(TypeError):
            Money.of("1.00").multiply(0.5)

    def test_divide(self):
        assert Money.of("108.25").divide(Decimal("1.0825")) == Money.of("100.00")

    def test_prorate(self):
        assert Money.of("300.00").prorate(14, 23) == Money.of("182.61")

    def test_comparisons(self):
        assert Money.of("1.00") < Money.of("2.00")
        assert Money.of("2.00") >= Money.of("2.00")

    def test_abs_and_neg(self):
        assert abs(Money.of("-3.00")) == Money.of("3.00")
        assert -Money.of("3.00") == Money.of("-3.00")


class TestMoneyFormat:

    def test_format_thousands(self):
        assert Money.of("1234.56").format() == "$1,234.56"

    def test_format_negative(self):
        assert Money.of("-12").format() == "-$12.00"

    def test_format_unknown_symbol(self):
        assert Money.of("5", "CHF").format() == "5.00 CHF"

    def test_repr(self):
        assert repr(Money.of("182.61")) == "Money('182.61', 'USD')"
