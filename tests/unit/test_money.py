"""
tests/unit/test_money.py — Unit tests for models/money.py.

What this file proves:
  - Major-unit input is converted to int minor units exactly, per currency
  - Extra decimal places are rejected (INVALID_AMOUNT_PRECISION), never rounded
  - Floats are read through str(), so 0.1 becomes 10 cents, not 9
  - Money of different currencies never combines (CurrencyMismatchError)
  - Money never holds a float or bool amount
  - format_money() renders symbols, grouping and sign

Unit test constraints:
  - No Flask. Pure value types.
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from sharedledger.errors import CurrencyMismatchError, ErrorCode, ValidationError
from sharedledger.models.money import (
    Money,
    format_money,
    minor_unit_exponent,
    to_minor_units,
)


# ── to_minor_units ─────────────────────────────────────────────────────────

class TestToMinorUnits:

    @pytest.mark.parametrize("value, expected", [
        ("10.50", 1050),
        ("0.01", 1),
        (10, 1000),
        (Decimal("99.9"), 9990),
        ("-3.25", -325),
    ])
    def test_usd_conversion(self, value, expected):
        assert to_minor_units(value, "USD") == expected

    def test_float_read_through_str(self):
        """0.1 + 0.2 style float noise must not leak into cents."""
        assert to_minor_units(0.1, "USD") == 10
        assert to_minor_units(19.99, "USD") == 1999

    def test_zero_decimal_currency(self):
        assert to_minor_units("1500", "JPY") == 1500

    def test_three_decimal_currency(self):
        assert to_minor_units("1.234", "KWD") == 1234

    def test_too_many_decimals_rejected_not_rounded(self):
        with pytest.raises(ValidationError) as exc:
            to_minor_units("10.005", "USD")
        assert exc.value.code == ErrorCode.INVALID_AMOUNT_PRECISION
        assert exc.value.http_status == 422

    def test_fractional_yen_rejected(self):
        with pytest.raises(ValidationError) as exc:
            to_minor_units("1.5", "JPY")
        assert exc.value.code == ErrorCode.INVALID_AMOUNT_PRECISION

    def test_trailing_zeros_are_not_extra_precision(self):
        assert to_minor_units("10.5000", "USD") == 1050

    def test_beyond_default_decimal_precision_converted_exactly(self):
        assert to_minor_units("1234567890123456789012345678.91", "USD") == (
            123456789012345678901234567891
        )

    def test_extra_places_on_huge_amount_rejected(self):
        with pytest.raises(ValidationError) as exc:
            to_minor_units("123456789012345678901234567.891", "USD")
        assert exc.value.code == ErrorCode.INVALID_AMOUNT_PRECISION

    @pytest.mark.parametrize("value", ["abc", None, True, float("nan"), float("inf")])
    def test_non_numbers_rejected(self, value):
        with pytest.raises(ValidationError) as exc:
            to_minor_units(value, "USD")
        assert exc.value.code == ErrorCode.INVALID_AMOUNT

    @pytest.mark.parametrize("currency", ["usd", "US", "USDX", "", None])
    def test_bad_currency_code_rejected(self, currency):
        with pytest.raises(ValidationError) as exc:
            to_minor_units("1.00", currency)
        assert exc.value.code == ErrorCode.INVALID_CURRENCY


def test_minor_unit_exponents():
    assert minor_unit_exponent("USD") == 2
    assert minor_unit_exponent("EUR") == 2
    assert minor_unit_exponent("JPY") == 0
    assert minor_unit_exponent("BHD") == 3


# ── Money ──────────────────────────────────────────────────────────────────

class TestMoney:

    def test_addition_same_currency(self):
        assert Money(150, "USD") + Money(250, "USD") == Money(400, "USD")

    def test_subtraction_can_go_negative(self):
        assert Money(100, "EUR") - Money(250, "EUR") == Money(-150, "EUR")

    def test_mixed_currency_addition_raises(self):
        with pytest.raises(CurrencyMismatchError) as exc:
            Money(100, "USD") + Money(100, "EUR")
        assert exc.value.code == ErrorCode.CURRENCY_MISMATCH
        assert exc.value.currencies == ("EUR", "USD")

    def test_mixed_currency_subtraction_raises(self):
        with pytest.raises(CurrencyMismatchError):
            Money(100, "USD") - Money(100, "GBP")

    def test_float_amount_rejected(self):
        with pytest.raises(ValidationError) as exc:
            Money(10.5, "USD")
        assert exc.value.code == ErrorCode.INVALID_AMOUNT

    def test_bool_amount_rejected(self):
        with pytest.raises(ValidationError):
            Money(True, "USD")

    def test_from_major(self):
        assert Money.from_major("12.34", "USD") == Money(1234, "USD")

    def test_zero(self):
        assert Money.zero("JPY") == Money(0, "JPY")

    def test_neg_and_abs(self):
        m = Money(-725, "USD")
        assert -m == Money(725, "USD")
        assert abs(m) == Money(725, "USD")

    def test_to_decimal_keeps_currency_places(self):
        assert str(Money(1050, "USD").to_decimal()) == "10.50"
        assert str(Money(0, "USD").to_decimal()) == "0.00"
        assert str(Money(1500, "JPY").to_decimal()) == "1500"
        assert str(Money(1234, "KWD").to_decimal()) == "1.234"

    def test_to_decimal_beyond_default_precision(self):
        money = Money(123456789012345678901234567891, "USD")
        assert str(money.to_decimal()) == "1234567890123456789012345678.91"

    def test_str(self):
        assert str(Money(-300, "USD")) == "-3.00 USD"

    def test_money_is_hashable(self):
        assert len({Money(1, "USD"), Money(1, "USD"), Money(1, "EUR")}) == 2


# ── format_money ───────────────────────────────────────────────────────────

class TestFormatMoney:

    def test_symbol_and_grouping(self):
        assert format_money(Money(123450, "USD")) == "$1,234.50"

    def test_negative_with_symbol(self):
        assert format_money(Money(-999, "GBP")) == "-£9.99"

    def test_no_symbol_uses_code(self):
        assert format_money(Money(-300, "CHF")) == "-CHF 3.00"

    def test_zero_decimal_currency(self):
        assert format_money(Money(1500000, "JPY")) == "¥1,500,000"
