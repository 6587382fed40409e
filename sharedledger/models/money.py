"""
models/money.py — Money value type and boundary conversion.

Key design points:
  - Amounts are held as an int number of minor units (cents). Never float.
  - Conversion from major units (Decimal, str, int, float) happens once, at
    the boundary, in to_minor_units(). Input with more decimal places than the
    currency allows is REJECTED with INVALID_AMOUNT_PRECISION, never rounded.
  - Money values of different currencies never combine. Arithmetic across
    currencies raises CurrencyMismatchError.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, localcontext

from sharedledger.errors import CurrencyMismatchError, ErrorCode, ValidationError


_CURRENCY_CODE_RE = re.compile(r"^[A-Z]{3}$")

# ISO-4217 minor-unit exponents that differ from the default of 2.
_ZERO_DECIMAL_CURRENCIES = frozenset({"CLP", "ISK", "JPY", "KRW", "UGX", "VND"})
_THREE_DECIMAL_CURRENCIES = frozenset({"BHD", "JOD", "KWD", "OMR", "TND"})

_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "INR": "₹",
}


def _shift(value: Decimal, places: int) -> Decimal:
    """
    value * 10**places, exactly.

    Decimal.scaleb() rounds to the context precision (28 digits by default),
    so the context is widened to the coefficient length first.
    """
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, len(value.as_tuple().digits))
        return value.scaleb(places)


def minor_unit_exponent(currency: str) -> int:
    """Number of decimal places in one major unit of `currency`."""
    if currency in _ZERO_DECIMAL_CURRENCIES:
        return 0
    if currency in _THREE_DECIMAL_CURRENCIES:
        return 3
    return 2


def validate_currency(currency: str) -> str:
    """Returns `currency` if it is a three-letter upper-case code, else raises."""
    if not isinstance(currency, str) or not _CURRENCY_CODE_RE.match(currency):
        raise ValidationError(
            ErrorCode.INVALID_CURRENCY,
            f"{currency!r} is not a three-letter ISO-4217 currency code.",
            field="currency",
        )
    return currency


def to_minor_units(value, currency: str) -> int:
    """
    Converts a major-unit amount to an int number of minor units.

    Examples (USD):
        to_minor_units("10.50", "USD")  -> 1050
        to_minor_units(10, "USD")       -> 1000
        to_minor_units(0.1, "USD")      -> 10

    Floats go through str() first so that 0.1 is read as "0.1", not as the
    nearest binary fraction.

    Raises:
        ValidationError(INVALID_AMOUNT)           -- not a finite number.
        ValidationError(INVALID_AMOUNT_PRECISION) -- too many decimal places.
    """
    validate_currency(currency)

    if isinstance(value, bool):
        raise ValidationError(
            ErrorCode.INVALID_AMOUNT,
            f"{value!r} is not a monetary amount.",
            field="amount",
        )

    try:
        if isinstance(value, float):
            amount = Decimal(str(value))
        else:
            amount = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(
            ErrorCode.INVALID_AMOUNT,
            f"{value!r} is not a monetary amount.",
            field="amount",
        ) from None

    if not amount.is_finite():
        raise ValidationError(
            ErrorCode.INVALID_AMOUNT,
            f"Amount must be a finite number, got {value!r}.",
            field="amount",
        )

    exponent = minor_unit_exponent(currency)
    scaled = _shift(amount, exponent)
    if scaled != scaled.to_integral_value():
        raise ValidationError(
            ErrorCode.INVALID_AMOUNT_PRECISION,
            f"{currency} amounts have at most {exponent} decimal places, got {value!r}.",
            field="amount",
        )
    return int(scaled)


@dataclass(frozen=True)
class Money:
    """An exact amount of one currency, in minor units."""

    amount: int
    currency: str

    def __post_init__(self) -> None:
        # bool is an int subclass; True is not one cent.
        if isinstance(self.amount, bool) or not isinstance(self.amount, int):
            raise ValidationError(
                ErrorCode.INVALID_AMOUNT,
                f"Money amounts are int minor units, got {type(self.amount).__name__}.",
                field="amount",
            )
        validate_currency(self.currency)

    @classmethod
    def from_major(cls, value, currency: str) -> "Money":
        return cls(to_minor_units(value, currency), currency)

    @classmethod
    def zero(cls, currency: str) -> "Money":
        return cls(0, currency)

    def _require_same_currency(self, other: "Money") -> None:
        if other.currency != self.currency:
            raise CurrencyMismatchError([self.currency, other.currency])

    def __add__(self, other: "Money") -> "Money":
        if not isinstance(other, Money):
            return NotImplemented
        self._require_same_currency(other)
        return Money(self.amount + other.amount, self.currency)

    def __sub__(self, other: "Money") -> "Money":
        if not isinstance(other, Money):
            return NotImplemented
        self._require_same_currency(other)
        return Money(self.amount - other.amount, self.currency)

    def __neg__(self) -> "Money":
        return Money(-self.amount, self.currency)

    def __abs__(self) -> "Money":
        return Money(abs(self.amount), self.currency)

    def to_decimal(self) -> Decimal:
        """Major-unit Decimal, for display and serialisation only."""
        exponent = minor_unit_exponent(self.currency)
        return _shift(Decimal(self.amount), -exponent)

    def __str__(self) -> str:
        return f"{self.to_decimal()} {self.currency}"


def format_money(money: Money) -> str:
    """
    Human-readable rendering, e.g. "$1,234.50" or "-CHF 3.00".

    Display only. Nothing in the ledger parses this string back.
    """
    value = money.to_decimal()
    sign = "-" if value < 0 else ""
    exponent = minor_unit_exponent(money.currency)
    digits = f"{abs(value):,.{exponent}f}"
    symbol = _SYMBOLS.get(money.currency)
    if symbol is None:
        return f"{sign}{money.currency} {digits}"
    return f"{sign}{symbol}{digits}"
