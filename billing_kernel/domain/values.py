"""
Values -- Immutable, self-validating money value object.

Responsibility:
    Provides ``Money``, the single representation of currency amounts used
    by every engine, DTO and service in the billing system.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Imported by every other domain module and by all engines.

Invariants enforced:
    - Amounts are held as integer minor units (cents).  All arithmetic,
      scaling and rounding happens on integers; Decimal appears only at the
      output boundary (``Money.amount``) and when a Decimal rate is applied.
    - Floats are rejected at construction.
    - Rounding is always ROUND_HALF_UP (ties away from zero).
    - Arithmetic never mixes currency labels.

Failure modes:
    - TypeError on float input or non-integer minor units.
    - ValueError on malformed currency codes or unparsable amounts.
    - CurrencyMismatchError when arithmetic mixes currency labels.
    - ZeroDivisionError from ``prorate`` with a zero denominator; callers
      guard with the inclusion rule and never reach it.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from billing_kernel.exceptions import CurrencyMismatchError

DEFAULT_CURRENCY = "USD"
MINOR_UNIT_EXPONENT = 2

_CENT = Decimal(1).scaleb(-MINOR_UNIT_EXPONENT)
_UNIT = Decimal(1)
_SYMBOLS = {"USD": "$", "CAD": "$", "AUD": "$", "EUR": "€", "GBP": "£"}


def round_half_up_div(numerator: int, denominator: int) -> int:
    """Integer division rounding half away from zero.

    Matches ``Decimal.quantize(..., ROUND_HALF_UP)`` for the exact quotient.
    """
    if denominator == 0:
        raise ZeroDivisionError("round_half_up_div denominator is zero")
    if denominator < 0:
        numerator, denominator = -numerator, -denominator
    if numerator >= 0:
        return (2 * numerator + denominator) // (2 * denominator)
    return -((2 * -numerator + denominator) // (2 * denominator))


def _to_minor_units(amount: Decimal) -> int:
    return int(amount.scaleb(MINOR_UNIT_EXPONENT).quantize(_UNIT, rounding=ROUND_HALF_UP))


@dataclass(frozen=True, slots=True)
class Money:
    """
    Monetary amount held in integer minor units.

    Contract:
        Pairs an ``int`` count of minor units with a currency label.  The
        billing system is single-currency; the label exists so that a
        stray mix is caught rather than silently summed.

    Guarantees:
        - Immutable and hashable.
        - ``minor_units`` is always an int; ``amount`` is always a Decimal
          quantized to the minor unit.
        - Every scaling operation rounds half-up exactly once.
    """

    minor_units: int
    currency: str = DEFAULT_CURRENCY

    def __post_init__(self) -> None:
        if isinstance(self.minor_units, bool) or not isinstance(self.minor_units, int):
            raise TypeError(
                f"minor_units must be int, got {type(self.minor_units).__name__}"
            )
        code = self.currency.upper().strip() if isinstance(self.currency, str) else ""
        if len(code) != 3 or not code.isalpha():
            raise ValueError(f"Invalid currency code: {self.currency!r}")
        object.__setattr__(self, "currency", code)

    @classmethod
    def of(cls, amount: Decimal | str | int, currency: str = DEFAULT_CURRENCY) -> Money:
        """
        Build Money from a major-unit amount ("182.61", Decimal, or int dollars).

        Sub-cent input is rounded half-up to the minor unit.

        Raises:
            TypeError: If ``amount`` is a float.
            ValueError: If ``amount`` is not a number.
        """
        if isinstance(amount, float):
            raise TypeError("Money.of() does not accept float; pass str or Decimal")
        try:
            value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
        except InvalidOperation as e:
            raise ValueError(f"Invalid amount: {amount!r}") from e
        if not value.is_finite():
            raise ValueError(f"Invalid amount: {amount!r}")
        return cls(minor_units=_to_minor_units(value), currency=currency)

    @classmethod
    def zero(cls, currency: str = DEFAULT_CURRENCY) -> Money:
        """Create a zero amount in the given currency."""
        return cls(minor_units=0, currency=currency)

    @classmethod
    def sum(cls, amounts: Iterable[Money], currency: str = DEFAULT_CURRENCY) -> Money:
        """Sum an iterable of Money; empty input gives zero in ``currency``."""
        total = cls.zero(currency)
        for amount in amounts:
            total = total + amount
        return total

    @property
    def amount(self) -> Decimal:
        """Major-unit Decimal, quantized to the minor unit (output boundary)."""
        return Decimal(self.minor_units).scaleb(-MINOR_UNIT_EXPONENT).quantize(_CENT)

    @property
    def is_zero(self) -> bool:
        return self.minor_units == 0

    @property
    def is_positive(self) -> bool:
        return self.minor_units > 0

    @property
    def is_negative(self) -> bool:
        return self.minor_units < 0

    def multiply(self, rate: Decimal) -> Money:
        """Multiply by a Decimal rate, rounding half-up to the minor unit."""
        if not isinstance(rate, Decimal):
            raise TypeError(f"rate must be Decimal, got {type(rate).__name__}")
        scaled = (Decimal(self.minor_units) * rate).quantize(_UNIT, rounding=ROUND_HALF_UP)
        return Money(minor_units=int(scaled), currency=self.currency)

    def divide(self, divisor: Decimal) -> Money:
        """Divide by a Decimal, rounding half-up to the minor unit."""
        if not isinstance(divisor, Decimal):
            raise TypeError(f"divisor must be Decimal, got {type(divisor).__name__}")
        scaled = (Decimal(self.minor_units) / divisor).quantize(_UNIT, rounding=ROUND_HALF_UP)
        return Money(minor_units=int(scaled), currency=self.currency)

    def prorate(self, numerator: int, denominator: int) -> Money:
        """Scale by numerator/denominator in pure integer arithmetic (half-up)."""
        return Money(
            minor_units=round_half_up_div(self.minor_units * numerator, denominator),
            currency=self.currency,
        )

    def format(self) -> str:
        """Human-readable amount, e.g. ``$1,234.56`` or ``-$12.00``."""
        symbol = _SYMBOLS.get(self.currency)
        body = f"{abs(self.amount):,.2f}"
        sign = "-" if self.is_negative else ""
        if symbol is None:
            return f"{sign}{body} {self.currency}"
        return f"{sign}{symbol}{body}"

    def _check_currency(self, other: Money, operation: str) -> None:
        if self.currency != other.currency:
            raise CurrencyMismatchError(self.currency, other.currency, operation)

    def __add__(self, other: Money) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        self._check_currency(other, "add")
        return Money(self.minor_units + other.minor_units, self.currency)

    def __sub__(self, other: Money) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        self._check_currency(other, "subtract")
        return Money(self.minor_units - other.minor_units, self.currency)

    def __neg__(self) -> Money:
        return Money(-self.minor_units, self.currency)

    def __abs__(self) -> Money:
        return Money(abs(self.minor_units), self.currency)

    def __lt__(self, other: Money) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        self._check_currency(other, "compare")
        return self.minor_units < other.minor_units

    def __le__(self, other: Money) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        self._check_currency(other, "compare")
        return self.minor_units <= other.minor_units

    def __gt__(self, other: Money) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        self._check_currency(other, "compare")
        return self.minor_units > other.minor_units

    def __ge__(self, other: Money) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        self._check_currency(other, "compare")
        return self.minor_units >= other.minor_units

    def __str__(self) -> str:
        return f"{self.amount} {self.currency}"

    def __repr__(self) -> str:
        return f"Money({str(self.amount)!r}, {self.currency!r})"
