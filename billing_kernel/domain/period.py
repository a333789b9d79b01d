"""
BillingPeriod -- one calendar month of recurring billing.

Pure value object; the current date is always passed in, never read.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date

from billing_kernel.exceptions import InvalidBillingPeriodError

MONTH_LABELS = (
    "",
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)


@dataclass(frozen=True, order=True)
class BillingPeriod:
    """A (year, month) pair with calendar helpers."""

    year: int
    month: int

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise InvalidBillingPeriodError(self.year, self.month)

    @classmethod
    def containing(cls, day: date) -> BillingPeriod:
        """Period that contains ``day``."""
        return cls(day.year, day.month)

    @classmethod
    def resolve(
        cls,
        year: int | None,
        month: int | None,
        today: date,
    ) -> BillingPeriod:
        """Requested period, defaulting missing parts from ``today``."""
        return cls(
            year if year is not None else today.year,
            month if month is not None else today.month,
        )

    @property
    def days_in_month(self) -> int:
        return calendar.monthrange(self.year, self.month)[1]

    @property
    def label(self) -> str:
        """Month name, e.g. ``March``."""
        return MONTH_LABELS[self.month]

    @property
    def code(self) -> str:
        """Sortable code, e.g. ``2027-03``."""
        return f"{self.year}-{self.month:02d}"

    def previous(self) -> BillingPeriod:
        if self.month == 1:
            return BillingPeriod(self.year - 1, 12)
        return BillingPeriod(self.year, self.month - 1)

    def next(self) -> BillingPeriod:
        if self.month == 12:
            return BillingPeriod(self.year + 1, 1)
        return BillingPeriod(self.year, self.month + 1)

    def __str__(self) -> str:
        return f"{self.label} {self.year}"


def weekday_index(day: date) -> int:
    """Weekday index with 0 = Sunday ... 6 = Saturday."""
    return (day.weekday() + 1) % 7
