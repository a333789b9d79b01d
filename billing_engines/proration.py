"""
Proration Calculator -- Scale a monthly rate by the active scheduled days.

Pure functions with no I/O.  Dates are derived from the (year, month)
parameters only.

Usage:
    from billing_engines.proration import prorate, scale_rate

    result = prorate(WEEKDAYS, PauseWindow(16, 27), 2027, 3)
    result.scheduled_days   # 23
    result.active_days      # 14
    scale_rate(Money.of("300.00"), result)  # Money('182.61', 'USD')
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date

from billing_engines.tracer import traced_engine
from billing_kernel.domain.facility import FacilityStatus, PauseWindow
from billing_kernel.domain.period import BillingPeriod, weekday_index
from billing_kernel.domain.values import Money
from billing_kernel.logging_config import get_logger

logger = get_logger("engines.proration")


@dataclass(frozen=True)
class ProrationResult:
    """Scheduled versus active service days for one facility-month."""

    scheduled_days: int
    active_days: int

    def __post_init__(self) -> None:
        if not 0 <= self.active_days <= self.scheduled_days:
            raise ValueError(
                f"active_days ({self.active_days}) must be within "
                f"0..scheduled_days ({self.scheduled_days})"
            )

    @property
    def is_pro_rated(self) -> bool:
        return self.active_days < self.scheduled_days

    @property
    def paused_days(self) -> int:
        return self.scheduled_days - self.active_days

    @property
    def has_schedule(self) -> bool:
        return self.scheduled_days > 0


def scheduled_dates(days_of_week: Iterable[int], year: int, month: int) -> tuple[int, ...]:
    """Days of the month (1-based) whose weekday is in ``days_of_week``."""
    weekdays = frozenset(days_of_week)
    if not weekdays:
        return ()
    period = BillingPeriod(year, month)
    return tuple(
        day
        for day in range(1, period.days_in_month + 1)
        if weekday_index(date(year, month, day)) in weekdays
    )


@traced_engine(
    "proration", "1.0",
    fingerprint_fields=("days_of_week", "pause_window", "year", "month"),
)
def prorate(
    days_of_week: Iterable[int],
    pause_window: PauseWindow | None,
    year: int,
    month: int,
) -> ProrationResult:
    """
    Count scheduled and active service days for a month.

    A pause window reaching past the end of a short month simply covers
    the remaining days.
    """
    days = scheduled_dates(days_of_week, year, month)
    if pause_window is None:
        return ProrationResult(scheduled_days=len(days), active_days=len(days))
    paused = sum(1 for day in days if pause_window.contains(day))
    result = ProrationResult(scheduled_days=len(days), active_days=len(days) - paused)
    logger.debug("proration_calculated", extra={
        "billing_period": f"{year}-{month:02d}",
        "scheduled_days": result.scheduled_days,
        "active_days": result.active_days,
        "pause_start_day": pause_window.start_day,
        "pause_end_day": pause_window.end_day,
    })
    return result


def scale_rate(base_rate: Money, proration: ProrationResult) -> Money:
    """
    Pro-rated rate: base_rate * active_days / scheduled_days, half-up.

    A month with no scheduled days bills nothing; such a facility is
    excluded from the total by ``is_included`` anyway.
    """
    if not proration.has_schedule:
        return Money.zero(base_rate.currency)
    if not proration.is_pro_rated:
        return base_rate
    return base_rate.prorate(proration.active_days, proration.scheduled_days)


def is_included(status: FacilityStatus, proration: ProrationResult) -> bool:
    """A line counts toward the total only when active with scheduled days."""
    return status is FacilityStatus.ACTIVE and proration.has_schedule
