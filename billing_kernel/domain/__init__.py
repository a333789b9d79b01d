"""
Pure domain layer.

This module contains pure data transfer objects and domain logic
with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- Time/clock (except the injectable Clock itself)
- I/O

All domain objects are immutable and deterministic.
"""

from billing_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from billing_kernel.domain.facility import (
    WEEKDAY_NAMES,
    WEEKDAYS,
    ClientBillingProfile,
    FacilityProfile,
    FacilityStatus,
    MonthlyOverride,
    OverrideStatus,
    PauseWindow,
    RateType,
    SeasonalRule,
    TaxBehavior,
)
from billing_kernel.domain.period import BillingPeriod, weekday_index
from billing_kernel.domain.values import Money

__all__ = [
    "BillingPeriod",
    "ClientBillingProfile",
    "Clock",
    "DeterministicClock",
    "FacilityProfile",
    "FacilityStatus",
    "Money",
    "MonthlyOverride",
    "OverrideStatus",
    "PauseWindow",
    "RateType",
    "SeasonalRule",
    "SystemClock",
    "TaxBehavior",
    "WEEKDAYS",
    "WEEKDAY_NAMES",
    "weekday_index",
]
