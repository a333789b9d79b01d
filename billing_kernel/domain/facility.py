"""
Facility billing DTOs -- the pure inputs of every billing engine.

Responsibility:
    Frozen, ORM-free representations of facility profiles, monthly
    overrides, seasonal rules and the client's tax settings.  Selectors
    build these from ORM rows; tests build them directly.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Weekday indices are 0-6 with 0 = Sunday.
    - Weekly frequency is 0-7.
    - ``PauseWindow`` can only exist as a closed range 1 <= start <= end <= 31.

Non-goals:
    - ``MonthlyOverride`` does NOT validate its pause days on construction.
      The registry rejects bad ranges on write and the resolver rejects
      them on read; a DTO that refused to exist would hide which side let
      the bad row through.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum

from billing_kernel.domain.values import DEFAULT_CURRENCY, Money
from billing_kernel.exceptions import InvalidPauseWindowError, InvalidScheduleError

SUNDAY, MONDAY, TUESDAY, WEDNESDAY, THURSDAY, FRIDAY, SATURDAY = range(7)
WEEKDAY_NAMES = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")
WEEKDAYS = frozenset({MONDAY, TUESDAY, WEDNESDAY, THURSDAY, FRIDAY})

MAX_PAUSE_DAY = 31


class RateType(str, Enum):
    """How the monthly rate was arrived at."""

    FLAT_MONTHLY = "flat-monthly"
    DERIVED = "derived"


class TaxBehavior(str, Enum):
    """Per-facility tax mode.  Fixed on the profile; no monthly override."""

    INHERIT_CLIENT = "inherit-client"
    TAX_INCLUDED = "tax-included"  # rate already contains tax
    PRE_TAX = "pre-tax"  # tax is added on top of the rate


class FacilityStatus(str, Enum):
    """Permanent status of a facility profile (and effective monthly status)."""

    ACTIVE = "active"
    PAUSED = "paused"
    SEASONAL_PAUSED = "seasonal-paused"
    PENDING_APPROVAL = "pending-approval"
    CLOSED = "closed"

    @property
    def is_terminal(self) -> bool:
        """No monthly override can make a terminal facility billable."""
        return self in (FacilityStatus.CLOSED, FacilityStatus.PENDING_APPROVAL)

    @property
    def is_billable(self) -> bool:
        return self is FacilityStatus.ACTIVE


class OverrideStatus(str, Enum):
    """Status carried by a single-month override."""

    ACTIVE = "active"
    PAUSED = "paused"
    CANCELLED = "cancelled"

    def to_facility_status(self) -> FacilityStatus:
        if self is OverrideStatus.PAUSED:
            return FacilityStatus.PAUSED
        if self is OverrideStatus.CANCELLED:
            return FacilityStatus.CLOSED
        return FacilityStatus.ACTIVE


def validate_days_of_week(
    days: Iterable[int] | None,
    field_name: str = "days_of_week",
) -> frozenset[int]:
    """Normalize a weekday collection to a frozenset, rejecting bad indices."""
    if days is None:
        return frozenset()
    result = frozenset(days)
    for day in result:
        if isinstance(day, bool) or not isinstance(day, int) or not 0 <= day <= 6:
            raise InvalidScheduleError(field_name, day, "weekday index must be 0-6")
    return result


def validate_frequency(frequency: int, field_name: str = "frequency_per_week") -> int:
    if isinstance(frequency, bool) or not isinstance(frequency, int) or not 0 <= frequency <= 7:
        raise InvalidScheduleError(field_name, frequency, "frequency must be 0-7")
    return frequency


@dataclass(frozen=True)
class PauseWindow:
    """Inclusive range of paused days within one month."""

    start_day: int
    end_day: int

    def __post_init__(self) -> None:
        for value in (self.start_day, self.end_day):
            if not 1 <= value <= MAX_PAUSE_DAY:
                raise InvalidPauseWindowError(
                    self.start_day, self.end_day, "pause days must be within 1-31"
                )
        if self.start_day > self.end_day:
            raise InvalidPauseWindowError(
                self.start_day, self.end_day, "pause start is after pause end"
            )

    @classmethod
    def from_days(
        cls,
        start_day: int | None,
        end_day: int | None,
        facility_profile_id: str | None = None,
    ) -> PauseWindow | None:
        """
        Build a window from optional bounds.

        Both absent gives None.  Exactly one present, or an invalid range,
        raises InvalidPauseWindowError.
        """
        if start_day is None and end_day is None:
            return None
        if start_day is None or end_day is None:
            raise InvalidPauseWindowError(
                start_day,
                end_day,
                "pause start and end must be set together",
                facility_profile_id=facility_profile_id,
            )
        try:
            return cls(start_day, end_day)
        except InvalidPauseWindowError as exc:
            raise InvalidPauseWindowError(
                start_day, end_day, exc.reason, facility_profile_id=facility_profile_id
            ) from exc

    def contains(self, day: int) -> bool:
        return self.start_day <= day <= self.end_day


@dataclass(frozen=True)
class SeasonalRule:
    """
    Recurring seasonal activity pattern for a facility.

    ``active_months`` (when non-empty) whitelists the months the facility
    runs; ``paused_months`` blacklists months.  Year bounds are inclusive
    and optional.
    """

    active_months: frozenset[int] = frozenset()
    paused_months: frozenset[int] = frozenset()
    effective_year_start: int | None = None
    effective_year_end: int | None = None
    is_active: bool = True

    def __post_init__(self) -> None:
        object.__setattr__(self, "active_months", frozenset(self.active_months))
        object.__setattr__(self, "paused_months", frozenset(self.paused_months))
        for month in self.active_months | self.paused_months:
            if not 1 <= month <= 12:
                raise ValueError(f"Seasonal rule month must be 1-12, got {month}")

    def applies_to(self, year: int) -> bool:
        if not self.is_active:
            return False
        if self.effective_year_start is not None and year < self.effective_year_start:
            return False
        if self.effective_year_end is not None and year > self.effective_year_end:
            return False
        return True

    def pauses(self, year: int, month: int) -> bool:
        """True when this rule switches the facility off for the month."""
        if not self.applies_to(year):
            return False
        if self.active_months and month not in self.active_months:
            return True
        return month in self.paused_months


@dataclass(frozen=True)
class FacilityProfile:
    """
    Durable recurring billing and schedule configuration for one facility.

    Mutated only through the registry (admin edit or the permanent
    status toggle).  ``normal_frequency_per_week`` is expected to match
    ``len(normal_days_of_week)`` but that is a form concern, not enforced.
    """

    id: str
    client_id: str
    location_id: str
    location_name: str
    default_monthly_rate: Money
    normal_days_of_week: frozenset[int]
    normal_frequency_per_week: int
    status: FacilityStatus = FacilityStatus.ACTIVE
    tax_behavior: TaxBehavior = TaxBehavior.INHERIT_CLIENT
    rate_type: RateType = RateType.FLAT_MONTHLY
    category: str | None = None
    go_live_date: date | None = None
    scope_of_work_notes: str | None = None
    seasonal_rules_enabled: bool = False
    seasonal_rules: tuple[SeasonalRule, ...] = ()
    sort_order: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "normal_days_of_week",
            validate_days_of_week(self.normal_days_of_week, "normal_days_of_week"),
        )
        validate_frequency(self.normal_frequency_per_week, "normal_frequency_per_week")
        object.__setattr__(self, "status", FacilityStatus(self.status))
        object.__setattr__(self, "tax_behavior", TaxBehavior(self.tax_behavior))
        object.__setattr__(self, "rate_type", RateType(self.rate_type))
        object.__setattr__(self, "seasonal_rules", tuple(self.seasonal_rules))


@dataclass(frozen=True)
class MonthlyOverride:
    """
    Single-month exception layered over a FacilityProfile.

    ``None`` (or an empty day set) means "inherit".  A rate or frequency
    of exactly zero also means "inherit" unless the status is PAUSED;
    the resolver owns that rule.
    """

    facility_profile_id: str
    year: int
    month: int
    override_status: OverrideStatus | None = None
    override_rate: Money | None = None
    override_frequency: int | None = None
    override_days_of_week: frozenset[int] = field(default_factory=frozenset)
    pause_start_day: int | None = None
    pause_end_day: int | None = None
    override_notes: str | None = None
    id: str | None = None

    def __post_init__(self) -> None:
        if self.override_status is not None:
            object.__setattr__(self, "override_status", OverrideStatus(self.override_status))
        object.__setattr__(
            self,
            "override_days_of_week",
            validate_days_of_week(self.override_days_of_week, "override_days_of_week"),
        )

    @property
    def has_pause_days(self) -> bool:
        return self.pause_start_day is not None or self.pause_end_day is not None


@dataclass(frozen=True)
class ClientBillingProfile:
    """Client-level tax settings threaded into every resolution call."""

    id: str
    name: str
    tax_rate: Decimal = Decimal("0")
    default_tax_mode: TaxBehavior | None = None
    tax_exempt: bool = False
    currency: str = DEFAULT_CURRENCY

    def __post_init__(self) -> None:
        if not isinstance(self.tax_rate, Decimal):
            raise TypeError(f"tax_rate must be Decimal, got {type(self.tax_rate).__name__}")
        if self.tax_rate < 0:
            raise ValueError("Tax rate cannot be negative")
        if self.default_tax_mode is not None:
            object.__setattr__(self, "default_tax_mode", TaxBehavior(self.default_tax_mode))

    @property
    def effective_tax_rate(self) -> Decimal:
        """Rate applied to line items; exempt clients pay no tax."""
        return Decimal("0") if self.tax_exempt else self.tax_rate
