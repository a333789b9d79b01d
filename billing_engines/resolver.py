"""
Monthly Override Resolver -- Merge a facility profile with its month override.

Responsibility:
    Produce the ``EffectiveConfig`` of one facility for one billing month:
    rate, frequency, weekday set, status and pause window after the
    month's override (if any) has been layered over the durable profile.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Consumes ``billing_kernel.domain`` DTOs only.

Invariants enforced:
    - Field precedence is an explicit fold over (override layer, profile
      layer).  Override fields are lifted into ``Present``/``ABSENT``
      markers first, so a falsy value is never mistaken for "inherit".
    - An override rate or frequency of exactly zero is lifted to ABSENT
      unless the override status is PAUSED.  A deliberate $0 month is
      expressed through status, never through a bare zero rate.
    - An empty override weekday set is ABSENT.
    - CLOSED and PENDING_APPROVAL profiles stay in that status whatever
      the override says.
    - Tax behavior is never overridden per month.

Failure modes:
    - InvalidPauseWindowError when the override carries a half-open,
      inverted or out-of-range pause window.
    - InvalidBillingPeriodError when ``month`` is outside 1-12.
    - ValueError when the override belongs to another facility or month.

Usage:
    from billing_engines.resolver import resolve_facility

    config = resolve_facility(profile, override, 2027, 3)
    config.base_rate          # Money
    config.billable_days_of_week
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

from billing_engines.tracer import traced_engine
from billing_kernel.domain.facility import (
    FacilityProfile,
    FacilityStatus,
    MonthlyOverride,
    OverrideStatus,
    PauseWindow,
    TaxBehavior,
)
from billing_kernel.domain.period import BillingPeriod
from billing_kernel.domain.values import Money
from billing_kernel.exceptions import InvalidPauseWindowError
from billing_kernel.logging_config import get_logger

logger = get_logger("engines.resolver")

T = TypeVar("T")


class _Absent:
    """Marker for a layer that does not set a field."""

    _instance: _Absent | None = None

    def __new__(cls) -> _Absent:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "ABSENT"

    def __bool__(self) -> bool:
        return False


ABSENT = _Absent()


@dataclass(frozen=True)
class Present(Generic[T]):
    """A layer value that wins the fold, even when it is falsy."""

    value: T


Layer = Present[T] | _Absent


def fold_layers(layers: Sequence[Layer[T]]) -> tuple[T, int]:
    """
    Return the first present value and the index of the layer it came from.

    The last layer (the profile) is expected to always be present.

    Raises:
        ValueError: If every layer is ABSENT.
    """
    for index, layer in enumerate(layers):
        if isinstance(layer, Present):
            return layer.value, index
    raise ValueError("No layer supplies a value")


# ---------------------------------------------------------------------------
# Override lifting
# ---------------------------------------------------------------------------


def _pauses_explicitly(override: MonthlyOverride) -> bool:
    return override.override_status is OverrideStatus.PAUSED


def override_rate_layer(override: MonthlyOverride | None) -> Layer[Money]:
    if override is None or override.override_rate is None:
        return ABSENT
    if override.override_rate.is_zero and not _pauses_explicitly(override):
        return ABSENT
    return Present(override.override_rate)


def override_frequency_layer(override: MonthlyOverride | None) -> Layer[int]:
    if override is None or override.override_frequency is None:
        return ABSENT
    if override.override_frequency == 0 and not _pauses_explicitly(override):
        return ABSENT
    return Present(override.override_frequency)


def override_days_layer(override: MonthlyOverride | None) -> Layer[frozenset[int]]:
    if override is None or not override.override_days_of_week:
        return ABSENT
    return Present(override.override_days_of_week)


def override_status_layer(override: MonthlyOverride | None) -> Layer[OverrideStatus]:
    if override is None or override.override_status is None:
        return ABSENT
    return Present(override.override_status)


# ---------------------------------------------------------------------------
# Effective configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EffectiveConfig:
    """
    One facility's configuration for one month, after overrides.

    ``tax_behavior`` is the profile's value and may still be
    INHERIT_CLIENT; the tax engine resolves it against the client.
    """

    facility_profile_id: str
    client_id: str
    location_name: str
    category: str | None
    period: BillingPeriod
    status: FacilityStatus
    base_rate: Money
    frequency: int
    days_of_week: frozenset[int]
    tax_behavior: TaxBehavior
    pause_window: PauseWindow | None = None
    overridden_fields: frozenset[str] = frozenset()
    is_seasonally_paused: bool = False
    override: MonthlyOverride | None = None
    sort_order: int = 0

    @property
    def is_overridden(self) -> bool:
        """True when any override field (or a pause window) took effect."""
        return bool(self.overridden_fields)

    @property
    def override_notes(self) -> str | None:
        return self.override.override_notes if self.override else None

    @property
    def billable_days_of_week(self) -> frozenset[int]:
        """Weekdays that generate billable visits; none at frequency zero."""
        if self.frequency == 0:
            return frozenset()
        return self.days_of_week


def _seasonally_paused(profile: FacilityProfile, period: BillingPeriod) -> bool:
    if not profile.seasonal_rules_enabled:
        return False
    return any(rule.pauses(period.year, period.month) for rule in profile.seasonal_rules)


def _effective_status(
    profile: FacilityProfile,
    status_layer: Layer[OverrideStatus],
    period: BillingPeriod,
) -> FacilityStatus:
    if profile.status.is_terminal:
        return profile.status
    if isinstance(status_layer, Present):
        return status_layer.value.to_facility_status()
    if profile.status is FacilityStatus.ACTIVE and _seasonally_paused(profile, period):
        return FacilityStatus.SEASONAL_PAUSED
    return profile.status


@traced_engine(
    "override_resolver", "1.0",
    fingerprint_fields=("profile", "override", "year", "month"),
)
def resolve_facility(
    profile: FacilityProfile,
    override: MonthlyOverride | None,
    year: int,
    month: int,
) -> EffectiveConfig:
    """
    Resolve the effective configuration of ``profile`` for ``year``/``month``.

    Args:
        profile: Durable facility profile.
        override: The facility's override for this month, or None.
        year: Billing year.
        month: Billing month (1-12).

    Returns:
        EffectiveConfig for the month.

    Raises:
        InvalidPauseWindowError: If the override's pause range is invalid.
        InvalidBillingPeriodError: If ``month`` is outside 1-12.
        ValueError: If ``override`` belongs to a different facility or month.
    """
    period = BillingPeriod(year, month)

    if override is not None:
        if override.facility_profile_id != profile.id:
            raise ValueError(
                f"Override for facility {override.facility_profile_id} "
                f"passed with profile {profile.id}"
            )
        if (override.year, override.month) != (year, month):
            raise ValueError(
                f"Override for {override.year}-{override.month:02d} "
                f"passed for period {period.code}"
            )

    pause_window = None
    if override is not None:
        try:
            pause_window = PauseWindow.from_days(
                override.pause_start_day,
                override.pause_end_day,
                facility_profile_id=profile.id,
            )
        except InvalidPauseWindowError as exc:
            logger.error("resolver_invalid_pause_window", extra={
                "facility_id": profile.id,
                "billing_period": period.code,
                "pause_start_day": override.pause_start_day,
                "pause_end_day": override.pause_end_day,
                "reason": exc.reason,
            })
            raise

    overridden: set[str] = set()

    base_rate, source = fold_layers(
        (override_rate_layer(override), Present(profile.default_monthly_rate))
    )
    if source == 0:
        overridden.add("rate")

    frequency, source = fold_layers(
        (override_frequency_layer(override), Present(profile.normal_frequency_per_week))
    )
    if source == 0:
        overridden.add("frequency")

    days_of_week, source = fold_layers(
        (override_days_layer(override), Present(profile.normal_days_of_week))
    )
    if source == 0:
        overridden.add("days_of_week")

    status_layer = override_status_layer(override)
    status = _effective_status(profile, status_layer, period)
    if isinstance(status_layer, Present) and not profile.status.is_terminal:
        overridden.add("status")

    if pause_window is not None:
        overridden.add("pause_window")

    config = EffectiveConfig(
        facility_profile_id=profile.id,
        client_id=profile.client_id,
        location_name=profile.location_name,
        category=profile.category,
        period=period,
        status=status,
        base_rate=base_rate,
        frequency=frequency,
        days_of_week=days_of_week,
        tax_behavior=profile.tax_behavior,
        pause_window=pause_window,
        overridden_fields=frozenset(overridden),
        is_seasonally_paused=status is FacilityStatus.SEASONAL_PAUSED,
        override=override,
        sort_order=profile.sort_order,
    )

    logger.debug("facility_resolved", extra={
        "facility_id": profile.id,
        "billing_period": period.code,
        "status": status.value,
        "base_rate": str(base_rate.amount),
        "frequency": frequency,
        "overridden_fields": sorted(overridden),
    })
    return config
