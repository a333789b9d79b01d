"""
Billing Preview Assembler -- One client's effective bill for one month.

Responsibility:
    For every facility profile of a client: resolve the month's override,
    pro-rate the rate over the active scheduled days, apply the line's
    tax mode, then total the included lines and explain the result.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Composes ``resolver``, ``proration`` and ``tax``.  The previous
    month's preview is a parameter; this module never fetches it.

Invariants enforced:
    - subtotal   = sum of effective rates of included lines.
    - tax_amount = sum of line taxes (excluded lines carry zero tax).
    - total      = sum of line totals.  Tax-included lines contribute
      their rate only, so tax is never counted twice.
    - Line items are ordered by (sort_order, facility id).
    - Excluded lines carry a zero tax and a zero total.

Failure modes:
    - InvalidPauseWindowError / InvalidBillingPeriodError from the resolver.
    - InvalidTaxModeError when a facility inherits from a client whose
      default mode is unusable.
    - ValueError when ``previous`` is not this client's prior month.

Usage:
    from billing_engines.preview import assemble_preview

    march = assemble_preview(client, 2027, 3, profiles, overrides)
    april = assemble_preview(client, 2027, 4, profiles, overrides, previous=march)
    april.explanation.delta_reason   # "$182.61 decrease from March"
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from billing_engines.proration import ProrationResult, is_included, prorate, scale_rate
from billing_engines.resolver import EffectiveConfig, resolve_facility
from billing_engines.tax import LineTax, TaxCalculator
from billing_engines.tracer import traced_engine
from billing_kernel.domain.facility import (
    WEEKDAY_NAMES,
    ClientBillingProfile,
    FacilityProfile,
    FacilityStatus,
    MonthlyOverride,
    PauseWindow,
    TaxBehavior,
)
from billing_kernel.domain.period import BillingPeriod
from billing_kernel.domain.values import Money
from billing_kernel.logging_config import get_logger

logger = get_logger("engines.preview")


def _money_dict(value: Money | None) -> str | None:
    return None if value is None else str(value.amount)


@dataclass(frozen=True)
class FacilityLineItem:
    """Derived, never persisted: one facility's contribution to a month."""

    facility_profile_id: str
    location_name: str
    category: str | None
    effective_status: FacilityStatus
    base_rate: Money
    effective_rate: Money
    effective_frequency: int
    effective_days_of_week: frozenset[int]
    included_in_total: bool
    is_overridden: bool
    is_seasonally_paused: bool
    is_pro_rated: bool
    scheduled_days: int
    active_days: int
    tax_behavior: TaxBehavior
    line_item_tax: Money
    line_item_total: Money
    pause_window: PauseWindow | None = None
    override_notes: str | None = None
    sort_order: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "facility_profile_id": self.facility_profile_id,
            "location_name": self.location_name,
            "category": self.category,
            "effective_status": self.effective_status.value,
            "base_rate": _money_dict(self.base_rate),
            "effective_rate": _money_dict(self.effective_rate),
            "effective_frequency": self.effective_frequency,
            "effective_days_of_week": sorted(self.effective_days_of_week),
            "included_in_total": self.included_in_total,
            "is_overridden": self.is_overridden,
            "is_seasonally_paused": self.is_seasonally_paused,
            "is_pro_rated": self.is_pro_rated,
            "scheduled_days": self.scheduled_days,
            "active_days": self.active_days,
            "pause_window": (
                None if self.pause_window is None
                else [self.pause_window.start_day, self.pause_window.end_day]
            ),
            "tax_behavior": self.tax_behavior.value,
            "line_item_tax": _money_dict(self.line_item_tax),
            "line_item_total": _money_dict(self.line_item_total),
            "override_notes": self.override_notes,
        }


@dataclass(frozen=True)
class BillingExplanation:
    """Grouped reasons behind a month's total."""

    active_facilities: tuple[str, ...] = ()
    paused_facilities: tuple[str, ...] = ()
    seasonally_paused: tuple[str, ...] = ()
    pending_approval: tuple[str, ...] = ()
    closed_facilities: tuple[str, ...] = ()
    unscheduled_facilities: tuple[str, ...] = ()
    overrides: tuple[str, ...] = ()
    delta_amount: Money | None = None
    delta_reason: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "active_facilities": list(self.active_facilities),
            "paused_facilities": list(self.paused_facilities),
            "seasonally_paused": list(self.seasonally_paused),
            "pending_approval": list(self.pending_approval),
            "closed_facilities": list(self.closed_facilities),
            "unscheduled_facilities": list(self.unscheduled_facilities),
            "overrides": list(self.overrides),
            "delta_amount": _money_dict(self.delta_amount),
            "delta_reason": self.delta_reason,
        }


@dataclass(frozen=True)
class BillingPreview:
    """A client's assembled bill for one month."""

    client_id: str
    client_name: str
    year: int
    month: int
    line_items: tuple[FacilityLineItem, ...]
    subtotal: Money
    tax_rate: Decimal
    tax_amount: Money
    total: Money
    explanation: BillingExplanation
    previous_month_total: Money | None = None

    @property
    def period(self) -> BillingPeriod:
        return BillingPeriod(self.year, self.month)

    @property
    def month_label(self) -> str:
        return self.period.label

    @property
    def currency(self) -> str:
        return self.total.currency

    @property
    def active_facility_count(self) -> int:
        """Number of lines that count toward the total."""
        return sum(1 for item in self.line_items if item.included_in_total)

    @property
    def total_facility_count(self) -> int:
        return len(self.line_items)

    def line_item(self, facility_profile_id: str) -> FacilityLineItem | None:
        for item in self.line_items:
            if item.facility_profile_id == facility_profile_id:
                return item
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "client_id": self.client_id,
            "client_name": self.client_name,
            "year": self.year,
            "month": self.month,
            "month_label": self.month_label,
            "currency": self.currency,
            "line_items": [item.to_dict() for item in self.line_items],
            "subtotal": _money_dict(self.subtotal),
            "tax_rate": str(self.tax_rate),
            "tax_amount": _money_dict(self.tax_amount),
            "total": _money_dict(self.total),
            "active_facility_count": self.active_facility_count,
            "total_facility_count": self.total_facility_count,
            "previous_month_total": _money_dict(self.previous_month_total),
            "explanation": self.explanation.to_dict(),
        }


# ---------------------------------------------------------------------------
# Line items
# ---------------------------------------------------------------------------


def build_line_item(
    config: EffectiveConfig,
    proration: ProrationResult,
    calculator: TaxCalculator,
) -> FacilityLineItem:
    """Combine a resolved config, its proration and tax into a line item."""
    included = is_included(config.status, proration)
    if included:
        effective_rate = scale_rate(config.base_rate, proration)
        line_tax: LineTax = calculator.calculate(effective_rate, config.tax_behavior)
    else:
        # Shown for reference; contributes nothing.
        effective_rate = config.base_rate
        line_tax = calculator.excluded(effective_rate, config.tax_behavior)

    return FacilityLineItem(
        facility_profile_id=config.facility_profile_id,
        location_name=config.location_name,
        category=config.category,
        effective_status=config.status,
        base_rate=config.base_rate,
        effective_rate=effective_rate,
        effective_frequency=config.frequency,
        effective_days_of_week=config.days_of_week,
        included_in_total=included,
        is_overridden=config.is_overridden,
        is_seasonally_paused=config.is_seasonally_paused,
        is_pro_rated=proration.is_pro_rated,
        scheduled_days=proration.scheduled_days,
        active_days=proration.active_days,
        tax_behavior=line_tax.tax_mode,
        line_item_tax=line_tax.line_item_tax,
        line_item_total=line_tax.line_item_total,
        pause_window=config.pause_window,
        override_notes=config.override_notes,
        sort_order=config.sort_order,
    )


# ---------------------------------------------------------------------------
# Explanation
# ---------------------------------------------------------------------------


def describe_override(config: EffectiveConfig) -> str | None:
    """
    Human-readable summary of the override fields that took effect.

    Example: ``"Main Office: rate → $150.00, paused 3/16-3/27 (holiday closure)"``.
    """
    override = config.override
    if override is None or not config.is_overridden:
        return None

    parts: list[str] = []
    if "rate" in config.overridden_fields:
        parts.append(f"rate → {config.base_rate.format()}")
    if "status" in config.overridden_fields and override.override_status is not None:
        parts.append(f"status → {override.override_status.value}")
    if "frequency" in config.overridden_fields:
        parts.append(f"frequency → {config.frequency}x/week")
    if "days_of_week" in config.overridden_fields:
        names = ", ".join(WEEKDAY_NAMES[day] for day in sorted(config.days_of_week))
        parts.append(f"days → {names}")
    if config.pause_window is not None:
        window = config.pause_window
        parts.append(
            f"paused {override.month}/{window.start_day}-{override.month}/{window.end_day}"
        )

    text = f"{config.location_name}: {', '.join(parts)}"
    if override.override_notes:
        text = f"{text} ({override.override_notes})"
    return text


def _delta_reason(delta: Money, previous_period: BillingPeriod) -> str | None:
    if delta.is_zero:
        return None
    direction = "increase" if delta.is_positive else "decrease"
    return f"{abs(delta).format()} {direction} from {previous_period.label}"


def build_explanation(
    line_items: Sequence[FacilityLineItem],
    configs: Sequence[EffectiveConfig],
    total: Money,
    previous: BillingPreview | None = None,
) -> BillingExplanation:
    buckets: dict[FacilityStatus, list[str]] = {status: [] for status in FacilityStatus}
    unscheduled: list[str] = []
    for item in line_items:
        # Active but excluded: no scheduled days this month.
        if item.effective_status is FacilityStatus.ACTIVE and not item.included_in_total:
            unscheduled.append(item.location_name)
        else:
            buckets[item.effective_status].append(item.location_name)

    overrides = tuple(
        text for text in (describe_override(config) for config in configs) if text
    )

    delta_amount = None
    delta_reason = None
    if previous is not None:
        delta_amount = total - previous.total
        delta_reason = _delta_reason(delta_amount, previous.period)

    return BillingExplanation(
        active_facilities=tuple(buckets[FacilityStatus.ACTIVE]),
        paused_facilities=tuple(buckets[FacilityStatus.PAUSED]),
        seasonally_paused=tuple(buckets[FacilityStatus.SEASONAL_PAUSED]),
        pending_approval=tuple(buckets[FacilityStatus.PENDING_APPROVAL]),
        closed_facilities=tuple(buckets[FacilityStatus.CLOSED]),
        unscheduled_facilities=tuple(unscheduled),
        overrides=overrides,
        delta_amount=delta_amount,
        delta_reason=delta_reason,
    )


# ---------------------------------------------------------------------------
# Assembly
# ---------------------------------------------------------------------------


def _check_previous(
    client: ClientBillingProfile,
    period: BillingPeriod,
    previous: BillingPreview,
) -> None:
    if previous.client_id != client.id:
        raise ValueError(
            f"Previous preview belongs to client {previous.client_id}, not {client.id}"
        )
    if previous.period != period.previous():
        raise ValueError(
            f"Previous preview is for {previous.period.code}, "
            f"expected {period.previous().code}"
        )


@traced_engine(
    "billing_preview", "1.0",
    fingerprint_fields=("client", "year", "month", "profiles", "overrides_by_facility"),
)
def assemble_preview(
    client: ClientBillingProfile,
    year: int,
    month: int,
    profiles: Sequence[FacilityProfile],
    overrides_by_facility: Mapping[str, MonthlyOverride],
    previous: BillingPreview | None = None,
    default_tax_mode: TaxBehavior = TaxBehavior.PRE_TAX,
) -> BillingPreview:
    """
    Assemble the billing preview of ``client`` for ``year``/``month``.

    Args:
        client: Client tax settings.
        year: Billing year.
        month: Billing month (1-12).
        profiles: The client's facility profiles, any order.
        overrides_by_facility: This month's overrides keyed by facility id.
        previous: Already-assembled preview of the prior month, if the
            caller wants the delta narrative.
        default_tax_mode: Mode used when the client has no default.

    Returns:
        BillingPreview with ordered line items and totals.
    """
    period = BillingPeriod(year, month)
    if previous is not None:
        _check_previous(client, period, previous)

    calculator = TaxCalculator(
        client.effective_tax_rate,
        client.default_tax_mode or default_tax_mode,
    )

    configs: list[EffectiveConfig] = []
    line_items: list[FacilityLineItem] = []
    for profile in sorted(profiles, key=lambda p: (p.sort_order, p.id)):
        if profile.client_id != client.id:
            raise ValueError(
                f"Facility {profile.id} belongs to client {profile.client_id}, "
                f"not {client.id}"
            )
        config = resolve_facility(profile, overrides_by_facility.get(profile.id), year, month)
        proration = prorate(config.billable_days_of_week, config.pause_window, year, month)
        configs.append(config)
        line_items.append(build_line_item(config, proration, calculator))

    currency = client.currency
    subtotal = Money.sum(
        (item.effective_rate for item in line_items if item.included_in_total),
        currency,
    )
    tax_amount = Money.sum((item.line_item_tax for item in line_items), currency)
    total = Money.sum((item.line_item_total for item in line_items), currency)

    preview = BillingPreview(
        client_id=client.id,
        client_name=client.name,
        year=year,
        month=month,
        line_items=tuple(line_items),
        subtotal=subtotal,
        tax_rate=client.effective_tax_rate,
        tax_amount=tax_amount,
        total=total,
        explanation=build_explanation(line_items, configs, total, previous),
        previous_month_total=previous.total if previous is not None else None,
    )

    logger.info("billing_preview_assembled", extra={
        "client_id": client.id,
        "billing_period": period.code,
        "facility_count": preview.total_facility_count,
        "active_facility_count": preview.active_facility_count,
        "subtotal": str(subtotal.amount),
        "tax_amount": str(tax_amount.amount),
        "total": str(total.amount),
    })
    return preview
