"""
Delta Report Generator -- Month-over-month comparison of two previews.

Pure functions with no I/O.  Both previews are assembled by the caller.

Classification per facility id (union of both previews' line items):
    added      present in the current preview only
    removed    present in the previous preview only
    changed    present in both; total differs or effective status differs
    unchanged  otherwise

A line counts as "present" whenever the facility has a line item, whether
or not that line is included in the total.  A facility paused this month
is therefore "changed" (its total dropped to zero), not "removed".

The missing side of an added or removed facility is treated as zero for
the deltas.  ``has_current``/``has_previous`` let presentation render the
absent-amount marker instead of a zero.

Usage:
    from billing_engines.delta import diff_previews

    report = diff_previews(april, march)
    report.total_delta == april.total - march.total   # always
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from billing_engines.preview import BillingPreview, FacilityLineItem
from billing_engines.tracer import traced_engine
from billing_kernel.domain.facility import FacilityStatus
from billing_kernel.domain.period import BillingPeriod
from billing_kernel.domain.values import Money
from billing_kernel.logging_config import get_logger

logger = get_logger("engines.delta")

DEFAULT_ABSENT_MARKER = "—"


class ChangeType(str, Enum):
    """How a facility's line moved between two months."""

    ADDED = "added"
    REMOVED = "removed"
    CHANGED = "changed"
    UNCHANGED = "unchanged"


@dataclass(frozen=True)
class FacilityDelta:
    """One facility's comparison across the two months."""

    facility_profile_id: str
    location_name: str
    change_type: ChangeType
    current: FacilityLineItem | None
    previous: FacilityLineItem | None
    currency: str

    @property
    def has_current(self) -> bool:
        return self.current is not None

    @property
    def has_previous(self) -> bool:
        return self.previous is not None

    def _side(self, item: FacilityLineItem | None, attr: str) -> Money:
        if item is None:
            return Money.zero(self.currency)
        return getattr(item, attr)

    @property
    def current_total(self) -> Money:
        return self._side(self.current, "line_item_total")

    @property
    def previous_total(self) -> Money:
        return self._side(self.previous, "line_item_total")

    @property
    def current_subtotal(self) -> Money:
        if self.current is None or not self.current.included_in_total:
            return Money.zero(self.currency)
        return self.current.effective_rate

    @property
    def previous_subtotal(self) -> Money:
        if self.previous is None or not self.previous.included_in_total:
            return Money.zero(self.currency)
        return self.previous.effective_rate

    @property
    def total_delta(self) -> Money:
        return self.current_total - self.previous_total

    @property
    def subtotal_delta(self) -> Money:
        return self.current_subtotal - self.previous_subtotal

    @property
    def tax_delta(self) -> Money:
        return (
            self._side(self.current, "line_item_tax")
            - self._side(self.previous, "line_item_tax")
        )

    @property
    def current_status(self) -> FacilityStatus | None:
        return self.current.effective_status if self.current else None

    @property
    def previous_status(self) -> FacilityStatus | None:
        return self.previous.effective_status if self.previous else None

    @property
    def current_rate(self) -> Money | None:
        return self.current.effective_rate if self.current else None

    @property
    def previous_rate(self) -> Money | None:
        return self.previous.effective_rate if self.previous else None

    def display_total(self, side: str, marker: str = DEFAULT_ABSENT_MARKER) -> str:
        """Formatted total for ``side`` ("current"/"previous"), or ``marker``."""
        if side == "current":
            item, amount = self.current, self.current_total
        elif side == "previous":
            item, amount = self.previous, self.previous_total
        else:
            raise ValueError(f"side must be 'current' or 'previous', got {side!r}")
        return marker if item is None else amount.format()

    def to_dict(self) -> dict[str, Any]:
        return {
            "facility_profile_id": self.facility_profile_id,
            "location_name": self.location_name,
            "change_type": self.change_type.value,
            "has_current": self.has_current,
            "has_previous": self.has_previous,
            "current_status": self.current_status.value if self.current_status else None,
            "previous_status": self.previous_status.value if self.previous_status else None,
            "current_rate": str(self.current_rate.amount) if self.current_rate else None,
            "previous_rate": str(self.previous_rate.amount) if self.previous_rate else None,
            "current_total": str(self.current_total.amount) if self.current else None,
            "previous_total": str(self.previous_total.amount) if self.previous else None,
            "total_delta": str(self.total_delta.amount),
            "subtotal_delta": str(self.subtotal_delta.amount),
            "tax_delta": str(self.tax_delta.amount),
        }


@dataclass(frozen=True)
class DeltaReport:
    """Aggregate comparison of two monthly previews for one client."""

    client_id: str
    current_period: BillingPeriod
    previous_period: BillingPeriod
    current_total: Money
    previous_total: Money
    current_subtotal: Money
    previous_subtotal: Money
    current_tax: Money
    previous_tax: Money
    facilities: tuple[FacilityDelta, ...]

    @property
    def total_delta(self) -> Money:
        return Money.sum((f.total_delta for f in self.facilities), self.current_total.currency)

    @property
    def subtotal_delta(self) -> Money:
        return Money.sum(
            (f.subtotal_delta for f in self.facilities), self.current_total.currency
        )

    @property
    def tax_delta(self) -> Money:
        return Money.sum((f.tax_delta for f in self.facilities), self.current_total.currency)

    def by_change_type(self, change_type: ChangeType) -> tuple[FacilityDelta, ...]:
        return tuple(f for f in self.facilities if f.change_type is change_type)

    @property
    def changed_count(self) -> int:
        """Facilities that are not unchanged (added, removed or changed)."""
        return sum(1 for f in self.facilities if f.change_type is not ChangeType.UNCHANGED)

    @property
    def unchanged_count(self) -> int:
        return len(self.by_change_type(ChangeType.UNCHANGED))

    def facility(self, facility_profile_id: str) -> FacilityDelta | None:
        for entry in self.facilities:
            if entry.facility_profile_id == facility_profile_id:
                return entry
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "client_id": self.client_id,
            "current_period": {
                "year": self.current_period.year,
                "month": self.current_period.month,
                "label": str(self.current_period),
                "subtotal": str(self.current_subtotal.amount),
                "tax": str(self.current_tax.amount),
                "total": str(self.current_total.amount),
            },
            "previous_period": {
                "year": self.previous_period.year,
                "month": self.previous_period.month,
                "label": str(self.previous_period),
                "subtotal": str(self.previous_subtotal.amount),
                "tax": str(self.previous_tax.amount),
                "total": str(self.previous_total.amount),
            },
            "facilities": [f.to_dict() for f in self.facilities],
            "total_delta": str(self.total_delta.amount),
            "subtotal_delta": str(self.subtotal_delta.amount),
            "tax_delta": str(self.tax_delta.amount),
            "changed_count": self.changed_count,
            "unchanged_count": self.unchanged_count,
        }


def classify(
    current: FacilityLineItem | None,
    previous: FacilityLineItem | None,
) -> ChangeType:
    if current is None and previous is None:
        raise ValueError("At least one side must be present")
    if previous is None:
        return ChangeType.ADDED
    if current is None:
        return ChangeType.REMOVED
    if current.line_item_total != previous.line_item_total:
        return ChangeType.CHANGED
    if current.effective_status is not previous.effective_status:
        return ChangeType.CHANGED
    return ChangeType.UNCHANGED


@traced_engine("delta_report", "1.0", fingerprint_fields=("current", "previous"))
def diff_previews(current: BillingPreview, previous: BillingPreview) -> DeltaReport:
    """
    Compare two assembled previews of the same client.

    Raises:
        ValueError: If the previews belong to different clients.
    """
    if current.client_id != previous.client_id:
        raise ValueError(
            f"Cannot diff previews of different clients: "
            f"{current.client_id} vs {previous.client_id}"
        )

    current_items = {item.facility_profile_id: item for item in current.line_items}
    previous_items = {item.facility_profile_id: item for item in previous.line_items}

    facilities = []
    for facility_id in sorted(current_items.keys() | previous_items.keys()):
        now = current_items.get(facility_id)
        before = previous_items.get(facility_id)
        facilities.append(FacilityDelta(
            facility_profile_id=facility_id,
            location_name=(now or before).location_name,
            change_type=classify(now, before),
            current=now,
            previous=before,
            currency=current.currency,
        ))

    report = DeltaReport(
        client_id=current.client_id,
        current_period=current.period,
        previous_period=previous.period,
        current_total=current.total,
        previous_total=previous.total,
        current_subtotal=current.subtotal,
        previous_subtotal=previous.subtotal,
        current_tax=current.tax_amount,
        previous_tax=previous.tax_amount,
        facilities=tuple(facilities),
    )

    logger.info("delta_report_generated", extra={
        "client_id": current.client_id,
        "billing_period": current.period.code,
        "previous_period": previous.period.code,
        "facility_count": len(facilities),
        "changed_count": report.changed_count,
        "total_delta": str(report.total_delta.amount),
    })
    return report
