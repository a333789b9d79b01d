"""
Schedule Projector -- Weekly service pattern from a month's line items.

Maps each weekday (0 = Sunday) to the facilities serviced that day.  Only
included lines are placed on the week; excluded lines are listed
separately as inactive.

Pause windows are deliberately not applied: a facility paused mid-month
still shows on its normal weekly pattern.  The calendar describes the
recurring pattern, the preview describes what is billed.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date
from typing import Any

from billing_engines.preview import FacilityLineItem
from billing_kernel.domain.facility import WEEKDAY_NAMES, FacilityStatus
from billing_kernel.domain.period import weekday_index


@dataclass(frozen=True)
class ScheduledFacility:
    facility_profile_id: str
    location_name: str
    category: str | None
    frequency: int
    status: FacilityStatus

    @classmethod
    def from_line_item(cls, item: FacilityLineItem) -> ScheduledFacility:
        return cls(
            facility_profile_id=item.facility_profile_id,
            location_name=item.location_name,
            category=item.category,
            frequency=item.effective_frequency,
            status=item.effective_status,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "facility_profile_id": self.facility_profile_id,
            "location_name": self.location_name,
            "category": self.category,
            "frequency": self.frequency,
            "status": self.status.value,
        }


@dataclass(frozen=True)
class WeeklySchedule:
    """Seven weekday slots (index 0 = Sunday) plus the inactive list."""

    days: tuple[tuple[ScheduledFacility, ...], ...]
    inactive: tuple[ScheduledFacility, ...] = ()

    def __post_init__(self) -> None:
        if len(self.days) != 7:
            raise ValueError(f"WeeklySchedule needs 7 weekday slots, got {len(self.days)}")

    def on(self, weekday: int) -> tuple[ScheduledFacility, ...]:
        if not 0 <= weekday <= 6:
            raise ValueError(f"weekday must be 0-6, got {weekday}")
        return self.days[weekday]

    def for_day(self, year: int, month: int, day: int) -> tuple[ScheduledFacility, ...]:
        """Facilities scheduled on a calendar date."""
        return self.on(weekday_index(date(year, month, day)))

    @property
    def active_facility_ids(self) -> frozenset[str]:
        return frozenset(f.facility_profile_id for slot in self.days for f in slot)

    def to_dict(self) -> dict[str, Any]:
        return {
            "days": {
                WEEKDAY_NAMES[index]: [f.to_dict() for f in slot]
                for index, slot in enumerate(self.days)
            },
            "inactive": [f.to_dict() for f in self.inactive],
        }


def project_schedule(line_items: Sequence[FacilityLineItem]) -> WeeklySchedule:
    """Project included line items onto the week, keeping line order."""
    slots: list[list[ScheduledFacility]] = [[] for _ in range(7)]
    inactive: list[ScheduledFacility] = []
    for item in line_items:
        entry = ScheduledFacility.from_line_item(item)
        if not item.included_in_total:
            inactive.append(entry)
            continue
        for weekday in sorted(item.effective_days_of_week):
            slots[weekday].append(entry)
    return WeeklySchedule(days=tuple(tuple(slot) for slot in slots), inactive=tuple(inactive))
