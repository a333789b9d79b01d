"""Read-only query selectors returning domain DTOs."""

from billing_kernel.selectors.base import BaseSelector, coerce_uuid
from billing_kernel.selectors.facility_selector import ChangeLogEntry, FacilitySelector

__all__ = [
    "BaseSelector",
    "ChangeLogEntry",
    "FacilitySelector",
    "coerce_uuid",
]
