"""ORM models for the billing registry."""

from billing_kernel.models.change_log import ChangeAction, ChangeEntityType, ChangeLogModel
from billing_kernel.models.client import ClientModel
from billing_kernel.models.facility_profile import FacilityProfileModel
from billing_kernel.models.monthly_override import MonthlyOverrideModel
from billing_kernel.models.seasonal_rule import SeasonalRuleModel

__all__ = [
    "ChangeAction",
    "ChangeEntityType",
    "ChangeLogModel",
    "ClientModel",
    "FacilityProfileModel",
    "MonthlyOverrideModel",
    "SeasonalRuleModel",
]
