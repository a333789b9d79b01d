"""Kernel write services."""

from billing_kernel.services.base import BaseService
from billing_kernel.services.facility_registry_service import FacilityRegistryService

__all__ = [
    "BaseService",
    "FacilityRegistryService",
]
