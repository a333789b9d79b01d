"""
billing_services -- orchestration over the billing engines and kernel.

Usage:
    from billing_services import BillingPreviewService
"""

from billing_services.billing_preview_service import BillingMonthView, BillingPreviewService

__all__ = [
    "BillingMonthView",
    "BillingPreviewService",
]
