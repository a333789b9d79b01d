"""
billing_services.billing_preview_service -- Monthly preview, delta and calendar.

Responsibility:
    Load a client's billing inputs through the kernel selector once per
    request, then run the pure engines to produce the month's preview,
    the month-over-month delta report and the weekly schedule.

Architecture position:
    Services -- stateful orchestration over engines + kernel.
    Composes FacilitySelector (kernel I/O) with assemble_preview,
    diff_previews and project_schedule (pure engines).  The injected
    Clock is consulted only to default the year and month.

Invariants enforced:
    - Inputs (client, profiles, overrides) are loaded once per request
      and handed to the engines as parameters.
    - The previous month is assembled by this service, never by the
      assembler.
    - The delta report's totals always equal current total minus
      previous total.

Failure modes:
    - ClientNotFoundError for an unknown client.
    - ConfigurationError subclasses surfaced from the engines.

Usage:
    service = BillingPreviewService(session, clock=SystemClock())
    preview = service.preview(client_id)                # current month
    report = service.delta(client_id, year=2027, month=4)
    week = service.schedule(client_id, year=2027, month=4)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from billing_config import get_active_settings
from billing_config.schema import BillingSettings
from billing_engines.delta import DeltaReport, diff_previews
from billing_engines.preview import BillingPreview, assemble_preview
from billing_engines.schedule import WeeklySchedule, project_schedule
from billing_kernel.domain.clock import Clock, SystemClock
from billing_kernel.domain.facility import ClientBillingProfile, FacilityProfile
from billing_kernel.domain.period import BillingPeriod
from billing_kernel.logging_config import LogContext, get_logger
from billing_kernel.selectors.facility_selector import FacilitySelector

logger = get_logger("services.billing_preview")


@dataclass(frozen=True)
class BillingMonthView:
    """Everything the billing screen needs for one client-month."""

    preview: BillingPreview
    previous: BillingPreview
    delta: DeltaReport
    schedule: WeeklySchedule

    def to_dict(self) -> dict[str, Any]:
        return {
            "preview": self.preview.to_dict(),
            "previous": self.previous.to_dict(),
            "delta": self.delta.to_dict(),
            "schedule": self.schedule.to_dict(),
        }


class BillingPreviewService:
    """
    Read-side orchestration for recurring billing.

    Contract:
        Never writes.  Every public method takes an optional year and
        month; missing parts default from the injected clock.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        settings: BillingSettings | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._settings = settings or get_active_settings()
        self._selector = FacilitySelector(session)

    @property
    def settings(self) -> BillingSettings:
        return self._settings

    def resolve_period(self, year: int | None = None, month: int | None = None) -> BillingPeriod:
        return BillingPeriod.resolve(year, month, self._clock.today())

    def _load_inputs(
        self, client_id: UUID | str,
    ) -> tuple[ClientBillingProfile, list[FacilityProfile]]:
        client = self._selector.get_client(client_id)
        profiles = self._selector.list_facilities(client_id)
        return client, profiles

    def _assemble(
        self,
        client: ClientBillingProfile,
        profiles: list[FacilityProfile],
        period: BillingPeriod,
        previous: BillingPreview | None = None,
    ) -> BillingPreview:
        overrides = self._selector.overrides_for_month(client.id, period.year, period.month)
        return assemble_preview(
            client,
            period.year,
            period.month,
            profiles,
            overrides,
            previous=previous,
            default_tax_mode=self._settings.default_tax_mode,
        )

    def _current_and_previous(
        self,
        client_id: UUID | str,
        period: BillingPeriod,
    ) -> tuple[BillingPreview, BillingPreview]:
        client, profiles = self._load_inputs(client_id)
        previous = self._assemble(client, profiles, period.previous())
        current = self._assemble(client, profiles, period, previous=previous)
        return current, previous

    def preview(
        self,
        client_id: UUID | str,
        year: int | None = None,
        month: int | None = None,
        include_previous: bool = True,
    ) -> BillingPreview:
        """
        Billing preview for one month.

        With ``include_previous`` the prior month is assembled too, so the
        preview carries ``previous_month_total`` and the delta narrative.
        """
        period = self.resolve_period(year, month)
        with LogContext.bind(client_id=str(client_id), billing_period=period.code):
            if include_previous:
                current, _ = self._current_and_previous(client_id, period)
                return current
            client, profiles = self._load_inputs(client_id)
            return self._assemble(client, profiles, period)

    def delta(
        self,
        client_id: UUID | str,
        year: int | None = None,
        month: int | None = None,
    ) -> DeltaReport:
        """Month-over-month comparison of ``year``/``month`` with the month before."""
        period = self.resolve_period(year, month)
        with LogContext.bind(client_id=str(client_id), billing_period=period.code):
            current, previous = self._current_and_previous(client_id, period)
            return diff_previews(current, previous)

    def schedule(
        self,
        client_id: UUID | str,
        year: int | None = None,
        month: int | None = None,
    ) -> WeeklySchedule:
        """Weekly service pattern of the month's included facilities."""
        period = self.resolve_period(year, month)
        with LogContext.bind(client_id=str(client_id), billing_period=period.code):
            client, profiles = self._load_inputs(client_id)
            return project_schedule(self._assemble(client, profiles, period).line_items)

    def month_view(
        self,
        client_id: UUID | str,
        year: int | None = None,
        month: int | None = None,
    ) -> BillingMonthView:
        """Preview, previous month, delta and schedule from one load of inputs."""
        period = self.resolve_period(year, month)
        with LogContext.bind(client_id=str(client_id), billing_period=period.code):
            current, previous = self._current_and_previous(client_id, period)
            view = BillingMonthView(
                preview=current,
                previous=previous,
                delta=diff_previews(current, previous),
                schedule=project_schedule(current.line_items),
            )
            logger.info("billing_month_view_built", extra={
                "total": str(current.total.amount),
                "previous_total": str(previous.total.amount),
                "changed_count": view.delta.changed_count,
            })
            return view

    def absent_marker(self) -> str:
        """Text rendered where a month has no line for a facility."""
        return self._settings.absent_amount_marker
