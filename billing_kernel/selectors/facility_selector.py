"""
Module: billing_kernel.selectors.facility_selector
Responsibility: Read path for clients, facility profiles, monthly overrides,
    seasonal rules and the change log.  Converts ORM rows into the frozen
    domain DTOs consumed by the billing engines.
Architecture position: Kernel > Selectors.  Read-only.

Invariants enforced:
    - Money columns become ``Money`` in the owning client's currency.
    - Facilities are returned in (sort_order, id) order.
    - Change log entries are returned newest first.

Failure modes:
    - ClientNotFoundError / FacilityNotFoundError when an id does not exist.
    - InvalidBillingPeriodError for a month outside 1-12.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import select

from billing_kernel.domain.facility import (
    ClientBillingProfile,
    FacilityProfile,
    MonthlyOverride,
    OverrideStatus,
    SeasonalRule,
    TaxBehavior,
)
from billing_kernel.domain.period import BillingPeriod
from billing_kernel.domain.values import Money
from billing_kernel.exceptions import ClientNotFoundError, FacilityNotFoundError
from billing_kernel.models.change_log import ChangeAction, ChangeEntityType, ChangeLogModel
from billing_kernel.models.client import ClientModel
from billing_kernel.models.facility_profile import FacilityProfileModel
from billing_kernel.models.monthly_override import MonthlyOverrideModel
from billing_kernel.models.seasonal_rule import SeasonalRuleModel
from billing_kernel.selectors.base import BaseSelector, coerce_uuid


@dataclass(frozen=True)
class ChangeLogEntry:
    """Immutable view of one registry mutation."""

    id: str
    entity_type: ChangeEntityType
    entity_id: str
    client_id: str
    action: ChangeAction
    old_values: dict[str, Any] | None
    new_values: dict[str, Any] | None
    actor_id: str
    created_at: datetime


# ---------------------------------------------------------------------------
# ORM -> DTO conversion (shared with the registry service)
# ---------------------------------------------------------------------------


def client_to_dto(model: ClientModel) -> ClientBillingProfile:
    return ClientBillingProfile(
        id=str(model.id),
        name=model.name,
        tax_rate=Decimal(str(model.tax_rate)),
        default_tax_mode=(
            TaxBehavior(model.default_tax_mode) if model.default_tax_mode else None
        ),
        tax_exempt=model.tax_exempt,
        currency=model.currency,
    )


def seasonal_rule_to_dto(model: SeasonalRuleModel) -> SeasonalRule:
    return SeasonalRule(
        active_months=frozenset(model.active_months or ()),
        paused_months=frozenset(model.paused_months or ()),
        effective_year_start=model.effective_year_start,
        effective_year_end=model.effective_year_end,
        is_active=model.is_active,
    )


def facility_to_dto(model: FacilityProfileModel, currency: str) -> FacilityProfile:
    rules = sorted(model.seasonal_rules, key=lambda rule: str(rule.id))
    return FacilityProfile(
        id=str(model.id),
        client_id=str(model.client_id),
        location_id=model.location_id,
        location_name=model.location_name,
        default_monthly_rate=Money.of(model.default_monthly_rate, currency),
        normal_days_of_week=frozenset(model.normal_days_of_week or ()),
        normal_frequency_per_week=model.normal_frequency_per_week,
        status=model.status,
        tax_behavior=model.tax_behavior,
        rate_type=model.rate_type,
        category=model.category,
        go_live_date=model.go_live_date,
        scope_of_work_notes=model.scope_of_work_notes,
        seasonal_rules_enabled=model.seasonal_rules_enabled,
        seasonal_rules=tuple(seasonal_rule_to_dto(rule) for rule in rules),
        sort_order=model.sort_order,
    )


def override_to_dto(model: MonthlyOverrideModel, currency: str) -> MonthlyOverride:
    return MonthlyOverride(
        facility_profile_id=str(model.facility_profile_id),
        year=model.year,
        month=model.month,
        override_status=(
            OverrideStatus(model.override_status) if model.override_status else None
        ),
        override_rate=(
            Money.of(model.override_rate, currency)
            if model.override_rate is not None
            else None
        ),
        override_frequency=model.override_frequency,
        override_days_of_week=frozenset(model.override_days_of_week or ()),
        pause_start_day=model.pause_start_day,
        pause_end_day=model.pause_end_day,
        override_notes=model.override_notes,
        id=str(model.id),
    )


def change_log_to_dto(model: ChangeLogModel) -> ChangeLogEntry:
    return ChangeLogEntry(
        id=str(model.id),
        entity_type=ChangeEntityType(model.entity_type),
        entity_id=str(model.entity_id),
        client_id=str(model.client_id),
        action=ChangeAction(model.action),
        old_values=model.old_values,
        new_values=model.new_values,
        actor_id=str(model.actor_id),
        created_at=model.created_at,
    )


class FacilitySelector(BaseSelector[FacilityProfileModel]):
    """Read-only queries over the billing registry."""

    def get_client(self, client_id: UUID | str) -> ClientBillingProfile:
        """
        Raises:
            ClientNotFoundError: If the client doesn't exist.
        """
        model = self.session.get(ClientModel, coerce_uuid(client_id))
        if model is None:
            raise ClientNotFoundError(str(client_id))
        return client_to_dto(model)

    def list_facilities(self, client_id: UUID | str) -> list[FacilityProfile]:
        """
        All facility profiles of a client, closed ones included.

        Raises:
            ClientNotFoundError: If the client doesn't exist.
        """
        client = self.session.get(ClientModel, coerce_uuid(client_id))
        if client is None:
            raise ClientNotFoundError(str(client_id))

        stmt = (
            select(FacilityProfileModel)
            .where(FacilityProfileModel.client_id == client.id)
            .order_by(FacilityProfileModel.sort_order, FacilityProfileModel.id)
        )
        models = self.session.execute(stmt).scalars().all()
        return [facility_to_dto(m, client.currency) for m in models]

    def get_facility(self, facility_profile_id: UUID | str) -> FacilityProfile:
        """
        Raises:
            FacilityNotFoundError: If the facility doesn't exist.
        """
        model = self.session.get(FacilityProfileModel, coerce_uuid(facility_profile_id))
        if model is None:
            raise FacilityNotFoundError(str(facility_profile_id))
        return facility_to_dto(model, model.client.currency)

    def overrides_for_month(
        self,
        client_id: UUID | str,
        year: int,
        month: int,
    ) -> dict[str, MonthlyOverride]:
        """This month's overrides of a client's facilities, keyed by facility id."""
        BillingPeriod(year, month)
        stmt = (
            select(MonthlyOverrideModel, ClientModel.currency)
            .join(
                FacilityProfileModel,
                FacilityProfileModel.id == MonthlyOverrideModel.facility_profile_id,
            )
            .join(ClientModel, ClientModel.id == FacilityProfileModel.client_id)
            .where(
                FacilityProfileModel.client_id == coerce_uuid(client_id),
                MonthlyOverrideModel.year == year,
                MonthlyOverrideModel.month == month,
            )
        )
        result: dict[str, MonthlyOverride] = {}
        for model, currency in self.session.execute(stmt).all():
            dto = override_to_dto(model, currency)
            result[dto.facility_profile_id] = dto
        return result

    def list_overrides(self, facility_profile_id: UUID | str) -> list[MonthlyOverride]:
        """Every override of one facility, oldest month first."""
        facility = self.session.get(FacilityProfileModel, coerce_uuid(facility_profile_id))
        if facility is None:
            raise FacilityNotFoundError(str(facility_profile_id))

        stmt = (
            select(MonthlyOverrideModel)
            .where(MonthlyOverrideModel.facility_profile_id == facility.id)
            .order_by(MonthlyOverrideModel.year, MonthlyOverrideModel.month)
        )
        currency = facility.client.currency
        return [
            override_to_dto(m, currency)
            for m in self.session.execute(stmt).scalars().all()
        ]

    def change_log(self, client_id: UUID | str, limit: int = 50) -> list[ChangeLogEntry]:
        """Most recent registry mutations for a client, newest first."""
        if limit < 1:
            raise ValueError(f"limit must be positive, got {limit}")
        stmt = (
            select(ChangeLogModel)
            .where(ChangeLogModel.client_id == coerce_uuid(client_id))
            .order_by(ChangeLogModel.created_at.desc())
            .limit(limit)
        )
        return [change_log_to_dto(m) for m in self.session.execute(stmt).scalars().all()]
