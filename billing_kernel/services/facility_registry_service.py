"""
FacilityRegistryService -- write path for clients, facilities and overrides.

Responsibility:
    Create and edit client billing settings, facility profiles, monthly
    overrides and seasonal rules.  Every mutation validates its input,
    flushes within the caller's transaction and appends a change log row.

Architecture position:
    Kernel > Services -- imperative shell.  Reads back through the
    selector conversion helpers so callers always receive domain DTOs.

Invariants enforced:
    - Pause windows are both-or-neither, within 1-31 and start <= end.
    - Weekday indices are 0-6, weekly frequency 0-7.
    - One override per (facility, year, month).
    - The permanent status toggle (``set_facility_status``) and the
      one-month override are separate operations.
    - Flush only; the caller commits.

Failure modes:
    - InvalidPauseWindowError, InvalidScheduleError, InvalidBillingPeriodError,
      InvalidTaxModeError on bad input.
    - DuplicateOverrideError when the month already has an override.
    - ClientNotFoundError, FacilityNotFoundError, OverrideNotFoundError.
    - CurrencyMismatchError when a rate is not in the client's currency.

Audit relevance:
    ChangeLogModel rows carry old and new values plus the actor for each
    mutation; ``created_at`` comes from the injected clock.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from billing_kernel.domain.clock import Clock, SystemClock
from billing_kernel.domain.facility import (
    ClientBillingProfile,
    FacilityProfile,
    FacilityStatus,
    MonthlyOverride,
    OverrideStatus,
    PauseWindow,
    RateType,
    SeasonalRule,
    TaxBehavior,
    validate_days_of_week,
    validate_frequency,
)
from billing_kernel.domain.period import BillingPeriod
from billing_kernel.domain.values import DEFAULT_CURRENCY, Money
from billing_kernel.exceptions import (
    ClientNotFoundError,
    CurrencyMismatchError,
    DuplicateOverrideError,
    FacilityNotFoundError,
    InvalidTaxModeError,
    OverrideNotFoundError,
)
from billing_kernel.logging_config import get_logger
from billing_kernel.models.change_log import ChangeAction, ChangeEntityType, ChangeLogModel
from billing_kernel.models.client import ClientModel
from billing_kernel.models.facility_profile import FacilityProfileModel
from billing_kernel.models.monthly_override import MonthlyOverrideModel
from billing_kernel.models.seasonal_rule import SeasonalRuleModel
from billing_kernel.selectors.base import coerce_uuid
from billing_kernel.selectors.facility_selector import (
    client_to_dto,
    facility_to_dto,
    override_to_dto,
    seasonal_rule_to_dto,
)
from billing_kernel.services.base import BaseService

logger = get_logger("services.facility_registry")

_FACILITY_FIELDS = (
    "location_name",
    "category",
    "default_monthly_rate",
    "rate_type",
    "tax_behavior",
    "status",
    "go_live_date",
    "normal_days_of_week",
    "normal_frequency_per_week",
    "scope_of_work_notes",
    "seasonal_rules_enabled",
    "sort_order",
)

_OVERRIDE_FIELDS = (
    "year",
    "month",
    "override_status",
    "override_rate",
    "override_frequency",
    "override_days_of_week",
    "pause_start_day",
    "pause_end_day",
    "override_notes",
)


def _json_value(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    return value


def _snapshot(model: Any, fields: Iterable[str]) -> dict[str, Any]:
    return {name: _json_value(getattr(model, name)) for name in fields}


class FacilityRegistryService(BaseService[FacilityProfileModel]):
    """
    Registry of facility billing configuration.

    All public methods return domain DTOs, not ORM entities.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        default_currency: str = DEFAULT_CURRENCY,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._default_currency = Money.zero(default_currency).currency

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _get_client(self, client_id: UUID | str) -> ClientModel:
        client = self.session.get(ClientModel, coerce_uuid(client_id))
        if client is None:
            raise ClientNotFoundError(str(client_id))
        return client

    def _get_facility(self, facility_profile_id: UUID | str) -> FacilityProfileModel:
        facility = self.session.get(FacilityProfileModel, coerce_uuid(facility_profile_id))
        if facility is None:
            raise FacilityNotFoundError(str(facility_profile_id))
        return facility

    def _get_override(self, override_id: UUID | str) -> MonthlyOverrideModel:
        override = self.session.get(MonthlyOverrideModel, coerce_uuid(override_id))
        if override is None:
            raise OverrideNotFoundError(str(override_id))
        return override

    def _find_override(
        self, facility_id: UUID, year: int, month: int,
    ) -> MonthlyOverrideModel | None:
        stmt = select(MonthlyOverrideModel).where(
            MonthlyOverrideModel.facility_profile_id == facility_id,
            MonthlyOverrideModel.year == year,
            MonthlyOverrideModel.month == month,
        )
        return self.session.execute(stmt).scalar_one_or_none()

    # ------------------------------------------------------------------
    # Validation helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _rate_amount(rate: Money, currency: str, operation: str) -> Decimal:
        if rate.currency != currency:
            raise CurrencyMismatchError(rate.currency, currency, operation)
        if rate.is_negative:
            raise ValueError(f"Rate cannot be negative: {rate}")
        return rate.amount

    @staticmethod
    def _client_tax_mode(mode: TaxBehavior | str | None) -> str | None:
        if mode is None:
            return None
        mode = TaxBehavior(mode)
        if mode is TaxBehavior.INHERIT_CLIENT:
            raise InvalidTaxModeError(mode.value, "client default tax mode cannot itself inherit")
        return mode.value

    # ------------------------------------------------------------------
    # Change log
    # ------------------------------------------------------------------

    def _record(
        self,
        entity_type: ChangeEntityType,
        entity_id: UUID,
        client_id: UUID,
        action: ChangeAction,
        actor_id: UUID,
        old_values: dict[str, Any] | None = None,
        new_values: dict[str, Any] | None = None,
    ) -> None:
        self.session.add(ChangeLogModel(
            entity_type=entity_type.value,
            entity_id=entity_id,
            client_id=client_id,
            action=action.value,
            old_values=old_values,
            new_values=new_values,
            actor_id=actor_id,
            created_at=self._clock.now(),
        ))

    # ------------------------------------------------------------------
    # Clients
    # ------------------------------------------------------------------

    def create_client(
        self,
        name: str,
        actor_id: UUID,
        tax_rate: Decimal = Decimal("0"),
        default_tax_mode: TaxBehavior | None = None,
        tax_exempt: bool = False,
        currency: str | None = None,
    ) -> ClientBillingProfile:
        """
        Create a client with its tax settings.

        ``currency`` defaults to the registry's configured currency.

        Raises:
            InvalidTaxModeError: If ``default_tax_mode`` is INHERIT_CLIENT.
            ValueError: If ``tax_rate`` is negative.
        """
        if not isinstance(tax_rate, Decimal):
            raise TypeError(f"tax_rate must be Decimal, got {type(tax_rate).__name__}")
        if tax_rate < 0:
            raise ValueError("Tax rate cannot be negative")

        client = ClientModel(
            name=name,
            tax_rate=tax_rate,
            default_tax_mode=self._client_tax_mode(default_tax_mode),
            tax_exempt=tax_exempt,
            currency=Money.zero(currency or self._default_currency).currency,
            created_by_id=actor_id,
        )
        self.session.add(client)
        self.session.flush()

        self._record(
            ChangeEntityType.CLIENT, client.id, client.id, ChangeAction.CREATE, actor_id,
            new_values=_snapshot(
                client, ("name", "tax_rate", "default_tax_mode", "tax_exempt", "currency"),
            ),
        )
        self.session.flush()

        logger.info("client_created", extra={"client_id": str(client.id)})
        return client_to_dto(client)

    # ------------------------------------------------------------------
    # Facility profiles
    # ------------------------------------------------------------------

    def create_facility(
        self,
        client_id: UUID | str,
        location_id: str,
        location_name: str,
        default_monthly_rate: Money,
        normal_days_of_week: Iterable[int],
        normal_frequency_per_week: int,
        actor_id: UUID,
        category: str | None = None,
        rate_type: RateType = RateType.FLAT_MONTHLY,
        tax_behavior: TaxBehavior = TaxBehavior.INHERIT_CLIENT,
        status: FacilityStatus = FacilityStatus.ACTIVE,
        go_live_date: date | None = None,
        scope_of_work_notes: str | None = None,
        seasonal_rules_enabled: bool = False,
        sort_order: int = 0,
    ) -> FacilityProfile:
        """
        Create a facility profile under a client.

        Raises:
            ClientNotFoundError: If the client doesn't exist.
            InvalidScheduleError: On bad weekday indices or frequency.
            CurrencyMismatchError: If the rate is not in the client's currency.
        """
        client = self._get_client(client_id)
        days = validate_days_of_week(normal_days_of_week, "normal_days_of_week")
        validate_frequency(normal_frequency_per_week, "normal_frequency_per_week")

        facility = FacilityProfileModel(
            client_id=client.id,
            location_id=location_id,
            location_name=location_name,
            category=category,
            default_monthly_rate=self._rate_amount(
                default_monthly_rate, client.currency, "create_facility",
            ),
            rate_type=RateType(rate_type).value,
            tax_behavior=TaxBehavior(tax_behavior).value,
            status=FacilityStatus(status).value,
            go_live_date=go_live_date,
            normal_days_of_week=sorted(days),
            normal_frequency_per_week=normal_frequency_per_week,
            scope_of_work_notes=scope_of_work_notes,
            seasonal_rules_enabled=seasonal_rules_enabled,
            sort_order=sort_order,
            created_by_id=actor_id,
        )
        self.session.add(facility)
        self.session.flush()

        self._record(
            ChangeEntityType.FACILITY_PROFILE, facility.id, client.id,
            ChangeAction.CREATE, actor_id,
            new_values=_snapshot(facility, _FACILITY_FIELDS),
        )
        self.session.flush()

        logger.info("facility_created", extra={
            "client_id": str(client.id),
            "facility_id": str(facility.id),
            "location_name": location_name,
        })
        return facility_to_dto(facility, client.currency)

    def update_facility(
        self,
        facility_profile_id: UUID | str,
        actor_id: UUID,
        location_name: str | None = None,
        category: str | None = None,
        default_monthly_rate: Money | None = None,
        rate_type: RateType | None = None,
        tax_behavior: TaxBehavior | None = None,
        normal_days_of_week: Iterable[int] | None = None,
        normal_frequency_per_week: int | None = None,
        go_live_date: date | None = None,
        scope_of_work_notes: str | None = None,
        seasonal_rules_enabled: bool | None = None,
        sort_order: int | None = None,
    ) -> FacilityProfile:
        """
        Update facility profile details.

        Arguments left as None are unchanged.  Status is changed only
        through ``set_facility_status``.

        Raises:
            FacilityNotFoundError: If the facility doesn't exist.
            InvalidScheduleError: On bad weekday indices or frequency.
        """
        facility = self._get_facility(facility_profile_id)
        currency = facility.client.currency
        before = _snapshot(facility, _FACILITY_FIELDS)

        # Validate everything before touching the row.
        rate_amount = (
            self._rate_amount(default_monthly_rate, currency, "update_facility")
            if default_monthly_rate is not None
            else None
        )
        rate_type_value = RateType(rate_type).value if rate_type is not None else None
        tax_value = TaxBehavior(tax_behavior).value if tax_behavior is not None else None
        days = (
            sorted(validate_days_of_week(normal_days_of_week, "normal_days_of_week"))
            if normal_days_of_week is not None
            else None
        )
        if normal_frequency_per_week is not None:
            validate_frequency(normal_frequency_per_week, "normal_frequency_per_week")

        if location_name is not None:
            facility.location_name = location_name
        if category is not None:
            facility.category = category
        if rate_amount is not None:
            facility.default_monthly_rate = rate_amount
        if rate_type_value is not None:
            facility.rate_type = rate_type_value
        if tax_value is not None:
            facility.tax_behavior = tax_value
        if days is not None:
            facility.normal_days_of_week = days
        if normal_frequency_per_week is not None:
            facility.normal_frequency_per_week = normal_frequency_per_week
        if go_live_date is not None:
            facility.go_live_date = go_live_date
        if scope_of_work_notes is not None:
            facility.scope_of_work_notes = scope_of_work_notes
        if seasonal_rules_enabled is not None:
            facility.seasonal_rules_enabled = seasonal_rules_enabled
        if sort_order is not None:
            facility.sort_order = sort_order

        after = _snapshot(facility, _FACILITY_FIELDS)
        changed = sorted(name for name in after if after[name] != before[name])
        if changed:
            facility.updated_by_id = actor_id
            self._record(
                ChangeEntityType.FACILITY_PROFILE, facility.id, facility.client_id,
                ChangeAction.UPDATE, actor_id,
                old_values={name: before[name] for name in changed},
                new_values={name: after[name] for name in changed},
            )
        self.session.flush()

        logger.info("facility_updated", extra={
            "facility_id": str(facility.id),
            "changed_fields": changed,
        })
        return facility_to_dto(facility, currency)

    def set_facility_status(
        self,
        facility_profile_id: UUID | str,
        status: FacilityStatus,
        actor_id: UUID,
    ) -> FacilityProfile:
        """
        Permanent status toggle.  Affects every month without an override
        status; terminal statuses win over overrides too.

        Raises:
            FacilityNotFoundError: If the facility doesn't exist.
        """
        facility = self._get_facility(facility_profile_id)
        new_status = FacilityStatus(status)
        old_status = facility.status

        if old_status != new_status.value:
            facility.status = new_status.value
            facility.updated_by_id = actor_id
            self._record(
                ChangeEntityType.FACILITY_PROFILE, facility.id, facility.client_id,
                ChangeAction.STATUS_CHANGE, actor_id,
                old_values={"status": old_status},
                new_values={"status": new_status.value},
            )
            self.session.flush()
            logger.info("facility_status_changed", extra={
                "facility_id": str(facility.id),
                "old_status": old_status,
                "new_status": new_status.value,
            })

        return facility_to_dto(facility, facility.client.currency)

    # ------------------------------------------------------------------
    # Monthly overrides
    # ------------------------------------------------------------------

    def _apply_override_fields(
        self,
        override: MonthlyOverrideModel,
        facility: FacilityProfileModel,
        override_status: OverrideStatus | None,
        override_rate: Money | None,
        override_frequency: int | None,
        override_days_of_week: Iterable[int] | None,
        pause_start_day: int | None,
        pause_end_day: int | None,
        override_notes: str | None,
    ) -> None:
        PauseWindow.from_days(pause_start_day, pause_end_day, str(facility.id))
        days = validate_days_of_week(override_days_of_week, "override_days_of_week")
        if override_frequency is not None:
            validate_frequency(override_frequency, "override_frequency")
        status_value = (
            OverrideStatus(override_status).value if override_status is not None else None
        )
        rate_amount = (
            self._rate_amount(override_rate, facility.client.currency, "override")
            if override_rate is not None
            else None
        )

        override.override_status = status_value
        override.override_rate = rate_amount
        override.override_frequency = override_frequency
        override.override_days_of_week = sorted(days)
        override.pause_start_day = pause_start_day
        override.pause_end_day = pause_end_day
        override.override_notes = override_notes

    def create_override(
        self,
        facility_profile_id: UUID | str,
        year: int,
        month: int,
        actor_id: UUID,
        override_status: OverrideStatus | None = None,
        override_rate: Money | None = None,
        override_frequency: int | None = None,
        override_days_of_week: Iterable[int] | None = None,
        pause_start_day: int | None = None,
        pause_end_day: int | None = None,
        override_notes: str | None = None,
    ) -> MonthlyOverride:
        """
        Create the override of one facility for one month.

        Fields left as None (or an empty day list) inherit from the profile.

        Raises:
            FacilityNotFoundError: If the facility doesn't exist.
            DuplicateOverrideError: If the month already has an override.
            InvalidPauseWindowError: On a half-open or inverted pause range.
            InvalidBillingPeriodError: If ``month`` is outside 1-12.
        """
        BillingPeriod(year, month)
        facility = self._get_facility(facility_profile_id)

        if self._find_override(facility.id, year, month) is not None:
            raise DuplicateOverrideError(str(facility.id), year, month)

        override = MonthlyOverrideModel(
            facility_profile_id=facility.id,
            year=year,
            month=month,
            created_by_id=actor_id,
        )
        self._apply_override_fields(
            override, facility, override_status, override_rate, override_frequency,
            override_days_of_week, pause_start_day, pause_end_day, override_notes,
        )

        try:
            with self.session.begin_nested():
                self.session.add(override)
                self.session.flush()
        except IntegrityError as exc:
            logger.warning("concurrent_override_insert_conflict", extra={
                "facility_id": str(facility.id),
                "billing_period": f"{year}-{month:02d}",
            })
            raise DuplicateOverrideError(str(facility.id), year, month) from exc

        self._record(
            ChangeEntityType.MONTHLY_OVERRIDE, override.id, facility.client_id,
            ChangeAction.CREATE, actor_id,
            new_values=_snapshot(override, _OVERRIDE_FIELDS),
        )
        self.session.flush()

        logger.info("override_created", extra={
            "facility_id": str(facility.id),
            "billing_period": f"{year}-{month:02d}",
            "override_id": str(override.id),
        })
        return override_to_dto(override, facility.client.currency)

    def update_override(
        self,
        override_id: UUID | str,
        actor_id: UUID,
        override_status: OverrideStatus | None = None,
        override_rate: Money | None = None,
        override_frequency: int | None = None,
        override_days_of_week: Iterable[int] | None = None,
        pause_start_day: int | None = None,
        pause_end_day: int | None = None,
        override_notes: str | None = None,
    ) -> MonthlyOverride:
        """
        Replace the content of an existing override.

        Every field is written; an argument left as None reverts that
        field to "inherit".

        Raises:
            OverrideNotFoundError: If the override doesn't exist.
            InvalidPauseWindowError: On a half-open or inverted pause range.
        """
        override = self._get_override(override_id)
        facility = self._get_facility(override.facility_profile_id)
        before = _snapshot(override, _OVERRIDE_FIELDS)

        self._apply_override_fields(
            override, facility, override_status, override_rate, override_frequency,
            override_days_of_week, pause_start_day, pause_end_day, override_notes,
        )
        override.updated_by_id = actor_id

        after = _snapshot(override, _OVERRIDE_FIELDS)
        changed = sorted(name for name in after if after[name] != before[name])
        if changed:
            self._record(
                ChangeEntityType.MONTHLY_OVERRIDE, override.id, facility.client_id,
                ChangeAction.UPDATE, actor_id,
                old_values={name: before[name] for name in changed},
                new_values={name: after[name] for name in changed},
            )
        self.session.flush()

        logger.info("override_updated", extra={
            "override_id": str(override.id),
            "changed_fields": changed,
        })
        return override_to_dto(override, facility.client.currency)

    def delete_override(self, override_id: UUID | str, actor_id: UUID) -> None:
        """
        Remove an override; the month falls back to the profile.

        Raises:
            OverrideNotFoundError: If the override doesn't exist.
        """
        override = self._get_override(override_id)
        facility = self._get_facility(override.facility_profile_id)

        self._record(
            ChangeEntityType.MONTHLY_OVERRIDE, override.id, facility.client_id,
            ChangeAction.DELETE, actor_id,
            old_values=_snapshot(override, _OVERRIDE_FIELDS),
        )
        self.session.delete(override)
        self.session.flush()

        logger.info("override_deleted", extra={"override_id": str(override_id)})

    # ------------------------------------------------------------------
    # Seasonal rules
    # ------------------------------------------------------------------

    def add_seasonal_rule(
        self,
        facility_profile_id: UUID | str,
        actor_id: UUID,
        active_months: Iterable[int] = (),
        paused_months: Iterable[int] = (),
        effective_year_start: int | None = None,
        effective_year_end: int | None = None,
        is_active: bool = True,
    ) -> SeasonalRule:
        """
        Attach a seasonal rule.  Rules only take effect while the profile
        has ``seasonal_rules_enabled``.

        Raises:
            FacilityNotFoundError: If the facility doesn't exist.
            ValueError: On months outside 1-12 or an inverted year range.
        """
        facility = self._get_facility(facility_profile_id)
        rule = SeasonalRule(
            active_months=frozenset(active_months),
            paused_months=frozenset(paused_months),
            effective_year_start=effective_year_start,
            effective_year_end=effective_year_end,
            is_active=is_active,
        )
        if (
            effective_year_start is not None
            and effective_year_end is not None
            and effective_year_start > effective_year_end
        ):
            raise ValueError(
                f"effective_year_start {effective_year_start} is after "
                f"effective_year_end {effective_year_end}"
            )

        model = SeasonalRuleModel(
            facility_profile_id=facility.id,
            active_months=sorted(rule.active_months),
            paused_months=sorted(rule.paused_months),
            effective_year_start=effective_year_start,
            effective_year_end=effective_year_end,
            is_active=is_active,
            created_by_id=actor_id,
        )
        facility.seasonal_rules.append(model)
        self.session.flush()

        self._record(
            ChangeEntityType.SEASONAL_RULE, model.id, facility.client_id,
            ChangeAction.CREATE, actor_id,
            new_values=_snapshot(model, (
                "active_months", "paused_months", "effective_year_start",
                "effective_year_end", "is_active",
            )),
        )
        self.session.flush()

        logger.info("seasonal_rule_added", extra={
            "facility_id": str(facility.id),
            "rule_id": str(model.id),
        })
        return seasonal_rule_to_dto(model)
