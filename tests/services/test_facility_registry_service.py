"""
Tests for the facility registry write path.

Covers:
- Client and facility creation with validation
- Profile edits and the permanent status toggle
- Monthly override lifecycle and uniqueness
- Seasonal rules
- Change log entries for every mutation
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from billing_kernel.domain.facility import (
    WEEKDAYS,
    FacilityStatus,
    OverrideStatus,
    TaxBehavior,
)
from billing_kernel.domain.values import Money
from billing_kernel.exceptions import (
    ClientNotFoundError,
    CurrencyMismatchError,
    DuplicateOverrideError,
    FacilityNotFoundError,
    InvalidBillingPeriodError,
    InvalidPauseWindowError,
    InvalidScheduleError,
    InvalidTaxModeError,
    OverrideNotFoundError,
)
from billing_kernel.models.change_log import ChangeAction, ChangeEntityType
from billing_kernel.services.facility_registry_service import FacilityRegistryService


@pytest.fixture
def client(registry, actor_id):
    return registry.create_client(
        "Harbor Dental Group", actor_id,
        tax_rate=Decimal("0.0825"),
        default_tax_mode=TaxBehavior.PRE_TAX,
    )


@pytest.fixture
def facility(registry, client, actor_id):
    return registry.create_facility(
        client.id, "LOC-001", "Main Office",
        default_monthly_rate=Money.of("300.00"),
        normal_days_of_week=WEEKDAYS,
        normal_frequency_per_week=5,
        actor_id=actor_id,
    )


class TestCreateClient:

    def test_returns_dto(self, client):
        assert client.name == "Harbor Dental Group"
        assert client.tax_rate == Decimal("0.0825")
        assert client.default_tax_mode is TaxBehavior.PRE_TAX
        assert client.currency == "USD"
        assert not client.tax_exempt

    def test_logs_creation(self, client, selector, actor_id):
        entries = selector.change_log(client.id)

        assert len(entries) == 1
        assert entries[0].entity_type is ChangeEntityType.CLIENT
        assert entries[0].action is ChangeAction.CREATE
        assert entries[0].actor_id == str(actor_id)
        assert entries[0].new_values["name"] == "Harbor Dental Group"

    def test_inheriting_default_rejected(self, registry, actor_id):
        with pytest.raises(InvalidTaxModeError):
            registry.create_client("X", actor_id, default_tax_mode=TaxBehavior.INHERIT_CLIENT)

    def test_float_rate_rejected(self, registry, actor_id):
        with pytest.raises(TypeError):
            registry.create_client("X", actor_id, tax_rate=0.08)

    def test_negative_rate_rejected(self, registry, actor_id):
        with pytest.raises(ValueError):
            registry.create_client("X", actor_id, tax_rate=Decimal("-0.01"))

    def test_currency_defaults_to_registry_setting(self, session, clock, actor_id):
        registry = FacilityRegistryService(session, clock, default_currency="eur")

        assert registry.create_client("Lisbon Clinic", actor_id).currency == "EUR"
        assert registry.create_client("Austin Clinic", actor_id, currency="USD").currency == "USD"


class TestCreateFacility:

    def test_returns_dto(self, facility, client):
        assert facility.client_id == client.id
        assert facility.location_name == "Main Office"
        assert facility.default_monthly_rate == Money.of("300.00")
        assert facility.normal_days_of_week == WEEKDAYS
        assert facility.status is FacilityStatus.ACTIVE
        assert facility.tax_behavior is TaxBehavior.INHERIT_CLIENT

    def test_unknown_client(self, registry, actor_id):
        with pytest.raises(ClientNotFoundError):
            registry.create_facility(
                uuid4(), "LOC", "Nowhere", Money.of("1.00"), WEEKDAYS, 5, actor_id,
            )

    def test_currency_mismatch(self, registry, client, actor_id):
        with pytest.raises(CurrencyMismatchError):
            registry.create_facility(
                client.id, "LOC-2", "Lisbon", Money.of("1.00", "EUR"), WEEKDAYS, 5, actor_id,
            )

    def test_bad_weekday(self, registry, client, actor_id):
        with pytest.raises(InvalidScheduleError):
            registry.create_facility(
                client.id, "LOC-2", "Annex", Money.of("1.00"), [1, 9], 2, actor_id,
            )

    def test_bad_frequency(self, registry, client, actor_id):
        with pytest.raises(InvalidScheduleError):
            registry.create_facility(
                client.id, "LOC-2", "Annex", Money.of("1.00"), [1], 8, actor_id,
            )

    def test_negative_rate(self, registry, client, actor_id):
        with pytest.raises(ValueError):
            registry.create_facility(
                client.id, "LOC-2", "Annex", Money.of("-1.00"), [1], 1, actor_id,
            )


class TestUpdateFacility:

    def test_partial_update(self, registry, facility, selector, client, clock, actor_id):
        clock.advance(60)
        updated = registry.update_facility(
            facility.id, actor_id, default_monthly_rate=Money.of("350.00"),
        )

        assert updated.default_monthly_rate == Money.of("350.00")
        assert updated.location_name == "Main Office"

        latest = selector.change_log(client.id)[0]
        assert latest.action is ChangeAction.UPDATE
        assert latest.old_values == {"default_monthly_rate": "300.00"}
        assert latest.new_values == {"default_monthly_rate": "350.00"}

    def test_no_change_writes_no_log(self, registry, facility, selector, client, actor_id):
        before = len(selector.change_log(client.id))
        registry.update_facility(facility.id, actor_id, location_name="Main Office")

        assert len(selector.change_log(client.id)) == before

    def test_unknown_facility(self, registry, actor_id):
        with pytest.raises(FacilityNotFoundError):
            registry.update_facility(uuid4(), actor_id, location_name="x")

    def test_rejected_update_leaves_row_untouched(self, registry, facility, selector, session, client, actor_id):
        before = len(selector.change_log(client.id))
        with pytest.raises(InvalidScheduleError):
            registry.update_facility(
                facility.id, actor_id,
                location_name="Renamed",
                default_monthly_rate=Money.of("350.00"),
                normal_frequency_per_week=9,
            )
        session.flush()

        reloaded = selector.get_facility(facility.id)
        assert reloaded.location_name == "Main Office"
        assert reloaded.default_monthly_rate == Money.of("300.00")
        assert len(selector.change_log(client.id)) == before


class TestSetFacilityStatus:

    def test_status_change_logged(self, registry, facility, selector, client, clock, actor_id):
        clock.advance(60)
        closed = registry.set_facility_status(facility.id, FacilityStatus.CLOSED, actor_id)

        assert closed.status is FacilityStatus.CLOSED
        latest = selector.change_log(client.id)[0]
        assert latest.action is ChangeAction.STATUS_CHANGE
        assert latest.old_values == {"status": "active"}
        assert latest.new_values == {"status": "closed"}

    def test_same_status_is_noop(self, registry, facility, selector, client, actor_id):
        before = len(selector.change_log(client.id))
        registry.set_facility_status(facility.id, FacilityStatus.ACTIVE, actor_id)

        assert len(selector.change_log(client.id)) == before


class TestMonthlyOverrides:

    def test_create_pause_override(self, registry, facility, selector, client, actor_id):
        override = registry.create_override(
            facility.id, 2027, 3, actor_id,
            pause_start_day=16, pause_end_day=27, override_notes="spring break",
        )

        assert override.facility_profile_id == facility.id
        assert (override.pause_start_day, override.pause_end_day) == (16, 27)
        assert override.override_rate is None
        assert override.override_days_of_week == frozenset()

        by_facility = selector.overrides_for_month(client.id, 2027, 3)
        assert by_facility[facility.id].override_notes == "spring break"
        assert selector.overrides_for_month(client.id, 2027, 4) == {}

    def test_duplicate_month_rejected(self, registry, facility, actor_id):
        registry.create_override(facility.id, 2027, 3, actor_id, override_rate=Money.of("150.00"))

        with pytest.raises(DuplicateOverrideError) as exc_info:
            registry.create_override(facility.id, 2027, 3, actor_id)

        assert exc_info.value.code == "DUPLICATE_OVERRIDE"
        assert (exc_info.value.year, exc_info.value.month) == (2027, 3)

    def test_half_open_pause_rejected(self, registry, facility, actor_id):
        with pytest.raises(InvalidPauseWindowError):
            registry.create_override(facility.id, 2027, 3, actor_id, pause_start_day=16)

    def test_inverted_pause_rejected(self, registry, facility, actor_id):
        with pytest.raises(InvalidPauseWindowError):
            registry.create_override(
                facility.id, 2027, 3, actor_id, pause_start_day=27, pause_end_day=16,
            )

    def test_invalid_month_rejected(self, registry, facility, actor_id):
        with pytest.raises(InvalidBillingPeriodError):
            registry.create_override(facility.id, 2027, 13, actor_id)

    def test_update_replaces_every_field(self, registry, facility, actor_id):
        created = registry.create_override(
            facility.id, 2027, 3, actor_id,
            override_rate=Money.of("150.00"), override_notes="reduced",
        )
        updated = registry.update_override(
            created.id, actor_id, override_status=OverrideStatus.PAUSED,
        )

        assert updated.override_status is OverrideStatus.PAUSED
        assert updated.override_rate is None
        assert updated.override_notes is None

    def test_rejected_update_leaves_override_untouched(self, registry, facility, selector, session, client, actor_id):
        created = registry.create_override(facility.id, 2027, 4, actor_id)
        before = len(selector.change_log(client.id))

        with pytest.raises(ValueError):
            registry.update_override(
                created.id, actor_id,
                override_status=OverrideStatus.PAUSED,
                override_rate=Money.of("-5.00"),
            )
        with pytest.raises(CurrencyMismatchError):
            registry.update_override(
                created.id, actor_id,
                override_status=OverrideStatus.PAUSED,
                override_rate=Money.of("5.00", "EUR"),
            )
        session.flush()

        stored = selector.overrides_for_month(client.id, 2027, 4)[facility.id]
        assert stored.override_status is None
        assert stored.override_rate is None
        assert len(selector.change_log(client.id)) == before

    def test_update_logs_changed_fields(self, registry, facility, selector, client, clock, actor_id):
        created = registry.create_override(facility.id, 2027, 3, actor_id)
        clock.advance(60)
        registry.update_override(created.id, actor_id, override_frequency=3)

        latest = selector.change_log(client.id)[0]
        assert latest.entity_type is ChangeEntityType.MONTHLY_OVERRIDE
        assert latest.old_values == {"override_frequency": None}
        assert latest.new_values == {"override_frequency": 3}

    def test_delete(self, registry, facility, selector, client, clock, actor_id):
        created = registry.create_override(facility.id, 2027, 3, actor_id)
        clock.advance(60)
        registry.delete_override(created.id, actor_id)

        assert selector.overrides_for_month(client.id, 2027, 3) == {}
        assert selector.change_log(client.id)[0].action is ChangeAction.DELETE

    def test_delete_unknown(self, registry, actor_id):
        with pytest.raises(OverrideNotFoundError):
            registry.delete_override(uuid4(), actor_id)

    def test_list_overrides_ordered(self, registry, facility, selector, actor_id):
        registry.create_override(facility.id, 2027, 4, actor_id)
        registry.create_override(facility.id, 2026, 12, actor_id)
        registry.create_override(facility.id, 2027, 3, actor_id)

        periods = [(o.year, o.month) for o in selector.list_overrides(facility.id)]
        assert periods == [(2026, 12), (2027, 3), (2027, 4)]


class TestSeasonalRules:

    def test_add_rule(self, registry, facility, selector, actor_id):
        rule = registry.add_seasonal_rule(facility.id, actor_id, active_months=[5, 6, 7, 8, 9])
        registry.update_facility(facility.id, actor_id, seasonal_rules_enabled=True)

        loaded = selector.get_facility(facility.id)
        assert loaded.seasonal_rules_enabled
        assert loaded.seasonal_rules == (rule,)
        assert rule.pauses(2027, 3)

    def test_inverted_year_range(self, registry, facility, actor_id):
        with pytest.raises(ValueError):
            registry.add_seasonal_rule(
                facility.id, actor_id, paused_months=[1],
                effective_year_start=2028, effective_year_end=2027,
            )

    def test_bad_month(self, registry, facility, actor_id):
        with pytest.raises(ValueError):
            registry.add_seasonal_rule(facility.id, actor_id, paused_months=[0])


class TestSelectorReads:

    def test_facilities_ordered(self, registry, client, actor_id, selector):
        for location_id, name, order in (("L3", "C", 2), ("L1", "A", 0), ("L2", "B", 1)):
            registry.create_facility(
                client.id, location_id, name, Money.of("10.00"), [1], 1, actor_id,
                sort_order=order,
            )

        assert [f.location_name for f in selector.list_facilities(client.id)] == ["A", "B", "C"]

    def test_unknown_client(self, selector):
        with pytest.raises(ClientNotFoundError):
            selector.get_client(uuid4())

    def test_change_log_newest_first_with_limit(self, registry, facility, selector, client, clock, actor_id):
        for month in (3, 4, 5):
            clock.advance(60)
            registry.create_override(facility.id, 2027, month, actor_id)

        entries = selector.change_log(client.id, limit=2)
        assert len(entries) == 2
        assert entries[0].new_values["month"] == 5
        assert entries[1].new_values["month"] == 4

    def test_change_log_limit_validated(self, selector, client):
        with pytest.raises(ValueError):
            selector.change_log(client.id, limit=0)
