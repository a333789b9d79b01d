"""Tests for facility DTOs, pause windows and seasonal rules."""

from decimal import Decimal

import pytest

from billing_kernel.domain.facility import (
    ClientBillingProfile,
    FacilityStatus,
    OverrideStatus,
    PauseWindow,
    SeasonalRule,
    TaxBehavior,
    validate_days_of_week,
    validate_frequency,
)
from billing_kernel.exceptions import InvalidPauseWindowError, InvalidScheduleError
from tests.factories import make_override, make_profile


class TestPauseWindow:

    def test_both_absent_is_none(self):
        assert PauseWindow.from_days(None, None) is None

    def test_valid_window(self):
        window = PauseWindow.from_days(16, 27)
        assert window == PauseWindow(16, 27)
        assert window.contains(16)
        assert window.contains(27)
        assert not window.contains(28)

    def test_single_day_window(self):
        assert PauseWindow.from_days(5, 5).contains(5)

    def test_half_open_rejected(self):
        with pytest.raises(InvalidPauseWindowError) as exc_info:
            PauseWindow.from_days(16, None, facility_profile_id="fac-1")
        assert exc_info.value.code == "INVALID_PAUSE_WINDOW"
        assert exc_info.value.facility_profile_id == "fac-1"

    def test_inverted_rejected(self):
        with pytest.raises(InvalidPauseWindowError):
            PauseWindow.from_days(20, 10)

    def test_out_of_range_rejected(self):
        with pytest.raises(InvalidPauseWindowError):
            PauseWindow(0, 10)
        with pytest.raises(InvalidPauseWindowError):
            PauseWindow(1, 32)


class TestScheduleValidation:

    def test_days_normalized_to_frozenset(self):
        assert validate_days_of_week([1, 1, 3]) == frozenset({1, 3})

    def test_bad_weekday(self):
        with pytest.raises(InvalidScheduleError) as exc_info:
            validate_days_of_week([7])
        assert exc_info.value.code == "INVALID_SCHEDULE"

    def test_bool_is_not_a_weekday(self):
        with pytest.raises(InvalidScheduleError):
            validate_days_of_week([True])

    def test_frequency_range(self):
        assert validate_frequency(0) == 0
        assert validate_frequency(7) == 7
        with pytest.raises(InvalidScheduleError):
            validate_frequency(8)


class TestStatuses:

    def test_terminal_statuses(self):
        assert FacilityStatus.CLOSED.is_terminal
        assert FacilityStatus.PENDING_APPROVAL.is_terminal
        assert not FacilityStatus.PAUSED.is_terminal

    def test_override_status_mapping(self):
        assert OverrideStatus.ACTIVE.to_facility_status() is FacilityStatus.ACTIVE
        assert OverrideStatus.PAUSED.to_facility_status() is FacilityStatus.PAUSED
        assert OverrideStatus.CANCELLED.to_facility_status() is FacilityStatus.CLOSED


class TestSeasonalRule:

    def test_active_months_whitelist(self):
        rule = SeasonalRule(active_months=frozenset({5, 6, 7, 8, 9}))
        assert rule.pauses(2027, 3)
        assert not rule.pauses(2027, 6)

    def test_paused_months_blacklist(self):
        rule = SeasonalRule(paused_months=frozenset({12, 1}))
        assert rule.pauses(2027, 1)
        assert not rule.pauses(2027, 2)

    def test_year_bounds(self):
        rule = SeasonalRule(
            paused_months=frozenset({3}),
            effective_year_start=2027,
            effective_year_end=2027,
        )
        assert rule.pauses(2027, 3)
        assert not rule.pauses(2026, 3)
        assert not rule.pauses(2028, 3)

    def test_inactive_rule_never_pauses(self):
        rule = SeasonalRule(paused_months=frozenset({3}), is_active=False)
        assert not rule.pauses(2027, 3)

    def test_bad_month(self):
        with pytest.raises(ValueError):
            SeasonalRule(active_months=frozenset({13}))


class TestProfiles:

    def test_profile_coerces_enums(self):
        profile = make_profile(status="paused", tax_behavior="pre-tax")
        assert profile.status is FacilityStatus.PAUSED
        assert profile.tax_behavior is TaxBehavior.PRE_TAX

    def test_override_does_not_validate_pause_days(self):
        override = make_override(pause_start_day=20, pause_end_day=None)
        assert override.has_pause_days

    def test_client_exempt_rate(self):
        client = ClientBillingProfile(
            id="c", name="Exempt Co", tax_rate=Decimal("0.07"), tax_exempt=True,
        )
        assert client.effective_tax_rate == Decimal("0")

    def test_client_rejects_negative_rate(self):
        with pytest.raises(ValueError):
            ClientBillingProfile(id="c", name="n", tax_rate=Decimal("-0.01"))
