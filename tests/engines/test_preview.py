"""
Tests for billing preview assembly.

Covers:
- Mid-month pause proration (March 2027)
- Inclusion rule and excluded-line amounts
- Totals across mixed tax modes
- Explanation buckets, override summaries and delta narrative
- Line ordering and caller mistakes
"""

from decimal import Decimal

import pytest

from billing_engines.preview import assemble_preview, describe_override
from billing_engines.resolver import resolve_facility
from billing_kernel.domain.facility import (
    FacilityStatus,
    OverrideStatus,
    SeasonalRule,
    TaxBehavior,
)
from billing_kernel.domain.values import Money
from tests.factories import make_client, make_override, make_profile

MARCH_PAUSE = {"pause_start_day": 16, "pause_end_day": 27}


def march_preview(client=None, **override_kwargs):
    override = make_override(**(override_kwargs or MARCH_PAUSE))
    return assemble_preview(
        client or make_client(), 2027, 3, [make_profile()], {"fac-1": override},
    )


class TestMidMonthPause:

    def test_prorated_line(self):
        preview = march_preview()
        line = preview.line_item("fac-1")

        assert line.scheduled_days == 23
        assert line.active_days == 14
        assert line.effective_rate == Money.of("182.61")
        assert line.base_rate == Money.of("300.00")
        assert line.is_pro_rated
        assert line.is_overridden
        assert line.included_in_total

    def test_totals_without_tax(self):
        preview = march_preview()

        assert preview.subtotal == Money.of("182.61")
        assert preview.tax_amount.is_zero
        assert preview.total == Money.of("182.61")
        assert preview.active_facility_count == 1

    def test_totals_with_pre_tax(self):
        preview = march_preview(client=make_client(tax_rate="0.0825"))

        assert preview.tax_rate == Decimal("0.0825")
        assert preview.tax_amount == Money.of("15.07")
        assert preview.total == Money.of("197.68")

    def test_explanation_lists_pause(self):
        preview = march_preview()

        assert preview.explanation.active_facilities == ("Location fac-1",)
        assert preview.explanation.overrides == ("Location fac-1: paused 3/16-3/27",)
        assert preview.explanation.delta_reason is None


class TestExcludedLines:

    def test_paused_override_excludes_line(self):
        preview = march_preview(override_status=OverrideStatus.PAUSED)
        line = preview.line_item("fac-1")

        assert line.effective_status is FacilityStatus.PAUSED
        assert not line.included_in_total
        assert line.effective_rate == Money.of("300.00")
        assert line.line_item_tax.is_zero
        assert line.line_item_total.is_zero
        assert preview.total.is_zero
        assert preview.explanation.paused_facilities == ("Location fac-1",)

    def test_closed_and_pending_profiles(self):
        profiles = [
            make_profile("fac-1", status=FacilityStatus.CLOSED, location_name="Old Site"),
            make_profile("fac-2", status=FacilityStatus.PENDING_APPROVAL, location_name="New Site"),
        ]
        preview = assemble_preview(make_client(), 2027, 3, profiles, {})

        assert preview.total.is_zero
        assert preview.active_facility_count == 0
        assert preview.total_facility_count == 2
        assert preview.explanation.closed_facilities == ("Old Site",)
        assert preview.explanation.pending_approval == ("New Site",)

    def test_seasonally_paused_profile(self):
        profile = make_profile(
            seasonal_rules_enabled=True,
            seasonal_rules=(SeasonalRule(active_months=frozenset({6, 7, 8})),),
        )
        preview = assemble_preview(make_client(), 2027, 3, [profile], {})
        line = preview.line_item("fac-1")

        assert line.is_seasonally_paused
        assert not line.included_in_total
        assert preview.explanation.seasonally_paused == ("Location fac-1",)

    def test_active_profile_without_days(self):
        profile = make_profile(days=(), frequency=0)
        preview = assemble_preview(make_client(), 2027, 3, [profile], {})
        line = preview.line_item("fac-1")

        assert line.effective_status is FacilityStatus.ACTIVE
        assert line.scheduled_days == 0
        assert not line.included_in_total
        assert line.line_item_total.is_zero

    def test_unscheduled_active_profile_is_not_listed_as_active(self):
        preview = assemble_preview(make_client(), 2027, 3, [make_profile(days=())], {})
        explanation = preview.explanation

        assert preview.active_facility_count == 0
        assert explanation.active_facilities == ()
        assert explanation.unscheduled_facilities == ("Location fac-1",)
        assert explanation.to_dict()["unscheduled_facilities"] == ["Location fac-1"]

    def test_zero_frequency_override_without_pause_still_bills(self):
        preview = march_preview(override_frequency=0)

        assert preview.total == Money.of("300.00")


class TestMixedTaxModes:

    def test_tax_included_not_double_counted(self):
        client = make_client(tax_rate="0.0825")
        profiles = [
            make_profile("fac-1", rate="100.00", tax_behavior=TaxBehavior.PRE_TAX),
            make_profile("fac-2", rate="108.25", tax_behavior=TaxBehavior.TAX_INCLUDED),
        ]
        preview = assemble_preview(client, 2027, 3, profiles, {})

        assert preview.subtotal == Money.of("208.25")
        assert preview.tax_amount == Money.of("16.50")
        assert preview.total == Money.of("216.50")

    def test_inherit_uses_fallback_when_client_has_no_default(self):
        client = make_client(tax_rate="0.0825", default_tax_mode=None)
        preview = assemble_preview(
            client, 2027, 3, [make_profile()], {},
            default_tax_mode=TaxBehavior.TAX_INCLUDED,
        )
        line = preview.line_item("fac-1")

        assert line.tax_behavior is TaxBehavior.TAX_INCLUDED
        assert line.line_item_total == Money.of("300.00")

    def test_tax_exempt_client(self):
        client = make_client(tax_rate="0.0825", tax_exempt=True)
        preview = assemble_preview(client, 2027, 3, [make_profile()], {})

        assert preview.tax_rate == Decimal("0")
        assert preview.tax_amount.is_zero


class TestPreviousMonth:

    def setup_method(self):
        self.client = make_client()
        self.march = march_preview(client=self.client)

    def test_decrease_narrative(self):
        override = make_override(month=4, override_status=OverrideStatus.PAUSED)
        april = assemble_preview(
            self.client, 2027, 4, [make_profile()], {"fac-1": override}, previous=self.march,
        )

        assert april.previous_month_total == Money.of("182.61")
        assert april.explanation.delta_amount == Money.of("-182.61")
        assert april.explanation.delta_reason == "$182.61 decrease from March"

    def test_increase_narrative(self):
        april = assemble_preview(self.client, 2027, 4, [make_profile()], {}, previous=self.march)

        assert april.explanation.delta_reason == "$117.39 increase from March"

    def test_no_change_has_no_reason(self):
        feb = assemble_preview(self.client, 2027, 2, [make_profile()], {})
        march = assemble_preview(self.client, 2027, 3, [make_profile()], {}, previous=feb)

        assert march.explanation.delta_amount.is_zero
        assert march.explanation.delta_reason is None

    def test_previous_must_be_prior_month(self):
        with pytest.raises(ValueError, match="expected 2027-04"):
            assemble_preview(self.client, 2027, 5, [make_profile()], {}, previous=self.march)

    def test_previous_must_be_same_client(self):
        other = make_client(id="client-2")
        with pytest.raises(ValueError, match="belongs to client"):
            assemble_preview(other, 2027, 4, [], {}, previous=self.march)


class TestAssembly:

    def test_line_order(self):
        profiles = [
            make_profile("fac-a", sort_order=1),
            make_profile("fac-c", sort_order=0),
            make_profile("fac-b", sort_order=0),
        ]
        preview = assemble_preview(make_client(), 2027, 3, profiles, {})

        assert [i.facility_profile_id for i in preview.line_items] == ["fac-b", "fac-c", "fac-a"]

    def test_foreign_profile_rejected(self):
        with pytest.raises(ValueError, match="belongs to client"):
            assemble_preview(make_client(), 2027, 3, [make_profile(client_id="other")], {})

    def test_empty_client(self):
        preview = assemble_preview(make_client(), 2027, 3, [], {})

        assert preview.total == Money.zero()
        assert preview.line_items == ()

    def test_to_dict(self):
        data = march_preview().to_dict()

        assert data["month_label"] == "March"
        assert data["total"] == "182.61"
        assert data["line_items"][0]["pause_window"] == [16, 27]
        assert data["line_items"][0]["effective_days_of_week"] == [1, 2, 3, 4, 5]

    def test_emits_engine_traces(self, captured_logs):
        march_preview()

        traces = [r for r in captured_logs() if r["message"] == "BILLING_ENGINE_TRACE"]
        engines = {r["engine_name"] for r in traces}
        assert {"billing_preview", "override_resolver", "proration"} <= engines


class TestDescribeOverride:

    def test_no_override(self):
        assert describe_override(resolve_facility(make_profile(), None, 2027, 3)) is None

    def test_ignored_zero_rate(self):
        config = resolve_facility(make_profile(), make_override(rate="0"), 2027, 3)

        assert describe_override(config) is None

    def test_full_summary(self):
        override = make_override(
            rate="150.00",
            override_frequency=2,
            override_days_of_week=frozenset({1, 3}),
            override_notes="reduced scope",
        )
        config = resolve_facility(make_profile(), override, 2027, 3)

        assert describe_override(config) == (
            "Location fac-1: rate → $150.00, frequency → 2x/week, days → Mon, Wed (reduced scope)"
        )

    def test_status_summary(self):
        override = make_override(override_status=OverrideStatus.PAUSED)
        config = resolve_facility(make_profile(), override, 2027, 3)

        assert describe_override(config) == "Location fac-1: status → paused"
