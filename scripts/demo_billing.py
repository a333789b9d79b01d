#!/usr/bin/env python3
"""
Recurring billing walkthrough using the REAL architecture.

Seeds one client with three facilities into a database (in-memory SQLite
by default), records a March pause window and an April pause override
through FacilityRegistryService, then prints the preview, the delta
report and the weekly schedule produced by BillingPreviewService.

Usage:
    python3 scripts/demo_billing.py                     # April 2027
    python3 scripts/demo_billing.py --year 2027 --month 3
    python3 scripts/demo_billing.py --json              # machine-readable
"""

import argparse
import json
import logging
import sys
from datetime import UTC, datetime
from decimal import Decimal
from pathlib import Path
from uuid import uuid4

# ---------------------------------------------------------------------------
# Project root on sys.path
# ---------------------------------------------------------------------------
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


def seed(session, clock, currency="USD"):
    """Create the demo client, facilities and overrides.  Returns client id."""
    from billing_kernel.domain.facility import OverrideStatus, TaxBehavior, WEEKDAYS
    from billing_kernel.domain.values import Money
    from billing_kernel.services.facility_registry_service import FacilityRegistryService

    actor = uuid4()
    registry = FacilityRegistryService(session, clock, default_currency=currency)

    client = registry.create_client(
        "Harbor Dental Group", actor,
        tax_rate=Decimal("0.0825"),
        default_tax_mode=TaxBehavior.PRE_TAX,
    )
    main_office = registry.create_facility(
        client.id, "LOC-001", "Main Office", Money.of("300.00", currency),
        WEEKDAYS, 5, actor, category="Office", sort_order=1,
    )
    registry.create_facility(
        client.id, "LOC-002", "Warehouse", Money.of("450.00", currency),
        {1, 3, 5}, 3, actor, category="Industrial", sort_order=2,
        tax_behavior=TaxBehavior.TAX_INCLUDED,
    )
    pool = registry.create_facility(
        client.id, "LOC-003", "Pool House", Money.of("120.00", currency),
        {6}, 1, actor, category="Seasonal", sort_order=3,
        seasonal_rules_enabled=True,
    )
    registry.add_seasonal_rule(pool.id, actor, active_months=range(5, 10))

    registry.create_override(
        main_office.id, 2027, 3, actor,
        pause_start_day=16, pause_end_day=27,
        override_notes="renovation",
    )
    registry.create_override(
        main_office.id, 2027, 4, actor,
        override_status=OverrideStatus.PAUSED,
        override_notes="closed for April",
    )
    session.commit()
    return client.id


def print_preview(preview):
    print(f"  {preview.client_name} -- {preview.month_label} {preview.year}")
    print()
    print(f"    {'Facility':<16} {'Status':<16} {'Rate':>10} {'Days':>7} {'Tax':>9} {'Total':>10}")
    for item in preview.line_items:
        days = f"{item.active_days}/{item.scheduled_days}"
        print(
            f"    {item.location_name:<16} {item.effective_status.value:<16} "
            f"{item.effective_rate.format():>10} {days:>7} "
            f"{item.line_item_tax.format():>9} {item.line_item_total.format():>10}"
        )
    print()
    print(f"    Subtotal {preview.subtotal.format()}  Tax {preview.tax_amount.format()}  "
          f"Total {preview.total.format()}")
    for text in preview.explanation.overrides:
        print(f"    override: {text}")
    if preview.explanation.delta_reason:
        print(f"    {preview.explanation.delta_reason}")
    print()


def print_delta(report, marker):
    print(f"  Delta {report.previous_period} -> {report.current_period}")
    print()
    for entry in report.facilities:
        print(
            f"    {entry.location_name:<16} {entry.change_type.value:<10} "
            f"{entry.display_total('previous', marker):>10} -> "
            f"{entry.display_total('current', marker):>10}  "
            f"({entry.total_delta.format()})"
        )
    print()
    print(f"    Total delta {report.total_delta.format()}  "
          f"changed {report.changed_count}  unchanged {report.unchanged_count}")
    print()


def print_schedule(schedule):
    from billing_kernel.domain.facility import WEEKDAY_NAMES

    print("  Weekly schedule")
    print()
    for index, name in enumerate(WEEKDAY_NAMES):
        names = ", ".join(f.location_name for f in schedule.on(index)) or "-"
        print(f"    {name}: {names}")
    if schedule.inactive:
        print(f"    inactive: {', '.join(f.location_name for f in schedule.inactive)}")
    print()


def main() -> int:
    parser = argparse.ArgumentParser(description="Recurring billing demo")
    parser.add_argument("--year", type=int, default=2027)
    parser.add_argument("--month", type=int, default=4)
    parser.add_argument("--db-url", default=None,
                        help="Database URL (defaults to the configured one)")
    parser.add_argument("--json", action="store_true", help="Print JSON instead of tables")
    parser.add_argument("--verbose", action="store_true", help="Emit structured logs to stderr")
    args = parser.parse_args()

    from billing_config import get_active_settings
    from billing_kernel.db.engine import create_tables, get_session, init_engine_from_url
    from billing_kernel.domain.clock import DeterministicClock
    from billing_kernel.exceptions import BillingKernelError
    from billing_kernel.logging_config import configure_logging
    from billing_services import BillingPreviewService

    settings = get_active_settings()
    if args.verbose:
        configure_logging(level=settings.logging_level, stream=sys.stderr)
    else:
        logging.disable(logging.CRITICAL)

    init_engine_from_url(args.db_url or settings.database_url)
    create_tables()

    clock = DeterministicClock(datetime(args.year, args.month, 1, 12, 0, tzinfo=UTC))
    session = get_session()
    try:
        client_id = seed(session, clock, settings.currency)
        service = BillingPreviewService(session, clock=clock, settings=settings)
        view = service.month_view(client_id)
    except BillingKernelError as exc:
        print(f"  ERROR [{exc.code}]: {exc}", file=sys.stderr)
        return 1
    finally:
        session.close()

    if args.json:
        print(json.dumps(view.to_dict(), indent=2, ensure_ascii=False))
        return 0

    print()
    print_preview(view.previous)
    print_preview(view.preview)
    print_delta(view.delta, settings.absent_amount_marker)
    print_schedule(view.schedule)
    return 0


if __name__ == "__main__":
    sys.exit(main())
