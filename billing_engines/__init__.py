"""
Module: billing_engines
Responsibility:
    Package entrypoint that re-exports all public symbols from the pure
    billing engine sub-modules.  This is the canonical import surface for
    higher layers (billing_services, scripts).

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import billing_kernel.domain, billing_kernel.exceptions and
    billing_kernel.logging_config (and sibling engine modules).
    MUST NOT import billing_services, billing_config or the ORM.

Invariants enforced:
    - Purity: engines NEVER call ``datetime.now()`` or ``date.today()``.
      Year and month are explicit parameters; services pick defaults
      from an injected Clock.
    - Integer money: amounts are Money (integer minor units); floats
      are rejected at construction.
    - Determinism: identical inputs always produce identical outputs.

Failure modes:
    - ConfigurationError subclasses (pause window, period, tax mode)
      propagated from individual engines on invalid input.
    - ValueError on caller mistakes (mismatched client or period).

Audit relevance:
    Engine invocations are traced via the ``@traced_engine`` decorator
    (see ``billing_engines.tracer``), emitting BILLING_ENGINE_TRACE log
    records that include engine name, version, input fingerprint, and
    duration.

Usage:
    from billing_engines import assemble_preview, diff_previews, project_schedule
"""

from billing_kernel.logging_config import get_logger

logger = get_logger("engines")

from billing_engines.delta import (
    ChangeType,
    DeltaReport,
    FacilityDelta,
    classify,
    diff_previews,
)
from billing_engines.preview import (
    BillingExplanation,
    BillingPreview,
    FacilityLineItem,
    assemble_preview,
    build_line_item,
    describe_override,
)
from billing_engines.proration import (
    ProrationResult,
    is_included,
    prorate,
    scale_rate,
    scheduled_dates,
)
from billing_engines.resolver import (
    ABSENT,
    EffectiveConfig,
    Present,
    fold_layers,
    resolve_facility,
)
from billing_engines.schedule import (
    ScheduledFacility,
    WeeklySchedule,
    project_schedule,
)
from billing_engines.tax import (
    LineTax,
    TaxCalculator,
    calculate_line_tax,
    resolve_tax_mode,
)
from billing_engines.tracer import compute_input_fingerprint, traced_engine

__all__ = [
    "ABSENT",
    "BillingExplanation",
    "BillingPreview",
    "ChangeType",
    "DeltaReport",
    "EffectiveConfig",
    "FacilityDelta",
    "FacilityLineItem",
    "LineTax",
    "Present",
    "ProrationResult",
    "ScheduledFacility",
    "TaxCalculator",
    "WeeklySchedule",
    "assemble_preview",
    "build_line_item",
    "calculate_line_tax",
    "classify",
    "compute_input_fingerprint",
    "describe_override",
    "diff_previews",
    "fold_layers",
    "is_included",
    "project_schedule",
    "prorate",
    "resolve_facility",
    "resolve_tax_mode",
    "scale_rate",
    "scheduled_dates",
    "traced_engine",
]
