"""
Pytest fixtures for the billing test suite.

Provides:
- Structured log configuration and capture
- In-memory SQLite sessions (fresh schema per test)
- Deterministic clock, actor id and settings
- Registry, selector and preview service wired to the test session
"""

import json
import logging
from io import StringIO
from uuid import uuid4

import pytest

from billing_config.schema import BillingSettings
from billing_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from billing_kernel.domain.clock import DeterministicClock
from billing_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from billing_kernel.selectors.facility_selector import FacilitySelector
from billing_kernel.services.facility_registry_service import FacilityRegistryService
from billing_services.billing_preview_service import BillingPreviewService

# Test actor ID for all test operations
TEST_ACTOR_ID = uuid4()


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture billing_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            assemble_preview(...)
            logs = captured_logs()
            assert any(r["message"] == "billing_preview_assembled" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("billing_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def db_engine():
    """Fresh in-memory SQLite database with the billing schema."""
    engine = init_engine_from_url("sqlite://")
    create_tables()
    yield engine
    drop_tables()
    reset_engine()


@pytest.fixture
def session(db_engine):
    """Session on the test database; uncommitted work is rolled back."""
    s = get_session()
    yield s
    s.rollback()
    s.close()


# =============================================================================
# Collaborators
# =============================================================================


@pytest.fixture
def clock():
    """Deterministic clock fixed at 2027-03-15 12:00 UTC."""
    return DeterministicClock()


@pytest.fixture
def actor_id():
    return TEST_ACTOR_ID


@pytest.fixture
def settings():
    return BillingSettings(config_id="test-billing", version=1)


@pytest.fixture
def registry(session, clock):
    return FacilityRegistryService(session, clock)


@pytest.fixture
def selector(session):
    return FacilitySelector(session)


@pytest.fixture
def preview_service(session, clock, settings):
    return BillingPreviewService(session, clock=clock, settings=settings)
