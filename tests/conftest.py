"""
Pytest fixtures for the refuse kernel and ingestion test suites.

Provides:
- Deterministic clock and isolated metrics registries
- Reference transformation engine (lenient and strict)
- Entity factories/managers over the in-memory and SQLite stores
- Structured log capture
"""

import json
import logging
from io import StringIO

import pytest

from refuse_kernel.domain.clock import DeterministicClock
from refuse_kernel.domain.schemas import CUSTOMER_VALIDATOR
from refuse_kernel.db.store import SqlAlchemyEntityStore
from refuse_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from refuse_kernel.services.entity_factory import EntityFactory
from refuse_kernel.services.entity_manager import EntityManager

from refuse_ingestion.engine import build_reference_engine
from refuse_ingestion.metrics import MetricsRegistry


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
    Capture refuse logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, engine):
            engine.transform_batch(records, "customer")
            logs = captured_logs()
            assert any(r["message"] == "batch_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("refuse")
    previous_level = root.level
    root.addHandler(handler)
    root.setLevel(logging.DEBUG)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Time and metrics
# =============================================================================


@pytest.fixture
def deterministic_clock():
    """Provide a deterministic clock for testing."""
    return DeterministicClock()


@pytest.fixture
def metrics():
    return MetricsRegistry()


# =============================================================================
# Ingestion
# =============================================================================


@pytest.fixture
def engine(metrics, deterministic_clock):
    """Reference engine: lenient codes, no canonical validation."""
    return build_reference_engine(metrics=metrics, clock=deterministic_clock)


@pytest.fixture
def strict_engine(deterministic_clock):
    return build_reference_engine(
        metrics=MetricsRegistry(), clock=deterministic_clock, strict_codes=True
    )


@pytest.fixture
def validating_engine(deterministic_clock):
    return build_reference_engine(
        metrics=MetricsRegistry(), clock=deterministic_clock, validate=True
    )


@pytest.fixture
def legacy_customer():
    """A complete WasteWorks-style customer row."""
    return {
        "CUSTOMER_ID": "CUST001",
        "CUSTOMER_NAME": "Acme Corporation",
        "CUSTOMER_TYPE": "COMMERCIAL",
        "STATUS": "ACTIVE",
        "PHONE": "555-010-0100",
        "EMAIL": "Contact@Acme.com",
        "ADDRESS_STREET": "123 Business St",
        "ADDRESS_CITY": "Business City",
        "ADDRESS_STATE": "BC",
        "ADDRESS_ZIP": "12345",
        "SERVICE_AREA": "Area 1",
        "CREATED_DATE": "2023-01-15T10:00:00Z",
        "UPDATED_DATE": "2024-01-15T10:00:00Z",
    }


# =============================================================================
# Kernel
# =============================================================================


@pytest.fixture
def customer_factory(deterministic_clock):
    return EntityFactory("customer", clock=deterministic_clock)


@pytest.fixture
def customer_manager(customer_factory):
    """Validated customer manager over the in-memory store."""
    return EntityManager(customer_factory, validator=CUSTOMER_VALIDATOR)


@pytest.fixture
def sql_store():
    return SqlAlchemyEntityStore(entity_type="customer")


@pytest.fixture
def valid_customer_data():
    return {
        "name": "Acme Corporation",
        "type": "commercial",
        "status": "active",
        "email": "billing@acme.com",
        "phone": "555-010-0100",
        "service_address": {
            "street": "123 Business St",
            "city": "Business City",
            "state": "BC",
            "zip_code": "12345",
        },
    }
