"""
Pytest fixtures for the import pipeline test suite.

Provides:
- Structured logging configured for every test, LogContext cleared between tests
- captured_logs: parsed JSON log lines from the town_kernel logger tree
- Deterministic clock, mapping contexts and a small transaction profile
"""

import json
import logging
from io import StringIO

import pytest

from town_kernel.domain.clock import DeterministicClock
from town_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)

from town_ingestion.domain.types import (
    ColumnMapping,
    ImportDataType,
    ImportFileType,
    ImportProfile,
    KnownVendor,
    MappingContext,
    TransformName,
)

TEST_TENANT_ID = "town-of-testville"

# Two-row transaction export used across the suite
SAMPLE_TRANSACTIONS_CSV = (
    "Date,Amount,Description,Type,Fund,Account\n"
    "01/15/2024,1000.00,Property Tax Receipt,Receipt,101,4100\n"
    "01/16/2024,500.00,Office Supplies,Disbursement,101,5200"
)


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
    Capture town_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            commit_rows(...)
            logs = captured_logs()
            assert any(r["message"] == "batch_committed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("town_kernel")
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
# Domain fixtures
# =============================================================================


@pytest.fixture
def deterministic_clock():
    """Provide a deterministic clock for testing."""
    return DeterministicClock()


@pytest.fixture
def empty_context():
    """Mapping context with no lookups and no auto-create."""
    return MappingContext.empty(TEST_TENANT_ID)


@pytest.fixture
def sample_csv():
    return SAMPLE_TRANSACTIONS_CSV


@pytest.fixture
def transaction_profile():
    """The six-column transaction profile; every mapping but type is required."""
    return ImportProfile(
        id="test-transactions",
        name="Test Transactions",
        vendor=KnownVendor.CUSTOM,
        file_type=ImportFileType.CSV,
        data_type=ImportDataType.TRANSACTIONS,
        mappings=(
            ColumnMapping("Date", "transaction_date", TransformName.PARSE_DATE_US, required=True),
            ColumnMapping("Amount", "amount", TransformName.PARSE_AMOUNT, required=True),
            ColumnMapping("Description", "description", TransformName.TRIM, required=True),
            ColumnMapping("Type", "type", TransformName.MAP_TRANSACTION_TYPE),
            ColumnMapping("Fund", "fund_code", TransformName.FUND_CODE_PAD, required=True),
            ColumnMapping("Account", "account_code", TransformName.ACCOUNT_CODE_PAD, required=True),
        ),
    )
