"""Tests for the commit state machine."""

import re
from decimal import Decimal

import pytest

from town_ingestion.domain.types import (
    ImportOptions,
    MappingContext,
    ParsedRow,
    RowError,
    RowWarning,
)
from town_ingestion.services.commit_service import (
    SKIP_REASON_VALIDATION,
    commit_rows,
    generate_batch_id,
)
from tests.conftest import TEST_TENANT_ID


def _valid(row_number, amount="10", warnings=()):
    return ParsedRow(
        row_number=row_number,
        raw={"Amount": amount},
        mapped={"amount": Decimal(amount)},
        is_valid=True,
        warnings=tuple(warnings),
    )


def _invalid(row_number, n_errors=1):
    errors = tuple(
        RowError(row_number=row_number, code="REQUIRED_FIELD", message=f"missing {i}", field=f"f{i}")
        for i in range(n_errors)
    )
    return ParsedRow(row_number=row_number, raw={"Amount": ""}, mapped={}, is_valid=False, errors=errors)


def _options(**kwargs):
    return ImportOptions(tenant_id=TEST_TENANT_ID, profile_id="test-transactions", **kwargs)


@pytest.fixture
def commit(transaction_profile, deterministic_clock):
    def _commit(rows, **kwargs):
        return commit_rows(
            rows,
            transaction_profile,
            _options(**kwargs),
            MappingContext.empty(TEST_TENANT_ID),
            clock=deterministic_clock,
        )

    return _commit


class TestCommitRows:
    def test_all_valid(self, commit):
        result = commit([_valid(2), _valid(3, "20")])
        assert result.success
        assert (result.total_rows, result.successful_rows, result.failed_rows) == (2, 2, 0)
        assert [p["amount"] for p in result.imported] == [Decimal("10"), Decimal("20")]
        assert result.summary.startswith("Imported 2 of 2 rows in ")
        assert result.duration_ms >= 0

    def test_payloads_tagged_with_batch_and_row(self, commit):
        result = commit([_valid(2), _valid(3)])
        assert {p["import_batch_id"] for p in result.imported} == {result.batch_id}
        assert [p["import_row_number"] for p in result.imported] == [2, 3]

    def test_parsed_rows_not_mutated(self, commit):
        row = _valid(2)
        commit([row])
        assert "import_batch_id" not in row.mapped

    @pytest.mark.parametrize("dry_run", [False, True])
    def test_nested_payloads_are_independent_of_parsed_rows(self, commit, dry_run):
        row = ParsedRow(
            row_number=2,
            raw={"City": "Gary"},
            mapped={"address": {"city": "Gary"}},
            is_valid=True,
        )
        result = commit([row], dry_run=dry_run)
        result.imported[0]["address"]["city"] = "Hammond"
        assert row.mapped["address"]["city"] == "Gary"

    def test_invalid_rows_without_continue(self, commit):
        result = commit([_valid(2), _invalid(3, n_errors=2), _valid(4)])
        assert not result.success
        assert result.successful_rows == 2
        assert result.failed_rows == 1
        assert result.skipped == ()
        assert len(result.errors) == 2
        assert {e.row_number for e in result.errors} == {3}

    def test_continue_on_error_skips_invalid_rows(self, commit):
        result = commit([_invalid(2), _valid(3)], continue_on_error=True)
        assert result.successful_rows == 1
        assert result.failed_rows == 1
        (skipped,) = result.skipped
        assert skipped.row_number == 2
        assert skipped.reason == SKIP_REASON_VALIDATION
        assert skipped.raw == {"Amount": ""}
        assert result.errors == ()

    def test_max_errors_stops_the_batch(self, commit):
        rows = [_invalid(2), _invalid(3), _invalid(4), _valid(5)]
        result = commit(rows, continue_on_error=True, max_errors=2)

        max_errors = [e for e in result.errors if e.code == "MAX_ERRORS_REACHED"]
        assert len(max_errors) == 1
        assert max_errors[0].row_number == 3
        assert max_errors[0].message == "Maximum errors (2) reached, stopping import"
        assert [s.row_number for s in result.skipped] == [2, 3]
        assert result.imported == ()
        assert result.failed_rows == 2
        assert result.total_rows == 4

    def test_max_errors_counts_errors_not_rows(self, commit):
        result = commit([_invalid(2, n_errors=3), _valid(3)], continue_on_error=True, max_errors=3)
        assert [e.code for e in result.errors] == ["MAX_ERRORS_REACHED"]
        assert result.successful_rows == 0

    def test_dry_run_counts_match_real_run(self, commit):
        rows = [_valid(2), _invalid(3), _valid(4, warnings=[RowWarning(4, "W", "warn")])]
        real = commit(rows, continue_on_error=True)
        dry = commit(rows, continue_on_error=True, dry_run=True)
        assert dry.successful_rows == real.successful_rows
        assert dry.failed_rows == real.failed_rows
        assert all("import_batch_id" not in p for p in dry.imported)

    def test_warnings_folded_for_committed_rows(self, commit):
        warning = RowWarning(row_number=2, code="fund-exists", message="Fund not found")
        result = commit([_valid(2, warnings=[warning]), _valid(3)])
        assert result.success
        assert result.warnings == (warning,)
        assert result.warning_rows == 1

    def test_empty_batch(self, commit):
        result = commit([])
        assert result.success
        assert result.total_rows == 0
        assert result.summary.startswith("Imported 0 of 0 rows")

    def test_to_dict(self, commit):
        data = commit([_valid(2)]).to_dict()
        assert data["imported"][0]["amount"] == "10"
        assert data["imported"][0]["import_row_number"] == 2


class TestBatchId:
    def test_format(self, deterministic_clock):
        batch_id = generate_batch_id(deterministic_clock)
        ms = int(deterministic_clock.now_utc().timestamp() * 1000)
        assert re.fullmatch(rf"import-{ms}-[0-9a-f]{{9}}", batch_id)

    def test_unique_per_invocation(self, deterministic_clock):
        assert generate_batch_id(deterministic_clock) != generate_batch_id(deterministic_clock)


class TestCommitLogging:
    def test_batch_logs_carry_context(self, commit, captured_logs):
        result = commit([_valid(2)], user_id="clerk-1", context={"source": "upload"})
        logs = captured_logs()

        started = next(r for r in logs if r["message"] == "batch_commit_started")
        assert started["batch_id"] == result.batch_id
        assert started["tenant_id"] == TEST_TENANT_ID
        assert started["actor_id"] == "clerk-1"
        assert started["caller_context"] == {"source": "upload"}

        committed = next(r for r in logs if r["message"] == "batch_committed")
        assert committed["successful_rows"] == 1
        assert committed["profile_id"] == "test-transactions"

    def test_max_errors_logged_as_warning(self, commit, captured_logs):
        commit([_invalid(2)], continue_on_error=True, max_errors=1)
        (record,) = [r for r in captured_logs() if r["message"] == "max_errors_reached"]
        assert record["level"] == "WARNING"

    def test_context_released_after_commit(self, commit):
        from town_kernel.logging_config import LogContext

        commit([_valid(2)])
        assert "batch_id" not in LogContext.get_all()


def test_invalid_max_errors_rejected():
    with pytest.raises(ValueError):
        _options(max_errors=0)
