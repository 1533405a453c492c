"""Tests for the validation pass (map + rules + stats)."""

from dataclasses import replace
from datetime import date
from decimal import Decimal

from town_ingestion.adapters import parse_csv_text
from town_ingestion.domain.types import (
    ColumnMapping,
    ImportDataType,
    ImportFileType,
    ImportProfile,
    KnownVendor,
    ParseOptions,
    RuleType,
    Severity,
    TransactionType,
    TransformName,
    ValidationRule,
)
from town_ingestion.mapping.validation import no_data_result, row_number_for, validate_rows


def _validate(text, profile, context, **kwargs):
    return validate_rows(parse_csv_text(text, profile.parse_options), profile, context, **kwargs)


class TestValidateRows:
    def test_two_row_transaction_file(self, sample_csv, transaction_profile, empty_context):
        result = _validate(sample_csv, transaction_profile, empty_context)

        assert result.is_valid
        assert (result.total_rows, result.valid_rows, result.error_rows) == (2, 2, 0)
        first = result.preview[0].mapped
        assert first["transaction_date"] == date(2024, 1, 15)
        assert first["amount"] == Decimal("1000.00")
        assert first["amount"] == 1000
        assert first["type"] == "RECEIPT"
        assert first["fund_code"] == "101"
        assert first["account_code"] == "4100"
        assert result.preview[1].mapped["type"] == TransactionType.DISBURSEMENT
        assert result.summary == "Validated 2 rows: 2 valid, 0 with errors, 0 with warnings"

    def test_counts_are_consistent(self, transaction_profile, empty_context):
        text = (
            "Date,Amount,Description,Type,Fund,Account\n"
            "01/15/2024,10,ok,Receipt,101,4100\n"
            "bad-date,10,broken,Receipt,101,4100\n"
            ",,,,,\n"
            "01/17/2024,5,ok,,7,41\n"
        )
        result = _validate(text, transaction_profile, empty_context)

        assert result.total_rows == 4
        assert result.valid_rows + result.error_rows == result.total_rows
        assert result.valid_rows == 2
        assert not result.is_valid
        assert all(not r.is_valid for r in result.rows if r.errors)
        last = result.rows[3].mapped
        assert last["fund_code"] == "007"
        assert last["account_code"] == "0041"
        # Absent optional value still runs through map_transaction_type
        assert last["type"] == TransactionType.DISBURSEMENT

    def test_row_numbers_account_for_header(self, transaction_profile, sample_csv, empty_context):
        result = _validate(sample_csv, transaction_profile, empty_context)
        assert [r.row_number for r in result.rows] == [2, 3]

    def test_row_numbers_account_for_skipped_lines(self, transaction_profile, empty_context):
        profile = replace(transaction_profile, parse_options=ParseOptions(skip_rows=2))
        text = "Town of Testville\nExport\n" + (
            "Date,Amount,Description,Type,Fund,Account\n"
            "01/15/2024,,Missing amount,Receipt,101,4100\n"
        )
        result = _validate(text, profile, empty_context)
        assert result.rows[0].row_number == 4
        assert result.errors[0].row_number == 4
        assert row_number_for(0, profile) == 4

    def test_errors_carry_code_field_and_row(self, transaction_profile, empty_context):
        text = "Date,Amount,Description,Type,Fund,Account\n01/15/2024,abc,x,,101,4100\n"
        result = _validate(text, transaction_profile, empty_context)
        (err,) = result.errors
        assert err.code == "TRANSFORM_FAILED"
        assert err.field == "amount"
        assert err.value == "abc"
        assert err.row_number == 2

    def test_idempotent(self, sample_csv, transaction_profile, empty_context):
        raw = parse_csv_text(sample_csv, transaction_profile.parse_options)
        first = validate_rows(raw, transaction_profile, empty_context)
        second = validate_rows(raw, transaction_profile, empty_context)
        assert first == second

    def test_preview_is_bounded_but_rows_are_complete(self, transaction_profile, empty_context):
        body = "\n".join(f"01/15/2024,{i},row {i},Receipt,101,4100" for i in range(25))
        text = "Date,Amount,Description,Type,Fund,Account\n" + body
        result = _validate(text, transaction_profile, empty_context)
        assert len(result.preview) == 10
        assert len(result.rows) == 25
        assert result.preview == result.rows[:10]
        assert result.column_stats[1].total_values == 25

    def test_preview_limit_argument(self, sample_csv, transaction_profile, empty_context):
        result = _validate(sample_csv, transaction_profile, empty_context, preview_limit=1)
        assert len(result.preview) == 1

    def test_parallel_mapping_keeps_order(self, transaction_profile, empty_context):
        body = "\n".join(f"01/15/2024,{i},row {i},Receipt,101,4100" for i in range(40))
        text = "Date,Amount,Description,Type,Fund,Account\n" + body
        serial = _validate(text, transaction_profile, empty_context)
        parallel = _validate(text, transaction_profile, empty_context, max_workers=4)
        assert parallel == serial
        assert [r.mapped["amount"] for r in parallel.rows] == [Decimal(i) for i in range(40)]

    def test_no_data_rows(self, transaction_profile, empty_context):
        result = validate_rows([], transaction_profile, empty_context)
        assert not result.is_valid
        assert result.total_rows == 0
        assert result.errors[0].code == "NO_DATA_ROWS"
        assert result.errors[0].row_number == 0
        assert result == no_data_result()

    def test_logs_completion(self, sample_csv, transaction_profile, empty_context, captured_logs):
        _validate(sample_csv, transaction_profile, empty_context)
        (record,) = [r for r in captured_logs() if r["message"] == "validation_completed"]
        assert record["total_rows"] == 2
        assert record["valid_rows"] == 2


def _profile(*rules, mappings=None):
    return ImportProfile(
        id="rules-profile",
        name="Rules",
        vendor=KnownVendor.CUSTOM,
        file_type=ImportFileType.CSV,
        data_type=ImportDataType.FUNDS,
        mappings=mappings or (
            ColumnMapping("Code", "code", TransformName.FUND_CODE_PAD, required=True),
            ColumnMapping("Name", "name", TransformName.TRIM),
        ),
        validation_rules=rules,
    )


class TestRulesInValidation:
    def test_warning_rule_keeps_row_valid(self, empty_context):
        rule = ValidationRule(
            id="name-present",
            description="Name is recommended",
            fields=("name",),
            rule_type=RuleType.REQUIRED,
            severity=Severity.WARNING,
        )
        result = _validate("Code,Name\n1,\n", _profile(rule), empty_context)
        assert result.is_valid
        assert result.warning_rows == 1
        assert result.warnings[0].code == "name-present"
        assert result.rows[0].is_valid

    def test_error_rule_invalidates_row(self, empty_context):
        rule = ValidationRule(
            id="fund-exists",
            description="Fund not found",
            fields=("code",),
            rule_type=RuleType.LOOKUP,
            params={"table": "funds"},
        )
        result = _validate("Code,Name\n1,General\n", _profile(rule), empty_context)
        assert result.error_rows == 1
        assert result.errors[0].code == "fund-exists"
        assert "001" in result.errors[0].message

    def test_batch_uniqueness_flags_every_duplicate(self, empty_context):
        rule = ValidationRule(
            id="unique-code",
            description="Fund code must be unique",
            fields=("code",),
            rule_type=RuleType.CUSTOM,
            params={"check": "unique"},
        )
        result = _validate("Code,Name\n1,A\n2,B\n001,C\n", _profile(rule), empty_context)
        assert [r.is_valid for r in result.rows] == [False, True, False]
        assert {e.row_number for e in result.errors} == {2, 4}
        assert all(e.code == "unique-code" for e in result.errors)
        assert result.unevaluated_rules == ()

    def test_custom_rule_without_evaluator_reported(self, empty_context, captured_logs):
        rule = ValidationRule(
            id="balanced",
            description="Debits equal credits",
            rule_type=RuleType.CUSTOM,
            params={"check": "balanced"},
        )
        result = _validate("Code,Name\n1,A\n2,B\n", _profile(rule), empty_context)
        assert result.is_valid
        assert result.unevaluated_rules == ("balanced",)
        assert any(r["message"] == "rule_not_evaluated" for r in captured_logs())

    def test_malformed_mapping_pattern_is_a_row_error(self, empty_context):
        mappings = (ColumnMapping("Code", "code", TransformName.TRIM, validation_pattern="[A-"),)
        result = _validate("Code\nX1\nX2\n", _profile(mappings=mappings), empty_context)
        assert (result.total_rows, result.error_rows) == (2, 2)
        assert [e.code for e in result.errors] == ["PATTERN_MISMATCH", "PATTERN_MISMATCH"]
        assert "Invalid pattern" in result.errors[0].message

    def test_malformed_format_rule_pattern_is_a_row_error(self, empty_context):
        rule = ValidationRule(
            id="code-shape",
            description="Code shape",
            fields=("code",),
            rule_type=RuleType.FORMAT,
            params={"pattern": "("},
        )
        result = _validate("Code,Name\n1,A\n2,B\n", _profile(rule), empty_context)
        assert result.error_rows == 2
        assert {e.code for e in result.errors} == {"code-shape"}
        assert "Invalid pattern" in result.errors[0].message

    def test_to_dict_is_json_safe(self, sample_csv, transaction_profile, empty_context):
        data = _validate(sample_csv, transaction_profile, empty_context).to_dict()
        mapped = data["preview"][0]["mapped"]
        assert mapped["amount"] == "1000.00"
        assert mapped["transaction_date"] == "2024-01-15"
        assert mapped["type"] == "RECEIPT"
