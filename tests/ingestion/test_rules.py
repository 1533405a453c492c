"""Tests for validation rule evaluation."""

from datetime import date
from decimal import Decimal

import pytest

from town_ingestion.domain.rules import (
    evaluate_batch_rule,
    evaluate_row_rules,
    evaluate_rule,
    get_path,
    is_batch_rule,
    outcome_to_diagnostic,
    validate_batch_uniqueness,
)
from town_ingestion.domain.types import (
    MappingContext,
    RowError,
    RowWarning,
    RuleStatus,
    RuleType,
    Severity,
    ValidationRule,
    account_key,
    normalize_vendor_name,
)


def _rule(rule_type, fields=("f",), severity=Severity.ERROR, **params):
    return ValidationRule(
        id=f"{rule_type.value}-rule",
        description=f"{rule_type.value} failed",
        fields=tuple(fields),
        rule_type=rule_type,
        severity=severity,
        params=params,
    )


@pytest.fixture
def context():
    return MappingContext(
        tenant_id="t1",
        funds_by_code={"101": object()},
        accounts_by_key={account_key("101", "4100"): object()},
        vendors_by_name={normalize_vendor_name("Acme  Supply"): object()},
    )


class TestRequiredRule:
    def test_passes_when_present(self, context):
        assert evaluate_rule(_rule(RuleType.REQUIRED), {"f": "x"}, context).status == RuleStatus.PASSED

    @pytest.mark.parametrize("row", [{}, {"f": None}, {"f": "  "}])
    def test_fails_when_blank(self, context, row):
        outcome = evaluate_rule(_rule(RuleType.REQUIRED), row, context)
        assert outcome.failed
        assert outcome.field == "f"


class TestFormatRule:
    def test_without_pattern_fails_on_unconverted_value(self, context):
        rule = _rule(RuleType.FORMAT)
        assert evaluate_rule(rule, {"f": None}, context).failed
        assert evaluate_rule(rule, {"f": Decimal("1")}, context).status == RuleStatus.PASSED
        # Absent fields are left to REQUIRED_FIELD
        assert evaluate_rule(rule, {}, context).status == RuleStatus.PASSED

    def test_with_pattern(self, context):
        rule = _rule(RuleType.FORMAT, pattern=r"\d{3}")
        assert evaluate_rule(rule, {"f": "101"}, context).status == RuleStatus.PASSED
        assert evaluate_rule(rule, {"f": "10A"}, context).failed

    def test_pattern_matches_iso_form_of_dates(self, context):
        rule = _rule(RuleType.FORMAT, pattern=r"2024-\d\d-\d\d")
        assert evaluate_rule(rule, {"f": date(2024, 5, 1)}, context).status == RuleStatus.PASSED

    def test_malformed_pattern_fails_with_message(self, context):
        rule = _rule(RuleType.FORMAT, pattern="(")
        outcome = evaluate_rule(rule, {"f": "101"}, context)
        assert outcome.failed
        assert outcome.field == "f"
        assert "Invalid pattern" in outcome.message


class TestRangeRule:
    def test_inclusive_bounds(self, context):
        rule = _rule(RuleType.RANGE, min=2000, max=2100)
        assert evaluate_rule(rule, {"f": 2000}, context).status == RuleStatus.PASSED
        assert evaluate_rule(rule, {"f": 2100}, context).status == RuleStatus.PASSED
        assert evaluate_rule(rule, {"f": 1999}, context).failed
        assert evaluate_rule(rule, {"f": 2101}, context).failed

    def test_min_only(self, context):
        rule = _rule(RuleType.RANGE, min=0)
        assert evaluate_rule(rule, {"f": Decimal("-0.01")}, context).failed
        assert evaluate_rule(rule, {"f": Decimal("0")}, context).status == RuleStatus.PASSED

    def test_blank_values_skipped(self, context):
        assert evaluate_rule(_rule(RuleType.RANGE, min=0), {"f": None}, context).status == RuleStatus.PASSED

    def test_non_numeric_fails(self, context):
        assert evaluate_rule(_rule(RuleType.RANGE, min=0), {"f": "abc"}, context).failed

    def test_date_bounds(self, context):
        rule = _rule(RuleType.RANGE, min="2024-01-01", max="2024-12-31")
        assert evaluate_rule(rule, {"f": date(2024, 6, 1)}, context).status == RuleStatus.PASSED
        assert evaluate_rule(rule, {"f": date(2023, 12, 31)}, context).failed

    def test_no_bounds_not_evaluated(self, context):
        assert evaluate_rule(_rule(RuleType.RANGE), {"f": 1}, context).status == RuleStatus.NOT_EVALUATED


class TestLookupRule:
    def test_funds(self, context):
        rule = _rule(RuleType.LOOKUP, fields=("fund_code",), table="funds")
        assert evaluate_rule(rule, {"fund_code": "101"}, context).status == RuleStatus.PASSED
        outcome = evaluate_rule(rule, {"fund_code": "999"}, context)
        assert outcome.failed
        assert "999" in outcome.message

    def test_accounts_use_fund_and_account_key(self, context):
        rule = _rule(RuleType.LOOKUP, fields=("account_code",), table="accounts")
        assert evaluate_rule(rule, {"fund_code": "101", "account_code": "4100"}, context).status == RuleStatus.PASSED
        assert evaluate_rule(rule, {"fund_code": "102", "account_code": "4100"}, context).failed

    def test_vendors_normalised(self, context):
        rule = _rule(RuleType.LOOKUP, fields=("vendor_name",), table="vendors")
        assert evaluate_rule(rule, {"vendor_name": "ACME supply"}, context).status == RuleStatus.PASSED

    def test_auto_create_accepts_unknown(self):
        rule = _rule(RuleType.LOOKUP, fields=("fund_code",), table="funds")
        ctx = MappingContext.empty("t1", auto_create=True)
        assert evaluate_rule(rule, {"fund_code": "999"}, ctx).status == RuleStatus.PASSED

    def test_unknown_table_not_evaluated(self, context):
        rule = _rule(RuleType.LOOKUP, table="parcels")
        assert evaluate_rule(rule, {"f": "x"}, context).status == RuleStatus.NOT_EVALUATED


class TestCustomRules:
    def test_unknown_custom_check_not_evaluated(self, context):
        rule = _rule(RuleType.CUSTOM, check="balanced")
        assert evaluate_rule(rule, {"f": "x"}, context).status == RuleStatus.NOT_EVALUATED
        assert not is_batch_rule(rule)

    def test_unique_is_batch_rule(self):
        assert is_batch_rule(_rule(RuleType.CUSTOM, check="unique"))

    def test_batch_uniqueness(self):
        records = [{"code": "001"}, {"code": "002"}, {"code": "001"}, {"code": None}, {"code": None}]
        assert validate_batch_uniqueness(records, ("code",)) == {0: ["code"], 2: ["code"]}

    def test_evaluate_batch_rule(self):
        rule = _rule(RuleType.CUSTOM, fields=("code",), check="unique")
        failures = evaluate_batch_rule(rule, [{"code": "A"}, {"code": "A"}, {"code": "B"}])
        assert set(failures) == {0, 1}
        assert all(o.failed for o in failures.values())


class TestDiagnostics:
    def test_error_severity(self):
        rule = _rule(RuleType.REQUIRED)
        diag = outcome_to_diagnostic(rule, evaluate_rule(rule, {}, MappingContext.empty("t")), 5)
        assert isinstance(diag, RowError)
        assert diag.code == "required-rule"
        assert diag.message == "required failed"
        assert diag.row_number == 5

    def test_warning_severity_uses_custom_message(self):
        rule = ValidationRule(
            id="needs-memo",
            description="Memo required",
            fields=("memo",),
            rule_type=RuleType.REQUIRED,
            severity=Severity.WARNING,
            message="Add a memo before posting",
        )
        diag = outcome_to_diagnostic(rule, evaluate_rule(rule, {}, MappingContext.empty("t")), 2)
        assert isinstance(diag, RowWarning)
        assert diag.message == "Add a memo before posting"

    def test_evaluate_row_rules_collects_everything(self, context):
        rules = (
            _rule(RuleType.REQUIRED, fields=("a",)),
            _rule(RuleType.REQUIRED, fields=("b",), severity=Severity.WARNING),
            _rule(RuleType.CUSTOM, check="balanced"),
            _rule(RuleType.CUSTOM, check="unique"),
        )
        evaluation = evaluate_row_rules(rules, {}, context, 3)
        assert [e.field for e in evaluation.errors] == ["a"]
        assert [w.field for w in evaluation.warnings] == ["b"]
        assert evaluation.unevaluated == ("custom-rule",)


def test_get_path_nested():
    row = {"address": {"city": "Carmel"}}
    assert get_path(row, "address.city") == "Carmel"
    assert get_path(row, "address.zip") is None
    assert get_path(row, "address.city.x", "d") == "d"
