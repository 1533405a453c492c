"""
Validation rule evaluation over mapped rows.

Row-level rules (required, format, range, lookup) see one mapped row plus
the caller's MappingContext.  Cross-row rules (custom ``check: unique``)
are evaluated over the whole batch once every row has been mapped.  Custom
rules with no evaluator report NOT_EVALUATED; they never fail a row.

Architecture: town_ingestion/domain. ZERO I/O.
"""

from __future__ import annotations

import re
from collections import defaultdict
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

from town_ingestion.domain.types import (
    MappedRow,
    MappingContext,
    RowError,
    RowWarning,
    RuleStatus,
    RuleType,
    Severity,
    ValidationRule,
    account_key,
)

_MISSING = object()


@dataclass(frozen=True)
class RuleOutcome:
    status: RuleStatus
    message: str | None = None
    field: str | None = None

    @property
    def failed(self) -> bool:
        return self.status == RuleStatus.FAILED


PASSED = RuleOutcome(RuleStatus.PASSED)
NOT_EVALUATED = RuleOutcome(RuleStatus.NOT_EVALUATED)


def _fail(field: str | None = None, message: str | None = None) -> RuleOutcome:
    return RuleOutcome(RuleStatus.FAILED, message=message, field=field)


# -----------------------------------------------------------------------------
# Field access
# -----------------------------------------------------------------------------


def get_path(row: MappedRow, path: str, default: Any = None) -> Any:
    """Read a dotted path from a mapped row; default when any segment is missing."""
    node: Any = row
    for part in path.split("."):
        if not isinstance(node, dict):
            return default
        node = node.get(part, _MISSING)
        if node is _MISSING:
            return default
    return node


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _as_text(value: Any) -> str:
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


# -----------------------------------------------------------------------------
# Row-level evaluators
# -----------------------------------------------------------------------------


def _check_required(rule: ValidationRule, row: MappedRow, context: MappingContext) -> RuleOutcome:
    for name in rule.fields:
        if _is_blank(get_path(row, name)):
            return _fail(name)
    return PASSED


def _check_format(rule: ValidationRule, row: MappedRow, context: MappingContext) -> RuleOutcome:
    pattern = rule.params.get("pattern")
    for name in rule.fields:
        value = get_path(row, name, _MISSING)
        if value is _MISSING:
            continue
        if pattern is None:
            # Present but None: the transform could not convert the source
            if value is None:
                return _fail(name)
            continue
        if _is_blank(value):
            continue
        try:
            matched = re.fullmatch(pattern, _as_text(value)) is not None
        except re.error as e:
            return _fail(name, f"Invalid pattern {pattern!r} in rule '{rule.id}': {e}")
        if not matched:
            return _fail(name)
    return PASSED


def _to_decimal(value: Any) -> Decimal | None:
    if isinstance(value, bool):
        return None
    try:
        d = Decimal(str(value).replace(",", "").replace("$", "").strip())
    except (InvalidOperation, ValueError):
        return None
    return d if d.is_finite() else None


def _to_date(value: Any) -> date | None:
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        return None


def _check_range(rule: ValidationRule, row: MappedRow, context: MappingContext) -> RuleOutcome:
    lo = rule.params.get("min")
    hi = rule.params.get("max")
    if lo is None and hi is None:
        return NOT_EVALUATED
    for name in rule.fields:
        value = get_path(row, name)
        if _is_blank(value):
            continue
        convert = _to_date if isinstance(value, date) else _to_decimal
        v = convert(value)
        if v is None:
            return _fail(name, f"{rule.failure_message}: '{name}' is not comparable")
        if lo is not None and (convert(lo) is None or v < convert(lo)):
            return _fail(name)
        if hi is not None and (convert(hi) is None or v > convert(hi)):
            return _fail(name)
    return PASSED


def _check_lookup(rule: ValidationRule, row: MappedRow, context: MappingContext) -> RuleOutcome:
    table = str(rule.params.get("table", "")).lower()
    if table == "funds":
        if context.auto_create_funds:
            return PASSED
        exists: Callable[[Any], bool] = context.has_fund
    elif table == "accounts":
        if context.auto_create_accounts:
            return PASSED
        fund = get_path(row, str(rule.params.get("fund_field", "fund_code")))
        exists = lambda acct: account_key(fund, acct) in context.accounts_by_key  # noqa: E731
    elif table == "vendors":
        if context.auto_create_vendors:
            return PASSED
        exists = context.has_vendor
    else:
        return NOT_EVALUATED

    for name in rule.fields:
        value = get_path(row, name)
        if _is_blank(value):
            continue
        if not exists(_as_text(value)):
            return _fail(name, f"{rule.failure_message}: '{_as_text(value)}' not found")
    return PASSED


def _check_custom(rule: ValidationRule, row: MappedRow, context: MappingContext) -> RuleOutcome:
    # Cross-row checks are evaluated by evaluate_batch_rule
    return NOT_EVALUATED


_EVALUATORS: dict[RuleType, Callable[[ValidationRule, MappedRow, MappingContext], RuleOutcome]] = {
    RuleType.REQUIRED: _check_required,
    RuleType.FORMAT: _check_format,
    RuleType.RANGE: _check_range,
    RuleType.LOOKUP: _check_lookup,
    RuleType.CUSTOM: _check_custom,
}


def evaluate_rule(rule: ValidationRule, row: MappedRow, context: MappingContext) -> RuleOutcome:
    """Evaluate one row-level rule against one mapped row. Pure function."""
    return _EVALUATORS[rule.rule_type](rule, row, context)


# -----------------------------------------------------------------------------
# Cross-row evaluators (batch context)
# -----------------------------------------------------------------------------


def is_batch_rule(rule: ValidationRule) -> bool:
    return rule.rule_type == RuleType.CUSTOM and rule.params.get("check") == "unique"


def validate_batch_uniqueness(
    records: Sequence[MappedRow],
    fields: tuple[str, ...],
) -> dict[int, list[str]]:
    """
    For each field, ensure non-blank values are unique across the batch.
    Returns row index -> fields holding a duplicated value.
    """
    result: dict[int, list[str]] = defaultdict(list)
    for field_name in fields:
        value_to_indices: dict[str, list[int]] = defaultdict(list)
        for i, rec in enumerate(records):
            v = get_path(rec, field_name)
            if _is_blank(v):
                continue
            value_to_indices[_as_text(v)].append(i)
        for indices in value_to_indices.values():
            if len(indices) > 1:
                for i in indices:
                    result[i].append(field_name)
    return dict(result)


def evaluate_batch_rule(rule: ValidationRule, records: Sequence[MappedRow]) -> dict[int, RuleOutcome]:
    """Row index -> failing outcome for a cross-row rule; passing rows are absent."""
    duplicates = validate_batch_uniqueness(records, rule.fields)
    return {
        i: _fail(names[0], f"{rule.failure_message}: duplicate value for '{names[0]}' in batch")
        for i, names in duplicates.items()
    }


# -----------------------------------------------------------------------------
# Diagnostics
# -----------------------------------------------------------------------------


def outcome_to_diagnostic(
    rule: ValidationRule,
    outcome: RuleOutcome,
    row_number: int,
) -> RowError | RowWarning:
    """Failed outcome -> error or warning per rule severity, coded with the rule id."""
    message = outcome.message or rule.failure_message
    field_name = outcome.field or (rule.fields[0] if len(rule.fields) == 1 else None)
    if rule.severity == Severity.ERROR:
        return RowError(row_number=row_number, code=rule.id, message=message, field=field_name)
    return RowWarning(row_number=row_number, code=rule.id, message=message, field=field_name)


@dataclass(frozen=True)
class RuleEvaluation:
    """Diagnostics from evaluating a profile's row-level rules against one row."""

    errors: tuple[RowError, ...] = ()
    warnings: tuple[RowWarning, ...] = ()
    unevaluated: tuple[str, ...] = ()  # Rule ids


def evaluate_row_rules(
    rules: Sequence[ValidationRule],
    row: MappedRow,
    context: MappingContext,
    row_number: int,
) -> RuleEvaluation:
    """Evaluate every row-level rule in declaration order. Pure function."""
    errors: list[RowError] = []
    warnings: list[RowWarning] = []
    unevaluated: list[str] = []
    for rule in rules:
        if is_batch_rule(rule):
            continue
        outcome = evaluate_rule(rule, row, context)
        if outcome.status == RuleStatus.NOT_EVALUATED:
            unevaluated.append(rule.id)
        elif outcome.failed:
            diag = outcome_to_diagnostic(rule, outcome, row_number)
            if isinstance(diag, RowError):
                errors.append(diag)
            else:
                warnings.append(diag)
    return RuleEvaluation(errors=tuple(errors), warnings=tuple(warnings), unevaluated=tuple(unevaluated))
