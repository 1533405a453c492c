"""
Validation pass: map every raw row and evaluate the profile's rules.

Pure function over (raw rows, profile, context).  Returns parsed rows with
row-scoped diagnostics, aggregate counts, a bounded preview and column
statistics over the raw rows.  No DB, no commit.
"""

from __future__ import annotations

from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

from town_kernel.logging_config import get_logger

from town_ingestion.domain.rules import (
    evaluate_batch_rule,
    evaluate_row_rules,
    is_batch_rule,
    outcome_to_diagnostic,
)
from town_ingestion.domain.types import (
    ImportProfile,
    ImportValidationResult,
    MappedRow,
    MappingContext,
    ParsedRow,
    RawRow,
    RowError,
    RowWarning,
)
from town_ingestion.mapping.engine import apply_mapping
from town_ingestion.mapping.statistics import DEFAULT_SAMPLE_LIMIT, compute_column_stats

logger = get_logger("ingestion.validation")

DEFAULT_PREVIEW_LIMIT = 10


@dataclass(frozen=True)
class _RowOutcome:
    row_number: int
    raw: RawRow
    mapped: MappedRow
    errors: tuple[RowError, ...]
    warnings: tuple[RowWarning, ...]
    unevaluated: tuple[str, ...]


def row_number_for(index: int, profile: ImportProfile) -> int:
    """1-based source line of the data row at zero-based ``index``."""
    return index + 1 + profile.parse_options.header_offset


def _map_one(index: int, raw: RawRow, profile: ImportProfile, context: MappingContext) -> _RowOutcome:
    row_number = row_number_for(index, profile)
    mapping = apply_mapping(raw, profile.mappings, context, row_number)
    rules = evaluate_row_rules(profile.validation_rules, mapping.mapped_data, context, row_number)
    return _RowOutcome(
        row_number=row_number,
        raw=dict(raw),
        mapped=mapping.mapped_data,
        errors=mapping.errors + rules.errors,
        warnings=rules.warnings,
        unevaluated=rules.unevaluated,
    )


def no_data_result(code: str = "NO_DATA_ROWS", message: str = "No data rows found") -> ImportValidationResult:
    """Empty-but-valid-shaped result carrying one file-level error."""
    return ImportValidationResult(
        is_valid=False,
        total_rows=0,
        valid_rows=0,
        error_rows=0,
        warning_rows=0,
        errors=(RowError(row_number=0, code=code, message=message),),
        summary=message,
    )


def validate_rows(
    raw_rows: Sequence[RawRow],
    profile: ImportProfile,
    context: MappingContext,
    *,
    preview_limit: int = DEFAULT_PREVIEW_LIMIT,
    sample_limit: int = DEFAULT_SAMPLE_LIMIT,
    max_workers: int | None = None,
) -> ImportValidationResult:
    """
    Map and validate raw rows against a profile. Pure function.

    Rows are mapped on a thread pool when ``max_workers`` > 1; results keep
    source order either way.  Cross-row rules run after every row is mapped.
    """
    if not raw_rows:
        logger.info("validation_no_data_rows", extra={"profile_id": profile.id})
        return no_data_result()

    if max_workers and max_workers > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            outcomes = list(pool.map(
                lambda item: _map_one(item[0], item[1], profile, context),
                enumerate(raw_rows),
            ))
    else:
        outcomes = [_map_one(i, raw, profile, context) for i, raw in enumerate(raw_rows)]

    # Cross-row rules (batch uniqueness)
    extra_errors: dict[int, list[RowError]] = {}
    extra_warnings: dict[int, list[RowWarning]] = {}
    mapped_rows = [o.mapped for o in outcomes]
    for rule in profile.validation_rules:
        if not is_batch_rule(rule):
            continue
        for idx, outcome in evaluate_batch_rule(rule, mapped_rows).items():
            diag = outcome_to_diagnostic(rule, outcome, outcomes[idx].row_number)
            if isinstance(diag, RowError):
                extra_errors.setdefault(idx, []).append(diag)
            else:
                extra_warnings.setdefault(idx, []).append(diag)

    parsed: list[ParsedRow] = []
    errors: list[RowError] = []
    warnings: list[RowWarning] = []
    unevaluated: dict[str, None] = {}
    valid_rows = error_rows = warning_rows = 0

    for idx, o in enumerate(outcomes):
        row_errors = o.errors + tuple(extra_errors.get(idx, ()))
        row_warnings = o.warnings + tuple(extra_warnings.get(idx, ()))
        is_valid = not row_errors
        if is_valid:
            valid_rows += 1
        else:
            error_rows += 1
        if row_warnings:
            warning_rows += 1
        errors.extend(row_errors)
        warnings.extend(row_warnings)
        for rule_id in o.unevaluated:
            unevaluated.setdefault(rule_id, None)
        parsed.append(ParsedRow(
            row_number=o.row_number,
            raw=o.raw,
            mapped=o.mapped,
            is_valid=is_valid,
            errors=row_errors,
            warnings=row_warnings,
        ))

    for rule_id in unevaluated:
        logger.debug("rule_not_evaluated", extra={"rule_id": rule_id, "profile_id": profile.id})

    total = len(parsed)
    summary = (
        f"Validated {total} rows: {valid_rows} valid, "
        f"{error_rows} with errors, {warning_rows} with warnings"
    )
    logger.info(
        "validation_completed",
        extra={
            "profile_id": profile.id,
            "total_rows": total,
            "valid_rows": valid_rows,
            "error_rows": error_rows,
            "warning_rows": warning_rows,
        },
    )
    return ImportValidationResult(
        is_valid=error_rows == 0,
        total_rows=total,
        valid_rows=valid_rows,
        error_rows=error_rows,
        warning_rows=warning_rows,
        errors=tuple(errors),
        warnings=tuple(warnings),
        preview=tuple(parsed[:preview_limit]),
        rows=tuple(parsed),
        column_stats=compute_column_stats(raw_rows, sample_limit),
        unevaluated_rules=tuple(unevaluated),
        summary=summary,
    )
