"""
Commit service: validated parsed rows -> import result.

Walks parsed rows in source order and applies the partial-failure policy in
ImportOptions (continue_on_error, max_errors, dry_run).  Returns typed
payloads tagged with the batch id; persisting them is the caller's job.
"""

from __future__ import annotations

import copy
import time
from collections.abc import Sequence
from uuid import uuid4

from town_kernel.domain.clock import Clock, SystemClock
from town_kernel.logging_config import LogContext, get_logger

from town_ingestion.domain.types import (
    ImportOptions,
    ImportProfile,
    ImportResult,
    MappedRow,
    MappingContext,
    ParsedRow,
    RowError,
    RowWarning,
    SkippedRow,
)

logger = get_logger("ingestion.commit_service")

SKIP_REASON_VALIDATION = "Validation failed"


def generate_batch_id(clock: Clock) -> str:
    """Time-based id with a random suffix, shared by every row of one commit."""
    ms = int(clock.now_utc().timestamp() * 1000)
    return f"import-{ms}-{uuid4().hex[:9]}"


def commit_rows(
    parsed_rows: Sequence[ParsedRow],
    profile: ImportProfile,
    options: ImportOptions,
    context: MappingContext,
    clock: Clock | None = None,
) -> ImportResult:
    """
    Apply the commit state machine to parsed rows, in order.

    Invalid row, continue_on_error off: errors kept, row counted failed.
    Invalid row, continue_on_error on: row skipped; its errors count toward
    max_errors and hitting the ceiling stops the batch.
    Valid row, dry run: untagged payload copy, counted successful.
    Valid row: payload tagged with import_batch_id / import_row_number,
    warnings folded into the result.
    """
    clock = clock or SystemClock()
    started = time.monotonic()
    batch_id = generate_batch_id(clock)

    imported: list[MappedRow] = []
    skipped: list[SkippedRow] = []
    errors: list[RowError] = []
    warnings: list[RowWarning] = []
    successful = failed = warning_rows = 0
    error_count = 0

    with LogContext.bind(
        batch_id=batch_id,
        tenant_id=options.tenant_id,
        profile_id=profile.id,
        actor_id=options.user_id,
        producer="ingestion",
    ):
        logger.info(
            "batch_commit_started",
            extra={
                "row_count": len(parsed_rows),
                "dry_run": options.dry_run,
                "continue_on_error": options.continue_on_error,
                "max_errors": options.max_errors,
                "auto_create": {
                    "funds": context.auto_create_funds,
                    "accounts": context.auto_create_accounts,
                    "vendors": context.auto_create_vendors,
                },
                "caller_context": dict(options.context),
            },
        )

        for row in parsed_rows:
            if not row.is_valid:
                failed += 1
                if not options.continue_on_error:
                    errors.extend(row.errors)
                    continue
                skipped.append(SkippedRow(
                    row_number=row.row_number,
                    reason=SKIP_REASON_VALIDATION,
                    raw=dict(row.raw),
                ))
                error_count += len(row.errors)
                if options.max_errors is not None and error_count >= options.max_errors:
                    errors.append(RowError(
                        row_number=row.row_number,
                        code="MAX_ERRORS_REACHED",
                        message=f"Maximum errors ({options.max_errors}) reached, stopping import",
                    ))
                    logger.warning(
                        "max_errors_reached",
                        extra={"row_number": row.row_number, "max_errors": options.max_errors},
                    )
                    break
                continue

            if options.dry_run:
                imported.append(copy.deepcopy(row.mapped))
                successful += 1
                continue

            payload = copy.deepcopy(row.mapped)
            payload["import_batch_id"] = batch_id
            payload["import_row_number"] = row.row_number
            imported.append(payload)
            successful += 1
            if row.warnings:
                warnings.extend(row.warnings)
                warning_rows += 1

        duration_ms = int((time.monotonic() - started) * 1000)
        summary = f"Imported {successful} of {len(parsed_rows)} rows in {duration_ms}ms"
        logger.info(
            "batch_committed",
            extra={
                "total_rows": len(parsed_rows),
                "successful_rows": successful,
                "failed_rows": failed,
                "skipped_rows": len(skipped),
                "warning_rows": warning_rows,
                "duration_ms": duration_ms,
                "dry_run": options.dry_run,
            },
        )

    return ImportResult(
        success=failed == 0,
        batch_id=batch_id,
        total_rows=len(parsed_rows),
        successful_rows=successful,
        failed_rows=failed,
        warning_rows=warning_rows,
        imported=tuple(imported),
        skipped=tuple(skipped),
        errors=tuple(errors),
        warnings=tuple(warnings),
        duration_ms=duration_ms,
        summary=summary,
    )
