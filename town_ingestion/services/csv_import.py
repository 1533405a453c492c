"""
CSV quick-import helpers.

Convenience wrappers for callers that want parse -> validate in one call
and a flat success / warnings / errors summary.  Quick imports never reach
the commit service: they are previews with no batch id and no dry-run
toggle.  Use ImportService.run_import for the full pipeline.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any

from town_kernel.exceptions import TownKernelError
from town_kernel.logging_config import get_logger

from town_ingestion.adapters.csv_adapter import split_line
from town_ingestion.domain.types import (
    ColumnMapping,
    ImportDataType,
    ImportFileType,
    ImportProfile,
    ImportValidationResult,
    KnownVendor,
    MappingContext,
    ParseOptions,
    RawRow,
    TransactionType,
    TransformName,
)
from town_ingestion.profiles.builtin import GENERIC_TRANSACTION_CSV, get_built_in_profile
from town_ingestion.profiles.registry import ProfileRegistry
from town_ingestion.services.import_service import ImportService

logger = get_logger("ingestion.csv_import")

# Targets a custom CSV profile always requires
REQUIRED_TRANSACTION_FIELDS = frozenset({"transaction_date", "amount", "description"})


# ============================================================================
# Simple result types
# ============================================================================


@dataclass(frozen=True)
class SimpleImportedTransaction:
    """Flattened view of one valid transaction row."""

    date: date | None
    amount: Decimal | None
    type: TransactionType
    description: str | None = None
    fund_code: str | None = None
    account_code: str | None = None
    check_number: str | None = None
    vendor_name: str | None = None
    external_ref: str | None = None
    raw: RawRow = field(default_factory=dict)


@dataclass(frozen=True)
class SimpleIssue:
    """Row number (0 for the whole file) and a display message."""

    row_number: int
    message: str


@dataclass(frozen=True)
class SimpleImportResult:
    tenant_id: str
    profile_id: str
    imported_transactions: tuple[SimpleImportedTransaction, ...] = ()
    warnings: tuple[SimpleIssue, ...] = ()
    errors: tuple[SimpleIssue, ...] = ()
    success: bool = False
    summary: str = ""


def _failed(tenant_id: str, profile: ImportProfile, message: str, summary: str) -> SimpleImportResult:
    return SimpleImportResult(
        tenant_id=tenant_id,
        profile_id=profile.id,
        errors=(SimpleIssue(0, message),),
        success=False,
        summary=summary,
    )


def _to_simple_transaction(mapped: Mapping[str, Any], raw: RawRow) -> SimpleImportedTransaction:
    txn_type = mapped.get("type")
    return SimpleImportedTransaction(
        date=mapped.get("transaction_date"),
        amount=mapped.get("amount"),
        type=txn_type if isinstance(txn_type, TransactionType) else TransactionType.DISBURSEMENT,
        description=mapped.get("description"),
        fund_code=mapped.get("fund_code"),
        account_code=mapped.get("account_code"),
        check_number=mapped.get("check_number"),
        vendor_name=mapped.get("vendor_name"),
        external_ref=mapped.get("external_ref"),
        raw=dict(raw),
    )


# ============================================================================
# Quick import
# ============================================================================


def import_transactions_from_csv(
    tenant_id: str,
    profile: ImportProfile,
    raw_csv: str,
) -> SimpleImportResult:
    """
    Parse and validate CSV text against ``profile`` in one call.

    Runs against an empty MappingContext that allows auto-creation, so
    lookup rules never reject unknown codes here.  Transactions are built
    from the validation preview only (the first rows of the file).
    """
    if not raw_csv or not raw_csv.strip():
        return _failed(tenant_id, profile, "Empty CSV content", "Import failed: empty CSV content")

    service = ImportService()
    try:
        rows = service.parse_file(raw_csv.strip(), profile)
    except (TownKernelError, ValueError) as e:
        logger.warning("quick_import_parse_failed", extra={"profile_id": profile.id, "reason": str(e)})
        return _failed(tenant_id, profile, f"Parse error: {e}", f"Import failed: {e}")

    if not rows:
        return _failed(tenant_id, profile, "No data rows found in CSV", "Import failed: no data rows found")

    context = MappingContext.empty(tenant_id, auto_create=True)
    validation = service.validate(rows, profile, context)

    errors = tuple(SimpleIssue(e.row_number, e.message) for e in validation.errors)
    warnings = tuple(SimpleIssue(w.row_number, w.message) for w in validation.warnings)
    transactions = tuple(
        _to_simple_transaction(row.mapped, row.raw) for row in validation.preview if row.is_valid
    )

    success = not errors
    if success:
        summary = f"Successfully processed {len(transactions)} transactions"
    else:
        summary = f"Import completed with {len(errors)} errors and {len(warnings)} warnings"

    logger.info(
        "quick_import_completed",
        extra={
            "tenant_id": tenant_id,
            "profile_id": profile.id,
            "transactions": len(transactions),
            "error_count": len(errors),
            "warning_count": len(warnings),
        },
    )
    return SimpleImportResult(
        tenant_id=tenant_id,
        profile_id=profile.id,
        imported_transactions=transactions,
        warnings=warnings,
        errors=errors,
        success=success,
        summary=summary,
    )


def import_generic_transaction_csv(tenant_id: str, raw_csv: str) -> SimpleImportResult:
    """Quick import with the built-in generic transaction profile."""
    return import_transactions_from_csv(tenant_id, GENERIC_TRANSACTION_CSV, raw_csv)


def validate_csv(profile: ImportProfile, raw_csv: str) -> ImportValidationResult:
    """Validate CSV text without importing; lookups are empty and nothing auto-creates."""
    return ImportService().preview(raw_csv, profile, MappingContext.empty("validation"))


def get_csv_headers(raw_csv: str, delimiter: str = ",") -> list[str]:
    """Column names from the first line, honouring quoted headers."""
    lines = raw_csv.splitlines()
    if not lines:
        return []
    first = lines[0].strip()
    if not first:
        return []
    return [h.strip() for h in split_line(first, delimiter)]


# ============================================================================
# Custom profiles
# ============================================================================


def infer_transform(target_field: str) -> TransformName:
    """
    Guess a transform from a target field name.

    Heuristic only: any name containing "date" parses US dates and any name
    containing "amount" parses amounts, so an oddly named field can get the
    wrong transform.  Callers needing certainty should build ColumnMappings
    themselves.
    """
    lowered = target_field.lower()
    if "date" in lowered:
        return TransformName.PARSE_DATE_US
    if "amount" in lowered:
        return TransformName.PARSE_AMOUNT
    if target_field == "type":
        return TransformName.MAP_TRANSACTION_TYPE
    if target_field == "fund_code":
        return TransformName.FUND_CODE_PAD
    if target_field == "account_code":
        return TransformName.ACCOUNT_CODE_PAD
    return TransformName.TRIM


def create_custom_csv_profile(
    profile_id: str,
    name: str,
    column_mappings: Mapping[str, str],
    tenant_id: str | None = None,
) -> ImportProfile:
    """Transaction profile from a source column -> target field mapping."""
    mappings = tuple(
        ColumnMapping(
            source_column=source,
            target_field=target,
            transform=infer_transform(target),
            required=target in REQUIRED_TRANSACTION_FIELDS,
        )
        for source, target in column_mappings.items()
    )
    return ImportProfile(
        id=profile_id,
        name=name,
        description=f"Custom CSV profile: {name}",
        vendor=KnownVendor.CUSTOM,
        file_type=ImportFileType.CSV,
        data_type=ImportDataType.TRANSACTIONS,
        is_system=False,
        tenant_id=tenant_id,
        parse_options=ParseOptions(),
        mappings=mappings,
    )


def get_available_profiles(
    tenant_id: str | None = None,
    registry: ProfileRegistry | None = None,
) -> list[ImportProfile]:
    return (registry if registry is not None else ProfileRegistry()).list_profiles(tenant_id)


def get_profile(profile_id: str) -> ImportProfile | None:
    """Built-in profile by id (custom profiles live in a ProfileRegistry)."""
    return get_built_in_profile(profile_id)
