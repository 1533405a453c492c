"""Pure domain types and rule evaluation for the import pipeline. ZERO I/O."""

from town_ingestion.domain.rules import (
    RuleOutcome,
    evaluate_batch_rule,
    evaluate_row_rules,
    evaluate_rule,
    validate_batch_uniqueness,
)
from town_ingestion.domain.types import (
    NO_DEFAULT,
    ColumnMapping,
    ColumnStats,
    DetectedType,
    ImportDataType,
    ImportFileType,
    ImportOptions,
    ImportProfile,
    ImportResult,
    ImportValidationResult,
    KnownVendor,
    MappingContext,
    ParsedRow,
    ParseOptions,
    RowError,
    RowWarning,
    RuleStatus,
    RuleType,
    Severity,
    SkippedRow,
    TransactionType,
    TransformName,
    ValidationRule,
    account_key,
    normalize_vendor_name,
)

__all__ = [
    "NO_DEFAULT",
    "ColumnMapping",
    "ColumnStats",
    "DetectedType",
    "ImportDataType",
    "ImportFileType",
    "ImportOptions",
    "ImportProfile",
    "ImportResult",
    "ImportValidationResult",
    "KnownVendor",
    "MappingContext",
    "ParsedRow",
    "ParseOptions",
    "RowError",
    "RowWarning",
    "RuleOutcome",
    "RuleStatus",
    "RuleType",
    "Severity",
    "SkippedRow",
    "TransactionType",
    "TransformName",
    "ValidationRule",
    "account_key",
    "normalize_vendor_name",
    "evaluate_batch_rule",
    "evaluate_row_rules",
    "evaluate_rule",
    "validate_batch_uniqueness",
]
