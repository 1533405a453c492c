"""
town_ingestion.domain.types -- Pure frozen dataclasses for the import pipeline.

ZERO I/O. Every value that flows between the parser, the mapping engine and
the commit engine is defined here.

Cell values are a closed variant: ``str | int | Decimal | bool | date | None``.
Amounts are always ``Decimal``.  Raw rows map column name -> cell value;
mapped rows map target field -> cell value, with nested dicts for dotted
target paths.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, TypeAlias


CellValue: TypeAlias = str | int | Decimal | bool | date | None
RawRow: TypeAlias = dict[str, CellValue]
MappedRow: TypeAlias = dict[str, Any]


# =============================================================================
# Enumerations
# =============================================================================


class ImportFileType(str, Enum):
    """Source file formats. Only CSV has a parser."""

    CSV = "CSV"
    XLSX = "XLSX"
    XLS = "XLS"
    JSON = "JSON"
    OFX = "OFX"  # Open Financial Exchange (bank feeds)
    QIF = "QIF"  # Quicken Interchange Format
    GATEWAY = "GATEWAY"  # Indiana Gateway exports


class ImportDataType(str, Enum):
    """Kind of financial record a profile produces."""

    TRANSACTIONS = "TRANSACTIONS"
    BUDGET = "BUDGET"
    CHART_OF_ACCOUNTS = "CHART_OF_ACCOUNTS"
    VENDORS = "VENDORS"
    FUNDS = "FUNDS"
    OPENING_BALANCES = "OPENING_BALANCES"


class KnownVendor(str, Enum):
    """Legacy systems with pre-configured profiles."""

    GENERIC = "GENERIC"
    QUICKBOOKS = "QUICKBOOKS"
    SAGE = "SAGE"
    CASELLE = "CASELLE"
    BS_AND_A = "BS_AND_A"
    KEYSTONE = "KEYSTONE"
    ACCUFUND = "ACCUFUND"
    MUNIS = "MUNIS"
    INCODE = "INCODE"
    GATEWAY = "GATEWAY"
    CUSTOM = "CUSTOM"  # User-defined mapping


class TransformName(str, Enum):
    """Closed catalog of value transforms (see mapping.transforms)."""

    NONE = "none"
    PARSE_DATE = "parse_date"
    PARSE_DATE_US = "parse_date_us"  # MM/DD/YYYY
    PARSE_DATE_ISO = "parse_date_iso"  # YYYY-MM-DD
    PARSE_AMOUNT = "parse_amount"
    PARSE_AMOUNT_NEGATIVE_PARENS = "parse_amount_negative_parens"  # (100.00) = -100.00
    PARSE_BOOLEAN = "parse_boolean"
    PARSE_INTEGER = "parse_integer"
    TRIM = "trim"
    UPPERCASE = "uppercase"
    LOWERCASE = "lowercase"
    FUND_CODE_PAD = "fund_code_pad"  # 3 digits
    ACCOUNT_CODE_PAD = "account_code_pad"  # 4 digits
    MAP_TRANSACTION_TYPE = "map_transaction_type"


class RuleType(str, Enum):
    REQUIRED = "required"
    FORMAT = "format"
    RANGE = "range"
    LOOKUP = "lookup"
    CUSTOM = "custom"


class Severity(str, Enum):
    ERROR = "error"  # Row becomes invalid
    WARNING = "warning"  # Reported; row stays valid


class RuleStatus(str, Enum):
    PASSED = "passed"
    FAILED = "failed"
    NOT_EVALUATED = "not_evaluated"  # No evaluator for this rule kind; never fails a row


class TransactionType(str, Enum):
    """Canonical ledger transaction types."""

    RECEIPT = "RECEIPT"  # Money coming in
    DISBURSEMENT = "DISBURSEMENT"  # Money going out
    TRANSFER = "TRANSFER"  # Internal transfer between funds
    ADJUSTMENT = "ADJUSTMENT"  # Corrections, year-end adjustments
    ENCUMBRANCE = "ENCUMBRANCE"  # Commitment of funds (purchase orders)
    LIQUIDATION = "LIQUIDATION"  # Release of encumbrance


class DetectedType(str, Enum):
    """Column type inferred for operator preview."""

    STRING = "string"
    NUMBER = "number"
    DATE = "date"
    BOOLEAN = "boolean"
    MIXED = "mixed"


# =============================================================================
# Profile model
# =============================================================================


class _NoDefault:
    """Marker for a ColumnMapping without a default (None is a valid default)."""

    _instance: _NoDefault | None = None

    def __new__(cls) -> _NoDefault:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NO_DEFAULT"

    def __bool__(self) -> bool:
        return False


NO_DEFAULT: Any = _NoDefault()


@dataclass(frozen=True)
class ColumnMapping:
    """Single column mapping: source column -> target field via a transform."""

    source_column: str | int  # Column name, or zero-based position
    target_field: str  # Dot-separated for nested targets, e.g. "address.city"
    transform: TransformName = TransformName.NONE
    default: Any = NO_DEFAULT
    required: bool = False
    validation_pattern: str | None = None  # Full-match regex on the raw value

    @property
    def has_default(self) -> bool:
        return self.default is not NO_DEFAULT


@dataclass(frozen=True)
class ParseOptions:
    """Options for the tabular parser only."""

    delimiter: str = ","
    has_header: bool = True
    skip_rows: int = 0  # Lines skipped before the header / first data line
    encoding: str = "utf-8"
    trim_values: bool = True

    def __post_init__(self):
        if not isinstance(self.delimiter, str) or len(self.delimiter) != 1:
            raise ValueError(f"delimiter must be a single character, got {self.delimiter!r}")
        if self.delimiter in ('"', "\r", "\n"):
            raise ValueError(f"delimiter cannot be {self.delimiter!r}")
        if self.skip_rows < 0:
            raise ValueError("skip_rows cannot be negative")

    @property
    def header_offset(self) -> int:
        """Source lines preceding the first data row."""
        return self.skip_rows + (1 if self.has_header else 0)


@dataclass(frozen=True)
class ValidationRule:
    """Declarative row rule evaluated against the mapped row."""

    id: str  # Becomes the error/warning code
    description: str
    fields: tuple[str, ...] = ()
    rule_type: RuleType = RuleType.CUSTOM
    severity: Severity = Severity.ERROR
    params: Mapping[str, Any] = field(default_factory=dict)
    message: str | None = None  # Overrides description in diagnostics

    @property
    def failure_message(self) -> str:
        return self.message or self.description


@dataclass(frozen=True)
class ImportProfile:
    """Immutable declarative description of one source format."""

    id: str
    name: str
    vendor: KnownVendor
    file_type: ImportFileType
    data_type: ImportDataType
    mappings: tuple[ColumnMapping, ...] = ()
    parse_options: ParseOptions = field(default_factory=ParseOptions)
    validation_rules: tuple[ValidationRule, ...] = ()
    is_system: bool = False
    tenant_id: str | None = None  # Owner of a custom profile
    description: str = ""


# =============================================================================
# Mapping context (caller-owned lookups)
# =============================================================================


def account_key(fund_code: Any, account_code: Any) -> str:
    """Composite key used by MappingContext.accounts_by_key."""
    return f"{fund_code}:{account_code}"


def normalize_vendor_name(name: Any) -> str:
    """Key used by MappingContext.vendors_by_name: collapsed whitespace, casefolded."""
    return " ".join(str(name).split()).casefold()


@dataclass
class MappingContext:
    """
    Per-import lookups supplied by the caller.

    The pipeline only reads this object.  The auto_create_* flags are a
    contract for the persistence collaborator; lookup rules treat an unknown
    code as acceptable when the matching flag is set.
    """

    tenant_id: str
    funds_by_code: dict[str, Any] = field(default_factory=dict)
    accounts_by_key: dict[str, Any] = field(default_factory=dict)
    vendors_by_name: dict[str, Any] = field(default_factory=dict)
    transaction_type_map: dict[str, TransactionType] | None = None
    auto_create_funds: bool = False
    auto_create_accounts: bool = False
    auto_create_vendors: bool = False

    @classmethod
    def empty(cls, tenant_id: str, *, auto_create: bool = False) -> MappingContext:
        """Context with no lookups (quick imports and previews)."""
        return cls(
            tenant_id=tenant_id,
            auto_create_funds=auto_create,
            auto_create_accounts=auto_create,
            auto_create_vendors=auto_create,
        )

    def has_fund(self, code: Any) -> bool:
        return str(code) in self.funds_by_code

    def has_account(self, fund_code: Any, account_code: Any) -> bool:
        return account_key(fund_code, account_code) in self.accounts_by_key

    def has_vendor(self, name: Any) -> bool:
        return normalize_vendor_name(name) in self.vendors_by_name


# =============================================================================
# Diagnostics and parsed rows
# =============================================================================


@dataclass(frozen=True)
class RowError:
    """Row-scoped error. row_number 0 marks a file-level problem."""

    row_number: int
    code: str
    message: str
    field: str | None = None
    value: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "row_number": self.row_number,
            "code": self.code,
            "message": self.message,
            "field": self.field,
            "value": self.value,
        }


@dataclass(frozen=True)
class RowWarning:
    """Row-scoped warning; never affects validity."""

    row_number: int
    code: str
    message: str
    field: str | None = None
    auto_resolved: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "row_number": self.row_number,
            "code": self.code,
            "message": self.message,
            "field": self.field,
            "auto_resolved": self.auto_resolved,
        }


@dataclass(frozen=True)
class ParsedRow:
    """One source row after mapping and rule evaluation."""

    row_number: int  # 1-based source line, counting skipped and header lines
    raw: RawRow
    mapped: MappedRow
    is_valid: bool
    errors: tuple[RowError, ...] = ()
    warnings: tuple[RowWarning, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "row_number": self.row_number,
            "raw": to_jsonable(self.raw),
            "mapped": to_jsonable(self.mapped),
            "is_valid": self.is_valid,
            "errors": [e.to_dict() for e in self.errors],
            "warnings": [w.to_dict() for w in self.warnings],
        }


@dataclass(frozen=True)
class SkippedRow:
    row_number: int
    reason: str
    raw: RawRow | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"row_number": self.row_number, "reason": self.reason, "raw": to_jsonable(self.raw)}


@dataclass(frozen=True)
class ColumnStats:
    """Per-column statistics over the raw rows."""

    column_name: str
    total_values: int
    non_empty_values: int
    unique_values: int
    sample_values: tuple[CellValue, ...]  # First 5 non-empty values
    detected_type: DetectedType

    def to_dict(self) -> dict[str, Any]:
        return {
            "column_name": self.column_name,
            "total_values": self.total_values,
            "non_empty_values": self.non_empty_values,
            "unique_values": self.unique_values,
            "sample_values": to_jsonable(list(self.sample_values)),
            "detected_type": self.detected_type.value,
        }


# =============================================================================
# Results and options
# =============================================================================


@dataclass(frozen=True)
class ImportValidationResult:
    """Result of a validation pass (operator preview)."""

    is_valid: bool
    total_rows: int
    valid_rows: int
    error_rows: int
    warning_rows: int
    errors: tuple[RowError, ...] = ()
    warnings: tuple[RowWarning, ...] = ()
    preview: tuple[ParsedRow, ...] = ()  # First N parsed rows
    rows: tuple[ParsedRow, ...] = ()  # Every parsed row, input to commit
    column_stats: tuple[ColumnStats, ...] = ()
    unevaluated_rules: tuple[str, ...] = ()  # Rule ids with no evaluator
    summary: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "total_rows": self.total_rows,
            "valid_rows": self.valid_rows,
            "error_rows": self.error_rows,
            "warning_rows": self.warning_rows,
            "errors": [e.to_dict() for e in self.errors],
            "warnings": [w.to_dict() for w in self.warnings],
            "preview": [r.to_dict() for r in self.preview],
            "column_stats": [s.to_dict() for s in self.column_stats],
            "unevaluated_rules": list(self.unevaluated_rules),
            "summary": self.summary,
        }


@dataclass(frozen=True)
class ImportOptions:
    """Partial-failure policy for one commit invocation."""

    tenant_id: str
    profile_id: str
    continue_on_error: bool = False
    max_errors: int | None = None  # Error ceiling; only with continue_on_error
    dry_run: bool = False
    user_id: str | None = None
    context: Mapping[str, Any] = field(default_factory=dict)  # Extra log fields

    def __post_init__(self):
        if self.max_errors is not None and self.max_errors < 1:
            raise ValueError("max_errors must be at least 1 when set")


@dataclass(frozen=True)
class ImportResult:
    """Result of one commit invocation. Payloads are not persisted here."""

    success: bool
    batch_id: str
    total_rows: int
    successful_rows: int
    failed_rows: int
    warning_rows: int
    imported: tuple[MappedRow, ...] = ()
    skipped: tuple[SkippedRow, ...] = ()
    errors: tuple[RowError, ...] = ()
    warnings: tuple[RowWarning, ...] = ()
    duration_ms: int = 0
    summary: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "batch_id": self.batch_id,
            "total_rows": self.total_rows,
            "successful_rows": self.successful_rows,
            "failed_rows": self.failed_rows,
            "warning_rows": self.warning_rows,
            "imported": to_jsonable(list(self.imported)),
            "skipped": [s.to_dict() for s in self.skipped],
            "errors": [e.to_dict() for e in self.errors],
            "warnings": [w.to_dict() for w in self.warnings],
            "duration_ms": self.duration_ms,
            "summary": self.summary,
        }


def to_jsonable(value: Any) -> Any:
    """Convert cell values and nested rows to JSON-safe primitives."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, bool) or value is None or isinstance(value, (int, str)):
        return value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Mapping):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    return str(value)
