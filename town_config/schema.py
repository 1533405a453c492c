"""
Import configuration schema.

Human-authored, reviewable source artifacts: YAML fragments are parsed into
these types by the loader and compiled into ImportProfile values by
``town_ingestion.profiles.compile_profile_from_def``.

Key distinction:
  ImportProfileDef = source artifact (strings, as written in YAML)
  ImportProfile    = runtime artifact (enums, transforms resolved, frozen)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

# ---------------------------------------------------------------------------
# Import profile definitions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ColumnMappingDef:
    """Single column mapping: source column -> target field with a transform."""

    source: str | int
    target: str
    transform: str | None = None  # Catalog name, e.g. "parse_amount"
    required: bool = False
    default: Any = None
    has_default: bool = False  # YAML `default: null` is a real default
    pattern: str | None = None


@dataclass(frozen=True)
class ValidationRuleDef:
    """Single row or batch validation rule."""

    id: str
    rule_type: str  # "required", "format", "range", "lookup", "custom"
    fields: tuple[str, ...] = ()
    severity: str = "error"
    description: str = ""
    message: str | None = None
    params: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ImportProfileDef:
    """Declarative import profile: source format, column mappings, rules."""

    id: str
    name: str
    vendor: str = "CUSTOM"
    file_type: str = "CSV"
    data_type: str = "TRANSACTIONS"
    description: str = ""
    tenant_id: str | None = None
    parse_options: dict[str, Any] = field(default_factory=dict)
    mappings: tuple[ColumnMappingDef, ...] = ()
    validations: tuple[ValidationRuleDef, ...] = ()


# ---------------------------------------------------------------------------
# Pipeline settings
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ImportSettings:
    """Operator-facing knobs for the validation pass."""

    preview_limit: int = 10
    sample_limit: int = 5
    max_workers: int | None = None  # >1 maps rows on a thread pool

    def __post_init__(self):
        if self.preview_limit < 0:
            raise ValueError("preview_limit cannot be negative")
        if self.sample_limit < 0:
            raise ValueError("sample_limit cannot be negative")
        if self.max_workers is not None and self.max_workers < 1:
            raise ValueError("max_workers must be at least 1 when set")
