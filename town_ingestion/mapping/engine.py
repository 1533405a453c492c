"""
Mapping engine: pure transformation from a raw row to a mapped row.

For each column mapping: resolve the source value, fall back to the default,
apply the transform, check the pattern, then write the target path.  Field
problems become RowErrors; nothing here raises for bad data.  ZERO I/O.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from town_ingestion.domain.types import (
    CellValue,
    ColumnMapping,
    MappedRow,
    MappingContext,
    RawRow,
    RowError,
    TransformName,
)
from town_ingestion.mapping.transforms import apply_transform


# -----------------------------------------------------------------------------
# Result types
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class MappingResult:
    """Result of applying column mappings to one raw row."""

    success: bool
    mapped_data: MappedRow = field(default_factory=dict)
    errors: tuple[RowError, ...] = ()


# -----------------------------------------------------------------------------
# Helpers (pure)
# -----------------------------------------------------------------------------


def is_empty(value: Any) -> bool:
    return value is None or value == ""


def resolve_source_value(raw: RawRow, source: str | int) -> CellValue:
    """Exact column match, then case-insensitive; int sources are positions."""
    if isinstance(source, int) and not isinstance(source, bool):
        values = list(raw.values())
        return values[source] if 0 <= source < len(values) else None
    if source in raw:
        return raw[source]
    wanted = source.lower()
    for key, value in raw.items():
        if key.lower() == wanted:
            return value
    return None


def set_path(target: dict[str, Any], path: str, value: Any) -> None:
    """Write value at a dotted path, creating intermediate dicts."""
    parts = path.split(".")
    node = target
    for part in parts[:-1]:
        child = node.get(part)
        if not isinstance(child, dict):
            child = {}
            node[part] = child
        node = child
    node[parts[-1]] = value


def _lookup_transaction_type(value: CellValue, context: MappingContext | None) -> Any:
    if context is None or not context.transaction_type_map or not isinstance(value, str):
        return None
    label = value.strip().lower()
    for key, txn_type in context.transaction_type_map.items():
        if key.strip().lower() == label:
            return txn_type
    return None


def transform_value(value: CellValue, mapping: ColumnMapping, context: MappingContext | None = None) -> Any:
    """Apply the mapping's transform; caller-supplied labels win for transaction types."""
    if mapping.transform == TransformName.MAP_TRANSACTION_TYPE:
        mapped = _lookup_transaction_type(value, context)
        if mapped is not None:
            return mapped
    return apply_transform(value, mapping.transform)


def _source_label(source: str | int) -> str:
    return source if isinstance(source, str) else f"#{source}"


# -----------------------------------------------------------------------------
# Apply mapping (pure)
# -----------------------------------------------------------------------------


def apply_mapping(
    raw_data: RawRow,
    mappings: tuple[ColumnMapping, ...],
    context: MappingContext | None = None,
    row_number: int = 0,
) -> MappingResult:
    """
    Apply column mappings to a raw row. Pure function.

    Missing required (no default) -> REQUIRED_FIELD and the target stays unset.
    Required whose transform yields nothing -> TRANSFORM_FAILED.
    Optional with no value and no default -> the transform runs on the absent
    value (map_transaction_type gives DISBURSEMENT, most others give None).
    Malformed validation_pattern -> PATTERN_MISMATCH for that field only.
    """
    errors: list[RowError] = []
    mapped: MappedRow = {}

    for cm in mappings:
        label = _source_label(cm.source_column)
        value = resolve_source_value(raw_data, cm.source_column)

        # Missing value
        if is_empty(value):
            if cm.has_default:
                value = cm.default
            elif cm.required:
                errors.append(RowError(
                    row_number=row_number,
                    code="REQUIRED_FIELD",
                    message=f"Required field '{cm.target_field}' is missing (source: {label})",
                    field=cm.target_field,
                ))
                continue

        if cm.validation_pattern and not is_empty(value):
            try:
                matched = re.fullmatch(cm.validation_pattern, str(value)) is not None
                message = f"Value for '{cm.target_field}' does not match pattern {cm.validation_pattern!r}"
            except re.error as e:
                matched = False
                message = f"Invalid pattern {cm.validation_pattern!r} for '{cm.target_field}': {e}"
            if not matched:
                errors.append(RowError(
                    row_number=row_number,
                    code="PATTERN_MISMATCH",
                    message=message,
                    field=cm.target_field,
                    value=str(value),
                ))
                continue

        result = transform_value(value, cm, context)

        if cm.required and is_empty(result):
            errors.append(RowError(
                row_number=row_number,
                code="TRANSFORM_FAILED",
                message=f"Failed to transform '{label}' to {cm.target_field}",
                field=cm.target_field,
                value=None if value is None else str(value),
            ))
            continue

        set_path(mapped, cm.target_field, result)

    return MappingResult(
        success=len(errors) == 0,
        mapped_data=mapped,
        errors=tuple(errors),
    )
