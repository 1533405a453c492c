"""
Per-column statistics over raw rows, for operator preview.

Type detection is a heuristic: string cells are classified by pattern,
already-typed cells (numbers, booleans, dates) by their runtime type.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from datetime import date
from decimal import Decimal
from typing import Any

from town_ingestion.domain.types import CellValue, ColumnStats, DetectedType, RawRow

_US_DATE = re.compile(r"^\d{1,2}/\d{1,2}/\d{2,4}$")
_ISO_DATE_PREFIX = re.compile(r"^\d{4}-\d{2}-\d{2}")
_NUMBER = re.compile(r"^-?\d+\.?\d*$")

DEFAULT_SAMPLE_LIMIT = 5


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


def _looks_like_date(value: CellValue) -> bool:
    s = str(value)
    return bool(_US_DATE.match(s) or _ISO_DATE_PREFIX.match(s))


def _looks_like_number(value: CellValue) -> bool:
    return bool(_NUMBER.match(str(value).replace("$", "").replace(",", "")))


def detect_type(non_empty: Sequence[CellValue]) -> DetectedType:
    """Classify a column from its non-empty values."""
    if not non_empty:
        return DetectedType.STRING
    first = non_empty[0]
    if isinstance(first, bool):
        return DetectedType.BOOLEAN if all(isinstance(v, bool) for v in non_empty) else DetectedType.MIXED
    if _is_number(first):
        return DetectedType.NUMBER if all(_is_number(v) for v in non_empty) else DetectedType.MIXED
    if isinstance(first, date):
        return DetectedType.DATE if all(isinstance(v, date) for v in non_empty) else DetectedType.MIXED
    if all(_looks_like_date(v) for v in non_empty):
        return DetectedType.DATE
    if all(_looks_like_number(v) for v in non_empty):
        return DetectedType.NUMBER
    return DetectedType.STRING


def _columns(rows: Sequence[RawRow]) -> list[str]:
    seen: dict[str, None] = {}
    for row in rows:
        for key in row:
            seen.setdefault(key, None)
    return list(seen)


def compute_column_stats(
    rows: Sequence[RawRow],
    sample_limit: int = DEFAULT_SAMPLE_LIMIT,
) -> tuple[ColumnStats, ...]:
    """One ColumnStats per column (first-seen order) over every raw row. Pure function."""
    stats: list[ColumnStats] = []
    for col in _columns(rows):
        values = [row.get(col) for row in rows]
        non_empty = [v for v in values if v is not None and v != ""]
        stats.append(ColumnStats(
            column_name=col,
            total_values=len(values),
            non_empty_values=len(non_empty),
            unique_values=len({str(v) for v in non_empty}),
            sample_values=tuple(non_empty[:sample_limit]),
            detected_type=detect_type(non_empty),
        ))
    return tuple(stats)
