"""
Source adapter protocol and probe DTO.

Contract:
    SourceAdapter.read() returns one raw row (column name -> string) per
    data line, in source order.
    SourceAdapter.probe() returns a quick snapshot: row count, columns,
    sample rows.

Architecture: town_ingestion/adapters. Pure text handling; no file system
or network access. Callers hand over the content they already hold.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from town_ingestion.domain.types import ParseOptions, RawRow


@runtime_checkable
class SourceAdapter(Protocol):
    """Protocol for turning raw source content into header-keyed rows."""

    def read(self, content: str | bytes, options: ParseOptions) -> list[RawRow]:
        """Return one dict per data row, in source order."""
        ...

    def probe(self, content: str | bytes, options: ParseOptions) -> "SourceProbe":
        """Quick probe: row count, detected columns, sample rows."""
        ...


@dataclass(frozen=True)
class SourceProbe:
    """Result of probing source content (row count, columns, first N rows)."""

    row_count: int
    columns: tuple[str, ...]
    sample_rows: tuple[RawRow, ...]  # First 5 rows; do not mutate
    encoding: str | None = None
    detected_delimiter: str | None = None
