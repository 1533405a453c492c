"""Source adapters for the import pipeline (text only, no I/O)."""

from town_ingestion.adapters.base import SourceAdapter, SourceProbe
from town_ingestion.adapters.csv_adapter import (
    CsvSourceAdapter,
    decode_content,
    options_from_mapping,
    parse_csv_text,
    split_line,
)

__all__ = [
    "SourceAdapter",
    "SourceProbe",
    "CsvSourceAdapter",
    "decode_content",
    "options_from_mapping",
    "parse_csv_text",
    "split_line",
]
