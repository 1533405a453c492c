"""
CSV source adapter.

Splits content on line boundaries (blank lines dropped), skips
``skip_rows`` leading lines, then splits each line with csv.reader so that
double-quote enclosure and doubled-quote escaping are honoured.  Quoted
fields may not span lines.  Handles BOM via utf-8-sig when the encoding is
utf-8.
"""

from __future__ import annotations

import csv
import re
from typing import Any

from town_kernel.exceptions import SourceDecodeError
from town_kernel.logging_config import get_logger

from town_ingestion.adapters.base import SourceProbe
from town_ingestion.domain.types import ParseOptions, RawRow

logger = get_logger("ingestion.csv_adapter")

_LINE_BREAK = re.compile(r"\r?\n")
_SAMPLE_SIZE = 5


def _get_encoding(options: ParseOptions) -> str:
    enc = options.encoding or "utf-8"
    if enc.lower().replace("_", "-") in ("utf-8", "utf8"):
        return "utf-8-sig"  # Strip BOM if present
    return enc


def decode_content(content: str | bytes, options: ParseOptions) -> str:
    """Return text; bytes are decoded with the options' encoding."""
    if isinstance(content, str):
        return content[1:] if content.startswith("\ufeff") else content
    encoding = _get_encoding(options)
    try:
        return bytes(content).decode(encoding)
    except (UnicodeDecodeError, LookupError) as e:
        raise SourceDecodeError(options.encoding, str(e)) from e


def split_line(line: str, delimiter: str = ",") -> list[str]:
    """Split one delimited line, honouring quotes and "" escapes."""
    if not line:
        return [""]
    return next(csv.reader([line], delimiter=delimiter, quotechar='"', doublequote=True, strict=False), [""])


def _content_lines(text: str, options: ParseOptions) -> list[str]:
    lines = [line for line in _LINE_BREAK.split(text) if line.strip()]
    return lines[options.skip_rows:]


def _dedupe_headers(names: list[str]) -> list[str]:
    headers: list[str] = []
    for name in names:
        key = name
        base = key
        cnt = 0
        while key in headers:
            cnt += 1
            key = f"{base}_{cnt}"
        headers.append(key)
    return headers


def _headers_and_data(lines: list[str], options: ParseOptions) -> tuple[list[str], list[str]]:
    first = split_line(lines[0], options.delimiter)
    if options.has_header:
        names = [h.strip() for h in first] if options.trim_values else first
        return _dedupe_headers(names), lines[1:]
    return [f"Column{i + 1}" for i in range(len(first))], lines


def _to_row(line: str, headers: list[str], options: ParseOptions) -> RawRow:
    values = split_line(line, options.delimiter)
    row: RawRow = {}
    for j, name in enumerate(headers):
        value = values[j] if j < len(values) else ""
        row[name] = value.strip() if options.trim_values else value
    return row


def parse_csv_text(text: str, options: ParseOptions) -> list[RawRow]:
    """Parse CSV text into header-keyed rows, in input order. Pure function."""
    lines = _content_lines(text, options)
    if not lines:
        return []
    headers, data_lines = _headers_and_data(lines, options)
    return [_to_row(line, headers, options) for line in data_lines]


class CsvSourceAdapter:
    """Read delimited text as one dict per row."""

    def read(self, content: str | bytes, options: ParseOptions) -> list[RawRow]:
        text = decode_content(content, options)
        rows = parse_csv_text(text, options)
        logger.debug(
            "csv_parsed",
            extra={"row_count": len(rows), "delimiter": options.delimiter, "skip_rows": options.skip_rows},
        )
        return rows

    def probe(self, content: str | bytes, options: ParseOptions) -> SourceProbe:
        text = decode_content(content, options)
        lines = _content_lines(text, options)
        if not lines:
            return SourceProbe(
                row_count=0,
                columns=(),
                sample_rows=(),
                encoding=options.encoding,
                detected_delimiter=options.delimiter,
            )
        headers, data_lines = _headers_and_data(lines, options)
        sample = tuple(_to_row(line, headers, options) for line in data_lines[:_SAMPLE_SIZE])
        return SourceProbe(
            row_count=len(data_lines),
            columns=tuple(headers),
            sample_rows=sample,
            encoding=options.encoding,
            detected_delimiter=options.delimiter,
        )


def options_from_mapping(data: dict[str, Any] | None) -> ParseOptions:
    """Build ParseOptions from a loose dict (config or caller supplied)."""
    data = data or {}
    return ParseOptions(
        delimiter=data.get("delimiter", ","),
        has_header=bool(data.get("has_header", True)),
        skip_rows=int(data.get("skip_rows", 0)),
        encoding=data.get("encoding", "utf-8"),
        trim_values=bool(data.get("trim_values", True)),
    )
