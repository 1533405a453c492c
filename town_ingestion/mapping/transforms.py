"""
Transform catalog: total, pure value conversions selected by TransformName.

Every transform accepts any cell value (string, number, bool, date or None)
and returns a converted value, or None when the value cannot be converted.
No transform raises.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from town_ingestion.domain.types import CellValue, TransactionType, TransformName

# Two-digit years below the pivot land in the 2000s, the rest in the 1900s
_YEAR_PIVOT = 50

_US_DATE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{1,4})$")
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")
_BOOLEAN_TRUE = frozenset({"true", "yes", "1", "y", "x"})

# Fallback formats for the general date-literal parse (after ISO)
_GENERAL_DATE_FORMATS = (
    "%Y/%m/%d",
    "%Y.%m.%d",
    "%b %d, %Y",
    "%B %d, %Y",
    "%d %b %Y",
    "%d %B %Y",
    "%b %d %Y",
    "%B %d %Y",
)

# Checked in order; first category with a matching keyword wins
_TRANSACTION_KEYWORDS: tuple[tuple[TransactionType, tuple[str, ...]], ...] = (
    (TransactionType.RECEIPT, ("receipt", "deposit", "income", "revenue", "credit")),
    (TransactionType.TRANSFER, ("transfer", "xfer")),
    (TransactionType.ADJUSTMENT, ("adjust", "correction", "void")),
)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else str(value).strip()


# -----------------------------------------------------------------------------
# Dates
# -----------------------------------------------------------------------------


def _parse_general_date(s: str) -> date | None:
    """ISO-like literal first, then a few unambiguous textual layouts."""
    try:
        return date.fromisoformat(s)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(s.replace("Z", "+00:00")).date()
    except ValueError:
        pass
    for fmt in _GENERAL_DATE_FORMATS:
        try:
            return datetime.strptime(s, fmt).date()
        except ValueError:
            continue
    return None


def parse_date_iso(value: CellValue) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if value is None or isinstance(value, bool):
        return None
    s = _text(value)
    if not s:
        return None
    return _parse_general_date(s)


def parse_date_us(value: CellValue) -> date | None:
    """MM/DD/YYYY (two-digit years pivot at 50), then the general parse."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if value is None or isinstance(value, bool):
        return None
    s = _text(value)
    if not s:
        return None

    m = _US_DATE.match(s)
    if m:
        month, day, year = (int(g) for g in m.groups())
        if year < 100:
            year += 2000 if year < _YEAR_PIVOT else 1900
        try:
            return date(year, month, day)
        except ValueError:
            return None

    return _parse_general_date(s)


# -----------------------------------------------------------------------------
# Numbers and booleans
# -----------------------------------------------------------------------------


def parse_amount(value: CellValue) -> Decimal | None:
    """Strip $ and thousands separators; (123.45) means -123.45."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(str(value)) if value == value and abs(value) != float("inf") else None

    s = _text(value).replace("$", "").replace(",", "").strip()
    if not s:
        return None
    if s.startswith("(") and s.endswith(")"):
        s = "-" + s[1:-1].strip()
    try:
        amount = Decimal(s)
    except (InvalidOperation, ValueError):
        return None
    return amount if amount.is_finite() else None


def parse_amount_negative_parens(value: CellValue) -> Decimal | None:
    # Parenthesised negatives are already handled by parse_amount
    return parse_amount(value)


def parse_boolean(value: CellValue) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, Decimal) and value.is_nan():
        return False
    if _is_number(value):
        return value != 0
    if value is None:
        return False
    return _text(value).lower() in _BOOLEAN_TRUE


def parse_integer(value: CellValue) -> int | None:
    """Round numbers half-up; parse the leading integer of a string."""
    if value is None or isinstance(value, bool):
        return None
    if _is_number(value):
        try:
            return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
        except (InvalidOperation, ValueError):
            return None
    m = _LEADING_INT.match(str(value))
    return int(m.group(1)) if m else None


# -----------------------------------------------------------------------------
# Strings and codes
# -----------------------------------------------------------------------------


def trim(value: CellValue) -> CellValue:
    return value.strip() if isinstance(value, str) else value


def uppercase(value: CellValue) -> CellValue:
    return value.upper() if isinstance(value, str) else value


def lowercase(value: CellValue) -> CellValue:
    return value.lower() if isinstance(value, str) else value


def _pad_code(value: CellValue, width: int) -> str | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return str(value).zfill(width) if value >= 0 else str(value)
    s = _text(value)
    if not s:
        return None
    if s.isascii() and s.isdigit():
        return str(int(s)).zfill(width)
    return s


def fund_code_pad(value: CellValue) -> str | None:
    return _pad_code(value, 3)


def account_code_pad(value: CellValue) -> str | None:
    return _pad_code(value, 4)


def map_transaction_type(value: CellValue) -> TransactionType:
    """Keyword classification; DISBURSEMENT when nothing matches."""
    if isinstance(value, TransactionType):
        return value
    if value is None:
        return TransactionType.DISBURSEMENT
    s = _text(value).lower()
    if not s:
        return TransactionType.DISBURSEMENT
    for txn_type, keywords in _TRANSACTION_KEYWORDS:
        if any(k in s for k in keywords):
            return txn_type
    return TransactionType.DISBURSEMENT


def identity(value: CellValue) -> CellValue:
    return value


# -----------------------------------------------------------------------------
# Dispatch
# -----------------------------------------------------------------------------


TRANSFORMS: dict[TransformName, Callable[[CellValue], Any]] = {
    TransformName.NONE: identity,
    TransformName.PARSE_DATE: parse_date_us,
    TransformName.PARSE_DATE_US: parse_date_us,
    TransformName.PARSE_DATE_ISO: parse_date_iso,
    TransformName.PARSE_AMOUNT: parse_amount,
    TransformName.PARSE_AMOUNT_NEGATIVE_PARENS: parse_amount_negative_parens,
    TransformName.PARSE_BOOLEAN: parse_boolean,
    TransformName.PARSE_INTEGER: parse_integer,
    TransformName.TRIM: trim,
    TransformName.UPPERCASE: uppercase,
    TransformName.LOWERCASE: lowercase,
    TransformName.FUND_CODE_PAD: fund_code_pad,
    TransformName.ACCOUNT_CODE_PAD: account_code_pad,
    TransformName.MAP_TRANSACTION_TYPE: map_transaction_type,
}


def apply_transform(value: CellValue, transform: TransformName) -> Any:
    """Apply a catalog transform. Pure function."""
    return TRANSFORMS[transform](value)


def resolve_transform_name(name: str | TransformName | None) -> TransformName | None:
    """Look up a transform by enum value or member name; None if unknown.

    Accepts "parse_date_us", "PARSE_DATE_US" and the legacy camelCase names
    ("parseDateUS") that older profile exports carry.
    """
    if name is None:
        return TransformName.NONE
    if isinstance(name, TransformName):
        return name
    key = str(name).strip()
    if not key:
        return TransformName.NONE
    try:
        return TransformName(key.lower())
    except ValueError:
        pass
    if key.upper() in TransformName.__members__:
        return TransformName[key.upper()]
    return _LEGACY_NAMES.get(key)


_LEGACY_NAMES: dict[str, TransformName] = {
    "parseDate": TransformName.PARSE_DATE,
    "parseDateUS": TransformName.PARSE_DATE_US,
    "parseDateISO": TransformName.PARSE_DATE_ISO,
    "parseAmount": TransformName.PARSE_AMOUNT,
    "parseAmountNegativeParens": TransformName.PARSE_AMOUNT_NEGATIVE_PARENS,
    "parseBoolean": TransformName.PARSE_BOOLEAN,
    "parseInteger": TransformName.PARSE_INTEGER,
    "fundCodePad": TransformName.FUND_CODE_PAD,
    "accountCodePad": TransformName.ACCOUNT_CODE_PAD,
    "mapTransactionType": TransformName.MAP_TRANSACTION_TYPE,
}
