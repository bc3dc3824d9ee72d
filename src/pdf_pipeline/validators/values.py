"""Value parsing helpers shared by validation, calculation and CSV output.

All helpers are pure functions that return None instead of raising when
a value cannot be interpreted.
"""

import re
from datetime import date, datetime
from typing import Any, Optional

__all__ = [
    "CURRENCY_RE",
    "PERCENTAGE_RE",
    "parse_leading_float",
    "to_number",
    "parse_date",
    "is_currency",
    "is_percentage",
]

CURRENCY_RE = re.compile(r"^\$?\d+(\.\d*)?$")
PERCENTAGE_RE = re.compile(r"^\d+(\.\d*)?%$")

_LEADING_FLOAT_RE = re.compile(r"^\s*[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")
_CURRENCY_SYMBOLS_RE = re.compile(r"[\$£€¥,%\s]")

_DATE_FORMATS = (
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%m-%d-%Y",
    "%d.%m.%Y",
    "%d %B %Y",
    "%d %b %Y",
    "%B %d, %Y",
    "%b %d, %Y",
    "%B %d %Y",
    "%b %d %Y",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%dT%H:%M:%S.%f",
    "%Y-%m-%dT%H:%M:%S%z",
)


def parse_leading_float(value: Any) -> Optional[float]:
    """Parse the numeric prefix of a value, the way lenient parsers do.

    "12.5kg" -> 12.5, "abc" -> None.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    match = _LEADING_FLOAT_RE.match(str(value))
    if not match:
        return None
    return float(match.group(0))


def to_number(value: Any) -> Optional[float]:
    """Convert an extracted value to a number for arithmetic.

    Currency symbols, thousands separators, percent signs and whitespace
    are removed first. Returns None for anything that is not numeric.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    cleaned = _CURRENCY_SYMBOLS_RE.sub("", str(value))
    if not cleaned:
        return None
    try:
        return float(cleaned)
    except ValueError:
        return None


def parse_date(value: Any) -> Optional[date]:
    """Parse a value in one of the supported date formats."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if value is None:
        return None
    text = " ".join(str(value).split())
    if not text:
        return None
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def is_currency(value: Any) -> bool:
    return bool(CURRENCY_RE.match(str(value).replace(",", "")))


def is_percentage(value: Any) -> bool:
    return bool(PERCENTAGE_RE.match(str(value)))
