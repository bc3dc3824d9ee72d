"""Structure analysis for extracted document text.

This module contains the StructureAnalyzer class: pure, stateless
transforms that find tables, key-value pairs, dates and numbers in
plain text. They are used to build the structured data passed to the
template engine and the generic fields of the basic CSV.
"""

import re
from datetime import date
from typing import Dict, List, Optional

from ..models import TableData

__all__ = ["StructureAnalyzer"]

_COLUMN_SPLIT_RE = re.compile(r"\s{2,}|\t+")

_KEY_VALUE_PATTERNS = (
    re.compile(r"^([^:]+):\s*(.+)$"),  # "Key: Value"
    re.compile(r"^([^=]+)=\s*(.+)$"),  # "Key = Value"
    re.compile(r"^([A-Z][A-Za-z\s]+)\s+([A-Za-z0-9\s\-$.,]+)$"),  # "Invoice Number INV-123"
)

_MONTHS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}
_MONTH_ALT = "Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec"

_MDY_RE = re.compile(r"\b(\d{1,2})[/\-](\d{1,2})[/\-](\d{4})\b")
_YMD_RE = re.compile(r"\b(\d{4})[/\-](\d{1,2})[/\-](\d{1,2})\b")
_DAY_MONTH_RE = re.compile(rf"\b(\d{{1,2}})\s+({_MONTH_ALT})[a-z]*\s+(\d{{4}})\b", re.I)
_MONTH_DAY_RE = re.compile(rf"\b({_MONTH_ALT})[a-z]*\s+(\d{{1,2}}),?\s+(\d{{4}})\b", re.I)

_CURRENCY_RE = re.compile(r"[\$£€¥]\s*?([\d,]+\.?\d*)")
_PERCENTAGE_RE = re.compile(r"([\d,]+\.?\d*)\s*%")
_GENERAL_NUMBER_RE = re.compile(r"\b([\d,]+\.?\d*)\b")

MAX_VALUE_LENGTH = 200


def _safe_date(year: int, month: int, day: int) -> Optional[date]:
    if not 1900 < year < 2100:
        return None
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _parse_amount(raw: str) -> Optional[float]:
    try:
        return float(raw.replace(",", ""))
    except ValueError:
        return None


class StructureAnalyzer:
    """Detects tables, key-value pairs, dates and numbers in plain text."""

    @staticmethod
    def looks_like_table_row(line: str) -> bool:
        """A row splits into at least two columns on 2+ spaces or tabs."""
        return len(StructureAnalyzer.parse_table_row(line)) >= 2

    @staticmethod
    def parse_table_row(line: str) -> List[str]:
        return [col.strip() for col in _COLUMN_SPLIT_RE.split(line) if col.strip()]

    @staticmethod
    def extract_tables(text: str) -> List[TableData]:
        """Group consecutive row-like lines into tables.

        A run of rows becomes a table once it has at least two rows; the
        first row is used as the header row. Positions are expressed in
        line numbers.

        Args:
            text: Plain document or page text

        Returns:
            Detected tables in document order
        """
        tables: List[TableData] = []
        lines = text.split("\n")
        current: List[List[str]] = []

        def flush(end_line: int) -> None:
            if len(current) >= 2:
                tables.append(TableData(
                    rows=list(current),
                    headers=list(current[0]),
                    position={
                        "x": 0,
                        "y": end_line - len(current),
                        "width": 100,
                        "height": len(current),
                    },
                ))

        for index, raw_line in enumerate(lines):
            line = raw_line.strip()
            if StructureAnalyzer.looks_like_table_row(line):
                current.append(StructureAnalyzer.parse_table_row(line))
            elif current:
                flush(index)
                current = []

        flush(len(lines))
        return tables

    @staticmethod
    def detect_key_value_pairs(text: str) -> Dict[str, str]:
        """Find "Key: Value" style pairs, one per line.

        Keys are lower-cased with whitespace replaced by underscores. Later
        lines overwrite earlier ones with the same key.
        """
        pairs: Dict[str, str] = {}
        for raw_line in text.split("\n"):
            line = raw_line.strip()
            for pattern in _KEY_VALUE_PATTERNS:
                match = pattern.match(line)
                if match:
                    key = re.sub(r"\s+", "_", match.group(1).strip().lower())
                    value = match.group(2).strip()
                    if 0 < len(value) < MAX_VALUE_LENGTH:
                        pairs[key] = value
                    break
        return pairs

    @staticmethod
    def extract_dates(text: str) -> List[date]:
        """Find dates in common numeric and written-month formats.

        Returns:
            Unique dates in the order they were first found
        """
        found: List[date] = []

        for match in _MDY_RE.finditer(text):
            found.append(_safe_date(int(match.group(3)), int(match.group(1)), int(match.group(2))))
        for match in _YMD_RE.finditer(text):
            found.append(_safe_date(int(match.group(1)), int(match.group(2)), int(match.group(3))))
        for match in _DAY_MONTH_RE.finditer(text):
            month = _MONTHS[match.group(2)[:3].lower()]
            found.append(_safe_date(int(match.group(3)), month, int(match.group(1))))
        for match in _MONTH_DAY_RE.finditer(text):
            month = _MONTHS[match.group(1)[:3].lower()]
            found.append(_safe_date(int(match.group(3)), month, int(match.group(2))))

        unique: List[date] = []
        for value in found:
            if value is not None and value not in unique:
                unique.append(value)
        return unique

    @staticmethod
    def extract_numbers(text: str) -> Dict[str, List[float]]:
        """Find currency amounts, percentages and general positive numbers."""
        numbers: Dict[str, List[float]] = {"currency": [], "percentages": [], "general": []}

        for match in _CURRENCY_RE.finditer(text):
            value = _parse_amount(match.group(1))
            if value is not None:
                numbers["currency"].append(value)

        for match in _PERCENTAGE_RE.finditer(text):
            value = _parse_amount(match.group(1))
            if value is not None:
                numbers["percentages"].append(value)

        for match in _GENERAL_NUMBER_RE.finditer(text):
            value = _parse_amount(match.group(1))
            if value is not None and value > 0:
                numbers["general"].append(value)

        return numbers
