"""Validators module for the PDF pipeline.

This module contains validation classes for uploaded PDF files and
for field values produced by the template engine, plus the value
parsing helpers they share.
"""

from .validators import PDFValidator
from .field_validator import FieldValidator
from .values import (
    parse_leading_float,
    to_number,
    parse_date,
    is_currency,
    is_percentage
)

__all__ = [
    "PDFValidator",
    "FieldValidator",
    "parse_leading_float",
    "to_number",
    "parse_date",
    "is_currency",
    "is_percentage"
]
