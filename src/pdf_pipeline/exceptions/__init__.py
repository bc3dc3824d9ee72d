"""Custom exceptions for the PDF pipeline.

This module contains all custom exception classes used throughout
the document processing pipeline.
"""

from .exceptions import (
    ExtractionError,
    ProcessingTimeoutError,
    RuleEvaluationError,
    FormulaError,
    ValidationError,
    DatabaseError,
    StorageError,
    DocumentNotFoundError,
    CustomerNotFoundError
)

__all__ = [
    "ExtractionError",
    "ProcessingTimeoutError",
    "RuleEvaluationError",
    "FormulaError",
    "ValidationError",
    "DatabaseError",
    "StorageError",
    "DocumentNotFoundError",
    "CustomerNotFoundError"
]
