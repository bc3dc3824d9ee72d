"""Custom exceptions for the PDF pipeline.

This module contains all custom exception classes used throughout
the document processing pipeline. Only extraction, timeout, storage
and database failures are fatal to a processing job; rule level
errors are caught per field by the template engine.
"""

__all__ = [
    "ExtractionError",
    "ProcessingTimeoutError",
    "RuleEvaluationError",
    "FormulaError",
    "ValidationError",
    "DatabaseError",
    "StorageError",
    "DocumentNotFoundError",
    "CustomerNotFoundError",
]


class ExtractionError(Exception):
    """Exception raised when no usable text can be extracted from a document.

    Raised only after both direct text extraction and the OCR fallback
    have failed to produce any text.
    """
    pass


class ProcessingTimeoutError(Exception):
    """Exception raised when a processing stage exceeds its time budget."""
    pass


class RuleEvaluationError(Exception):
    """Exception raised when a single extraction rule cannot be evaluated.

    The template engine catches this per field and records it as an
    error or a warning depending on whether the field is required.
    """
    pass


class FormulaError(RuleEvaluationError):
    """Exception raised when a calculation rule fails to evaluate."""
    pass


class ValidationError(Exception):
    """Exception raised during input validation.

    This exception is raised when input data fails validation checks
    such as file format, size, or duplicate template mappings.
    """
    pass


class DatabaseError(Exception):
    """Exception raised during database operations.

    This exception is raised when there are issues with database
    connectivity, queries, or data persistence.
    """
    pass


class StorageError(Exception):
    """Exception raised when an output artifact cannot be written."""
    pass


class DocumentNotFoundError(Exception):
    """Exception raised when a document id does not exist."""
    pass


class CustomerNotFoundError(Exception):
    """Exception raised when a customer id does not exist."""
    pass
