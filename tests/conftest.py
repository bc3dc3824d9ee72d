"""Pytest configuration and fixtures for the PDF pipeline test suite.

This module provides shared fixtures and test configuration for all test modules.
"""

import os

# Tracing must be off before the package (and langfuse) is imported
os.environ.setdefault("LANGFUSE_TRACING_ENABLED", "false")
os.environ.setdefault("LANGFUSE_PUBLIC_KEY", "test-public")
os.environ.setdefault("LANGFUSE_SECRET_KEY", "test-secret")

from typing import Any, Dict, List

import pytest

from pdf_pipeline import (
    Config,
    CustomerRepository,
    DatabaseManager,
    DocumentRepository,
    TemplateRepository,
)


@pytest.fixture
def temp_db_url(tmp_path) -> str:
    """Database URL of a fresh SQLite file for one test."""
    return f"sqlite:///{tmp_path / 'test.db'}"


@pytest.fixture
def test_db_manager(temp_db_url: str) -> DatabaseManager:
    """Create a DatabaseManager instance with a temporary database."""
    manager = DatabaseManager(database_url=temp_db_url)
    yield manager
    if manager._engine is not None:
        manager._engine.dispose()


@pytest.fixture
def customer_repository(test_db_manager: DatabaseManager) -> CustomerRepository:
    return CustomerRepository(test_db_manager)


@pytest.fixture
def template_repository(test_db_manager: DatabaseManager) -> TemplateRepository:
    return TemplateRepository(test_db_manager)


@pytest.fixture
def document_repository(test_db_manager: DatabaseManager) -> DocumentRepository:
    return DocumentRepository(test_db_manager)


@pytest.fixture
def sample_pdf_bytes() -> bytes:
    """Create sample PDF bytes for testing."""
    # Minimal valid PDF content
    return b"""%PDF-1.4
1 0 obj
<< /Type /Catalog /Pages 2 0 R >>
endobj
2 0 obj
<< /Type /Pages /Kids [3 0 R] /Count 1 >>
endobj
3 0 obj
<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] /Contents 4 0 R >>
endobj
4 0 obj
<< /Length 44 >>
stream
BT
/F1 12 Tf
100 700 Td
(Invoice #INV-1001) Tj
ET
endstream
endobj
trailer
<< /Root 1 0 R >>
%%EOF"""


@pytest.fixture
def invoice_text() -> str:
    """Text of a simple invoice as produced by direct extraction."""
    return (
        "ACME Corp\n"
        "Invoice #INV-1001\n"
        "Date: 2024-01-05\n"
        "Account: ACM-7781\n"
        "Total: $250.00\n"
    )


@pytest.fixture
def invalid_pdf_bytes() -> bytes:
    """Invalid PDF bytes for testing validation."""
    return b"This is not a PDF file" + b"x" * Config.MIN_FILE_SIZE


@pytest.fixture
def too_large_pdf_bytes() -> bytes:
    """PDF bytes that exceed size limit."""
    return b"%PDF-1.4" + b"x" * (Config.MAX_FILE_SIZE + 1)


@pytest.fixture
def too_small_pdf_bytes() -> bytes:
    """PDF bytes that are below minimum size."""
    return b"x" * (Config.MIN_FILE_SIZE - 1)


@pytest.fixture
def invoice_rules() -> List[Dict[str, Any]]:
    """Keyword rules for the invoice number, date and total."""
    return [
        {
            "fieldName": "invoice_number",
            "extractionType": "keyword",
            "keywordConfig": {"keywords": ["Invoice #"], "direction": "same_line"},
            "validation": {"required": True, "dataType": "string"},
        },
        {
            "fieldName": "invoice_date",
            "extractionType": "keyword",
            "keywordConfig": {"keywords": ["Date:"], "direction": "same_line"},
            "validation": {"required": False, "dataType": "date"},
        },
        {
            "fieldName": "total",
            "extractionType": "keyword",
            "keywordConfig": {"keywords": ["Total:"], "direction": "same_line"},
            "validation": {"required": True, "dataType": "currency"},
        },
    ]
