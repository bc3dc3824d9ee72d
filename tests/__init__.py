"""Test package for the PDF pipeline.

This package contains unit tests for all components of the pipeline
including validators, text extraction, customer detection, templates,
database operations, CSV output and the processing orchestrator.

Test Structure:
- conftest.py: Shared fixtures and test configuration
- test_validators.py: Tests for PDF and field validation
- test_extractors.py: Tests for text extraction, OCR and structure analysis
- test_customer_detector.py: Tests for customer detection and learning
- test_formula.py: Tests for the formula evaluator
- test_templates.py: Tests for field extraction, mappings and the template engine
- test_csv_writer.py: Tests for CSV output
- test_database.py: Tests for database operations
- test_orchestrator.py: Tests for the processing orchestrator
- test_batch_processor.py: Tests for concurrent batch processing

Usage:
    Run all tests: pytest
    Run specific module: pytest tests/test_templates.py
    Run with coverage: pytest --cov=src/pdf_pipeline
"""

__version__ = "1.0.0"
