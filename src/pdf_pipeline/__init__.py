"""PDF Pipeline - customer-aware PDF to CSV document processing.

This package turns uploaded PDF documents into structured CSV output:
text is extracted directly or through OCR, the owning customer is
detected, a customer template extracts and validates fields, and the
result is written as CSV alongside a persisted processing record.

The package is organized into the following modules:
- config: Application configuration and settings
- exceptions: Custom exception classes
- models: Domain entities and database records
- database: Database management and repositories
- validators: PDF file and field value validation
- extractors: Text extraction, OCR and structure analysis
- detection: Customer detection and pattern learning
- templates: Template selection and field extraction
- processors: Orchestration, batch processing and CSV output
"""

__version__ = "1.0.0"
__description__ = "Customer-aware PDF to CSV processing pipeline"

from .config import Config
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
from .models import (
    Base,
    ProcessingRequest,
    ProcessingResponse,
    ProcessingResult,
    ProcessingStats,
    Template,
    CustomerDetectionResult
)
from .database import DatabaseManager, CustomerRepository, TemplateRepository, DocumentRepository
from .validators import PDFValidator, FieldValidator
from .extractors import TextExtractor, OCREngine, StructureAnalyzer
from .detection import CustomerDetector
from .templates import TemplateEngine, TemplateStore, FormulaEvaluator
from .processors import CSVWriter, ProcessingOrchestrator, BatchProcessor
from .factory import create_orchestrator

__all__ = [
    # Configuration
    "Config",
    # Exceptions
    "ExtractionError",
    "ProcessingTimeoutError",
    "RuleEvaluationError",
    "FormulaError",
    "ValidationError",
    "DatabaseError",
    "StorageError",
    "DocumentNotFoundError",
    "CustomerNotFoundError",
    # Models
    "Base",
    "ProcessingRequest",
    "ProcessingResponse",
    "ProcessingResult",
    "ProcessingStats",
    "Template",
    "CustomerDetectionResult",
    # Database
    "DatabaseManager",
    "CustomerRepository",
    "TemplateRepository",
    "DocumentRepository",
    # Validators
    "PDFValidator",
    "FieldValidator",
    # Extractors
    "TextExtractor",
    "OCREngine",
    "StructureAnalyzer",
    # Detection
    "CustomerDetector",
    # Templates
    "TemplateEngine",
    "TemplateStore",
    "FormulaEvaluator",
    # Processors
    "CSVWriter",
    "ProcessingOrchestrator",
    "BatchProcessor",
    # Factory
    "create_orchestrator"
]
