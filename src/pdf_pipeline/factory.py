"""Default wiring for the PDF pipeline.

This module builds a ProcessingOrchestrator backed by the SQLAlchemy
repositories, pdfplumber/Tesseract text extraction and the CSV writer.
"""

from typing import Optional

from .config import Config
from .database import CustomerRepository, DatabaseManager, DocumentRepository, TemplateRepository
from .detection import CustomerDetector
from .extractors import OCREngine, TextExtractor
from .processors import CSVWriter, ProcessingOrchestrator
from .templates import TemplateEngine, TemplateStore
from .validators import PDFValidator

__all__ = ["create_orchestrator"]


def create_orchestrator(db_manager: Optional[DatabaseManager] = None,
                        output_dir: Optional[str] = None) -> ProcessingOrchestrator:
    """Create an orchestrator with the default collaborators.

    Args:
        db_manager: Database to use; defaults to Config.DATABASE_URL
        output_dir: Directory for CSV files; defaults to OUTPUT_DIR/csv

    Returns:
        A ProcessingOrchestrator ready for initialize()
    """
    db_manager = db_manager or DatabaseManager(Config.DATABASE_URL)
    return ProcessingOrchestrator(
        text_extractor=TextExtractor(OCREngine(Config.OCR_LANGUAGE, Config.OCR_DPI)),
        customer_detector=CustomerDetector(CustomerRepository(db_manager)),
        template_engine=TemplateEngine(TemplateStore(TemplateRepository(db_manager))),
        repository=DocumentRepository(db_manager),
        csv_writer=CSVWriter(output_dir),
        validator=PDFValidator(),
        timeout=Config.PROCESSING_TIMEOUT,
    )
