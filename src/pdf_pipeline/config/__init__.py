"""Configuration module for the PDF pipeline.

This module contains all configuration parameters including storage
locations, OCR settings, processing timeouts and the scoring thresholds
used by the detection and template stages.
"""

import os

from dotenv import load_dotenv

__all__ = ["Config"]

# Load environment variables
load_dotenv()


class Config:
    """Configuration class containing application settings and constants.

    Values that depend on the deployment (database, output directory,
    OCR settings, timeouts) are read from the environment; the scoring
    constants are fixed.
    """

    # Database configuration
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///pdf_pipeline.db")

    # Output storage
    OUTPUT_DIR: str = os.getenv("UPLOAD_DIR", "./uploads")

    # File validation limits
    MAX_FILE_SIZE: int = 50 * 1024 * 1024  # 50MB maximum file size
    MIN_FILE_SIZE: int = 100  # 100 bytes minimum file size

    # Processing limits
    PROCESSING_TIMEOUT: float = float(os.getenv("PROCESSING_TIMEOUT", "120"))
    MAX_CONCURRENT_DOCUMENTS: int = int(os.getenv("MAX_CONCURRENT_DOCUMENTS", "5"))

    # OCR configuration
    OCR_LANGUAGE: str = os.getenv("OCR_LANGUAGE", "eng")
    OCR_DPI: int = int(os.getenv("OCR_DPI", "300"))

    # Text extraction
    DIRECT_TEXT_CONFIDENCE: float = 0.95
    MIN_DIRECT_TEXT_LENGTH: int = 100
    UNRELIABLE_TEXT_CONFIDENCE: float = 0.5
    MIN_DOCUMENT_TEXT_LENGTH: int = 10

    # Customer detection
    EXACT_MATCH_THRESHOLD: float = 0.5
    PATTERN_MATCH_THRESHOLD: float = 0.6
    FUZZY_MATCH_THRESHOLD: float = 0.5
    FUZZY_MATCH_CAP: float = 0.8
    FILENAME_MATCH_THRESHOLD: float = 0.5
    FILENAME_MATCH_CAP: float = 0.9
    MAX_LEARNED_PATTERNS: int = 3

    # Template selection and output
    TEMPLATE_SELECTION_THRESHOLD: float = 0.3
    BASIC_CSV_CONFIDENCE: float = 0.3
    NO_TEMPLATE_CONFIDENCE_FACTOR: float = 0.5
