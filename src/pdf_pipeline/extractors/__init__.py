"""Extractors module for the PDF pipeline.

This module contains text extraction from PDFs (direct extraction with
an OCR fallback) and the stateless structure analysis applied to the
extracted text.
"""

from .metadata import parse_pdf_date
from .structure import StructureAnalyzer
from .ocr_engine import OCREngine
from .text_extractor import TextExtractor

__all__ = ["TextExtractor", "OCREngine", "StructureAnalyzer", "parse_pdf_date"]
