"""Text extractor for the PDF pipeline.

This module contains the TextExtractor class that turns raw PDF bytes
into an ExtractedDocument. Direct extraction with pdfplumber is tried
first; when it yields too little or mostly non-alphabetic text the
extractor falls back to OCR.
"""

import dataclasses
import io
import logging
from typing import Any, Dict, List, Optional

import pdfplumber
from langfuse import observe

from ..config import Config
from ..exceptions import ExtractionError, ProcessingTimeoutError
from ..models import DocumentMetadata, ExtractedDocument, PageData, WordBox
from .metadata import parse_pdf_date
from .ocr_engine import OCREngine
from .structure import StructureAnalyzer

__all__ = ["TextExtractor"]

logger = logging.getLogger(__name__)


class TextExtractor:
    """Extracts text content and page structure from PDF files.

    Attributes:
        ocr_engine: Engine used when direct extraction is unreliable
    """

    def __init__(self, ocr_engine: Optional[OCREngine] = None) -> None:
        self.ocr_engine: OCREngine = ocr_engine or OCREngine()

    @observe(name="text_extraction")
    def extract(self, pdf_bytes: bytes, timeout: Optional[float] = None) -> ExtractedDocument:
        """Extract text from a PDF, falling back to OCR when needed.

        Direct extraction is accepted only when it produced more than
        MIN_DIRECT_TEXT_LENGTH characters of meaningful text. If OCR then
        fails or returns nothing, whatever direct text exists is returned
        with a reduced confidence.

        Args:
            pdf_bytes: Raw PDF file content as bytes
            timeout: Time budget in seconds for the OCR path

        Returns:
            ExtractedDocument for this processing attempt

        Raises:
            ExtractionError: If neither direct extraction nor OCR yields any text
            ProcessingTimeoutError: If OCR exceeds the time budget
        """
        direct: Optional[ExtractedDocument] = None
        try:
            direct = self._extract_direct(pdf_bytes)
        except ExtractionError as e:
            logger.warning("Direct text extraction failed: %s", e)

        if (direct is not None
                and len(direct.text) > Config.MIN_DIRECT_TEXT_LENGTH
                and self.is_text_meaningful(direct.text)):
            return direct

        logger.info("Direct text extraction insufficient, using OCR...")
        try:
            ocr_result = self.ocr_engine.recognize(pdf_bytes, timeout=timeout)
            if ocr_result.text.strip():
                return ocr_result
            logger.warning("OCR produced no text")
        except ProcessingTimeoutError:
            raise
        except ExtractionError as e:
            logger.warning("OCR fallback failed: %s", e)

        if direct is not None and direct.text.strip():
            logger.warning("Using unreliable direct text extraction result")
            return self._downgrade(direct, Config.UNRELIABLE_TEXT_CONFIDENCE)

        raise ExtractionError("No text could be extracted from the document")

    @staticmethod
    def is_text_meaningful(text: str) -> bool:
        """Check that most longer tokens are purely alphabetic words.

        Tokens longer than two characters are considered; more than half
        of them must consist of letters only.
        """
        words = [word for word in text.split() if len(word) > 2]
        if not words:
            return False
        meaningful = [word for word in words if word.isascii() and word.isalpha()]
        return len(meaningful) / len(words) > 0.5

    def _extract_direct(self, pdf_bytes: bytes) -> ExtractedDocument:
        """Extract embedded text, word boxes and metadata with pdfplumber.

        Pages that fail individually are skipped with a warning.

        Raises:
            ExtractionError: If the PDF cannot be opened or has no pages
        """
        try:
            with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
                if not pdf.pages:
                    raise ExtractionError("PDF contains no pages")

                text_parts: List[str] = []
                pages: List[PageData] = []
                for i, page in enumerate(pdf.pages):
                    try:
                        page_text: str = page.extract_text() or ""
                        words = [
                            WordBox(
                                text=w["text"],
                                x0=float(w["x0"]),
                                top=float(w["top"]),
                                x1=float(w["x1"]),
                                bottom=float(w["bottom"]),
                            )
                            for w in page.extract_words()
                        ]
                    except Exception as e:
                        logger.warning("Failed to process page %d: %s", i + 1, e)
                        continue

                    text_parts.append(page_text)
                    if page_text.strip():
                        pages.append(PageData(
                            page_number=i + 1,
                            text=page_text.strip(),
                            confidence=Config.DIRECT_TEXT_CONFIDENCE,
                            tables=StructureAnalyzer.extract_tables(page_text),
                            words=words,
                        ))

                metadata = self._read_metadata(pdf.metadata or {}, len(pdf.pages))

        except ExtractionError:
            raise
        except Exception as e:
            raise ExtractionError(f"PDF reading error: {str(e)}") from e

        return ExtractedDocument(
            text="\n".join(text_parts),
            pages=pages,
            metadata=metadata,
            confidence=Config.DIRECT_TEXT_CONFIDENCE,
            method="direct",
        )

    @staticmethod
    def _read_metadata(raw: Dict[str, Any], page_count: int) -> DocumentMetadata:
        return DocumentMetadata(
            total_pages=page_count,
            author=raw.get("Author") or None,
            creator=raw.get("Creator") or None,
            creation_date=parse_pdf_date(raw.get("CreationDate")),
            modification_date=parse_pdf_date(raw.get("ModDate")),
        )

    @staticmethod
    def _downgrade(document: ExtractedDocument, confidence: float) -> ExtractedDocument:
        pages = [dataclasses.replace(page, confidence=confidence) for page in document.pages]
        return dataclasses.replace(document, pages=pages, confidence=confidence)
