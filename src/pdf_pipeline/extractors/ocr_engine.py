"""OCR engine for the PDF pipeline.

This module contains the OCREngine class that renders PDF pages with
PyMuPDF and recognizes them with Tesseract. It is the slow path of text
extraction and is bounded by a caller supplied timeout.
"""

import io
import logging
import time
from typing import Any, Dict, List, Optional, Tuple

import pymupdf
import pytesseract
from PIL import Image

from ..config import Config
from ..exceptions import ExtractionError, ProcessingTimeoutError
from ..models import DocumentMetadata, ExtractedDocument, PageData, WordBox
from .structure import StructureAnalyzer
from .metadata import parse_pdf_date

__all__ = ["OCREngine"]

logger = logging.getLogger(__name__)

POINTS_PER_INCH = 72.0


class OCREngine:
    """Recognizes text in rendered PDF pages using Tesseract.

    Attributes:
        language: Tesseract language code(s), e.g. 'eng' or 'eng+deu'
        dpi: Resolution used when rendering pages to images
    """

    def __init__(self, language: str = Config.OCR_LANGUAGE, dpi: int = Config.OCR_DPI) -> None:
        self.language: str = language
        self.dpi: int = dpi

    def recognize(self, pdf_bytes: bytes, timeout: Optional[float] = None) -> ExtractedDocument:
        """Run OCR over every page of a PDF.

        Args:
            pdf_bytes: Raw PDF file content as bytes
            timeout: Overall time budget in seconds, None for no limit

        Returns:
            ExtractedDocument whose confidence is the mean Tesseract word
            confidence normalized to 0-1

        Raises:
            ProcessingTimeoutError: If recognition exceeds the time budget
            ExtractionError: If the PDF cannot be rendered or Tesseract fails
        """
        try:
            doc = pymupdf.open(stream=pdf_bytes, filetype="pdf")
        except Exception as e:
            raise ExtractionError(f"OCR could not open document: {str(e)}") from e

        deadline: Optional[float] = time.monotonic() + timeout if timeout else None
        pages: List[PageData] = []
        page_texts: List[str] = []
        all_confidences: List[float] = []

        try:
            metadata = self._read_metadata(doc.metadata or {}, doc.page_count)

            for index, page in enumerate(doc):
                remaining: Optional[float] = None
                if deadline is not None:
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        raise ProcessingTimeoutError(
                            f"OCR timed out after {timeout} seconds on page {index + 1}"
                        )

                image = self._render_page(page)
                text, words, confidences = self._recognize_image(image, remaining)
                page_texts.append(text)
                all_confidences.extend(confidences)

                if text.strip():
                    page_confidence = (
                        sum(confidences) / len(confidences) / 100 if confidences else 0.0
                    )
                    pages.append(PageData(
                        page_number=index + 1,
                        text=text.strip(),
                        confidence=page_confidence,
                        tables=StructureAnalyzer.extract_tables(text),
                        words=words,
                    ))
        finally:
            doc.close()

        confidence = sum(all_confidences) / len(all_confidences) / 100 if all_confidences else 0.0
        logger.info("OCR recognized %d pages (confidence %.2f)", len(pages), confidence)

        return ExtractedDocument(
            text="\n".join(page_texts),
            pages=pages,
            metadata=metadata,
            confidence=max(0.0, min(1.0, confidence)),
            method="ocr",
        )

    def _render_page(self, page: Any) -> Image.Image:
        pixmap = page.get_pixmap(dpi=self.dpi)
        return Image.open(io.BytesIO(pixmap.tobytes("png")))

    def _recognize_image(self, image: Image.Image,
                         timeout: Optional[float]) -> Tuple[str, List[WordBox], List[float]]:
        """Recognize one page image.

        Returns:
            Tuple of (page text, word boxes in PDF points, word confidences 0-100)
        """
        try:
            data: Dict[str, List[Any]] = pytesseract.image_to_data(
                image,
                lang=self.language,
                output_type=pytesseract.Output.DICT,
                timeout=timeout or 0,
            )
        except RuntimeError as e:
            # pytesseract kills the tesseract process and raises RuntimeError on timeout
            if "timeout" in str(e).lower():
                raise ProcessingTimeoutError(f"OCR timed out: {str(e)}") from e
            raise ExtractionError(f"OCR extraction failed: {str(e)}") from e
        except (pytesseract.TesseractError, pytesseract.TesseractNotFoundError, OSError) as e:
            raise ExtractionError(f"OCR extraction failed: {str(e)}") from e

        scale = POINTS_PER_INCH / self.dpi
        lines: Dict[Tuple[int, int, int], List[str]] = {}
        words: List[WordBox] = []
        confidences: List[float] = []

        for i, raw_text in enumerate(data.get("text", [])):
            word = (raw_text or "").strip()
            if not word:
                continue
            key = (data["block_num"][i], data["par_num"][i], data["line_num"][i])
            lines.setdefault(key, []).append(word)

            left, top = float(data["left"][i]), float(data["top"][i])
            width, height = float(data["width"][i]), float(data["height"][i])
            words.append(WordBox(
                text=word,
                x0=left * scale,
                top=top * scale,
                x1=(left + width) * scale,
                bottom=(top + height) * scale,
            ))

            conf = float(data["conf"][i])
            if conf >= 0:
                confidences.append(conf)

        text = "\n".join(" ".join(tokens) for tokens in lines.values())
        return text, words, confidences

    @staticmethod
    def _read_metadata(raw: Dict[str, Any], page_count: int) -> DocumentMetadata:
        return DocumentMetadata(
            total_pages=page_count,
            author=raw.get("author") or None,
            creator=raw.get("creator") or None,
            creation_date=parse_pdf_date(raw.get("creationDate")),
            modification_date=parse_pdf_date(raw.get("modDate")),
        )
