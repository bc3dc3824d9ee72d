"""Upload checks run on raw PDF bytes before text extraction.

Each check looks at one property of the upload and returns a problem
description, or None when the upload passes. PDFValidator runs every
check so a rejected upload reports all of its problems at once.
"""

from pathlib import PurePath
from typing import Callable, List, Optional, Tuple

from ..config import Config
from ..exceptions import ValidationError

__all__ = ["PDFValidator", "UploadCheck"]

PDF_MAGIC = b"%PDF"
# Some producers emit a BOM or whitespace before the header
HEADER_WINDOW = 1024

UploadCheck = Callable[[bytes, str], Optional[str]]


def check_extension(pdf_bytes: bytes, filename: str) -> Optional[str]:
    suffix = PurePath(filename).suffix
    if suffix.lower() != ".pdf":
        return f"Invalid file extension. Expected .pdf, got: {suffix or '(none)'}"
    return None


def check_size(pdf_bytes: bytes, filename: str) -> Optional[str]:
    size = len(pdf_bytes)
    if size > Config.MAX_FILE_SIZE:
        return f"File {filename} is too large. Maximum size: {Config.MAX_FILE_SIZE // (1024 * 1024)}MB"
    if size < Config.MIN_FILE_SIZE:
        return f"File {filename} is too small or corrupted"
    return None


def check_header(pdf_bytes: bytes, filename: str) -> Optional[str]:
    if PDF_MAGIC not in pdf_bytes[:HEADER_WINDOW]:
        return f"File {filename} is not a valid PDF file"
    return None


class PDFValidator:
    """Validates uploads before processing.

    Attributes:
        checks: Named checks in the order they run
    """

    checks: Tuple[Tuple[str, UploadCheck], ...] = (
        ("extension", check_extension),
        ("size", check_size),
        ("header", check_header),
    )

    @classmethod
    def find_problems(cls, pdf_bytes: bytes, filename: str) -> List[str]:
        problems = (check(pdf_bytes, filename) for _, check in cls.checks)
        return [problem for problem in problems if problem is not None]

    @classmethod
    def validate_pdf_file(cls, pdf_bytes: bytes, filename: str) -> None:
        """Reject an upload that fails any check.

        Args:
            pdf_bytes: Raw PDF file content
            filename: Original filename, used for the extension check and messages

        Raises:
            ValidationError: Listing every failed check, separated by "; "
        """
        problems = cls.find_problems(pdf_bytes, filename)
        if problems:
            raise ValidationError("; ".join(problems))
