"""CSV writer for the PDF pipeline.

This module contains the CSVWriter class that renders extracted fields
as a three-column CSV (field_name, field_value, data_type) using pandas.
Files are written to a temporary name and renamed into place, so a
reader never sees a partially written CSV.
"""

import json
import logging
import os
import re
import tempfile
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Dict, Optional

import pandas as pd

from ..config import Config
from ..exceptions import StorageError
from ..validators import is_currency, is_percentage, parse_date, parse_leading_float

__all__ = ["CSVWriter", "CsvArtifact"]

logger = logging.getLogger(__name__)

CSV_COLUMNS = ["field_name", "field_value", "data_type"]


@dataclass(frozen=True)
class CsvArtifact:
    """A CSV file produced for one processing job."""
    file_path: str
    file_name: str
    row_count: int
    file_size: int


class CSVWriter:
    """Writes extracted field values to CSV files.

    Attributes:
        output_dir: Directory the CSV files are written to
    """

    def __init__(self, output_dir: Optional[str] = None) -> None:
        self.output_dir: str = output_dir or os.path.join(Config.OUTPUT_DIR, "csv")

    @staticmethod
    def format_value(value: Any) -> str:
        if value is None:
            return ""
        if isinstance(value, (list, tuple)):
            return "; ".join(str(v) for v in value)
        if isinstance(value, dict):
            return json.dumps(value, default=str)
        if isinstance(value, (date, datetime)):
            return value.isoformat()
        return str(value)

    @staticmethod
    def infer_data_type(value: Any) -> str:
        """Infer the CSV data_type label for a value.

        Non-string values map to null, boolean, number, array or object.
        Strings are checked as date, currency, percentage and number in
        that order before falling back to string.
        """
        if value is None:
            return "null"
        if isinstance(value, bool):
            return "boolean"
        if isinstance(value, (int, float)):
            return "number"
        if isinstance(value, (list, tuple)):
            return "array"
        if isinstance(value, dict):
            return "object"
        if isinstance(value, (date, datetime)):
            return "date"

        text = str(value)
        if parse_date(text) is not None:
            return "date"
        if is_currency(text):
            return "currency"
        if is_percentage(text):
            return "percentage"
        if parse_leading_float(text) is not None:
            return "number"
        return "string"

    def build_frame(self, data: Dict[str, Any]) -> pd.DataFrame:
        records = [
            {
                "field_name": name,
                "field_value": self.format_value(value),
                "data_type": self.infer_data_type(value),
            }
            for name, value in data.items()
        ]
        return pd.DataFrame(records, columns=CSV_COLUMNS)

    def file_name_for(self, source_name: str) -> str:
        stem = re.sub(r"\.pdf$", "", os.path.basename(source_name), flags=re.IGNORECASE)
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S-%f")
        return f"{stem or 'document'}_{timestamp}.csv"

    def write(self, data: Dict[str, Any], source_name: str) -> CsvArtifact:
        """Write extracted data as a CSV file.

        Args:
            data: Field values keyed by field name, in output order
            source_name: Original PDF file name, used for the CSV name

        Returns:
            CsvArtifact describing the written file

        Raises:
            StorageError: If the file cannot be written
        """
        frame = self.build_frame(data)
        file_name = self.file_name_for(source_name)
        file_path = os.path.join(self.output_dir, file_name)

        tmp_path = None
        try:
            os.makedirs(self.output_dir, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.output_dir, suffix=".csv.tmp")
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as handle:
                frame.to_csv(handle, index=False)
            os.replace(tmp_path, file_path)
            tmp_path = None
            file_size = os.path.getsize(file_path)
        except OSError as e:
            raise StorageError(f"CSV generation failed: {str(e)}") from e
        finally:
            if tmp_path and os.path.exists(tmp_path):
                os.remove(tmp_path)

        logger.info("CSV generated: %s (%d rows)", file_path, len(frame))
        return CsvArtifact(
            file_path=file_path,
            file_name=file_name,
            row_count=len(frame),
            file_size=file_size,
        )

    @staticmethod
    def remove(file_path: Optional[str]) -> None:
        """Delete a CSV written by a run that later failed."""
        if not file_path:
            return
        try:
            os.remove(file_path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("Could not remove partial CSV %s: %s", file_path, e)
