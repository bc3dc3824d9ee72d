"""Tests for the CSV writer."""

import os
from datetime import date

import pandas as pd
import pytest

from pdf_pipeline.exceptions import StorageError
from pdf_pipeline.processors import CSVWriter


@pytest.fixture
def writer(tmp_path):
    return CSVWriter(output_dir=str(tmp_path / "csv"))


class TestCSVWriter:
    """Test cases for CSVWriter class."""

    @pytest.mark.parametrize("value,expected", [
        (None, "null"),
        (True, "boolean"),
        (42, "number"),
        (7.5, "number"),
        ([1, 2], "array"),
        ({"a": 1}, "object"),
        (date(2024, 1, 5), "date"),
        ("2024-01-05", "date"),
        ("$250.00", "currency"),
        ("45%", "percentage"),
        ("12kg", "number"),
        ("ACME Corp", "string"),
    ])
    def test_infer_data_type(self, value, expected):
        assert CSVWriter.infer_data_type(value) == expected

    @pytest.mark.parametrize("value,expected", [
        (None, ""),
        (["a", "b"], "a; b"),
        ({"a": 1}, '{"a": 1}'),
        (date(2024, 1, 5), "2024-01-05"),
        (2.5, "2.5"),
    ])
    def test_format_value(self, value, expected):
        assert CSVWriter.format_value(value) == expected

    def test_write_csv(self, writer):
        data = {
            "invoice_number": "INV-1001",
            "total": "$250.00",
            "line_items": ["Widget", "Gadget"],
        }

        artifact = writer.write(data, "Invoice March.PDF")

        assert artifact.file_name.startswith("Invoice March_")
        assert artifact.file_name.endswith(".csv")
        assert artifact.row_count == 3
        assert artifact.file_size == os.path.getsize(artifact.file_path)

        frame = pd.read_csv(artifact.file_path, dtype=str, keep_default_na=False)
        assert list(frame.columns) == ["field_name", "field_value", "data_type"]
        assert frame.values.tolist() == [
            ["invoice_number", "INV-1001", "string"],
            ["total", "$250.00", "currency"],
            ["line_items", "Widget; Gadget", "array"],
        ]

    def test_write_leaves_no_temporary_files(self, writer):
        artifact = writer.write({"a": "1"}, "doc.pdf")
        assert os.listdir(writer.output_dir) == [artifact.file_name]

    def test_write_empty_data(self, writer):
        artifact = writer.write({}, "empty.pdf")
        frame = pd.read_csv(artifact.file_path)
        assert artifact.row_count == 0
        assert list(frame.columns) == ["field_name", "field_value", "data_type"]

    def test_write_failure_raises_storage_error(self, tmp_path):
        blocker = tmp_path / "not_a_dir"
        blocker.write_text("occupied")
        writer = CSVWriter(output_dir=str(blocker))

        with pytest.raises(StorageError, match="CSV generation failed"):
            writer.write({"a": "1"}, "doc.pdf")

    def test_remove(self, writer):
        artifact = writer.write({"a": "1"}, "doc.pdf")

        CSVWriter.remove(artifact.file_path)
        CSVWriter.remove(artifact.file_path)
        CSVWriter.remove(None)

        assert not os.path.exists(artifact.file_path)
