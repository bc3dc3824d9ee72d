"""Tests for the processing orchestrator.

These tests run the orchestrator against real repositories on a
temporary SQLite database. Text extraction is replaced by a mock that
returns prepared documents.
"""

import os
import time
from unittest.mock import Mock, patch

import pandas as pd
import pytest

from pdf_pipeline.detection import CustomerDetector
from pdf_pipeline.exceptions import (
    DatabaseError,
    DocumentNotFoundError,
    ExtractionError,
    StorageError,
)
from pdf_pipeline.models import DocumentStatus, JobStatus, ProcessingRequest
from pdf_pipeline.processors import BatchProcessor, CSVWriter, ProcessingOrchestrator
from pdf_pipeline.templates import TemplateEngine, TemplateStore
from pdf_pipeline.validators import PDFValidator
from tests.helpers import make_document


@pytest.fixture
def text_extractor(invoice_text):
    extractor = Mock()
    extractor.extract.return_value = make_document(invoice_text)
    return extractor


@pytest.fixture
def output_dir(tmp_path):
    return str(tmp_path / "csv")


@pytest.fixture
def orchestrator(text_extractor, customer_repository, template_repository,
                 document_repository, output_dir):
    return ProcessingOrchestrator(
        text_extractor=text_extractor,
        customer_detector=CustomerDetector(customer_repository),
        template_engine=TemplateEngine(TemplateStore(template_repository)),
        repository=document_repository,
        csv_writer=CSVWriter(output_dir),
        timeout=5,
    )


@pytest.fixture
def stored_pdf(tmp_path, sample_pdf_bytes):
    path = tmp_path / "invoice.pdf"
    path.write_bytes(sample_pdf_bytes)
    return path


@pytest.fixture
def document_id(document_repository, stored_pdf):
    return document_repository.create_document("invoice.pdf", str(stored_pdf)).id


@pytest.fixture
def acme(customer_repository):
    return customer_repository.add_customer("ACME Corp", [{"type": "text", "pattern": "ACME Corp"}])


def request_for(document_id, pdf_bytes, user_id="user-1"):
    return ProcessingRequest(
        document_id=document_id,
        file_name="invoice.pdf",
        file_bytes=pdf_bytes,
        user_id=user_id,
    )


class TestProcessDocument:
    """Test cases for ProcessingOrchestrator.process_document."""

    @pytest.mark.asyncio
    async def test_unknown_customer_writes_basic_csv(self, orchestrator, document_repository,
                                                     document_id, sample_pdf_bytes):
        response = await orchestrator.process_document(request_for(document_id, sample_pdf_bytes))

        assert response.success
        assert response.customer_id is None
        assert response.confidence == pytest.approx(0.3)
        assert response.warnings == ["Could not automatically detect customer"]
        assert response.extracted_data["customer_id"] == "unknown"
        assert response.extracted_data["document_name"] == "invoice.pdf"
        assert response.extracted_data["total_pages"] == 1
        assert response.extracted_data["detected_dates"] == "2024-01-05"
        assert response.extracted_data["currency_amounts"] == "250.00"
        assert response.extracted_data["account"] == "ACM-7781"

        document = document_repository.get_document(document_id)
        assert document.status == DocumentStatus.COMPLETED
        assert document.current_csv_path == response.csv_file_path
        assert os.path.exists(response.csv_file_path)
        job = document_repository.get_job(response.processing_job_id)
        assert job.status == JobStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_customer_without_template(self, orchestrator, acme, document_repository,
                                             document_id, sample_pdf_bytes):
        response = await orchestrator.process_document(request_for(document_id, sample_pdf_bytes))

        assert response.success
        assert response.customer_id == acme.id
        assert response.template_id is None
        assert response.confidence == pytest.approx(0.5)
        assert response.warnings == ["No template found for detected customer"]
        assert response.extracted_data["customer_id"] == acme.id
        assert document_repository.get_document(document_id).customer_id == acme.id

    @pytest.mark.asyncio
    async def test_template_extraction(self, orchestrator, acme, template_repository,
                                       document_repository, document_id, sample_pdf_bytes,
                                       invoice_rules):
        template_id = template_repository.add_template(acme.id, "ACME Invoice", invoice_rules)

        response = await orchestrator.process_document(request_for(document_id, sample_pdf_bytes))

        assert response.success
        assert response.template_id == template_id
        assert response.confidence == pytest.approx(1.0)
        assert response.extracted_data == {
            "invoice_number": "INV-1001",
            "invoice_date": "2024-01-05",
            "total": "$250.00",
        }

        frame = pd.read_csv(response.csv_file_path, dtype=str, keep_default_na=False)
        assert frame.values.tolist() == [
            ["invoice_number", "INV-1001", "string"],
            ["invoice_date", "2024-01-05", "date"],
            ["total", "$250.00", "currency"],
        ]

        document = document_repository.get_document(document_id)
        assert document.template_id == template_id
        assert document.detection_log["template_selection"]["template_name"] == "ACME Invoice"
        assert document.detection_log["customer_detection"]["method"] == "exact_match"

    @pytest.mark.asyncio
    async def test_missing_required_field_still_completes(self, orchestrator, acme,
                                                          template_repository, text_extractor,
                                                          document_repository, document_id,
                                                          sample_pdf_bytes, invoice_rules):
        template_repository.add_template(acme.id, "ACME Invoice", invoice_rules)
        text_extractor.extract.return_value = make_document("ACME Corp\nInvoice #INV-1001\n")

        response = await orchestrator.process_document(request_for(document_id, sample_pdf_bytes))

        assert not response.success
        assert "Required field 'total' could not be extracted" in response.errors
        assert response.csv_file_path is not None
        assert document_repository.get_document(document_id).status == DocumentStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_extraction_timeout_fails_job(self, orchestrator, text_extractor,
                                                document_repository, document_id,
                                                sample_pdf_bytes, output_dir):
        text_extractor.extract.side_effect = lambda *args: time.sleep(0.5)
        orchestrator.timeout = 0.05

        response = await orchestrator.process_document(request_for(document_id, sample_pdf_bytes))

        assert not response.success
        assert "timed out" in response.errors[0]
        assert document_repository.get_document(document_id).status == DocumentStatus.FAILED
        job = document_repository.get_job(response.processing_job_id)
        assert job.status == JobStatus.FAILED
        assert not os.path.exists(output_dir) or os.listdir(output_dir) == []

    @pytest.mark.asyncio
    async def test_failed_run_keeps_previous_csv(self, orchestrator, text_extractor,
                                                 document_repository, document_id,
                                                 sample_pdf_bytes):
        first = await orchestrator.process_document(request_for(document_id, sample_pdf_bytes))
        text_extractor.extract.side_effect = ExtractionError("No text could be extracted from PDF")

        second = await orchestrator.process_document(request_for(document_id, sample_pdf_bytes))

        assert not second.success
        assert second.errors == ["No text could be extracted from PDF"]
        document = document_repository.get_document(document_id)
        assert document.status == DocumentStatus.FAILED
        assert document.current_csv_path == first.csv_file_path
        assert len(document_repository.list_csv_outputs(document_id)) == 1

    @pytest.mark.asyncio
    async def test_insufficient_text(self, orchestrator, text_extractor, document_id,
                                     sample_pdf_bytes):
        text_extractor.extract.return_value = make_document("  tiny ")

        response = await orchestrator.process_document(request_for(document_id, sample_pdf_bytes))

        assert not response.success
        assert response.errors == ["Insufficient text extracted from PDF"]

    @pytest.mark.asyncio
    async def test_csv_removed_when_result_cannot_be_saved(self, orchestrator, document_repository,
                                                           document_id, sample_pdf_bytes,
                                                           output_dir):
        with patch.object(document_repository, "complete_job",
                          side_effect=DatabaseError("Database update error: locked")):
            response = await orchestrator.process_document(
                request_for(document_id, sample_pdf_bytes))

        assert not response.success
        assert os.listdir(output_dir) == []
        assert document_repository.get_document(document_id).current_csv_path is None
        assert document_repository.get_job(response.processing_job_id).status == JobStatus.FAILED

    @pytest.mark.asyncio
    async def test_invalid_pdf_rejected(self, orchestrator, document_repository, document_id,
                                        invalid_pdf_bytes):
        orchestrator.validator = PDFValidator()

        response = await orchestrator.process_document(request_for(document_id, invalid_pdf_bytes))

        assert not response.success
        assert "is not a valid PDF file" in response.errors[0]
        assert document_repository.get_document(document_id).status == DocumentStatus.FAILED

    @pytest.mark.asyncio
    async def test_unknown_document(self, orchestrator, sample_pdf_bytes):
        with pytest.raises(DocumentNotFoundError):
            await orchestrator.process_document(request_for("missing", sample_pdf_bytes))


class TestReprocessDocument:
    """Test cases for ProcessingOrchestrator.reprocess_document."""

    @pytest.mark.asyncio
    async def test_forced_template_records_history(self, orchestrator, customer_repository,
                                                   template_repository, document_repository,
                                                   document_id, invoice_rules):
        globex = customer_repository.add_customer("Globex", [])
        template_id = template_repository.add_template(globex.id, "Globex Invoice", invoice_rules)

        response = await orchestrator.reprocess_document(document_id, "user-2", template_id)

        assert response.success
        assert response.customer_id == globex.id
        assert response.template_id == template_id
        assert response.confidence == pytest.approx(1.0)

        history = document_repository.list_reprocessing_history(document_id)
        assert len(history) == 1
        assert history[0].version == 1
        assert history[0].triggered_by == "user-2"
        assert history[0].changes_made == {
            "action": "manual_template_override",
            "template_id": template_id,
            "template_name": "Globex Invoice",
            "triggered_by": "user-2",
        }

    @pytest.mark.asyncio
    async def test_repeated_reprocess_is_idempotent(self, orchestrator, customer_repository,
                                                    template_repository, document_repository,
                                                    document_id, invoice_rules):
        globex = customer_repository.add_customer("Globex", [])
        template_id = template_repository.add_template(globex.id, "Globex Invoice", invoice_rules)

        first = await orchestrator.reprocess_document(document_id, "user-2", template_id)
        second = await orchestrator.reprocess_document(document_id, "user-3", template_id)

        assert first.success and second.success
        assert second.extracted_data == first.extracted_data
        history = document_repository.list_reprocessing_history(document_id)
        assert [h.version for h in history] == [1, 2]
        assert [h.triggered_by for h in history] == ["user-2", "user-3"]

        jobs = document_repository.list_jobs(document_id)
        assert len(jobs) == 2
        assert {job.id for job in jobs} == {first.processing_job_id, second.processing_job_id}
        assert all(job.status == JobStatus.COMPLETED for job in jobs)
        document = document_repository.get_document(document_id)
        assert document.current_job_id == second.processing_job_id
        assert document.current_csv_path == second.csv_file_path
        assert len(document_repository.list_csv_outputs(document_id)) == 2

    @pytest.mark.asyncio
    async def test_unknown_template_falls_back_to_detection(self, orchestrator,
                                                            document_repository, document_id):
        response = await orchestrator.reprocess_document(document_id, "user-2", "missing")

        assert response.success
        assert response.customer_id is None
        assert document_repository.list_reprocessing_history(document_id) == []

    @pytest.mark.asyncio
    async def test_reprocess_without_template(self, orchestrator, text_extractor,
                                              document_repository, document_id, sample_pdf_bytes):
        response = await orchestrator.reprocess_document(document_id, "user-2")

        assert response.success
        text_extractor.extract.assert_called_once_with(sample_pdf_bytes, orchestrator.timeout)
        assert document_repository.list_reprocessing_history(document_id) == []

    @pytest.mark.asyncio
    async def test_unknown_document(self, orchestrator):
        with pytest.raises(DocumentNotFoundError):
            await orchestrator.reprocess_document("missing", "user-2")

    @pytest.mark.asyncio
    async def test_stored_file_missing(self, orchestrator, document_repository, tmp_path):
        document = document_repository.create_document("gone.pdf", str(tmp_path / "gone.pdf"))
        with pytest.raises(StorageError, match="Could not read stored file"):
            await orchestrator.reprocess_document(document.id, "user-2")


class TestProcessingStats:
    """Test cases for ProcessingOrchestrator.get_processing_stats."""

    @pytest.mark.asyncio
    async def test_empty(self, orchestrator):
        stats = await orchestrator.get_processing_stats()
        assert stats.total_processed == 0
        assert stats.success_rate == 0.0
        assert stats.average_confidence == 0.0
        assert stats.top_errors == []

    @pytest.mark.asyncio
    async def test_aggregates_finished_jobs(self, orchestrator, text_extractor,
                                            document_repository, document_id, stored_pdf,
                                            sample_pdf_bytes):
        await orchestrator.process_document(request_for(document_id, sample_pdf_bytes))
        other_id = document_repository.create_document("other.pdf", str(stored_pdf)).id
        text_extractor.extract.side_effect = ExtractionError("No text could be extracted from PDF")
        await orchestrator.process_document(request_for(other_id, sample_pdf_bytes))

        stats = await orchestrator.get_processing_stats()

        assert stats.total_processed == 2
        assert stats.success_rate == pytest.approx(0.5)
        assert stats.average_confidence == pytest.approx(0.3)
        assert stats.top_errors == ["No text could be extracted from PDF"]


class TestConcurrentBatch:
    """A bounded batch run against a shared SQLite database file."""

    @pytest.mark.asyncio
    async def test_every_job_and_document_completes(self, orchestrator, acme, template_repository,
                                                    document_repository, stored_pdf,
                                                    sample_pdf_bytes, invoice_rules):
        template_id = template_repository.add_template(acme.id, "ACME Invoice", invoice_rules)
        document_ids = [
            document_repository.create_document(f"invoice{i}.pdf", str(stored_pdf)).id
            for i in range(40)
        ]
        requests = [
            ProcessingRequest(document_id=document_id, file_name=f"invoice{i}.pdf",
                              file_bytes=sample_pdf_bytes, user_id="user-1")
            for i, document_id in enumerate(document_ids)
        ]

        results = await BatchProcessor(orchestrator, max_concurrent=10).process_batch(requests)

        assert all(r.success for r in results), [r.error for r in results if not r.success]
        for document_id in document_ids:
            document = document_repository.get_document(document_id)
            assert document.status == DocumentStatus.COMPLETED
            assert document.template_id == template_id
            jobs = document_repository.list_jobs(document_id)
            assert [job.status for job in jobs] == [JobStatus.COMPLETED]
        assert len({r.response.csv_file_path for r in results}) == 40
