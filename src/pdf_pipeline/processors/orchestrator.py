"""Processing orchestrator for the PDF pipeline.

This module contains the ProcessingOrchestrator class that runs one
document through the complete workflow: job bookkeeping, validation,
text extraction, customer detection, template selection and field
extraction, CSV generation and result persistence. Blocking stages run
in worker threads through asyncio.to_thread.
"""

import asyncio
import logging
import time
from collections import Counter
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from langfuse import observe

from ..config import Config
from ..exceptions import (
    DatabaseError,
    DocumentNotFoundError,
    ExtractionError,
    ProcessingTimeoutError,
    StorageError,
)
from ..extractors import StructureAnalyzer, TextExtractor
from ..models import (
    CustomerDetectionResult,
    DetectionMethod,
    ExtractedDocument,
    JobStatus,
    ProcessingRequest,
    ProcessingResponse,
    ProcessingStats,
    StructuredData,
    Template,
)
from ..validators import PDFValidator
from .csv_writer import CSVWriter

__all__ = ["ProcessingOrchestrator"]

logger = logging.getLogger(__name__)


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


class ProcessingOrchestrator:
    """Asynchronous service running documents through the pipeline.

    The orchestrator holds no per-request state, so any number of
    documents can be processed concurrently by the same instance.

    Attributes:
        text_extractor: Produces text, pages and metadata from PDF bytes
        customer_detector: Identifies the customer of a document
        template_engine: Selects templates and extracts fields
        repository: Document/job repository
        csv_writer: Writes result CSV files
        validator: Optional PDF byte validator
        timeout: Seconds allowed for text extraction
    """

    def __init__(
        self,
        text_extractor: TextExtractor,
        customer_detector: Any,
        template_engine: Any,
        repository: Any,
        csv_writer: Optional[CSVWriter] = None,
        validator: Optional[PDFValidator] = None,
        timeout: float = Config.PROCESSING_TIMEOUT
    ) -> None:
        self.text_extractor: TextExtractor = text_extractor
        self.customer_detector = customer_detector
        self.template_engine = template_engine
        self.repository = repository
        self.csv_writer: CSVWriter = csv_writer or CSVWriter()
        self.validator: Optional[PDFValidator] = validator
        self.timeout: float = timeout
        self._initialized = False
        self._init_lock = asyncio.Lock()

    async def initialize(self) -> None:
        """Load customer and template caches once.

        Raises:
            DatabaseError: If customers or templates cannot be loaded
        """
        if self._initialized:
            return
        async with self._init_lock:
            if self._initialized:
                return
            await self._load_caches()
            self._initialized = True
            logger.info("Processing orchestrator initialized successfully")

    async def reload(self) -> None:
        """Refresh customer and template caches from the repositories."""
        async with self._init_lock:
            await self._load_caches()
            self._initialized = True

    async def _load_caches(self) -> None:
        await asyncio.to_thread(self.customer_detector.initialize)
        await asyncio.to_thread(self.template_engine.initialize)

    @observe(name="document_processing")
    async def process_document(self, request: ProcessingRequest) -> ProcessingResponse:
        """Process a single document through the complete workflow.

        The job always ends COMPLETED or FAILED. Unknown customers and
        customers without templates still produce a basic CSV; only
        exceptions fail the job, in which case the document keeps its
        previous CSV.

        Args:
            request: Document id, file name, PDF bytes and requesting user

        Returns:
            ProcessingResponse describing the run

        Raises:
            DocumentNotFoundError: If the document does not exist
            DatabaseError: If the processing job cannot be created
        """
        start = time.perf_counter()
        response = ProcessingResponse(success=False, document_id=request.document_id)

        job_id = await asyncio.to_thread(
            self.repository.create_job, request.document_id, request.user_id
        )
        response.processing_job_id = job_id

        csv_path: Optional[str] = None
        try:
            await self.initialize()

            if self.validator is not None:
                await asyncio.to_thread(
                    self.validator.validate_pdf_file, request.file_bytes, request.file_name
                )

            logger.info("Processing PDF: %s", request.file_name)
            document = await self._extract_text(request.file_bytes)
            if len(document.text.strip()) < Config.MIN_DOCUMENT_TEXT_LENGTH:
                raise ExtractionError("Insufficient text extracted from PDF")

            structured = await asyncio.to_thread(self._analyze, document)

            forced = self._forced_template(request.template_id)
            if forced is not None:
                detection = CustomerDetectionResult(
                    customer_id=forced.customer_id,
                    confidence=1.0,
                    matched_patterns=["manual_template_override"],
                    method=DetectionMethod.EXACT_MATCH,
                )
            else:
                detection = await asyncio.to_thread(
                    self.customer_detector.detect_customer, document.text, request.file_name
                )

            template: Optional[Template] = None
            errors = []
            warnings = []
            if not detection.customer_id:
                warnings.append("Could not automatically detect customer")
                data = self._basic_data(request, document, structured, None)
                confidence = Config.BASIC_CSV_CONFIDENCE
                success = True
            else:
                logger.info("Customer detected: %s (confidence: %.2f)",
                            detection.customer_name or detection.customer_id, detection.confidence)
                template = forced or await asyncio.to_thread(
                    self.template_engine.select_template, detection.customer_id, document.text
                )
                if template is None:
                    warnings.append("No template found for detected customer")
                    data = self._basic_data(request, document, structured, detection.customer_id)
                    confidence = detection.confidence * Config.NO_TEMPLATE_CONFIDENCE_FACTOR
                    success = True
                else:
                    logger.info("Using template: %s", template.name)
                    result = await asyncio.to_thread(
                        self.template_engine.process_document, template, document.text, structured
                    )
                    data = result.extracted_data
                    confidence = (detection.confidence + result.confidence) / 2
                    success = result.success
                    errors.extend(result.errors)
                    warnings.extend(result.warnings)

            confidence = _clamp(confidence)
            artifact = await asyncio.to_thread(self.csv_writer.write, data, request.file_name)
            csv_path = artifact.file_path

            await asyncio.to_thread(
                self.repository.complete_job,
                job_id,
                request.document_id,
                confidence=confidence,
                csv_path=artifact.file_path,
                row_count=artifact.row_count,
                file_size=artifact.file_size,
                customer_id=detection.customer_id,
                template_id=template.id if template else None,
                detection_log=self._detection_log(detection, template, document),
                extraction_log={
                    "extracted_data_length": len(document.text),
                    "confidence": confidence,
                    "errors": errors,
                    "warnings": warnings,
                },
            )

            response.success = success
            response.customer_id = detection.customer_id
            response.template_id = template.id if template else None
            response.csv_file_path = artifact.file_path
            response.extracted_data = data
            response.confidence = confidence
            response.errors = errors
            response.warnings = warnings

        except Exception as e:
            logger.exception("Document processing failed: %s", request.file_name)
            self.csv_writer.remove(csv_path)
            response.success = False
            response.errors.append(str(e))
            try:
                await asyncio.to_thread(
                    self.repository.fail_job, job_id, request.document_id, str(e)
                )
            except DatabaseError:
                logger.exception("Could not record failure of job %s", job_id)

        response.processing_time_ms = int((time.perf_counter() - start) * 1000)
        return response

    async def _extract_text(self, pdf_bytes: bytes) -> ExtractedDocument:
        """Extract text in a worker thread, bounded by the processing timeout.

        Raises:
            ProcessingTimeoutError: If extraction does not finish in time
            ExtractionError: If no text could be extracted
        """
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self.text_extractor.extract, pdf_bytes, self.timeout),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise ProcessingTimeoutError(
                f"Text extraction timed out after {self.timeout:g} seconds"
            ) from e

    @staticmethod
    def _analyze(document: ExtractedDocument) -> StructuredData:
        text = document.text
        return StructuredData(
            tables=StructureAnalyzer.extract_tables(text),
            key_value_pairs=StructureAnalyzer.detect_key_value_pairs(text),
            dates=StructureAnalyzer.extract_dates(text),
            numbers=StructureAnalyzer.extract_numbers(text),
            pages=list(document.pages),
        )

    def _forced_template(self, template_id: Optional[str]) -> Optional[Template]:
        if not template_id:
            return None
        template = self.template_engine.get_template(template_id)
        if template is None:
            logger.warning("Requested template %s not found, detecting customer instead", template_id)
        return template

    @staticmethod
    def _basic_data(request: ProcessingRequest, document: ExtractedDocument,
                    structured: StructuredData, customer_id: Optional[str]) -> Dict[str, Any]:
        """Generic fields written when no template applies."""
        data: Dict[str, Any] = {
            "document_name": request.file_name,
            "extraction_date": datetime.now(timezone.utc).isoformat(),
            "total_pages": document.metadata.total_pages,
            "customer_id": customer_id or "unknown",
        }
        data.update(structured.key_value_pairs)

        if structured.dates:
            data["detected_dates"] = "; ".join(d.isoformat() for d in structured.dates)
        currency = structured.numbers.get("currency", [])
        if currency:
            data["currency_amounts"] = "; ".join(f"{amount:.2f}" for amount in currency)
        return data

    @staticmethod
    def _detection_log(detection: CustomerDetectionResult, template: Optional[Template],
                       document: ExtractedDocument) -> Dict[str, Any]:
        return {
            "customer_detection": detection.to_log(),
            "template_selection": (
                {"template_id": template.id, "template_name": template.name} if template else None
            ),
            "extraction_method": document.method,
            "extraction_confidence": document.confidence,
            "extracted_length": len(document.text),
        }

    async def reprocess_document(self, document_id: str, user_id: str,
                                 template_id: Optional[str] = None) -> ProcessingResponse:
        """Run a stored document through the pipeline again.

        When a known template is forced, a reprocessing history entry is
        recorded first and the template is used without detection.

        Args:
            document_id: Previously uploaded document
            user_id: User triggering the reprocessing
            template_id: Optional template to force

        Returns:
            ProcessingResponse of the new run

        Raises:
            DocumentNotFoundError: If the document does not exist
            StorageError: If the stored PDF cannot be read
        """
        document = await asyncio.to_thread(self.repository.get_document, document_id)
        if document is None:
            raise DocumentNotFoundError(f"Document not found: {document_id}")

        try:
            file_bytes = await asyncio.to_thread(Path(document.original_path).read_bytes)
        except OSError as e:
            raise StorageError(f"Could not read stored file {document.original_path}: {str(e)}") from e

        forced_id: Optional[str] = None
        if template_id:
            await self.initialize()
            template = self._forced_template(template_id)
            if template is not None:
                forced_id = template.id
                version = await asyncio.to_thread(
                    self.repository.add_reprocessing_history,
                    document_id,
                    {
                        "action": "manual_template_override",
                        "template_id": template.id,
                        "template_name": template.name,
                        "triggered_by": user_id,
                    },
                    user_id,
                )
                logger.info("Reprocessing %s with template %s (version %d)",
                            document_id, template.name, version)

        request = ProcessingRequest(
            document_id=document_id,
            file_name=document.filename,
            file_bytes=file_bytes,
            user_id=user_id,
            file_path=document.original_path,
            template_id=forced_id,
        )
        return await self.process_document(request)

    async def get_processing_stats(self) -> ProcessingStats:
        """Aggregate statistics over all finished processing jobs.

        Raises:
            DatabaseError: If the statistics cannot be queried
        """
        jobs = await asyncio.to_thread(self.repository.finished_jobs)
        confidences = await asyncio.to_thread(self.repository.document_confidences)

        total = len(jobs)
        successful = sum(1 for status, _ in jobs if status == JobStatus.COMPLETED)
        error_counts = Counter(
            message for status, message in jobs if status == JobStatus.FAILED and message
        )

        return ProcessingStats(
            total_processed=total,
            success_rate=successful / total if total else 0.0,
            average_confidence=sum(confidences) / len(confidences) if confidences else 0.0,
            top_errors=[message for message, _ in error_counts.most_common(5)],
        )
