"""Document repository for the PDF pipeline.

This module contains the DocumentRepository class that owns document
state, processing jobs, CSV output records and the reprocessing history.
A document's CSV reference is only ever written together with a
completed job, so failed runs never replace the current artifact.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, select

from ..models import (
    CsvOutput,
    Document,
    DocumentStatus,
    JobStatus,
    ProcessingJob,
    ReprocessingHistory,
)
from ..exceptions import DocumentNotFoundError
from .database_manager import DatabaseManager

__all__ = ["DocumentRepository"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DocumentRepository:
    """Repository pattern implementation for documents and processing jobs.

    Attributes:
        db_manager: DatabaseManager instance for database operations
    """

    def __init__(self, db_manager: DatabaseManager) -> None:
        self.db_manager: DatabaseManager = db_manager

    def create_document(self, filename: str, original_path: str,
                        document_id: Optional[str] = None) -> Document:
        """Register an uploaded document in the UPLOADED state."""
        with self.db_manager.session_scope("save") as session:
            document = Document(
                filename=filename,
                original_path=original_path,
                status=DocumentStatus.UPLOADED,
            )
            if document_id:
                document.id = document_id
            session.add(document)
            session.flush()
            return document

    def get_document(self, document_id: str) -> Optional[Document]:
        with self.db_manager.session_scope("query") as session:
            return session.get(Document, document_id)

    def create_job(self, document_id: str, user_id: Optional[str]) -> str:
        """Open a RUNNING job and move the document to PROCESSING.

        Args:
            document_id: Document being processed
            user_id: User who triggered processing

        Returns:
            Id of the new processing job

        Raises:
            DocumentNotFoundError: If the document does not exist
            DatabaseError: If database operation fails
        """
        with self.db_manager.session_scope("save") as session:
            document = session.get(Document, document_id)
            if document is None:
                raise DocumentNotFoundError(f"Document not found: {document_id}")
            job = ProcessingJob(
                document_id=document_id,
                status=JobStatus.RUNNING,
                processed_by_id=user_id,
                started_at=_utcnow(),
            )
            session.add(job)
            document.status = DocumentStatus.PROCESSING
            session.flush()
            return job.id

    def complete_job(self, job_id: str, document_id: str, *,
                     confidence: float,
                     csv_path: str,
                     row_count: int,
                     file_size: int,
                     customer_id: Optional[str] = None,
                     template_id: Optional[str] = None,
                     detection_log: Optional[Dict[str, Any]] = None,
                     extraction_log: Optional[Dict[str, Any]] = None) -> None:
        """Finish a job successfully and publish its CSV artifact.

        The job, the document state and the CSV output record are written
        in a single transaction.

        Raises:
            DocumentNotFoundError: If the document does not exist
            DatabaseError: If database operation fails
        """
        with self.db_manager.session_scope("update") as session:
            job = session.get(ProcessingJob, job_id)
            document = session.get(Document, document_id)
            if document is None or job is None:
                raise DocumentNotFoundError(f"Document or job not found: {document_id}/{job_id}")

            job.status = JobStatus.COMPLETED
            job.completed_at = _utcnow()
            job.extraction_log = extraction_log

            document.status = DocumentStatus.COMPLETED
            document.customer_id = customer_id
            document.template_id = template_id
            document.confidence_score = confidence
            document.detection_log = detection_log
            document.current_csv_path = csv_path
            document.current_job_id = job_id

            session.add(CsvOutput(
                document_id=document_id,
                job_id=job_id,
                file_path=csv_path,
                file_name=csv_path.replace("\\", "/").rsplit("/", 1)[-1],
                row_count=row_count,
                column_count=3,
                file_size=file_size,
            ))

    def fail_job(self, job_id: str, document_id: str, error_message: str,
                 extraction_log: Optional[Dict[str, Any]] = None) -> None:
        """Mark a job and its document FAILED, keeping the current artifact."""
        with self.db_manager.session_scope("update") as session:
            job = session.get(ProcessingJob, job_id)
            if job is not None:
                job.status = JobStatus.FAILED
                job.completed_at = _utcnow()
                job.error_message = error_message
                job.extraction_log = extraction_log
            document = session.get(Document, document_id)
            if document is not None:
                document.status = DocumentStatus.FAILED

    def get_job(self, job_id: str) -> Optional[ProcessingJob]:
        with self.db_manager.session_scope("query") as session:
            return session.get(ProcessingJob, job_id)

    def list_jobs(self, document_id: str) -> List[ProcessingJob]:
        with self.db_manager.session_scope("query") as session:
            stmt = (
                select(ProcessingJob)
                .where(ProcessingJob.document_id == document_id)
                .order_by(ProcessingJob.started_at)
            )
            return list(session.scalars(stmt))

    def list_csv_outputs(self, document_id: str) -> List[CsvOutput]:
        with self.db_manager.session_scope("query") as session:
            stmt = (
                select(CsvOutput)
                .where(CsvOutput.document_id == document_id)
                .order_by(CsvOutput.id)
            )
            return list(session.scalars(stmt))

    def next_version(self, document_id: str) -> int:
        """Return the next reprocessing version for a document (max + 1)."""
        with self.db_manager.session_scope("query") as session:
            current = session.scalar(
                select(func.max(ReprocessingHistory.version))
                .where(ReprocessingHistory.document_id == document_id)
            )
            return (current or 0) + 1

    def add_reprocessing_history(self, document_id: str, changes_made: Dict[str, Any],
                                 triggered_by: str) -> int:
        """Append a reprocessing history entry.

        The version is computed inside the same transaction; the unique
        (document_id, version) constraint rejects concurrent duplicates.

        Returns:
            Version number recorded for the entry
        """
        with self.db_manager.session_scope("save") as session:
            current = session.scalar(
                select(func.max(ReprocessingHistory.version))
                .where(ReprocessingHistory.document_id == document_id)
            )
            version = (current or 0) + 1
            session.add(ReprocessingHistory(
                document_id=document_id,
                version=version,
                changes_made=changes_made,
                triggered_by=triggered_by,
            ))
            return version

    def list_reprocessing_history(self, document_id: str) -> List[ReprocessingHistory]:
        with self.db_manager.session_scope("query") as session:
            stmt = (
                select(ReprocessingHistory)
                .where(ReprocessingHistory.document_id == document_id)
                .order_by(ReprocessingHistory.version)
            )
            return list(session.scalars(stmt))

    def finished_jobs(self) -> List[Tuple[JobStatus, Optional[str]]]:
        """Return (status, error_message) for every COMPLETED or FAILED job."""
        with self.db_manager.session_scope("query") as session:
            stmt = select(ProcessingJob.status, ProcessingJob.error_message).where(
                ProcessingJob.status.in_([JobStatus.COMPLETED, JobStatus.FAILED])
            )
            return [(row[0], row[1]) for row in session.execute(stmt)]

    def document_confidences(self) -> List[float]:
        """Return the confidence score of every document that has one."""
        with self.db_manager.session_scope("query") as session:
            stmt = select(Document.confidence_score).where(Document.confidence_score.is_not(None))
            return [float(value) for value in session.scalars(stmt)]
