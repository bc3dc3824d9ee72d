"""Asynchronous batch processor for the PDF pipeline.

This module contains the BatchProcessor class that runs many processing
requests concurrently through a ProcessingOrchestrator, bounded by a
semaphore, and reports progress through optional callbacks.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Protocol

from langfuse import observe

from ..config import Config
from ..models import ProcessingRequest, ProcessingResponse
from .orchestrator import ProcessingOrchestrator

__all__ = [
    "BatchProcessor",
    "BatchResult",
    "ProgressEvent",
    "ProgressEventType",
    "ProgressCallback"
]

logger = logging.getLogger(__name__)


class ProgressEventType(Enum):
    """Types of progress events."""
    BATCH_STARTED = "batch_started"
    FILE_STARTED = "file_started"
    FILE_COMPLETED = "file_completed"
    FILE_FAILED = "file_failed"
    BATCH_COMPLETED = "batch_completed"


@dataclass
class ProgressEvent:
    """Progress event data structure."""
    event_type: ProgressEventType
    file_name: Optional[str] = None
    current_file: int = 0
    total_files: int = 0
    message: str = ""
    error: Optional[str] = None


@dataclass
class BatchResult:
    """Result of one document in a batch."""
    file_name: str
    document_id: str
    success: bool
    response: Optional[ProcessingResponse] = None
    error: Optional[str] = None


class ProgressCallback(Protocol):
    """Protocol for progress callback functions."""
    def __call__(self, event: ProgressEvent) -> None:
        """Handle progress event."""
        ...


class BatchProcessor:
    """Processes multiple documents concurrently.

    A document whose run ends without success, or whose run raises, is
    reported as failed; the rest of the batch continues either way.

    Attributes:
        orchestrator: Orchestrator running each document
        max_concurrent: Maximum number of documents processed at once
        progress_callback: Optional callback for progress updates
    """

    def __init__(
        self,
        orchestrator: ProcessingOrchestrator,
        max_concurrent: int = Config.MAX_CONCURRENT_DOCUMENTS,
        progress_callback: Optional[ProgressCallback] = None
    ) -> None:
        self.orchestrator: ProcessingOrchestrator = orchestrator
        self.max_concurrent: int = max_concurrent
        self.progress_callback: Optional[ProgressCallback] = progress_callback
        self._semaphore: asyncio.Semaphore = asyncio.Semaphore(max_concurrent)

    def _emit_progress(self, event: ProgressEvent) -> None:
        if self.progress_callback:
            try:
                self.progress_callback(event)
            except Exception:
                logger.exception("Progress callback failed for %s", event.event_type.value)

    async def _process_single(self, request: ProcessingRequest, index: int,
                              total: int) -> BatchResult:
        async with self._semaphore:
            file_name = request.file_name
            self._emit_progress(ProgressEvent(
                event_type=ProgressEventType.FILE_STARTED,
                file_name=file_name,
                current_file=index + 1,
                total_files=total,
                message=f"Starting processing of {file_name}"
            ))

            try:
                response = await self.orchestrator.process_document(request)
            except Exception as e:
                logger.exception("Batch item %s failed", file_name)
                response, error = None, str(e)
            else:
                error = None if response.success else "; ".join(response.errors) or None

            success = response is not None and response.success
            self._emit_progress(ProgressEvent(
                event_type=ProgressEventType.FILE_COMPLETED if success else ProgressEventType.FILE_FAILED,
                file_name=file_name,
                current_file=index + 1,
                total_files=total,
                message=(f"Successfully processed {file_name}" if success
                         else f"Failed to process {file_name}"),
                error=error
            ))

            return BatchResult(
                file_name=file_name,
                document_id=request.document_id,
                success=success,
                response=response,
                error=error
            )

    @observe(name="batch_document_processing")
    async def process_batch(self, requests: List[ProcessingRequest]) -> List[BatchResult]:
        """Process documents concurrently.

        Args:
            requests: Processing requests, one per document

        Returns:
            One BatchResult per request, in request order
        """
        total = len(requests)
        self._emit_progress(ProgressEvent(
            event_type=ProgressEventType.BATCH_STARTED,
            total_files=total,
            message=f"Starting batch processing of {total} files"
        ))

        results = await asyncio.gather(*(
            self._process_single(request, index, total)
            for index, request in enumerate(requests)
        ))

        successful_count = sum(1 for r in results if r.success)
        self._emit_progress(ProgressEvent(
            event_type=ProgressEventType.BATCH_COMPLETED,
            total_files=total,
            message=(f"Batch processing completed. {successful_count} successful, "
                     f"{total - successful_count} failed")
        ))
        return list(results)
