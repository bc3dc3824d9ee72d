"""Tests for the asynchronous batch processor.

This module contains test cases for BatchProcessor, testing concurrent
processing, failure handling and progress reporting.
"""

import asyncio
from unittest.mock import AsyncMock, Mock

import pytest

from pdf_pipeline.models import ProcessingRequest, ProcessingResponse
from pdf_pipeline.processors import (
    BatchProcessor,
    BatchResult,
    ProcessingOrchestrator,
    ProgressEvent,
    ProgressEventType,
)


def make_requests(count):
    return [
        ProcessingRequest(
            document_id=f"doc-{i}",
            file_name=f"test{i}.pdf",
            file_bytes=f"content{i}".encode(),
            user_id="user-1",
        )
        for i in range(count)
    ]


def response_for(request, success=True, errors=None):
    return ProcessingResponse(
        success=success,
        document_id=request.document_id,
        errors=list(errors or []),
    )


@pytest.fixture
def mock_orchestrator():
    """Create an orchestrator whose runs all succeed."""
    orchestrator = Mock(spec=ProcessingOrchestrator)
    orchestrator.process_document = AsyncMock(side_effect=lambda request: response_for(request))
    return orchestrator


@pytest.fixture
def progress_events():
    return []


class TestBatchProcessor:
    """Test cases for BatchProcessor class."""

    @pytest.mark.asyncio
    async def test_process_batch_success(self, mock_orchestrator, progress_events):
        processor = BatchProcessor(mock_orchestrator, progress_callback=progress_events.append)
        requests = make_requests(3)

        results = await processor.process_batch(requests)

        assert [r.document_id for r in results] == ["doc-0", "doc-1", "doc-2"]
        assert all(r.success for r in results)
        assert all(r.error is None for r in results)

        event_types = [e.event_type for e in progress_events]
        assert event_types[0] == ProgressEventType.BATCH_STARTED
        assert event_types[-1] == ProgressEventType.BATCH_COMPLETED
        assert event_types.count(ProgressEventType.FILE_STARTED) == 3
        assert event_types.count(ProgressEventType.FILE_COMPLETED) == 3
        assert progress_events[-1].message == "Batch processing completed. 3 successful, 0 failed"

    @pytest.mark.asyncio
    async def test_process_batch_with_failures(self, mock_orchestrator, progress_events):
        """One unsuccessful run and one raising run do not stop the batch."""
        def run(request):
            if request.document_id == "doc-1":
                return response_for(request, success=False,
                                    errors=["Insufficient text extracted from PDF"])
            if request.document_id == "doc-2":
                raise RuntimeError("worker crashed")
            return response_for(request)

        mock_orchestrator.process_document.side_effect = run
        processor = BatchProcessor(mock_orchestrator, progress_callback=progress_events.append)

        results = await processor.process_batch(make_requests(4))

        assert [r.success for r in results] == [True, False, False, True]
        assert results[1].error == "Insufficient text extracted from PDF"
        assert results[1].response is not None
        assert results[2].error == "worker crashed"
        assert results[2].response is None

        failed = [e for e in progress_events if e.event_type == ProgressEventType.FILE_FAILED]
        assert sorted(e.file_name for e in failed) == ["test1.pdf", "test2.pdf"]
        assert progress_events[-1].message == "Batch processing completed. 2 successful, 2 failed"

    @pytest.mark.asyncio
    async def test_process_batch_empty(self, mock_orchestrator, progress_events):
        processor = BatchProcessor(mock_orchestrator, progress_callback=progress_events.append)

        results = await processor.process_batch([])

        assert results == []
        assert [e.event_type for e in progress_events] == [
            ProgressEventType.BATCH_STARTED,
            ProgressEventType.BATCH_COMPLETED,
        ]

    @pytest.mark.asyncio
    async def test_concurrency_limiting(self, mock_orchestrator):
        """Test that concurrency is properly limited by semaphore."""
        max_concurrent = 2
        concurrent_count = 0
        max_concurrent_seen = 0

        async def run_with_delay(request):
            nonlocal concurrent_count, max_concurrent_seen
            concurrent_count += 1
            max_concurrent_seen = max(max_concurrent_seen, concurrent_count)
            await asyncio.sleep(0.01)
            concurrent_count -= 1
            return response_for(request)

        mock_orchestrator.process_document = run_with_delay
        processor = BatchProcessor(mock_orchestrator, max_concurrent=max_concurrent)

        results = await processor.process_batch(make_requests(5))

        assert max_concurrent_seen == max_concurrent
        assert len(results) == 5
        assert all(r.success for r in results)

    @pytest.mark.asyncio
    async def test_failing_callback_does_not_stop_batch(self, mock_orchestrator):
        callback = Mock(side_effect=RuntimeError("display closed"))
        processor = BatchProcessor(mock_orchestrator, progress_callback=callback)

        results = await processor.process_batch(make_requests(2))

        assert all(r.success for r in results)
        assert callback.call_count == 6

    @pytest.mark.asyncio
    async def test_file_events_carry_position(self, mock_orchestrator, progress_events):
        processor = BatchProcessor(mock_orchestrator, max_concurrent=1,
                                   progress_callback=progress_events.append)

        await processor.process_batch(make_requests(2))

        started = [e for e in progress_events if e.event_type == ProgressEventType.FILE_STARTED]
        assert [(e.current_file, e.total_files) for e in started] == [(1, 2), (2, 2)]
        assert started[0].message == "Starting processing of test0.pdf"

    def test_progress_event_defaults(self):
        event = ProgressEvent(event_type=ProgressEventType.FILE_FAILED, error="boom")
        assert event.file_name is None
        assert event.current_file == 0
        assert event.error == "boom"

    def test_batch_result_defaults(self):
        result = BatchResult(file_name="a.pdf", document_id="doc-1", success=False)
        assert result.response is None
        assert result.error is None
