"""Processors module for the PDF pipeline.

This module contains the processing orchestrator that runs documents
through the pipeline, the concurrent batch processor and the CSV writer.
"""

from .csv_writer import CSVWriter, CsvArtifact
from .orchestrator import ProcessingOrchestrator
from .batch_processor import (
    BatchProcessor,
    BatchResult,
    ProgressEvent,
    ProgressEventType,
    ProgressCallback
)

__all__ = [
    "CSVWriter",
    "CsvArtifact",
    "ProcessingOrchestrator",
    "BatchProcessor",
    "BatchResult",
    "ProgressEvent",
    "ProgressEventType",
    "ProgressCallback"
]
