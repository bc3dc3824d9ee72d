"""Models for the PDF pipeline.

This package contains the SQLAlchemy records used by the default
repositories and the domain entities exchanged between pipeline stages.
"""

from .entities import (
    PatternKind,
    DetectionMethod,
    ExtractionType,
    DataType,
    KeywordDirection,
    WordBox,
    TableData,
    PageData,
    DocumentMetadata,
    ExtractedDocument,
    StructuredData,
    DetectionPattern,
    CustomerDetectionResult,
    KeywordConfig,
    TableConfig,
    PositionConfig,
    CalculationConfig,
    ValidationSpec,
    ExtractionRule,
    HardcodedMapping,
    Template,
    ProcessingResult,
    ProcessingRequest,
    ProcessingResponse,
    ProcessingStats,
)
from .records import (
    Base,
    DocumentStatus,
    JobStatus,
    Customer,
    DocumentTemplate,
    HardcodedMappingRecord,
    Document,
    ProcessingJob,
    CsvOutput,
    ReprocessingHistory,
)

__all__ = [
    # Entities
    "PatternKind",
    "DetectionMethod",
    "ExtractionType",
    "DataType",
    "KeywordDirection",
    "WordBox",
    "TableData",
    "PageData",
    "DocumentMetadata",
    "ExtractedDocument",
    "StructuredData",
    "DetectionPattern",
    "CustomerDetectionResult",
    "KeywordConfig",
    "TableConfig",
    "PositionConfig",
    "CalculationConfig",
    "ValidationSpec",
    "ExtractionRule",
    "HardcodedMapping",
    "Template",
    "ProcessingResult",
    "ProcessingRequest",
    "ProcessingResponse",
    "ProcessingStats",
    # Records
    "Base",
    "DocumentStatus",
    "JobStatus",
    "Customer",
    "DocumentTemplate",
    "HardcodedMappingRecord",
    "Document",
    "ProcessingJob",
    "CsvOutput",
    "ReprocessingHistory",
]
