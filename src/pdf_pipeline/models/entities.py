"""Domain entities for the PDF pipeline.

This module contains the value objects passed between pipeline stages:
extracted documents, detection patterns and results, extraction rules,
templates and the processing request/response structures. Rule and
template objects are built from the plain dictionaries stored by the
data layer; both snake_case and legacy camelCase keys are accepted.
"""

from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

__all__ = [
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
]


class PatternKind(str, Enum):
    """Kinds of customer identification patterns."""
    TEXT = "text"
    REGEX = "regex"
    POSITION = "position"
    HEADER = "header"
    FOOTER = "footer"


class DetectionMethod(str, Enum):
    """Heuristic that produced a customer detection result."""
    EXACT_MATCH = "exact_match"
    FUZZY_MATCH = "fuzzy_match"
    PATTERN_MATCH = "pattern_match"


class ExtractionType(str, Enum):
    """Field extraction strategies supported by the template engine."""
    REGEX = "regex"
    POSITION = "position"
    TABLE = "table"
    KEYWORD = "keyword"
    CALCULATION = "calculation"


class DataType(str, Enum):
    """Declared data types for field validation."""
    STRING = "string"
    NUMBER = "number"
    DATE = "date"
    CURRENCY = "currency"
    PERCENTAGE = "percentage"


class KeywordDirection(str, Enum):
    """Where a keyword rule looks for its value."""
    SAME_LINE = "same_line"
    AFTER = "after"
    BEFORE = "before"


def _pick(data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first present key from a dict of mixed-style keys."""
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


# =============================================================================
# EXTRACTED DOCUMENT
# =============================================================================

@dataclass(frozen=True)
class WordBox:
    """A single word with its page coordinates in PDF points."""
    text: str
    x0: float
    top: float
    x1: float
    bottom: float


@dataclass(frozen=True)
class TableData:
    """A table detected in page text."""
    rows: List[List[str]]
    headers: Optional[List[str]] = None
    position: Dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class PageData:
    """Text and structure of a single page."""
    page_number: int
    text: str
    confidence: float
    tables: List[TableData] = field(default_factory=list)
    words: List[WordBox] = field(default_factory=list)


@dataclass(frozen=True)
class DocumentMetadata:
    """Document level metadata reported by the PDF."""
    total_pages: int
    author: Optional[str] = None
    creator: Optional[str] = None
    creation_date: Optional[datetime] = None
    modification_date: Optional[datetime] = None


@dataclass(frozen=True)
class ExtractedDocument:
    """Result of text extraction for one processing attempt.

    Attributes:
        text: Full plain text of the document
        pages: Per-page text, tables and word boxes
        metadata: Page count, author, creator and dates
        confidence: Reliability of the extraction method (0-1)
        method: 'direct' or 'ocr'
    """
    text: str
    pages: List[PageData]
    metadata: DocumentMetadata
    confidence: float
    method: str = "direct"


@dataclass
class StructuredData:
    """Derived structure passed to the template engine alongside the text."""
    tables: List[TableData] = field(default_factory=list)
    key_value_pairs: Dict[str, str] = field(default_factory=dict)
    dates: List[date] = field(default_factory=list)
    numbers: Dict[str, List[float]] = field(default_factory=dict)
    pages: List[PageData] = field(default_factory=list)


# =============================================================================
# CUSTOMER DETECTION
# =============================================================================

@dataclass(frozen=True)
class DetectionPattern:
    """A weighted pattern identifying one customer."""
    kind: PatternKind
    pattern: str
    weight: float = 1.0
    case_sensitive: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the list-of-objects storage format."""
        return {
            "type": self.kind.value,
            "pattern": self.pattern,
            "weight": self.weight,
            "caseSensitive": self.case_sensitive,
        }


@dataclass
class CustomerDetectionResult:
    """Outcome of customer detection for one document."""
    customer_id: Optional[str]
    confidence: float
    matched_patterns: List[str] = field(default_factory=list)
    method: DetectionMethod = DetectionMethod.EXACT_MATCH
    customer_name: Optional[str] = None

    @classmethod
    def empty(cls) -> "CustomerDetectionResult":
        return cls(customer_id=None, confidence=0.0)

    def to_log(self) -> Dict[str, Any]:
        """Summary stored in the document detection log."""
        return {
            "customer_id": self.customer_id,
            "customer_name": self.customer_name,
            "confidence": self.confidence,
            "matched_patterns": list(self.matched_patterns),
            "method": self.method.value,
        }


# =============================================================================
# EXTRACTION RULES AND TEMPLATES
# =============================================================================

@dataclass(frozen=True)
class KeywordConfig:
    keywords: Tuple[str, ...]
    search_radius: int = 1
    direction: KeywordDirection = KeywordDirection.SAME_LINE

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "KeywordConfig":
        keywords = _pick(data, "keywords", default=[])
        if isinstance(keywords, str):
            keywords = [keywords]
        return cls(
            keywords=tuple(str(k) for k in keywords),
            search_radius=int(_pick(data, "search_radius", "searchRadius", default=1)),
            direction=KeywordDirection(_pick(data, "direction", default="same_line")),
        )


@dataclass(frozen=True)
class TableConfig:
    table_index: int = 0
    column_index: Optional[int] = None
    row_index: Optional[int] = None
    header_name: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TableConfig":
        column_index = _pick(data, "column_index", "columnIndex")
        row_index = _pick(data, "row_index", "rowIndex")
        return cls(
            table_index=int(_pick(data, "table_index", "tableIndex", default=0)),
            column_index=int(column_index) if column_index is not None else None,
            row_index=int(row_index) if row_index is not None else None,
            header_name=_pick(data, "header_name", "headerName"),
        )


@dataclass(frozen=True)
class PositionConfig:
    page: Optional[int] = None
    x: float = 0.0
    y: float = 0.0
    width: Optional[float] = None
    height: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PositionConfig":
        page = data.get("page")
        width = data.get("width")
        height = data.get("height")
        return cls(
            page=int(page) if page is not None else None,
            x=float(data.get("x") or 0),
            y=float(data.get("y") or 0),
            width=float(width) if width is not None else None,
            height=float(height) if height is not None else None,
        )


@dataclass(frozen=True)
class CalculationConfig:
    operation: Optional[str] = None
    source_fields: Tuple[str, ...] = ()
    formula: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CalculationConfig":
        return cls(
            operation=_pick(data, "operation"),
            source_fields=tuple(_pick(data, "source_fields", "sourceFields", default=[])),
            formula=_pick(data, "formula"),
        )


@dataclass(frozen=True)
class ValidationSpec:
    data_type: DataType = DataType.STRING
    required: bool = False
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    pattern: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ValidationSpec":
        return cls(
            data_type=DataType(_pick(data, "data_type", "dataType", default="string")),
            required=bool(data.get("required", False)),
            min_length=_pick(data, "min_length", "minLength"),
            max_length=_pick(data, "max_length", "maxLength"),
            pattern=data.get("pattern"),
        )


@dataclass(frozen=True)
class ExtractionRule:
    """One field's extraction strategy plus its validation spec."""
    field_name: str
    extraction_type: ExtractionType
    pattern: Optional[str] = None
    position: Optional[PositionConfig] = None
    table_config: Optional[TableConfig] = None
    keyword_config: Optional[KeywordConfig] = None
    calculation_config: Optional[CalculationConfig] = None
    validation: Optional[ValidationSpec] = None

    @property
    def required(self) -> bool:
        return bool(self.validation and self.validation.required)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExtractionRule":
        """Build a rule from its stored dictionary form.

        Args:
            data: Rule definition with snake_case or camelCase keys

        Returns:
            Parsed ExtractionRule

        Raises:
            ValueError: If the field name or extraction type is missing or unknown
        """
        field_name = _pick(data, "field_name", "fieldName")
        if not field_name:
            raise ValueError("Extraction rule is missing a field name")
        extraction_type = ExtractionType(_pick(data, "extraction_type", "extractionType"))

        position = data.get("position")
        table_config = _pick(data, "table_config", "tableConfig")
        keyword_config = _pick(data, "keyword_config", "keywordConfig")
        calculation_config = _pick(data, "calculation_config", "calculationConfig")
        validation = data.get("validation")

        return cls(
            field_name=str(field_name),
            extraction_type=extraction_type,
            pattern=data.get("pattern"),
            position=PositionConfig.from_dict(position) if position else None,
            table_config=TableConfig.from_dict(table_config) if table_config else None,
            keyword_config=KeywordConfig.from_dict(keyword_config) if keyword_config else None,
            calculation_config=(
                CalculationConfig.from_dict(calculation_config) if calculation_config else None
            ),
            validation=ValidationSpec.from_dict(validation) if validation else None,
        )


@dataclass(frozen=True)
class HardcodedMapping:
    """A priority-ordered literal or wildcard value substitution."""
    field_name: str
    source_pattern: str
    target_value: str
    priority: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HardcodedMapping":
        return cls(
            field_name=str(_pick(data, "field_name", "fieldName")),
            source_pattern=str(_pick(data, "source_pattern", "sourcePattern")),
            target_value=str(_pick(data, "target_value", "targetValue", default="")),
            priority=int(_pick(data, "priority", default=0)),
        )


@dataclass(frozen=True)
class Template:
    """A named, versioned, customer-scoped set of extraction rules."""
    id: str
    customer_id: str
    name: str
    rules: List[ExtractionRule] = field(default_factory=list)
    hardcoded_mappings: List[HardcodedMapping] = field(default_factory=list)
    version: int = 1
    is_active: bool = True


# =============================================================================
# PROCESSING RESULTS
# =============================================================================

@dataclass
class ProcessingResult:
    """Per-run output of template processing."""
    success: bool = False
    extracted_data: Dict[str, Any] = field(default_factory=dict)
    confidence: float = 0.0
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    processing_time_ms: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ProcessingRequest:
    """Input for one pipeline run."""
    document_id: str
    file_name: str
    file_bytes: bytes
    user_id: str
    file_path: Optional[str] = None
    template_id: Optional[str] = None


@dataclass
class ProcessingResponse:
    """Payload returned to the host application after a pipeline run."""
    success: bool
    document_id: str
    processing_job_id: str = ""
    customer_id: Optional[str] = None
    template_id: Optional[str] = None
    csv_file_path: Optional[str] = None
    extracted_data: Dict[str, Any] = field(default_factory=dict)
    confidence: float = 0.0
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    processing_time_ms: int = 0


@dataclass
class ProcessingStats:
    """Aggregate statistics over finished processing jobs."""
    total_processed: int
    success_rate: float
    average_confidence: float
    top_errors: List[str] = field(default_factory=list)
