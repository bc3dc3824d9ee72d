"""Database models for the PDF pipeline.

This module contains SQLAlchemy model definitions for customers,
templates and their hardcoded mappings, documents, processing jobs,
CSV outputs and the reprocessing history audit trail.
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import declarative_base, relationship

__all__ = [
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

Base = declarative_base()


def _new_id() -> str:
    return str(uuid.uuid4())


# Insertion order of customers and templates drives tie-breaking, so the
# timestamp is taken client side with microsecond precision.
def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DocumentStatus(str, enum.Enum):
    """Lifecycle states of an uploaded document."""
    UPLOADED = "UPLOADED"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class JobStatus(str, enum.Enum):
    """Lifecycle states of a processing job."""
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class Customer(Base):
    """SQLAlchemy model for a customer and its identification patterns.

    Attributes:
        id: Primary key
        name: Customer display name, also used for fuzzy detection
        identifier_patterns: JSON list of pattern objects or a flat key/value object
        is_active: Only active customers take part in detection
    """
    __tablename__ = "customers"

    id: str = Column(String(36), primary_key=True, default=_new_id)
    name: str = Column(String(255), nullable=False)
    identifier_patterns = Column(JSON, nullable=False, default=list)
    is_active: bool = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now())

    templates = relationship("DocumentTemplate", back_populates="customer")


class DocumentTemplate(Base):
    """SQLAlchemy model for a customer-scoped extraction template."""
    __tablename__ = "document_templates"

    id: str = Column(String(36), primary_key=True, default=_new_id)
    customer_id: str = Column(String(36), ForeignKey("customers.id"), nullable=False)
    name: str = Column(String(255), nullable=False)
    version: int = Column(Integer, nullable=False, default=1)
    extraction_rules = Column(JSON, nullable=False, default=list)
    is_active: bool = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now())

    customer = relationship("Customer", back_populates="templates")
    hardcoded_mappings = relationship(
        "HardcodedMappingRecord",
        back_populates="template",
        order_by="HardcodedMappingRecord.priority.desc()",
    )


class HardcodedMappingRecord(Base):
    """SQLAlchemy model for a template's value remapping rule."""
    __tablename__ = "hardcoded_mappings"
    __table_args__ = (
        UniqueConstraint("template_id", "field_name", "source_pattern", name="uq_mapping_source"),
    )

    id: int = Column(Integer, primary_key=True)
    template_id: str = Column(String(36), ForeignKey("document_templates.id"), nullable=False)
    field_name: str = Column(String(255), nullable=False)
    source_pattern: str = Column(String(255), nullable=False)
    target_value: str = Column(Text, nullable=False)
    priority: int = Column(Integer, nullable=False, default=0)
    is_active: bool = Column(Boolean, nullable=False, default=True)

    template = relationship("DocumentTemplate", back_populates="hardcoded_mappings")


class Document(Base):
    """SQLAlchemy model for an uploaded document.

    Attributes:
        current_csv_path: CSV artifact of the most recent completed job
        current_job_id: Id of the job that produced current_csv_path
        detection_log: Summary of the last completed run
    """
    __tablename__ = "documents"

    id: str = Column(String(36), primary_key=True, default=_new_id)
    filename: str = Column(String(255), nullable=False)
    original_path: str = Column(String(1024), nullable=False)
    status = Column(Enum(DocumentStatus), nullable=False, default=DocumentStatus.UPLOADED)
    customer_id = Column(String(36), ForeignKey("customers.id"), nullable=True)
    template_id = Column(String(36), ForeignKey("document_templates.id"), nullable=True)
    confidence_score = Column(Float, nullable=True)
    detection_log = Column(JSON, nullable=True)
    current_csv_path = Column(String(1024), nullable=True)
    current_job_id = Column(String(36), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    jobs = relationship("ProcessingJob", back_populates="document")


class ProcessingJob(Base):
    """SQLAlchemy model for one processing attempt of a document."""
    __tablename__ = "processing_jobs"

    id: str = Column(String(36), primary_key=True, default=_new_id)
    document_id: str = Column(String(36), ForeignKey("documents.id"), nullable=False)
    status = Column(Enum(JobStatus), nullable=False, default=JobStatus.RUNNING)
    processed_by_id = Column(String(255), nullable=True)
    started_at = Column(DateTime(timezone=True), nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    error_message = Column(Text, nullable=True)
    extraction_log = Column(JSON, nullable=True)

    document = relationship("Document", back_populates="jobs")


class CsvOutput(Base):
    """SQLAlchemy model for a CSV artifact produced by a completed job."""
    __tablename__ = "csv_outputs"

    id: int = Column(Integer, primary_key=True)
    document_id: str = Column(String(36), ForeignKey("documents.id"), nullable=False)
    job_id: str = Column(String(36), ForeignKey("processing_jobs.id"), nullable=False)
    file_path: str = Column(String(1024), nullable=False)
    file_name: str = Column(String(255), nullable=False)
    row_count: int = Column(Integer, nullable=False)
    column_count: int = Column(Integer, nullable=False)
    file_size: int = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class ReprocessingHistory(Base):
    """SQLAlchemy model for the append-only reprocessing audit trail."""
    __tablename__ = "reprocessing_history"
    __table_args__ = (
        UniqueConstraint("document_id", "version", name="uq_reprocessing_version"),
    )

    id: int = Column(Integer, primary_key=True)
    document_id: str = Column(String(36), ForeignKey("documents.id"), nullable=False)
    version: int = Column(Integer, nullable=False)
    changes_made = Column(JSON, nullable=False)
    triggered_by: str = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
