"""Template repository for the PDF pipeline.

This module contains the TemplateRepository class that persists document
templates with their hardcoded mappings and converts stored records into
Template entities for the template engine.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from ..models import (
    DocumentTemplate,
    ExtractionRule,
    HardcodedMapping,
    HardcodedMappingRecord,
    Template,
)
from ..exceptions import ValidationError
from .database_manager import DatabaseManager

__all__ = ["TemplateRepository"]

logger = logging.getLogger(__name__)


class TemplateRepository:
    """Repository pattern implementation for template records.

    Attributes:
        db_manager: DatabaseManager instance for database operations
    """

    def __init__(self, db_manager: DatabaseManager) -> None:
        self.db_manager: DatabaseManager = db_manager

    def add_template(self, customer_id: str, name: str, rules: List[Dict[str, Any]],
                     version: int = 1, is_active: bool = True,
                     template_id: Optional[str] = None) -> str:
        """Create a template record.

        Args:
            customer_id: Owning customer
            name: Template name
            rules: Extraction rule definitions
            version: Template version number
            is_active: Whether the template can be selected
            template_id: Optional explicit id

        Returns:
            Id of the created template

        Raises:
            DatabaseError: If database operation fails
        """
        with self.db_manager.session_scope("save") as session:
            record = DocumentTemplate(
                customer_id=customer_id,
                name=name,
                extraction_rules=rules,
                version=version,
                is_active=is_active,
            )
            if template_id:
                record.id = template_id
            session.add(record)
            session.flush()
            return record.id

    def add_mapping(self, template_id: str, field_name: str, source_pattern: str,
                    target_value: str, priority: int = 0) -> int:
        """Attach a hardcoded mapping to a template.

        Args:
            template_id: Owning template
            field_name: Field the mapping applies to
            source_pattern: Literal or wildcard pattern
            target_value: Replacement value
            priority: 0-10, higher wins

        Returns:
            Id of the created mapping

        Raises:
            ValidationError: If the priority is out of range or the
                (field_name, source_pattern) pair already exists
            DatabaseError: If database operation fails
        """
        if not 0 <= priority <= 10:
            raise ValidationError(f"Mapping priority must be between 0 and 10, got {priority}")

        with self.db_manager.session_scope("save") as session:
            existing = session.scalar(
                select(HardcodedMappingRecord).where(
                    HardcodedMappingRecord.template_id == template_id,
                    HardcodedMappingRecord.field_name == field_name,
                    HardcodedMappingRecord.source_pattern == source_pattern,
                )
            )
            if existing is not None:
                raise ValidationError(
                    f"Mapping for field '{field_name}' with pattern '{source_pattern}' already exists"
                )
            record = HardcodedMappingRecord(
                template_id=template_id,
                field_name=field_name,
                source_pattern=source_pattern,
                target_value=target_value,
                priority=priority,
            )
            session.add(record)
            session.flush()
            return record.id

    def list_active(self) -> List[Template]:
        """Return all active templates with their active mappings."""
        with self.db_manager.session_scope("query") as session:
            stmt = (
                select(DocumentTemplate)
                .where(DocumentTemplate.is_active.is_(True))
                .options(selectinload(DocumentTemplate.hardcoded_mappings))
                .order_by(DocumentTemplate.created_at, DocumentTemplate.id)
            )
            return [self._to_entity(record) for record in session.scalars(stmt)]

    def get(self, template_id: str) -> Optional[Template]:
        with self.db_manager.session_scope("query") as session:
            record = session.get(
                DocumentTemplate,
                template_id,
                options=[selectinload(DocumentTemplate.hardcoded_mappings)],
            )
            return self._to_entity(record) if record is not None else None

    @staticmethod
    def _to_entity(record: DocumentTemplate) -> Template:
        """Convert a stored template into a Template entity.

        Rules that cannot be parsed are skipped with a warning so one
        malformed rule does not disable the whole template.
        """
        rules: List[ExtractionRule] = []
        for raw_rule in record.extraction_rules or []:
            try:
                rules.append(ExtractionRule.from_dict(raw_rule))
            except (ValueError, TypeError, KeyError) as e:
                logger.warning("Skipping invalid rule in template %s: %s", record.name, e)

        mappings = [
            HardcodedMapping(
                field_name=m.field_name,
                source_pattern=m.source_pattern,
                target_value=m.target_value,
                priority=m.priority,
            )
            for m in record.hardcoded_mappings
            if m.is_active
        ]

        return Template(
            id=record.id,
            customer_id=record.customer_id,
            name=record.name,
            rules=rules,
            hardcoded_mappings=mappings,
            version=record.version,
            is_active=record.is_active,
        )
