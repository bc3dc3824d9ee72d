"""Template engine for the PDF pipeline.

This module contains the TemplateEngine class that selects a customer's
template for a document and runs its extraction rules field by field:
extract, apply hardcoded mappings, validate. A failing field never stops
the run; it is recorded as an error or warning and the next field is
processed.
"""

import logging
import time
from typing import Any, Dict, List, Optional

from langfuse import observe

from ..config import Config
from ..exceptions import FormulaError
from ..models import ProcessingResult, StructuredData, Template
from ..validators import FieldValidator
from .field_extractor import FieldExtractor
from .mappings import MappingResolver
from .scorer import TemplateScorer
from .template_store import TemplateStore

__all__ = ["TemplateEngine"]

logger = logging.getLogger(__name__)


def _is_missing(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class TemplateEngine:
    """Selects templates and applies their extraction rules.

    Attributes:
        store: Template cache for lookups by id and customer
        field_extractor: Strategy dispatcher for individual rules
    """

    def __init__(self, store: TemplateStore,
                 field_extractor: Optional[FieldExtractor] = None) -> None:
        self.store = store
        self.field_extractor = field_extractor or FieldExtractor()

    def initialize(self) -> None:
        """Load active templates into the store.

        Raises:
            DatabaseError: If templates cannot be loaded
        """
        self.store.reload()

    def select_template(self, customer_id: str, text: str) -> Optional[Template]:
        """Pick the customer's template that best fits the document.

        Args:
            customer_id: Detected customer
            text: Extracted document text

        Returns:
            The best scoring template if its score clears the selection
            threshold, otherwise the customer's first template; None if
            the customer has no templates
        """
        templates = self.store.for_customer(customer_id)
        if not templates:
            return None
        if len(templates) == 1:
            return templates[0]

        best, best_score = templates[0], -1.0
        for template in templates:
            score = TemplateScorer.score(template, text)
            if score > best_score:
                best, best_score = template, score

        if best_score > Config.TEMPLATE_SELECTION_THRESHOLD:
            logger.info("Selected template %s (score %.2f)", best.name, best_score)
            return best
        return templates[0]

    @observe(name="template_processing")
    def process_document(self, template: Template, text: str,
                         structured_data: StructuredData) -> ProcessingResult:
        """Run every rule of a template against a document.

        Args:
            template: Template to apply
            text: Extracted document text
            structured_data: Tables, key-value pairs and word boxes

        Returns:
            ProcessingResult with extracted values, field errors and warnings
        """
        start = time.perf_counter()
        extracted: Dict[str, object] = {}
        errors: List[str] = []
        warnings: List[str] = []
        successful = 0

        for rule in template.rules:
            name = rule.field_name
            try:
                value = self.field_extractor.extract(rule, text, structured_data, extracted)
            except FormulaError as e:
                errors.append(f"Error calculating field '{name}': {e}")
                continue
            except Exception as e:
                logger.warning("Rule for field '%s' in template %s failed: %s", name, template.name, e)
                message = f"Error extracting field '{name}': {e}"
                (errors if rule.required else warnings).append(message)
                continue

            if _is_missing(value):
                if rule.required:
                    errors.append(f"Required field '{name}' could not be extracted")
                else:
                    warnings.append(f"Optional field '{name}' could not be extracted")
                continue

            value = MappingResolver.apply(template.hardcoded_mappings, name, value)
            is_valid, problems = FieldValidator.validate(rule, value)
            extracted[name] = value
            if is_valid:
                successful += 1
            else:
                warnings.append(f"Validation failed for {name}: {', '.join(problems)}")

        total = len(template.rules)
        confidence = successful / total if total else 0.0
        return ProcessingResult(
            success=not errors and confidence > 0.5,
            extracted_data=extracted,
            confidence=confidence,
            errors=errors,
            warnings=warnings,
            processing_time_ms=int((time.perf_counter() - start) * 1000),
        )

    def get_template(self, template_id: str) -> Optional[Template]:
        return self.store.get(template_id)

    def get_template_stats(self) -> Dict[str, Any]:
        return self.store.stats()
