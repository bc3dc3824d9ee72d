"""Builders for pipeline entities shared by the test modules."""

from typing import Any, Dict, List

from pdf_pipeline.models import (
    DocumentMetadata,
    ExtractedDocument,
    ExtractionRule,
    HardcodedMapping,
    PageData,
    Template,
)


def make_document(text: str, pages: int = 1, method: str = "direct",
                  confidence: float = 0.95) -> ExtractedDocument:
    """Build an ExtractedDocument with one PageData per text page."""
    return ExtractedDocument(
        text=text,
        pages=[PageData(page_number=1, text=text, confidence=confidence)],
        metadata=DocumentMetadata(total_pages=pages),
        confidence=confidence,
        method=method,
    )


def make_template(rules: List[Dict[str, Any]], mappings: List[Dict[str, Any]] = None,
                  template_id: str = "tpl-1", customer_id: str = "cust-1",
                  name: str = "ACME Invoice") -> Template:
    """Build a Template from stored-style rule and mapping dictionaries."""
    return Template(
        id=template_id,
        customer_id=customer_id,
        name=name,
        rules=[ExtractionRule.from_dict(rule) for rule in rules],
        hardcoded_mappings=[HardcodedMapping.from_dict(m) for m in (mappings or [])],
    )


