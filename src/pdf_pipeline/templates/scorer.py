"""Template scoring.

This module contains the TemplateScorer class that rates how well a
template's rules fit a document's text.
"""

import re

from ..models import ExtractionType, Template

__all__ = ["TemplateScorer"]

_DOCUMENT_KINDS = ("invoice", "receipt", "statement")


class TemplateScorer:
    """Heuristic template-to-document fit score."""

    @staticmethod
    def score(template: Template, text: str) -> float:
        """Score a template against document text.

        Keyword rules whose keywords appear in the text and regex rules
        that match score one point each, position rules half a point.
        Document kinds named by the template ("invoice", "receipt",
        "statement") add two points when the text mentions them too.
        """
        text_lower = text.lower()
        points = 0.0

        for rule in template.rules:
            if rule.extraction_type == ExtractionType.KEYWORD and rule.keyword_config:
                if any(k.lower() in text_lower for k in rule.keyword_config.keywords if k):
                    points += 1
            elif rule.extraction_type == ExtractionType.REGEX and rule.pattern:
                try:
                    if re.search(rule.pattern, text, re.IGNORECASE):
                        points += 1
                except re.error:
                    continue
            elif rule.extraction_type == ExtractionType.POSITION:
                points += 0.5

        name_lower = template.name.lower()
        for kind in _DOCUMENT_KINDS:
            if kind in name_lower and kind in text_lower:
                points += 2

        return points / (len(template.rules) + 3)
