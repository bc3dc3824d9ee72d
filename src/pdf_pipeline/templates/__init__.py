"""Templates module for the PDF pipeline.

This module contains template selection and rule evaluation: the
TemplateEngine, its in-memory TemplateStore, the per-rule FieldExtractor,
hardcoded value mappings and the restricted formula evaluator.
"""

from .formula import FormulaEvaluator
from .mappings import MappingResolver
from .field_extractor import FieldExtractor
from .scorer import TemplateScorer
from .template_store import TemplateStore
from .template_engine import TemplateEngine

__all__ = [
    "FormulaEvaluator",
    "MappingResolver",
    "FieldExtractor",
    "TemplateScorer",
    "TemplateStore",
    "TemplateEngine"
]
