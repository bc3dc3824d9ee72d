"""Detection module for the PDF pipeline.

This module contains customer detection: identifier pattern parsing,
compiled customer profiles and the multi-heuristic CustomerDetector.
"""

from .patterns import CustomerProfile, parse_identifier_patterns, harvest_patterns
from .customer_detector import CustomerDetector

__all__ = ["CustomerDetector", "CustomerProfile", "parse_identifier_patterns", "harvest_patterns"]
