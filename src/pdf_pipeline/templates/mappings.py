"""Hardcoded value mappings.

This module contains the MappingResolver class that substitutes extracted
values using a template's priority-ordered literal and wildcard mappings.
"""

import re
from functools import lru_cache
from typing import Any, Iterable, List, Pattern

from ..models import HardcodedMapping

__all__ = ["MappingResolver"]


@lru_cache(maxsize=512)
def _wildcard_regex(pattern: str) -> Pattern:
    """Translate a '*'/'?' wildcard pattern into an anchored regex."""
    parts = []
    for char in pattern:
        if char == "*":
            parts.append(".*")
        elif char == "?":
            parts.append(".")
        else:
            parts.append(re.escape(char))
    return re.compile("^" + "".join(parts) + "$", re.IGNORECASE | re.DOTALL)


class MappingResolver:
    """Applies hardcoded mappings to extracted field values."""

    @staticmethod
    def for_field(mappings: Iterable[HardcodedMapping], field_name: str) -> List[HardcodedMapping]:
        """Return the field's mappings, highest priority first.

        The sort is stable, so mappings of equal priority keep their
        stored order.
        """
        relevant = [m for m in mappings if m.field_name == field_name]
        return sorted(relevant, key=lambda m: m.priority, reverse=True)

    @staticmethod
    def matches(mapping: HardcodedMapping, value: Any) -> bool:
        text = str(value)
        source = mapping.source_pattern
        if source.lower() in text.lower():
            return True
        if "*" in source or "?" in source:
            return bool(_wildcard_regex(source).match(text))
        return False

    @staticmethod
    def apply(mappings: Iterable[HardcodedMapping], field_name: str, value: Any) -> Any:
        """Return the target value of the first matching mapping.

        Args:
            mappings: All mappings of the template
            field_name: Field the value was extracted for
            value: Extracted value

        Returns:
            The mapped value, or the original value when nothing matches
        """
        if value is None:
            return value
        for mapping in MappingResolver.for_field(mappings, field_name):
            if MappingResolver.matches(mapping, value):
                return mapping.target_value
        return value
