"""Customer identification patterns.

This module parses stored identifier patterns into DetectionPattern
objects, compiles them into per-customer profiles, and harvests new
candidate patterns from correctly classified documents.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Pattern, Tuple

from ..models import DetectionPattern, PatternKind

__all__ = [
    "CustomerProfile",
    "parse_identifier_patterns",
    "harvest_patterns",
]

logger = logging.getLogger(__name__)

HEADER_LINES = 5
FOOTER_LINES = 5

_COMPANY_NAME_RE = re.compile(r"^[A-Z][A-Za-z\s&,.]+$")
_IDENTIFIER_RES = (
    re.compile(r"\bAccount[:\s]+([A-Z0-9\-]{3,15})", re.I),
    re.compile(r"\bID[:\s]+([A-Z0-9\-]{3,15})", re.I),
    re.compile(r"\bReference[:\s]+([A-Z0-9\-]{3,15})", re.I),
)


def _pattern_from_dict(raw: Dict[str, Any]) -> Optional[DetectionPattern]:
    value = raw.get("pattern", raw.get("value"))
    if value is None or str(value) == "":
        logger.warning("Ignoring identifier pattern without a value: %r", raw)
        return None

    try:
        kind = PatternKind(raw.get("type") or "text")
    except ValueError:
        logger.warning("Ignoring identifier pattern with unknown type: %r", raw.get("type"))
        return None

    weight = raw.get("weight")
    try:
        weight = 1.0 if weight is None else max(0.0, float(weight))
    except (TypeError, ValueError):
        logger.warning("Invalid weight %r for pattern %r, using 1.0", weight, value)
        weight = 1.0

    case_sensitive = raw.get("caseSensitive", raw.get("case_sensitive", False))
    return DetectionPattern(
        kind=kind,
        pattern=str(value),
        weight=weight,
        case_sensitive=bool(case_sensitive),
    )


def parse_identifier_patterns(data: Any) -> List[DetectionPattern]:
    """Parse stored identifier patterns in any supported format.

    Supported formats:
        - list of strings: each becomes a text pattern with weight 1.0
        - list of objects: {type, pattern|value, weight, caseSensitive}
        - flat object (legacy data): {"companyName": "ACME Corp", ...}; keys
          containing "regex" become regex patterns, keys containing "name"
          are weighted 2.0 and all others 1.0

    Args:
        data: Raw identifier_patterns value from the customer record

    Returns:
        Parsed patterns; malformed entries are skipped
    """
    patterns: List[DetectionPattern] = []

    if isinstance(data, list):
        for item in data:
            if isinstance(item, str):
                if item:
                    patterns.append(DetectionPattern(kind=PatternKind.TEXT, pattern=item))
            elif isinstance(item, dict):
                pattern = _pattern_from_dict(item)
                if pattern is not None:
                    patterns.append(pattern)
            else:
                logger.warning("Ignoring identifier pattern of type %s", type(item).__name__)
    elif isinstance(data, dict):
        for key, value in data.items():
            if not isinstance(value, str) or not value:
                continue
            key_lower = str(key).lower()
            patterns.append(DetectionPattern(
                kind=PatternKind.REGEX if "regex" in key_lower else PatternKind.TEXT,
                pattern=value,
                weight=2.0 if "name" in key_lower else 1.0,
            ))
    elif data is not None:
        logger.warning("Unsupported identifier pattern format: %s", type(data).__name__)

    return patterns


@dataclass(frozen=True)
class CustomerProfile:
    """A customer with its patterns precompiled for detection.

    Attributes:
        customer_id: Customer primary key
        name: Customer display name
        patterns: All identification patterns in stored order
        name_tokens: Lower-cased whitespace tokens of the name
        regexes: Compiled regex patterns paired with their source pattern
    """
    customer_id: str
    name: str
    patterns: Tuple[DetectionPattern, ...]
    name_tokens: Tuple[str, ...]
    regexes: Tuple[Tuple[DetectionPattern, Pattern], ...]

    @classmethod
    def build(cls, customer_id: str, name: str,
              patterns: List[DetectionPattern]) -> "CustomerProfile":
        regexes: List[Tuple[DetectionPattern, Pattern]] = []
        for pattern in patterns:
            if pattern.kind != PatternKind.REGEX:
                continue
            flags = 0 if pattern.case_sensitive else re.IGNORECASE
            try:
                regexes.append((pattern, re.compile(pattern.pattern, flags)))
            except re.error as e:
                logger.warning("Invalid regex pattern for customer %s: %s (%s)",
                               name, pattern.pattern, e)

        return cls(
            customer_id=customer_id,
            name=name,
            patterns=tuple(patterns),
            name_tokens=tuple((name or "").lower().split()),
            regexes=tuple(regexes),
        )

    def of_kind(self, *kinds: PatternKind) -> List[DetectionPattern]:
        return [p for p in self.patterns if p.kind in kinds]


def harvest_patterns(text: str) -> List[DetectionPattern]:
    """Collect candidate identification patterns from a document.

    Header lines shaped like company names become header patterns and
    account/ID/reference codes become escaped regex patterns. Duplicates
    are removed while keeping discovery order.
    """
    candidates: List[DetectionPattern] = []

    for line in text.split("\n")[:HEADER_LINES]:
        trimmed = line.strip()
        if 5 < len(trimmed) < 50 and _COMPANY_NAME_RE.match(trimmed):
            candidates.append(DetectionPattern(
                kind=PatternKind.HEADER,
                pattern=trimmed,
                weight=1.5,
            ))

    for identifier_re in _IDENTIFIER_RES:
        for match in identifier_re.finditer(text):
            candidates.append(DetectionPattern(
                kind=PatternKind.REGEX,
                pattern=re.escape(match.group(1)),
                weight=2.0,
            ))

    unique: List[DetectionPattern] = []
    seen = set()
    for candidate in candidates:
        key = (candidate.kind, candidate.pattern)
        if key not in seen:
            seen.add(key)
            unique.append(candidate)
    return unique
