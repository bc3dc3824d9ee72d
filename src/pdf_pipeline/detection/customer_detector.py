"""Customer detector for the PDF pipeline.

This module contains the CustomerDetector class that identifies which
customer a document belongs to. Four independent heuristics (exact text,
regex/header/footer patterns, fuzzy name match and filename match) run
for every active customer; all candidates are pooled and the most
confident one wins.

The detector keeps an arena of compiled customer profiles keyed by id.
Readers take a snapshot of the arena reference; writers build a new
arena and swap it in under a lock, so detection never sees a half
updated pattern set.
"""

import logging
import threading
from typing import Any, Dict, List, Optional

from langfuse import observe

from ..config import Config
from ..exceptions import CustomerNotFoundError
from ..models import (
    CustomerDetectionResult,
    DetectionMethod,
    DetectionPattern,
    PatternKind,
)
from .patterns import (
    FOOTER_LINES,
    HEADER_LINES,
    CustomerProfile,
    harvest_patterns,
    parse_identifier_patterns,
)

__all__ = ["CustomerDetector"]

logger = logging.getLogger(__name__)


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


class CustomerDetector:
    """Detects the customer a document belongs to.

    Attributes:
        repository: Customer repository (list_active, get,
            update_identifier_patterns)
    """

    def __init__(self, repository: Any) -> None:
        self.repository = repository
        self._profiles: Dict[str, CustomerProfile] = {}
        self._write_lock = threading.Lock()

    def initialize(self) -> None:
        """Load active customers and compile their patterns.

        Raises:
            DatabaseError: If customers cannot be loaded
        """
        customers = self.repository.list_active()
        profiles: Dict[str, CustomerProfile] = {}
        for customer in customers:
            patterns = parse_identifier_patterns(customer.identifier_patterns)
            profiles[customer.id] = CustomerProfile.build(customer.id, customer.name, patterns)

        with self._write_lock:
            self._profiles = profiles
        logger.info("Initialized customer detector with %d customers", len(profiles))

    @observe(name="customer_detection")
    def detect_customer(self, text: str, file_name: Optional[str] = None) -> CustomerDetectionResult:
        """Return the best matching customer for a document.

        Never raises. Returns a zero-confidence result without a customer
        when no heuristic produced a candidate; a top candidate below its
        heuristic's threshold is returned without a customer id.

        Args:
            text: Extracted document text
            file_name: Original file name, if known

        Returns:
            The most confident detection result
        """
        profiles = self._profiles
        candidates: List[CustomerDetectionResult] = []

        for profile in profiles.values():
            try:
                checks = [
                    self._check_exact_match(text, profile),
                    self._check_pattern_match(text, profile),
                    self._check_fuzzy_match(text, profile),
                ]
                if file_name:
                    checks.append(self._check_filename_match(file_name, profile))
            except Exception:
                logger.exception("Detection failed for customer %s", profile.name)
                continue
            candidates.extend(result for result in checks if result.confidence > 0)

        if not candidates:
            return CustomerDetectionResult.empty()

        # sorted() is stable, so ties keep encounter order
        best = sorted(candidates, key=lambda r: r.confidence, reverse=True)[0]
        best.confidence = _clamp(best.confidence)
        return best

    @staticmethod
    def _result(profile: CustomerProfile, confidence: float, threshold: float,
                matched: List[str], method: DetectionMethod) -> CustomerDetectionResult:
        accepted = confidence > threshold
        return CustomerDetectionResult(
            customer_id=profile.customer_id if accepted else None,
            customer_name=profile.name if accepted else None,
            confidence=confidence,
            matched_patterns=matched,
            method=method,
        )

    @staticmethod
    def _contains(haystack: str, pattern: DetectionPattern) -> bool:
        if pattern.case_sensitive:
            return pattern.pattern in haystack
        return pattern.pattern.lower() in haystack.lower()

    def _check_exact_match(self, text: str, profile: CustomerProfile) -> CustomerDetectionResult:
        matched: List[str] = []
        total_weight = 0.0
        matched_weight = 0.0

        for pattern in profile.of_kind(PatternKind.TEXT):
            total_weight += pattern.weight
            if self._contains(text, pattern):
                matched.append(pattern.pattern)
                matched_weight += pattern.weight

        confidence = matched_weight / total_weight if total_weight > 0 else 0.0
        return self._result(profile, confidence, Config.EXACT_MATCH_THRESHOLD,
                            matched, DetectionMethod.EXACT_MATCH)

    def _check_pattern_match(self, text: str, profile: CustomerProfile) -> CustomerDetectionResult:
        matched: List[str] = []
        total_weight = 0.0
        matched_weight = 0.0

        for pattern, regex in profile.regexes:
            total_weight += pattern.weight
            if regex.search(text):
                matched.append(pattern.pattern)
                matched_weight += pattern.weight

        lines = text.split("\n")
        header_text = " ".join(lines[:HEADER_LINES])
        footer_text = " ".join(lines[-FOOTER_LINES:])

        for pattern in profile.of_kind(PatternKind.HEADER, PatternKind.FOOTER):
            total_weight += pattern.weight
            region = header_text if pattern.kind == PatternKind.HEADER else footer_text
            if self._contains(region, pattern):
                matched.append(pattern.pattern)
                matched_weight += pattern.weight

        confidence = matched_weight / total_weight if total_weight > 0 else 0.0
        return self._result(profile, confidence, Config.PATTERN_MATCH_THRESHOLD,
                            matched, DetectionMethod.PATTERN_MATCH)

    def _check_fuzzy_match(self, text: str, profile: CustomerProfile) -> CustomerDetectionResult:
        text_lower = text.lower()
        matched = [word for word in profile.name_tokens if len(word) > 2 and word in text_lower]

        confidence = 0.0
        if profile.name_tokens:
            confidence = len(matched) / len(profile.name_tokens) * Config.FUZZY_MATCH_CAP

        return self._result(profile, confidence, Config.FUZZY_MATCH_THRESHOLD,
                            matched, DetectionMethod.FUZZY_MATCH)

    def _check_filename_match(self, file_name: str, profile: CustomerProfile) -> CustomerDetectionResult:
        file_name_lower = file_name.lower()
        matched: List[str] = []
        confidence = 0.0

        for word in profile.name_tokens:
            if len(word) > 2 and word in file_name_lower:
                matched.append(word)
                confidence += 0.3

        for pattern in profile.patterns:
            if pattern.pattern.lower() in file_name_lower:
                matched.append(pattern.pattern)
                confidence += 0.4

        confidence = min(confidence, Config.FILENAME_MATCH_CAP)
        return self._result(profile, confidence, Config.FILENAME_MATCH_THRESHOLD,
                            matched, DetectionMethod.FUZZY_MATCH)

    def add_customer_pattern(self, customer_id: str, pattern: DetectionPattern) -> None:
        """Append a pattern to a customer's stored and in-memory pattern sets.

        The pattern is persisted before the in-memory arena is updated, so
        a failed write never leaves an unpersisted pattern in use.

        Raises:
            CustomerNotFoundError: If the customer does not exist
            DatabaseError: If the pattern cannot be persisted
        """
        with self._write_lock:
            customer = self.repository.get(customer_id)
            if customer is None:
                raise CustomerNotFoundError(f"Customer not found: {customer_id}")

            updated = parse_identifier_patterns(customer.identifier_patterns) + [pattern]
            self.repository.update_identifier_patterns(customer_id, [p.to_dict() for p in updated])

            if getattr(customer, "is_active", True):
                profiles = dict(self._profiles)
                profiles[customer_id] = CustomerProfile.build(customer_id, customer.name, updated)
                self._profiles = profiles

    def learn_from_correction(self, text: str, correct_customer_id: str,
                              file_name: Optional[str] = None) -> List[DetectionPattern]:
        """Learn identification patterns from a document a user reassigned.

        Up to MAX_LEARNED_PATTERNS new patterns are registered against the
        corrected customer. Failures are logged, not raised.

        Args:
            text: Extracted text of the misclassified document
            correct_customer_id: Customer the document actually belongs to
            file_name: Original file name, if known

        Returns:
            Patterns that were registered
        """
        learned: List[DetectionPattern] = []
        try:
            existing = self._profiles.get(correct_customer_id)
            known = {(p.kind, p.pattern) for p in existing.patterns} if existing else set()
            candidates = [p for p in harvest_patterns(text) if (p.kind, p.pattern) not in known]

            for pattern in candidates[:Config.MAX_LEARNED_PATTERNS]:
                self.add_customer_pattern(correct_customer_id, pattern)
                learned.append(pattern)

            logger.info("Learned %d new patterns for customer %s (file: %s)",
                        len(learned), correct_customer_id, file_name or "-")
        except Exception:
            logger.exception("Failed to learn from correction for customer %s", correct_customer_id)
        return learned

    def get_detection_stats(self) -> Dict[str, int]:
        profiles = self._profiles
        return {
            "total_customers": len(profiles),
            "total_patterns": sum(len(p.patterns) for p in profiles.values()),
        }
