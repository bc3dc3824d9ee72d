"""Field extractor for the PDF pipeline.

This module contains the FieldExtractor class that evaluates a single
extraction rule against document text and its derived structure. Each
extraction type has its own strategy method; every strategy returns the
extracted value or None when nothing was found.
"""

import re
from typing import Any, Callable, Dict, List, Mapping, Optional

from ..exceptions import FormulaError, RuleEvaluationError
from ..models import (
    ExtractionRule,
    ExtractionType,
    KeywordDirection,
    StructuredData,
    WordBox,
)
from ..validators import to_number
from .formula import FormulaEvaluator

__all__ = ["FieldExtractor"]

_LEADING_SEPARATOR_RE = re.compile(r"^[:\s]*(.+)$")


class FieldExtractor:
    """Evaluates extraction rules one field at a time.

    Attributes:
        formula_evaluator: Evaluator used by calculation rules
    """

    def __init__(self, formula_evaluator: Optional[FormulaEvaluator] = None) -> None:
        self.formula_evaluator = formula_evaluator or FormulaEvaluator()
        self._strategies: Dict[ExtractionType, Callable[..., Any]] = {
            ExtractionType.REGEX: self._extract_by_regex,
            ExtractionType.KEYWORD: self._extract_by_keyword,
            ExtractionType.TABLE: self._extract_from_table,
            ExtractionType.POSITION: self._extract_by_position,
            ExtractionType.CALCULATION: self._calculate_field,
        }

    def extract(self, rule: ExtractionRule, text: str, structured_data: StructuredData,
                extracted_values: Mapping[str, Any]) -> Any:
        """Extract one field.

        Args:
            rule: Rule describing where the value lives
            text: Full document text
            structured_data: Tables, key-value pairs and page word boxes
            extracted_values: Fields extracted earlier in the same run,
                used by calculation rules

        Returns:
            The extracted value, or None if not found

        Raises:
            RuleEvaluationError: If the rule itself cannot be evaluated
            FormulaError: If a calculation fails
        """
        strategy = self._strategies.get(rule.extraction_type)
        if strategy is None:
            raise RuleEvaluationError(f"Unsupported extraction type: {rule.extraction_type}")
        return strategy(rule, text, structured_data, extracted_values)

    @staticmethod
    def _extract_by_regex(rule: ExtractionRule, text: str, *_: Any) -> Optional[str]:
        if not rule.pattern:
            return None
        try:
            match = re.search(rule.pattern, text, re.IGNORECASE)
        except re.error as e:
            raise RuleEvaluationError(f"Invalid regex pattern '{rule.pattern}': {e}") from e
        return match.group(0) if match else None

    @staticmethod
    def _extract_by_keyword(rule: ExtractionRule, text: str, *_: Any) -> Optional[str]:
        config = rule.keyword_config
        if config is None:
            return None

        lines = text.split("\n")
        radius = max(config.search_radius, 0)

        for keyword in config.keywords:
            keyword_lower = keyword.lower()
            if not keyword_lower:
                continue
            for i, line in enumerate(lines):
                index = line.lower().find(keyword_lower)
                if index == -1:
                    continue

                if config.direction == KeywordDirection.SAME_LINE:
                    match = _LEADING_SEPARATOR_RE.match(line[index + len(keyword):].strip())
                    if match:
                        return match.group(1).strip()
                elif config.direction == KeywordDirection.AFTER:
                    for j in range(i + 1, min(i + radius, len(lines) - 1) + 1):
                        if lines[j].strip():
                            return lines[j].strip()
                else:
                    for j in range(i - 1, max(i - radius, 0) - 1, -1):
                        if lines[j].strip():
                            return lines[j].strip()
        return None

    @staticmethod
    def _extract_from_table(rule: ExtractionRule, _text: str,
                            structured_data: StructuredData, *_: Any) -> Optional[str]:
        config = rule.table_config
        tables = structured_data.tables
        if config is None or not tables:
            return None
        if not 0 <= config.table_index < len(tables):
            return None

        table = tables[config.table_index]
        rows = table.rows

        if config.header_name:
            headers = table.headers or (rows[0] if rows else [])
            wanted = config.header_name.lower()
            column = next((i for i, h in enumerate(headers) if wanted in h.lower()), -1)
            if column == -1 or len(rows) < 2:
                return None
            data_row = rows[1]
            return (data_row[column] or None) if column < len(data_row) else None

        if config.column_index is not None:
            row_index = config.row_index if config.row_index is not None else 1
            if 0 <= row_index < len(rows) and 0 <= config.column_index < len(rows[row_index]):
                return rows[row_index][config.column_index] or None
        return None

    @staticmethod
    def _extract_by_position(rule: ExtractionRule, text: str,
                             structured_data: StructuredData, *_: Any) -> Optional[str]:
        position = rule.position
        if position is None:
            return None

        page_number = position.page or 1
        page = next((p for p in structured_data.pages if p.page_number == page_number), None)

        if page is not None and page.words and position.width and position.height:
            words = [
                w for w in page.words
                if w.x0 >= position.x and w.x1 <= position.x + position.width
                and w.top >= position.y and w.bottom <= position.y + position.height
            ]
            return _join_reading_order(words) or None

        # Without word boxes, y and height are treated as line offsets
        lines = text.split("\n")
        start = max(0, int(position.y) - 2)
        end = min(len(lines), start + int(position.height or 1))
        return " ".join(lines[start:end]).strip() or None

    def _calculate_field(self, rule: ExtractionRule, _text: str, _structured: StructuredData,
                         extracted_values: Mapping[str, Any]) -> Optional[float]:
        config = rule.calculation_config
        if config is None:
            return None

        if config.formula:
            return self.formula_evaluator.evaluate(config.formula, extracted_values)

        values: List[float] = []
        for name in config.source_fields:
            number = to_number(extracted_values.get(name, 0))
            if number is not None:
                values.append(number)
        if not values:
            return None

        operation = (config.operation or "").lower()
        if operation == "sum":
            return sum(values)
        if operation == "multiply":
            result = 1.0
            for value in values:
                result *= value
            return result
        if operation == "subtract":
            result = values[0]
            for value in values[1:]:
                result -= value
            return result
        if operation == "divide":
            result = values[0]
            for value in values[1:]:
                if value == 0:
                    raise FormulaError(f"Division by zero calculating '{rule.field_name}'")
                result /= value
            return result
        return None


def _join_reading_order(words: List[WordBox]) -> str:
    """Join words top-to-bottom, then left-to-right within a line."""
    lines: List[List[WordBox]] = []
    for word in sorted(words, key=lambda w: (w.top, w.x0)):
        if lines:
            anchor = lines[-1][0]
            tolerance = max((anchor.bottom - anchor.top) / 2, 1.0)
            if abs(word.top - anchor.top) <= tolerance:
                lines[-1].append(word)
                continue
        lines.append([word])
    return " ".join(
        " ".join(w.text for w in sorted(line, key=lambda w: w.x0)) for line in lines
    ).strip()
