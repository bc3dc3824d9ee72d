"""Field validation for template-extracted values.

This module contains the FieldValidator class that checks an extracted
(and possibly remapped) value against its rule's validation spec.
"""

import re
from typing import Any, List, Tuple

from ..models import DataType, ExtractionRule
from .values import is_currency, parse_date, parse_leading_float

__all__ = ["FieldValidator"]


def _is_empty(value: Any) -> bool:
    return value is None or value == ""


class FieldValidator:
    """Validates extracted field values against a rule's validation spec.

    Only a missing required value is a hard failure for the template
    engine; every other problem reported here is surfaced as a warning.
    """

    @staticmethod
    def validate(rule: ExtractionRule, value: Any) -> Tuple[bool, List[str]]:
        """Validate a single field value.

        Args:
            rule: Extraction rule carrying the validation spec
            value: Extracted value after hardcoded mappings

        Returns:
            Tuple of (is_valid, list of problem descriptions)
        """
        spec = rule.validation
        if spec is None:
            return True, []

        if spec.required and _is_empty(value):
            return False, ["Field is required but no value was extracted"]

        if _is_empty(value):
            return True, []

        errors: List[str] = []
        type_error = FieldValidator._check_type(spec.data_type, value)
        if type_error:
            errors.append(type_error)

        str_value = str(value)
        if spec.min_length and len(str_value) < spec.min_length:
            errors.append(f"Value must be at least {spec.min_length} characters long")
        if spec.max_length and len(str_value) > spec.max_length:
            errors.append(f"Value must not exceed {spec.max_length} characters")

        if spec.pattern:
            try:
                if not re.search(spec.pattern, str_value):
                    errors.append("Value does not match required pattern")
            except re.error:
                errors.append("Invalid validation pattern")

        return not errors, errors

    @staticmethod
    def _check_type(data_type: DataType, value: Any) -> str:
        if data_type == DataType.NUMBER:
            if parse_leading_float(value) is None:
                return "Value must be a number"
        elif data_type == DataType.DATE:
            if parse_date(value) is None:
                return "Value must be a valid date"
        elif data_type == DataType.CURRENCY:
            if not is_currency(value):
                return "Value must be a valid currency amount"
        elif data_type == DataType.PERCENTAGE:
            number = parse_leading_float(str(value).replace("%", ""))
            if number is None or number < 0 or number > 100:
                return "Value must be a valid percentage"
        return ""
