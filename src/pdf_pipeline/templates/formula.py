"""Restricted arithmetic evaluation for calculation rules.

This module contains the FormulaEvaluator class. Formulas such as
"{subtotal} + {tax} * 2" are tokenized and evaluated by a small
recursive-descent parser that only understands numbers, field
placeholders, + - * / and parentheses. Nothing in a formula is ever
executed as code.

Grammar:
    expression := term (("+" | "-") term)*
    term       := factor (("*" | "/") factor)*
    factor     := ("+" | "-") factor | NUMBER | PLACEHOLDER | "(" expression ")"
"""

import re
from typing import Any, List, Mapping, Tuple

from ..exceptions import FormulaError
from ..validators import to_number

__all__ = ["FormulaEvaluator"]

_TOKEN_RE = re.compile(r"\s*(?:(\d+(?:\.\d*)?|\.\d+)|\{([^{}]+)\}|([+\-*/()]))")

MAX_FORMULA_LENGTH = 1000

Token = Tuple[str, Any]


class FormulaEvaluator:
    """Evaluates arithmetic formulas with {field} placeholders.

    The evaluator is stateless and may be shared between threads.
    """

    def evaluate(self, formula: str, values: Mapping[str, Any]) -> float:
        """Evaluate a formula against already extracted field values.

        Args:
            formula: Expression such as "{quantity} * {unit_price}"
            values: Extracted values by field name; currency symbols,
                thousands separators and percent signs are ignored

        Returns:
            Result of the expression

        Raises:
            FormulaError: On syntax errors, unknown or non-numeric fields,
                and division by zero
        """
        if not formula or not formula.strip():
            raise FormulaError("Formula is empty")
        if len(formula) > MAX_FORMULA_LENGTH:
            raise FormulaError("Formula is too long")

        return _Parser(self._tokenize(formula, values)).parse()

    @staticmethod
    def _tokenize(formula: str, values: Mapping[str, Any]) -> List[Token]:
        tokens: List[Token] = []
        pos = 0
        stripped_end = len(formula.rstrip())
        while pos < stripped_end:
            match = _TOKEN_RE.match(formula, pos)
            if not match:
                raise FormulaError(f"Unexpected character '{formula[pos:].strip()[:1]}' in formula")
            number, field_name, operator = match.groups()
            if number is not None:
                tokens.append(("num", float(number)))
            elif field_name is not None:
                name = field_name.strip()
                if name not in values:
                    raise FormulaError(f"Unknown field '{name}' in formula")
                value = to_number(values[name])
                if value is None:
                    raise FormulaError(f"Field '{name}' is not numeric: {values[name]!r}")
                tokens.append(("num", value))
            else:
                tokens.append(("op", operator))
            pos = match.end()
        return tokens


class _Parser:
    """Parse state for one evaluation; never shared between calls."""

    def __init__(self, tokens: List[Token]) -> None:
        self.tokens = tokens
        self.pos = 0

    def parse(self) -> float:
        result = self._expression()
        if self.pos != len(self.tokens):
            raise FormulaError(f"Unexpected token '{self.tokens[self.pos][1]}' in formula")
        return result

    def _peek(self) -> Token:
        if self.pos < len(self.tokens):
            return self.tokens[self.pos]
        return ("end", None)

    def _advance(self) -> Token:
        token = self._peek()
        self.pos += 1
        return token

    def _expression(self) -> float:
        value = self._term()
        while self._peek() in (("op", "+"), ("op", "-")):
            operator = self._advance()[1]
            right = self._term()
            value = value + right if operator == "+" else value - right
        return value

    def _term(self) -> float:
        value = self._factor()
        while self._peek() in (("op", "*"), ("op", "/")):
            operator = self._advance()[1]
            right = self._factor()
            if operator == "*":
                value = value * right
            else:
                if right == 0:
                    raise FormulaError("Division by zero in formula")
                value = value / right
        return value

    def _factor(self) -> float:
        kind, token = self._advance()
        if kind == "num":
            return token
        if (kind, token) == ("op", "-"):
            return -self._factor()
        if (kind, token) == ("op", "+"):
            return self._factor()
        if (kind, token) == ("op", "("):
            value = self._expression()
            if self._advance() != ("op", ")"):
                raise FormulaError("Missing closing parenthesis in formula")
            return value
        if kind == "end":
            raise FormulaError("Unexpected end of formula")
        raise FormulaError(f"Unexpected token '{token}' in formula")
