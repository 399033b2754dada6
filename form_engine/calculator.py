"""
Calculated field support.

Expressions reference other fields as ``{fieldId}``. References are replaced
with the fields' numeric values and the remaining text is evaluated by a
small arithmetic walker over the Python AST: numbers, unary and binary
``+ - * /`` and parentheses only. Nothing else is ever executed.
"""

from __future__ import annotations

import ast
import logging
import math
import re
from typing import Any, Dict, List, Optional, Union

from form_engine.conditions import is_number
from form_engine.config import get_settings

logger = logging.getLogger(__name__)

Number = Union[int, float]

_REFERENCE_PATTERN = re.compile(r"\{([^}]+)\}")
_FLOAT_PREFIX = re.compile(r"\s*([+-]?(?:Infinity|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?))")

_BINARY_OPERATORS = {
    ast.Add: lambda left, right: left + right,
    ast.Sub: lambda left, right: left - right,
    ast.Mult: lambda left, right: left * right,
    ast.Div: lambda left, right: left / right,
}

_UNARY_OPERATORS = {
    ast.UAdd: lambda operand: +operand,
    ast.USub: lambda operand: -operand,
}


class CalculationError(ValueError):
    """Raised inside the evaluator for expressions outside the arithmetic subset."""


def parse_float_prefix(text: str) -> Optional[float]:
    """Parse the leading float literal of a string, ``None`` if there is none."""
    match = _FLOAT_PREFIX.match(text)
    if not match:
        return None
    return float(match.group(1))


def to_number(value: Any) -> Number:
    """Numeric value of a form field for substitution; 0 when it has none."""
    if is_number(value):
        return value
    if isinstance(value, str):
        parsed = parse_float_prefix(value)
        if parsed is not None and not math.isnan(parsed):
            return parsed
    return 0


def extract_field_references(expression: str) -> List[str]:
    return _REFERENCE_PATTERN.findall(expression or "")


def substitute_references(expression: str, form_data: Dict[str, Any]) -> str:
    data = form_data or {}

    def replace(match):
        number = to_number(data.get(match.group(1)))
        # Parenthesised so negative values survive next to other operators
        return f"({number!r})"

    return _REFERENCE_PATTERN.sub(replace, expression)


def _evaluate_ast(node: ast.AST) -> Number:
    if isinstance(node, ast.Expression):
        return _evaluate_ast(node.body)
    if isinstance(node, ast.Constant):
        if is_number(node.value):
            return node.value
        raise CalculationError(f"Unsupported literal {node.value!r}")
    if isinstance(node, ast.UnaryOp):
        op = _UNARY_OPERATORS.get(type(node.op))
        if op is None:
            raise CalculationError("Unsupported unary operator")
        return op(_evaluate_ast(node.operand))
    if isinstance(node, ast.BinOp):
        op = _BINARY_OPERATORS.get(type(node.op))
        if op is None:
            raise CalculationError("Unsupported binary operator")
        return op(_evaluate_ast(node.left), _evaluate_ast(node.right))
    raise CalculationError(f"Unsupported expression node {type(node).__name__}")


def evaluate_arithmetic(expression: str) -> Number:
    """Evaluate a plain arithmetic expression. Raises on anything else."""
    parsed = ast.parse(expression.strip(), mode="eval")
    return _evaluate_ast(parsed)


def calculate(expression: str, form_data: Dict[str, Any], settings=None) -> Optional[Number]:
    """Compute a calculated field value.

    Returns ``None`` when the expression is malformed, uses anything beyond
    arithmetic, divides by zero, or does not produce a finite number.
    """
    settings = settings or get_settings()
    if not isinstance(expression, str) or not expression.strip():
        logger.warning("Empty or non-text calculation expression")
        return None
    if len(expression) > settings.max_expression_length:
        logger.warning(
            f"Calculation expression longer than {settings.max_expression_length} characters ignored"
        )
        return None

    substituted = substitute_references(expression, form_data)
    try:
        result = evaluate_arithmetic(substituted)
        finite = is_number(result) and math.isfinite(result)
    except (ValueError, SyntaxError, ZeroDivisionError, OverflowError, RecursionError, TypeError) as e:
        logger.debug(f"Calculation '{expression}' failed: {e}")
        return None

    if not finite:
        logger.debug(f"Calculation '{expression}' gave non-finite result {result!r}")
        return None
    return result
