"""Evaluation of single dependency conditions against form data.

A condition compares the current value of one field with a constant. All
operators resolve type mismatches to a fixed boolean instead of raising, so a
badly authored schema can never break form rendering.
"""

import logging
from form_engine.enums import ConditionOperator, coerce_enum, ensure_exhaustive

logger = logging.getLogger(__name__)


def is_number(value):
    """True for real numbers. Booleans are not numbers here."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_sequence(value):
    return isinstance(value, (list, tuple))


def is_empty_value(value):
    """Empty means None, an empty string or a zero-length list."""
    if value is None or value == '':
        return True
    return is_sequence(value) and len(value) == 0


def strict_equals(left, right):
    """Equality without coercion between booleans, numbers and strings."""
    if isinstance(left, bool) != isinstance(right, bool):
        return False
    if is_number(left) != is_number(right):
        return False
    return left == right


def to_text(value):
    """Text form of a condition operand, as the form schemas expect it.

    None and booleans read as null/true/false, and integral floats drop
    their ".0".
    """
    if value is None:
        return 'null'
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _contains(actual, expected):
    return any(strict_equals(item, expected) for item in actual)


def _op_contains(actual, expected):
    if isinstance(actual, str):
        return to_text(expected) in actual
    if is_sequence(actual):
        return _contains(actual, expected)
    return False


def _op_not_contains(actual, expected):
    # Type mismatch reads as "does not contain"
    if isinstance(actual, str):
        return to_text(expected) not in actual
    if is_sequence(actual):
        return not _contains(actual, expected)
    return True


def _numeric(compare):
    def op(actual, expected):
        if is_number(actual) and is_number(expected):
            return compare(actual, expected)
        return False
    return op


def _op_in(actual, expected):
    if is_sequence(expected):
        return _contains(expected, actual)
    return False


def _op_not_in(actual, expected):
    if is_sequence(expected):
        return not _contains(expected, actual)
    return True


# Operator dispatch: (field value, condition value) -> bool
OPERATORS = ensure_exhaustive({
    ConditionOperator.EQUALS: strict_equals,
    ConditionOperator.NOT_EQUALS: lambda x, y: not strict_equals(x, y),
    ConditionOperator.CONTAINS: _op_contains,
    ConditionOperator.NOT_CONTAINS: _op_not_contains,
    ConditionOperator.GREATER_THAN: _numeric(lambda x, y: x > y),
    ConditionOperator.LESS_THAN: _numeric(lambda x, y: x < y),
    ConditionOperator.GREATER_THAN_OR_EQUAL: _numeric(lambda x, y: x >= y),
    ConditionOperator.LESS_THAN_OR_EQUAL: _numeric(lambda x, y: x <= y),
    ConditionOperator.IN: _op_in,
    ConditionOperator.NOT_IN: _op_not_in,
    ConditionOperator.EMPTY: lambda x, y: is_empty_value(x),
    ConditionOperator.NOT_EMPTY: lambda x, y: not is_empty_value(x),
}, ConditionOperator, 'OPERATORS')


def evaluate_condition(condition, form_data):
    """Evaluate one DependencyCondition against the current form data.

    Args:
        condition (DependencyCondition): Field reference, operator and operand
        form_data (dict): Field id -> current value. Missing ids read as None.

    Returns:
        bool: Outcome of the comparison. Unknown operators give False.
    """
    operator = coerce_enum(ConditionOperator, condition.operator)
    if operator is None:
        logger.warning(f"Unknown operator '{condition.operator}' in condition on field '{condition.field_id}'")
        return False

    actual_value = (form_data or {}).get(condition.field_id)
    return OPERATORS[operator](actual_value, condition.value)
