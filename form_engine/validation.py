"""Field and form validation against schema-defined rules."""
import logging
import math
import re
from datetime import date, datetime, time
from functools import lru_cache
from form_engine.calculator import parse_float_prefix
from form_engine.conditions import is_empty_value, is_number
from form_engine.config import get_settings
from form_engine.dependencies import get_effective_rules, is_field_hidden
from form_engine.enums import ValidationRuleType, coerce_enum, ensure_exhaustive
from form_engine.forms import get_all_fields
from form_engine.schemas import FormValidationError, ValidationRule

logger = logging.getLogger(__name__)


class ValidationError(Exception):
    """Raised when input validation fails."""

    def __init__(self, message, rule=None):
        super().__init__(message)
        self.rule = rule


@lru_cache(maxsize=256)
def _compile_pattern(pattern):
    return re.compile(pattern)


def _rule_number(rule):
    """Numeric rule parameter, or None (logged) when the schema gave something else."""
    if is_number(rule.value):
        return rule.value
    logger.warning(f"{rule.type} rule has non-numeric parameter {rule.value!r}; rule ignored")
    return None


def _failed(passed, rule):
    return None if passed else rule.message


class Validator:
    """Rule checks for single field values."""

    # Fixed patterns for format rules (pre-compiled for performance)
    EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
    # Basic international format
    PHONE_PATTERN = re.compile(r'^[+]?[(]?[0-9]{1,4}[)]?[-\s.]?[(]?[0-9]{1,4}[)]?[-\s.]?[0-9]{1,9}$')
    URL_PATTERN = re.compile(r'^(https?://)?([\da-z.-]+)\.([a-z.]{2,6})([/\w .-]*)/?$', re.ASCII)

    @staticmethod
    def check_required(value, rule):
        # Whitespace alone does not answer a required field
        if isinstance(value, str):
            return _failed(bool(value.strip()), rule)
        return _failed(not is_empty_value(value), rule)

    @staticmethod
    def check_min(value, rule):
        if not is_number(value):
            return None
        bound = _rule_number(rule)
        return None if bound is None else _failed(value >= bound, rule)

    @staticmethod
    def check_max(value, rule):
        if not is_number(value):
            return None
        bound = _rule_number(rule)
        return None if bound is None else _failed(value <= bound, rule)

    @staticmethod
    def check_min_length(value, rule):
        if not isinstance(value, (str, list, tuple)):
            return None
        bound = _rule_number(rule)
        return None if bound is None else _failed(len(value) >= bound, rule)

    @staticmethod
    def check_max_length(value, rule):
        if not isinstance(value, (str, list, tuple)):
            return None
        bound = _rule_number(rule)
        return None if bound is None else _failed(len(value) <= bound, rule)

    @staticmethod
    def check_pattern(value, rule):
        if not isinstance(value, str):
            return None
        pattern = '' if rule.value is None else str(rule.value)
        try:
            regex = _compile_pattern(pattern)
        except re.error as e:
            logger.warning(f"Invalid PATTERN rule {pattern!r}: {e}; rule ignored")
            return None
        return _failed(regex.search(value) is not None, rule)

    @staticmethod
    def check_email(value, rule):
        if not isinstance(value, str):
            return None
        return _failed(Validator.EMAIL_PATTERN.fullmatch(value) is not None, rule)

    @staticmethod
    def check_phone(value, rule):
        if not isinstance(value, str):
            return None
        return _failed(Validator.PHONE_PATTERN.fullmatch(value) is not None, rule)

    @staticmethod
    def check_url(value, rule):
        if not isinstance(value, str):
            return None
        return _failed(Validator.URL_PATTERN.fullmatch(value) is not None, rule)

    @staticmethod
    def check_date(value, rule):
        if isinstance(value, (date, datetime, time)):
            return None
        if isinstance(value, str):
            try:
                datetime.fromisoformat(value.strip())
            except ValueError:
                return rule.message
            return None
        return rule.message

    @staticmethod
    def check_number(value, rule):
        if is_number(value):
            return _failed(math.isfinite(value), rule)
        if isinstance(value, str):
            return _failed(parse_float_prefix(value) is not None, rule)
        return rule.message

    @staticmethod
    def check_integer(value, rule):
        if isinstance(value, int) and not isinstance(value, bool):
            return None
        if isinstance(value, float):
            return _failed(value.is_integer(), rule)
        if isinstance(value, str):
            try:
                parsed = int(value, 10)
            except ValueError:
                return rule.message
            # Must print back exactly: rejects "007", "+5", " 5", "1_000"
            return _failed(str(parsed) == value, rule)
        return rule.message

    @staticmethod
    def check_positive(value, rule):
        if not is_number(value):
            return None
        return _failed(value > 0, rule)

    @staticmethod
    def check_negative(value, rule):
        if not is_number(value):
            return None
        return _failed(value < 0, rule)

    @staticmethod
    def check_custom(value, rule):
        logger.debug("CUSTOM validation rules are reserved and not evaluated")
        return None

    @staticmethod
    def validate_rule(value, rule):
        """Validate a value against one rule.

        Every rule except REQUIRED passes for empty values, so REQUIRED alone
        decides whether a value must be present.

        Returns:
            str or None: The rule's message if the value fails, None otherwise
        """
        rule_type = coerce_enum(ValidationRuleType, rule.type)
        if rule_type is None:
            logger.warning(f"Unknown validation rule type '{rule.type}'; rule ignored")
            return None

        if rule_type is not ValidationRuleType.REQUIRED and is_empty_value(value):
            return None

        return RULE_CHECKS[rule_type](value, rule)

    @staticmethod
    def find_failing_rule(value, rules):
        """Return the first rule the value fails, evaluating rules in order."""
        for rule in rules or []:
            if Validator.validate_rule(value, rule) is not None:
                return rule
        return None

    @staticmethod
    def ensure_valid(value, rules, field_name=None):
        """Raise ValidationError for the first failing rule; return the value otherwise."""
        rule = Validator.find_failing_rule(value, rules)
        if rule is not None:
            message = format_validation_message(field_name, rule.message) if field_name else rule.message
            raise ValidationError(message, rule=rule)
        return value


RULE_CHECKS = ensure_exhaustive({
    ValidationRuleType.REQUIRED: Validator.check_required,
    ValidationRuleType.MIN: Validator.check_min,
    ValidationRuleType.MAX: Validator.check_max,
    ValidationRuleType.MINLENGTH: Validator.check_min_length,
    ValidationRuleType.MAXLENGTH: Validator.check_max_length,
    ValidationRuleType.PATTERN: Validator.check_pattern,
    ValidationRuleType.EMAIL: Validator.check_email,
    ValidationRuleType.PHONE: Validator.check_phone,
    ValidationRuleType.URL: Validator.check_url,
    ValidationRuleType.DATE: Validator.check_date,
    ValidationRuleType.NUMBER: Validator.check_number,
    ValidationRuleType.INTEGER: Validator.check_integer,
    ValidationRuleType.POSITIVE: Validator.check_positive,
    ValidationRuleType.NEGATIVE: Validator.check_negative,
    ValidationRuleType.CUSTOM: Validator.check_custom,
}, ValidationRuleType, 'RULE_CHECKS')


def validate_rule(value, rule):
    return Validator.validate_rule(value, rule)


def validate_field(value, rules=None):
    """Validate a value against its rules in order; first failure wins.

    Returns:
        str or None: Message of the first failing rule, None if all pass
    """
    rule = Validator.find_failing_rule(value, rules)
    return rule.message if rule is not None else None


def validate_fields(fields):
    """Validate several values at once.

    Args:
        fields (list): Items with 'name', 'value' and optional 'rules' keys

    Returns:
        dict: name -> first error message, only for fields that fail
    """
    errors = {}
    for item in fields:
        error = validate_field(item.get('value'), item.get('rules'))
        if error is not None:
            errors[item['name']] = error
    return errors


def get_validation_rule(rules, rule_type):
    """First rule of the given type, or None."""
    for rule in rules or []:
        if rule.type == rule_type:
            return rule
    return None


def is_field_required(rules=None):
    return any(rule.type == ValidationRuleType.REQUIRED for rule in rules or [])


def format_validation_message(field_name, message):
    """Substitute the field name for the {field} placeholder."""
    return message.replace('{field}', field_name or '')


class ValidationRules:
    """Factories for common validation rules with default messages."""

    @staticmethod
    def required(message='This field is required'):
        return ValidationRule(type=ValidationRuleType.REQUIRED, message=message)

    @staticmethod
    def min(value, message=None):
        return ValidationRule(type=ValidationRuleType.MIN, value=value,
                              message=message or f'Value must be at least {value}')

    @staticmethod
    def max(value, message=None):
        return ValidationRule(type=ValidationRuleType.MAX, value=value,
                              message=message or f'Value must be at most {value}')

    @staticmethod
    def min_length(length, message=None):
        return ValidationRule(type=ValidationRuleType.MINLENGTH, value=length,
                              message=message or f'Must be at least {length} characters')

    @staticmethod
    def max_length(length, message=None):
        return ValidationRule(type=ValidationRuleType.MAXLENGTH, value=length,
                              message=message or f'Must be at most {length} characters')

    @staticmethod
    def pattern(pattern, message='Invalid format'):
        return ValidationRule(type=ValidationRuleType.PATTERN, value=pattern, message=message)

    @staticmethod
    def email(message='Invalid email address'):
        return ValidationRule(type=ValidationRuleType.EMAIL, message=message)

    @staticmethod
    def phone(message='Invalid phone number'):
        return ValidationRule(type=ValidationRuleType.PHONE, message=message)

    @staticmethod
    def url(message='Invalid URL'):
        return ValidationRule(type=ValidationRuleType.URL, message=message)

    @staticmethod
    def date(message='Invalid date'):
        return ValidationRule(type=ValidationRuleType.DATE, message=message)

    @staticmethod
    def number(message='Must be a valid number'):
        return ValidationRule(type=ValidationRuleType.NUMBER, message=message)

    @staticmethod
    def integer(message='Must be a whole number'):
        return ValidationRule(type=ValidationRuleType.INTEGER, message=message)

    @staticmethod
    def positive(message='Must be a positive number'):
        return ValidationRule(type=ValidationRuleType.POSITIVE, message=message)

    @staticmethod
    def negative(message='Must be a negative number'):
        return ValidationRule(type=ValidationRuleType.NEGATIVE, message=message)


def _rules_for_form(field, form_data, settings):
    rules = get_effective_rules(field, form_data)
    if settings.enforce_required_flag and field.required and not is_field_required(rules):
        rules = [ValidationRules.required(settings.default_required_message)] + rules
    return rules


def validate_form(definition, form_data, settings=None):
    """Validate every visible field of a form.

    Hidden fields are skipped unless the validate_hidden_fields setting is on.
    Each field contributes at most one error, for its first failing rule.

    Returns:
        list[FormValidationError]: Errors in definition order
    """
    settings = settings or get_settings()
    data = form_data or {}
    errors = []
    for field in get_all_fields(definition):
        if not settings.validate_hidden_fields and is_field_hidden(field, data):
            continue
        value = data.get(field.id)
        rule = Validator.find_failing_rule(value, _rules_for_form(field, data, settings))
        if rule is not None:
            errors.append(FormValidationError(
                field_id=field.id,
                field_name=field.name,
                message=format_validation_message(field.label or field.name, rule.message),
                rule=rule.type,
            ))
    return errors
