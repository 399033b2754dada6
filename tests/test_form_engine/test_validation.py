"""Tests for rule-based validation."""
import logging
from datetime import date, datetime
import pytest
from form_engine.config import EngineSettings
from form_engine.enums import ValidationRuleType
from form_engine.schemas import FormDefinition
from form_engine.validation import (
    RULE_CHECKS,
    ValidationError,
    ValidationRules,
    Validator,
    format_validation_message,
    get_validation_rule,
    is_field_required,
    validate_field,
    validate_fields,
    validate_form,
    validate_rule,
)


class TestValidateField:
    """Test ordered, short-circuit field validation."""

    def test_rule_table_covers_every_rule_type(self):
        assert set(RULE_CHECKS) == set(ValidationRuleType)

    @pytest.mark.parametrize('value', ['   ', '\t\n'])
    def test_whitespace_does_not_satisfy_required(self, value):
        assert validate_field(value, [ValidationRules.required('Required')]) == 'Required'

    def test_whitespace_is_still_checked_by_other_rules(self):
        """Test that only REQUIRED trims; other rules still see the whitespace value."""
        assert validate_field('   ', [ValidationRules.min_length(5, 'Too short')]) == 'Too short'

    def test_required_wins_on_empty_value(self):
        """Test that REQUIRED reports and later rules are not reached."""
        rules = [ValidationRules.required('Required'), ValidationRules.min_length(5, 'Too short')]
        assert validate_field('', rules) == 'Required'

    def test_min_length_skipped_for_empty_value(self):
        assert validate_field('abc', [ValidationRules.min_length(5, 'Too short')]) == 'Too short'
        assert validate_field('', [ValidationRules.min_length(5, 'Too short')]) is None

    def test_first_failure_wins(self):
        rules = [ValidationRules.min_length(2, 'Too short'), ValidationRules.pattern(r'^\d+$', 'Digits only')]
        assert validate_field('a', rules) == 'Too short'
        assert validate_field('ab', rules) == 'Digits only'
        assert validate_field('12', rules) is None

    def test_no_rules(self):
        assert validate_field('anything') is None
        assert validate_field(None, []) is None

    def test_age_scenario(self):
        """Test MIN(18) on an age field with numbers and an empty input."""
        rules = [ValidationRules.min(18, 'Must be 18+')]
        assert validate_field(17, rules) == 'Must be 18+'
        assert validate_field(18, rules) is None
        assert validate_field('', rules) is None


class TestRules:
    """Test each rule type."""

    @pytest.mark.parametrize('value,ok', [
        ('x', True), (0, True), (False, True), (['a'], True),
        (None, False), ('', False), ([], False),
    ])
    def test_required(self, rule, value, ok):
        assert (validate_rule(value, rule('REQUIRED')) is None) is ok

    def test_min_max_only_apply_to_numbers(self, rule):
        assert validate_rule(5, rule('MIN', value=10)) == 'MIN failed'
        assert validate_rule(10, rule('MIN', value=10)) is None
        assert validate_rule(11, rule('MAX', value=10)) == 'MAX failed'
        assert validate_rule(10.0, rule('MAX', value=10)) is None
        assert validate_rule('5', rule('MIN', value=10)) is None
        assert validate_rule(True, rule('MAX', value=0)) is None

    def test_non_numeric_bound_is_ignored(self, rule, caplog):
        with caplog.at_level(logging.WARNING, logger='form_engine.validation'):
            assert validate_rule(5, rule('MIN', value='ten')) is None
        assert 'non-numeric parameter' in caplog.text

    def test_lengths_apply_to_strings_and_lists(self, rule):
        assert validate_rule('abc', rule('MINLENGTH', value=4)) == 'MINLENGTH failed'
        assert validate_rule(['a'], rule('MINLENGTH', value=2)) == 'MINLENGTH failed'
        assert validate_rule('abcde', rule('MAXLENGTH', value=4)) == 'MAXLENGTH failed'
        assert validate_rule(['a', 'b'], rule('MAXLENGTH', value=2)) is None
        assert validate_rule(12345, rule('MAXLENGTH', value=2)) is None

    def test_pattern_is_a_search(self, rule):
        assert validate_rule('abc123', rule('PATTERN', value=r'\d+')) is None
        assert validate_rule('abc', rule('PATTERN', value=r'\d+')) == 'PATTERN failed'
        assert validate_rule('abc', rule('PATTERN', value=r'^[a-z]{3}$')) is None

    def test_invalid_pattern_passes(self, rule, caplog):
        with caplog.at_level(logging.WARNING, logger='form_engine.validation'):
            assert validate_rule('abc', rule('PATTERN', value='([')) is None
        assert 'Invalid PATTERN rule' in caplog.text

    @pytest.mark.parametrize('email,ok', [
        ('inspector@example.com', True),
        ('a.b+c@sub.example.co', True),
        ('no-at-sign.com', False),
        ('two@@example.com', False),
        ('spaces in@example.com', False),
        ('user@nodot', False),
    ])
    def test_email(self, rule, email, ok):
        assert (validate_rule(email, rule('EMAIL')) is None) is ok

    @pytest.mark.parametrize('phone,ok', [
        ('+1 (555) 123-4567', False),
        ('+1-555-1234567', True),
        ('555.123.4567', True),
        ('(020) 7946 0958', True),
        ('123', True),
        ('12', False),
        ('phone', False),
        ('123-456-7890-1234', False),
    ])
    def test_phone(self, rule, phone, ok):
        assert (validate_rule(phone, rule('PHONE')) is None) is ok

    @pytest.mark.parametrize('url,ok', [
        ('https://example.com', True),
        ('example.com/path/to', True),
        ('http://sub.example.org/a b', True),
        ('not a url', False),
        ('ftp://example.com', False),
        ('example.com/café', False),
        ('١٢.com', False),
    ])
    def test_url(self, rule, url, ok):
        assert (validate_rule(url, rule('URL')) is None) is ok

    @pytest.mark.parametrize('value,ok', [
        (date(2024, 1, 15), True),
        (datetime(2024, 1, 15, 10, 30), True),
        ('2024-01-15', True),
        ('2024-01-15T10:30:00', True),
        ('15/01/2024', False),
        ('not a date', False),
        (20240115, False),
    ])
    def test_date(self, rule, value, ok):
        assert (validate_rule(value, rule('DATE')) is None) is ok

    @pytest.mark.parametrize('value,ok', [
        (3, True), (2.5, True), ('3.5', True), ('7 units', True),
        (float('nan'), False), (float('inf'), False), ('abc', False), (True, False), (['1'], False),
    ])
    def test_number(self, rule, value, ok):
        assert (validate_rule(value, rule('NUMBER')) is None) is ok

    @pytest.mark.parametrize('value,ok', [
        (3, True), (3.0, True), ('42', True), ('-7', True),
        (3.5, False), ('3.0', False), ('007', False), ('+5', False), (' 5', False), ('abc', False),
        (False, False),
    ])
    def test_integer(self, rule, value, ok):
        assert (validate_rule(value, rule('INTEGER')) is None) is ok

    def test_positive_and_negative(self, rule):
        assert validate_rule(1, rule('POSITIVE')) is None
        assert validate_rule(0, rule('POSITIVE')) == 'POSITIVE failed'
        assert validate_rule(-1, rule('NEGATIVE')) is None
        assert validate_rule(0, rule('NEGATIVE')) == 'NEGATIVE failed'
        assert validate_rule('-5', rule('POSITIVE')) is None

    def test_custom_is_reserved(self, rule):
        assert validate_rule('anything', rule('CUSTOM', value='fn')) is None

    def test_unknown_rule_type_passes(self, rule, caplog):
        with caplog.at_level(logging.WARNING, logger='form_engine.validation'):
            assert validate_rule('x', rule('UUID')) is None
        assert "Unknown validation rule type 'UUID'" in caplog.text

    @pytest.mark.parametrize('rule_type', [t.value for t in ValidationRuleType if t is not ValidationRuleType.REQUIRED])
    def test_every_non_required_rule_skips_empty(self, rule, rule_type):
        for empty in (None, '', []):
            assert validate_rule(empty, rule(rule_type, value=1)) is None


class TestHelpers:
    """Test validation helper functions."""

    def test_validate_fields_only_reports_failures(self):
        errors = validate_fields([
            {'name': 'email', 'value': 'bad', 'rules': [ValidationRules.email()]},
            {'name': 'age', 'value': 30, 'rules': [ValidationRules.min(18)]},
            {'name': 'notes', 'value': None},
        ])
        assert errors == {'email': 'Invalid email address'}

    def test_get_validation_rule(self):
        rules = [ValidationRules.min(1), ValidationRules.max(5)]
        assert get_validation_rule(rules, ValidationRuleType.MAX).value == 5
        assert get_validation_rule(rules, 'PATTERN') is None

    def test_is_field_required(self):
        assert is_field_required([ValidationRules.required()]) is True
        assert is_field_required([ValidationRules.email()]) is False
        assert is_field_required() is False

    def test_format_validation_message(self):
        assert format_validation_message('Width', '{field} cannot be negative') == 'Width cannot be negative'
        assert format_validation_message('Width', 'Too small') == 'Too small'

    def test_factory_default_messages(self):
        assert ValidationRules.min(3).message == 'Value must be at least 3'
        assert ValidationRules.max_length(10).message == 'Must be at most 10 characters'
        assert ValidationRules.integer().type == ValidationRuleType.INTEGER

    def test_ensure_valid(self):
        rules = [ValidationRules.required('{field} is required')]
        assert Validator.ensure_valid('x', rules) == 'x'
        with pytest.raises(ValidationError, match='Site name is required') as excinfo:
            Validator.ensure_valid('', rules, field_name='Site name')
        assert excinfo.value.rule.type == ValidationRuleType.REQUIRED


class TestValidateForm:
    """Test whole-form validation."""

    def test_errors_for_visible_fields(self, inspection_form):
        """Test required flags, static rules and label substitution."""
        data = {'inspector_email': 'bad', 'site_type': 'external', 'width': -1}
        errors = validate_form(inspection_form, data)
        by_field = {error.field_id: error for error in errors}

        assert by_field['inspector_email'].message == 'Enter a valid email'
        assert by_field['inspector_email'].rule == ValidationRuleType.EMAIL
        assert by_field['access_notes'].message == 'This field is required'
        assert by_field['access_notes'].rule == ValidationRuleType.REQUIRED
        assert by_field['width'].message == 'Width cannot be negative'
        assert by_field['width'].field_name == 'width'
        assert set(by_field) == {'inspector_email', 'access_notes', 'width'}

    def test_hidden_fields_are_skipped(self, inspection_form):
        data = {'inspector_email': 'a@b.co', 'site_type': 'internal'}
        assert [e.field_id for e in validate_form(inspection_form, data)] == []

    def test_hidden_fields_validated_when_configured(self, inspection_form):
        settings = EngineSettings(validate_hidden_fields=True)
        data = {'inspector_email': 'a@b.co', 'site_type': 'internal'}
        assert [e.field_id for e in validate_form(inspection_form, data, settings=settings)] == ['access_notes']

    def test_required_flag_can_be_ignored(self, inspection_form):
        settings = EngineSettings(enforce_required_flag=False)
        assert validate_form(inspection_form, {}, settings=settings) == []

    def test_conditional_rule_applies_when_condition_holds(self, inspection_form):
        data = {'inspector_email': 'a@b.co', 'site_type': 'internal', 'area': 150}
        errors = validate_form(inspection_form, data)
        assert [(e.field_id, e.message) for e in errors] == [('area', 'Internal sites are at most 100 m2')]

        data['site_type'] = 'external'
        data['access_notes'] = 'Gate code 1234'
        assert validate_form(inspection_form, data) == []

    def test_custom_required_message(self):
        form = FormDefinition.model_validate({
            'id': 'f', 'name': 'F', 'version': '1',
            'sections': [{'id': 's', 'fields': [{'id': 'q', 'label': 'Question', 'type': 'TEXT', 'required': True}]}],
        })
        settings = EngineSettings(default_required_message='{field} needs an answer')
        errors = validate_form(form, {'q': ''}, settings=settings)
        assert errors[0].message == 'Question needs an answer'
