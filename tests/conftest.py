"""Pytest configuration and fixtures for form engine tests."""
import pytest
from form_engine.config import EngineSettings, get_settings
from form_engine.dependencies import _warn_unknown_action
from form_engine.schemas import (
    DependencyCondition,
    FieldDependency,
    FormDefinition,
    FormField,
    ValidationRule,
)


@pytest.fixture(autouse=True)
def clear_caches():
    """Make every test read settings from its own environment and see its own warnings."""
    get_settings.cache_clear()
    _warn_unknown_action.cache_clear()
    yield
    get_settings.cache_clear()
    _warn_unknown_action.cache_clear()


@pytest.fixture
def settings():
    return EngineSettings()


@pytest.fixture
def make_field():
    """Build a FormField from keyword arguments (snake_case or camelCase)."""
    def _make(id='field', type='TEXT', **kwargs):
        return FormField.model_validate({'id': id, 'type': type, **kwargs})
    return _make


@pytest.fixture
def condition():
    def _make(field_id, operator, value=None, logical_operator=None):
        return DependencyCondition(
            field_id=field_id, operator=operator, value=value, logical_operator=logical_operator
        )
    return _make


@pytest.fixture
def dependency():
    def _make(action, conditions=None, id='dep', **kwargs):
        return FieldDependency(id=id, action=action, conditions=conditions or [], **kwargs)
    return _make


@pytest.fixture
def rule():
    def _make(type, message=None, value=None):
        return ValidationRule(type=type, value=value, message=message or f'{type} failed')
    return _make


@pytest.fixture
def inspection_payload():
    """A site inspection form as the backend delivers it (camelCase JSON)."""
    return {
        'id': 'site-inspection',
        'name': 'Site Inspection',
        'version': '3',
        'sections': [
            {
                'id': 'details',
                'title': 'Details',
                'order': 2,
                'fields': [
                    {
                        'id': 'inspector_email',
                        'name': 'inspector_email',
                        'label': 'Inspector email',
                        'type': 'EMAIL',
                        'required': True,
                        'validationRules': [
                            {'type': 'EMAIL', 'message': 'Enter a valid email'},
                        ],
                    },
                    {
                        'id': 'site_type',
                        'name': 'site_type',
                        'label': 'Site type',
                        'type': 'SELECT',
                        'required': True,
                        'defaultValue': 'external',
                        'options': [
                            {'label': 'Internal', 'value': 'internal'},
                            {'label': 'External', 'value': 'external'},
                        ],
                    },
                    {
                        'id': 'access_notes',
                        'name': 'access_notes',
                        'label': 'Access notes',
                        'type': 'TEXTAREA',
                        'required': True,
                        'dependencies': [
                            {
                                'id': 'hide-internal',
                                'action': 'HIDE',
                                'conditions': [
                                    {'fieldId': 'site_type', 'operator': 'EQUALS', 'value': 'internal'},
                                ],
                            },
                        ],
                    },
                ],
            },
            {
                'id': 'measurements',
                'title': 'Measurements',
                'order': 1,
                'fields': [
                    {
                        'id': 'width',
                        'name': 'width',
                        'label': 'Width',
                        'type': 'NUMBER',
                        'defaultValue': 0,
                        'validationRules': [
                            {'type': 'MIN', 'value': 0, 'message': '{field} cannot be negative'},
                        ],
                    },
                    {
                        'id': 'length',
                        'name': 'length',
                        'label': 'Length',
                        'type': 'NUMBER',
                    },
                    {
                        'id': 'area',
                        'name': 'area',
                        'label': 'Area',
                        'type': 'NUMBER',
                        'readonly': True,
                        'dependencies': [
                            {'id': 'calc-area', 'action': 'CALCULATE', 'conditions': [],
                             'calculation': '{width} * {length}'},
                            {
                                'id': 'max-area',
                                'action': 'VALIDATE',
                                'conditions': [
                                    {'fieldId': 'site_type', 'operator': 'EQUALS', 'value': 'internal'},
                                ],
                                'validationRule': {'type': 'MAX', 'value': 100,
                                                   'message': 'Internal sites are at most 100 m2'},
                            },
                        ],
                    },
                ],
            },
        ],
    }


@pytest.fixture
def inspection_form(inspection_payload):
    return FormDefinition.model_validate(inspection_payload)
