"""Dynamic form engine for offline field data collection.

This package contains the rule engine behind the field app's dynamic forms.
Forms arrive from the backend as data (a form definition) and the engine
decides, for the current answers, what each field looks like and whether the
answers are acceptable. It includes:

- Enums (enums.py) - Field types, rule types, dependency actions and operators
- Schemas (schemas.py) - Pydantic models for definitions, outputs and submissions
- Conditions (conditions.py) - Single-condition evaluation against form data
- Dependencies (dependencies.py) - Visibility, enablement, conditional rules and calculations
- Calculator (calculator.py) - Restricted arithmetic for calculated fields
- Validation (validation.py) - Rule-based field and form validation
- Form helpers (forms.py) - Field lookup, ordering, defaults and completion
- Engine (engine.py) - Whole-form evaluation and submission building
- Configuration (config.py, logging_config.py) - Engine settings and opt-in console logging

Everything here is synchronous and side-effect free apart from logging.
"""
import logging
from form_engine.engine import FormEngine, evaluate_form
from form_engine.logging_config import setup_logging
from form_engine.schemas import FormDefinition, SchemaError, load_form_definition

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    'FormDefinition',
    'FormEngine',
    'SchemaError',
    'evaluate_form',
    'load_form_definition',
    'setup_logging',
]
