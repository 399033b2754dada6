"""Whole-form evaluation for a data-collection session.

Runs the full update cycle for a snapshot of form data: recompute
calculated fields, derive every field's state, validate, and measure
completion. The caller owns the data and applies the returned snapshot.
"""
import logging
from datetime import datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
from form_engine.config import get_settings
from form_engine.dependencies import apply_calculations, get_dependent_field_ids, resolve_field_state
from form_engine.enums import FieldType, coerce_enum
from form_engine.forms import get_all_fields, get_form_completion_percentage, initialize_form_data
from form_engine.schemas import FormEvaluation, FormSubmission, load_form_definition, sanitize_html
from form_engine.validation import validate_form

logger = logging.getLogger(__name__)

# Free-text field types whose values are sanitised before submission
FREE_TEXT_TYPES = (FieldType.TEXT, FieldType.TEXTAREA)


class FormEngine:
    """Evaluates one form definition against successive data snapshots."""

    def __init__(self, definition, settings=None):
        self.definition = definition
        self.settings = settings or get_settings()
        self.fields = get_all_fields(definition)

    @classmethod
    def from_payload(cls, payload, settings=None):
        """Create an engine from a backend payload (dict or JSON text)."""
        return cls(load_form_definition(payload), settings=settings)

    def initial_data(self):
        """Default values for a new session, with calculated fields filled in."""
        return self.calculate(initialize_form_data(self.definition))

    def calculate(self, form_data):
        return apply_calculations(self.fields, form_data, settings=self.settings)

    def affected_fields(self, field_id):
        """Ids of fields that need re-evaluation after field_id changes."""
        return get_dependent_field_ids(self.fields, field_id)

    def evaluate(self, form_data):
        """Run the full update cycle for a data snapshot.

        Returns:
            FormEvaluation: Updated data, per-field state, errors and completion
        """
        data = self.calculate(form_data)
        errors = validate_form(self.definition, data, settings=self.settings)
        messages = {error.field_id: error.message for error in errors}

        field_states = {
            field.id: resolve_field_state(field, data, error=messages.get(field.id))
            for field in self.fields
        }

        if errors:
            logger.debug(f"Form '{self.definition.id}' has {len(errors)} validation error(s)")

        return FormEvaluation(
            data=data,
            field_states=field_states,
            errors=errors,
            completion=get_form_completion_percentage(self.definition, data),
            is_valid=not errors,
        )

    def _timezone(self):
        try:
            return ZoneInfo(self.settings.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning(f"Unknown timezone '{self.settings.timezone}', using UTC")
            return ZoneInfo('UTC')

    def build_submission(self, form_data, user_id=None, metadata=None):
        """Package the data for the submission queue.

        Calculated fields are brought up to date and free-text answers are
        stripped of markup.
        """
        data = self.calculate(form_data)
        for field in self.fields:
            value = data.get(field.id)
            if isinstance(value, str) and coerce_enum(FieldType, field.type) in FREE_TEXT_TYPES:
                data[field.id] = sanitize_html(value)

        return FormSubmission(
            form_id=self.definition.id,
            form_version=self.definition.version,
            data=data,
            submitted_at=datetime.now(self._timezone()),
            user_id=user_id,
            metadata=metadata,
        )


def evaluate_form(definition, form_data, settings=None):
    """One-shot evaluation of a form definition against a data snapshot."""
    return FormEngine(definition, settings=settings).evaluate(form_data)
