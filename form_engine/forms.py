"""Form definition helpers used by rendering and submission code.

Lookup, ordering, default values, completion tracking and display
formatting. All functions take the definition and data as arguments and
return new values.
"""

import logging
import math
from datetime import date, datetime, time
from form_engine.conditions import strict_equals
from form_engine.dependencies import is_field_hidden
from form_engine.enums import FieldType, coerce_enum
from form_engine.schemas import LineString, Point, Polygon, parse_geometry

logger = logging.getLogger(__name__)

# Used when a date-like field has no config.date_format
DEFAULT_DISPLAY_FORMATS = {
    FieldType.DATE: '%Y-%m-%d',
    FieldType.TIME: '%H:%M:%S',
    FieldType.DATETIME: '%Y-%m-%d %H:%M:%S',
}


def get_all_fields(definition):
    """All fields of the definition, section by section, in declaration order."""
    return [field for section in definition.sections for field in section.fields]


def get_field_by_id(definition, field_id):
    for field in get_all_fields(definition):
        if field.id == field_id:
            return field
    return None


def get_section_by_id(definition, section_id):
    for section in definition.sections:
        if section.id == section_id:
            return section
    return None


def _order_key(item):
    return item.order or 0


def sort_fields_by_order(fields):
    """Fields sorted by their order attribute (missing counts as 0). Stable."""
    return sorted(fields, key=_order_key)


def sort_sections_by_order(sections):
    """Sections sorted by their order attribute (missing counts as 0). Stable."""
    return sorted(sections, key=_order_key)


def get_visible_fields(fields, form_data):
    return [field for field in fields if not is_field_hidden(field, form_data)]


def get_required_fields(fields):
    return [field for field in fields if field.required]


def initialize_form_data(definition):
    """Fresh form data seeded with each field's default value.

    Fields without a default are left out rather than set to None.
    """
    return {
        field.id: field.default_value
        for field in get_all_fields(definition)
        if field.has_default
    }


def _is_answered(value):
    return value is not None and value != ''


def get_form_completion_percentage(definition, form_data):
    """Percentage of visible required fields that have an answer.

    Rounded half up to a whole number. A form with no visible required
    fields is 100% complete.
    """
    data = form_data or {}
    required = get_required_fields(get_visible_fields(get_all_fields(definition), data))
    if not required:
        return 100

    completed = sum(1 for field in required if _is_answered(data.get(field.id)))
    return math.floor(completed * 100 / len(required) + 0.5)


def is_form_complete(definition, form_data):
    return get_form_completion_percentage(definition, form_data) == 100


def get_field_label(field):
    """Field label with a trailing asterisk for required fields."""
    return f"{field.label} *" if field.required else field.label


def _option_label(field, value):
    for option in field.options or []:
        if strict_equals(option.value, value):
            return option.label
    return str(value)


def _format_temporal(value, field, field_type):
    if not isinstance(value, (date, datetime, time)):
        return str(value)
    fmt = field.config.date_format or DEFAULT_DISPLAY_FORMATS[field_type]
    try:
        return value.strftime(fmt)
    except ValueError as e:
        logger.warning(f"Bad date format '{fmt}' on field '{field.id}': {e}")
        return value.isoformat()


def format_coordinate(coord):
    """Coordinate as text without trailing zeros."""
    return f"{coord:.6f}".rstrip('0').rstrip('.')


def _format_geometry(value):
    geometry = parse_geometry(value)
    if isinstance(geometry, Point):
        lng, lat = geometry.coordinates
        return f"{format_coordinate(lat)}, {format_coordinate(lng)}"
    if isinstance(geometry, LineString):
        return f"Line ({len(geometry.coordinates)} points)"
    if isinstance(geometry, Polygon):
        # Closed rings repeat the first vertex at the end
        ring = geometry.coordinates[0] if geometry.coordinates else []
        vertices = len(ring) - 1 if len(ring) > 1 and ring[0] == ring[-1] else len(ring)
        return f"Polygon ({vertices} vertices)"
    return str(value)


def format_field_value(value, field):
    """Human-readable text for a field value, as shown in summaries and lists."""
    if value is None:
        return ''

    field_type = coerce_enum(FieldType, field.type)
    if field_type in DEFAULT_DISPLAY_FORMATS:
        return _format_temporal(value, field, field_type)
    if field_type in (FieldType.CHECKBOX, FieldType.RADIO, FieldType.SELECT):
        return _option_label(field, value) if field.options else str(value)
    if field_type is FieldType.MULTISELECT:
        if isinstance(value, (list, tuple)) and field.options:
            return ', '.join(_option_label(field, item) for item in value)
        return str(value)
    if field_type in (FieldType.POINT, FieldType.LINESTRING, FieldType.POLYGON):
        return _format_geometry(value)
    return str(value)
