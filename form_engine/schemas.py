"""Pydantic schemas for form definitions, engine outputs and submissions."""
from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple, Union
import html
import logging
import re
import bleach
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel
from form_engine.enums import (
    ConditionOperator,
    DependencyAction,
    FieldType,
    GeometryType,
    LogicalOperator,
    ValidationRuleType,
)

logger = logging.getLogger(__name__)


class SchemaError(Exception):
    """Raised when a form definition payload cannot be loaded."""

    def __init__(self, message, errors=None):
        super().__init__(message)
        self.errors = errors or []


# Enum-typed attributes keep unknown strings instead of rejecting the whole
# definition; the evaluators turn them into safe defaults.
FieldTypeValue = Annotated[Union[FieldType, str], Field(union_mode='left_to_right')]
RuleTypeValue = Annotated[Union[ValidationRuleType, str], Field(union_mode='left_to_right')]
ActionValue = Annotated[Union[DependencyAction, str], Field(union_mode='left_to_right')]
OperatorValue = Annotated[Union[ConditionOperator, str], Field(union_mode='left_to_right')]
LogicalOperatorValue = Annotated[Union[LogicalOperator, str], Field(union_mode='left_to_right')]
GeometryTypeValue = Annotated[Union[GeometryType, str], Field(union_mode='left_to_right')]


class SchemaModel(BaseModel):
    """Base for backend schema models: camelCase on the wire, immutable once loaded."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


def none_as_empty_list(value):
    """Backends send null for empty lists; read it as []."""
    return [] if value is None else value


# Start of a tag, comment or doctype
_MARKUP_PATTERN = re.compile(r'<[A-Za-z/!?]')
ALLOWED_TAGS = ['p', 'br', 'strong', 'em', 'u', 'ul', 'ol', 'li', 'blockquote']


def sanitize_html(text: str) -> str:
    """Strip markup from free text using bleach, keeping a few inline tags.

    Text without markup is returned unchanged. Where tags are stripped, the
    entities bleach writes for "&", "<" and ">" in the remaining text are
    turned back into the characters the user typed.
    """
    if not text or not _MARKUP_PATTERN.search(text):
        return text

    cleaned = bleach.clean(text, tags=ALLOWED_TAGS, attributes={}, strip=True)
    return html.unescape(cleaned)


def validate_coordinates(lng: float, lat: float) -> Tuple[float, float]:
    """Range-check a [longitude, latitude] pair."""
    if not (-180 <= lng <= 180):
        raise ValueError(f"Longitude must be between -180 and 180, got {lng}")
    if not (-90 <= lat <= 90):
        raise ValueError(f"Latitude must be between -90 and 90, got {lat}")
    return lng, lat


# Schema tree
class ValidationRule(SchemaModel):
    type: RuleTypeValue
    value: Any = None
    message: str = ''
    # Reserved for conditional validation; not evaluated.
    condition: Optional[str] = None


class FieldOption(SchemaModel):
    label: str
    value: Union[str, int, float]
    metadata: Optional[Dict[str, Any]] = None


class DependencyCondition(SchemaModel):
    field_id: str
    operator: OperatorValue
    value: Any = None
    logical_operator: Optional[LogicalOperatorValue] = None


class FieldDependency(SchemaModel):
    id: str
    action: ActionValue
    conditions: List[DependencyCondition] = Field(default_factory=list)
    calculation: Optional[str] = None
    validation_rule: Optional[ValidationRule] = None

    conditions_none_as_empty = field_validator('conditions', mode='before')(none_as_empty_list)


class FieldConfig(SchemaModel):
    """Type-specific field parameters. Unknown keys are kept as extras."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True, extra='allow')

    # Text/Number
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    min: Optional[float] = None
    max: Optional[float] = None
    step: Optional[float] = None
    multiline: Optional[bool] = None
    number_of_lines: Optional[int] = None

    # Date/Time
    min_date: Optional[Union[datetime, str]] = None
    max_date: Optional[Union[datetime, str]] = None
    date_format: Optional[str] = None

    # Image/Audio
    max_files: Optional[int] = None
    max_file_size: Optional[int] = None  # bytes
    quality: Optional[float] = None  # 0..1, clamped
    allow_camera: Optional[bool] = None
    allow_gallery: Optional[bool] = None

    # Geometry
    geometry_type: Optional[GeometryTypeValue] = None
    allow_multiple: Optional[bool] = None

    # Select
    searchable: Optional[bool] = None
    multiple: Optional[bool] = None

    @field_validator('quality')
    @classmethod
    def clamp_quality(cls, v):
        if v is not None and not (0 <= v <= 1):
            clamped = min(max(v, 0.0), 1.0)
            logger.warning(f"Image quality {v} is outside 0..1; using {clamped}")
            return clamped
        return v


class FormField(SchemaModel):
    id: str
    name: str
    label: str = ""
    type: FieldTypeValue
    required: bool = False
    placeholder: Optional[str] = None
    default_value: Any = None
    help_text: Optional[str] = None
    validation_rules: List[ValidationRule] = Field(default_factory=list)
    options: Optional[List[FieldOption]] = None
    dependencies: List[FieldDependency] = Field(default_factory=list)
    config: FieldConfig = Field(default_factory=FieldConfig)
    hidden: bool = False
    disabled: bool = False
    readonly: bool = False
    order: Optional[float] = None
    metadata: Optional[Dict[str, Any]] = None

    lists_none_as_empty = field_validator('validation_rules', 'dependencies', mode='before')(none_as_empty_list)

    @model_validator(mode='before')
    @classmethod
    def default_name_to_id(cls, data):
        if isinstance(data, dict) and not data.get('name') and data.get('id'):
            data = {**data, 'name': data['id']}
        return data

    @property
    def has_default(self) -> bool:
        """True when the payload carried a default value, even an explicit null."""
        return 'default_value' in self.model_fields_set


class FormSection(SchemaModel):
    id: str
    title: str = ""
    description: Optional[str] = None
    fields: List[FormField] = Field(default_factory=list)
    order: Optional[float] = None
    collapsible: bool = False
    default_collapsed: bool = False

    fields_none_as_empty = field_validator('fields', mode='before')(none_as_empty_list)


class FormDefinition(SchemaModel):
    id: str
    name: str
    version: str
    description: Optional[str] = None
    sections: List[FormSection] = Field(default_factory=list)
    metadata: Optional[Dict[str, Any]] = None

    sections_none_as_empty = field_validator('sections', mode='before')(none_as_empty_list)

    @field_validator('version', mode='before')
    @classmethod
    def version_as_text(cls, v):
        # Some backends send numeric versions
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    @model_validator(mode='after')
    def check_unique_field_ids(self):
        seen = set()
        duplicates = []
        for section in self.sections:
            for field in section.fields:
                if field.id in seen and field.id not in duplicates:
                    duplicates.append(field.id)
                seen.add(field.id)
        if duplicates:
            raise ValueError(f"Duplicate field id(s) in form definition: {', '.join(duplicates)}")
        return self


def load_form_definition(payload) -> FormDefinition:
    """Build a FormDefinition from a backend payload (dict or JSON text).

    Raises:
        SchemaError: If the payload is not a valid form definition.
    """
    if isinstance(payload, FormDefinition):
        return payload

    try:
        if isinstance(payload, (str, bytes, bytearray)):
            return FormDefinition.model_validate_json(payload)
        return FormDefinition.model_validate(payload)
    except PydanticValidationError as e:
        form_id = payload.get('id') if isinstance(payload, dict) else None
        logger.error(f"Invalid form definition '{form_id}': {e.error_count()} error(s)")
        raise SchemaError(f"Invalid form definition: {e}", errors=e.errors()) from e


# Geometry values captured by map fields
class Point(BaseModel):
    type: Literal['Point'] = 'Point'
    coordinates: Tuple[float, float]  # [longitude, latitude]

    @field_validator('coordinates')
    @classmethod
    def check_range(cls, v):
        return validate_coordinates(*v)


class LineString(BaseModel):
    type: Literal['LineString'] = 'LineString'
    coordinates: List[Tuple[float, float]] = Field(..., min_length=2)

    @field_validator('coordinates')
    @classmethod
    def check_range(cls, v):
        return [validate_coordinates(*pair) for pair in v]


class Polygon(BaseModel):
    type: Literal['Polygon'] = 'Polygon'
    coordinates: List[List[Tuple[float, float]]] = Field(..., min_length=1)  # rings

    @field_validator('coordinates')
    @classmethod
    def check_range(cls, v):
        return [[validate_coordinates(*pair) for pair in ring] for ring in v]


Geometry = Annotated[Union[Point, Polygon, LineString], Field(discriminator='type')]
_geometry_adapter = TypeAdapter(Geometry)


def parse_geometry(value) -> Optional[Union[Point, Polygon, LineString]]:
    """Return the geometry model for a GeoJSON-like value, or None if it is not one."""
    if isinstance(value, (Point, Polygon, LineString)):
        return value
    if not isinstance(value, dict):
        return None
    try:
        return _geometry_adapter.validate_python(value)
    except PydanticValidationError:
        return None


# Engine outputs
class FormValidationError(SchemaModel):
    field_id: str
    field_name: str
    message: str
    rule: Optional[RuleTypeValue] = None


class FieldState(SchemaModel):
    field_id: str
    value: Any = None
    error: Optional[str] = None
    hidden: bool = False
    disabled: bool = False
    readonly: bool = False
    effective_rules: List[ValidationRule] = Field(default_factory=list)


class FormEvaluation(SchemaModel):
    data: Dict[str, Any]
    field_states: Dict[str, FieldState]
    errors: List[FormValidationError] = Field(default_factory=list)
    completion: int = Field(..., ge=0, le=100)
    is_valid: bool


class FormSubmission(SchemaModel):
    form_id: str
    form_version: str
    data: Dict[str, Any]
    submitted_at: datetime
    user_id: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

