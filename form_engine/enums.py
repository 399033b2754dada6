import enum


class FieldType(str, enum.Enum):
    """Input types a form field can have.

    Used in FormField to pick the widget and the value formatting.
    """
    TEXT = "TEXT"
    NUMBER = "NUMBER"
    EMAIL = "EMAIL"
    PHONE = "PHONE"
    TEXTAREA = "TEXTAREA"
    SELECT = "SELECT"
    MULTISELECT = "MULTISELECT"
    DATE = "DATE"
    TIME = "TIME"
    DATETIME = "DATETIME"
    CHECKBOX = "CHECKBOX"
    RADIO = "RADIO"
    IMAGE = "IMAGE"
    IMAGES = "IMAGES"
    AUDIO = "AUDIO"
    POINT = "POINT"
    POLYGON = "POLYGON"
    LINESTRING = "LINESTRING"
    SIGNATURE = "SIGNATURE"
    BARCODE = "BARCODE"
    QR = "QR"


class ValidationRuleType(str, enum.Enum):
    """Validation rule kinds applied to a single field value.

    CUSTOM is reserved and has no evaluation logic.
    """
    REQUIRED = "REQUIRED"
    MIN = "MIN"
    MAX = "MAX"
    MINLENGTH = "MINLENGTH"
    MAXLENGTH = "MAXLENGTH"
    PATTERN = "PATTERN"
    EMAIL = "EMAIL"
    PHONE = "PHONE"
    URL = "URL"
    DATE = "DATE"
    NUMBER = "NUMBER"
    INTEGER = "INTEGER"
    POSITIVE = "POSITIVE"
    NEGATIVE = "NEGATIVE"
    CUSTOM = "CUSTOM"


class DependencyAction(str, enum.Enum):
    """What a field dependency does to its field when its conditions hold."""
    HIDE = "HIDE"
    SHOW = "SHOW"
    ENABLE = "ENABLE"
    DISABLE = "DISABLE"
    VALIDATE = "VALIDATE"
    CALCULATE = "CALCULATE"


class ConditionOperator(str, enum.Enum):
    """Comparison operators for dependency conditions."""
    EQUALS = "EQUALS"
    NOT_EQUALS = "NOT_EQUALS"
    CONTAINS = "CONTAINS"
    NOT_CONTAINS = "NOT_CONTAINS"
    GREATER_THAN = "GREATER_THAN"
    LESS_THAN = "LESS_THAN"
    GREATER_THAN_OR_EQUAL = "GREATER_THAN_OR_EQUAL"
    LESS_THAN_OR_EQUAL = "LESS_THAN_OR_EQUAL"
    IN = "IN"
    NOT_IN = "NOT_IN"
    EMPTY = "EMPTY"
    NOT_EMPTY = "NOT_EMPTY"


class LogicalOperator(str, enum.Enum):
    """How the conditions of one dependency are combined."""
    AND = "AND"
    OR = "OR"


class GeometryType(str, enum.Enum):
    """GeoJSON geometry kinds captured by map fields."""
    POINT = "Point"
    POLYGON = "Polygon"
    LINESTRING = "LineString"


def coerce_enum(enum_cls, value):
    """Return value as a member of enum_cls, or None if it is not one."""
    try:
        return enum_cls(value)
    except (ValueError, TypeError):
        return None


def ensure_exhaustive(table, enum_cls, table_name):
    """Fail loudly when a dispatch table does not cover every enum member."""
    missing = [member.value for member in enum_cls if member not in table]
    if missing:
        raise RuntimeError(f"{table_name} has no handler for: {', '.join(missing)}")
    return table
