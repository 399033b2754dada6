"""Field dependency resolution.

Each field may declare an ordered list of dependencies. A dependency fires
when its conditions hold; what firing means depends on its action:

- HIDE / SHOW: the field is hidden when a HIDE fires or a SHOW does not
- DISABLE / ENABLE: the same rule for enablement
- VALIDATE: the attached rule joins the field's rules for this pass
- CALCULATE: the field's value is computed from other fields

The field's static hidden/disabled flags are the fallback when no
dependency decides otherwise. Nothing here mutates the form data passed in.
"""

import logging
from functools import lru_cache
from form_engine.calculator import calculate
from form_engine.conditions import evaluate_condition
from form_engine.config import get_settings
from form_engine.enums import DependencyAction, LogicalOperator, coerce_enum, ensure_exhaustive
from form_engine.schemas import FieldState

logger = logging.getLogger(__name__)


def evaluate_dependency(dependency, form_data):
    """Combine a dependency's conditions into a single outcome.

    The first condition's logical operator (AND when unset) applies to the
    whole list; operators on later conditions are ignored. A dependency with
    no conditions always fires.
    """
    conditions = dependency.conditions or []
    if not conditions:
        return True

    first = conditions[0].logical_operator
    logic = LogicalOperator.AND if first is None else coerce_enum(LogicalOperator, first)
    if logic is None:
        logger.warning(f"Unknown logical operator '{first}' in dependency '{dependency.id}'; using AND")
        logic = LogicalOperator.AND

    results = (evaluate_condition(condition, form_data) for condition in conditions)
    return all(results) if logic is LogicalOperator.AND else any(results)


# What each action drives, and for HIDE/SHOW/DISABLE/ENABLE whether the
# field is forced (hidden or disabled) when the dependency fires or when it
# does not.
HIDDEN = 'hidden'
DISABLED = 'disabled'
RULES = 'rules'
VALUE = 'value'

ACTION_TABLE = ensure_exhaustive({
    DependencyAction.HIDE: (HIDDEN, True),
    DependencyAction.SHOW: (HIDDEN, False),
    DependencyAction.DISABLE: (DISABLED, True),
    DependencyAction.ENABLE: (DISABLED, False),
    DependencyAction.VALIDATE: (RULES, None),
    DependencyAction.CALCULATE: (VALUE, None),
}, DependencyAction, 'ACTION_TABLE')


@lru_cache(maxsize=256)
def _warn_unknown_action(dependency_id, action):
    # Reported once per dependency
    logger.warning(f"Unknown dependency action '{action}' in dependency '{dependency_id}'; ignored")


def _iter_dependencies(field, target):
    """Yield (forces_when_fired, dependency) for the field's dependencies driving target."""
    for dependency in field.dependencies or []:
        action = coerce_enum(DependencyAction, dependency.action)
        if action is None:
            _warn_unknown_action(dependency.id, str(dependency.action))
            continue
        driven, forces_when_fired = ACTION_TABLE[action]
        if driven == target:
            yield forces_when_fired, dependency


def _forced(field, form_data, target):
    """True if any dependency driving target forces it under the current data."""
    for forces_when_fired, dependency in _iter_dependencies(field, target):
        if evaluate_dependency(dependency, form_data) == forces_when_fired:
            return True
    return False


def is_field_hidden(field, form_data):
    if _forced(field, form_data, HIDDEN):
        return True
    return bool(field.hidden)


def is_field_disabled(field, form_data):
    if _forced(field, form_data, DISABLED):
        return True
    return bool(field.disabled)


def get_effective_rules(field, form_data):
    """Static rules followed by the rules of every VALIDATE dependency that fires."""
    rules = list(field.validation_rules or [])
    for _, dependency in _iter_dependencies(field, RULES):
        if dependency.validation_rule is None:
            logger.warning(f"VALIDATE dependency '{dependency.id}' on field '{field.id}' has no validation rule")
            continue
        if evaluate_dependency(dependency, form_data):
            rules.append(dependency.validation_rule)
    return rules


def calculate_field_value(field, form_data, settings=None):
    """Value computed by the field's CALCULATE dependencies.

    Dependencies are tried in declaration order and the last successful
    result wins. Returns None when none fired or every calculation failed.
    """
    value = None
    for _, dependency in _iter_dependencies(field, VALUE):
        if not dependency.calculation:
            logger.warning(f"CALCULATE dependency '{dependency.id}' on field '{field.id}' has no calculation")
            continue
        if not evaluate_dependency(dependency, form_data):
            continue
        result = calculate(dependency.calculation, form_data, settings=settings)
        if result is not None:
            value = result
    return value


def has_calculation(field):
    return any(True for _ in _iter_dependencies(field, VALUE))


def apply_calculations(fields, form_data, settings=None):
    """Return a copy of form_data with every calculated field recomputed.

    Fields are processed in the order given, each against the copy as updated
    so far. A failed calculation keeps the previous value unless the
    clear_failed_calculations setting is on.
    """
    settings = settings or get_settings()
    data = dict(form_data or {})
    for field in fields:
        if not has_calculation(field):
            continue
        value = calculate_field_value(field, data, settings=settings)
        if value is not None:
            data[field.id] = value
        elif settings.clear_failed_calculations and field.id in data:
            data[field.id] = None
    return data


def resolve_field_state(field, form_data, error=None):
    """Derived UI state for one field under the current data."""
    data = form_data or {}
    return FieldState(
        field_id=field.id,
        value=data.get(field.id),
        error=error,
        hidden=is_field_hidden(field, data),
        disabled=is_field_disabled(field, data),
        readonly=bool(field.readonly),
        effective_rules=get_effective_rules(field, data),
    )


def get_dependent_field_ids(fields, field_id):
    """Ids of fields whose dependencies reference field_id, in the order given.

    Useful to re-evaluate only affected fields after a single edit.
    """
    dependents = []
    for field in fields:
        for dependency in field.dependencies or []:
            referenced = {condition.field_id for condition in dependency.conditions or []}
            if dependency.calculation and f"{{{field_id}}}" in dependency.calculation:
                referenced.add(field_id)
            if field_id in referenced:
                dependents.append(field.id)
                break
    return dependents
