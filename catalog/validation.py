"""
Reconciles client-submitted attribute maps against a category's field list.
"""

from collections.abc import Iterable, Mapping
from typing import Any

from models.catalog import Category

from .errors import FieldViolation, MissingRequiredFields, field_validation_error
from .field_types import validate_field_value


def missing_required(category: Category, present: Iterable[str]) -> list[str]:
    """Required field names of ``category`` absent from ``present``, in declaration order."""
    present = set(present)
    return [name for name in category.required_field_names() if name not in present]


def collect_violations(category: Category, attributes: Mapping[str, Any]) -> list[FieldViolation]:
    """Every undeclared name and type mismatch in ``attributes``."""
    lookup = category.field_lookup()
    violations: list[FieldViolation] = []
    for name, value in attributes.items():
        definition = lookup.get(name)
        if definition is None:
            violations.append(FieldViolation(kind="undefined_field", field=name))
            continue
        mismatch = validate_field_value(value, definition.type)
        if mismatch is not None:
            violations.append(
                FieldViolation(
                    kind="field_type_mismatch",
                    field=name,
                    expected=mismatch.expected.value,
                    reason=mismatch.reason,
                )
            )
    return violations


def check_attributes(
    category: Category,
    attributes: Mapping[str, Any],
    *,
    require_all: bool = True,
    present: Iterable[str] | None = None,
) -> None:
    """Raise if ``attributes`` does not satisfy ``category``.

    Required-field presence is checked first (against ``present`` when given,
    otherwise the submitted names); then all remaining violations are
    gathered and raised together.
    """
    if require_all:
        missing = missing_required(category, attributes.keys() if present is None else present)
        if missing:
            raise MissingRequiredFields(missing)
    violations = collect_violations(category, attributes)
    if violations:
        raise field_validation_error(violations)
