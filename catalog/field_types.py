"""
Runtime type checks for dynamic product attributes.

``validate_field_value`` is pure: it never coerces (a Number field given the
string ``"42"`` fails) and has one check per ``FieldType``. The table is
verified to cover every member of the enum at import time.
"""

import math
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime
from numbers import Real
from typing import Any

from models.enums import FieldType
from utils.ids import is_object_id


@dataclass(frozen=True)
class TypeMismatch:
    expected: FieldType
    reason: str


def _kind(value: Any) -> str:
    if value is None:
        return "null"
    return type(value).__name__


def _check_string(value: Any) -> str | None:
    if isinstance(value, str):
        return None
    return f"expected a string, got {_kind(value)}"


def _check_number(value: Any) -> str | None:
    if isinstance(value, bool) or not isinstance(value, Real):
        return f"expected a number, got {_kind(value)}"
    if isinstance(value, float) and math.isnan(value):
        return "expected a number, got NaN"
    return None


def _check_boolean(value: Any) -> str | None:
    if isinstance(value, bool):
        return None
    return f"expected true or false, got {_kind(value)}"


def _check_date(value: Any) -> str | None:
    if isinstance(value, (datetime, date)):
        return None
    if not isinstance(value, str):
        return f"expected a date, got {_kind(value)}"
    text = value.strip()
    if not text:
        return "expected a date, got an empty string"
    try:
        datetime.fromisoformat(text)
    except ValueError:
        return f"{value!r} is not a valid date"
    return None


def _check_reference(value: Any) -> str | None:
    if is_object_id(value):
        return None
    return f"{value!r} is not a valid identifier"


def _check_collection(value: Any) -> str | None:
    if isinstance(value, (list, tuple)):
        return None
    return f"expected an array, got {_kind(value)}"


def _check_any(value: Any) -> str | None:
    return None


_CHECKS: dict[FieldType, Callable[[Any], str | None]] = {
    FieldType.STRING: _check_string,
    FieldType.NUMBER: _check_number,
    FieldType.BOOLEAN: _check_boolean,
    FieldType.DATE: _check_date,
    FieldType.REFERENCE: _check_reference,
    FieldType.COLLECTION: _check_collection,
    FieldType.ANY: _check_any,
}

_unchecked = set(FieldType) - set(_CHECKS)
if _unchecked:
    raise RuntimeError(f"No value check registered for: {sorted(t.value for t in _unchecked)}")


def validate_field_value(value: Any, field_type: FieldType | str) -> TypeMismatch | None:
    """Return ``None`` if ``value`` satisfies ``field_type``, else the mismatch."""
    field_type = FieldType(field_type)
    reason = _CHECKS[field_type](value)
    if reason is None:
        return None
    return TypeMismatch(expected=field_type, reason=reason)
