"""
Identifier helpers built on BSON ObjectIds (24 hex characters).
"""

from collections.abc import Mapping
from typing import Any

from bson import ObjectId


def is_object_id(value: Any) -> bool:
    """True for an ObjectId instance or its 24-character hex string form."""
    if isinstance(value, ObjectId):
        return True
    return isinstance(value, str) and len(value) == 24 and ObjectId.is_valid(value)


def new_object_id() -> str:
    return str(ObjectId())


def extract_id(ref: Any) -> Any:
    """Pull an identifier out of a raw id or an object carrying ``id``/``_id``.

    Returns the candidate unchanged (possibly malformed); callers check the
    format with :func:`is_object_id`.
    """
    if isinstance(ref, Mapping):
        candidate = ref.get("id", ref.get("_id"))
    else:
        candidate = getattr(ref, "id", ref)
    if isinstance(candidate, ObjectId):
        return str(candidate)
    return candidate
