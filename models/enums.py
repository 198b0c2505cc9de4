"""
Centralized Enum definitions for the catalog.
"""

from enum import Enum


class FieldType(str, Enum):
    """Attribute types a category field definition may declare.

    Values are the wire tags clients send; the descriptive aliases
    (``Reference``, ``Collection``, ``Any``) are accepted on input too.
    """

    STRING = "String"
    NUMBER = "Number"
    DATE = "Date"
    BOOLEAN = "Boolean"
    REFERENCE = "ObjectId"
    COLLECTION = "Array"
    ANY = "Mixed"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            return _FIELD_TYPE_ALIASES.get(value)
        return None


_FIELD_TYPE_ALIASES = {
    "Reference": FieldType.REFERENCE,
    "Collection": FieldType.COLLECTION,
    "Any": FieldType.ANY,
}


class ActorRole(str, Enum):
    """Roles an authenticated caller can carry"""

    ADMIN = "admin"
    STAFF = "staff"
    CUSTOMER = "customer"


class SortDirection(str, Enum):
    """Sort order for listing and search"""

    ASC = "asc"
    DESC = "desc"

    @property
    def as_int(self) -> int:
        return 1 if self is SortDirection.ASC else -1
