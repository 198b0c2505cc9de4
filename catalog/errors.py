"""
Exception hierarchy for the catalog core.

Every error carries the HTTP status a transport layer should answer with and
a stable machine-readable ``code``.
"""

from dataclasses import dataclass
from typing import Any


class CatalogError(Exception):
    """Base class for all catalog failures."""

    status_code = 500
    code = "catalog_error"

    def __init__(self, message: str, details: Any = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.code, "message": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class InvalidIdentifier(CatalogError):
    status_code = 400
    code = "invalid_identifier"


class InvalidCategoryId(InvalidIdentifier):
    code = "invalid_category_id"


class NotFound(CatalogError):
    status_code = 404
    code = "not_found"


class CategoryNotFound(NotFound):
    code = "category_not_found"

    def __init__(self, category_id: str):
        super().__init__(f"Category {category_id} not found")
        self.category_id = category_id


class ProductNotFound(NotFound):
    code = "product_not_found"

    def __init__(self, product_id: str):
        super().__init__(f"Product {product_id} not found")
        self.product_id = product_id


class ValidationFailed(CatalogError):
    """Basic-field violations (empty name, non-positive price, ...)."""

    status_code = 400
    code = "validation_failed"


class InvalidFieldDefinition(ValidationFailed):
    code = "invalid_field_definition"


class MissingRequiredFields(ValidationFailed):
    code = "missing_required_fields"

    def __init__(self, names: list[str]):
        super().__init__(f"Missing required fields: {', '.join(names)}", details={"fields": list(names)})
        self.names = list(names)


@dataclass(frozen=True)
class FieldViolation:
    """A single attribute that failed validation against its category."""

    kind: str  # "undefined_field" | "field_type_mismatch"
    field: str
    expected: str | None = None
    reason: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {k: v for k, v in self.__dict__.items() if v is not None}


class FieldValidationError(ValidationFailed):
    """Raised with every attribute violation found, not only the first."""

    code = "field_validation_failed"

    def __init__(self, violations: list[FieldViolation]):
        first = violations[0]
        summary = _describe(first)
        if len(violations) > 1:
            summary += f" (and {len(violations) - 1} more)"
        super().__init__(summary, details={"violations": [v.to_dict() for v in violations]})
        self.violations = list(violations)

    @property
    def field(self) -> str:
        return self.violations[0].field


class UndefinedField(FieldValidationError):
    code = "undefined_field"


class FieldTypeMismatch(FieldValidationError):
    code = "field_type_mismatch"

    @property
    def expected(self) -> str | None:
        return self.violations[0].expected


def _describe(violation: FieldViolation) -> str:
    if violation.kind == "undefined_field":
        return f'Field "{violation.field}" is not defined in this category'
    return f'Field "{violation.field}" expects {violation.expected}: {violation.reason}'


def field_validation_error(violations: list[FieldViolation]) -> FieldValidationError:
    """Build the error whose class matches the first violation's kind."""
    if violations[0].kind == "undefined_field":
        return UndefinedField(violations)
    return FieldTypeMismatch(violations)


class PermissionDenied(CatalogError):
    status_code = 403
    code = "permission_denied"


class CategoryInUse(CatalogError):
    status_code = 409
    code = "category_in_use"

    def __init__(self, category_id: str, product_count: int):
        super().__init__(
            f"Category {category_id} is referenced by {product_count} product(s)",
            details={"products": product_count},
        )
        self.category_id = category_id
        self.product_count = product_count


class StoreUnavailable(CatalogError):
    status_code = 500
    code = "store_unavailable"
    transient = False


class StoreTimeout(StoreUnavailable):
    status_code = 503
    code = "store_timeout"
    transient = True


class CacheUnavailable(CatalogError):
    """Raised by cache clients; the read path treats it as a cache bypass."""

    code = "cache_unavailable"
    transient = True


def summarize_validation_errors(errors: list[dict[str, Any]]) -> list[dict[str, str]]:
    """Reduce pydantic error dicts to JSON-safe ``{"loc", "msg"}`` entries."""
    return [
        {"loc": ".".join(str(part) for part in error.get("loc", ())), "msg": error.get("msg", "")}
        for error in errors
    ]
