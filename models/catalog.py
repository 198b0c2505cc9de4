"""
Data models for categories, products and variations.

Stored documents use ``attribute_values`` (a list of name/value pairs);
everything handed to clients uses the flattened ``fields`` mapping instead.
"""

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from .enums import FieldType

MAX_CATEGORY_FIELDS = 50
MAX_PRODUCT_NAME = 200
MAX_DESCRIPTION = 5000


def round_price(value: float) -> float:
    """Round a price to two decimal places, halves away from zero."""
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def _strip_optional(value: str | None) -> str | None:
    return value.strip() if isinstance(value, str) else value


# --- Category schema ---


class FieldDefinition(BaseModel):
    """One attribute a category declares: its name, type and required-ness."""

    name: str = Field(..., min_length=1, max_length=100)
    type: FieldType
    required: bool = False

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, value: Any) -> Any:
        return _strip_optional(value)

    @field_validator("type", mode="before")
    @classmethod
    def accept_type_aliases(cls, value: Any) -> Any:
        if isinstance(value, str):
            try:
                return FieldType(value)
            except ValueError:
                return value
        return value


def _reject_duplicate_names(fields: list[FieldDefinition] | None) -> None:
    if not fields:
        return
    seen: set[str] = set()
    duplicates = []
    for definition in fields:
        if definition.name in seen and definition.name not in duplicates:
            duplicates.append(definition.name)
        seen.add(definition.name)
    if duplicates:
        raise ValueError(f"Duplicate field names: {', '.join(duplicates)}")


class CategoryCreate(BaseModel):
    """Payload accepted when creating a category."""

    name: str = Field(..., min_length=1)
    description: str | None = None
    fields: list[FieldDefinition] = Field(default_factory=list, max_length=MAX_CATEGORY_FIELDS)

    @field_validator("name", "description", mode="before")
    @classmethod
    def strip_text(cls, value: Any) -> Any:
        return _strip_optional(value)

    @model_validator(mode="after")
    def unique_field_names(self) -> "CategoryCreate":
        _reject_duplicate_names(self.fields)
        return self


class CategoryUpdate(BaseModel):
    """Partial category update; only the keys that were sent are applied."""

    name: str | None = Field(None, min_length=1)
    description: str | None = None
    fields: list[FieldDefinition] | None = Field(None, max_length=MAX_CATEGORY_FIELDS)

    @field_validator("name", "description", mode="before")
    @classmethod
    def strip_text(cls, value: Any) -> Any:
        return _strip_optional(value)

    @model_validator(mode="after")
    def unique_field_names(self) -> "CategoryUpdate":
        _reject_duplicate_names(self.fields)
        return self


class Category(BaseModel):
    id: str
    name: str
    description: str | None = None
    fields: list[FieldDefinition] = Field(default_factory=list)
    created_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def field_lookup(self) -> dict[str, FieldDefinition]:
        """Field definitions keyed by name."""
        return {definition.name: definition for definition in self.fields}

    def required_field_names(self) -> list[str]:
        return [definition.name for definition in self.fields if definition.required]


# --- Products ---


class AttributePair(BaseModel):
    """Persisted form of a single dynamic attribute."""

    name: str
    value: Any


class VariationInput(BaseModel):
    """A variation submitted alongside a new product."""

    name: str = Field(..., min_length=1, max_length=MAX_PRODUCT_NAME)
    price: float | None = Field(None, gt=0)
    sku: str | None = None
    is_default: bool = False
    stock: int = Field(0, ge=0)

    @field_validator("price")
    @classmethod
    def two_places(cls, value: float | None) -> float | None:
        return round_price(value) if value is not None else None


class Variation(BaseModel):
    id: str
    product: str
    name: str
    price: float
    sku: str
    is_default: bool = False
    stock: int = 0


class ProductCreate(BaseModel):
    """Payload accepted when creating a product.

    ``category`` is either a raw identifier or an object carrying one
    (``{"id": ...}`` or ``{"_id": ...}``); it is resolved by the engine.
    """

    name: str = Field(..., min_length=1, max_length=MAX_PRODUCT_NAME)
    description: str | None = Field(None, max_length=MAX_DESCRIPTION)
    price: float = Field(..., gt=0)
    category: Any
    fields: dict[str, Any] = Field(default_factory=dict)
    images: list[str] = Field(default_factory=list)
    variations: list[VariationInput] | None = None

    @field_validator("name", "description", mode="before")
    @classmethod
    def strip_text(cls, value: Any) -> Any:
        return _strip_optional(value)

    @field_validator("price")
    @classmethod
    def two_places(cls, value: float) -> float:
        rounded = round_price(value)
        if rounded <= 0:
            raise ValueError("Price must be positive after rounding to two decimals")
        return rounded


class ProductUpdate(BaseModel):
    """Partial product update.

    ``fields`` overlays the stored attributes; ``None`` or empty-string values
    in it are ignored. Attributes are removed only through ``unset_fields``.
    """

    name: str | None = Field(None, min_length=1, max_length=MAX_PRODUCT_NAME)
    description: str | None = Field(None, max_length=MAX_DESCRIPTION)
    price: float | None = Field(None, gt=0)
    category: Any = None
    fields: dict[str, Any] | None = None
    unset_fields: list[str] = Field(default_factory=list)
    images: list[str] | None = None

    @field_validator("name", "description", mode="before")
    @classmethod
    def strip_text(cls, value: Any) -> Any:
        return _strip_optional(value)

    @field_validator("price")
    @classmethod
    def two_places(cls, value: float | None) -> float | None:
        if value is None:
            return None
        rounded = round_price(value)
        if rounded <= 0:
            raise ValueError("Price must be positive after rounding to two decimals")
        return rounded


class ProductView(BaseModel):
    """Client-facing product: attributes flattened into ``fields``."""

    id: str
    name: str
    description: str | None = None
    price: float
    category: str
    fields: dict[str, Any] = Field(default_factory=dict)
    images: list[str] = Field(default_factory=list)
    has_variations: bool = False
    created_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ProductPage(BaseModel):
    """One page of the plain product listing."""

    page: int
    limit: int
    total: int
    pages: int
    products: list[ProductView]


class Pagination(BaseModel):
    total: int
    page: int
    limit: int
    pages: int


class SearchResult(BaseModel):
    products: list[ProductView]
    pagination: Pagination
