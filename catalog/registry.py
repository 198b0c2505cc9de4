"""
Category Schema Registry: stores the field definitions each category's
products must satisfy.

Editing a category's fields never rewrites or re-validates products already
stored; reads of such products stay tolerant of attributes the category no
longer declares. Deleting a category that products still reference is refused.
"""

import logging
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ValidationError

from connectors.document_store import DocumentStore
from models.api import Actor
from models.catalog import Category, CategoryCreate, CategoryUpdate
from utils.ids import is_object_id

from .access import require_admin
from .errors import (
    CategoryInUse,
    CategoryNotFound,
    InvalidCategoryId,
    InvalidFieldDefinition,
    ValidationFailed,
    summarize_validation_errors,
)

logger = logging.getLogger(__name__)

CATEGORIES = "categories"
PRODUCTS = "products"


def parse_category_payload(model: type[BaseModel], data: Any) -> BaseModel:
    """Validate a category payload, mapping pydantic errors onto catalog errors.

    Problems inside the ``fields`` list (bad type tag, empty or duplicate name)
    raise InvalidFieldDefinition; anything else raises ValidationFailed.
    """
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except ValidationError as e:
        errors = e.errors()
        details = summarize_validation_errors(errors)
        field_errors = [
            err for err in errors if err["loc"] and err["loc"][0] == "fields"
        ] or [err for err in errors if "Duplicate field names" in err.get("msg", "")]
        if field_errors:
            raise InvalidFieldDefinition(
                f"Invalid field definition: {field_errors[0]['msg']}", details=details
            ) from e
        raise ValidationFailed(f"Invalid category: {errors[0]['msg']}", details=details) from e


class CategoryRegistry:
    """CRUD over category documents."""

    def __init__(self, store: DocumentStore):
        self.store = store

    @staticmethod
    def _check_id(category_id: Any) -> str:
        if not is_object_id(category_id):
            raise InvalidCategoryId(f"Invalid category ID: {category_id!r}")
        return str(category_id)

    async def get_by_id(self, category_id: Any) -> Category:
        category_id = self._check_id(category_id)
        document = await self.store.get(CATEGORIES, category_id)
        if document is None:
            raise CategoryNotFound(category_id)
        return Category.model_validate(document)

    async def create(self, data: dict[str, Any] | CategoryCreate, actor: Actor | None) -> Category:
        actor = require_admin(actor, "create categories")
        payload = parse_category_payload(CategoryCreate, data)
        now = datetime.now(timezone.utc)
        document = payload.model_dump(mode="json")
        document.update(created_by=actor.id, created_at=now, updated_at=now)
        stored = await self.store.insert(CATEGORIES, document)
        logger.info(f"Created category {stored['id']} ({payload.name}) with {len(payload.fields)} fields")
        return Category.model_validate(stored)

    async def update(
        self, category_id: Any, data: dict[str, Any] | CategoryUpdate, actor: Actor | None
    ) -> Category:
        require_admin(actor, "update categories")
        category_id = self._check_id(category_id)
        payload = parse_category_payload(CategoryUpdate, data)
        changes = payload.model_dump(mode="json", exclude_unset=True)
        if "name" in changes and changes["name"] is None:
            raise ValidationFailed("Category name cannot be null")
        if "fields" in changes and changes["fields"] is None:
            changes["fields"] = []
        changes["updated_at"] = datetime.now(timezone.utc)
        updated = await self.store.update(CATEGORIES, category_id, changes)
        if updated is None:
            raise CategoryNotFound(category_id)
        logger.info(f"Updated category {category_id}: {sorted(k for k in changes if k != 'updated_at')}")
        return Category.model_validate(updated)

    async def delete(self, category_id: Any, actor: Actor | None) -> Category:
        require_admin(actor, "delete categories")
        category_id = self._check_id(category_id)
        in_use = await self.store.count(PRODUCTS, {"category": category_id})
        if in_use:
            raise CategoryInUse(category_id, in_use)
        deleted = await self.store.delete(CATEGORIES, category_id)
        if deleted is None:
            raise CategoryNotFound(category_id)
        logger.info(f"Deleted category {category_id}")
        return Category.model_validate(deleted)

    async def list(self) -> list[Category]:
        documents = await self.store.find(CATEGORIES, sort=[("name", 1)])
        return [Category.model_validate(doc) for doc in documents]
