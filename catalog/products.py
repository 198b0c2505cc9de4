"""
Product Validation & Persistence Engine.

Writes run validate -> persist -> cache refresh, in that order, with every
validation finished before the first store mutation. A failed store write
leaves the cache untouched.

Concurrent updates to one product are last-write-wins in the store, and the
cache ends up holding whichever writer refreshed it last; the two can
disagree until the entry is next rewritten or expires.
"""

import logging
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ValidationError

from connectors.document_store import DocumentStore
from models.api import Actor
from models.catalog import (
    Category,
    ProductCreate,
    ProductPage,
    ProductUpdate,
    ProductView,
    Variation,
)
from utils.ids import extract_id, is_object_id

from .access import require_admin
from .codec import decode_fields, encode_fields, to_product_view
from .errors import (
    InvalidCategoryId,
    InvalidIdentifier,
    MissingRequiredFields,
    ProductNotFound,
    ValidationFailed,
    summarize_validation_errors,
)
from .read_path import PRODUCTS, ProductReader
from .registry import CategoryRegistry
from .validation import check_attributes, missing_required
from .variations import VariationWriter, plan_variations

logger = logging.getLogger(__name__)


def _is_blank(value: Any) -> bool:
    """Values an update treats as "leave this attribute alone"."""
    return value is None or (isinstance(value, str) and value == "")


def parse_product_payload(model: type[BaseModel], data: Any) -> BaseModel:
    if isinstance(data, model):
        return data
    if not isinstance(data, dict):
        raise ValidationFailed("Product payload must be an object")
    try:
        return model.model_validate(data)
    except ValidationError as e:
        errors = e.errors()
        raise ValidationFailed(
            f"Invalid product: {errors[0]['msg']}", details=summarize_validation_errors(errors)
        ) from e


def resolve_category_ref(ref: Any) -> str:
    """Category id from a raw id or an object carrying one."""
    candidate = extract_id(ref)
    if not is_object_id(candidate):
        raise InvalidCategoryId(f"Invalid category ID: {candidate!r}")
    return str(candidate)


class ProductService:
    """Creates, updates and deletes products against their category schema."""

    def __init__(
        self,
        store: DocumentStore,
        registry: CategoryRegistry,
        reader: ProductReader,
    ):
        self.store = store
        self.registry = registry
        self.reader = reader
        self.variations = VariationWriter(store)

    # --- Reads (delegated) ---

    async def get_by_id(self, product_id: Any, *, skip_cache: bool = False) -> ProductView:
        return await self.reader.get_by_id(product_id, skip_cache=skip_cache)

    async def list_products(self, page: int = 1, limit: int = 10) -> ProductPage:
        return await self.reader.list_products(page, limit)

    async def count(self) -> int:
        return await self.store.count(PRODUCTS)

    async def get_variations(self, product_id: Any) -> list[Variation]:
        document = await self._load(product_id)
        return await self.variations.ensure_default(document)

    # --- Writes ---

    async def create(self, data: dict[str, Any] | ProductCreate, actor: Actor | None) -> ProductView:
        actor = require_admin(actor, "create products")
        payload = parse_product_payload(ProductCreate, data)

        category = await self.registry.get_by_id(resolve_category_ref(payload.category))
        # A null value never satisfies a required field, but is still checked against the schema.
        check_attributes(
            category,
            payload.fields,
            present=[name for name, value in payload.fields.items() if value is not None],
        )
        attributes = {name: value for name, value in payload.fields.items() if value is not None}

        now = datetime.now(timezone.utc)
        document = {
            "name": payload.name,
            "description": payload.description,
            "price": payload.price,
            "category": category.id,
            "attribute_values": encode_fields(attributes),
            "images": list(payload.images),
            "has_variations": True,
            "created_by": actor.id,
            "created_at": now,
            "updated_at": now,
        }
        stored = await self.store.insert(PRODUCTS, document)

        try:
            created = await self.variations.create_all(plan_variations(stored, payload.variations))
        except Exception:
            logger.error(f"Variation write failed for new product {stored['id']}; removing the product")
            await self.store.delete(PRODUCTS, stored["id"])
            raise

        logger.info(
            f"Created product {stored['id']} in category {category.name} "
            f"with {len(attributes)} attributes and {len(created)} variations"
        )
        return to_product_view(stored)

    async def update(
        self, product_id: Any, data: dict[str, Any] | ProductUpdate, actor: Actor | None
    ) -> ProductView:
        require_admin(actor, "update products")
        existing = await self._load(product_id)
        payload = parse_product_payload(ProductUpdate, data)
        sent = payload.model_fields_set

        changes: dict[str, Any] = {}
        for key in ("name", "description", "price", "images"):
            if key in sent:
                value = getattr(payload, key)
                if value is None and key in ("name", "price", "images"):
                    continue
                changes[key] = value

        category_changed = False
        category_id = existing["category"]
        if "category" in sent and payload.category is not None:
            category_id = resolve_category_ref(payload.category)
            category_changed = category_id != existing["category"]

        touched = {
            name: value for name, value in (payload.fields or {}).items() if not _is_blank(value)
        }
        unset = list(dict.fromkeys(payload.unset_fields))
        conflicting = sorted(set(touched) & set(unset))
        if conflicting:
            raise ValidationFailed(f"Fields both set and unset: {', '.join(conflicting)}")

        if category_changed or touched or unset:
            category = await self.registry.get_by_id(category_id)
            merged = decode_fields(existing.get("attribute_values"))
            merged.update(touched)
            for name in unset:
                merged.pop(name, None)
            self._check_update(category, touched, merged, recheck_required=category_changed or bool(unset))
            if touched or unset:
                changes["attribute_values"] = encode_fields(merged)
            if category_changed:
                changes["category"] = category.id

        changes["updated_at"] = datetime.now(timezone.utc)
        updated = await self.store.update(PRODUCTS, existing["id"], changes)
        if updated is None:
            raise ProductNotFound(existing["id"])

        view = to_product_view(updated)
        await self.reader.refresh(view)
        logger.info(f"Updated product {view.id}: {sorted(k for k in changes if k != 'updated_at')}")
        return view

    @staticmethod
    def _check_update(
        category: Category, touched: dict[str, Any], merged: dict[str, Any], recheck_required: bool
    ) -> None:
        # Only touched attributes are type-checked; untouched ones were valid when written.
        if recheck_required:
            missing = missing_required(category, merged.keys())
            if missing:
                raise MissingRequiredFields(missing)
        check_attributes(category, touched, require_all=False)

    async def delete(self, product_id: Any, actor: Actor | None) -> ProductView:
        require_admin(actor, "delete products")
        product_id = self._check_id(product_id)
        deleted = await self.store.delete(PRODUCTS, product_id)
        if deleted is None:
            raise ProductNotFound(product_id)
        await self.reader.invalidate(product_id)
        await self.variations.delete_for_product(product_id)
        logger.info(f"Deleted product {product_id}")
        return to_product_view(deleted)

    async def add_images(self, product_id: Any, image_urls: list[str], actor: Actor | None) -> ProductView:
        require_admin(actor, "edit product images")
        existing = await self._load(product_id)
        images = list(existing.get("images") or []) + [url for url in image_urls if url]
        return await self._write_images(existing["id"], images)

    async def remove_image(self, product_id: Any, image_ref: str, actor: Actor | None) -> ProductView:
        """Drop every image whose URL contains ``image_ref`` (a URL or a public id)."""
        require_admin(actor, "edit product images")
        if not image_ref:
            raise ValidationFailed("Image reference must not be empty")
        existing = await self._load(product_id)
        images = [url for url in existing.get("images") or [] if image_ref not in url]
        return await self._write_images(existing["id"], images)

    async def _write_images(self, product_id: str, images: list[str]) -> ProductView:
        updated = await self.store.update(
            PRODUCTS, product_id, {"images": images, "updated_at": datetime.now(timezone.utc)}
        )
        if updated is None:
            raise ProductNotFound(product_id)
        view = to_product_view(updated)
        await self.reader.refresh(view)
        return view

    # --- Helpers ---

    @staticmethod
    def _check_id(product_id: Any) -> str:
        if not is_object_id(product_id):
            raise InvalidIdentifier(f"Invalid product ID: {product_id!r}")
        return str(product_id)

    async def _load(self, product_id: Any) -> dict[str, Any]:
        product_id = self._check_id(product_id)
        document = await self.store.get(PRODUCTS, product_id)
        if document is None:
            raise ProductNotFound(product_id)
        return document
