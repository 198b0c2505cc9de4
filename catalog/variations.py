"""
Variation bookkeeping for products.

Every product owns at least one variation, exactly one of which is the
default. Creation is compensated by the caller: if any variation write fails,
the ones already written are removed before the error propagates.
"""

import logging
import re
from typing import Any

from connectors.document_store import DocumentStore
from models.catalog import Variation, VariationInput

logger = logging.getLogger(__name__)

VARIATIONS = "variations"


def generate_sku(product_name: str, product_id: str, index: int) -> str:
    """e.g. ``THINKPAD-5F1A2B3C-01`` from a name, product id and position."""
    stem = re.sub(r"[^A-Za-z0-9]+", "", product_name.upper())[:8] or "ITEM"
    return f"{stem}-{product_id[-8:].upper()}-{index:02d}"


def plan_variations(
    product: dict[str, Any], submitted: list[VariationInput] | None
) -> list[dict[str, Any]]:
    """Variation documents to write for a new product.

    With nothing submitted, one default variation carries the base price.
    Otherwise missing prices fall back to the base price, missing SKUs are
    generated, and the first variation is the default unless one is flagged.
    """
    base = {"product": product["id"], "stock": 0}
    if not submitted:
        return [
            {
                **base,
                "name": "Default",
                "price": product["price"],
                "sku": generate_sku(product["name"], product["id"], 1),
                "is_default": True,
            }
        ]

    default_index = next((i for i, v in enumerate(submitted) if v.is_default), 0)
    planned = []
    for index, variation in enumerate(submitted):
        planned.append(
            {
                **base,
                "name": variation.name,
                "price": variation.price if variation.price is not None else product["price"],
                "sku": variation.sku or generate_sku(product["name"], product["id"], index + 1),
                "is_default": index == default_index,
                "stock": variation.stock,
            }
        )
    return planned


class VariationWriter:
    def __init__(self, store: DocumentStore):
        self.store = store

    async def create_all(self, planned: list[dict[str, Any]]) -> list[Variation]:
        created: list[Variation] = []
        try:
            for document in planned:
                stored = await self.store.insert(VARIATIONS, document)
                created.append(Variation.model_validate(stored))
        except Exception:
            for variation in created:
                await self.store.delete(VARIATIONS, variation.id)
            raise
        return created

    async def for_product(self, product_id: str) -> list[Variation]:
        documents = await self.store.find(
            VARIATIONS, {"product": product_id}, sort=[("is_default", -1), ("name", 1)]
        )
        return [Variation.model_validate(doc) for doc in documents]

    async def delete_for_product(self, product_id: str) -> int:
        return await self.store.delete_many(VARIATIONS, {"product": product_id})

    async def ensure_default(self, product: dict[str, Any]) -> list[Variation]:
        """Synthesize the default variation if a product somehow has none. Idempotent."""
        existing = await self.for_product(product["id"])
        if existing:
            return existing
        logger.warning(f"Product {product['id']} has no variations; creating the default one")
        return await self.create_all(plan_variations(product, None))
