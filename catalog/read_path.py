"""
Cache-aside read path for products.

Single products are cached under ``product:{id}`` for the entity TTL; listing
pages are cached under a hash of their parameters for the shorter query TTL.
Writers keep the entity entries coherent through :meth:`ProductReader.refresh`
and :meth:`ProductReader.invalidate`.
"""

import logging
import math
from typing import Any

from connectors.document_store import DocumentStore
from models.catalog import ProductPage, ProductView
from utils.ids import is_object_id

from .cache import CacheAside, product_key, query_key
from .codec import to_product_view
from .errors import InvalidIdentifier, ProductNotFound, ValidationFailed

logger = logging.getLogger(__name__)

PRODUCTS = "products"
LISTING_ORDER = [("created_at", 1), ("id", 1)]


def page_count(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0


def check_paging(page: int, limit: int, max_limit: int) -> None:
    if page < 1:
        raise ValidationFailed(f"Page must be >= 1, got {page}")
    if limit < 1 or limit > max_limit:
        raise ValidationFailed(f"Limit must be between 1 and {max_limit}, got {limit}")


class ProductReader:
    """Reads products through the cache, falling back to the store on a miss."""

    def __init__(self, store: DocumentStore, cache: CacheAside, max_page_size: int = 100):
        self.store = store
        self.cache = cache
        self.max_page_size = max_page_size

    async def get_by_id(self, product_id: Any, *, skip_cache: bool = False) -> ProductView:
        if not is_object_id(product_id):
            raise InvalidIdentifier(f"Invalid product ID: {product_id!r}")
        product_id = str(product_id)
        key = product_key(product_id)

        if skip_cache:
            logger.info(f"Bypassing cache for product {product_id} on request")
        else:
            cached = await self.cache.get(key)
            if cached is not None:
                logger.debug(f"Serving product {product_id} from cache")
                return ProductView.model_validate(cached)

        document = await self.store.get(PRODUCTS, product_id)
        if document is None:
            raise ProductNotFound(product_id)
        view = to_product_view(document)

        if not skip_cache:
            await self.cache.put(key, view.model_dump(mode="json"), self.cache.entity_ttl)
        return view

    async def refresh(self, view: ProductView) -> None:
        """Write-through: replace the cached entry with a freshly written product."""
        await self.cache.put(product_key(view.id), view.model_dump(mode="json"), self.cache.entity_ttl)
        logger.info(f"Refreshed cache for product {view.id}")

    async def invalidate(self, product_id: str) -> None:
        await self.cache.evict(product_key(product_id))
        logger.info(f"Removed product {product_id} from cache")

    async def list_products(self, page: int = 1, limit: int = 10) -> ProductPage:
        """One page of all products in creation order, with pagination metadata."""
        check_paging(page, limit, self.max_page_size)
        key = query_key("products", {"page": page, "limit": limit})
        cached = await self.cache.get(key)
        if cached is not None:
            return ProductPage.model_validate(cached)

        total = await self.store.count(PRODUCTS)
        documents = await self.store.find(
            PRODUCTS, sort=LISTING_ORDER, skip=(page - 1) * limit, limit=limit
        )
        result = ProductPage(
            page=page,
            limit=limit,
            total=total,
            pages=page_count(total, limit),
            products=[to_product_view(doc) for doc in documents],
        )
        logger.info(f"Loaded {len(result.products)} products (page {page}) from store")
        await self.cache.put(key, result.model_dump(mode="json"), self.cache.query_ttl)
        return result
