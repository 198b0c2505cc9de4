"""
Process bootstrap: builds the store and cache clients and wires the catalog
services around them. Connection lifecycle lives here, never in the services.
"""

import logging
from dataclasses import dataclass

from config.config import CatalogConfig
from connectors.cache_client import CacheClient, RedisCache
from connectors.document_store import DocumentStore, InMemoryDocumentStore
from connectors.mongo_store import MongoDocumentStore
from utils.logger import get_logger

from .cache import CacheAside
from .errors import CacheUnavailable
from .products import ProductService
from .read_path import ProductReader
from .registry import CategoryRegistry
from .search import ProductSearch

logger = logging.getLogger(__name__)


@dataclass
class CatalogServices:
    store: DocumentStore
    cache_client: CacheClient | None
    registry: CategoryRegistry
    reader: ProductReader
    products: ProductService
    search: ProductSearch
    config: CatalogConfig

    async def close(self) -> None:
        if self.cache_client is not None:
            await self.cache_client.close()
        await self.store.close()
        logger.info("Catalog services closed.")


def build_services(
    store: DocumentStore,
    cache_client: CacheClient | None,
    config: CatalogConfig | None = None,
) -> CatalogServices:
    """Wire the catalog around already-constructed clients."""
    config = config or CatalogConfig()
    cache = CacheAside(
        cache_client,
        entity_ttl=config.cache.entity_ttl_seconds,
        query_ttl=config.cache.query_ttl_seconds,
    )
    registry = CategoryRegistry(store)
    reader = ProductReader(store, cache, max_page_size=config.max_page_size)
    return CatalogServices(
        store=store,
        cache_client=cache_client,
        registry=registry,
        reader=reader,
        products=ProductService(store, registry, reader),
        search=ProductSearch(
            store,
            cache,
            max_page_size=config.max_page_size,
            suggestion_ttl=config.cache.suggestion_ttl_seconds,
        ),
        config=config,
    )


def create_store(config: CatalogConfig) -> DocumentStore:
    if config.store.backend == "mongo":
        return MongoDocumentStore(
            config.store.mongo_uri, config.store.database, timeout=config.store.op_timeout_seconds
        )
    if config.store.backend == "memory":
        return InMemoryDocumentStore()
    raise ValueError(f"Unknown store backend: {config.store.backend!r}")


async def open_services(config: CatalogConfig | None = None) -> CatalogServices:
    """Connect to the configured backends. Without Redis the catalog runs uncached."""
    config = config or CatalogConfig.from_env()
    get_logger(level=config.log_level)
    store = create_store(config)

    cache_client: CacheClient | None = None
    if config.cache.enabled:
        redis_cache = RedisCache(config.cache.redis_url, timeout=config.cache.op_timeout_seconds)
        try:
            await redis_cache.connect()
            cache_client = redis_cache
        except CacheUnavailable as e:
            logger.error(f"Failed to connect to Redis: {e}. Caching disabled.")
            await redis_cache.close()
    else:
        logger.info("Caching disabled by configuration.")

    logger.info(f"Catalog using {config.store.backend} store, cache {'on' if cache_client else 'off'}")
    return build_services(store, cache_client, config)
