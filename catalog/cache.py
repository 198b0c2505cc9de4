"""
Cache-aside helper shared by the product read path, the write path and search.

Cache failures never fail a request: a ``CacheUnavailable`` from the client is
logged and treated as a miss (reads) or a no-op (writes). Running with no cache
client at all behaves the same way.
"""

import hashlib
import json
import logging
from typing import Any

from connectors.cache_client import CacheClient

from .errors import CacheUnavailable

logger = logging.getLogger(__name__)

ENTITY_TTL_SECONDS = 30 * 60
QUERY_TTL_SECONDS = 5 * 60


def product_key(product_id: str) -> str:
    return f"product:{product_id}"


def canonical_params(params: dict[str, Any]) -> str:
    """Deterministic serialization: sorted keys, no whitespace."""
    return json.dumps(params, sort_keys=True, separators=(",", ":"), default=str)


def query_key(prefix: str, params: dict[str, Any]) -> str:
    """Key for a multi-entity read, hashed from its canonical parameters."""
    digest = hashlib.sha256(canonical_params(params).encode("utf-8")).hexdigest()[:16]
    return f"{prefix}:{digest}"


class CacheAside:
    """Thin policy wrapper over an optional CacheClient."""

    def __init__(
        self,
        client: CacheClient | None,
        entity_ttl: int = ENTITY_TTL_SECONDS,
        query_ttl: int = QUERY_TTL_SECONDS,
    ):
        self.client = client
        self.entity_ttl = entity_ttl
        self.query_ttl = query_ttl

    @property
    def enabled(self) -> bool:
        return self.client is not None

    async def get(self, key: str) -> Any | None:
        if self.client is None:
            return None
        try:
            value = await self.client.get(key)
        except CacheUnavailable:
            logger.warning(f"Cache unavailable, bypassing read of {key}")
            return None
        logger.debug(f"Cache {'hit' if value is not None else 'miss'}: {key}")
        return value

    async def put(self, key: str, value: Any, ttl: int | None = None) -> None:
        if self.client is None:
            return
        try:
            await self.client.set(key, value, self.entity_ttl if ttl is None else ttl)
        except CacheUnavailable:
            logger.warning(f"Cache unavailable, not storing {key}")

    async def evict(self, *keys: str) -> None:
        if self.client is None or not keys:
            return
        try:
            await self.client.delete(*keys)
        except CacheUnavailable:
            # Entry expires on its own TTL; a stale read is bounded by it.
            logger.error(f"Cache unavailable, could not evict {', '.join(keys)}")
