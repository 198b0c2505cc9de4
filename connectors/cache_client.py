"""
Module: connectors.cache_client

Shared cache clients. Values are JSON-serializable structures; every method is
a coroutine. Backend failures surface as CacheUnavailable so the read path can
fall back to the store.
"""

import asyncio
import json
import logging
import time
from typing import Any, Protocol

import redis.asyncio as redis
from redis.exceptions import RedisError

from catalog.errors import CacheUnavailable

logger = logging.getLogger(__name__)


class CacheClient(Protocol):
    async def get(self, key: str) -> Any | None: ...

    async def set(self, key: str, value: Any, ttl: int) -> None: ...

    async def delete(self, *keys: str) -> int: ...

    async def close(self) -> None: ...


class RedisCache:
    """
    Cache client over ``redis.asyncio``. Connection lifecycle (``connect`` /
    ``close``) belongs to the process bootstrap, not to callers.
    """

    def __init__(
        self,
        url: str = "redis://localhost:6379/0",
        timeout: float = 0.5,
        client: redis.Redis | None = None,
    ):
        self.url = url
        self.timeout = timeout
        self.client = client or redis.Redis.from_url(
            url,
            decode_responses=True,
            socket_timeout=timeout,
            socket_connect_timeout=timeout,
        )

    async def _call(self, operation: str, awaitable):
        try:
            return await asyncio.wait_for(awaitable, timeout=self.timeout)
        except (RedisError, OSError, asyncio.TimeoutError) as e:
            logger.warning(f"Redis {operation} failed: {e!r}")
            raise CacheUnavailable(f"Cache {operation} failed") from e

    async def connect(self) -> None:
        """Verify the connection; raises CacheUnavailable if Redis is unreachable."""
        await self._call("ping", self.client.ping())
        logger.info(f"Connected to Redis at {self.url}")

    async def get(self, key: str) -> Any | None:
        raw = await self._call("get", self.client.get(key))
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.error(f"Discarding undecodable cache entry {key}")
            await self.delete(key)
            return None

    async def set(self, key: str, value: Any, ttl: int) -> None:
        await self._call("set", self.client.set(key, json.dumps(value), ex=ttl))

    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        return await self._call("delete", self.client.delete(*keys))

    async def close(self) -> None:
        await self.client.aclose()
        logger.info("Redis connection closed.")


class InMemoryCache:
    """Process-local cache with per-key expiry; values are JSON round-tripped."""

    def __init__(self, clock=time.monotonic):
        self._entries: dict[str, tuple[float, str]] = {}
        self._clock = clock

    async def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, raw = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return json.loads(raw)

    async def set(self, key: str, value: Any, ttl: int) -> None:
        self._entries[key] = (self._clock() + ttl, json.dumps(value))

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self._entries.pop(key, None) is not None:
                removed += 1
        return removed

    async def close(self) -> None:
        self._entries.clear()

    def __contains__(self, key: str) -> bool:
        entry = self._entries.get(key)
        return entry is not None and self._clock() < entry[0]
