"""
Configuration classes for the catalog service.
Defaults suit a local single-process run; every value can be overridden from
the environment (a project-level ``.env`` is loaded first).
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass, field

from utils.env import env_bool, env_float, env_int


@dataclass
class StoreConfig:
    backend: str = "memory"  # "memory" or "mongo"
    mongo_uri: str = "mongodb://localhost:27017"
    database: str = "catalog"
    op_timeout_seconds: float = 5.0


@dataclass
class CacheConfig:
    enabled: bool = True
    redis_url: str = "redis://localhost:6379/0"
    op_timeout_seconds: float = 0.5
    entity_ttl_seconds: int = 1800  # single product reads
    query_ttl_seconds: int = 300  # listing and search pages
    suggestion_ttl_seconds: int = 900


@dataclass
class CatalogConfig:
    store: StoreConfig = field(default_factory=StoreConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    default_page_size: int = 10
    max_page_size: int = 100
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "CatalogConfig":
        env = os.environ if environ is None else environ
        store_defaults = StoreConfig()
        cache_defaults = CacheConfig()
        return cls(
            store=StoreConfig(
                backend=env.get("CATALOG_STORE_BACKEND", store_defaults.backend).lower(),
                mongo_uri=env.get("CATALOG_MONGO_URI", store_defaults.mongo_uri),
                database=env.get("CATALOG_MONGO_DB", store_defaults.database),
                op_timeout_seconds=env_float(env, "CATALOG_STORE_TIMEOUT", store_defaults.op_timeout_seconds),
            ),
            cache=CacheConfig(
                enabled=env_bool(env, "CATALOG_CACHE_ENABLED", cache_defaults.enabled),
                redis_url=env.get("CATALOG_REDIS_URL", cache_defaults.redis_url),
                op_timeout_seconds=env_float(env, "CATALOG_CACHE_TIMEOUT", cache_defaults.op_timeout_seconds),
                entity_ttl_seconds=env_int(env, "CATALOG_ENTITY_TTL", cache_defaults.entity_ttl_seconds),
                query_ttl_seconds=env_int(env, "CATALOG_QUERY_TTL", cache_defaults.query_ttl_seconds),
                suggestion_ttl_seconds=env_int(
                    env, "CATALOG_SUGGESTION_TTL", cache_defaults.suggestion_ttl_seconds
                ),
            ),
            default_page_size=env_int(env, "CATALOG_PAGE_SIZE", 10),
            max_page_size=env_int(env, "CATALOG_MAX_PAGE_SIZE", 100),
            log_level=env.get("CATALOG_LOG_LEVEL", "INFO").upper(),
        )


# Example usage:
# config = CatalogConfig.from_env()
# config.cache.entity_ttl_seconds  # 1800 unless CATALOG_ENTITY_TTL is set
