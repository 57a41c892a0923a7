# src/cache/cache_factory.py — v3
"""Factory for cache store instantiation."""

from __future__ import annotations

from healthfacts.cache.base_cache_store import BaseCacheStore
from healthfacts.config.settings import Settings


def create_cache_store(
    settings: Settings | None = None, namespace: str = "default",
) -> BaseCacheStore:
    """Instantiate the configured cache backend for one namespace (domain).

    Args:
        settings: Application settings. Defaults to JSON backend.
        namespace: Payload namespace, usually the extraction domain.

    Returns:
        Configured BaseCacheStore implementation.
    """
    backend = "json" if settings is None else settings.cache_backend
    cache_root = (
        "~/.healthfacts/cache" if settings is None else str(settings.resolved_cache_root)
    )

    if backend == "json":
        from healthfacts.cache.json_store import JsonCacheStore
        return JsonCacheStore(cache_root=cache_root, namespace=namespace)

    if backend == "sqlite":
        from healthfacts.cache.sqlite_store import SqliteCacheStore
        return SqliteCacheStore(
            db_path=f"{cache_root}/healthfacts_cache.db", namespace=namespace,
        )

    if backend == "redis":
        from healthfacts.cache.redis_store import RedisCacheStore
        if settings is None or not settings.cache_redis_url:
            raise ValueError(
                "CACHE_REDIS_URL must be set when CACHE_BACKEND=redis"
            )
        return RedisCacheStore(redis_url=settings.cache_redis_url, namespace=namespace)

    raise ValueError(f"Unsupported cache backend: {backend!r}")
