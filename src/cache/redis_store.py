# src/cache/redis_store.py — v3
"""Redis-based cache store (CACHE_BACKEND=redis).

Requires 'redis' package: pip install healthfacts[redis].
Suitable when several API workers share one cache. Client errors
(unreachable server, timeouts, protocol errors) surface as
CacheStorageError, like the sqlite backend's.
"""

from __future__ import annotations

import logging

from pydantic import ValidationError

from healthfacts.cache.base_cache_store import BaseCacheStore
from healthfacts.cache.models import CachePayload
from healthfacts.core.errors import CacheStorageError

logger = logging.getLogger(__name__)

_KEY_PREFIX = "healthfacts:cache:"


class RedisCacheStore(BaseCacheStore):
    """Redis-backed cache store for multi-worker deployments."""

    def __init__(self, redis_url: str, namespace: str = "default") -> None:
        try:
            import redis
        except ImportError as e:
            raise ImportError(
                "redis package required: pip install redis"
            ) from e

        self._client = redis.Redis.from_url(redis_url, decode_responses=True)
        self._client_error: type[Exception] = redis.RedisError
        self._location = redis_url
        self._namespace = namespace

    @property
    def _prefix(self) -> str:
        return f"{_KEY_PREFIX}{self._namespace}:"

    @property
    def _index_key(self) -> str:
        return f"{self._prefix}__index__"

    async def get(self, key: str) -> CachePayload | None:
        """Retrieve a payload by key."""
        try:
            data = self._client.get(f"{self._prefix}{key}")
        except self._client_error as e:
            raise CacheStorageError("read", self._location, e) from e
        if data is None:
            return None
        try:
            return CachePayload.model_validate_json(data)
        except ValidationError as e:
            logger.warning("Failed to deserialize cache entry %s: %s", key, e)
            return None

    async def put(self, key: str, payload: CachePayload) -> None:
        """Store a payload. SET replaces the value atomically."""
        try:
            self._client.set(f"{self._prefix}{key}", payload.model_dump_json())
            # Maintain a set of all keys for list_keys / clear
            self._client.sadd(self._index_key, key)
        except self._client_error as e:
            raise CacheStorageError("write", self._location, e) from e

    async def delete(self, key: str) -> None:
        """Remove a payload."""
        try:
            self._client.delete(f"{self._prefix}{key}")
            self._client.srem(self._index_key, key)
        except self._client_error as e:
            raise CacheStorageError("delete", self._location, e) from e

    async def list_keys(self) -> list[str]:
        """List all keys of this namespace."""
        try:
            return sorted(self._client.smembers(self._index_key))
        except self._client_error as e:
            raise CacheStorageError("list", self._location, e) from e

    async def clear(self) -> None:
        """Remove every payload of this namespace."""
        for key in await self.list_keys():
            await self.delete(key)

    def close(self) -> None:
        """Close the Redis connection."""
        self._client.close()
