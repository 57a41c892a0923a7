# src/cache/base_cache_store.py — v2
"""Abstract payload store interface shared by the json, sqlite and redis backends."""

from __future__ import annotations

from abc import ABC, abstractmethod

from healthfacts.cache.models import CachePayload


class BaseCacheStore(ABC):
    """Unified interface for cache storage backends.

    ``put`` fully replaces any previous payload under the same key; a reader
    never observes a partially written payload.
    """

    @abstractmethod
    async def get(self, key: str) -> CachePayload | None:
        """Retrieve a payload by key."""

    @abstractmethod
    async def put(self, key: str, payload: CachePayload) -> None:
        """Store a payload (replace)."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove a payload. Missing keys are ignored."""

    @abstractmethod
    async def list_keys(self) -> list[str]:
        """List all stored keys."""

    @abstractmethod
    async def clear(self) -> None:
        """Remove every payload in this store."""
