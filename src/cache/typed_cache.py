# src/cache/typed_cache.py — v1
"""Per-domain result cache keyed by source path, validated by content hash.

A payload is served only while the manifest agrees the source is unchanged
and the payload's schema tag matches the running code. At most one
extraction per source runs at a time; concurrent callers for the same
source wait on a per-key lock and re-check validity after acquiring it.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import Generic, TypeVar

from pydantic import BaseModel, ValidationError

from healthfacts.cache.base_cache_store import BaseCacheStore
from healthfacts.cache.fingerprint import ABSENT_HASH
from healthfacts.cache.manifest import CacheManifest, source_key
from healthfacts.cache.models import CachePayload
from healthfacts.core.errors import SchemaVersionMismatch

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


class TypedCache(Generic[T]):
    """Cache of one domain's extraction output, one payload per source."""

    def __init__(
        self,
        domain: str,
        model_type: type[T],
        store: BaseCacheStore,
        manifest: CacheManifest,
        schema_version: str,
    ) -> None:
        self._domain = domain
        self._model_type = model_type
        self._store = store
        self._manifest = manifest
        self._schema_version = schema_version
        self._locks: dict[str, asyncio.Lock] = {}

    @property
    def domain(self) -> str:
        return self._domain

    @property
    def schema_version(self) -> str:
        return self._schema_version

    async def read(self, source: str | Path) -> T | None:
        """Return the cached value for ``source``, or None."""
        payload = await self._load_payload(source_key(source))
        if payload is None:
            return None
        try:
            return self._model_type.model_validate(payload.data)
        except ValidationError as e:
            logger.warning("Discarding undecodable %s payload for %s: %s", self._domain, source, e)
            await self._store.delete(source_key(source))
            return None

    async def write(
        self,
        source: str | Path,
        value: T,
        *,
        source_hash: str,
        generation: int | None = None,
    ) -> bool:
        """Replace the payload for ``source`` and record it in the manifest.

        Returns:
            False if a clear happened after ``generation`` was captured; the
            payload is stored but the manifest still reports the source stale.
        """
        key = source_key(source)
        payload = CachePayload(
            domain=self._domain,
            schema_version=self._schema_version,
            source_path=key,
            source_hash=source_hash,
            extractor_version=self._manifest.extractor_version,
            written_at=datetime.now(timezone.utc),
            data=value.model_dump(mode="json"),
        )
        await self._store.put(key, payload)
        return await self._manifest.update_entry(key, source_hash, generation=generation)

    async def is_valid(self, source: str | Path, current_hash: str | None = None) -> bool:
        """True if the cached payload can be served without re-extracting."""
        key = source_key(source)
        if current_hash is None:
            current_hash = await self._manifest.current_hash(key)
        if await self._manifest.needs_extraction(key, current_hash):
            return False
        payload = await self._load_payload(key)
        if payload is None:
            return False
        return (
            payload.source_hash == current_hash
            and payload.extractor_version == self._manifest.extractor_version
        )

    async def clear(self, source: str | Path) -> None:
        """Drop this domain's payload for ``source``."""
        await self._store.delete(source_key(source))

    async def clear_all(self) -> None:
        """Drop every payload of this domain."""
        await self._store.clear()

    async def get_or_extract(
        self,
        source: str | Path,
        extract: Callable[[str], Awaitable[T]],
    ) -> T | None:
        """Serve the cached value or run ``extract`` once and cache its result.

        Returns None when the source no longer exists.

        Raises:
            IoError: If the source cannot be hashed or read.
            CacheStorageError: If the result cannot be persisted.
        """
        key = source_key(source)
        lock = self._locks.setdefault(key, asyncio.Lock())
        async with lock:
            current_hash = await self._manifest.current_hash(key)
            if current_hash == ABSENT_HASH:
                await self.clear(key)
                return None

            if await self.is_valid(key, current_hash):
                cached = await self.read(key)
                if cached is not None:
                    logger.debug("%s cache hit: %s", self._domain, key)
                    return cached

            generation = self._manifest.generation
            logger.info("Extracting %s from %s", self._domain, key)
            value = await extract(key)
            await self.write(key, value, source_hash=current_hash, generation=generation)
            return value

    async def _load_payload(self, key: str) -> CachePayload | None:
        payload = await self._store.get(key)
        if payload is None:
            return None
        try:
            self._check_schema(payload)
        except SchemaVersionMismatch as e:
            logger.info("Invalidating cache entry for %s: %s", key, e)
            await self._store.delete(key)
            return None
        return payload

    def _check_schema(self, payload: CachePayload) -> None:
        if payload.schema_version != self._schema_version or payload.domain != self._domain:
            raise SchemaVersionMismatch(
                self._domain, payload.schema_version, self._schema_version
            )
