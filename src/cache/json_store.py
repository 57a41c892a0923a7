# src/cache/json_store.py — v3
"""JSON file-based cache store (default CACHE_BACKEND=json).

One JSON file per key under ``<cache_root>/<namespace>/``. Files are
written to a temp file and renamed into place. All file I/O runs in a
worker thread.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
from pathlib import Path

from pydantic import ValidationError

from healthfacts.cache.base_cache_store import BaseCacheStore
from healthfacts.cache.manifest import atomic_write_text
from healthfacts.cache.models import CachePayload
from healthfacts.core.errors import CacheStorageError

logger = logging.getLogger(__name__)


class JsonCacheStore(BaseCacheStore):
    """File-based cache store using JSON files."""

    def __init__(self, cache_root: str | Path, namespace: str = "default") -> None:
        self._root = Path(cache_root).expanduser() / namespace
        self._root.mkdir(parents=True, exist_ok=True)

    @property
    def root(self) -> Path:
        return self._root

    async def get(self, key: str) -> CachePayload | None:
        """Retrieve a payload by key."""
        path = self._entry_path(key)
        try:
            raw = await asyncio.to_thread(path.read_text, encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise CacheStorageError("read", path, e) from e
        try:
            return CachePayload.model_validate_json(raw)
        except ValidationError as e:
            logger.warning("Failed to read cache entry %s: %s", key, e)
            return None

    async def put(self, key: str, payload: CachePayload) -> None:
        """Store a payload, replacing the previous file atomically."""
        path = self._entry_path(key)
        try:
            await asyncio.to_thread(
                atomic_write_text, path, payload.model_dump_json(indent=2)
            )
        except OSError as e:
            raise CacheStorageError("write", path, e) from e

    async def delete(self, key: str) -> None:
        """Remove a payload."""
        path = self._entry_path(key)
        try:
            await asyncio.to_thread(path.unlink, missing_ok=True)
        except OSError as e:
            raise CacheStorageError("delete", path, e) from e

    async def list_keys(self) -> list[str]:
        """List all stored keys (read back from the payloads)."""
        return await asyncio.to_thread(self._scan_keys)

    async def clear(self) -> None:
        """Remove every payload file."""
        try:
            await asyncio.to_thread(self._remove_all)
        except OSError as e:
            raise CacheStorageError("clear", self._root, e) from e

    def _scan_keys(self) -> list[str]:
        keys: list[str] = []
        if not self._root.is_dir():
            return keys
        for path in sorted(self._root.glob("*.json")):
            try:
                payload = CachePayload.model_validate_json(path.read_text(encoding="utf-8"))
            except (OSError, ValidationError):
                continue
            keys.append(payload.source_path)
        return keys

    def _remove_all(self) -> None:
        for path in self._root.glob("*.json"):
            path.unlink(missing_ok=True)

    def _entry_path(self, key: str) -> Path:
        """Return file path for a cache key (keys are paths, so they are hashed)."""
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()[:32]
        return self._root / f"{digest}.json"
