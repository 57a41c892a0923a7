# src/cache/manifest.py — v1
"""Persisted manifest of source hashes — answers "does this file need re-extraction?".

The in-memory manifest is an immutable mapping that is swapped wholesale
under a lock, so a reader holding a snapshot sees either the state before
or after a ``clear_all``, never a partial one. Every ``clear_all`` bumps a
process-wide generation token. Extraction runs capture the token when they
start and hand it back to ``update_entry``, which drops writes from runs
that straddled a clear.

The file on disk is replaced atomically (temp file + ``os.replace``).
Entries whose files have vanished are kept on load and evicted lazily by
the next ``needs_extraction`` check.
"""

from __future__ import annotations

import asyncio
import logging
import os
import tempfile
import threading
from collections.abc import Callable, Mapping
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from healthfacts.cache.fingerprint import ABSENT_HASH, hash_source
from healthfacts.cache.models import ManifestDocument, ManifestEntry
from healthfacts.core.errors import CacheStorageError, IoError

logger = logging.getLogger(__name__)


def source_key(path: str | Path) -> str:
    """Canonical manifest key for a path (absolute, user dir expanded)."""
    return str(Path(path).expanduser().resolve())


class CacheManifest:
    """Source path -> last extracted (hash, extractor version)."""

    def __init__(
        self,
        manifest_path: str | Path,
        extractor_version: str,
        hasher: Callable[[str], str] = hash_source,
    ) -> None:
        self._path = Path(manifest_path).expanduser()
        self._extractor_version = extractor_version
        self._hasher = hasher
        self._lock = threading.Lock()
        self._generation = 0
        self._entries: Mapping[str, ManifestEntry] = self._load()

    @property
    def path(self) -> Path:
        return self._path

    @property
    def extractor_version(self) -> str:
        return self._extractor_version

    @property
    def generation(self) -> int:
        """Invalidation token, incremented by every ``clear_all``."""
        return self._generation

    def entries(self) -> dict[str, ManifestEntry]:
        """Snapshot copy of all entries."""
        return dict(self._entries)

    def get_entry(self, path: str | Path) -> ManifestEntry | None:
        return self._entries.get(source_key(path))

    async def current_hash(self, path: str | Path) -> str:
        """Recompute the content hash of a source off the event loop."""
        return await asyncio.to_thread(self._hasher, source_key(path))

    async def needs_extraction(
        self, path: str | Path, current_hash: str | None = None,
    ) -> bool:
        """True if the source is new, changed, gone, or was extracted by another version.

        Args:
            path: Source file or folder.
            current_hash: Already computed hash of the source, if the caller has one.
        """
        key = source_key(path)
        entry = self._entries.get(key)
        if entry is None:
            return True
        if entry.extractor_version != self._extractor_version:
            logger.debug(
                "Extractor version changed for %s (%s -> %s)",
                key, entry.extractor_version, self._extractor_version,
            )
            return True

        if current_hash is None:
            try:
                current_hash = await self.current_hash(key)
            except IoError as e:
                logger.warning("Cannot hash %s, forcing re-extraction: %s", key, e)
                return True

        if current_hash == ABSENT_HASH:
            logger.info("Source vanished, evicting manifest entry: %s", key)
            await self.remove_entry(key)
            return True

        return current_hash != entry.content_hash

    async def update_entry(
        self,
        path: str | Path,
        content_hash: str,
        version: str | None = None,
        *,
        generation: int | None = None,
    ) -> bool:
        """Upsert the entry for ``path``.

        Returns:
            False when ``generation`` is stale (a clear happened since the
            caller started extracting) and the update was dropped.

        Raises:
            CacheStorageError: If the manifest cannot be persisted.
        """
        entry = ManifestEntry(
            path=source_key(path),
            content_hash=content_hash,
            extractor_version=version or self._extractor_version,
            extracted_at=datetime.now(timezone.utc),
        )
        return await asyncio.to_thread(self._upsert, entry, generation)

    async def remove_entry(self, path: str | Path) -> None:
        """Drop the entry for ``path`` if present."""
        await asyncio.to_thread(self._remove, source_key(path))

    async def clear_all(self) -> None:
        """Drop every entry and advance the generation token.

        Raises:
            CacheStorageError: If the cleared manifest cannot be persisted.
                The in-memory manifest is cleared regardless.
        """
        await asyncio.to_thread(self._clear)

    # --- Synchronous state transitions (run in worker threads) ---

    def _upsert(self, entry: ManifestEntry, generation: int | None) -> bool:
        with self._lock:
            if generation is not None and generation != self._generation:
                logger.info(
                    "Dropping manifest update for %s: cleared during extraction "
                    "(generation %d -> %d)",
                    entry.path, generation, self._generation,
                )
                return False
            existing = self._entries.get(entry.path)
            if (
                existing is not None
                and existing.content_hash == entry.content_hash
                and existing.extractor_version == entry.extractor_version
            ):
                return True
            updated = dict(self._entries)
            updated[entry.path] = entry
            self._persist(updated)
            self._entries = updated
            return True

    def _remove(self, key: str) -> None:
        with self._lock:
            if key not in self._entries:
                return
            updated = {k: v for k, v in self._entries.items() if k != key}
            self._persist(updated)
            self._entries = updated

    def _clear(self) -> None:
        with self._lock:
            self._entries = {}
            self._generation += 1
            logger.info("Manifest cleared (generation %d)", self._generation)
            self._persist({})

    # --- Persistence ---

    def _load(self) -> dict[str, ManifestEntry]:
        if not self._path.exists():
            return {}
        try:
            raw = self._path.read_text(encoding="utf-8")
        except OSError as e:
            raise CacheStorageError("load", self._path, e) from e
        try:
            document = ManifestDocument.model_validate_json(raw)
        except ValidationError as e:
            logger.warning("Ignoring unreadable manifest %s: %s", self._path, e)
            return {}
        logger.debug("Loaded %d manifest entries from %s", len(document.entries), self._path)
        return dict(document.entries)

    def _persist(self, entries: Mapping[str, ManifestEntry]) -> None:
        document = ManifestDocument(entries=dict(entries))
        try:
            atomic_write_text(self._path, document.model_dump_json(indent=2))
        except OSError as e:
            raise CacheStorageError("persist", self._path, e) from e


def atomic_write_text(path: Path, text: str) -> None:
    """Write ``text`` to ``path`` so readers see the old or the new file, never a mix."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(text)
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise
