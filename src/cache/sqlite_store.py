# src/cache/sqlite_store.py — v2
"""SQLite-based cache store (CACHE_BACKEND=sqlite).

Uses stdlib sqlite3 — no external dependency. Each put is a single
``INSERT OR REPLACE`` in its own transaction, so payloads are replaced
whole. Several namespaces (one per domain) share one database file.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

from pydantic import ValidationError

from healthfacts.cache.base_cache_store import BaseCacheStore
from healthfacts.cache.models import CachePayload
from healthfacts.core.errors import CacheStorageError

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS cache_payloads (
    namespace TEXT NOT NULL,
    key TEXT NOT NULL,
    data TEXT NOT NULL,
    schema_version TEXT,
    source_hash TEXT,
    written_at TEXT DEFAULT CURRENT_TIMESTAMP,
    PRIMARY KEY (namespace, key)
);
CREATE INDEX IF NOT EXISTS idx_source_hash ON cache_payloads(source_hash);
"""


class SqliteCacheStore(BaseCacheStore):
    """SQLite-backed cache store."""

    def __init__(self, db_path: Path | str, namespace: str = "default") -> None:
        self._db_path = Path(db_path).expanduser()
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._namespace = namespace
        self._conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA)

    async def get(self, key: str) -> CachePayload | None:
        """Retrieve a payload by key."""
        try:
            row = self._conn.execute(
                "SELECT data FROM cache_payloads WHERE namespace = ? AND key = ?",
                (self._namespace, key),
            ).fetchone()
        except sqlite3.Error as e:
            raise CacheStorageError("read", self._db_path, e) from e
        if row is None:
            return None
        try:
            return CachePayload.model_validate_json(row[0])
        except ValidationError as e:
            logger.warning("Failed to deserialize cache entry %s: %s", key, e)
            return None

    async def put(self, key: str, payload: CachePayload) -> None:
        """Store a payload (upsert)."""
        try:
            with self._conn:
                self._conn.execute(
                    """INSERT OR REPLACE INTO cache_payloads
                       (namespace, key, data, schema_version, source_hash, written_at)
                       VALUES (?, ?, ?, ?, ?, ?)""",
                    (
                        self._namespace,
                        key,
                        payload.model_dump_json(),
                        payload.schema_version,
                        payload.source_hash,
                        payload.written_at.isoformat(),
                    ),
                )
        except sqlite3.Error as e:
            raise CacheStorageError("write", self._db_path, e) from e

    async def delete(self, key: str) -> None:
        """Remove a payload."""
        with self._conn:
            self._conn.execute(
                "DELETE FROM cache_payloads WHERE namespace = ? AND key = ?",
                (self._namespace, key),
            )

    async def list_keys(self) -> list[str]:
        """List all keys of this namespace."""
        cursor = self._conn.execute(
            "SELECT key FROM cache_payloads WHERE namespace = ? ORDER BY key",
            (self._namespace,),
        )
        return [row[0] for row in cursor.fetchall()]

    async def clear(self) -> None:
        """Remove every payload of this namespace in one transaction."""
        try:
            with self._conn:
                self._conn.execute(
                    "DELETE FROM cache_payloads WHERE namespace = ?", (self._namespace,)
                )
        except sqlite3.Error as e:
            raise CacheStorageError("clear", self._db_path, e) from e

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()
