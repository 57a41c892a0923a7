# src/core/errors.py — v1
"""Domain-specific error types for the extraction and caching pipeline.

Only storage failures (``CacheStorageError``) are meant to reach callers.
The other types are raised and handled inside the pipeline: unreadable
sources degrade to "no data", misses are omitted, schema mismatches become
cache invalidations, and bad query parameters are rejected at the event
query boundary.
"""

from __future__ import annotations

from pathlib import Path


class HealthFactsError(Exception):
    """Base exception for all healthfacts errors."""


class IoError(HealthFactsError):
    """Raised when a source file or folder exists but cannot be read."""

    def __init__(self, message: str, path: str | Path | None = None, cause: Exception | None = None):
        super().__init__(message)
        self.path = str(path) if path is not None else None
        self.cause = cause


class ExtractionMiss(HealthFactsError):
    """An alias matched but no plausible value was found in its window."""

    def __init__(self, key: str, reason: str):
        super().__init__(f"{key}: {reason}")
        self.key = key
        self.reason = reason


class SchemaVersionMismatch(HealthFactsError):
    """A cached payload was written with another schema version."""

    def __init__(self, domain: str, found: str, expected: str):
        super().__init__(
            f"{domain} cache payload has schema {found!r}, expected {expected!r}"
        )
        self.domain = domain
        self.found = found
        self.expected = expected


class InvalidQueryParameter(HealthFactsError, ValueError):
    """An event feed query parameter is out of bounds or unknown."""

    def __init__(self, parameter: str, value: object, reason: str):
        super().__init__(f"Invalid {parameter}={value!r}: {reason}")
        self.parameter = parameter
        self.value = value
        self.reason = reason


class CacheStorageError(HealthFactsError):
    """The manifest or a cache payload could not be persisted or loaded."""

    def __init__(self, operation: str, location: str | Path, cause: Exception | None = None):
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Cache {operation} failed at {location}{detail}")
        self.operation = operation
        self.location = str(location)
        self.cause = cause
