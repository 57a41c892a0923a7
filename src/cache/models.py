# src/cache/models.py — v2
"""Cache domain models: ManifestEntry, ManifestDocument, CachePayload."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

MANIFEST_FORMAT_VERSION = 1


class ManifestEntry(BaseModel):
    """Last-known state of one tracked source."""

    model_config = ConfigDict(frozen=True)

    path: str
    content_hash: str
    extractor_version: str
    extracted_at: datetime


class ManifestDocument(BaseModel):
    """On-disk shape of the manifest file."""

    format_version: int = MANIFEST_FORMAT_VERSION
    entries: dict[str, ManifestEntry] = Field(default_factory=dict)


class CachePayload(BaseModel):
    """One domain's cached extraction output for one source."""

    domain: str
    schema_version: str
    source_path: str
    source_hash: str
    extractor_version: str
    written_at: datetime
    data: dict[str, Any]
