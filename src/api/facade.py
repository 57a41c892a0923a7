# src/api/facade.py — v3
"""Public API facade — single entry point for reading health facts.

Usage:
    from healthfacts.api.facade import HealthDataStore
    store = HealthDataStore(settings)
    events = await store.get_events(EventQuery.create(domains=["biomarker"]))
    await store.sync()

Every read goes through the per-domain typed caches: a source is only
re-extracted when the manifest reports it new, changed, gone, or written by
another extractor version. ``sync`` is the external invalidation trigger.

Error policy: unreadable sources are logged and contribute no data; cache
persistence failures (``CacheStorageError``) propagate to the caller.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, TypeVar

from pydantic import BaseModel

from healthfacts.api.models import DataTimestamps, HealthSnapshot, SyncResult
from healthfacts.batch.models import DataFile
from healthfacts.batch.scanner import SourceScanner
from healthfacts.cache.cache_factory import create_cache_store
from healthfacts.cache.manifest import CacheManifest
from healthfacts.cache.typed_cache import TypedCache
from healthfacts.config.settings import Settings
from healthfacts.core.errors import IoError
from healthfacts.core.models import (
    ActivityLog,
    BiomarkerExtraction,
    BiomarkerReading,
    BodyCompositionResult,
    HealthEvent,
)
from healthfacts.events.normalizer import build_events
from healthfacts.events.query import EventQuery, query_events
from healthfacts.events.thresholds import EventThresholds
from healthfacts.extraction.activity_parser import (
    ACTIVITY_SCHEMA_VERSION,
    parse_activity_file,
    parse_activity_folder,
)
from healthfacts.extraction.biomarker_extractor import BiomarkerExtractor, merge_readings
from healthfacts.extraction.body_comp_extractor import BodyCompExtractor
from healthfacts.extraction.extractor_factory import create_extractor
from healthfacts.extraction.text_loader import load_text
from healthfacts.logging.context import clear_context, set_domain_context, set_source_context
from healthfacts.longevity.phenoage import calculate_phenoage, inputs_from_readings

if TYPE_CHECKING:
    from healthfacts.cache.base_cache_store import BaseCacheStore
    from healthfacts.extraction.text_loader import TextDecoder

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


class HealthDataStore:
    """Composes manifest, typed caches and extraction engines."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        decoder: TextDecoder | None = None,
        manifest: CacheManifest | None = None,
        stores: dict[str, BaseCacheStore] | None = None,
    ) -> None:
        self._settings = settings or Settings()
        self._decoder = decoder
        self._manifest = manifest or CacheManifest(
            self._settings.manifest_path, self._settings.extractor_version,
        )
        stores = stores or {}

        def store_for(domain: str) -> BaseCacheStore:
            return stores.get(domain) or create_cache_store(self._settings, namespace=domain)

        self._biomarker_engine: BiomarkerExtractor = create_extractor("biomarker", self._settings)
        self._body_comp_engine: BodyCompExtractor = create_extractor("body_comp", self._settings)
        self._biomarker_cache = TypedCache(
            "biomarker", BiomarkerExtraction, store_for("biomarker"),
            self._manifest, self._biomarker_engine.version,
        )
        self._body_comp_cache = TypedCache(
            "body_comp", BodyCompositionResult, store_for("body_comp"),
            self._manifest, self._body_comp_engine.version,
        )
        self._activity_cache = TypedCache(
            "activity", ActivityLog, store_for("activity"),
            self._manifest, ACTIVITY_SCHEMA_VERSION,
        )
        self._scanner = SourceScanner(settings=self._settings)

    @property
    def manifest(self) -> CacheManifest:
        return self._manifest

    @property
    def settings(self) -> Settings:
        return self._settings

    # --- Domain reads ---

    async def get_biomarker_reports(self) -> list[BiomarkerExtraction]:
        """One extraction per bloodwork report, in file-name order."""
        files = self._scanner.scan().bloodwork
        results = await asyncio.gather(*(
            self._load(self._biomarker_cache, f.path, self._extract_biomarkers) for f in files
        ))
        return [r for r in results if r is not None]

    async def get_biomarkers(self) -> dict[str, BiomarkerReading]:
        """Readings merged across reports, most recent collection winning."""
        return merge_readings(await self.get_biomarker_reports())

    async def get_body_composition(self) -> BodyCompositionResult | None:
        """The most recent non-empty scan (by scan date, then file order)."""
        files = self._scanner.scan().body_scans
        results = await asyncio.gather(*(
            self._load(self._body_comp_cache, f.path, self._extract_body_comp) for f in files
        ))
        scans = [r for r in results if r is not None and not r.is_empty]
        if not scans:
            return None
        ordered = sorted(
            enumerate(scans),
            key=lambda item: (item[1].scan_date is not None, item[1].scan_date or datetime.min.date(), item[0]),
        )
        return ordered[-1][1]

    async def get_activity(self) -> ActivityLog | None:
        """The first activity export that holds any entries."""
        for export in self._scanner.scan().activity:
            log = await self._load(
                self._activity_cache, export.path, self._activity_extractor(export),
            )
            if log is not None and log.entries:
                return log
        return None

    async def snapshot(self) -> HealthSnapshot:
        """Current state of every domain plus derived PhenoAge."""
        reports, body_comp, activity = await asyncio.gather(
            self.get_biomarker_reports(), self.get_body_composition(), self.get_activity(),
        )
        biomarkers = merge_readings(reports)
        ages = [r.patient_age for r in reports if r.patient_age is not None]
        patient_age = ages[-1] if ages else None
        phenoage = None
        if patient_age is not None:
            phenoage = calculate_phenoage(
                inputs_from_readings(biomarkers), patient_age,
            )
        return HealthSnapshot(
            biomarkers=biomarkers,
            patient_age=patient_age,
            body_comp=body_comp,
            activity=activity,
            phenoage=phenoage,
            timestamps=DataTimestamps(
                bloodwork=self._bloodwork_time(reports),
                body_comp=_modified_at(body_comp.source) if body_comp and body_comp.source else None,
                activity=_modified_at(activity.source) if activity and activity.source else None,
            ),
        )

    async def get_events(self, query: EventQuery | None = None) -> list[HealthEvent]:
        """Event feed regenerated from current (possibly cached) extraction results."""
        query = query or EventQuery.create(
            default_limit=self._settings.event_default_limit,
            max_limit=self._settings.event_max_limit,
        )
        state = await self.snapshot()
        events = build_events(
            state.biomarkers,
            state.body_comp,
            state.activity,
            phenoage=state.phenoage,
            chronological_age=state.patient_age,
            bloodwork_at=state.timestamps.bloodwork,
            body_comp_at=None if state.body_comp and state.body_comp.scan_date else state.timestamps.body_comp,
            activity_source=state.activity.tracker if state.activity else "activity",
            thresholds=EventThresholds.from_settings(self._settings),
        )
        return query_events(events, query)

    # --- Invalidation ---

    async def sync(self) -> SyncResult:
        """Drop the manifest and every cached payload; next reads re-extract.

        Raises:
            CacheStorageError: If the cleared state cannot be persisted.
        """
        await self._manifest.clear_all()
        await asyncio.gather(
            self._biomarker_cache.clear_all(),
            self._body_comp_cache.clear_all(),
            self._activity_cache.clear_all(),
        )
        logger.info("Sync: caches cleared (generation %d)", self._manifest.generation)
        return SyncResult(generation=self._manifest.generation, cleared_at=datetime.now(timezone.utc))

    # --- Internals ---

    async def _load(
        self,
        cache: TypedCache[T],
        path: str,
        extract: Callable[[str], Awaitable[T]],
    ) -> T | None:
        set_source_context(path, self._manifest.generation)
        set_domain_context(cache.domain)
        try:
            if not self._settings.cache_enabled:
                return await extract(path)
            return await cache.get_or_extract(path, extract)
        except IoError as e:
            logger.warning("Skipping unreadable %s source %s: %s", cache.domain, path, e)
            return None
        finally:
            clear_context()

    async def _extract_biomarkers(self, path: str) -> BiomarkerExtraction:
        text = await asyncio.to_thread(load_text, path, self._decoder)
        return await asyncio.to_thread(self._biomarker_engine.extract_result, text, path)

    async def _extract_body_comp(self, path: str) -> BodyCompositionResult:
        text = await asyncio.to_thread(load_text, path, self._decoder)
        return await asyncio.to_thread(self._body_comp_engine.extract_result, text, path)

    def _activity_extractor(self, export: DataFile) -> Callable[[str], Awaitable[ActivityLog]]:
        parse = parse_activity_folder if export.is_folder else parse_activity_file

        async def extract(path: str) -> ActivityLog:
            return await asyncio.to_thread(parse, path, export.tracker)
        return extract

    @staticmethod
    def _bloodwork_time(reports: list[BiomarkerExtraction]) -> datetime | None:
        collected = [r.collected_at for r in reports if r.collected_at is not None]
        if collected:
            return max(collected)
        modified = [_modified_at(r.source) for r in reports if r.source]
        known = [m for m in modified if m is not None]
        return max(known) if known else None


def _modified_at(path: str) -> datetime | None:
    try:
        return datetime.fromtimestamp(Path(path).stat().st_mtime, tz=timezone.utc)
    except OSError:
        return None
