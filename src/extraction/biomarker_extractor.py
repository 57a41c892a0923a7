# src/extraction/biomarker_extractor.py — v4
"""Biomarker extraction engine: lab-report text -> canonical readings.

Each registry key is resolved independently with the shared scorer. A key
whose alias is present but whose window holds no plausible value is left
out of the result; nothing is ever stored with a guessed value.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Sequence
from datetime import datetime, time, timezone

from healthfacts.core.errors import ExtractionMiss
from healthfacts.core.models import BiomarkerExtraction, BiomarkerReading
from healthfacts.extraction.base_extractor import BaseExtractor
from healthfacts.extraction.dates import BLOODWORK_LABELS, find_labelled_date
from healthfacts.extraction.registry import BIOMARKERS, MetricSpec
from healthfacts.extraction.scorer import Selection, select_best

logger = logging.getLogger(__name__)

BIOMARKER_SCHEMA_VERSION = "biomarker-3"

_AGE_PATTERNS = (
    re.compile(r"\(\s*(\d{1,3})\s*Y(?:rs?)?\s*/\s*[MF]\s*\)", re.IGNORECASE),
    re.compile(r"\bage\s*[:\-]?\s*(\d{1,3})\s*(?:years|yrs|y)\b", re.IGNORECASE),
    re.compile(r"\bage\s*[:\-]\s*(\d{1,3})\b", re.IGNORECASE),
)


class BiomarkerExtractor(BaseExtractor[BiomarkerExtraction]):
    """Extract biomarker readings from flattened lab-report text."""

    @property
    def domain(self) -> str:
        return "biomarker"

    @property
    def version(self) -> str:
        return BIOMARKER_SCHEMA_VERSION

    @property
    def specs(self) -> Sequence[MetricSpec]:
        return BIOMARKERS

    def extract(self, text: str, source: str | None = None) -> dict[str, BiomarkerReading]:
        """Canonical key -> reading. Empty or unparsable text yields ``{}``."""
        if not isinstance(text, str) or not text.strip():
            return {}
        layout = self.layout(text)
        readings: dict[str, BiomarkerReading] = {}
        for spec in self.specs:
            try:
                selection = select_best(layout, spec, self._window, self._weights)
            except ExtractionMiss as e:
                logger.debug("Omitting %s: %s", e.key, e.reason)
                continue
            if selection is None:
                continue
            if selection.confidence < self._min_confidence:
                logger.debug(
                    "Omitting %s: confidence %.3f below %.3f",
                    spec.key, selection.confidence, self._min_confidence,
                )
                continue
            readings[spec.key] = _to_reading(selection, source)
        logger.debug("Extracted %d biomarkers from %s", len(readings), source or "<text>")
        return readings

    def extract_result(self, text: str, source: str | None = None) -> BiomarkerExtraction:
        """Readings plus report metadata (patient age, collection date)."""
        readings = self.extract(text, source)
        collected = None
        if isinstance(text, str):
            found = find_labelled_date(text, BLOODWORK_LABELS)
            if found is not None:
                collected = datetime.combine(found, time.min, tzinfo=timezone.utc)
        if collected is not None:
            readings = {k: r.model_copy(update={"collected_at": collected}) for k, r in readings.items()}
        return BiomarkerExtraction(
            readings=readings,
            patient_age=extract_patient_age(text) if isinstance(text, str) else None,
            collected_at=collected,
            source=source,
        )


def _to_reading(selection: Selection, source: str | None) -> BiomarkerReading:
    spec = selection.spec
    low, high = (None, None)
    if selection.reference is not None:
        low, high = selection.reference.low, selection.reference.high
    return BiomarkerReading(
        key=spec.key,
        display_name=spec.display_name,
        value=selection.value,
        unit=selection.unit,
        reference_low=low,
        reference_high=high,
        confidence=selection.confidence,
        raw_match=selection.raw_match,
        source=source,
    )


def extract_patient_age(text: str) -> int | None:
    """Patient age in years from a report header, e.g. ``Mangesh Raut(26Y/M)`` or ``Age: 26``."""
    for pattern in _AGE_PATTERNS:
        m = pattern.search(text)
        if m:
            age = int(m.group(1))
            if 0 < age < 130:
                return age
    return None


def merge_readings(runs: Iterable[BiomarkerExtraction]) -> dict[str, BiomarkerReading]:
    """Combine several reports; the most recently collected reading of each key wins.

    Reports without a collection date sort before dated ones. Equal dates
    fall back to the order of ``runs``: the later run wins.
    """
    ordered = sorted(
        enumerate(runs),
        key=lambda item: (
            item[1].collected_at is not None,
            item[1].collected_at or datetime.min.replace(tzinfo=timezone.utc),
            item[0],
        ),
    )
    merged: dict[str, BiomarkerReading] = {}
    for _, run in ordered:
        merged.update(run.readings)
    return merged
