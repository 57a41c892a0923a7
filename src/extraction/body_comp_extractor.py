# src/extraction/body_comp_extractor.py — v2
"""Body-composition engine: DEXA / scan report text -> region-grouped metrics.

Same scorer as the biomarker engine, over ``BODY_COMP_METRICS``. Negative
values only survive for metrics whose plausible range admits them
(T-score, Z-score).
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from healthfacts.core.errors import ExtractionMiss
from healthfacts.core.models import BodyCompositionEntry, BodyCompositionResult
from healthfacts.extraction.base_extractor import BaseExtractor
from healthfacts.extraction.dates import SCAN_LABELS, find_labelled_date
from healthfacts.extraction.registry import BODY_COMP_METRICS, BODY_REGIONS, MetricSpec
from healthfacts.extraction.scorer import select_best

logger = logging.getLogger(__name__)

BODY_COMP_SCHEMA_VERSION = "body_comp-2"


class BodyCompExtractor(BaseExtractor[BodyCompositionResult]):
    """Extract composition metrics and group them by body region."""

    @property
    def domain(self) -> str:
        return "body_comp"

    @property
    def version(self) -> str:
        return BODY_COMP_SCHEMA_VERSION

    @property
    def specs(self) -> Sequence[MetricSpec]:
        return BODY_COMP_METRICS

    def extract(self, text: str, source: str | None = None) -> BodyCompositionResult:
        if not isinstance(text, str) or not text.strip():
            return BodyCompositionResult(source=source)

        layout = self.layout(text)
        regions: dict[str, list[BodyCompositionEntry]] = {}
        for spec in self.specs:
            try:
                selection = select_best(layout, spec, self._window, self._weights)
            except ExtractionMiss as e:
                logger.debug("Omitting %s: %s", e.key, e.reason)
                continue
            if selection is None or selection.confidence < self._min_confidence:
                continue
            entry = BodyCompositionEntry(
                key=spec.key,
                region=spec.region or "total",
                measure=spec.measure or spec.key,
                value=selection.value,
                unit=selection.unit,
                confidence=selection.confidence,
                raw_match=selection.raw_match,
                source=source,
            )
            regions.setdefault(entry.region, []).append(entry)

        ordered = {region: regions[region] for region in BODY_REGIONS if region in regions}
        result = BodyCompositionResult(
            regions=ordered,
            scan_date=find_labelled_date(text, SCAN_LABELS),
            source=source,
        )
        logger.debug(
            "Extracted %d composition metrics from %s", len(result.entries()), source or "<text>",
        )
        return result

    def extract_result(self, text: str, source: str | None = None) -> BodyCompositionResult:
        return self.extract(text, source)
