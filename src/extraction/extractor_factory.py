# src/extraction/extractor_factory.py — v3
"""Factory: instantiate an extraction engine from its domain name."""

from __future__ import annotations

from typing import TYPE_CHECKING

from healthfacts.extraction.base_extractor import BaseExtractor
from healthfacts.extraction.biomarker_extractor import BiomarkerExtractor
from healthfacts.extraction.body_comp_extractor import BodyCompExtractor
from healthfacts.extraction.scorer import ScoringWeights

if TYPE_CHECKING:
    from healthfacts.config.settings import Settings

# Registry maps domain -> engine class.
_EXTRACTOR_REGISTRY: dict[str, type[BaseExtractor]] = {
    "biomarker": BiomarkerExtractor,
    "body_comp": BodyCompExtractor,
}


class UnsupportedDomainError(ValueError):
    """Raised when no engine is registered for a domain."""


def create_extractor(
    domain: str,
    settings: Settings | None = None,
    weights: ScoringWeights | None = None,
) -> BaseExtractor:
    """Create the engine for ``domain``, tuned from settings when given.

    Raises:
        UnsupportedDomainError: If no engine is registered.
    """
    cls = _EXTRACTOR_REGISTRY.get(domain)
    if cls is None:
        raise UnsupportedDomainError(
            f"No extractor for domain {domain!r}. "
            f"Supported: {', '.join(sorted(_EXTRACTOR_REGISTRY))}"
        )
    if settings is None:
        return cls(weights=weights)
    return cls(
        window=settings.extraction_window_lines,
        weights=weights,
        min_confidence=settings.min_confidence,
    )


def supported_domains() -> list[str]:
    return sorted(_EXTRACTOR_REGISTRY)
