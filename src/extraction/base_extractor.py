# src/extraction/base_extractor.py — v2
"""Abstract extraction engine interface.

An engine turns one decoded text blob into a domain result. Engines are
pure and synchronous (CPU only); callers that run on an event loop push
them to a worker thread.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Generic, TypeVar

from pydantic import BaseModel

from healthfacts.extraction.registry import MetricSpec
from healthfacts.extraction.scorer import ScoringWeights, TextLayout

T = TypeVar("T", bound=BaseModel)

DEFAULT_WINDOW_LINES = 4


class BaseExtractor(ABC, Generic[T]):
    """Window-and-score engine over a static metric table."""

    def __init__(
        self,
        window: int = DEFAULT_WINDOW_LINES,
        weights: ScoringWeights | None = None,
        min_confidence: float = 0.0,
    ) -> None:
        if window < 1:
            raise ValueError(f"window must be >= 1, got {window}")
        self._window = window
        self._weights = weights or ScoringWeights()
        self._min_confidence = min_confidence

    @property
    @abstractmethod
    def domain(self) -> str:
        """Cache domain this engine feeds (e.g. 'biomarker')."""

    @property
    @abstractmethod
    def version(self) -> str:
        """Schema tag of the result shape; bump when the output model changes."""

    @property
    @abstractmethod
    def specs(self) -> Sequence[MetricSpec]:
        """Metric table scanned by this engine."""

    @abstractmethod
    def extract_result(self, text: str, source: str | None = None) -> T:
        """Extract the cacheable domain result from decoded text. Never raises on bad input."""

    @property
    def window(self) -> int:
        return self._window

    def layout(self, text: str) -> TextLayout:
        return TextLayout.from_text(text, self.specs)
