# src/core/models.py — v2
"""Shared Pydantic domain models used across modules.

No module redefines these types — all imports come from core.models.
"""

from __future__ import annotations

import math
from datetime import date, datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

HealthEventDomain = Literal["biomarker", "activity", "body_comp", "longevity", "system"]
HealthEventSeverity = Literal["info", "warning", "critical"]
HealthEventValue = float | str | None

DOMAINS: tuple[str, ...] = ("biomarker", "activity", "body_comp", "longevity", "system")
SEVERITIES: tuple[str, ...] = ("info", "warning", "critical")


# === SOURCE IDENTITY ===


class SourceFile(BaseModel):
    """A hashed source file or folder. A changed file is a new SourceFile."""

    model_config = ConfigDict(frozen=True)

    path: str
    content_hash: str
    size_bytes: int = 0
    modified_at: datetime | None = None
    is_folder: bool = False


# === BIOMARKERS ===


class BiomarkerReading(BaseModel):
    """One normalized biomarker value recovered from report text."""

    key: str
    display_name: str
    value: float
    unit: str = ""
    reference_low: float | None = None
    reference_high: float | None = None
    confidence: float = Field(ge=0.0, le=1.0)
    raw_match: str = ""
    source: str | None = None
    collected_at: datetime | None = None

    @field_validator("value")
    @classmethod
    def validate_finite(cls, v: float) -> float:  # noqa: N805
        if not math.isfinite(v):
            raise ValueError("biomarker value must be finite")
        return v

    @property
    def has_reference_range(self) -> bool:
        return self.reference_low is not None or self.reference_high is not None


class BiomarkerExtraction(BaseModel):
    """Everything recovered from one lab report."""

    readings: dict[str, BiomarkerReading] = Field(default_factory=dict)
    patient_age: int | None = None
    collected_at: datetime | None = None
    source: str | None = None

    def values(self) -> dict[str, float]:
        """Flat ``key -> value`` view used by calculators."""
        return {key: reading.value for key, reading in self.readings.items()}


# === BODY COMPOSITION ===


class BodyCompositionEntry(BaseModel):
    """One segmental or aggregate composition metric from a scan."""

    key: str
    region: str
    measure: str
    value: float
    unit: str = ""
    confidence: float = Field(ge=0.0, le=1.0)
    raw_match: str = ""
    source: str | None = None

    @field_validator("value")
    @classmethod
    def validate_finite(cls, v: float) -> float:  # noqa: N805
        if not math.isfinite(v):
            raise ValueError("composition value must be finite")
        return v


class BodyCompositionResult(BaseModel):
    """Composition metrics of one scan, grouped by body region."""

    regions: dict[str, list[BodyCompositionEntry]] = Field(default_factory=dict)
    scan_date: date | None = None
    source: str | None = None

    def entries(self) -> list[BodyCompositionEntry]:
        return [entry for group in self.regions.values() for entry in group]

    def get(self, key: str) -> BodyCompositionEntry | None:
        for entry in self.entries():
            if entry.key == key:
                return entry
        return None

    def value(self, key: str) -> float | None:
        entry = self.get(key)
        return entry.value if entry is not None else None

    @property
    def is_empty(self) -> bool:
        return not any(self.regions.values())


# === ACTIVITY ===


class ActivityEntry(BaseModel):
    """One day of wearable recovery data."""

    day: date
    hrv: float = 0.0
    rhr: float = 0.0
    sleep_hours: float = 0.0
    recovery: float | None = None
    sleep_score: float | None = None
    strain: float | None = None
    steps: int | None = None

    @property
    def has_signals(self) -> bool:
        return self.hrv > 0 or self.rhr > 0 or self.sleep_hours > 0


class ActivityLog(BaseModel):
    """Parsed activity export (cached per export folder)."""

    tracker: str = "unknown"
    entries: list[ActivityEntry] = Field(default_factory=list)
    source: str | None = None


# === EVENTS ===


class HealthEvent(BaseModel):
    """Unified feed record derived from extraction results."""

    id: str
    domain: HealthEventDomain
    severity: HealthEventSeverity
    source: str
    metric: str
    summary: str
    value: HealthEventValue = None
    unit: str | None = None
    status: str | None = None
    occurred_at: datetime
    recorded_at: datetime
    confidence: float = Field(ge=0.0, le=1.0)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def validate_timestamps(self) -> HealthEvent:
        if self.recorded_at < self.occurred_at:
            raise ValueError("recorded_at must not precede occurred_at")
        return self
