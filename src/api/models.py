# src/api/models.py — v2
"""API-level models: DataTimestamps, HealthSnapshot, SyncResult."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from healthfacts.core.models import ActivityLog, BiomarkerReading, BodyCompositionResult
from healthfacts.longevity.phenoage import PhenoAgeResult


class DataTimestamps(BaseModel):
    """When each domain's underlying measurement was taken (best known)."""

    bloodwork: datetime | None = None
    body_comp: datetime | None = None
    activity: datetime | None = None


class HealthSnapshot(BaseModel):
    """Current extraction state across all domains; input to the event feed."""

    biomarkers: dict[str, BiomarkerReading] = Field(default_factory=dict)
    patient_age: int | None = None
    body_comp: BodyCompositionResult | None = None
    activity: ActivityLog | None = None
    phenoage: PhenoAgeResult | None = None
    timestamps: DataTimestamps = Field(default_factory=DataTimestamps)


class SyncResult(BaseModel):
    """Outcome of a cache invalidation."""

    generation: int
    cleared_at: datetime
