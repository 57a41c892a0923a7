# src/events/thresholds.py — v1
"""Severity thresholds used by the event normalizer."""

from __future__ import annotations

from typing import TYPE_CHECKING, Literal

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from healthfacts.config.settings import Settings

RiskDirection = Literal["higher_is_risk", "lower_is_risk"]


class MetricThreshold(BaseModel):
    """Fixed warning/critical cut-offs for one composition metric."""

    key: str
    label: str
    unit: str = ""
    warning: float
    critical: float
    direction: RiskDirection

    def severity(self, value: float) -> str:
        if self.direction == "higher_is_risk":
            if value >= self.critical:
                return "critical"
            if value >= self.warning:
                return "warning"
        else:
            if value <= self.critical:
                return "critical"
            if value <= self.warning:
                return "warning"
        return "info"


DEFAULT_BODY_COMP_THRESHOLDS: tuple[MetricThreshold, ...] = (
    MetricThreshold(key="bodyFatPercent", label="Body Fat", unit="%",
                    warning=20, critical=25, direction="higher_is_risk"),
    MetricThreshold(key="vatMass", label="Visceral Fat", unit="lbs",
                    warning=1.0, critical=1.5, direction="higher_is_risk"),
    MetricThreshold(key="leanMass", label="Lean Mass", unit="lbs",
                    warning=120, critical=100, direction="lower_is_risk"),
    MetricThreshold(key="boneDensityTScore", label="Bone Density T-Score", unit="",
                    warning=-1, critical=-2.5, direction="lower_is_risk"),
)


class ActivityThresholds(BaseModel):
    """Daily recovery snapshot limits; any one breach sets the severity."""

    critical_hrv: float = 25
    critical_sleep_hours: float = 5
    critical_recovery: float = 40
    warning_hrv: float = 35
    warning_sleep_hours: float = 6
    warning_recovery: float = 60


class EventThresholds(BaseModel):
    include_info: bool = True
    critical_range_fraction: float = Field(default=0.5, gt=0)
    activity_days: int = Field(default=14, ge=0)
    body_comp: tuple[MetricThreshold, ...] = DEFAULT_BODY_COMP_THRESHOLDS
    activity: ActivityThresholds = Field(default_factory=ActivityThresholds)
    phenoage_warning_delta: float = 2.0
    phenoage_critical_delta: float = 5.0

    @classmethod
    def from_settings(cls, settings: Settings) -> EventThresholds:
        return cls(
            include_info=settings.event_include_info,
            critical_range_fraction=settings.critical_range_fraction,
            activity_days=settings.activity_event_days,
        )
