# src/events/normalizer.py — v3
"""Extraction results -> unified HealthEvent feed.

Pure: no I/O, no clock reads unless ``recorded_at`` is omitted. Events are
rebuilt from the current extraction state on every query, most recent
``occurred_at`` first (stable on ties).
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from datetime import date, datetime, time, timezone

from healthfacts.core.models import (
    ActivityEntry,
    ActivityLog,
    BiomarkerReading,
    BodyCompositionResult,
    HealthEvent,
)
from healthfacts.events.thresholds import EventThresholds
from healthfacts.extraction.registry import get_spec
from healthfacts.longevity.phenoage import PhenoAgeResult

logger = logging.getLogger(__name__)


def classify_biomarker(
    value: float,
    low: float | None,
    high: float | None,
    critical_range_fraction: float = 0.5,
) -> tuple[str, str]:
    """Severity and status of a value against a reference range.

    Inside the range (bounds inclusive) is ``info``. Outside by less than
    ``critical_range_fraction`` of the range width is ``warning``; at or
    beyond that distance it is ``critical``. One-sided ranges use the bound
    itself as the width.

    Returns:
        ``(severity, status)`` with status one of ``in_range``, ``low``,
        ``high``, ``unknown``.
    """
    if low is None and high is None:
        return "info", "unknown"
    if low is not None and value < low:
        distance, status = low - value, "low"
    elif high is not None and value > high:
        distance, status = value - high, "high"
    else:
        return "info", "in_range"

    if low is not None and high is not None and high > low:
        width = high - low
    else:
        width = abs(high if high is not None else low) or 1.0
    if distance >= critical_range_fraction * width:
        return "critical", status
    return "warning", status


def _reference_for(reading: BiomarkerReading) -> tuple[float | None, float | None]:
    if reading.has_reference_range:
        return reading.reference_low, reading.reference_high
    spec = get_spec(reading.key)
    if spec is None or spec.reference_range is None:
        return None, None
    # Registry ranges are expressed in the metric's default unit.
    if not reading.unit or reading.unit == spec.default_unit:
        return spec.reference_range
    return None, None


def _status_text(status: str) -> str:
    return {
        "in_range": "in range",
        "low": "below range",
        "high": "above range",
        "unknown": "recorded",
    }[status]


def _at_midnight(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def _utc(moment: datetime) -> datetime:
    return moment if moment.tzinfo is not None else moment.replace(tzinfo=timezone.utc)


def _iso(moment: datetime) -> str:
    return moment.isoformat().replace("+00:00", "Z")


def _number_text(value: float) -> str:
    return f"{value:g}"


def build_events(
    biomarkers: Mapping[str, BiomarkerReading] | None,
    body_comp: BodyCompositionResult | None,
    activity: ActivityLog | Sequence[ActivityEntry] | None,
    *,
    phenoage: PhenoAgeResult | None = None,
    chronological_age: float | None = None,
    bloodwork_at: datetime | None = None,
    body_comp_at: datetime | None = None,
    activity_source: str = "activity",
    recorded_at: datetime | None = None,
    thresholds: EventThresholds | None = None,
) -> list[HealthEvent]:
    """Derive the event feed from current extraction results.

    Args:
        biomarkers: Canonical key -> reading (already merged across reports).
        body_comp: Latest composition scan, if any.
        activity: Activity log or entries, oldest first.
        phenoage: Biological-age result; needs ``chronological_age``.
        bloodwork_at: When the bloodwork was collected.
        body_comp_at: When the scan was taken (defaults to its scan date).
        activity_source: Tracker name used as the activity event source.
        recorded_at: Observation time; defaults to now (UTC).
        thresholds: Severity settings.
    """
    thresholds = thresholds or EventThresholds()
    recorded = _utc(recorded_at) if recorded_at else datetime.now(timezone.utc)
    recorded_iso = _iso(recorded)

    def clamp(moment: datetime | None) -> datetime:
        if moment is None:
            return recorded
        return min(_utc(moment), recorded)

    bloodwork_time = clamp(bloodwork_at)
    if body_comp_at is None and body_comp is not None and body_comp.scan_date is not None:
        body_comp_at = _at_midnight(body_comp.scan_date)
    body_comp_time = clamp(body_comp_at)

    events: list[HealthEvent] = []

    # Biomarkers
    for index, (key, reading) in enumerate((biomarkers or {}).items()):
        low, high = _reference_for(reading)
        severity, status = classify_biomarker(
            reading.value, low, high, thresholds.critical_range_fraction,
        )
        if severity == "info" and not thresholds.include_info:
            continue
        spec = get_spec(key)
        occurred = clamp(reading.collected_at) if reading.collected_at else bloodwork_time
        unit_suffix = f" {reading.unit}" if reading.unit else ""
        events.append(HealthEvent(
            id=f"biomarker:{key}:{index}:{_iso(occurred)}",
            domain="biomarker",
            severity=severity,
            source="bloodwork",
            metric=reading.display_name,
            summary=(
                f"{reading.display_name} is {_status_text(status)} at "
                f"{_number_text(reading.value)}{unit_suffix}"
            ),
            value=reading.value,
            unit=reading.unit or None,
            status=status,
            occurred_at=occurred,
            recorded_at=recorded,
            confidence=reading.confidence,
            metadata={
                "category": spec.category if spec else "unknown",
                "reference_low": low,
                "reference_high": high,
            },
        ))

    # Body composition
    if body_comp is not None:
        for index, metric in enumerate(thresholds.body_comp):
            entry = body_comp.get(metric.key)
            if entry is None:
                continue
            unit = entry.unit or metric.unit
            events.append(HealthEvent(
                id=f"body_comp:{metric.key}:{index}:{_iso(body_comp_time)}",
                domain="body_comp",
                severity=metric.severity(entry.value),
                source="dexa",
                metric=metric.label,
                summary=f"{metric.label} measured at {_number_text(entry.value)}{f' {unit}' if unit else ''}",
                value=entry.value,
                unit=unit or None,
                occurred_at=body_comp_time,
                recorded_at=recorded,
                confidence=entry.confidence,
                metadata={"region": entry.region},
            ))

    # Activity: most recent days only
    entries = activity.entries if isinstance(activity, ActivityLog) else list(activity or [])
    limits = thresholds.activity
    recent = entries[-thresholds.activity_days:] if thresholds.activity_days else []
    for index, entry in enumerate(recent):
        if not entry.has_signals:
            continue
        recovery = entry.recovery
        if (
            entry.hrv < limits.critical_hrv
            or entry.sleep_hours < limits.critical_sleep_hours
            or (recovery is not None and recovery < limits.critical_recovery)
        ):
            severity = "critical"
        elif (
            entry.hrv < limits.warning_hrv
            or entry.sleep_hours < limits.warning_sleep_hours
            or (recovery is not None and recovery < limits.warning_recovery)
        ):
            severity = "warning"
        else:
            severity = "info"
        occurred = clamp(_at_midnight(entry.day))
        events.append(HealthEvent(
            id=f"activity:{entry.day.isoformat()}:{index}:{recorded_iso}",
            domain="activity",
            severity=severity,
            source=activity_source,
            metric="Daily Recovery Snapshot",
            summary=(
                f"HRV {_number_text(entry.hrv)} ms, RHR {_number_text(entry.rhr)} bpm, "
                f"Sleep {entry.sleep_hours:.1f}h"
            ),
            value=recovery if recovery is not None else entry.sleep_score,
            unit="%",
            occurred_at=occurred,
            recorded_at=recorded,
            confidence=0.88,
            metadata={"strain": entry.strain, "steps": entry.steps},
        ))

    # Longevity
    if phenoage is not None and chronological_age is not None:
        delta = phenoage.delta
        if delta > thresholds.phenoage_critical_delta:
            severity = "critical"
        elif delta > thresholds.phenoage_warning_delta:
            severity = "warning"
        else:
            severity = "info"
        events.append(HealthEvent(
            id=f"longevity:phenoage:{recorded_iso}",
            domain="longevity",
            severity=severity,
            source="bloodwork",
            metric="Biological Age Delta",
            summary=(
                f"PhenoAge {phenoage.pheno_age:.1f}y vs chronological "
                f"{_number_text(chronological_age)}y ({'+' if delta > 0 else ''}{delta:.1f}y)"
            ),
            value=delta,
            unit="years",
            occurred_at=bloodwork_time,
            recorded_at=recorded,
            confidence=0.97,
        ))

    has_data = bool(biomarkers) or (body_comp is not None and not body_comp.is_empty) or bool(entries)
    if not events and not has_data:
        events.append(HealthEvent(
            id=f"system:no_data:{recorded_iso}",
            domain="system",
            severity="warning",
            source="system",
            metric="Data Ingestion",
            summary="No health data detected yet. Add files or connect a data source.",
            value=None,
            occurred_at=recorded,
            recorded_at=recorded,
            confidence=1.0,
        ))

    logger.debug("Built %d health events", len(events))
    return sorted(events, key=lambda e: e.occurred_at, reverse=True)
