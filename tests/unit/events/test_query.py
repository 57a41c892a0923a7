# tests/unit/events/test_query.py — v1
"""Tests for events/query.py and events/thresholds.py."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from healthfacts.config.settings import Settings
from healthfacts.core.errors import InvalidQueryParameter
from healthfacts.core.models import HealthEvent
from healthfacts.events.query import DEFAULT_LIMIT, EventQuery, query_events
from healthfacts.events.thresholds import (
    DEFAULT_BODY_COMP_THRESHOLDS,
    EventThresholds,
    MetricThreshold,
)


def _event(index: int, domain: str, severity: str) -> HealthEvent:
    moment = datetime(2024, 4, 1, tzinfo=timezone.utc) - timedelta(days=index)
    return HealthEvent(
        id=f"{domain}:{index}",
        domain=domain,
        severity=severity,
        source="test",
        metric=f"m{index}",
        summary="",
        occurred_at=moment,
        recorded_at=moment,
        confidence=1.0,
    )


@pytest.fixture
def feed() -> list[HealthEvent]:
    return [
        _event(0, "biomarker", "critical"),
        _event(1, "activity", "warning"),
        _event(2, "biomarker", "info"),
        _event(3, "body_comp", "critical"),
        _event(4, "activity", "info"),
    ]


class TestEventQueryCreate:
    def test_defaults(self):
        query = EventQuery.create()
        assert query.domains is None
        assert query.severities is None
        assert query.limit == DEFAULT_LIMIT

    def test_configured_default_limit(self):
        assert EventQuery.create(default_limit=10).limit == 10

    def test_empty_filters_mean_all(self):
        query = EventQuery.create(domains=[], severities=())
        assert query.domains is None
        assert query.severities is None

    def test_single_string(self):
        assert EventQuery.create(domains="activity").domains == frozenset({"activity"})

    def test_unknown_domain(self):
        with pytest.raises(InvalidQueryParameter) as exc_info:
            EventQuery.create(domains=["biomarker", "sleep"])
        assert exc_info.value.parameter == "domains"
        assert exc_info.value.value == ["sleep"]

    def test_unknown_severity(self):
        with pytest.raises(InvalidQueryParameter, match="severities"):
            EventQuery.create(severities=["fatal"])

    @pytest.mark.parametrize("limit", [0, -1, 201])
    def test_limit_out_of_bounds(self, limit):
        with pytest.raises(InvalidQueryParameter):
            EventQuery.create(limit=limit)

    @pytest.mark.parametrize("limit", [True, "5", 2.5])
    def test_limit_not_integer(self, limit):
        with pytest.raises(InvalidQueryParameter, match="integer"):
            EventQuery.create(limit=limit)

    def test_limit_bounds_inclusive(self):
        assert EventQuery.create(limit=1).limit == 1
        assert EventQuery.create(limit=200).limit == 200

    def test_custom_max(self):
        with pytest.raises(InvalidQueryParameter):
            EventQuery.create(limit=20, max_limit=10)

    def test_is_value_error(self):
        with pytest.raises(ValueError):
            EventQuery.create(limit=0)

    def test_frozen(self):
        query = EventQuery.create()
        with pytest.raises(ValidationError):
            query.limit = 5  # type: ignore[misc]


class TestQueryEvents:
    def test_no_query(self, feed):
        assert query_events(feed) == feed

    def test_domain_filter(self, feed):
        result = query_events(feed, EventQuery.create(domains=["activity"]))
        assert [e.id for e in result] == ["activity:1", "activity:4"]

    def test_combined_filters_keep_order(self, feed):
        query = EventQuery.create(domains=["biomarker", "body_comp"], severities=["critical"])
        assert [e.id for e in query_events(feed, query)] == ["biomarker:0", "body_comp:3"]

    def test_truncates_after_filtering(self, feed):
        query = EventQuery.create(severities=["info", "warning"], limit=2)
        assert [e.id for e in query_events(feed, query)] == ["activity:1", "biomarker:2"]

    def test_no_match(self, feed):
        assert query_events(feed, EventQuery.create(domains=["longevity"])) == []


class TestThresholds:
    def test_higher_is_risk(self):
        metric = MetricThreshold(key="x", label="X", warning=20, critical=25, direction="higher_is_risk")
        assert metric.severity(19.9) == "info"
        assert metric.severity(20) == "warning"
        assert metric.severity(25) == "critical"

    def test_lower_is_risk(self):
        metric = MetricThreshold(key="t", label="T", warning=-1, critical=-2.5, direction="lower_is_risk")
        assert metric.severity(0.2) == "info"
        assert metric.severity(-1) == "warning"
        assert metric.severity(-2.5) == "critical"

    def test_default_metrics(self):
        keys = [m.key for m in DEFAULT_BODY_COMP_THRESHOLDS]
        assert keys == ["bodyFatPercent", "vatMass", "leanMass", "boneDensityTScore"]

    def test_from_settings(self, tmp_path):
        settings = Settings(
            cache_root=tmp_path,
            event_include_info=False,
            critical_range_fraction=0.25,
            activity_event_days=3,
        )
        thresholds = EventThresholds.from_settings(settings)
        assert thresholds.include_info is False
        assert thresholds.critical_range_fraction == 0.25
        assert thresholds.activity_days == 3

    def test_fraction_must_be_positive(self):
        with pytest.raises(ValueError):
            EventThresholds(critical_range_fraction=0)
