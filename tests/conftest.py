# tests/conftest.py — v2
"""Shared test fixtures for all unit and integration tests.

Provides sample report texts (flattened lab PDF, DEXA summary, Whoop
export), a populated data root and isolated settings. No external
services; every file lives under ``tmp_path``.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import pytest

from healthfacts.config.settings import Settings
from healthfacts.core.models import BiomarkerReading

# === SAMPLE TEXTS ===

# Text layer of a Thyrocare PDF: values, units, ranges and labels on
# separate lines in table-column order.
THYROCARE_TEXT = """C.L.I.A
9.74
Bio. Ref. Interval. :-
ng/mL25-OH VITAMIN D

PHOTOMETRY
93.1
mg/dL
FASTING BLOOD SUGAR

ALBUMIN - SERUMPHOTOMETRY3.2-4.8gm/dL 4.34
CREATININE - SERUMPHOTOMETRY0.72-1.18mg/dL 0.92
ALKALINE PHOSPHATASEPHOTOMETRY45-129U/L 114

fL
92.3
83.0-101.0
Mean Corpuscular Volume (MCV)

fL
44.9
40.0-50.0
Red Cell Distribution Width

X 10³ / μL
6.2
4.0 - 10.0
TOTAL LEUCOCYTE COUNT (WBC)

%
35.2
20-40
Lymphocytes Percentage

Mangesh Raut(26Y/M)
"""

THYROCARE_EXPECTED: dict[str, float] = {
    "vitaminD": 9.74,
    "glucose": 93.1,
    "albumin": 4.34,
    "creatinine": 0.92,
    "alkalinePhosphatase": 114.0,
    "mcv": 92.3,
    "rdw": 44.9,
    "wbc": 6.2,
    "lymphocytePercent": 35.2,
}

DEXA_TEXT = """BodySpec DEXA Report
Scan Date: 2024-03-15
Total Body Fat 27.4 %
Total Fat Mass 48.2 lbs
Total Lean Mass 121.5 lbs
Visceral Fat 1.21 lbs
Bone Mineral Content 6.8 lbs
Whole Body T-Score -0.8
Whole Body Z-Score 0.4
Arms Fat 24.1 %
Legs Fat Mass 18.0 lbs
"""

WHOOP_CYCLES_CSV = (
    "Cycle start time,Cycle end time,Recovery score %,Resting heart rate (bpm),"
    "Heart rate variability (ms),Day Strain,Sleep performance %,Asleep duration (min)\n"
    "2024-03-01 06:30:00,2024-03-02 06:10:00,72,52,48,11.2,85,450\n"
    "2024-03-02 06:10:00,2024-03-03 06:40:00,38,60,22,14.0,60,280\n"
    "2024-03-03 06:40:00,,55,56,33,9.5,70,350\n"
)


# === FIXTURES: Texts ===


@pytest.fixture
def thyrocare_text() -> str:
    return THYROCARE_TEXT


@pytest.fixture
def thyrocare_expected() -> dict[str, float]:
    return dict(THYROCARE_EXPECTED)


@pytest.fixture
def dexa_text() -> str:
    return DEXA_TEXT


@pytest.fixture
def whoop_folder(tmp_path: Path) -> Path:
    """A Whoop export folder with a cycles and a sleeps file."""
    folder = tmp_path / "whoop_export"
    folder.mkdir()
    (folder / "physiological_cycles.csv").write_text(WHOOP_CYCLES_CSV, encoding="utf-8")
    (folder / "sleeps.csv").write_text("Cycle start time,Sleep onset\n", encoding="utf-8")
    return folder


# === FIXTURES: Data root and settings ===


@pytest.fixture
def data_root(tmp_path: Path) -> Path:
    """Organized source tree: one lab report, one scan, one Whoop export."""
    root = tmp_path / "data"
    (root / "Bloodwork").mkdir(parents=True)
    (root / "Body Scan").mkdir()
    whoop = root / "Activity" / "Whoop"
    whoop.mkdir(parents=True)
    (root / "Bloodwork" / "thyrocare_2024.txt").write_text(THYROCARE_TEXT, encoding="utf-8")
    (root / "Body Scan" / "dexa_2024.txt").write_text(DEXA_TEXT, encoding="utf-8")
    (whoop / "physiological_cycles.csv").write_text(WHOOP_CYCLES_CSV, encoding="utf-8")
    return root


@pytest.fixture
def settings(tmp_path: Path, data_root: Path) -> Settings:
    """Settings isolated under tmp_path (JSON cache backend)."""
    return Settings(
        data_root=data_root,
        cache_root=tmp_path / "cache",
        cache_backend="json",
        log_format="text",
    )


# === FIXTURES: Readings ===


def _reading(
    key: str = "albumin",
    value: float = 4.2,
    low: float | None = 3.5,
    high: float | None = 5.0,
    **overrides,
) -> BiomarkerReading:
    fields = dict(
        key=key,
        display_name=key.capitalize(),
        value=value,
        unit="g/dL",
        reference_low=low,
        reference_high=high,
        confidence=0.9,
        raw_match=f"{key} {value}",
    )
    fields.update(overrides)
    return BiomarkerReading(**fields)


@pytest.fixture
def make_reading():
    """Factory for BiomarkerReading with a reference range."""
    return _reading


@pytest.fixture
def recorded_at() -> datetime:
    return datetime(2024, 4, 1, 12, 0, tzinfo=timezone.utc)
