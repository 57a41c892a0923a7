# src/extraction/activity_parser.py — v2
"""Wearable export parsers -> ActivityLog.

Two layouts feed the activity domain:

* Whoop folder exports: only ``physiological_cycles*.csv`` is read, one
  row per cycle, keyed by the calendar day of ``Cycle start time``.
* Plain activity CSV files with one row per day and the columns
  ``date, hrv_ms, rhr_bpm, sleep_hours, sleep_score, recovery, strain,
  steps`` (any subset besides ``date``). They may sit directly under the
  activity folder or inside a tracker folder.

Unparseable cells become ``None``; rows without a date are skipped.
"""

from __future__ import annotations

import csv
import logging
import math
from datetime import date
from pathlib import Path

from healthfacts.core.errors import IoError
from healthfacts.core.models import ActivityEntry, ActivityLog
from healthfacts.extraction.dates import parse_date

logger = logging.getLogger(__name__)

ACTIVITY_SCHEMA_VERSION = "activity-2"
CYCLES_FILE_MARKER = "physiological_cycles"
GENERIC_TRACKER = "csv"

_COLUMNS = {
    "day": "Cycle start time",
    "recovery": "Recovery score %",
    "rhr": "Resting heart rate (bpm)",
    "hrv": "Heart rate variability (ms)",
    "strain": "Day Strain",
    "sleep_score": "Sleep performance %",
    "asleep_minutes": "Asleep duration (min)",
}

GENERIC_DATE_COLUMN = "date"
GENERIC_METRIC_COLUMNS = frozenset({
    "hrv_ms", "rhr_bpm", "sleep_hours", "sleep_score", "recovery", "strain", "steps",
})


def is_whoop_folder(folder: str | Path) -> bool:
    """True if ``folder`` looks like a Whoop export (cycles or sleeps CSV)."""
    p = Path(folder)
    if not p.is_dir():
        return False
    names = [f.name.lower() for f in p.iterdir() if f.suffix.lower() == ".csv"]
    return any("physiological" in n or "sleeps" in n for n in names)


def is_generic_activity_csv(path: str | Path) -> bool:
    """True if the header row has a ``date`` column and at least one metric column."""
    p = Path(path)
    if not p.is_file() or p.suffix.lower() != ".csv":
        return False
    try:
        with p.open(newline="", encoding="utf-8-sig") as fh:
            header = next(csv.reader(fh), [])
    except (OSError, UnicodeDecodeError, csv.Error):
        return False
    columns = {c.strip().lower() for c in header}
    return GENERIC_DATE_COLUMN in columns and bool(columns & GENERIC_METRIC_COLUMNS)


def generic_csv_files(folder: str | Path) -> list[Path]:
    """Plain activity CSV files inside ``folder``, sorted by name."""
    p = Path(folder)
    if not p.is_dir():
        return []
    return sorted(
        f for f in p.iterdir()
        if not f.name.startswith(".") and is_generic_activity_csv(f)
    )


def parse_activity_folder(folder: str | Path, tracker: str | None = None) -> ActivityLog:
    """Parse an export folder. A missing folder yields an empty log.

    Whoop cycle files take precedence; a folder without any is read as a
    set of plain activity CSV files. A later file wins for a day present
    in several files.

    Raises:
        IoError: If an export file exists but cannot be read.
    """
    p = Path(folder)
    name = tracker or p.name.lower()
    if not p.is_dir():
        logger.warning("Activity folder not found: %s", p)
        return ActivityLog(tracker=name, source=str(p))

    cycles = sorted(
        f for f in p.iterdir()
        if f.suffix.lower() == ".csv" and CYCLES_FILE_MARKER in f.name.lower()
    )
    entries: dict[date, ActivityEntry] = {}
    if cycles:
        for csv_path in cycles:
            for entry in parse_activity_csv(csv_path):
                entries[entry.day] = entry
    else:
        for csv_path in generic_csv_files(p):
            for entry in parse_generic_activity_csv(csv_path):
                entries[entry.day] = entry
    log = ActivityLog(tracker=name, entries=[entries[d] for d in sorted(entries)], source=str(p))
    logger.info("Parsed %d activity days from %s", len(log.entries), p)
    return log


def parse_activity_file(path: str | Path, tracker: str | None = None) -> ActivityLog:
    """Parse one plain activity CSV file.

    Raises:
        IoError: If the file cannot be read.
    """
    p = Path(path)
    log = ActivityLog(
        tracker=tracker or GENERIC_TRACKER,
        entries=parse_generic_activity_csv(p),
        source=str(p),
    )
    logger.info("Parsed %d activity days from %s", len(log.entries), p)
    return log


def parse_activity_csv(path: str | Path) -> list[ActivityEntry]:
    """Rows of one ``physiological_cycles.csv`` as ActivityEntry, oldest first.

    Raises:
        IoError: If the file cannot be read.
    """
    entries: list[ActivityEntry] = []
    for row in _read_rows(path):
        day = _parse_day(row.get(_COLUMNS["day"]))
        if day is None:
            continue
        asleep = _number(row.get(_COLUMNS["asleep_minutes"]))
        entries.append(ActivityEntry(
            day=day,
            hrv=_number(row.get(_COLUMNS["hrv"])) or 0.0,
            rhr=_number(row.get(_COLUMNS["rhr"])) or 0.0,
            sleep_hours=round(asleep / 60, 2) if asleep else 0.0,
            recovery=_number(row.get(_COLUMNS["recovery"])),
            sleep_score=_number(row.get(_COLUMNS["sleep_score"])),
            strain=_number(row.get(_COLUMNS["strain"])),
        ))
    entries.sort(key=lambda e: e.day)
    return entries


def parse_generic_activity_csv(path: str | Path) -> list[ActivityEntry]:
    """Rows of a plain ``date,hrv_ms,rhr_bpm,...`` file as ActivityEntry, oldest first.

    Header names are matched case-insensitively. A day repeated in the
    file keeps its last row.

    Raises:
        IoError: If the file cannot be read.
    """
    by_day: dict[date, ActivityEntry] = {}
    for raw in _read_rows(path):
        row = {(k or "").strip().lower(): v for k, v in raw.items()}
        cell = row.get(GENERIC_DATE_COLUMN)
        day = _parse_day(cell) or (parse_date(cell) if cell else None)
        if day is None:
            continue
        steps = _number(row.get("steps"))
        by_day[day] = ActivityEntry(
            day=day,
            hrv=_number(row.get("hrv_ms")) or 0.0,
            rhr=_number(row.get("rhr_bpm")) or 0.0,
            sleep_hours=_number(row.get("sleep_hours")) or 0.0,
            recovery=_number(row.get("recovery")),
            sleep_score=_number(row.get("sleep_score")),
            strain=_number(row.get("strain")),
            steps=int(steps) if steps is not None else None,
        )
    return [by_day[d] for d in sorted(by_day)]


def _read_rows(path: str | Path) -> list[dict[str, str]]:
    p = Path(path)
    try:
        with p.open(newline="", encoding="utf-8-sig") as fh:
            return list(csv.DictReader(fh))
    except (OSError, UnicodeDecodeError, csv.Error) as e:
        raise IoError(f"Cannot read activity export: {p}", path=p, cause=e) from e


def _number(raw: str | None) -> float | None:
    if raw is None or not raw.strip():
        return None
    try:
        value = float(raw)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def _parse_day(raw: str | None) -> date | None:
    if not raw or len(raw) < 10:
        return None
    try:
        return date.fromisoformat(raw.strip()[:10])
    except ValueError:
        return None
