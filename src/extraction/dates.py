# src/extraction/dates.py — v1
"""Labelled date lookup for report headers (collection date, scan date)."""

from __future__ import annotations

import re
from collections.abc import Sequence
from datetime import date, datetime

_FORMATS = (
    "%Y-%m-%d", "%m/%d/%Y", "%d/%m/%Y", "%d-%m-%Y", "%d.%m.%Y",
    "%d %b %Y", "%d %B %Y", "%b %d, %Y", "%B %d, %Y", "%b %d %Y", "%B %d %Y",
    "%d-%b-%Y",
)

_DATE_TOKEN = (
    r"(\d{4}-\d{2}-\d{2}"
    r"|\d{1,2}[/.-]\d{1,2}[/.-]\d{4}"
    r"|\d{1,2}[\s-][A-Za-z]{3,9}[\s-]\d{4}"
    r"|[A-Za-z]{3,9}\.?\s+\d{1,2},?\s+\d{4})"
)

BLOODWORK_LABELS: tuple[str, ...] = (
    "sample collected on", "collection date", "collected on", "collected",
    "report date", "reported on", "reported", "date",
)
SCAN_LABELS: tuple[str, ...] = ("scan date", "measured", "date")


def parse_date(token: str) -> date | None:
    """Parse one date token in any of the supported layouts."""
    cleaned = re.sub(r"(?<=[A-Za-z])\.", "", re.sub(r"\s+", " ", token.strip()))
    for fmt in _FORMATS:
        try:
            return datetime.strptime(cleaned, fmt).date()
        except ValueError:
            continue
    return None


def find_labelled_date(text: str, labels: Sequence[str]) -> date | None:
    """First date following one of ``labels`` (tried in order), e.g. ``Scan Date: 2024-03-01``."""
    for label in labels:
        pattern = re.compile(
            rf"\b{re.escape(label)}\b\s*(?:\([^)]*\))?\s*[:\-]?\s*{_DATE_TOKEN}",
            re.IGNORECASE,
        )
        for m in pattern.finditer(text):
            parsed = parse_date(m.group(1))
            if parsed is not None:
                return parsed
    return None
