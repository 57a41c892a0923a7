# src/extraction/scorer.py — v4
"""Window-and-score primitive shared by the biomarker and body-composition engines.

Text flattened from a PDF keeps its tokens but loses its table layout: a
value, its unit, its reference range and its label can land on separate
lines in any order. The scorer tokenizes each line once (alias matches,
unit tokens, range tokens, numeric tokens), then for every alias match
looks at the numeric tokens within ``window`` lines and ranks them.

Score of a candidate for an alias match:

* proximity ``1 / (1 + line distance)``, with a small same-line penalty
  growing with the character gap;
* ``+unit`` if a unit from the metric's vocabulary sits on the candidate's
  line or an adjacent one;
* ``+reference`` if a range token (``low-high``, ``< x``, ``> x``) sits on
  the candidate's line, or on an adjacent line that is not another
  metric's row;
* ``-foreign_label`` if the candidate's line carries another metric's label.

Equal scores prefer the candidate after the label, then the earlier one.
Numbers that are part of an alias (``25-OH``), a unit (``x10³/µL``), a
range, a date, a time or a page marker never become candidates.
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from functools import lru_cache

from healthfacts.core.errors import ExtractionMiss
from healthfacts.extraction.registry import MetricSpec

# Thousands separators are part of the number: "1,250" is 1250, never 250.
_NUM = r"(?:\d{1,3}(?:,\d{3})+|\d+)(?:\.\d+)?"
_NUM_START = r"(?<![\d.])(?<!\d,)"
_NUM_END = r"(?!\.?\d)(?!,\d)"

NUMBER_RE = re.compile(_NUM_START + _NUM + _NUM_END)
RANGE_RE = re.compile(rf"{_NUM_START}({_NUM})\s*[-–]\s*({_NUM}){_NUM_END}")
BOUND_RE = re.compile(rf"(<=|>=|[<>≤≥])\s*({_NUM}){_NUM_END}")

_MONTHS = r"(?:jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)[a-z]*\.?"
_NOISE_RES = (
    re.compile(r"(?<!\d)\d{1,4}([/.-])\d{1,2}\1\d{2,4}(?!\d)"),
    re.compile(rf"(?<!\d)\d{{1,2}}[\s-]+{_MONTHS}[\s,-]+\d{{4}}(?!\d)", re.IGNORECASE),
    re.compile(rf"\b{_MONTHS}\s+\d{{1,2}},?\s+\d{{4}}(?!\d)", re.IGNORECASE),
    re.compile(r"(?<!\d)\d{1,2}:\d{2}(?::\d{2})?(?!\d)"),
    re.compile(r"\bpage\s*:?\s*\d+(?:\s*(?:of|/)\s*\d+)?", re.IGNORECASE),
)

_SIGN_PREFIXES = " \t:(=,"


@dataclass
class ScoringWeights:
    """Tunable weights of the candidate score and of the confidence formula."""

    proximity: float = 1.0
    unit: float = 0.5
    reference: float = 0.25
    foreign_label: float = 0.6
    same_line_gap: float = 0.0005
    min_score: float = 0.25
    # Confidence
    base_confidence: float = 0.5
    exact_alias: float = 0.2
    adjacent_unit: float = 0.2
    separation: float = 0.1


# === TOKENS ===


@dataclass(frozen=True)
class Span:
    line: int
    start: int
    end: int

    def overlaps(self, other: Span) -> bool:
        return self.line == other.line and self.start < other.end and other.start < self.end


@dataclass(frozen=True)
class AliasMatch(Span):
    key: str = ""
    exact: bool = True
    text: str = ""


@dataclass(frozen=True)
class UnitToken(Span):
    unit: str = ""


@dataclass(frozen=True)
class RangeToken(Span):
    low: float | None = None
    high: float | None = None


@dataclass(frozen=True)
class NumberToken(Span):
    value: float = 0.0
    text: str = ""


@dataclass(frozen=True)
class ScoredCandidate:
    token: NumberToken
    anchor: AliasMatch
    score: float
    after_label: bool
    unit: UnitToken | None
    reference: RangeToken | None

    def rank_key(self) -> tuple:
        return (-self.score, 0 if self.after_label else 1, self.token.line, self.token.start)


@dataclass(frozen=True)
class Selection:
    """Winning candidate for one metric, with everything needed to build a reading."""

    spec: MetricSpec
    best: ScoredCandidate
    runner_up: ScoredCandidate | None
    unit: str
    reference: RangeToken | None
    confidence: float
    raw_match: str

    @property
    def value(self) -> float:
        return self.best.token.value


# === UNITS ===


@lru_cache(maxsize=None)
def unit_pattern(unit: str) -> re.Pattern[str]:
    """Tolerant regex for a unit as written in the registry."""
    parts: list[str] = []
    for ch in unit:
        if ch == " ":
            parts.append(r"\s*")
        elif ch == "/":
            parts.append(r"\s*/\s*")
        elif ch in "µμ":
            parts.append("[µμu]")
        elif ch == "³":
            parts.append(r"(?:³|\^3)")
        elif ch == "²":
            parts.append(r"(?:²|\^2)")
        elif ch == "x" and not parts:
            parts.append(r"(?:[x×*]\s*)?")
        else:
            parts.append(re.escape(ch))
    guard = r"(?<![A-Za-z])" if unit[0].isalpha() else ""
    return re.compile(guard + "".join(parts), re.IGNORECASE)


# === LAYOUT ===


@dataclass
class TextLayout:
    """Tokenized view of one text blob against a set of metric specs."""

    lines: list[str]
    aliases: list[AliasMatch] = field(default_factory=list)
    units: list[UnitToken] = field(default_factory=list)
    ranges: list[RangeToken] = field(default_factory=list)
    numbers: list[NumberToken] = field(default_factory=list)

    @classmethod
    def from_text(cls, text: str, specs: Sequence[MetricSpec]) -> TextLayout:
        lines = text.splitlines()
        layout = cls(lines=lines)
        layout.aliases = find_alias_matches(lines, specs)
        vocabulary = sorted({u for spec in specs for u in spec.units}, key=len, reverse=True)
        for idx, line in enumerate(lines):
            if not line.strip():
                continue
            masked: list[Span] = [a for a in layout.aliases if a.line == idx]
            units = _find_units(idx, line, vocabulary, masked)
            masked.extend(units)
            masked.extend(_find_noise(idx, line))
            ranges = _find_ranges(idx, line, masked)
            masked.extend(ranges)
            layout.units.extend(units)
            layout.ranges.extend(ranges)
            layout.numbers.extend(_find_numbers(idx, line, masked, units))
        return layout

    def matches_for(self, key: str) -> list[AliasMatch]:
        return [a for a in self.aliases if a.key == key]

    def has_foreign_label(self, line: int, key: str) -> bool:
        keys = {a.key for a in self.aliases if a.line == line}
        return bool(keys) and key not in keys

    def adjacent_unit(self, token: NumberToken, units: Iterable[str]) -> UnitToken | None:
        allowed = set(units)
        near = [
            u for u in self.units
            if u.unit in allowed and abs(u.line - token.line) <= 1
        ]
        if not near:
            return None
        return min(near, key=lambda u: (abs(u.line - token.line), abs(u.start - token.end)))

    def nearest_unit(self, anchor: AliasMatch, units: Iterable[str], window: int) -> UnitToken | None:
        allowed = set(units)
        near = [
            u for u in self.units
            if u.unit in allowed and abs(u.line - anchor.line) <= window
        ]
        if not near:
            return None
        return min(near, key=lambda u: (abs(u.line - anchor.line), abs(u.start - anchor.end)))

    def adjacent_range(self, token: NumberToken, key: str) -> RangeToken | None:
        """Range on the candidate's row, or on a neighbouring line that is not another metric's row."""
        near = [
            r for r in self.ranges
            if r.line == token.line
            or (abs(r.line - token.line) == 1 and not self.has_foreign_label(r.line, key))
        ]
        if not near:
            return None
        return min(near, key=lambda r: (abs(r.line - token.line), abs(r.start - token.end)))

    def excerpt(self, first: int, last: int) -> str:
        lo, hi = min(first, last), max(first, last)
        return "\n".join(line.strip() for line in self.lines[lo:hi + 1] if line.strip())


def find_alias_matches(lines: Sequence[str], specs: Sequence[MetricSpec]) -> list[AliasMatch]:
    """All alias occurrences, minus those nested inside a longer label of another key.

    ``Fat Mass`` inside ``Arms Fat Mass`` belongs to the regional metric,
    not to the total one.
    """
    found: list[AliasMatch] = []
    for idx, line in enumerate(lines):
        if not line.strip():
            continue
        on_line: list[AliasMatch] = []
        for spec in specs:
            for alias in spec.aliases:
                for m in alias.regex.finditer(line):
                    if m.end() > m.start():
                        on_line.append(AliasMatch(
                            idx, m.start(), m.end(), key=spec.key,
                            exact=alias.exact, text=m.group(0),
                        ))
        for match in on_line:
            nested = any(
                other.key != match.key
                and other.start <= match.start and match.end <= other.end
                and (other.end - other.start) > (match.end - match.start)
                for other in on_line
            )
            if not nested and match not in found:
                found.append(match)
    return found


def _find_units(idx: int, line: str, vocabulary: Sequence[str], masked: Sequence[Span]) -> list[UnitToken]:
    units: list[UnitToken] = []
    for unit in vocabulary:
        for m in unit_pattern(unit).finditer(line):
            token = UnitToken(idx, m.start(), m.end(), unit=unit)
            if any(token.overlaps(s) for s in masked) or any(token.overlaps(u) for u in units):
                continue
            units.append(token)
    return units


def _to_float(text: str) -> float:
    return float(text.replace(",", ""))


def _find_noise(idx: int, line: str) -> list[Span]:
    return [Span(idx, m.start(), m.end()) for regex in _NOISE_RES for m in regex.finditer(line)]


def _find_ranges(idx: int, line: str, masked: Sequence[Span]) -> list[RangeToken]:
    ranges: list[RangeToken] = []
    for m in RANGE_RE.finditer(line):
        low, high = _to_float(m.group(1)), _to_float(m.group(2))
        token = RangeToken(idx, m.start(), m.end(), low=low, high=high)
        if low <= high and not any(token.overlaps(s) for s in masked):
            ranges.append(token)
    for m in BOUND_RE.finditer(line):
        bound = _to_float(m.group(2))
        upper = m.group(1) in ("<", "<=", "≤")
        token = RangeToken(
            idx, m.start(), m.end(),
            low=None if upper else bound, high=bound if upper else None,
        )
        if not any(token.overlaps(s) for s in masked) and not any(token.overlaps(r) for r in ranges):
            ranges.append(token)
    return ranges


def _find_numbers(
    idx: int, line: str, masked: Sequence[Span], units: Sequence[UnitToken],
) -> list[NumberToken]:
    unit_starts = {u.start for u in units}
    numbers: list[NumberToken] = []
    for m in NUMBER_RE.finditer(line):
        start, end = m.start(), m.end()
        probe = Span(idx, start, end)
        if any(probe.overlaps(s) for s in masked):
            continue
        nxt = line[end:end + 1]
        if nxt.isalpha() and end not in unit_starts:
            continue
        if nxt == "-" and line[end + 1:end + 2].isalpha():
            continue
        # Single-letter prefixes such as B12 or T3 are labels, not values.
        if start > 0 and line[start - 1].isalpha() and (start < 2 or not line[start - 2].isalpha()):
            continue
        text = m.group(0).replace(",", "")
        if start > 0 and line[start - 1] in "-−+" and (start < 2 or line[start - 2] in _SIGN_PREFIXES):
            start -= 1
            text = ("-" if line[start] in "-−" else "") + text
        value = float(text)
        if math.isfinite(value):
            numbers.append(NumberToken(idx, start, end, value=value, text=text))
    return numbers


# === SCORING ===


def collect_candidates(layout: TextLayout, anchor: AliasMatch, window: int) -> list[NumberToken]:
    """Numeric tokens within ``window`` lines of the alias match."""
    return [n for n in layout.numbers if abs(n.line - anchor.line) <= window]


def score_candidates(
    layout: TextLayout,
    anchor: AliasMatch,
    spec: MetricSpec,
    candidates: Iterable[NumberToken],
    weights: ScoringWeights,
) -> list[ScoredCandidate]:
    """Score every plausible candidate for one alias match, best first."""
    scored: list[ScoredCandidate] = []
    for token in candidates:
        if not spec.is_plausible(token.value):
            continue
        distance = abs(token.line - anchor.line)
        score = weights.proximity / (1 + distance)
        if distance == 0:
            gap = token.start - anchor.end if token.start >= anchor.end else anchor.start - token.end
            score -= min(max(gap, 0), 200) * weights.same_line_gap
        unit = layout.adjacent_unit(token, spec.units)
        reference = layout.adjacent_range(token, spec.key)
        if unit is not None:
            score += weights.unit
        if reference is not None:
            score += weights.reference
        if layout.has_foreign_label(token.line, spec.key):
            score -= weights.foreign_label
        after = (token.line, token.start) >= (anchor.line, anchor.end)
        scored.append(ScoredCandidate(
            token=token, anchor=anchor, score=round(score, 6),
            after_label=after, unit=unit, reference=reference,
        ))
    scored.sort(key=ScoredCandidate.rank_key)
    return scored


def confidence_for(
    exact_alias: bool,
    unit_adjacent: bool,
    best_score: float,
    runner_up_score: float | None,
    weights: ScoringWeights,
) -> float:
    """Confidence in [0, 1], rounded to 3 places."""
    if runner_up_score is None or best_score <= 0:
        separation = 1.0
    else:
        separation = min(1.0, max(0.0, (best_score - runner_up_score) / best_score))
    confidence = (
        weights.base_confidence
        + (weights.exact_alias if exact_alias else 0.0)
        + (weights.adjacent_unit if unit_adjacent else 0.0)
        + weights.separation * separation
    )
    return round(min(1.0, max(0.0, confidence)), 3)


def select_best(
    layout: TextLayout,
    spec: MetricSpec,
    window: int,
    weights: ScoringWeights | None = None,
) -> Selection | None:
    """Pick the value of ``spec`` from the layout.

    Returns:
        None when no alias of ``spec`` occurs in the text.

    Raises:
        ExtractionMiss: An alias occurs but no plausible value is in its window.
    """
    weights = weights or ScoringWeights()
    anchors = layout.matches_for(spec.key)
    if not anchors:
        return None

    best_by_token: dict[NumberToken, ScoredCandidate] = {}
    for anchor in anchors:
        for cand in score_candidates(layout, anchor, spec, collect_candidates(layout, anchor, window), weights):
            current = best_by_token.get(cand.token)
            if current is None or _beats(cand, current):
                best_by_token[cand.token] = cand

    ranked = sorted(best_by_token.values(), key=ScoredCandidate.rank_key)
    if not ranked:
        raise ExtractionMiss(spec.key, "no plausible value near label")
    best = ranked[0]
    if best.score < weights.min_score:
        raise ExtractionMiss(spec.key, f"best candidate score {best.score} below threshold")
    runner_up = ranked[1] if len(ranked) > 1 else None

    unit_token = best.unit or layout.nearest_unit(best.anchor, spec.units, window)
    confidence = confidence_for(
        best.anchor.exact,
        best.unit is not None,
        best.score,
        runner_up.score if runner_up else None,
        weights,
    )
    return Selection(
        spec=spec,
        best=best,
        runner_up=runner_up,
        unit=unit_token.unit if unit_token else "",
        reference=best.reference,
        confidence=confidence,
        raw_match=layout.excerpt(best.anchor.line, best.token.line),
    )


def _beats(challenger: ScoredCandidate, current: ScoredCandidate) -> bool:
    if challenger.score != current.score:
        return challenger.score > current.score
    if challenger.anchor.exact != current.anchor.exact:
        return challenger.anchor.exact
    return challenger.after_label and not current.after_label
