# src/extraction/registry.py — v2
"""Static metric tables: canonical key -> aliases, units, sane range, reference range.

Both extraction engines run the same scorer over these tables; adding a
biomarker or a composition metric is a data change only.

Aliases are either exact phrases (matched literally, case-insensitively,
whitespace-flexible) or fuzzy regular expressions. Units are listed as
they should be reported; ``scorer.unit_pattern`` derives a tolerant regex
for each (``µ``/``μ``/``u``, ``³``/``^3``, optional ``x`` multiplier,
flexible spacing around ``/``).
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import cached_property


@dataclass(frozen=True)
class Alias:
    """One textual variant of a metric label."""

    pattern: str
    exact: bool = True

    @cached_property
    def regex(self) -> re.Pattern[str]:
        if not self.exact:
            return re.compile(self.pattern, re.IGNORECASE)
        words = [re.escape(w) for w in self.pattern.split()]
        guard = r"(?<![A-Za-z])" if self.pattern[0].isalpha() else r"(?<![\d.])"
        return re.compile(guard + r"\s+".join(words), re.IGNORECASE)


def exact(*phrases: str) -> tuple[Alias, ...]:
    return tuple(Alias(p, exact=True) for p in phrases)


def fuzzy(*patterns: str) -> tuple[Alias, ...]:
    return tuple(Alias(p, exact=False) for p in patterns)


@dataclass(frozen=True)
class MetricSpec:
    """Static description of one extractable metric."""

    key: str
    display_name: str
    aliases: tuple[Alias, ...]
    units: tuple[str, ...]
    plausible_range: tuple[float, float]
    reference_range: tuple[float | None, float | None] | None = None
    category: str = "other"
    region: str | None = None
    measure: str | None = None
    tags: frozenset[str] = field(default_factory=frozenset)

    def is_plausible(self, value: float) -> bool:
        low, high = self.plausible_range
        return low <= value <= high

    @property
    def default_unit(self) -> str:
        return self.units[0] if self.units else ""


BiomarkerSpec = MetricSpec


# === BIOMARKERS ===

PHENOAGE = frozenset({"phenoage"})

BIOMARKERS: tuple[MetricSpec, ...] = (
    # Levine PhenoAge inputs
    MetricSpec(
        key="albumin", display_name="Albumin",
        aliases=exact("ALBUMIN - SERUM", "Albumin"),
        units=("g/dL", "gm/dL"),
        plausible_range=(0.5, 10.0), reference_range=(3.5, 5.0),
        category="Liver Function", tags=PHENOAGE,
    ),
    MetricSpec(
        key="creatinine", display_name="Creatinine",
        aliases=exact("CREATININE - SERUM", "Creatinine"),
        units=("mg/dL", "µmol/L"),
        plausible_range=(0.1, 20.0), reference_range=(0.6, 1.3),
        category="Kidney Function", tags=PHENOAGE,
    ),
    MetricSpec(
        key="glucose", display_name="Fasting Glucose",
        aliases=exact("FASTING BLOOD SUGAR", "Glucose, Fasting", "Fasting Glucose", "Glucose"),
        units=("mg/dL", "mmol/L"),
        plausible_range=(20.0, 1000.0), reference_range=(70.0, 99.0),
        category="Metabolic", tags=PHENOAGE,
    ),
    MetricSpec(
        key="crp", display_name="hs-CRP",
        aliases=exact("C-Reactive Protein") + fuzzy(r"\bhs[\s-]*crp\b", r"\bcrp\b"),
        units=("mg/L", "mg/dL"),
        plausible_range=(0.0, 300.0), reference_range=(0.0, 3.0),
        category="Inflammation", tags=PHENOAGE,
    ),
    MetricSpec(
        key="lymphocytePercent", display_name="Lymphocytes %",
        aliases=exact("Lymphocytes Percentage", "Lymphocyte Percent")
        + fuzzy(r"\blymphocytes?\b"),
        units=("%",),
        plausible_range=(1.0, 95.0), reference_range=(20.0, 40.0),
        category="CBC", tags=PHENOAGE,
    ),
    MetricSpec(
        key="lymphocytes", display_name="Absolute Lymphocytes",
        aliases=exact("Absolute Lymphocytes", "Lymphocytes Absolute Count"),
        units=("cells/µL", "x10³/µL"),
        plausible_range=(0.1, 20000.0), reference_range=(850.0, 3900.0),
        category="CBC",
    ),
    MetricSpec(
        key="mcv", display_name="Mean Corpuscular Volume",
        aliases=exact("Mean Corpuscular Volume", "Mean Cell Volume") + fuzzy(r"\bmcv\b"),
        units=("fL",),
        plausible_range=(50.0, 150.0), reference_range=(80.0, 100.0),
        category="CBC", tags=PHENOAGE,
    ),
    MetricSpec(
        key="rdw", display_name="Red Cell Distribution Width",
        aliases=exact("Red Cell Distribution Width") + fuzzy(r"\brdw(?:-(?:cv|sd))?\b"),
        units=("%", "fL"),
        plausible_range=(5.0, 80.0), reference_range=(11.5, 14.5),
        category="CBC", tags=PHENOAGE,
    ),
    MetricSpec(
        key="alkalinePhosphatase", display_name="Alkaline Phosphatase",
        aliases=exact("Alkaline Phosphatase", "Alk Phos") + fuzzy(r"\balp\b"),
        units=("U/L", "IU/L"),
        plausible_range=(5.0, 2000.0), reference_range=(44.0, 147.0),
        category="Liver Function", tags=PHENOAGE,
    ),
    MetricSpec(
        key="wbc", display_name="White Blood Cell Count",
        aliases=exact("Total Leucocyte Count", "White Blood Cell Count", "Total WBC Count")
        + fuzzy(r"\bwbc\b"),
        units=("x10³/µL", "K/µL", "x10^9/L"),
        plausible_range=(0.5, 100.0), reference_range=(4.0, 11.0),
        category="CBC", tags=PHENOAGE,
    ),
    # Lipid panel
    MetricSpec(
        key="ldl", display_name="LDL Cholesterol",
        aliases=exact("LDL Cholesterol", "LDL-Cholesterol") + fuzzy(r"\bldl\b"),
        units=("mg/dL", "mmol/L"),
        plausible_range=(10.0, 500.0), reference_range=(None, 100.0),
        category="Lipids",
    ),
    MetricSpec(
        key="hdl", display_name="HDL Cholesterol",
        aliases=exact("HDL Cholesterol", "HDL-Cholesterol") + fuzzy(r"\bhdl\b"),
        units=("mg/dL", "mmol/L"),
        plausible_range=(5.0, 200.0), reference_range=(40.0, None),
        category="Lipids",
    ),
    MetricSpec(
        key="triglycerides", display_name="Triglycerides",
        aliases=exact("Triglycerides"),
        units=("mg/dL", "mmol/L"),
        plausible_range=(10.0, 5000.0), reference_range=(None, 150.0),
        category="Lipids",
    ),
    MetricSpec(
        key="totalCholesterol", display_name="Total Cholesterol",
        aliases=exact("Total Cholesterol", "Cholesterol, Total"),
        units=("mg/dL", "mmol/L"),
        plausible_range=(50.0, 800.0), reference_range=(None, 200.0),
        category="Lipids",
    ),
    # Additional markers
    MetricSpec(
        key="vitaminD", display_name="Vitamin D (25-OH)",
        aliases=exact("25-OH Vitamin D", "Vitamin D, 25-Hydroxy", "Vitamin D,25-OH")
        + fuzzy(r"vitamin\s*d\b"),
        units=("ng/mL", "nmol/L"),
        plausible_range=(1.0, 250.0), reference_range=(30.0, 100.0),
        category="Vitamins",
    ),
    MetricSpec(
        key="hba1c", display_name="HbA1c",
        aliases=exact("Hemoglobin A1c", "Glycosylated Hemoglobin") + fuzzy(r"\bhba1c\b"),
        units=("%",),
        plausible_range=(3.0, 20.0), reference_range=(4.0, 5.6),
        category="Metabolic",
    ),
    MetricSpec(
        key="fastingInsulin", display_name="Fasting Insulin",
        aliases=exact("Fasting Insulin", "Insulin, Fasting"),
        units=("µIU/mL", "mIU/L"),
        plausible_range=(0.5, 300.0), reference_range=(2.0, 20.0),
        category="Metabolic",
    ),
    MetricSpec(
        key="homocysteine", display_name="Homocysteine",
        aliases=exact("Homocysteine"),
        units=("µmol/L",),
        plausible_range=(1.0, 100.0), reference_range=(5.0, 15.0),
        category="Cardiovascular",
    ),
    MetricSpec(
        key="ferritin", display_name="Ferritin",
        aliases=exact("Ferritin"),
        units=("ng/mL",),
        plausible_range=(1.0, 5000.0), reference_range=(30.0, 400.0),
        category="Iron",
    ),
    # Thyroid
    MetricSpec(
        key="tsh", display_name="TSH",
        aliases=exact("TSH - Ultrasensitive") + fuzzy(r"\btsh\b"),
        units=("µIU/mL", "mIU/L"),
        plausible_range=(0.005, 100.0), reference_range=(0.4, 4.5),
        category="Thyroid",
    ),
    MetricSpec(
        key="freeT4", display_name="Free T4",
        aliases=exact("Free T4") + fuzzy(r"\bft4\b"),
        units=("ng/dL", "pmol/L"),
        plausible_range=(0.1, 10.0), reference_range=(0.8, 1.8),
        category="Thyroid",
    ),
    MetricSpec(
        key="freeT3", display_name="Free T3",
        aliases=exact("Free T3") + fuzzy(r"\bft3\b"),
        units=("pg/mL", "pmol/L"),
        plausible_range=(0.5, 20.0), reference_range=(2.3, 4.2),
        category="Thyroid",
    ),
)


# === BODY COMPOSITION ===


def _region_metric(
    region: str, measure: str, label: str, units: tuple[str, ...],
    plausible: tuple[float, float],
) -> MetricSpec:
    key = f"{region}{measure[0].upper()}{measure[1:]}"
    phrase = f"{region.capitalize()} {label}"
    return MetricSpec(
        key=key, display_name=phrase, aliases=exact(phrase),
        units=units, plausible_range=plausible,
        category="Body Composition", region=region, measure=measure,
    )


_MASS_UNITS = ("lbs", "lb", "kg")

BODY_COMP_METRICS: tuple[MetricSpec, ...] = (
    MetricSpec(
        key="bodyFatPercent", display_name="Body Fat",
        aliases=exact("Total Body Fat", "Body Fat Percentage", "Body Fat"),
        units=("%",), plausible_range=(2.0, 75.0),
        category="Body Composition", region="total", measure="fatPercent",
    ),
    MetricSpec(
        key="fatMass", display_name="Fat Mass",
        aliases=exact("Total Fat Mass", "Fat Mass"),
        units=_MASS_UNITS, plausible_range=(1.0, 600.0),
        category="Body Composition", region="total", measure="fatMass",
    ),
    MetricSpec(
        key="leanMass", display_name="Lean Mass",
        aliases=exact("Total Lean Mass", "Lean Mass", "Lean Tissue"),
        units=_MASS_UNITS, plausible_range=(20.0, 400.0),
        category="Body Composition", region="total", measure="leanMass",
    ),
    MetricSpec(
        key="totalMass", display_name="Total Mass",
        aliases=exact("Total Mass", "Total Body Mass"),
        units=_MASS_UNITS, plausible_range=(40.0, 1000.0),
        category="Body Composition", region="total", measure="totalMass",
    ),
    MetricSpec(
        key="boneMineralContent", display_name="Bone Mineral Content",
        aliases=exact("Bone Mineral Content") + fuzzy(r"\bbmc\b"),
        units=_MASS_UNITS, plausible_range=(1.0, 15.0),
        category="Body Composition", region="bone", measure="mineralContent",
    ),
    MetricSpec(
        key="totalBmd", display_name="Total BMD",
        aliases=exact("Total BMD", "Bone Mineral Density"),
        units=("g/cm²",), plausible_range=(0.3, 2.5),
        category="Body Composition", region="bone", measure="density",
    ),
    MetricSpec(
        key="boneDensityTScore", display_name="Bone Density T-Score",
        aliases=exact("Whole Body T-Score", "T-Score"),
        units=(), plausible_range=(-6.0, 6.0),
        category="Body Composition", region="bone", measure="tScore",
    ),
    MetricSpec(
        key="boneDensityZScore", display_name="Bone Density Z-Score",
        aliases=exact("Whole Body Z-Score", "Z-Score"),
        units=(), plausible_range=(-6.0, 6.0),
        category="Body Composition", region="bone", measure="zScore",
    ),
    MetricSpec(
        key="vatMass", display_name="Visceral Fat",
        aliases=exact("Visceral Adipose Tissue", "VAT Mass", "Visceral Fat") + fuzzy(r"\bvat\b"),
        units=_MASS_UNITS, plausible_range=(0.01, 20.0),
        category="Body Composition", region="visceral", measure="fatMass",
    ),
    MetricSpec(
        key="vatVolume", display_name="Visceral Fat Volume",
        aliases=exact("VAT Volume"),
        units=("in³", "cm³"), plausible_range=(1.0, 10000.0),
        category="Body Composition", region="visceral", measure="volume",
    ),
    MetricSpec(
        key="almi", display_name="ALMI",
        aliases=exact("Appendicular Lean Mass Index") + fuzzy(r"\balmi\b"),
        units=("kg/m²",), plausible_range=(2.0, 20.0),
        category="Body Composition", region="total", measure="almi",
    ),
    MetricSpec(
        key="restingMetabolicRate", display_name="Resting Metabolic Rate",
        aliases=exact("Resting Metabolic Rate") + fuzzy(r"\brmr\b"),
        units=("cal/day", "kcal/day", "kcal"), plausible_range=(500.0, 5000.0),
        category="Body Composition", region="total", measure="rmr",
    ),
    MetricSpec(
        key="agRatio", display_name="Android/Gynoid Ratio",
        aliases=exact("A/G Ratio", "Android/Gynoid Ratio"),
        units=(), plausible_range=(0.2, 3.0),
        category="Body Composition", region="total", measure="agRatio",
    ),
    *(
        _region_metric(region, "fatPercent", "Fat", ("%",), (1.0, 80.0))
        for region in ("arms", "legs", "trunk", "android", "gynoid")
    ),
    *(
        _region_metric(region, "fatMass", "Fat Mass", _MASS_UNITS, (0.1, 300.0))
        for region in ("arms", "legs", "trunk", "android", "gynoid")
    ),
    *(
        _region_metric(region, "leanMass", "Lean Mass", _MASS_UNITS, (0.5, 300.0))
        for region in ("arms", "legs", "trunk")
    ),
)

BODY_REGIONS: tuple[str, ...] = (
    "total", "arms", "legs", "trunk", "android", "gynoid", "visceral", "bone",
)

_BY_KEY: dict[str, MetricSpec] = {spec.key: spec for spec in BIOMARKERS + BODY_COMP_METRICS}


def get_spec(key: str) -> MetricSpec | None:
    """Look up a biomarker or composition metric by canonical key."""
    return _BY_KEY.get(key)


def phenoage_keys() -> tuple[str, ...]:
    return tuple(spec.key for spec in BIOMARKERS if "phenoage" in spec.tags)
