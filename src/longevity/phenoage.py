# src/longevity/phenoage.py — v2
"""Levine PhenoAge (Levine et al., 2018, doi:10.18632/aging.101414).

Inputs are in the units labs usually report: albumin g/dL, creatinine
mg/dL, glucose mg/dL (converted to mmol/L here), CRP mg/L, lymphocytes %,
MCV fL, RDW %, ALP U/L, WBC 10³/µL, age in years. ``inputs_from_readings``
converts extracted readings reported in other units first.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping

from pydantic import BaseModel

from healthfacts.core.models import BiomarkerReading

logger = logging.getLogger(__name__)

REQUIRED_KEYS: tuple[str, ...] = (
    "albumin", "creatinine", "glucose", "crp", "lymphocytePercent",
    "mcv", "rdw", "alkalinePhosphatase", "wbc",
)

GLUCOSE_MG_PER_MMOL = 18.02
GAMMA = 0.0077
MAX_MORTALITY = 0.9999

# Wide bounds; values outside usually mean a unit mix-up, not a real result.
SANITY_RANGES: dict[str, tuple[float, float]] = {
    "albumin": (1.0, 10.0),
    "creatinine": (0.1, 15.0),
    "glucose": (40.0, 500.0),
    "crp": (0.0, 100.0),
    "lymphocytePercent": (1.0, 80.0),
    "mcv": (50.0, 150.0),
    "rdw": (5.0, 30.0),
    "alkalinePhosphatase": (10.0, 500.0),
    "wbc": (1.0, 50.0),
}


# key -> unit as extracted -> factor into the unit the formula expects.
# A unit listed nowhere (RDW-SD in fL) cannot be converted and is dropped.
UNIT_FACTORS: dict[str, dict[str, float]] = {
    "albumin": {"g/dL": 1.0, "gm/dL": 1.0},
    "creatinine": {"mg/dL": 1.0, "µmol/L": 1 / 88.42},
    "glucose": {"mg/dL": 1.0, "mmol/L": GLUCOSE_MG_PER_MMOL},
    "crp": {"mg/L": 1.0, "mg/dL": 10.0},
    "lymphocytePercent": {"%": 1.0},
    "lymphocytes": {"cells/µL": 1.0, "x10³/µL": 1000.0},
    "mcv": {"fL": 1.0},
    "rdw": {"%": 1.0},
    "alkalinePhosphatase": {"U/L": 1.0, "IU/L": 1.0},
    "wbc": {"x10³/µL": 1.0, "K/µL": 1.0, "x10^9/L": 1.0},
}


class PhenoAgeResult(BaseModel):
    pheno_age: float
    delta: float


def _round1(value: float) -> float:
    return math.floor(value * 10 + 0.5) / 10


def inputs_from_readings(readings: Mapping[str, BiomarkerReading]) -> dict[str, float]:
    """Formula inputs from extracted readings, converted to the expected units.

    A reading without a unit is taken as already in the expected unit.
    """
    values: dict[str, float] = {}
    for key, factors in UNIT_FACTORS.items():
        reading = readings.get(key)
        if reading is None:
            continue
        if not reading.unit:
            values[key] = reading.value
            continue
        factor = factors.get(reading.unit)
        if factor is None:
            logger.debug("PhenoAge input %s in unsupported unit %r, skipped", key, reading.unit)
            continue
        values[key] = reading.value * factor
    return values


def derive_lymphocyte_percent(values: Mapping[str, float]) -> float | None:
    """Lymphocyte % from the absolute count (cells/µL) and WBC (10³/µL)."""
    lymphocytes = values.get("lymphocytes")
    wbc = values.get("wbc")
    if lymphocytes is None or wbc is None or wbc <= 0:
        return None
    return lymphocytes / (wbc * 1000) * 100


def calculate_phenoage(values: Mapping[str, float], age: float) -> PhenoAgeResult | None:
    """PhenoAge and its delta to chronological age, or None if an input is missing.

    A negative delta means biologically younger.
    """
    inputs = {key: values[key] for key in REQUIRED_KEYS if key in values}
    if "lymphocytePercent" not in inputs:
        derived = derive_lymphocyte_percent(values)
        if derived is not None:
            logger.debug("Derived lymphocytePercent %.1f from absolute count", derived)
            inputs["lymphocytePercent"] = derived

    missing = [key for key in REQUIRED_KEYS if key not in inputs]
    if missing:
        logger.debug("PhenoAge skipped, missing: %s", ", ".join(missing))
        return None

    for key, value in inputs.items():
        low, high = SANITY_RANGES[key]
        if not low <= value <= high:
            logger.warning(
                "PhenoAge input %s=%s outside expected range %s-%s (unit mismatch?)",
                key, value, low, high,
            )

    crp = inputs["crp"] if inputs["crp"] > 0 else 0.01
    xb = (
        -19.9067
        - 0.0336 * inputs["albumin"]
        + 0.0095 * inputs["creatinine"]
        + 0.1953 * (inputs["glucose"] / GLUCOSE_MG_PER_MMOL)
        + 0.0954 * math.log(crp)
        - 0.012 * inputs["lymphocytePercent"]
        + 0.0268 * inputs["mcv"]
        + 0.3306 * inputs["rdw"]
        + 0.00188 * inputs["alkalinePhosphatase"]
        + 0.0554 * inputs["wbc"]
        + 0.0804 * age
    )
    mortality = 1 - math.exp(-math.exp(xb) * (math.exp(120 * GAMMA) - 1) / GAMMA)
    mortality = min(mortality, MAX_MORTALITY)
    if mortality <= 0:
        pheno = 0.0
    else:
        pheno = 141.50225 + math.log(-0.00553 * math.log(1 - mortality)) / 0.090165

    pheno = _round1(max(0.0, min(150.0, pheno)))
    return PhenoAgeResult(pheno_age=pheno, delta=_round1(pheno - age))
