# tests/unit/longevity/test_phenoage.py — v2
"""Tests for longevity/phenoage.py."""

from __future__ import annotations

import pytest

from healthfacts.extraction.registry import phenoage_keys
from healthfacts.longevity.phenoage import (
    REQUIRED_KEYS,
    calculate_phenoage,
    derive_lymphocyte_percent,
    inputs_from_readings,
)

HEALTHY = {
    "albumin": 4.5,
    "creatinine": 0.9,
    "glucose": 90.0,
    "crp": 1.0,
    "lymphocytePercent": 30.0,
    "mcv": 90.0,
    "rdw": 13.0,
    "alkalinePhosphatase": 70.0,
    "wbc": 6.0,
}


class TestCalculatePhenoAge:
    def test_healthy_adult(self):
        result = calculate_phenoage(HEALTHY, 40)
        assert result is not None
        assert 35 < result.pheno_age < 50
        assert result.delta == pytest.approx(result.pheno_age - 40, abs=0.051)

    def test_one_decimal(self):
        result = calculate_phenoage(HEALTHY, 40)
        assert result.pheno_age == round(result.pheno_age, 1)
        assert result.delta == round(result.delta, 1)

    @pytest.mark.parametrize("key", REQUIRED_KEYS)
    def test_missing_input(self, key):
        values = {k: v for k, v in HEALTHY.items() if k != key}
        assert calculate_phenoage(values, 40) is None

    def test_lymphocyte_percent_derived(self):
        values = {k: v for k, v in HEALTHY.items() if k != "lymphocytePercent"}
        values["lymphocytes"] = 1800.0
        assert calculate_phenoage(values, 40) == calculate_phenoage(HEALTHY, 40)

    def test_inflammation_raises_age(self):
        low = calculate_phenoage({**HEALTHY, "crp": 0.5}, 40)
        high = calculate_phenoage({**HEALTHY, "crp": 10.0}, 40)
        assert high.pheno_age > low.pheno_age

    def test_older_is_older(self):
        assert calculate_phenoage(HEALTHY, 60).pheno_age > calculate_phenoage(HEALTHY, 40).pheno_age

    def test_zero_crp_accepted(self):
        assert calculate_phenoage({**HEALTHY, "crp": 0.0}, 40) is not None

    def test_clamped_at_zero(self):
        values = {
            "albumin": 5.0, "creatinine": 0.1, "glucose": 40.0, "crp": 0.01,
            "lymphocytePercent": 80.0, "mcv": 50.0, "rdw": 5.0,
            "alkalinePhosphatase": 10.0, "wbc": 1.0,
        }
        result = calculate_phenoage(values, 0)
        assert result.pheno_age == 0.0
        assert result.delta == 0.0

    def test_bounded_above(self):
        values = {**HEALTHY, "crp": 100.0, "rdw": 30.0, "glucose": 500.0}
        result = calculate_phenoage(values, 120)
        assert 0 <= result.pheno_age <= 150

    def test_out_of_range_input_logged(self, caplog):
        with caplog.at_level("WARNING", logger="healthfacts.longevity.phenoage"):
            calculate_phenoage({**HEALTHY, "glucose": 9.0}, 40)
        assert "unit mismatch" in caplog.text


class TestDeriveLymphocytePercent:
    def test_derived(self):
        assert derive_lymphocyte_percent({"lymphocytes": 1800.0, "wbc": 6.0}) == pytest.approx(30.0)

    @pytest.mark.parametrize("values", [{}, {"lymphocytes": 1800.0}, {"lymphocytes": 1800.0, "wbc": 0}])
    def test_not_derivable(self, values):
        assert derive_lymphocyte_percent(values) is None


class TestInputsFromReadings:
    CANONICAL_UNITS = {
        "albumin": "g/dL", "creatinine": "mg/dL", "glucose": "mg/dL", "crp": "mg/L",
        "lymphocytePercent": "%", "mcv": "fL", "rdw": "%",
        "alkalinePhosphatase": "U/L", "wbc": "x10³/µL",
    }

    def test_canonical_units_pass_through(self, make_reading):
        readings = {
            key: make_reading(key=key, value=value, unit=self.CANONICAL_UNITS[key])
            for key, value in HEALTHY.items()
        }
        assert inputs_from_readings(readings) == HEALTHY

    def test_glucose_mmol_converted(self, make_reading):
        values = inputs_from_readings({"glucose": make_reading(key="glucose", value=5.0, unit="mmol/L")})
        assert values["glucose"] == pytest.approx(90.1)

    def test_creatinine_umol_converted(self, make_reading):
        values = inputs_from_readings({"creatinine": make_reading(key="creatinine", value=88.42, unit="µmol/L")})
        assert values["creatinine"] == pytest.approx(1.0)

    def test_crp_mg_dl_converted(self, make_reading):
        values = inputs_from_readings({"crp": make_reading(key="crp", value=0.1, unit="mg/dL")})
        assert values["crp"] == pytest.approx(1.0)

    def test_absolute_lymphocytes_in_thousands(self, make_reading):
        readings = {
            "lymphocytes": make_reading(key="lymphocytes", value=2.1, unit="x10³/µL"),
            "wbc": make_reading(key="wbc", value=6.5, unit="x10³/µL"),
        }
        values = inputs_from_readings(readings)
        assert values["lymphocytes"] == pytest.approx(2100.0)
        assert derive_lymphocyte_percent(values) == pytest.approx(32.31, abs=0.01)

    def test_unconvertible_unit_dropped(self, make_reading):
        values = inputs_from_readings({"rdw": make_reading(key="rdw", value=44.9, unit="fL")})
        assert "rdw" not in values

    def test_missing_unit_taken_as_is(self, make_reading):
        values = inputs_from_readings({"mcv": make_reading(key="mcv", value=90.0, unit="")})
        assert values == {"mcv": 90.0}

    def test_same_age_in_any_unit(self, make_reading):
        readings = {
            key: make_reading(key=key, value=value, unit=self.CANONICAL_UNITS[key])
            for key, value in HEALTHY.items() if key not in ("glucose", "lymphocytePercent")
        }
        readings["glucose"] = make_reading(key="glucose", value=90.0 / 18.02, unit="mmol/L")
        readings["lymphocytes"] = make_reading(key="lymphocytes", value=1.8, unit="x10³/µL")
        result = calculate_phenoage(inputs_from_readings(readings), 40)
        assert result.pheno_age == pytest.approx(calculate_phenoage(HEALTHY, 40).pheno_age, abs=0.1)


def test_registry_tags_match_required_inputs():
    assert set(REQUIRED_KEYS) <= set(phenoage_keys())
