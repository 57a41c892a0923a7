# tests/unit/extraction/test_registry.py — v1
"""Tests for extraction/registry.py — static metric tables."""

from __future__ import annotations

import pytest

from healthfacts.extraction.registry import (
    BIOMARKERS,
    BODY_COMP_METRICS,
    BODY_REGIONS,
    Alias,
    get_spec,
    phenoage_keys,
)
from healthfacts.longevity.phenoage import REQUIRED_KEYS


class TestTables:
    def test_keys_unique(self):
        keys = [spec.key for spec in BIOMARKERS + BODY_COMP_METRICS]
        assert len(keys) == len(set(keys))

    def test_every_spec_has_alias(self):
        for spec in BIOMARKERS + BODY_COMP_METRICS:
            assert spec.aliases, spec.key

    def test_plausible_ranges_ordered(self):
        for spec in BIOMARKERS + BODY_COMP_METRICS:
            low, high = spec.plausible_range
            assert low < high, spec.key

    def test_phenoage_inputs_covered(self):
        assert set(phenoage_keys()) == set(REQUIRED_KEYS)

    @pytest.mark.parametrize("key", [
        "ldl", "hdl", "triglycerides", "totalCholesterol", "vitaminD", "hba1c",
        "fastingInsulin", "homocysteine", "ferritin", "tsh", "freeT4", "freeT3",
    ])
    def test_additional_biomarkers(self, key):
        assert get_spec(key) is not None

    def test_body_comp_regions_known(self):
        for spec in BODY_COMP_METRICS:
            assert spec.region in BODY_REGIONS, spec.key

    def test_regional_metric_keys(self):
        spec = get_spec("armsFatMass")
        assert spec.region == "arms"
        assert spec.measure == "fatMass"
        assert spec.aliases[0].pattern == "Arms Fat Mass"

    def test_negative_only_for_scores(self):
        negative = {spec.key for spec in BODY_COMP_METRICS if spec.plausible_range[0] < 0}
        assert negative == {"boneDensityTScore", "boneDensityZScore"}

    def test_unknown_key(self):
        assert get_spec("unobtainium") is None


class TestMetricSpec:
    def test_is_plausible_inclusive(self):
        spec = get_spec("vitaminD")
        assert spec.is_plausible(1.0)
        assert spec.is_plausible(250.0)
        assert not spec.is_plausible(4521)
        assert not spec.is_plausible(0.5)

    def test_default_unit(self):
        assert get_spec("vitaminD").default_unit == "ng/mL"
        assert get_spec("agRatio").default_unit == ""


class TestAlias:
    def test_exact_is_case_and_space_insensitive(self):
        alias = Alias("Fasting Blood Sugar")
        assert alias.regex.search("FASTING  BLOOD\tSUGAR")

    def test_exact_alias_needs_word_start(self):
        alias = Alias("Albumin")
        assert alias.regex.search("SERUM ALBUMIN")
        assert not alias.regex.search("microalbumin")

    def test_exact_alias_glued_after_unit(self):
        alias = Alias("25-OH Vitamin D")
        m = alias.regex.search("ng/mL25-OH VITAMIN D")
        assert m is not None
        assert m.group(0) == "25-OH VITAMIN D"
        assert not alias.regex.search("125-OH Vitamin D")

    def test_fuzzy(self):
        alias = Alias(r"\bhs[\s-]*crp\b", exact=False)
        assert alias.regex.search("HS-CRP 1.2 mg/L")
        assert alias.regex.search("hs crp")
