"""
Tests for ScoreStandardizer - raw score -> cohort z-score.
"""

import math

import pytest

from crossmarket.reconciliation.standardizer import ScoreStandardizer
from crossmarket.reconciliation.types import CohortStats, StandardizationMode


@pytest.fixture
def standardizer():
    return ScoreStandardizer()


def make_stats(mean=20.0, std_dev=8.165, count=3):
    return CohortStats(country="SE", year=2024, mean=mean, std_dev=std_dev, count=count)


class TestStandardize:

    def test_known_value(self, standardizer):
        assert standardizer.standardize(30, 20, 8.165) == pytest.approx(1.2247, abs=0.001)

    def test_mean_is_zero(self, standardizer):
        assert standardizer.standardize(20, 20, 8.165) == 0.0

    def test_small_cohort_refused(self, standardizer):
        assert standardizer.standardize(30, 20, 8.165, count=1) is None
        assert standardizer.standardize(30, 20, 8.165, count=2) is not None

    @pytest.mark.parametrize("raw,mean,std_dev", [
        (None, 20, 8.0),
        (30, None, 8.0),
        (30, 20, None),
        (30, 20, 0.0),
        (30, 20, -1.0),
        (math.nan, 20, 8.0),
        (30, math.inf, 8.0),
    ])
    def test_invalid_inputs(self, standardizer, raw, mean, std_dev):
        assert standardizer.standardize(raw, mean, std_dev) is None


class TestWithStats:

    def test_valid_cohort(self, standardizer):
        assert standardizer.standardize_with_stats(30, make_stats()) == pytest.approx(1.2247, abs=0.001)

    def test_invalid_cohort(self, standardizer):
        assert standardizer.standardize_with_stats(30, make_stats(count=1)) is None
        assert standardizer.standardize_with_stats(30, None) is None


class TestApply:

    def test_raw_mode_passthrough(self, standardizer):
        assert standardizer.apply(30, None, StandardizationMode.RAW) == 30
        assert standardizer.apply(None, make_stats(), StandardizationMode.RAW) is None

    def test_standardized_mode(self, standardizer):
        assert standardizer.apply(30, make_stats(), StandardizationMode.STANDARDIZED) == pytest.approx(1.2247, abs=0.001)

    def test_standardized_mode_gap_never_zero(self, standardizer):
        value = standardizer.apply(20, make_stats(count=1), StandardizationMode.STANDARDIZED)
        assert value is None
