"""Unit tests for the trimmed-mean and median estimator."""

import pytest
import pandas as pd
import numpy as np

from core_inflation.data.series_builder import SeriesBuilder
from core_inflation.measures.distribution import DistributionSampler, WeightedDistribution
from core_inflation.measures.trimmed import TrimMedianEstimator, TrimWindow
from core_inflation.utils.error_handling import DegenerateDistributionError


DATE = pd.Timestamp("2021-01-01")


class TestTrimWindow:
    """Tests for TrimWindow."""

    def test_default_and_canonical(self):
        assert TrimWindow() == TrimWindow(0.25, 0.75)
        assert TrimWindow.canonical() == TrimWindow(0.20, 0.80)
        assert TrimWindow.symmetric(0.1) == TrimWindow(0.1, 0.9)
        assert TrimWindow().retention == pytest.approx(0.5)
        assert TrimWindow.canonical().retention == pytest.approx(0.6)

    @pytest.mark.parametrize("lower,upper", [(0.5, 0.5), (0.8, 0.2), (-0.1, 0.5), (0.2, 1.1)])
    def test_invalid_windows(self, lower, upper):
        with pytest.raises(ValueError):
            TrimWindow(lower, upper)


class TestTrimMedianEstimator:
    """Tests for TrimMedianEstimator."""

    @pytest.mark.parametrize("method", ["exact", "replicate"])
    def test_single_component_returns_its_change(self, method):
        estimator = TrimMedianEstimator(method=method)
        dist = WeightedDistribution(DATE, [0.013], [1.0])
        assert estimator.trimmed_mean(dist) == pytest.approx(0.013)
        assert estimator.median(dist) == pytest.approx(0.013)

    @pytest.mark.parametrize("method", ["exact", "replicate"])
    def test_empty_distribution_raises(self, method):
        estimator = TrimMedianEstimator(method=method)
        dist = WeightedDistribution(DATE, [], [])
        with pytest.raises(DegenerateDistributionError):
            estimator.trimmed_mean(dist)
        with pytest.raises(DegenerateDistributionError):
            estimator.median(dist)

    def test_replicate_with_too_coarse_precision_raises(self):
        estimator = TrimMedianEstimator(
            method="replicate", sampler=DistributionSampler(precision=1)
        )
        dist = WeightedDistribution(DATE, [0.01, 0.02], [0.2, 0.2])
        with pytest.raises(DegenerateDistributionError, match="precision"):
            estimator.median(dist)

    def test_methods_agree_at_high_precision(self):
        rng = np.random.default_rng(0)
        values = rng.normal(0.002, 0.01, 40)
        weights = rng.dirichlet(np.ones(40))
        dist = WeightedDistribution(DATE, values, weights)

        exact = TrimMedianEstimator(method="exact")
        replicate = TrimMedianEstimator(
            method="replicate", sampler=DistributionSampler(precision=100_000)
        )

        assert replicate.trimmed_mean(dist) == pytest.approx(exact.trimmed_mean(dist), abs=1e-4)
        assert replicate.median(dist) == pytest.approx(exact.median(dist), abs=1e-3)

    def test_replicate_trim_drops_index_positions(self):
        estimator = TrimMedianEstimator(
            window=TrimWindow(0.25, 0.75),
            method="replicate",
            sampler=DistributionSampler(precision=1),
        )
        dist = WeightedDistribution(DATE, [4.0, 1.0, 3.0, 2.0], [1, 1, 1, 1])
        assert estimator.trimmed_mean(dist) == pytest.approx(2.5)
        assert estimator.median(dist) == pytest.approx(2.5)

    def test_unknown_method(self):
        with pytest.raises(ValueError, match="Unknown method"):
            TrimMedianEstimator(method="nearest")

    def test_estimate_skips_degenerate_dates(self, panel_factory):
        panel = panel_factory({"a": [0.01] * 4, "b": [0.03] * 4}, {"a": 0.5, "b": 0.5})
        dates = sorted(panel["date"].unique())
        panel.loc[panel["date"] == dates[2], "weight"] = np.nan
        changes = SeriesBuilder().build(panel)

        estimator = TrimMedianEstimator()
        result = estimator.estimate(changes)

        assert list(result.columns) == ["trim", "median"]
        assert dates[2] not in result.index
        assert estimator.skipped_dates == [dates[2]]
        assert len(result) == 3
        np.testing.assert_allclose(result["trim"], 0.02)
        np.testing.assert_allclose(result["median"], 0.02)
