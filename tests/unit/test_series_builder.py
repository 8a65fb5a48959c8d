"""Unit tests for component change construction."""

import pytest
import pandas as pd
import numpy as np

from core_inflation.data.series_builder import SeriesBuilder
from core_inflation.utils.error_handling import MissingDataError, NonFiniteValueError


def _horizon(changes, horizon, component=None):
    subset = changes[changes["horizon"] == horizon]
    if component is not None:
        subset = subset[subset["component"] == component]
    return subset.set_index("date")


class TestSeriesBuilder:
    """Tests for SeriesBuilder."""

    def test_month_over_month_and_year_over_year(self, panel_factory):
        """Constant monthly rates give constant mom and compounded yoy changes."""
        panel = panel_factory({"a": [0.01] * 14}, {"a": 1.0})
        changes = SeriesBuilder().build(panel)

        mom = _horizon(changes, "mom", "a")
        yoy = _horizon(changes, "yoy", "a")

        assert len(mom) == 14
        assert len(yoy) == 3
        np.testing.assert_allclose(mom["change"], 0.01)
        np.testing.assert_allclose(yoy["change"], 1.01 ** 12 - 1)

    def test_first_observations_are_dropped(self, panel_factory):
        """No change exists without a lag base."""
        panel = panel_factory({"a": [0.01] * 14}, {"a": 1.0})
        changes = SeriesBuilder().build(panel)

        first = panel["date"].min()
        assert first not in _horizon(changes, "mom").index
        assert _horizon(changes, "yoy").index.min() == first + pd.DateOffset(months=12)

    def test_zero_and_negative_base_levels_are_dropped(self, panel_factory):
        """Changes against a non-positive base are excluded, not propagated as inf."""
        panel = panel_factory({"a": [0.01] * 5, "b": [0.01] * 5}, {"a": 0.5, "b": 0.5})
        dates = sorted(panel["date"].unique())
        panel.loc[(panel["component"] == "a") & (panel["date"] == dates[2]), "level"] = 0.0
        panel.loc[(panel["component"] == "b") & (panel["date"] == dates[3]), "level"] = -5.0

        mom = _horizon(SeriesBuilder().build(panel), "mom")

        assert np.isfinite(mom["change"]).all()
        assert dates[3] not in mom[mom["component"] == "a"].index
        assert dates[4] not in mom[mom["component"] == "b"].index
        # The month with the bad level itself still has a defined change
        assert dates[2] in mom[mom["component"] == "a"].index

    def test_missing_month_breaks_the_lag(self, panel_factory):
        """A gap leaves both the missing month and the next one undefined."""
        panel = panel_factory({"a": [0.01] * 6}, {"a": 1.0})
        dates = sorted(panel["date"].unique())
        panel = panel[panel["date"] != dates[3]]

        mom = _horizon(SeriesBuilder().build(panel), "mom")

        assert dates[3] not in mom.index
        assert dates[4] not in mom.index
        assert dates[5] in mom.index

    def test_separate_weight_table_left_join(self, panel_factory):
        """Weights come from a separate table; unmatched rows keep a missing weight."""
        panel = panel_factory({"a": [0.01] * 3, "b": [0.02] * 3}, {"a": 0.6, "b": 0.4})
        weights = panel[["date", "component", "weight"]].iloc[:-1]
        observations = panel.drop(columns="weight")

        mom = _horizon(SeriesBuilder().build(observations, weights), "mom")

        assert len(mom) == 6
        assert mom["weight"].isna().sum() == 1
        assert set(mom["weight"].dropna().round(6)) == {0.6, 0.4}

    def test_weight_scale_converts_percentages(self, panel_factory):
        panel = panel_factory({"a": [0.01] * 2, "b": [0.01] * 2}, {"a": 60.0, "b": 40.0})
        changes = SeriesBuilder(weight_scale=100.0).build(panel)
        totals = changes[changes["horizon"] == "mom"].groupby("date")["weight"].sum()
        np.testing.assert_allclose(totals, 1.0)

    def test_duplicate_observation_raises(self, panel_factory):
        panel = panel_factory({"a": [0.01] * 3}, {"a": 1.0})
        panel = pd.concat([panel, panel.iloc[[0]]], ignore_index=True)
        with pytest.raises(ValueError, match="duplicated"):
            SeriesBuilder().build(panel)

    def test_missing_columns_raise(self, panel_factory):
        panel = panel_factory({"a": [0.01] * 3}, {"a": 1.0})
        with pytest.raises(MissingDataError, match="level"):
            SeriesBuilder().build(panel.drop(columns="level"))
        with pytest.raises(MissingDataError, match="weight"):
            SeriesBuilder().build(panel.drop(columns="weight"))

    def test_single_observation_per_component_raises(self, panel_factory):
        """Nothing can be computed from one month of data."""
        panel = panel_factory({"a": [], "b": []}, {"a": 0.5, "b": 0.5})
        with pytest.raises(MissingDataError):
            SeriesBuilder().build(panel)

    def test_only_zero_bases_raise_non_finite(self):
        panel = pd.DataFrame({
            "date": pd.to_datetime(["2021-01-01", "2021-02-01"]),
            "component": ["a", "a"],
            "level": [0.0, 5.0],
            "weight": [1.0, 1.0],
        })
        with pytest.raises(NonFiniteValueError, match="zero or negative base"):
            SeriesBuilder().build(panel)

    def test_invalid_weight_scale(self):
        with pytest.raises(ValueError):
            SeriesBuilder(weight_scale=0)

    def test_pivot_and_summary(self, panel_factory):
        panel = panel_factory({"a": [0.01] * 13, "b": [0.02] * 13}, {"a": 0.5, "b": 0.5})
        builder = SeriesBuilder()
        changes = builder.build(panel)

        wide = builder.pivot(changes, "yoy")
        assert list(wide.columns) == ["a", "b"]
        assert len(wide) == 2
        assert wide.index.is_monotonic_increasing

        summary = builder.get_build_summary(panel, changes)
        assert summary["input_rows"] == 28
        assert summary["components"] == 2
        assert summary["mom_rows"] == 26
        assert summary["yoy_rows"] == 4
        assert summary["mom_rows_without_weight"] == 0
