"""End-to-end scenarios for the core inflation pipeline."""

from datetime import datetime

import numpy as np
import pandas as pd
import pytest

from core_inflation.data.loaders import DataLoader
from core_inflation.data.series_builder import SeriesBuilder
from core_inflation.pipeline import CoreInflationPipeline
from core_inflation.utils.serialization import load_core_series


def test_trim_excludes_outlier(three_component_panel, pipeline_config):
    """
    14 months, three components weighted 0.5 / 0.3 / 0.2, with a +50% jump
    in one component in month 13. CPI-trim stays near the other two
    components while a plain weighted mean does not.
    The common factor is undetermined on this panel (see below), so the
    remaining measures are published with the 'inner_available' join.
    """
    config = {**pipeline_config, "aggregate": {"join": "inner_available"}}
    result = CoreInflationPipeline(config=config).run(three_component_panel)
    # First year-over-year date of the chained index; its window holds the jump
    month = pd.Timestamp("2021-02-01")

    assert list(result.core.dates) == [month]
    trim = result.core.data.loc[month, "CPI-trim"]
    median = result.core.data.loc[month, "CPI-median"]

    yoy = SeriesBuilder.pivot(result.changes, "yoy").loc[month] * 100
    weights = SeriesBuilder.pivot(result.changes, "yoy", values="weight").loc[month]
    naive = (yoy * weights).sum()
    others = yoy[["food", "shelter"]].mean()

    assert naive > 10
    assert trim < 4
    assert abs(trim - others) < 0.5
    assert abs(median - others) < 0.5


def test_constant_yoy_changes_leave_common_undetermined(three_component_panel, pipeline_config):
    """
    Components with no year-over-year variation cannot be standardized, so
    the inner join, which needs all three measures, publishes no date.
    """
    result = CoreInflationPipeline(config=pipeline_config).run(three_component_panel)

    assert "common" in result.failures
    assert result.factor is None
    assert len(result.core) == 0
    assert len(result.trim_median) == 13


def test_missing_level_excluded_from_common_only(factor_panel, pipeline_config):
    """
    A missing level in the complete-case matrix removes that date from
    CPI-common while CPI-trim and CPI-median are still published for it.
    """
    gap = pd.Timestamp("2022-06-01")
    panel = factor_panel[~((factor_panel["component"] == "energy") & (factor_panel["date"] == gap))]

    config = {**pipeline_config, "aggregate": {"join": "outer"}}
    result = CoreInflationPipeline(config=config).run(panel)

    assert gap in result.trim_median.index
    assert gap not in result.common.index
    assert gap in result.factor.dropped_dates
    assert np.isnan(result.core.data.loc[gap, "CPI-common"])
    assert np.isfinite(result.core.data.loc[gap, "CPI-trim"])
    assert np.isfinite(result.core.data.loc[gap, "CPI-median"])

    inner = CoreInflationPipeline(config=pipeline_config).run(panel)
    assert gap not in inner.core.dates


def test_exact_and_replicate_methods_agree(factor_panel, pipeline_config):
    exact = CoreInflationPipeline(config=pipeline_config).run(factor_panel)
    replicate = CoreInflationPipeline(config={
        **pipeline_config, "distribution": {"method": "replicate", "precision": 100000},
    }).run(factor_panel)

    np.testing.assert_allclose(
        exact.core.data[["CPI-trim", "CPI-median"]].values,
        replicate.core.data[["CPI-trim", "CPI-median"]].values,
        atol=0.05,
    )


def test_file_to_file_run(tmp_path, factor_panel, pipeline_config):
    """Load from CSV with source column names, run, and write the dated artifact."""
    source = factor_panel.rename(columns={
        "date": "Date", "component": "Component", "level": "Index", "weight": "Weight",
    })
    source["Weight"] = source["Weight"] * 100
    source_path = tmp_path / "cpi_components.csv"
    source.to_csv(source_path, index=False)

    observations = DataLoader().load(source_path, column_map={
        "Date": "date", "Component": "component", "Index": "level", "Weight": "weight",
    })
    config = {**pipeline_config, "input": {"weight_scale": 100.0}}
    pipeline = CoreInflationPipeline(config=config, clock=lambda: datetime(2025, 1, 31))

    result = pipeline.run(observations)
    path = pipeline.save(result)

    assert path.name == "core_inflation_2025-01-31.csv"
    saved = load_core_series(path)
    assert saved.index.is_monotonic_increasing
    assert len(saved) == len(result.core)
    expected = CoreInflationPipeline(config=pipeline_config).run(factor_panel).core.data
    np.testing.assert_allclose(saved.values, expected.values, atol=1e-4)
