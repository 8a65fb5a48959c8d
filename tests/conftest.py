"""Pytest configuration and shared fixtures."""

import pytest
import pandas as pd
import numpy as np


def make_panel(monthly_rates, weights, start="2020-01-01", base_level=100.0):
    """
    Build a tidy (date, component, level, weight) table.

    Args:
        monthly_rates: {component: sequence of month-over-month rates}; the
            first level is ``base_level`` and each rate moves it one month on
        weights: {component: basket share}
        start: First month
        base_level: Starting index level

    Returns:
        DataFrame with one row per (date, component)
    """
    rows = []
    for component, rates in monthly_rates.items():
        levels = base_level * np.cumprod(np.concatenate(([1.0], 1.0 + np.asarray(rates, dtype=float))))
        dates = pd.date_range(start=start, periods=len(levels), freq="MS")
        for date, level in zip(dates, levels):
            rows.append({
                "date": date,
                "component": component,
                "level": level,
                "weight": weights[component],
            })
    return pd.DataFrame(rows)


@pytest.fixture
def panel_factory():
    """Expose the panel builder to tests."""
    return make_panel


@pytest.fixture
def three_component_panel():
    """
    14 months of levels for three components weighted 0.5 / 0.3 / 0.2.

    Component 'energy' jumps 50% in month 13 (the 12th monthly change).
    """
    food = [0.002] * 13
    shelter = [0.003] * 13
    energy = [0.0025] * 11 + [0.50, 0.0025]
    return make_panel(
        {"food": food, "shelter": shelter, "energy": energy},
        {"food": 0.5, "shelter": 0.3, "energy": 0.2},
    )


@pytest.fixture
def factor_panel():
    """
    36 months for four components driven by one common monthly shock plus
    idiosyncratic noise.
    """
    rng = np.random.default_rng(42)
    common = 0.002 + 0.003 * np.sin(np.arange(35) / 4.0)
    rates = {
        name: common * scale + rng.normal(0, 0.0005, 35)
        for name, scale in [("goods", 1.2), ("services", 0.8), ("food", 1.0), ("energy", 2.0)]
    }
    weights = {"goods": 0.3, "services": 0.4, "food": 0.2, "energy": 0.1}
    return make_panel(rates, weights)


@pytest.fixture
def pipeline_config(tmp_path):
    """Pipeline overrides writing logs and outputs under tmp_path."""
    return {
        "output": {"directory": str(tmp_path / "output"), "prefix": "core_inflation"},
        "logging": {"directory": str(tmp_path / "logs")},
    }
