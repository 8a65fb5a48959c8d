"""Charts for the core inflation measures."""

from typing import Any, Optional
import logging

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns

from core_inflation.data.structs import MEASURE_COLUMNS, CoreSeries
from core_inflation.measures.distribution import (
    WeightedDistribution,
    weighted_quantile,
)
from core_inflation.measures.trimmed import TrimWindow

logger = logging.getLogger(__name__)


def plot_core_measures(
    core: CoreSeries,
    headline: Optional[pd.Series] = None,
    ax=None,
    title: str = "Core inflation measures",
) -> Any:
    """
    Line chart of CPI-trim, CPI-median and CPI-common.

    Args:
        core: Aggregated core series (percentage points)
        headline: Optional headline year-over-year inflation, in percent
        ax: Matplotlib axes (optional)
        title: Chart title

    Returns:
        Matplotlib axes object
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=(12, 6))

    for column in MEASURE_COLUMNS:
        series = core.data[column].dropna()
        if not series.empty:
            sns.lineplot(x=series.index, y=series.values, label=column, ax=ax)

    if headline is not None:
        ax.plot(headline.index, headline.values, color="grey", linestyle="--", label="CPI")

    ax.axhline(0, color="black", linewidth=0.5)
    ax.set_xlabel("")
    ax.set_ylabel("Year-over-year change (%)")
    ax.set_title(title)
    ax.legend(loc="upper left")

    return ax


def plot_component_distribution(
    dist: WeightedDistribution,
    window: Optional[TrimWindow] = None,
    bins: int = 30,
    ax=None,
) -> Any:
    """
    Weighted histogram of one period's component changes with the trim
    cut points and the median marked.

    Args:
        dist: Distribution of one period
        window: Trim window to mark (defaults to 0.25 / 0.75)
        bins: Number of histogram bins
        ax: Matplotlib axes (optional)

    Returns:
        Matplotlib axes object
    """
    window = window or TrimWindow()
    if ax is None:
        fig, ax = plt.subplots(figsize=(8, 4))

    values_pct = np.asarray(dist.values) * 100
    ax.hist(values_pct, bins=bins, weights=dist.weights, edgecolor="black", alpha=0.7)

    if not dist.is_empty:
        for q, style in ((window.lower, ":"), (0.5, "-"), (window.upper, ":")):
            cut = weighted_quantile(dist.values, dist.weights, q) * 100
            ax.axvline(cut, color="red", linestyle=style)
    else:
        logger.debug(f"No weighted observations on {dist.date}; cut points not drawn")

    ax.set_xlabel("Price change (%)")
    ax.set_ylabel("Basket weight")
    ax.set_title(f"Component price changes, {pd.Timestamp(dist.date):%Y-%m}")

    return ax
