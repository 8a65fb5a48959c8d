"""Charting helpers."""

from core_inflation.visualization.charts import (
    plot_core_measures,
    plot_component_distribution,
)

__all__ = ["plot_core_measures", "plot_component_distribution"]
