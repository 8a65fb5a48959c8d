"""Core inflation estimators: trimmed mean, weighted median and common factor."""

from core_inflation.measures.distribution import (
    DistributionSampler,
    WeightedDistribution,
    weighted_quantile,
    weighted_trimmed_mean,
)
from core_inflation.measures.trimmed import TrimMedianEstimator, TrimWindow
from core_inflation.measures.common_factor import (
    CommonFactorExtractor,
    FactorExtractor,
    FactorResult,
    RegressionFit,
    aggregate_fitted,
    fit_components,
)
from core_inflation.measures.aggregator import Aggregator

__all__ = [
    "DistributionSampler",
    "WeightedDistribution",
    "weighted_quantile",
    "weighted_trimmed_mean",
    "TrimMedianEstimator",
    "TrimWindow",
    "CommonFactorExtractor",
    "FactorExtractor",
    "FactorResult",
    "RegressionFit",
    "aggregate_fitted",
    "fit_components",
    "Aggregator",
]
