"""Per-period weighted distributions of component price changes.

Two ways of answering order-statistic queries are provided:

- ``weighted_quantile`` / ``weighted_trimmed_mean`` work on (value, weight)
  pairs directly: values are sorted and cumulative weight shares locate
  each value's mass.
- ``DistributionSampler.replicate`` expands each value into
  ``round(weight * precision)`` copies so the distribution can be treated as
  an unweighted multiset. The precision multiplier bounds both accuracy and
  memory: the multiset has about ``precision`` elements per period when
  weights are shares, and rounding to integer counts is exact only as
  ``precision`` grows.

The direct functions return what linear-interpolation order statistics on
the replicated multiset converge to as ``precision`` grows, so both methods
agree up to rounding of the replication counts.
"""

from dataclasses import dataclass, field
from typing import Iterator, List
import logging

import numpy as np
import pandas as pd

from core_inflation.data.structs import DATE, COMPONENT, HORIZON, CHANGE, WEIGHT, MOM
from core_inflation.utils.error_handling import DegenerateDistributionError

logger = logging.getLogger(__name__)

# Replicated multisets above this many elements are reported in the log
LARGE_SAMPLE_WARNING = 5_000_000

# Cumulative shares this close to a quantile count as landing on it
BOUNDARY_TOLERANCE = 1e-9


@dataclass
class WeightedDistribution:
    """
    Price changes of all components reporting in one period.

    Attributes:
        date: Period the distribution belongs to
        values: Finite price changes
        weights: Non-negative basket shares aligned with ``values``
        components: Component identifiers aligned with ``values``
    """
    date: pd.Timestamp
    values: np.ndarray
    weights: np.ndarray
    components: List[str] = field(default_factory=list)

    def __post_init__(self):
        self.values = np.asarray(self.values, dtype=float)
        self.weights = np.asarray(self.weights, dtype=float)
        if self.values.shape != self.weights.shape:
            raise ValueError("Values and weights must share the same shape.")
        if np.any(self.weights < 0):
            raise ValueError(f"Negative basket weight in distribution for {self.date}")

    @classmethod
    def from_frame(cls, date, frame: pd.DataFrame) -> "WeightedDistribution":
        """
        Build a distribution from one period of the change table.

        Components with a missing or non-finite change or weight are left out.
        """
        values = frame[CHANGE].to_numpy(dtype=float)
        weights = frame[WEIGHT].to_numpy(dtype=float)
        valid = np.isfinite(values) & np.isfinite(weights)
        components = frame[COMPONENT].astype(str).to_numpy()[valid].tolist()
        return cls(date=date, values=values[valid], weights=weights[valid], components=components)

    @property
    def size(self) -> int:
        return int(self.values.size)

    @property
    def total_weight(self) -> float:
        return float(self.weights.sum())

    @property
    def is_empty(self) -> bool:
        return self.size == 0 or self.total_weight <= 0


def _sorted_mass(values: np.ndarray, weights: np.ndarray):
    """Sort by value and drop zero-weight entries."""
    values = np.asarray(values, dtype=float)
    weights = np.asarray(weights, dtype=float)
    if values.size == 0 or weights.sum() <= 0:
        raise DegenerateDistributionError("Distribution has no weighted observations")
    order = np.argsort(values, kind="mergesort")
    sorted_vals, sorted_wts = values[order], weights[order]
    keep = sorted_wts > 0
    return sorted_vals[keep], sorted_wts[keep]


def weighted_quantile(values, weights, q: float) -> float:
    """
    Weighted quantile (inverse of the cumulative weight share).

    Returns the smallest value whose cumulative share reaches ``q``. When
    ``q`` falls exactly on the boundary between two values, the two are
    averaged, which is how linear interpolation resolves the same rank on
    a replicated sample. With equal weights the median matches the usual
    median of the values.

    Args:
        values: Observations
        weights: Non-negative weights aligned with ``values``
        q: Quantile in [0, 1]

    Returns:
        Interpolated quantile

    Raises:
        DegenerateDistributionError: If there is no positive weight
    """
    if not 0.0 <= q <= 1.0:
        raise ValueError(f"Quantile must lie in [0, 1], got {q}")
    sorted_vals, sorted_wts = _sorted_mass(values, weights)
    cum = np.cumsum(sorted_wts) / sorted_wts.sum()
    idx = min(int(np.searchsorted(cum, q - BOUNDARY_TOLERANCE, side="left")), cum.size - 1)

    if idx < cum.size - 1 and abs(cum[idx] - q) <= BOUNDARY_TOLERANCE:
        return float(0.5 * (sorted_vals[idx] + sorted_vals[idx + 1]))
    return float(sorted_vals[idx])


def weighted_trimmed_mean(values, weights, lower: float, upper: float) -> float:
    """
    Mean of the weight mass lying between two cumulative shares.

    Each value's share of the cumulative weight distribution is clipped to
    ``[lower, upper]``; values entirely outside the window drop out and the
    values straddling a cut point keep only their inner mass.

    Args:
        values: Observations
        weights: Non-negative weights aligned with ``values``
        lower: Cumulative share below which mass is discarded
        upper: Cumulative share above which mass is discarded

    Returns:
        Trimmed mean

    Raises:
        DegenerateDistributionError: If there is no positive weight
    """
    if not 0.0 <= lower < upper <= 1.0:
        raise ValueError(f"Invalid trim window [{lower}, {upper}]")
    sorted_vals, sorted_wts = _sorted_mass(values, weights)
    cum = np.concatenate(([0.0], np.cumsum(sorted_wts))) / sorted_wts.sum()
    retained = np.clip(cum[1:], lower, upper) - np.clip(cum[:-1], lower, upper)
    return float(np.dot(sorted_vals, retained) / retained.sum())


class DistributionSampler:
    """Groups component changes into per-period weighted distributions."""

    def __init__(self, precision: int = 10_000):
        """
        Args:
            precision: Replication count per unit of weight (M). Larger
                values cost memory and time and reduce rounding error.
        """
        if precision < 1:
            raise ValueError(f"precision must be at least 1, got {precision}")
        self.precision = int(precision)

    def distributions(
        self,
        changes: pd.DataFrame,
        horizon: str = MOM,
    ) -> Iterator[WeightedDistribution]:
        """
        Yield one distribution per date of the given horizon, ascending.

        Args:
            changes: Long change table from ``SeriesBuilder.build``
            horizon: 'mom' or 'yoy'

        Yields:
            WeightedDistribution for each date
        """
        subset = changes[changes[HORIZON] == horizon]
        for date, frame in subset.groupby(DATE, sort=True):
            yield WeightedDistribution.from_frame(date, frame)

    def replication_counts(self, dist: WeightedDistribution) -> np.ndarray:
        """Number of copies of each value: ``round(weight * precision)``."""
        return np.rint(dist.weights * self.precision).astype(np.int64)

    def replicate(self, dist: WeightedDistribution) -> np.ndarray:
        """
        Expand a distribution into a weight-proportional multiset.

        Values are concatenated in component order, not sorted.

        Returns:
            Array of length ``sum(round(weight_i * precision))``
        """
        counts = self.replication_counts(dist)
        total = int(counts.sum())
        if total > LARGE_SAMPLE_WARNING:
            logger.warning(
                f"Replicated distribution for {dist.date} has {total} elements; "
                f"consider a smaller precision than {self.precision}"
            )
        return np.repeat(dist.values, counts)
