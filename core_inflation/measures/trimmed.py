"""Trimmed-mean and weighted-median estimators (CPI-trim, CPI-median)."""

from dataclasses import dataclass
from typing import List, Optional, Tuple
import logging
import math

import numpy as np
import pandas as pd

from core_inflation.data.structs import DATE, MOM
from core_inflation.measures.distribution import (
    DistributionSampler,
    WeightedDistribution,
    weighted_quantile,
    weighted_trimmed_mean,
)
from core_inflation.utils.error_handling import DegenerateDistributionError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrimWindow:
    """
    Cumulative-weight window retained by the trimmed mean.

    The reference window keeps the middle half of the distribution
    (0.25 to 0.75); the Bank of Canada CPI-trim removes 20% from each tail
    (``TrimWindow.canonical()``).
    """
    lower: float = 0.25
    upper: float = 0.75

    def __post_init__(self):
        if not 0.0 <= self.lower < self.upper <= 1.0:
            raise ValueError(
                f"Trim window must satisfy 0 <= lower < upper <= 1, "
                f"got [{self.lower}, {self.upper}]"
            )

    @classmethod
    def canonical(cls) -> "TrimWindow":
        return cls(0.20, 0.80)

    @classmethod
    def symmetric(cls, tail: float) -> "TrimWindow":
        """Window dropping ``tail`` of the weight from each end."""
        return cls(tail, 1.0 - tail)

    @property
    def retention(self) -> float:
        """Share of the distribution kept."""
        return self.upper - self.lower


class TrimMedianEstimator:
    """Computes the trimmed mean and the weighted median per period."""

    METHODS = ("exact", "replicate")

    def __init__(
        self,
        window: Optional[TrimWindow] = None,
        method: str = "exact",
        sampler: Optional[DistributionSampler] = None,
    ):
        """
        Args:
            window: Trim window (defaults to 0.25 / 0.75)
            method: 'exact' for the weighted-quantile algorithm or
                'replicate' for the weight-replicated multiset
            sampler: Sampler providing distributions and the precision
                multiplier for the 'replicate' method
        """
        if method not in self.METHODS:
            raise ValueError(f"Unknown method: {method}. Supported methods are: {list(self.METHODS)}")
        self.window = window or TrimWindow()
        self.method = method
        self.sampler = sampler or DistributionSampler()
        self.skipped_dates: List[pd.Timestamp] = []

    def trimmed_mean(self, dist: WeightedDistribution) -> float:
        """
        Mean of the distribution after trimming both tails.

        Raises:
            DegenerateDistributionError: If the distribution is empty
        """
        if self.method == "exact":
            self._check(dist)
            return weighted_trimmed_mean(
                dist.values, dist.weights, self.window.lower, self.window.upper
            )

        sample = np.sort(self._replicated(dist))
        start, stop = self.window_positions(sample.size)
        return float(sample[start:stop].mean())

    def window_positions(self, n: int) -> Tuple[int, int]:
        """
        Slice ``[start, stop)`` of a sorted n-element sample kept by the window.

        Both cut points are rounded to the nearest position, so the slice
        holds ``n * retention`` elements to within one, and never fewer
        than one.
        """
        start = min(math.floor(n * self.window.lower + 0.5), n - 1)
        stop = min(max(math.floor(n * self.window.upper + 0.5), start + 1), n)
        return start, stop

    def median(self, dist: WeightedDistribution) -> float:
        """
        Weighted 50th percentile; neighbours are averaged when the 50% share
        falls exactly between two values.

        Raises:
            DegenerateDistributionError: If the distribution is empty
        """
        if self.method == "exact":
            self._check(dist)
            return weighted_quantile(dist.values, dist.weights, 0.5)

        sample = np.sort(self._replicated(dist))
        return float(np.quantile(sample, 0.5))

    def estimate(self, changes: pd.DataFrame, horizon: str = MOM) -> pd.DataFrame:
        """
        Trimmed mean and median for every date of a horizon.

        Dates with a degenerate distribution are left out of the result,
        logged and recorded in ``skipped_dates``.

        Args:
            changes: Long change table from ``SeriesBuilder.build``
            horizon: Horizon whose distributions are summarized

        Returns:
            DataFrame indexed by date with 'trim' and 'median' columns
        """
        self.skipped_dates = []
        rows = {}

        for dist in self.sampler.distributions(changes, horizon):
            try:
                rows[dist.date] = {
                    "trim": self.trimmed_mean(dist),
                    "median": self.median(dist),
                }
            except DegenerateDistributionError as e:
                self.skipped_dates.append(dist.date)
                logger.warning(f"Excluding {dist.date:%Y-%m} from trim/median: {e}")

        result = pd.DataFrame.from_dict(rows, orient="index", columns=["trim", "median"])
        result.index = pd.DatetimeIndex(result.index, name=DATE)
        logger.info(
            f"Estimated trim/median for {len(result)} dates "
            f"(window {self.window.lower:.2f}-{self.window.upper:.2f}, method {self.method}, "
            f"{len(self.skipped_dates)} skipped)"
        )
        return result.sort_index()

    def _check(self, dist: WeightedDistribution) -> None:
        if dist.is_empty:
            raise DegenerateDistributionError(
                f"No component has both a change and a weight on {dist.date}", date=dist.date
            )

    def _replicated(self, dist: WeightedDistribution) -> np.ndarray:
        sample = self.sampler.replicate(dist)
        if sample.size == 0:
            raise DegenerateDistributionError(
                f"Replicated distribution for {dist.date} is empty at precision "
                f"{self.sampler.precision}",
                date=dist.date,
            )
        return sample
