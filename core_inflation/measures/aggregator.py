"""Assembly of the three core measures into the published table."""

from typing import Dict, List, Optional
import logging

import numpy as np
import pandas as pd

from core_inflation.data.structs import (
    DATE, TRIM_COLUMN, MEDIAN_COLUMN, COMMON_COLUMN, MEASURE_COLUMNS, CoreSeries,
)
from core_inflation.utils.error_handling import MissingDataError

logger = logging.getLogger(__name__)


def _on_monthly_calendar(series: pd.Series) -> pd.Series:
    """Reindex a date-indexed series onto a gap-free monthly PeriodIndex."""
    monthly = series.copy()
    monthly.index = pd.DatetimeIndex(monthly.index).to_period("M")
    if monthly.index.has_duplicates:
        raise ValueError(f"Series '{series.name}' has more than one value per month")
    calendar = pd.period_range(monthly.index.min(), monthly.index.max(), freq="M")
    return monthly.reindex(calendar)


class Aggregator:
    """
    Converts the per-period measures to year-over-year percentages and
    aligns them on a common date index.

    Trim and median start as month-over-month rates and are compounded
    into a chained index before the 12-month change is taken. The common
    factor measure is already a year-over-year rate and is only rescaled.
    """

    JOINS = ("inner", "inner_available", "outer")

    def __init__(self, join: str = "inner", decimals: int = 4, periods: int = 12):
        """
        Args:
            join: 'inner' keeps dates where all three measures exist, so a
                measure that failed outright leaves the table empty;
                'inner_available' keeps dates where every measure that was
                computed exists; 'outer' keeps any date with at least one
                measure
            decimals: Rounding applied by ``format_output``
            periods: Months between compared points of the chained index
        """
        if join not in self.JOINS:
            raise ValueError(f"Unknown join: {join}. Supported joins are: {list(self.JOINS)}")
        self.join = join
        self.decimals = decimals
        self.periods = periods

    @staticmethod
    def chain_index(rate: pd.Series) -> pd.Series:
        """
        Compound period rates into an index based at the first period.

        ``cum[0] = 1`` and ``cum[t] = cum[t-1] * (1 + rate[t])``, so the first
        rate only fixes the base month. The index is undefined from the
        first missing month onwards.

        Args:
            rate: Period rates (fractions) indexed by date

        Returns:
            Chained index on a complete monthly calendar, month-start dates
        """
        if rate.empty:
            return rate.astype(float)
        growth = 1.0 + _on_monthly_calendar(rate)
        growth.iloc[0] = 1.0
        chained = growth.cumprod(skipna=False)
        chained.index = chained.index.to_timestamp()
        chained.index.name = DATE
        return chained

    def year_over_year(self, rate: pd.Series) -> pd.Series:
        """
        Change of the chained index over ``periods`` months:
        ``(cum[t] - cum[t-periods]) / cum[t-periods]``.

        The first value falls ``periods`` months after the base month.

        Args:
            rate: Period rates (fractions) indexed by date

        Returns:
            Year-over-year rates (fractions) on the dates where defined
        """
        chained = self.chain_index(rate)
        base = chained.shift(self.periods)
        return ((chained - base) / base).dropna()

    def combine(
        self,
        trim_median: Optional[pd.DataFrame],
        common: Optional[pd.Series],
    ) -> CoreSeries:
        """
        Merge the measures into a CoreSeries in percentage points.

        A measure passed as ``None`` or empty (e.g. because its computation
        failed) has an all-NaN column. Under 'inner' no date then has all
        three measures and the table is empty; 'inner_available' joins the
        remaining measures instead.

        Args:
            trim_median: 'trim' and 'median' month-over-month rates by date
            common: Common factor year-over-year rate by date

        Returns:
            CoreSeries with ascending dates

        Raises:
            MissingDataError: If no measure is available
        """
        parts: Dict[str, pd.Series] = {}
        missing: List[str] = []

        if trim_median is not None and not trim_median.empty:
            parts[TRIM_COLUMN] = self.year_over_year(trim_median["trim"]) * 100
            parts[MEDIAN_COLUMN] = self.year_over_year(trim_median["median"]) * 100
        else:
            missing.extend([TRIM_COLUMN, MEDIAN_COLUMN])

        if common is not None and not common.empty:
            common_pct = common * 100
            common_pct.index = pd.DatetimeIndex(common_pct.index).to_period("M").to_timestamp()
            parts[COMMON_COLUMN] = common_pct
        else:
            missing.append(COMMON_COLUMN)

        if not parts:
            raise MissingDataError("No core measure available to aggregate")
        if missing:
            logger.warning(f"Measures unavailable for this run: {missing}")

        data = pd.concat(parts, axis=1, join="outer" if self.join == "outer" else "inner")
        if self.join == "inner" and missing:
            logger.warning(
                f"Inner join publishes no dates without {missing}; "
                f"use 'inner_available' or 'outer' to publish the other measures"
            )
            data = data.iloc[0:0]
        for column in missing:
            data[column] = np.nan
        data = data[MEASURE_COLUMNS].sort_index()
        data.index = pd.DatetimeIndex(data.index, name=DATE)

        logger.info(f"Aggregated {len(data)} dates with {self.join} join")
        return CoreSeries(data=data, join=self.join, missing_measures=missing)

    def format_output(self, core: CoreSeries) -> pd.DataFrame:
        """
        Table ready to be written: rounded values and ISO date strings.

        Args:
            core: Aggregated core series

        Returns:
            DataFrame with a 'date' column followed by the measure columns
        """
        table = core.data.round(self.decimals).reset_index()
        table[DATE] = table[DATE].dt.strftime("%Y-%m-%d")
        return table
