"""Conversion of component index levels into weighted price changes."""

from typing import Any, Dict, Optional
import logging

import numpy as np
import pandas as pd

from core_inflation.data.structs import (
    DATE, COMPONENT, LEVEL, WEIGHT, HORIZON, CHANGE, MOM, YOY,
)
from core_inflation.utils.error_handling import MissingDataError, NonFiniteValueError

logger = logging.getLogger(__name__)


class SeriesBuilder:
    """
    Builds month-over-month and year-over-year component changes.

    The output is a long table with one row per (date, component, horizon)
    where the change is defined. Lags are taken on a complete monthly
    calendar, so a missing month leaves the following lag undefined instead
    of pairing non-adjacent observations.
    """

    HORIZONS: Dict[str, int] = {MOM: 1, YOY: 12}

    def __init__(self, weight_scale: float = 1.0):
        """
        Args:
            weight_scale: Divisor turning input weights into basket shares
                (1.0 for shares, 100.0 for percentages)
        """
        if weight_scale <= 0:
            raise ValueError(f"weight_scale must be positive, got {weight_scale}")
        self.weight_scale = weight_scale

    def build(
        self,
        observations: pd.DataFrame,
        weights: Optional[pd.DataFrame] = None,
    ) -> pd.DataFrame:
        """
        Compute component changes for every horizon.

        Args:
            observations: Tidy table with date, component and level columns,
                and a weight column unless ``weights`` is given
            weights: Optional separate (date, component, weight) table,
                left-joined onto the observations

        Returns:
            DataFrame with columns date, component, horizon, change, weight

        Raises:
            MissingDataError: If required columns are absent or no change
                can be computed
            NonFiniteValueError: If no change survives because the base
                levels are zero or negative
            ValueError: If a (date, component) pair appears more than once
        """
        self._require_columns(observations, [DATE, COMPONENT, LEVEL], "observations")
        obs = self._normalize(observations, "observations")
        levels = self._wide(obs, LEVEL)

        if weights is not None:
            self._require_columns(weights, [DATE, COMPONENT, WEIGHT], "weights")
            weight_rows = self._normalize(weights, "weights")
        elif WEIGHT in obs.columns:
            weight_rows = obs
        else:
            raise MissingDataError("No weight column in observations and no weight table given")

        weight_wide = self._wide(weight_rows, WEIGHT).reindex(
            index=levels.index, columns=levels.columns
        ) / self.weight_scale

        frames = []
        n_bad_base = 0
        for horizon, lag in self.HORIZONS.items():
            change = self.percent_change(levels, lag)
            n_bad_base += int(((levels.shift(lag) <= 0) & levels.notna()).sum().sum())
            frames.append(self._to_long(change, weight_wide, horizon))

        result = pd.concat(frames, ignore_index=True)
        if result.empty:
            if n_bad_base:
                raise NonFiniteValueError(
                    f"No component change could be computed; {n_bad_base} candidate "
                    f"changes had a zero or negative base level"
                )
            raise MissingDataError("No component change could be computed from the observations")

        result = result.sort_values([HORIZON, DATE, COMPONENT]).reset_index(drop=True)
        logger.info(
            f"Built {len(result)} component changes for {levels.shape[1]} components "
            f"over {levels.shape[0]} months"
        )
        return result

    def percent_change(self, levels: pd.DataFrame, lag: int) -> pd.DataFrame:
        """
        Percent change of each column against its value ``lag`` rows earlier.

        Cells with a missing, zero or negative base are left undefined.

        Args:
            levels: Wide (month x component) level matrix on a complete calendar
            lag: Number of months between the compared observations

        Returns:
            Wide matrix of fractional changes
        """
        base = levels.shift(lag)
        with np.errstate(divide="ignore", invalid="ignore"):
            change = (levels - base) / base

        bad_base = (base <= 0) & levels.notna()
        n_bad = int(bad_base.sum().sum())
        if n_bad:
            logger.warning(
                f"Dropping {n_bad} changes with a zero or negative base level (lag {lag})"
            )

        return change.mask(bad_base | ~np.isfinite(change))

    @staticmethod
    def pivot(changes: pd.DataFrame, horizon: str, values: str = CHANGE) -> pd.DataFrame:
        """
        Wide (date x component) view of one horizon of the change table.

        Args:
            changes: Output of ``build``
            horizon: 'mom' or 'yoy'
            values: Column to spread ('change' or 'weight')

        Returns:
            DataFrame indexed by date with one column per component
        """
        subset = changes[changes[HORIZON] == horizon]
        wide = subset.pivot(index=DATE, columns=COMPONENT, values=values)
        wide.columns.name = COMPONENT
        return wide.sort_index()

    def get_build_summary(
        self,
        observations: pd.DataFrame,
        changes: pd.DataFrame,
    ) -> Dict[str, Any]:
        """
        Summarize what the build kept and dropped.

        Args:
            observations: Input observation table
            changes: Output of ``build``

        Returns:
            Dictionary with row counts per horizon and missing-weight counts
        """
        summary: Dict[str, Any] = {
            "input_rows": len(observations),
            "components": int(observations[COMPONENT].nunique()),
            "first_date": changes[DATE].min() if not changes.empty else None,
            "last_date": changes[DATE].max() if not changes.empty else None,
        }
        for horizon in self.HORIZONS:
            subset = changes[changes[HORIZON] == horizon]
            summary[f"{horizon}_rows"] = len(subset)
            summary[f"{horizon}_rows_without_weight"] = int(subset[WEIGHT].isna().sum())
        return summary

    def _require_columns(self, df: pd.DataFrame, columns, name: str) -> None:
        missing = [c for c in columns if c not in df.columns]
        if missing:
            raise MissingDataError(f"{name} table is missing required columns: {missing}")

    def _normalize(self, df: pd.DataFrame, name: str) -> pd.DataFrame:
        """Map dates onto monthly periods and enforce (date, component) identity."""
        result = df.copy()
        result[DATE] = pd.to_datetime(result[DATE]).dt.to_period("M")

        duplicated = result.duplicated([DATE, COMPONENT], keep=False)
        if duplicated.any():
            keys = result.loc[duplicated, [DATE, COMPONENT]].drop_duplicates()
            raise ValueError(
                f"{name} table has {len(keys)} duplicated (date, component) pairs, "
                f"first: {tuple(keys.iloc[0])}"
            )
        return result

    def _wide(self, df: pd.DataFrame, values: str) -> pd.DataFrame:
        """Pivot to a (month x component) matrix on a gap-free monthly calendar."""
        wide = df.pivot(index=DATE, columns=COMPONENT, values=values)
        calendar = pd.period_range(wide.index.min(), wide.index.max(), freq="M")
        wide = wide.reindex(calendar).astype(float)
        wide.index.name = DATE
        wide.columns.name = COMPONENT
        return wide

    def _to_long(
        self,
        change: pd.DataFrame,
        weight_wide: pd.DataFrame,
        horizon: str,
    ) -> pd.DataFrame:
        long = change.reset_index().melt(
            id_vars=DATE, var_name=COMPONENT, value_name=CHANGE
        ).dropna(subset=[CHANGE])
        weights = weight_wide.reset_index().melt(
            id_vars=DATE, var_name=COMPONENT, value_name=WEIGHT
        )
        long = long.merge(weights, on=[DATE, COMPONENT], how="left")
        long[DATE] = long[DATE].dt.to_timestamp()
        long[HORIZON] = horizon
        return long[[DATE, COMPONENT, HORIZON, CHANGE, WEIGHT]]
