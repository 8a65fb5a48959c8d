"""Common-factor core inflation (CPI-common).

The measure is built in two stages that can be run and tested separately:

1. ``FactorExtractor`` takes the first principal component of the
   standardized year-over-year change matrix, using complete cases only.
2. ``fit_components`` regresses each component's year-over-year change on
   that factor score, which carries the dimensionless score back into
   inflation units one component at a time.

``aggregate_fitted`` then weights the fitted values by basket share.

The principal component is only defined up to sign and scale. A flipped
score flips every regression slope and leaves the fitted values unchanged,
so CPI-common does not depend on the orientation chosen. The score is
nevertheless oriented so that its loadings sum to a non-negative number,
which keeps intermediate results reproducible.
"""

from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Tuple
import logging

import numpy as np
import pandas as pd
from sklearn.decomposition import PCA
from sklearn.linear_model import LinearRegression
from sklearn.preprocessing import StandardScaler

from core_inflation.data.series_builder import SeriesBuilder
from core_inflation.data.structs import YOY, WEIGHT
from core_inflation.utils.error_handling import UndeterminedFactorError

logger = logging.getLogger(__name__)

SCORE = "score"

# Columns whose spread is below this (relative to their magnitude) are constant
CONSTANT_TOLERANCE = 1e-12


@dataclass
class FactorResult:
    """
    First principal component of the complete-case change matrix.

    Attributes:
        score: Factor score per complete-case date
        loadings: Loading of each component on the factor
        explained_variance_ratio: Share of standardized variance explained
        components: Components used in the extraction
        dropped_components: Components left out (empty or constant)
        dropped_dates: Dates left out for having a missing cell
    """
    score: pd.Series
    loadings: pd.Series
    explained_variance_ratio: float
    components: List[str]
    dropped_components: List[str] = field(default_factory=list)
    dropped_dates: List[pd.Timestamp] = field(default_factory=list)

    def flipped(self) -> "FactorResult":
        """Same factor with the opposite orientation."""
        return replace(self, score=-self.score, loadings=-self.loadings)


@dataclass
class RegressionFit:
    """OLS fit of one component's change on the factor score."""
    component: str
    intercept: float
    slope: float
    fitted: pd.Series
    n_obs: int

    def predict(self, score: pd.Series) -> pd.Series:
        return self.intercept + self.slope * score


class FactorExtractor:
    """Extracts the first principal component of a (date x component) matrix."""

    def __init__(self, min_components: int = 2, min_dates: int = 2):
        self.min_components = min_components
        self.min_dates = min_dates

    def complete_case(
        self,
        matrix: pd.DataFrame,
    ) -> Tuple[pd.DataFrame, List[str], List[pd.Timestamp]]:
        """
        Reduce a matrix to rows and columns without missing cells.

        Components with no data at all are dropped first, then every date
        with a missing cell, then components that are constant over the
        remaining dates (they cannot be standardized).

        Returns:
            Tuple of (complete matrix, dropped components, dropped dates)
        """
        empty = matrix.columns[matrix.isna().all()].tolist()
        reduced = matrix.drop(columns=empty)

        incomplete = reduced.index[reduced.isna().any(axis=1)]
        reduced = reduced.drop(index=incomplete)

        spread = reduced.std(ddof=0)
        scale = reduced.abs().max().clip(lower=1.0)
        constant = reduced.columns[spread <= CONSTANT_TOLERANCE * scale].tolist() if len(reduced) else []
        reduced = reduced.drop(columns=constant)

        dropped = [str(c) for c in empty + constant]
        if dropped:
            logger.warning(f"Components excluded from factor extraction: {dropped}")
        if len(incomplete):
            logger.info(
                f"{len(incomplete)} dates with missing cells excluded from factor extraction"
            )
        return reduced, dropped, list(incomplete)

    def extract(self, matrix: pd.DataFrame) -> FactorResult:
        """
        First principal component score of the standardized matrix.

        Args:
            matrix: Year-over-year changes, dates x components

        Returns:
            FactorResult

        Raises:
            UndeterminedFactorError: If fewer than ``min_components``
                components or ``min_dates`` dates have complete data
        """
        complete, dropped_components, dropped_dates = self.complete_case(matrix)
        n_dates, n_components = complete.shape

        if n_components < self.min_components:
            raise UndeterminedFactorError(
                f"Need at least {self.min_components} components with complete data, "
                f"found {n_components}"
            )
        if n_dates < self.min_dates:
            raise UndeterminedFactorError(
                f"Need at least {self.min_dates} complete-case dates, found {n_dates}"
            )

        standardized = StandardScaler().fit_transform(complete.to_numpy(dtype=float))
        pca = PCA(n_components=1)
        scores = pca.fit_transform(standardized)[:, 0]
        loadings = pca.components_[0]

        if loadings.sum() < 0:
            scores, loadings = -scores, -loadings

        result = FactorResult(
            score=pd.Series(scores, index=complete.index, name=SCORE),
            loadings=pd.Series(loadings, index=complete.columns, name="loading"),
            explained_variance_ratio=float(pca.explained_variance_ratio_[0]),
            components=[str(c) for c in complete.columns],
            dropped_components=dropped_components,
            dropped_dates=dropped_dates,
        )
        logger.info(
            f"Common factor from {n_components} components over {n_dates} dates explains "
            f"{result.explained_variance_ratio:.1%} of standardized variance"
        )
        return result


def fit_components(
    matrix: pd.DataFrame,
    score: pd.Series,
    min_observations: int = 2,
) -> Dict[str, RegressionFit]:
    """
    Regress each component's change on the factor score.

    Each component is fitted independently over the dates where both its
    change and the score are defined. Components with fewer overlapping
    dates than ``min_observations`` are skipped.

    Args:
        matrix: Year-over-year changes, dates x components
        score: Factor score indexed by date
        min_observations: Minimum overlapping dates for a fit

    Returns:
        Mapping of component to RegressionFit
    """
    fits: Dict[str, RegressionFit] = {}
    score = score.rename(SCORE)

    for component in matrix.columns:
        sample = pd.concat([matrix[component], score], axis=1, join="inner").dropna()
        if len(sample) < min_observations or sample[SCORE].nunique() < 2:
            logger.warning(
                f"Skipping regression for {component}: {len(sample)} usable observations"
            )
            continue

        model = LinearRegression().fit(sample[[SCORE]], sample[component])
        fitted = pd.Series(
            model.predict(sample[[SCORE]]), index=sample.index, name=component
        )
        fits[component] = RegressionFit(
            component=component,
            intercept=float(model.intercept_),
            slope=float(model.coef_[0]),
            fitted=fitted,
            n_obs=len(sample),
        )

    logger.debug(f"Fitted {len(fits)} of {matrix.shape[1]} components on the common factor")
    return fits


def aggregate_fitted(
    fits: Dict[str, RegressionFit],
    weights: pd.DataFrame,
) -> pd.Series:
    """
    Basket-weighted sum of fitted values per date.

    Only components with both a weight and a fitted value on a date
    contribute to it; dates without any contributor are left out.

    Args:
        fits: Per-component regression fits
        weights: Basket shares, dates x components

    Returns:
        Series named 'common' indexed by date
    """
    if not fits:
        return pd.Series(dtype=float, name="common")

    fitted = pd.DataFrame({component: fit.fitted for component, fit in fits.items()})
    aligned = weights.reindex(index=fitted.index, columns=fitted.columns)
    weighted = fitted * aligned

    common = weighted.sum(axis=1, min_count=1).dropna()
    common.name = "common"
    return common.sort_index()


class CommonFactorExtractor:
    """Runs factor extraction, per-component fits and re-weighting."""

    def __init__(self, min_observations: int = 2, extractor: Optional[FactorExtractor] = None):
        self.min_observations = min_observations
        self.extractor = extractor or FactorExtractor()
        self.factor_: Optional[FactorResult] = None
        self.fits_: Dict[str, RegressionFit] = {}

    def compute(self, changes: pd.DataFrame) -> pd.Series:
        """
        CPI-common (as a fraction) per date.

        Args:
            changes: Long change table from ``SeriesBuilder.build``

        Returns:
            Series named 'common' indexed by date

        Raises:
            UndeterminedFactorError: If the factor cannot be extracted
        """
        matrix = SeriesBuilder.pivot(changes, YOY)
        weights = SeriesBuilder.pivot(changes, YOY, values=WEIGHT)

        self.factor_ = self.extractor.extract(matrix)
        self.fits_ = fit_components(matrix, self.factor_.score, self.min_observations)
        common = aggregate_fitted(self.fits_, weights)

        logger.info(f"Computed common factor measure for {len(common)} dates")
        return common
