"""Data loading and checks for CPI component tables."""

from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Dict, List, Optional, Union
import logging
from pathlib import Path

import pandas as pd
from pandas.api import types as ptypes

from core_inflation.data.structs import DATE, COMPONENT, LEVEL, WEIGHT

logger = logging.getLogger(__name__)

# Kind of data expected in each standard column
OBSERVATION_KINDS: Dict[str, str] = {
    DATE: "datetime",
    COMPONENT: "text",
    LEVEL: "numeric",
    WEIGHT: "numeric",
}

KIND_CHECKS: Dict[str, Callable[[pd.Series], bool]] = {
    "datetime": ptypes.is_datetime64_any_dtype,
    "numeric": lambda s: ptypes.is_numeric_dtype(s) and not ptypes.is_bool_dtype(s),
    "text": lambda s: (
        ptypes.is_string_dtype(s)
        or ptypes.is_object_dtype(s)
        or isinstance(s.dtype, pd.CategoricalDtype)
    ),
}


@dataclass
class ValidationResult:
    """Outcome of checking an observation table."""
    is_valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    column_issues: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class DataLoader:
    """Loads the tidy (date, component, level, weight) table from disk."""

    READERS = {
        ".csv": pd.read_csv,
        ".parquet": pd.read_parquet,
        ".xlsx": pd.read_excel,
        ".xls": pd.read_excel,
    }

    def load(
        self,
        path: Union[str, Path],
        column_map: Optional[Dict[str, str]] = None,
        kinds: Optional[Dict[str, str]] = None,
        **read_kwargs,
    ) -> pd.DataFrame:
        """
        Load an observation table and bring it into the pipeline's column naming.

        Args:
            path: CSV, Parquet or Excel file
            column_map: Mapping of source column names to the standard names
                (date, component, level, weight)
            kinds: Expected kind per column; defaults to the observation
                kinds of the columns present
            **read_kwargs: Passed to the pandas reader (e.g. sheet_name)

        Returns:
            DataFrame with standardized columns

        Raises:
            FileNotFoundError: If the file doesn't exist
            ValueError: If the format is unsupported or validation fails
        """
        file_path = Path(path)
        if not file_path.exists():
            raise FileNotFoundError(f"Input file not found: {path}")

        reader = self.READERS.get(file_path.suffix.lower())
        if reader is None:
            raise ValueError(f"Unsupported input format: {file_path.suffix}")

        df = reader(file_path, **read_kwargs)
        logger.info(f"Loaded {len(df)} rows from {path}")

        if column_map:
            df = self.standardize_columns(df, column_map)
        if DATE in df.columns:
            df[DATE] = pd.to_datetime(df[DATE])

        result = self.validate(df, kinds)
        if not result.is_valid:
            raise ValueError(f"Validation failed for {path}: {'; '.join(result.errors)}")
        for warning in result.warnings:
            logger.warning(warning)

        return df

    def standardize_columns(self, df: pd.DataFrame, column_map: Dict[str, str]) -> pd.DataFrame:
        """
        Rename source columns to the standard names.

        Args:
            df: Source table
            column_map: {source_name: standard_name}

        Returns:
            Renamed copy of the table
        """
        absent = [src for src in column_map if src not in df.columns]
        if absent:
            raise ValueError(f"Source columns not found: {absent}")
        return df.rename(columns=column_map)


    def validate(
        self,
        df: pd.DataFrame,
        kinds: Optional[Dict[str, str]] = None,
    ) -> ValidationResult:
        """
        Check column kinds and the contents the pipeline relies on.

        Errors: a required column is absent or holds the wrong kind of
        data, a (date, component) pair repeats, or a weight is negative.
        Warnings: extra columns, and missing or non-positive levels (the
        changes computed from those are dropped later).

        Args:
            df: Observation table with standardized column names
            kinds: {column: 'datetime' | 'text' | 'numeric'}; defaults to the
                observation kinds of the columns present

        Returns:
            ValidationResult
        """
        if kinds is None:
            kinds = {k: v for k, v in OBSERVATION_KINDS.items() if k in df.columns}
        result = ValidationResult(is_valid=True)

        for col, kind in kinds.items():
            if col not in df.columns:
                result.errors.append(f"Missing required column: {col}")
                result.column_issues[col] = "missing"
            elif not KIND_CHECKS[kind](df[col]):
                result.errors.append(f"Column '{col}' should be {kind}, found dtype '{df[col].dtype}'")
                result.column_issues[col] = f"expected {kind}, found {df[col].dtype}"

        extra = sorted(map(str, set(df.columns) - set(kinds)))
        if extra:
            result.warnings.append(f"Extra columns found: {extra}")

        checked = [c for c in kinds if c in df.columns and c not in result.column_issues]
        if DATE in checked and COMPONENT in checked:
            n_dup = int(df.duplicated(subset=[DATE, COMPONENT]).sum())
            if n_dup:
                result.errors.append(f"{n_dup} duplicated (date, component) rows")
        if WEIGHT in checked:
            n_negative = int((df[WEIGHT] < 0).sum())
            if n_negative:
                result.errors.append(f"{n_negative} negative weights")
                result.column_issues[WEIGHT] = "negative values"
        if LEVEL in checked:
            n_missing = int(df[LEVEL].isna().sum())
            n_nonpositive = int((df[LEVEL] <= 0).sum())
            if n_missing:
                result.warnings.append(f"{n_missing} missing levels")
            if n_nonpositive:
                result.warnings.append(f"{n_nonpositive} zero or negative levels")

        result.is_valid = not result.errors
        return result


def filter_dates(
    df: pd.DataFrame,
    start: Optional[str] = None,
    end: Optional[str] = None,
) -> pd.DataFrame:
    """
    Restrict a table to an inclusive date range.

    Works on a DatetimeIndex or, failing that, on the ``date`` column.

    Args:
        df: Date-indexed table or table with a date column
        start: Optional first date to keep
        end: Optional last date to keep

    Returns:
        Filtered copy of the table
    """
    if isinstance(df.index, pd.DatetimeIndex):
        dates = pd.Series(df.index, index=df.index)
    else:
        dates = pd.to_datetime(df[DATE])

    mask = pd.Series(True, index=df.index)
    if start is not None:
        mask &= dates >= pd.Timestamp(start)
    if end is not None:
        mask &= dates <= pd.Timestamp(end)
    return df[mask.values].copy()
