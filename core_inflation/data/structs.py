"""Core data structures for the core inflation pipeline."""

from dataclasses import dataclass, field
from typing import Dict, Any, List
import pandas as pd

DATE = "date"
COMPONENT = "component"
LEVEL = "level"
WEIGHT = "weight"
HORIZON = "horizon"
CHANGE = "change"

MOM = "mom"
YOY = "yoy"

TRIM_COLUMN = "CPI-trim"
MEDIAN_COLUMN = "CPI-median"
COMMON_COLUMN = "CPI-common"
MEASURE_COLUMNS = [TRIM_COLUMN, MEDIAN_COLUMN, COMMON_COLUMN]


@dataclass
class CoreSeries:
    """
    Final core inflation table.

    Attributes:
        data: DataFrame indexed by ascending ``date`` with the columns
            CPI-trim, CPI-median and CPI-common, in percentage points
        join: Join policy used to align the measures ('inner',
            'inner_available' or 'outer')
        missing_measures: Measures that could not be computed for this run
        metadata: Free-form run metadata
    """
    data: pd.DataFrame
    join: str = "inner"
    missing_measures: List[str] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        """Validate consistency after initialization."""
        missing = [c for c in MEASURE_COLUMNS if c not in self.data.columns]
        if missing:
            raise ValueError(f"CoreSeries is missing columns: {missing}")
        if not isinstance(self.data.index, pd.DatetimeIndex):
            raise ValueError("CoreSeries data must have a DatetimeIndex")
        if not self.data.index.is_monotonic_increasing:
            raise ValueError("CoreSeries dates must be ascending")

    def __len__(self) -> int:
        return len(self.data)

    @property
    def dates(self) -> pd.DatetimeIndex:
        return self.data.index
