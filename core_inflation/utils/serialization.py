"""Writing and reading the dated output CSV and the JSON run summary."""

import json
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Any, Callable, Optional, Union

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class SummaryEncoder(json.JSONEncoder):
    """Encodes dates, periods, paths and numpy scalars found in run summaries."""

    def default(self, obj):
        if isinstance(obj, (date, pd.Timestamp)):
            return obj.isoformat()
        if isinstance(obj, pd.Period):
            return str(obj)
        if isinstance(obj, Path):
            return str(obj)
        if isinstance(obj, (np.integer, np.floating, np.bool_)):
            return obj.item()
        if isinstance(obj, np.ndarray):
            return obj.tolist()
        return super().default(obj)


def save_json(data: Any, path: Union[str, Path]) -> Path:
    """Write ``data`` as indented JSON, creating parent directories."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, cls=SummaryEncoder, indent=2))
    logger.debug(f"Saved JSON to {path}")
    return path


def load_json(path: Union[str, Path]) -> Any:
    return json.loads(Path(path).read_text())


def output_filename(prefix: str, clock: Optional[Clock] = None) -> str:
    """
    Name of the output artifact, stamped with the generation date.

    Args:
        prefix: File name prefix
        clock: Zero-argument callable returning the current datetime

    Returns:
        File name of the form ``<prefix>_<YYYY-MM-DD>.csv``
    """
    now = (clock or datetime.now)()
    return f"{prefix}_{now:%Y-%m-%d}.csv"


def save_core_series(
    table: pd.DataFrame,
    directory: Union[str, Path],
    prefix: str = "core_inflation",
    clock: Optional[Clock] = None,
) -> Path:
    """
    Write a formatted core series table as a dated CSV file.

    Args:
        table: Output of ``Aggregator.format_output``
        directory: Output directory (created if missing)
        prefix: File name prefix
        clock: Time source used for the date stamp

    Returns:
        Path of the written file
    """
    out_dir = Path(directory)
    out_dir.mkdir(parents=True, exist_ok=True)
    path = out_dir / output_filename(prefix, clock)
    table.to_csv(path, index=False)
    logger.info(f"Saved {len(table)} rows to {path}")
    return path


def load_core_series(path: Union[str, Path]) -> pd.DataFrame:
    """Load a saved core series CSV back into a date-indexed DataFrame."""
    df = pd.read_csv(path, parse_dates=["date"])
    return df.set_index("date").sort_index()
