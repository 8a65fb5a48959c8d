"""Data loading and component change construction."""

from .loaders import DataLoader, ValidationResult, filter_dates
from .series_builder import SeriesBuilder
from .structs import CoreSeries

__all__ = [
    "DataLoader",
    "ValidationResult",
    "filter_dates",
    "SeriesBuilder",
    "CoreSeries",
]
