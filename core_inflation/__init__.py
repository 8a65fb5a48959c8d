"""Core inflation measures (CPI-trim, CPI-median, CPI-common) from CPI components."""

from core_inflation.pipeline import CoreInflationPipeline, PipelineResult

__version__ = "0.1.0"

__all__ = ["CoreInflationPipeline", "PipelineResult"]
