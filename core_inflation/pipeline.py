"""End-to-end core inflation run: component changes to the published table."""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import pandas as pd

from core_inflation.data.loaders import filter_dates
from core_inflation.data.series_builder import SeriesBuilder
from core_inflation.data.structs import COMPONENT, DATE, LEVEL, MOM, WEIGHT, CoreSeries
from core_inflation.measures.aggregator import Aggregator
from core_inflation.measures.common_factor import (
    CommonFactorExtractor,
    FactorResult,
    RegressionFit,
)
from core_inflation.measures.distribution import DistributionSampler
from core_inflation.measures.trimmed import TrimMedianEstimator, TrimWindow
from core_inflation.utils.config_manager import load_pipeline_config
from core_inflation.utils.error_handling import RecoveryContext, UndeterminedFactorError
from core_inflation.utils.logging_config import get_logger
from core_inflation.utils.serialization import Clock, save_core_series, save_json


@dataclass
class PipelineResult:
    """Everything a run produced, for inspection and plotting."""
    run_id: str
    core: CoreSeries
    changes: pd.DataFrame
    trim_median: pd.DataFrame
    common: Optional[pd.Series]
    factor: Optional[FactorResult] = None
    fits: Dict[str, RegressionFit] = field(default_factory=dict)
    skipped_dates: List[pd.Timestamp] = field(default_factory=list)
    failures: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    summary: Dict[str, Any] = field(default_factory=dict)


class CoreInflationPipeline:
    """
    Computes CPI-trim, CPI-median and CPI-common from a component panel.

    The trim/median path and the common-factor path only share the
    component change table. A failure to extract the common factor is
    logged with its recovery context and the run continues without that
    measure.
    """

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        clock: Optional[Clock] = None,
    ):
        """
        Args:
            config: Configuration overrides, merged over the defaults
            clock: Time source for run ids and output file names
        """
        self.config = load_pipeline_config(overrides=config)
        self.clock = clock or datetime.now

        window = TrimWindow(self.config["trim"]["lower"], self.config["trim"]["upper"])
        sampler = DistributionSampler(self.config["distribution"]["precision"])

        self.builder = SeriesBuilder(weight_scale=self.config["input"]["weight_scale"])
        self.estimator = TrimMedianEstimator(
            window=window,
            method=self.config["distribution"]["method"],
            sampler=sampler,
        )
        self.common_extractor = CommonFactorExtractor(
            min_observations=self.config["common"]["min_observations"]
        )
        self.aggregator = Aggregator(
            join=self.config["aggregate"]["join"],
            decimals=self.config["output"]["decimals"],
        )

    @classmethod
    def from_file(cls, path: Union[str, Path], clock: Optional[Clock] = None) -> "CoreInflationPipeline":
        """Create a pipeline from a YAML or JSON configuration file."""
        return cls(config=load_pipeline_config(path), clock=clock)

    def run(
        self,
        observations: pd.DataFrame,
        weights: Optional[pd.DataFrame] = None,
        run_id: Optional[str] = None,
    ) -> PipelineResult:
        """
        Run the full computation.

        Args:
            observations: Tidy (date, component, level[, weight]) table
            weights: Optional separate (date, component, weight) table
            run_id: Identifier used in logs; derived from the clock if omitted

        Returns:
            PipelineResult
        """
        run_id = run_id or f"run_{self.clock():%Y%m%d_%H%M%S}"
        log = get_logger(__name__, run_id=run_id)
        log.info(f"Starting core inflation run {run_id}")

        observations = self._standard_columns(observations)
        if weights is not None:
            weights = self._standard_columns(weights)

        changes = self.builder.build(observations, weights)
        trim_median = self.estimator.estimate(changes, horizon=MOM)

        failures: Dict[str, Dict[str, Any]] = {}
        common: Optional[pd.Series] = None
        try:
            common = self.common_extractor.compute(changes)
        except UndeterminedFactorError as e:
            context = RecoveryContext.from_exception(run_id, e, measure="common")
            failures["common"] = context.to_dict()
            log.error(
                f"Common factor measure aborted: {e}",
                extra={"props": {"measure": "common"}},
            )

        core = self.aggregator.combine(trim_median, common)

        input_cfg = self.config["input"]
        if input_cfg.get("start_date") or input_cfg.get("end_date"):
            core = CoreSeries(
                data=filter_dates(core.data, input_cfg.get("start_date"), input_cfg.get("end_date")),
                join=core.join,
                missing_measures=core.missing_measures,
            )

        summary = self.builder.get_build_summary(observations, changes)
        summary.update({
            "run_id": run_id,
            "output_rows": len(core),
            "trim_median_dates": len(trim_median),
            "common_dates": 0 if common is None else len(common),
            "skipped_dates": [d.isoformat() for d in self.estimator.skipped_dates],
            "missing_measures": core.missing_measures,
            "trim_window": [self.estimator.window.lower, self.estimator.window.upper],
            "distribution_method": self.estimator.method,
            "join": self.aggregator.join,
        })
        core.metadata.update(summary)

        log.info(f"Run {run_id} produced {len(core)} rows")
        return PipelineResult(
            run_id=run_id,
            core=core,
            changes=changes,
            trim_median=trim_median,
            common=common,
            factor=self.common_extractor.factor_ if common is not None else None,
            fits=self.common_extractor.fits_ if common is not None else {},
            skipped_dates=list(self.estimator.skipped_dates),
            failures=failures,
            summary=summary,
        )

    def _standard_columns(self, df: pd.DataFrame) -> pd.DataFrame:
        """Rename the configured input columns to date, component, level and weight."""
        input_cfg = self.config["input"]
        mapping = {
            input_cfg[f"{name}_column"]: name
            for name in (DATE, COMPONENT, LEVEL, WEIGHT)
            if input_cfg[f"{name}_column"] != name and input_cfg[f"{name}_column"] in df.columns
        }
        return df.rename(columns=mapping) if mapping else df

    def save(self, result: PipelineResult, directory: Optional[Union[str, Path]] = None) -> Path:
        """
        Write the dated output CSV and a JSON run summary next to it.

        Args:
            result: Output of ``run``
            directory: Output directory (defaults to ``output.directory``)

        Returns:
            Path of the CSV file
        """
        out_cfg = self.config["output"]
        table = self.aggregator.format_output(result.core)
        path = save_core_series(
            table,
            directory or out_cfg["directory"],
            prefix=out_cfg["prefix"],
            clock=self.clock,
        )
        save_json(
            {"summary": result.summary, "failures": result.failures},
            path.with_name(f"{path.stem}_summary.json"),
        )
        return path
