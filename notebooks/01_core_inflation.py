# 01_core_inflation.py
import marimo

__generated_with = "0.1.0"
app = marimo.App(width="medium")

@app.cell
def __():
    import marimo as mo
    from pathlib import Path
    import pandas as pd
    import matplotlib.pyplot as plt
    import sys

    # Add project root to path
    project_root = Path(__file__).parent.parent.resolve()
    if str(project_root) not in sys.path:
        sys.path.insert(0, str(project_root))

    from core_inflation.data.loaders import DataLoader
    from core_inflation.pipeline import CoreInflationPipeline
    from core_inflation.utils.config_manager import load_pipeline_config
    from core_inflation.utils.logging_config import configure_logging
    from core_inflation.visualization.charts import (
        plot_core_measures,
        plot_component_distribution,
    )

    mo.md("# Core Inflation: CPI-trim, CPI-median, CPI-common")
    return (CoreInflationPipeline, DataLoader, Path, load_pipeline_config, mo, pd, plt,
            plot_component_distribution, plot_core_measures, project_root, configure_logging, sys)


@app.cell
def __(mo):
    mo.md("## 1. Configuration")
    return


@app.cell
def __(configure_logging, load_pipeline_config, project_root):
    CONFIG = load_pipeline_config(project_root / "config" / "pipeline_config.yaml")
    configure_logging(CONFIG)

    # Source file and its column names
    INPUT_PATH = project_root / "data" / "raw" / "cpi_components.csv"
    COLUMN_MAP = {
        "Date": "date",
        "Component": "component",
        "Index": "level",
        "Weight": "weight",
    }
    print(f"Trim window: {CONFIG['trim']['lower']} - {CONFIG['trim']['upper']}")
    return COLUMN_MAP, CONFIG, INPUT_PATH


@app.cell
def __(mo):
    mo.md("## 2. Load Component Data")
    return


@app.cell
def __(COLUMN_MAP, DataLoader, INPUT_PATH):
    loader = DataLoader()
    observations = loader.load(INPUT_PATH, column_map=COLUMN_MAP)
    print(f"Loaded {len(observations)} observations for "
          f"{observations['component'].nunique()} components")
    return loader, observations


@app.cell
def __(mo):
    mo.md("## 3. Compute Measures")
    return


@app.cell
def __(CONFIG, CoreInflationPipeline, observations):
    pipeline = CoreInflationPipeline(config=CONFIG)
    result = pipeline.run(observations)

    if result.failures:
        print(f"Measures that failed: {list(result.failures)}")
    if result.factor is not None:
        print(f"Common factor explains {result.factor.explained_variance_ratio:.1%} "
              f"of standardized variance")
    result.core.data.tail(12)
    return pipeline, result


@app.cell
def __(mo):
    mo.md("## 4. Save & Plot")
    return


@app.cell
def __(pipeline, plot_component_distribution, plot_core_measures, plt, result):
    output_file = pipeline.save(result)
    print(f"Saved core measures to: {output_file}")

    fig, axes = plt.subplots(2, 1, figsize=(12, 10))
    plot_core_measures(result.core, ax=axes[0])

    latest = list(pipeline.estimator.sampler.distributions(result.changes))[-1]
    plot_component_distribution(latest, window=pipeline.estimator.window, ax=axes[1])
    fig.tight_layout()
    fig
    return axes, fig, latest, output_file


if __name__ == "__main__":
    app.run()
