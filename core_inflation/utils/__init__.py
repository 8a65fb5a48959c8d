"""Logging, configuration, error handling and serialization utilities."""

from core_inflation.utils.config_manager import (
    ConfigManager,
    DEFAULT_CONFIG,
    load_pipeline_config,
)
from core_inflation.utils.error_handling import (
    CoreInflationError,
    MissingDataError,
    NonFiniteValueError,
    DegenerateDistributionError,
    UndeterminedFactorError,
    RecoveryContext,
)
from core_inflation.utils.logging_config import (
    JSONFormatter,
    RunContextAdapter,
    setup_logging,
    configure_logging,
    get_logger,
)

__all__ = [
    "ConfigManager",
    "DEFAULT_CONFIG",
    "load_pipeline_config",
    "CoreInflationError",
    "MissingDataError",
    "NonFiniteValueError",
    "DegenerateDistributionError",
    "UndeterminedFactorError",
    "RecoveryContext",
    "JSONFormatter",
    "RunContextAdapter",
    "setup_logging",
    "configure_logging",
    "get_logger",
]
