"""
Config Module

Pydantic-based configuration for the scorecard report pipeline.
"""

from scorecard_report.config.schema import (
    ReportConfig,
    SplitConfig,
    BinningConfig,
    StabilityConfig,
    OutputConfig,
    LoggingConfig,
    BINOMIAL_METRICS,
    PLOT_TYPES,
)
from scorecard_report.config.loader import load_config, build_config, merge_options, save_config

__all__ = [
    "ReportConfig",
    "SplitConfig",
    "BinningConfig",
    "StabilityConfig",
    "OutputConfig",
    "LoggingConfig",
    "BINOMIAL_METRICS",
    "PLOT_TYPES",
    "load_config",
    "build_config",
    "merge_options",
    "save_config",
]
