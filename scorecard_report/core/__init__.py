"""
Scorecard Report - Core Package

This package provides the core infrastructure for the report pipeline:
- Base class for all components
- Stage context passed between stages
- Logging utilities
- Custom exceptions
"""

from scorecard_report.core.base import PipelineComponent
from scorecard_report.core.context import StageContext, SheetProgress
from scorecard_report.core.logger import setup_logging, RunLogger
from scorecard_report.core.exceptions import (
    PipelineException,
    ConfigurationError,
    InputShapeError,
    LabelValidationError,
    BinningError,
    FitConvergenceError,
    MetricUndefinedError,
    StabilityFloorError,
    ReportLayoutError,
    ReportWriteError,
)

__all__ = [
    # Base classes
    "PipelineComponent",
    # Context
    "StageContext",
    "SheetProgress",
    # Logging
    "setup_logging",
    "RunLogger",
    # Exceptions
    "PipelineException",
    "ConfigurationError",
    "InputShapeError",
    "LabelValidationError",
    "BinningError",
    "FitConvergenceError",
    "MetricUndefinedError",
    "StabilityFloorError",
    "ReportLayoutError",
    "ReportWriteError",
]
