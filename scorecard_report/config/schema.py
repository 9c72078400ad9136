"""
Pydantic Configuration Schema

Defines the configuration of a scorecard report run. The eight report
options (``binomial_metric``, ``show_plot``, ``bin_num``, ``bin_type``,
``odds0``, ``points0``, ``pdo``, ``basepoints_eq0``) live at the top level;
the remaining sections tune the internal engines.
"""

from typing import List, Literal, Optional, Tuple
from pydantic import BaseModel, Field, field_validator, model_validator


BINOMIAL_METRICS = ("mse", "rmse", "logloss", "r2", "ks", "auc", "gini")
PLOT_TYPES = ("ks", "lift", "gain", "roc", "lz", "pr", "f1", "density")


class SplitConfig(BaseModel):
    """Seeded train/test split of a single input table."""

    model_config = {"frozen": True, "extra": "forbid"}

    ratio: float = Field(default=0.7, gt=0.0, lt=1.0)
    names: Tuple[str, str] = ("train", "test")
    unsplit_name: str = "dat"

    @model_validator(mode="after")
    def names_distinct(self) -> "SplitConfig":
        if self.names[0] == self.names[1]:
            raise ValueError(f"split names must differ, got {self.names}")
        return self


class BinningConfig(BaseModel):
    """Automatic WoE binning settings."""

    model_config = {"frozen": True, "extra": "forbid"}

    fine_bins: int = Field(default=20, ge=2)
    bin_num_limit: int = Field(default=8, ge=2)
    count_distr_limit: float = Field(default=0.05, gt=0.0, lt=0.5)
    monotonic: bool = True
    unseen_category: Literal["error", "missing"] = "error"


class StabilityConfig(BaseModel):
    """Score PSI settings."""

    model_config = {"frozen": True, "extra": "forbid"}

    bin_num: int = Field(default=10, ge=2)
    bin_type: Literal["freq", "width"] = "width"
    epsilon: float = Field(default=1e-6, ge=0.0, lt=0.1)


class OutputConfig(BaseModel):
    """Where and how the workbook is written."""

    model_config = {"frozen": True, "extra": "forbid"}

    dir: str = "."
    timestamp_format: str = "%Y%m%d_%H%M%S"
    plot_dpi: int = Field(default=96, ge=50, le=600)


class LoggingConfig(BaseModel):
    """Logging configuration schema."""

    model_config = {"frozen": True, "extra": "forbid"}

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: Optional[str] = None


class ReportConfig(BaseModel):
    """Top-level report configuration."""

    model_config = {"frozen": True, "extra": "forbid"}

    binomial_metric: List[str] = Field(default_factory=lambda: list(BINOMIAL_METRICS))
    show_plot: List[str] = Field(default_factory=lambda: ["ks", "roc"])
    bin_num: int = Field(default=10, ge=1)
    bin_type: Literal["freq", "width"] = "freq"
    odds0: float = Field(default=1 / 19, gt=0.0)
    points0: float = 600
    pdo: float = Field(default=50, gt=0.0)
    basepoints_eq0: bool = False

    split: SplitConfig = Field(default_factory=SplitConfig)
    binning: BinningConfig = Field(default_factory=BinningConfig)
    stability: StabilityConfig = Field(default_factory=StabilityConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("binomial_metric")
    @classmethod
    def known_metrics(cls, value: List[str]) -> List[str]:
        metrics = [m.lower() for m in value]
        unknown = [m for m in metrics if m not in BINOMIAL_METRICS]
        if unknown:
            raise ValueError(f"unknown binomial_metric {unknown}; choose from {BINOMIAL_METRICS}")
        return metrics

    @field_validator("show_plot")
    @classmethod
    def known_plots(cls, value: List[str]) -> List[str]:
        plots = [p.lower() for p in value]
        unknown = [p for p in plots if p not in PLOT_TYPES]
        if unknown:
            raise ValueError(f"unknown show_plot {unknown}; choose from {PLOT_TYPES}")
        return plots
