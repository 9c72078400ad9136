"""
Binning Module

WoE binning engine, the fit-once coordinator and binning charts.
"""

from scorecard_report.binning.woebin import (
    BinStat,
    BinDefinition,
    NUMERIC,
    CATEGORICAL,
    MISSING_LABEL,
    GROUP_SEP,
    fit_feature,
    locate,
    encode,
    compute_stats,
    stats_to_frame,
)
from scorecard_report.binning.coordinator import (
    BinningSet,
    BinningCoordinator,
    woe_column,
)
from scorecard_report.binning.plots import render_feature, render_dataset

__all__ = [
    "BinStat",
    "BinDefinition",
    "NUMERIC",
    "CATEGORICAL",
    "MISSING_LABEL",
    "GROUP_SEP",
    "fit_feature",
    "locate",
    "encode",
    "compute_stats",
    "stats_to_frame",
    "BinningSet",
    "BinningCoordinator",
    "woe_column",
    "render_feature",
    "render_dataset",
]
