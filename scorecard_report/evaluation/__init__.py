"""
Evaluation Module

Performance metrics and curves, score stability (PSI) and gains tables.
"""

from scorecard_report.evaluation.performance import (
    PerformanceEvaluator,
    compute_metrics,
    ks_statistic,
    METRIC_COLUMNS,
)
from scorecard_report.evaluation.gains import (
    GainsTableBuilder,
    gains_table,
    score_edges,
    assign_buckets,
    GAINS_COLUMNS,
)
from scorecard_report.evaluation.stability import (
    StabilityAnalyzer,
    StabilityReport,
    psi_from_shares,
)
from scorecard_report.evaluation.plots import render_curves, render_stability, grid_shape

__all__ = [
    "PerformanceEvaluator",
    "compute_metrics",
    "ks_statistic",
    "METRIC_COLUMNS",
    "GainsTableBuilder",
    "gains_table",
    "score_edges",
    "assign_buckets",
    "GAINS_COLUMNS",
    "StabilityAnalyzer",
    "StabilityReport",
    "psi_from_shares",
    "render_curves",
    "render_stability",
    "grid_shape",
]
