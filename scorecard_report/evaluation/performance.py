"""
Performance Evaluator

Per-dataset discrimination and calibration metrics of the predicted bad
probability, plus the curve grid of the report.
"""

from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from sklearn.metrics import log_loss, mean_squared_error, roc_auc_score, roc_curve

from scorecard_report.config.schema import BINOMIAL_METRICS
from scorecard_report.core.base import PipelineComponent
from scorecard_report.core.exceptions import MetricUndefinedError
from scorecard_report.evaluation.plots import render_curves


METRIC_COLUMNS = {
    "mse": "MSE",
    "rmse": "RMSE",
    "logloss": "LogLoss",
    "r2": "R2",
    "ks": "KS",
    "auc": "AUC",
    "gini": "Gini",
}
RANK_METRICS = ("ks", "auc", "gini")

Predictions = Mapping[str, Tuple[np.ndarray, np.ndarray]]


def ks_statistic(y_true: np.ndarray, y_prob: np.ndarray) -> float:
    """KS = max(TPR - FPR) over all thresholds."""
    fpr, tpr, _ = roc_curve(y_true, y_prob)
    return float(np.max(tpr - fpr))


def r2_score_binary(y_true: np.ndarray, y_prob: np.ndarray) -> float:
    """R2 = 1 - SSE / SST of the probabilities against the 0/1 label."""
    sse = float(np.sum((y_true - y_prob) ** 2))
    sst = float(np.sum((y_true - y_true.mean()) ** 2))
    return 1.0 - sse / sst


def compute_metrics(
    y_prob: np.ndarray,
    y_true: np.ndarray,
    metrics: Sequence[str] = BINOMIAL_METRICS,
    dataset_name: Optional[str] = None,
) -> Dict[str, float]:
    """
    Compute the requested metrics for one dataset.

    Raises:
        MetricUndefinedError: If the labels are constant and a metric that
            needs both classes (ks, auc, gini, r2) is requested
    """
    y = np.asarray(y_true, dtype=int)
    p = np.asarray(y_prob, dtype=float)

    constant = len(np.unique(y)) < 2
    for metric in metrics:
        if constant and (metric in RANK_METRICS or metric == "r2"):
            raise MetricUndefinedError(
                f"{METRIC_COLUMNS[metric]} is undefined for constant labels",
                metric_name=metric,
                details={"dataset": dataset_name, "n_rows": int(len(y))},
            )

    results: Dict[str, float] = {}
    auc = None
    for metric in metrics:
        if metric == "mse":
            results[metric] = float(mean_squared_error(y, p))
        elif metric == "rmse":
            results[metric] = float(np.sqrt(mean_squared_error(y, p)))
        elif metric == "logloss":
            results[metric] = float(log_loss(y, np.clip(p, 1e-15, 1 - 1e-15), labels=[0, 1]))
        elif metric == "r2":
            results[metric] = r2_score_binary(y, p)
        elif metric == "ks":
            results[metric] = ks_statistic(y, p)
        elif metric in ("auc", "gini"):
            if auc is None:
                auc = float(roc_auc_score(y, p))
            results[metric] = auc if metric == "auc" else 2 * auc - 1
    return results


class PerformanceEvaluator(PipelineComponent):
    """Metric table and curve grid over every dataset of the run."""

    def __init__(self, config: Any, name: Optional[str] = None):
        super().__init__(config, name or "PerformanceEvaluator")

    def run(self, *args, **kwargs) -> pd.DataFrame:
        return self.evaluate(*args, **kwargs)

    @property
    def metrics(self) -> List[str]:
        """Requested metrics in report column order."""
        requested = set(self.config.binomial_metric)
        return [m for m in BINOMIAL_METRICS if m in requested]

    def evaluate(self, predictions: Predictions) -> pd.DataFrame:
        """
        Metric table: one row per dataset, in input order.

        Args:
            predictions: dataset name -> (probabilities, labels)

        Returns:
            DataFrame with ``dataset`` and one column per requested metric
        """
        self._start_execution()
        metrics = self.metrics
        rows = []
        for name, (prob, label) in predictions.items():
            values = compute_metrics(prob, label, metrics, dataset_name=name)
            row = {"dataset": name}
            row.update({METRIC_COLUMNS[m]: values[m] for m in metrics})
            rows.append(row)
            self.logger.info(
                f"Performance '{name}': "
                + ", ".join(f"{METRIC_COLUMNS[m]}={values[m]:.4f}" for m in metrics)
            )

        self._end_execution()
        return pd.DataFrame(rows, columns=["dataset"] + [METRIC_COLUMNS[m] for m in metrics])

    def plot(self, predictions: Predictions, kinds: Optional[Sequence[str]] = None) -> Optional[bytes]:
        """Curve grid PNG for the requested kinds, or None when no plot is requested."""
        kinds = list(kinds if kinds is not None else self.config.show_plot)
        if not kinds:
            return None
        return render_curves(predictions, kinds, dpi=self.config.output.plot_dpi)
