"""
Tests for PerformanceEvaluator and the metric helpers.
"""

import numpy as np
import pytest
from sklearn.metrics import roc_auc_score

from scorecard_report.config.schema import ReportConfig
from scorecard_report.core.exceptions import MetricUndefinedError
from scorecard_report.evaluation.performance import (
    PerformanceEvaluator,
    compute_metrics,
    ks_statistic,
)
from scorecard_report.evaluation.plots import grid_shape


@pytest.fixture
def prediction_data():
    rng = np.random.RandomState(42)
    y = (rng.uniform(size=500) < 0.3).astype(int)
    prob = np.clip(0.3 + 0.25 * (y - 0.3) + rng.normal(0, 0.15, size=500), 0.01, 0.99)
    return prob, y


class TestMetrics:

    def test_ks_perfect_separation(self):
        y = np.array([0, 0, 0, 1, 1, 1])
        p = np.array([0.1, 0.2, 0.3, 0.7, 0.8, 0.9])

        assert ks_statistic(y, p) == pytest.approx(1.0)

    def test_gini_is_two_auc_minus_one(self, prediction_data):
        prob, y = prediction_data

        result = compute_metrics(prob, y, ["auc", "gini"])

        assert result["auc"] == pytest.approx(roc_auc_score(y, prob))
        assert result["gini"] == pytest.approx(2 * result["auc"] - 1)

    def test_rmse_is_root_mse(self, prediction_data):
        prob, y = prediction_data

        result = compute_metrics(prob, y, ["mse", "rmse"])

        assert result["rmse"] == pytest.approx(np.sqrt(result["mse"]))

    def test_r2_of_perfect_probabilities(self):
        y = np.array([0, 1, 0, 1])

        assert compute_metrics(y.astype(float), y, ["r2"])["r2"] == pytest.approx(1.0)

    def test_constant_labels_rank_metric_undefined(self):
        y = np.zeros(10, dtype=int)
        p = np.linspace(0.1, 0.5, 10)

        with pytest.raises(MetricUndefinedError) as exc:
            compute_metrics(p, y, ["mse", "auc"], dataset_name="oot")

        assert exc.value.metric_name == "auc"
        assert exc.value.details["dataset"] == "oot"

    def test_constant_labels_mse_defined(self):
        y = np.zeros(4, dtype=int)
        p = np.array([0.1, 0.2, 0.1, 0.2])

        result = compute_metrics(p, y, ["mse", "logloss"])

        assert result["mse"] == pytest.approx(0.025)
        assert np.isfinite(result["logloss"])


class TestPerformanceEvaluator:

    def test_table_one_row_per_dataset(self, report_config, prediction_data):
        prob, y = prediction_data
        evaluator = PerformanceEvaluator(report_config)

        table = evaluator.evaluate({"train": (prob, y), "test": (prob[:200], y[:200])})

        assert table["dataset"].tolist() == ["train", "test"]
        assert list(table.columns) == ["dataset", "MSE", "RMSE", "LogLoss", "R2", "KS", "AUC", "Gini"]

    def test_metric_selection_in_canonical_order(self, prediction_data):
        prob, y = prediction_data
        evaluator = PerformanceEvaluator(ReportConfig(binomial_metric=["gini", "ks"]))

        table = evaluator.evaluate({"train": (prob, y)})

        assert list(table.columns) == ["dataset", "KS", "Gini"]

    def test_plot_returns_png(self, report_config, prediction_data):
        prob, y = prediction_data
        evaluator = PerformanceEvaluator(report_config)

        png = evaluator.plot({"train": (prob, y)}, kinds=["ks", "roc", "lift", "gain", "lz", "pr", "f1", "density"])

        assert png[:4] == b"\x89PNG"

    def test_no_plot_requested(self, prediction_data):
        prob, y = prediction_data
        evaluator = PerformanceEvaluator(ReportConfig(show_plot=[]))

        assert evaluator.plot({"train": (prob, y)}) is None


class TestGridShape:

    @pytest.mark.parametrize("n, expected", [
        (1, (1, 1)),
        (2, (1, 2)),
        (3, (2, 2)),
        (4, (2, 2)),
        (5, (2, 3)),
        (8, (3, 3)),
    ])
    def test_grid(self, n, expected):
        assert grid_shape(n) == expected
