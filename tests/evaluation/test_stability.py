"""
Tests for StabilityAnalyzer and the PSI formula.
"""

import logging

import numpy as np
import pytest

from scorecard_report.config.schema import ReportConfig
from scorecard_report.core.exceptions import StabilityFloorError
from scorecard_report.evaluation.stability import StabilityAnalyzer, psi_from_shares


def _scored(seed, n, shift=0.0):
    rng = np.random.RandomState(seed)
    scores = rng.normal(550 + shift, 50, size=n).round().astype(int)
    labels = (rng.uniform(size=n) < 0.2).astype(int)
    return scores, labels


class TestPsiFromShares:

    def test_identical_distributions(self):
        shares = np.array([0.1, 0.2, 0.3, 0.4])

        assert psi_from_shares(shares, shares) == pytest.approx(0.0)

    def test_known_value(self):
        expected = np.array([0.5, 0.5])
        actual = np.array([0.25, 0.75])

        value = psi_from_shares(expected, actual)

        manual = (0.25 - 0.5) * np.log(0.25 / 0.5) + (0.75 - 0.5) * np.log(0.75 / 0.5)
        assert value == pytest.approx(manual)

    def test_both_empty_bucket_skipped(self):
        expected = np.array([0.5, 0.0, 0.5])
        actual = np.array([0.5, 0.0, 0.5])

        assert psi_from_shares(expected, actual) == pytest.approx(0.0)

    def test_one_side_empty_is_floored(self, caplog):
        logger = logging.getLogger("test.stability")
        expected = np.array([0.5, 0.5, 0.0])
        actual = np.array([0.4, 0.4, 0.2])

        with caplog.at_level(logging.WARNING, logger="test.stability"):
            value = psi_from_shares(expected, actual, epsilon=1e-6, comparison="oot", logger=logger)

        assert np.isfinite(value)
        assert value > 0
        assert "floored" in caplog.text

    def test_zero_epsilon_raises(self):
        with pytest.raises(StabilityFloorError) as exc:
            psi_from_shares(np.array([1.0, 0.0]), np.array([0.5, 0.5]), epsilon=0.0, comparison="oot")

        assert exc.value.details["dataset"] == "oot"


class TestStabilityAnalyzer:

    def test_psi_per_comparison(self, report_config):
        train, test, oot = _scored(1, 700), _scored(2, 300), _scored(3, 300, shift=40)
        scores = {"train": train[0], "test": test[0], "oot": oot[0]}
        labels = {"train": train[1], "test": test[1], "oot": oot[1]}

        report = StabilityAnalyzer(report_config).analyze(scores, labels)

        assert report.reference == "train"
        assert list(report.psi) == ["test", "oot"]
        assert report.summary["reference"].unique().tolist() == ["train"]
        # the shifted dataset drifts more
        assert report.psi["oot"] > report.psi["test"]

    def test_reference_against_itself(self, report_config):
        s, y = _scored(1, 500)

        report = StabilityAnalyzer(report_config).analyze({"train": s, "copy": s.copy()}, {"train": y, "copy": y})

        assert report.psi["copy"] == pytest.approx(0.0)

    def test_single_dataset_empty_summary(self, report_config):
        s, y = _scored(1, 100)

        report = StabilityAnalyzer(report_config).analyze({"train": s}, {"train": y})

        assert report.summary.empty
        assert report.psi == {}

    def test_zero_epsilon_with_empty_bucket(self):
        config = ReportConfig(stability={"epsilon": 0.0, "bin_num": 10, "bin_type": "width"})
        scores = {"train": np.array([400, 410, 420, 430]), "test": np.array([690, 700, 695, 700])}
        labels = {"train": np.array([0, 1, 0, 1]), "test": np.array([0, 1, 0, 0])}

        with pytest.raises(StabilityFloorError):
            StabilityAnalyzer(config).analyze(scores, labels)

    def test_plot_per_comparison(self, report_config):
        train, test = _scored(1, 300), _scored(2, 200)

        analyzer = StabilityAnalyzer(report_config)
        report = analyzer.analyze({"train": train[0], "test": test[0]}, {"train": train[1], "test": test[1]})
        plots = analyzer.plot(report)

        assert list(plots) == ["test"]
        assert plots["test"][:4] == b"\x89PNG"
