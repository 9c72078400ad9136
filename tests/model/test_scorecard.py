"""
Tests for ScoreScaler: point scaling and scoring.
"""

import numpy as np
import pytest

from scorecard_report.binning.coordinator import woe_column
from scorecard_report.config.schema import ReportConfig
from scorecard_report.data.sample import FEATURES
from scorecard_report.model.scorecard import BASEPOINTS, SCORE, ScoreScaler


class TestScaling:

    def test_factor_and_offset(self, fitted):
        card = fitted["card"]

        factor = 50 / np.log(2)
        assert card.factor == pytest.approx(factor)
        assert card.offset == pytest.approx(600 + factor * np.log(1 / 19))

    def test_base_points(self, fitted):
        card, model = fitted["card"], fitted["model"]

        assert card.base_points == int(round(card.offset - card.factor * model.intercept))

    def test_bin_points(self, fitted):
        card, model, binning = fitted["card"], fitted["model"], fitted["binning"]

        for feature in FEATURES:
            coef = model.coefficients[woe_column(feature)]
            expected = [int(round(-card.factor * coef * s.woe)) for s in binning[feature].stats]
            assert card.points_of(feature).tolist() == expected

    def test_one_card_row_per_bin(self, fitted):
        frame = fitted["card"].to_frame()

        assert frame.iloc[0]["variable"] == BASEPOINTS
        assert len(frame) == 1 + sum(fitted["binning"][f].n_bins for f in FEATURES)
        assert list(frame.columns) == ["variable", "bin", "woe", "points"]

    def test_scaling_table(self, fitted):
        table = fitted["card"].scaling_table()

        assert table.shape == (3, 2)
        assert table.iloc[:, 0].tolist() == ["Target Odds", "Target Points", "Points to Double the Odds"]
        assert table.iloc[2, 1] == 50

    def test_deterministic(self, report_config, fitted):
        again = ScoreScaler(report_config).fit(fitted["binning"], fitted["model"])

        assert again == fitted["card"]

    def test_basepoints_eq0(self, fitted):
        config = ReportConfig(basepoints_eq0=True)
        card = ScoreScaler(config).fit(fitted["binning"], fitted["model"])
        share = int(round(fitted["card"].base_points / len(FEATURES)))

        assert card.base_points == 0
        for feature in FEATURES:
            np.testing.assert_array_equal(
                card.points_of(feature), fitted["card"].points_of(feature) + share
            )


class TestScoring:

    def test_score_is_base_plus_bin_points(self, fitted, datasets):
        """Every score equals the base points plus one bin's points per feature."""
        card = fitted["card"]
        components = fitted["scaler"].score_components(card, fitted["binning"], datasets["test"])

        point_columns = [f"{f}_points" for f in FEATURES]
        expected = card.base_points + components[point_columns].sum(axis=1)
        np.testing.assert_array_equal(components[SCORE].to_numpy(), expected.to_numpy())

    def test_scores_are_integers_in_range(self, fitted, datasets):
        scores = fitted["scaler"].score(fitted["card"], fitted["binning"], datasets["train"])
        low, high = fitted["card"].score_range()

        assert scores.dtype.kind == "i"
        assert scores.between(low, high).all()

    def test_higher_score_lower_risk(self, fitted, datasets):
        """Score tracks offset - factor * log-odds up to per-term rounding."""
        card, model = fitted["card"], fitted["model"]
        scores = fitted["scaler"].score(card, fitted["binning"], datasets["test"]).to_numpy()
        log_odds = model.linear_predictor(fitted["encoded"]["test"])

        expected = card.offset - card.factor * log_odds
        assert np.abs(scores - expected).max() <= 0.5 * (len(FEATURES) + 1) + 1e-9
        assert np.corrcoef(scores, log_odds)[0, 1] < 0
