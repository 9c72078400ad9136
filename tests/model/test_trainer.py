"""
Tests for ModelTrainer: binomial GLM on WoE columns and its diagnostics.
"""

import numpy as np
import pandas as pd
import pytest
from statsmodels.tools.sm_exceptions import PerfectSeparationError

from scorecard_report.binning.coordinator import woe_column
from scorecard_report.core.exceptions import FitConvergenceError
from scorecard_report.data.sample import FEATURES, TARGET
from scorecard_report.model import trainer as trainer_module
from scorecard_report.model.trainer import INTERCEPT, ModelTrainer


class TestFit:

    def test_one_term_per_feature(self, fitted):
        model = fitted["model"]

        assert model.columns == [woe_column(f) for f in FEATURES]
        assert model.converged
        assert model.n_obs == 700

    def test_mean_prediction_matches_bad_rate(self, fitted):
        """With an intercept the fitted probabilities sum to the bad count."""
        encoded = fitted["encoded"]["train"]

        prob = ModelTrainer.predict(fitted["model"], encoded)

        assert prob.mean() == pytest.approx(encoded[TARGET].mean(), abs=1e-6)

    def test_predictions_in_unit_interval(self, fitted):
        prob = ModelTrainer.predict(fitted["model"], fitted["encoded"]["test"])

        assert len(prob) == len(fitted["encoded"]["test"])
        assert ((prob > 0) & (prob < 1)).all()

    def test_woe_terms_mostly_positive(self, fitted):
        """WoE is ln(bad/good), so informative terms get positive coefficients."""
        coefs = np.array(list(fitted["model"].coefficients.values()))

        assert (coefs > 0).sum() >= len(coefs) // 2

    def test_rank_deficient_design(self, report_config, fitted):
        encoded = fitted["encoded"]["train"].copy()
        encoded["copy_woe"] = encoded["age_in_years_woe"]

        with pytest.raises(FitConvergenceError) as exc:
            ModelTrainer(report_config).fit(encoded, TARGET, ["age_in_years", "copy"])

        assert exc.value.model_name == "binomial_glm"

    def test_constant_column_is_rank_deficient(self, report_config):
        encoded = pd.DataFrame({"x_woe": [0.5] * 20, TARGET: [0, 1] * 10})

        with pytest.raises(FitConvergenceError):
            ModelTrainer(report_config).fit(encoded, TARGET, ["x"])

    def test_separation_error_from_solver(self, report_config, fitted, monkeypatch):
        class SeparatingGLM:
            def __init__(self, *args, **kwargs):
                pass

            def fit(self):
                raise PerfectSeparationError("Perfect separation detected")

        monkeypatch.setattr(trainer_module.sm, "GLM", SeparatingGLM)

        with pytest.raises(FitConvergenceError) as exc:
            ModelTrainer(report_config).fit(fitted["encoded"]["train"], TARGET, FEATURES)

        assert isinstance(exc.value.cause, PerfectSeparationError)


class TestCoefficientTable:

    def test_columns(self, fitted):
        table = fitted["model"].coefficient_table()

        assert list(table.columns) == ["variable", "Estimate", "Std. Error", "z value", "Pr(>|z|)"]
        assert table["variable"].iloc[0] == INTERCEPT
        assert len(table) == len(FEATURES) + 1

    def test_z_is_estimate_over_std_error(self, fitted):
        table = fitted["model"].coefficient_table()

        np.testing.assert_allclose(table["z value"], table["Estimate"] / table["Std. Error"])

    def test_diagnostics(self, fitted, datasets):
        trainer = fitted["trainer"]
        table = trainer.diagnostics(
            fitted["model"], fitted["encoded"]["train"], fitted["binning"], datasets["train"].frame
        )

        assert list(table.columns)[-3:] == ["gvif", "info_value", "missing_rate"]
        intercept = table.iloc[0]
        assert pd.isna(intercept["gvif"])
        assert pd.isna(intercept["info_value"])

        body = table.iloc[1:]
        assert (body["gvif"] >= 1 - 1e-6).all()
        assert (body["missing_rate"] == 0).all()
        iv = fitted["binning"].iv_table().set_index("variable")["info_value"].round(4)
        assert body.set_index("variable")["info_value"].to_dict() == iv.to_dict()
