"""
Model Trainer

Fits a binomial GLM (logit link) on the reference dataset's WoE columns and
produces the coefficient diagnostics shown in the report.
"""

from typing import Any, Dict, List, Mapping, Optional
from dataclasses import dataclass
import warnings

import numpy as np
import pandas as pd
import statsmodels.api as sm
from statsmodels.stats.outliers_influence import variance_inflation_factor
from statsmodels.tools.sm_exceptions import ConvergenceWarning, PerfectSeparationError

from scorecard_report.binning.coordinator import BinningSet, woe_column
from scorecard_report.core.base import PipelineComponent
from scorecard_report.core.exceptions import FitConvergenceError


INTERCEPT = "(Intercept)"


@dataclass(frozen=True, eq=False)
class Model:
    """Fitted binomial regression on WoE columns."""
    intercept: float
    coefficients: Mapping[str, float]
    covariance: pd.DataFrame
    std_errors: Mapping[str, float]
    z_values: Mapping[str, float]
    p_values: Mapping[str, float]
    n_obs: int
    converged: bool = True

    @property
    def columns(self) -> List[str]:
        """Encoded columns in fit order."""
        return list(self.coefficients.keys())

    def linear_predictor(self, encoded: pd.DataFrame) -> np.ndarray:
        X = encoded[self.columns].to_numpy(dtype=float)
        beta = np.array([self.coefficients[c] for c in self.columns], dtype=float)
        return self.intercept + X @ beta

    def predict_proba(self, encoded: pd.DataFrame) -> np.ndarray:
        """Probability of the positive (bad) class for every row."""
        return 1.0 / (1.0 + np.exp(-self.linear_predictor(encoded)))

    def coefficient_table(self) -> pd.DataFrame:
        names = [INTERCEPT] + self.columns
        return pd.DataFrame({
            "variable": names,
            "Estimate": [self.intercept] + [self.coefficients[c] for c in self.columns],
            "Std. Error": [self.std_errors[n] for n in names],
            "z value": [self.z_values[n] for n in names],
            "Pr(>|z|)": [self.p_values[n] for n in names],
        })


class ModelTrainer(PipelineComponent):
    """
    Binomial regression on WoE-encoded features.

    No feature selection is performed: every encoded column is a term.
    """

    def __init__(self, config: Any, name: Optional[str] = None):
        super().__init__(config, name or "ModelTrainer")

    def run(self, *args, **kwargs) -> Model:
        return self.fit(*args, **kwargs)

    def fit(self, encoded: pd.DataFrame, target: str, features: List[str]) -> Model:
        """
        Fit the model on the reference encoded dataset.

        Args:
            encoded: WoE-encoded reference dataset
            target: Label column
            features: Raw feature names (their ``_woe`` columns are used)

        Returns:
            Frozen Model

        Raises:
            FitConvergenceError: On a singular design, perfect separation or
                a fit that did not converge
        """
        self._start_execution()
        columns = [woe_column(f) for f in features]
        X = encoded[columns].astype(float)
        y = encoded[target].astype(int)
        exog = sm.add_constant(X, has_constant="add")

        rank = np.linalg.matrix_rank(exog.to_numpy())
        if rank < exog.shape[1]:
            raise FitConvergenceError(
                "Design matrix is rank deficient",
                model_name="binomial_glm",
                details={"rank": int(rank), "n_terms": int(exog.shape[1])},
            )

        try:
            with warnings.catch_warnings():
                warnings.simplefilter("ignore", ConvergenceWarning)
                result = sm.GLM(y, exog, family=sm.families.Binomial()).fit()
        except (np.linalg.LinAlgError, ValueError, PerfectSeparationError) as e:
            raise FitConvergenceError(
                f"GLM fitting failed: {e}",
                model_name="binomial_glm",
                cause=e,
            )

        converged = bool(getattr(result, "converged", True))
        if not converged:
            raise FitConvergenceError(
                "GLM did not converge",
                model_name="binomial_glm",
                details={"iterations": int(result.fit_history.get("iteration", 0))},
            )

        fitted = np.asarray(result.fittedvalues, dtype=float)
        if _is_separated(fitted, y.to_numpy()):
            raise FitConvergenceError(
                "Perfect separation: the fitted probabilities split the classes exactly",
                model_name="binomial_glm",
            )

        params = result.params.rename({"const": INTERCEPT})
        bse = result.bse.rename({"const": INTERCEPT})
        tvalues = result.tvalues.rename({"const": INTERCEPT})
        pvalues = result.pvalues.rename({"const": INTERCEPT})
        covariance = result.cov_params().rename(
            index={"const": INTERCEPT}, columns={"const": INTERCEPT}
        )

        model = Model(
            intercept=float(params[INTERCEPT]),
            coefficients={c: float(params[c]) for c in columns},
            covariance=covariance,
            std_errors={k: float(v) for k, v in bse.items()},
            z_values={k: float(v) for k, v in tvalues.items()},
            p_values={k: float(v) for k, v in pvalues.items()},
            n_obs=int(result.nobs),
            converged=converged,
        )

        self.logger.info(
            f"GLM fitted: {len(columns)} terms, {model.n_obs:,} rows, "
            f"intercept={model.intercept:.4f}"
        )
        for col in columns:
            self.logger.debug(f"  {col}: coef={model.coefficients[col]:.4f}, p={model.p_values[col]:.4g}")

        self._end_execution()
        return model

    @staticmethod
    def predict(model: Model, encoded: pd.DataFrame) -> np.ndarray:
        """Predicted bad probability, aligned with the rows of ``encoded``."""
        return model.predict_proba(encoded)

    @staticmethod
    def vif(encoded: pd.DataFrame, columns: List[str]) -> Dict[str, float]:
        """Variance inflation factor of each encoded column."""
        exog = sm.add_constant(encoded[columns].astype(float), has_constant="add").to_numpy()
        result = {}
        with np.errstate(divide="ignore", invalid="ignore"):
            for i, col in enumerate(columns, start=1):
                result[col] = float(variance_inflation_factor(exog, i))
        return result

    def diagnostics(
        self,
        model: Model,
        encoded: pd.DataFrame,
        binning: BinningSet,
        reference_frame: pd.DataFrame,
    ) -> pd.DataFrame:
        """
        Coefficient table merged with VIF, information value and missing rate.

        Columns: variable, Estimate, Std. Error, z value, Pr(>|z|), gvif,
        info_value, missing_rate. The intercept row has no diagnostics.
        """
        table = model.coefficient_table()
        vif = self.vif(encoded, model.columns)
        ivs = binning.iv_table().set_index("variable")["info_value"]
        missing = {
            woe_column(f): float(reference_frame[f].isna().mean())
            for f in binning.features
        }

        table["gvif"] = table["variable"].map(vif).round(4)
        table["info_value"] = table["variable"].map(ivs).round(4)
        table["missing_rate"] = table["variable"].map(missing)
        return table


def _is_separated(fitted: np.ndarray, y: np.ndarray) -> bool:
    bad = fitted[y == 1]
    good = fitted[y == 0]
    if len(bad) == 0 or len(good) == 0:
        return True
    return bool(bad.min() > good.max() or good.min() > bad.max())
