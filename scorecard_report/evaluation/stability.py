"""
Stability Analyzer

Population Stability Index of the score between the reference dataset and
every other dataset.

PSI Formula:
    PSI = Σ (actual% - expected%) * ln(actual% / expected%)

expected = reference bucket shares, actual = comparison bucket shares.

PSI Interpretation:
- < 0.1: No significant shift
- 0.1 - 0.25: Moderate shift
- > 0.25: Significant shift
"""

from typing import Any, Dict, Mapping, Optional
from dataclasses import dataclass, field

import numpy as np
import pandas as pd

from scorecard_report.core.base import PipelineComponent
from scorecard_report.core.exceptions import StabilityFloorError
from scorecard_report.evaluation.gains import gains_table
from scorecard_report.evaluation.plots import render_stability


@dataclass(frozen=True, eq=False)
class StabilityReport:
    """PSI per comparison dataset and the bucket distributions behind it."""
    reference: str
    summary: pd.DataFrame
    distributions: Mapping[str, pd.DataFrame] = field(default_factory=dict)

    @property
    def psi(self) -> Dict[str, float]:
        return dict(zip(self.summary["dataset"], self.summary["psi"]))


def psi_from_shares(
    expected: np.ndarray,
    actual: np.ndarray,
    epsilon: float = 1e-6,
    comparison: Optional[str] = None,
    logger: Any = None,
) -> float:
    """
    PSI of two bucket share vectors.

    Buckets empty on both sides contribute 0. A bucket empty on one side is
    floored at ``epsilon``.

    Raises:
        StabilityFloorError: If a bucket is empty on one side and epsilon is 0
    """
    expected = np.asarray(expected, dtype=float)
    actual = np.asarray(actual, dtype=float)

    both_empty = (expected == 0) & (actual == 0)
    one_empty = (expected == 0) ^ (actual == 0)

    if one_empty.any():
        if epsilon <= 0:
            raise StabilityFloorError(
                "Score bucket is empty on one side and no epsilon floor is set",
                details={"dataset": comparison, "buckets": np.flatnonzero(one_empty).tolist()},
            )
        if logger is not None:
            logger.warning(
                f"PSI '{comparison}': {int(one_empty.sum())} buckets empty on one side, "
                f"floored at {epsilon}"
            )

    keep = ~both_empty
    e = np.maximum(expected[keep], epsilon) if epsilon > 0 else expected[keep]
    a = np.maximum(actual[keep], epsilon) if epsilon > 0 else actual[keep]
    return float(np.sum((a - e) * np.log(a / e)))


class StabilityAnalyzer(PipelineComponent):
    """Score PSI of each validation dataset against the reference."""

    def __init__(self, config: Any, name: Optional[str] = None):
        super().__init__(config, name or "StabilityAnalyzer")

    def run(self, *args, **kwargs) -> StabilityReport:
        return self.analyze(*args, **kwargs)

    def analyze(
        self,
        scores: Mapping[str, Any],
        labels: Mapping[str, Any],
    ) -> StabilityReport:
        """
        Compare every non-reference dataset with the reference (first key).

        Each pair is bucketed on its own pooled scores with the stability
        bucketing settings.

        Returns:
            StabilityReport; its summary is empty for a single dataset
        """
        self._start_execution()
        cfg = self.config.stability
        names = list(scores.keys())
        reference = names[0]

        rows = []
        distributions: Dict[str, pd.DataFrame] = {}
        for comparison in names[1:]:
            pair_scores = {reference: scores[reference], comparison: scores[comparison]}
            pair_labels = {reference: labels[reference], comparison: labels[comparison]}
            table = gains_table(pair_scores, pair_labels, bin_num=cfg.bin_num, bin_type=cfg.bin_type)

            expected = table.loc[table["dataset"] == reference, "count distribution"].to_numpy()
            actual = table.loc[table["dataset"] == comparison, "count distribution"].to_numpy()
            psi = psi_from_shares(expected, actual, cfg.epsilon, comparison, self.logger)

            distributions[comparison] = table
            rows.append({"reference": reference, "dataset": comparison, "psi": psi})
            self.logger.info(f"PSI '{reference}' vs '{comparison}': {psi:.4f}")

        summary = pd.DataFrame(rows, columns=["reference", "dataset", "psi"])
        self._end_execution()
        return StabilityReport(reference=reference, summary=summary, distributions=distributions)

    def plot(self, report: StabilityReport) -> Dict[str, bytes]:
        """One PNG per comparison dataset."""
        psi = report.psi
        return {
            comparison: render_stability(
                table, report.reference, comparison, psi[comparison], dpi=self.config.output.plot_dpi
            )
            for comparison, table in report.distributions.items()
        }
