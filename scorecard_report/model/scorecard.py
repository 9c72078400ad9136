"""
Scorecard Scaling

Converts the fitted model and the frozen bins into a point-based scorecard
and applies it to any dataset.

Key formulas
------------
- ``factor = pdo / ln(2)``
- ``offset = points0 + factor * ln(odds0)``, with ``odds0`` the bad:good odds
  at ``points0``; equivalently ``points0 - factor * ln(good:bad odds)``
- ``base_points = round(offset - factor * intercept)``
- per bin: ``points = round(-factor * coef * woe)``

WoE is ln(distr_bad / distr_good), so a riskier bin gets fewer points:
a higher score always means a lower probability of bad.

The score of a row is the base points plus the points of the row's bin in
every feature, exactly.
"""

from typing import Any, Dict, List, Mapping, Optional, Tuple
from dataclasses import dataclass

import numpy as np
import pandas as pd

from scorecard_report.binning.coordinator import BinningSet, woe_column
from scorecard_report.binning.woebin import locate
from scorecard_report.core.base import PipelineComponent
from scorecard_report.core.exceptions import BinningError
from scorecard_report.data.preparer import Dataset
from scorecard_report.model.trainer import Model


BASEPOINTS = "basepoints"
SCORE = "score"


@dataclass(frozen=True)
class CardBin:
    """One bin of the scorecard."""
    label: str
    woe: float
    points: int


@dataclass(frozen=True)
class ScoreCard:
    """Frozen point table: feature -> bins, plus base points and scaling."""
    bins: Mapping[str, Tuple[CardBin, ...]]
    base_points: int
    factor: float
    offset: float
    odds0: float
    points0: float
    pdo: float
    basepoints_eq0: bool = False

    @property
    def features(self) -> List[str]:
        return list(self.bins.keys())

    def points_of(self, feature: str) -> np.ndarray:
        return np.array([b.points for b in self.bins[feature]], dtype=np.int64)

    def score_range(self) -> Tuple[int, int]:
        """Lowest and highest attainable score."""
        low = self.base_points + sum(min(b.points for b in bins) for bins in self.bins.values())
        high = self.base_points + sum(max(b.points for b in bins) for bins in self.bins.values())
        return int(low), int(high)

    def to_frame(self) -> pd.DataFrame:
        """Card table: variable, bin, woe, points (base points first)."""
        rows = [{"variable": BASEPOINTS, "bin": None, "woe": None, "points": self.base_points}]
        for feature, bins in self.bins.items():
            rows.extend(
                {"variable": feature, "bin": b.label, "woe": b.woe, "points": b.points}
                for b in bins
            )
        return pd.DataFrame(rows, columns=["variable", "bin", "woe", "points"])

    def scaling_table(self) -> pd.DataFrame:
        return pd.DataFrame([
            ["Target Odds", self.odds0],
            ["Target Points", self.points0],
            ["Points to Double the Odds", self.pdo],
        ])


class ScoreScaler(PipelineComponent):
    """Builds the ScoreCard and scores datasets with it."""

    def __init__(self, config: Any, name: Optional[str] = None):
        super().__init__(config, name or "ScoreScaler")

    def run(self, *args, **kwargs) -> ScoreCard:
        return self.fit(*args, **kwargs)

    def fit(self, binning: BinningSet, model: Model) -> ScoreCard:
        """
        Scale the model into points.

        Args:
            binning: Frozen bins of the run
            model: Fitted model on the ``<feature>_woe`` columns

        Returns:
            Frozen ScoreCard
        """
        self._start_execution()
        odds0 = self.config.odds0
        points0 = self.config.points0
        pdo = self.config.pdo

        factor = pdo / np.log(2)
        offset = points0 + factor * np.log(odds0)
        base_points = int(round(offset - factor * model.intercept))

        card_bins: Dict[str, Tuple[CardBin, ...]] = {}
        for feature in binning.features:
            coef = model.coefficients[woe_column(feature)]
            definition = binning[feature]
            card_bins[feature] = tuple(
                CardBin(
                    label=stat.label,
                    woe=stat.woe,
                    points=int(round(-factor * coef * stat.woe)),
                )
                for stat in definition.stats
            )

        if self.config.basepoints_eq0 and card_bins:
            share = int(round(base_points / len(card_bins)))
            card_bins = {
                feature: tuple(
                    CardBin(label=b.label, woe=b.woe, points=b.points + share) for b in bins
                )
                for feature, bins in card_bins.items()
            }
            base_points = 0

        card = ScoreCard(
            bins=card_bins,
            base_points=base_points,
            factor=float(factor),
            offset=float(offset),
            odds0=float(odds0),
            points0=float(points0),
            pdo=float(pdo),
            basepoints_eq0=self.config.basepoints_eq0,
        )
        low, high = card.score_range()
        self.logger.info(
            f"Scorecard: factor={factor:.4f}, offset={offset:.4f}, "
            f"base_points={base_points}, score range [{low}, {high}]"
        )
        self._end_execution()
        return card

    def score_components(
        self,
        card: ScoreCard,
        binning: BinningSet,
        dataset: Dataset,
    ) -> pd.DataFrame:
        """
        Points per feature for every row, plus the total score.

        Columns: ``<feature>_points`` for each feature, then ``score``.
        """
        df = dataset.frame
        unseen = self.config.binning.unseen_category
        components = pd.DataFrame(index=df.index)

        for feature in card.features:
            if feature not in binning.definitions:
                raise BinningError(
                    "Scorecard feature has no bin definition",
                    feature_name=feature,
                )
            positions = locate(binning[feature], df[feature], unseen)
            components[f"{feature}_points"] = card.points_of(feature)[positions]

        components[SCORE] = card.base_points + components.sum(axis=1).astype(np.int64)
        return components

    def score(self, card: ScoreCard, binning: BinningSet, dataset: Dataset) -> pd.Series:
        """Integer score of every row of ``dataset``."""
        scores = self.score_components(card, binning, dataset)[SCORE]
        self.logger.debug(
            f"Scored '{dataset.name}': mean={scores.mean():.1f}, "
            f"min={scores.min()}, max={scores.max()}"
        )
        return scores
