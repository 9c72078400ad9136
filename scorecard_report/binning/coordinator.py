"""
Binning Coordinator

Fits one frozen BinningSet from the reference dataset and applies it,
unchanged, to every dataset of the run.
"""

from typing import Any, Dict, List, Mapping, Optional, Sequence, Union
from dataclasses import dataclass
from types import MappingProxyType

import numpy as np
import pandas as pd

from scorecard_report.binning.woebin import (
    BinDefinition,
    compute_stats,
    encode,
    fit_feature,
    locate as locate_bins,
    stats_to_frame,
)
from scorecard_report.core.base import PipelineComponent
from scorecard_report.core.exceptions import BinningError, PipelineException
from scorecard_report.data.preparer import Dataset


WOE_SUFFIX = "_woe"


def woe_column(feature: str) -> str:
    return f"{feature}{WOE_SUFFIX}"


@dataclass(frozen=True)
class BinningSet:
    """Feature -> BinDefinition mapping fit from the reference dataset."""
    definitions: Mapping[str, BinDefinition]
    reference: str
    target: str

    @property
    def features(self) -> List[str]:
        return list(self.definitions.keys())

    def __getitem__(self, feature: str) -> BinDefinition:
        return self.definitions[feature]

    def iv_table(self) -> pd.DataFrame:
        """Total information value per encoded variable."""
        return pd.DataFrame({
            "variable": [woe_column(f) for f in self.features],
            "info_value": [self.definitions[f].total_iv for f in self.features],
        })

    def to_frame(self) -> pd.DataFrame:
        """Fit-time statistics of every feature stacked into one table."""
        return pd.concat(
            [d.to_frame() for d in self.definitions.values()],
            ignore_index=True,
        )


SpecialValues = Optional[Union[Sequence[Any], Mapping[str, Sequence[Any]]]]


class BinningCoordinator(PipelineComponent):
    """
    Fit-once / apply-many binning.

    ``fit`` may be called exactly once; every later ``apply`` and
    ``describe`` uses the same BinningSet instance.
    """

    def __init__(self, config: Any, name: Optional[str] = None):
        super().__init__(config, name or "BinningCoordinator")
        self._binning: Optional[BinningSet] = None

    def run(self, *args, **kwargs) -> BinningSet:
        return self.fit(*args, **kwargs)

    @property
    def binning(self) -> BinningSet:
        if self._binning is None:
            raise BinningError("Binning not fitted. Call fit() first.")
        return self._binning

    @property
    def is_fitted(self) -> bool:
        return self._binning is not None

    def fit(
        self,
        reference: Dataset,
        target: str,
        features: List[str],
        breaks_list: Optional[Mapping[str, Sequence[Any]]] = None,
        special_values: SpecialValues = None,
    ) -> BinningSet:
        """
        Fit bin definitions on the reference dataset.

        Args:
            reference: The reference dataset
            target: Label column
            features: Features to bin
            breaks_list: Optional feature -> breaks (numbers or ``%,%`` groups)
            special_values: A list for every feature or a feature -> list dict

        Returns:
            Frozen BinningSet

        Raises:
            BinningError: If already fitted, the label has one class, or a
                break specification is malformed
        """
        if self._binning is not None:
            raise BinningError(
                "Binning is already fitted; bins are never refit within a run",
                details={"reference": self._binning.reference},
            )

        self._start_execution()
        df = reference.frame
        breaks_list = dict(breaks_list or {})
        y = df[target]

        unknown = sorted(set(breaks_list) - set(features))
        if unknown:
            self.logger.warning(f"breaks_list entries for unused features ignored: {unknown}")

        if y.nunique() < 2:
            raise BinningError(
                "Target must have both classes (0 and 1) in the reference dataset",
                feature_name=target,
                details={"dataset": reference.name},
            )

        cfg = self.config.binning
        self.logger.info(
            f"Fitting bins on '{reference.name}': {len(features)} features, "
            f"{len(breaks_list)} with supplied breaks"
        )

        definitions: Dict[str, BinDefinition] = {}
        for feature in features:
            try:
                definition = fit_feature(
                    feature,
                    df[feature],
                    y,
                    breaks=breaks_list.get(feature),
                    special_values=self._special_for(special_values, feature),
                    fine_bins=cfg.fine_bins,
                    bin_num_limit=cfg.bin_num_limit,
                    count_distr_limit=cfg.count_distr_limit,
                    monotonic=cfg.monotonic,
                )
            except PipelineException:
                raise
            except (ValueError, TypeError) as e:
                raise BinningError(
                    f"Binning failed: {e}",
                    feature_name=feature,
                    cause=e,
                )
            definitions[feature] = definition
            self.logger.debug(
                f"Feature '{feature}': {definition.n_bins} bins, IV={definition.total_iv:.4f}"
            )

        self._binning = BinningSet(
            definitions=MappingProxyType(definitions),
            reference=reference.name,
            target=target,
        )
        self._end_execution()
        return self._binning

    @staticmethod
    def _special_for(special_values: SpecialValues, feature: str) -> Optional[Sequence[Any]]:
        if special_values is None:
            return None
        if isinstance(special_values, Mapping):
            return special_values.get(feature)
        return list(special_values)

    def apply(self, dataset: Dataset) -> pd.DataFrame:
        """
        WoE-encode a dataset with the frozen bins.

        Returns:
            DataFrame with one ``<feature>_woe`` column per feature plus the
            unchanged label column
        """
        binning = self.binning
        unseen = self.config.binning.unseen_category
        df = dataset.frame

        encoded = pd.DataFrame(index=df.index)
        for feature, definition in binning.definitions.items():
            encoded[woe_column(feature)] = encode(definition, df[feature], unseen)
        encoded[binning.target] = df[binning.target].to_numpy()

        self.logger.debug(f"Encoded '{dataset.name}': {encoded.shape}")
        return encoded

    def locate(self, dataset: Dataset) -> Dict[str, np.ndarray]:
        """Bin position of every row, per feature."""
        binning = self.binning
        unseen = self.config.binning.unseen_category
        return {
            feature: locate_bins(definition, dataset.frame[feature], unseen)
            for feature, definition in binning.definitions.items()
        }

    def describe(self, dataset: Dataset) -> Dict[str, pd.DataFrame]:
        """Per-feature bin statistics of ``dataset`` under the frozen bins."""
        binning = self.binning
        unseen = self.config.binning.unseen_category
        df = dataset.frame
        return {
            feature: stats_to_frame(
                feature,
                compute_stats(definition, df[feature], df[binning.target], unseen),
            )
            for feature, definition in binning.definitions.items()
        }
