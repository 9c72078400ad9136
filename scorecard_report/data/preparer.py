"""
Dataset Preparer

Turns the raw input (one table or a name -> table mapping) into an ordered
mapping of validated, named datasets. The first entry is the reference
dataset: it is the only one used for fitting bins and the model.
"""

from typing import Any, Dict, List, Mapping, Optional, Sequence, Union
from dataclasses import dataclass
import numpy as np
import pandas as pd

from scorecard_report.core.base import PipelineComponent
from scorecard_report.core.exceptions import InputShapeError, LabelValidationError


REFERENCE = "reference"
VALIDATION = "validation"


@dataclass(frozen=True)
class Dataset:
    """Named table with a binary {0, 1} label column."""
    name: str
    frame: pd.DataFrame
    role: str

    @property
    def is_reference(self) -> bool:
        return self.role == REFERENCE

    def __len__(self) -> int:
        return len(self.frame)


def parse_positive(positive: Union[str, int, Sequence[Any]]) -> List[str]:
    """Split a positive-class spec such as ``"bad|1"`` into string tokens."""
    if isinstance(positive, str):
        tokens = positive.split("|")
    elif isinstance(positive, (list, tuple, set)):
        tokens = list(positive)
    else:
        tokens = [positive]
    return [str(t).strip() for t in tokens if str(t).strip() != ""]


def check_label(
    df: pd.DataFrame,
    target: str,
    positive: Union[str, Sequence[Any]] = "bad|1",
    dataset_name: Optional[str] = None,
    logger: Any = None,
) -> pd.DataFrame:
    """
    Normalise the label column to integers {0, 1}.

    Rows with a missing label are dropped. A label already in {0, 1} is kept
    as is; otherwise it must have exactly two distinct values, exactly one of
    which matches a positive token.

    Raises:
        LabelValidationError: If the label cannot be coerced to binary
    """
    labels = df[target]
    missing = labels.isna()
    if missing.any():
        if logger is not None:
            logger.warning(
                f"Dataset '{dataset_name}': dropping {int(missing.sum())} rows "
                f"with missing '{target}'"
            )
        df = df.loc[~missing]
        labels = df[target]

    values = pd.unique(labels)
    if len(values) == 0:
        raise LabelValidationError(
            f"Label '{target}' has no non-missing values",
            details={"dataset": dataset_name},
        )

    if _is_binary_numeric(values):
        result = df.copy()
        result[target] = labels.astype(int)
        return result

    tokens = parse_positive(positive)
    as_text = labels.astype(str).str.strip()
    distinct = sorted(pd.unique(as_text))
    matched = [v for v in distinct if v in tokens]

    if len(distinct) != 2 or len(matched) != 1:
        raise LabelValidationError(
            f"Label '{target}' cannot be coerced to binary with positive={tokens}",
            label_values=distinct[:10],
            details={"dataset": dataset_name, "n_distinct": len(distinct)},
        )

    result = df.copy()
    result[target] = (as_text == matched[0]).astype(int)
    return result


def _is_binary_numeric(values: np.ndarray) -> bool:
    try:
        numeric = pd.to_numeric(pd.Series(values), errors="raise")
    except (ValueError, TypeError):
        return False
    if pd.api.types.is_bool_dtype(numeric):
        return True
    return bool(numeric.isin([0, 1]).all())


def split_table(
    df: pd.DataFrame,
    seed: int,
    ratio: float = 0.7,
    names: Sequence[str] = ("train", "test"),
) -> Dict[str, pd.DataFrame]:
    """
    Split a table into two parts with a seeded permutation.

    The first ``round(len(df) * ratio)`` permuted rows form the first part.
    The same seed always yields the same partition.
    """
    n_rows = len(df)
    order = np.random.RandomState(seed).permutation(n_rows)
    n_first = int(round(n_rows * ratio))

    first = df.iloc[np.sort(order[:n_first])]
    second = df.iloc[np.sort(order[n_first:])]
    return {names[0]: first, names[1]: second}


class DatasetPreparer(PipelineComponent):
    """
    Builds the ordered dataset mapping for a report run.

    Behaviour:
    - single table + seed: seeded split into ``split.names`` (train/test)
    - single table, no seed: one dataset named ``split.unsplit_name``
    - mapping of tables: used unchanged, first key is the reference
    """

    def __init__(self, config: Any, name: Optional[str] = None):
        super().__init__(config, name or "DatasetPreparer")

    def run(self, *args, **kwargs) -> Dict[str, Dataset]:
        return self.prepare(*args, **kwargs)

    def prepare(
        self,
        dt: Union[pd.DataFrame, Mapping[str, pd.DataFrame]],
        target: str,
        features: Optional[List[str]] = None,
        seed: Optional[int] = None,
        positive: Union[str, Sequence[Any]] = "bad|1",
    ) -> Dict[str, Dataset]:
        """
        Prepare named datasets, reference first.

        Args:
            dt: A DataFrame or a mapping of name -> DataFrame
            target: Label column name
            features: Feature columns (default: every non-target column)
            seed: Split seed for a single table; None keeps it whole
            positive: Positive-class tokens, e.g. ``"bad|1"``

        Returns:
            Ordered dict of name -> Dataset

        Raises:
            InputShapeError: If the input shape or columns are invalid
            LabelValidationError: If a label cannot be coerced to binary
        """
        self._start_execution()
        split_cfg = self.config.split

        if isinstance(dt, pd.DataFrame):
            if seed is None:
                tables = {split_cfg.unsplit_name: dt}
            else:
                tables = split_table(dt, seed, split_cfg.ratio, split_cfg.names)
                self.logger.info(
                    f"Split {len(dt):,} rows with seed={seed}: "
                    + ", ".join(f"{k}={len(v):,}" for k, v in tables.items())
                )
        elif isinstance(dt, Mapping) and len(dt) > 0 and all(
            isinstance(v, pd.DataFrame) for v in dt.values()
        ):
            tables = {str(k): v for k, v in dt.items()}
        else:
            raise InputShapeError(
                "The input should be a DataFrame or a non-empty mapping of DataFrames",
                details={"type": type(dt).__name__},
            )

        datasets: Dict[str, Dataset] = {}
        for idx, (ds_name, table) in enumerate(tables.items()):
            self._check_columns(ds_name, table, target, features)
            frame = check_label(table, target, positive, ds_name, self.logger)
            frame = frame.reset_index(drop=True)
            role = REFERENCE if idx == 0 else VALIDATION
            datasets[ds_name] = Dataset(name=ds_name, frame=frame, role=role)
            self.logger.info(
                f"Dataset '{ds_name}' ({role}): {len(frame):,} rows, "
                f"bad rate {frame[target].mean():.2%}"
            )

        self._end_execution()
        return datasets

    @staticmethod
    def resolve_features(
        datasets: Mapping[str, Dataset],
        target: str,
        features: Optional[List[str]] = None,
    ) -> List[str]:
        """Feature list for the run: given list, or every non-target column of the reference."""
        if features:
            return list(features)
        reference = next(iter(datasets.values()))
        return [c for c in reference.frame.columns if c != target]

    def check_features(self, datasets: Mapping[str, Dataset], target: str, features: List[str]) -> None:
        """Every dataset must carry every feature of the run."""
        if not features:
            raise InputShapeError("No feature columns to model", details={"target": target})
        for ds_name, dataset in datasets.items():
            self._check_columns(ds_name, dataset.frame, target, features)

    @staticmethod
    def _check_columns(
        ds_name: str,
        table: pd.DataFrame,
        target: str,
        features: Optional[List[str]],
    ) -> None:
        required = [target] + list(features or [])
        missing = [c for c in required if c not in table.columns]
        if missing:
            raise InputShapeError(
                f"Dataset '{ds_name}' is missing required columns",
                missing_columns=missing,
                details={"dataset": ds_name},
            )
