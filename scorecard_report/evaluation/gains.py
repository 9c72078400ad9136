"""
Gains Table Builder

Buckets the pooled scores of every dataset on one shared set of boundaries
and reports per-(dataset, bucket) counts, bad rates and cumulative shares.

Bucket 1 is the highest-score, lowest-risk interval. Every cumulative
column, including the approval rate, accumulates from bucket 1: the
approval rate of bucket k is the share of the dataset that would be
approved with a cut-off at the lower edge of bucket k.
"""

from typing import Any, List, Mapping, Optional

import numpy as np
import pandas as pd

from scorecard_report.core.base import PipelineComponent
from scorecard_report.core.exceptions import InputShapeError


GAINS_COLUMNS = [
    "dataset",
    "bin",
    "count",
    "cumulative count",
    "good",
    "cumulative good",
    "bad",
    "cumulative bad",
    "count distribution",
    "bad probability",
    "cumulative bad probability",
    "approval rate",
]


def score_edges(scores: np.ndarray, bin_num: int, bin_type: str = "freq") -> np.ndarray:
    """
    Bucket boundaries from pooled scores: -inf, rounded inner edges, +inf.

    ``freq`` uses quantiles of the scores, ``width`` equal-width steps
    between the minimum and maximum score.
    """
    s = np.asarray(scores, dtype=float)
    s = s[~np.isnan(s)]
    if len(s) == 0:
        return np.array([-np.inf, np.inf])

    if bin_type == "freq":
        inner = np.quantile(s, np.linspace(0, 1, bin_num + 1)[1:-1])
    elif bin_type == "width":
        inner = np.linspace(s.min(), s.max(), bin_num + 1)[1:-1]
    else:
        raise ValueError(f"bin_type must be 'freq' or 'width', got {bin_type!r}")

    inner = np.unique(np.round(inner))
    inner = inner[(inner > s.min()) & (inner <= s.max())]
    return np.concatenate([[-np.inf], inner, [np.inf]])


def bucket_labels(edges: np.ndarray) -> List[str]:
    """Interval labels in ascending score order, e.g. ``[520,560)``."""
    def fmt(v: float) -> str:
        if np.isinf(v):
            return "inf" if v > 0 else "-inf"
        return str(int(v))
    return [f"[{fmt(a)},{fmt(b)})" for a, b in zip(edges[:-1], edges[1:])]


def assign_buckets(scores: np.ndarray, edges: np.ndarray) -> np.ndarray:
    """Bucket number (1 = highest scores) of every score; intervals are [a,b)."""
    ascending = np.searchsorted(edges[1:-1], np.asarray(scores, dtype=float), side="right")
    return (len(edges) - 1) - ascending


def gains_table(
    scores: Mapping[str, Any],
    labels: Mapping[str, Any],
    bin_num: int = 10,
    bin_type: str = "freq",
) -> pd.DataFrame:
    """
    Build the gains table of several datasets.

    Args:
        scores: dataset name -> integer scores
        labels: dataset name -> 0/1 labels (same order as ``scores``)
        bin_num: Requested number of buckets
        bin_type: ``freq`` or ``width``

    Returns:
        DataFrame with GAINS_COLUMNS, sorted by dataset (input order) and
        bucket; every dataset lists every bucket
    """
    missing = [name for name in scores if name not in labels]
    if missing:
        raise InputShapeError(
            "Every scored dataset needs labels",
            missing_columns=missing,
        )

    pooled = np.concatenate([np.asarray(s, dtype=float) for s in scores.values()])
    edges = score_edges(pooled, bin_num, bin_type)
    names = bucket_labels(edges)[::-1]
    n_buckets = len(names)

    frames = []
    for name, s in scores.items():
        y = np.asarray(labels[name], dtype=int)
        if len(y) != len(s):
            raise InputShapeError(
                f"Scores and labels of '{name}' differ in length",
                details={"scores": len(s), "labels": len(y)},
            )
        bucket = assign_buckets(np.asarray(s, dtype=float), edges)
        count = np.bincount(bucket - 1, minlength=n_buckets)
        bad = np.bincount(bucket - 1, weights=y, minlength=n_buckets).astype(int)
        good = count - bad
        total = count.sum()

        cum_count = np.cumsum(count)
        cum_bad = np.cumsum(bad)
        with np.errstate(divide="ignore", invalid="ignore"):
            frame = pd.DataFrame({
                "dataset": name,
                "bin": names,
                "count": count,
                "cumulative count": cum_count,
                "good": good,
                "cumulative good": np.cumsum(good),
                "bad": bad,
                "cumulative bad": cum_bad,
                "count distribution": count / total if total else np.zeros(n_buckets),
                "bad probability": np.where(count > 0, bad / np.maximum(count, 1), np.nan),
                "cumulative bad probability": np.where(
                    cum_count > 0, cum_bad / np.maximum(cum_count, 1), np.nan
                ),
                "approval rate": cum_count / total if total else np.zeros(n_buckets),
            })
        frames.append(frame)

    return pd.concat(frames, ignore_index=True)[GAINS_COLUMNS]


class GainsTableBuilder(PipelineComponent):
    """Gains table over the pooled scores of every dataset."""

    def __init__(self, config: Any, name: Optional[str] = None):
        super().__init__(config, name or "GainsTableBuilder")

    def run(self, *args, **kwargs) -> pd.DataFrame:
        return self.build(*args, **kwargs)

    def build(
        self,
        scores: Mapping[str, Any],
        labels: Mapping[str, Any],
        bin_num: Optional[int] = None,
        bin_type: Optional[str] = None,
    ) -> pd.DataFrame:
        """Gains table with the configured (or given) bucketing."""
        self._start_execution()
        bin_num = bin_num or self.config.bin_num
        bin_type = bin_type or self.config.bin_type

        table = gains_table(scores, labels, bin_num=bin_num, bin_type=bin_type)
        n_buckets = table["bin"].nunique()
        self.logger.info(
            f"Gains table: {len(scores)} datasets x {n_buckets} buckets "
            f"(requested {bin_num}, {bin_type})"
        )
        if n_buckets < bin_num:
            self.logger.debug(f"{bin_num - n_buckets} duplicate bucket edges dropped")
        self._end_execution()
        return table
