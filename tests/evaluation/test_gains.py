"""
Tests for the gains table.
"""

import numpy as np
import pandas as pd
import pytest

from scorecard_report.config.schema import ReportConfig
from scorecard_report.core.exceptions import InputShapeError
from scorecard_report.evaluation.gains import (
    GAINS_COLUMNS,
    GainsTableBuilder,
    assign_buckets,
    bucket_labels,
    gains_table,
    score_edges,
)


@pytest.fixture
def scored():
    rng = np.random.RandomState(11)
    scores, labels = {}, {}
    for name, n in [("train", 700), ("test", 300)]:
        s = rng.normal(550, 50, size=n).round().astype(int)
        p_bad = 1 / (1 + np.exp((s - 500) / 30))
        scores[name] = s
        labels[name] = (rng.uniform(size=n) < p_bad).astype(int)
    return scores, labels


class TestEdges:

    def test_outer_edges_are_infinite(self):
        edges = score_edges(np.arange(400, 700), 5, "freq")

        assert edges[0] == -np.inf
        assert edges[-1] == np.inf
        assert len(edges) == 6

    def test_width_edges_equal_steps(self):
        edges = score_edges(np.array([500, 600]), 4, "width")

        assert edges[1:-1].tolist() == [525, 550, 575]

    def test_duplicate_edges_dropped(self):
        edges = score_edges(np.array([500] * 90 + [600] * 10), 10, "freq")

        # every decile but the last equals the minimum and is dropped
        inner = edges[1:-1]
        assert len(inner) == 1
        assert 500 < inner[0] <= 600

    def test_bucket_one_is_highest(self):
        edges = np.array([-np.inf, 500, 600, np.inf])

        assert assign_buckets(np.array([450, 500, 599, 600, 900]), edges).tolist() == [3, 2, 2, 1, 1]
        assert bucket_labels(edges) == ["[-inf,500)", "[500,600)", "[600,inf)"]


class TestGainsTable:

    def test_columns_and_shape(self, scored):
        scores, labels = scored

        table = gains_table(scores, labels, bin_num=10)

        assert list(table.columns) == GAINS_COLUMNS
        n_buckets = table["bin"].nunique()
        assert len(table) == 2 * n_buckets
        assert table["dataset"].unique().tolist() == ["train", "test"]

    def test_final_cumulative_equals_totals(self, scored):
        scores, labels = scored

        table = gains_table(scores, labels, bin_num=10)

        for name, group in table.groupby("dataset", sort=False):
            last = group.iloc[-1]
            assert last["cumulative count"] == len(scores[name])
            assert last["cumulative bad"] == labels[name].sum()
            assert last["cumulative good"] == len(scores[name]) - labels[name].sum()
            assert last["approval rate"] == pytest.approx(1.0)
            assert group["count distribution"].sum() == pytest.approx(1.0)

    def test_bucket_order_highest_score_first(self, scored):
        scores, labels = scored

        table = gains_table(scores, labels, bin_num=5)
        bins = table.loc[table["dataset"] == "train", "bin"].tolist()

        assert bins[0].endswith(",inf)")
        assert bins[-1].startswith("[-inf,")

    def test_approval_rate_increases(self, scored):
        scores, labels = scored

        table = gains_table(scores, labels, bin_num=10)
        rates = table.loc[table["dataset"] == "test", "approval rate"].to_numpy()

        assert (np.diff(rates) >= 0).all()

    def test_empty_bucket_in_one_dataset(self):
        scores = {"a": np.array([100, 200, 300, 400]), "b": np.array([100, 100])}
        labels = {"a": np.array([1, 0, 1, 0]), "b": np.array([1, 0])}

        table = gains_table(scores, labels, bin_num=4, bin_type="width")
        b = table[table["dataset"] == "b"]

        assert len(b) == len(table[table["dataset"] == "a"])
        assert b["count"].sum() == 2
        assert b["bad probability"].isna().sum() == (b["count"] == 0).sum()

    def test_missing_labels(self, scored):
        scores, labels = scored

        with pytest.raises(InputShapeError):
            gains_table(scores, {"train": labels["train"]})

    def test_length_mismatch(self, scored):
        scores, labels = scored

        with pytest.raises(InputShapeError):
            gains_table(scores, {"train": labels["train"], "test": labels["test"][:10]})


class TestGainsTableBuilder:

    def test_uses_config_defaults(self, scored):
        scores, labels = scored
        builder = GainsTableBuilder(ReportConfig(bin_num=4, bin_type="width"))

        table = builder.build(scores, labels)

        assert table["bin"].nunique() <= 4
