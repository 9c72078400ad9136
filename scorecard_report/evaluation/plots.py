"""
Evaluation Charts

Curve grid of the performance sheet and the score distribution chart of the
stability sheet. Every function returns finished PNG bytes.
"""

from typing import Callable, Dict, Mapping, Sequence, Tuple
import math

import numpy as np
import pandas as pd
from sklearn.metrics import precision_recall_curve, roc_auc_score, roc_curve

from scorecard_report.core.figures import new_figure, render_png


PANEL_SIZE_CM = (8, 7)
STABILITY_SIZE_CM = (16, 7)


def grid_shape(n_panels: int) -> Tuple[int, int]:
    """(nrow, ncol) of a grid holding ``n_panels`` panels, ncol = ceil(sqrt(n))."""
    ncol = max(int(math.ceil(math.sqrt(n_panels))), 1)
    nrow = max(int(math.ceil(n_panels / ncol)), 1)
    return nrow, ncol


def _ranked(prob: np.ndarray, label: np.ndarray) -> Dict[str, np.ndarray]:
    """Cumulative shares with rows sorted from the highest bad probability down."""
    order = np.argsort(-np.asarray(prob, dtype=float), kind="mergesort")
    y = np.asarray(label, dtype=int)[order]
    n = len(y)
    n_bad = max(int(y.sum()), 1)
    n_good = max(int(n - y.sum()), 1)
    cum_bad = np.cumsum(y)
    rank = np.arange(1, n + 1)
    return {
        "population": rank / max(n, 1),
        "cum_bad": cum_bad / n_bad,
        "cum_good": np.cumsum(1 - y) / n_good,
        "precision": cum_bad / rank,
        "bad_rate": y.mean() if n else 0.0,
    }


def _plot_ks(ax, name, prob, label):
    r = _ranked(prob, label)
    diff = r["cum_bad"] - r["cum_good"]
    i = int(np.argmax(diff))
    ax.plot(r["population"], diff, label=f"{name} (KS {diff[i]:.4f})")
    ax.vlines(r["population"][i], 0, diff[i], linestyles="dotted", linewidth=0.8)
    ax.set_xlabel("% of population")
    ax.set_ylabel("% of bad - % of good")


def _plot_lift(ax, name, prob, label):
    r = _ranked(prob, label)
    base = r["bad_rate"] if r["bad_rate"] > 0 else 1.0
    ax.plot(r["population"], r["precision"] / base, label=name)
    ax.set_xlabel("% of population")
    ax.set_ylabel("lift")


def _plot_gain(ax, name, prob, label):
    r = _ranked(prob, label)
    ax.plot(r["population"], r["precision"], label=name)
    ax.set_xlabel("% of population")
    ax.set_ylabel("cumulative bad rate")


def _plot_roc(ax, name, prob, label):
    fpr, tpr, _ = roc_curve(label, prob)
    auc = roc_auc_score(label, prob)
    ax.plot(fpr, tpr, label=f"{name} (AUC {auc:.4f})")
    ax.plot([0, 1], [0, 1], color="grey", linestyle="--", linewidth=0.6)
    ax.set_xlabel("false positive rate")
    ax.set_ylabel("true positive rate")


def _plot_lz(ax, name, prob, label):
    r = _ranked(prob, label)
    ax.plot(np.r_[0, r["population"]], np.r_[0, r["cum_bad"]], label=name)
    ax.plot([0, 1], [0, 1], color="grey", linestyle="--", linewidth=0.6)
    ax.set_xlabel("% of population")
    ax.set_ylabel("% of bad")


def _plot_pr(ax, name, prob, label):
    precision, recall, _ = precision_recall_curve(label, prob)
    ax.plot(recall, precision, label=name)
    ax.set_xlabel("recall")
    ax.set_ylabel("precision")


def _plot_f1(ax, name, prob, label):
    precision, recall, thresholds = precision_recall_curve(label, prob)
    with np.errstate(divide="ignore", invalid="ignore"):
        f1 = np.nan_to_num(2 * precision * recall / (precision + recall))
    ax.plot(thresholds, f1[:-1], label=name)
    ax.set_xlabel("threshold")
    ax.set_ylabel("F1")


def _plot_density(ax, name, prob, label):
    prob = np.asarray(prob, dtype=float)
    label = np.asarray(label, dtype=int)
    edges = np.linspace(0, 1, 41)
    centers = (edges[:-1] + edges[1:]) / 2
    for cls, style in ((0, "-"), (1, "--")):
        values = prob[label == cls]
        if len(values) == 0:
            continue
        density, _ = np.histogram(values, bins=edges, density=True)
        ax.plot(centers, density, style, label=f"{name} {'bad' if cls else 'good'}")
    ax.set_xlabel("probability of bad")
    ax.set_ylabel("density")


PANELS: Dict[str, Callable] = {
    "ks": _plot_ks,
    "lift": _plot_lift,
    "gain": _plot_gain,
    "roc": _plot_roc,
    "lz": _plot_lz,
    "pr": _plot_pr,
    "f1": _plot_f1,
    "density": _plot_density,
}

TITLES = {
    "ks": "K-S",
    "lift": "Lift",
    "gain": "Gain",
    "roc": "ROC",
    "lz": "Lorenz",
    "pr": "Precision-Recall",
    "f1": "F1",
    "density": "Density",
}


def render_curves(
    predictions: Mapping[str, Tuple[np.ndarray, np.ndarray]],
    kinds: Sequence[str],
    dpi: int = 96,
) -> bytes:
    """
    Draw every requested curve in one grid; every dataset appears in every panel.

    The figure measures ``8 * ncol`` by ``7 * nrow`` centimetres.
    """
    nrow, ncol = grid_shape(len(kinds))
    fig, axes = new_figure(PANEL_SIZE_CM[0] * ncol, PANEL_SIZE_CM[1] * nrow, nrow, ncol)

    for i, kind in enumerate(kinds):
        ax = axes[i // ncol][i % ncol]
        for name, (prob, label) in predictions.items():
            PANELS[kind](ax, name, prob, label)
        ax.set_title(TITLES[kind], fontsize=9)
        ax.legend(fontsize=6, loc="best")
        ax.tick_params(labelsize=6)
        ax.xaxis.label.set_size(7)
        ax.yaxis.label.set_size(7)
        ax.grid(True, alpha=0.3)

    for j in range(len(kinds), nrow * ncol):
        axes[j // ncol][j % ncol].axis("off")

    fig.tight_layout()
    return render_png(fig, dpi=dpi)


def render_stability(
    distribution: pd.DataFrame,
    reference: str,
    comparison: str,
    psi: float,
    dpi: int = 96,
) -> bytes:
    """
    Population share per score bucket for both datasets, with the bad
    probability of each on a secondary axis.
    """
    fig, axes = new_figure(*STABILITY_SIZE_CM)
    ax = axes[0][0]

    buckets = list(pd.unique(distribution["bin"]))
    positions = np.arange(len(buckets))
    width = 0.4

    line_ax = ax.twinx()
    for offset, name in ((-width / 2, reference), (width / 2, comparison)):
        part = distribution[distribution["dataset"] == name].set_index("bin").reindex(buckets)
        ax.bar(positions + offset, part["count distribution"].to_numpy(), width=width, alpha=0.8, label=name)
        line_ax.plot(positions, part["bad probability"].to_numpy(), "o-", markersize=3, linewidth=1, label=f"{name} bad prob")

    ax.set_xticks(positions)
    ax.set_xticklabels(buckets, rotation=30, ha="right", fontsize=6)
    ax.set_ylabel("population share", fontsize=7)
    line_ax.set_ylabel("bad probability", fontsize=7)
    ax.tick_params(axis="y", labelsize=6)
    line_ax.tick_params(axis="y", labelsize=6)
    ax.set_title(f"{reference} vs {comparison}: PSI {psi:.4f}", fontsize=9)
    ax.legend(loc="upper left", fontsize=6)
    line_ax.legend(loc="upper right", fontsize=6)
    fig.tight_layout()

    return render_png(fig, dpi=dpi)
