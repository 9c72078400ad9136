"""
Binning charts: one PNG per feature and dataset.
"""

from typing import Dict

import numpy as np
import pandas as pd

from scorecard_report.core.figures import new_figure, render_png


BIN_PLOT_SIZE_CM = (12, 7)

GOOD_COLOR = "#2F5496"
BAD_COLOR = "#C00000"
LINE_COLOR = "#ED7D31"


def render_feature(
    stats: pd.DataFrame,
    dataset_name: str,
    dpi: int = 96,
) -> bytes:
    """
    Render the bin chart of one feature.

    Bars show the count distribution split into good and bad; the line on the
    secondary axis shows the bad probability of each bin.
    """
    feature = stats["variable"].iloc[0] if len(stats) else ""
    total_iv = float(stats["total_iv"].iloc[0]) if len(stats) else 0.0

    fig, axes = new_figure(*BIN_PLOT_SIZE_CM)
    ax = axes[0][0]
    positions = np.arange(len(stats))

    total = max(int(stats["count"].sum()), 1)
    good_share = stats["good"].to_numpy() / total
    bad_share = stats["bad"].to_numpy() / total

    ax.bar(positions, good_share, color=GOOD_COLOR, alpha=0.8, label="good")
    ax.bar(positions, bad_share, bottom=good_share, color=BAD_COLOR, alpha=0.8, label="bad")
    for x, share in zip(positions, stats["count_distr"].to_numpy()):
        ax.text(x, share, f"{share:.1%}", ha="center", va="bottom", fontsize=6)

    ax.set_xticks(positions)
    ax.set_xticklabels(stats["bin"].astype(str), rotation=30, ha="right", fontsize=6)
    ax.set_ylabel("count distribution", fontsize=7)
    ax.tick_params(axis="y", labelsize=6)

    line_ax = ax.twinx()
    line_ax.plot(positions, stats["badprob"].to_numpy(), "o-", color=LINE_COLOR, linewidth=1.2, markersize=3)
    line_ax.set_ylabel("bad probability", fontsize=7)
    line_ax.tick_params(axis="y", labelsize=6)
    line_ax.set_ylim(bottom=0)

    ax.set_title(f"{dataset_name}: {feature} (iv {total_iv:.4f})", fontsize=8)
    ax.legend(loc="upper left", fontsize=6)
    fig.tight_layout()

    return render_png(fig, dpi=dpi)


def render_dataset(
    tables: Dict[str, pd.DataFrame],
    dataset_name: str,
    dpi: int = 96,
) -> Dict[str, bytes]:
    """Render every feature of one dataset, keyed by feature."""
    return {
        feature: render_feature(stats, dataset_name, dpi=dpi)
        for feature, stats in tables.items()
    }
