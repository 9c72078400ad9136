"""
WoE Binning Engine

Fits per-feature bin definitions and encodes values to Weight of Evidence.

Bin conventions:
- Numeric bins are left-closed, right-open: [-inf,c1), [c1,c2), ..., [ck,inf)
- Categorical bins are groups of categories; ``%,%`` joins the members of
  one group in break specifications and labels
- A ``missing`` bin exists when missing values were seen at fit time
- Special values form one dedicated bin that is checked first

WoE Formula:
    WoE_i = ln(distr_bad_i / distr_good_i)

IV Formula:
    IV = Σ (distr_bad_i - distr_good_i) * WoE_i

Zero good or bad counts are replaced by 0.99 before the ratio.
"""

from typing import Any, Dict, List, Optional, Sequence, Tuple
from dataclasses import dataclass, field, replace
import logging

import numpy as np
import pandas as pd

from scorecard_report.core.exceptions import BinningError


logger = logging.getLogger(__name__)

NUMERIC = "numeric"
CATEGORICAL = "categorical"
MISSING_LABEL = "missing"
GROUP_SEP = "%,%"
ZERO_COUNT_REPLACEMENT = 0.99

STAT_COLUMNS = [
    "variable", "bin", "count", "count_distr", "good", "bad",
    "badprob", "woe", "bin_iv", "total_iv", "breaks", "is_special_values",
]


@dataclass(frozen=True)
class BinStat:
    """Statistics of one bin."""
    label: str
    count: int
    good: int
    bad: int
    count_distr: float
    badprob: float
    woe: float
    bin_iv: float
    breaks: str
    is_special_values: bool


@dataclass(frozen=True)
class BinDefinition:
    """
    Frozen binning rule of one feature with its fit-time statistics.

    ``breaks`` holds the cut points of a numeric feature or the category
    groups of a categorical one. Bins are ordered: missing, special, regular.
    """
    feature: str
    kind: str
    breaks: Tuple[Any, ...]
    special_values: Tuple[Any, ...] = ()
    has_missing: bool = False
    stats: Tuple[BinStat, ...] = field(default=(), compare=False)

    @property
    def n_leading(self) -> int:
        """Number of missing/special bins in front of the regular ones."""
        return int(self.has_missing) + int(bool(self.special_values))

    @property
    def missing_index(self) -> Optional[int]:
        return 0 if self.has_missing else None

    @property
    def special_index(self) -> Optional[int]:
        if not self.special_values:
            return None
        return int(self.has_missing)

    @property
    def labels(self) -> List[str]:
        out = []
        if self.has_missing:
            out.append(MISSING_LABEL)
        if self.special_values:
            out.append(GROUP_SEP.join(_fmt(v) for v in self.special_values))
        out.extend(self.regular_labels())
        return out

    def regular_labels(self) -> List[str]:
        if self.kind == CATEGORICAL:
            return [GROUP_SEP.join(group) for group in self.breaks]
        edges = [-np.inf] + list(self.breaks) + [np.inf]
        return [f"[{_fmt(a)},{_fmt(b)})" for a, b in zip(edges[:-1], edges[1:])]

    @property
    def n_bins(self) -> int:
        return self.n_leading + len(self.regular_labels())

    @property
    def total_iv(self) -> float:
        return float(sum(s.bin_iv for s in self.stats))

    @property
    def woe_values(self) -> np.ndarray:
        return np.array([s.woe for s in self.stats], dtype=float)

    def break_specs(self) -> List[str]:
        """Breaks in the user-facing ``breaks_list`` format."""
        if self.kind == CATEGORICAL:
            return [GROUP_SEP.join(group) for group in self.breaks]
        return [_fmt(c) for c in self.breaks]

    def to_frame(self) -> pd.DataFrame:
        """Fit-time statistics as a table (one row per bin)."""
        return stats_to_frame(self.feature, self.stats)


def _fmt(value: Any) -> str:
    if isinstance(value, (float, np.floating)):
        if np.isinf(value):
            return "inf" if value > 0 else "-inf"
        if float(value).is_integer():
            return str(int(value))
        return f"{float(value):.6g}"
    if isinstance(value, (np.integer,)):
        return str(int(value))
    return str(value)


def stats_to_frame(feature: str, stats: Sequence[BinStat]) -> pd.DataFrame:
    """Build the per-bin table of a feature."""
    total_iv = float(sum(s.bin_iv for s in stats))
    rows = [
        {
            "variable": feature,
            "bin": s.label,
            "count": s.count,
            "count_distr": s.count_distr,
            "good": s.good,
            "bad": s.bad,
            "badprob": s.badprob,
            "woe": s.woe,
            "bin_iv": s.bin_iv,
            "total_iv": total_iv,
            "breaks": s.breaks,
            "is_special_values": s.is_special_values,
        }
        for s in stats
    ]
    return pd.DataFrame(rows, columns=STAT_COLUMNS)


# ═══════════════════════════════════════════════════════════════
# BIN ASSIGNMENT
# ═══════════════════════════════════════════════════════════════

def locate(
    definition: BinDefinition,
    series: pd.Series,
    unseen_category: str = "error",
) -> np.ndarray:
    """
    Position (0-based, in ``definition.labels`` order) of every value's bin.

    Raises:
        BinningError: For a missing value without a missing bin, or an
            unseen category that cannot be routed to the missing bin
    """
    feature = definition.feature
    n_rows = len(series)
    positions = np.full(n_rows, -1, dtype=int)

    special_mask = np.zeros(n_rows, dtype=bool)
    if definition.special_values:
        special_mask = series.isin(list(definition.special_values)).to_numpy()
        positions[special_mask] = definition.special_index

    missing_mask = series.isna().to_numpy() & ~special_mask
    if missing_mask.any():
        if not definition.has_missing:
            raise BinningError(
                f"{int(missing_mask.sum())} missing values but no missing bin was fit",
                feature_name=feature,
            )
        positions[missing_mask] = definition.missing_index

    regular_mask = ~special_mask & ~missing_mask
    if not regular_mask.any():
        return positions

    values = series.to_numpy()[regular_mask]
    offset = definition.n_leading

    if definition.kind == NUMERIC:
        try:
            numeric = np.asarray(values, dtype=float)
        except (TypeError, ValueError) as e:
            raise BinningError(
                "Non-numeric values in a numeric feature",
                feature_name=feature,
                cause=e,
            )
        cuts = np.asarray(definition.breaks, dtype=float)
        positions[regular_mask] = offset + np.searchsorted(cuts, numeric, side="right")
        return positions

    lookup = {cat: g for g, group in enumerate(definition.breaks) for cat in group}
    categories = pd.Series(values).astype(str)
    mapped = categories.map(lookup)
    unseen = mapped.isna().to_numpy()
    if unseen.any():
        if unseen_category == "missing" and definition.has_missing:
            logger.warning(
                f"Feature '{feature}': {int(unseen.sum())} unseen category values "
                f"routed to the missing bin"
            )
        else:
            raise BinningError(
                "Categories not observed at fit time",
                feature_name=feature,
                details={"unseen": sorted(set(categories[unseen]))[:10]},
            )
    group_pos = np.where(unseen, -1, mapped.fillna(-1).to_numpy()).astype(int)
    regular_pos = np.where(unseen, definition.missing_index or 0, offset + group_pos)
    positions[regular_mask] = regular_pos
    return positions


def compute_stats(
    definition: BinDefinition,
    series: pd.Series,
    y: pd.Series,
    unseen_category: str = "error",
) -> Tuple[BinStat, ...]:
    """Per-bin counts, bad probability, WoE and IV of ``series`` under fixed bins."""
    positions = locate(definition, series, unseen_category)
    labels = definition.labels
    target = np.asarray(y, dtype=int)

    count = np.bincount(positions, minlength=len(labels))
    bad = np.bincount(positions, weights=target, minlength=len(labels)).astype(int)
    good = count - bad

    woe, bin_iv = _woe_iv(good, bad)
    total = max(int(count.sum()), 1)

    # numeric bins report their right edge, like a breaks_list entry
    specs = labels[:definition.n_leading]
    if definition.kind == NUMERIC:
        specs.extend(definition.break_specs() + ["inf"])
    else:
        specs.extend(definition.break_specs())

    stats = []
    for i, label in enumerate(labels):
        stats.append(BinStat(
            label=label,
            count=int(count[i]),
            good=int(good[i]),
            bad=int(bad[i]),
            count_distr=float(count[i] / total),
            badprob=float(bad[i] / count[i]) if count[i] > 0 else 0.0,
            woe=float(woe[i]),
            bin_iv=float(bin_iv[i]),
            breaks=specs[i],
            is_special_values=i < definition.n_leading,
        ))
    return tuple(stats)


def _woe_iv(good: np.ndarray, bad: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    good = np.asarray(good, dtype=float)
    bad = np.asarray(bad, dtype=float)
    total_good = max(good.sum(), 1.0)
    total_bad = max(bad.sum(), 1.0)

    distr_good = np.where(good == 0, ZERO_COUNT_REPLACEMENT, good) / total_good
    distr_bad = np.where(bad == 0, ZERO_COUNT_REPLACEMENT, bad) / total_bad

    woe = np.log(distr_bad / distr_good)
    bin_iv = (distr_bad - distr_good) * woe
    return woe, bin_iv


def encode(
    definition: BinDefinition,
    series: pd.Series,
    unseen_category: str = "error",
) -> np.ndarray:
    """WoE value of every element of ``series``."""
    return definition.woe_values[locate(definition, series, unseen_category)]


# ═══════════════════════════════════════════════════════════════
# FITTING
# ═══════════════════════════════════════════════════════════════

def is_numeric_feature(series: pd.Series) -> bool:
    return pd.api.types.is_numeric_dtype(series) and not pd.api.types.is_bool_dtype(series)


def fit_feature(
    feature: str,
    series: pd.Series,
    y: pd.Series,
    breaks: Optional[Sequence[Any]] = None,
    special_values: Optional[Sequence[Any]] = None,
    fine_bins: int = 20,
    bin_num_limit: int = 8,
    count_distr_limit: float = 0.05,
    monotonic: bool = True,
) -> BinDefinition:
    """
    Fit the bin definition of one feature.

    Args:
        feature: Feature name
        series: Feature values of the reference dataset
        y: Binary label aligned with ``series``
        breaks: Optional user breaks (numbers, or ``%,%``-joined groups)
        special_values: Values placed in the dedicated special bin
        fine_bins: Number of quantile classes before merging
        bin_num_limit: Maximum number of regular bins
        count_distr_limit: Minimum share of rows in a regular bin
        monotonic: Merge numeric bins until bad rate is monotone

    Returns:
        BinDefinition with fit-time statistics
    """
    specials = tuple(special_values or ())
    special_mask = series.isin(list(specials)) if specials else pd.Series(False, index=series.index)
    has_missing = bool((series.isna() & ~special_mask).any())

    regular = ~special_mask & series.notna()
    x = series[regular]
    target = pd.Series(np.asarray(y, dtype=int), index=series.index)[regular]

    kind = NUMERIC if is_numeric_feature(series) else CATEGORICAL
    limits = dict(
        bin_num_limit=bin_num_limit,
        count_distr_limit=count_distr_limit,
    )

    if kind == NUMERIC:
        if breaks is not None:
            cut_points = _parse_numeric_breaks(feature, breaks)
        else:
            cut_points = _auto_numeric_breaks(
                x.astype(float), target, fine_bins=fine_bins, monotonic=monotonic, **limits
            )
        definition_breaks: Tuple[Any, ...] = tuple(cut_points)
    else:
        categories = x.astype(str)
        if breaks is not None:
            groups = _parse_category_breaks(feature, breaks, categories)
        else:
            groups = _auto_category_groups(categories, target, **limits)
        definition_breaks = tuple(tuple(g) for g in groups)

    definition = BinDefinition(
        feature=feature,
        kind=kind,
        breaks=definition_breaks,
        special_values=specials,
        has_missing=has_missing,
    )
    stats = compute_stats(definition, series, y)
    return replace(definition, stats=stats)


def _parse_numeric_breaks(feature: str, breaks: Sequence[Any]) -> List[float]:
    cut_points = []
    for b in breaks:
        if isinstance(b, str) and b.strip().lower() == MISSING_LABEL:
            continue
        try:
            cut_points.append(float(b))
        except (TypeError, ValueError) as e:
            raise BinningError(
                f"Invalid numeric break {b!r}",
                feature_name=feature,
                cause=e,
            )
    if any(np.isnan(c) for c in cut_points):
        raise BinningError("Numeric breaks cannot contain NaN", feature_name=feature)
    return sorted(set(c for c in cut_points if np.isfinite(c)))


def _parse_category_breaks(
    feature: str,
    breaks: Sequence[Any],
    categories: pd.Series,
) -> List[List[str]]:
    groups: List[List[str]] = []
    seen: Dict[str, int] = {}
    for spec in breaks:
        members = [m.strip() for m in str(spec).split(GROUP_SEP)]
        members = [m for m in members if m and m.lower() != MISSING_LABEL]
        if not members:
            continue
        for m in members:
            if m in seen:
                raise BinningError(
                    f"Category {m!r} appears in more than one break group",
                    feature_name=feature,
                )
            seen[m] = len(groups)
        groups.append(members)

    # fit-time categories absent from the supplied groups get their own group
    for cat in sorted(pd.unique(categories)):
        if cat not in seen:
            seen[cat] = len(groups)
            groups.append([cat])
    return groups


def _auto_numeric_breaks(
    x: pd.Series,
    y: pd.Series,
    fine_bins: int,
    bin_num_limit: int,
    count_distr_limit: float,
    monotonic: bool,
) -> List[float]:
    """Quantile fine classing followed by merging."""
    if x.nunique() <= 1:
        return []

    quantiles = np.linspace(0, 1, fine_bins + 1)[1:-1]
    fine_cuts = np.unique(x.quantile(quantiles, interpolation="lower").to_numpy())
    fine_cuts = [float(c) for c in fine_cuts if c > x.min()]

    fine_pos = np.searchsorted(np.asarray(fine_cuts), x.to_numpy(), side="right")
    n_fine = len(fine_cuts) + 1
    count = np.bincount(fine_pos, minlength=n_fine)
    bad = np.bincount(fine_pos, weights=y.to_numpy(), minlength=n_fine)

    units = _merge_units(
        units=[[i] for i in range(n_fine)],
        good=list(count - bad),
        bad=list(bad),
        bin_num_limit=bin_num_limit,
        count_distr_limit=count_distr_limit,
        monotonic=monotonic,
    )
    # fine bin i (i >= 1) starts at fine_cuts[i - 1]
    return [fine_cuts[unit[0] - 1] for unit in units[1:]]


def _auto_category_groups(
    categories: pd.Series,
    y: pd.Series,
    bin_num_limit: int,
    count_distr_limit: float,
) -> List[List[str]]:
    """Order categories by bad rate, then merge adjacent groups."""
    if categories.empty:
        return []
    summary = (
        pd.DataFrame({"cat": categories.to_numpy(), "bad": y.to_numpy()})
        .groupby("cat")["bad"]
        .agg(["count", "sum"])
    )
    summary["badprob"] = summary["sum"] / summary["count"]
    summary = summary.reset_index().sort_values(["badprob", "cat"]).reset_index(drop=True)

    units = _merge_units(
        units=[[c] for c in summary["cat"]],
        good=list(summary["count"] - summary["sum"]),
        bad=list(summary["sum"]),
        bin_num_limit=bin_num_limit,
        count_distr_limit=count_distr_limit,
        monotonic=False,
    )
    return [sorted(unit) for unit in units]


def _merge_units(
    units: List[List[Any]],
    good: List[float],
    bad: List[float],
    bin_num_limit: int,
    count_distr_limit: float,
    monotonic: bool,
) -> List[List[Any]]:
    """
    Merge adjacent bins of an ordered sequence.

    1. bins below ``count_distr_limit`` merge with the neighbour of closest bad rate
    2. optionally, merge until bad rate is monotone
    3. merge the most similar adjacent pair until ``bin_num_limit`` is met
    """
    units, good, bad = list(units), [float(g) for g in good], [float(b) for b in bad]
    total = sum(good) + sum(bad)

    def badprob(i: int) -> float:
        n = good[i] + bad[i]
        return bad[i] / n if n > 0 else 0.0

    def merge(i: int) -> None:
        units[i:i + 2] = [units[i] + units[i + 1]]
        good[i:i + 2] = [good[i] + good[i + 1]]
        bad[i:i + 2] = [bad[i] + bad[i + 1]]

    while len(units) > 1:
        shares = [(good[i] + bad[i]) / total for i in range(len(units))]
        smallest = int(np.argmin(shares))
        if shares[smallest] >= count_distr_limit:
            break
        if smallest == 0:
            merge(0)
        elif smallest == len(units) - 1:
            merge(smallest - 1)
        else:
            left = abs(badprob(smallest) - badprob(smallest - 1))
            right = abs(badprob(smallest) - badprob(smallest + 1))
            merge(smallest - 1 if left <= right else smallest)

    if monotonic:
        while len(units) > 2:
            rates = [badprob(i) for i in range(len(units))]
            direction = 1.0 if rates[-1] >= rates[0] else -1.0
            violation = next(
                (i for i in range(len(rates) - 1) if direction * (rates[i + 1] - rates[i]) < 0),
                None,
            )
            if violation is None:
                break
            merge(violation)

    while len(units) > bin_num_limit:
        gaps = [abs(badprob(i + 1) - badprob(i)) for i in range(len(units) - 1)]
        merge(int(np.argmin(gaps)))

    return units
