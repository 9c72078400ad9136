"""
Sheet Layout

Each report sheet is described by a list of declarative ``Region`` entries:
a name, a kind (text, table or image), and anchor/extent formulas in terms
of a ``LayoutContext`` (dataset count, variable count, table sizes).
``resolve_layout`` turns them into concrete cell coordinates and rejects
any overlap. Nothing here touches a workbook.

Coordinates are 1-based (row, column), like openpyxl.
"""

from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple
from dataclasses import dataclass, field
import math

from openpyxl.utils import get_column_letter

from scorecard_report.core.exceptions import ReportLayoutError


# Grid geometry of a default worksheet cell
CELL_WIDTH_CM = 1.69
CELL_HEIGHT_CM = 0.53
PX_PER_INCH = 96

PLOT_BAND_COLS = 8
TABLE_BAND_COLS = 13
VAR_BAND_ROWS = 15

BIN_PLOT_CM = (12, 7)
STABILITY_PLOT_CM = (16, 7)
PANEL_CM = (8, 7)

TEXT = "text"
TABLE = "table"
IMAGE = "image"

Cell = Tuple[int, int]


def cm_to_cells(width_cm: float, height_cm: float) -> Cell:
    """(rows, cols) covered by an image of the given size."""
    return (
        int(math.ceil(height_cm / CELL_HEIGHT_CM)),
        int(math.ceil(width_cm / CELL_WIDTH_CM)),
    )


def cm_to_px(length_cm: float) -> int:
    return int(round(length_cm / 2.54 * PX_PER_INCH))


@dataclass(frozen=True)
class LayoutContext:
    """
    Structural inputs of a sheet layout.

    ``tables`` maps a table region name to its (data rows, columns);
    the header row is added by the table regions.
    """
    n_datasets: int = 1
    n_variables: int = 0
    tables: Mapping[str, Cell] = field(default_factory=dict)

    def table_rows(self, name: str) -> int:
        return self.tables[name][0]

    def table_cols(self, name: str) -> int:
        return self.tables[name][1]


@dataclass(frozen=True)
class Region:
    """A named rectangle whose position and size are formulas of the context."""
    name: str
    kind: str
    anchor: Callable[[LayoutContext], Cell]
    extent: Callable[[LayoutContext], Cell]
    size_cm: Optional[Tuple[float, float]] = None


@dataclass(frozen=True)
class Placement:
    """A resolved region: top-left cell and covered rows/columns."""
    name: str
    kind: str
    row: int
    col: int
    n_rows: int
    n_cols: int
    size_cm: Optional[Tuple[float, float]] = None

    @property
    def last_row(self) -> int:
        return self.row + self.n_rows - 1

    @property
    def last_col(self) -> int:
        return self.col + self.n_cols - 1

    @property
    def cell(self) -> str:
        """Anchor in A1 notation."""
        return f"{get_column_letter(self.col)}{self.row}"

    @property
    def size_px(self) -> Optional[Tuple[int, int]]:
        if self.size_cm is None:
            return None
        return cm_to_px(self.size_cm[0]), cm_to_px(self.size_cm[1])

    def overlaps(self, other: "Placement") -> bool:
        return not (
            self.last_row < other.row
            or other.last_row < self.row
            or self.last_col < other.col
            or other.last_col < self.col
        )


def resolve_layout(regions: Sequence[Region], ctx: LayoutContext) -> Dict[str, Placement]:
    """
    Resolve every region to a Placement.

    Returns:
        Ordered dict of region name -> Placement

    Raises:
        ReportLayoutError: On duplicate names, non-positive coordinates or
            any two overlapping regions
    """
    placements: Dict[str, Placement] = {}
    for region in regions:
        if region.name in placements:
            raise ReportLayoutError(f"Duplicate region name '{region.name}'")
        row, col = region.anchor(ctx)
        n_rows, n_cols = region.extent(ctx)
        if row < 1 or col < 1 or n_rows < 1 or n_cols < 1:
            raise ReportLayoutError(
                f"Region '{region.name}' resolves outside the sheet",
                details={"row": row, "col": col, "n_rows": n_rows, "n_cols": n_cols},
            )
        placements[region.name] = Placement(
            name=region.name,
            kind=region.kind,
            row=int(row),
            col=int(col),
            n_rows=int(n_rows),
            n_cols=int(n_cols),
            size_cm=region.size_cm,
        )

    resolved = list(placements.values())
    for i, a in enumerate(resolved):
        for b in resolved[i + 1:]:
            if a.overlaps(b):
                raise ReportLayoutError(
                    f"Regions '{a.name}' ({a.cell}) and '{b.name}' ({b.cell}) overlap",
                    details={"first": a.name, "second": b.name},
                )
    return placements


# ═══════════════════════════════════════════════════════════════
# REGION HELPERS
# ═══════════════════════════════════════════════════════════════

def text_region(name: str, anchor: Callable[[LayoutContext], Cell]) -> Region:
    return Region(name=name, kind=TEXT, anchor=anchor, extent=lambda ctx: (1, 1))


def table_region(
    name: str,
    anchor: Callable[[LayoutContext], Cell],
    header: bool = True,
) -> Region:
    """Table sized from ``ctx.tables[name]``; one extra row for the header."""
    return Region(
        name=name,
        kind=TABLE,
        anchor=anchor,
        extent=lambda ctx: (ctx.table_rows(name) + int(header), ctx.table_cols(name)),
    )


def image_region(
    name: str,
    anchor: Callable[[LayoutContext], Cell],
    size_cm: Tuple[float, float],
) -> Region:
    return Region(
        name=name,
        kind=IMAGE,
        anchor=anchor,
        extent=lambda ctx: cm_to_cells(*size_cm),
        size_cm=size_cm,
    )


# ═══════════════════════════════════════════════════════════════
# SHEET LAYOUTS
# ═══════════════════════════════════════════════════════════════

def dataset_info_regions() -> List[Region]:
    return [table_region("datasets", lambda ctx: (1, 1))]


def coefficient_regions() -> List[Region]:
    return [
        text_region("title", lambda ctx: (1, 1)),
        table_region("coefficients", lambda ctx: (2, 1)),
    ]


def performance_regions(grid: Tuple[int, int]) -> List[Region]:
    """Metric table at A1 and the ``nrow x ncol`` curve grid below it."""
    nrow, ncol = grid
    regions = [table_region("metrics", lambda ctx: (1, 1))]
    if nrow and ncol:
        regions.append(image_region(
            "curves",
            lambda ctx: (ctx.table_rows("metrics") + 4, 1),
            (PANEL_CM[0] * ncol, PANEL_CM[1] * nrow),
        ))
    return regions


def binning_table_name(dataset: str) -> str:
    return f"binning:{dataset}"


def binning_plot_name(dataset: str, variable: str) -> str:
    return f"plot:{dataset}:{variable}"


def binning_regions(datasets: Sequence[str], variables: Sequence[str]) -> List[Region]:
    """
    Dataset i gets a plot band of PLOT_BAND_COLS columns and a table band of
    TABLE_BAND_COLS columns to the right of every plot band; variable j's
    plot starts at row VAR_BAND_ROWS * j + 4.
    """
    def plot_col(i: int) -> Callable[[LayoutContext], int]:
        return lambda ctx: PLOT_BAND_COLS * i + 1

    def table_col(i: int) -> Callable[[LayoutContext], int]:
        return lambda ctx: PLOT_BAND_COLS * ctx.n_datasets + 1 + TABLE_BAND_COLS * i

    regions: List[Region] = []
    for i, dataset in enumerate(datasets):
        pc, tc = plot_col(i), table_col(i)
        regions.append(text_region(f"graphics:{dataset}", lambda ctx, pc=pc: (1, pc(ctx))))
        regions.append(text_region(f"binning-title:{dataset}", lambda ctx, tc=tc: (1, tc(ctx))))
        regions.append(table_region(binning_table_name(dataset), lambda ctx, tc=tc: (2, tc(ctx))))
        for j, variable in enumerate(variables):
            regions.append(image_region(
                binning_plot_name(dataset, variable),
                lambda ctx, pc=pc, j=j: (VAR_BAND_ROWS * j + 4, pc(ctx)),
                BIN_PLOT_CM,
            ))
    return regions


def scorecard_regions() -> List[Region]:
    """Scaling block from row 1, the card from row 8."""
    return [
        text_region("scaling-title", lambda ctx: (1, 1)),
        table_region("scaling", lambda ctx: (2, 1), header=False),
        text_region("card-title", lambda ctx: (7, 1)),
        table_region("card", lambda ctx: (8, 1)),
    ]


def distribution_table_name(dataset: str) -> str:
    return f"distribution:{dataset}"


def stability_image_name(dataset: str) -> str:
    return f"psi-plot:{dataset}"


def stability_regions(comparisons: Sequence[str]) -> List[Region]:
    """
    PSI summary at A1, one distribution table per comparison side by side
    below it, then one image per comparison in VAR_BAND_ROWS-row bands.
    """
    def tables_top(ctx: LayoutContext) -> int:
        return ctx.table_rows("psi") + 1 + 2

    def images_top(ctx: LayoutContext) -> int:
        tallest = max(
            (ctx.table_rows(distribution_table_name(c)) for c in comparisons),
            default=0,
        )
        return tables_top(ctx) + tallest + 1 + 2

    regions = [table_region("psi", lambda ctx: (1, 1))]
    for i, comparison in enumerate(comparisons):
        regions.append(table_region(
            distribution_table_name(comparison),
            lambda ctx, i=i: (tables_top(ctx), TABLE_BAND_COLS * i + 1),
        ))
    for i, comparison in enumerate(comparisons):
        regions.append(image_region(
            stability_image_name(comparison),
            lambda ctx, i=i: (images_top(ctx) + VAR_BAND_ROWS * i, 1),
            STABILITY_PLOT_CM,
        ))
    return regions


def gains_regions() -> List[Region]:
    return [table_region("gains", lambda ctx: (1, 1))]
