"""
Tests for the declarative sheet layout engine.
"""

import pytest

from scorecard_report.core.exceptions import ReportLayoutError
from scorecard_report.reporting.layout import (
    BIN_PLOT_CM,
    PLOT_BAND_COLS,
    STABILITY_PLOT_CM,
    TABLE_BAND_COLS,
    VAR_BAND_ROWS,
    LayoutContext,
    binning_plot_name,
    binning_regions,
    binning_table_name,
    cm_to_cells,
    cm_to_px,
    distribution_table_name,
    image_region,
    performance_regions,
    resolve_layout,
    scorecard_regions,
    stability_image_name,
    stability_regions,
    table_region,
    text_region,
)


def _assert_disjoint(placements):
    items = list(placements.values())
    for i, a in enumerate(items):
        for b in items[i + 1:]:
            assert not a.overlaps(b), f"{a.name} overlaps {b.name}"


class TestGeometry:

    def test_bin_plot_fits_its_band(self):
        rows, cols = cm_to_cells(*BIN_PLOT_CM)

        assert cols <= PLOT_BAND_COLS
        assert rows < VAR_BAND_ROWS

    def test_stability_plot_fits_its_band(self):
        rows, _ = cm_to_cells(*STABILITY_PLOT_CM)

        assert rows < VAR_BAND_ROWS

    def test_cm_to_px(self):
        assert cm_to_px(2.54) == 96


class TestResolveLayout:

    def test_overlap_rejected(self):
        regions = [
            table_region("a", lambda ctx: (1, 1)),
            table_region("b", lambda ctx: (3, 2)),
        ]
        ctx = LayoutContext(tables={"a": (5, 3), "b": (2, 2)})

        with pytest.raises(ReportLayoutError) as exc:
            resolve_layout(regions, ctx)

        assert exc.value.details == {"first": "a", "second": "b"}

    def test_adjacent_regions_allowed(self):
        regions = [
            table_region("a", lambda ctx: (1, 1)),
            table_region("b", lambda ctx: (1, 4)),
        ]
        ctx = LayoutContext(tables={"a": (5, 3), "b": (2, 2)})

        placements = resolve_layout(regions, ctx)

        assert placements["b"].cell == "D1"

    def test_duplicate_name_rejected(self):
        regions = [text_region("t", lambda ctx: (1, 1)), text_region("t", lambda ctx: (5, 5))]

        with pytest.raises(ReportLayoutError):
            resolve_layout(regions, LayoutContext())

    def test_outside_sheet_rejected(self):
        with pytest.raises(ReportLayoutError):
            resolve_layout([text_region("t", lambda ctx: (0, 1))], LayoutContext())

    def test_header_row_counted(self):
        placements = resolve_layout(
            [table_region("a", lambda ctx: (2, 1)), table_region("b", lambda ctx: (2, 5), header=False)],
            LayoutContext(tables={"a": (3, 2), "b": (3, 2)}),
        )

        assert placements["a"].last_row == 5
        assert placements["b"].last_row == 4

    def test_image_extent_and_size(self):
        placements = resolve_layout([image_region("img", lambda ctx: (4, 1), BIN_PLOT_CM)], LayoutContext())

        img = placements["img"]
        assert (img.n_rows, img.n_cols) == cm_to_cells(*BIN_PLOT_CM)
        assert img.size_px == (cm_to_px(12), cm_to_px(7))


class TestSheetLayouts:

    @pytest.mark.parametrize("n_datasets, n_variables", [(1, 1), (2, 7), (3, 12)])
    def test_binning_sheet_never_overlaps(self, n_datasets, n_variables):
        datasets = [f"d{i}" for i in range(n_datasets)]
        variables = [f"v{j}" for j in range(n_variables)]
        n_rows = 6 * n_variables
        ctx = LayoutContext(
            n_datasets=n_datasets,
            n_variables=n_variables,
            tables={binning_table_name(d): (n_rows, 12) for d in datasets},
        )

        placements = resolve_layout(binning_regions(datasets, variables), ctx)

        _assert_disjoint(placements)
        last = placements[binning_plot_name(datasets[-1], variables[-1])]
        assert last.row == VAR_BAND_ROWS * (n_variables - 1) + 4
        assert last.col == PLOT_BAND_COLS * (n_datasets - 1) + 1
        first_table = placements[binning_table_name(datasets[0])]
        assert first_table.col == PLOT_BAND_COLS * n_datasets + 1
        assert first_table.row == 2

    def test_binning_tables_side_by_side(self):
        datasets = ["train", "test"]
        ctx = LayoutContext(
            n_datasets=2,
            n_variables=1,
            tables={binning_table_name(d): (5, 12) for d in datasets},
        )

        placements = resolve_layout(binning_regions(datasets, ["age"]), ctx)

        step = placements[binning_table_name("test")].col - placements[binning_table_name("train")].col
        assert step == TABLE_BAND_COLS

    def test_performance_curves_below_metrics(self):
        ctx = LayoutContext(n_datasets=3, tables={"metrics": (3, 8)})

        placements = resolve_layout(performance_regions((1, 2)), ctx)

        assert placements["curves"].row == 3 + 4
        _assert_disjoint(placements)

    def test_performance_without_curves(self):
        ctx = LayoutContext(tables={"metrics": (1, 8)})

        assert list(resolve_layout(performance_regions((0, 0)), ctx)) == ["metrics"]

    def test_scorecard_layout(self):
        ctx = LayoutContext(tables={"scaling": (3, 2), "card": (30, 4)})

        placements = resolve_layout(scorecard_regions(), ctx)

        assert placements["scaling"].cell == "A2"
        assert placements["card-title"].cell == "A7"
        assert placements["card"].cell == "A8"
        _assert_disjoint(placements)

    @pytest.mark.parametrize("comparisons", [["test"], ["test", "oot", "recent"]])
    def test_stability_layout(self, comparisons):
        tables = {"psi": (len(comparisons), 3)}
        tables.update({distribution_table_name(c): (20, 12) for c in comparisons})
        ctx = LayoutContext(n_datasets=len(comparisons) + 1, tables=tables)

        placements = resolve_layout(stability_regions(comparisons), ctx)

        _assert_disjoint(placements)
        images = [placements[stability_image_name(c)] for c in comparisons]
        assert all(img.col == 1 for img in images)
        assert [b.row - a.row for a, b in zip(images, images[1:])] == [VAR_BAND_ROWS] * (len(images) - 1)
