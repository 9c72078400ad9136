"""
Report Assembler

Lays out every upstream artifact on its sheet and persists the workbook
once, at the end.

Sheets, in order:
1. dataset information
2. model coefficients
3. model performance
4. variable woe binning
5. scorecard
6. population stability (only with more than one dataset)
7. gains table
"""

from typing import Any, Callable, Dict, List, Mapping, Optional
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

import pandas as pd

from scorecard_report.core.base import PipelineComponent
from scorecard_report.core.context import SheetProgress, StageContext
from scorecard_report.evaluation.plots import grid_shape
from scorecard_report.evaluation.stability import StabilityReport
from scorecard_report.model.scorecard import ScoreCard
from scorecard_report.reporting.layout import (
    IMAGE,
    LayoutContext,
    Placement,
    binning_plot_name,
    binning_regions,
    binning_table_name,
    coefficient_regions,
    dataset_info_regions,
    distribution_table_name,
    gains_regions,
    performance_regions,
    resolve_layout,
    scorecard_regions,
    stability_image_name,
    stability_regions,
)
from scorecard_report.reporting.workbook import DocumentWriter


SHEET_DATASETS = "dataset information"
SHEET_COEFFICIENTS = "model coefficients"
SHEET_PERFORMANCE = "model performance"
SHEET_BINNING = "variable woe binning"
SHEET_SCORECARD = "scorecard"
SHEET_STABILITY = "population stability"
SHEET_GAINS = "gains table"

ProgressCallback = Callable[[SheetProgress], None]


@dataclass(frozen=True, eq=False)
class ReportArtifacts:
    """Everything the report shows, computed before assembly starts."""
    dataset_info: pd.DataFrame
    reference: str
    coefficients: pd.DataFrame
    performance: pd.DataFrame
    curves: Optional[bytes]
    n_curves: int
    binning_tables: Mapping[str, Mapping[str, pd.DataFrame]]
    binning_plots: Mapping[str, Mapping[str, bytes]]
    scorecard: ScoreCard
    gains: pd.DataFrame
    stability: Optional[StabilityReport] = None
    stability_plots: Mapping[str, bytes] = field(default_factory=dict)

    @property
    def datasets(self) -> List[str]:
        return list(self.binning_tables.keys())

    @property
    def variables(self) -> List[str]:
        first = next(iter(self.binning_tables.values()), {})
        return list(first.keys())


def dataset_info_table(frames: Mapping[str, pd.DataFrame], target: str) -> pd.DataFrame:
    """Sample size, feature size and bad rate of every dataset."""
    rows = [
        {
            "dataset": name,
            "sample size": len(df),
            "feature size": df.shape[1] - 1,
            "bad rate": float(df[target].mean()) if len(df) else None,
        }
        for name, df in frames.items()
    ]
    return pd.DataFrame(rows, columns=["dataset", "sample size", "feature size", "bad rate"])


def report_path(save_report: str, output_dir: str, timestamp_format: str) -> Path:
    """``<output_dir>/<save_report>_<timestamp>.xlsx``."""
    stamp = datetime.now().strftime(timestamp_format)
    return Path(output_dir) / f"{save_report}_{stamp}.xlsx"


def _shape(table: pd.DataFrame) -> tuple:
    return (max(len(table), 1), max(len(table.columns), 1))


class ReportAssembler(PipelineComponent):
    """Writes the report workbook from precomputed artifacts."""

    def __init__(
        self,
        config: Any,
        writer: Optional[DocumentWriter] = None,
        on_progress: Optional[ProgressCallback] = None,
        name: Optional[str] = None,
    ):
        super().__init__(config, name or "ReportAssembler")
        self.writer = writer or DocumentWriter()
        self.on_progress = on_progress

    def run(self, *args, **kwargs) -> str:
        return self.assemble(*args, **kwargs)

    def assemble(
        self,
        artifacts: ReportArtifacts,
        save_report: str,
        context: StageContext,
    ) -> str:
        """
        Build every sheet in order, then save the workbook.

        Returns:
            Path of the saved workbook
        """
        self._start_execution()
        self.writer.create_document()

        sheets = [
            (SHEET_DATASETS, self._dataset_sheet),
            (SHEET_COEFFICIENTS, self._coefficient_sheet),
            (SHEET_PERFORMANCE, self._performance_sheet),
            (SHEET_BINNING, self._binning_sheet),
            (SHEET_SCORECARD, self._scorecard_sheet),
        ]
        if len(artifacts.datasets) > 1 and artifacts.stability is not None:
            sheets.append((SHEET_STABILITY, self._stability_sheet))
        sheets.append((SHEET_GAINS, self._gains_sheet))

        for number, (sheet_name, build) in enumerate(sheets, 1):
            sheet = self.writer.add_sheet(sheet_name)
            build(sheet, artifacts)
            self._notify(SheetProgress(number=number, sheet=sheet_name, run_id=context.run_id))

        output = self.config.output
        path = self.writer.save(str(report_path(save_report, output.dir, output.timestamp_format)))
        self.logger.info(f"The report is saved as {path}")
        self._end_execution()
        return path

    def _notify(self, progress: SheetProgress) -> None:
        self.logger.info(progress.message)
        if self.on_progress is not None:
            self.on_progress(progress)

    def _place(
        self,
        sheet,
        placements: Dict[str, Placement],
        tables: Dict[str, pd.DataFrame],
        texts: Optional[Dict[str, str]] = None,
        images: Optional[Dict[str, bytes]] = None,
        headerless: tuple = (),
    ) -> None:
        texts = texts or {}
        images = images or {}
        for name, p in placements.items():
            if name in texts:
                self.writer.write_text(sheet, p.row, p.col, texts[name])
            elif name in tables:
                self.writer.write_table(sheet, p.row, p.col, tables[name], header=name not in headerless)
            elif p.kind == IMAGE and name in images:
                self.writer.embed_image(sheet, p.row, p.col, images[name], p.size_px)

    # ═══════════════════════════════════════════════════════════════
    # SHEETS
    # ═══════════════════════════════════════════════════════════════

    def _dataset_sheet(self, sheet, artifacts: ReportArtifacts) -> None:
        tables = {"datasets": artifacts.dataset_info}
        ctx = LayoutContext(
            n_datasets=len(artifacts.datasets),
            tables={k: _shape(v) for k, v in tables.items()},
        )
        self._place(sheet, resolve_layout(dataset_info_regions(), ctx), tables)

    def _coefficient_sheet(self, sheet, artifacts: ReportArtifacts) -> None:
        tables = {"coefficients": artifacts.coefficients}
        texts = {"title": f"Model coefficients based on {artifacts.reference} dataset"}
        ctx = LayoutContext(tables={k: _shape(v) for k, v in tables.items()})
        self._place(sheet, resolve_layout(coefficient_regions(), ctx), tables, texts)

    def _performance_sheet(self, sheet, artifacts: ReportArtifacts) -> None:
        tables = {"metrics": artifacts.performance}
        grid = grid_shape(artifacts.n_curves) if artifacts.curves is not None else (0, 0)
        ctx = LayoutContext(
            n_datasets=len(artifacts.datasets),
            tables={k: _shape(v) for k, v in tables.items()},
        )
        images = {"curves": artifacts.curves} if artifacts.curves is not None else {}
        self._place(sheet, resolve_layout(performance_regions(grid), ctx), tables, images=images)

    def _binning_sheet(self, sheet, artifacts: ReportArtifacts) -> None:
        datasets, variables = artifacts.datasets, artifacts.variables
        tables: Dict[str, pd.DataFrame] = {}
        texts: Dict[str, str] = {}
        images: Dict[str, bytes] = {}
        for dataset in datasets:
            per_feature = artifacts.binning_tables[dataset]
            tables[binning_table_name(dataset)] = pd.concat(
                [per_feature[v] for v in variables], ignore_index=True
            )
            texts[f"graphics:{dataset}"] = f"graphics of {dataset} dataset"
            texts[f"binning-title:{dataset}"] = f"binning of {dataset} dataset"
            for variable in variables:
                png = artifacts.binning_plots.get(dataset, {}).get(variable)
                if png is not None:
                    images[binning_plot_name(dataset, variable)] = png

        ctx = LayoutContext(
            n_datasets=len(datasets),
            n_variables=len(variables),
            tables={k: _shape(v) for k, v in tables.items()},
        )
        self._place(sheet, resolve_layout(binning_regions(datasets, variables), ctx), tables, texts, images)

    def _scorecard_sheet(self, sheet, artifacts: ReportArtifacts) -> None:
        card = artifacts.scorecard
        tables = {"scaling": card.scaling_table(), "card": card.to_frame()}
        texts = {"scaling-title": "scorecard scaling", "card-title": "scorecard"}
        ctx = LayoutContext(tables={k: _shape(v) for k, v in tables.items()})
        self._place(sheet, resolve_layout(scorecard_regions(), ctx), tables, texts, headerless=("scaling",))

    def _stability_sheet(self, sheet, artifacts: ReportArtifacts) -> None:
        report = artifacts.stability
        comparisons = list(report.distributions.keys())
        tables = {"psi": report.summary}
        images: Dict[str, bytes] = {}
        for comparison in comparisons:
            tables[distribution_table_name(comparison)] = report.distributions[comparison]
            png = artifacts.stability_plots.get(comparison)
            if png is not None:
                images[stability_image_name(comparison)] = png

        ctx = LayoutContext(
            n_datasets=len(artifacts.datasets),
            tables={k: _shape(v) for k, v in tables.items()},
        )
        self._place(sheet, resolve_layout(stability_regions(comparisons), ctx), tables, images=images)

    def _gains_sheet(self, sheet, artifacts: ReportArtifacts) -> None:
        tables = {"gains": artifacts.gains}
        ctx = LayoutContext(tables={k: _shape(v) for k, v in tables.items()})
        self._place(sheet, resolve_layout(gains_regions(), ctx), tables)
