"""
Reporting Module

Declarative sheet layout, the openpyxl document writer and the report
assembler.
"""

from scorecard_report.reporting.layout import (
    LayoutContext,
    Region,
    Placement,
    resolve_layout,
    cm_to_cells,
    cm_to_px,
    PLOT_BAND_COLS,
    TABLE_BAND_COLS,
    VAR_BAND_ROWS,
)
from scorecard_report.reporting.workbook import DocumentWriter, unique_path
from scorecard_report.reporting.assembler import (
    ReportAssembler,
    ReportArtifacts,
    dataset_info_table,
    report_path,
)

__all__ = [
    "LayoutContext",
    "Region",
    "Placement",
    "resolve_layout",
    "cm_to_cells",
    "cm_to_px",
    "PLOT_BAND_COLS",
    "TABLE_BAND_COLS",
    "VAR_BAND_ROWS",
    "DocumentWriter",
    "unique_path",
    "ReportAssembler",
    "ReportArtifacts",
    "dataset_info_table",
    "report_path",
]
