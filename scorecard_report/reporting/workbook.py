"""
Document Writer

Thin openpyxl wrapper used by the report assembler: create a workbook, add
sheets, write text, tables and PNG images at given cells, and persist the
file atomically.
"""

from typing import Any, Optional, Tuple
from io import BytesIO
from pathlib import Path
import logging
import os
import tempfile

import numpy as np
import pandas as pd
from openpyxl import Workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.drawing.image import Image as OpenpyxlImage
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from scorecard_report.core.exceptions import ReportWriteError


logger = logging.getLogger(__name__)


# Styles
HEADER_FONT = Font(bold=True, color="FFFFFF", size=11)
HEADER_FILL = PatternFill(start_color="2F5496", end_color="2F5496", fill_type="solid")
TITLE_FONT = Font(bold=True, size=12)
THIN_BORDER = Border(
    left=Side(style='thin'), right=Side(style='thin'),
    top=Side(style='thin'), bottom=Side(style='thin'),
)

# openpyxl default column width in characters
DEFAULT_COLUMN_WIDTH = 8.43
MAX_COLUMN_WIDTH = 40


def _clean_text(text: str) -> str:
    """Drop control characters that an xlsx cell cannot hold."""
    return ILLEGAL_CHARACTERS_RE.sub("", text)


def _cell_value(value: Any) -> Any:
    """Convert numpy/pandas scalars to plain Python values."""
    if value is None:
        return None
    if isinstance(value, str):
        return _clean_text(value)
    if isinstance(value, (list, tuple, dict)):
        return _clean_text(str(value))
    if pd.isna(value):
        return None
    if isinstance(value, (np.integer,)):
        return int(value)
    if isinstance(value, (np.floating,)):
        return float(value)
    if isinstance(value, (np.bool_,)):
        return bool(value)
    return value


def unique_path(path: Path) -> Path:
    """``path`` itself, or ``<stem>_<n><suffix>`` for the first n not taken."""
    if not path.exists():
        return path
    n = 1
    while True:
        candidate = path.with_name(f"{path.stem}_{n}{path.suffix}")
        if not candidate.exists():
            return candidate
        n += 1


class DocumentWriter:
    """Builds one workbook; nothing reaches disk until ``save``."""

    def __init__(self):
        self.workbook: Optional[Workbook] = None

    def create_document(self) -> Workbook:
        wb = Workbook()
        # Remove default empty sheet
        wb.remove(wb.active)
        self.workbook = wb
        return wb

    def add_sheet(self, name: str) -> Worksheet:
        if self.workbook is None:
            self.create_document()
        return self.workbook.create_sheet(name)

    def write_text(self, sheet: Worksheet, row: int, col: int, text: str, bold: bool = True) -> None:
        cell = sheet.cell(row=row, column=col, value=_clean_text(str(text)))
        if bold:
            cell.font = TITLE_FONT

    def write_table(
        self,
        sheet: Worksheet,
        row: int,
        col: int,
        table: pd.DataFrame,
        header: bool = True,
    ) -> Tuple[int, int]:
        """
        Write a DataFrame with its top-left corner at (row, col).

        Returns:
            (rows, columns) written, header included
        """
        r = row
        if header:
            for j, name in enumerate(table.columns):
                cell = sheet.cell(row=r, column=col + j, value=_clean_text(str(name)))
                cell.font = HEADER_FONT
                cell.fill = HEADER_FILL
                cell.alignment = Alignment(horizontal='center')
                cell.border = THIN_BORDER
            r += 1

        for values in table.itertuples(index=False, name=None):
            for j, value in enumerate(values):
                cell = sheet.cell(row=r, column=col + j, value=_cell_value(value))
                cell.border = THIN_BORDER
            r += 1

        self._autofit(sheet, row, col, table, header)
        return r - row, len(table.columns)

    @staticmethod
    def _autofit(sheet: Worksheet, row: int, col: int, table: pd.DataFrame, header: bool) -> None:
        """Widen columns to their content; never below the default width."""
        for j, name in enumerate(table.columns):
            sample = table.iloc[:100, j]
            max_len = max([len(str(name)) if header else 0] + [len(str(v)) for v in sample])
            letter = get_column_letter(col + j)
            width = max(DEFAULT_COLUMN_WIDTH, min(max_len + 3, MAX_COLUMN_WIDTH))
            current = sheet.column_dimensions[letter].width or 0
            sheet.column_dimensions[letter].width = max(current, width)

    def embed_image(
        self,
        sheet: Worksheet,
        row: int,
        col: int,
        image: bytes,
        size_px: Optional[Tuple[int, int]] = None,
    ) -> None:
        """Anchor a finished PNG at (row, col), optionally resized."""
        img = OpenpyxlImage(BytesIO(image))
        if size_px is not None:
            img.width, img.height = size_px
        sheet.add_image(img, f"{get_column_letter(col)}{row}")

    def save(self, path: str) -> str:
        """
        Write the workbook to a temporary file and move it into place.

        An existing file is never overwritten: a numeric suffix is added.

        Raises:
            ReportWriteError: If the file cannot be written
        """
        if self.workbook is None:
            raise ReportWriteError("No document to save", artifact_path=str(path))

        target = unique_path(Path(path))
        tmp_name = None
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(suffix=".xlsx", prefix=".tmp_", dir=str(target.parent))
            os.close(fd)
            self.workbook.save(tmp_name)
            os.replace(tmp_name, target)
        except OSError as e:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.remove(tmp_name)
            raise ReportWriteError(
                f"Could not write report: {e}",
                artifact_path=str(target),
                cause=e,
            )

        logger.info(f"COMPLETE | Excel saved: {target}")
        return str(target)
