from __future__ import annotations

import logging

from ..excel.grid import SheetGrid, WorkbookGrid

"""Pick the most data-dense sheet of a workbook.

Workbooks often carry cover sheets or legends before the real data sheet;
non-blank density over a bounded window is the proxy for "this is the data".
"""

__all__ = [
    "DENSITY_ROW_LIMIT",
    "DENSITY_COL_LIMIT",
    "NoSheetError",
    "pick_best_data_sheet",
    "sheet_density",
]

logger = logging.getLogger(__name__)

DENSITY_ROW_LIMIT = 80  # 只看前80行
DENSITY_COL_LIMIT = 50  # 每行只看50列, 防止超宽表浪费


class NoSheetError(Exception):
    """Raised when a workbook contains no worksheet at all."""


def sheet_density(sheet: SheetGrid) -> int:
    """Count non-blank cells in the first rows / columns of a sheet."""
    score = 0
    last = min(sheet.last_row, DENSITY_ROW_LIMIT)
    for r in range(sheet.first_row, last + 1):
        row = sheet.row(r)
        if row is None:
            continue
        non_blank = row.non_blank_cells()
        if not non_blank:
            continue
        start = non_blank[0][0]
        end = start + DENSITY_COL_LIMIT
        score += sum(1 for c, _ in non_blank if c < end)
    return score


def pick_best_data_sheet(workbook: WorkbookGrid) -> SheetGrid:
    """Sheet with the highest density; ties keep the first; all empty -> first sheet."""
    if not workbook.sheets:
        raise NoSheetError("工作簿中没有工作表")
    best: SheetGrid | None = None
    best_score = 0
    for sheet in workbook.sheets:
        score = sheet_density(sheet)
        if score > best_score:
            best_score = score
            best = sheet
    chosen = best if best is not None else workbook.sheets[0]
    logger.debug("selected sheet '%s' (density=%d of %d sheets)", chosen.name, best_score, len(workbook.sheets))
    return chosen
