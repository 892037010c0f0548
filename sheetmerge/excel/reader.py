from __future__ import annotations

import io
import zipfile
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, BinaryIO

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from .grid import BLANK_CELL, GridCell, GridRow, MergeRange, SheetGrid, WorkbookGrid, cell_from_value

"""Workbook reader: .xlsx bytes -> WorkbookGrid (openpyxl).

openpyxl is opened with data_only=True so formula cells expose their cached
result; the grid kind of a formula cell is therefore the kind of that result.
The workbook is a scoped resource: open_workbook() closes it on every exit
path, including exceptions raised by the caller while iterating.
"""

__all__ = [
    "OpenpyxlSheetGrid",
    "WorkbookReadError",
    "WorkbookSource",
    "open_workbook",
]


class WorkbookReadError(Exception):
    """Raised when the uploaded bytes are not a readable workbook."""


@dataclass
class WorkbookSource:
    """An uploaded workbook: original file name + readable binary stream."""
    name: str
    stream: BinaryIO

    @classmethod
    def from_bytes(cls, name: str, data: bytes) -> WorkbookSource:
        return cls(name=name, stream=io.BytesIO(data))

    @classmethod
    def from_path(cls, path: Path) -> WorkbookSource:
        return cls.from_bytes(path.name, Path(path).read_bytes())

    def read_bytes(self) -> bytes:
        if self.stream.seekable():
            self.stream.seek(0)
        return self.stream.read() or b""


class OpenpyxlSheetGrid(SheetGrid):
    """Lazy SheetGrid over an openpyxl worksheet."""

    def __init__(self, worksheet: Any) -> None:
        merges = [
            MergeRange(
                top=int(cr.min_row) - 1,
                left=int(cr.min_col) - 1,
                bottom=int(cr.max_row) - 1,
                right=int(cr.max_col) - 1,
            )
            for cr in worksheet.merged_cells.ranges
        ]
        super().__init__(
            str(worksheet.title),
            first_row=int(worksheet.min_row or 1) - 1,
            last_row=int(worksheet.max_row or 0) - 1,
            merged_ranges=merges,
        )
        self._ws = worksheet

    def _is_hidden(self, excel_row: int) -> bool:
        # row_dimensions is a defaultdict: use .get() to avoid creating entries
        dim = self._ws.row_dimensions.get(excel_row)
        if dim is None:
            return False
        if dim.hidden:
            return True
        return dim.ht is not None and float(dim.ht) == 0.0

    def _load_row(self, index: int) -> GridRow | None:
        excel_row = index + 1
        cells: dict[int, GridCell] = {}
        for raw_row in self._ws.iter_rows(min_row=excel_row, max_row=excel_row):
            for cell in raw_row:
                grid_cell = _to_grid_cell(cell)
                if grid_cell is BLANK_CELL:
                    continue
                cells[int(cell.column) - 1] = grid_cell
        hidden = self._is_hidden(excel_row)
        if not cells and not hidden:
            return None
        return GridRow(index=index, cells=cells, hidden=hidden)


def _to_grid_cell(cell: Any) -> GridCell:
    value = getattr(cell, "value", None)
    if value is None:
        return BLANK_CELL
    number_format = str(getattr(cell, "number_format", "General") or "General")
    is_error = getattr(cell, "data_type", None) == "e"
    return cell_from_value(value, number_format, is_error=is_error)


@contextmanager
def open_workbook(data: bytes) -> Iterator[WorkbookGrid]:
    """Open .xlsx bytes as a WorkbookGrid; the workbook is closed on exit."""
    try:
        wb = load_workbook(filename=io.BytesIO(data), data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError, ValueError) as e:
        raise WorkbookReadError(f"无法读取工作簿: {e}") from e
    try:
        sheets: list[SheetGrid] = [
            OpenpyxlSheetGrid(ws) for ws in wb.worksheets if hasattr(ws, "iter_rows")
        ]
        yield WorkbookGrid(sheets=sheets)
    finally:
        wb.close()
