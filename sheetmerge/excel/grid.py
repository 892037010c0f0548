from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable, Sequence

"""Logical grid view of a workbook.

The merge engine never touches the binary spreadsheet format. It works on:
- WorkbookGrid: ordered sheets
- SheetGrid: rows addressed by 0-based index, merged ranges
- GridRow: cells keyed by 0-based column + row-level hidden flag
- GridCell: display text + declared primitive kind

Sheets load their rows lazily and cache them, so the bounded scans (sheet
density, header window, type sampling) only pay for the rows they read.
"""

__all__ = [
    "BLANK_CELL",
    "CellKind",
    "GridCell",
    "GridRow",
    "InMemorySheetGrid",
    "MergeRange",
    "SheetGrid",
    "WorkbookGrid",
    "cell_from_value",
    "format_number",
    "format_temporal",
]


class CellKind(Enum):
    """Declared primitive kind of a cell (formula cells carry their cached result kind)."""
    BLANK = "blank"
    TEXT = "text"
    NUMBER = "number"
    DATE = "date"  # date-formatted numeric
    BOOLEAN = "boolean"
    ERROR = "error"


@dataclass(frozen=True)
class GridCell:
    display_text: str
    kind: CellKind
    raw: Any = None

    @property
    def text(self) -> str:
        return self.display_text.strip()

    @property
    def is_blank(self) -> bool:
        return not self.display_text.strip()

    @property
    def is_numeric(self) -> bool:
        return self.kind in (CellKind.NUMBER, CellKind.DATE)


BLANK_CELL = GridCell("", CellKind.BLANK)


@dataclass(frozen=True)
class MergeRange:
    """Merged region, 0-based inclusive bounds."""
    top: int
    left: int
    bottom: int
    right: int

    def contains(self, row: int, col: int) -> bool:
        return self.top <= row <= self.bottom and self.left <= col <= self.right

    @property
    def spans_columns(self) -> bool:
        return self.right > self.left


@dataclass
class GridRow:
    index: int
    cells: dict[int, GridCell] = field(default_factory=dict)
    hidden: bool = False

    def cell(self, col: int | None) -> GridCell:
        if col is None:
            return BLANK_CELL
        return self.cells.get(col, BLANK_CELL)

    def text(self, col: int | None) -> str:
        return self.cell(col).text

    @property
    def first_col(self) -> int:
        return min(self.cells) if self.cells else -1

    @property
    def last_col(self) -> int:
        return max(self.cells) if self.cells else -1

    def non_blank_cells(self) -> list[tuple[int, GridCell]]:
        return [(c, cell) for c, cell in sorted(self.cells.items()) if not cell.is_blank]

    @property
    def is_empty(self) -> bool:
        return all(cell.is_blank for cell in self.cells.values())


class SheetGrid:
    """Base sheet view. Subclasses implement _load_row."""

    def __init__(
        self,
        name: str,
        *,
        first_row: int,
        last_row: int,
        merged_ranges: Sequence[MergeRange] = (),
    ) -> None:
        self.name = name
        self.first_row = first_row
        self.last_row = last_row
        self.merged_ranges: list[MergeRange] = list(merged_ranges)
        self._cache: dict[int, GridRow | None] = {}

    def row(self, index: int) -> GridRow | None:
        """Row at 0-based index, None when the row does not exist."""
        if index < self.first_row or index > self.last_row:
            return None
        if index not in self._cache:
            self._cache[index] = self._load_row(index)
        return self._cache[index]

    def _load_row(self, index: int) -> GridRow | None:  # pragma: no cover - abstract
        raise NotImplementedError

    def merged_range_at(self, row: int, col: int) -> MergeRange | None:
        for rng in self.merged_ranges:
            if rng.contains(row, col):
                return rng
        return None

    def __repr__(self) -> str:  # pragma: no cover (trivial)
        return f"{type(self).__name__}(name={self.name!r}, rows={self.first_row}..{self.last_row})"


class InMemorySheetGrid(SheetGrid):
    """Sheet built from Python values (row-major, A1-anchored).

    None / "" become blank cells; other values get their kind from their
    Python type (see cell_from_value). A GridCell may be passed as-is to
    control kind and display text explicitly.
    """

    def __init__(
        self,
        name: str,
        values: Sequence[Sequence[Any] | None],
        *,
        hidden_rows: Iterable[int] = (),
        merged_ranges: Sequence[MergeRange] = (),
    ) -> None:
        super().__init__(name, first_row=0, last_row=len(values) - 1, merged_ranges=merged_ranges)
        hidden = set(hidden_rows)
        self._rows: dict[int, GridRow] = {}
        for r, raw_row in enumerate(values):
            if raw_row is None:
                if r in hidden:
                    self._rows[r] = GridRow(index=r, hidden=True)
                continue
            cells: dict[int, GridCell] = {}
            for c, value in enumerate(raw_row):
                cell = value if isinstance(value, GridCell) else cell_from_value(value)
                if cell.kind is not CellKind.BLANK or cell.display_text:
                    cells[c] = cell
            self._rows[r] = GridRow(index=r, cells=cells, hidden=r in hidden)

    def _load_row(self, index: int) -> GridRow | None:
        return self._rows.get(index)


@dataclass
class WorkbookGrid:
    sheets: list[SheetGrid]

    def __len__(self) -> int:
        return len(self.sheets)

    def sheet(self, name: str) -> SheetGrid | None:
        for s in self.sheets:
            if s.name == name:
                return s
        return None


def format_number(value: int | float | Decimal, number_format: str = "General") -> str:
    """Render a numeric value roughly the way a spreadsheet displays it."""
    fmt = str(number_format or "")
    try:
        num = float(value)
    except (TypeError, ValueError):
        return str(value)

    if "%" in fmt:
        # "0.00%" -> 2
        head = fmt.split(";", 1)[0].split("%", 1)[0]
        places = len([ch for ch in head.split(".", 1)[1] if ch in "0#"]) if "." in head else 0
        return f"{num * 100:.{places}f}%"

    decimals: int | None = None
    if fmt and fmt != "General":
        # "0.00" / "#,##0.00" -> 2
        head = fmt.split(";", 1)[0]
        if "." in head:
            tail = head.split(".", 1)[1]
            decimals = len([ch for ch in tail if ch in "0#"])
        elif "0" in head or "#" in head:
            decimals = 0
    use_thousands = "," in fmt

    if decimals is None:
        if num.is_integer():
            return f"{int(num):,}" if use_thousands else str(int(num))
        core = f"{num:,.10f}" if use_thousands else f"{num:.10f}"
        return core.rstrip("0").rstrip(".")
    if use_thousands:
        return f"{num:,.{decimals}f}"
    return f"{num:.{decimals}f}"


def format_temporal(value: date | datetime | time) -> str:
    if isinstance(value, datetime):
        if value.hour == 0 and value.minute == 0 and value.second == 0 and value.microsecond == 0:
            return value.date().isoformat()
        return value.isoformat(sep=" ", timespec="seconds")
    return value.isoformat()


def cell_from_value(value: Any, number_format: str = "General", *, is_error: bool = False) -> GridCell:
    """Build a GridCell from a plain Python value."""
    if value is None:
        return BLANK_CELL
    if is_error:
        return GridCell(str(value), CellKind.ERROR, value)
    if isinstance(value, bool):
        return GridCell("TRUE" if value else "FALSE", CellKind.BOOLEAN, value)
    if isinstance(value, (datetime, date, time)):
        return GridCell(format_temporal(value), CellKind.DATE, value)
    if isinstance(value, (int, float, Decimal)):
        return GridCell(format_number(value, number_format), CellKind.NUMBER, value)
    text = str(value)
    if not text.strip():
        return GridCell(text, CellKind.BLANK, value)
    return GridCell(text, CellKind.TEXT, value)
