# Shared pytest fixtures
from __future__ import annotations
import io
import tempfile
from pathlib import Path
from typing import Any, Callable

import pytest
from openpyxl import Workbook

from sheetmerge.excel.reader import WorkbookSource
from sheetmerge.logging.init import reset_logging


def build_xlsx(
    sheets: dict[str, list[list[Any]]],
    *,
    hidden_rows: dict[str, list[int]] | None = None,
    merges: dict[str, list[str]] | None = None,
) -> bytes:
    """Build .xlsx bytes with openpyxl.

    hidden_rows: sheet -> 1-based row numbers to hide
    merges: sheet -> A1 ranges to merge (e.g. "A1:D1")
    """
    wb = Workbook()
    wb.remove(wb.active)
    for name, rows in sheets.items():
        ws = wb.create_sheet(title=name)
        for row in rows:
            ws.append(list(row))
        for r in (hidden_rows or {}).get(name, []):
            ws.row_dimensions[r].hidden = True
        for rng in (merges or {}).get(name, []):
            ws.merge_cells(rng)
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture(name="build_xlsx")
def build_xlsx_fixture() -> Callable[..., bytes]:
    return build_xlsx


@pytest.fixture()
def make_source() -> Callable[..., WorkbookSource]:
    """Factory: make_source("a.xlsx", [[...], ...]) -> WorkbookSource (single sheet "Sheet1")."""
    def _make(name: str, rows: list[list[Any]] | None = None, **kwargs: Any) -> WorkbookSource:
        sheets = kwargs.pop("sheets", None) or {"Sheet1": rows or []}
        return WorkbookSource.from_bytes(name, build_xlsx(sheets, **kwargs))
    return _make


@pytest.fixture()
def write_xlsx(temp_workdir: Path) -> Callable[..., Path]:
    """Factory writing a workbook under <workdir>/data and returning its path."""
    def _write(name: str, rows: list[list[Any]], **kwargs: Any) -> Path:
        sheets = kwargs.pop("sheets", None) or {"Sheet1": rows}
        path = temp_workdir / "data" / name
        path.write_bytes(build_xlsx(sheets, **kwargs))
        return path
    return _write


@pytest.fixture(autouse=True)
def _clean_logging():
    reset_logging()
    yield
    reset_logging()
