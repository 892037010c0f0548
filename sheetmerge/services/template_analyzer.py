from __future__ import annotations

import logging

from ..excel.grid import CellKind, SheetGrid, WorkbookGrid
from ..models.config_models import MergeConfig
from ..models.template import ColumnType, TemplateDefinition
from .errors import TemplateError
from .header_locator import find_first_non_empty_row, find_header_row_by_density
from .normalize import normalize_header
from .sheet_selector import NoSheetError, pick_best_data_sheet
from .template_rules import TemplateRuleStore

"""Template analysis: learn the column schema of the template workbook.

Steps:
1. pick the most data-dense sheet
2. locate the header row (density mode, then first non-empty row)
3. collect header cells (display text + normalized form), rejecting duplicates
4. infer one ColumnType per column from the rows under the header
5. resolve the required columns through the template rule store
"""

__all__ = [
    "TYPE_SAMPLE_LIMIT",
    "analyze_template_grid",
    "detect_column_type",
]

logger = logging.getLogger(__name__)

TYPE_SAMPLE_LIMIT = 50

HEADER_NOT_FOUND_MESSAGE = "未找到表头行，请检查模板内容。"
NO_COLUMNS_MESSAGE = "模板表头没有有效列，请检查模板内容。"


def detect_column_type(sheet: SheetGrid, col: int, data_start: int) -> ColumnType:
    """First decisive cell wins (not majority); nothing decisive -> TEXT."""
    last = min(sheet.last_row, data_start + TYPE_SAMPLE_LIMIT)
    for r in range(data_start, last + 1):
        row = sheet.row(r)
        if row is None:
            continue
        cell = row.cell(col)
        if cell.is_blank or cell.kind is CellKind.ERROR:
            continue
        if cell.kind is CellKind.DATE:
            return ColumnType.DATE
        if cell.kind is CellKind.NUMBER:
            return ColumnType.NUMBER
        return ColumnType.TEXT
    return ColumnType.TEXT


def analyze_template_grid(
    workbook: WorkbookGrid,
    config: MergeConfig,
    rule_store: TemplateRuleStore,
    source_name: str = "",
) -> TemplateDefinition:
    try:
        sheet = pick_best_data_sheet(workbook)
    except NoSheetError as e:
        raise TemplateError(HEADER_NOT_FOUND_MESSAGE) from e

    header_row = find_header_row_by_density(sheet, config.instruction_keywords)
    if header_row < 0:
        header_row = find_first_non_empty_row(sheet)
    if header_row < 0:
        raise TemplateError(HEADER_NOT_FOUND_MESSAGE)
    logger.debug("template '%s': header row %d on sheet '%s'", source_name, header_row, sheet.name)

    row = sheet.row(header_row)
    headers: list[str] = []
    normalized: list[str] = []
    columns: list[int] = []
    for col, cell in row.non_blank_cells() if row is not None else []:
        norm = normalize_header(cell.display_text)
        if not norm:
            logger.warning("template '%s': header cell at column %d is empty after normalization, dropped", source_name, col + 1)
            continue
        if norm in normalized:
            first = headers[normalized.index(norm)]
            raise TemplateError(f"模板表头重复：{first} / {cell.text}")
        headers.append(cell.text)
        normalized.append(norm)
        columns.append(col)

    if not headers:
        raise TemplateError(NO_COLUMNS_MESSAGE)

    data_start = header_row + 1
    column_types = tuple(detect_column_type(sheet, col, data_start) for col in columns)
    required = rule_store.resolve_required_headers(normalized)

    return TemplateDefinition(
        headers=tuple(headers),
        normalized_headers=tuple(normalized),
        column_types=column_types,
        required_headers=required,
        header_row_index=header_row,
        data_start_row=data_start,
        sheet_name=sheet.name,
        source_name=source_name,
    )
