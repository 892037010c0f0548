from __future__ import annotations

import logging
import math
import re
from collections.abc import Sequence

from ..excel.grid import CellKind, GridCell, GridRow, SheetGrid
from ..models.config_models import DEFAULT_INSTRUCTION_KEYWORDS, HeaderMatchMode, contains_keyword
from .normalize import normalize_header

"""Header row location inside a noisy sheet.

Two modes, both bounded to HEADER_SCAN_LIMIT rows from the sheet's first row:

- density mode (template analysis, no schema known yet): score rows by
  (header-like cells, non-blank cells) while skipping instruction / banner
  rows;
- match mode (data files): compare each row's normalized headers with the
  template's normalized header list, either exactly (EXACT) or by hit count
  (BEST_COUNT).

All functions return a 0-based row index, or -1 when nothing qualifies.
"""

__all__ = [
    "HEADER_SCAN_LIMIT",
    "find_first_non_empty_row",
    "find_header_row_by_density",
    "find_header_row_by_match",
    "is_exact_header_match",
    "is_header_text_cell",
    "is_instruction_like_row",
    "is_likely_header_row",
    "is_merged_banner_row",
    "looks_like_instruction_text",
]

logger = logging.getLogger(__name__)

HEADER_SCAN_LIMIT = 30
LIKELY_HEADER_TEXT_RATIO = 0.6

_HEADER_TEXT_PATTERN = re.compile(r"[A-Za-z\u4e00-\u9fff]")


def _scan_range(sheet: SheetGrid) -> range:
    last = min(sheet.last_row, sheet.first_row + HEADER_SCAN_LIMIT)
    return range(sheet.first_row, last + 1)


def is_header_text_cell(cell: GridCell) -> bool:
    """Textual kind, or display text containing a letter / CJK ideograph."""
    if cell.kind is CellKind.TEXT:
        return True
    text = cell.text
    if not text:
        return False
    return _HEADER_TEXT_PATTERN.search(text) is not None


def looks_like_instruction_text(
    text: str | None, keywords: Sequence[str] = DEFAULT_INSTRUCTION_KEYWORDS
) -> bool:
    if text is None or not text.strip():
        return False
    return contains_keyword(text.strip(), tuple(keywords))


def is_merged_banner_row(sheet: SheetGrid, row_index: int, first_col: int, non_blank_count: int) -> bool:
    """Single non-blank cell sitting in a merged region wider than one column."""
    if non_blank_count != 1 or first_col < 0:
        return False
    region = sheet.merged_range_at(row_index, first_col)
    return region is not None and region.spans_columns


def is_instruction_like_row(
    row: GridRow | None, keywords: Sequence[str] = DEFAULT_INSTRUCTION_KEYWORDS
) -> bool:
    """Exactly one non-blank cell whose text matches an instruction keyword."""
    if row is None:
        return False
    non_blank = row.non_blank_cells()
    return len(non_blank) == 1 and looks_like_instruction_text(non_blank[0][1].text, keywords)


def is_likely_header_row(
    row: GridRow | None, keywords: Sequence[str] = DEFAULT_INSTRUCTION_KEYWORDS
) -> bool:
    """>= 2 non-blank cells, mostly header-like, none reading as instruction text."""
    if row is None:
        return False
    non_blank = 0
    text = 0
    for _, cell in row.non_blank_cells():
        # 表头一般不出现"填写说明/注意事项"
        if looks_like_instruction_text(cell.text, keywords):
            return False
        non_blank += 1
        if is_header_text_cell(cell):
            text += 1
    if non_blank < 2:
        return False
    return text >= max(2, math.ceil(non_blank * LIKELY_HEADER_TEXT_RATIO))


def find_header_row_by_density(
    sheet: SheetGrid, instruction_keywords: Sequence[str] = DEFAULT_INSTRUCTION_KEYWORDS
) -> int:
    best_row = -1
    best_text = 0
    best_non_blank = 0
    instruction_fallback = -1

    for r in _scan_range(sheet):
        row = sheet.row(r)
        if row is None:
            continue
        non_blank_cells = row.non_blank_cells()
        if not non_blank_cells:
            continue
        non_blank = len(non_blank_cells)
        text = sum(1 for _, cell in non_blank_cells if is_header_text_cell(cell))
        first_col, first_cell = non_blank_cells[0]

        # 1) 合并单元格标题/说明行
        if is_merged_banner_row(sheet, r, first_col, non_blank):
            if instruction_fallback < 0:
                instruction_fallback = r
            continue

        # 2) 非合并单元格说明行: 只有一个有效格 + 命中关键词
        if non_blank == 1 and looks_like_instruction_text(first_cell.text, instruction_keywords):
            next_index = r + 1
            if next_index <= sheet.last_row and is_likely_header_row(sheet.row(next_index), instruction_keywords):
                logger.debug("instruction row %d, header taken from next row %d", r, next_index)
                return next_index
            if instruction_fallback < 0:
                instruction_fallback = r
            continue

        # 3) 普通评分
        if text > best_text or (text == best_text and non_blank > best_non_blank):
            best_text = text
            best_non_blank = non_blank
            best_row = r

    if best_row >= 0:
        if best_text == 0:
            return best_row if best_non_blank > 0 else -1
        return best_row
    return instruction_fallback


def find_first_non_empty_row(sheet: SheetGrid) -> int:
    for r in _scan_range(sheet):
        row = sheet.row(r)
        if row is not None and row.non_blank_cells():
            return r
    return -1


def is_exact_header_match(row_headers: Sequence[str], template_headers: Sequence[str]) -> bool:
    """Same values, same order, same count, no duplicates inside the row."""
    filtered = [h for h in row_headers if h and h.strip()]
    if not filtered or not template_headers:
        return False
    if len(filtered) != len(template_headers):
        return False
    if len(set(filtered)) != len(filtered):
        return False
    return filtered == list(template_headers)


def _normalized_row(row: GridRow) -> list[str]:
    out: list[str] = []
    for _, cell in row.non_blank_cells():
        value = normalize_header(cell.display_text)
        if value:
            out.append(value)
    return out


def find_header_row_by_match(
    sheet: SheetGrid,
    template_headers: Sequence[str],
    mode: HeaderMatchMode = HeaderMatchMode.BEST_COUNT,
    instruction_keywords: Sequence[str] = DEFAULT_INSTRUCTION_KEYWORDS,
) -> int:
    """Locate a data file's header row against the template's normalized headers."""
    template_set = set(template_headers)
    best_row = -1
    best_count = 0
    for r in _scan_range(sheet):
        row = sheet.row(r)
        if row is None:
            continue
        # 跳过说明行 (防止说明里含字段示例导致误命中)
        if is_instruction_like_row(row, instruction_keywords):
            continue
        row_headers = _normalized_row(row)
        if mode is HeaderMatchMode.EXACT:
            if is_exact_header_match(row_headers, template_headers):
                return r
            continue
        count = sum(1 for h in row_headers if h in template_set)
        if count > best_count:
            best_count = count
            best_row = r
    return best_row if best_count > 0 else -1
