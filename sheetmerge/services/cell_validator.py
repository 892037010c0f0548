from __future__ import annotations

import re
from datetime import datetime

from ..excel.grid import CellKind, GridCell, GridRow
from ..models.config_models import MergeConfig, ValidationLevel
from ..models.merge_issue import IssueType, MergeIssue
from ..models.template import ColumnType, TemplateDefinition
from .column_mapper import ColumnMapping

"""Capture and validate the cells of one accepted data row.

Validation is advisory: issues are reported, the row is always kept with the
captured text values.
"""

__all__ = [
    "FORMAT_MISMATCH_MESSAGE",
    "REQUIRED_EMPTY_MESSAGE",
    "capture_row",
    "is_date_text",
    "is_numeric_text",
    "matches_expected_type",
]

REQUIRED_EMPTY_MESSAGE = "必填项为空"
FORMAT_MISMATCH_MESSAGE = "格式与模板不一致"

# (shape, strptime format); shape check keeps strptime from accepting short forms
_DATE_FORMATS = (
    (re.compile(r"^\d{8}$"), "%Y%m%d"),
    (re.compile(r"^\d{4}-\d{1,2}-\d{1,2}$"), "%Y-%m-%d"),
    (re.compile(r"^\d{4}年\d{1,2}月\d{1,2}日$"), "%Y年%m月%d日"),
)


def is_numeric_text(value: str) -> bool:
    """Decimal text, thousands separators allowed.

    >>> is_numeric_text("1,234.50")
    True
    >>> is_numeric_text("abc")
    False
    """
    text = value.replace(",", "").strip()
    if not text or "_" in text:
        return False
    try:
        float(text)
    except ValueError:
        return False
    return True


def is_date_text(value: str) -> bool:
    text = value.strip().replace(".", "-").replace("/", "-")
    for shape, fmt in _DATE_FORMATS:
        if not shape.match(text):
            continue
        try:
            datetime.strptime(text, fmt)
        except ValueError:
            continue
        return True
    return False


def matches_expected_type(cell: GridCell, value: str, column_type: ColumnType) -> bool:
    """Check a non-blank value against the template column type."""
    if column_type is ColumnType.NUMBER:
        return cell.is_numeric or is_numeric_text(value)
    if column_type is ColumnType.DATE:
        return cell.kind is CellKind.DATE or is_date_text(value)
    return True


def capture_row(
    row: GridRow,
    template: TemplateDefinition,
    mapping: ColumnMapping,
    config: MergeConfig,
    file_name: str,
    sheet_name: str,
) -> tuple[list[str], list[MergeIssue]]:
    """One trimmed string per template column plus the issues of the row."""
    values: list[str] = []
    issues: list[MergeIssue] = []
    row_no = row.index + 1
    strict = config.validation_level is ValidationLevel.STRICT

    for header, norm, column_type in zip(template.headers, template.normalized_headers, template.column_types):
        col = mapping.column_of(norm)
        cell = row.cell(col)
        value = cell.text if col is not None else ""
        values.append(value)

        # 缺失列和序号列不校验
        if col is None or config.is_serial_header(norm):
            continue
        if not value:
            if strict and template.is_required(norm):
                issues.append(
                    MergeIssue(file_name, sheet_name, row_no, header, REQUIRED_EMPTY_MESSAGE, IssueType.REQUIRED_EMPTY)
                )
            continue
        if not matches_expected_type(cell, value, column_type):
            issues.append(
                MergeIssue(file_name, sheet_name, row_no, header, FORMAT_MISMATCH_MESSAGE, IssueType.FORMAT_MISMATCH)
            )
    return values, issues
