from __future__ import annotations

from datetime import date

import pytest

from sheetmerge.excel.grid import CellKind, GridCell, InMemorySheetGrid, WorkbookGrid
from sheetmerge.models.config_models import MergeConfig, TemplateRule
from sheetmerge.models.template import ColumnType
from sheetmerge.services.errors import TemplateError
from sheetmerge.services.template_analyzer import (
    TYPE_SAMPLE_LIMIT,
    analyze_template_grid,
    detect_column_type,
)
from sheetmerge.services.template_rules import TemplateRuleStore


def _analyze(rows, rules=(), **kwargs):
    workbook = WorkbookGrid([InMemorySheetGrid("模板", rows, **kwargs)])
    return analyze_template_grid(workbook, MergeConfig(), TemplateRuleStore(rules), "template.xlsx")


def test_analyze_basic_template():
    template = _analyze(
        [
            ["某某分行客户信息表"],
            ["姓名", "账号", "金额（元）", "开户日期"],
            ["张三", "6222000011112222", 100.5, date(2024, 1, 2)],
        ]
    )
    assert template.headers == ("姓名", "账号", "金额（元）", "开户日期")
    assert template.normalized_headers == ("姓名", "账号", "金额", "开户日期")
    assert template.column_types == (ColumnType.TEXT, ColumnType.TEXT, ColumnType.NUMBER, ColumnType.DATE)
    assert template.header_row_index == 1
    assert template.data_start_row == 2
    assert template.sheet_name == "模板"
    assert template.source_name == "template.xlsx"
    assert template.required_headers == frozenset()


@pytest.mark.parametrize("header_row", [0, 1, 4])
def test_info_data_start_row_is_header_plus_two(header_row):
    rows = [None] * header_row + [["姓名", "账号"], ["张三", "1"]]
    info = _analyze(rows).to_info()
    assert info.header_row_index == header_row + 1
    assert info.data_start_row == header_row + 2


def test_analyze_without_sample_rows_defaults_to_text():
    template = _analyze([["姓名", "金额"]])
    assert template.column_types == (ColumnType.TEXT, ColumnType.TEXT)


def test_analyze_instruction_row_is_last_resort():
    template = _analyze([None, ["填写说明"]])
    assert template.header_row_index == 1
    assert template.headers == ("填写说明",)


def test_analyze_empty_template_raises():
    with pytest.raises(TemplateError, match="未找到表头行"):
        _analyze([])


def test_analyze_header_row_without_usable_columns():
    with pytest.raises(TemplateError, match="模板表头没有有效列"):
        _analyze([["（说明）", "(备注)"]])


def test_analyze_drops_headers_empty_after_normalization():
    template = _analyze([["姓名", "（注）", "账号"], ["张三", "x", "1"]])
    assert template.normalized_headers == ("姓名", "账号")
    assert len(template) == 2


def test_analyze_rejects_duplicate_normalized_headers():
    with pytest.raises(TemplateError, match="模板表头重复"):
        _analyze([["金额(元)", "金额（万元）", "姓名"]])


def test_analyze_no_sheets():
    with pytest.raises(TemplateError):
        analyze_template_grid(WorkbookGrid([]), MergeConfig(), TemplateRuleStore(), "t.xlsx")


def test_analyze_resolves_required_headers():
    rule = TemplateRule(name="客户", match_headers=("姓名", "账号"), required_headers=("账号",))
    template = _analyze([["姓名", "账号（必填）", "金额"]], rules=[rule])
    assert template.required_headers == frozenset({"账号"})
    assert template.is_required("账号")


def test_detect_column_type_first_decisive_cell_wins():
    sheet = InMemorySheetGrid(
        "S",
        [
            ["金额"],
            [None],
            [GridCell("#N/A", CellKind.ERROR)],
            ["暂无"],
            [100],
            [200],
        ],
    )
    assert detect_column_type(sheet, 0, 1) is ColumnType.TEXT


def test_detect_column_type_skips_blank_and_error():
    sheet = InMemorySheetGrid("S", [["金额"], [""], [GridCell("#DIV/0!", CellKind.ERROR)], [3.5]])
    assert detect_column_type(sheet, 0, 1) is ColumnType.NUMBER


def test_detect_column_type_boolean_is_text():
    sheet = InMemorySheetGrid("S", [["是否"], [True]])
    assert detect_column_type(sheet, 0, 1) is ColumnType.TEXT


def test_detect_column_type_sample_window():
    rows = [["日期"]] + [None] * (TYPE_SAMPLE_LIMIT + 1) + [[date(2024, 1, 1)]]
    sheet = InMemorySheetGrid("S", rows)
    assert detect_column_type(sheet, 0, 1) is ColumnType.TEXT
