from __future__ import annotations

from io import BytesIO

from openpyxl import load_workbook

from sheetmerge.excel.writer import SUMMARY_SHEET_NAME, write_merged_workbook


def _read(data: bytes):
    wb = load_workbook(BytesIO(data))
    ws = wb[SUMMARY_SHEET_NAME]
    return [list(r) for r in ws.iter_rows(values_only=True)]


def test_write_headers_and_rows_as_text():
    data = write_merged_workbook(["姓名", "金额"], [["张三", "100"], ["李四", "abc"]])
    rows = _read(data)
    assert rows == [["姓名", "金额"], ["张三", "100"], ["李四", "abc"]]


def test_write_single_summary_sheet():
    wb = load_workbook(BytesIO(write_merged_workbook(["a"], [])))
    assert wb.sheetnames == [SUMMARY_SHEET_NAME]


def test_write_pads_and_cuts_rows():
    rows = _read(write_merged_workbook(["a", "b"], [["1"], ["1", "2", "3"]]))
    assert rows[1] == ["1", None]
    assert rows[2] == ["1", "2"]


def test_write_empty_value_is_empty_cell():
    rows = _read(write_merged_workbook(["a", "b"], [["", "x"]]))
    assert rows[1] == [None, "x"]


def test_write_formula_like_text_stays_text():
    text = '=HYPERLINK("http://x","y")'
    wb = load_workbook(BytesIO(write_merged_workbook(["姓名", "备注"], [["张三", text]])))
    cell = wb[SUMMARY_SHEET_NAME]["B2"]
    assert cell.value == text
    assert cell.data_type == "s"
