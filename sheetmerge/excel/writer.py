from __future__ import annotations

import io
from collections.abc import Sequence

import pandas as pd

"""Export writer: merged rows -> single-sheet .xlsx bytes.

Every cell is written as text; no type-specific formatting is reapplied.
Empty strings are written as empty cells.
"""

__all__ = [
    "SUMMARY_SHEET_NAME",
    "write_merged_workbook",
]

SUMMARY_SHEET_NAME = "汇总"


def _fit(row: Sequence[str], width: int) -> list[str | None]:
    values = [str(v) if v is not None else "" for v in list(row)[:width]]
    values += [""] * (width - len(values))
    return [v if v != "" else None for v in values]


def write_merged_workbook(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> bytes:
    """Serialize headers (row 1) + rows into an .xlsx workbook.

    Rows shorter than the header are padded, longer rows are cut.
    """
    width = len(headers)
    df = pd.DataFrame([_fit(r, width) for r in rows], columns=list(headers), dtype="object")
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name=SUMMARY_SHEET_NAME, index=False)
        ws = writer.sheets[SUMMARY_SHEET_NAME]
        # openpyxl 把 "=" 开头的字符串当公式写出, 强制为文本
        for ws_row in ws.iter_rows():
            for cell in ws_row:
                if isinstance(cell.value, str) and cell.value.startswith("="):
                    cell.data_type = "s"
        # 近似 autoSizeColumn: 只看前 200 行
        for idx, header in enumerate(headers):
            sample = [len(str(header))] + [len(str(v)) for v in df.iloc[:200, idx].dropna()]
            letter = ws.cell(row=1, column=idx + 1).column_letter
            ws.column_dimensions[letter].width = min(60, max(8, max(sample) * 2 + 2))
    return buffer.getvalue()
