from __future__ import annotations

import json
from pathlib import Path

from sheetmerge.cli.__main__ import main as cli_main

"""Issue log contract: JSON Lines, fixed key set, file-level issues carry null row/column."""

KEYS = {"file", "sheet", "row", "column", "issue_type", "message"}
ISSUE_TYPES = {
    "EMPTY_FILE",
    "PARSE_ERROR",
    "HEADER_NOT_FOUND",
    "DUPLICATE_COLUMN",
    "MISSING_COLUMN",
    "REQUIRED_EMPTY",
    "FORMAT_MISMATCH",
}
HEADERS = ["姓名", "账号", "金额"]


def test_issue_log_lines(temp_workdir: Path, write_xlsx, capsys):
    template = write_xlsx("template.xlsx", [HEADERS, ["样例", "6222", 1]])
    empty = temp_workdir / "data" / "empty.xlsx"
    empty.write_bytes(b"")
    broken = temp_workdir / "data" / "broken.xlsx"
    broken.write_bytes(b"PK-not-really")
    no_header = write_xlsx("no_header.xlsx", [["甲", "乙"]])
    missing = write_xlsx("missing.xlsx", [["姓名", "金额"], ["张三", "x"]])

    code = cli_main(["--template", str(template), str(empty), str(broken), str(no_header), str(missing)])
    capsys.readouterr()

    assert code == 2
    logs = list((temp_workdir / "logs").glob("issues-*.log"))
    assert len(logs) == 1
    records = [json.loads(line) for line in logs[0].read_text(encoding="utf-8").splitlines() if line]
    assert [r["issue_type"] for r in records] == [
        "EMPTY_FILE",
        "PARSE_ERROR",
        "HEADER_NOT_FOUND",
        "MISSING_COLUMN",
        "FORMAT_MISMATCH",
    ]
    for record in records:
        assert set(record.keys()) == KEYS
        assert record["issue_type"] in ISSUE_TYPES
    for record in records[:4]:
        assert record["row"] is None
    assert records[3]["column"] == "账号"
    assert records[4]["row"] == 2
    assert records[4]["column"] == "金额"
    assert records[0]["file"] == "empty.xlsx"
    assert records[0]["sheet"] is None
