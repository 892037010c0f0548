from __future__ import annotations

import re
from pathlib import Path

from sheetmerge.cli.__main__ import main as cli_main

"""SUMMARY output contract: exactly one SUMMARY line, fixed field order."""

SUMMARY_PATTERN = re.compile(r"^SUMMARY files=\d+ merged=\d+ skipped=\d+ rows=\d+ issues=\d+$")
HEADERS = ["姓名", "账号", "金额"]


def _summary_lines(out: str) -> list[str]:
    return [line for line in out.splitlines() if line.startswith("SUMMARY")]


def test_summary_line_format(temp_workdir: Path, write_xlsx, capsys):
    template = write_xlsx("template.xlsx", [HEADERS, ["样例", "6222", 1]])
    a = write_xlsx("a.xlsx", [HEADERS, ["张三", "1", 1], ["李四", "2", 2]])
    b = write_xlsx("b.xlsx", [["甲", "乙"]])

    cli_main(["--template", str(template), str(a), str(b)])

    lines = _summary_lines(capsys.readouterr().out)
    assert len(lines) == 1
    assert SUMMARY_PATTERN.match(lines[0])
    assert lines[0] == "SUMMARY files=2 merged=1 skipped=1 rows=2 issues=1"


def test_no_summary_on_fatal(temp_workdir: Path, capsys):
    cli_main(["--template", "data/missing.xlsx"])
    assert _summary_lines(capsys.readouterr().out) == []
