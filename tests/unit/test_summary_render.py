from __future__ import annotations

import re

from sheetmerge.models.merge_issue import IssueType, MergeIssue
from sheetmerge.models.merge_result import FileStat, FileStatus, MergeResult
from sheetmerge.services.summary import render_summary_line

SUMMARY_PATTERN = re.compile(
    r"^SUMMARY files=([0-9]+) merged=([0-9]+) skipped=([0-9]+) rows=([0-9]+) issues=([0-9]+)$"
)


def _result(stats: list[FileStat], total_rows: int = 0, issues: list[MergeIssue] | None = None) -> MergeResult:
    return MergeResult(
        headers=["姓名", "金额"],
        preview_rows=[],
        total_rows=total_rows,
        issues=issues or [],
        file_stats=stats,
    )


def test_render_summary_line_all_merged():
    result = _result(
        [
            FileStat("a.xlsx", "Sheet1", FileStatus.MERGED, merged_rows=3),
            FileStat("b.xlsx", "Sheet1", FileStatus.MERGED, merged_rows=2),
        ],
        total_rows=5,
    )

    line = render_summary_line(result)

    match = SUMMARY_PATTERN.match(line)
    assert match, f"SUMMARY line should match regex: {line}"
    assert line == "SUMMARY files=2 merged=2 skipped=0 rows=5 issues=0"


def test_render_summary_line_counts_failed_as_skipped():
    issues = [
        MergeIssue.file_level("b.xlsx", None, IssueType.EMPTY_FILE, "文件为空，已跳过。"),
        MergeIssue.file_level("c.xlsx", None, IssueType.PARSE_ERROR, "解析失败：x"),
    ]
    result = _result(
        [
            FileStat("a.xlsx", "Sheet1", FileStatus.MERGED, merged_rows=4),
            FileStat("b.xlsx", None, FileStatus.SKIPPED, issue_count=1),
            FileStat("c.xlsx", None, FileStatus.FAILED, issue_count=1),
        ],
        total_rows=4,
        issues=issues,
    )

    assert render_summary_line(result) == "SUMMARY files=3 merged=1 skipped=2 rows=4 issues=2"


def test_render_summary_line_zero_files():
    line = render_summary_line(_result([]))
    assert SUMMARY_PATTERN.match(line)
    assert line == "SUMMARY files=0 merged=0 skipped=0 rows=0 issues=0"


def test_render_summary_line_rows_use_total_not_preview():
    result = MergeResult(
        headers=["a"],
        preview_rows=[["1"]],
        total_rows=900,
        issues=[],
        file_stats=[FileStat("a.xlsx", "S", FileStatus.MERGED, merged_rows=900)],
    )
    assert "rows=900" in render_summary_line(result)
