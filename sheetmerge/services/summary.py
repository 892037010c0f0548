from __future__ import annotations

from ..models.merge_result import MergeResult

"""SUMMARY line rendering for the CLI."""

__all__ = ["render_summary_line"]


def render_summary_line(result: MergeResult) -> str:
    """Render the one-line merge summary.

    Format:
    SUMMARY files={n} merged={merged} skipped={skipped} rows={total} issues={issues}

    Examples:
        >>> from sheetmerge.models.merge_result import FileStat, FileStatus
        >>> result = MergeResult(
        ...     headers=["姓名"], preview_rows=[["张三"]], total_rows=1, issues=[],
        ...     file_stats=[FileStat("a.xlsx", "Sheet1", FileStatus.MERGED, merged_rows=1)],
        ... )
        >>> render_summary_line(result)
        'SUMMARY files=1 merged=1 skipped=0 rows=1 issues=0'
    """
    return (
        f"SUMMARY files={len(result.file_stats)} "
        f"merged={result.merged_files} "
        f"skipped={result.skipped_files} "
        f"rows={result.total_rows} "
        f"issues={len(result.issues)}"
    )
