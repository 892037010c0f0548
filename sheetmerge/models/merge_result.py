from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from .merge_issue import MergeIssue

"""Merge result models.

MergeResult is the caller-facing output of one merge call: the template
headers, a bounded preview of the merged rows, the true row count and the full
issue list. FileStat carries per-file bookkeeping used by the summary line and
the CLI.
"""

__all__ = [
    "FileStatus",
    "FileStat",
    "MergeResult",
]


class FileStatus(Enum):
    """Outcome of one input file.

    - MERGED: header matched, rows (possibly zero) were collected
    - SKIPPED: file rejected before row processing (empty, no header, duplicate columns)
    - FAILED: workbook could not be read or parsing raised
    """
    MERGED = "merged"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class FileStat:
    file_name: str
    sheet_name: str | None
    status: FileStatus
    merged_rows: int = 0
    issue_count: int = 0
    elapsed_seconds: float = 0.0


@dataclass(frozen=True)
class MergeResult:
    """Output of merge_files.

    preview_rows is always the prefix of the merged rows of length
    min(total_rows, preview_limit).
    """
    headers: list[str]
    preview_rows: list[list[str]]
    total_rows: int
    issues: list[MergeIssue]
    file_stats: list[FileStat] = field(default_factory=list)

    @property
    def merged_files(self) -> int:
        return sum(1 for s in self.file_stats if s.status is FileStatus.MERGED)

    @property
    def skipped_files(self) -> int:
        return sum(1 for s in self.file_stats if s.status is not FileStatus.MERGED)

    def to_dict(self) -> dict[str, object]:
        return {
            "headers": list(self.headers),
            "previewRows": [list(r) for r in self.preview_rows],
            "totalRows": self.total_rows,
            "issues": [i.to_dict() for i in self.issues],
        }
