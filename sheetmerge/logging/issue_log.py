from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

from ..models.merge_issue import MergeIssue

"""Issue log buffering.

- JSON Lines, fixed key set (file, sheet, row, column, issue_type, message)
- One file per run: `logs/issues-YYYYMMDD-HHMMSS.log` (UTC), created on first
  flush that has something to write
- Buffered in memory, written once per merge call
"""

__all__ = [
    "LOGS_DIR",
    "IssueLogBuffer",
]

LOGS_DIR = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"


class IssueLogBuffer:
    """In-memory buffer of MergeIssue records. flush() appends JSON Lines."""

    def __init__(self, logs_dir: Path = LOGS_DIR) -> None:
        self._logs_dir = logs_dir
        self._issues: list[MergeIssue] = []
        self._file_path: Path | None = None

    @property
    def file_path(self) -> Path:
        if self._file_path is None:
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._file_path = self._logs_dir / f"issues-{stamp}.log"
        return self._file_path

    def append(self, issue: MergeIssue) -> None:
        self._issues.append(issue)

    def __len__(self) -> int:
        return len(self._issues)

    def flush(self) -> Path | None:
        """Write buffered issues; returns the file path, or None when nothing was written."""
        if not self._issues:
            return None
        fp = self.file_path
        fp.parent.mkdir(parents=True, exist_ok=True)
        with fp.open("a", encoding="utf-8") as f:
            for issue in self._issues:
                f.write(issue.to_json_line() + "\n")
        self._issues.clear()
        return fp
