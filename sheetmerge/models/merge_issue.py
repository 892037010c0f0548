from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum

"""MergeIssue model for data-quality reporting.

A MergeIssue is one entry of the append-only issue list built during a merge
call. File-level problems carry neither row_no nor column_name; row-level
problems carry the 1-based sheet row number and the template's original
(non-normalized) header text.

The JSON Lines form has a fixed key set, see to_json_line().
"""

__all__ = [
    "IssueType",
    "MergeIssue",
]


class IssueType(Enum):
    """Issue classification in UPPER_SNAKE_CASE."""
    EMPTY_FILE = "EMPTY_FILE"
    PARSE_ERROR = "PARSE_ERROR"
    HEADER_NOT_FOUND = "HEADER_NOT_FOUND"
    DUPLICATE_COLUMN = "DUPLICATE_COLUMN"
    MISSING_COLUMN = "MISSING_COLUMN"
    REQUIRED_EMPTY = "REQUIRED_EMPTY"
    FORMAT_MISMATCH = "FORMAT_MISMATCH"

    @property
    def is_file_level(self) -> bool:
        return self in (IssueType.EMPTY_FILE, IssueType.PARSE_ERROR, IssueType.HEADER_NOT_FOUND)


@dataclass(frozen=True)
class MergeIssue:
    """Structured data-quality issue.

    Attributes:
        file_name: original file name of the uploaded workbook
        sheet_name: selected sheet, None when the workbook could not be opened
        row_no: 1-based row number, None for file/column level issues
        column_name: template header text, None for file level issues
        message: human readable message
        issue_type: classification
    """
    file_name: str
    sheet_name: str | None
    row_no: int | None
    column_name: str | None
    message: str
    issue_type: IssueType

    # 文件级问题 (行/列均为空)
    @staticmethod
    def file_level(file_name: str, sheet_name: str | None, issue_type: IssueType, message: str) -> MergeIssue:
        return MergeIssue(
            file_name=file_name,
            sheet_name=sheet_name,
            row_no=None,
            column_name=None,
            message=message,
            issue_type=issue_type,
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "file": self.file_name,
            "sheet": self.sheet_name,
            "row": self.row_no,
            "column": self.column_name,
            "issue_type": self.issue_type.value,
            "message": self.message,
        }

    def to_json_line(self) -> str:
        """Serialize to a single JSON line (no extra keys)."""
        return json.dumps(self.to_dict(), ensure_ascii=False)
