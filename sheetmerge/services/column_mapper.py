from __future__ import annotations

from dataclasses import dataclass, field

from ..excel.grid import GridRow
from ..models.merge_issue import IssueType, MergeIssue
from ..models.template import TemplateDefinition
from .normalize import normalize_header

"""Map a data file's header row onto the template columns."""

__all__ = [
    "DUPLICATE_COLUMN_MESSAGE",
    "ColumnMapping",
    "build_column_mapping",
    "duplicate_column_issues",
    "missing_column_issues",
]

DUPLICATE_COLUMN_MESSAGE = "列重复，已跳过该文件"


@dataclass
class ColumnMapping:
    column_map: dict[str, int] = field(default_factory=dict)  # normalized header -> 0-based column
    duplicate_headers: list[str] = field(default_factory=list)

    @property
    def has_duplicates(self) -> bool:
        return bool(self.duplicate_headers)

    def column_of(self, normalized: str) -> int | None:
        return self.column_map.get(normalized)

    def is_mapped(self, normalized: str) -> bool:
        return normalized in self.column_map


def build_column_mapping(header_row: GridRow) -> ColumnMapping:
    """First occurrence wins the map; every repeat is recorded as a duplicate."""
    mapping = ColumnMapping()
    for col, cell in header_row.non_blank_cells():
        norm = normalize_header(cell.display_text)
        if not norm:
            continue
        if norm in mapping.column_map:
            if norm not in mapping.duplicate_headers:
                mapping.duplicate_headers.append(norm)
            continue
        mapping.column_map[norm] = col
    return mapping


def duplicate_column_issues(
    mapping: ColumnMapping, template: TemplateDefinition, file_name: str, sheet_name: str
) -> list[MergeIssue]:
    return [
        MergeIssue(
            file_name=file_name,
            sheet_name=sheet_name,
            row_no=None,
            column_name=template.header_name(norm),
            message=DUPLICATE_COLUMN_MESSAGE,
            issue_type=IssueType.DUPLICATE_COLUMN,
        )
        for norm in mapping.duplicate_headers
    ]


def missing_column_issues(
    mapping: ColumnMapping, template: TemplateDefinition, file_name: str, sheet_name: str
) -> list[MergeIssue]:
    issues: list[MergeIssue] = []
    for header, norm in zip(template.headers, template.normalized_headers):
        if mapping.is_mapped(norm):
            continue
        issues.append(
            MergeIssue(
                file_name=file_name,
                sheet_name=sheet_name,
                row_no=None,
                column_name=header,
                message=f"缺少列：{header}",
                issue_type=IssueType.MISSING_COLUMN,
            )
        )
    return issues
