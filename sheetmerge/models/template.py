from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

"""Template schema models.

TemplateDefinition is produced once per template upload by the template
analyzer and is immutable afterwards. TemplateInfo is the caller-facing view
with 1-based row numbers.
"""

__all__ = [
    "ColumnType",
    "TemplateDefinition",
    "TemplateInfo",
]


class ColumnType(Enum):
    """Inferred column type. TEXT doubles as "no validation"."""
    TEXT = "TEXT"
    NUMBER = "NUMBER"
    DATE = "DATE"


@dataclass(frozen=True)
class TemplateInfo:
    """Result of analyze_template (1-based row numbers)."""
    headers: list[str]
    header_row_index: int  # 1-based
    data_start_row: int  # 1-based
    column_types: list[ColumnType]

    def to_dict(self) -> dict[str, object]:
        return {
            "headers": list(self.headers),
            "headerRowIndex": self.header_row_index,
            "dataStartRow": self.data_start_row,
            "columnTypes": [t.value for t in self.column_types],
        }


@dataclass(frozen=True)
class TemplateDefinition:
    """Learned schema of the template workbook.

    headers / normalized_headers / column_types are parallel lists. The
    normalized form is lossy, so mapping back to the display name goes through
    the parallel index (header_name), never through re-normalization.
    """
    headers: tuple[str, ...]
    normalized_headers: tuple[str, ...]
    column_types: tuple[ColumnType, ...]
    required_headers: frozenset[str]  # normalized
    header_row_index: int  # 0-based
    data_start_row: int  # 0-based (header_row_index + 1)
    sheet_name: str = ""
    source_name: str = ""

    def __post_init__(self) -> None:
        if not (len(self.headers) == len(self.normalized_headers) == len(self.column_types)):
            raise ValueError(
                "headers, normalized_headers and column_types must have the same length: "
                f"{len(self.headers)}/{len(self.normalized_headers)}/{len(self.column_types)}"
            )

    def __len__(self) -> int:
        return len(self.headers)

    def header_name(self, normalized: str) -> str:
        """Original display name for a normalized header (first occurrence)."""
        for i, norm in enumerate(self.normalized_headers):
            if norm == normalized:
                return self.headers[i]
        return normalized

    def is_required(self, normalized: str) -> bool:
        return normalized in self.required_headers

    def to_info(self) -> TemplateInfo:
        return TemplateInfo(
            headers=list(self.headers),
            header_row_index=self.header_row_index + 1,
            data_start_row=self.header_row_index + 2,
            column_types=list(self.column_types),
        )
