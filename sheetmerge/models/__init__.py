"""Domain models for the template-driven sheet merger.

This package contains the value objects shared by the analyzer, the merge
pipeline and the CLI.
"""

from .config_models import (
    HeaderMatchMode,
    MergeConfig,
    RowStrategy,
    TemplateRule,
    ValidationLevel,
)
from .merge_issue import IssueType, MergeIssue
from .merge_result import FileStat, FileStatus, MergeResult
from .template import ColumnType, TemplateDefinition, TemplateInfo

__all__ = [
    # Configuration models
    "HeaderMatchMode",
    "MergeConfig",
    "RowStrategy",
    "TemplateRule",
    "ValidationLevel",
    # Template models
    "ColumnType",
    "TemplateDefinition",
    "TemplateInfo",
    # Merge models
    "FileStat",
    "FileStatus",
    "IssueType",
    "MergeIssue",
    "MergeResult",
]
