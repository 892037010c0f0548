"""Template-driven merger for branch Excel reports.

Typical use::

    session = MergeSession(config=load_merge_config())
    analyze_template(session, WorkbookSource.from_path(Path("template.xlsx")))
    result = merge_files(session, [WorkbookSource.from_path(p) for p in paths])
    data = export_merged(session)
"""

from .config.loader import ConfigError, load_merge_config, load_template_rules
from .excel.reader import WorkbookSource
from .models import (
    ColumnType,
    FileStat,
    FileStatus,
    HeaderMatchMode,
    IssueType,
    MergeConfig,
    MergeIssue,
    MergeResult,
    RowStrategy,
    TemplateDefinition,
    TemplateInfo,
    TemplateRule,
    ValidationLevel,
)
from .services.errors import ExportError, MergeError, PreconditionError, TemplateError
from .services.merger import analyze_template, export_merged, merge_files
from .services.session import MergeSession
from .services.template_rules import TemplateRuleStore

__version__ = "0.1.0"

__all__ = [
    # Operations
    "analyze_template",
    "export_merged",
    "merge_files",
    "MergeSession",
    "WorkbookSource",
    # Configuration
    "ConfigError",
    "HeaderMatchMode",
    "MergeConfig",
    "RowStrategy",
    "TemplateRule",
    "TemplateRuleStore",
    "ValidationLevel",
    "load_merge_config",
    "load_template_rules",
    # Models
    "ColumnType",
    "FileStat",
    "FileStatus",
    "IssueType",
    "MergeIssue",
    "MergeResult",
    "TemplateDefinition",
    "TemplateInfo",
    # Errors
    "ExportError",
    "MergeError",
    "PreconditionError",
    "TemplateError",
]
