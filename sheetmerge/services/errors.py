from __future__ import annotations

"""Exception taxonomy of the merge operations.

Per-file and per-row problems never raise; they become MergeIssue records.
These exceptions cover the cases where an operation cannot run at all.
"""

__all__ = [
    "ExportError",
    "MergeError",
    "PreconditionError",
    "TemplateError",
]


class MergeError(Exception):
    """Base class for merge operation failures."""


class PreconditionError(MergeError):
    """Operation called before its inputs exist (no template, no files)."""


class TemplateError(MergeError):
    """Template workbook cannot be turned into a column schema."""


class ExportError(MergeError):
    """Nothing to export, or the export workbook could not be written."""
