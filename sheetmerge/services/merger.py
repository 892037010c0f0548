from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime

from ..excel.grid import WorkbookGrid
from ..excel.reader import WorkbookReadError, WorkbookSource, open_workbook
from ..excel.writer import write_merged_workbook
from ..logging.issue_log import IssueLogBuffer
from ..models.config_models import MergeConfig
from ..models.merge_issue import IssueType, MergeIssue
from ..models.merge_result import FileStat, FileStatus, MergeResult
from ..models.template import TemplateDefinition, TemplateInfo
from .cell_validator import capture_row
from .column_mapper import build_column_mapping, duplicate_column_issues, missing_column_issues
from .errors import ExportError, PreconditionError, TemplateError
from .header_locator import find_header_row_by_match
from .progress import ProgressTracker
from .row_classifier import RowClassifier, build_strategy
from .session import MergeSession
from .sheet_selector import NoSheetError, pick_best_data_sheet
from .template_analyzer import analyze_template_grid

"""Merge orchestration: analyze the template, merge branch files, export.

Each operation takes the caller's MergeSession; nothing is kept at module
level. A failure inside one branch file is recorded as a MergeIssue and the
batch continues with the next file.
"""

__all__ = [
    "EMPTY_FILE_MESSAGE",
    "HEADER_NOT_FOUND_MESSAGE",
    "analyze_template",
    "export_merged",
    "merge_files",
]

logger = logging.getLogger(__name__)

EMPTY_TEMPLATE_MESSAGE = "模板文件不能为空。"
NO_TEMPLATE_MESSAGE = "请先上传模板文件，再进行合并。"
NO_FILES_MESSAGE = "请至少上传一份支行 Excel。"
NOTHING_TO_EXPORT_MESSAGE = "没有可导出的汇总结果，请先完成合并。"
EMPTY_FILE_MESSAGE = "文件为空，已跳过。"
HEADER_NOT_FOUND_MESSAGE = "未找到匹配模板的表头，已跳过。"


@dataclass
class _FileOutcome:
    status: FileStatus
    sheet_name: str | None = None
    rows: list[list[str]] = field(default_factory=list)
    issues: list[MergeIssue] = field(default_factory=list)


def analyze_template(session: MergeSession, source: WorkbookSource) -> TemplateInfo:
    """Learn the template schema and store it in the session.

    A new template invalidates the rows of any earlier merge.

    Raises:
        PreconditionError: empty template stream
        TemplateError: unreadable workbook, no header row, no usable or duplicate columns
    """
    data = source.read_bytes()
    if not data:
        raise PreconditionError(EMPTY_TEMPLATE_MESSAGE)

    try:
        with open_workbook(data) as workbook:
            template = analyze_template_grid(workbook, session.config, session.rule_store, source.name)
    except WorkbookReadError as e:
        raise TemplateError(f"模板解析失败：{e}") from e

    session.template = template
    session.merged_rows = None
    logger.info(
        "template '%s' analyzed: sheet='%s' header_row=%d columns=%d required=%d",
        source.name,
        template.sheet_name,
        template.header_row_index + 1,
        len(template),
        len(template.required_headers),
    )
    return template.to_info()


def merge_files(
    session: MergeSession,
    sources: Iterable[WorkbookSource],
    issue_log: IssueLogBuffer | None = None,
) -> MergeResult:
    """Merge every branch workbook against the session's template.

    Args:
        session: session holding an analyzed template
        sources: branch workbooks, merged in the given order
        issue_log: optional buffer; issues are appended and flushed once at the end

    Raises:
        PreconditionError: no template analyzed yet, or no files given
    """
    template = session.template
    if template is None:
        raise PreconditionError(NO_TEMPLATE_MESSAGE)
    source_list = list(sources)
    if not source_list:
        raise PreconditionError(NO_FILES_MESSAGE)

    config = session.config
    merged_rows: list[list[str]] = []
    issues: list[MergeIssue] = []
    file_stats: list[FileStat] = []

    with ProgressTracker(len(source_list), description="Merging files") as progress:
        for source in source_list:
            progress.start_file(source.name)
            file_start = datetime.now(UTC)
            outcome = _merge_single_file(source, template, config)
            file_elapsed = (datetime.now(UTC) - file_start).total_seconds()

            merged_rows.extend(outcome.rows)
            issues.extend(outcome.issues)
            file_stats.append(
                FileStat(
                    file_name=source.name,
                    sheet_name=outcome.sheet_name,
                    status=outcome.status,
                    merged_rows=len(outcome.rows),
                    issue_count=len(outcome.issues),
                    elapsed_seconds=file_elapsed,
                )
            )
            progress.set_postfix(rows=len(merged_rows), issues=len(issues))
            progress.finish_file(success=outcome.status is FileStatus.MERGED)

    if issue_log is not None:
        for issue in issues:
            issue_log.append(issue)
        issue_log.flush()

    session.merged_rows = merged_rows
    preview_limit = max(0, config.preview_limit)
    return MergeResult(
        headers=list(template.headers),
        preview_rows=[list(r) for r in merged_rows[:preview_limit]],
        total_rows=len(merged_rows),
        issues=issues,
        file_stats=file_stats,
    )


def _merge_single_file(source: WorkbookSource, template: TemplateDefinition, config: MergeConfig) -> _FileOutcome:
    """Merge one branch workbook; never raises."""
    try:
        data = source.read_bytes()
        if not data:
            logger.warning("%s: empty file, skipped", source.name)
            issue = MergeIssue.file_level(source.name, None, IssueType.EMPTY_FILE, EMPTY_FILE_MESSAGE)
            return _FileOutcome(FileStatus.SKIPPED, issues=[issue])
        with open_workbook(data) as workbook:
            return _merge_workbook(workbook, source.name, template, config)
    except (WorkbookReadError, NoSheetError, OSError) as e:
        logger.warning("%s: cannot read workbook: %s", source.name, e)
        issue = MergeIssue.file_level(source.name, None, IssueType.PARSE_ERROR, f"解析失败：{e}")
        return _FileOutcome(FileStatus.FAILED, issues=[issue])
    except Exception as e:  # noqa: BLE001
        logger.warning("%s: unexpected error while merging: %s", source.name, e, exc_info=True)
        issue = MergeIssue.file_level(source.name, None, IssueType.PARSE_ERROR, f"解析失败：{e}")
        return _FileOutcome(FileStatus.FAILED, issues=[issue])


def _merge_workbook(
    workbook: WorkbookGrid, file_name: str, template: TemplateDefinition, config: MergeConfig
) -> _FileOutcome:
    sheet = pick_best_data_sheet(workbook)
    header_row = find_header_row_by_match(
        sheet, template.normalized_headers, config.header_match, config.instruction_keywords
    )
    header = sheet.row(header_row) if header_row >= 0 else None
    if header is None:
        logger.warning("%s: no header row matching the template, skipped", file_name)
        issue = MergeIssue.file_level(file_name, sheet.name, IssueType.HEADER_NOT_FOUND, HEADER_NOT_FOUND_MESSAGE)
        return _FileOutcome(FileStatus.SKIPPED, sheet_name=sheet.name, issues=[issue])

    mapping = build_column_mapping(header)
    if mapping.has_duplicates:
        logger.warning("%s: duplicated columns %s, skipped", file_name, mapping.duplicate_headers)
        return _FileOutcome(
            FileStatus.SKIPPED,
            sheet_name=sheet.name,
            issues=duplicate_column_issues(mapping, template, file_name, sheet.name),
        )

    outcome = _FileOutcome(FileStatus.MERGED, sheet_name=sheet.name)
    outcome.issues.extend(missing_column_issues(mapping, template, file_name, sheet.name))

    classifier = RowClassifier(build_strategy(config, template, mapping), config.total_keywords)
    for row in classifier.iter_data_rows(sheet, header_row + 1):
        values, row_issues = capture_row(row, template, mapping, config, file_name, sheet.name)
        outcome.rows.append(values)
        outcome.issues.extend(row_issues)

    logger.debug(
        "%s: sheet '%s' header_row=%d merged=%d issues=%d",
        file_name,
        sheet.name,
        header_row + 1,
        len(outcome.rows),
        len(outcome.issues),
    )
    return outcome


def export_merged(session: MergeSession) -> bytes:
    """Serialize the session's merged rows as a single-sheet workbook.

    Raises:
        ExportError: no template or no completed merge, or the writer failed
    """
    if session.template is None or session.merged_rows is None:
        raise ExportError(NOTHING_TO_EXPORT_MESSAGE)
    try:
        return write_merged_workbook(session.template.headers, session.merged_rows)
    except (ValueError, OSError) as e:
        raise ExportError(f"导出失败：{e}") from e
