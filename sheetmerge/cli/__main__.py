from __future__ import annotations

import argparse
import sys
from pathlib import Path

import pandas as pd
from dotenv import load_dotenv

from sheetmerge.config.loader import ConfigError, load_merge_config
from sheetmerge.excel.reader import WorkbookSource
from sheetmerge.logging.init import log_summary, set_debug, setup_logging
from sheetmerge.logging.issue_log import IssueLogBuffer
from sheetmerge.services.errors import MergeError
from sheetmerge.services.merger import analyze_template, export_merged, merge_files
from sheetmerge.services.session import MergeSession
from sheetmerge.services.summary import render_summary_line
from sheetmerge.services.template_rules import TemplateRuleStore

"""CLI entrypoint.

Flow:
- Load .env (override) and the merge config (config/merge.yml when present)
- Analyze the template workbook
- Merge every branch workbook, write issues to logs/issues-*.log
- Optionally export the merged workbook
- Print the SUMMARY line; exit code reflects the outcome
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1

DEFAULT_CONFIG_PATH = Path("config/merge.yml")
DEFAULT_RULES_PATH = Path("config/template_rules.yml")
INSPECT_ROWS = 5


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env; its SHEETMERGE_* values take precedence over the process environment."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="sheetmerge", description="Merge branch Excel reports against a template workbook"
    )
    p.add_argument("files", nargs="*", type=Path, help="Branch workbooks (.xlsx)")
    p.add_argument("--template", type=Path, required=True, help="Template workbook (.xlsx)")
    p.add_argument("--config", type=Path, default=None, help="Merge config YAML (default: config/merge.yml if present)")
    p.add_argument("--rules", type=Path, default=None, help="Template rules YAML (default: config/template_rules.yml if present)")
    p.add_argument("--output", type=Path, default=None, help="Write the merged workbook to this path")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--inspect", action="store_true", help="Print the first rows of every sheet then exit")
    return p.parse_args(argv)


def _inspect(paths: list[Path]) -> int:
    for path in paths:
        print(f"FILE: {path.name}")
        try:
            sheets = pd.read_excel(path, sheet_name=None, header=None, nrows=INSPECT_ROWS, dtype=str, engine="openpyxl")
        except (OSError, ValueError) as e:
            print(f"  read_error: {e}")
            continue
        for sname, df in sheets.items():
            print(f"  SHEET: {sname} cols={df.shape[1]}")
            for _, row in df.fillna("").iterrows():
                print("    " + " | ".join(str(v) for v in row.tolist()))
    return EXIT_SUCCESS_ALL


def _resolve_rules_path(args: argparse.Namespace, configured: str | None) -> Path | None:
    if args.rules is not None:
        return args.rules
    if configured:
        return Path(configured)
    return DEFAULT_RULES_PATH if DEFAULT_RULES_PATH.exists() else None


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # 仅在 argv 为 None 时读取 sys.argv (测试直接传入参数列表)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"), override=True)

    if args.debug:
        set_debug(logger)
        logger.debug("debug mode enabled")

    if args.inspect:
        return _inspect([args.template, *args.files])

    config_path = args.config
    if config_path is None and DEFAULT_CONFIG_PATH.exists():
        config_path = DEFAULT_CONFIG_PATH
    try:
        cfg = load_merge_config(config_path)
        rule_store = TemplateRuleStore.from_path(_resolve_rules_path(args, cfg.rules_path))
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    missing = [p for p in [args.template, *args.files] if not p.exists()]
    if missing:
        logger.error(f"file not found: {', '.join(str(p) for p in missing)}")
        return EXIT_FATAL

    session = MergeSession(config=cfg, rule_store=rule_store)
    issue_log = IssueLogBuffer()
    sources = [WorkbookSource.from_path(p) for p in args.files]
    try:
        info = analyze_template(session, WorkbookSource.from_path(args.template))
        logger.info(f"template: {len(info.headers)} columns, header row {info.header_row_index}")
        result = merge_files(session, sources, issue_log=issue_log)
        if args.output is not None:
            args.output.parent.mkdir(parents=True, exist_ok=True)
            args.output.write_bytes(export_merged(session))
            logger.info(f"merged workbook written to {args.output}")
    except MergeError as e:
        logger.error(str(e))
        return EXIT_FATAL

    for issue in result.issues:
        where = f"{issue.file_name}" + (f" 第{issue.row_no}行" if issue.row_no is not None else "")
        column = f" [{issue.column_name}]" if issue.column_name else ""
        logger.warning(f"{where}{column}: {issue.message}")
    if result.issues:
        logger.info(f"issues written to {issue_log.file_path}")

    # log_summary adds the "SUMMARY " label itself
    summary_line = render_summary_line(result)
    log_summary(summary_line[len("SUMMARY "):])

    if result.issues or result.skipped_files:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
