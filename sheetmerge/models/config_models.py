from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

"""Config dataclasses for the template-driven sheet merger.

These are the value objects handed to the analyzer, the row classifier and the
cell validator at call time. Loading (YAML / environment) lives in
sheetmerge/config/loader.py; this module only defines shapes and defaults.
"""

__all__ = [
    "DEFAULT_ANCHOR_KEYWORDS",
    "DEFAULT_KEY_FIELD_KEYWORDS",
    "DEFAULT_EXCLUDED_KEYWORDS",
    "DEFAULT_TOTAL_KEYWORDS",
    "DEFAULT_INSTRUCTION_KEYWORDS",
    "DEFAULT_SERIAL_HEADERS",
    "DEFAULT_FIXED_VALUE_KEYWORDS",
    "DEFAULT_MIN_KEY_HITS",
    "DEFAULT_PREVIEW_LIMIT",
    "HeaderMatchMode",
    "MergeConfig",
    "RowStrategy",
    "TemplateRule",
    "ValidationLevel",
    "contains_keyword",
]

# 强标识字段: 任一有值即视为数据行
DEFAULT_ANCHOR_KEYWORDS: tuple[str, ...] = (
    "账号",
    "卡号",
    "证件号",
    "设备序列号",
    "资产编号",
    "设备编号",
)
# 业务字段: 命中数达到 min_key_hits 才视为数据行
DEFAULT_KEY_FIELD_KEYWORDS: tuple[str, ...] = (
    "姓名",
    "单位",
    "网点",
    "部门",
    "金额",
    "数量",
    "用途",
    "存放地点",
    "管理员",
    "项目",
    "指标",
    "设备类型",
    "规格型号",
    "设备名称",
    "资产名称",
)
DEFAULT_EXCLUDED_KEYWORDS: tuple[str, ...] = (
    "序号",
    "序次",
    "行号",
    "备注",
    "说明",
    "填报人",
    "填表人",
    "填报日期",
    "填表日期",
)
DEFAULT_TOTAL_KEYWORDS: tuple[str, ...] = ("小计", "合计", "总计")
DEFAULT_INSTRUCTION_KEYWORDS: tuple[str, ...] = (
    "填写",
    "说明",
    "注意",
    "示例",
    "要求",
    "口径",
    "备注",
    "提示",
    "温馨提示",
    "如实",
    "以下",
    "请按",
    "请填写",
    "填报",
    "填表",
    "规则",
    "校验",
    "检查",
)
# exact match after normalization (case-insensitive)
DEFAULT_SERIAL_HEADERS: tuple[str, ...] = ("序号", "序", "编号", "行号", "序列", "no")
DEFAULT_FIXED_VALUE_KEYWORDS: tuple[str, ...] = ("账户类型", "账户类别")
DEFAULT_MIN_KEY_HITS = 2
DEFAULT_PREVIEW_LIMIT = 500


class ValidationLevel(Enum):
    """How blank cells in required columns are reported.

    - STRICT: a blank required cell produces a REQUIRED_EMPTY issue
    - LENIENT: blank cells never produce issues
    """
    STRICT = "strict"
    LENIENT = "lenient"


class RowStrategy(Enum):
    """Data-row detection strategy used by the row classifier."""
    ANCHOR_KEYS = "anchor_keys"
    SERIAL_KEYWORDS = "serial_keywords"


class HeaderMatchMode(Enum):
    """How a data file's header row is located against a known template."""
    EXACT = "exact"
    BEST_COUNT = "best_count"


@dataclass(frozen=True)
class TemplateRule:
    """Named template shape with the fields that must be filled in.

    A rule applies when all of its (normalized) match_headers are present in
    the template. required_keywords / optional_keywords express the keyword
    form of the required-field check: a template header containing any
    required keyword, and none of the optional keywords, is required.
    """
    name: str
    match_headers: tuple[str, ...] = ()
    required_headers: tuple[str, ...] = ()
    required_keywords: tuple[str, ...] = ()
    optional_keywords: tuple[str, ...] = ()

    @property
    def is_catch_all(self) -> bool:
        return not self.match_headers


@dataclass(frozen=True)
class MergeConfig:
    """Root configuration object for analyze / merge calls.

    Every keyword list falls back to the documented default when unset.
    """
    anchor_keywords: tuple[str, ...] = DEFAULT_ANCHOR_KEYWORDS
    key_field_keywords: tuple[str, ...] = DEFAULT_KEY_FIELD_KEYWORDS
    excluded_keywords: tuple[str, ...] = DEFAULT_EXCLUDED_KEYWORDS
    total_keywords: tuple[str, ...] = DEFAULT_TOTAL_KEYWORDS
    min_key_hits: int = DEFAULT_MIN_KEY_HITS
    instruction_keywords: tuple[str, ...] = DEFAULT_INSTRUCTION_KEYWORDS
    serial_headers: tuple[str, ...] = DEFAULT_SERIAL_HEADERS
    fixed_value_keywords: tuple[str, ...] = DEFAULT_FIXED_VALUE_KEYWORDS
    row_strategy: RowStrategy = RowStrategy.ANCHOR_KEYS
    header_match: HeaderMatchMode = HeaderMatchMode.BEST_COUNT
    validation_level: ValidationLevel = ValidationLevel.STRICT
    preview_limit: int = DEFAULT_PREVIEW_LIMIT
    rules_path: str | None = None  # template_rules.yml; None = no rules

    def is_serial_header(self, normalized_header: str) -> bool:
        header = (normalized_header or "").strip()
        if not header:
            return False
        lowered = header.lower()
        return any(lowered == s.lower() for s in self.serial_headers)

    def is_fixed_value_header(self, normalized_header: str) -> bool:
        return contains_keyword(normalized_header, self.fixed_value_keywords)


def contains_keyword(text: str | None, keywords: tuple[str, ...] | list[str]) -> bool:
    """Substring match of any non-blank keyword in text."""
    if not text or not text.strip() or not keywords:
        return False
    for keyword in keywords:
        if keyword and keyword.strip() and keyword in text:
            return True
    return False
