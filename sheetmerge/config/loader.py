from __future__ import annotations

import json
import logging
import os
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.config_models import (
    DEFAULT_MIN_KEY_HITS,
    HeaderMatchMode,
    MergeConfig,
    RowStrategy,
    TemplateRule,
    ValidationLevel,
)
from ..services.normalize import normalize_header

"""Config loader.

Responsibilities:
- Load YAML config/merge.yml (optional) and validate it against the bundled
  merge_config_schema.json
- Apply SHEETMERGE_* environment overrides on top of the file values
- Load YAML config/template_rules.yml into TemplateRule objects (missing file
  -> no rules)
"""

__all__ = [
    "ConfigError",
    "ENV_PREFIX",
    "MERGE_SCHEMA_PATH",
    "RULES_SCHEMA_PATH",
    "load_merge_config",
    "load_template_rules",
    "parse_min_key_hits",
    "split_keywords",
]

logger = logging.getLogger(__name__)

_package_dir = Path(__file__).parent
MERGE_SCHEMA_PATH = _package_dir / "merge_config_schema.json"
RULES_SCHEMA_PATH = _package_dir / "template_rules_schema.json"

ENV_PREFIX = "SHEETMERGE_"

# 全角/半角 逗号・分号 都作为分隔符
_KEYWORD_SPLIT = re.compile(r"[,，;；]")

_KEYWORD_FIELDS = (
    "anchor_keywords",
    "key_field_keywords",
    "excluded_keywords",
    "total_keywords",
    "instruction_keywords",
    "serial_headers",
    "fixed_value_keywords",
)

# env var suffix -> MergeConfig field
_ENV_KEYWORD_FIELDS = {
    "ANCHOR_KEYWORDS": "anchor_keywords",
    "KEY_KEYWORDS": "key_field_keywords",
    "EXCLUDED_KEYWORDS": "excluded_keywords",
    "TOTAL_KEYWORDS": "total_keywords",
}


class ConfigError(Exception):
    pass


def _validate_schema(data: Any, schema_path: Path) -> None:
    """Validate data against a bundled JSON schema.

    Raises:
        ConfigError: schema file missing or not JSON, or data fails validation.
    """
    if not schema_path.exists():
        raise ConfigError(f"config schema not found: {schema_path}")
    try:
        schema = json.loads(schema_path.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def _read_yaml(path: Path) -> Any:
    try:
        return yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    except OSError as e:
        raise ConfigError(f"cannot read config file {path}: {e}") from e


def split_keywords(raw: str | list[str] | tuple[str, ...] | None) -> tuple[str, ...]:
    """Split a keyword list written as one string, dropping blanks.

    >>> split_keywords("账号, 卡号；证件号")
    ('账号', '卡号', '证件号')
    """
    if raw is None:
        return ()
    parts = _KEYWORD_SPLIT.split(raw) if isinstance(raw, str) else list(raw)
    return tuple(p.strip() for p in parts if p and p.strip())


def parse_min_key_hits(raw: Any) -> int:
    """Invalid -> default (2); values below 1 clamp to 1."""
    try:
        value = int(str(raw).strip())
    except (TypeError, ValueError):
        logger.warning("invalid min_key_hits %r, using %d", raw, DEFAULT_MIN_KEY_HITS)
        return DEFAULT_MIN_KEY_HITS
    return max(1, value)


def _parse_enum(enum_cls: type, raw: str, name: str) -> Any:
    value = raw.strip().lower()
    try:
        return enum_cls(value)
    except ValueError as e:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ConfigError(f"invalid {name}: {raw!r} (expected one of: {allowed})") from e


def _apply_env(values: dict[str, Any], environ: Mapping[str, str]) -> None:
    for suffix, field_name in _ENV_KEYWORD_FIELDS.items():
        raw = environ.get(ENV_PREFIX + suffix)
        if raw is None:
            continue
        keywords = split_keywords(raw)
        # 空配置时保留默认
        if keywords:
            values[field_name] = keywords

    raw_hits = environ.get(ENV_PREFIX + "MIN_KEY_HITS")
    if raw_hits is not None and raw_hits.strip():
        values["min_key_hits"] = parse_min_key_hits(raw_hits)

    raw_strategy = environ.get(ENV_PREFIX + "ROW_STRATEGY")
    if raw_strategy and raw_strategy.strip():
        values["row_strategy"] = _parse_enum(RowStrategy, raw_strategy, "row strategy")

    raw_match = environ.get(ENV_PREFIX + "HEADER_MATCH")
    if raw_match and raw_match.strip():
        values["header_match"] = _parse_enum(HeaderMatchMode, raw_match, "header match mode")

    raw_level = environ.get(ENV_PREFIX + "VALIDATION_LEVEL")
    if raw_level and raw_level.strip():
        values["validation_level"] = _parse_enum(ValidationLevel, raw_level, "validation level")

    raw_limit = environ.get(ENV_PREFIX + "PREVIEW_LIMIT")
    if raw_limit and raw_limit.strip():
        try:
            values["preview_limit"] = max(0, int(raw_limit.strip()))
        except ValueError as e:
            raise ConfigError(f"invalid preview limit: {raw_limit!r}") from e


def load_merge_config(
    path: Path | None = None, environ: Mapping[str, str] | None = None
) -> MergeConfig:
    """Build a MergeConfig: defaults <- YAML file <- SHEETMERGE_* environment.

    path=None skips the file layer; environ=None reads os.environ.
    """
    values: dict[str, Any] = {}
    if path is not None:
        if not path.exists():
            raise ConfigError(f"config file not found: {path}")
        data = _read_yaml(path) or {}
        _validate_schema(data, MERGE_SCHEMA_PATH)

        for field_name in _KEYWORD_FIELDS:
            if field_name in data:
                keywords = split_keywords(data[field_name])
                if keywords:
                    values[field_name] = keywords
        if "min_key_hits" in data:
            values["min_key_hits"] = parse_min_key_hits(data["min_key_hits"])
        if "row_strategy" in data:
            values["row_strategy"] = RowStrategy(data["row_strategy"])
        if "header_match" in data:
            values["header_match"] = HeaderMatchMode(data["header_match"])
        if "validation_level" in data:
            values["validation_level"] = ValidationLevel(data["validation_level"])
        if "preview_limit" in data:
            values["preview_limit"] = data["preview_limit"]
        rules_path = data.get("rules_path")
        if rules_path:
            # 相对路径以配置文件所在目录为基准
            rp = Path(rules_path)
            values["rules_path"] = str(rp if rp.is_absolute() else path.parent / rp)

    _apply_env(values, os.environ if environ is None else environ)
    config = MergeConfig(**values)
    logger.debug(
        "merge config: strategy=%s header_match=%s validation=%s min_key_hits=%d",
        config.row_strategy.value,
        config.header_match.value,
        config.validation_level.value,
        config.min_key_hits,
    )
    return config


def _normalized_tuple(values: list[str] | None) -> tuple[str, ...]:
    out: list[str] = []
    for v in values or ():
        norm = normalize_header(v)
        if norm and norm not in out:
            out.append(norm)
    return tuple(out)


def load_template_rules(path: Path | None) -> list[TemplateRule]:
    """Load template rules; a missing file (or no path) yields no rules."""
    if path is None or not path.exists():
        if path is not None:
            logger.debug("template rules not found at %s, no rules loaded", path)
        return []
    data = _read_yaml(path)
    if data is None:
        return []
    _validate_schema(data, RULES_SCHEMA_PATH)

    rules: list[TemplateRule] = []
    for raw in data["templates"]:
        rule = TemplateRule(
            name=raw["name"],
            match_headers=_normalized_tuple(raw.get("match_headers")),
            required_headers=_normalized_tuple(raw.get("required_headers")),
            required_keywords=split_keywords(raw.get("required_keywords")),
            optional_keywords=split_keywords(raw.get("optional_keywords")),
        )
        if not rule.required_headers and not rule.required_keywords:
            # 不产生任何必填项的规则
            logger.warning("template rule '%s' has neither required_headers nor required_keywords, ignored", rule.name)
            continue
        rules.append(rule)
    logger.debug("loaded %d template rule(s) from %s", len(rules), path)
    return rules
