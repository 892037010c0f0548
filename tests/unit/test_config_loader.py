from __future__ import annotations
import pytest
from pathlib import Path
from sheetmerge.config.loader import (
    ConfigError,
    load_merge_config,
    load_template_rules,
    parse_min_key_hits,
    split_keywords,
)
from sheetmerge.models.config_models import (
    DEFAULT_ANCHOR_KEYWORDS,
    DEFAULT_TOTAL_KEYWORDS,
    HeaderMatchMode,
    RowStrategy,
    ValidationLevel,
)


@pytest.fixture()
def write_merge_config(temp_workdir: Path):
    def _write(text: str) -> Path:
        cfg = temp_workdir / "config" / "merge.yml"
        cfg.write_text(text, encoding="utf-8")
        return cfg
    return _write


def test_defaults_without_file_or_env():
    cfg = load_merge_config(None, environ={})
    assert cfg.anchor_keywords == DEFAULT_ANCHOR_KEYWORDS
    assert cfg.total_keywords == DEFAULT_TOTAL_KEYWORDS
    assert cfg.min_key_hits == 2
    assert cfg.row_strategy is RowStrategy.ANCHOR_KEYS
    assert cfg.header_match is HeaderMatchMode.BEST_COUNT
    assert cfg.validation_level is ValidationLevel.STRICT
    assert cfg.preview_limit == 500
    assert cfg.rules_path is None


def test_load_file_values(write_merge_config):
    path = write_merge_config(
        "anchor_keywords: [账号, 卡号]\n"
        "key_field_keywords: 姓名，金额；网点\n"
        "min_key_hits: 3\n"
        "row_strategy: serial_keywords\n"
        "header_match: exact\n"
        "validation_level: lenient\n"
        "preview_limit: 10\n"
        "rules_path: template_rules.yml\n"
    )
    cfg = load_merge_config(path, environ={})
    assert cfg.anchor_keywords == ("账号", "卡号")
    assert cfg.key_field_keywords == ("姓名", "金额", "网点")
    assert cfg.min_key_hits == 3
    assert cfg.row_strategy is RowStrategy.SERIAL_KEYWORDS
    assert cfg.header_match is HeaderMatchMode.EXACT
    assert cfg.validation_level is ValidationLevel.LENIENT
    assert cfg.preview_limit == 10
    assert cfg.rules_path == str(path.parent / "template_rules.yml")


def test_env_overrides_file(write_merge_config):
    path = write_merge_config("anchor_keywords: [账号]\nmin_key_hits: 3\n")
    env = {
        "SHEETMERGE_ANCHOR_KEYWORDS": "证件号;卡号",
        "SHEETMERGE_MIN_KEY_HITS": "0",
        "SHEETMERGE_ROW_STRATEGY": "SERIAL_KEYWORDS",
        "SHEETMERGE_VALIDATION_LEVEL": "lenient",
    }
    cfg = load_merge_config(path, environ=env)
    assert cfg.anchor_keywords == ("证件号", "卡号")
    assert cfg.min_key_hits == 1
    assert cfg.row_strategy is RowStrategy.SERIAL_KEYWORDS
    assert cfg.validation_level is ValidationLevel.LENIENT


def test_env_blank_keywords_keep_default():
    cfg = load_merge_config(None, environ={"SHEETMERGE_TOTAL_KEYWORDS": " ,， ;"})
    assert cfg.total_keywords == DEFAULT_TOTAL_KEYWORDS


def test_env_invalid_enum():
    with pytest.raises(ConfigError) as e:
        load_merge_config(None, environ={"SHEETMERGE_HEADER_MATCH": "fuzzy"})
    assert "header match mode" in str(e.value)


def test_env_invalid_preview_limit():
    with pytest.raises(ConfigError):
        load_merge_config(None, environ={"SHEETMERGE_PREVIEW_LIMIT": "many"})


def test_load_config_missing_file(temp_workdir: Path):
    missing = temp_workdir / "config" / "not_exists.yml"
    with pytest.raises(ConfigError):
        load_merge_config(missing, environ={})


def test_load_config_invalid_yaml(write_merge_config):
    path = write_merge_config("anchor_keywords: [账号\n")
    with pytest.raises(ConfigError) as e:
        load_merge_config(path, environ={})
    assert "invalid yaml" in str(e.value)


def test_load_config_extra_field(write_merge_config):
    path = write_merge_config("extra_field: not_allowed\n")
    with pytest.raises(ConfigError) as e:
        load_merge_config(path, environ={})
    assert "config validation failed" in str(e.value)


def test_load_config_wrong_enum_value(write_merge_config):
    path = write_merge_config("row_strategy: magic\n")
    with pytest.raises(ConfigError):
        load_merge_config(path, environ={})


def test_empty_file_is_defaults(write_merge_config):
    cfg = load_merge_config(write_merge_config(""), environ={})
    assert cfg.min_key_hits == 2


@pytest.mark.parametrize("raw, expected", [("3", 3), (" 2 ", 2), ("0", 1), ("-5", 1), ("x", 2), (None, 2)])
def test_parse_min_key_hits(raw, expected):
    assert parse_min_key_hits(raw) == expected


def test_split_keywords():
    assert split_keywords("账号, 卡号；证件号;;") == ("账号", "卡号", "证件号")
    assert split_keywords(["a", " ", "b "]) == ("a", "b")
    assert split_keywords(None) == ()


def test_load_template_rules(temp_workdir: Path):
    path = temp_workdir / "config" / "template_rules.yml"
    path.write_text(
        "templates:\n"
        "  - name: 设备台账\n"
        "    match_headers: [设备名称, 设备编号]\n"
        "    required_headers: [设备名称]\n"
        "  - name: 空规则\n"
        "    match_headers: [设备名称]\n"
        "  - name: 通用\n"
        "    required_keywords: [姓名, 账号]\n"
        "    optional_keywords: [备注]\n",
        encoding="utf-8",
    )
    rules = load_template_rules(path)
    assert [r.name for r in rules] == ["设备台账", "通用"]
    assert rules[0].match_headers == ("设备名称", "设备编号")
    assert rules[1].is_catch_all
    assert rules[1].required_keywords == ("姓名", "账号")


def test_load_template_rules_missing_templates_key(temp_workdir: Path):
    path = temp_workdir / "config" / "template_rules.yml"
    path.write_text("rules: []\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_template_rules(path)


def test_file_min_key_hits_below_one_is_clamped(write_merge_config):
    cfg = load_merge_config(write_merge_config("min_key_hits: 0\n"), environ={})
    assert cfg.min_key_hits == 1
