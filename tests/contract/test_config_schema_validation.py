from __future__ import annotations

import json
from pathlib import Path

import jsonschema
import pytest
import yaml
from jsonschema.exceptions import ValidationError

from sheetmerge.config.loader import MERGE_SCHEMA_PATH, RULES_SCHEMA_PATH

"""Config schema contract: the shipped sample files validate, malformed ones do not."""

PROJECT_ROOT = Path(__file__).resolve().parents[2]


def _schema(path: Path) -> dict:
    return json.loads(path.read_text(encoding="utf-8"))


def _yaml(name: str) -> dict:
    return yaml.safe_load((PROJECT_ROOT / "config" / name).read_text(encoding="utf-8"))


def test_sample_merge_config_is_valid():
    jsonschema.validate(_yaml("merge.yml"), _schema(MERGE_SCHEMA_PATH))


def test_sample_template_rules_are_valid():
    jsonschema.validate(_yaml("template_rules.yml"), _schema(RULES_SCHEMA_PATH))


@pytest.mark.parametrize(
    "config",
    [
        {"row_strategy": "random"},
        {"header_match": "fuzzy"},
        {"validation_level": "loose"},
        {"preview_limit": -1},
        {"unknown_key": 1},
        {"anchor_keywords": 5},
    ],
)
def test_merge_config_rejects(config):
    with pytest.raises(ValidationError):
        jsonschema.validate(config, _schema(MERGE_SCHEMA_PATH))


def test_merge_config_keywords_accept_string_or_list():
    schema = _schema(MERGE_SCHEMA_PATH)
    jsonschema.validate({"total_keywords": "小计,合计"}, schema)
    jsonschema.validate({"total_keywords": ["小计", "合计"]}, schema)


@pytest.mark.parametrize(
    "rules",
    [
        {},
        {"templates": [{"required_headers": ["姓名"]}]},
        {"templates": "通用"},
    ],
)
def test_template_rules_reject(rules):
    with pytest.raises(ValidationError):
        jsonschema.validate(rules, _schema(RULES_SCHEMA_PATH))
