from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from pathlib import Path

from ..config.loader import load_template_rules
from ..models.config_models import TemplateRule, contains_keyword

"""Required-field resolution.

One resolution step for both forms of "which columns must be filled in":

- header form: a rule's required_headers, intersected with the template;
- keyword form: every template header containing one of the rule's
  required_keywords and none of its optional_keywords.

The rule applied to a template is the one whose match_headers are all present
in the template, with the most match headers; ties keep the first rule in file
order. A rule without match_headers is a catch-all and only wins when no
specific rule matches.
"""

__all__ = ["TemplateRuleStore"]

logger = logging.getLogger(__name__)


class TemplateRuleStore:
    def __init__(self, rules: Iterable[TemplateRule] = ()) -> None:
        self._rules: list[TemplateRule] = list(rules)

    @classmethod
    def from_path(cls, path: Path | str | None) -> TemplateRuleStore:
        return cls(load_template_rules(Path(path) if path is not None else None))

    @property
    def rules(self) -> list[TemplateRule]:
        return list(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def best_rule(self, normalized_headers: Sequence[str]) -> TemplateRule | None:
        header_set = set(normalized_headers)
        best: TemplateRule | None = None
        best_score = -1
        for rule in self._rules:
            if not set(rule.match_headers) <= header_set:
                continue
            score = len(rule.match_headers)
            if score > best_score:
                best = rule
                best_score = score
        return best

    def resolve_required_headers(self, normalized_headers: Sequence[str]) -> frozenset[str]:
        """Normalized headers of the template that must not be blank."""
        rule = self.best_rule(normalized_headers)
        if rule is None:
            return frozenset()
        header_set = set(normalized_headers)
        required = {h for h in rule.required_headers if h in header_set}
        if rule.required_keywords:
            for header in normalized_headers:
                if contains_keyword(header, rule.required_keywords) and not contains_keyword(
                    header, rule.optional_keywords
                ):
                    required.add(header)
        logger.debug("template rule '%s' applied, %d required column(s)", rule.name, len(required))
        return frozenset(required)
