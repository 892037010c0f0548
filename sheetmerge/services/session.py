from __future__ import annotations

from dataclasses import dataclass, field

from ..models.config_models import MergeConfig
from ..models.template import TemplateDefinition
from .template_rules import TemplateRuleStore

"""Per-caller merge state.

One session holds the analyzed template and the rows of the last completed
merge. Sessions are independent; two callers never share a template or rows.
"""

__all__ = ["MergeSession"]


@dataclass
class MergeSession:
    config: MergeConfig = field(default_factory=MergeConfig)
    rule_store: TemplateRuleStore | None = None
    template: TemplateDefinition | None = None
    merged_rows: list[list[str]] | None = None

    def __post_init__(self) -> None:
        if self.rule_store is None:
            self.rule_store = TemplateRuleStore.from_path(self.config.rules_path)

    @property
    def has_template(self) -> bool:
        return self.template is not None

    @property
    def has_merged_rows(self) -> bool:
        return self.merged_rows is not None

    def reset(self) -> None:
        self.template = None
        self.merged_rows = None
