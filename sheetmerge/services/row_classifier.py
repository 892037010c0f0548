from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from ..excel.grid import CellKind, GridCell, GridRow, SheetGrid
from ..models.config_models import MergeConfig, RowStrategy, contains_keyword
from ..models.template import TemplateDefinition
from .column_mapper import ColumnMapping

"""Row classification for data files.

Every row after the matched header row gets exactly one RowDecision:

    missing / all blank      -> BLANK_SKIP
    hidden (filtered, h=0)   -> HIDDEN_SKIP
    total keyword in a cell  -> TOTAL_STOP   (rest of the file is ignored)
    strategy says no         -> NOT_DATA_SKIP
    strategy says yes        -> DATA_ACCEPT

Skips extend the invalid streak; INVALID_ROW_LIMIT consecutive skips end the
file. The data/not-data call is delegated to one of two strategies
(RowStrategy.ANCHOR_KEYS / RowStrategy.SERIAL_KEYWORDS).
"""

__all__ = [
    "INVALID_ROW_LIMIT",
    "AnchorKeyStrategy",
    "DataRowStrategy",
    "KeyColumnInfo",
    "RowClassifier",
    "RowDecision",
    "SerialKeywordStrategy",
    "build_strategy",
    "is_valid_serial_cell",
]

logger = logging.getLogger(__name__)

INVALID_ROW_LIMIT = 30

_DIGITS = re.compile(r"^[0-9]+$")


class RowDecision(Enum):
    BLANK_SKIP = "blank_skip"
    HIDDEN_SKIP = "hidden_skip"
    TOTAL_STOP = "total_stop"
    NOT_DATA_SKIP = "not_data_skip"
    DATA_ACCEPT = "data_accept"

    @property
    def is_skip(self) -> bool:
        return self in (RowDecision.BLANK_SKIP, RowDecision.HIDDEN_SKIP, RowDecision.NOT_DATA_SKIP)


@dataclass(frozen=True)
class KeyColumnInfo:
    """0-based data file columns used by the anchor/key strategy."""
    anchor_columns: tuple[int, ...]
    key_columns: tuple[int, ...]
    min_hits: int


def is_valid_serial_cell(cell: GridCell) -> bool:
    """Sequence number cell: digits (thousands separators allowed) or a whole number."""
    if cell.is_blank:
        return False
    if _DIGITS.match(cell.text.replace(",", "")):
        return True
    if cell.kind is CellKind.NUMBER and isinstance(cell.raw, (int, float, Decimal)) and not isinstance(cell.raw, bool):
        try:
            return float(cell.raw).is_integer()
        except (OverflowError, ValueError):
            return False
    return False


def _any_non_blank(row: GridRow, columns: Sequence[int]) -> bool:
    return any(not row.cell(c).is_blank for c in columns)


class DataRowStrategy(ABC):
    """Decides whether a non-blank, visible, non-total row carries data."""

    @abstractmethod
    def is_data_row(self, row: GridRow) -> bool:
        raise NotImplementedError


class AnchorKeyStrategy(DataRowStrategy):
    """Any anchor filled -> data; else enough key columns filled -> data.

    Without anchor or key columns, any filled editable column makes the row
    data.
    """

    def __init__(self, key_info: KeyColumnInfo, editable_columns: Sequence[int]) -> None:
        self.key_info = key_info
        self.editable_columns = tuple(editable_columns)

    @classmethod
    def build(cls, config: MergeConfig, template: TemplateDefinition, mapping: ColumnMapping) -> AnchorKeyStrategy:
        anchors: list[int] = []
        keys: list[int] = []
        editable: list[int] = []
        mapped: list[int] = []
        for norm in template.normalized_headers:
            col = mapping.column_of(norm)
            if col is None:
                continue
            mapped.append(col)
            serial = config.is_serial_header(norm)
            fixed = config.is_fixed_value_header(norm)
            if not serial and not fixed:
                editable.append(col)
            if serial or fixed or contains_keyword(norm, config.excluded_keywords):
                continue
            if contains_keyword(norm, config.anchor_keywords):
                anchors.append(col)
            elif contains_keyword(norm, config.key_field_keywords):
                keys.append(col)
        info = KeyColumnInfo(tuple(anchors), tuple(keys), config.min_key_hits)
        logger.debug("anchor/key strategy: anchors=%s keys=%s min_hits=%d", info.anchor_columns, info.key_columns, info.min_hits)
        return cls(info, editable or mapped)

    def is_data_row(self, row: GridRow) -> bool:
        if _any_non_blank(row, self.key_info.anchor_columns):
            return True
        if self.key_info.key_columns:
            hits = sum(1 for c in self.key_info.key_columns if not row.cell(c).is_blank)
            return hits >= self.key_info.min_hits
        return _any_non_blank(row, self.editable_columns)


class SerialKeywordStrategy(DataRowStrategy):
    """Valid sequence number + any key field -> data.

    Without a serial column (or without key columns) the row is judged by its
    required columns, then its core columns, then any filled cell.
    """

    def __init__(
        self,
        config: MergeConfig,
        template: TemplateDefinition,
        mapping: ColumnMapping,
    ) -> None:
        self.config = config
        self.template = template
        self.mapping = mapping
        self.serial_column = self._find_serial_column()
        keys: list[int] = []
        for norm in template.normalized_headers:
            if config.is_serial_header(norm) or not contains_keyword(norm, config.key_field_keywords):
                continue
            col = mapping.column_of(norm)
            if col is not None:
                keys.append(col)
        self.key_columns = tuple(keys)
        logger.debug("serial/keyword strategy: serial=%s keys=%s", self.serial_column, self.key_columns)

    def _find_serial_column(self) -> int | None:
        for norm in self.template.normalized_headers:
            if self.config.is_serial_header(norm) and self.mapping.is_mapped(norm):
                return self.mapping.column_of(norm)
        for norm, col in self.mapping.column_map.items():
            if self.config.is_serial_header(norm):
                return col
        return None

    def _is_ignorable(self, norm: str) -> bool:
        return self.config.is_serial_header(norm) or self.config.is_fixed_value_header(norm)

    def _is_core(self, norm: str) -> bool:
        return not self._is_ignorable(norm) and not contains_keyword(norm, self.config.excluded_keywords)

    def _judge(self, row: GridRow, headers: Sequence[str]) -> bool | None:
        """True: one is filled; False: some mapped, all blank; None: none mapped."""
        mapped_any = False
        for norm in headers:
            if self._is_ignorable(norm):
                continue
            col = self.mapping.column_of(norm)
            if col is None:
                continue
            mapped_any = True
            if not row.cell(col).is_blank:
                return True
        return False if mapped_any else None

    def is_meaningful_row(self, row: GridRow) -> bool:
        headers = self.template.normalized_headers
        required = [h for h in headers if self.template.is_required(h)]
        verdict = self._judge(row, required)
        if verdict is not None:
            return verdict

        core = [h for h in required if self._is_core(h)]
        if not core:
            core = [h for h in headers if self._is_core(h)]
        if not core:
            core = list(headers)
        verdict = self._judge(row, core)
        if verdict is not None:
            return verdict

        return not row.is_empty

    def is_data_row(self, row: GridRow) -> bool:
        if self.serial_column is not None:
            if not is_valid_serial_cell(row.cell(self.serial_column)):
                return False
            if self.key_columns:
                return _any_non_blank(row, self.key_columns)
        return self.is_meaningful_row(row)


def build_strategy(config: MergeConfig, template: TemplateDefinition, mapping: ColumnMapping) -> DataRowStrategy:
    if config.row_strategy is RowStrategy.SERIAL_KEYWORDS:
        return SerialKeywordStrategy(config, template, mapping)
    return AnchorKeyStrategy.build(config, template, mapping)


class RowClassifier:
    """Stateful per-file classifier (tracks the invalid streak)."""

    def __init__(self, strategy: DataRowStrategy, total_keywords: Sequence[str]) -> None:
        self.strategy = strategy
        self.total_keywords = tuple(total_keywords)
        self.invalid_streak = 0

    def is_total_row(self, row: GridRow) -> bool:
        return any(contains_keyword(cell.text, self.total_keywords) for _, cell in row.non_blank_cells())

    def classify(self, row: GridRow | None) -> RowDecision:
        if row is None or row.is_empty:
            decision = RowDecision.BLANK_SKIP
        elif row.hidden:
            decision = RowDecision.HIDDEN_SKIP
        elif self.is_total_row(row):
            return RowDecision.TOTAL_STOP
        elif self.strategy.is_data_row(row):
            decision = RowDecision.DATA_ACCEPT
        else:
            decision = RowDecision.NOT_DATA_SKIP

        if decision is RowDecision.DATA_ACCEPT:
            self.invalid_streak = 0
        else:
            self.invalid_streak += 1
        return decision

    @property
    def streak_exhausted(self) -> bool:
        return self.invalid_streak >= INVALID_ROW_LIMIT

    def iter_data_rows(self, sheet: SheetGrid, start_row: int) -> Iterator[GridRow]:
        """Yield accepted rows from start_row on, honoring total stop and streak cutoff."""
        for r in range(start_row, sheet.last_row + 1):
            row = sheet.row(r)
            decision = self.classify(row)
            if decision is RowDecision.TOTAL_STOP:
                logger.debug("sheet '%s': total row at %d, stop", sheet.name, r + 1)
                return
            if decision is RowDecision.DATA_ACCEPT and row is not None:
                yield row
            elif self.streak_exhausted:
                logger.debug("sheet '%s': %d consecutive non-data rows at %d, stop", sheet.name, INVALID_ROW_LIMIT, r + 1)
                return
