"""Per-user search state handed to the filter driver on every run."""

from __future__ import annotations

import logging
import re
from datetime import tzinfo
from typing import Any, Callable, Iterable, List, Mapping, Optional, Sequence, Set

from .columns import Column, build_columns
from .config_loader import (
    DEFAULT_ID_COLUMN,
    DEFAULT_SKIP_COLUMNS,
    DEFAULT_TYPE_SAMPLE_SIZE,
    MATCH_CONTAINS,
    VALID_MATCH_MODES,
    get_date_column_hints,
    get_default_logic_mode,
    get_default_match_mode,
    get_id_column,
    get_skip_columns,
    get_timezone,
    get_type_sample_size,
)
from .errors import InvalidModeError
from .search import FilterResult, filter_records
from .search_expression import MODE_OR, VALID_MODES

log = logging.getLogger(__name__)

SelectionCallback = Callable[[List[Any]], Any]


class SearchSession:
    """
    Everything one search box needs between keystrokes: the current record
    set and its columns, which columns are active, the query text and both
    mode settings. ``run()`` snapshots this state into a single
    ``filter_records`` call, so the engine never keeps references across runs.
    """

    def __init__(
        self,
        records: Optional[Sequence[Mapping[str, Any]]] = None,
        *,
        logic_mode: str = MODE_OR,
        match_mode: str = MATCH_CONTAINS,
        on_selection: Optional[SelectionCallback] = None,
        tz: Optional[tzinfo] = None,
        id_key: str = DEFAULT_ID_COLUMN,
        skip_columns: Iterable[str] = DEFAULT_SKIP_COLUMNS,
        type_sample_size: int = DEFAULT_TYPE_SAMPLE_SIZE,
        date_hints: Optional[re.Pattern] = None,
    ):
        self.records: List[Mapping[str, Any]] = []
        self.columns: List[Column] = []
        self.active_columns: Set[str] = set()
        self.query: str = ""
        self.logic_mode = MODE_OR
        self.match_mode = MATCH_CONTAINS
        self.on_selection = on_selection
        self.tz = tz
        self.id_key = id_key
        self.skip_columns = tuple(skip_columns)
        self.type_sample_size = type_sample_size
        self.date_hints = date_hints
        self.last_result: Optional[FilterResult] = None

        self.set_logic_mode(logic_mode)
        self.set_match_mode(match_mode)
        if records is not None:
            self.load_records(records)

    @classmethod
    def from_config(
        cls,
        cfg: Optional[Mapping[str, Any]] = None,
        records: Optional[Sequence[Mapping[str, Any]]] = None,
        on_selection: Optional[SelectionCallback] = None,
    ) -> "SearchSession":
        return cls(
            records,
            logic_mode=get_default_logic_mode(cfg),
            match_mode=get_default_match_mode(cfg),
            on_selection=on_selection,
            tz=get_timezone(cfg),
            id_key=get_id_column(cfg),
            skip_columns=get_skip_columns(cfg),
            type_sample_size=get_type_sample_size(cfg),
            date_hints=get_date_column_hints(cfg),
        )

    # ---- record set / columns ----

    def load_records(self, records: Sequence[Mapping[str, Any]]) -> None:
        """Swap in a new record set; columns are rebuilt and all of them become active."""
        self.records = list(records)
        self.columns = build_columns(
            self.records,
            skip=self.skip_columns,
            sample_size=self.type_sample_size,
            date_hints=self.date_hints,
        )
        self.active_columns = {c.id for c in self.columns}
        log.debug("Session loaded %d records, %d columns", len(self.records), len(self.columns))

    @property
    def column_ids(self) -> List[str]:
        return [c.id for c in self.columns]

    def toggle_column(self, name: str) -> bool:
        """Flip one column in or out of the active set; returns the new state."""
        if name in self.active_columns:
            self.active_columns.discard(name)
            return False
        self.active_columns.add(name)
        return True

    def set_active_columns(self, names: Iterable[str]) -> None:
        self.active_columns = set(names)

    # ---- query / modes ----

    def set_query(self, query: str) -> None:
        self.query = query or ""

    def clear_query(self) -> None:
        self.query = ""

    def set_logic_mode(self, mode: str) -> None:
        if mode not in VALID_MODES:
            raise InvalidModeError("logic_mode", mode, VALID_MODES)
        self.logic_mode = mode

    def set_match_mode(self, mode: str) -> None:
        if mode not in VALID_MATCH_MODES:
            raise InvalidModeError("match_mode", mode, VALID_MATCH_MODES)
        self.match_mode = mode

    # ---- filtering ----

    def run(self) -> FilterResult:
        result = filter_records(
            self.records,
            self.query,
            # ordered like the columns so AND-per-column scans are repeatable
            [c for c in self.column_ids if c in self.active_columns]
            + sorted(self.active_columns.difference(self.column_ids)),
            self.logic_mode,
            self.match_mode,
            id_key=self.id_key,
            tz=self.tz,
        )
        self.last_result = result
        self._report_selection(result.record_ids)
        return result

    def _report_selection(self, record_ids: List[Any]) -> None:
        if self.on_selection is None:
            return
        try:
            self.on_selection(list(record_ids))
        except Exception:
            log.warning("Selection callback failed for %d ids", len(record_ids), exc_info=True)
