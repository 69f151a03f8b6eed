from __future__ import annotations

import logging
import re
from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from .config_loader import DEFAULT_DATE_COLUMN_HINTS, DEFAULT_SKIP_COLUMNS, DEFAULT_TYPE_SAMPLE_SIZE
from .evaluator import EPOCH_DATE_MAX, EPOCH_DATE_MIN
from .helpers import is_number, to_float

log = logging.getLogger(__name__)

TYPE_TEXT = "Text"
TYPE_NUMERIC = "Numeric"
TYPE_BOOL = "Bool"
TYPE_DATE = "Date"

_SHORT_TYPES = {TYPE_TEXT: "TXT", TYPE_NUMERIC: "NUM", TYPE_BOOL: "BOOL", TYPE_DATE: "DATE"}
_ISO_DATE_PREFIX = re.compile(r"^\d{4}-\d{2}-\d{2}")
_DEFAULT_HINTS = re.compile(DEFAULT_DATE_COLUMN_HINTS, re.IGNORECASE)


class Column:
    """A searchable field. ``type`` is a display label only; matching never reads it."""

    def __init__(self, id: str, type: str = TYPE_TEXT, label: Optional[str] = None):
        self.id = id
        self.label = label or id
        self.type = type

    def to_dict(self) -> Dict[str, str]:
        return {"id": self.id, "label": self.label, "type": self.type}

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Column):
            return NotImplemented
        return (self.id, self.label, self.type) == (other.id, other.label, other.type)

    def __repr__(self) -> str:
        return f"Column(id={self.id!r}, type={self.type!r})"


def infer_value_type(value: Any, column_name: str = "", date_hints: Optional[re.Pattern] = None) -> str:
    if date_hints is None:
        date_hints = _DEFAULT_HINTS
    # bool before numbers: True is an int in Python
    if isinstance(value, bool):
        return TYPE_BOOL
    if isinstance(value, date):
        return TYPE_DATE
    if is_number(value):
        seconds = to_float(value)
        if seconds is not None and EPOCH_DATE_MIN < seconds < EPOCH_DATE_MAX and date_hints.search(column_name or ""):
            return TYPE_DATE
        return TYPE_NUMERIC
    if isinstance(value, str) and _ISO_DATE_PREFIX.match(value):
        return TYPE_DATE
    return TYPE_TEXT


def short_type(column_type: str) -> str:
    return _SHORT_TYPES.get(column_type, "TXT")


def build_columns(
    records: Sequence[Mapping[str, Any]],
    skip: Iterable[str] = DEFAULT_SKIP_COLUMNS,
    sample_size: int = DEFAULT_TYPE_SAMPLE_SIZE,
    date_hints: Optional[re.Pattern] = None,
) -> List[Column]:
    """
    Columns come from the first record's keys, in order. Each column's type is
    taken from the first non-null value among the first ``sample_size`` rows.
    """
    if not records:
        return []
    skipped = set(skip)
    sample = records[: max(1, sample_size)]
    columns: List[Column] = []
    for key in records[0].keys():
        if key in skipped:
            continue
        value = next((row.get(key) for row in sample if row.get(key) is not None), None)
        columns.append(Column(key, infer_value_type(value, key, date_hints)))
    log.debug("Built %d columns from %d records", len(columns), len(records))
    return columns
