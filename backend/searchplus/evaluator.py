from __future__ import annotations

import logging
import re
from datetime import date, tzinfo
from typing import Any, Iterable, List, Mapping, Optional, Sequence

from .helpers import is_number, stringify_value, to_float
from .matchers import match_value
from .search_expression import (
    KIND_DATE,
    KIND_NUMERIC,
    MODE_AND,
    MODE_AND_PER_COLUMN,
    MODE_OR,
    QueryToken,
    SearchQuery,
)

log = logging.getLogger(__name__)

# Unix seconds for 2000-01-01 and 2050-01-01: numbers outside are not treated as dates
EPOCH_DATE_MIN = 946684800
EPOCH_DATE_MAX = 2524608000

_ISO_DATE_PREFIX = re.compile(r"^\d{4}-\d{2}-\d{2}")


def looks_like_date_value(value: Any) -> bool:
    if isinstance(value, date):
        return True
    if is_number(value):
        seconds = to_float(value)
        return seconds is not None and EPOCH_DATE_MIN < seconds < EPOCH_DATE_MAX
    if isinstance(value, str):
        return _ISO_DATE_PREFIX.match(value) is not None
    return False


def candidate_values(record: Mapping[str, Any], token: QueryToken, columns: Sequence[str]) -> List[Any]:
    """
    Field values of ``record`` the token is allowed to look at.

    Date tokens only see date-looking raw values, numeric tokens only see
    numbers, everything else sees non-empty stringified values. Columns the
    record doesn't have count as missing.
    """
    raw_values = [record.get(column) for column in columns]
    if token.kind == KIND_DATE:
        return [v for v in raw_values if looks_like_date_value(v)]
    if token.kind == KIND_NUMERIC:
        return [v for v in raw_values if is_number(v)]
    texts = (stringify_value(v) for v in raw_values)
    return [t for t in texts if t]


def token_matches(
    record: Mapping[str, Any],
    token: QueryToken,
    columns: Sequence[str],
    tz: Optional[tzinfo] = None,
) -> bool:
    """
    A token hits when any candidate value satisfies its matcher.
    With no candidates at all the result is the negate flag: there is nothing
    to exclude, so a negated token is satisfied.
    """
    candidates = candidate_values(record, token, token.columns or columns)
    if not candidates:
        return token.negate
    hit = any(match_value(v, token, tz) for v in candidates)
    return (not hit) if token.negate else hit


def record_matches(
    record: Mapping[str, Any],
    query: SearchQuery,
    active_columns: Iterable[str],
    *,
    tz: Optional[tzinfo] = None,
) -> bool:
    tokens = query.tokens
    if not tokens:
        return False
    active = list(active_columns)
    try:
        if query.mode == MODE_OR:
            return any(token_matches(record, t, active, tz) for t in tokens)
        if query.mode == MODE_AND:
            return all(token_matches(record, t, active, tz) for t in tokens)
        if query.mode == MODE_AND_PER_COLUMN:
            # all terms must co-occur inside a single column
            for column in active:
                if all(token_matches(record, t, [column], tz) for t in tokens):
                    return True
            return False
        log.warning("Unknown combination mode %r", query.mode)
        return False
    except Exception:
        log.exception("record_matches failed for record %r", record)
        return False
