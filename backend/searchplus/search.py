# backend/searchplus/search.py

from __future__ import annotations

from datetime import date, datetime, tzinfo
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

import logging

from flask import Blueprint, current_app, jsonify, request
from werkzeug.exceptions import BadRequest

from .columns import build_columns, short_type
from .config_loader import (
    DEFAULT_HIDDEN_TABLE_PREFIXES,
    DEFAULT_ID_COLUMN,
    DEFAULT_SKIP_COLUMNS,
    MATCH_CONTAINS,
    MATCH_EXACT,
    MATCH_STARTS,
    VALID_MATCH_MODES,
)
from .db import fetch_table_records, get_column_types, get_engine, list_tables
from .errors import InvalidModeError, UnknownTableError
from .evaluator import record_matches
from .helpers import split_words
from .search_expression import MOD_EQUALS, MOD_STARTS, MODE_AND, MODE_OR, VALID_MODES, QueryToken, parse_query

log = logging.getLogger(__name__)

_MATCH_MODIFIERS = {
    MATCH_CONTAINS: "",
    MATCH_STARTS: MOD_STARTS,
    MATCH_EXACT: MOD_EQUALS,
}


def build_query(raw: str, default_mode: str = MODE_OR, match_mode: str = MATCH_CONTAINS) -> str:
    """
    Fold the UI settings into the query text: every word gets the match-mode
    modifier ('<' for starts, '=' for exact) and AND mode adds a '& ' prefix.
    """
    words = split_words(raw)
    if not words:
        return ""
    modifier = _MATCH_MODIFIERS.get(match_mode)
    if modifier is None:
        log.warning("Unknown match mode %r; treating it as %r", match_mode, MATCH_CONTAINS)
        modifier = ""
    prefix = "& " if default_mode == MODE_AND else ""
    return prefix + " ".join(modifier + w for w in words)


class TokenDescription:
    """What a caller needs to draw a badge for one query token."""

    def __init__(self, raw: str, negate: bool, category: str):
        self.raw = raw
        self.negate = negate
        self.category = category

    @classmethod
    def from_token(cls, token: QueryToken) -> "TokenDescription":
        return cls(token.raw, token.negate, token.category)

    def to_dict(self) -> Dict[str, Any]:
        return {"raw": self.raw, "negate": self.negate, "category": self.category}

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TokenDescription):
            return NotImplemented
        return (self.raw, self.negate, self.category) == (other.raw, other.negate, other.category)

    def __repr__(self) -> str:
        return f"TokenDescription(raw={self.raw!r}, negate={self.negate!r}, category={self.category!r})"


class FilterResult:
    def __init__(
        self,
        matched: List[Mapping[str, Any]],
        tokens: List[TokenDescription],
        record_ids: List[Any],
        mode: str,
    ):
        self.matched = matched
        self.tokens = tokens
        self.record_ids = record_ids
        self.mode = mode

    @property
    def count(self) -> int:
        return len(self.matched)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mode": self.mode,
            "count": self.count,
            "matched": [dict(r) for r in self.matched],
            "tokens": [t.to_dict() for t in self.tokens],
            "ids": list(self.record_ids),
        }

    def __repr__(self) -> str:
        return f"FilterResult(mode={self.mode!r}, count={self.count!r}, tokens={self.tokens!r})"


def today_in(tz: Optional[tzinfo] = None) -> date:
    if tz is None:
        return date.today()
    return datetime.now(tz).date()


def filter_records(
    records: Iterable[Mapping[str, Any]],
    raw_query: str,
    active_columns: Iterable[str],
    default_mode: str = MODE_OR,
    match_mode: str = MATCH_CONTAINS,
    *,
    id_key: str = DEFAULT_ID_COLUMN,
    tz: Optional[tzinfo] = None,
    today: Optional[date] = None,
) -> FilterResult:
    """
    Scan ``records`` in order and keep the ones matching ``raw_query``.

    Nothing is cached between calls: the query is re-parsed and the records
    re-scanned every time. Never raises; any failure yields an empty result.
    """
    if not isinstance(raw_query, str) or not raw_query.strip():
        if raw_query is not None and not isinstance(raw_query, str):
            log.warning("Ignoring non-string query %r", raw_query)
        return FilterResult([], [], [], default_mode)
    try:
        query = parse_query(
            build_query(raw_query, default_mode, match_mode),
            default_mode,
            today=today if today is not None else today_in(tz),
        )
        active = list(active_columns)
        matched = [r for r in records if record_matches(r, query, active, tz=tz)]
        tokens = [TokenDescription.from_token(t) for t in query.tokens]
        record_ids = [r.get(id_key) for r in matched]
    except Exception:
        log.exception("filter_records failed for query %r", raw_query)
        return FilterResult([], [], [], default_mode)
    log.debug("Query %r (%s) matched %d records", raw_query, query.mode, len(matched))
    return FilterResult(matched, tokens, record_ids, query.mode)


# --------------------- HTTP surface ---------------------

# Expose this blueprint from your app factory to register:
#   from searchplus.search import bp as search_bp
#   app.register_blueprint(search_bp)
bp = Blueprint("search", __name__, url_prefix="/api")


def _cfg(key: str, default: Any) -> Any:
    value = current_app.config.get(key)
    return default if value is None else value


def _require_mode(value: Any, fallback: str, allowed: Sequence[str], kind: str) -> str:
    if value is None:
        return fallback
    mode = str(value).strip().lower()
    if mode not in allowed:
        raise InvalidModeError(kind, value, tuple(allowed))
    return mode


def _load_table_records(table: str) -> List[Dict[str, Any]]:
    hidden = tuple(_cfg("HIDDEN_TABLE_PREFIXES", DEFAULT_HIDDEN_TABLE_PREFIXES))
    if hidden and table.startswith(hidden):
        raise UnknownTableError(table)
    return fetch_table_records(get_engine(), table)


def _columns_for(records: Sequence[Mapping[str, Any]]):
    return build_columns(
        records,
        skip=_cfg("SKIP_COLUMNS", DEFAULT_SKIP_COLUMNS),
        sample_size=_cfg("TYPE_SAMPLE_SIZE", 20),
        date_hints=current_app.config.get("DATE_COLUMN_HINTS"),
    )


@bp.post("/search")
def search_api():
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise BadRequest("Expected a JSON object body")

    table = body.get("table")
    if table is not None:
        if not isinstance(table, str) or not table.strip():
            raise BadRequest("'table' must be a non-empty string")
        records = _load_table_records(table.strip())
    else:
        records = body.get("records")
        if not isinstance(records, list) or not all(isinstance(r, dict) for r in records):
            raise BadRequest("'records' must be a list of objects")

    query = body.get("query") or ""
    if not isinstance(query, str):
        raise BadRequest("'query' must be a string")

    columns = body.get("columns")
    if columns is None:
        columns = [c.id for c in _columns_for(records)]
    elif not isinstance(columns, list) or not all(isinstance(c, str) for c in columns):
        raise BadRequest("'columns' must be a list of column names")

    logic_mode = _require_mode(
        body.get("logic_mode"), _cfg("DEFAULT_LOGIC_MODE", MODE_OR), VALID_MODES, "logic_mode"
    )
    match_mode = _require_mode(
        body.get("match_mode"), _cfg("DEFAULT_MATCH_MODE", MATCH_CONTAINS), VALID_MATCH_MODES, "match_mode"
    )

    result = filter_records(
        records,
        query,
        columns,
        logic_mode,
        match_mode,
        id_key=_cfg("ID_COLUMN", DEFAULT_ID_COLUMN),
        tz=current_app.config.get("TZ"),
    )
    return jsonify(ok=True, **result.to_dict())


@bp.get("/tables")
def tables_api():
    hidden = _cfg("HIDDEN_TABLE_PREFIXES", DEFAULT_HIDDEN_TABLE_PREFIXES)
    return jsonify(ok=True, tables=list_tables(get_engine(), hidden))


@bp.get("/tables/<table>/columns")
def table_columns_api(table: str):
    records = _load_table_records(table)
    sql_types = get_column_types(get_engine(), table)
    columns = []
    for column in _columns_for(records):
        entry = column.to_dict()
        entry["short_type"] = short_type(column.type)
        entry["sql_type"] = sql_types.get(column.id)
        columns.append(entry)
    return jsonify(ok=True, table=table, count=len(records), columns=columns)
