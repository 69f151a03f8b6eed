from __future__ import annotations

import logging
import re
from datetime import tzinfo
from typing import Any, Callable, Dict, Optional

from .helpers import coerce_local_date, levenshtein_at_most, split_words, to_float
from .search_expression import (
    KIND_DATE,
    KIND_ENDS,
    KIND_EQUALS,
    KIND_FUZZY,
    KIND_NUMERIC,
    KIND_PHRASE,
    KIND_PLAIN,
    KIND_REGEX,
    KIND_STARTS,
    KIND_WHOLE,
    KIND_WILDCARD,
    DateCondition,
    NumericRange,
    QueryToken,
)

log = logging.getLogger(__name__)

FUZZY_THRESHOLD = 2
FUZZY_MIN_WORD = 3
FUZZY_MIN_PREFIX = 5


def match_plain(value: str, word: str) -> bool:
    return word.lower() in value.lower()


def match_equals(value: str, word: str) -> bool:
    return value.lower() == word.lower()


def match_starts(value: str, word: str) -> bool:
    return value.lower().startswith(word.lower())


def match_ends(value: str, word: str) -> bool:
    return value.lower().endswith(word.lower())


def match_whole_word(value: str, word: str) -> bool:
    """The word must sit between non-word characters (or the ends of the value)."""
    pattern = r"(?<!\w)" + re.escape(word) + r"(?!\w)"
    return re.search(pattern, value, re.IGNORECASE) is not None


def match_regex(value: str, pattern: str) -> bool:
    """Case-insensitive search; a pattern that won't compile never matches."""
    try:
        compiled = re.compile(pattern, re.IGNORECASE)
    except re.error:
        log.debug("Invalid regular expression %r", pattern)
        return False
    return compiled.search(value) is not None


def wildcard_to_regex(pattern: str) -> "re.Pattern[str]":
    # '*' = any run of characters, '?' = exactly one
    parts = []
    for ch in pattern:
        if ch == "*":
            parts.append(".*")
        elif ch == "?":
            parts.append(".")
        else:
            parts.append(re.escape(ch))
    return re.compile("".join(parts), re.IGNORECASE)


def match_wildcard(value: str, pattern: str) -> bool:
    """Glob must cover the whole value, or one whitespace-separated word of it."""
    rx = wildcard_to_regex(pattern)
    if rx.fullmatch(value):
        return True
    return any(rx.fullmatch(w) for w in split_words(value))


def match_fuzzy(value: str, word: str, threshold: int = FUZZY_THRESHOLD) -> bool:
    v = value.lower()
    w = word.lower()
    if w in v:
        return True
    if len(w) < FUZZY_MIN_WORD:
        return False
    max_dist = min(threshold, len(w) // 3)
    prefix_len = max(len(w), FUZZY_MIN_PREFIX)
    for candidate in split_words(v):
        if len(candidate) < FUZZY_MIN_WORD:
            continue
        if levenshtein_at_most(candidate[:prefix_len], w, limit=max_dist) <= max_dist:
            return True
    return False


def match_numeric_range(value: Any, numeric_range: NumericRange) -> bool:
    number = to_float(value)
    if number is None:
        return False
    kind = numeric_range.kind
    if kind == "range":
        return numeric_range.low <= number <= numeric_range.high
    if kind == "gt":
        return number > numeric_range.low
    if kind == "gte":
        return number >= numeric_range.low
    if kind == "lt":
        return number < numeric_range.low
    if kind == "lte":
        return number <= numeric_range.low
    log.warning("Unknown numeric range kind %r", kind)
    return False


def match_date(value: Any, condition: DateCondition, tz: Optional[tzinfo] = None) -> bool:
    day = coerce_local_date(value, tz)
    if day is None:
        log.debug("Value %r is not a date", value)
        return False
    if condition.kind == "exact":
        return day == condition.start
    if condition.kind == "range":
        return condition.start <= day <= condition.end
    if condition.kind == "compare":
        op = condition.op
        if op == ">":
            return day > condition.start
        if op == ">=":
            return day >= condition.start
        if op == "<":
            return day < condition.start
        if op == "<=":
            return day <= condition.start
    log.warning("Unknown date condition %r", condition)
    return False


_TEXT_MATCHERS: Dict[str, Callable[[str, str], bool]] = {
    KIND_REGEX: match_regex,
    KIND_WILDCARD: match_wildcard,
    KIND_FUZZY: match_fuzzy,
    KIND_PHRASE: match_plain,
    KIND_EQUALS: match_equals,
    KIND_STARTS: match_starts,
    KIND_ENDS: match_ends,
    KIND_WHOLE: match_whole_word,
    KIND_PLAIN: match_plain,
}


def match_value(value: Any, token: QueryToken, tz: Optional[tzinfo] = None) -> bool:
    """Run the matcher that governs ``token`` against one candidate value."""
    if token.kind == KIND_DATE:
        return match_date(value, token.date_condition, tz)
    if token.kind == KIND_NUMERIC:
        return match_numeric_range(value, token.numeric_range)
    matcher = _TEXT_MATCHERS.get(token.kind, match_plain)
    return matcher(value, token.word)
