from __future__ import annotations

import re
from datetime import date, datetime, timezone, tzinfo
from decimal import Decimal
from typing import Any, List, Optional

from dateutil import parser as dateutil_parser


def levenshtein_at_most(a: str, b: str, limit: int = 2) -> int:
    """
    Levenshtein distance with an early-exit 'limit'.
    Returns a distance <= limit, or limit+1 if it exceeds the limit.
    """
    la, lb = len(a), len(b)
    if abs(la - lb) > limit:
        return limit + 1
    # DP row
    prev = list(range(lb + 1))
    for i, ca in enumerate(a, 1):
        cur = [i]
        min_row = cur[0]
        for j, cb in enumerate(b, 1):
            cost = 0 if ca == cb else 1
            v = min(
                cur[j - 1] + 1,   # insertion
                prev[j] + 1,      # deletion
                prev[j - 1] + cost,  # substitution
            )
            cur.append(v)
            if v < min_row:
                min_row = v
        if min_row > limit:
            return limit + 1
        prev = cur
    return prev[-1]


def split_words(text: str) -> List[str]:
    """Split on runs of whitespace, dropping empty pieces."""
    return [w for w in re.split(r"\s+", text or "") if w]


def is_number(value: Any) -> bool:
    """True for int/float/Decimal values; booleans are not numbers here."""
    if isinstance(value, bool):
        return False
    return isinstance(value, (int, float, Decimal))


def to_float(value: Any) -> Optional[float]:
    """Parse a candidate as a float, returning None for anything non-numeric."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if number != number:  # NaN
        return None
    return number


def stringify_value(value: Any) -> str:
    """
    Render a raw field value the way text matchers see it.

    - None -> ""
    - booleans -> "true" / "false"
    - integral floats drop the trailing ".0" (12.0 -> "12")
    - date / datetime -> ISO 8601
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def _from_epoch_seconds(seconds: float, tz: Optional[tzinfo]) -> date:
    if tz is None:
        # local time of the running process
        return datetime.fromtimestamp(seconds).date()
    return datetime.fromtimestamp(seconds, tz=timezone.utc).astimezone(tz).date()


def coerce_local_date(value: Any, tz: Optional[tzinfo] = None) -> Optional[date]:
    """
    Interpret a field value as a calendar day.

    Accepted inputs:
      * int/float/Decimal -> Unix epoch seconds
      * datetime          -> its day (aware values converted to ``tz`` / local time first)
      * date              -> itself
      * str               -> anything python-dateutil can parse

    Returns None when the value can't be read as a date.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        if value.tzinfo is not None and value.tzinfo.utcoffset(value) is not None:
            return value.astimezone(tz).date()
        return value.date()
    if isinstance(value, date):
        return value

    if is_number(value):
        try:
            return _from_epoch_seconds(float(value), tz)
        except (OverflowError, OSError, ValueError):
            return None

    if isinstance(value, str):
        s = value.strip()
        if not s:
            return None
        try:
            parsed = dateutil_parser.parse(s)
        except (ValueError, OverflowError):
            return None
        if parsed.tzinfo is not None and parsed.tzinfo.utcoffset(parsed) is not None:
            return parsed.astimezone(tz).date()
        return parsed.date()

    return None
