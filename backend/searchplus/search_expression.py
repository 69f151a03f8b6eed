import calendar
import logging
import re
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Callable, Iterable, List, Optional, Tuple

log = logging.getLogger(__name__)


MODE_OR = "or"
MODE_AND = "and"
MODE_AND_PER_COLUMN = "and2"
VALID_MODES: Tuple[str, ...] = (MODE_OR, MODE_AND, MODE_AND_PER_COLUMN)

MOD_EQUALS = "="
MOD_STARTS = "<"
MOD_ENDS = ">"

# governing kinds, one per token
KIND_DATE = "date"
KIND_NUMERIC = "numeric"
KIND_REGEX = "regex"
KIND_WILDCARD = "wildcard"
KIND_FUZZY = "fuzzy"
KIND_PHRASE = "phrase"
KIND_EQUALS = "equals"
KIND_STARTS = "starts"
KIND_ENDS = "ends"
KIND_WHOLE = "whole"
KIND_PLAIN = "plain"

# badge categories reported back to the caller
CATEGORY_NEGATE = "neg"
CATEGORY_DATE = "date"
CATEGORY_NUMERIC = "numeric"
CATEGORY_FUZZY = "fuzzy"
CATEGORY_WILDCARD = "wildcard"
CATEGORY_PHRASE = "phrase"
CATEGORY_PLAIN = "plain"


@dataclass(frozen=True)
class DateCondition:
    """A calendar-day filter: ``exact`` (start == end), ``range`` or ``compare`` (start + op)."""

    kind: str
    start: date
    end: Optional[date] = None
    op: Optional[str] = None


@dataclass(frozen=True)
class NumericRange:
    """``range`` uses low/high inclusively; gt/gte/lt/lte compare against ``low``."""

    kind: str
    low: float
    high: Optional[float] = None


# --- date conditions ---

_ISO_DATE = r"\d{4}-\d{2}-\d{2}"
_DAY_FIRST_DATE = r"\d{2}[-/]\d{2}[-/]\d{4}"

_DATE_PATTERNS: Tuple[re.Pattern, ...] = (
    re.compile(rf"^[><]=?{_ISO_DATE}$"),
    re.compile(rf"^[><]=?{_DAY_FIRST_DATE}$"),
    re.compile(rf"^{_ISO_DATE}\.\.{_ISO_DATE}$"),
    re.compile(rf"^{_DAY_FIRST_DATE}\.\.{_DAY_FIRST_DATE}$"),
)

_DATE_COMPARE = re.compile(rf"^(?P<op>[><]=?)(?P<day>{_ISO_DATE}|{_DAY_FIRST_DATE})$")
_DATE_RANGE = re.compile(
    rf"^(?P<start>{_ISO_DATE})\.\.(?P<end>{_ISO_DATE})$"
    rf"|^(?P<fr_start>{_DAY_FIRST_DATE})\.\.(?P<fr_end>{_DAY_FIRST_DATE})$"
)
_ISO_PARTS = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_DAY_FIRST_PARTS = re.compile(r"^(\d{2})[-/](\d{2})[-/](\d{4})$")


def _parse_flex_date(text: str) -> Optional[date]:
    """Read YYYY-MM-DD or DD-MM-YYYY / DD/MM/YYYY; None for impossible calendar days."""
    m = _ISO_PARTS.match(text)
    if m:
        year, month, day = (int(g) for g in m.groups())
    else:
        m = _DAY_FIRST_PARTS.match(text)
        if not m:
            return None
        day, month, year = (int(g) for g in m.groups())
    try:
        return date(year, month, day)
    except ValueError:
        log.debug("Ignoring impossible calendar date %r", text)
        return None


def _week_bounds(today: date) -> Tuple[date, date]:
    # weeks run Sunday..Saturday; date.weekday() has Monday == 0
    start = today - timedelta(days=(today.weekday() + 1) % 7)
    return start, start + timedelta(days=6)


def _keyword_condition(keyword: str, today: date) -> Optional[DateCondition]:
    if keyword == "@today":
        return DateCondition("exact", today, today)
    if keyword == "@yesterday":
        day = today - timedelta(days=1)
        return DateCondition("exact", day, day)
    if keyword == "@week":
        start, end = _week_bounds(today)
        return DateCondition("range", start, end)
    if keyword == "@month":
        last_day = calendar.monthrange(today.year, today.month)[1]
        return DateCondition("range", today.replace(day=1), today.replace(day=last_day))
    if keyword == "@year":
        return DateCondition("range", date(today.year, 1, 1), date(today.year, 12, 31))
    return None


def looks_like_date_condition(word: str) -> bool:
    return word.startswith("@") or any(p.match(word) for p in _DATE_PATTERNS)


def parse_date_condition(word: str, today: Optional[date] = None) -> Optional[DateCondition]:
    """
    Turn a query word into a DateCondition.

      @today / @yesterday            -> exact
      @week / @month / @year         -> range (Sunday-based weeks)
      >2024-01-01, <=31/12/2024      -> compare
      2024-01-01..2024-06-30         -> range (day-first ranges too)

    Returns None when the word is not a usable date condition.
    """
    if today is None:
        today = date.today()

    condition = _keyword_condition(word.lower(), today)
    if condition is not None:
        return condition

    m = _DATE_COMPARE.match(word)
    if m:
        day = _parse_flex_date(m.group("day"))
        if day is not None:
            return DateCondition("compare", day, op=m.group("op"))

    m = _DATE_RANGE.match(word)
    if m:
        start = _parse_flex_date(m.group("start") or m.group("fr_start"))
        end = _parse_flex_date(m.group("end") or m.group("fr_end"))
        if start is not None and end is not None:
            return DateCondition("range", start, end)

    return None


# --- numeric ranges ---

_NUMBER = r"\d+(?:\.\d+)?"
_NUMERIC_HINTS: Tuple[re.Pattern, ...] = (
    re.compile(rf"^{_NUMBER}\.\."),
    re.compile(r"^[><]=?\d"),
)
_NUMERIC_RANGE = re.compile(rf"^(?P<low>{_NUMBER})\.\.(?P<high>{_NUMBER})$")
_NUMERIC_COMPARE = re.compile(rf"^(?P<op>[><]=?)(?P<value>{_NUMBER})$")
_COMPARE_KINDS = {">": "gt", ">=": "gte", "<": "lt", "<=": "lte"}


def looks_like_numeric_range(word: str) -> bool:
    return any(p.match(word) for p in _NUMERIC_HINTS)


def parse_numeric_range(word: str) -> Optional[NumericRange]:
    """``10..100`` -> range, ``>50`` / ``>=50`` / ``<9.5`` / ``<=9.5`` -> comparisons."""
    m = _NUMERIC_RANGE.match(word)
    if m:
        return NumericRange("range", float(m.group("low")), float(m.group("high")))
    m = _NUMERIC_COMPARE.match(word)
    if m:
        return NumericRange(_COMPARE_KINDS[m.group("op")], float(m.group("value")))
    return None


# --------------------- QueryToken ---------------------

def _is_date(t: "QueryToken") -> bool:
    return t.date_condition is not None


def _is_numeric(t: "QueryToken") -> bool:
    return t.numeric_range is not None


_CLASSIFIERS: Tuple[Tuple[str, Callable[["QueryToken"], bool]], ...] = (
    (KIND_DATE, _is_date),
    (KIND_NUMERIC, _is_numeric),
    (KIND_REGEX, lambda t: t.regex),
    (KIND_WILDCARD, lambda t: t.wildcard),
    (KIND_FUZZY, lambda t: t.fuzzy),
    (KIND_PHRASE, lambda t: t.phrase),
    (KIND_EQUALS, lambda t: t.modifier == MOD_EQUALS),
    (KIND_STARTS, lambda t: t.modifier == MOD_STARTS),
    (KIND_ENDS, lambda t: t.modifier == MOD_ENDS),
    (KIND_WHOLE, lambda t: t.whole),
)

_CATEGORIES: Tuple[Tuple[str, Callable[["QueryToken"], bool]], ...] = (
    (CATEGORY_NEGATE, lambda t: t.negate),
    (CATEGORY_DATE, _is_date),
    (CATEGORY_NUMERIC, _is_numeric),
    (CATEGORY_FUZZY, lambda t: t.fuzzy),
    (CATEGORY_WILDCARD, lambda t: t.wildcard),
    (CATEGORY_PHRASE, lambda t: t.phrase),
)


def classify_token(token: "QueryToken") -> str:
    """First classifier that claims the token decides which matcher governs it."""
    for kind, claims in _CLASSIFIERS:
        if claims(token):
            return kind
    return KIND_PLAIN


class QueryToken:
    def __init__(
        self,
        raw: str,
        word: str,
        *,
        negate: bool = False,
        modifier: Optional[str] = None,
        regex: bool = False,
        phrase: bool = False,
        whole: bool = False,
        columns: Optional[Iterable[str]] = None,
        fuzzy: bool = False,
        wildcard: bool = False,
        date_condition: Optional[DateCondition] = None,
        numeric_range: Optional[NumericRange] = None,
    ):
        self.raw = raw
        self.word = word
        self.negate = negate
        self.modifier = modifier
        self.regex = regex
        self.phrase = phrase
        self.whole = whole
        self.columns: List[str] = list(columns or [])
        self.fuzzy = fuzzy
        self.wildcard = wildcard
        self.date_condition = date_condition
        self.numeric_range = numeric_range
        self.kind = classify_token(self)

    @property
    def category(self) -> str:
        for category, claims in _CATEGORIES:
            if claims(self):
                return category
        return CATEGORY_PLAIN

    def __repr__(self) -> str:
        return (
            f"QueryToken(raw={self.raw!r}, word={self.word!r}, kind={self.kind!r}, "
            f"negate={self.negate!r}, columns={self.columns!r})"
        )


class SearchQuery:
    """
    Free-text filter query.

    Leading mode prefix:
      - '&&' -> every term must hit inside one and the same column
      - '&'  -> every term must hit (any column)
      - none -> the caller's default mode

    Units, first form wins:
      "some phrase"   'wholeword   /regex/   bareword

    Each unit's word then loses, in order: '!' (negate), '~' (fuzzy) or one of
    '=' '<' '>' (equals / starts-with / ends-with), and a trailing '@col1,col2'
    column scope. What is left is checked for a date condition, then a numeric
    range, then '*' / '?' wildcards.
    """

    _UNIT = re.compile(r"\"(?P<phrase>[^\"]+)\"|'(?P<whole>\S+)|/(?P<regex>[^/]+)/|(?P<bare>\S+)")
    _STARTS_GUARD = re.compile(r"^<=?\d")
    _ENDS_GUARD = re.compile(r"^>=?\d")

    def __init__(self, s: str, default_mode: str = MODE_OR, today: Optional[date] = None):
        self.raw: str = s or ""
        self.today = today if today is not None else date.today()
        self.mode, body = self._split_mode(self.raw, default_mode)
        self.tokens: List[QueryToken] = self._tokenize(body)

    @staticmethod
    def _split_mode(s: str, default_mode: str) -> Tuple[str, str]:
        body = s.strip()
        if body.startswith("&&"):
            return MODE_AND_PER_COLUMN, body[2:].strip()
        if body.startswith("&"):
            return MODE_AND, body[1:].strip()
        return default_mode, body

    def _tokenize(self, body: str) -> List[QueryToken]:
        tokens: List[QueryToken] = []
        for m in self._UNIT.finditer(body):
            token = self._build_token(m)
            if token is None:
                log.debug("Dropping empty query unit %r", m.group(0))
                continue
            tokens.append(token)
        return tokens

    def _build_token(self, m: "re.Match[str]") -> Optional[QueryToken]:
        raw = m.group(0)
        phrase = m.group("phrase") is not None
        whole = m.group("whole") is not None
        regex = m.group("regex") is not None
        word = m.group("phrase") or m.group("whole") or m.group("regex") or m.group("bare") or ""

        negate = False
        if word.startswith("!"):
            negate = True
            word = word[1:]

        fuzzy = False
        modifier: Optional[str] = None
        if word.startswith("~"):
            fuzzy = True
            word = word[1:]
        elif word.startswith("="):
            modifier = MOD_EQUALS
            word = word[1:]
        elif word.startswith("<") and not self._STARTS_GUARD.match(word):
            modifier = MOD_STARTS
            word = word[1:]
        elif word.startswith(">") and not self._ENDS_GUARD.match(word):
            modifier = MOD_ENDS
            word = word[1:]

        columns: List[str] = []
        at = word.find("@")
        if at > 0:
            columns = [c for c in word[at + 1:].split(",") if c]
            word = word[:at]

        date_condition: Optional[DateCondition] = None
        if looks_like_date_condition(word):
            date_condition = parse_date_condition(word, self.today)

        numeric_range: Optional[NumericRange] = None
        if date_condition is None and looks_like_numeric_range(word):
            numeric_range = parse_numeric_range(word)

        wildcard = (
            not regex
            and date_condition is None
            and numeric_range is None
            and ("*" in word or "?" in word)
        )

        if not word:
            return None
        return QueryToken(
            raw,
            word,
            negate=negate,
            modifier=modifier,
            regex=regex,
            phrase=phrase,
            whole=whole,
            columns=columns,
            fuzzy=fuzzy,
            wildcard=wildcard,
            date_condition=date_condition,
            numeric_range=numeric_range,
        )

    def is_empty(self) -> bool:
        return not self.tokens

    def __repr__(self) -> str:
        return f"SearchQuery(mode={self.mode!r}, tokens={self.tokens!r})"


def parse_query(raw: str, default_mode: str = MODE_OR, *, today: Optional[date] = None) -> SearchQuery:
    return SearchQuery(raw, default_mode=default_mode, today=today)

