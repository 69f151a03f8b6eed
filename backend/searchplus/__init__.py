"""
Free-text record filtering.

Avoid side effects here: no network, DB, or logging setup.
"""

from .search import FilterResult, TokenDescription, build_query, filter_records  # noqa: F401
from .search_expression import (  # noqa: F401
    MODE_AND,
    MODE_AND_PER_COLUMN,
    MODE_OR,
    SearchQuery,
    parse_query,
)
from .session import SearchSession  # noqa: F401

__all__ = [
    "FilterResult",
    "TokenDescription",
    "build_query",
    "filter_records",
    "MODE_AND",
    "MODE_AND_PER_COLUMN",
    "MODE_OR",
    "SearchQuery",
    "parse_query",
    "SearchSession",
]
