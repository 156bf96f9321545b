# schoolscope/services/url_params.py

"""Query-string helpers for search and comparison deep links."""

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from urllib.parse import parse_qsl, urlencode

from schoolscope.filters.school_filter import FilterSet

_SCHOOL_PARAM_RE = re.compile(r"school([1-9]\d*)")

# Filters a search link may carry alongside ``q``
SEARCH_FILTER_PARAMS: tuple[str, ...] = ("state", "grade", "type")


@dataclass
class SearchRequest:
    """A search query plus its optional link filters."""

    query: str = ""
    filters: FilterSet = field(default_factory=lambda: FilterSet())

    def as_filter_set(self) -> FilterSet:
        """The query folded in as a ``search`` filter."""
        combined: FilterSet = dict(self.filters)
        if self.query:
            combined["search"] = self.query
        return combined


def parse_params(query_string: str) -> dict[str, str]:
    """Decode a query string; later duplicates win, blanks are dropped."""
    return {
        k: v.strip()
        for k, v in parse_qsl(query_string.lstrip("?"))
        if v.strip()
    }


def parse_search_params(query_string: str) -> SearchRequest:
    """Read ``q`` and the ``state``/``grade``/``type`` filters."""
    params = parse_params(query_string)
    filters: FilterSet = {
        key: params[key] for key in SEARCH_FILTER_PARAMS if key in params
    }
    return SearchRequest(query=params.get("q", ""), filters=filters)


def build_search_query(query: str, filters: Mapping[str, str] | None = None) -> str:
    """Encode a search link query string (``q`` first)."""
    params: dict[str, str] = {"q": query}
    for key in SEARCH_FILTER_PARAMS:
        value = (filters or {}).get(key)
        if value:
            params[key] = value
    return urlencode(params)


def compare_ids_from_params(params: Mapping[str, str], limit: int) -> list[str]:
    """Collect up to *limit* distinct ``schoolN`` ids in positional order.

    Gaps and repeated ids do not use up a slot.
    """
    positions: list[tuple[int, str]] = []
    for key, value in params.items():
        match = _SCHOOL_PARAM_RE.fullmatch(key)
        if match and value.strip():
            positions.append((int(match.group(1)), value.strip()))

    ids: list[str] = []
    for _, school_id in sorted(positions):
        if len(ids) >= limit:
            break
        if school_id not in ids:
            ids.append(school_id)
    return ids


def build_compare_query(school_ids: Sequence[str]) -> str:
    """Encode ``school1=...&school2=...`` for a comparison link."""
    return urlencode(
        {f"school{i}": sid for i, sid in enumerate(school_ids, start=1)}
    )
