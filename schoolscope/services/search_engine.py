# schoolscope/services/search_engine.py

"""Substring suggestion engine with debounced, supersedable requests."""

import asyncio
import logging
import re
from collections.abc import Collection, Sequence
from dataclasses import dataclass, field
from enum import Enum, auto

from schoolscope.config.settings import Settings
from schoolscope.models.school import School

logger = logging.getLogger("schoolscope.search")

# Text fields scanned for suggestions, in display priority order
DEFAULT_FIELDS: tuple[str, ...] = ("name", "city", "zip_code", "address")

# Fields used by the comparison picker
PICKER_FIELDS: tuple[str, ...] = ("name", "city")


class SuggestionStatus(Enum):
    """Outcome of a suggestion request."""

    IDLE = auto()        # Not searched yet, or query below minimum length
    MATCHES = auto()
    NO_MATCHES = auto()  # Searched, nothing found


@dataclass(frozen=True)
class Suggestion:
    """A matched school with the span of the query in its name.

    ``highlight`` is ``(start, end)`` into ``school.name``, or ``None``
    when the school matched on another field.
    """

    school: School
    highlight: tuple[int, int] | None = None


@dataclass(frozen=True)
class SuggestionResult:
    """The suggestion list for one query."""

    query: str
    status: SuggestionStatus = SuggestionStatus.IDLE
    suggestions: tuple[Suggestion, ...] = field(default_factory=tuple)

    @property
    def is_empty(self) -> bool:
        """True only for a completed search that found nothing."""
        return self.status is SuggestionStatus.NO_MATCHES


def find_highlight(text: str, query: str) -> tuple[int, int] | None:
    """Span of the first case-insensitive occurrence of *query* in *text*."""
    if not query:
        return None
    match = re.search(re.escape(query), text, re.IGNORECASE)
    return match.span() if match else None


def highlight_segments(
    text: str, span: tuple[int, int] | None,
) -> tuple[str, str, str]:
    """Split *text* into ``(before, match, after)`` around *span*."""
    if span is None:
        return text, "", ""
    start, end = span
    return text[:start], text[start:end], text[end:]


class SearchEngine:
    """Case-insensitive substring matching over indexed school fields."""

    def __init__(
        self,
        schools: Sequence[School],
        max_suggestions: int = Settings.MAX_SUGGESTIONS,
        min_chars: int = Settings.SUGGEST_MIN_CHARS,
        fields: Sequence[str] = DEFAULT_FIELDS,
    ) -> None:
        self._schools = tuple(schools)
        self.max_suggestions = max_suggestions
        self.min_chars = min_chars
        self.fields = tuple(fields)
        self.scan_count = 0

    def matches(
        self, school: School, q: str, fields: Sequence[str],
    ) -> bool:
        """True if any of *fields* contains the lowered query *q*."""
        return any(q in str(getattr(school, f)).lower() for f in fields)

    def suggest(
        self,
        query: str,
        limit: int | None = None,
        exclude_ids: Collection[str] = (),
        fields: Sequence[str] | None = None,
    ) -> SuggestionResult:
        """Return up to *limit* schools matching *query*, in dataset order.

        Queries shorter than ``min_chars`` (after trimming) return an IDLE
        result without scanning the dataset.
        """
        query = query.strip()
        if len(query) < self.min_chars:
            return SuggestionResult(query=query)

        bound = self.max_suggestions if limit is None else limit
        scan_fields = self.fields if fields is None else tuple(fields)
        q = query.lower()
        self.scan_count += 1

        found: list[Suggestion] = []
        for school in self._schools:
            if len(found) >= bound:
                break
            if school.school_id in exclude_ids:
                continue
            if self.matches(school, q, scan_fields):
                found.append(
                    Suggestion(
                        school=school,
                        highlight=find_highlight(school.name, query),
                    )
                )

        status = (
            SuggestionStatus.MATCHES if found
            else SuggestionStatus.NO_MATCHES
        )
        logger.debug(
            "Suggestions for '%s': %d (%s)", query, len(found), status.name,
        )
        return SuggestionResult(
            query=query, status=status, suggestions=tuple(found),
        )


class SuggestionDispatcher:
    """Debounces keystroke-driven suggestion requests.

    Every :meth:`request` bumps a generation counter. A request whose
    generation is no longer current when its delay ends, or when its scan
    completes, resolves to ``None`` so the caller never renders a stale
    list over a newer one.
    """

    def __init__(
        self,
        engine: SearchEngine,
        delay: float = Settings.SUGGEST_DEBOUNCE,
    ) -> None:
        self.engine = engine
        self.delay = delay
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    def cancel(self) -> None:
        """Supersede every outstanding request."""
        self._generation += 1

    async def request(
        self,
        query: str,
        limit: int | None = None,
        exclude_ids: Collection[str] = (),
        fields: Sequence[str] | None = None,
    ) -> SuggestionResult | None:
        """Suggest for *query* after the debounce delay.

        Returns ``None`` if a newer request superseded this one.
        """
        self._generation += 1
        generation = self._generation

        if len(query.strip()) < self.engine.min_chars:
            return SuggestionResult(query=query.strip())

        await asyncio.sleep(self.delay)
        if generation != self._generation:
            logger.debug("Dropping superseded query '%s' before scan", query)
            return None

        result = await asyncio.to_thread(
            self.engine.suggest, query, limit, exclude_ids, fields,
        )
        if generation != self._generation:
            logger.debug("Discarding stale suggestions for '%s'", query)
            return None
        return result
