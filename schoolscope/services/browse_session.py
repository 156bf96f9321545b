# schoolscope/services/browse_session.py

"""Filter → sort → paginate workflow with a persisted filter set."""

import json
import logging
from collections.abc import Sequence
from typing import Any, cast

from schoolscope.config.settings import Settings
from schoolscope.errors import StorageError
from schoolscope.filters.paginator import (
    Page,
    is_valid_page,
    paginate,
    page_window,
    total_pages,
)
from schoolscope.filters.school_filter import (
    FilterSet,
    SchoolFilter,
    normalise_filters,
)
from schoolscope.filters.sorter import sort_schools
from schoolscope.models.school import School
from schoolscope.storage.ttl_cache import KeyValueStore

logger = logging.getLogger("schoolscope.browse")


class BrowseSession:
    """Holds the current results, filters and page for one browsing view.

    The filter set is written to the durable store on every change so a
    restarted session can pick it up with :meth:`restore_filters`.
    """

    def __init__(
        self,
        store: KeyValueStore,
        page_size: int = Settings.SCHOOLS_PER_PAGE,
        storage_key: str = Settings.ACTIVE_FILTERS_KEY,
    ) -> None:
        if page_size <= 0:
            raise ValueError(f"page_size must be positive, got {page_size}")
        self._store = store
        self._storage_key = storage_key
        self.page_size = page_size
        self.filters: FilterSet = {}
        self.current_page: int = 1
        self._results: list[School] = []
        self._filtered: list[School] = []

    # ── Data ─────────────────────────────────────────────

    def set_results(self, schools: Sequence[School]) -> None:
        """Replace the underlying result set and re-apply filters."""
        self._results = list(schools)
        self._refilter()
        if self.current_page > self.total_pages:
            self.current_page = max(1, self.total_pages)

    @property
    def filtered(self) -> list[School]:
        return list(self._filtered)

    @property
    def result_count(self) -> int:
        return len(self._filtered)

    @property
    def result_count_label(self) -> str:
        count = self.result_count
        return f"{count} {'result' if count == 1 else 'results'} found"

    @property
    def total_pages(self) -> int:
        return total_pages(len(self._filtered), self.page_size)

    # ── Filters ──────────────────────────────────────────

    def set_filters(self, filters: FilterSet) -> None:
        """Replace the active filter set, persist it and go to page 1."""
        self.filters = normalise_filters(dict(filters))
        self._save_filters()
        self.current_page = 1
        self._refilter()
        logger.info("Filters applied: %s", self.filters)

    def reset_filters(self) -> None:
        """Clear every filter, including the persisted copy."""
        self.filters = {}
        try:
            self._store.remove(self._storage_key)
        except StorageError as exc:
            logger.warning("Failed to clear saved filters: %s", exc)
        self.current_page = 1
        self._refilter()
        logger.info("Filters reset")

    def restore_filters(self) -> FilterSet:
        """Load the persisted filter set, if any, and apply it."""
        try:
            saved = self._store.get(self._storage_key)
        except StorageError as exc:
            logger.warning("Failed to load saved filters: %s", exc)
            return self.filters
        if not saved:
            return self.filters
        try:
            decoded: Any = json.loads(saved)
        except json.JSONDecodeError:
            logger.warning("Discarding unreadable saved filters")
            return self.filters
        if isinstance(decoded, dict):
            self.filters = normalise_filters(cast(dict[str, Any], decoded))
            self.current_page = 1
            self._refilter()
        return self.filters

    def _save_filters(self) -> None:
        try:
            self._store.set(self._storage_key, json.dumps(self.filters))
        except StorageError as exc:
            logger.warning("Failed to save filters: %s", exc)

    def _refilter(self) -> None:
        self._filtered = SchoolFilter.apply_filters(
            self._results, self.filters
        )

    # ── Sorting & paging ─────────────────────────────────

    def sort_by(self, field: str, direction: str = "desc") -> None:
        """Stable-sort the underlying results, then return to page 1."""
        self._results = sort_schools(self._results, field, direction)
        self.current_page = 1
        self._refilter()

    def go_to_page(self, page: int) -> bool:
        """Move to *page* if it exists; otherwise keep the current page."""
        pages = self.total_pages
        if not is_valid_page(page, pages) or page == self.current_page:
            logger.debug(
                "Ignoring page request %d (current=%d, total=%d)",
                page,
                self.current_page,
                pages,
            )
            return False
        self.current_page = page
        return True

    def page(self) -> Page:
        """The slice for the current page."""
        return paginate(self._filtered, self.current_page, self.page_size)

    def page_window(self) -> list[int | None]:
        return page_window(self.current_page, self.total_pages)
