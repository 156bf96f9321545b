# schoolscope/filters/paginator.py

"""Page slicing for filtered school lists."""

import math
from collections.abc import Sequence
from dataclasses import dataclass, field

from schoolscope.models.school import School


@dataclass
class Page:
    """One page of results plus the totals needed to render navigation."""

    items: list[School] = field(default_factory=lambda: list[School]())
    page: int = 1
    total_pages: int = 0
    total_items: int = 0

    @property
    def is_empty(self) -> bool:
        """True when there is nothing to show ("No results found")."""
        return self.total_pages == 0

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages


def total_pages(total_items: int, page_size: int) -> int:
    """``ceil(total / page_size)``; zero items means zero pages."""
    if page_size <= 0:
        raise ValueError(f"page_size must be positive, got {page_size}")
    return math.ceil(total_items / page_size)


def is_valid_page(page: int, pages: int) -> bool:
    """True when *page* is inside ``[1, pages]``."""
    return 1 <= page <= pages


def paginate(
    schools: Sequence[School], page: int, page_size: int,
) -> Page:
    """Slice out 1-indexed *page*.

    Out-of-range pages yield an empty slice; callers that track a current
    page should check :func:`is_valid_page` first and keep the old page.
    """
    pages = total_pages(len(schools), page_size)
    if not is_valid_page(page, pages):
        return Page(
            items=[], page=page, total_pages=pages, total_items=len(schools),
        )
    start = (page - 1) * page_size
    return Page(
        items=list(schools[start:start + page_size]),
        page=page,
        total_pages=pages,
        total_items=len(schools),
    )


def page_window(current: int, pages: int, radius: int = 2) -> list[int | None]:
    """Page numbers for a navigation strip; ``None`` marks an ellipsis.

    Always shows the first and last page plus ``current ± radius``.
    """
    if pages <= 1:
        return []
    window: list[int | None] = []
    for i in range(1, pages + 1):
        if i in (1, pages) or current - radius <= i <= current + radius:
            window.append(i)
        elif window and window[-1] is not None:
            window.append(None)
    return window
