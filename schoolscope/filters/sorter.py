# schoolscope/filters/sorter.py

"""Stable, type-aware sorting of school lists."""

import logging
from collections.abc import Sequence
from dataclasses import fields

from schoolscope.models.school import School

logger = logging.getLogger("schoolscope.filters")

_SORTABLE_FIELDS: frozenset[str] = frozenset(
    f.name for f in fields(School)
)


def sort_schools(
    schools: Sequence[School],
    field: str,
    direction: str = "desc",
) -> list[School]:
    """Return *schools* ordered by *field*.

    Strings compare case-insensitively, numbers numerically. Equal keys
    keep their previous relative order in both directions. Schools with
    no value for *field* always sort last.
    """
    if field not in _SORTABLE_FIELDS:
        raise ValueError(f"Cannot sort by unknown field '{field}'")
    if direction not in ("asc", "desc"):
        raise ValueError(f"Sort direction must be 'asc' or 'desc', got '{direction}'")

    present: list[School] = []
    missing: list[School] = []
    for s in schools:
        value = getattr(s, field)
        if value is None or value == "":
            missing.append(s)
        else:
            present.append(s)

    def key(s: School) -> str | float:
        value = getattr(s, field)
        return value.lower() if isinstance(value, str) else value

    ordered = sorted(present, key=key, reverse=direction == "desc")
    logger.debug(
        "Sorted %d schools by %s %s (%d without a value)",
        len(present),
        field,
        direction,
        len(missing),
    )
    return ordered + missing
