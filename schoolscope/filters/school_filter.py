# schoolscope/filters/school_filter.py

"""Composable filter predicates over the school collection."""

import logging
from collections.abc import Sequence
from typing import Any

from schoolscope.errors import ValidationError
from schoolscope.models.school import School

logger = logging.getLogger("schoolscope.filters")

FilterValue = str | list[str] | float | int | None
FilterSet = dict[str, FilterValue]

# Filter key → School attribute for the exact-match categorical filters
CATEGORICAL_FIELDS: dict[str, str] = {
    "state": "state_code",
    "district": "district_id",
    "type": "school_type",
}

# Filter key → School attribute for the "min-max" range filters
RANGE_FIELDS: dict[str, str] = {
    "student_count": "student_count",
    "student_ratio": "student_teacher_ratio",
    "math_score": "math_score",
    "reading_score": "reading_score",
    "graduation_rate": "graduation_rate",
    "performance_index": "performance_index",
}


def _parse_bound(text: str) -> float | None:
    text = text.strip()
    if not text:
        return None
    try:
        return float(text)
    except ValueError:
        return None


def parse_range(range_value: object) -> tuple[float | None, float | None]:
    """Split a ``"min-max"`` string into optional numeric bounds.

    An unparseable side is unconstrained (``None``). A lone number is a
    minimum. Raises :class:`ValidationError` when neither side parses.
    """
    text = str(range_value).strip()
    low_text, _, high_text = text.partition("-")
    low = _parse_bound(low_text)
    high = _parse_bound(high_text)
    if low is None and high is None:
        raise ValidationError(f"Unusable range '{text}'")
    return low, high


def _is_empty(value: FilterValue) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, list):
        return len(value) == 0
    return False


class SchoolFilter:
    """Apply a conjunction of named predicates to a list of schools."""

    @staticmethod
    def filter_by_search(
        query: str, schools: Sequence[School],
    ) -> list[School]:
        """Keep schools whose name, city, zip or address contains *query*."""
        q = query.strip().lower()
        return [
            s for s in schools
            if q in s.name.lower()
            or q in s.city.lower()
            or q in s.zip_code.lower()
            or q in s.address.lower()
        ]

    @staticmethod
    def filter_by_field(
        field: str, value: FilterValue, schools: Sequence[School],
    ) -> list[School]:
        """Exact match on a categorical field; a list is a multi-select."""
        if isinstance(value, list):
            wanted = {str(v) for v in value}
            return [s for s in schools if getattr(s, field) in wanted]
        return [s for s in schools if getattr(s, field) == str(value)]

    @staticmethod
    def filter_by_grade(
        grade: str, schools: Sequence[School],
    ) -> list[School]:
        """Keep schools whose grade span mentions *grade* (case-insensitive)."""
        g = grade.strip().lower()
        return [s for s in schools if g in s.grade_level.lower()]

    @staticmethod
    def filter_by_min_rating(
        minimum: FilterValue, schools: Sequence[School],
    ) -> list[School]:
        """Keep schools rated at least *minimum*."""
        try:
            floor = float(str(minimum))
        except ValueError:
            raise ValidationError(f"Unusable rating '{minimum}'") from None
        return [
            s for s in schools
            if s.rating is not None and s.rating >= floor
        ]

    @staticmethod
    def filter_by_range(
        field: str, range_value: FilterValue, schools: Sequence[School],
    ) -> list[School]:
        """Keep schools whose *field* lies within the inclusive range.

        A school missing the metric only passes a fully unconstrained
        range, which :func:`parse_range` rejects before we get here.
        """
        low, high = parse_range(range_value)
        kept: list[School] = []
        for s in schools:
            metric: float | None = getattr(s, field)
            if metric is None:
                continue
            if low is not None and metric < low:
                continue
            if high is not None and metric > high:
                continue
            kept.append(s)
        return kept

    @staticmethod
    def apply_filter(
        key: str, value: FilterValue, schools: Sequence[School],
    ) -> list[School]:
        """Narrow *schools* by one filter entry. Unknown keys pass through."""
        if _is_empty(value):
            return list(schools)

        try:
            if key == "search":
                return SchoolFilter.filter_by_search(str(value), schools)
            if key in CATEGORICAL_FIELDS:
                return SchoolFilter.filter_by_field(
                    CATEGORICAL_FIELDS[key], value, schools
                )
            if key == "grade":
                return SchoolFilter.filter_by_grade(str(value), schools)
            if key == "rating":
                return SchoolFilter.filter_by_min_rating(value, schools)
            if key in RANGE_FIELDS:
                return SchoolFilter.filter_by_range(
                    RANGE_FIELDS[key], value, schools
                )
        except ValidationError as exc:
            logger.info("Filter '%s' not applied: %s", key, exc)
            return list(schools)

        logger.debug("Ignoring unknown filter key '%s'", key)
        return list(schools)

    @staticmethod
    def apply_filters(
        schools: Sequence[School], filters: FilterSet | None,
    ) -> list[School]:
        """AND together every entry of *filters*.

        Returns a new list; an empty filter set returns all schools.
        """
        if not filters:
            return list(schools)

        filtered = list(schools)
        for key, value in filters.items():
            filtered = SchoolFilter.apply_filter(key, value, filtered)

        excluded = len(schools) - len(filtered)
        if excluded:
            logger.info(
                "Filters %s excluded %d of %d schools",
                sorted(filters),
                excluded,
                len(schools),
            )
        return filtered


def normalise_filters(raw: dict[str, Any]) -> FilterSet:
    """Coerce a decoded JSON object into a FilterSet, dropping empty entries."""
    cleaned: FilterSet = {}
    for key, value in raw.items():
        if isinstance(value, list):
            items = [str(v) for v in value if str(v).strip()]
            if items:
                cleaned[str(key)] = items
        elif isinstance(value, (str, int, float)) and not isinstance(value, bool):
            if not _is_empty(value):
                cleaned[str(key)] = value
    return cleaned
