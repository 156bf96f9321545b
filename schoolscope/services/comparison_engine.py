# schoolscope/services/comparison_engine.py

"""Side-by-side school comparison with per-metric winners and summaries."""

import logging
import math
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum, auto

from schoolscope.models.school import School

logger = logging.getLogger("schoolscope.compare")

_DIGITS_RE = re.compile(r"\d+(?:\.\d+)?")

SUMMARY_LABEL = "Summary"
SUMMARY_SEPARATOR = " • "
NEUTRAL_SUMMARY = "Average performance compared to others"


class Direction(Enum):
    """Which end of a metric's scale wins."""

    HIGHER = auto()
    LOWER = auto()
    UNRANKED = auto()  # Descriptive rows: never highlighted


def _fmt_number(value: float) -> str:
    return f"{int(value):,}" if value.is_integer() else f"{value:,g}"


def _fmt(template: str) -> Callable[[float | None], str]:
    def render(value: float | None) -> str:
        if value is None:
            return "N/A"
        return template.format(_fmt_number(value))
    return render


@dataclass(frozen=True)
class Metric:
    """One comparison row: how to read, display and rank a school field."""

    label: str
    direction: Direction
    text: Callable[[School], str] | None = None
    attribute: str | None = None
    template: str = "{}"

    def raw(self, school: School) -> float | str | None:
        """The value used for ranking."""
        if self.attribute is not None:
            value: float | None = getattr(school, self.attribute)
            return value
        return self.display(school)

    def display(self, school: School) -> str:
        """The formatted cell text."""
        if self.text is not None:
            return self.text(school)
        value: float | None = getattr(school, self.attribute or "")
        return _fmt(self.template)(value)


METRICS: tuple[Metric, ...] = (
    Metric("Location", Direction.UNRANKED, text=lambda s: s.location),
    Metric("School Type", Direction.UNRANKED, text=lambda s: s.school_type),
    Metric("Grades", Direction.UNRANKED, text=lambda s: s.grade_level),
    Metric("Students", Direction.HIGHER, attribute="student_count"),
    Metric(
        "Student-Teacher Ratio",
        Direction.LOWER,
        attribute="student_teacher_ratio",
        template="{}:1",
    ),
    Metric("Math Score", Direction.HIGHER, attribute="math_score", template="{}%"),
    Metric(
        "Reading Score", Direction.HIGHER, attribute="reading_score", template="{}%",
    ),
    Metric(
        "Graduation Rate", Direction.HIGHER, attribute="graduation_rate", template="{}%",
    ),
    Metric("National Rank", Direction.LOWER, attribute="national_rank", template="#{}"),
    Metric("Performance Index", Direction.HIGHER, attribute="performance_index"),
)

METRIC_DIRECTIONS: dict[str, Direction] = {m.label: m.direction for m in METRICS}

# (attribute, direction, bullet) checked against the rest of the cohort
SUMMARY_CRITERIA: tuple[tuple[str, Direction, str], ...] = (
    ("rating", Direction.HIGHER, "Higher rating than average"),
    ("math_score", Direction.HIGHER, "Above average math scores"),
    ("reading_score", Direction.HIGHER, "Above average reading scores"),
    ("student_teacher_ratio", Direction.LOWER, "Better student-teacher ratio"),
)


@dataclass
class ComparisonRow:
    """One labelled row; ``winner`` indexes into the row's cells."""

    label: str
    cells: list[str] = field(default_factory=lambda: list[str]())
    winner: int | None = None


@dataclass
class ComparisonTable:
    """Metric rows followed by a final Summary row, one column per school."""

    schools: tuple[School, ...]
    rows: list[ComparisonRow] = field(
        default_factory=lambda: list[ComparisonRow]()
    )

    @property
    def metric_rows(self) -> list[ComparisonRow]:
        return [r for r in self.rows if r.label != SUMMARY_LABEL]

    @property
    def summaries(self) -> list[str]:
        for row in self.rows:
            if row.label == SUMMARY_LABEL:
                return list(row.cells)
        return []

    def row(self, label: str) -> ComparisonRow:
        """Look up a row by label; raises ``KeyError`` if absent."""
        for r in self.rows:
            if r.label == label:
                return r
        raise KeyError(label)


def reduce_value(value: object) -> float | None:
    """Reduce a cell to a comparable number.

    Numbers pass through unless NaN or infinite. Strings yield their
    first run of digits (with thousands separators removed), so ``"85%"`` → 85 and ``"12:1"`` → 12.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) else None
    if isinstance(value, str):
        match = _DIGITS_RE.search(value.replace(",", ""))
        return float(match.group(0)) if match else None
    return None


class ComparisonEngine:
    """Stateless builder of comparison tables."""

    def __init__(self, metrics: Sequence[Metric] = METRICS) -> None:
        self.metrics = tuple(metrics)
        self._directions = {m.label: m.direction for m in self.metrics}

    def direction_for(self, metric_name: str) -> Direction:
        """Declared direction for *metric_name*; unknown names rank higher-first."""
        return self._directions.get(
            metric_name, METRIC_DIRECTIONS.get(metric_name, Direction.HIGHER)
        )

    def find_winner(
        self, metric_name: str, values: Sequence[object],
    ) -> int | None:
        """Index of the best value, or ``None`` when nothing can be ranked.

        The first index wins ties.
        """
        if len(values) < 2:
            return None
        direction = self.direction_for(metric_name)
        if direction is Direction.UNRANKED:
            return None

        numbers: list[float] = []
        for value in values:
            reduced = reduce_value(value)
            if reduced is None:
                return None
            numbers.append(reduced)

        best = (
            max(numbers) if direction is Direction.HIGHER else min(numbers)
        )
        return numbers.index(best)

    def summarize(self, school: School, cohort: Sequence[School]) -> str:
        """Bullet the metrics where *school* beats the mean of the others."""
        others = [s for s in cohort if s.school_id != school.school_id]
        if not others:
            return ""

        points: list[str] = []
        for attribute, direction, bullet in SUMMARY_CRITERIA:
            own: float | None = getattr(school, attribute)
            peer_values: list[float] = [
                v for v in (getattr(s, attribute) for s in others)
                if v is not None
            ]
            if own is None or not peer_values:
                continue
            mean = sum(peer_values) / len(peer_values)
            if direction is Direction.HIGHER and own > mean:
                points.append(bullet)
            elif direction is Direction.LOWER and own < mean:
                points.append(bullet)

        if not points:
            return NEUTRAL_SUMMARY
        return SUMMARY_SEPARATOR.join(points)

    def compare(self, schools: Sequence[School]) -> ComparisonTable | None:
        """Build the comparison table; fewer than two schools is a no-op."""
        if len(schools) < 2:
            logger.debug(
                "Comparison skipped: %d school(s) selected", len(schools),
            )
            return None

        table = ComparisonTable(schools=tuple(schools))
        for metric in self.metrics:
            cells = [metric.display(s) for s in schools]
            raw_values = [metric.raw(s) for s in schools]
            table.rows.append(
                ComparisonRow(
                    label=metric.label,
                    cells=cells,
                    winner=self.find_winner(metric.label, raw_values),
                )
            )

        table.rows.append(
            ComparisonRow(
                label=SUMMARY_LABEL,
                cells=[self.summarize(s, schools) for s in schools],
            )
        )
        logger.info(
            "Compared %d schools: %s",
            len(schools),
            ", ".join(s.school_id for s in schools),
        )
        return table
