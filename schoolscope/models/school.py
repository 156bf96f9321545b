# schoolscope/models/school.py

"""School data model shared by the dataset, filter, search and comparison layers."""

import math
import re
from dataclasses import dataclass
from typing import Any

from schoolscope.config.settings import Settings

_NUMBER_RE = re.compile(r"-?\d+(?:\.\d+)?")

# Source column → dataclass field for the numeric metrics
_METRIC_COLUMNS: dict[str, str] = {
    "Student_Count": "student_count",
    "Student_Teacher_Ratio": "student_teacher_ratio",
    "Math_Score": "math_score",
    "Reading_Score": "reading_score",
    "Graduation_Rate": "graduation_rate",
    "National_Rank": "national_rank",
    "Performance_Index": "performance_index",
    "Rating": "rating",
}

_TEXT_COLUMNS: dict[str, str] = {
    "School_Name": "name",
    "City": "city",
    "State_Code": "state_code",
    "Zip": "zip_code",
    "Address": "address",
    "School_Type": "school_type",
    "Grade_Level": "grade_level",
    "District_ID": "district_id",
    "Slug": "slug",
}


def parse_metric(raw: object) -> float | None:
    """Coerce a raw metric cell to a float, or ``None`` when missing.

    Accepts plain numbers and formatted strings such as ``"1,204"``
    or ``"92%"``. Booleans, NaN and infinities are not metrics.
    """
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        number = float(raw)
        return number if math.isfinite(number) else None
    match = _NUMBER_RE.search(str(raw).replace(",", ""))
    return float(match.group(0)) if match else None


@dataclass(frozen=True)
class School:
    """A single active school listing from the directory dataset."""

    school_id: str
    name: str
    city: str = ""
    state_code: str = ""
    zip_code: str = ""
    address: str = ""
    school_type: str = ""
    grade_level: str = ""
    district_id: str = ""
    slug: str = ""
    student_count: float | None = None
    student_teacher_ratio: float | None = None
    math_score: float | None = None
    reading_score: float | None = None
    graduation_rate: float | None = None
    national_rank: float | None = None
    performance_index: float | None = None
    rating: float | None = None
    is_active: bool = True

    @classmethod
    def from_record(cls, row: dict[str, Any]) -> "School":
        """Build a School from one row of the source JSON array."""
        kwargs: dict[str, Any] = {
            field: str(row.get(column) or "").strip()
            for column, field in _TEXT_COLUMNS.items()
        }
        for column, field in _METRIC_COLUMNS.items():
            kwargs[field] = parse_metric(row.get(column))
        return cls(
            school_id=str(row.get("School_ID") or "").strip(),
            is_active=row.get("Is_Active") == Settings.ACTIVE_FLAG,
            **kwargs,
        )

    def to_record(self) -> dict[str, Any]:
        """Serialise back to the source row shape (used for caching)."""
        row: dict[str, Any] = {"School_ID": self.school_id}
        for column, field in _TEXT_COLUMNS.items():
            row[column] = getattr(self, field)
        for column, field in _METRIC_COLUMNS.items():
            row[column] = getattr(self, field)
        row["Is_Active"] = (
            Settings.ACTIVE_FLAG if self.is_active else "FALSE"
        )
        return row

    @property
    def location(self) -> str:
        """``City, ST 12345`` as shown in listings."""
        return f"{self.city}, {self.state_code} {self.zip_code}".strip()
