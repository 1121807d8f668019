from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

"""Event domain models for the ingestion pipeline.

RawRow is the untyped boundary artifact shared by both document parsers;
NormalizedEvent is the typed, validated record that is persisted.
"""

__all__ = [
    "RawRow",
    "EventType",
    "Severity",
    "NormalizedEvent",
    "EVENT_COLUMNS",
]

# Normalized header key -> trimmed string value
RawRow = dict[str, str]


class EventType(Enum):
    MERIT = "merit"
    DEMERIT = "demerit"


class Severity(Enum):
    MINOR = "minor"
    MODERATE = "moderate"
    MAJOR = "major"


# Insert column order for the events table (upload_id is prepended by the store)
EVENT_COLUMNS: tuple[str, ...] = (
    "student_id",
    "student_name",
    "grade",
    "section",
    "event_type",
    "event_date",
    "event_time",
    "points",
    "category",
    "subcategory",
    "severity",
    "staff_id",
    "staff_name",
    "class_context",
    "location",
    "notes",
    "source_system",
)


@dataclass(frozen=True)
class NormalizedEvent:
    """One validated merit/demerit event ready for persistence.

    student_id, event_type, event_date and points are always valid; the
    remaining fields are provenance/descriptive and None when blank.
    """
    student_id: str
    event_type: EventType
    event_date: str  # YYYY-MM-DD
    points: int
    student_name: str | None = None
    grade: int | None = None
    section: str | None = None
    event_time: str | None = None  # HH:MM:SS
    category: str | None = None
    subcategory: str | None = None
    severity: Severity | None = None
    staff_id: str | None = None
    staff_name: str | None = None
    class_context: str | None = None
    location: str | None = None
    notes: str | None = None
    source_system: str | None = None

    def to_row(self) -> tuple[object, ...]:
        """Values in EVENT_COLUMNS order with enums flattened to strings."""
        values: list[object] = []
        for col in EVENT_COLUMNS:
            val = getattr(self, col)
            if isinstance(val, Enum):
                val = val.value
            values.append(val)
        return tuple(values)
