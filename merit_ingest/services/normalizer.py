from __future__ import annotations

import re
import warnings

import pandas as pd

from ..models.error_record import RowError
from ..models.event import EventType, NormalizedEvent, RawRow, Severity

"""Field normalization shared by the CSV and report parsers' output.

Every parse_*/normalise_* function is total: it never raises and returns
None for absent or invalid input. Whether None rejects the row is decided by
normalise_row(): event_type, event_date and points are required; time,
severity and the descriptive fields are silently dropped when malformed.
"""

__all__ = [
    "FIELD_ALIASES",
    "field_value",
    "parse_date",
    "parse_time",
    "parse_int",
    "parse_grade",
    "normalise_event_type",
    "normalise_severity",
    "normalise_row",
]

# Canonical field -> accepted (normalized) header keys, first non-empty wins
FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "student_id": ("student_id", "student_uuid"),
    "student_name": ("student_name", "name"),
    "grade": ("grade",),
    "section": ("section",),
    "event_type": ("event_type", "type"),
    "event_date": ("event_date", "date"),
    "event_time": ("event_time", "time"),
    "staff_id": ("staff_id", "staff_uuid"),
    "staff_name": ("staff_name",),
    "class_context": ("class_context",),
    "location": ("location",),
    "category": ("category",),
    "subcategory": ("subcategory",),
    "severity": ("severity",),
    "points": ("points",),
    "notes": ("notes",),
    "source_system": ("source_system",),
}

_TIME_RE = re.compile(r"^\d{1,2}:\d{2}(:\d{2})?$")
_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")


def field_value(row: RawRow, name: str) -> str:
    for key in FIELD_ALIASES.get(name, (name,)):
        value = (row.get(key) or "").strip()
        if value:
            return value
    return ""


def parse_date(value: str | None) -> str | None:
    """Any unambiguous calendar date -> YYYY-MM-DD.

    Slashed dates are month-first ("01/05/2026" is 5 January). Timezone-aware
    timestamps are converted to UTC before the date is taken.
    """
    if not value or not value.strip():
        return None
    try:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", UserWarning)
            ts = pd.to_datetime(value.strip(), errors="coerce")
    except (ValueError, TypeError, OverflowError):
        return None
    if ts is None or pd.isna(ts):
        return None
    if ts.tzinfo is not None:
        ts = ts.tz_convert("UTC")
    return ts.strftime("%Y-%m-%d")


def parse_time(value: str | None) -> str | None:
    """H:MM[:SS] / HH:MM[:SS] -> HH:MM:SS."""
    if not value:
        return None
    trimmed = value.strip()
    if not _TIME_RE.match(trimmed):
        return None
    parts = trimmed.split(":")
    hours = parts[0].zfill(2)
    minutes = parts[1].zfill(2)
    seconds = parts[2].zfill(2) if len(parts) > 2 else "00"
    return f"{hours}:{minutes}:{seconds}"


def parse_int(value: str | None) -> int | None:
    """Leading base-10 integer ("12", " -3", "5 pts"); anything else -> None."""
    if not value:
        return None
    m = _LEADING_INT_RE.match(value)
    return int(m.group(1)) if m else None


def parse_grade(value: str | None) -> int | None:
    grade = parse_int(value)
    return grade if grade is not None and grade >= 0 else None


def normalise_event_type(value: str | None) -> EventType | None:
    if not value:
        return None
    try:
        return EventType(value.strip().lower())
    except ValueError:
        return None


def normalise_severity(value: str | None) -> Severity | None:
    if not value:
        return None
    try:
        return Severity(value.strip().lower())
    except ValueError:
        return None


def normalise_row(
    row: RawRow,
    row_number: int,
    student_id: str,
    default_source_system: str | None = None,
) -> NormalizedEvent | RowError:
    """Validate one resolved row into a NormalizedEvent.

    Required checks run in a fixed order so the first failing field is the
    one reported: event_type, event_date, points.
    """
    event_type = normalise_event_type(field_value(row, "event_type"))
    if event_type is None:
        return RowError(row_number, "event_type must be merit or demerit.", "INVALID_EVENT_TYPE")
    event_date = parse_date(field_value(row, "event_date"))
    if event_date is None:
        return RowError(row_number, "event_date is required and must be valid.", "INVALID_EVENT_DATE")
    points = parse_int(field_value(row, "points"))
    if points is None:
        return RowError(row_number, "points is required and must be a number.", "INVALID_POINTS")

    def optional(name: str) -> str | None:
        return field_value(row, name) or None

    return NormalizedEvent(
        student_id=student_id,
        event_type=event_type,
        event_date=event_date,
        points=points,
        student_name=optional("student_name"),
        grade=parse_grade(field_value(row, "grade")),
        section=optional("section"),
        event_time=parse_time(field_value(row, "event_time")),
        category=optional("category"),
        subcategory=optional("subcategory"),
        severity=normalise_severity(field_value(row, "severity")),
        staff_id=optional("staff_id"),
        staff_name=optional("staff_name"),
        class_context=optional("class_context"),
        location=optional("location"),
        notes=optional("notes"),
        source_system=optional("source_system") or default_source_system,
    )
