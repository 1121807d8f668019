from __future__ import annotations

import pytest

from merit_ingest.models.error_record import RowError
from merit_ingest.models.event import EventType, NormalizedEvent, Severity
from merit_ingest.services.normalizer import (
    field_value,
    normalise_event_type,
    normalise_row,
    normalise_severity,
    parse_date,
    parse_grade,
    parse_int,
    parse_time,
)


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("2026-01-05", "2026-01-05"),
        ("01/05/2026", "2026-01-05"),  # month-first
        ("2026-01-05T23:30:00Z", "2026-01-05"),
        ("2026-01-05T23:30:00-05:00", "2026-01-06"),  # UTC
        (" 2026-03-01 ", "2026-03-01"),
        ("not a date", None),
        ("", None),
        (None, None),
    ],
)
def test_parse_date(raw, expected):
    assert parse_date(raw) == expected


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("9:30", "09:30:00"),
        ("09:30", "09:30:00"),
        ("13:05:07", "13:05:07"),
        ("9:5", None),
        ("930", None),
        ("", None),
        (None, None),
    ],
)
def test_parse_time(raw, expected):
    assert parse_time(raw) == expected


def test_parse_int():
    assert parse_int("12") == 12
    assert parse_int("-3") == -3
    assert parse_int(" 5 pts") == 5
    assert parse_int("abc") is None
    assert parse_int("") is None


def test_parse_grade_rejects_negative():
    assert parse_grade("7") == 7
    assert parse_grade("-1") is None
    assert parse_grade("seventh") is None


def test_enum_normalisation_is_case_and_space_insensitive():
    assert normalise_event_type(" Merit ") is EventType.MERIT
    assert normalise_event_type("DEMERIT") is EventType.DEMERIT
    assert normalise_event_type("positive") is None
    assert normalise_severity("Major") is Severity.MAJOR
    assert normalise_severity("huge") is None


def test_field_value_aliases_first_non_empty_wins():
    row = {"student_id": "", "student_uuid": "u-1", "type": "merit"}
    assert field_value(row, "student_id") == "u-1"
    assert field_value(row, "event_type") == "merit"
    assert field_value(row, "location") == ""


def _row(**overrides):
    row = {
        "student_name": "Smith, Jane",
        "grade": "6",
        "type": "demerit",
        "date": "2026-01-05",
        "time": "9:30",
        "points": "2",
        "severity": "minor",
        "category": "Disruption",
        "notes": "",
    }
    row.update(overrides)
    return row


def test_normalise_row_success():
    event = normalise_row(_row(), 2, "stu-1", "csv_upload")
    assert isinstance(event, NormalizedEvent)
    assert event.student_id == "stu-1"
    assert event.event_type is EventType.DEMERIT
    assert event.event_date == "2026-01-05"
    assert event.event_time == "09:30:00"
    assert event.points == 2
    assert event.grade == 6
    assert event.severity is Severity.MINOR
    assert event.notes is None
    assert event.source_system == "csv_upload"


def test_normalise_row_row_source_system_wins():
    event = normalise_row(_row(source_system="Discipline Event Summary PDF"), 2, "stu-1", "csv_upload")
    assert event.source_system == "Discipline Event Summary PDF"


def test_normalise_row_invalid_optional_fields_are_dropped():
    event = normalise_row(_row(time="25 o'clock", severity="huge"), 2, "stu-1")
    assert isinstance(event, NormalizedEvent)
    assert event.event_time is None
    assert event.severity is None


@pytest.mark.parametrize(
    "overrides,error_type,message",
    [
        ({"type": "praise"}, "INVALID_EVENT_TYPE", "event_type must be merit or demerit."),
        ({"date": "someday"}, "INVALID_EVENT_DATE", "event_date is required and must be valid."),
        ({"points": "lots"}, "INVALID_POINTS", "points is required and must be a number."),
        ({"points": ""}, "INVALID_POINTS", "points is required and must be a number."),
    ],
)
def test_normalise_row_rejections(overrides, error_type, message):
    err = normalise_row(_row(**overrides), 7, "stu-1")
    assert isinstance(err, RowError)
    assert err.row_number == 7
    assert err.error_type == error_type
    assert err.message == message


def test_normalise_row_reports_first_failing_field():
    err = normalise_row(_row(type="", date="", points=""), 3, "stu-1")
    assert err.error_type == "INVALID_EVENT_TYPE"


def test_to_row_flattens_enums():
    event = normalise_row(_row(), 2, "stu-1")
    values = event.to_row()
    assert values[0] == "stu-1"
    assert "demerit" in values
    assert "minor" in values
