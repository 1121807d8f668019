from __future__ import annotations

import pytest

from merit_ingest.models.config_models import ReportLayout
from merit_ingest.parsers.report_text import (
    ExtractorState,
    LineKind,
    ReportTextExtractor,
    classify_line,
    parse_header_line,
)

REPORT_LINES = [
    "6th",
    "Smith, Jane",
    "05/01/2026 Mr Brown Violation MS: Level 2: Disruption 3",
    "Description talked over the teacher",
    "and refused to stop",
    "Resolution detention",
    "Student Total 3",
    "7th",
    "Khan, Omar",
    "06/01/2026 Ms Green",
    "Support Buy Back -5",
    "Description: helped clean",
]


@pytest.mark.parametrize(
    "line,kind",
    [
        ("6th", LineKind.GRADE_MARKER),
        ("12TH", LineKind.GRADE_MARKER),
        ("1st", LineKind.GRADE_MARKER),
        ("Smith, Jane", LineKind.STUDENT_MARKER),
        ("05/01/2026 Mr Brown Violation Late 1", LineKind.DATE_MARKER),
        ("05/01/2026, Brown, Tom Violation Late 1", LineKind.DATE_MARKER),
        ("05/01/2026, Mr Brown", LineKind.DATE_MARKER),
        ("Description talked, loudly", LineKind.CONTINUATION),
        ("MS: Level 2, Disruption", LineKind.CONTINUATION),
        ("Student Total 3", LineKind.CONTINUATION),
        ("plain text", LineKind.CONTINUATION),
    ],
)
def test_classify_line(line, kind):
    assert classify_line(line) is kind


def test_parse_header_line_violation():
    parts = parse_header_line("Violation MS: Level 2: Disruption 3")
    assert parts.category == "Violation"
    assert parts.subcategory == "Disruption"
    assert parts.raw_points == 3
    assert parts.points == 3
    assert parts.event_type == "demerit"


def test_parse_header_line_support_violation():
    parts = parse_header_line("Support Violation Level 1: Uniform 1")
    assert parts.category == "Support Violation"
    assert parts.subcategory == "Uniform"
    assert parts.event_type == "demerit"


def test_parse_header_line_buy_back_is_merit_with_absolute_points():
    parts = parse_header_line("Support Buy Back -5")
    assert parts.category == ""
    assert parts.subcategory == "Support Buy Back"
    assert parts.raw_points == -5
    assert parts.points == 5
    assert parts.event_type == "merit"


def test_parse_header_line_negative_points_is_merit():
    assert parse_header_line("Violation Late -2").event_type == "merit"


def test_parse_header_line_without_points():
    parts = parse_header_line("Violation Uniform")
    assert parts.raw_points is None
    assert parts.points is None
    assert parts.subcategory == "Uniform"


def test_parse_header_line_layout_and_rule_overrides():
    layout = ReportLayout(merit_keywords=("Praise",), negative_points_is_merit=False, absolute_points=False)
    parts = parse_header_line("Violation Late -2", layout)
    assert parts.event_type == "demerit"
    assert parts.points == -2
    assert parse_header_line("Support Praise 2", layout).event_type == "merit"
    assert parse_header_line("Violation Late 2", merit_rule=lambda header, points: True).event_type == "merit"


def test_extract_full_report():
    rows = ReportTextExtractor().extract(REPORT_LINES)
    assert len(rows) == 2

    first, second = rows
    assert first["student_name"] == "Smith, Jane"
    assert first["grade"] == "6"
    assert first["section"] == ""
    assert first["event_date"] == "2026-01-05"
    assert first["staff_name"] == "Mr Brown"
    assert first["category"] == "Violation"
    assert first["subcategory"] == "Disruption"
    assert first["points"] == "3"
    assert first["event_type"] == "demerit"
    assert first["notes"] == "talked over the teacher and refused to stop | detention"
    assert first["source_system"] == "Discipline Event Summary PDF"

    # header on the line after the date line
    assert second["student_name"] == "Khan, Omar"
    assert second["grade"] == "7"
    assert second["staff_name"] == "Ms Green"
    assert second["subcategory"] == "Support Buy Back"
    assert second["points"] == "5"
    assert second["event_type"] == "merit"
    assert second["notes"] == "helped clean"


def test_date_marker_inside_event_starts_next_event():
    lines = [
        "Smith, Jane",
        "05/01/2026 Mr Brown Violation Late 1",
        "Description first",
        "06/01/2026 Mr Brown Violation Late 2",
        "Description second",
    ]
    rows = ReportTextExtractor().extract(lines)
    assert [r["points"] for r in rows] == ["1", "2"]
    assert [r["notes"] for r in rows] == ["first", "second"]
    assert rows[0]["grade"] == ""


def test_student_marker_inside_event_switches_student():
    lines = [
        "Smith, Jane",
        "05/01/2026 Mr Brown Violation Late 1",
        "Khan, Omar",
        "06/01/2026 Ms Green Violation Late 1",
    ]
    rows = ReportTextExtractor().extract(lines)
    assert [r["student_name"] for r in rows] == ["Smith, Jane", "Khan, Omar"]


def test_date_line_without_student_is_ignored():
    rows = ReportTextExtractor().extract(["05/01/2026 Mr Brown Violation Late 1"])
    assert rows == []


def test_staff_part_mentioning_student_is_dropped():
    rows = ReportTextExtractor().extract(["Smith, Jane", "05/01/2026 Student Violation Late 1"])
    assert rows[0]["staff_name"] == ""


def test_comma_after_date_is_stripped():
    rows = ReportTextExtractor().extract(["Smith, Jane", "05/01/2026, Mr Brown, Violation Late 1"])
    assert rows[0]["staff_name"] == "Mr Brown"
    assert rows[0]["subcategory"] == "Late"


def test_missing_points_default_to_zero():
    rows = ReportTextExtractor().extract(["Smith, Jane", "05/01/2026 Mr Brown Violation Uniform"])
    assert rows[0]["points"] == "0"


def test_day_first_dates_can_be_disabled():
    extractor = ReportTextExtractor(ReportLayout(day_first_dates=False))
    rows = extractor.extract(["Smith, Jane", "05/01/2026 Mr Brown Violation Late 1"])
    assert rows[0]["event_date"] == "05/01/2026"


def test_extractor_is_reusable_and_ends_idle():
    extractor = ReportTextExtractor()
    first = extractor.extract(REPORT_LINES)
    second = extractor.extract(REPORT_LINES)
    assert first == second
    assert extractor.state is ExtractorState.IDLE


def test_feed_tracks_state():
    extractor = ReportTextExtractor()
    extractor.feed("Smith, Jane")
    assert extractor.state is ExtractorState.IDLE
    extractor.feed("05/01/2026 Mr Brown")
    assert extractor.state is ExtractorState.AWAITING_HEADER
    extractor.feed("Violation Late 1")
    assert extractor.state is ExtractorState.EVENT_BODY
    extractor.feed("Description x")
    assert extractor.state is ExtractorState.DESCRIPTION
    extractor.feed("Resolution y")
    assert extractor.state is ExtractorState.RESOLUTION
    extractor.feed("Student Total 1")
    assert extractor.state is ExtractorState.IDLE


def test_comma_date_line_with_wrapped_header_keeps_student():
    # the comma does not make the date line a student marker
    rows = ReportTextExtractor().extract([
        "6th",
        "Smith, Jane",
        "05/01/2026, Mr Brown",
        "Violation Late 1",
    ])
    assert len(rows) == 1
    assert rows[0]["student_name"] == "Smith, Jane"
    assert rows[0]["staff_name"] == "Mr Brown"
    assert rows[0]["subcategory"] == "Late"
    assert rows[0]["points"] == "1"


def test_open_state_without_event_raises():
    extractor = ReportTextExtractor()
    extractor.state = ExtractorState.AWAITING_HEADER
    with pytest.raises(RuntimeError, match="no open event in state awaiting_header"):
        extractor.feed("Violation Late 1")

    extractor.state = ExtractorState.DESCRIPTION
    with pytest.raises(RuntimeError, match="no open event in state description"):
        extractor.feed("more text")
