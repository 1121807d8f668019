from __future__ import annotations

import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from ..models.config_models import ReportLayout
from ..models.event import RawRow

"""Discipline report text extractor.

Turns the plain-text lines of a "Discipline Event Summary" PDF into RawRows
with the same shape the CSV reader produces. The report layout is:

    6th                                   <- grade marker
    Smith, Jane                           <- student marker
    05/01/2026 Mr Brown Violation MS: Level 2: Disruption 3
    Description talked over the teacher   <- free text, may wrap
    Resolution detention
    Student Total 3

Lines are tagged by classify_line() and consumed by a small state machine.
Two recovery rules matter:

- A date line without a "Violation"/"Support" keyword carries only the staff
  name; the header (category + points) is the next physical line, which is
  consumed unconditionally (AWAITING_HEADER).
- While inside an event, a grade/student/date marker closes the event and is
  then re-dispatched from IDLE so it starts the next record instead of being
  swallowed as body text.
"""

__all__ = [
    "LineKind",
    "ExtractorState",
    "HeaderParts",
    "classify_line",
    "parse_header_line",
    "ReportTextExtractor",
    "REPORT_FIELDS",
]

GRADE_RE = re.compile(r"^(\d{1,2})(st|nd|rd|th)$", re.IGNORECASE)
DATE_RE = re.compile(r"^(\d{2}/\d{2}/\d{4})")
STUDENT_EXCLUDE_RE = re.compile(
    r"Violation|Description|Resolution|Student Total|Support|MS\s*:|Level", re.IGNORECASE
)
HEADER_KEYWORD_RE = re.compile(r"\bViolation\b|\bSupport\b", re.IGNORECASE)
STUDENT_WORD_RE = re.compile(r"student", re.IGNORECASE)
TRAILING_POINTS_RE = re.compile(r"(-?\d+)\s*$")
SUPPORT_VIOLATION_RE = re.compile(r"Support Violation", re.IGNORECASE)
VIOLATION_RE = re.compile(r"Violation", re.IGNORECASE)
MS_PREFIX_RE = re.compile(r"^MS\s*:\s*", re.IGNORECASE)
LEVEL_PREFIX_RE = re.compile(r"^Level\s*\d+\s*:\s*", re.IGNORECASE)
DESCRIPTION_RE = re.compile(r"^Description\s*:?", re.IGNORECASE)
RESOLUTION_RE = re.compile(r"^Resolution\s*:?", re.IGNORECASE)
STUDENT_TOTAL_RE = re.compile(r"^Student Total", re.IGNORECASE)

REPORT_FIELDS: tuple[str, ...] = (
    "student_name",
    "grade",
    "section",
    "event_type",
    "event_date",
    "staff_name",
    "category",
    "subcategory",
    "points",
    "notes",
    "source_system",
)

MeritRule = Callable[[str, int | None], bool]


class LineKind(Enum):
    GRADE_MARKER = "grade"
    STUDENT_MARKER = "student"
    DATE_MARKER = "date"
    CONTINUATION = "continuation"


class ExtractorState(Enum):
    IDLE = "idle"
    AWAITING_HEADER = "awaiting_header"
    EVENT_BODY = "event_body"  # 見出し取得済み、Description/Resolution 未開始
    DESCRIPTION = "description"
    RESOLUTION = "resolution"


MARKER_KINDS = frozenset({LineKind.GRADE_MARKER, LineKind.STUDENT_MARKER, LineKind.DATE_MARKER})


def classify_line(line: str) -> LineKind:
    """Tag one trimmed report line.

    Order matters: a date line may contain a comma, so dates are tested
    before the comma-based student rule. "05/01/2026, Mr Brown" (header
    wrapped onto the next line) opens an event; it never replaces the
    current student.
    """
    if GRADE_RE.match(line):
        return LineKind.GRADE_MARKER
    if DATE_RE.match(line):
        return LineKind.DATE_MARKER
    if "," in line and not STUDENT_EXCLUDE_RE.search(line):
        return LineKind.STUDENT_MARKER
    return LineKind.CONTINUATION


@dataclass(frozen=True)
class HeaderParts:
    category: str
    subcategory: str
    raw_points: int | None
    points: int | None
    event_type: str


def parse_header_line(
    header_line: str,
    layout: ReportLayout | None = None,
    merit_rule: MeritRule | None = None,
) -> HeaderParts:
    """Split an event header into category, subcategory, points and type.

    "Violation MS: Level 2: Disruption 3" -> ("Violation", "Disruption", 3, demerit)
    "Support Buy Back -5"                 -> ("", "Support Buy Back", 5, merit)
    """
    layout = layout or ReportLayout()
    rule = merit_rule or layout.is_merit

    match = TRAILING_POINTS_RE.search(header_line)
    raw_points = int(match.group(1)) if match else None
    header = header_line[: match.start()].strip() if match else header_line.strip()

    category = ""
    subcategory = header
    if SUPPORT_VIOLATION_RE.search(header):
        category = "Support Violation"
        subcategory = SUPPORT_VIOLATION_RE.sub("", header, count=1).strip()
    elif VIOLATION_RE.search(header):
        category = "Violation"
        subcategory = VIOLATION_RE.sub("", header, count=1).strip()

    subcategory = MS_PREFIX_RE.sub("", subcategory, count=1)
    subcategory = LEVEL_PREFIX_RE.sub("", subcategory, count=1).strip()

    points = raw_points
    if raw_points is not None and layout.absolute_points:
        points = abs(raw_points)

    event_type = "merit" if rule(header, raw_points) else "demerit"
    return HeaderParts(
        category=category,
        subcategory=subcategory,
        raw_points=raw_points,
        points=points,
        event_type=event_type,
    )


@dataclass
class _OpenEvent:
    student_name: str
    grade: int | None
    event_date: str
    staff_name: str
    header_line: str = ""
    description: list[str] = field(default_factory=list)
    resolution: list[str] = field(default_factory=list)


class ReportTextExtractor:
    """Single forward pass over report lines emitting one RawRow per event.

    The instance holds per-pass context (current grade, current student, open
    event); extract() resets it, so one extractor may be reused across calls.
    """

    def __init__(self, layout: ReportLayout | None = None, merit_rule: MeritRule | None = None) -> None:
        self.layout = layout or ReportLayout()
        self.merit_rule = merit_rule
        self._reset()

    def _reset(self) -> None:
        self.state = ExtractorState.IDLE
        self.current_grade: int | None = None
        self.current_student: str | None = None
        self._event: _OpenEvent | None = None
        self._rows: list[RawRow] = []

    def extract(self, lines: Iterable[str]) -> list[RawRow]:
        self._reset()
        for line in lines:
            self.feed(line)
        self._close_event()
        return self._rows

    def feed(self, line: str) -> None:
        if self.state is ExtractorState.AWAITING_HEADER:
            self._current_event().header_line = line
            self.state = ExtractorState.EVENT_BODY
            return

        kind = classify_line(line)
        if self.state is not ExtractorState.IDLE:
            if kind not in MARKER_KINDS:
                self._accumulate(line)
                return
            # marker ends the open event and is re-processed as a new record start
            self._close_event()

        self._dispatch_idle(line, kind)

    def _dispatch_idle(self, line: str, kind: LineKind) -> None:
        if kind is LineKind.GRADE_MARKER:
            self.current_grade = int(GRADE_RE.match(line).group(1))  # type: ignore[union-attr]
        elif kind is LineKind.STUDENT_MARKER:
            self.current_student = line
        elif kind is LineKind.DATE_MARKER and self.current_student:
            self._open_event(line)

    def _open_event(self, line: str) -> None:
        event_date = DATE_RE.match(line).group(1)  # type: ignore[union-attr]
        remainder = line.replace(event_date, "", 1).strip()
        if remainder.startswith(","):
            remainder = remainder[1:].strip()

        staff_name = ""
        header_line = ""
        keyword = HEADER_KEYWORD_RE.search(remainder)
        if keyword:
            staff_part = remainder[: keyword.start()].strip()
            if staff_part.endswith(","):
                staff_part = staff_part[:-1].strip()
            if staff_part and not STUDENT_WORD_RE.search(staff_part):
                staff_name = staff_part
            header_line = remainder[keyword.start():].strip()
        elif remainder and not STUDENT_WORD_RE.search(remainder):
            staff_name = remainder

        self._event = _OpenEvent(
            student_name=self.current_student or "",
            grade=self.current_grade,
            event_date=event_date,
            staff_name=staff_name,
            header_line=header_line,
        )
        self.state = ExtractorState.EVENT_BODY if header_line else ExtractorState.AWAITING_HEADER

    def _current_event(self) -> _OpenEvent:
        if self._event is None:
            raise RuntimeError(f"no open event in state {self.state.value}")
        return self._event

    def _accumulate(self, line: str) -> None:
        event = self._current_event()
        if DESCRIPTION_RE.match(line):
            self.state = ExtractorState.DESCRIPTION
            event.description.append(DESCRIPTION_RE.sub("", line, count=1).strip())
        elif RESOLUTION_RE.match(line):
            self.state = ExtractorState.RESOLUTION
            event.resolution.append(RESOLUTION_RE.sub("", line, count=1).strip())
        elif STUDENT_TOTAL_RE.match(line):
            self._close_event()
        elif self.state is ExtractorState.DESCRIPTION:
            event.description.append(line)
        elif self.state is ExtractorState.RESOLUTION:
            event.resolution.append(line)

    def _close_event(self) -> None:
        event = self._event
        self.state = ExtractorState.IDLE
        if event is None:
            return
        self._event = None

        parts = parse_header_line(event.header_line, self.layout, self.merit_rule)
        description = " ".join(p for p in event.description if p)
        resolution = " ".join(p for p in event.resolution if p)
        notes = " | ".join(p for p in (description, resolution) if p)

        self._rows.append({
            "student_name": event.student_name,
            "grade": str(event.grade) if event.grade is not None else "",
            "section": "",
            "event_type": parts.event_type,
            "event_date": self._format_date(event.event_date),
            "staff_name": event.staff_name,
            "category": parts.category,
            "subcategory": parts.subcategory,
            "points": str(parts.points) if parts.points is not None else "0",
            "notes": notes,
            "source_system": self.layout.source_system,
        })

    def _format_date(self, value: str) -> str:
        """DD/MM/YYYY -> YYYY-MM-DD; anything unparseable is passed through."""
        if not self.layout.day_first_dates:
            return value
        try:
            return datetime.strptime(value, "%d/%m/%Y").strftime("%Y-%m-%d")
        except ValueError:
            return value
