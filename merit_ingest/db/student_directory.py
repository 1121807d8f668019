from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from ..models.event import RawRow

"""StudentDirectory implementations.

PostgresStudentDirectory queries the students table through a psycopg2
cursor. InMemoryStudentDirectory serves the same lookups from roster rows
(a CSV export of the students table) for dry runs without a database.
"""

__all__ = [
    "PostgresStudentDirectory",
    "RosterEntry",
    "InMemoryStudentDirectory",
    "escape_like",
]


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so ILIKE compares the name literally."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class PostgresStudentDirectory:
    def __init__(self, cursor: Any, table: str = "students") -> None:
        self.cursor = cursor
        self.table = table

    def find_student_ids(self, name: str, grade: int | None, section: str | None) -> list[str]:
        sql = f"SELECT student_id FROM {self.table} WHERE student_name ILIKE %s"
        params: list[Any] = [escape_like(name)]
        if grade is not None:
            sql += " AND grade = %s"
            params.append(grade)
        if section:
            sql += " AND section = %s"
            params.append(section)
        self.cursor.execute(sql, params)
        return [str(row[0]) for row in self.cursor.fetchall()]


@dataclass(frozen=True)
class RosterEntry:
    student_id: str
    student_name: str
    grade: int | None = None
    section: str | None = None


class InMemoryStudentDirectory:
    def __init__(self, entries: Iterable[RosterEntry] = ()) -> None:
        self.entries = list(entries)

    @classmethod
    def from_rows(cls, rows: Iterable[RawRow]) -> InMemoryStudentDirectory:
        """Build from parsed roster CSV rows (student_id, student_name, grade, section).

        Rows without student_id or student_name are skipped.
        """
        entries: list[RosterEntry] = []
        for row in rows:
            student_id = (row.get("student_id") or "").strip()
            name = (row.get("student_name") or row.get("name") or "").strip()
            if not student_id or not name:
                continue
            grade_raw = (row.get("grade") or "").strip()
            entries.append(RosterEntry(
                student_id=student_id,
                student_name=name,
                grade=int(grade_raw) if grade_raw.isdigit() else None,
                section=(row.get("section") or "").strip() or None,
            ))
        return cls(entries)

    def find_student_ids(self, name: str, grade: int | None, section: str | None) -> list[str]:
        wanted = name.casefold()
        return [
            e.student_id
            for e in self.entries
            if e.student_name.casefold() == wanted
            and (grade is None or e.grade == grade)
            and (not section or e.section == section)
        ]
