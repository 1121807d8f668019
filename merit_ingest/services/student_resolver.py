from __future__ import annotations

import logging
from enum import Enum
from typing import Protocol

"""Student identity resolution for uploaded rows.

Rows name a student by (name, grade, section) instead of by id. The resolver
asks a StudentDirectory for candidates and caches exactly-one matches for
the lifetime of the resolver, which is one ingestion call. Zero or several
matches are never cached: the same key is queried again on the next row.
"""

__all__ = [
    "ResolutionFailure",
    "StudentResolutionError",
    "StudentDirectory",
    "StudentResolver",
    "cache_key",
]

logger = logging.getLogger(__name__)


class ResolutionFailure(Enum):
    REQUIRED = "STUDENT_REQUIRED"
    UNRESOLVED = "STUDENT_UNRESOLVED"
    AMBIGUOUS = "STUDENT_AMBIGUOUS"


_MESSAGES = {
    ResolutionFailure.REQUIRED: "student_id is required.",
    ResolutionFailure.UNRESOLVED: "Unable to resolve student_id for row.",
    ResolutionFailure.AMBIGUOUS: "Multiple students match. Provide section to disambiguate.",
}


class StudentResolutionError(Exception):
    """Row-level resolution failure; the coordinator turns it into a RowError."""

    def __init__(self, kind: ResolutionFailure, message: str | None = None) -> None:
        self.kind = kind
        self.message = message or _MESSAGES[kind]
        super().__init__(self.message)

    @property
    def error_type(self) -> str:
        return self.kind.value


class StudentDirectory(Protocol):
    """Candidate lookup: case-insensitive name, optional exact grade/section."""

    def find_student_ids(self, name: str, grade: int | None, section: str | None) -> list[str]:
        ...


def cache_key(name: str, grade: int | None, section: str | None) -> str:
    grade_part = "" if grade is None else str(grade)
    return f"{name.lower()}|{grade_part}|{(section or '').lower()}"


class StudentResolver:
    def __init__(self, directory: StudentDirectory) -> None:
        self.directory = directory
        self._cache: dict[str, str] = {}
        self.lookups = 0  # directory 問い合わせ回数

    def resolve(
        self,
        name: str | None,
        grade: int | None = None,
        section: str | None = None,
        student_id: str | None = None,
    ) -> str:
        """Return the student id for a row or raise StudentResolutionError.

        An explicit student_id is returned unverified. Otherwise the name is
        required, and grade/section narrow the match when present.
        """
        if student_id:
            return student_id
        if not name:
            raise StudentResolutionError(ResolutionFailure.REQUIRED)

        key = cache_key(name, grade, section)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        self.lookups += 1
        try:
            matches = self.directory.find_student_ids(name, grade, section)
        except Exception as e:
            logger.warning("student lookup failed key=%s: %s", key, e)
            raise StudentResolutionError(ResolutionFailure.UNRESOLVED) from e

        if not matches:
            raise StudentResolutionError(ResolutionFailure.UNRESOLVED)
        if len(matches) > 1:
            raise StudentResolutionError(ResolutionFailure.AMBIGUOUS)

        self._cache[key] = matches[0]
        return matches[0]

    @property
    def cache_size(self) -> int:
        return len(self._cache)
