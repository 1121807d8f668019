from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from typing import Protocol

from ..models.event import NormalizedEvent

"""Downstream notification after a successful insert.

The analytics side ("insights") recomputes per-student aggregates for the
students an upload touched. Notification is best-effort: a failing notifier
is logged and reported as zero students, never as a failed upload.
"""

__all__ = [
    "InsightsNotifier",
    "LoggingInsightsNotifier",
    "affected_student_ids",
    "notify_insights",
]

logger = logging.getLogger(__name__)


class InsightsNotifier(Protocol):
    def notify(self, student_ids: Sequence[str], upload_id: str | None) -> int:
        """Request reprocessing; returns the number of students processed."""
        ...


class LoggingInsightsNotifier:
    """Default notifier: records the request in the application log."""

    def notify(self, student_ids: Sequence[str], upload_id: str | None) -> int:
        logger.info("insights: %d students queued (upload_id=%s)", len(student_ids), upload_id or "-")
        return len(student_ids)


def affected_student_ids(events: Iterable[NormalizedEvent]) -> list[str]:
    """Distinct student ids in first-seen order."""
    return list(dict.fromkeys(e.student_id for e in events))


def notify_insights(
    notifier: InsightsNotifier | None,
    events: Sequence[NormalizedEvent],
    upload_id: str | None,
) -> int:
    if notifier is None or not events:
        return 0
    student_ids = affected_student_ids(events)
    try:
        return notifier.notify(student_ids, upload_id)
    except Exception as e:
        logger.warning("insights notification failed (upload_id=%s): %s", upload_id or "-", e)
        return 0
