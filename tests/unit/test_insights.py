from __future__ import annotations

from unittest.mock import MagicMock

from merit_ingest.models.event import EventType, NormalizedEvent
from merit_ingest.services.insights import (
    LoggingInsightsNotifier,
    affected_student_ids,
    notify_insights,
)


def _events(*ids: str) -> list[NormalizedEvent]:
    return [NormalizedEvent(i, EventType.DEMERIT, "2026-01-05", 1) for i in ids]


def test_affected_student_ids_distinct_in_order():
    assert affected_student_ids(_events("b", "a", "b", "c", "a")) == ["b", "a", "c"]


def test_notify_insights_no_events_or_notifier():
    notifier = MagicMock()
    assert notify_insights(notifier, [], "u-1") == 0
    notifier.notify.assert_not_called()
    assert notify_insights(None, _events("a"), "u-1") == 0


def test_logging_notifier_counts_students(caplog):
    with caplog.at_level("INFO", logger="merit_ingest.services.insights"):
        assert notify_insights(LoggingInsightsNotifier(), _events("a", "b", "a"), None) == 2
    assert any("2 students queued" in r.getMessage() for r in caplog.records)


def test_notifier_failure_returns_zero():
    notifier = MagicMock()
    notifier.notify.side_effect = ConnectionError("timeout")
    assert notify_insights(notifier, _events("a"), "u-1") == 0
