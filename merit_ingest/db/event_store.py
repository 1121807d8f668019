from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Any

from ..models.config_models import TableNames
from ..models.event import EVENT_COLUMNS, NormalizedEvent
from ..models.ingest_request import IngestRequest
from .batch_insert import BatchInsertError, BatchMetrics, batch_insert

"""Write-side access to the behaviour tables.

Every method issues statements on the caller's cursor. Transactions are
explicit (BEGIN/COMMIT/ROLLBACK statements on a connection in autocommit
mode) so the coordinator decides the boundaries: the audit record commits on
its own, each insert batch is its own transaction.
"""

__all__ = [
    "EventStoreError",
    "EventStore",
    "WRITE_ERRORS",
]

logger = logging.getLogger(__name__)


class EventStoreError(Exception):
    pass


class EventStore:
    def __init__(self, cursor: Any, tables: TableNames | None = None) -> None:
        self.cursor = cursor
        self.tables = tables or TableNames()

    def _execute(self, sql: str, params: Sequence[Any] | None = None) -> None:
        try:
            self.cursor.execute(sql, params)
        except Exception as e:
            raise EventStoreError(f"{sql.split()[0]} failed: {e}") from e

    def begin(self) -> None:
        self._execute("BEGIN")

    def commit(self) -> None:
        self._execute("COMMIT")

    def rollback(self) -> None:
        """ROLLBACK that never raises; the original failure is what matters."""
        try:
            self.cursor.execute("ROLLBACK")
        except Exception:
            logger.debug("rollback failed", exc_info=True)

    def create_upload(self, request: IngestRequest, row_count: int) -> str:
        """Insert the audit record for one ingestion call and return its upload_id."""
        sql = (
            f"INSERT INTO {self.tables.uploads} "
            "(uploaded_by, source_system, file_name, row_count, upload_type, range_start, range_end) "
            "VALUES (%s, %s, %s, %s, %s, %s, %s) RETURNING upload_id"
        )
        self._execute(sql, (
            request.uploaded_by,
            request.source_system,
            request.filename,
            row_count,
            request.upload_type.value,
            request.range_start,
            request.range_end,
        ))
        row = self.cursor.fetchone()
        if not row:
            raise EventStoreError("upload record insert returned no upload_id")
        return str(row[0])

    def delete_all(self) -> int:
        self._execute(f"DELETE FROM {self.tables.events}")
        return max(self.cursor.rowcount or 0, 0)

    def delete_range(self, start: str, end: str) -> int:
        """Delete events with start <= event_date <= end (inclusive bounds)."""
        self._execute(
            f"DELETE FROM {self.tables.events} WHERE event_date >= %s AND event_date <= %s",
            (start, end),
        )
        return max(self.cursor.rowcount or 0, 0)

    def insert_events(
        self,
        upload_id: str,
        events: Sequence[NormalizedEvent],
        metrics_callback: Callable[[BatchMetrics], None] | None = None,
    ) -> int:
        """Insert one batch of events tagged with upload_id.

        Raises BatchInsertError; the caller rolls the batch back.
        """
        if not events:
            return 0
        columns = ("upload_id",) + EVENT_COLUMNS
        rows = [(upload_id,) + e.to_row() for e in events]
        result = batch_insert(
            self.cursor,
            self.tables.events,
            columns,
            rows,
            page_size=len(rows),
            metrics_callback=metrics_callback,
        )
        return result.inserted_rows


# re-exported for callers catching write failures in one place
WRITE_ERRORS: tuple[type[Exception], ...] = (EventStoreError, BatchInsertError)
