from __future__ import annotations

import logging
import math
from collections.abc import Iterator, Sequence
from datetime import UTC, datetime
from typing import Any

from ..db.event_store import WRITE_ERRORS, EventStore
from ..db.student_directory import InMemoryStudentDirectory, PostgresStudentDirectory
from ..logging.error_log import ErrorLogBuffer
from ..models.config_models import IngestConfig
from ..models.error_record import CALL_LEVEL_ROW, ErrorRecord, RowError
from ..models.event import NormalizedEvent, RawRow
from ..models.ingest_request import IngestRequest, UploadKind, UploadType
from ..models.ingest_result import BatchStatsAccumulator, IngestResult
from ..parsers.delimited import decode_payload, parse_csv
from ..parsers.pdf_text import ReportParseError, extract_report_lines
from ..parsers.report_text import ReportTextExtractor
from .insights import InsightsNotifier, LoggingInsightsNotifier, notify_insights
from .normalizer import field_value, normalise_row, parse_date, parse_grade
from .progress import ProgressTracker
from .student_resolver import StudentDirectory, StudentResolutionError, StudentResolver

"""Ingestion coordinator.

ingest_upload() runs one upload end to end:

1. call-level validation (size ceiling, supported kind, replace range)
2. parse into RawRows (CSV tokenizer or PDF text + report extractor)
3. audit record -> upload_id
4. per row: resolve student (cached per call), normalize, collect RowErrors
5. destructive pre-step + batched inserts, one transaction per batch
6. best-effort insights notification

Call-level failures raise IngestError subclasses. Row-level failures never
raise: they are returned in IngestResult.errors and written to the error log.
With cursor=None (mock mode) nothing is written to the database.
"""

__all__ = [
    "IngestError",
    "UploadTooLargeError",
    "EmptyUploadError",
    "UnsupportedUploadError",
    "ReplaceRangeError",
    "ReportFormatError",
    "IngestWriteError",
    "validate_request",
    "parse_upload",
    "process_rows",
    "ingest_upload",
]

logger = logging.getLogger(__name__)


class IngestError(Exception):
    """Base exception for call-level ingestion failures."""
    error_type = "INGEST_ERROR"


class UploadTooLargeError(IngestError):
    error_type = "UPLOAD_TOO_LARGE"


class EmptyUploadError(IngestError):
    error_type = "EMPTY_UPLOAD"


class UnsupportedUploadError(IngestError):
    error_type = "UNSUPPORTED_UPLOAD"


class ReplaceRangeError(IngestError):
    error_type = "INVALID_REPLACE_RANGE"


class ReportFormatError(IngestError):
    """The PDF could not be read (wraps ReportParseError)."""
    error_type = "PDF_PARSE_ERROR"


class IngestWriteError(IngestError):
    """Audit record, delete or insert batch failed; earlier batches stay committed."""
    error_type = "WRITE_FAILED"

    def __init__(self, message: str, inserted_rows: int = 0) -> None:
        super().__init__(message)
        self.inserted_rows = inserted_rows


def validate_request(request: IngestRequest, config: IngestConfig) -> tuple[UploadKind, tuple[str, str] | None]:
    """Checks that must pass before anything is parsed or written.

    Returns the upload kind and, for replace_range, the normalized
    (start, end) bounds.
    """
    if request.size > config.max_upload_bytes:
        limit_mb = config.max_upload_bytes / (1024 * 1024)
        raise UploadTooLargeError(f"File size must be under {limit_mb:g}MB.")
    if request.size == 0:
        raise EmptyUploadError("CSV or PDF file is required.")

    kind = request.detect_kind()
    if kind is None:
        raise UnsupportedUploadError(
            f"Unsupported file type: {request.filename} ({request.content_type or 'unknown'}). "
            "Upload a CSV or PDF file."
        )

    date_range = None
    if request.upload_type is UploadType.REPLACE_RANGE:
        start = parse_date(request.range_start)
        end = parse_date(request.range_end)
        if start is None or end is None:
            raise ReplaceRangeError("replace_range requires a valid range_start and range_end.")
        if start > end:
            raise ReplaceRangeError(f"range_start {start} is after range_end {end}.")
        date_range = (start, end)
    return kind, date_range


def parse_upload(request: IngestRequest, kind: UploadKind, config: IngestConfig) -> list[RawRow]:
    if kind is UploadKind.PDF:
        try:
            lines = extract_report_lines(request.payload)
        except ReportParseError as e:
            raise ReportFormatError(str(e)) from e
        rows = ReportTextExtractor(config.report_layout).extract(lines)
        logger.debug("pdf: %d lines -> %d rows", len(lines), len(rows))
        return rows
    return parse_csv(decode_payload(request.payload))


def _process_row(
    row: RawRow,
    row_number: int,
    resolver: StudentResolver,
    default_source_system: str,
) -> NormalizedEvent | RowError:
    section = field_value(row, "section") or None
    try:
        student_id = resolver.resolve(
            field_value(row, "student_name") or None,
            parse_grade(field_value(row, "grade")),
            section,
            student_id=field_value(row, "student_id") or None,
        )
    except StudentResolutionError as e:
        return RowError(row_number, e.message, e.error_type)
    return normalise_row(row, row_number, student_id, default_source_system)


def process_rows(
    rows: Sequence[RawRow],
    resolver: StudentResolver,
    default_source_system: str,
) -> tuple[list[NormalizedEvent], list[RowError]]:
    """Resolve and normalize rows in source order.

    Row numbers are index + 2 (header is row 1).
    """
    events: list[NormalizedEvent] = []
    errors: list[RowError] = []
    with ProgressTracker(len(rows)) as progress:
        for index, row in enumerate(rows):
            outcome = _process_row(row, index + 2, resolver, default_source_system)
            if isinstance(outcome, RowError):
                errors.append(outcome)
            else:
                events.append(outcome)
            progress.advance()
        progress.set_postfix(accepted=len(events), rejected=len(errors))
    return events, errors


def _chunks(events: Sequence[NormalizedEvent], size: int) -> Iterator[Sequence[NormalizedEvent]]:
    for start in range(0, len(events), size):
        yield events[start:start + size]


def _apply_replace(store: EventStore, upload_type: UploadType, date_range: tuple[str, str] | None) -> int:
    if upload_type is UploadType.REPLACE_ALL:
        deleted = store.delete_all()
    elif upload_type is UploadType.REPLACE_RANGE and date_range is not None:
        deleted = store.delete_range(*date_range)
    else:
        return 0
    logger.info("%s: deleted %d existing events", upload_type.value, deleted)
    return deleted


def _write_events(
    store: EventStore | None,
    events: Sequence[NormalizedEvent],
    upload_type: UploadType,
    date_range: tuple[str, str] | None,
    upload_id: str | None,
    batch_size: int,
    stats: BatchStatsAccumulator,
) -> tuple[int, int]:
    """Returns (inserted_rows, deleted_rows)."""
    if store is None:
        # mock mode: count batches without timing
        for _ in range(math.ceil(len(events) / batch_size)):
            stats.add_batch_time(0.0)
        return len(events), 0

    if not events and upload_type is UploadType.APPEND:
        return 0, 0

    # replace with no accepted rows: one delete-only transaction
    batches = list(_chunks(events, batch_size)) or [()]
    inserted = 0
    deleted = 0
    for index, batch in enumerate(batches):
        try:
            store.begin()
            if index == 0:
                deleted = _apply_replace(store, upload_type, date_range)
            count = store.insert_events(
                upload_id or "",
                batch,
                metrics_callback=lambda m: stats.add_batch_time(m.elapsed_seconds),
            )
            store.commit()
        except WRITE_ERRORS as e:
            store.rollback()
            raise IngestWriteError(
                f"batch {index + 1} failed ({inserted} rows already committed): {e}",
                inserted_rows=inserted,
            ) from e
        inserted += count
        logger.debug("batch %d committed (%d rows)", index + 1, len(batch))
    return inserted, deleted


def _record_call_error(error_log: ErrorLogBuffer, filename: str, error: IngestError) -> None:
    error_log.append(ErrorRecord.create(filename, CALL_LEVEL_ROW, error.error_type, str(error)))
    _flush_error_log(error_log)


def _flush_error_log(error_log: ErrorLogBuffer) -> None:
    try:
        path = error_log.flush()
    except OSError as e:
        logger.warning("could not write error log: %s", e)
        return
    if path is not None and error_log.written:
        logger.debug("error log: %s", path)


def ingest_upload(
    request: IngestRequest,
    config: IngestConfig | None = None,
    cursor: Any = None,
    *,
    directory: StudentDirectory | None = None,
    notifier: InsightsNotifier | None = None,
    error_log: ErrorLogBuffer | None = None,
) -> IngestResult:
    """Ingest one uploaded file.

    Args:
        request: upload payload and directives
        config: ingestion settings (defaults when None)
        cursor: psycopg2 cursor on an autocommit connection (None = mock mode)
        directory: student lookup; defaults to the students table (live) or an
            empty roster (mock)
        notifier: insights notifier; defaults to LoggingInsightsNotifier
        error_log: JSON Lines buffer; defaults to one under config.error_log_dir

    Raises:
        IngestError: call-level failure. Nothing has been written unless it
            is an IngestWriteError.
    """
    config = config or IngestConfig()
    error_log = error_log if error_log is not None else ErrorLogBuffer(config.error_log_dir)
    start_time = datetime.now(UTC)

    try:
        kind, date_range = validate_request(request, config)
        rows = parse_upload(request, kind, config)
        if not rows:
            raise EmptyUploadError("No rows found in file.")
    except IngestError as e:
        _record_call_error(error_log, request.filename, e)
        raise
    logger.info("%s: parsed %d rows (%s, %s)", request.filename, len(rows), kind.value, request.upload_type.value)

    store = EventStore(cursor, config.tables) if cursor is not None else None
    if directory is None:
        if cursor is not None:
            directory = PostgresStudentDirectory(cursor, config.tables.students)
        else:
            directory = InMemoryStudentDirectory()

    upload_id = None
    if store is not None:
        try:
            upload_id = store.create_upload(request, len(rows))
        except WRITE_ERRORS as e:
            err = IngestWriteError(f"could not create upload record: {e}")
            _record_call_error(error_log, request.filename, err)
            raise err from e

    resolver = StudentResolver(directory)
    source_system = request.source_system or config.default_source_system
    events, errors = process_rows(rows, resolver, source_system)
    for row_error in errors:
        error_log.append(ErrorRecord.from_row_error(request.filename, row_error))
    logger.debug("resolver: %d lookups, %d cached", resolver.lookups, resolver.cache_size)

    stats = BatchStatsAccumulator()
    try:
        inserted, deleted = _write_events(
            store, events, request.upload_type, date_range, upload_id, config.batch_size, stats
        )
    except IngestWriteError as e:
        _record_call_error(error_log, request.filename, e)
        raise

    notified = 0
    if inserted:
        notified = notify_insights(notifier or LoggingInsightsNotifier(), events, upload_id)

    _flush_error_log(error_log)
    if errors:
        logger.warning("%s: %d rows rejected", request.filename, len(errors))

    end_time = datetime.now(UTC)
    elapsed_seconds = (end_time - start_time).total_seconds()
    throughput_rps = inserted / elapsed_seconds if elapsed_seconds > 0 else 0.0
    total_batches, avg_batch, p95_batch = stats.get_stats()

    return IngestResult(
        upload_id=upload_id,
        parsed_rows=len(rows),
        accepted_count=inserted,
        errors=errors,
        students_notified=notified,
        deleted_rows=deleted,
        total_batches=total_batches,
        avg_batch_seconds=avg_batch,
        p95_batch_seconds=p95_batch,
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=elapsed_seconds,
        throughput_rows_per_sec=throughput_rps,
    )
