from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""Row-level error and error-log record models.

RowError is what an ingestion call returns to its caller for every rejected
row. ErrorRecord is the JSON Lines representation written to the error log;
it supports row=-1 as a sentinel for call-level failures where no specific
row applies.

The ErrorRecord adheres to the JSON schema contract shipped in
merit_ingest/logging/error_log_schema.json.
"""

__all__ = [
    "RowError",
    "ErrorRecord",
    "CALL_LEVEL_ROW",
]

CALL_LEVEL_ROW = -1


@dataclass(frozen=True)
class RowError:
    """A rejected source row.

    Attributes:
        row_number: 1-based position in the source file with the header on row 1
            (first data row = 2)
        message: User-facing correction hint
        error_type: Classification in UPPER_SNAKE_CASE format
    """
    row_number: int
    message: str
    error_type: str = "ROW_REJECTED"

    def as_dict(self) -> dict[str, object]:
        return {"row_number": self.row_number, "message": self.message}


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        file: Uploaded filename being processed
        row: Row number (1-based, header = 1). -1 for call-level errors
        error_type: Error classification in UPPER_SNAKE_CASE format
        message: Error description (row message or datastore error)
    """
    timestamp: str  # ISO8601 UTC
    file: str
    row: int  # 行番号。不明な場合 -1 許容
    error_type: str  # UPPER_SNAKE
    message: str

    @staticmethod
    def create(file: str, row: int, error_type: str, message: str) -> ErrorRecord:
        """Create a new ErrorRecord with current UTC timestamp."""
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            file=file,
            row=row,
            error_type=error_type,
            message=message,
        )

    @staticmethod
    def from_row_error(file: str, error: RowError) -> ErrorRecord:
        return ErrorRecord.create(file, error.row_number, error.error_type, error.message)

    def to_json_line(self) -> str:
        """Serialize ErrorRecord to JSON Lines format (no extra keys)."""
        return json.dumps(asdict(self), ensure_ascii=False)
