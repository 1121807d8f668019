from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

from ..models.error_record import ErrorRecord

"""JSON Lines error log buffer.

- Fixed schema (error_log_schema.json, no extra keys)
- One file per buffer: `<log_dir>/ingest-errors-YYYYMMDD-HHMMSS.log` (UTC),
  created on the first flush that has records
- Records are buffered in memory and appended on flush()
"""

__all__ = [
    "ErrorRecord",
    "ErrorLogBuffer",
    "LOG_FILE_PREFIX",
]

DEFAULT_LOGS_DIR = Path("./logs")
LOG_FILE_PREFIX = "ingest-errors-"
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"


class ErrorLogBuffer:
    """In-memory buffer for error records. Flush writes JSON Lines.

    シリアル実行前提 (スレッド安全性不要)
    """

    def __init__(self, log_dir: Path | str | None = None) -> None:
        self.log_dir = Path(log_dir) if log_dir is not None else DEFAULT_LOGS_DIR
        self._records: list[ErrorRecord] = []
        self._file_path: Path | None = None

    @property
    def file_path(self) -> Path:
        if self._file_path is None:
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._file_path = self.log_dir / f"{LOG_FILE_PREFIX}{stamp}.log"
        return self._file_path

    @property
    def written(self) -> bool:
        return self._file_path is not None and self._file_path.exists()

    def append(self, record: ErrorRecord) -> None:
        self._records.append(record)

    def __len__(self) -> int:
        return len(self._records)

    def flush(self) -> Path | None:
        """Append buffered records to the log file.

        Returns the file path, or None when nothing has ever been written.
        """
        if not self._records:
            return self._file_path
        fp = self.file_path
        fp.parent.mkdir(parents=True, exist_ok=True)
        with fp.open("a", encoding="utf-8") as f:
            for r in self._records:
                f.write(r.to_json_line() + "\n")
        self._records.clear()
        return fp
