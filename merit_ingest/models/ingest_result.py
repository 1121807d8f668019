from __future__ import annotations

import statistics
from dataclasses import dataclass, field
from datetime import datetime

from .error_record import RowError

"""Result models for an ingestion call.

IngestResult carries everything the caller persists or displays: the
accepted count, the per-row error list, the audit upload id, and timing
metrics for the SUMMARY line.
"""


@dataclass(frozen=True)
class IngestResult:
    """Aggregated outcome of one ingestion call."""
    upload_id: str | None  # 監査レコード ID (mock モードでは None)
    parsed_rows: int  # パーサが返した行数
    accepted_count: int  # 挿入済みイベント数
    errors: list[RowError] = field(default_factory=list)
    students_notified: int = 0  # insights 通知対象の生徒数
    deleted_rows: int = 0  # replace_* で削除した行数
    total_batches: int = 0
    avg_batch_seconds: float = 0.0
    p95_batch_seconds: float = 0.0
    start_time: datetime | None = None
    end_time: datetime | None = None
    elapsed_seconds: float = 0.0
    throughput_rows_per_sec: float = 0.0

    @property
    def rejected_count(self) -> int:
        return len(self.errors)

    def as_response(self) -> dict[str, object]:
        """Shape returned to the upload route caller."""
        return {
            "upload_id": self.upload_id,
            "accepted": self.accepted_count,
            "students_updated": self.students_notified,
            "errors": [e.as_dict() for e in self.errors],
        }


class BatchStatsAccumulator:
    """Helper class to accumulate batch timing statistics.

    Collects individual batch timing data and calculates summary statistics.
    """

    def __init__(self) -> None:
        self.batch_times: list[float] = []

    def add_batch_time(self, elapsed_seconds: float) -> None:
        """Add a batch timing measurement."""
        self.batch_times.append(elapsed_seconds)

    def get_stats(self) -> tuple[int, float, float]:
        """Calculate batch statistics.

        Returns:
            tuple: (total_batches, avg_batch_seconds, p95_batch_seconds)
        """
        if not self.batch_times:
            return (0, 0.0, 0.0)

        total_batches = len(self.batch_times)
        avg_batch_seconds = statistics.mean(self.batch_times)

        if total_batches == 1:
            p95_batch_seconds = self.batch_times[0]
        else:
            p95_batch_seconds = statistics.quantiles(
                self.batch_times, n=20, method='inclusive'
            )[18]  # 95th percentile (19th out of 20 quantiles, 0-indexed)

        return (total_batches, avg_batch_seconds, p95_batch_seconds)
