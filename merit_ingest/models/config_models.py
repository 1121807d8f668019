from __future__ import annotations

from dataclasses import dataclass, field

"""Config dataclasses for the behaviour-event ingestion tool.

These are the typed domain models returned by merit_ingest/config/loader.py.
Every field has a default so that a missing
config file (or a partial one) still yields a usable configuration.
"""

DEFAULT_BATCH_SIZE = 500
DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024  # 10 MiB
DEFAULT_SOURCE_SYSTEM = "csv_upload"
DEFAULT_REPORT_SOURCE_SYSTEM = "Discipline Event Summary PDF"


@dataclass(frozen=True)
class DatabaseConfig:
    """Database connection configuration.

    Used as fallback when environment variables are not set.
    Environment variables take precedence over these values.
    """
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None


@dataclass(frozen=True)
class TableNames:
    """Target table names in the external datastore."""
    students: str = "students"
    events: str = "behaviour_events"
    uploads: str = "behaviour_uploads"


@dataclass(frozen=True)
class ReportLayout:
    """Conventions of one institution's discipline report PDF.

    The merit rule and the sign handling of points are specific to the
    "Discipline Event Summary" export; other layouts override them here.
    """
    merit_keywords: tuple[str, ...] = ("Buy Back",)
    negative_points_is_merit: bool = True
    absolute_points: bool = True  # 符号は event_type 判定にのみ使用
    day_first_dates: bool = True  # DD/MM/YYYY
    source_system: str = DEFAULT_REPORT_SOURCE_SYSTEM

    def is_merit(self, header: str, raw_points: int | None) -> bool:
        lowered = header.lower()
        if any(k.lower() in lowered for k in self.merit_keywords):
            return True
        return bool(self.negative_points_is_merit and raw_points is not None and raw_points < 0)


@dataclass(frozen=True)
class IngestConfig:
    """Root configuration object for an ingestion call."""
    batch_size: int = DEFAULT_BATCH_SIZE
    max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES
    default_source_system: str = DEFAULT_SOURCE_SYSTEM
    error_log_dir: str = "./logs"
    tables: TableNames = field(default_factory=TableNames)
    report_layout: ReportLayout = field(default_factory=ReportLayout)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
