"""Domain models for the behaviour-event ingestion tool.

This package contains all domain model classes used throughout the application:
configuration, the raw/normalized event shapes, the ingestion call surface and
its result, and the error records.
"""

from .config_models import DatabaseConfig, IngestConfig, ReportLayout, TableNames
from .error_record import ErrorRecord, RowError
from .event import EventType, NormalizedEvent, RawRow, Severity
from .ingest_request import IngestRequest, UploadKind, UploadType
from .ingest_result import BatchStatsAccumulator, IngestResult

__all__ = [
    # Configuration models
    "DatabaseConfig",
    "IngestConfig",
    "ReportLayout",
    "TableNames",
    # Event models
    "RawRow",
    "EventType",
    "Severity",
    "NormalizedEvent",
    # Call surface
    "IngestRequest",
    "UploadKind",
    "UploadType",
    "IngestResult",
    "BatchStatsAccumulator",
    # Errors
    "ErrorRecord",
    "RowError",
]
