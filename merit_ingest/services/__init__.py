"""Ingestion services: normalization, student resolution and the coordinator."""

from .ingest import (
    EmptyUploadError,
    IngestError,
    IngestWriteError,
    ReplaceRangeError,
    ReportFormatError,
    UnsupportedUploadError,
    UploadTooLargeError,
    ingest_upload,
)
from .student_resolver import StudentResolutionError, StudentResolver

__all__ = [
    "EmptyUploadError",
    "IngestError",
    "IngestWriteError",
    "ReplaceRangeError",
    "ReportFormatError",
    "UnsupportedUploadError",
    "UploadTooLargeError",
    "ingest_upload",
    "StudentResolutionError",
    "StudentResolver",
]
