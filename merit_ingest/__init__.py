"""Behaviour (merit/demerit) event ingestion from CSV and PDF reports."""

from .models import IngestConfig, IngestRequest, IngestResult, UploadType
from .services import IngestError, ingest_upload

__version__ = "0.1.0"

__all__ = [
    "IngestConfig",
    "IngestRequest",
    "IngestResult",
    "UploadType",
    "IngestError",
    "ingest_upload",
]
