from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from .config_models import DEFAULT_SOURCE_SYSTEM

"""Ingestion call surface models.

IngestRequest abstracts the upload route's form payload: the file bytes and
name, the declared content type, the free-text source system label and the
destructive-replace directive.
"""

__all__ = [
    "UploadType",
    "UploadKind",
    "IngestRequest",
]


class UploadType(Enum):
    """Destructive pre-step directive.

    - APPEND: no deletion
    - REPLACE_ALL: delete every existing event row before inserting
    - REPLACE_RANGE: delete rows whose event_date falls in [range_start, range_end]
    """
    APPEND = "append"
    REPLACE_ALL = "replace_all"
    REPLACE_RANGE = "replace_range"


class UploadKind(Enum):
    PDF = "pdf"
    DELIMITED = "delimited"


PDF_CONTENT_TYPES = frozenset({"application/pdf", "application/x-pdf"})
DELIMITED_CONTENT_TYPES = frozenset({
    "text/csv",
    "text/plain",
    "application/csv",
})
DELIMITED_SUFFIXES = frozenset({".csv", ".txt"})


@dataclass(frozen=True)
class IngestRequest:
    payload: bytes
    filename: str
    content_type: str | None = None
    source_system: str = DEFAULT_SOURCE_SYSTEM
    upload_type: UploadType = UploadType.APPEND
    range_start: str | None = None
    range_end: str | None = None
    uploaded_by: str | None = None

    @property
    def size(self) -> int:
        return len(self.payload)

    def detect_kind(self) -> UploadKind | None:
        """PDF vs delimited text from declared content type or file suffix.

        Returns None when neither matches (unsupported upload).
        """
        ctype = (self.content_type or "").split(";", 1)[0].strip().lower()
        suffix = Path(self.filename).suffix.lower()
        if ctype in PDF_CONTENT_TYPES or suffix == ".pdf":
            return UploadKind.PDF
        if ctype in DELIMITED_CONTENT_TYPES or suffix in DELIMITED_SUFFIXES:
            return UploadKind.DELIMITED
        return None
