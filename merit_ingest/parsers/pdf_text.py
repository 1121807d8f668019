from __future__ import annotations

import io
import logging

import pdfplumber

"""PDF text recovery for discipline report uploads.

pdfplumber pulls the text of every page; pages are joined with newlines and
split back into trimmed lines. Repeated table headers and page separators
are dropped before the lines reach ReportTextExtractor.
"""

__all__ = [
    "ReportParseError",
    "clean_report_lines",
    "extract_report_text",
    "extract_report_lines",
]

logger = logging.getLogger(__name__)

# Column header repeated at the top of every report page
TABLE_HEADER_MARKER = "Author Details Points"
PAGE_SEPARATOR_PREFIX = "--"


class ReportParseError(Exception):
    """Raised when the upload cannot be opened as a PDF at all."""


def clean_report_lines(text: str) -> list[str]:
    lines: list[str] = []
    for raw in text.split("\n"):
        line = raw.strip()
        if not line or line.startswith(PAGE_SEPARATOR_PREFIX) or TABLE_HEADER_MARKER in line:
            continue
        lines.append(line)
    return lines


def extract_report_text(payload: bytes) -> str:
    try:
        with pdfplumber.open(io.BytesIO(payload)) as pdf:
            pages = [page.extract_text() or "" for page in pdf.pages]
    except Exception as e:
        raise ReportParseError(
            "Failed to parse PDF. Ensure it matches the Discipline Event Summary format."
        ) from e
    logger.debug("pdf: extracted text from %d pages", len(pages))
    return "\n".join(pages)


def extract_report_lines(payload: bytes) -> list[str]:
    return clean_report_lines(extract_report_text(payload))
