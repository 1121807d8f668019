"""Source document parsers producing RawRows."""

from .delimited import decode_payload, normalise_header, parse_csv
from .pdf_text import ReportParseError, extract_report_lines
from .report_text import ReportTextExtractor, classify_line, parse_header_line

__all__ = [
    "decode_payload",
    "normalise_header",
    "parse_csv",
    "ReportParseError",
    "extract_report_lines",
    "ReportTextExtractor",
    "classify_line",
    "parse_header_line",
]
