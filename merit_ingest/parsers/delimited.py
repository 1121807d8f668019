from __future__ import annotations

import logging
import re

from ..models.event import RawRow

"""Delimited-text (CSV) reader.

Character-by-character tokenizer rather than a split-based reader so that
quoted fields may contain commas and line breaks. RFC4180-style "" doubling
is the only escape. The first non-blank row is the header; every later row
maps positionally onto the normalized header keys.

The reader is total: malformed quoting never raises. An unterminated quote
consumes the rest of the input and the resulting mis-split columns are
absorbed silently (a WARN line is logged so operators can spot it).
"""

__all__ = [
    "normalise_header",
    "tokenize",
    "parse_csv",
    "decode_payload",
]

logger = logging.getLogger(__name__)

BOM = "\ufeff"
_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def normalise_header(value: str) -> str:
    """Trim, strip a leading BOM, lowercase, collapse non-[a-z0-9] runs to '_'."""
    return _NON_ALNUM.sub("_", value.strip().lstrip(BOM).strip().lower())


def decode_payload(payload: bytes) -> str:
    """Decode upload bytes as UTF-8, dropping a BOM; bad bytes are replaced."""
    return payload.decode("utf-8-sig", errors="replace")


def _is_blank(row: list[str]) -> bool:
    return not any(cell.strip() for cell in row)


def tokenize(text: str) -> list[list[str]]:
    """Split text into rows of raw (untrimmed) fields, skipping blank rows."""
    rows: list[list[str]] = []
    row: list[str] = []
    current: list[str] = []
    in_quotes = False
    i = 0
    n = len(text)

    def end_row() -> None:
        nonlocal row, current
        row.append("".join(current))
        if not _is_blank(row):
            rows.append(row)
        row = []
        current = []

    while i < n:
        ch = text[i]
        if ch == '"':
            if in_quotes and i + 1 < n and text[i + 1] == '"':
                current.append('"')
                i += 2
                continue
            in_quotes = not in_quotes
        elif ch == "," and not in_quotes:
            row.append("".join(current))
            current = []
        elif ch in "\r\n" and not in_quotes:
            if ch == "\r" and i + 1 < n and text[i + 1] == "\n":
                i += 1
            end_row()
        else:
            current.append(ch)
        i += 1

    if in_quotes:
        logger.warning("csv: unterminated quoted field; rest of input absorbed into one field")
    end_row()
    return rows


def parse_csv(text: str) -> list[RawRow]:
    """Parse CSV text into RawRows keyed by normalized header names.

    Parameters
    ----------
    text: decoded CSV text (CR, LF or CRLF line endings, optional BOM)

    Returns an empty list when there is no header row.
    """
    rows = tokenize(text)
    if not rows:
        return []
    headers = [normalise_header(h) for h in rows[0]]
    records: list[RawRow] = []
    for line_no, cells in enumerate(rows[1:], start=2):
        if len(cells) > len(headers):
            logger.debug("csv: row %d has %d fields for %d headers", line_no, len(cells), len(headers))
        record: RawRow = {}
        for index, header in enumerate(headers):
            record[header] = cells[index].strip() if index < len(cells) else ""
        records.append(record)
    return records
