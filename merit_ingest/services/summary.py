from __future__ import annotations

from ..models.ingest_result import IngestResult

"""SUMMARY line rendering.

Format:
SUMMARY rows={parsed} accepted={n} rejected={e} batches={b}
upload_id={id|-} elapsed_sec={s} throughput_rps={r}
"""

__all__ = [
    "format_number",
    "render_summary_line",
]


def format_number(value: float) -> str:
    """Integers without a decimal part, tiny values without scientific notation."""
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if abs(value) < 0.01:
        return f"{value:.6f}".rstrip('0').rstrip('.')
    return str(round(value, 4))


def render_summary_line(result: IngestResult) -> str:
    """Render the SUMMARY line for one ingestion call.

    Examples:
        >>> result = IngestResult(upload_id="u-1", parsed_rows=10, accepted_count=8,
        ...     total_batches=1, elapsed_seconds=2.0, throughput_rows_per_sec=4.0)
        >>> render_summary_line(result)
        'SUMMARY rows=10 accepted=8 rejected=0 batches=1 upload_id=u-1 elapsed_sec=2 throughput_rps=4'
    """
    return (
        f"SUMMARY rows={result.parsed_rows} "
        f"accepted={result.accepted_count} "
        f"rejected={result.rejected_count} "
        f"batches={result.total_batches} "
        f"upload_id={result.upload_id or '-'} "
        f"elapsed_sec={format_number(result.elapsed_seconds)} "
        f"throughput_rps={format_number(result.throughput_rows_per_sec)}"
    )
