from __future__ import annotations

import re
from pathlib import Path

from merit_ingest.cli import main as cli_main
from merit_ingest.models.ingest_result import IngestResult
from merit_ingest.services.summary import render_summary_line

"""SUMMARY line format contract."""

SUMMARY_PATTERN = re.compile(
    r"^SUMMARY\s+rows=([0-9]+)\s+accepted=([0-9]+)\s+rejected=([0-9]+)\s+batches=([0-9]+)\s+"
    r"upload_id=(\S+)\s+elapsed_sec=([0-9]+\.?[0-9]*)\s+throughput_rps=([0-9]+\.?[0-9]*)$"
)


def test_summary_pattern_example_line():
    line = "SUMMARY rows=10 accepted=8 rejected=2 batches=1 upload_id=- elapsed_sec=0.84 throughput_rps=9.5238"
    assert SUMMARY_PATTERN.match(line)


def test_rendered_line_matches_pattern():
    result = IngestResult(
        upload_id="0b7f2c1e-2d3a-4f4e-9b1a-6c3d2e1f0a9b",
        parsed_rows=1200,
        accepted_count=1200,
        total_batches=3,
        elapsed_seconds=0.0004,
        throughput_rows_per_sec=3000000.0,
    )
    m = SUMMARY_PATTERN.match(render_summary_line(result))
    assert m
    assert m.group(4) == "3"


def test_cli_emits_exactly_one_summary_line(temp_workdir: Path, sample_csv: str, capsys):
    events = temp_workdir / "data" / "events.csv"
    events.write_text(sample_csv, encoding="utf-8")
    cli_main([str(events), "--dry-run"])
    lines = [l for l in capsys.readouterr().out.splitlines() if l.startswith("SUMMARY")]
    assert len(lines) == 1
    m = SUMMARY_PATTERN.match(lines[0])
    assert m
    rows, accepted, rejected = (int(m.group(i)) for i in (1, 2, 3))
    assert rows == accepted + rejected
