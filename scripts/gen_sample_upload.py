#!/usr/bin/env python3
"""Synthetic upload generator for dry runs and throughput checks.

Writes two CSV files:
- an events upload (student_name/grade/section rows, as exported by the
  behaviour tracking system)
- a matching roster (student_id, student_name, grade, section) to pass to
  `merit-ingest --dry-run --roster`

A fraction of rows can be deliberately broken (bad points, unknown student)
to exercise the row-level error path.
"""
from __future__ import annotations

import argparse
import sys
import uuid
from pathlib import Path

import numpy as np
import pandas as pd

FIRST_NAMES = ["Amal", "Ben", "Chloe", "Dev", "Ella", "Farah", "George", "Hana", "Ivan", "Jade"]
LAST_NAMES = ["Brown", "Khan", "Lee", "Patel", "Smith", "Nguyen", "Garcia", "Okafor"]
SECTIONS = ["A", "B", "C"]
DEMERIT_CATEGORIES = ["Disruption", "Late to class", "Uniform", "Phone use", "Homework"]
MERIT_CATEGORIES = ["Buy Back", "Helping others", "Excellent work", "Leadership"]


def generate_roster(students: int, seed: int = 42) -> pd.DataFrame:
    rng = np.random.default_rng(seed)
    rows = []
    for i in range(students):
        # 連番付きで氏名の重複を避ける
        name = f"{rng.choice(LAST_NAMES)}, {rng.choice(FIRST_NAMES)} {i + 1}"
        rows.append({
            "student_id": str(uuid.UUID(int=int(rng.integers(0, 2**63)))),
            "student_name": name,
            "grade": int(rng.integers(6, 13)),
            "section": str(rng.choice(SECTIONS)),
        })
    return pd.DataFrame(rows)


def generate_events(roster: pd.DataFrame, rows: int, error_rate: float = 0.0, seed: int = 42) -> pd.DataFrame:
    """Events referencing roster students by name/grade/section.

    error_rate of the rows get an invalid points value or an unknown student.
    """
    rng = np.random.default_rng(seed + 1)
    picks = rng.integers(0, len(roster), rows)
    is_merit = rng.random(rows) < 0.3
    dates = pd.date_range("2026-01-05", "2026-06-30", freq="D")
    broken = rng.random(rows) < error_rate

    records = []
    for i in range(rows):
        student = roster.iloc[picks[i]]
        merit = bool(is_merit[i])
        points = int(rng.integers(1, 6))
        record = {
            "Student Name": student["student_name"],
            "Grade": student["grade"],
            "Section": student["section"],
            "Type": "merit" if merit else "demerit",
            "Date": dates[int(rng.integers(0, len(dates)))].strftime("%Y-%m-%d"),
            "Time": f"{int(rng.integers(8, 16))}:{int(rng.integers(0, 60)):02d}",
            "Category": str(rng.choice(MERIT_CATEGORIES if merit else DEMERIT_CATEGORIES)),
            "Severity": "" if merit else str(rng.choice(["minor", "moderate", "major"])),
            "Points": points,
            "Staff Name": f"Mr {rng.choice(LAST_NAMES)}",
            "Notes": "",
        }
        if broken[i]:
            if rng.random() < 0.5:
                record["Points"] = "n/a"
            else:
                record["Student Name"] = "Unknown, Student"
        records.append(record)
    return pd.DataFrame(records)


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Generate a synthetic behaviour events CSV and matching roster",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s data/events.csv
  %(prog)s data/events.csv --rows 20000 --students 800 --error-rate 0.02
  merit-ingest data/events.csv --dry-run --roster data/events.roster.csv
        """,
    )
    parser.add_argument("output", type=Path, help="Events CSV path")
    parser.add_argument("--rows", type=int, default=5_000, help="Event rows (default: 5,000)")
    parser.add_argument("--students", type=int, default=300, help="Roster size (default: 300)")
    parser.add_argument("--error-rate", type=float, default=0.0, help="Fraction of broken rows (default: 0)")
    parser.add_argument("--roster", type=Path, default=None, help="Roster CSV path (default: <output>.roster.csv)")
    parser.add_argument("--seed", type=int, default=42, help="Random seed (default: 42)")
    args = parser.parse_args()

    if args.rows <= 0 or args.students <= 0:
        print("Error: --rows and --students must be positive", file=sys.stderr)
        return 1
    if not 0.0 <= args.error_rate <= 1.0:
        print("Error: --error-rate must be between 0 and 1", file=sys.stderr)
        return 1

    roster_path = args.roster or args.output.with_suffix(".roster.csv")
    roster = generate_roster(args.students, args.seed)
    events = generate_events(roster, args.rows, args.error_rate, args.seed)

    args.output.parent.mkdir(parents=True, exist_ok=True)
    roster_path.parent.mkdir(parents=True, exist_ok=True)
    events.to_csv(args.output, index=False)
    roster.to_csv(roster_path, index=False)

    size_kb = args.output.stat().st_size / 1024
    print(f"Created events CSV: {args.output} ({args.rows:,} rows, {size_kb:,.1f} KiB)")
    print(f"Created roster CSV: {roster_path} ({args.students:,} students)")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
