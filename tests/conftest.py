# Shared pytest fixtures
from __future__ import annotations
import tempfile
from pathlib import Path
from unittest.mock import MagicMock
import pytest

from merit_ingest.db.student_directory import InMemoryStudentDirectory, RosterEntry
from merit_ingest.logging.init import reset_logging
from merit_ingest.models.config_models import IngestConfig


@pytest.fixture(autouse=True)
def clean_logging():
    # handler は setup 時点の sys.stdout を掴むため毎回作り直す
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """batch_size: 500
max_upload_bytes: 10485760
default_source_system: csv_upload
error_log_dir: ./logs
tables:
  students: students
  events: behaviour_events
  uploads: behaviour_uploads
report_layout:
  merit_keywords: ["Buy Back"]
  day_first_dates: true
database:
  host: localhost
  port: 5432
  user: appuser
  password: secret
  database: appdb
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "ingest.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def ingest_config(tmp_path: Path) -> IngestConfig:
    return IngestConfig(error_log_dir=str(tmp_path / "logs"))


@pytest.fixture()
def roster() -> InMemoryStudentDirectory:
    return InMemoryStudentDirectory([
        RosterEntry("stu-1", "Smith, Jane", 6, "A"),
        RosterEntry("stu-2", "Khan, Omar", 7, "B"),
        RosterEntry("stu-3", "Lee, Sam", 8, "A"),
        RosterEntry("stu-4", "Lee, Sam", 8, "B"),
    ])


@pytest.fixture()
def mock_cursor() -> MagicMock:
    cur = MagicMock()
    cur.fetchone.return_value = ("upload-1",)
    cur.rowcount = 0
    return cur


@pytest.fixture()
def sample_csv() -> str:
    return (
        "Student Name,Grade,Section,Type,Date,Time,Category,Severity,Points,Staff Name,Notes\n"
        "\"Smith, Jane\",6,A,demerit,2026-01-05,9:30,Disruption,minor,2,Mr Brown,\"talked, loudly\"\n"
        "\"Khan, Omar\",7,B,merit,2026-01-06,,Helping others,,3,Ms Green,\n"
    )
