from __future__ import annotations

import argparse
import json
import mimetypes
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import psycopg2
from dotenv import load_dotenv

from ..config.loader import DEFAULT_CONFIG_PATH, ConfigError, load_config
from ..db.student_directory import InMemoryStudentDirectory
from ..logging.error_log import ErrorLogBuffer
from ..logging.init import log_summary, setup_logging
from ..models.config_models import IngestConfig
from ..models.ingest_request import IngestRequest, UploadType
from ..parsers.delimited import decode_payload, parse_csv
from ..services.ingest import IngestError, ingest_upload, parse_upload, validate_request
from ..services.summary import render_summary_line

"""CLI entrypoint.

merit-ingest FILE [--source-system S] [--upload-type T] [--range-start D]
[--range-end D] [--config PATH] [--dry-run] [--roster CSV] [--inspect] [--debug]

Flow:
- .env is loaded first (overrides the process environment)
- config (optional YAML, defaults when the default path is absent)
- live mode: psycopg2 connection, ingest_upload(cursor=...)
- --dry-run: mock mode, students resolved from --roster
- --inspect: parse and print the RawRows as JSON Lines, write nothing
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1


def _resolve_dsn(cfg: IngestConfig) -> str:
    """Connection string resolution order.

    1. DATABASE_URL / PGDSN (環境変数, .env で上書き済み)
    2. config database.dsn
    3. PGHOST / PGPORT / PGUSER / PGPASSWORD / PGDATABASE, each falling back
       to the config database section
    """
    db_cfg = cfg.database
    dsn = os.getenv("DATABASE_URL") or os.getenv("PGDSN") or db_cfg.dsn
    if dsn:
        return dsn
    host = os.getenv("PGHOST", db_cfg.host or "localhost")
    port = os.getenv("PGPORT", str(db_cfg.port) if db_cfg.port else "5432")
    user = os.getenv("PGUSER", db_cfg.user or "postgres")
    password = os.getenv("PGPASSWORD", db_cfg.password or "")
    database = os.getenv("PGDATABASE", db_cfg.database or "postgres")
    dsn = f"host={host} port={port} user={user} dbname={database}"
    if password:
        dsn += f" password={password}"
    return dsn


@contextmanager
def _db_connection(cfg: IngestConfig) -> Iterator[Any]:  # pragma: no cover (thin wrapper)
    """psycopg2 connection + cursor in autocommit mode.

    ingest_upload issues BEGIN/COMMIT per insert batch itself.
    """
    conn = psycopg2.connect(_resolve_dsn(cfg))
    try:
        conn.autocommit = True
        with conn.cursor() as cur:
            yield cur
    finally:
        conn.close()


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env using python-dotenv; a broken file only warns."""
    try:
        if path.exists():
            load_dotenv(dotenv_path=path, override=override)
    except Exception as e:  # pragma: no cover
        print(f"WARNING: failed to load .env via python-dotenv: {e}")


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="merit-ingest", description="Behaviour event CSV/PDF ingestion")
    p.add_argument("file", type=Path, help="CSV or Discipline Event Summary PDF")
    p.add_argument("--source-system", default=None, help="Source system label (default from config)")
    p.add_argument(
        "--upload-type",
        choices=[t.value for t in UploadType],
        default=UploadType.APPEND.value,
        help="append (default), replace_all, replace_range",
    )
    p.add_argument("--range-start", default=None, help="replace_range start date (inclusive)")
    p.add_argument("--range-end", default=None, help="replace_range end date (inclusive)")
    p.add_argument("--uploaded-by", default=None, help="Uploader id stored on the audit record")
    p.add_argument("--config", type=Path, default=None, help=f"YAML config (default {DEFAULT_CONFIG_PATH})")
    p.add_argument("--dry-run", action="store_true", help="Do not connect to the database")
    p.add_argument("--roster", type=Path, default=None, help="Students CSV used to resolve names in --dry-run")
    p.add_argument("--inspect", action="store_true", help="Print parsed rows as JSON lines then exit")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    return p.parse_args(argv)


def _load_cli_config(path: Path | None) -> IngestConfig:
    if path is not None:
        return load_config(path)
    if DEFAULT_CONFIG_PATH.exists():
        return load_config(DEFAULT_CONFIG_PATH)
    return load_config(None)


def _build_request(args: argparse.Namespace, cfg: IngestConfig) -> IngestRequest:
    content_type, _ = mimetypes.guess_type(args.file.name)
    return IngestRequest(
        payload=args.file.read_bytes(),
        filename=args.file.name,
        content_type=content_type,
        source_system=args.source_system or cfg.default_source_system,
        upload_type=UploadType(args.upload_type),
        range_start=args.range_start,
        range_end=args.range_end,
        uploaded_by=args.uploaded_by,
    )


def _load_roster(path: Path) -> InMemoryStudentDirectory:
    rows = parse_csv(decode_payload(path.read_bytes()))
    return InMemoryStudentDirectory.from_rows(rows)


def _inspect(request: IngestRequest, cfg: IngestConfig) -> int:
    kind, _ = validate_request(request, cfg)
    rows = parse_upload(request, kind, cfg)
    print(f"FILE: {request.filename} kind={kind.value} rows={len(rows)}")
    for row in rows:
        print(json.dumps(row, ensure_ascii=False))
    return EXIT_SUCCESS_ALL


def main(argv: list[str] | None = None) -> int:
    # argv=None のときのみ sys.argv を読む (テストで main([...]) 呼び出し)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    logger = setup_logging(debug=args.debug)
    if args.debug:
        logger.debug("debug mode enabled")

    _load_env_file(Path(".env"), override=True)

    try:
        cfg = _load_cli_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    if not args.file.is_file():
        logger.error(f"file not found: {args.file}")
        return EXIT_FATAL
    if args.roster is not None and not args.roster.is_file():
        logger.error(f"roster not found: {args.roster}")
        return EXIT_FATAL
    if args.roster is not None and not args.dry_run:
        logger.warning("--roster is only used with --dry-run; resolving against the database")
    request = _build_request(args, cfg)
    error_log = ErrorLogBuffer(cfg.error_log_dir)

    try:
        if args.inspect:
            return _inspect(request, cfg)

        if args.dry_run:
            directory = _load_roster(args.roster) if args.roster else InMemoryStudentDirectory()
            logger.info(f"Ingesting {request.filename} (mode=dry-run)")
            result = ingest_upload(request, cfg, None, directory=directory, error_log=error_log)
        else:
            try:
                with _db_connection(cfg) as cur:
                    logger.info(f"Ingesting {request.filename} (mode=live)")
                    result = ingest_upload(request, cfg, cur, error_log=error_log)
            except psycopg2.Error as e:
                logger.error(f"database: {e}")
                return EXIT_FATAL
    except IngestError as e:
        logger.error(f"ingest: {e}")
        return EXIT_FATAL

    for err in result.errors:
        logger.warning(f"row {err.row_number}: {err.message}")
    if result.deleted_rows:
        logger.info(f"deleted_rows={result.deleted_rows}")
    if error_log.written:
        logger.info(f"error log: {error_log.file_path}")

    summary_line = render_summary_line(result)
    # log_summary adds the "SUMMARY " prefix itself
    log_summary(summary_line[len("SUMMARY "):])

    if result.errors:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
