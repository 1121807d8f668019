from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.config_models import DatabaseConfig, IngestConfig, ReportLayout, TableNames

"""Config loader.

Responsibilities:
- Load YAML (default location config/ingest.yml)
- Validate against config_schema.json (shipped next to this module)
- Apply defaults for every key the file leaves out
"""

__all__ = [
    "ConfigError",
    "SCHEMA_PATH",
    "DEFAULT_CONFIG_PATH",
    "load_config",
    "config_from_dict",
]

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")
DEFAULT_CONFIG_PATH = Path("config/ingest.yml")


class ConfigError(Exception):
    pass


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: schema file missing/unreadable, or the data violates it
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")
    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def config_from_dict(data: dict[str, Any]) -> IngestConfig:
    """Build IngestConfig from already-validated data, falling back to defaults."""
    defaults = IngestConfig()
    tables_raw = data.get("tables") or {}
    layout_raw = dict(data.get("report_layout") or {})
    if "merit_keywords" in layout_raw:
        layout_raw["merit_keywords"] = tuple(layout_raw["merit_keywords"])
    db_raw = data.get("database") or {}
    return IngestConfig(
        batch_size=data.get("batch_size", defaults.batch_size),
        max_upload_bytes=data.get("max_upload_bytes", defaults.max_upload_bytes),
        default_source_system=data.get("default_source_system", defaults.default_source_system),
        error_log_dir=data.get("error_log_dir", defaults.error_log_dir),
        tables=TableNames(**tables_raw),
        report_layout=ReportLayout(**layout_raw),
        database=DatabaseConfig(
            host=db_raw.get("host"),
            port=db_raw.get("port"),
            user=db_raw.get("user"),
            password=db_raw.get("password"),
            database=db_raw.get("database"),
            dsn=db_raw.get("dsn"),
        ),
    )


def load_config(path: Path | None = None) -> IngestConfig:
    """Load and validate a YAML config file.

    path=None returns the built-in defaults. An explicit path that does not
    exist is an error.
    """
    if path is None:
        return IngestConfig()
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError("config root must be a mapping")

    _validate_config_schema(data)
    return config_from_dict(data)
