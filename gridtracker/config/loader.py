from __future__ import annotations

import json
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from gridtracker.models.column_metadata import ColumnDataType, ColumnMetadata
from gridtracker.models.config_models import (
    DEFAULT_SAVE_TIMEOUT_SECONDS,
    DatabaseConfig,
    GridConfig,
    SaveConfig,
)
from gridtracker.models.save_result import FailurePolicy

"""Config loader.

Responsibilities:
- Load YAML config/grid.yml
- Validate against the bundled JSON schema (config_schema.json)
- Apply defaults (id_column=id, timezone=UTC, save.timeout_seconds=30)
- Build ColumnMetadata for every configured column
"""

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")


class ConfigError(Exception):
    pass


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against JSON schema.

    Raises:
        ConfigError: If the schema file is missing or invalid, or the config
            data fails schema validation.
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


def _build_column(name: str, raw: dict[str, Any]) -> ColumnMetadata:
    data_type = ColumnDataType.parse(raw["type"])
    options = raw.get("options")
    if options is not None and data_type not in (
        ColumnDataType.OPTION_SET,
        ColumnDataType.MULTI_SELECT_OPTION_SET,
    ):
        raise ConfigError(f"column '{name}': options are only valid for option set columns")
    return ColumnMetadata(
        name=name,
        data_type=data_type,
        options=dict(options) if options is not None else None,
        precision=raw.get("precision"),
        max_length=raw.get("max_length"),
        display_name=raw.get("display_name"),
        is_valid_for_update=raw.get("editable", True),
    )


def load_config(path: Path) -> GridConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e

    _validate_config_schema(data)

    tz = data.get("timezone", "UTC")
    try:
        ZoneInfo(tz)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ConfigError(f"unknown timezone: {tz}") from e

    columns = {name: _build_column(name, raw) for name, raw in data["columns"].items()}

    save_raw = data.get("save", {})
    save = SaveConfig(
        timeout_seconds=save_raw.get("timeout_seconds", DEFAULT_SAVE_TIMEOUT_SECONDS),
        failure_policy=FailurePolicy(save_raw.get("failure_policy", FailurePolicy.RETAIN_ALL.value)),
    )

    db_raw = data.get("database", {})
    db = DatabaseConfig(
        host=db_raw.get("host"),
        port=db_raw.get("port"),
        user=db_raw.get("user"),
        password=db_raw.get("password"),
        database=db_raw.get("database"),
        dsn=db_raw.get("dsn"),
    )
    return GridConfig(
        entity=data["entity"],
        columns=columns,
        id_column=data.get("id_column", "id"),
        timezone=tz,
        save=save,
        database=db,
        keep_na_strings=data.get("keep_na_strings"),
        null_sentinels={s.strip().upper() for s in data.get("null_sentinels", ["NULL"])},
    )
