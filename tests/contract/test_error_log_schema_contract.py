from __future__ import annotations

import json
from pathlib import Path

import jsonschema
import pytest

from gridtracker.cli.__main__ import main as cli_main
from gridtracker.logging.init import reset_logging

"""Error log JSON Lines contract: fixed key set, UPPER_SNAKE error types."""

ERROR_LOG_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "additionalProperties": False,
    "required": ["timestamp", "entity", "record_id", "column", "error_type", "message"],
    "properties": {
        "timestamp": {"type": "string", "pattern": "Z$"},
        "entity": {"type": "string"},
        "record_id": {"type": "string"},
        "column": {"type": "string"},
        "error_type": {
            "type": "string",
            "enum": [
                "NORMALIZATION_REJECTED",
                "UNSUPPORTED_COLUMN",
                "REMOTE_UPDATE_FAILED",
                "METADATA_UNAVAILABLE",
                "SAVE_IN_PROGRESS",
            ],
        },
        "message": {"type": "string"},
    },
}


def test_schema_rejects_extra_key():
    record = {
        "timestamp": "2025-09-26T10:12:33Z",
        "entity": "accounts",
        "record_id": "1",
        "column": "name",
        "error_type": "NORMALIZATION_REJECTED",
        "message": "too long",
        "extra": "not allowed",
    }
    with pytest.raises(jsonschema.ValidationError):
        jsonschema.validate(record, ERROR_LOG_SCHEMA)


def test_cli_error_log_matches_schema(temp_workdir: Path, write_config, monkeypatch, capsys):
    monkeypatch.setenv("DISABLE_DB_CONNECT", "1")
    reset_logging()
    edits = temp_workdir / "data" / "edits.csv"
    edits.write_text(
        "id,employees,owner_id,nickname\n1,abc,someone,Al\n",
        encoding="utf-8",
    )
    cli_main(["--edits", str(edits)])
    reset_logging()

    files = list((temp_workdir / "logs").glob("errors-*.log"))
    assert len(files) == 1
    records = [json.loads(line) for line in files[0].read_text(encoding="utf-8").splitlines()]
    for rec in records:
        jsonschema.validate(rec, ERROR_LOG_SCHEMA)
    assert sorted(r["error_type"] for r in records) == [
        "METADATA_UNAVAILABLE",
        "NORMALIZATION_REJECTED",
        "UNSUPPORTED_COLUMN",
    ]
    assert {r["column"] for r in records} == {"employees", "owner_id", "nickname"}


def test_no_error_log_when_clean(temp_workdir: Path, write_config, monkeypatch, capsys):
    monkeypatch.setenv("DISABLE_DB_CONNECT", "1")
    reset_logging()
    edits = temp_workdir / "data" / "edits.csv"
    edits.write_text("id,name\n1,Acme\n", encoding="utf-8")
    cli_main(["--edits", str(edits)])
    reset_logging()
    assert list((temp_workdir / "logs").glob("errors-*.log")) == []
