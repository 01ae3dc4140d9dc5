from __future__ import annotations
import json
from pathlib import Path

from gridtracker.logging.error_log import ErrorLogBuffer, ErrorRecord
from gridtracker.models.normalized_value import ErrorKind

KEYS = {"timestamp", "entity", "record_id", "column", "error_type", "message"}


def test_error_record_creation_and_json_line():
    rec = ErrorRecord.create(
        entity="accounts",
        record_id="42",
        column="revenue",
        error_type="NORMALIZATION_REJECTED",
        message="'abc' is not a number",
    )
    data = json.loads(rec.to_json_line())
    assert data["entity"] == "accounts"
    assert data["record_id"] == "42"
    assert data["column"] == "revenue"
    assert data["error_type"] == "NORMALIZATION_REJECTED"
    assert "timestamp" in data and data["timestamp"].endswith("Z")
    assert set(data.keys()) == KEYS


def test_error_log_buffer_flush(temp_workdir: Path):
    buf = ErrorLogBuffer()
    buf.add("accounts", "1", "revenue", ErrorKind.NORMALIZATION_REJECTED, "bad number")
    buf.add("accounts", "2", "", ErrorKind.REMOTE_UPDATE_FAILED, "record 2 not found")
    path = buf.flush()
    assert path.exists()
    assert path.parent == Path("./logs")
    assert path.name.startswith("errors-")
    lines = path.read_text(encoding="utf-8").strip().splitlines()
    assert len(lines) == 2
    for raw in lines:
        assert set(json.loads(raw).keys()) == KEYS
    # flush 後バッファクリア
    assert len(buf) == 0


def test_error_log_buffer_multiple_flushes_append(temp_workdir: Path):
    buf = ErrorLogBuffer()
    buf.append(ErrorRecord.create("e", "1", "a", "UNSUPPORTED_COLUMN", "lookup"))
    path = buf.flush()
    size1 = path.stat().st_size
    buf.append(ErrorRecord.create("e", "2", "a", "UNSUPPORTED_COLUMN", "lookup"))
    path2 = buf.flush()
    assert path == path2
    assert path2.stat().st_size > size1


def test_empty_flush_creates_nothing(tmp_path: Path):
    logs = tmp_path / "logs"
    buf = ErrorLogBuffer(logs_dir=logs)
    assert buf.flush() is None
    assert not logs.exists()


def test_non_ascii_message_kept(temp_workdir: Path):
    buf = ErrorLogBuffer()
    buf.add("顧客", "1", "名前", ErrorKind.NORMALIZATION_REJECTED, "文字数超過")
    text = buf.flush().read_text(encoding="utf-8")
    assert "文字数超過" in text
