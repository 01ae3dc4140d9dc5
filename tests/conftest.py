# Shared pytest fixtures
from __future__ import annotations
import tempfile
from pathlib import Path

import pytest

from gridtracker.logging.init import reset_logging
from gridtracker.models.column_metadata import ColumnDataType, ColumnMetadata


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
    return """entity: accounts
id_column: id
timezone: UTC
columns:
  name:
    type: text
    max_length: 20
    display_name: Account Name
  employees:
    type: integer
  revenue:
    type: money
    precision: 2
  active:
    type: boolean
  industry:
    type: optionSet
    options:
      Accounting: 1
      Consulting: 3
  owner_id:
    type: lookup
save:
  timeout_seconds: 5
database:
  host: localhost
  port: 5432
  user: appuser
  password: secret
  database: appdb
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "grid.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def columns() -> dict[str, ColumnMetadata]:
    return {
        "name": ColumnMetadata("name", ColumnDataType.TEXT, max_length=20, display_name="Account Name"),
        "employees": ColumnMetadata("employees", ColumnDataType.INTEGER),
        "revenue": ColumnMetadata("revenue", ColumnDataType.DECIMAL, precision=2),
        "active": ColumnMetadata("active", ColumnDataType.BOOLEAN),
        "industry": ColumnMetadata("industry", ColumnDataType.OPTION_SET, options={"Accounting": 1, "Consulting": 3}),
        "owner_id": ColumnMetadata("owner_id", ColumnDataType.LOOKUP),
    }


@pytest.fixture()
def clean_logging():
    reset_logging()
    yield
    reset_logging()
