from __future__ import annotations

from pathlib import Path

import pandas as pd

from gridtracker.cli.__main__ import main as cli_main
from gridtracker.logging.init import reset_logging


def test_dry_run_xlsx_reports_pending_changes(temp_workdir: Path, write_config, capsys, monkeypatch):
    monkeypatch.delenv("DISABLE_DB_CONNECT", raising=False)
    reset_logging()
    edits = temp_workdir / "data" / "edits.xlsx"
    pd.DataFrame(
        {
            "id": [1, 2],
            "employees": [12.6, None],
            "industry": ["Accounting", "NULL"],
        }
    ).to_excel(edits, index=False, sheet_name="Edits")

    code = cli_main(["--edits", str(edits), "--sheet", "Edits", "--dry-run"])
    out = capsys.readouterr().out
    reset_logging()

    assert code == 0
    assert "INFO pending accounts/1: {'employees': 13, 'industry': 1}" in out
    # NULL は値クリア
    assert "INFO pending accounts/2: {'industry': None}" in out
    assert "SUMMARY records=2 updated=0 failed=0 rejected_cells=0" in out


def test_dry_run_keep_na_strings(temp_workdir: Path, capsys, monkeypatch):
    monkeypatch.setenv("DISABLE_DB_CONNECT", "1")
    reset_logging()
    (temp_workdir / "config" / "grid.yml").write_text(
        "entity: codes\n"
        "keep_na_strings: [NA]\n"
        "columns:\n"
        "  region:\n"
        "    type: text\n",
        encoding="utf-8",
    )
    edits = temp_workdir / "data" / "edits.csv"
    edits.write_text("id,region\n1,NA\n", encoding="utf-8")

    code = cli_main(["--edits", str(edits)])
    out = capsys.readouterr().out
    reset_logging()

    assert code == 0
    assert "INFO pending codes/1: {'region': 'NA'}" in out


def test_dry_run_debug_flag(temp_workdir: Path, write_config, capsys, monkeypatch):
    monkeypatch.setenv("DISABLE_DB_CONNECT", "1")
    reset_logging()
    edits = temp_workdir / "data" / "edits.csv"
    edits.write_text("id,last_seen\n1,2024-01-01T00:00:00\n", encoding="utf-8")

    cli_main(["--edits", str(edits), "--debug"])
    out = capsys.readouterr().out
    reset_logging()

    assert "DEBUG debug mode enabled" in out
    # 設定にない列は text として保持
    assert "WARN METADATA_UNAVAILABLE 1/last_seen" in out
    assert "INFO pending accounts/1: {'last_seen': '2024-01-01T00:00:00'}" in out
