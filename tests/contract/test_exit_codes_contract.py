from __future__ import annotations

from pathlib import Path

import pytest

from gridtracker.cli.__main__ import EXIT_FATAL, EXIT_PARTIAL_FAILURE, EXIT_SUCCESS_ALL
from gridtracker.cli.__main__ import main as cli_main
from gridtracker.logging.init import reset_logging

"""Exit code contract tests: 0 all saved / 2 partial / 1 fatal."""


@pytest.fixture(autouse=True)
def _dry_run_env(monkeypatch):
    monkeypatch.setenv("DISABLE_DB_CONNECT", "1")
    reset_logging()
    yield
    reset_logging()


def write_edits(workdir: Path, body: str) -> Path:
    p = workdir / "data" / "edits.csv"
    p.write_text(body, encoding="utf-8")
    return p


def test_exit_code_fatal_without_config(temp_workdir: Path, capsys):
    edits = write_edits(temp_workdir, "id,name\n1,Acme\n")
    code = cli_main(["--edits", str(edits)])
    out = capsys.readouterr().out
    assert code == EXIT_FATAL == 1
    assert "ERROR config:" in out


def test_exit_code_fatal_without_edits_file(temp_workdir: Path, write_config, capsys):
    code = cli_main(["--edits", str(temp_workdir / "data" / "missing.csv")])
    assert code == EXIT_FATAL
    assert "ERROR edits:" in capsys.readouterr().out


def test_exit_code_fatal_without_id_column(temp_workdir: Path, write_config, capsys):
    edits = write_edits(temp_workdir, "name\nAcme\n")
    assert cli_main(["--edits", str(edits)]) == EXIT_FATAL


def test_exit_code_all_success(temp_workdir: Path, write_config, capsys):
    edits = write_edits(temp_workdir, "id,name,employees\n1,Acme,10\n2,Globex,\n")
    code = cli_main(["--edits", str(edits)])
    assert code == EXIT_SUCCESS_ALL == 0


def test_exit_code_rejected_cells(temp_workdir: Path, write_config, capsys):
    edits = write_edits(temp_workdir, "id,employees,owner_id\n1,lots,someone\n2,5,\n")
    code = cli_main(["--edits", str(edits)])
    assert code == EXIT_PARTIAL_FAILURE == 2
