from __future__ import annotations

import argparse
import asyncio
import os
import sys
from pathlib import Path
from typing import Any

import psycopg2
from dotenv import load_dotenv

from gridtracker.config.loader import ConfigError, load_config
from gridtracker.dataset.binding import DatasetBinding
from gridtracker.db.record_store import PostgresRecordStore, resolve_dsn
from gridtracker.excel.reader import EditsFileError, read_edits_file
from gridtracker.logging.error_log import ErrorLogBuffer
from gridtracker.logging.init import enable_debug, log_summary, setup_logging
from gridtracker.models.config_models import GridConfig
from gridtracker.models.normalized_value import RawEdit
from gridtracker.models.save_result import SaveOutcome, SaveState
from gridtracker.services.control import GridControl
from gridtracker.services.progress import SaveProgress
from gridtracker.services.summary import render_summary_line

"""CLI entrypoint.

Applies an edits file (.xlsx / .csv) to the configured entity through the
grid control, exactly as if the cells had been typed into the grid:

- Load .env, then config/grid.yml
- Read the edits file, feed every cell through on_cell_change
- Save pending records concurrently (one UPDATE per record)
- Print the SUMMARY line, flush the error log

Exit codes: 0 all saved, 2 rejected cells or failed record updates, 1 fatal.
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env using python-dotenv.

    override=True により .env の値で既存環境変数を上書きし、PostgreSQL 接続情報を最優先化。
    """
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Apply grid edits to a PostgreSQL table")
    p.add_argument("--edits", required=True, type=Path, help="Edits file (.xlsx / .csv), one row per record")
    p.add_argument("--config", default=Path("config/grid.yml"), type=Path, help="Grid config (YAML)")
    p.add_argument("--sheet", default=None, help="Sheet name for .xlsx edits (default: first sheet)")
    p.add_argument("--dry-run", action="store_true", help="Normalize and report pending changes without saving")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    return p.parse_args(argv)


def _apply_edits(control: GridControl, edits: list[RawEdit]) -> int:
    """Feed edits through the control; returns the number of rejected cells."""
    rejected = 0
    for edit in edits:
        result = control.on_cell_change(edit.record_id, edit.column_name, edit.raw_value)
        if not result.accepted:
            rejected += 1
    return rejected


async def _not_connected(entity: str, record_id: str, fields: dict[str, Any]) -> None:
    raise RuntimeError("dry run: no database connection")


def _dry_run(cfg: GridConfig, edits: list[RawEdit], error_log: ErrorLogBuffer, logger) -> int:
    control = GridControl.from_config(cfg, _not_connected, error_log=error_log)
    rejected = _apply_edits(control, edits)
    for record_id, fields in control.pending_changes().items():
        logger.info(f"pending {cfg.entity}/{record_id}: {fields}")
    outcome = SaveOutcome(ok=True, state=SaveState.IDLE, operations=control.pending_change_count())
    log_summary(render_summary_line(outcome, rejected)[len("SUMMARY "):])
    return EXIT_PARTIAL_FAILURE if rejected else EXIT_SUCCESS_ALL


def _save(cfg: GridConfig, edits: list[RawEdit], error_log: ErrorLogBuffer, logger) -> int:
    try:
        store = PostgresRecordStore(resolve_dsn(cfg.database), id_column=cfg.id_column)
    except psycopg2.Error as e:
        logger.error(f"database: {e}")
        return EXIT_FATAL

    try:
        binding = DatasetBinding(
            cfg.entity,
            cfg.columns,
            id_column=cfg.id_column,
            loader=lambda: store.fetch_records_async(cfg.entity, [cfg.id_column, *cfg.columns]),
        )
        control = GridControl.from_config(
            cfg,
            store.update_record,
            resolver=binding.resolver(),
            refresh=binding.refresh,
            error_log=error_log,
        )
        rejected = _apply_edits(control, edits)
        with SaveProgress(control.pending_change_count()) as progress:
            control.orchestrator.on_settled = progress.advance
            outcome = asyncio.run(control.on_save())
    finally:
        store.close()

    if not outcome.ok:
        logger.error(f"save: {outcome.message}")
    log_summary(render_summary_line(outcome, rejected)[len("SUMMARY "):])
    if rejected or not outcome.ok:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # NOTE: 空リスト [] が与えられた場合に sys.argv[1:] が混入しないよう None のときのみシステム引数を読む
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    # .env を最優先で読み込む (DB 接続パラメータ優先順位保証)
    _load_env_file(Path(".env"), override=True)

    if args.debug:
        enable_debug(logger)
        logger.debug("debug mode enabled")

    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    try:
        edits = read_edits_file(
            args.edits,
            cfg.id_column,
            sheet=args.sheet,
            keep_na_strings=cfg.keep_na_strings,
            null_sentinels=cfg.null_sentinels,
        )
    except EditsFileError as e:
        logger.error(f"edits: {e}")
        return EXIT_FATAL
    logger.info(f"{args.edits.name}: {len(edits)} cell edit(s) for '{cfg.entity}'")

    error_log = ErrorLogBuffer()
    # DB 接続制御: テスト等で完全に無効化したい場合 DISABLE_DB_CONNECT=1
    dry_run = args.dry_run or os.getenv("DISABLE_DB_CONNECT") == "1"
    try:
        if dry_run:
            logger.debug("dry run: changes are not saved")
            return _dry_run(cfg, edits, error_log, logger)
        return _save(cfg, edits, error_log, logger)
    finally:
        path = error_log.flush()
        if path is not None:
            logger.info(f"error log written: {path}")


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
