#!/usr/bin/env python3
"""Sample edits file generator.

Generates a synthetic edits file (.xlsx / .csv) in the wide layout read by
``python -m gridtracker.cli --edits``: a header row, the record id column and
one column per configured grid column. A share of the cells can be made
deliberately invalid to exercise rejection handling.
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd

from gridtracker.config.loader import ConfigError, load_config
from gridtracker.models.column_metadata import ColumnDataType, ColumnMetadata


def _valid_value(column: ColumnMetadata, rng: np.random.Generator) -> Any:
    data_type = column.data_type
    if data_type is ColumnDataType.INTEGER:
        return int(rng.integers(0, 10_000))
    if data_type is ColumnDataType.DECIMAL:
        return f"{rng.uniform(0, 99_999):,.2f}"  # 桁区切り付き
    if data_type is ColumnDataType.BOOLEAN:
        return str(rng.choice(["yes", "no", "true", "false"]))
    if data_type is ColumnDataType.DATETIME:
        start = pd.Timestamp("2024-01-01")
        return (start + pd.Timedelta(minutes=int(rng.integers(0, 525_600)))).isoformat()
    if data_type is ColumnDataType.OPTION_SET:
        labels = list(column.options or {"1": 1})
        return str(rng.choice(labels))
    if data_type is ColumnDataType.MULTI_SELECT_OPTION_SET:
        labels = list(column.options or {"1": 1})
        size = int(rng.integers(1, len(labels) + 1))
        return ",".join(rng.choice(labels, size=size, replace=False).tolist())
    text = f"Item_{int(rng.integers(1000, 9999))}"
    return text[: column.max_length] if column.max_length else text


def _invalid_value(column: ColumnMetadata) -> Any:
    if column.data_type is ColumnDataType.TEXT and column.max_length:
        return "x" * (column.max_length + 1)
    return "???"


def generate_edits(
    columns: dict[str, ColumnMetadata],
    rows: int,
    id_column: str = "id",
    invalid_ratio: float = 0.0,
    fill_ratio: float = 0.6,
    seed: int = 42,
) -> pd.DataFrame:
    """Build an edits DataFrame; empty cells (None) are not edits."""
    rng = np.random.default_rng(seed)
    editable = [c for c in columns.values() if c.is_valid_for_update and c.data_type not in (
        ColumnDataType.LOOKUP, ColumnDataType.UNSUPPORTED,
    )]
    data: dict[str, list[Any]] = {id_column: list(range(1, rows + 1))}
    for column in editable:
        values: list[Any] = []
        for _ in range(rows):
            if rng.random() >= fill_ratio:
                values.append(None)
            elif rng.random() < invalid_ratio:
                values.append(_invalid_value(column))
            else:
                values.append(_valid_value(column, rng))
        data[column.name] = values
    return pd.DataFrame(data)


def write_edits(df: pd.DataFrame, output: Path) -> None:
    output.parent.mkdir(parents=True, exist_ok=True)
    if output.suffix.lower() == ".csv":
        df.to_csv(output, index=False)
    else:
        df.to_excel(output, index=False, engine="openpyxl")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Generate a synthetic grid edits file")
    parser.add_argument("output", type=Path, help="Output file (.xlsx / .csv)")
    parser.add_argument("--config", type=Path, default=Path("config/grid.yml"))
    parser.add_argument("--rows", type=int, default=1_000, help="Number of records (default: 1,000)")
    parser.add_argument("--invalid-ratio", type=float, default=0.0, help="Share of invalid cells (0-1)")
    parser.add_argument("--seed", type=int, default=42)
    args = parser.parse_args(argv)

    if args.rows <= 0:
        print("Error: --rows must be positive", file=sys.stderr)
        return 1
    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    df = generate_edits(cfg.columns, args.rows, cfg.id_column, args.invalid_ratio, seed=args.seed)
    write_edits(df, args.output)
    print(f"Created edits file: {args.output} ({len(df):,} records, {len(df.columns) - 1} columns)")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
