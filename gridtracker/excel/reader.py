from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd

from ..models.normalized_value import RawEdit

"""Edits file reader (.xlsx / .csv).

Wide layout: the first row is the header, one column holds the record id and
every other non-empty cell is one edit of that record's column. Empty cells
are not edits; a cell holding a null sentinel (e.g. ``NULL``) clears the value.

Values are passed on raw (numbers, timestamps, text); normalization happens in
the control.
"""

__all__ = [
    "EditsFileError",
    "MissingColumnsError",
    "frame_to_edits",
    "read_edits_file",
    "read_edits_frame",
]


class EditsFileError(Exception):
    """Raised when the edits file cannot be read."""


class MissingColumnsError(EditsFileError):
    """Raised when the record id column is missing from the header."""


def read_edits_frame(
    path: Path, sheet: str | None = None, keep_na_strings: list[str] | None = None
) -> pd.DataFrame:
    """Read an edits file into a DataFrame.

    Parameters
    ----------
    path: .xlsx / .csv ファイルパス
    sheet: 対象シート (None なら先頭シート, xlsx のみ)
    keep_na_strings: Pandasの既定NaN変換から除外する文字列リスト (例: ['NA'])
    """
    import pandas._libs.parsers as parsers

    if keep_na_strings:
        # 既定のNA値から keep_na_strings を除外
        na_values: list[str] | None = list(parsers.STR_NA_VALUES - set(keep_na_strings))
        keep_default_na = False
    else:
        na_values = None
        keep_default_na = True

    if not path.exists():
        raise EditsFileError(f"edits file not found: {path}")
    suffix = path.suffix.lower()
    try:
        if suffix == ".csv":
            return pd.read_csv(path, dtype=object, keep_default_na=keep_default_na, na_values=na_values)
        if suffix in (".xlsx", ".xlsm"):
            return pd.read_excel(
                path,
                sheet_name=sheet if sheet is not None else 0,
                keep_default_na=keep_default_na,
                na_values=na_values,
            )
    except (OSError, ValueError) as e:
        raise EditsFileError(f"failed to read {path.name}: {e}") from e
    raise EditsFileError(f"unsupported edits file type: {path.suffix}")


def _record_id(value: Any) -> str:
    if isinstance(value, (float, np.floating)) and float(value).is_integer():
        return str(int(value))  # Excel は整数 ID を float で返すことがある
    return str(value).strip()


def frame_to_edits(
    df: pd.DataFrame,
    id_column: str,
    columns: Iterable[str] | None = None,
    null_sentinels: set[str] | None = None,
) -> list[RawEdit]:
    """Turn a wide edits DataFrame into RawEdits, row by row, left to right."""
    header = [str(c).strip() for c in df.columns]
    df = df.set_axis(header, axis=1)
    if id_column not in header:
        raise MissingColumnsError(f"edits file missing id column '{id_column}'")
    wanted = set(columns) if columns is not None else None

    edits: list[RawEdit] = []
    for _, row in df.iterrows():
        rid = row[id_column]
        if pd.isna(rid) or str(rid).strip() == "":
            continue
        record_id = _record_id(rid)
        for col in header:
            if col == id_column or (wanted is not None and col not in wanted):
                continue
            val = row[col]
            if pd.isna(val):
                continue
            if isinstance(val, str):
                if val.strip() == "":
                    continue
                # NULL サニタイズ: 値のクリア
                if null_sentinels and val.strip().upper() in null_sentinels:
                    edits.append(RawEdit(record_id, col, None))
                    continue
            if isinstance(val, np.generic):
                val = val.item()
            edits.append(RawEdit(record_id, col, val))
    return edits


def read_edits_file(
    path: Path,
    id_column: str,
    *,
    sheet: str | None = None,
    keep_na_strings: list[str] | None = None,
    null_sentinels: set[str] | None = None,
) -> list[RawEdit]:
    import pandas._libs.parsers as parsers

    keep = set(keep_na_strings or ())
    if null_sentinels:
        # 'NULL' 等は pandas 既定で NaN になり空セル扱いされるため、変換対象から外す
        keep |= {s for s in parsers.STR_NA_VALUES if s.strip().upper() in null_sentinels}
    df = read_edits_frame(path, sheet=sheet, keep_na_strings=sorted(keep) or None)
    return frame_to_edits(df, id_column, null_sentinels=null_sentinels)
