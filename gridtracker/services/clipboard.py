from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

"""Spreadsheet clipboard exchange and vertical fill for the grid.

Clipboard text uses the spreadsheet convention: rows separated by newlines,
cells by tabs. Pasted cells are mapped onto grid columns either by a header
row (matched on column name or display name, case-insensitive) or by position
starting at the paste anchor column.
"""

__all__ = [
    "GridColumn",
    "PasteUpdate",
    "fill_range",
    "format_for_clipboard",
    "parse_clipboard_text",
    "smart_paste",
]

_LINE_BREAK = re.compile(r"\r?\n")


@dataclass(frozen=True)
class GridColumn:
    name: str
    display_name: str | None = None

    def matches(self, header: str) -> bool:
        h = header.strip().casefold()
        if not h:
            return False
        return self.name.casefold() == h or (self.display_name is not None and self.display_name.casefold() == h)


@dataclass(frozen=True)
class PasteUpdate:
    row_index: int  # 貼り付け先の表示行 (0 始まり)
    column_name: str
    value: str


def parse_clipboard_text(text: str) -> list[list[str]]:
    """Split clipboard text into rows of cells. Empty lines are dropped."""
    if not text:
        return []
    return [row.split("\t") for row in _LINE_BREAK.split(text) if row]


def _clipboard_cell(value: Any) -> str:
    if value is None:
        return ""
    text = str(value)
    if "\t" in text or "\n" in text or '"' in text:
        return '"' + text.replace('"', '""') + '"'
    return text


def format_for_clipboard(rows: Sequence[Mapping[str, Any]], columns: Sequence[str]) -> str:
    """Render rows (column -> value mappings) as tab-separated text with a header row."""
    lines = ["\t".join(columns)]
    for row in rows:
        lines.append("\t".join(_clipboard_cell(row.get(col)) for col in columns))
    return "\r\n".join(lines)


def smart_paste(
    cells: Sequence[Sequence[str]],
    columns: Sequence[GridColumn],
    start_row: int,
    start_col: int,
) -> list[PasteUpdate]:
    """Map clipboard cells onto grid cells.

    When every cell of the first clipboard row names a grid column, that row is
    treated as a header and columns are matched by name; otherwise cells map
    positionally from ``start_col``. Cells falling outside the grid are dropped.
    """
    if not cells:
        return []

    first = cells[0]
    is_header = all(any(col.matches(cell) for col in columns) for cell in first)
    mapping: dict[int, int] = {}
    data_start = 0
    if is_header:
        data_start = 1
        for idx, header in enumerate(first):
            for col_idx, col in enumerate(columns):
                if col.matches(header):
                    mapping[idx] = col_idx
                    break
    else:
        width = max(len(row) for row in cells)
        for idx in range(width):
            if 0 <= start_col + idx < len(columns):
                mapping[idx] = start_col + idx

    updates: list[PasteUpdate] = []
    for offset, row in enumerate(cells[data_start:]):
        for idx, value in enumerate(row):
            col_idx = mapping.get(idx)
            if col_idx is None:
                continue
            updates.append(PasteUpdate(start_row + offset, columns[col_idx].name, value))
    return updates


def fill_range(anchor_row: int, target_row: int) -> range:
    """Rows to fill when dragging the fill handle from anchor to target.

    The anchor row itself is excluded; an empty range when both are equal.
    """
    if anchor_row == target_row:
        return range(0)
    if target_row > anchor_row:
        return range(anchor_row + 1, target_row + 1)
    return range(target_row, anchor_row)
