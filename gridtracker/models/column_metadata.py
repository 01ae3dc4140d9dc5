from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

"""Column metadata domain models for the grid edit tracker.

ColumnMetadata is supplied by the host dataset binding and stays immutable for
the lifetime of a view session. The normalizer dispatches on ``data_type``.
"""

__all__ = [
    "ColumnDataType",
    "ColumnMetadata",
    "Selection",
]


class ColumnDataType(Enum):
    """Closed set of column type families understood by the normalizer.

    - TEXT: single/multi line text, email, phone, url, guid-as-text
    - INTEGER: whole numbers
    - DECIMAL: decimal / floating point / money
    - BOOLEAN: two-state options
    - DATETIME: date and date-time columns (absolute timestamps)
    - OPTION_SET: single choice from an option table
    - MULTI_SELECT_OPTION_SET: any subset of an option table
    - LOOKUP: entity reference (not editable through the grid)
    - UNSUPPORTED: anything else the grid cannot patch
    """
    TEXT = "text"
    INTEGER = "integer"
    DECIMAL = "decimal"
    BOOLEAN = "boolean"
    DATETIME = "dateTime"
    OPTION_SET = "optionSet"
    MULTI_SELECT_OPTION_SET = "multiSelectOptionSet"
    LOOKUP = "lookup"
    UNSUPPORTED = "unsupported"

    @classmethod
    def parse(cls, value: str) -> ColumnDataType:
        """Parse a config type name. ``money`` is an alias of ``decimal``."""
        key = value.strip()
        if key.lower() in ("money", "currency"):
            return cls.DECIMAL
        for member in cls:
            if member.value.lower() == key.lower():
                return member
        raise ValueError(f"unknown column type: {value!r}")

    @property
    def is_numeric(self) -> bool:
        return self in (ColumnDataType.INTEGER, ColumnDataType.DECIMAL)


@dataclass(frozen=True)
class ColumnMetadata:
    """Declared type and type-specific attributes for one grid column."""
    name: str
    data_type: ColumnDataType
    options: dict[str, int] | None = None  # label -> option code
    precision: int | None = None  # decimal places (decimal columns)
    max_length: int | None = None  # text columns
    display_name: str | None = None
    is_valid_for_update: bool = True

    @property
    def label(self) -> str:
        return self.display_name or self.name

    @property
    def option_codes(self) -> set[int]:
        return set(self.options.values()) if self.options else set()


@dataclass(frozen=True)
class Selection:
    """Composite value produced by choice widgets (dropdowns, toggles).

    ``key`` is the option code (or boolean state), ``text`` the visible label.
    """
    key: Any
    text: str | None = None
