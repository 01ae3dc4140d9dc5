from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from .column_metadata import ColumnDataType

"""Value-level models for the edit pipeline.

RawEdit -> (normalizer) -> NormalizedValue | Rejection -> ChangeSet

``NormalizedValue.unsupported()`` is the sentinel for columns that cannot be
patched through the grid; it never enters a ChangeSet.
"""

__all__ = [
    "ErrorKind",
    "NormalizedValue",
    "RawEdit",
    "Rejection",
]


class ErrorKind(Enum):
    """Error classification used in warnings, outcomes and the error log."""
    NORMALIZATION_REJECTED = "NORMALIZATION_REJECTED"
    UNSUPPORTED_COLUMN = "UNSUPPORTED_COLUMN"
    REMOTE_UPDATE_FAILED = "REMOTE_UPDATE_FAILED"
    METADATA_UNAVAILABLE = "METADATA_UNAVAILABLE"
    SAVE_IN_PROGRESS = "SAVE_IN_PROGRESS"


@dataclass(frozen=True)
class RawEdit:
    """A single cell commit coming from the editing surface."""
    record_id: str
    column_name: str
    raw_value: Any


@dataclass(frozen=True)
class NormalizedValue:
    """Typed value ready for the remote store, tagged with its column type."""
    data_type: ColumnDataType
    value: Any
    is_unsupported: bool = False
    reason: str | None = None  # unsupported 時のみ

    @staticmethod
    def unsupported(data_type: ColumnDataType, reason: str) -> NormalizedValue:
        return NormalizedValue(data_type=data_type, value=None, is_unsupported=True, reason=reason)


@dataclass(frozen=True)
class Rejection:
    """Normalization failure for one cell; the edit must not be recorded."""
    column_name: str
    reason: str
    raw_value: Any = None

    @property
    def kind(self) -> ErrorKind:
        return ErrorKind.NORMALIZATION_REJECTED
