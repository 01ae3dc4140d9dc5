from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence

from ..models.normalized_value import NormalizedValue

"""ChangeSet: pending per-record, per-column edits since the last successful save.

Invariants:
- a record key exists only while at least one of its columns has a pending edit
- re-editing a cell overwrites the pending value (no history)
- unsupported sentinels never enter the set
- drain() never mutates; clearing is a separate, explicit step

Owned by one control instance. Mutation is synchronous and single-threaded.
"""

__all__ = [
    "ChangeSet",
    "PendingRecord",
]

logger = logging.getLogger(__name__)

PendingRecord = tuple[str, dict[str, NormalizedValue]]


class ChangeSet:
    """Mutable store of pending edits keyed by record id then column name."""

    def __init__(self) -> None:
        self._changes: dict[str, dict[str, NormalizedValue]] = {}
        self._revision = 0

    @property
    def revision(self) -> int:
        """Incremented on every mutation; lets a saver detect edits made meanwhile."""
        return self._revision

    def record(self, record_id: str, column_name: str, value: NormalizedValue) -> None:
        """Insert or overwrite the pending value of one cell."""
        if value.is_unsupported:
            raise ValueError(f"unsupported value for '{column_name}' must not be recorded")
        self._changes.setdefault(record_id, {})[column_name] = value
        self._revision += 1

    def has(self, record_id: str) -> bool:
        return record_id in self._changes

    def has_cell(self, record_id: str, column_name: str) -> bool:
        return column_name in self._changes.get(record_id, {})

    def get(self, record_id: str, column_name: str) -> NormalizedValue | None:
        return self._changes.get(record_id, {}).get(column_name)

    def size(self) -> int:
        """Number of records with at least one pending edit."""
        return len(self._changes)

    def __len__(self) -> int:
        return len(self._changes)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._changes))

    def cell_count(self) -> int:
        return sum(len(cols) for cols in self._changes.values())

    def drain(self) -> tuple[PendingRecord, ...]:
        """Snapshot of all pending edits. Does not clear anything."""
        return tuple((record_id, dict(cols)) for record_id, cols in self._changes.items())

    def clear(self) -> None:
        if self._changes:
            self._revision += 1
        self._changes.clear()

    def discard(self, snapshot: Sequence[PendingRecord]) -> int:
        """Remove cells of ``snapshot`` that still hold the drained value.

        Cells re-edited after the snapshot was taken stay pending.
        Returns the number of cells removed.
        """
        removed = 0
        for record_id, cols in snapshot:
            pending = self._changes.get(record_id)
            if pending is None:
                continue
            for column_name, value in cols.items():
                if pending.get(column_name) is value:
                    del pending[column_name]
                    removed += 1
            if not pending:
                del self._changes[record_id]
        if removed:
            self._revision += 1
        return removed

    def payload(self, record_id: str) -> dict[str, object]:
        """Plain ``{column: value}`` mapping for one record's pending edits."""
        return {col: nv.value for col, nv in self._changes.get(record_id, {}).items()}
