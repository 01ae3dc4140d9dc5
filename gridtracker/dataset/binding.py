from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable, Iterable, Mapping
from typing import Any

import pandas as pd

from ..metadata.resolver import ColumnMetadataResolver, column_from_host
from ..models.column_metadata import ColumnMetadata

"""Dataset binding: the host side of a grid view.

Holds the target entity, column metadata and the current page of records, and
re-pulls authoritative values on refresh() (called once per successful save).
"""

__all__ = [
    "DatasetBinding",
    "Loader",
]

logger = logging.getLogger(__name__)

Loader = Callable[[], "pd.DataFrame | Awaitable[pd.DataFrame]"]


class DatasetBinding:
    def __init__(
        self,
        entity: str,
        columns: Mapping[str, ColumnMetadata] | Iterable[ColumnMetadata],
        *,
        id_column: str = "id",
        records: pd.DataFrame | None = None,
        loader: Loader | None = None,
    ) -> None:
        self.entity = entity
        self.id_column = id_column
        self._resolver = ColumnMetadataResolver(columns)
        self._records = records if records is not None else pd.DataFrame()
        self._loader = loader
        self.refresh_count = 0

    @classmethod
    def from_host(
        cls,
        entity: str,
        descriptors: Iterable[Mapping[str, Any]],
        **kwargs: Any,
    ) -> DatasetBinding:
        """Bind using host column descriptors (see metadata.resolver.column_from_host)."""
        return cls(entity, [column_from_host(d) for d in descriptors], **kwargs)

    @property
    def records(self) -> pd.DataFrame:
        return self._records

    def resolver(self) -> ColumnMetadataResolver:
        return self._resolver

    def record_ids(self) -> list[str]:
        """Record ids in display order."""
        if self._records.empty or self.id_column not in self._records.columns:
            return []
        return [str(v) for v in self._records[self.id_column].tolist()]

    async def refresh(self) -> pd.DataFrame:
        """Re-pull records through the loader; without a loader this is a no-op."""
        self.refresh_count += 1
        if self._loader is None:
            return self._records
        result = self._loader()
        if inspect.isawaitable(result):
            result = await result
        self._records = result
        logger.info(f"dataset '{self.entity}' refreshed: {len(result)} record(s)")
        return result
