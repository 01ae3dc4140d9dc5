from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from gridtracker.models.column_metadata import ColumnDataType, ColumnMetadata

"""Column metadata resolution.

The resolver is a read-only lookup over host-supplied column metadata. A miss
returns None (NotFound); callers fall back to opaque text handling instead of
blocking the edit.

``column_from_host`` translates the host framework's column descriptors
(``{"name", "dataType", "attributeType", "isValidForUpdate", ...}``) into
ColumnMetadata.
"""

__all__ = [
    "ColumnMetadataResolver",
    "HOST_TYPE_MAP",
    "column_from_host",
]

logger = logging.getLogger(__name__)

# Host data type strings -> type family
HOST_TYPE_MAP: dict[str, ColumnDataType] = {
    "SingleLine.Text": ColumnDataType.TEXT,
    "SingleLine.TextArea": ColumnDataType.TEXT,
    "SingleLine.Email": ColumnDataType.TEXT,
    "SingleLine.Phone": ColumnDataType.TEXT,
    "SingleLine.URL": ColumnDataType.TEXT,
    "SingleLine.Ticker": ColumnDataType.TEXT,
    "Multiple": ColumnDataType.TEXT,
    "Whole.None": ColumnDataType.INTEGER,
    "Decimal": ColumnDataType.DECIMAL,
    "FP": ColumnDataType.DECIMAL,
    "Currency": ColumnDataType.DECIMAL,
    "DateAndTime.DateAndTime": ColumnDataType.DATETIME,
    "DateAndTime.DateOnly": ColumnDataType.DATETIME,
    "TwoOptions": ColumnDataType.BOOLEAN,
    "OptionSet": ColumnDataType.OPTION_SET,
    "MultiSelectPicklist": ColumnDataType.MULTI_SELECT_OPTION_SET,
    "MultiSelectOptionSet": ColumnDataType.MULTI_SELECT_OPTION_SET,
    "Lookup": ColumnDataType.LOOKUP,
    "Lookup.Simple": ColumnDataType.LOOKUP,
    "Lookup.Customer": ColumnDataType.LOOKUP,
    "Lookup.Owner": ColumnDataType.LOOKUP,
    "Lookup.PartyList": ColumnDataType.LOOKUP,
    # GUID は通常システム列のため grid から更新しない
    "Guid": ColumnDataType.UNSUPPORTED,
}


def _host_options(raw: Any) -> dict[str, int] | None:
    """Accept ``{label: code}`` or ``[{"Label"/"label", "Value"/"value"}]``."""
    if raw is None:
        return None
    if isinstance(raw, Mapping):
        return {str(k): int(v) for k, v in raw.items()}
    table: dict[str, int] = {}
    for item in raw:
        label = item.get("label", item.get("Label"))
        value = item.get("value", item.get("Value"))
        table[str(label)] = int(value)
    return table


def column_from_host(descriptor: Mapping[str, Any]) -> ColumnMetadata:
    """Build ColumnMetadata from a host dataset column descriptor.

    Virtual columns and derived name fields (``...name`` / ``...yominame``) are
    not updateable unless the host explicitly says so.
    """
    name = str(descriptor["name"])
    attribute_type = descriptor.get("attributeType") or descriptor.get("type")
    type_name = descriptor.get("dataType") or attribute_type
    data_type = HOST_TYPE_MAP.get(type_name, ColumnDataType.UNSUPPORTED) if type_name else ColumnDataType.TEXT
    if type_name and type_name not in HOST_TYPE_MAP:
        logger.debug(f"column '{name}': unknown host type {type_name!r} -> unsupported")

    is_virtual = attribute_type == "Virtual"
    # 派生 name 列 (例: createdbyname, owneridyominame)
    is_name_field = name != "name" and name.endswith("name")
    explicit = descriptor.get("isValidForUpdate")
    is_valid_for_update = bool(explicit) if explicit is not None else not (is_virtual or is_name_field)

    return ColumnMetadata(
        name=name,
        data_type=data_type,
        options=_host_options(descriptor.get("options")),
        precision=descriptor.get("precision"),
        max_length=descriptor.get("maxLength"),
        display_name=descriptor.get("displayName"),
        is_valid_for_update=is_valid_for_update,
    )


class ColumnMetadataResolver:
    """Read-only column lookup for the currently bound dataset."""

    def __init__(self, columns: Mapping[str, ColumnMetadata] | Iterable[ColumnMetadata]) -> None:
        if isinstance(columns, Mapping):
            self._columns = dict(columns)
        else:
            self._columns = {c.name: c for c in columns}

    @classmethod
    def from_host_columns(cls, descriptors: Iterable[Mapping[str, Any]]) -> ColumnMetadataResolver:
        return cls(column_from_host(d) for d in descriptors)

    def resolve(self, column_name: str) -> ColumnMetadata | None:
        """Return the column's metadata, or None when it is not in the dataset."""
        return self._columns.get(column_name)

    def __contains__(self, column_name: object) -> bool:
        return column_name in self._columns

    @property
    def column_names(self) -> list[str]:
        return list(self._columns)
