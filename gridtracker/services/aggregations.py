from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import IntEnum

import numpy as np
import pandas as pd

from .change_set import ChangeSet

"""Footer aggregations over the bound dataset.

Only finite numeric values take part; text that does not parse as a number and
boolean columns are ignored. COUNT reports the number of rows for every column
that has at least one numeric value.
"""

__all__ = [
    "AggregationMode",
    "AggregationResult",
    "calculate_aggregations",
    "is_numeric_column",
    "overlay_pending",
]


class AggregationMode(IntEnum):
    NONE = 0
    SUM = 1
    AVERAGE = 2
    COUNT = 3

    @classmethod
    def from_value(cls, value: int | None) -> AggregationMode:
        """Host property value -> mode; unknown or missing values mean NONE."""
        if value is None:
            return cls.NONE
        try:
            return cls(value)
        except ValueError:
            return cls.NONE

    @property
    def label(self) -> str:
        return {
            AggregationMode.NONE: "None",
            AggregationMode.SUM: "Sum",
            AggregationMode.AVERAGE: "Average",
            AggregationMode.COUNT: "Count",
        }[self]


@dataclass(frozen=True)
class AggregationResult:
    value: float
    formatted_value: str
    mode: AggregationMode


def _format_number(value: float) -> str:
    if float(value).is_integer():
        return f"{value:,.0f}"
    return f"{value:,.2f}"


def _format(value: float, mode: AggregationMode) -> str:
    if mode is AggregationMode.SUM:
        return f"Sum: {_format_number(value)}"
    if mode is AggregationMode.AVERAGE:
        return f"Avg: {_format_number(value)}"
    if mode is AggregationMode.COUNT:
        return f"Count: {int(value)}"
    return ""


def _numeric_values(series: pd.Series) -> pd.Series:
    if pd.api.types.is_bool_dtype(series):
        return pd.Series(dtype="float64")
    values = pd.to_numeric(series, errors="coerce").astype("float64")
    return values[np.isfinite(values)]


def calculate_aggregations(
    frame: pd.DataFrame,
    columns: Iterable[str],
    mode: AggregationMode,
) -> dict[str, AggregationResult]:
    """Aggregate each of ``columns`` in ``frame`` according to ``mode``."""
    result: dict[str, AggregationResult] = {}
    if mode is AggregationMode.NONE or frame.empty:
        return result

    for column in columns:
        if column not in frame.columns:
            continue
        values = _numeric_values(frame[column])
        if values.empty:
            continue
        if mode is AggregationMode.SUM:
            value = float(values.sum())
        elif mode is AggregationMode.AVERAGE:
            value = float(values.mean())
        else:
            value = float(len(frame))
        result[column] = AggregationResult(value=value, formatted_value=_format(value, mode), mode=mode)
    return result


def is_numeric_column(frame: pd.DataFrame, column: str, sample_size: int = 5) -> bool:
    """True when the first non-null values (up to ``sample_size``) are all numeric."""
    if frame.empty or column not in frame.columns:
        return False
    sample = frame[column].dropna().head(sample_size)
    if sample.empty or pd.api.types.is_bool_dtype(sample):
        return False
    values = pd.to_numeric(sample, errors="coerce").astype("float64")
    return bool(np.isfinite(values).all())


def overlay_pending(frame: pd.DataFrame, change_set: ChangeSet, id_column: str) -> pd.DataFrame:
    """Copy of ``frame`` with pending scalar edits applied, for live footer totals."""
    result = frame.astype(object)
    if id_column not in result.columns:
        return result
    ids = result[id_column].astype(str)
    for record_id in change_set:
        mask = ids == record_id
        if not mask.any():
            continue
        for column, value in change_set.payload(record_id).items():
            # multi-select (list) は集計対象外
            if column in result.columns and not isinstance(value, list):
                result.loc[mask, column] = value
    return result
