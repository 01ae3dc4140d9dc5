from __future__ import annotations

import pandas as pd

from gridtracker.models.column_metadata import ColumnDataType
from gridtracker.models.normalized_value import NormalizedValue
from gridtracker.services.aggregations import (
    AggregationMode,
    calculate_aggregations,
    is_numeric_column,
    overlay_pending,
)
from gridtracker.services.change_set import ChangeSet


def frame() -> pd.DataFrame:
    return pd.DataFrame(
        {
            "id": [1, 2, 3],
            "revenue": [1000.5, 234.0, None],
            "employees": [10, 20, 30],
            "name": ["a", "b", "c"],
            "active": [True, False, True],
        }
    )


def test_sum():
    result = calculate_aggregations(frame(), ["revenue", "employees", "name", "active"], AggregationMode.SUM)
    assert set(result) == {"revenue", "employees"}
    assert result["revenue"].value == 1234.5
    assert result["revenue"].formatted_value == "Sum: 1,234.50"
    assert result["employees"].formatted_value == "Sum: 60"


def test_average_and_count():
    avg = calculate_aggregations(frame(), ["employees"], AggregationMode.AVERAGE)
    assert avg["employees"].formatted_value == "Avg: 20"
    count = calculate_aggregations(frame(), ["revenue"], AggregationMode.COUNT)
    assert count["revenue"].formatted_value == "Count: 3"


def test_none_mode_and_empty_frame():
    assert calculate_aggregations(frame(), ["employees"], AggregationMode.NONE) == {}
    assert calculate_aggregations(pd.DataFrame(), ["employees"], AggregationMode.SUM) == {}


def test_mode_from_value():
    assert AggregationMode.from_value(1) is AggregationMode.SUM
    assert AggregationMode.from_value(None) is AggregationMode.NONE
    assert AggregationMode.from_value(42) is AggregationMode.NONE
    assert AggregationMode.AVERAGE.label == "Average"


def test_is_numeric_column():
    df = frame()
    assert is_numeric_column(df, "revenue")
    assert not is_numeric_column(df, "name")
    assert not is_numeric_column(df, "active")
    assert not is_numeric_column(df, "missing")


def test_overlay_pending_applies_scalar_edits():
    cs = ChangeSet()
    cs.record("2", "employees", NormalizedValue(ColumnDataType.INTEGER, 200))
    cs.record("9", "employees", NormalizedValue(ColumnDataType.INTEGER, 900))
    overlaid = overlay_pending(frame(), cs, "id")
    result = calculate_aggregations(overlaid, ["employees"], AggregationMode.SUM)
    assert result["employees"].value == 240.0
