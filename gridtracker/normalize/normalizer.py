from __future__ import annotations

import logging
import re
from collections.abc import Callable
from datetime import UTC, date, datetime, time
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any
from zoneinfo import ZoneInfo

import numpy as np
import pandas as pd

from gridtracker.models.column_metadata import ColumnDataType, ColumnMetadata, Selection
from gridtracker.models.normalized_value import NormalizedValue, Rejection

"""Value normalization: raw UI-entered values -> canonical typed values.

Dispatch is by ColumnMetadata.data_type. Every converter either returns the
canonical value or raises NormalizationError; ``ValueNormalizer.normalize``
turns that into a Rejection so no exception crosses the cell-edit boundary.

Canonical forms:
- text: str ("" for None)
- integer: int (round half away from zero), None when cleared
- decimal: float (rounded to precision when configured), None when cleared
- boolean: bool (None -> False, no third state)
- dateTime: ISO8601 UTC string with millisecond precision and 'Z' suffix
- optionSet: int option code
- multiSelectOptionSet: sorted list of unique int option codes
- lookup / unsupported / read-only columns: NormalizedValue.unsupported()
"""

__all__ = [
    "NormalizationError",
    "ValueNormalizer",
    "normalize",
]

logger = logging.getLogger(__name__)

# 数値入力から除去する書式文字 (桁区切り・通貨記号・パーセント)
_NUMBER_FORMATTING = re.compile(r"[,$£€¥%]")
_INTEGER_TEXT = re.compile(r"[-+]?\d+")
_TRUE_TOKENS = frozenset({"true", "yes", "y", "on", "1"})
_FALSE_TOKENS = frozenset({"false", "no", "n", "off", "0", ""})
# 受け付ける数値の範囲 (int64 / float64)
_MAX_INTEGER = 2**63 - 1
_MAX_EXPONENT = 308


class NormalizationError(Exception):
    """Raised by a converter when a raw value cannot be converted."""


def _is_blank(raw: Any) -> bool:
    return raw is None or (isinstance(raw, str) and raw.strip() == "")


def _is_bool(raw: Any) -> bool:
    return isinstance(raw, (bool, np.bool_))


def _parse_decimal(raw: Any) -> Decimal | None:
    """Parse a numeric raw value into a finite Decimal (None when cleared)."""
    if _is_bool(raw):
        raise NormalizationError("boolean value is not a number")
    if _is_blank(raw):
        return None
    if isinstance(raw, str):
        cleaned = _NUMBER_FORMATTING.sub("", raw).strip()
        if cleaned == "":
            return None
        try:
            number = Decimal(cleaned)
        except InvalidOperation as e:
            raise NormalizationError(f"'{raw}' is not a number") from e
    elif isinstance(raw, (int, np.integer)):
        number = Decimal(int(raw))
    elif isinstance(raw, (float, np.floating)):
        if not np.isfinite(raw):
            raise NormalizationError(f"{raw} is not a finite number")
        # repr は最短の往復可能表現
        number = Decimal(repr(float(raw)))
    elif isinstance(raw, Decimal):
        number = raw
    else:
        raise NormalizationError(f"{type(raw).__name__} value is not a number")
    if not number.is_finite():
        raise NormalizationError(f"'{raw}' is not a finite number")
    if number and number.adjusted() > _MAX_EXPONENT:
        raise NormalizationError(f"'{raw}' is out of range")
    return number


def _to_text(raw: Any, column: ColumnMetadata) -> str:
    if raw is None:
        return ""
    if isinstance(raw, str):
        text = raw
    elif _is_bool(raw):
        text = "true" if raw else "false"
    elif isinstance(raw, Selection):
        text = raw.text if raw.text is not None else str(raw.key)
    elif isinstance(raw, (datetime, date)):
        text = raw.isoformat()
    elif isinstance(raw, (float, np.floating)) and np.isfinite(raw) and float(raw).is_integer():
        text = str(int(raw))
    else:
        text = str(raw)
    if column.max_length is not None and len(text) > column.max_length:
        raise NormalizationError(f"text longer than {column.max_length} characters")
    return text


def _to_integer(raw: Any, column: ColumnMetadata) -> int | None:
    number = _parse_decimal(raw)
    if number is None:
        return None
    if number and number.adjusted() > 18:
        raise NormalizationError(f"'{raw}' is out of range for an integer")
    value = int(number.to_integral_value(rounding=ROUND_HALF_UP))
    if abs(value) > _MAX_INTEGER:
        raise NormalizationError(f"'{raw}' is out of range for an integer")
    return value


def _to_decimal(raw: Any, column: ColumnMetadata) -> float | None:
    number = _parse_decimal(raw)
    if number is None:
        return None
    if column.precision is not None:
        try:
            number = number.quantize(Decimal(1).scaleb(-column.precision), rounding=ROUND_HALF_UP)
        except InvalidOperation as e:
            raise NormalizationError(f"'{raw}' exceeds the supported precision") from e
    value = float(number)
    if not np.isfinite(value):
        raise NormalizationError(f"'{raw}' is out of range")
    return value


def _to_boolean(raw: Any, column: ColumnMetadata) -> bool:
    if isinstance(raw, Selection):
        raw = raw.key if raw.key is not None else raw.text
    if raw is None:
        return False
    if _is_bool(raw):
        return bool(raw)
    if isinstance(raw, (int, float, np.integer, np.floating)):
        if not np.isfinite(raw):
            raise NormalizationError(f"{raw} is not a boolean")
        return raw != 0
    if isinstance(raw, str):
        token = raw.strip().lower()
        if token in _TRUE_TOKENS:
            return True
        if token in _FALSE_TOKENS:
            return False
        # two-option 列のラベル (例: {"No": 0, "Yes": 1})
        if column.options:
            for label, code in column.options.items():
                if label.strip().lower() == token:
                    return code != 0
        raise NormalizationError(f"'{raw}' is not a boolean")
    raise NormalizationError(f"{type(raw).__name__} value is not a boolean")


def _resolve_option(member: Any, column: ColumnMetadata) -> int:
    """Map one selection member (code, numeric text, label, Selection) to its code."""
    if isinstance(member, Selection):
        member = member.key if member.key is not None else member.text
    if _is_bool(member) or member is None:
        raise NormalizationError(f"{member!r} is not an option")

    if isinstance(member, str):
        text = member.strip()
        if column.options:
            for label, code in column.options.items():
                if label == text or label.casefold() == text.casefold():
                    return code
        if not _INTEGER_TEXT.fullmatch(text):
            raise NormalizationError(f"unknown option '{member}'")
        code = int(text)
    elif isinstance(member, (int, np.integer)):
        code = int(member)
    elif isinstance(member, (float, np.floating)) and np.isfinite(member) and float(member).is_integer():
        code = int(member)
    else:
        raise NormalizationError(f"{member!r} is not an option")

    if column.options is not None and code not in column.option_codes:
        raise NormalizationError(f"unknown option code {code}")
    return code


def _to_option(raw: Any, column: ColumnMetadata) -> int | None:
    if _is_blank(raw):
        return None
    return _resolve_option(raw, column)


def _to_multi_option(raw: Any, column: ColumnMetadata) -> list[int] | None:
    if _is_blank(raw):
        return None
    if isinstance(raw, str):
        members: list[Any] = [m for m in raw.split(",") if m.strip()]
    elif isinstance(raw, (list, tuple, set, frozenset)):
        members = list(raw)
    elif isinstance(raw, np.ndarray):
        members = raw.tolist()
    else:
        members = [raw]
    # 1 つでも不正なら全体を拒否 (all-or-nothing)
    codes = sorted({_resolve_option(m, column) for m in members})
    return codes or None


class ValueNormalizer:
    """Converts raw edited values into canonical values for their column.

    Pure: the only state is the timezone used to interpret naive date-times.
    """

    def __init__(self, timezone: str = "UTC") -> None:
        self.timezone = ZoneInfo(timezone)
        self._converters: dict[ColumnDataType, Callable[[Any, ColumnMetadata], Any]] = {
            ColumnDataType.TEXT: _to_text,
            ColumnDataType.INTEGER: _to_integer,
            ColumnDataType.DECIMAL: _to_decimal,
            ColumnDataType.BOOLEAN: _to_boolean,
            ColumnDataType.DATETIME: self._to_datetime,
            ColumnDataType.OPTION_SET: _to_option,
            ColumnDataType.MULTI_SELECT_OPTION_SET: _to_multi_option,
        }

    @staticmethod
    def is_editable(column: ColumnMetadata | None) -> bool:
        """Whether edits to the column can reach the ChangeSet at all."""
        if column is None:
            return True  # 不明な列は編集を妨げない
        if not column.is_valid_for_update:
            return False
        return column.data_type not in (ColumnDataType.LOOKUP, ColumnDataType.UNSUPPORTED)

    def normalize(self, raw_value: Any, column: ColumnMetadata | None) -> NormalizedValue | Rejection:
        """Normalize one raw value for ``column``.

        Returns a NormalizedValue (possibly the unsupported sentinel) or a
        Rejection. ``column=None`` means the metadata could not be resolved:
        the value is handled as opaque text.
        """
        if column is None:
            return NormalizedValue(ColumnDataType.TEXT, "" if raw_value is None else str(raw_value))

        if not self.is_editable(column):
            if column.is_valid_for_update:
                reason = f"{column.data_type.value} columns cannot be edited in the grid"
            else:
                reason = "column is read-only"
            return NormalizedValue.unsupported(column.data_type, reason)

        converter = self._converters[column.data_type]
        try:
            value = converter(raw_value, column)
        except NormalizationError as e:
            logger.debug("normalize %s: rejected %r: %s", column.name, raw_value, e)
            return Rejection(column_name=column.name, reason=str(e), raw_value=raw_value)
        logger.debug("normalize %s: %r -> %r", column.name, raw_value, value)
        return NormalizedValue(column.data_type, value)

    def _to_datetime(self, raw: Any, column: ColumnMetadata) -> str | None:
        if _is_blank(raw):
            return None
        if isinstance(raw, datetime) and pd.isna(raw):
            raise NormalizationError("missing timestamp")  # pandas NaT
        if isinstance(raw, pd.Timestamp):
            raw = raw.to_pydatetime()
        if isinstance(raw, datetime):
            ts = raw
        elif isinstance(raw, date):
            ts = datetime.combine(raw, time.min)
        elif isinstance(raw, str):
            try:
                ts = datetime.fromisoformat(raw.strip())
            except ValueError as e:
                raise NormalizationError(f"'{raw}' is not an ISO 8601 timestamp") from e
        else:
            # epoch 数値は単位が曖昧なため受け付けない
            raise NormalizationError(f"{type(raw).__name__} value is not a timestamp")

        if ts.tzinfo is None:
            ts = ts.replace(tzinfo=self.timezone)
        try:
            utc = ts.astimezone(UTC)
        except (OverflowError, ValueError) as e:
            raise NormalizationError(f"'{raw}' is out of range") from e
        return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


_default = ValueNormalizer()


def normalize(raw_value: Any, column: ColumnMetadata | None) -> NormalizedValue | Rejection:
    """Normalize with a UTC normalizer (see ValueNormalizer.normalize)."""
    return _default.normalize(raw_value, column)
