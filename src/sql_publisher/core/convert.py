"""Row-to-document conversion.

Each value kind has one pure conversion function. Converters raise
ValueError/TypeError on values that cannot be represented in their kind;
convert_row() turns those into ConversionError with the column name and
row ordinal attached.
"""

from __future__ import annotations

import base64
import json
import math
import sys
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from sql_publisher.core.exceptions import ConversionError
from sql_publisher.core.schema import ValueKind

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from sql_publisher.core.schema import Schema

_TRUE_STRINGS = frozenset({"true", "t", "yes", "y", "1"})
_FALSE_STRINGS = frozenset({"false", "f", "no", "n", "0"})


def _to_int(number: Decimal) -> int:
    """int() of an integral Decimal that json.dumps can still render."""
    limit = sys.get_int_max_str_digits()
    if limit and number.adjusted() >= limit:
        msg = f"more than {limit} integral digits"
        raise ValueError(msg)
    return int(number)


def to_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False, default=str)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8")
    return str(value)


def to_integer(value: Any) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not value.is_integer():
            msg = "not an integral value"
            raise ValueError(msg)
        return int(value)
    if isinstance(value, Decimal):
        if not value.is_finite() or value != value.to_integral_value():
            msg = "not an integral value"
            raise ValueError(msg)
        return _to_int(value)
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            return to_integer(Decimal(text))
    msg = f"unsupported type {type(value).__name__}"
    raise TypeError(msg)


def to_float(value: Any) -> float:
    if isinstance(value, str):
        value = value.strip()
    result = float(value)
    if not math.isfinite(result):
        msg = "non-finite values are not valid JSON"
        raise ValueError(msg)
    return result


def to_decimal(value: Any) -> int | float:
    number = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    if not number.is_finite():
        msg = "non-finite values are not valid JSON"
        raise ValueError(msg)
    if number == number.to_integral_value():
        return _to_int(number)
    result = float(number)
    if not math.isfinite(result):
        msg = "value overflows a JSON number"
        raise ValueError(msg)
    return result


def to_boolean(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, Decimal)) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE_STRINGS:
            return True
        if text in _FALSE_STRINGS:
            return False
    msg = "not a boolean value"
    raise ValueError(msg)


def to_datetime(value: Any) -> str:
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, timedelta):
        return str(value)
    if isinstance(value, str):
        return value
    msg = f"unsupported type {type(value).__name__}"
    raise TypeError(msg)


def to_binary(value: Any) -> str:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return base64.b64encode(bytes(value)).decode("ascii")
    msg = f"unsupported type {type(value).__name__}"
    raise TypeError(msg)


CONVERTERS: dict[ValueKind, Callable[[Any], Any]] = {
    ValueKind.TEXT: to_text,
    ValueKind.INTEGER: to_integer,
    ValueKind.FLOAT: to_float,
    ValueKind.DECIMAL: to_decimal,
    ValueKind.BOOLEAN: to_boolean,
    ValueKind.DATETIME: to_datetime,
    ValueKind.BINARY: to_binary,
}


def convert_row(row: Sequence[Any], schema: Schema, row_number: int) -> dict[str, Any]:
    """Convert one row into a JSON-ready document.

    Columns whose value is None are omitted from the document.
    row_number is the 1-based ordinal used in error messages.
    """
    document: dict[str, Any] = {}
    for index, (name, kind) in enumerate(schema.columns):
        if index >= len(row):
            raise ConversionError(name, row_number, kind.value, reason="missing value")
        value = row[index]
        if value is None:
            continue
        try:
            document[name] = CONVERTERS[kind](value)
        except (ValueError, TypeError, ArithmeticError) as e:
            raise ConversionError(name, row_number, kind.value, value, str(e)) from e
    return document
