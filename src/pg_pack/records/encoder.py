"""SQL literal encoding for row values.

Turns one Python value (as returned by the driver) into SQL literal text.
The same encoding is used by INSERT and COPY mode, so both modes carry
identical logical values; only the row framing differs.

Rules, in priority order:
1. ``None`` -> ``NULL`` (unquoted)
2. numbers -> plain decimal text, unquoted
3. booleans -> ``TRUE`` / ``FALSE``
4. text -> single-quoted, embedded quotes doubled
5. dates and timestamps -> ``'YYYY-MM-DD'`` or ``'YYYY-MM-DD HH:MM:SS'``,
   decided by the column's declared type when it is known
6. anything else -> its text representation, quoted

Usage:
    from pg_pack.records.encoder import encode_value

    encode_value("O'Brien")                  # "'O''Brien'"
    encode_value(datetime(2024, 1, 2), "date")  # "'2024-01-02'"
"""

import json
import math
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Any

DATE_FORMAT = "%Y-%m-%d"
DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def quote(text: str) -> str:
    """Single-quote text, doubling embedded single quotes."""
    return "'" + text.replace("'", "''") + "'"


def _encode_number(value: int | float | Decimal) -> str:
    if isinstance(value, float) and not math.isfinite(value):
        # nan/inf have no unquoted literal form
        if math.isnan(value):
            return "'NaN'"
        return "'Infinity'" if value > 0 else "'-Infinity'"
    if isinstance(value, Decimal) and not value.is_finite():
        return "'NaN'" if value.is_nan() else (
            "'Infinity'" if value > 0 else "'-Infinity'"
        )
    return str(value)


def _format_datetime(value: datetime) -> str:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    text = value.strftime(DATETIME_FORMAT)
    if value.microsecond:
        text += f".{value.microsecond:06d}"
    if value.tzinfo is not None:
        text += "+00"
    return text


def _encode_temporal(value: date, data_type: str | None) -> str:
    """Pick date or date-time rendering.

    A known declared type decides.  Without one, a value whose
    time-of-day is exactly midnight is taken to be a date.
    """
    if not isinstance(value, datetime):
        return quote(value.strftime(DATE_FORMAT))

    if data_type == "date":
        return quote(value.strftime(DATE_FORMAT))
    if data_type is not None and data_type.startswith("timestamp"):
        return quote(_format_datetime(value))

    if value.hour + value.minute + value.second == 0 and not value.microsecond:
        return quote(value.strftime(DATE_FORMAT))
    return quote(_format_datetime(value))


def _encode_interval(value: timedelta) -> str:
    return quote(f"{value.days} days {value.seconds}.{value.microseconds:06d} seconds")


def _array_element(value: Any) -> str:
    if value is None:
        return "NULL"
    if isinstance(value, (list, tuple)):
        return "{" + ",".join(_array_element(v) for v in value) + "}"
    if isinstance(value, bool):
        return "t" if value else "f"
    if isinstance(value, (int, float, Decimal)):
        return str(value)
    if isinstance(value, datetime):
        text = _format_datetime(value)
    elif isinstance(value, date):
        text = value.strftime(DATE_FORMAT)
    else:
        text = str(value)
    return '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'


def encode_value(value: Any, data_type: str | None = None) -> str:
    """Encode one column value as SQL literal text.

    Args:
        value: Value as returned by the driver.
        data_type: The column's declared ``information_schema`` data type,
            if known.  Only temporal encoding consults it.

    Returns:
        Literal text ready to splice into an INSERT or a COPY line.
    """
    if value is None:
        return "NULL"

    # bool is an int subclass, so it must be tested first
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"

    if isinstance(value, (int, float, Decimal)):
        return _encode_number(value)

    if isinstance(value, str):
        return quote(value)

    if isinstance(value, date):
        return _encode_temporal(value, data_type)

    if isinstance(value, (bytes, bytearray, memoryview)):
        return quote("\\x" + bytes(value).hex())

    if isinstance(value, timedelta):
        return _encode_interval(value)

    if isinstance(value, (list, tuple)):
        return quote(_array_element(list(value)))

    if isinstance(value, dict):
        return quote(json.dumps(value, default=str))

    return quote(str(value))


def encode_row(values: tuple, data_types: list[str | None]) -> list[str]:
    """Encode a row, pairing each value with its column's declared type."""
    return [encode_value(v, t) for v, t in zip(values, data_types)]
