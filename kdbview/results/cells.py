from __future__ import annotations

import math
from datetime import date, datetime, time, timedelta, timezone
from typing import Any

from kdbview.results.types import Cell, Symbol

# kdb+ has no null tag for integers, the smallest value of each width is used
# instead (0Ni and 0Nj).
NULL_INT = -(2**31)
NULL_LONG = -(2**63)

SENTINELS = frozenset((NULL_INT, NULL_LONG))


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_null(value: Any) -> bool:
    """True for None and for every value kdb+ uses to encode a typed null."""
    if value is None:
        return True
    if not is_number(value):
        return False
    if isinstance(value, float) and math.isnan(value):
        return True
    return value in SENTINELS


def format_datetime(value: datetime) -> str:
    if value.tzinfo is not None:
        utc = value.astimezone(timezone.utc).replace(tzinfo=None)
        return utc.isoformat(timespec="milliseconds") + "Z"
    return value.isoformat(timespec="milliseconds")


def format_timespan(value: timedelta) -> str:
    """
    q time, timespan, minute and second values arrive as ``timedelta`` since
    midnight. Spans of a day or more keep counting hours past 23.
    """
    millis = round(value.total_seconds() * 1000)
    sign = "-" if millis < 0 else ""
    seconds, millis = divmod(abs(millis), 1000)
    minutes, seconds = divmod(seconds, 60)
    hours, minutes = divmod(minutes, 60)
    return f"{sign}{hours:02d}:{minutes:02d}:{seconds:02d}.{millis:03d}"


def convert_cell(value: Any) -> Any:
    """
    Convert one raw value into something the grid can show and JSON can
    carry. Nulls in any encoding become None, infinities become strings and
    temporal objects become ISO-8601 text. Nested lists (kdb+ general lists
    inside a column) are converted element-wise.
    """
    if is_null(value):
        return None

    if isinstance(value, bool):
        return value

    if isinstance(value, float) and math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"

    if is_number(value):
        return value

    if isinstance(value, Symbol):
        return str(value)

    if isinstance(value, str):
        return value

    # datetime first, it is a subclass of date
    if isinstance(value, datetime):
        return format_datetime(value)

    if isinstance(value, date):
        return value.isoformat()

    if isinstance(value, time):
        return value.isoformat(timespec="milliseconds")

    if isinstance(value, timedelta):
        return format_timespan(value)

    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")

    if isinstance(value, (list, tuple)):
        return [convert_cell(item) for item in value]

    return str(value)


def as_cell(value: Any) -> Cell:
    """Narrow a converted value to a scalar cell, joining nested lists."""
    converted = convert_cell(value)
    if isinstance(converted, list):
        return " ".join("" if item is None else str(item) for item in converted)
    return converted
