"""
Parsing of single temporal values coming out of kdb+ results.

kdb+ temporal types reach us in many forms: q-formatted strings
(``2024.01.15D09:30:00.123``), ISO strings, Python ``datetime`` and
``timedelta`` objects and plain numbers. ``parse_temporal`` maps each of them
to milliseconds plus the kind of instant they describe.

Plain numbers carry no unit, so their kind is guessed from magnitude:

==============================  ================================  ===========
value                           interpretation                    kind
==============================  ================================  ===========
n > 1e12                        epoch milliseconds                EPOCH
1e9 < n <= 1e12                 epoch seconds                     EPOCH
0 <= n < 86_400_000             milliseconds since midnight       TIME_OF_DAY
0 <= n < 86_400                 seconds since midnight            TIME_OF_DAY
anything else                   opaque axis position              OFFSET
==============================  ================================  ===========

The guess is ambiguous (90_000 could be seconds within a day or a count) and
the fourth row can never match because the third covers it. Both are kept as
they are so charts built from the same data keep their shape; callers that
know the column type should pass temporal values in an explicit form.
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, NamedTuple

from dateutil import parser as dateutil_parser

from kdbview.results.cells import is_number

MILLIS_PER_DAY = 86_400_000
SECONDS_PER_DAY = 86_400


class TemporalKind(Enum):
    TIME_OF_DAY = "time"
    DATE = "date"
    DATETIME = "datetime"
    EPOCH_TIMESTAMP = "timestamp"
    OFFSET = "timespan"
    UNKNOWN = "unknown"


class TemporalSample(NamedTuple):
    timestamp_ms: float
    kind: TemporalKind

    @property
    def is_valid(self) -> bool:
        return not math.isnan(self.timestamp_ms)


UNPARSEABLE = TemporalSample(math.nan, TemporalKind.UNKNOWN)

TIME_OF_DAY_RE = re.compile(r"^(\d{1,2}):(\d{2}):(\d{2})(?:\.(\d{3}))?$")
DATE_RE = re.compile(r"^(\d{4})[.\-](\d{1,2})[.\-](\d{1,2})$")
SPACED_DATETIME_RE = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})\s+(\d{1,2}):(\d{2}):(\d{2})(?:\.(\d{3}))?$"
)
# q timestamps use D between date and time, q datetimes and ISO strings use T.
# Anything after the milliseconds (nanoseconds, zone) is ignored.
Q_DATETIME_RE = re.compile(
    r"^(\d{4})[.\-](\d{1,2})[.\-](\d{1,2})[DT](\d{1,2}):(\d{2}):(\d{2})(?:\.(\d{3}))?"
)
NUMERIC_RE = re.compile(r"^\s*[-+]?(\d+\.?\d*|\.\d+)([eE][-+]?\d+)?\s*$")


def _local_millis(
    year: int,
    month: int,
    day: int,
    hour: int = 0,
    minute: int = 0,
    second: int = 0,
    millisecond: int = 0,
) -> float:
    """Milliseconds since the epoch of a wall-clock instant in local time."""
    instant = datetime(year, month, day, hour, minute, second, millisecond * 1000)
    return instant.timestamp() * 1000


def _datetime_millis(value: datetime) -> float:
    # naive datetimes are taken as local time, like the string forms
    return value.timestamp() * 1000


def _groups(match: re.Match[str]) -> list[int]:
    return [int(group) if group is not None else 0 for group in match.groups()]


def _parse_string(value: str) -> TemporalSample | None:
    match = TIME_OF_DAY_RE.match(value)
    if match:
        hours, minutes, seconds, millis = _groups(match)
        return TemporalSample(
            float((hours * 3600 + minutes * 60 + seconds) * 1000 + millis),
            TemporalKind.TIME_OF_DAY,
        )

    try:
        match = DATE_RE.match(value)
        if match:
            return TemporalSample(_local_millis(*_groups(match)), TemporalKind.DATE)

        match = SPACED_DATETIME_RE.match(value) or Q_DATETIME_RE.match(value)
        if match:
            return TemporalSample(
                _local_millis(*_groups(match)), TemporalKind.DATETIME
            )
    except (ValueError, OverflowError, OSError):
        # matched the shape but not a real calendar instant, e.g. 2024.13.45
        return None

    # numbers are handled by magnitude, and text without a digit (symbols
    # such as `may or `sun) is never a timestamp
    if NUMERIC_RE.match(value) or not any(ch.isdigit() for ch in value):
        return None

    try:
        parsed = dateutil_parser.parse(value)
        return TemporalSample(_datetime_millis(parsed), TemporalKind.EPOCH_TIMESTAMP)
    except (ValueError, OverflowError, OSError):
        return None


def _parse_number(num: float) -> TemporalSample:
    try:
        num = float(num)
    except OverflowError:
        # ints past the float range
        return UNPARSEABLE
    if math.isnan(num) or math.isinf(num):
        return UNPARSEABLE
    if num > 1_000_000_000_000:
        return TemporalSample(num, TemporalKind.EPOCH_TIMESTAMP)
    if num > 1_000_000_000:
        return TemporalSample(num * 1000, TemporalKind.EPOCH_TIMESTAMP)
    if 0 <= num < MILLIS_PER_DAY:
        return TemporalSample(num, TemporalKind.TIME_OF_DAY)
    if 0 <= num < SECONDS_PER_DAY:
        return TemporalSample(num * 1000, TemporalKind.TIME_OF_DAY)
    return TemporalSample(num, TemporalKind.OFFSET)


def parse_temporal(value: Any) -> TemporalSample:
    """
    Classify ``value`` and convert it to milliseconds. Never raises; values
    that match no rule come back as ``UNPARSEABLE`` whose timestamp is NaN,
    so check ``sample.is_valid`` before using it.
    """
    if value is None:
        return UNPARSEABLE

    if isinstance(value, str):
        sample = _parse_string(value)
        if sample is not None:
            return sample
        if NUMERIC_RE.match(value):
            return _parse_number(float(value))
        return UNPARSEABLE

    try:
        if isinstance(value, datetime):
            return TemporalSample(_datetime_millis(value), TemporalKind.DATETIME)

        if isinstance(value, date):
            return TemporalSample(
                _local_millis(value.year, value.month, value.day), TemporalKind.DATE
            )
    except (ValueError, OverflowError, OSError):
        return UNPARSEABLE

    # q time and timespan values, measured from midnight
    if isinstance(value, timedelta):
        millis = value.total_seconds() * 1000
        if 0 <= millis < MILLIS_PER_DAY:
            return TemporalSample(millis, TemporalKind.TIME_OF_DAY)
        return TemporalSample(millis, TemporalKind.OFFSET)

    if is_number(value):
        return _parse_number(value)

    return UNPARSEABLE
