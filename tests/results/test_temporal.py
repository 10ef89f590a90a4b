import math
from datetime import date, datetime, timedelta, timezone

import pytest

from kdbview.results.temporal import UNPARSEABLE, TemporalKind, parse_temporal


def local_millis(*args: int) -> float:
    return datetime(*args).timestamp() * 1000


string_cases = [
    ("09:30:00", 34_200_000.0, TemporalKind.TIME_OF_DAY),
    ("09:30:00.500", 34_200_500.0, TemporalKind.TIME_OF_DAY),
    ("9:05:07", 32_707_000.0, TemporalKind.TIME_OF_DAY),
    ("2024.01.15", local_millis(2024, 1, 15), TemporalKind.DATE),
    ("2024-01-15", local_millis(2024, 1, 15), TemporalKind.DATE),
    (
        "2024-01-15 09:30:00.250",
        local_millis(2024, 1, 15, 9, 30, 0, 250_000),
        TemporalKind.DATETIME,
    ),
    (
        "2024.01.15D09:30:00.123456789",
        local_millis(2024, 1, 15, 9, 30, 0, 123_000),
        TemporalKind.DATETIME,
    ),
    (
        "2024.01.15T09:30:00.123",
        local_millis(2024, 1, 15, 9, 30, 0, 123_000),
        TemporalKind.DATETIME,
    ),
]


@pytest.mark.parametrize("value, millis, kind", string_cases)
def test_parse_strings(value: str, millis: float, kind: TemporalKind) -> None:
    sample = parse_temporal(value)
    assert sample.kind is kind
    assert sample.timestamp_ms == millis


numeric_cases = [
    # epoch milliseconds and seconds
    (1_700_000_000_000, 1.7e12, TemporalKind.EPOCH_TIMESTAMP),
    (1_700_000_000, 1.7e12, TemporalKind.EPOCH_TIMESTAMP),
    # anything under a day of milliseconds is read as a time of day
    (34_200_000, 34_200_000.0, TemporalKind.TIME_OF_DAY),
    (3_600, 3_600.0, TemporalKind.TIME_OF_DAY),
    (0, 0.0, TemporalKind.TIME_OF_DAY),
    (90_000_000, 90_000_000.0, TemporalKind.OFFSET),
    (-5, -5.0, TemporalKind.OFFSET),
    ("34200000", 34_200_000.0, TemporalKind.TIME_OF_DAY),
]


@pytest.mark.parametrize("value, millis, kind", numeric_cases)
def test_parse_numbers_by_magnitude(
    value: object, millis: float, kind: TemporalKind
) -> None:
    sample = parse_temporal(value)
    assert sample.kind is kind
    assert sample.timestamp_ms == millis


def test_parse_python_objects() -> None:
    aware = datetime(2024, 1, 15, 9, 30, tzinfo=timezone.utc)
    sample = parse_temporal(aware)
    assert sample.kind is TemporalKind.DATETIME
    assert sample.timestamp_ms == aware.timestamp() * 1000

    sample = parse_temporal(date(2024, 1, 15))
    assert sample.kind is TemporalKind.DATE
    assert sample.timestamp_ms == local_millis(2024, 1, 15)


def test_parse_timedeltas() -> None:
    sample = parse_temporal(timedelta(hours=9, minutes=30, milliseconds=500))
    assert sample.kind is TemporalKind.TIME_OF_DAY
    assert sample.timestamp_ms == 34_200_500.0

    sample = parse_temporal(timedelta(days=2))
    assert sample.kind is TemporalKind.OFFSET
    assert sample.timestamp_ms == 172_800_000.0

    # what the grid shows for a timedelta parses to the same instant
    assert parse_temporal("09:30:00.500").timestamp_ms == 34_200_500.0


def test_free_form_strings_fall_back_to_dateutil() -> None:
    sample = parse_temporal("15 Jan 2024 09:30")
    assert sample.kind is TemporalKind.EPOCH_TIMESTAMP
    assert sample.timestamp_ms == local_millis(2024, 1, 15, 9, 30)


@pytest.mark.parametrize(
    "value",
    [
        None,
        "",
        "AAPL",
        "may",
        "2024.13.45",
        "not a 9 date at all",
        math.nan,
        math.inf,
        True,
        object(),
        10**400,
    ],
)
def test_unparseable_values(value: object) -> None:
    sample = parse_temporal(value)
    assert not sample.is_valid
    assert sample.kind is TemporalKind.UNKNOWN
    assert math.isnan(sample.timestamp_ms)


def test_unparseable_is_never_valid() -> None:
    assert not UNPARSEABLE.is_valid
    assert parse_temporal("09:30:00").is_valid
