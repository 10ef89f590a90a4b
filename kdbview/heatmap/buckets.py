from __future__ import annotations

import math
from collections import Counter
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Iterable, Sequence, Tuple

from kdbview.results.cells import is_number
from kdbview.results.temporal import (
    MILLIS_PER_DAY,
    TemporalKind,
    TemporalSample,
    parse_temporal,
)

MILLIS_PER_HOUR = 3_600_000
MILLIS_PER_MINUTE = 60_000

# a day of 10 minute bars; fewer distinct instants than this within a day
# means the data was bucketed upstream
PRE_BUCKETED_MAX_INSTANTS = 144


def _first_bucket(value: Any) -> int:
    return 0


@dataclass(frozen=True)
class BucketAxis:
    labels: Tuple[str, ...]
    index_of: Callable[[Any], int] = _first_bucket

    def __len__(self) -> int:
        return len(self.labels)


EMPTY_AXIS = BucketAxis(labels=())


def adaptive_bucket_count(sample_size: int, lower: int, upper: int) -> int:
    """
    Bucket count that grows with the square root of the sample, kept within
    ``[lower, upper]`` so small results are not too sparse and large ones not
    too noisy.
    """
    return min(upper, max(lower, math.floor(math.sqrt(sample_size / 5))))


def _clamp_index(position: float, bucket_count: int) -> int:
    return max(0, min(math.floor(position), bucket_count - 1))


def build_value_axis(values: Iterable[Any], bucket_count: int) -> BucketAxis:
    """Equal-width buckets between the smallest and largest number."""
    numbers = [v for v in values if is_number(v) and not math.isnan(v)]
    if not numbers or bucket_count < 1:
        return EMPTY_AXIS

    low, high = min(numbers), max(numbers)
    size = (high - low) / bucket_count

    labels = tuple(
        f"{low + i * size:.2f}-{low + (i + 1) * size:.2f}" for i in range(bucket_count)
    )

    def index_of(value: Any) -> int:
        if size == 0 or not is_number(value) or math.isnan(value):
            return 0
        return _clamp_index((value - low) / size, bucket_count)

    return BucketAxis(labels, index_of)


def dominant_kind(samples: Sequence[TemporalSample]) -> TemporalKind:
    return Counter(s.kind for s in samples).most_common(1)[0][0]


def format_time_of_day(millis: float, span: float) -> str:
    hours = math.floor(millis / MILLIS_PER_HOUR) % 24
    minutes = math.floor((millis % MILLIS_PER_HOUR) / MILLIS_PER_MINUTE)
    seconds = math.floor((millis % MILLIS_PER_MINUTE) / 1000)
    if span < MILLIS_PER_HOUR:
        return f"{hours:02d}:{minutes:02d}:{seconds:02d}"
    return f"{hours:02d}:{minutes:02d}"


def format_instant(millis: float, span: float) -> str:
    try:
        instant = datetime.fromtimestamp(millis / 1000)
    except (OverflowError, OSError, ValueError):
        return str(millis)

    if span < MILLIS_PER_HOUR:
        return instant.strftime("%H:%M:%S")
    if span < MILLIS_PER_DAY:
        return instant.strftime("%H:%M")
    return instant.strftime("%x %H:%M")


def build_time_axis(values: Iterable[Any], bucket_count: int) -> BucketAxis:
    """
    Equal-width time buckets between the earliest and latest instant. Labels
    follow the dominant temporal kind and the span of the data: seconds under
    an hour, minutes under a day, dates beyond.
    """
    samples = [
        sample
        for sample in (parse_temporal(v) for v in values if v is not None)
        if sample.is_valid
    ]
    if not samples or bucket_count < 1:
        return EMPTY_AXIS

    kind = dominant_kind(samples)
    timestamps = [s.timestamp_ms for s in samples]
    start, end = min(timestamps), max(timestamps)
    span = end - start

    effective = bucket_count
    if kind is TemporalKind.TIME_OF_DAY and span < MILLIS_PER_DAY:
        distinct = len(set(timestamps))
        if distinct <= PRE_BUCKETED_MAX_INSTANTS:
            effective = min(distinct, bucket_count)

    size = span / effective if span > 0 else 1.0
    formatter = (
        format_time_of_day if kind is TemporalKind.TIME_OF_DAY else format_instant
    )
    labels = tuple(formatter(start + i * size, span) for i in range(effective))

    def index_of(value: Any) -> int:
        sample = parse_temporal(value)
        if not sample.is_valid or span <= 0:
            return 0
        return _clamp_index((sample.timestamp_ms - start) / size, effective)

    return BucketAxis(labels, index_of)
