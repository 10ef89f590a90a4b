from __future__ import annotations

from dataclasses import dataclass
from typing import List, MutableMapping, Optional, Union

from kdbview.utils.metrics.backends.abstract import MetricsBackend
from kdbview.utils.metrics.types import Tags


@dataclass(frozen=True)
class RecordedMetricCall:
    value: int | float
    tags: Tags


RecordedMetricCalls = List[RecordedMetricCall]


RECORDED_METRIC_CALLS: MutableMapping[
    str, MutableMapping[str, List[RecordedMetricCall]]
] = {}


def record_metric_call(
    mtype: str, name: str, value: int | float, tags: Optional[Tags]
) -> None:
    calls = RECORDED_METRIC_CALLS.setdefault(mtype, {}).setdefault(name, [])
    calls.append(RecordedMetricCall(value, tags or {}))


def clear_recorded_metric_calls() -> None:
    RECORDED_METRIC_CALLS.clear()


def get_recorded_metric_calls(mtype: str, name: str) -> RecordedMetricCalls | None:
    """
    Used in tests to determine if the metrics were called with the correct values
    """
    return RECORDED_METRIC_CALLS.get(mtype, {}).get(name)


class TestingMetricsBackend(MetricsBackend):
    """
    A metrics backend that records metrics locally, to be verified in tests.
    """

    def increment(
        self, name: str, value: Union[int, float] = 1, tags: Optional[Tags] = None
    ) -> None:
        record_metric_call("increment", name, value, tags)

    def gauge(
        self, name: str, value: Union[int, float], tags: Optional[Tags] = None
    ) -> None:
        record_metric_call("gauge", name, value, tags)

    def timing(
        self, name: str, value: Union[int, float], tags: Optional[Tags] = None
    ) -> None:
        record_metric_call("timing", name, value, tags)
