from __future__ import annotations

from typing import Mapping, Optional, Union

from kdbview.utils.metrics.backends.abstract import MetricsBackend
from kdbview.utils.metrics.types import Tags


class DummyMetricsBackend(MetricsBackend):
    """
    A metrics backend that does not record metrics. Used when no statsd
    agent is configured, typically during local development.
    """

    def __init__(self, strict: bool = False):
        """
        :param strict: Enable runtime type checking of parameter values.
        """
        self.__strict = strict

    def __validate(
        self, name: str, value: Union[int, float], tags: Optional[Tags]
    ) -> None:
        if not self.__strict:
            return
        assert isinstance(name, str)
        assert isinstance(value, (int, float))
        if tags is not None:
            assert isinstance(tags, Mapping)
            for k, v in tags.items():
                assert isinstance(k, str)
                assert isinstance(v, str)

    def increment(
        self, name: str, value: Union[int, float] = 1, tags: Optional[Tags] = None
    ) -> None:
        self.__validate(name, value, tags)

    def gauge(
        self, name: str, value: Union[int, float], tags: Optional[Tags] = None
    ) -> None:
        self.__validate(name, value, tags)

    def timing(
        self, name: str, value: Union[int, float], tags: Optional[Tags] = None
    ) -> None:
        self.__validate(name, value, tags)
