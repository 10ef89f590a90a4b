from abc import ABC, abstractmethod
from typing import Optional, Union

from kdbview.utils.metrics.types import Tags


class MetricsBackend(ABC):
    """
    An abstract class that defines the interface for metrics backends.
    """

    @abstractmethod
    def increment(
        self, name: str, value: Union[int, float] = 1, tags: Optional[Tags] = None
    ) -> None:
        """
        Increment a counter metric.

        Examples:

        metrics.increment("api.request", tags={"endpoint": "query"})
        """
        raise NotImplementedError

    @abstractmethod
    def gauge(
        self, name: str, value: Union[int, float], tags: Optional[Tags] = None
    ) -> None:
        """
        Emit a metric that is the authoritative value for a quantity at a point in time

        Examples:

        metrics.gauge("heatmap.cells", len(x_axis) * len(y_axis))
        """
        raise NotImplementedError

    @abstractmethod
    def timing(
        self, name: str, value: Union[int, float], tags: Optional[Tags] = None
    ) -> None:
        """
        Emit a metric for the timing performance of an operation.

        Example:

        metrics.timing("query.latency", query_latency_in_ms)
        """
        raise NotImplementedError
