from functools import partial
from typing import Mapping, Optional

from kdbview import settings
from kdbview.utils.metrics import MetricsBackend
from kdbview.utils.metrics.types import Tags


def create_metrics(
    prefix: str,
    tags: Optional[Tags] = None,
    sample_rates: Optional[Mapping[str, float]] = None,
) -> MetricsBackend:
    """Create a DogStatsd backed metrics backend if DOGSTATSD_HOST and
    DOGSTATSD_PORT are defined, with the specified prefix and tags. Return a
    recording backend under test settings and a DummyMetricsBackend otherwise.
    """
    host: Optional[str] = settings.DOGSTATSD_HOST
    port: Optional[int] = settings.DOGSTATSD_PORT

    if settings.TESTING:
        from kdbview.utils.metrics.backends.testing import TestingMetricsBackend

        return TestingMetricsBackend()
    elif host is None and port is None:
        from kdbview.utils.metrics.backends.dummy import DummyMetricsBackend

        return DummyMetricsBackend()
    elif host is None or port is None:
        raise ValueError(
            f"DOGSTATSD_HOST and DOGSTATSD_PORT should both be None or not None. Found DOGSTATSD_HOST: {host}, DOGSTATSD_PORT: {port} instead."
        )

    from datadog import DogStatsd

    from kdbview.utils.metrics.backends.datadog import DatadogMetricsBackend

    return DatadogMetricsBackend(
        partial(
            DogStatsd,
            host=host,
            port=port,
            namespace=prefix,
            constant_tags=[f"{key}:{value}" for key, value in tags.items()]
            if tags is not None
            else None,
        ),
        sample_rates,
    )
