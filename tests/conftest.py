import os

os.environ.setdefault("KDBVIEW_SETTINGS", "test")

from typing import Any, Callable, Dict, Generator, List  # noqa: E402

import pytest  # noqa: E402

from kdbview import settings  # noqa: E402
from kdbview.environment import setup_sentry  # noqa: E402
from kdbview.kdb.connection import ConnectionManager, KdbConnection  # noqa: E402
from kdbview.results.types import Symbol  # noqa: E402
from kdbview.utils.metrics.backends.testing import (  # noqa: E402
    clear_recorded_metric_calls,
)


def pytest_configure() -> None:
    """
    Set up the Sentry SDK to avoid errors hidden by configuration.
    """
    assert (
        settings.TESTING
    ), "settings.TESTING is False, try `KDBVIEW_SETTINGS=test`"

    setup_sentry()


class FakeTransport:
    """
    In-memory stand-in for a kdb+ process. Queries are answered from a dict
    of canned results; a stored exception is raised instead of returned.
    """

    def __init__(self, responses: Dict[str, Any]) -> None:
        self.responses = responses
        self.queries: List[str] = []
        self.closed = False

    def execute(self, query: str) -> Any:
        self.queries.append(query)
        if query not in self.responses:
            raise RuntimeError(f"unexpected query: {query}")
        response = self.responses[query]
        if isinstance(response, Exception):
            raise response
        return response

    def close(self) -> None:
        self.closed = True


TRADE_COLUMNS: Dict[str, Any] = {
    "time": ["09:30:00", "09:30:01", "09:30:02"],
    "sym": [Symbol("AAPL"), Symbol("MSFT"), Symbol("AAPL")],
    "price": [150.0, 310.5, 150.25],
    "size": [100, 200, -(2**63)],
}

DEFAULT_RESPONSES: Dict[str, Any] = {
    "tables[]": [Symbol("trade"), Symbol("quote")],
    "cols trade": [Symbol(c) for c in TRADE_COLUMNS],
    "count trade": 3,
    "cols quote": [Symbol("time"), Symbol("bid"), Symbol("ask")],
    "count quote": 0,
    "select from trade": TRADE_COLUMNS,
    "select from trade where i within (0;49)": TRADE_COLUMNS,
}


@pytest.fixture
def fake_responses() -> Dict[str, Any]:
    return dict(DEFAULT_RESPONSES)


@pytest.fixture
def transport_factory(
    fake_responses: Dict[str, Any]
) -> Callable[..., FakeTransport]:
    opened: List[FakeTransport] = []

    def factory(
        host: str, port: int, username: str, password: str, timeout: float
    ) -> FakeTransport:
        transport = FakeTransport(fake_responses)
        opened.append(transport)
        return transport

    factory.opened = opened  # type: ignore[attr-defined]
    return factory


@pytest.fixture
def kdb_connection(
    transport_factory: Callable[..., FakeTransport]
) -> Generator[KdbConnection, None, None]:
    connection = KdbConnection("localhost", 5000, transport_factory=transport_factory)
    yield connection
    connection.close()


@pytest.fixture
def connection_manager(
    transport_factory: Callable[..., FakeTransport]
) -> Generator[ConnectionManager, None, None]:
    manager = ConnectionManager(transport_factory)
    yield manager
    manager.close()


@pytest.fixture(autouse=True)
def clear_metrics() -> Generator[None, None, None]:
    clear_recorded_metric_calls()
    yield
    clear_recorded_metric_calls()
