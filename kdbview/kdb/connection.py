from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Mapping, Optional, Protocol

from kdbview import environment, settings
from kdbview.kdb.errors import KdbConnectionError, KdbQueryError, NotConnected
from kdbview.results.types import Symbol
from kdbview.utils.metrics.wrapper import MetricsWrapper

logger = logging.getLogger("kdbview.kdb")

metrics = MetricsWrapper(environment.metrics, "kdb")


class QueryTransport(Protocol):
    """Sends q expressions to a kdb+ process and returns plain Python values."""

    def execute(self, query: str) -> Any:
        ...

    def close(self) -> None:
        ...


TransportFactory = Callable[[str, int, str, str, float], QueryTransport]


class PyKXTransport:
    """
    kdb+ IPC transport built on pykx. Results are converted to the plain
    Python values the normalizer understands: tables become column maps
    (keyed tables are unkeyed first) and symbols are wrapped in ``Symbol``.
    """

    def __init__(
        self, host: str, port: int, username: str, password: str, timeout: float
    ) -> None:
        import pykx as kx

        self.__kx = kx
        self.__conn = kx.SyncQConnection(
            host=host,
            port=port,
            username=username,
            password=password,
            timeout=timeout,
        )

    def __symbol_columns(self, table: Any) -> set[str]:
        columns = self.__conn('{exec c from meta x where t="s"}', table).py()
        return {str(c) for c in columns}

    def __to_python(self, result: Any) -> Any:
        kx = self.__kx
        if isinstance(result, kx.KeyedTable):
            result = self.__conn("{0!x}", result)

        if isinstance(result, kx.Table):
            symbols = self.__symbol_columns(result)
            data = result.py()
            return {
                name: [Symbol(v) for v in values] if name in symbols else values
                for name, values in data.items()
            }
        if isinstance(result, kx.SymbolAtom):
            return Symbol(result.py())
        if isinstance(result, kx.SymbolVector):
            return [Symbol(v) for v in result.py()]
        return result.py()

    def execute(self, query: str) -> Any:
        return self.__to_python(self.__conn(query))

    def close(self) -> None:
        self.__conn.close()


class KdbConnection:
    """
    Handle on one kdb+ process. The transport is opened on first use and
    shared by all callers of this handle, one query at a time. A failed query
    drops the transport so the next call reconnects.
    """

    def __init__(
        self,
        host: str,
        port: int,
        username: str = "",
        password: str = "",
        timeout: float = 0.0,
        transport_factory: TransportFactory = PyKXTransport,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.timeout = timeout
        self.__transport_factory = transport_factory
        self.__transport: Optional[QueryTransport] = None
        self.__lock = threading.Lock()

    @property
    def config(self) -> Mapping[str, Any]:
        return {"host": self.host, "port": self.port}

    def __open(self) -> QueryTransport:
        if self.__transport is None:
            logger.info("Attempting to connect to KDB+ at %s:%s", self.host, self.port)
            try:
                self.__transport = self.__transport_factory(
                    self.host, self.port, self.username, self.password, self.timeout
                )
            except Exception as e:
                metrics.increment("connection_failed")
                raise KdbConnectionError(str(e), host=self.host, port=self.port) from e
            logger.info("Connected to KDB+ at %s:%s", self.host, self.port)
        return self.__transport

    def open(self) -> None:
        with self.__lock:
            self.__open()

    def execute(self, query: str) -> Any:
        with self.__lock:
            transport = self.__open()
            start = time.perf_counter()
            try:
                result = transport.execute(query)
            except Exception as e:
                logger.warning("Query failed: %s", query, exc_info=True)
                metrics.increment("query_failed")
                self.__drop(transport)
                raise KdbQueryError(str(e), query=query) from e
            finally:
                metrics.timing("query", (time.perf_counter() - start) * 1000)

        logger.debug("Query successful: %s", query)
        return result

    def __drop(self, transport: QueryTransport) -> None:
        self.__transport = None
        try:
            transport.close()
        except Exception:
            logger.warning("Error closing KDB+ connection", exc_info=True)

    def close(self) -> None:
        with self.__lock:
            if self.__transport is not None:
                self.__drop(self.__transport)
                logger.info("KDB+ connection to %s:%s closed", self.host, self.port)


class ConnectionManager:
    """
    Owns the current connection of one application instance. Connecting
    again replaces (and closes) the previous handle.
    """

    def __init__(self, transport_factory: Optional[TransportFactory] = None) -> None:
        self.__transport_factory = transport_factory or PyKXTransport
        self.__connection: Optional[KdbConnection] = None
        self.__lock = threading.Lock()

    def connect(
        self,
        host: str,
        port: int,
        username: str = "",
        password: str = "",
        timeout: float = 0.0,
    ) -> KdbConnection:
        connection = KdbConnection(
            host,
            port,
            username,
            password,
            timeout,
            transport_factory=self.__transport_factory,
        )
        with self.__lock:
            previous, self.__connection = self.__connection, None
        if previous is not None:
            previous.close()

        connection.open()
        with self.__lock:
            self.__connection = connection
        return connection

    def get(self) -> KdbConnection:
        connection = self.__connection
        if connection is None:
            raise NotConnected("Not connected to KDB+ server", should_report=False)
        return connection

    def is_connected(self) -> bool:
        return self.__connection is not None

    def status(self) -> Mapping[str, Any]:
        connection = self.__connection
        return {
            "connected": connection is not None,
            "config": dict(connection.config) if connection is not None else None,
        }

    def close(self) -> None:
        with self.__lock:
            connection, self.__connection = self.__connection, None
        if connection is not None:
            connection.close()


def connect_from_settings(
    host: Optional[str] = None,
    port: Optional[int] = None,
    transport_factory: Optional[TransportFactory] = None,
) -> KdbConnection:
    """Open a connection, filling whatever is not given from the KDB_* settings."""
    connection = KdbConnection(
        host or settings.KDB_HOST,
        port or settings.KDB_PORT,
        settings.KDB_USERNAME,
        settings.KDB_PASSWORD,
        settings.KDB_TIMEOUT,
        transport_factory=transport_factory or PyKXTransport,
    )
    connection.open()
    return connection
