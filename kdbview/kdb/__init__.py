from kdbview.kdb.connection import (
    ConnectionManager,
    KdbConnection,
    QueryTransport,
    connect_from_settings,
)
from kdbview.kdb.errors import (
    InvalidPagination,
    InvalidTableName,
    KdbConnectionError,
    KdbError,
    KdbQueryError,
    NotConnected,
)

__all__ = [
    "ConnectionManager",
    "InvalidPagination",
    "InvalidTableName",
    "KdbConnection",
    "KdbConnectionError",
    "KdbError",
    "KdbQueryError",
    "NotConnected",
    "QueryTransport",
    "connect_from_settings",
]
