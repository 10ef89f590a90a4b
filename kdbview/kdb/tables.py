from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Sequence, Tuple

from kdbview import settings
from kdbview.kdb.connection import KdbConnection
from kdbview.kdb.errors import InvalidPagination, InvalidTableName, KdbError
from kdbview.results.normalizer import normalize
from kdbview.results.types import NormalizedTable

logger = logging.getLogger("kdbview.kdb")

# q names: letters, digits, underscores and dots for namespaced tables
TABLE_NAME_RE = re.compile(r"^\.?[A-Za-z][A-Za-z0-9_]*(\.[A-Za-z][A-Za-z0-9_]*)*$")


@dataclass(frozen=True)
class TableInfo:
    name: str
    columns: Tuple[str, ...] = field(default_factory=tuple)
    row_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "columns": list(self.columns),
            "rowCount": self.row_count,
        }


@dataclass(frozen=True)
class TablePage:
    table: NormalizedTable
    offset: int
    limit: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "data": self.table.to_dict(),
            "pagination": {
                "offset": self.offset,
                "limit": self.limit,
                "returned": self.table.row_count,
            },
        }


def validate_table_name(name: str) -> str:
    name = str(name)
    if not TABLE_NAME_RE.match(name):
        raise InvalidTableName(
            f"{name!r} is not a valid table name", table=name, should_report=False
        )
    return name


def _row_count(result: Any) -> int:
    if isinstance(result, bool) or not isinstance(result, int):
        return 0
    return result


def _column_names(result: Any) -> Tuple[str, ...]:
    if isinstance(result, (list, tuple)):
        return tuple(str(c) for c in result)
    if isinstance(result, dict):
        return tuple(str(c) for c in result.keys())
    return ()


def list_tables(conn: KdbConnection) -> Sequence[str]:
    result = conn.execute("tables[]")
    if isinstance(result, (list, tuple)):
        return [str(name) for name in result]
    if isinstance(result, str):
        # a single table comes back as an atom
        return [result]
    return []


def table_metadata(conn: KdbConnection, name: str) -> TableInfo:
    """
    Columns and row count of a table. Falls back to the keys of its first
    row when ``cols`` is not usable, and to an empty description when the
    table cannot be read at all.
    """
    name = validate_table_name(name)
    try:
        columns = _column_names(conn.execute(f"cols {name}"))
        row_count = _row_count(conn.execute(f"count {name}"))
        return TableInfo(name, columns, row_count)
    except KdbError as e:
        logger.warning("Failed to get metadata for table %s: %s", name, e.message)

    try:
        sample = normalize(conn.execute(f"1#{name}"))
        if not sample.is_empty():
            row_count = _row_count(conn.execute(f"count {name}"))
            return TableInfo(name, sample.columns, row_count)
    except KdbError as e:
        logger.warning("Fallback metadata failed for %s: %s", name, e.message)

    return TableInfo(name)


def list_tables_with_metadata(conn: KdbConnection) -> Sequence[TableInfo]:
    infos = []
    for name in list_tables(conn):
        try:
            infos.append(table_metadata(conn, name))
        except InvalidTableName:
            logger.warning("Skipping table with unsupported name %r", name)
    return infos


def validate_pagination(offset: Any, limit: Any) -> Tuple[int, int]:
    try:
        offset = int(offset)
    except (TypeError, ValueError):
        raise InvalidPagination("Invalid offset parameter", should_report=False)
    if offset < 0:
        raise InvalidPagination("Invalid offset parameter", should_report=False)

    max_limit = settings.TABLE_PAGE_MAX_LIMIT
    try:
        limit = int(limit)
    except (TypeError, ValueError):
        limit = -1
    if not 1 <= limit <= max_limit:
        raise InvalidPagination(
            f"Invalid limit parameter (must be 1-{max_limit})", should_report=False
        )
    return offset, limit


def page_query(name: str, offset: int, limit: int) -> str:
    return f"select from {name} where i within ({offset};{offset + limit - 1})"


def fetch_page(
    conn: KdbConnection,
    name: str,
    offset: Any = 0,
    limit: Optional[Any] = None,
) -> TablePage:
    name = validate_table_name(name)
    if limit is None:
        limit = settings.TABLE_PAGE_DEFAULT_LIMIT
    offset, limit = validate_pagination(offset, limit)

    logger.info("Fetching %d rows from %s starting at offset %d", limit, name, offset)
    table = normalize(conn.execute(page_query(name, offset, limit)))
    return TablePage(table, offset, limit)
