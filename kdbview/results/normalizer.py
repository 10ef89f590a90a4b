from __future__ import annotations

import logging
import re
from collections import Counter
from datetime import date, datetime, time, timedelta
from typing import Any, Iterable, Mapping, Optional, Sequence

from kdbview import settings
from kdbview.results.cells import as_cell, is_null, is_number
from kdbview.results.types import (
    EMPTY_TABLE,
    ColumnMap,
    EmptyResult,
    NormalizedTable,
    RawResult,
    RowList,
    ScalarList,
    SingleScalar,
    Symbol,
    TypeTag,
)

logger = logging.getLogger("kdbview.results")

# Most specific first so that 09:30:00 is not read as HH:MM
TIME_OF_DAY_PATTERNS = (
    (re.compile(r"^\d{2}:\d{2}:\d{2}$"), TypeTag.SECOND),
    (re.compile(r"^\d{2}:\d{2}:\d{2}\.\d{3}$"), TypeTag.MILLISECOND),
    (re.compile(r"^\d{2}:\d{2}$"), TypeTag.MINUTE),
)


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(
        value, (str, bytes, bytearray)
    )


def classify_raw(value: Any) -> RawResult:
    """
    Decide once which shape a raw result has. Everything past this point
    works on the returned variant instead of inspecting the value again.
    """
    if value is None:
        return EmptyResult("no result")

    if _is_sequence(value):
        if not value:
            return EmptyResult("empty list")
        if isinstance(value[0], Mapping):
            return RowList(value)
        return ScalarList(value)

    if isinstance(value, Mapping):
        if not value:
            return EmptyResult("empty mapping")
        return ColumnMap(value)

    return SingleScalar(value)


def infer_type(sample: Any) -> TypeTag:
    if is_number(sample):
        return TypeTag.NUMBER

    if isinstance(sample, Symbol):
        return TypeTag.SYMBOL

    if isinstance(sample, str):
        for pattern, tag in TIME_OF_DAY_PATTERNS:
            if pattern.match(sample):
                return tag
        if "T" in sample:
            return TypeTag.DATETIME
        return TypeTag.STRING

    if isinstance(sample, datetime):
        return TypeTag.DATETIME

    if isinstance(sample, date):
        return TypeTag.DATE

    if isinstance(sample, (time, timedelta)):
        return TypeTag.MILLISECOND

    return TypeTag.MIXED


def infer_column_type(
    values: Iterable[Any], sample_size: Optional[int] = None
) -> TypeTag:
    """
    Type of a column from its leading values. With a sample size of 1 only
    the first value is looked at, whatever it is. Larger sizes skip nulls and
    take the most common tag among the first ``sample_size`` non-null values,
    earliest tag winning ties.
    """
    if sample_size is None:
        sample_size = settings.TYPE_INFERENCE_SAMPLE_SIZE

    iterator = iter(values)
    if sample_size <= 1:
        return infer_type(next(iterator, None))

    votes: Counter[TypeTag] = Counter()
    for value in iterator:
        if is_null(value):
            continue
        votes[infer_type(value)] += 1
        if sum(votes.values()) >= sample_size:
            break

    if not votes:
        return TypeTag.MIXED
    # Counter keeps insertion order, most_common is stable for ties
    return votes.most_common(1)[0][0]


def _normalize_row_list(raw: RowList) -> NormalizedTable:
    first = raw.rows[0]
    columns = tuple(str(key) for key in first.keys())
    keys = list(first.keys())

    types = tuple(
        infer_column_type(
            row.get(key) if isinstance(row, Mapping) else None for row in raw.rows
        )
        for key in keys
    )

    rows = []
    for row in raw.rows:
        if not isinstance(row, Mapping):
            rows.append(tuple(None for _ in keys))
            continue
        rows.append(tuple(as_cell(row.get(key)) for key in keys))

    return NormalizedTable(columns=columns, rows=tuple(rows), types=types)


def _normalize_column_map(raw: ColumnMap) -> NormalizedTable:
    columns = tuple(str(key) for key in raw.columns.keys())
    values = list(raw.columns.values())

    row_count = next((len(v) for v in values if _is_sequence(v)), 1)

    def cell_at(column: Any, index: int) -> Any:
        if not _is_sequence(column):
            return column
        return column[index] if index < len(column) else None

    types = tuple(
        infer_column_type(cell_at(column, i) for i in range(max(row_count, 1)))
        for column in values
    )

    rows = tuple(
        tuple(as_cell(cell_at(column, i)) for column in values)
        for i in range(row_count)
    )

    return NormalizedTable(columns=columns, rows=rows, types=types)


def _normalize_scalar_list(raw: ScalarList) -> NormalizedTable:
    first = raw.values[0]
    if isinstance(first, Symbol):
        column, tag = "name", TypeTag.SYMBOL
    elif isinstance(first, str):
        column, tag = "name", TypeTag.STRING
    else:
        column, tag = "result", TypeTag.MIXED

    return NormalizedTable(
        columns=(column,),
        rows=tuple((as_cell(value),) for value in raw.values),
        types=(tag,),
    )


def _normalize(raw: RawResult) -> NormalizedTable:
    if isinstance(raw, RowList):
        return _normalize_row_list(raw)
    elif isinstance(raw, ColumnMap):
        return _normalize_column_map(raw)
    elif isinstance(raw, ScalarList):
        return _normalize_scalar_list(raw)
    elif isinstance(raw, SingleScalar):
        return NormalizedTable(
            columns=("result",), rows=((as_cell(raw.value),),), types=(TypeTag.MIXED,)
        )
    return EMPTY_TABLE


def normalize(value: Any) -> NormalizedTable:
    """
    Turn any kdb+ result into ``{columns, rows, types}``. Accepts either an
    already classified ``RawResult`` or the value returned by the transport.

    Malformed results never raise: a partial response must still render, so
    anything that cannot be read degrades to an empty table.
    """
    try:
        raw = (
            value
            if isinstance(
                value, (RowList, ColumnMap, ScalarList, SingleScalar, EmptyResult)
            )
            else classify_raw(value)
        )
        return _normalize(raw)
    except Exception:
        logger.warning(
            "Could not normalize %s result, returning an empty table",
            type(value).__name__,
            exc_info=True,
        )
        return EMPTY_TABLE
