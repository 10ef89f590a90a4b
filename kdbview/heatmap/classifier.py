from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Optional, Sequence, Tuple

from kdbview.results.cells import is_number
from kdbview.results.types import NormalizedTable

OHLC_NAMES = ("open", "high", "low", "close")
TEMPORAL_NAME_PARTS = ("time", "date", "timestamp", "ts")
VOLUME_NAME_PARTS = ("volume", "vol", "size", "qty")
PRICE_NAME_PARTS = ("price", "close", "open", "high", "low", "px")

# rows looked at when deciding whether a column holds numbers
NUMERIC_SAMPLE_ROWS = 10


class ShapeKind(Enum):
    SINGLE_COLUMN = "single_column"
    OHLC = "ohlc"
    TIME_VOLUME = "time_volume"
    TIME_PRICE = "time_price"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ShapeDecision:
    kind: ShapeKind
    time_column: Optional[str] = None
    price_columns: Tuple[str, ...] = field(default_factory=tuple)
    volume_column: Optional[str] = None

    @property
    def is_temporal(self) -> bool:
        return self.time_column is not None


def is_temporal_name(column: str) -> bool:
    lowered = column.lower()
    return lowered == "t" or any(part in lowered for part in TEMPORAL_NAME_PARTS)


def _temporal_columns(
    columns: Sequence[str], rows: Sequence[Sequence[Any]]
) -> list[str]:
    if not rows:
        return []
    return [
        column
        for index, column in enumerate(columns)
        if is_temporal_name(column)
        and index < len(rows[0])
        and isinstance(rows[0][index], (str, date))
    ]


def numeric_columns(
    columns: Sequence[str], rows: Sequence[Sequence[Any]]
) -> list[str]:
    sample = rows[:NUMERIC_SAMPLE_ROWS]
    return [
        column
        for index, column in enumerate(columns)
        if any(index < len(row) and is_number(row[index]) for row in sample)
    ]


def _named(columns: Sequence[str], parts: Sequence[str]) -> list[str]:
    return [c for c in columns if any(part in c.lower() for part in parts)]


def classify(
    columns: Sequence[str],
    rows: Sequence[Sequence[Any]],
    x_column: Optional[str] = None,
    y_columns: Optional[Sequence[str]] = None,
) -> ShapeDecision:
    """
    Guess what kind of market data a result holds from its column names and
    the first few rows. The guess only picks a bucketing strategy: names are
    matched by substring and only a handful of values are looked at.
    """
    if len(columns) == 1 or (
        x_column is not None
        and y_columns is not None
        and len(y_columns) == 1
        and y_columns[0] == x_column
    ):
        return ShapeDecision(ShapeKind.SINGLE_COLUMN)

    temporal = _temporal_columns(columns, rows)
    time_column = temporal[0] if temporal else None

    if all(any(name in c.lower() for c in columns) for name in OHLC_NAMES):
        return ShapeDecision(
            ShapeKind.OHLC,
            time_column=time_column,
            price_columns=tuple(_named(columns, OHLC_NAMES)),
        )

    volume = _named(columns, VOLUME_NAME_PARTS)
    if time_column is not None and volume:
        return ShapeDecision(
            ShapeKind.TIME_VOLUME, time_column=time_column, volume_column=volume[0]
        )

    numeric = numeric_columns(columns, rows)
    if time_column is not None and numeric:
        prices = _named(columns, PRICE_NAME_PARTS) or [
            c for c in numeric if c not in temporal
        ]
        return ShapeDecision(
            ShapeKind.TIME_PRICE, time_column=time_column, price_columns=tuple(prices)
        )

    return ShapeDecision(ShapeKind.UNKNOWN)


def classify_table(
    table: NormalizedTable,
    x_column: Optional[str] = None,
    y_columns: Optional[Sequence[str]] = None,
) -> ShapeDecision:
    return classify(table.columns, table.rows, x_column, y_columns)


def default_axes(
    table: NormalizedTable, decision: Optional[ShapeDecision] = None
) -> Tuple[Optional[str], list[str]]:
    """
    Initial X and Y selection for a chart. Time series plot their price (or
    volume) columns against time; anything else gets the first two numeric
    columns, or the first non-numeric column against the first numeric one.
    """
    if decision is not None and decision.time_column is not None:
        if decision.price_columns:
            return decision.time_column, list(decision.price_columns)
        if decision.volume_column is not None:
            return decision.time_column, [decision.volume_column]

    numeric = numeric_columns(table.columns, table.rows)
    categorical = [c for c in table.columns if c not in numeric]

    if len(numeric) >= 2:
        return numeric[0], [numeric[1]]
    if len(numeric) == 1 and categorical:
        return categorical[0], [numeric[0]]
    if len(table.columns) == 1:
        return table.columns[0], [table.columns[0]]
    return None, []
