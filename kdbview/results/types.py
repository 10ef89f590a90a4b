from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple, Union

Cell = Union[None, bool, int, float, str]
Row = Tuple[Any, ...]


class Symbol(str):
    """
    A kdb+ symbol atom. The transport wraps symbols in this type so column
    type inference can tell them apart from character data; once converted
    to a cell a symbol is a plain ``str``.
    """

    def __repr__(self) -> str:
        return f"`{str.__str__(self)}"


class TypeTag(Enum):
    """
    Column type reported alongside a normalized table. The values are the
    strings the grid expects in ``meta.types``.
    """

    NUMBER = "number"
    STRING = "string"
    SYMBOL = "symbol"
    DATETIME = "datetime"
    DATE = "date"
    # time of day in its three precisions: HH:MM:SS, HH:MM:SS.mmm, HH:MM
    SECOND = "second"
    MILLISECOND = "time"
    MINUTE = "minute"
    MIXED = "mixed"

    @property
    def is_time_of_day(self) -> bool:
        return self in (TypeTag.SECOND, TypeTag.MILLISECOND, TypeTag.MINUTE)

    @property
    def is_temporal(self) -> bool:
        return self.is_time_of_day or self in (TypeTag.DATETIME, TypeTag.DATE)


# The shapes a raw query result can take. ``classify_raw`` in the normalizer
# decides which one applies, everything downstream matches on these classes.


@dataclass(frozen=True)
class RowList:
    rows: Sequence[Any]


@dataclass(frozen=True)
class ColumnMap:
    columns: Mapping[str, Any]


@dataclass(frozen=True)
class ScalarList:
    values: Sequence[Any]


@dataclass(frozen=True)
class SingleScalar:
    value: Any


@dataclass(frozen=True)
class EmptyResult:
    reason: Optional[str] = None


RawResult = Union[RowList, ColumnMap, ScalarList, SingleScalar, EmptyResult]


@dataclass(frozen=True)
class NormalizedTable:
    columns: Tuple[str, ...] = field(default_factory=tuple)
    rows: Tuple[Row, ...] = field(default_factory=tuple)
    types: Tuple[TypeTag, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        assert len(self.columns) == len(self.types)
        assert all(len(row) == len(self.columns) for row in self.rows)

    @property
    def row_count(self) -> int:
        return len(self.rows)

    def is_empty(self) -> bool:
        return not self.columns

    def column_index(self, name: str) -> int:
        return self.columns.index(name)

    def column_values(self, name: str) -> Sequence[Any]:
        index = self.column_index(name)
        return [row[index] for row in self.rows]

    def to_records(self) -> Sequence[Dict[str, Any]]:
        """Row-oriented view, the same shape kdb+ uses for tables over IPC."""
        return [dict(zip(self.columns, row)) for row in self.rows]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "columns": list(self.columns),
            "data": [list(row) for row in self.rows],
            "meta": {
                "types": [t.value for t in self.types],
                "count": self.row_count,
            },
        }


EMPTY_TABLE = NormalizedTable()
