from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from kdbview.heatmap.buckets import (
    adaptive_bucket_count,
    build_time_axis,
    build_value_axis,
)
from kdbview.heatmap.classifier import ShapeDecision, ShapeKind, classify_table
from kdbview.results.cells import is_number
from kdbview.results.temporal import parse_temporal
from kdbview.results.types import NormalizedTable
from kdbview.utils.serializable_exception import SerializableException

logger = logging.getLogger("kdbview.heatmap")

# share of distinct X values above which every row is taken as its own point
PRE_AGGREGATED_RATIO = 0.9
# intensity given to every point of a series that never changes
FLAT_INTENSITY = 50.0
DISTRIBUTION_BUCKETS = 15

TIME_BUCKET_BOUNDS = (8, 20)
VALUE_BUCKET_BOUNDS = (6, 12)
NUMERIC_X_BUCKET_BOUNDS = (6, 16)


class InvalidColumnSelection(SerializableException):
    pass


class MatrixKind(Enum):
    DENSITY = "density"
    SIMPLE_VALUES = "simple_values"
    MULTI_SERIES = "multi_series"
    DISTRIBUTION = "distribution"


@dataclass(frozen=True)
class IntensityMatrix:
    x_axis: Tuple[str, ...]
    y_axis: Tuple[str, ...]
    cells: Tuple[Tuple[float, ...], ...]
    kind: MatrixKind
    shape: ShapeKind
    colorscale: str = "Viridis"
    title: str = ""
    # bucket labels of the distribution strip, empty for every other kind
    value_buckets: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        assert len(self.cells) == len(self.y_axis)
        assert all(len(row) == len(self.x_axis) for row in self.cells)

    def is_empty(self) -> bool:
        return not self.cells

    def to_dict(self) -> Dict[str, Any]:
        return {
            "x": list(self.x_axis),
            "y": list(self.y_axis),
            "z": [list(row) for row in self.cells],
            "type": self.kind.value,
            "shape": self.shape.value,
            "colorscale": self.colorscale,
            "title": self.title,
            "value_buckets": list(self.value_buckets),
        }


def _empty(kind: MatrixKind, shape: ShapeKind, title: str = "") -> IntensityMatrix:
    return IntensityMatrix((), (), (), kind, shape, title=title)


def _valid_number(value: Any) -> bool:
    return is_number(value) and not math.isnan(value)


def scale(value: float, low: float, high: float) -> float:
    """Position of ``value`` within ``[low, high]`` on a 0 to 100 scale."""
    if high == low:
        return FLAT_INTENSITY
    return (value - low) / (high - low) * 100


def normalize_counts(grid: List[List[int]]) -> Tuple[Tuple[float, ...], ...]:
    peak = max((cell for row in grid for cell in row), default=0)
    if peak <= 0:
        return tuple(tuple(0.0 for _ in row) for row in grid)
    return tuple(tuple(cell / peak * 100 for cell in row) for row in grid)


def axis_label(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def density_colorscale(column: str) -> str:
    lowered = column.lower()
    if "price" in lowered:
        return "RdYlGn"
    if "vol" in lowered:
        return "Hot"
    return "Viridis"


def is_pre_aggregated(x_values: Sequence[Any]) -> bool:
    if not x_values:
        return False
    distinct = len({axis_label(v) for v in x_values})
    return distinct == len(x_values) or distinct / len(x_values) > PRE_AGGREGATED_RATIO


def _distribution(
    table: NormalizedTable, column: str, shape: ShapeKind
) -> IntensityMatrix:
    title = "Value Distribution Heatmap"
    values = [v for v in table.column_values(column) if _valid_number(v)]
    if not values:
        return _empty(MatrixKind.DISTRIBUTION, shape, title)

    buckets = build_value_axis(values, DISTRIBUTION_BUCKETS)
    mean = sum(values) / len(values)
    deviations = [abs(v - mean) for v in values]
    peak = max(deviations)
    strip = tuple(d / peak * 100 if peak > 0 else 0.0 for d in deviations)

    return IntensityMatrix(
        x_axis=tuple(str(i + 1) for i in range(len(values))),
        y_axis=("Distribution",),
        cells=(strip,),
        kind=MatrixKind.DISTRIBUTION,
        shape=shape,
        colorscale="Viridis",
        title=title,
        value_buckets=buckets.labels,
    )


def _series(
    table: NormalizedTable,
    x_column: str,
    y_columns: Sequence[str],
    shape: ShapeKind,
) -> IntensityMatrix:
    multi = len(y_columns) > 1
    kind = MatrixKind.MULTI_SERIES if multi else MatrixKind.SIMPLE_VALUES
    title = (
        "Multi-Series Values over Time" if multi else f"{y_columns[0]} over Time"
    )

    x_index = table.column_index(x_column)
    y_indexes = [(name, table.column_index(name)) for name in y_columns]

    points = []
    for row in table.rows:
        sample = parse_temporal(row[x_index])
        if not sample.is_valid:
            continue
        values = {name: row[i] for name, i in y_indexes if _valid_number(row[i])}
        if not values:
            continue
        points.append((sample.timestamp_ms, row[x_index], values))

    if not points:
        return _empty(kind, shape, title)

    # sorted() is stable, rows sharing an instant keep their order
    points.sort(key=lambda point: point[0])

    everything = [v for _, _, values in points for v in values.values()]
    low, high = min(everything), max(everything)

    cells = tuple(
        tuple(
            scale(values[name], low, high) if name in values else 0.0
            for _, _, values in points
        )
        for name in y_columns
    )

    return IntensityMatrix(
        x_axis=tuple(axis_label(x) for _, x, _ in points),
        y_axis=tuple(y_columns) if multi else ("Values",),
        cells=cells,
        kind=kind,
        shape=shape,
        colorscale="Plasma",
        title=title,
    )


def _time_density(
    table: NormalizedTable, x_column: str, y_column: str, shape: ShapeKind
) -> IntensityMatrix:
    title = f"{y_column} Density over Time"
    x_values = table.column_values(x_column)
    y_values = [v for v in table.column_values(y_column) if _valid_number(v)]

    x_axis = build_time_axis(
        x_values, adaptive_bucket_count(len(x_values), *TIME_BUCKET_BOUNDS)
    )
    y_axis = build_value_axis(
        y_values, adaptive_bucket_count(len(y_values), *VALUE_BUCKET_BOUNDS)
    )
    if not len(x_axis) or not len(y_axis):
        return _empty(MatrixKind.DENSITY, shape, title)

    grid = [[0] * len(x_axis) for _ in range(len(y_axis))]
    for x, y in zip(x_values, table.column_values(y_column)):
        if x is None or not _valid_number(y) or not parse_temporal(x).is_valid:
            continue
        grid[y_axis.index_of(y)][x_axis.index_of(x)] += 1

    return IntensityMatrix(
        x_axis=x_axis.labels,
        y_axis=y_axis.labels,
        cells=normalize_counts(grid),
        kind=MatrixKind.DENSITY,
        shape=shape,
        colorscale=density_colorscale(y_column),
        title=title,
    )


def _numeric_density(
    table: NormalizedTable, x_column: str, y_column: str, shape: ShapeKind
) -> IntensityMatrix:
    title = "Data Density Heatmap"
    x_values = [v for v in table.column_values(x_column) if _valid_number(v)]
    y_values = [v for v in table.column_values(y_column) if _valid_number(v)]

    x_axis = build_value_axis(
        x_values, adaptive_bucket_count(len(x_values), *NUMERIC_X_BUCKET_BOUNDS)
    )
    y_axis = build_value_axis(
        y_values, adaptive_bucket_count(len(y_values), *VALUE_BUCKET_BOUNDS)
    )
    if not len(x_axis) or not len(y_axis):
        return _empty(MatrixKind.DENSITY, shape, title)

    grid = [[0] * len(x_axis) for _ in range(len(y_axis))]
    for x, y in zip(table.column_values(x_column), table.column_values(y_column)):
        if _valid_number(x) and _valid_number(y):
            grid[y_axis.index_of(y)][x_axis.index_of(x)] += 1

    return IntensityMatrix(
        x_axis=x_axis.labels,
        y_axis=y_axis.labels,
        cells=normalize_counts(grid),
        kind=MatrixKind.DENSITY,
        shape=shape,
        colorscale="Viridis",
        title=title,
    )


def build_matrix(
    table: NormalizedTable,
    x_column: str,
    y_columns: Union[str, Sequence[str]],
    decision: Optional[ShapeDecision] = None,
) -> IntensityMatrix:
    """
    Build the heatmap for ``y_columns`` plotted against ``x_column``.

    Pre-aggregated time series (one row per instant) are drawn directly, one
    matrix row per series scaled against the combined range of all of them.
    Everything else is binned into an occurrence density grid, over time when
    X is the time column of the shape decision and over plain numbers
    otherwise.

    Raises InvalidColumnSelection for columns the table does not have. Empty
    or unusable data never raises, it produces a matrix with empty axes.
    """
    if isinstance(y_columns, str):
        y_columns = [y_columns]
    y_columns = list(y_columns)

    if not y_columns:
        raise InvalidColumnSelection("At least one Y column must be selected")
    for column in [x_column, *y_columns]:
        if column not in table.columns:
            raise InvalidColumnSelection(
                f"Invalid column selection: {column}", column=column
            )

    if decision is None:
        decision = classify_table(table, x_column, y_columns)
    shape = decision.kind

    if shape is ShapeKind.SINGLE_COLUMN:
        return _distribution(table, y_columns[0], shape)

    x_values = table.column_values(x_column)
    # only the classifier decides that X is time, numeric pairs it could not
    # place are binned as plain numbers
    x_is_time = decision.is_temporal and decision.time_column == x_column

    if x_is_time and is_pre_aggregated(x_values):
        logger.debug("Plotting %d rows as pre-aggregated series", len(x_values))
        return _series(table, x_column, y_columns, shape)

    if x_is_time:
        logger.debug("Binning %d rows into a time density grid", len(x_values))
        return _time_density(table, x_column, y_columns[0], shape)

    logger.debug("Binning %d rows into a numeric density grid", len(x_values))
    return _numeric_density(table, x_column, y_columns[0], shape)
