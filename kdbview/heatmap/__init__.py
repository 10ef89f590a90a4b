from kdbview.heatmap.classifier import (
    ShapeDecision,
    ShapeKind,
    classify,
    classify_table,
    default_axes,
)
from kdbview.heatmap.matrix import (
    IntensityMatrix,
    InvalidColumnSelection,
    MatrixKind,
    build_matrix,
)

__all__ = [
    "IntensityMatrix",
    "InvalidColumnSelection",
    "MatrixKind",
    "ShapeDecision",
    "ShapeKind",
    "build_matrix",
    "classify",
    "classify_table",
    "default_axes",
]
