from kdbview.results.normalizer import classify_raw, normalize
from kdbview.results.temporal import TemporalKind, TemporalSample, parse_temporal
from kdbview.results.types import NormalizedTable, Symbol, TypeTag

__all__ = [
    "NormalizedTable",
    "Symbol",
    "TemporalKind",
    "TemporalSample",
    "TypeTag",
    "classify_raw",
    "normalize",
    "parse_temporal",
]
