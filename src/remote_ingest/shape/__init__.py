"""Schema ("shape") inference for JSON-like data."""

from .budget import shape_from_file, shape_from_stream, truncate_to_boundary
from .engine import (
    UNKNOWN,
    ArrayShape,
    ObjectShape,
    Scalar,
    ScalarName,
    Shape,
    UnknownShape,
    VariedShape,
    infer_shape,
    merge_shapes,
    shape_to_dict,
)

__all__ = [
    "Shape",
    "Scalar",
    "ScalarName",
    "ObjectShape",
    "ArrayShape",
    "VariedShape",
    "UnknownShape",
    "UNKNOWN",
    "infer_shape",
    "merge_shapes",
    "shape_to_dict",
    "shape_from_file",
    "shape_from_stream",
    "truncate_to_boundary",
]
