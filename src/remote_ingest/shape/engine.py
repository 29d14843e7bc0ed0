"""Structural type inference for decoded JSON-like values.

A shape is a small immutable tree describing what a value looks like:
scalars by kind, objects by their per-key shapes, arrays by the single merged
shape of all their elements, and `VariedShape` where incompatible shapes meet
at the same position.

Usage:
    shape = infer_shape("rows", json.loads(text), 50)
    print(shape_to_dict(shape))
"""

from __future__ import annotations

import logging
import numbers
from dataclasses import dataclass, field
from enum import Enum
from functools import reduce
from types import MappingProxyType
from typing import Any, Mapping, Union

logger = logging.getLogger(__name__)


class ScalarName(str, Enum):
    NUMBER = "number"
    STRING = "string"
    BOOLEAN = "boolean"
    NULL = "null"


@dataclass(frozen=True)
class Scalar:
    name: ScalarName


@dataclass(frozen=True)
class ObjectShape:
    # Key order is irrelevant: mapping equality ignores it.
    children: Mapping[str, "Shape"] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "children", MappingProxyType(dict(self.children)))

    def __hash__(self):
        return hash(frozenset(self.children.items()))


@dataclass(frozen=True)
class ArrayShape:
    children: "Shape"


@dataclass(frozen=True)
class VariedShape:
    """Distinct alternatives seen at one position, in first-seen order."""

    children: tuple["Shape", ...]


@dataclass(frozen=True)
class UnknownShape:
    pass


UNKNOWN = UnknownShape()

Shape = Union[Scalar, ObjectShape, ArrayShape, VariedShape, UnknownShape]

NUMBER = Scalar(ScalarName.NUMBER)
STRING = Scalar(ScalarName.STRING)
BOOLEAN = Scalar(ScalarName.BOOLEAN)
NULL = Scalar(ScalarName.NULL)


def classify_scalar(value: Any) -> Shape:
    """Return the scalar shape for a decoded leaf value.

    `bool` is checked before numbers since it is an `int` subclass.
    """
    if value is None:
        return NULL
    if isinstance(value, bool):
        return BOOLEAN
    if isinstance(value, numbers.Number):
        return NUMBER
    if isinstance(value, str):
        return STRING
    return UNKNOWN


def infer_shape(path: str, value: Any, max_depth: int) -> Shape:
    """Infer the shape of `value`.

    Args:
        path: Label of the value, used to name nested positions in logs.
        value: A decoded value (dicts, lists, str, numbers, bool, None).
        max_depth: How many levels of objects/arrays to descend into. A
            container found below that bound becomes `UNKNOWN`.

    Returns:
        The inferred shape. Never raises for decoded input.
    """
    if isinstance(value, dict):
        if max_depth <= 0:
            logger.debug("Depth bound reached at %s", path)
            return UNKNOWN
        return ObjectShape(
            {
                key: infer_shape(f"{path}.{key}", inner, max_depth - 1)
                for key, inner in value.items()
            }
        )

    if isinstance(value, (list, tuple)):
        if max_depth <= 0:
            logger.debug("Depth bound reached at %s", path)
            return UNKNOWN
        if not value:
            return UNKNOWN
        elements = [
            infer_shape(f"{path}[{i}]", inner, max_depth - 1)
            for i, inner in enumerate(value)
        ]
        return ArrayShape(reduce(merge_shapes, elements, UNKNOWN))

    return classify_scalar(value)


def _alternatives(shape: Shape) -> tuple[Shape, ...]:
    if isinstance(shape, VariedShape):
        return shape.children
    return (shape,)


def merge_shapes(a: Shape, b: Shape) -> Shape:
    """Combine two shapes observed at the same position.

    `UNKNOWN` is the identity. Objects merge key-wise (keys missing on one
    side are kept as-is), arrays merge their element shapes, and anything
    else incompatible becomes a `VariedShape` whose alternatives keep `a`'s
    ordering followed by new alternatives from `b`.
    """
    if isinstance(a, UnknownShape):
        return b
    if isinstance(b, UnknownShape):
        return a

    if isinstance(a, Scalar) and isinstance(b, Scalar) and a.name == b.name:
        return a

    if isinstance(a, ObjectShape) and isinstance(b, ObjectShape):
        children = dict(a.children)
        for key, shape in b.children.items():
            if key in children:
                children[key] = merge_shapes(children[key], shape)
            else:
                children[key] = shape
        return ObjectShape(children)

    if isinstance(a, ArrayShape) and isinstance(b, ArrayShape):
        return ArrayShape(merge_shapes(a.children, b.children))

    if a == b:
        return a

    merged = list(_alternatives(a))
    for alt in _alternatives(b):
        if alt not in merged:
            merged.append(alt)
    return VariedShape(tuple(merged))


def shape_to_dict(shape: Shape) -> dict[str, Any]:
    """Render a shape as JSON-compatible data."""
    if isinstance(shape, Scalar):
        return {"kind": "scalar", "name": shape.name.value}
    if isinstance(shape, ObjectShape):
        return {
            "kind": "object",
            "children": {k: shape_to_dict(v) for k, v in shape.children.items()},
        }
    if isinstance(shape, ArrayShape):
        return {"kind": "array", "children": shape_to_dict(shape.children)}
    if isinstance(shape, VariedShape):
        return {"kind": "varied", "children": [shape_to_dict(c) for c in shape.children]}
    return {"kind": "unknown"}
