"""Byte-budgeted shape inference for large JSON documents.

Only the first `max_bytes` of the input are read. When the document does not
fit, the prefix is cut back to the last complete array element and the open
brackets are closed again, so the sample is still valid JSON.
"""

from __future__ import annotations

import json
import logging
import os
from typing import BinaryIO

from ..errors import ShapeDecodeError, TruncationError
from .engine import Shape, infer_shape

logger = logging.getLogger(__name__)

_QUOTE = ord('"')
_BACKSLASH = ord("\\")
_COMMA = ord(",")
_CLOSERS = {ord("["): ord("]"), ord("{"): ord("}")}
_ARRAY_END = ord("]")

_READ_CHUNK = 64 * 1024


def truncate_to_boundary(buf: bytes) -> bytes:
    """Cut `buf` at its last safe boundary and close the open brackets.

    A safe boundary is a structural comma directly inside an array (the
    element before it is complete), the end of a container whose parent is an
    array, or the end of the top-level value. Bytes inside string literals,
    including escaped quotes, never count as structure.

    Raises:
        TruncationError: When `buf` holds no complete array element.
    """
    stack: list[int] = []
    in_string = False
    escaped = False
    boundary: tuple[int, tuple[int, ...]] | None = None

    for i, byte in enumerate(buf):
        if in_string:
            if escaped:
                escaped = False
            elif byte == _BACKSLASH:
                escaped = True
            elif byte == _QUOTE:
                in_string = False
            continue

        if byte == _QUOTE:
            in_string = True
        elif byte in _CLOSERS:
            stack.append(_CLOSERS[byte])
        elif byte in (ord("]"), ord("}")):
            if stack:
                stack.pop()
            if not stack or stack[-1] == _ARRAY_END:
                boundary = (i + 1, tuple(stack))
        elif byte == _COMMA and stack and stack[-1] == _ARRAY_END:
            boundary = (i, tuple(stack))

    if boundary is None:
        raise TruncationError(
            f"No complete element within the first {len(buf)} bytes; increase the byte budget"
        )

    end, open_closers = boundary
    return buf[:end] + bytes(reversed(open_closers))


def _read_up_to(stream: BinaryIO, size: int) -> bytes:
    """Read until `size` bytes or EOF; streams may return short reads."""
    chunks: list[bytes] = []
    remaining = size
    while remaining > 0:
        chunk = stream.read(min(remaining, _READ_CHUNK))
        if not chunk:
            break
        chunks.append(chunk)
        remaining -= len(chunk)
    return b"".join(chunks)


def shape_from_stream(
    stream: BinaryIO, label: str, max_bytes: int, max_depth: int
) -> Shape:
    """Infer a shape from at most `max_bytes` of a binary JSON stream.

    Raises:
        TruncationError: The budget does not hold one complete element.
        ShapeDecodeError: The sampled bytes are not valid JSON.
    """
    buf = _read_up_to(stream, max_bytes + 1)
    if len(buf) > max_bytes:
        logger.debug("%s exceeds %d bytes, sampling a truncated prefix", label, max_bytes)
        buf = truncate_to_boundary(buf[:max_bytes])

    try:
        value = json.loads(buf)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ShapeDecodeError(f"Could not decode {label} as JSON: {e}") from e

    return infer_shape(label, value, max_depth)


def shape_from_file(
    path: str | os.PathLike[str], label: str, max_bytes: int, max_depth: int
) -> Shape:
    """Infer a shape from the first `max_bytes` of a local JSON file."""
    with open(path, "rb") as f:
        return shape_from_stream(f, label, max_bytes, max_depth)
