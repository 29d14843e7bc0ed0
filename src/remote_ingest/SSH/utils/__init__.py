"""Utility helpers for the SSH tools.

- masking: safe value masking for logs
- types: shared TypedDict contracts for tool results
"""

from .masking import describe_server, mask_value
from .types import ListServersResult, LocalShapeResult, RemoteShapeResult

__all__ = [
    "describe_server",
    "mask_value",
    "ListServersResult",
    "LocalShapeResult",
    "RemoteShapeResult",
]
