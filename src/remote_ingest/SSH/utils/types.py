"""Shared TypedDict contracts for the ingestion MCP tools."""

from __future__ import annotations

from typing import Any, TypedDict


class ListServersResult(TypedDict):
    servers: list[str]


class LocalShapeResult(TypedDict):
    path: str
    shape: dict[str, Any]


class RemoteShapeResult(LocalShapeResult):
    server: str
