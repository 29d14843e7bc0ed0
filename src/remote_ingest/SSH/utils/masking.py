"""Masking helpers for safe logging/debugging.

These utilities avoid accidentally leaking secrets or account names in logs.
"""

from __future__ import annotations

from ...config.credentials import ServerInfo


def mask_value(value: str | None) -> str:
    """Mask a value by replacing every other character with "*".

    Returns an empty string if value is falsy.
    """
    if not value:
        return ""
    return "".join("*" if i % 2 else c for i, c in enumerate(value))


def describe_server(server: ServerInfo) -> str:
    """One-line description of a server for diagnostics; never includes secrets."""
    parts = [f"{mask_value(server.username)}@{server.address}", f"auth={server.auth.value}"]
    if server.private_key_file:
        parts.append(f"key={mask_value(server.private_key_file)}")
    if server.name:
        parts.insert(0, server.name)
    return " ".join(parts)
