"""Validation for the YAML configuration file.

Checks the structure of the `servers`, `ingest` and `default_key_files`
sections before anything is connected, so mistakes surface at startup with a
readable message instead of as a failed SSH handshake later.
"""

from __future__ import annotations

from typing import Any

from .credentials import AuthKind


class SchemaError(ValueError):
    """Raised when the YAML configuration structure is invalid."""


_AUTH_KINDS = {kind.value for kind in AuthKind}


def _validate_servers(servers: Any) -> None:
    if not isinstance(servers, list):
        raise SchemaError("'servers' must be a list if provided")
    names: set[str] = set()
    for i, srv in enumerate(servers):
        if not isinstance(srv, dict):
            raise SchemaError(f"servers[{i}] must be a mapping/object")
        for req in ("name", "address", "username"):
            if req not in srv:
                raise SchemaError(f"servers[{i}] is missing required field '{req}'")
        name = str(srv["name"]).strip()
        if not name:
            raise SchemaError(f"servers[{i}].name cannot be empty")
        if name in names:
            raise SchemaError(f"Duplicate server name '{name}'")
        names.add(name)

        auth = srv.get("auth", AuthKind.PRIVATE_KEY.value)
        if auth not in _AUTH_KINDS:
            raise SchemaError(
                f"servers[{i}].auth must be one of {sorted(_AUTH_KINDS)}, got {auth!r}"
            )
        if auth == AuthKind.PASSWORD.value and not srv.get("password"):
            raise SchemaError(f"servers[{i}].password is required when auth is 'password'")
        for opt in ("password", "private_key_file", "passphrase"):
            if srv.get(opt) is not None and not isinstance(srv[opt], str):
                raise SchemaError(f"servers[{i}].{opt} must be a string if provided")


def _validate_ingest(ingest: Any) -> None:
    if not isinstance(ingest, dict):
        raise SchemaError("'ingest' must be a mapping/object if provided")
    for key in ("max_bytes", "max_depth"):
        if key not in ingest:
            continue
        value = ingest[key]
        if not isinstance(value, int) or isinstance(value, bool) or value < 1:
            raise SchemaError(f"ingest.{key} must be a positive integer")


def validate_config_schema(data: dict[str, Any]) -> None:
    """Validate the high-level config schema.

    Checks:
    - servers: list of objects with required keys (name, address, username),
      a known `auth` kind and string-valued secrets
    - ingest: optional positive integers `max_bytes` and `max_depth`
    - default_key_files: optional list of path strings

    Raises:
        SchemaError: on structural issues; the message contains human-friendly details.
    """
    if not isinstance(data, dict):
        raise SchemaError("Top-level YAML must be a mapping/object")

    if data.get("servers") is not None:
        _validate_servers(data["servers"])
    if data.get("ingest") is not None:
        _validate_ingest(data["ingest"])

    key_files = data.get("default_key_files")
    if key_files is not None:
        if not isinstance(key_files, list) or not all(isinstance(k, str) for k in key_files):
            raise SchemaError("'default_key_files' must be a list of strings")
