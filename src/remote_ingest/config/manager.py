"""Configuration loader for remote servers and ingestion limits.

Reads a YAML file with a `servers` list, optional `ingest` limits and an
optional `default_key_files` list, and exposes typed views over them.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Union

import yaml

from .credentials import (
    DEFAULT_KEY_FILES,
    AuthKind,
    Decrypt,
    ServerInfo,
    plaintext_decrypt,
)
from .schema import validate_config_schema

if TYPE_CHECKING:
    from ..SSH.session import SessionFactory

DEFAULT_MAX_BYTES = 100_000
DEFAULT_MAX_DEPTH = 50


@dataclass(frozen=True)
class IngestLimits:
    max_bytes: int = DEFAULT_MAX_BYTES
    max_depth: int = DEFAULT_MAX_DEPTH


class ConfigManager:
    """Manage access to server configuration defined in a YAML file.

    The YAML file may contain a top-level "servers" key with a list of server
    objects. Each must define "name", "address" and "username"; "auth"
    defaults to "private_key". Secrets ("password", "passphrase") are stored
    as ciphertext and resolved with `decrypt` only when connecting.

    Args:
        config_path: Path to the YAML configuration file.
        decrypt: Resolver for stored secrets.
    """

    def __init__(
        self,
        config_path: Union[str, Path],
        decrypt: Decrypt = plaintext_decrypt,
    ):
        self.config_path = Path(config_path)
        self.decrypt = decrypt
        self.raw = self._load_config()
        self._servers = {srv["name"]: srv for srv in self.raw.get("servers") or []}

    def _load_config(self) -> dict:
        """Load and validate the YAML configuration file.

        Raises:
            SchemaError: If the document structure is invalid.
        """
        with open(self.config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        validate_config_schema(data)
        return data

    def list_servers(self) -> list[str]:
        """Return the list of server names available in the configuration."""
        return list(self._servers.keys())

    def get_server(self, name: str) -> ServerInfo:
        """Return the descriptor for the requested server.

        Raises:
            ValueError: If the server name cannot be found in the configuration.
        """
        if name not in self._servers:
            raise ValueError(f"Server '{name}' not found")
        srv = self._servers[name]
        return ServerInfo(
            address=str(srv["address"]),
            username=str(srv["username"]),
            auth=AuthKind(srv.get("auth", AuthKind.PRIVATE_KEY.value)),
            password=srv.get("password"),
            private_key_file=srv.get("private_key_file"),
            passphrase=srv.get("passphrase"),
            name=name,
        )

    @property
    def ingest_limits(self) -> IngestLimits:
        ingest = self.raw.get("ingest") or {}
        return IngestLimits(
            max_bytes=ingest.get("max_bytes", DEFAULT_MAX_BYTES),
            max_depth=ingest.get("max_depth", DEFAULT_MAX_DEPTH),
        )

    @property
    def default_key_files(self) -> tuple[str, ...]:
        key_files = self.raw.get("default_key_files")
        if key_files is None:
            return DEFAULT_KEY_FILES
        return tuple(key_files)

    def session_factory(self) -> "SessionFactory":
        """Return a session factory wired to this configuration's secrets and keys."""
        from ..SSH.session import SessionFactory

        return SessionFactory(decrypt=self.decrypt, default_key_files=self.default_key_files)
