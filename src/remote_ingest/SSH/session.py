"""Authenticated SSH sessions built from a `ServerInfo`.

Host keys are not verified: any host key is accepted (`AutoAddPolicy` on an
empty host-key store). This is a known gap in the trust model until a host
key policy is configured for the product.
"""

from __future__ import annotations

import logging
import os
from typing import Callable

import paramiko

from ..config.credentials import (
    DEFAULT_KEY_FILES,
    AuthKind,
    Decrypt,
    ServerInfo,
    plaintext_decrypt,
)
from ..errors import (
    CredentialDecryptionError,
    KeyParseError,
    SSHAuthenticationError,
    SSHConnectionError,
    UnsupportedAuthError,
)
from .keys import load_private_key, resolve_path
from .utils.masking import describe_server

logger = logging.getLogger(__name__)

DEFAULT_PORT = 22


def split_address(address: str) -> tuple[str, int]:
    """Split `host[:port]` into host and port, defaulting the port to 22.

    Bracketed IPv6 literals (`[::1]:2222`) are accepted; a bare IPv6 literal
    is taken as a host without a port.
    """
    if address.startswith("["):
        host, _, rest = address[1:].partition("]")
        port = rest[1:] if rest.startswith(":") else ""
    elif address.count(":") == 1:
        host, port = address.split(":")
    else:
        return address, DEFAULT_PORT
    if not port:
        return host, DEFAULT_PORT
    if not (port.isascii() and port.isdigit()) or not 0 < int(port) < 65536:
        raise SSHConnectionError(f"Invalid port in server address {address!r}")
    return host, int(port)


class SessionFactory:
    """Build authenticated `paramiko.SSHClient` connections.

    Args:
        decrypt: Resolver for stored passwords and passphrases.
        default_key_files: Ordered key locations probed when a private-key
            server names no key file.
        timeout: TCP connect timeout in seconds.
        client_factory: Creates the underlying client; tests substitute it.
    """

    def __init__(
        self,
        *,
        decrypt: Decrypt = plaintext_decrypt,
        default_key_files: tuple[str, ...] = DEFAULT_KEY_FILES,
        timeout: float | None = 15.0,
        client_factory: Callable[[], paramiko.SSHClient] = paramiko.SSHClient,
    ):
        self.decrypt = decrypt
        self.default_key_files = tuple(default_key_files)
        self.timeout = timeout
        self._client_factory = client_factory

    def _decrypt(self, value: str | None, what: str) -> str:
        try:
            return self.decrypt(value or "")
        except Exception as e:
            raise CredentialDecryptionError(
                f"Could not decrypt server SSH {what}: {e}"
            ) from e

    def _default_key(self) -> paramiko.PKey | None:
        for candidate in self.default_key_files:
            resolved = resolve_path(candidate)
            if not os.path.exists(resolved):
                continue
            try:
                return load_private_key(resolved, "")
            except KeyParseError as e:
                logger.debug("Skipping default key %s: %s", resolved, e)
        return None

    def credentials(self, server: ServerInfo) -> tuple[str | None, paramiko.PKey | None]:
        """Resolve the password or signer to authenticate `server` with.

        Both values are None when no default key could be loaded; the dial
        then fails with `SSHAuthenticationError`.
        """
        if server.auth is AuthKind.PASSWORD:
            return self._decrypt(server.password, "password"), None

        if server.auth is AuthKind.PRIVATE_KEY:
            if server.private_key_file:
                passphrase = self._decrypt(server.passphrase, "passphrase")
                return None, load_private_key(server.private_key_file, passphrase)
            return None, self._default_key()

        raise UnsupportedAuthError("SSH Agent authentication is not supported yet.")

    def connect(self, server: ServerInfo) -> paramiko.SSHClient:
        """Open an authenticated connection to `server`.

        Raises:
            CredentialDecryptionError, KeyParseError, UnsupportedAuthError:
                Credentials could not be prepared.
            SSHAuthenticationError: The server rejected the credentials.
            SSHConnectionError: The transport could not be established.
        """
        password, pkey = self.credentials(server)
        host, port = split_address(server.address)

        client = self._client_factory()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        logger.debug("Connecting to %s (port %d)", describe_server(server), port)
        try:
            client.connect(
                hostname=host,
                port=port,
                username=server.username,
                password=password,
                pkey=pkey,
                timeout=self.timeout,
                look_for_keys=False,
                allow_agent=False,
            )
        except paramiko.AuthenticationException as e:
            client.close()
            raise SSHAuthenticationError(
                f"SSH Authentication failed for {server.username}@{host}: {e}"
            ) from e
        except paramiko.SSHException as e:
            client.close()
            if password is None and pkey is None:
                raise SSHAuthenticationError(
                    f"No usable SSH credentials for {server.username}@{host}: {e}"
                ) from e
            raise SSHConnectionError(f"Could not connect to remote server: {e}") from e
        except OSError as e:
            client.close()
            raise SSHConnectionError(f"Could not connect to remote server: {e}") from e
        return client
