"""Exception hierarchy for remote ingestion and shape inference.

Every error is a `ValueError` so callers (and MCP clients) that only know
about `ValueError` keep working; the subclasses let callers tell the
failure kinds apart.
"""

from __future__ import annotations


class RemoteIngestError(ValueError):
    """Base class for all remote-ingest failures."""


class CredentialDecryptionError(RemoteIngestError):
    """A stored password or passphrase could not be decrypted."""


class KeyParseError(RemoteIngestError):
    """A private key could not be read, decoded or parsed."""


class KeyDecryptionError(KeyParseError):
    """An encrypted private key could not be decrypted with the passphrase."""


class UnsupportedKeyTypeError(KeyParseError):
    """The PEM block declares a key type we cannot build a signer from."""


class UnsupportedAuthError(RemoteIngestError):
    """The requested authentication kind is not implemented."""


class SSHConnectionError(RemoteIngestError):
    """Dialing or negotiating the SSH transport failed."""


class SSHAuthenticationError(SSHConnectionError):
    """The server rejected our credentials, or we had none to offer."""


class RemoteCommandError(RemoteIngestError):
    """The remote read command completed with a non-zero status."""

    def __init__(self, command: str, exit_status: int, stderr: str = ""):
        self.command = command
        self.exit_status = exit_status
        self.stderr = stderr
        detail = f": {stderr.strip()}" if stderr.strip() else ""
        super().__init__(f"Could not complete session (exit={exit_status}){detail}")


class TunnelError(RemoteIngestError):
    """Forwarding between the local listener and the remote target failed."""


class TruncationError(RemoteIngestError):
    """No safe truncation boundary exists within the byte budget."""


class ShapeDecodeError(RemoteIngestError):
    """The sampled bytes could not be decoded as JSON."""
