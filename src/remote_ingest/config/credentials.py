from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

# Turns a stored (encrypted) secret into plaintext. Raises on failure.
Decrypt = Callable[[str], str]

# Probed in order when a private-key server names no key file.
DEFAULT_KEY_FILES: tuple[str, ...] = (
    "~/.ssh/id_rsa",
    "~/.ssh/id_dsa",
    "~/.ssh/id_ed25519",
)


def plaintext_decrypt(value: str) -> str:
    """Resolver for configurations that store secrets unencrypted."""
    return value


class AuthKind(str, Enum):
    PASSWORD = "password"
    PRIVATE_KEY = "private_key"
    AGENT = "agent"


@dataclass(frozen=True)
class ServerInfo:
    address: str
    username: str
    auth: AuthKind = AuthKind.PRIVATE_KEY
    password: str | None = field(default=None, repr=False)
    private_key_file: str | None = None
    passphrase: str | None = field(default=None, repr=False)
    name: str = ""
