"""Private key loading for SSH public-key authentication.

Encrypted PEM blocks (`Proc-Type: 4,ENCRYPTED` or PKCS#8 `ENCRYPTED PRIVATE
KEY`) are decrypted with `cryptography` first, so a wrong passphrase is
reported as `KeyDecryptionError` rather than a generic parse failure. Plain
keys, including OpenSSH-format ones, are handed to paramiko directly.
"""

from __future__ import annotations

import io
import os
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Union

import paramiko
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import dsa, ec, rsa
from paramiko.pkey import UnknownKeyType

from ..errors import KeyDecryptionError, KeyParseError, UnsupportedKeyTypeError

_PEM_RE = re.compile(
    rb"-----BEGIN (?P<type>[A-Z0-9 ]+)-----\r?\n(?P<body>.*?)-----END (?P=type)-----",
    re.DOTALL,
)

_ENCRYPTED_PKCS8 = "ENCRYPTED PRIVATE KEY"


class KeyKind(str, Enum):
    RSA = "RSA PRIVATE KEY"
    EC = "EC PRIVATE KEY"
    DSA = "DSA PRIVATE KEY"


PrivateKey = Union[rsa.RSAPrivateKey, ec.EllipticCurvePrivateKey, dsa.DSAPrivateKey]


@dataclass(frozen=True)
class PemBlock:
    type: str
    headers: dict[str, str] = field(default_factory=dict)
    raw: bytes = b""

    @property
    def encrypted(self) -> bool:
        return (
            self.headers.get("Proc-Type", "").replace(" ", "") == "4,ENCRYPTED"
            or self.type == _ENCRYPTED_PKCS8
        )


@dataclass(frozen=True)
class KeyMaterial:
    """Decrypted private key tagged with the algorithm it was parsed as."""

    kind: KeyKind
    key: PrivateKey


def resolve_path(path: str) -> str:
    return os.path.expandvars(os.path.expanduser(path))


def decode_pem(data: bytes) -> PemBlock | None:
    """Return the first PEM block in `data`, or None when there is none."""
    m = _PEM_RE.search(data)
    if not m:
        return None
    headers: dict[str, str] = {}
    for line in m.group("body").splitlines():
        text = line.decode("ascii", errors="replace")
        if ":" not in text:
            break
        name, value = text.split(":", 1)
        headers[name.strip()] = value.strip()
    return PemBlock(m.group("type").decode("ascii"), headers, m.group(0))


def _kind_of(key: object) -> KeyKind | None:
    if isinstance(key, rsa.RSAPrivateKey):
        return KeyKind.RSA
    if isinstance(key, ec.EllipticCurvePrivateKey):
        return KeyKind.EC
    if isinstance(key, dsa.DSAPrivateKey):
        return KeyKind.DSA
    return None


def decrypt_pem_block(block: PemBlock, passphrase: str) -> KeyMaterial:
    """Decrypt an encrypted PEM block and parse it by its declared type.

    Raises:
        UnsupportedKeyTypeError: The block is not an RSA, EC or DSA key.
        KeyDecryptionError: The passphrase does not decrypt the block.
    """
    declared: KeyKind | None = None
    if block.type != _ENCRYPTED_PKCS8:
        try:
            declared = KeyKind(block.type)
        except ValueError:
            raise UnsupportedKeyTypeError(
                f"Unsupported private key type: {block.type}"
            ) from None

    try:
        key = serialization.load_pem_private_key(
            block.raw, password=passphrase.encode("utf-8")
        )
    except (ValueError, TypeError) as e:
        raise KeyDecryptionError(f"Decrypting private key failed: {e}") from e
    except UnsupportedAlgorithm as e:
        raise KeyParseError(f"Parsing {block.type} failed: {e}") from e

    kind = _kind_of(key)
    if kind is None:
        raise UnsupportedKeyTypeError(
            f"Unsupported private key type: {type(key).__name__}"
        )
    if declared is not None and kind is not declared:
        raise KeyParseError(f"Parsing {block.type} failed: found a {kind.name} key")
    return KeyMaterial(kind, key)


def signer_from_material(material: KeyMaterial) -> paramiko.PKey:
    """Build a paramiko key usable for `auth_publickey` from decrypted material."""
    if material.kind is KeyKind.RSA:
        return paramiko.RSAKey(key=material.key)
    if material.kind is KeyKind.EC:
        return paramiko.ECDSAKey(vals=(material.key, material.key.public_key()))

    dss_key = getattr(paramiko, "DSSKey", None)
    if dss_key is None:
        raise UnsupportedKeyTypeError(
            "Unsupported private key type: DSA keys are not supported by the installed paramiko"
        )
    pem = material.key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.TraditionalOpenSSL,
        serialization.NoEncryption(),
    )
    return dss_key.from_private_key(io.StringIO(pem.decode("ascii")))


def load_private_key(path: str, passphrase: str = "") -> paramiko.PKey:
    """Load a private key file and return a signer for it.

    Args:
        path: Key file location; `~` and environment variables are expanded.
        passphrase: Plaintext passphrase, empty for unencrypted keys.

    Raises:
        KeyParseError: The file is unreadable, holds no PEM block, or cannot
            be parsed. `KeyDecryptionError` and `UnsupportedKeyTypeError`
            narrow the cause.
    """
    resolved = resolve_path(path)
    try:
        with open(resolved, "rb") as f:
            pem_bytes = f.read()
    except OSError as e:
        raise KeyParseError(f"Unable to read private key: {e}") from e

    block = decode_pem(pem_bytes)
    if block is None:
        raise KeyParseError("Private key decode failed")

    if block.encrypted:
        return signer_from_material(decrypt_pem_block(block, passphrase))

    try:
        return paramiko.PKey.from_path(resolved)
    except UnknownKeyType as e:
        raise UnsupportedKeyTypeError(f"Unsupported private key type: {block.type}") from e
    except (paramiko.SSHException, ValueError, TypeError) as e:
        raise KeyParseError(f"Parsing plain private key failed: {e}") from e
