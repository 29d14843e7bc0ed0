"""Shared pytest fixtures for the remote-ingest test suite."""

import io
import socket
import threading
from typing import Callable
from unittest.mock import MagicMock

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa

from remote_ingest.config import AuthKind, ServerInfo

PASSPHRASE = "correct horse"


# ============================================================================
# Key Fixtures
# ============================================================================


def _write_key(path, key, passphrase: str | None = None):
    encryption = (
        serialization.BestAvailableEncryption(passphrase.encode())
        if passphrase
        else serialization.NoEncryption()
    )
    path.write_bytes(
        key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.TraditionalOpenSSL,
            encryption,
        )
    )
    return path


@pytest.fixture(scope="session")
def rsa_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def ec_key():
    return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture
def plain_rsa_file(tmp_path, rsa_key):
    return _write_key(tmp_path / "id_rsa", rsa_key)


@pytest.fixture
def encrypted_rsa_file(tmp_path, rsa_key):
    return _write_key(tmp_path / "id_rsa_enc", rsa_key, PASSPHRASE)


@pytest.fixture
def encrypted_ec_file(tmp_path, ec_key):
    return _write_key(tmp_path / "id_ecdsa_enc", ec_key, PASSPHRASE)


# ============================================================================
# Server / Client Fixtures
# ============================================================================


@pytest.fixture
def password_server() -> ServerInfo:
    return ServerInfo(
        address="db.example.com",
        username="alice",
        auth=AuthKind.PASSWORD,
        password="s3cret",
        name="db",
    )


@pytest.fixture
def fake_client() -> MagicMock:
    return MagicMock(name="SSHClient")


@pytest.fixture
def fake_factory(fake_client) -> MagicMock:
    """A session factory whose `connect` hands back `fake_client`."""
    factory = MagicMock(name="SessionFactory")
    factory.connect.return_value = fake_client
    return factory


class FakeChannelFile(io.BytesIO):
    """Stand-in for paramiko's ChannelFile: bytes plus a `.channel`."""

    def __init__(self, data: bytes = b"", exit_status: int = 0):
        super().__init__(data)
        self.channel = MagicMock(name="Channel")
        self.channel.recv_exit_status.return_value = exit_status


@pytest.fixture
def remote_output(fake_client) -> Callable[..., FakeChannelFile]:
    """Configure `fake_client.exec_command` to emit the given stdout bytes."""

    def configure(data: bytes, exit_status: int = 0, stderr: bytes = b"") -> FakeChannelFile:
        stdout = FakeChannelFile(data, exit_status)
        fake_client.exec_command.return_value = (MagicMock(), stdout, io.BytesIO(stderr))
        return stdout

    return configure


# ============================================================================
# Network Fixtures
# ============================================================================


@pytest.fixture
def echo_server():
    """A one-connection TCP echo server on localhost; yields its address."""
    srv = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    srv.bind(("127.0.0.1", 0))
    srv.listen(1)
    srv.settimeout(10)

    def serve():
        try:
            conn, _ = srv.accept()
        except OSError:
            return
        with conn:
            while True:
                data = conn.recv(4096)
                if not data:
                    break
                conn.sendall(data)

    thread = threading.Thread(target=serve, daemon=True)
    thread.start()
    yield srv.getsockname()
    srv.close()
    thread.join(timeout=5)
