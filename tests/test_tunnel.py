"""Tests for local port forwarding through an SSH transport.

The SSH transport is replaced by a stub whose `open_channel` returns a plain
socket connected to a local echo server, so bytes really flow through the
forwarder's accept and copy threads.
"""

import socket
import threading
import time

import paramiko
import pytest

from remote_ingest.errors import TunnelError
from remote_ingest.SSH.tunnel import forwarded, with_tunnel


def _roundtrip(host, port, payload: bytes) -> bytes:
    with socket.create_connection((host, port), timeout=5) as conn:
        conn.sendall(payload)
        conn.shutdown(socket.SHUT_WR)
        chunks = []
        while True:
            data = conn.recv(4096)
            if not data:
                break
            chunks.append(data)
    return b"".join(chunks)


@pytest.fixture
def channel_to(fake_client):
    """Make the stub transport's channels connect to `address`."""

    def configure(address):
        transport = fake_client.get_transport.return_value

        def open_channel(*args, **kwargs):
            conn = socket.create_connection(address, timeout=5)
            conn.settimeout(None)
            return conn

        transport.open_channel.side_effect = open_channel
        return transport

    return configure


def test_without_server_is_passthrough(fake_factory):
    seen = []
    result = with_tunnel(None, "db.internal", "5432", lambda h, p: seen.append((h, p)) or "ok", fake_factory)
    assert result == "ok"
    assert seen == [("db.internal", "5432")]
    fake_factory.connect.assert_not_called()


def test_proxies_bytes_to_target(fake_factory, fake_client, password_server, echo_server, channel_to):
    transport = channel_to(echo_server)
    endpoints = []

    def body(host, port):
        endpoints.append((host, port))
        return _roundtrip(host, port, b"SELECT 1;" * 1000)

    assert with_tunnel(password_server, "db.internal", 5432, body, fake_factory) == b"SELECT 1;" * 1000

    host, port = endpoints[0]
    assert host == "localhost"
    assert port != 5432
    args = transport.open_channel.call_args.args
    assert args[0] == "direct-tcpip"
    assert args[1] == ("db.internal", 5432)
    fake_client.close.assert_called_once()


def test_listener_is_bound_before_body(fake_factory, password_server, echo_server, channel_to):
    channel_to(echo_server)

    def body(host, port):
        # Connecting must not be refused even before anything was accepted.
        with socket.create_connection((host, port), timeout=5):
            pass
        return port

    port = with_tunnel(password_server, "db.internal", 5432, body, fake_factory)
    with pytest.raises(OSError):
        socket.create_connection(("localhost", port), timeout=1)


def test_body_error_propagates_and_releases(fake_factory, fake_client, password_server, echo_server, channel_to):
    channel_to(echo_server)

    def body(host, port):
        raise RuntimeError("query failed")

    with pytest.raises(RuntimeError, match="query failed"):
        with_tunnel(password_server, "db.internal", 5432, body, fake_factory)
    fake_client.close.assert_called_once()


def test_dial_failure(fake_factory, fake_client, password_server):
    transport = fake_client.get_transport.return_value
    transport.open_channel.side_effect = paramiko.ChannelException(2, "Connect failed")
    body_calls = []
    with pytest.raises(TunnelError, match="db.internal:5432"):
        with_tunnel(password_server, "db.internal", 5432, body_calls.append, fake_factory)
    assert body_calls == []
    fake_client.close.assert_called_once()


class BrokenRemote:
    """Remote end whose writes fail; reports end-of-stream once written to."""

    def __init__(self):
        self.written = threading.Event()

    def sendall(self, data):
        self.written.set()
        raise OSError("broken pipe")

    def recv(self, size):
        self.written.wait(5)
        time.sleep(0.1)
        return b""

    def close(self):
        pass


def test_copy_failure_is_reported(fake_factory, fake_client, password_server):
    fake_client.get_transport.return_value.open_channel.return_value = BrokenRemote()

    def body(host, port):
        _roundtrip(host, port, b"ping")

    with pytest.raises(TunnelError, match="broken pipe"):
        with_tunnel(password_server, "db.internal", 5432, body, fake_factory)


def test_forwarded_context_manager(fake_factory, password_server, echo_server, channel_to):
    channel_to(echo_server)
    with forwarded(password_server, "db.internal", 5432, fake_factory) as (host, port):
        assert _roundtrip(host, port, b"hello") == b"hello"


def test_listener_answers_first_localhost_address(fake_factory, password_server, echo_server, channel_to):
    transport = channel_to(echo_server)

    def body(host, port):
        family, _, _, _, addr = socket.getaddrinfo(host, port, type=socket.SOCK_STREAM)[0]
        with socket.socket(family, socket.SOCK_STREAM) as conn:
            conn.settimeout(5)
            conn.connect(addr)
            conn.sendall(b"hi")
            conn.shutdown(socket.SHUT_WR)
            return conn.recv(16)

    assert with_tunnel(password_server, "db.internal", 5432, body, fake_factory) == b"hi"
    originator = transport.open_channel.call_args.args[2]
    assert originator[0] == socket.getaddrinfo("localhost", 0, type=socket.SOCK_STREAM)[0][4][0]
