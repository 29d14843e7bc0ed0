"""Forward a local TCP port to a remote target through an SSH transport.

`with_tunnel` hands its callback a local endpoint: the original one when no
server is configured, otherwise `localhost` and an ephemeral port whose
single connection is proxied to the target over a `direct-tcpip` channel.

Usage:
    def query(host, port):
        return fetch_rows(host, port)

    rows = with_tunnel(server, "db.internal", 5432, query)
"""

from __future__ import annotations

import contextlib
import logging
import queue
import socket
import threading
from typing import Callable, Iterator, TypeVar, Union

import paramiko

from ..config.credentials import ServerInfo
from ..errors import TunnelError
from .session import SessionFactory

logger = logging.getLogger(__name__)

T = TypeVar("T")
Port = Union[int, str]

_COPY_CHUNK = 16384
_ACCEPT_POLL = 0.2

LOCALHOST = "localhost"

Endpoint = Union[socket.socket, paramiko.Channel]


def _close_write(endpoint: Endpoint) -> None:
    if isinstance(endpoint, socket.socket):
        endpoint.shutdown(socket.SHUT_WR)
    else:
        endpoint.shutdown_write()


def _close_quietly(endpoint: Endpoint) -> None:
    if isinstance(endpoint, socket.socket):
        with contextlib.suppress(OSError):
            endpoint.shutdown(socket.SHUT_RDWR)
    with contextlib.suppress(OSError):
        endpoint.close()


class _Proxy:
    """Accept one local connection and copy bytes both ways with the remote end.

    The accept loop and each copy direction run on their own thread. Each
    copy reports once on `errors`: None for a clean end of stream, the
    exception otherwise.
    """

    def __init__(self, listener: socket.socket, remote: Endpoint):
        self._listener = listener
        self._remote = remote
        self._local: socket.socket | None = None
        self._stopped = threading.Event()
        self._threads: list[threading.Thread] = []
        self.errors: queue.Queue[BaseException | None] = queue.Queue()

    def _spawn(self, target: Callable[[], None], name: str) -> None:
        t = threading.Thread(target=target, name=f"ssh-tunnel-{name}", daemon=True)
        t.start()
        self._threads.append(t)

    def start(self) -> None:
        self._listener.settimeout(_ACCEPT_POLL)
        self._spawn(self._accept, "accept")

    def _accept(self) -> None:
        while not self._stopped.is_set():
            try:
                conn, peer = self._listener.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if not self._stopped.is_set():
                    self.errors.put(e)
                return
            conn.settimeout(None)
            self._local = conn
            logger.debug("Tunnel accepted local connection from %s:%d", *peer[:2])
            self._spawn(lambda: self._copy(conn, self._remote), "local-to-remote")
            self._spawn(lambda: self._copy(self._remote, conn), "remote-to-local")
            return

    def _copy(self, src: Endpoint, dst: Endpoint) -> None:
        try:
            while True:
                data = src.recv(_COPY_CHUNK)
                if not data:
                    break
                dst.sendall(data)
        except (OSError, paramiko.SSHException) as e:
            self.errors.put(e)
            return
        # The peer may already be gone; a failed half-close is not a copy error.
        with contextlib.suppress(OSError):
            _close_write(dst)
        self.errors.put(None)

    def check(self) -> None:
        """Raise the first copy failure reported so far, without waiting for one."""
        while True:
            try:
                err = self.errors.get_nowait()
            except queue.Empty:
                return
            if err is not None:
                raise TunnelError(f"Tunnel failed: {err}") from err

    def stop(self) -> None:
        self._stopped.set()
        if self._local is not None:
            _close_quietly(self._local)
        _close_quietly(self._remote)
        for t in self._threads:
            t.join(timeout=3.0)


@contextlib.contextmanager
def forwarded(
    server: ServerInfo | None,
    host: str,
    port: Port,
    factory: SessionFactory | None = None,
) -> Iterator[tuple[str, Port]]:
    """Yield an endpoint that reaches `host:port`, through `server` if given.

    The local listener is bound before anything is yielded. On a clean exit a
    copy failure already reported by the proxy raises `TunnelError`; the
    listener, the remote channel and the SSH session are closed on every path.
    """
    if server is None:
        yield host, port
        return

    # Bound on the first address "localhost" resolves to, the one clients try first
    family, _, _, _, bind_addr = socket.getaddrinfo(
        LOCALHOST, 0, type=socket.SOCK_STREAM
    )[0]
    listener = socket.socket(family, socket.SOCK_STREAM)
    try:
        listener.bind(bind_addr)
        local_addr = listener.getsockname()[0]
        listener.listen(1)
        local_port = listener.getsockname()[1]

        client = (factory or SessionFactory()).connect(server)
        try:
            try:
                remote = client.get_transport().open_channel(
                    "direct-tcpip", (host, int(port)), (local_addr, local_port)
                )
            except (paramiko.SSHException, OSError) as e:
                raise TunnelError(
                    f"Could not dial {host}:{port} through {server.address}: {e}"
                ) from e

            logger.info(
                "Tunnel listening on %s:%d -> %s:%s", local_addr, local_port, host, port
            )
            proxy = _Proxy(listener, remote)
            proxy.start()
            try:
                yield LOCALHOST, local_port
                proxy.check()
            finally:
                proxy.stop()
        finally:
            client.close()
    finally:
        listener.close()


def with_tunnel(
    server: ServerInfo | None,
    host: str,
    port: Port,
    body: Callable[[str, Port], T],
    factory: SessionFactory | None = None,
) -> T:
    """Call `body(host, port)` with an endpoint reaching the target.

    Errors raised by `body` propagate unchanged.
    """
    with forwarded(server, host, port, factory) as (local_host, local_port):
        return body(local_host, local_port)
