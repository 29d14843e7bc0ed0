"""Read a remote file's bytes over SSH, decompressing gzip transparently.

The remote side compresses the file with gzip when the utility exists and
falls back to plain `cat` otherwise. The first two bytes of the stream decide
whether a decompressor is needed.
"""

from __future__ import annotations

import gzip
import io
import logging
import shlex
from typing import BinaryIO, Callable, TypeVar

import paramiko

from ..config.credentials import ServerInfo
from ..errors import RemoteCommandError, SSHConnectionError
from .session import SessionFactory

logger = logging.getLogger(__name__)

T = TypeVar("T")

GZIP_MAGIC = b"\x1f\x8b"

REMOTE_READ_COMMAND = """if command -v gzip > /dev/null 2>&1; then
  gzip -c -- {path}
else
  cat {path}
fi"""

_DRAIN_CHUNK = 64 * 1024


class PeekableReader(io.RawIOBase):
    """Wrap a readable stream so its head can be inspected without consuming it."""

    def __init__(self, raw: BinaryIO):
        self._raw = raw
        self._pending = b""

    def readable(self) -> bool:
        return True

    def peek(self, size: int) -> bytes:
        """Return up to `size` upcoming bytes; fewer only at end of stream."""
        while len(self._pending) < size:
            chunk = self._raw.read(size - len(self._pending))
            if not chunk:
                break
            self._pending += chunk
        return self._pending[:size]

    def readinto(self, buffer) -> int:
        if self._pending:
            n = min(len(buffer), len(self._pending))
            buffer[:n] = self._pending[:n]
            self._pending = self._pending[n:]
            return n
        data = self._raw.read(len(buffer))
        n = len(data)
        buffer[:n] = data
        return n


def _drain(stream: BinaryIO) -> None:
    while stream.read(_DRAIN_CHUNK):
        pass


def read_remote_file(
    server: ServerInfo,
    remote_path: str,
    consume: Callable[[BinaryIO], T],
    factory: SessionFactory | None = None,
) -> T:
    """Stream `remote_path` from `server` into `consume`.

    `consume` receives a binary stream of the file's (decompressed) bytes and
    its return value is passed back. Output it leaves unread is drained so
    the remote command can exit; a non-zero exit status then raises
    `RemoteCommandError`. The session is closed on every path.
    """
    factory = factory or SessionFactory()
    command = REMOTE_READ_COMMAND.format(path=shlex.quote(remote_path))

    client = factory.connect(server)
    try:
        try:
            stdin, stdout, stderr = client.exec_command(command)
        except paramiko.SSHException as e:
            raise SSHConnectionError(f"Could not start session command: {e}") from e
        stdin.close()

        reader = PeekableReader(stdout)
        decompressor: gzip.GzipFile | None = None
        try:
            try:
                magic = reader.peek(2)
            except (paramiko.SSHException, OSError) as e:
                raise SSHConnectionError(
                    f"Could not read magic number from stream: {e}"
                ) from e

            stream: BinaryIO = reader
            if magic == GZIP_MAGIC:
                decompressor = gzip.GzipFile(fileobj=reader, mode="rb")
                stream = decompressor
            logger.debug(
                "Reading %s from %s (%s)",
                remote_path,
                server.name or server.address,
                "gzip" if decompressor else "plain",
            )

            result = consume(stream)

            _drain(reader)
            status = stdout.channel.recv_exit_status()
            if status != 0:
                err = stderr.read().decode("utf-8", errors="replace")
                raise RemoteCommandError(command, status, err)
            return result
        finally:
            if decompressor is not None:
                decompressor.close()
            stdout.channel.close()
    finally:
        client.close()
