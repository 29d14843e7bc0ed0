"""
SSH transport for remote ingestion.

This package builds authenticated paramiko sessions, streams remote files
(gzip-compressed in transit when possible) and forwards local ports to
remote targets. The MCP tools live in `tools` and are registered by
`remote_ingest.server`.
"""

from .keys import KeyKind, KeyMaterial, load_private_key
from .session import SessionFactory, split_address
from .stream import PeekableReader, read_remote_file
from .tunnel import forwarded, with_tunnel

__all__ = [
    "KeyKind",
    "KeyMaterial",
    "PeekableReader",
    "SessionFactory",
    "forwarded",
    "load_private_key",
    "read_remote_file",
    "split_address",
    "with_tunnel",
]
