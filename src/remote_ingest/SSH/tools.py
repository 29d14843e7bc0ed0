"""MCP tools that expose shape inference over local and remote files.

Tools provided:
- `list_servers()`: Return the configured server names.
- `shape_local_file(path, ...)`: Infer the shape of a local JSON file.
- `shape_remote_file(server_name, remote_path, ...)`: Stream a file from a
  configured server over SSH and infer its shape from a byte-budgeted sample.

Each tool is a thin wrapper over a plain function taking the
`ConfigManager`, so the behavior can be exercised without a running server.
"""

import logging
from typing import Annotated

import weave

from ..config import ConfigManager
from ..errors import RemoteIngestError
from ..server import get_config_manager, mcp
from ..shape import shape_from_file, shape_from_stream, shape_to_dict
from .stream import read_remote_file
from .utils import ListServersResult, LocalShapeResult, RemoteShapeResult, describe_server

logger = logging.getLogger(__name__)


def shape_local(
    config: ConfigManager,
    path: str,
    max_bytes: int | None = None,
    max_depth: int | None = None,
) -> LocalShapeResult:
    limits = config.ingest_limits
    shape = shape_from_file(
        path, path, max_bytes or limits.max_bytes, max_depth or limits.max_depth
    )
    return {"path": path, "shape": shape_to_dict(shape)}


def shape_remote(
    config: ConfigManager,
    server_name: str,
    remote_path: str,
    max_bytes: int | None = None,
    max_depth: int | None = None,
) -> RemoteShapeResult:
    """Read `remote_path` from a configured server and infer its shape.

    Raises:
        ValueError: Unknown server, or any `RemoteIngestError` from the
            connection, the remote command or the sampling.
    """
    limits = config.ingest_limits
    server = config.get_server(server_name)
    budget = max_bytes or limits.max_bytes
    depth = max_depth or limits.max_depth

    try:
        shape = read_remote_file(
            server,
            remote_path,
            lambda stream: shape_from_stream(stream, remote_path, budget, depth),
            factory=config.session_factory(),
        )
    except RemoteIngestError as e:
        logger.warning("Remote shape inference failed on %s: %s", describe_server(server), e)
        raise

    return {"server": server_name, "path": remote_path, "shape": shape_to_dict(shape)}


@mcp.tool(
    name="list_servers",
    description=(
        "List the names of remote servers configured for ingestion.\n\n"
        "Returns: { servers: string[] }."
    ),
)
@weave.op()
def list_servers() -> ListServersResult:
    return {"servers": get_config_manager().list_servers()}


@mcp.tool(
    name="shape_local_file",
    description=(
        "Infer the schema ('shape') of a local JSON file from a byte-budgeted sample.\n\n"
        "Parameters:\n"
        "- path (string): File to sample.\n"
        "- max_bytes (number, optional): Byte budget; defaults to the configured ingest.max_bytes.\n"
        "- max_depth (number, optional): Nesting bound; defaults to ingest.max_depth.\n"
        "Returns: { path, shape }.\n\n"
        "Errors: Raises ValueError when the budget holds no complete element or the sample is not JSON."
    ),
)
@weave.op()
def shape_local_file(
    path: Annotated[str, "Local JSON file to sample"],
    max_bytes: int | None = None,
    max_depth: int | None = None,
) -> LocalShapeResult:
    return shape_local(get_config_manager(), path, max_bytes, max_depth)


@mcp.tool(
    name="shape_remote_file",
    description=(
        "Read a JSON file from a configured server over SSH (gzip-compressed in transit when the remote "
        "host has gzip) and infer its schema from a byte-budgeted sample.\n\n"
        "Parameters:\n"
        "- server_name (string): Name from 'list_servers'.\n"
        "- remote_path (string): Path of the file on the remote host.\n"
        "- max_bytes / max_depth (number, optional): Sampling limits.\n"
        "Returns: { server, path, shape }.\n\n"
        "Errors: Raises ValueError on unknown servers, credential or SSH failures, a failed remote read, "
        "or an unusable sample."
    ),
)
@weave.op()
def shape_remote_file(
    server_name: Annotated[str, "Name of a configured server"],
    remote_path: Annotated[str, "Path of the JSON file on the server"],
    max_bytes: int | None = None,
    max_depth: int | None = None,
) -> RemoteShapeResult:
    return shape_remote(get_config_manager(), server_name, remote_path, max_bytes, max_depth)
