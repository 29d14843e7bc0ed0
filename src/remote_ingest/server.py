"""MCP server bootstrap and global state.

Initializes the FastMCP server and exposes the lazily loaded configuration
manager used by the tool modules. Importing this module registers the SSH
tools on the global `mcp` server.
"""

import logging
import os
from functools import lru_cache

import weave
from dotenv import load_dotenv
from mcp.server.fastmcp import FastMCP

from .config import ConfigManager

load_dotenv()

CONFIG_ENV = "REMOTE_INGEST_CONFIG"
LOG_LEVEL_ENV = "REMOTE_INGEST_LOG_LEVEL"
WEAVE_PROJECT_ENV = "REMOTE_INGEST_WEAVE_PROJECT"

# Create the MCP server
mcp: FastMCP = FastMCP("remote-ingest")


@lru_cache(maxsize=1)
def get_config_manager() -> ConfigManager:
    """Load the configuration named by REMOTE_INGEST_CONFIG once.

    Raises:
        RuntimeError: If the variable is unset or the file is invalid.
    """
    path = os.getenv(CONFIG_ENV)
    if not path:
        raise RuntimeError(f"{CONFIG_ENV} must point to a YAML configuration file")
    try:
        return ConfigManager(path)
    except (OSError, ValueError) as e:
        # Surface clear startup error; FastMCP will log the exception
        raise RuntimeError(f"Invalid configuration {path}: {e}") from e


def main() -> None:
    logging.basicConfig(
        level=os.getenv(LOG_LEVEL_ENV, "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # Tool calls are traced only when a Weave project is configured
    project = os.getenv(WEAVE_PROJECT_ENV)
    if project:
        weave.init(project)
    # Fail at startup rather than on the first tool call
    get_config_manager()
    mcp.run(transport="stdio")


# ruff: noqa: F401, E402
from .SSH import tools
