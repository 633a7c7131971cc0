"""devflow-mcp - MCP server that simulates a role-based software delivery assistant."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("devflow-mcp")
except PackageNotFoundError:
    # Package not installed (development mode without editable install)
    __version__ = "0.1.0"

from devflow_mcp.server import create_server, main

__all__ = ["__version__", "create_server", "main"]
