"""FastMCP server for devflow-mcp.

Exposes the smart_* tools, the unified ``workflow`` tool and the workflow
prompts over stdio.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

from mcp.server.fastmcp import FastMCP

from devflow_mcp.config import ServerConfig, get_config
from devflow_mcp.core.observability import audit_log, configure_observability
from devflow_mcp.prompts.workflows import register_workflow_prompts
from devflow_mcp.tools.unified import register_unified_tools

logger = logging.getLogger(__name__)


def _init_observability(config: ServerConfig) -> None:
    """Apply the metrics/audit switches from server configuration."""

    configure_observability(
        metrics_enabled=config.metrics_enabled,
        audit_enabled=config.audit_enabled,
    )
    logger.info(
        "Observability initialized: metrics=%s, audit=%s",
        "enabled" if config.metrics_enabled else "disabled",
        "enabled" if config.audit_enabled else "disabled",
    )


def create_server(config: Optional[ServerConfig] = None) -> FastMCP:
    """Create and configure the FastMCP server instance."""

    if config is None:
        config = get_config()

    config.setup_logging()
    _init_observability(config)

    mcp = FastMCP(name=config.server_name)

    register_unified_tools(mcp, config)
    register_workflow_prompts(mcp, config)

    logger.info("Server created: %s v%s", config.server_name, config.server_version)
    return mcp


def main() -> None:
    """Main entry point for the devflow-mcp server."""

    try:
        config = get_config()
        server = create_server(config)

        logger.info("Starting %s v%s", config.server_name, config.server_version)
        audit_log("tool_invocation", tool="server_start", version=config.server_version)

        server.run()

    except KeyboardInterrupt:
        logger.info("Server shutdown requested")
        sys.exit(0)
    except Exception as exc:
        logger.error("Server error: %s: %s", type(exc).__name__, exc)
        audit_log("tool_invocation", tool="server_error", error=str(exc), success=False)
        sys.exit(1)


if __name__ == "__main__":
    main()
