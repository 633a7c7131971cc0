"""Unified MCP tools."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .begin import register_unified_begin_tool
from .converse import register_unified_converse_tool
from .finish import register_unified_finish_tool
from .orchestrate import register_unified_orchestrate_tool
from .plan import register_unified_plan_tool
from .workflow import register_unified_workflow_tool
from .write import register_unified_write_tool


if TYPE_CHECKING:  # pragma: no cover - import-time typing only
    from mcp.server.fastmcp import FastMCP
    from devflow_mcp.config import ServerConfig


def register_unified_tools(mcp: "FastMCP", config: "ServerConfig") -> None:
    """Register every devflow tool."""
    register_unified_begin_tool(mcp, config)
    register_unified_plan_tool(mcp, config)
    register_unified_write_tool(mcp, config)
    register_unified_finish_tool(mcp, config)
    register_unified_orchestrate_tool(mcp, config)
    register_unified_converse_tool(mcp, config)
    register_unified_workflow_tool(mcp, config)


__all__ = [
    "register_unified_tools",
    "register_unified_begin_tool",
    "register_unified_plan_tool",
    "register_unified_write_tool",
    "register_unified_finish_tool",
    "register_unified_orchestrate_tool",
    "register_unified_converse_tool",
    "register_unified_workflow_tool",
]
