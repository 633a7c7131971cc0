"""Tool registration helpers."""

from __future__ import annotations

import asyncio
import functools
import json
import logging
import time
from typing import Any, Callable

from mcp.server.fastmcp import FastMCP
from mcp.types import TextContent

from devflow_mcp.core.observability import mcp_tool

logger = logging.getLogger(__name__)


def _minify_response(result: dict[str, Any]) -> TextContent:
    """Serialize a response dict as minified JSON text content."""
    return TextContent(
        type="text",
        text=json.dumps(result, separators=(",", ":"), default=str),
    )


def canonical_tool(
    mcp: FastMCP,
    *,
    canonical_name: str,
    **tool_kwargs: Any,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Decorator that registers a tool under its canonical name.

    The wrapped function:
    1. Is registered with FastMCP under ``canonical_name``
    2. Is instrumented with ``mcp_tool`` (correlation ID, metrics, audit)
    3. Has dict results minified to a single ``TextContent`` block

    Args:
        mcp: FastMCP instance
        canonical_name: The canonical name for the tool
        **tool_kwargs: Additional kwargs passed to mcp.tool()
    """

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        if asyncio.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                start_time = time.perf_counter()
                try:
                    result = await func(*args, **kwargs)
                    if isinstance(result, dict):
                        return _minify_response(result)
                    return result
                except Exception as e:
                    _log_tool_error(canonical_name, e, kwargs, start_time)
                    raise

            wrapper = async_wrapper
        else:

            @functools.wraps(func)
            def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
                start_time = time.perf_counter()
                try:
                    result = func(*args, **kwargs)
                    if isinstance(result, dict):
                        return _minify_response(result)
                    return result
                except Exception as e:
                    _log_tool_error(canonical_name, e, kwargs, start_time)
                    raise

            wrapper = sync_wrapper

        instrumented = mcp_tool(tool_name=canonical_name)(wrapper)
        return mcp.tool(name=canonical_name, **tool_kwargs)(instrumented)

    return decorator


def _log_tool_error(
    tool_name: str,
    error: Exception,
    input_params: dict[str, Any],
    start_time: float,
) -> None:
    """Log an exception escaping a tool, with parameter names only."""
    duration_ms = (time.perf_counter() - start_time) * 1000
    logger.error(
        "Tool %s raised %s after %.2fms",
        tool_name,
        type(error).__name__,
        duration_ms,
        extra={"tool": tool_name, "params": sorted(input_params)},
    )
