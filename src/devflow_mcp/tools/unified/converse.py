"""smart_converse tool: natural-language entry point to orchestration."""

from __future__ import annotations

import logging
import time
from dataclasses import asdict

from mcp.server.fastmcp import FastMCP

from devflow_mcp.config import ServerConfig
from devflow_mcp.core.context import generate_correlation_id, get_correlation_id
from devflow_mcp.core.conversation import converse
from devflow_mcp.core.models import SmartConverseInput
from devflow_mcp.core.naming import canonical_tool
from devflow_mcp.core.observability import get_metrics
from devflow_mcp.core.responses import internal_error, sanitize_error_message, success_response
from devflow_mcp.core.validation import InputValidationError, parse_input

logger = logging.getLogger(__name__)
_metrics = get_metrics()


def _request_id() -> str:
    return get_correlation_id() or generate_correlation_id(prefix="converse")


def register_unified_converse_tool(mcp: FastMCP, config: ServerConfig) -> None:
    """Register the smart_converse tool."""
    rng = config.get_rng()

    @canonical_tool(mcp, canonical_name="smart_converse")
    def smart_converse(userMessage: str) -> dict:
        """Describe what you want to build in plain language; a project is orchestrated for it."""
        request_id = _request_id()
        start = time.perf_counter()

        try:
            params = parse_input(
                SmartConverseInput, {"userMessage": userMessage}, screen=("userMessage",)
            )
            result = converse(
                params.user_message,
                rng=rng,
                performance_budget_ms=config.generation.max_execution_ms,
            )
        except InputValidationError as exc:
            _metrics.counter("converse.errors", labels={"reason": "validation"})
            return asdict(exc.to_response())
        except Exception as exc:
            logger.exception("smart_converse failed")
            return asdict(
                internal_error(
                    sanitize_error_message(exc, context="conversation"),
                    request_id=request_id,
                )
            )

        return asdict(
            success_response(
                data=result,
                telemetry={"duration_ms": round((time.perf_counter() - start) * 1000, 2)},
                request_id=request_id,
            )
        )

    logger.debug("Registered smart_converse tool")


__all__ = [
    "register_unified_converse_tool",
]
