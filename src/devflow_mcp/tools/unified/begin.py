"""smart_begin tool: initialize a project skeleton and its quality gates."""

from __future__ import annotations

import logging
import time
from dataclasses import asdict
from typing import List, Optional

from mcp.server.fastmcp import FastMCP

from devflow_mcp.config import ServerConfig
from devflow_mcp.core.context import generate_correlation_id, get_correlation_id
from devflow_mcp.core.models import SmartBeginInput
from devflow_mcp.core.naming import canonical_tool
from devflow_mcp.core.observability import get_metrics
from devflow_mcp.core.project import initialize_project
from devflow_mcp.core.responses import internal_error, sanitize_error_message, success_response
from devflow_mcp.core.validation import InputValidationError, parse_input

logger = logging.getLogger(__name__)
_metrics = get_metrics()


def _request_id() -> str:
    return get_correlation_id() or generate_correlation_id(prefix="begin")


def register_unified_begin_tool(mcp: FastMCP, config: ServerConfig) -> None:
    """Register the smart_begin tool."""

    @canonical_tool(mcp, canonical_name="smart_begin")
    def smart_begin(
        projectName: str,
        description: Optional[str] = None,
        techStack: Optional[List[str]] = None,
        targetUsers: Optional[List[str]] = None,
        businessGoals: Optional[List[str]] = None,
    ) -> dict:
        """Initialize a new project with structure, quality gates and next steps."""
        request_id = _request_id()
        start = time.perf_counter()
        payload = {
            "projectName": projectName,
            "description": description,
            "techStack": techStack,
            "targetUsers": targetUsers,
            "businessGoals": businessGoals,
        }

        try:
            params = parse_input(
                SmartBeginInput, payload, screen=("projectName", "description", "businessGoals")
            )
        except InputValidationError as exc:
            _metrics.counter("begin.errors", labels={"reason": "validation"})
            return asdict(exc.to_response())

        try:
            result = initialize_project(params)
        except Exception as exc:
            logger.exception("smart_begin failed for %s", params.project_name)
            return asdict(
                internal_error(
                    sanitize_error_message(exc, context="project initialization"),
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

    logger.debug("Registered smart_begin tool")


__all__ = [
    "register_unified_begin_tool",
]
