"""smart_orchestrate tool: run the role-based SDLC workflow for a request."""

from __future__ import annotations

import logging
import time
from dataclasses import asdict
from typing import Any, Dict, Optional

from mcp.server.fastmcp import FastMCP

from devflow_mcp.config import ServerConfig
from devflow_mcp.core.context import generate_correlation_id, get_correlation_id
from devflow_mcp.core.models import SmartOrchestrateInput
from devflow_mcp.core.naming import canonical_tool
from devflow_mcp.core.observability import get_metrics
from devflow_mcp.core.orchestration import orchestrate
from devflow_mcp.core.responses import internal_error, sanitize_error_message, success_response
from devflow_mcp.core.validation import InputValidationError, parse_input

logger = logging.getLogger(__name__)
_metrics = get_metrics()


def _request_id() -> str:
    return get_correlation_id() or generate_correlation_id(prefix="orchestrate")


def register_unified_orchestrate_tool(mcp: FastMCP, config: ServerConfig) -> None:
    """Register the smart_orchestrate tool."""

    @canonical_tool(mcp, canonical_name="smart_orchestrate")
    def smart_orchestrate(
        request: str,
        options: Optional[Dict[str, Any]] = None,
        workflow: Optional[str] = None,
        externalSources: Optional[Dict[str, Any]] = None,
    ) -> dict:
        """Orchestrate planning, development, QA and deployment phases for a request."""
        request_id = _request_id()
        start = time.perf_counter()
        payload = {
            "request": request,
            "options": options,
            "workflow": workflow,
            "externalSources": externalSources,
        }

        try:
            params = parse_input(SmartOrchestrateInput, payload, screen=("request",))
        except InputValidationError as exc:
            _metrics.counter("orchestrate.errors", labels={"reason": "validation"})
            return asdict(exc.to_response())

        try:
            result = orchestrate(
                params, performance_budget_ms=config.generation.max_execution_ms
            )
        except Exception as exc:
            logger.exception("smart_orchestrate failed")
            return asdict(
                internal_error(
                    sanitize_error_message(exc, context="workflow orchestration"),
                    request_id=request_id,
                )
            )

        warnings = None
        if not result["workflow"]["success"]:
            warnings = ["Workflow stopped at a failed phase; see nextSteps"]

        return asdict(
            success_response(
                data=result,
                warnings=warnings,
                telemetry={"duration_ms": round((time.perf_counter() - start) * 1000, 2)},
                request_id=request_id,
            )
        )

    logger.debug("Registered smart_orchestrate tool")


__all__ = [
    "register_unified_orchestrate_tool",
]
