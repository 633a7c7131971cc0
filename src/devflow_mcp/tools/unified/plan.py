"""smart_plan tool: phased project plan with resources, timeline and risks."""

from __future__ import annotations

import logging
import time
from dataclasses import asdict
from typing import Any, Dict, List, Optional

from mcp.server.fastmcp import FastMCP

from devflow_mcp.config import ServerConfig
from devflow_mcp.core.context import generate_correlation_id, get_correlation_id
from devflow_mcp.core.models import SmartPlanInput
from devflow_mcp.core.naming import canonical_tool
from devflow_mcp.core.observability import get_metrics
from devflow_mcp.core.planning import generate_plan
from devflow_mcp.core.responses import internal_error, sanitize_error_message, success_response
from devflow_mcp.core.validation import InputValidationError, parse_input

logger = logging.getLogger(__name__)
_metrics = get_metrics()


def _request_id() -> str:
    return get_correlation_id() or generate_correlation_id(prefix="plan")


def register_unified_plan_tool(mcp: FastMCP, config: ServerConfig) -> None:
    """Register the smart_plan tool."""

    @canonical_tool(mcp, canonical_name="smart_plan")
    def smart_plan(
        projectId: str,
        planType: Optional[str] = None,
        scope: Optional[Dict[str, Any]] = None,
        externalMCPs: Optional[List[Dict[str, Any]]] = None,
        qualityRequirements: Optional[Dict[str, Any]] = None,
        businessContext: Optional[Dict[str, Any]] = None,
    ) -> dict:
        """Generate a phased project plan with budget, timeline and risk register."""
        request_id = _request_id()
        start = time.perf_counter()
        payload = {
            "projectId": projectId,
            "planType": planType,
            "scope": scope,
            "externalMCPs": externalMCPs,
            "qualityRequirements": qualityRequirements,
            "businessContext": businessContext,
        }

        try:
            params = parse_input(SmartPlanInput, payload, screen=("projectId",))
        except InputValidationError as exc:
            _metrics.counter("plan.errors", labels={"reason": "validation"})
            return asdict(exc.to_response())

        try:
            result = generate_plan(params)
        except Exception as exc:
            logger.exception("smart_plan failed for %s", params.project_id)
            return asdict(
                internal_error(
                    sanitize_error_message(exc, context="plan generation"),
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

    logger.debug("Registered smart_plan tool")


__all__ = [
    "register_unified_plan_tool",
]
