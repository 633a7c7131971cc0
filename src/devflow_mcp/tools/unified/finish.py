"""smart_finish tool: quality scorecard for generated code units."""

from __future__ import annotations

import logging
import time
from dataclasses import asdict
from typing import Any, Dict, List, Optional

from mcp.server.fastmcp import FastMCP

from devflow_mcp.config import ServerConfig
from devflow_mcp.core.context import generate_correlation_id, get_correlation_id
from devflow_mcp.core.models import SmartFinishInput
from devflow_mcp.core.naming import canonical_tool
from devflow_mcp.core.observability import get_metrics
from devflow_mcp.core.quality import validate_quality
from devflow_mcp.core.responses import internal_error, sanitize_error_message, success_response
from devflow_mcp.core.validation import InputValidationError, parse_input

logger = logging.getLogger(__name__)
_metrics = get_metrics()


def _request_id() -> str:
    return get_correlation_id() or generate_correlation_id(prefix="finish")


def register_unified_finish_tool(mcp: FastMCP, config: ServerConfig) -> None:
    """Register the smart_finish tool.

    Scores are drawn from ``config.get_rng()``; a configured
    ``generation.random_seed`` makes the scorecard sequence reproducible
    for the lifetime of the server.
    """
    rng = config.get_rng()

    @canonical_tool(mcp, canonical_name="smart_finish")
    def smart_finish(
        projectId: str,
        codeIds: List[str],
        qualityGates: Optional[Dict[str, Any]] = None,
        businessRequirements: Optional[Dict[str, Any]] = None,
        productionReadiness: Optional[Dict[str, Any]] = None,
    ) -> dict:
        """Validate code units against quality, business and production gates."""
        request_id = _request_id()
        start = time.perf_counter()
        payload = {
            "projectId": projectId,
            "codeIds": codeIds,
            "qualityGates": qualityGates,
            "businessRequirements": businessRequirements,
            "productionReadiness": productionReadiness,
        }

        try:
            params = parse_input(SmartFinishInput, payload, screen=("projectId", "codeIds"))
        except InputValidationError as exc:
            _metrics.counter("finish.errors", labels={"reason": "validation"})
            return asdict(exc.to_response())

        try:
            result = validate_quality(params, rng=rng)
        except Exception as exc:
            logger.exception("smart_finish failed for %s", params.project_id)
            return asdict(
                internal_error(
                    sanitize_error_message(exc, context="quality validation"),
                    request_id=request_id,
                )
            )

        warnings = None
        if result["qualityScorecard"]["overall"]["status"] != "pass":
            warnings = ["Quality gates not met; see recommendations"]

        return asdict(
            success_response(
                data=result,
                warnings=warnings,
                telemetry={"duration_ms": round((time.perf_counter() - start) * 1000, 2)},
                request_id=request_id,
            )
        )

    logger.debug("Registered smart_finish tool")


__all__ = [
    "register_unified_finish_tool",
]
