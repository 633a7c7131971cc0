"""smart_write tool: role-aware code generation with an execution trace."""

from __future__ import annotations

import logging
import time
from dataclasses import asdict
from typing import Any, Dict, List, Optional

from mcp.server.fastmcp import FastMCP

from devflow_mcp.config import ServerConfig
from devflow_mcp.core.codegen import generate_code
from devflow_mcp.core.context import generate_correlation_id, get_correlation_id
from devflow_mcp.core.models import SmartWriteInput
from devflow_mcp.core.naming import canonical_tool
from devflow_mcp.core.observability import get_metrics
from devflow_mcp.core.responses import internal_error, sanitize_error_message, success_response
from devflow_mcp.core.validation import InputValidationError, parse_input

logger = logging.getLogger(__name__)
_metrics = get_metrics()


def _request_id() -> str:
    return get_correlation_id() or generate_correlation_id(prefix="write")


def register_unified_write_tool(mcp: FastMCP, config: ServerConfig) -> None:
    """Register the smart_write tool."""

    @canonical_tool(mcp, canonical_name="smart_write")
    def smart_write(
        projectId: str,
        featureDescription: str,
        targetRole: Optional[str] = None,
        codeType: Optional[str] = None,
        techStack: Optional[List[str]] = None,
        businessContext: Optional[Dict[str, Any]] = None,
        qualityRequirements: Optional[Dict[str, Any]] = None,
    ) -> dict:
        """Generate code for a feature description, with tests and quality metrics."""
        request_id = _request_id()
        start = time.perf_counter()
        payload = {
            "projectId": projectId,
            "featureDescription": featureDescription,
            "targetRole": targetRole,
            "codeType": codeType,
            "techStack": techStack,
            "businessContext": businessContext,
            "qualityRequirements": qualityRequirements,
        }

        try:
            params = parse_input(
                SmartWriteInput, payload, screen=("projectId", "featureDescription")
            )
        except InputValidationError as exc:
            _metrics.counter("write.errors", labels={"reason": "validation"})
            return asdict(exc.to_response())

        try:
            result = generate_code(params)
        except Exception as exc:
            logger.exception("smart_write failed for %s", params.project_id)
            return asdict(
                internal_error(
                    sanitize_error_message(exc, context="code generation"),
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

    logger.debug("Registered smart_write tool")


__all__ = [
    "register_unified_write_tool",
]
