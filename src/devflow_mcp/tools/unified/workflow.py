"""Unified workflow tool with action routing.

Inspects orchestration workflows without running them:

- ``preview``: build the phase graph for a request
- ``validate``: score the previewed graph and list its issues
- ``optimize``: reorder the previewed graph into canonical phase order
- ``status``: registered tools and server version
"""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Any, Dict, Optional

from mcp.server.fastmcp import FastMCP

from devflow_mcp.config import ServerConfig
from devflow_mcp.core.context import generate_correlation_id, get_correlation_id
from devflow_mcp.core.models import SmartOrchestrateInput
from devflow_mcp.core.naming import canonical_tool
from devflow_mcp.core.observability import get_metrics
from devflow_mcp.core.orchestration import (
    Workflow,
    build_business_context,
    build_workflow,
    optimize_workflow,
    validate_workflow,
)
from devflow_mcp.core.responses import (
    ErrorCode,
    ErrorType,
    error_response,
    success_response,
)
from devflow_mcp.core.validation import InputValidationError, parse_input
from devflow_mcp.tools.unified.router import (
    ActionDefinition,
    ActionRouter,
    ActionRouterError,
)

logger = logging.getLogger(__name__)
_metrics = get_metrics()

REGISTERED_TOOLS = (
    "smart_begin",
    "smart_plan",
    "smart_write",
    "smart_finish",
    "smart_orchestrate",
    "smart_converse",
    "workflow",
)

_ACTION_SUMMARY = {
    "preview": "Build the workflow phase graph for a request without executing it.",
    "validate": "Validate a previewed workflow and return its score and issues.",
    "optimize": "Reorder a previewed workflow into canonical phase order.",
    "status": "List registered tools and the server version.",
}


def _request_id() -> str:
    return get_correlation_id() or generate_correlation_id(prefix="workflow")


def _metric(action: str) -> str:
    return f"unified_tools.workflow.{action}"


def _build_from_payload(payload: Dict[str, Any]) -> Workflow:
    """Validate the orchestration arguments and build an unexecuted workflow.

    Raises:
        InputValidationError: If the arguments fail validation
    """
    params = parse_input(
        SmartOrchestrateInput,
        {
            "request": payload.get("request"),
            "options": payload.get("options"),
            "workflow": payload.get("workflow"),
        },
        screen=("request",),
    )
    context = build_business_context(params.request, params.options.business_context)
    return build_workflow(params, context)


def _handle_preview(*, config: ServerConfig, payload: Dict[str, Any]) -> dict:
    workflow = _build_from_payload(payload)
    _metrics.counter(_metric("preview"))
    return asdict(
        success_response(
            data={"workflow": workflow.to_dict(), "phaseCount": len(workflow.phases)},
            request_id=_request_id(),
        )
    )


def _handle_validate(*, config: ServerConfig, payload: Dict[str, Any]) -> dict:
    workflow = _build_from_payload(payload)
    validation = validate_workflow(workflow)
    _metrics.counter(_metric("validate"), labels={"valid": str(validation["isValid"]).lower()})

    warnings = validation["issues"] or None
    return asdict(
        success_response(
            data={"workflowId": workflow.id, "validation": validation},
            warnings=warnings,
            request_id=_request_id(),
        )
    )


def _handle_optimize(*, config: ServerConfig, payload: Dict[str, Any]) -> dict:
    workflow = _build_from_payload(payload)
    _metrics.counter(_metric("optimize"))
    return asdict(
        success_response(data=optimize_workflow(workflow), request_id=_request_id())
    )


def _handle_status(*, config: ServerConfig, payload: Dict[str, Any]) -> dict:
    return asdict(
        success_response(
            data={
                "server": {"name": config.server_name, "version": config.server_version},
                "tools": list(REGISTERED_TOOLS),
                "workflowActions": _WORKFLOW_ROUTER.describe(),
            },
            request_id=_request_id(),
        )
    )


_WORKFLOW_ROUTER = ActionRouter(
    tool_name="workflow",
    actions=[
        ActionDefinition(
            name="preview", handler=_handle_preview, summary=_ACTION_SUMMARY["preview"]
        ),
        ActionDefinition(
            name="validate", handler=_handle_validate, summary=_ACTION_SUMMARY["validate"]
        ),
        ActionDefinition(
            name="optimize", handler=_handle_optimize, summary=_ACTION_SUMMARY["optimize"]
        ),
        ActionDefinition(
            name="status",
            handler=_handle_status,
            summary=_ACTION_SUMMARY["status"],
            aliases=("info",),
        ),
    ],
)


def _dispatch_workflow_action(
    *, action: str, payload: Dict[str, Any], config: ServerConfig
) -> dict:
    try:
        return _WORKFLOW_ROUTER.dispatch(action=action, config=config, payload=payload)
    except ActionRouterError as exc:
        allowed = ", ".join(exc.allowed_actions)
        return asdict(
            error_response(
                f"Unsupported workflow action '{action}'. Allowed actions: {allowed}",
                error_code=ErrorCode.VALIDATION_ERROR,
                error_type=ErrorType.VALIDATION,
                remediation=f"Use one of: {allowed}",
                request_id=_request_id(),
            )
        )
    except InputValidationError as exc:
        return asdict(exc.to_response())


def register_unified_workflow_tool(mcp: FastMCP, config: ServerConfig) -> None:
    """Register the consolidated workflow tool."""

    @canonical_tool(mcp, canonical_name="workflow")
    def workflow(
        action: str,
        request: Optional[str] = None,
        options: Optional[Dict[str, Any]] = None,
        workflowType: Optional[str] = None,
    ) -> dict:
        """Preview, validate or optimize an orchestration workflow, or report server status."""
        payload: Dict[str, Any] = {
            "request": request,
            "options": options,
            "workflow": workflowType,
        }
        return _dispatch_workflow_action(action=action, payload=payload, config=config)

    logger.debug("Registered unified workflow tool")


__all__ = [
    "REGISTERED_TOOLS",
    "register_unified_workflow_tool",
]
