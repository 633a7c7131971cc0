"""Core tool operations for devflow-mcp."""

from devflow_mcp.core.business_context import BusinessContextBroker, RoleTransition
from devflow_mcp.core.codegen import generate_code
from devflow_mcp.core.conversation import converse, parse_intent
from devflow_mcp.core.orchestration import (
    execute_workflow,
    optimize_workflow,
    orchestrate,
    validate_workflow,
)
from devflow_mcp.core.planning import generate_plan
from devflow_mcp.core.project import initialize_project
from devflow_mcp.core.quality import validate_quality

__all__ = [
    "BusinessContextBroker",
    "RoleTransition",
    "initialize_project",
    "generate_plan",
    "generate_code",
    "validate_quality",
    "orchestrate",
    "execute_workflow",
    "validate_workflow",
    "optimize_workflow",
    "parse_intent",
    "converse",
]
