"""Natural-language front end (smart_converse).

Keyword matching turns a free-form message into a project intent, which is
fed to the orchestrator; the result is rendered back as markdown.
"""

import logging
import random
import re
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from devflow_mcp.core.business_context import BusinessContextBroker
from devflow_mcp.core.models import SmartOrchestrateInput
from devflow_mcp.core.orchestration import DEFAULT_PERFORMANCE_BUDGET_MS, orchestrate
from devflow_mcp.core.validation import InputValidationError, parse_input

logger = logging.getLogger(__name__)

# Order matters: the first type with a matching keyword wins.
PROJECT_TYPES: Dict[str, List[str]] = {
    "api-service": ["api", "backend", "rest", "graphql", "service", "endpoint"],
    "mobile-app": ["mobile", "ios", "android", "native", "react native"],
    "library": ["library", "package", "module", "sdk", "framework", "utility"],
    "web-app": ["website", "web app", "web application", "frontend", "ui", "webpage"],
}

TECH_STACKS: Dict[str, List[str]] = {
    "react": ["react", "jsx", "next", "nextjs"],
    "vue": ["vue", "vuejs", "nuxt"],
    "angular": ["angular", "ng"],
    "nodejs": ["node", "nodejs", "express", "fastify"],
    "python": ["python", "django", "flask", "fastapi"],
    "typescript": ["typescript", "ts", "typed"],
}

ROLES: Dict[str, List[str]] = {
    "developer": ["develop", "code", "program", "build", "create", "implement"],
    "designer": ["design", "ui", "ux", "interface", "visual", "style"],
    "qa-engineer": ["test", "quality", "qa", "bug", "verify", "validate"],
    "operations-engineer": ["deploy", "devops", "infrastructure", "ci/cd", "pipeline"],
    "product-strategist": ["strategy", "product", "business", "plan", "roadmap"],
}

PROJECT_TYPE_DESCRIPTIONS = {
    "web-app": "web application",
    "api-service": "API service",
    "mobile-app": "mobile application",
    "library": "software library",
}

ROLE_DESCRIPTIONS = {
    "developer": "development",
    "designer": "design",
    "qa-engineer": "quality assurance",
    "operations-engineer": "operations and deployment",
    "product-strategist": "product strategy",
}

DEFAULT_PROJECT_NAME = "new-project"
DEFAULT_PROJECT_TYPE = "web-app"
DEFAULT_ROLE = "developer"

_QUOTED = re.compile(r"[\"']([^\"']+)[\"']")
_NAMED = re.compile(r"(?:called|named|project)\s+(\w+)", re.IGNORECASE)


@dataclass
class Intent:
    project_id: str
    project_name: str
    project_type: str
    role: str
    description: str
    tech_stack: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "projectId": self.project_id,
            "projectName": self.project_name,
            "projectType": self.project_type,
            "techStack": list(self.tech_stack),
            "role": self.role,
            "description": self.description,
        }


def _first_match(table: Dict[str, List[str]], lowered: str, default: str) -> str:
    for name, keywords in table.items():
        if any(keyword in lowered for keyword in keywords):
            return name
    return default


def detect_tech_stack(message: str) -> List[str]:
    stack = []
    for tech, keywords in TECH_STACKS.items():
        if any(re.search(rf"\b{re.escape(k)}\b", message, re.IGNORECASE) for k in keywords):
            stack.append(tech)
    return stack


def extract_project_name(message: str) -> str:
    quoted = _QUOTED.search(message)
    if quoted:
        return quoted.group(1)
    named = _NAMED.search(message)
    if named:
        return named.group(1)
    return DEFAULT_PROJECT_NAME


def parse_intent(
    message: str,
    *,
    rng: Optional[random.Random] = None,
    now_ms: Optional[int] = None,
) -> Intent:
    """Derive project type, stack, role and name from ``message``."""
    rng = rng or random.Random()
    lowered = message.lower()
    name = extract_project_name(message)
    stamp = (now_ms if now_ms is not None else int(time.time() * 1000)) + rng.randint(0, 999)

    return Intent(
        project_id=f"{name}-{stamp}",
        project_name=name,
        project_type=_first_match(PROJECT_TYPES, lowered, DEFAULT_PROJECT_TYPE),
        tech_stack=detect_tech_stack(message),
        role=_first_match(ROLES, lowered, DEFAULT_ROLE),
        description=message,
    )


def build_orchestrate_payload(intent: Intent) -> Dict[str, Any]:
    stack = intent.tech_stack
    return {
        "request": intent.description,
        "workflow": "project",
        "options": {
            "qualityLevel": "standard",
            "costPrevention": True,
            "businessContext": {
                "projectId": intent.project_id,
                "businessGoals": [
                    f"Create a {intent.project_type} solution",
                    f"Implement using {', '.join(stack) if stack else 'appropriate technologies'}",
                ],
                "requirements": [
                    f"Project type: {intent.project_type}",
                    f"Technology stack: {', '.join(stack) or 'To be determined'}",
                    f"Development role: {intent.role}",
                ],
                "stakeholders": [intent.role],
                "constraints": {
                    "projectType": intent.project_type,
                    "techStack": list(stack),
                    "role": intent.role,
                },
            },
        },
    }


def render_response(intent: Intent, result: Dict[str, Any]) -> str:
    """Markdown summary of an orchestration run for ``intent``."""
    workflow = result.get("workflow") or {}
    if not workflow.get("success"):
        return (
            f"I encountered an issue while setting up your {intent.project_type} project. "
            "Please try again or provide more details about what you'd like to build."
        )

    type_desc = PROJECT_TYPE_DESCRIPTIONS.get(intent.project_type, intent.project_type)
    role_desc = ROLE_DESCRIPTIONS.get(intent.role, intent.role)
    lines = [
        f'**Project "{intent.project_name}" Initialized Successfully!**',
        "",
        f"I've set up your {type_desc} project with the following configuration:",
        "",
        "**Project Details:**",
        f"- Project ID: {intent.project_id}",
        f"- Type: {type_desc}",
        f"- Role: {role_desc}",
    ]
    if intent.tech_stack:
        lines.append(f"- Technology Stack: {', '.join(intent.tech_stack)}")
    lines.extend([f"- Orchestration ID: {result['orchestrationId']}", ""])

    value = result.get("businessValue")
    if value:
        lines.append("**Business Value:**")
        if value.get("costPrevention"):
            lines.append(f"- Estimated Cost Prevention: ${value['costPrevention']:,.0f}")
        if value.get("timesSaved"):
            lines.append(f"- Estimated Time Saved: {value['timesSaved']:g} hours")
        lines.append("")

    stack = " and ".join(intent.tech_stack) if intent.tech_stack else "your chosen technologies"
    lines.extend(
        [
            "**Next Steps:**",
            "1. Review the project structure and configuration",
            f"2. Install necessary dependencies for {stack}",
            "3. Set up your development environment",
            "4. Begin implementing core features",
            "5. Configure testing and quality assurance",
            "",
        ]
    )

    phases = workflow.get("phases") or []
    if phases:
        lines.append("**Workflow Phases:**")
        lines.extend(
            f"{index}. {phase.get('phase') or f'Phase {index}'}"
            for index, phase in enumerate(phases[:3], start=1)
        )
        lines.append("")

    lines.append(
        f"**Ready to start building!** Your project has been orchestrated and is ready for "
        f"{role_desc}. The system has automatically configured the optimal workflow for your "
        f"{type_desc}."
    )
    return "\n".join(lines)


def _as_message_error(exc: InputValidationError) -> InputValidationError:
    errors = [
        {**error, "field": "userMessage"} if error["field"] == "request" else error
        for error in exc.errors
    ]
    return InputValidationError(
        exc.message.replace("request:", "userMessage:", 1),
        errors=errors,
        remediation="Describe what you want to build in at least 10 characters",
    )


def converse(
    message: str,
    *,
    rng: Optional[random.Random] = None,
    broker: Optional[BusinessContextBroker] = None,
    performance_budget_ms: int = DEFAULT_PERFORMANCE_BUDGET_MS,
) -> Dict[str, Any]:
    """Run a conversational request end to end.

    Raises:
        InputValidationError: If the derived orchestration input is invalid
            (e.g. a message shorter than the minimum request length). Errors
            on ``request`` are reported against ``userMessage``.
    """
    intent = parse_intent(message, rng=rng)
    try:
        params = parse_input(SmartOrchestrateInput, build_orchestrate_payload(intent))
    except InputValidationError as exc:
        raise _as_message_error(exc) from exc
    result = orchestrate(params, broker=broker, performance_budget_ms=performance_budget_ms)

    logger.info(
        "Conversation mapped to %s/%s as %s", intent.project_type, intent.role, intent.project_id
    )
    return {
        "response": render_response(intent, result),
        "intent": intent.to_dict(),
        "orchestrationId": result["orchestrationId"],
    }
