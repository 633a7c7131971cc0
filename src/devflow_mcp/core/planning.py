"""Project planning (smart_plan).

Builds a phased plan with tasks, milestones, resources, timeline and risks.
"""

import logging
import time
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from devflow_mcp.core.models import ExternalMCP, SmartPlanInput
from devflow_mcp.core.observability import get_metrics

logger = logging.getLogger(__name__)

DEFAULT_BUDGET = 50000
ROI_MULTIPLIER = 2.5
RISK_MITIGATION_VALUE = 1000

BUDGET_SPLIT = [
    ("Personnel", 60),
    ("Tools", 15),
    ("Infrastructure", 15),
    ("External Services", 10),
]

PLAN_NEXT_STEPS = [
    "Review and approve project plan",
    "Set up project management tools",
    "Assemble project team",
    "Begin Phase 1: Planning and Setup",
]

FEATURE_TASK_EFFORT = 5


def _planning_phase() -> Dict[str, Any]:
    return {
        "name": "Planning and Setup",
        "description": "Project planning, requirements gathering, and initial setup",
        "duration": 1,
        "tasks": [
            {
                "name": "Requirements Analysis",
                "description": "Analyze requirements and define project scope",
                "effort": 3,
                "dependencies": [],
                "deliverables": ["Requirements Document", "User Stories"],
            }
        ],
        "milestones": [
            {
                "name": "Project Kickoff",
                "description": "Project officially starts with team alignment",
                "date": "Week 1",
                "criteria": ["Team assembled", "Requirements documented"],
            }
        ],
    }


def _feature_phase(features: List[str], duration: int) -> Dict[str, Any]:
    return {
        "name": "Feature Development",
        "description": "Implement the features in scope",
        "duration": duration,
        "tasks": [
            {
                "name": f"Implement {feature}",
                "description": f"Build and test: {feature}",
                "effort": FEATURE_TASK_EFFORT,
                "dependencies": ["Requirements Analysis"],
                "deliverables": [f"{feature} implementation", f"{feature} tests"],
            }
            for feature in features
        ],
        "milestones": [
            {
                "name": "Features Complete",
                "description": "All scoped features implemented and tested",
                "date": f"Week {1 + duration}",
                "criteria": ["All feature tasks done", "Tests passing"],
            }
        ],
    }


def _integration_phase(mcps: List[ExternalMCP]) -> Dict[str, Any]:
    return {
        "name": "External Integrations",
        "description": "Integrate external MCP services",
        "duration": 1,
        "tasks": [
            {
                "name": f"Integrate {mcp.name}",
                "description": mcp.description or f"{mcp.integration_type} integration",
                "effort": mcp.estimated_effort,
                "priority": mcp.priority,
                "integrationType": mcp.integration_type,
                "dependencies": ["Requirements Analysis"],
                "deliverables": [f"{mcp.name} integration"],
            }
            for mcp in mcps
        ],
        "milestones": [
            {
                "name": "Integrations Verified",
                "description": "External MCPs connected and smoke-tested",
                "date": "Final week",
                "criteria": ["Connections verified", "Failure modes documented"],
            }
        ],
    }


def generate_phases(params: SmartPlanInput) -> List[Dict[str, Any]]:
    """Planning and Setup, then feature and integration phases when in scope."""
    phases = [_planning_phase()]
    duration = params.scope.timeline.duration

    if params.scope.features:
        reserved = 1 + (1 if params.external_mcps else 0)
        phases.append(_feature_phase(params.scope.features, max(1, duration - reserved)))
    if params.external_mcps:
        phases.append(_integration_phase(params.external_mcps))

    return phases


def build_resources(params: SmartPlanInput) -> Dict[str, Any]:
    total = params.scope.resources.budget or DEFAULT_BUDGET
    tools = [
        {"name": "Development Environment", "type": "Infrastructure", "cost": 1000, "priority": "high"}
    ]
    tools.extend(
        {"name": tool, "type": "External Tool", "cost": 0, "priority": "medium"}
        for tool in params.scope.resources.external_tools
    )
    return {
        "team": [
            {
                "role": "Project Manager",
                "responsibilities": ["Project coordination", "Timeline management"],
                "effort": 1,
            }
        ],
        "budget": {
            "total": total,
            "breakdown": [
                {"category": category, "amount": total * pct / 100, "percentage": pct}
                for category, pct in BUDGET_SPLIT
            ],
        },
        "tools": tools,
    }


def build_timeline(
    phases: List[Dict[str, Any]], duration: int, today: Optional[date] = None
) -> Dict[str, Any]:
    """Schedule phases back to back from ``today``.

    The plan runs for the requested ``duration`` or, when the phases need
    longer (one-week planning and integration phases are fixed), until the
    last phase ends.
    """
    start = today or date.today()
    schedule = []
    week = 0
    for phase in phases:
        schedule.append(
            {"name": phase["name"], "startWeek": week + 1, "endWeek": week + phase["duration"]}
        )
        week += phase["duration"]
    weeks = max(duration, week)
    return {
        "startDate": start.isoformat(),
        "endDate": (start + timedelta(weeks=weeks)).isoformat(),
        "duration": weeks,
        "phases": schedule,
    }


def build_risks(params: SmartPlanInput) -> List[Dict[str, Any]]:
    risks = [
        {
            "name": "Technical Complexity",
            "description": "Project complexity exceeds initial estimates",
            "probability": "medium",
            "impact": "high",
            "mitigation": ["Regular technical reviews", "Prototype early"],
        }
    ]
    if params.external_mcps:
        risks.append(
            {
                "name": "External Dependency",
                "description": "External MCP services change or become unavailable",
                "probability": "medium",
                "impact": "medium",
                "mitigation": ["Pin integration versions", "Add fallbacks for each integration"],
            }
        )
    if params.quality_requirements.security_level == "high":
        risks.append(
            {
                "name": "Security Compliance",
                "description": "High security level requires audits before release",
                "probability": "medium",
                "impact": "high",
                "mitigation": ["Schedule security review", "Run dependency audits in CI"],
            }
        )
    for factor in params.business_context.risk_factors:
        risks.append(
            {
                "name": factor,
                "description": f"Business risk identified by stakeholders: {factor}",
                "probability": "medium",
                "impact": "medium",
                "mitigation": ["Track in weekly status review"],
            }
        )
    return risks


def generate_plan(params: SmartPlanInput, today: Optional[date] = None) -> Dict[str, Any]:
    """Produce the smart_plan payload."""
    start = time.perf_counter()

    phases = generate_phases(params)
    timeline = build_timeline(phases, params.scope.timeline.duration, today=today)
    duration = timeline["duration"]
    project_plan = {
        "phases": phases,
        "resources": build_resources(params),
        "timeline": timeline,
        "risks": build_risks(params),
    }

    business_value = {
        "estimatedROI": round(project_plan["resources"]["budget"]["total"] * ROI_MULTIPLIER),
        "timeToMarket": duration,
        "riskMitigation": len(project_plan["risks"]) * RISK_MITIGATION_VALUE,
        "qualityImprovement": 75,
    }

    coverage = params.quality_requirements.test_coverage
    success_metrics = [
        f"Complete project delivery in {duration} weeks",
        f"Achieve {coverage:g}% test coverage",
        f"Integrate {len(params.external_mcps)} external MCPs",
    ]
    success_metrics.extend(params.business_context.success_metrics)

    elapsed_ms = (time.perf_counter() - start) * 1000
    tasks_planned = sum(len(phase["tasks"]) for phase in phases)

    get_metrics().gauge("plan.tasks", tasks_planned, labels={"plan_type": params.plan_type})
    logger.info(
        "Planned %d phases / %d tasks for %s", len(phases), tasks_planned, params.project_id
    )

    return {
        "projectId": params.project_id,
        "planType": params.plan_type,
        "projectPlan": project_plan,
        "businessValue": business_value,
        "successMetrics": success_metrics,
        "nextSteps": list(PLAN_NEXT_STEPS),
        "technicalMetrics": {
            "responseTime": round(elapsed_ms, 2),
            "planningTime": round(elapsed_ms, 2),
            "phasesPlanned": len(phases),
            "tasksPlanned": tasks_planned,
        },
    }
