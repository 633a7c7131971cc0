"""Tests for smart_plan plan generation."""

from datetime import date

from devflow_mcp.core.models import SmartPlanInput
from devflow_mcp.core.planning import (
    DEFAULT_BUDGET,
    build_resources,
    build_risks,
    build_timeline,
    generate_phases,
    generate_plan,
)


def _plan_input(**overrides) -> SmartPlanInput:
    payload = {"projectId": "proj_1"}
    payload.update(overrides)
    return SmartPlanInput.model_validate(payload)


class TestPhases:
    """Phase generation by scope."""

    def test_planning_phase_only_by_default(self):
        phases = generate_phases(_plan_input())
        assert [p["name"] for p in phases] == ["Planning and Setup"]

    def test_feature_and_integration_phases(self):
        params = _plan_input(
            scope={"features": ["login", "search"], "timeline": {"duration": 6}},
            externalMCPs=[{"name": "Payments", "integrationType": "api"}],
        )
        phases = generate_phases(params)
        assert [p["name"] for p in phases] == [
            "Planning and Setup",
            "Feature Development",
            "External Integrations",
        ]
        assert phases[1]["duration"] == 4
        assert [t["name"] for t in phases[1]["tasks"]] == ["Implement login", "Implement search"]
        assert phases[2]["tasks"][0]["effort"] == 5

    def test_feature_phase_duration_never_below_one(self):
        params = _plan_input(
            scope={"features": ["x"], "timeline": {"duration": 1}},
            externalMCPs=[{"name": "Db", "integrationType": "database"}],
        )
        assert generate_phases(params)[1]["duration"] == 1


class TestResourcesTimelineRisks:
    """Budget, schedule and risk register."""

    def test_budget_breakdown_sums_to_total(self):
        resources = build_resources(_plan_input(scope={"resources": {"budget": 80000}}))
        breakdown = resources["budget"]["breakdown"]
        assert sum(item["amount"] for item in breakdown) == 80000
        assert sum(item["percentage"] for item in breakdown) == 100

    def test_zero_budget_falls_back_to_default(self):
        resources = build_resources(_plan_input(scope={"resources": {"budget": 0}}))
        assert resources["budget"]["total"] == DEFAULT_BUDGET

    def test_external_tools_listed(self):
        resources = build_resources(_plan_input(scope={"resources": {"externalTools": ["Figma"]}}))
        assert resources["tools"][-1]["name"] == "Figma"

    def test_timeline_dates(self):
        phases = [{"name": "A", "duration": 1}, {"name": "B", "duration": 2}]
        timeline = build_timeline(phases, 3, today=date(2024, 1, 1))
        assert timeline["startDate"] == "2024-01-01"
        assert timeline["endDate"] == "2024-01-22"
        assert timeline["phases"][1] == {"name": "B", "startWeek": 2, "endWeek": 3}

    def test_end_date_covers_every_phase(self):
        params = _plan_input(
            scope={"features": ["login"], "timeline": {"duration": 1}},
            externalMCPs=[{"name": "Db", "integrationType": "database"}],
        )
        result = generate_plan(params, today=date(2024, 1, 1))
        timeline = result["projectPlan"]["timeline"]
        last_week = timeline["phases"][-1]["endWeek"]
        assert last_week == 3
        assert timeline["duration"] == 3
        assert timeline["endDate"] == "2024-01-22"
        assert result["businessValue"]["timeToMarket"] == 3
        assert result["successMetrics"][0] == "Complete project delivery in 3 weeks"

    def test_risks_grow_with_context(self):
        params = _plan_input(
            externalMCPs=[{"name": "Db", "integrationType": "database"}],
            qualityRequirements={"securityLevel": "high"},
            businessContext={"riskFactors": ["Vendor lock-in"]},
        )
        names = [risk["name"] for risk in build_risks(params)]
        assert names == [
            "Technical Complexity",
            "External Dependency",
            "Security Compliance",
            "Vendor lock-in",
        ]


class TestGeneratePlan:
    """generate_plan payload."""

    def test_payload(self):
        params = _plan_input(
            planType="migration",
            scope={"features": ["export"]},
            businessContext={"successMetrics": ["NPS > 40"]},
        )
        result = generate_plan(params, today=date(2024, 1, 1))
        assert result["planType"] == "migration"
        assert result["businessValue"]["estimatedROI"] == 125000
        assert result["businessValue"]["timeToMarket"] == 4
        assert result["successMetrics"][-1] == "NPS > 40"
        assert result["successMetrics"][1] == "Achieve 85% test coverage"
        assert result["technicalMetrics"]["phasesPlanned"] == 2
        assert result["technicalMetrics"]["tasksPlanned"] == 2
        assert len(result["nextSteps"]) == 4
