"""Tests for smart_begin project initialization."""

import re

from devflow_mcp.core.models import SmartBeginInput
from devflow_mcp.core.project import (
    BASE_FOLDERS,
    build_next_steps,
    build_project_structure,
    build_quality_gates,
    estimate_cost_prevention,
    initialize_project,
    make_project_id,
)


class TestProjectId:
    """make_project_id formatting."""

    def test_whitespace_runs_collapse(self):
        assert make_project_id("My  Cool\tApp", now_ms=1700000000000) == "proj_1700000000000_my_cool_app"

    def test_uses_current_time_by_default(self):
        assert re.fullmatch(r"proj_\d{13}_demo", make_project_id("Demo"))


class TestProjectStructure:
    """Folder/file layout follows the tech stack."""

    def test_base_layout(self):
        structure = build_project_structure([])
        assert structure["folders"] == BASE_FOLDERS
        assert "README.md" in structure["files"]
        assert "vitest.config.ts" in structure["configFiles"]

    def test_react_additions_case_insensitive(self):
        structure = build_project_structure(["React"])
        assert "src/components" in structure["folders"]
        assert "src/App.tsx" in structure["files"]

    def test_express_counts_as_node(self):
        structure = build_project_structure(["express"])
        assert "src/routes" in structure["folders"]
        assert "src/server.ts" in structure["files"]


class TestQualityGatesAndSteps:
    """Quality gates, next steps and cost prevention."""

    def test_five_base_gates_enabled(self):
        gates = build_quality_gates(["python"])
        assert [g["name"] for g in gates][0] == "TypeScript Strict Mode"
        assert len(gates) == 5
        assert all(g["status"] == "enabled" for g in gates)

    def test_react_gate_added(self):
        assert build_quality_gates(["react"])[-1]["name"] == "React Best Practices"

    def test_audience_steps_appended(self):
        steps = build_next_steps("Shop", ["vibe-coders", "unknown-audience"])
        assert steps[0] == "Project 'Shop' initialized successfully"
        assert len(steps) == 7

    def test_cost_prevention(self):
        assert estimate_cost_prevention([]) == 10000
        assert estimate_cost_prevention(["TypeScript", "react"]) == 18000


class TestInitializeProject:
    """initialize_project payload."""

    def test_payload_shape(self):
        result = initialize_project(SmartBeginInput(projectName="Demo App", techStack=["typescript"]))
        assert result["projectId"].endswith("_demo_app")
        assert result["businessValue"]["costPrevention"] == 15000
        assert result["businessValue"]["timeSaved"] == 2.5
        assert len(result["businessValue"]["qualityImprovements"]) == 5
        assert result["technicalMetrics"]["securityScore"] == 95
        assert result["technicalMetrics"]["complexityScore"] == 85
        assert "businessContext" not in result

    def test_business_context_echoed(self):
        result = initialize_project(
            SmartBeginInput(projectName="Demo", description="A demo", businessGoals=["grow"])
        )
        assert result["businessContext"] == {"description": "A demo", "businessGoals": ["grow"]}
