"""Tests for workflow construction, execution, validation and optimization."""

import pytest

from devflow_mcp.core import orchestration
from devflow_mcp.core.business_context import BusinessContextBroker
from devflow_mcp.core.models import OrchestrationOptions, SmartOrchestrateInput
from devflow_mcp.core.orchestration import (
    Workflow,
    WorkflowPhase,
    WorkflowTask,
    build_business_context,
    build_workflow,
    calculate_phase_quality_metrics,
    calculate_technical_metrics,
    execute_workflow,
    generate_phase_deliverables,
    generate_workflow_phases,
    optimize_workflow,
    orchestrate,
    switch_role,
    validate_workflow,
)

REQUEST = "Build a customer feedback portal for support teams"


def _options(**payload) -> OrchestrationOptions:
    return OrchestrationOptions.model_validate(payload)


def _params(**payload) -> SmartOrchestrateInput:
    data = {"request": REQUEST}
    data.update(payload)
    return SmartOrchestrateInput.model_validate(data)


def _workflow(**payload) -> Workflow:
    params = _params(**payload)
    context = build_business_context(params.request, params.options.business_context)
    return build_workflow(params, context)


class TestBusinessContext:
    """build_business_context defaults."""

    def test_defaults_from_request(self):
        context = build_business_context(REQUEST, None)
        assert context["projectId"] == "default-project"
        assert context["businessGoals"] == [f"Implement: {REQUEST}"]
        assert context["requirements"] == [REQUEST]
        assert context["version"] == 1
        assert "marketContext" not in context

    def test_caller_context_kept(self):
        options = _options(
            businessContext={
                "projectId": "shop",
                "businessGoals": ["Sell more"],
                "marketContext": {"industry": "retail"},
            }
        )
        context = build_business_context(REQUEST, options.business_context)
        assert context["projectId"] == "shop"
        assert context["businessGoals"] == ["Sell more"]
        assert context["marketContext"] == {
            "industry": "retail",
            "targetMarket": "",
            "competitors": [],
        }


class TestPhaseGeneration:
    """generate_workflow_phases skip handling and dependency rewiring."""

    def test_full_chain(self):
        phases = generate_workflow_phases(REQUEST, _options())
        assert [p.name for p in phases] == [
            "Strategic Planning",
            "Development",
            "Quality Assurance",
            "Deployment & Operations",
        ]
        assert [p.role for p in phases] == [
            "product-strategist",
            "developer",
            "qa-engineer",
            "operations-engineer",
        ]
        assert phases[0].dependencies == []
        assert phases[3].dependencies == ["Quality Assurance"]
        assert phases[3].tasks[0].dependencies == ["task_qa_1"]
        assert phases[0].description.endswith(REQUEST)
        assert [p.tasks[0].estimated_time for p in phases] == [45, 90, 60, 45]

    def test_skipped_phase_rewires_dependencies(self):
        phases = generate_workflow_phases(REQUEST, _options(skipPhases=["development"]))
        assert [p.name for p in phases] == [
            "Strategic Planning",
            "Quality Assurance",
            "Deployment & Operations",
        ]
        assert phases[1].dependencies == ["Strategic Planning"]
        assert phases[1].tasks[0].dependencies == ["task_planning_1"]

    def test_basic_quality_drops_qa(self):
        phases = generate_workflow_phases(
            REQUEST, _options(qualityLevel="basic", skipPhases=["planning"])
        )
        assert [p.name for p in phases] == ["Development", "Deployment & Operations"]
        assert phases[0].dependencies == []
        assert phases[0].tasks[0].dependencies == []
        assert phases[1].dependencies == ["Development"]

    def test_everything_skipped(self):
        options = _options(skipPhases=["planning", "development", "testing", "deployment"])
        assert generate_workflow_phases(REQUEST, options) == []

    def test_focus_areas_attached(self):
        phases = generate_workflow_phases(REQUEST, _options(focusAreas=["security"]))
        assert all(p.focus_areas == ["security"] for p in phases)
        assert phases[0].to_dict()["focusAreas"] == ["security"]

    def test_workflow_identity(self):
        workflow = _workflow(workflow="quality")
        assert workflow.name == "Complete QUALITY Orchestration"
        assert workflow.id.startswith("orchestration_")
        assert workflow.id.endswith("_default-project")


class TestPhaseExecutionHelpers:
    """Deliverables, quality metrics and role switching."""

    @pytest.mark.parametrize(
        "name,first",
        [
            ("Strategic Planning", "project-requirements"),
            ("Design Review", "ui-designs"),
            ("Development", "source-code"),
            ("Quality Assurance", "test-results"),
            ("Deployment & Operations", "deployment-artifacts"),
        ],
    )
    def test_deliverables_by_keyword(self, name, first):
        assert generate_phase_deliverables(name)[0] == first

    def test_unknown_phase_deliverable(self):
        assert generate_phase_deliverables("Monitoring") == ["monitoring-deliverable"]

    def test_quality_metrics_capped(self):
        phase = WorkflowPhase(
            name="Development",
            description="x" * 120,
            role="developer",
            tools=["a", "b", "c", "d", "e"],
            tasks=[WorkflowTask(id="t", name="t", description="", role="developer", phase="dev")],
        )
        context = {"businessGoals": ["g"] * 6, "requirements": []}
        metrics = calculate_phase_quality_metrics(phase, context)
        assert metrics == {"code-quality": 100, "test-coverage": 100, "security-scan": 100}

    def test_quality_metrics_sparse(self):
        phase = WorkflowPhase(name="X", description="short", role="developer", tools=["a"])
        metrics = calculate_phase_quality_metrics(phase, {})
        assert metrics["code-quality"] == pytest.approx(72.5)

    def test_switch_role(self):
        transition = switch_role("developer", "qa-engineer", {"projectId": "p1", "version": 3})
        assert transition.from_role == "developer"
        assert transition.to_role == "qa-engineer"
        assert transition.preserved_data["previousRole"] == "developer"
        assert transition.preserved_data["contextVersion"] == 3
        assert transition.preserved_data["transitionTime"] >= 0

    def test_performance_score_degrades(self):
        value = {"strategicAlignment": 80}
        assert calculate_technical_metrics([], [], value, 100)["performanceScore"] == 95
        assert calculate_technical_metrics([], [], value, 600)["performanceScore"] == 85
        assert calculate_technical_metrics([], [], value, 5000)["performanceScore"] == 50


class TestExecuteWorkflow:
    """Single-pass workflow execution."""

    def test_all_phases_succeed(self):
        params = _params()
        context = build_business_context(params.request, None)
        workflow = build_workflow(params, context)
        broker = BusinessContextBroker()

        result = execute_workflow(workflow, context, broker)

        assert result["success"] is True
        assert [p["role"] for p in result["phases"]] == [
            "product-strategist",
            "developer",
            "qa-engineer",
            "operations-engineer",
        ]
        assert len(result["roleTransitions"]) == 3
        assert len(broker.get_role_history("default-project")) == 3
        assert workflow.status == "completed"
        assert all(phase.status == "completed" for phase in workflow.phases)

        metrics = result["technicalMetrics"]
        assert metrics["phaseSuccessRate"] == 100
        assert metrics["contextPreservationAccuracy"] == 99.5

        value = result["businessValue"]
        assert value["costPrevention"] == 10000
        assert value["timeToMarket"] == 3
        assert value["riskMitigation"] == 69
        assert value["businessScore"] == 96

    def test_no_transition_when_role_repeats(self):
        phases = [
            WorkflowPhase(name="Development", description="a", role="developer", tools=["x"]),
            WorkflowPhase(name="Development 2", description="b", role="developer", tools=["x"]),
        ]
        context = build_business_context(REQUEST, None)
        workflow = Workflow(id="w", name="w", type="custom", phases=phases, business_context=context)
        result = execute_workflow(workflow, context, BusinessContextBroker())
        assert result["roleTransitions"] == []
        assert result["technicalMetrics"]["contextPreservationAccuracy"] == 99

    def test_failing_phase_stops_execution(self, monkeypatch):
        def flaky(name):
            if name == "Development":
                raise RuntimeError("disk full")
            return ["artifact"]

        monkeypatch.setattr(orchestration, "generate_phase_deliverables", flaky)
        params = _params()
        context = build_business_context(params.request, None)
        workflow = build_workflow(params, context)

        result = execute_workflow(workflow, context, BusinessContextBroker())

        assert result["success"] is False
        assert [p["phase"] for p in result["phases"]] == ["Strategic Planning", "Development"]
        assert result["phases"][1]["issues"] == ["An internal error occurred"]
        assert result["technicalMetrics"]["phaseSuccessRate"] == 50
        assert result["businessValue"]["costPrevention"] == 4000
        assert workflow.status == "failed"
        assert workflow.phases[2].status == "pending"


class TestValidateWorkflow:
    """validate_workflow scoring."""

    def test_default_workflow_lacks_success_metrics(self):
        result = validate_workflow(_workflow())
        assert result["score"] == 90
        assert result["isValid"] is False
        assert result["issues"] == ["Business context validation failed"]
        assert result["recommendations"] == ["Define measurable success metrics"]

    def test_complete_workflow_is_valid(self):
        workflow = _workflow(options={"businessContext": {"success": {"metrics": ["MAU"]}}})
        assert validate_workflow(workflow) == {
            "isValid": True,
            "issues": [],
            "recommendations": [],
            "score": 100,
        }

    def test_empty_workflow(self):
        workflow = Workflow(id="", name="", type="custom", phases=[], business_context=None)
        result = validate_workflow(workflow)
        assert result["score"] == 25
        assert result["issues"] == [
            "Workflow must have a valid ID",
            "Workflow must have at least one phase",
            "Workflow must have business context",
        ]

    def test_phase_problems(self):
        workflow = _workflow(options={"businessContext": {"success": {"metrics": ["MAU"]}}})
        workflow.phases = [
            WorkflowPhase(name="", description="", role="", tools=[], dependencies=["Ghost"])
        ]
        result = validate_workflow(workflow)
        assert result["score"] == 65
        assert "Phase 1 must have a name" in result["issues"]
        assert "Phase 1 must specify a role" in result["issues"]
        assert "Phase 1 must specify at least one tool" in result["issues"]
        assert "Phase 1 depends on unknown phase 'Ghost'" in result["issues"]

    def test_score_never_negative(self):
        bad = [WorkflowPhase(name="", description="", role="", tools=[]) for _ in range(10)]
        workflow = Workflow(id="", name="", type="custom", phases=bad, business_context=None)
        assert validate_workflow(workflow)["score"] == 0


class TestOptimizeWorkflow:
    """optimize_workflow ordering."""

    def test_reversed_phases_reordered(self):
        workflow = _workflow()
        workflow.phases.reverse()
        result = optimize_workflow(workflow)

        assert [p["name"] for p in result["optimized"]["phases"]] == [
            "Strategic Planning",
            "Development",
            "Quality Assurance",
            "Deployment & Operations",
        ]
        assert result["original"]["phases"][0]["name"] == "Deployment & Operations"
        assert result["improvements"] == ["Reordered phases for optimal workflow"]
        assert result["estimatedImprovements"] == {
            "timeReduction": 5,
            "qualityIncrease": 3,
            "costReduction": 2,
        }

    def test_ordered_workflow_unchanged(self):
        result = optimize_workflow(_workflow())
        assert result["improvements"] == []
        assert result["estimatedImprovements"]["timeReduction"] == 0

    def test_unknown_phase_sorted_last(self):
        workflow = _workflow()
        workflow.phases.insert(
            0, WorkflowPhase(name="Custom Review", description="", role="developer", tools=["x"])
        )
        names = [p["name"] for p in optimize_workflow(workflow)["optimized"]["phases"]]
        assert names[-1] == "Custom Review"
        assert names[0] == "Strategic Planning"


class TestOrchestrate:
    """orchestrate tool payload."""

    def test_payload(self):
        result = orchestrate(_params())

        assert result["orchestrationId"] == result["workflow"]["workflowId"]
        assert result["workflow"]["success"] is True
        assert result["businessContext"]["version"] == 4

        value = result["businessValue"]
        assert value["costPrevention"] == 10000
        assert value["timesSaved"] == pytest.approx(3.4)
        assert value["riskMitigationScore"] == 69
        assert len(value["riskMitigation"]) == 12
        assert value["riskMitigation"][0] == "Strategic Planning: code-quality gate enforced"

        assert result["technicalMetrics"]["businessAlignmentScore"] == 25
        assert result["externalIntegration"] == {
            "context7Status": "active",
            "webSearchStatus": "active",
            "memoryStatus": "active",
            "integrationTime": 0,
        }
        assert [step["step"] for step in result["nextSteps"]][-1] == (
            "Track business value metrics and ROI achievement"
        )
        assert len(result["nextSteps"]) == 4
        assert result["contextValidation"]["isValid"] is False

        data = result["data"]
        assert data["projectId"] == "default-project"
        assert data["workflowType"] == "sdlc"
        assert data["orchestration"]["automation"]["workflows"] == ["sdlc-pipeline"]
        assert [i["name"] for i in data["orchestration"]["workflow"]["integrations"]] == [
            "GitHub",
            "Docker",
            "Jenkins",
        ]
        assert data["orchestration"]["businessValue"]["estimatedROI"] == pytest.approx(97.8)
        assert data["successMetrics"][0] == "4/4 phases completed"
        assert data["successMetrics"][2] == "99.5% context preservation"
        assert data["technicalMetrics"]["phasesOrchestrated"] == 4
        assert data["technicalMetrics"]["qualityGatesConfigured"] == 3

    def test_constraints_become_mitigations(self):
        result = orchestrate(
            _params(options={"businessContext": {"constraints": {"budget": "10k"}}})
        )
        assert result["businessValue"]["riskMitigation"][-1] == "Constraint tracked: budget = 10k"

    def test_cost_prevention_can_be_hidden(self):
        result = orchestrate(_params(options={"costPrevention": False}))
        assert "costPrevention" not in result["data"]["orchestration"]["businessValue"]

    def test_external_sources_disabled(self):
        result = orchestrate(_params(externalSources={"useContext7": False, "useMemory": False}))
        integration = result["externalIntegration"]
        assert integration["context7Status"] == "disabled"
        assert integration["webSearchStatus"] == "active"
        assert integration["memoryStatus"] == "disabled"

    def test_failure_next_steps(self, monkeypatch):
        def broken(phase, context):
            raise ValueError("bad context")

        monkeypatch.setattr(orchestration, "calculate_phase_quality_metrics", broken)
        result = orchestrate(_params())

        steps = result["nextSteps"]
        assert result["workflow"]["success"] is False
        assert steps[0]["step"] == "Address issues in Strategic Planning phase: Invalid value provided"
        assert steps[0]["role"] == "product-strategist"
        assert steps[1]["step"] == "Review and update business requirements based on failures"
        assert result["data"]["successMetrics"][0] == "0/1 phases completed"
