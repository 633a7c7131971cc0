"""Tests for BusinessContextBroker."""

from datetime import datetime, timedelta, timezone

import pytest

from devflow_mcp.core.business_context import (
    BusinessContextBroker,
    MAX_ROLE_HISTORY,
    ContextMetadata,
    RoleTransition,
    context_key,
)


class _Clock:
    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now


def _context(**overrides):
    context = {
        "projectId": "p1",
        "businessGoals": ["Grow revenue", "Reduce churn"],
        "requirements": ["SSO"],
        "stakeholders": ["cfo"],
        "success": {"metrics": ["MAU"], "criteria": []},
    }
    context.update(overrides)
    return context


def _transition(from_role: str, to_role: str, timestamp: str) -> RoleTransition:
    return RoleTransition(
        from_role=from_role,
        to_role=to_role,
        timestamp=timestamp,
        context={"projectId": "p1"},
        transition_reason="phase-handoff",
    )


class TestSetGet:
    """Storage, versioning and role filtering."""

    def test_version_bumps(self):
        broker = BusinessContextBroker()
        assert broker.set_context(context_key("p1"), _context())["version"] == 1
        assert broker.set_context(context_key("p1"), _context())["version"] == 2

    def test_missing_key(self):
        assert BusinessContextBroker().get_context("nope") is None

    def test_role_filter(self):
        broker = BusinessContextBroker()
        broker.set_context("k", {"a": 1}, metadata=ContextMetadata(role="developer"))
        assert broker.get_context("k", role="developer") == broker.get_context("k")
        assert broker.get_context("k", role="designer") is None

    def test_system_context_readable_by_any_role(self):
        broker = BusinessContextBroker()
        broker.set_context("k", {"a": 1})
        assert broker.get_context("k", role="qa-engineer") is not None


class TestTransitions:
    """preserve_context and role history."""

    def test_preserve_records_history_and_reowns(self):
        broker = BusinessContextBroker()
        key = context_key("p1")
        broker.set_context(key, _context())
        broker.preserve_context(_transition("product-strategist", "developer", "2024-01-01T00:00:00+00:00"))

        assert len(broker.get_role_history("p1")) == 1
        assert broker.get_context(key)["version"] == 2
        assert broker.get_context(key, role="developer") is not None
        assert broker.get_context(key, role="designer") is None

    def test_preserve_without_context_only_records(self):
        broker = BusinessContextBroker()
        broker.preserve_context(_transition("a", "b", "2024-01-01T00:00:00+00:00"))
        assert len(broker.get_role_history("p1")) == 1
        assert broker.get_context(context_key("p1")) is None

    def test_transition_to_dict(self):
        data = _transition("a", "b", "2024-01-01T00:00:00+00:00").to_dict()
        assert data["fromRole"] == "a"
        assert data["toRole"] == "b"
        assert data["transitionReason"] == "phase-handoff"


class TestBusinessValue:
    """Derived business value figures."""

    def test_no_context_is_zero(self):
        value = BusinessContextBroker().get_business_value("p1")
        assert set(value.values()) == {0}

    def test_counts_goals_requirements_transitions(self):
        broker = BusinessContextBroker()
        broker.set_context(context_key("p1"), _context())
        broker.preserve_context(_transition("a", "b", "2024-01-01T00:00:00+00:00"))
        value = broker.get_business_value("p1")
        assert value["costPrevention"] == 10000
        assert value["timesSaved"] == pytest.approx(3.3)
        assert value["qualityImprovement"] == 75
        assert value["riskMitigation"] == 65
        assert value["strategicAlignment"] == 83
        assert value["userSatisfaction"] == 87.5

    def test_values_are_capped(self):
        broker = BusinessContextBroker()
        broker.set_context(context_key("p1"), _context(businessGoals=[f"g{i}" for i in range(40)]))
        value = broker.get_business_value("p1")
        assert value["costPrevention"] == 50000
        assert value["timesSaved"] == 20
        assert value["strategicAlignment"] == 100


class TestValidationAndInsights:
    """validate_context and generate_context_insights."""

    def test_complete_context_is_valid(self):
        broker = BusinessContextBroker()
        broker.set_context(context_key("p1"), _context())
        assert broker.validate_context("p1") == {"isValid": True, "issues": [], "recommendations": []}

    def test_missing_context(self):
        result = BusinessContextBroker().validate_context("p1")
        assert result["isValid"] is False
        assert result["issues"] == ["No business context found for project"]

    def test_empty_fields_reported(self):
        broker = BusinessContextBroker()
        broker.set_context(context_key("p1"), _context(businessGoals=[], success={"metrics": []}))
        result = broker.validate_context("p1")
        assert "No business goals defined" in result["issues"]
        assert "Define measurable success metrics" in result["recommendations"]

    def test_stale_context(self):
        clock = _Clock(datetime(2024, 1, 1, tzinfo=timezone.utc))
        broker = BusinessContextBroker(clock=clock)
        broker.set_context(context_key("p1"), _context())
        clock.now += timedelta(hours=25)
        assert "Context is stale (older than 24 hours)" in broker.validate_context("p1")["issues"]

    def test_insights(self):
        broker = BusinessContextBroker()
        broker.set_context(context_key("p1"), _context())
        insights = broker.generate_context_insights("p1")
        assert insights["businessAlignment"] == 65
        assert insights["contextRichness"] == 80
        assert insights["roleTransitionEfficiency"] == 100
        assert insights["recommendations"] == [
            "Enhance business goal definition and requirements clarity"
        ]

    def test_slow_transitions_lower_efficiency(self):
        broker = BusinessContextBroker()
        broker.set_context(context_key("p1"), _context())
        broker.preserve_context(_transition("a", "b", "2024-01-01T00:00:00+00:00"))
        broker.preserve_context(_transition("b", "c", "2024-01-01T01:00:00+00:00"))
        insights = broker.generate_context_insights("p1")
        assert insights["roleTransitionEfficiency"] == 0


class TestCleanup:
    """cleanup_context expiry and history trimming."""

    def test_expired_entries_removed(self):
        clock = _Clock(datetime(2024, 1, 1, tzinfo=timezone.utc))
        broker = BusinessContextBroker(clock=clock)
        key = context_key("p1")
        broker.set_context(
            key, _context(), metadata=ContextMetadata(expires_at=clock.now + timedelta(minutes=5))
        )
        assert broker.cleanup_context("p1") == 0

        clock.now += timedelta(minutes=10)
        assert broker.cleanup_context("p1") == 1
        assert broker.get_context(key) is None

    def test_role_history_trimmed_to_most_recent(self):
        broker = BusinessContextBroker()
        for index in range(MAX_ROLE_HISTORY + 10):
            broker.preserve_context(
                _transition(f"role_{index}", f"role_{index + 1}", "2024-01-01T00:00:00+00:00")
            )
        assert len(broker.get_role_history("p1")) == MAX_ROLE_HISTORY + 10

        assert broker.cleanup_context("p1") == 0

        history = broker.get_role_history("p1")
        assert len(history) == MAX_ROLE_HISTORY
        assert [t.from_role for t in history] == [
            f"role_{index}" for index in range(10, MAX_ROLE_HISTORY + 10)
        ]
