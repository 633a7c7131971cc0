"""
Business context broker.

Keeps a project's business context (goals, requirements, stakeholders,
success metrics) alive across role transitions within one orchestration run,
and derives business-value and alignment figures from it.

A broker instance is owned by a single orchestration; there is no
module-level store.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

MAX_CONTEXT_AGE = timedelta(hours=24)
MAX_ROLE_HISTORY = 50
TRANSITION_PENALTY_WINDOW_MS = 5 * 60 * 1000


def context_key(project_id: str) -> str:
    return f"project:{project_id}:context"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ContextMetadata:
    """Ownership and lifecycle data for a stored context entry."""

    role: str = "system"
    phase: str = "active"
    priority: str = "medium"
    tags: List[str] = field(default_factory=list)
    expires_at: Optional[datetime] = None


@dataclass
class RoleTransition:
    """A hand-off from one role to another during a workflow."""

    from_role: str
    to_role: str
    timestamp: str
    context: Dict[str, Any]
    preserved_data: Dict[str, Any] = field(default_factory=dict)
    transition_reason: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fromRole": self.from_role,
            "toRole": self.to_role,
            "timestamp": self.timestamp,
            "transitionReason": self.transition_reason,
            "preservedData": self.preserved_data,
        }


class BusinessContextBroker:
    """In-memory context store with role-based read filtering.

    Args:
        clock: Returns the current time; injectable for tests
    """

    def __init__(self, clock: Callable[[], datetime] = _utcnow):
        self._clock = clock
        self._store: Dict[str, Dict[str, Any]] = {}
        self._metadata: Dict[str, ContextMetadata] = {}
        self._history: Dict[str, List[RoleTransition]] = {}

    def set_context(
        self,
        key: str,
        value: Dict[str, Any],
        role: str = "system",
        metadata: Optional[ContextMetadata] = None,
    ) -> Dict[str, Any]:
        """Store ``value`` under ``key``, bumping its version."""
        existing = self._store.get(key)
        updated = {
            **value,
            "version": (existing or {}).get("version", 0) + 1,
            "timestamp": self._clock().isoformat(),
        }
        self._store[key] = updated
        self._metadata[key] = metadata or ContextMetadata(role=role)
        return updated

    def get_context(self, key: str, role: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """Return the context for ``key``; with ``role``, only if that role may read it."""
        context = self._store.get(key)
        if context is None:
            return None
        if role:
            meta = self._metadata.get(key)
            if meta and meta.role not in (role, "system"):
                return None
        return context

    def preserve_context(self, transition: RoleTransition) -> None:
        """Record ``transition`` and re-own the project context under the new role."""
        project_id = transition.context.get("projectId", "")
        self._history.setdefault(project_id, []).append(transition)

        key = context_key(project_id)
        existing = self.get_context(key)
        if existing is None:
            return

        preserved = {**existing, **transition.context}
        self.set_context(
            key,
            preserved,
            metadata=ContextMetadata(
                role=transition.to_role,
                phase="transition",
                priority="high",
                tags=["role-transition", transition.from_role, transition.to_role],
            ),
        )
        logger.debug(
            "Preserved context for %s: %s -> %s",
            project_id, transition.from_role, transition.to_role,
        )

    def get_role_history(self, project_id: str) -> List[RoleTransition]:
        return list(self._history.get(project_id, []))

    def get_business_value(self, project_id: str) -> Dict[str, float]:
        """Business value derived from goal, requirement and transition counts."""
        context = self.get_context(context_key(project_id))
        if context is None:
            return {
                "costPrevention": 0,
                "timesSaved": 0,
                "qualityImprovement": 0,
                "riskMitigation": 0,
                "strategicAlignment": 0,
                "userSatisfaction": 0,
            }

        goals = len(context.get("businessGoals") or [])
        requirements = len(context.get("requirements") or [])
        transitions = len(self._history.get(project_id, []))

        return {
            "costPrevention": min(50000, 5000 + goals * 2000 + transitions * 1000),
            "timesSaved": min(20, 2 + goals * 0.5 + transitions * 0.3),
            "qualityImprovement": min(100, 70 + goals * 2 + transitions),
            "riskMitigation": min(100, 60 + requirements * 3 + transitions * 2),
            "strategicAlignment": min(100, 80 + goals * 1.5),
            "userSatisfaction": min(100, 85 + goals + transitions * 0.5),
        }

    def validate_context(self, project_id: str) -> Dict[str, Any]:
        context = self.get_context(context_key(project_id))
        issues: List[str] = []
        recommendations: List[str] = []

        if context is None:
            return {
                "isValid": False,
                "issues": ["No business context found for project"],
                "recommendations": ["Initialize business context with set_context()"],
            }

        if not str(context.get("projectId") or "").strip():
            issues.append("Missing or empty project ID")
        if not context.get("businessGoals"):
            issues.append("No business goals defined")
            recommendations.append("Define at least one business goal")
        if not context.get("requirements"):
            issues.append("No requirements defined")
            recommendations.append("Define project requirements")
        if not (context.get("success") or {}).get("metrics"):
            issues.append("No success metrics defined")
            recommendations.append("Define measurable success metrics")

        stamp = context.get("timestamp")
        if stamp and self._clock() - datetime.fromisoformat(stamp) > MAX_CONTEXT_AGE:
            issues.append("Context is stale (older than 24 hours)")
            recommendations.append("Refresh context with current business information")

        return {"isValid": not issues, "issues": issues, "recommendations": recommendations}

    def generate_context_insights(self, project_id: str) -> Dict[str, Any]:
        context = self.get_context(context_key(project_id))
        history = self._history.get(project_id, [])

        if context is None:
            return {
                "businessAlignment": 0,
                "contextRichness": 0,
                "roleTransitionEfficiency": 0,
                "recommendations": ["Initialize business context for project"],
            }

        goals = len(context.get("businessGoals") or [])
        requirements = len(context.get("requirements") or [])
        metrics = len((context.get("success") or {}).get("metrics") or [])
        stakeholders = len(context.get("stakeholders") or [])

        alignment = min(100, goals * 15 + requirements * 10 + metrics * 20 + stakeholders * 5)
        richness = min(
            100,
            (25 if goals else 0)
            + (25 if requirements else 0)
            + (15 if stakeholders else 0)
            + (20 if context.get("marketContext") else 0)
            + (15 if metrics else 0),
        )

        mean_gap_ms = 0.0
        if len(history) > 1:
            stamps = [datetime.fromisoformat(t.timestamp) for t in history]
            gaps = [(b - a).total_seconds() * 1000 for a, b in zip(stamps, stamps[1:])]
            mean_gap_ms = sum(gaps) / len(gaps)
        efficiency = max(0.0, min(100.0, 100 - (mean_gap_ms / TRANSITION_PENALTY_WINDOW_MS) * 10))

        recommendations = []
        if alignment < 70:
            recommendations.append("Enhance business goal definition and requirements clarity")
        if richness < 60:
            recommendations.append("Add market context and stakeholder information")
        if efficiency < 80 and len(history) > 1:
            recommendations.append(
                "Optimize role transition process to reduce context switching time"
            )

        return {
            "businessAlignment": alignment,
            "contextRichness": richness,
            "roleTransitionEfficiency": efficiency,
            "recommendations": recommendations,
        }

    def cleanup_context(self, project_id: str) -> int:
        """Drop expired entries for ``project_id`` and trim its role history.

        Returns:
            Number of context entries removed
        """
        now = self._clock()
        expired = [
            key
            for key, meta in self._metadata.items()
            if project_id in key and meta.expires_at is not None and meta.expires_at < now
        ]
        for key in expired:
            self._store.pop(key, None)
            self._metadata.pop(key, None)

        history = self._history.get(project_id)
        if history and len(history) > MAX_ROLE_HISTORY:
            self._history[project_id] = history[-MAX_ROLE_HISTORY:]

        return len(expired)

