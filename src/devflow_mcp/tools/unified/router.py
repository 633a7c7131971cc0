"""Action routing for unified tools.

A unified tool exposes one MCP entry point that takes an ``action`` argument;
``ActionRouter`` maps that action (or one of its aliases) to a handler.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Tuple


@dataclass(frozen=True)
class ActionDefinition:
    """One routable action of a unified tool."""

    name: str
    handler: Callable[..., dict]
    summary: str = ""
    aliases: Tuple[str, ...] = field(default_factory=tuple)


class ActionRouterError(ValueError):
    """Raised when an action is not registered on the router."""

    def __init__(self, message: str, *, allowed_actions: Iterable[str]):
        super().__init__(message)
        self.allowed_actions = list(allowed_actions)


class ActionRouter:
    """Dispatch table for a unified tool's actions.

    Action names are matched case-insensitively; aliases resolve to the
    action they were declared on.
    """

    def __init__(self, tool_name: str, actions: Iterable[ActionDefinition]):
        self.tool_name = tool_name
        self._actions: Dict[str, ActionDefinition] = {}
        self._lookup: Dict[str, str] = {}

        for definition in actions:
            key = definition.name.lower()
            if key in self._lookup:
                raise ValueError(f"Duplicate action '{definition.name}' on {tool_name}")
            self._actions[key] = definition
            self._lookup[key] = key
            for alias in definition.aliases:
                self._lookup[alias.lower()] = key

    def allowed_actions(self) -> List[str]:
        return [definition.name for definition in self._actions.values()]

    def describe(self) -> Dict[str, str]:
        """Action name to summary, in registration order."""
        return {definition.name: definition.summary for definition in self._actions.values()}

    def resolve(self, action: str) -> ActionDefinition:
        key = self._lookup.get((action or "").strip().lower())
        if key is None:
            raise ActionRouterError(
                f"Unsupported {self.tool_name} action '{action}'",
                allowed_actions=self.allowed_actions(),
            )
        return self._actions[key]

    def dispatch(self, action: str, **kwargs: Any) -> dict:
        return self.resolve(action).handler(**kwargs)


__all__ = [
    "ActionDefinition",
    "ActionRouter",
    "ActionRouterError",
]
