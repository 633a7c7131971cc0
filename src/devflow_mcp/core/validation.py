"""Tool input validation.

Turns raw tool arguments into pydantic models and screens free-text fields.
Failures surface as ``InputValidationError``, which tool handlers convert to a
``VALIDATION_ERROR`` envelope; schema problems never escape a tool as raw
exceptions.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Type, TypeVar

from pydantic import BaseModel, ValidationError

from devflow_mcp.core.responses import ToolResponse, validation_error
from devflow_mcp.core.security import screen_inputs

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


class InputValidationError(Exception):
    """Raised when tool arguments fail schema or content checks."""

    def __init__(
        self,
        message: str,
        *,
        errors: Optional[List[Dict[str, str]]] = None,
        remediation: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.errors = errors or []
        self.remediation = remediation

    @property
    def field(self) -> Optional[str]:
        return self.errors[0]["field"] if self.errors else None

    def to_response(self) -> ToolResponse:
        return validation_error(
            self.message,
            field=self.field,
            details={"validation_errors": self.errors},
            remediation=self.remediation,
        )


def _format_location(loc: Sequence[Any]) -> str:
    parts: List[str] = []
    for item in loc:
        if isinstance(item, int) and parts:
            parts[-1] = f"{parts[-1]}[{item}]"
        else:
            parts.append(str(item))
    return ".".join(parts) or "input"


def format_validation_errors(exc: ValidationError) -> List[Dict[str, str]]:
    """Flatten a pydantic ``ValidationError`` into ``{field, message}`` pairs."""
    return [
        {"field": _format_location(err.get("loc", ())), "message": err.get("msg", "invalid")}
        for err in exc.errors()
    ]


def parse_input(
    model: Type[M],
    payload: Mapping[str, Any],
    *,
    screen: Sequence[str] = (),
) -> M:
    """Validate ``payload`` against ``model``.

    Args:
        model: Pydantic model class for the tool input
        payload: Raw tool arguments (camelCase wire names)
        screen: Top-level argument names to check for size and injection

    Raises:
        InputValidationError: On schema violations or screening hits
    """
    cleaned = {key: value for key, value in payload.items() if value is not None}

    violations = screen_inputs((name, cleaned.get(name)) for name in screen)
    if violations:
        errors = [{"field": name, "message": msg} for name, msg in violations]
        logger.warning(
            "Rejected %s input after screening", model.__name__, extra={"fields": [e["field"] for e in errors]}
        )
        raise InputValidationError(
            f"Invalid input: {errors[0]['field']}: {errors[0]['message']}",
            errors=errors,
            remediation="Remove instruction-like text and keep inputs within size limits",
        )

    try:
        return model.model_validate(cleaned)
    except ValidationError as exc:
        errors = format_validation_errors(exc)
        first = errors[0] if errors else {"field": "input", "message": "invalid"}
        raise InputValidationError(
            f"Validation failed: {first['field']}: {first['message']}",
            errors=errors,
            remediation="Check the tool input schema and correct the listed fields",
        ) from exc


__all__ = [
    "InputValidationError",
    "format_validation_errors",
    "parse_input",
]
