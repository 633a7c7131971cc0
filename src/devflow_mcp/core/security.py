"""
Input hygiene for devflow-mcp tools.

Free-text arguments (project names, feature descriptions, orchestration
requests, chat messages) end up echoed into generated reports, markdown and
code templates, so they are screened for size and for prompt-injection
markers before any tool logic runs.
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Final, Iterable, List, Optional, Tuple

logger = logging.getLogger(__name__)

# =============================================================================
# Input Size Limits
# =============================================================================

MAX_INPUT_SIZE: Final[int] = 100_000
"""Maximum serialized size of a single argument in bytes (100KB)."""

MAX_ARRAY_LENGTH: Final[int] = 1_000
"""Maximum number of items in list arguments."""

MAX_STRING_LENGTH: Final[int] = 10_000
"""Maximum length for individual string fields."""

# =============================================================================
# Prompt Injection Detection Patterns
# =============================================================================

INJECTION_PATTERNS: Final[list[str]] = [
    # Instruction override attempts
    r"ignore\s+(all\s+)?(previous|prior)\s+(instructions?|prompts?)",
    r"disregard\s+(all\s+)?(previous|prior|above)",
    r"forget\s+(everything|all)\s+(above|before)",
    r"new\s+instructions?\s*:",

    # System prompt injection
    r"<\s*system\s*>",

    # Special tokens (model-specific)
    r"<\|.*?\|>",
    r"\[INST\]|\[/INST\]",
    r"<<SYS>>|<</SYS>>",

    # Code block injection attempts
    r"```system",

    # Role injection
    r"^(assistant|system)\s*:",
]
"""Regex patterns for detecting prompt injection attempts.

Patterns cover instruction overrides, system-prompt markers, model control
tokens and role impersonation at the start of a line.
"""


@dataclass
class InjectionDetectionResult:
    """Result of prompt injection detection.

    Attributes:
        is_suspicious: Whether the input appears to contain injection attempts
        matched_pattern: The regex pattern that matched (if any)
        matched_text: The actual text that matched the pattern (if any)
    """

    is_suspicious: bool
    matched_pattern: Optional[str] = None
    matched_text: Optional[str] = None


def detect_prompt_injection(
    text: str,
    *,
    log_detections: bool = True,
    patterns: Optional[list[str]] = None,
) -> InjectionDetectionResult:
    """Detect potential prompt injection attempts in text.

    Args:
        text: The input text to scan
        log_detections: Whether to log detected attempts (default: True)
        patterns: Optional custom patterns to use instead of INJECTION_PATTERNS

    Returns:
        InjectionDetectionResult with detection status and match details
    """
    check_patterns = patterns if patterns is not None else INJECTION_PATTERNS

    for pattern in check_patterns:
        match = re.search(pattern, text, re.IGNORECASE | re.MULTILINE)
        if match:
            result = InjectionDetectionResult(
                is_suspicious=True,
                matched_pattern=pattern,
                matched_text=match.group(0),
            )
            if log_detections:
                preview = text[:100] + "..." if len(text) > 100 else text
                logger.warning(
                    "Potential prompt injection detected",
                    extra={
                        "pattern": pattern,
                        "matched_text": result.matched_text,
                        "text_preview": preview,
                    },
                )
            return result

    return InjectionDetectionResult(is_suspicious=False)


def is_prompt_injection(text: str) -> bool:
    """Boolean shortcut for ``detect_prompt_injection`` without logging."""
    return detect_prompt_injection(text, log_detections=False).is_suspicious


@dataclass
class SizeValidationResult:
    """Result of input size validation.

    Attributes:
        is_valid: Whether all size checks passed
        violations: List of (field_name, violation_message) tuples
    """

    is_valid: bool
    violations: list[Tuple[str, str]]


def validate_size(
    value: Any,
    field_name: str = "input",
    *,
    max_size: Optional[int] = None,
    max_length: Optional[int] = None,
    max_string_length: Optional[int] = None,
) -> SizeValidationResult:
    """Validate size constraints on a value.

    Args:
        value: The value to validate
        field_name: Name of the field (for error messages)
        max_size: Maximum byte size for serialized value (default: MAX_INPUT_SIZE)
        max_length: Maximum length for lists (default: MAX_ARRAY_LENGTH)
        max_string_length: Maximum length for strings (default: MAX_STRING_LENGTH)
    """
    violations = []

    effective_max_size = max_size if max_size is not None else MAX_INPUT_SIZE
    try:
        serialized = value if isinstance(value, str) else json.dumps(value)
        if len(serialized.encode("utf-8")) > effective_max_size:
            violations.append((field_name, f"Exceeds maximum size ({effective_max_size} bytes)"))
    except (TypeError, ValueError):
        pass  # not JSON-serializable; other checks still apply

    effective_max_length = max_length if max_length is not None else MAX_ARRAY_LENGTH
    if isinstance(value, (list, tuple)) and len(value) > effective_max_length:
        violations.append(
            (field_name, f"Array exceeds maximum length ({effective_max_length} items)")
        )

    effective_max_string = (
        max_string_length if max_string_length is not None else MAX_STRING_LENGTH
    )
    if isinstance(value, str) and len(value) > effective_max_string:
        violations.append(
            (field_name, f"String exceeds maximum length ({effective_max_string} characters)")
        )

    return SizeValidationResult(is_valid=not violations, violations=violations)


def screen_inputs(fields: Iterable[Tuple[str, Any]]) -> List[Tuple[str, str]]:
    """Run size and injection checks over named tool arguments.

    Strings are checked for injection; strings inside lists are checked too.

    Returns:
        (field, message) pairs for every violation found
    """
    violations: List[Tuple[str, str]] = []
    for name, value in fields:
        if value is None:
            continue
        violations.extend(validate_size(value, field_name=name).violations)

        texts = [value] if isinstance(value, str) else []
        if isinstance(value, (list, tuple)):
            texts = [item for item in value if isinstance(item, str)]
        for text in texts:
            result = detect_prompt_injection(text)
            if result.is_suspicious:
                violations.append((name, f"Contains disallowed patterns: {result.matched_text}"))
                break

    return violations


__all__ = [
    "MAX_INPUT_SIZE",
    "MAX_ARRAY_LENGTH",
    "MAX_STRING_LENGTH",
    "INJECTION_PATTERNS",
    "InjectionDetectionResult",
    "SizeValidationResult",
    "detect_prompt_injection",
    "is_prompt_injection",
    "validate_size",
    "screen_inputs",
]
