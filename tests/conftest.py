"""
Root pytest configuration and shared fixtures.
"""

import json
import random
from typing import Any, Dict, Union

import pytest
from mcp.types import TextContent

from devflow_mcp.core.observability import configure_observability

# Response contract version from responses.py
RESPONSE_CONTRACT_VERSION = "response-v2"


def extract_response_dict(result: Union[Dict[str, Any], TextContent]) -> Dict[str, Any]:
    """Extract dict from tool result, handling both dict and TextContent.

    Tools registered through canonical_tool return TextContent with minified
    JSON. This helper extracts the dict for test assertions.

    Raises:
        TypeError: If result is neither dict nor TextContent
        json.JSONDecodeError: If TextContent.text is not valid JSON
    """
    if isinstance(result, dict):
        return result
    if isinstance(result, TextContent):
        return json.loads(result.text)
    raise TypeError(
        f"Expected dict or TextContent, got {type(result).__name__}"
    )


@pytest.fixture
def seeded_rng() -> random.Random:
    """Deterministic RNG for simulated scores."""
    return random.Random(1234)


@pytest.fixture(autouse=True)
def _reset_observability():
    """Keep metric/audit switches from leaking between tests."""
    yield
    configure_observability(metrics_enabled=True, audit_enabled=True)
