"""Tests for metrics, audit logging and tool instrumentation."""

import logging

import pytest

from devflow_mcp.core.context import get_correlation_id, sync_request_context
from devflow_mcp.core.observability import (
    AuditEventType,
    audit_log,
    configure_observability,
    get_metrics,
    mcp_tool,
)


class _Capture(logging.Handler):
    def __init__(self):
        super().__init__()
        self.records = []

    def emit(self, record):
        self.records.append(record)


@pytest.fixture
def captured():
    """Attach a handler to the metrics and audit loggers."""
    handler = _Capture()
    loggers = [
        logging.getLogger("devflow_mcp.core.observability.metrics"),
        logging.getLogger("devflow_mcp.core.observability.audit"),
    ]
    levels = [lg.level for lg in loggers]
    for lg in loggers:
        lg.addHandler(handler)
        lg.setLevel(logging.INFO)
    yield handler
    for lg, level in zip(loggers, levels):
        lg.removeHandler(handler)
        lg.setLevel(level)


def test_counter_emits_record(captured):
    get_metrics().counter("demo.count", labels={"k": "v"})
    metric = captured.records[-1].metric
    assert metric["name"] == "demo.count"
    assert metric["type"] == "counter"
    assert metric["labels"] == {"k": "v"}


def test_disabled_metrics_are_silent(captured):
    configure_observability(metrics_enabled=False, audit_enabled=False)
    get_metrics().gauge("demo.gauge", 3)
    audit_log("tool_invocation", tool="x")
    assert captured.records == []


def test_unknown_audit_event_kept(captured):
    audit_log("something_else", tool="x")
    audit = captured.records[-1].audit
    assert audit["event_type"] == AuditEventType.TOOL_INVOCATION.value
    assert audit["details"]["original_event_type"] == "something_else"


def test_mcp_tool_sets_correlation_id(captured):
    seen = []

    @mcp_tool(tool_name="demo_tool")
    def demo():
        seen.append(get_correlation_id())
        return {"ok": True}

    assert demo() == {"ok": True}
    assert seen[0].startswith("tool_")
    assert get_correlation_id() == ""

    audits = [r.audit for r in captured.records if hasattr(r, "audit")]
    assert audits[-1]["details"]["tool"] == "demo_tool"
    assert audits[-1]["correlation_id"] == seen[0]


def test_mcp_tool_reuses_existing_correlation_id():
    @mcp_tool()
    def demo():
        return get_correlation_id()

    with sync_request_context(correlation_id="req_fixed"):
        assert demo() == "req_fixed"


def test_mcp_tool_records_failures(captured):
    @mcp_tool(tool_name="boom")
    def boom():
        raise RuntimeError("kaput")

    with pytest.raises(RuntimeError):
        boom()
    audits = [r.audit for r in captured.records if hasattr(r, "audit")]
    assert audits[-1]["details"]["success"] is False
    assert audits[-1]["details"]["error"] == "kaput"
