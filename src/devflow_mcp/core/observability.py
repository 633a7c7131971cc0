"""
Observability utilities for devflow-mcp.

Metrics and audit events are emitted as structured log records on dedicated
child loggers (``devflow_mcp.core.observability.metrics`` and ``.audit``), so
any log pipeline can pick them up without an exporter.

Tool handlers are instrumented with ``mcp_tool``:

    @mcp.tool(name="smart_begin")
    @mcp_tool(tool_name="smart_begin")
    def smart_begin(projectName: str) -> dict:
        ...

In practice ``core.naming.canonical_tool`` applies both decorators.
"""

import asyncio
import functools
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Optional, TypeVar, Union

from devflow_mcp.core.context import (
    generate_correlation_id,
    get_client_id,
    get_correlation_id,
    sync_request_context,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class MetricType(Enum):
    """Types of metrics that can be emitted."""

    COUNTER = "counter"
    GAUGE = "gauge"
    TIMER = "timer"


class AuditEventType(Enum):
    """Types of audit events."""

    TOOL_INVOCATION = "tool_invocation"
    SERVER_LIFECYCLE = "server_lifecycle"
    CONFIG_CHANGE = "config_change"


@dataclass
class Metric:
    """Structured metric data."""

    name: str
    value: Union[int, float]
    metric_type: MetricType
    labels: Dict[str, str] = field(default_factory=dict)
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "value": self.value,
            "type": self.metric_type.value,
            "labels": self.labels,
            "timestamp": self.timestamp,
        }


@dataclass
class AuditEvent:
    """Structured audit event."""

    event_type: AuditEventType
    details: Dict[str, Any] = field(default_factory=dict)
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    correlation_id: Optional[str] = None
    client_id: Optional[str] = None

    def __post_init__(self) -> None:
        """Auto-populate correlation_id and client_id from context if not set."""
        if self.correlation_id is None:
            self.correlation_id = get_correlation_id() or None
        if self.client_id is None:
            ctx_client = get_client_id()
            if ctx_client and ctx_client != "anonymous":
                self.client_id = ctx_client

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "event_type": self.event_type.value,
            "timestamp": self.timestamp,
            "details": self.details,
        }
        if self.correlation_id:
            result["correlation_id"] = self.correlation_id
        if self.client_id:
            result["client_id"] = self.client_id
        return result


class MetricsCollector:
    """
    Collects metrics and emits them to the structured logger.

    Emission can be disabled at runtime via ``enabled``; calls then become
    no-ops so instrumented code does not need to check configuration.
    """

    def __init__(self, prefix: str = "devflow_mcp"):
        self.prefix = prefix
        self.enabled = True
        self._logger = logging.getLogger(f"{__name__}.metrics")

    def emit(self, metric: Metric) -> None:
        if not self.enabled:
            return
        self._logger.info(
            "METRIC: %s.%s", self.prefix, metric.name, extra={"metric": metric.to_dict()}
        )

    def counter(self, name: str, value: int = 1, labels: Optional[Dict[str, str]] = None) -> None:
        """Emit a counter metric."""
        self.emit(Metric(name=name, value=value, metric_type=MetricType.COUNTER, labels=labels or {}))

    def gauge(
        self,
        name: str,
        value: Union[int, float],
        labels: Optional[Dict[str, str]] = None,
    ) -> None:
        """Emit a gauge metric."""
        self.emit(Metric(name=name, value=value, metric_type=MetricType.GAUGE, labels=labels or {}))

    def timer(self, name: str, duration_ms: float, labels: Optional[Dict[str, str]] = None) -> None:
        """Emit a timer metric (duration in milliseconds)."""
        self.emit(
            Metric(name=name, value=duration_ms, metric_type=MetricType.TIMER, labels=labels or {})
        )


_metrics = MetricsCollector()


def get_metrics() -> MetricsCollector:
    """Get the global metrics collector."""
    return _metrics


class AuditLogger:
    """
    Structured audit logging for tool invocations and server lifecycle.

    Audit logs are written to a separate logger for easy filtering.
    """

    def __init__(self):
        self.enabled = True
        self._logger = logging.getLogger(f"{__name__}.audit")

    def log(self, event: AuditEvent) -> None:
        if not self.enabled:
            return
        self._logger.info("AUDIT: %s", event.event_type.value, extra={"audit": event.to_dict()})

    def tool_invocation(
        self,
        tool_name: str,
        success: bool = True,
        duration_ms: Optional[float] = None,
        correlation_id: Optional[str] = None,
        **details: Any,
    ) -> None:
        """Log tool invocation."""
        self.log(
            AuditEvent(
                event_type=AuditEventType.TOOL_INVOCATION,
                correlation_id=correlation_id,
                details={
                    "tool": tool_name,
                    "success": success,
                    "duration_ms": duration_ms,
                    **details,
                },
            )
        )


_audit = AuditLogger()


def get_audit_logger() -> AuditLogger:
    """Get the global audit logger."""
    return _audit


def audit_log(event_type: str, **details: Any) -> None:
    """
    Convenience function for audit logging.

    Unknown event types are recorded as tool invocations with the original
    type preserved under ``original_event_type``.
    """
    try:
        event_enum = AuditEventType(event_type)
    except ValueError:
        event_enum = AuditEventType.TOOL_INVOCATION
        details["original_event_type"] = event_type

    _audit.log(AuditEvent(event_type=event_enum, details=details))


def configure_observability(*, metrics_enabled: bool = True, audit_enabled: bool = True) -> None:
    """Toggle the global metrics collector and audit logger."""
    _metrics.enabled = metrics_enabled
    _audit.enabled = audit_enabled
    logger.debug(
        "Observability configured: metrics=%s, audit=%s", metrics_enabled, audit_enabled
    )


def _record_invocation(
    tool_name: str,
    corr_id: str,
    success: bool,
    duration_ms: float,
    error_msg: Optional[str],
    emit_metrics: bool,
    audit: bool,
) -> None:
    if emit_metrics:
        labels = {"tool": tool_name, "status": "success" if success else "error"}
        _metrics.counter("tool.invocations", labels=labels)
        _metrics.timer("tool.latency", duration_ms, labels={"tool": tool_name})

    if audit:
        _audit.tool_invocation(
            tool_name=tool_name,
            success=success,
            duration_ms=round(duration_ms, 2),
            error=error_msg,
            correlation_id=corr_id,
        )


def mcp_tool(
    tool_name: Optional[str] = None, emit_metrics: bool = True, audit: bool = True
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Decorator for MCP tool handlers with observability.

    Automatically:
    - Establishes a correlation ID for the call (``tool_<hex>``)
    - Emits invocation count and latency metrics
    - Creates an audit log entry

    Args:
        tool_name: Override tool name (defaults to function name)
        emit_metrics: Whether to emit metrics
        audit: Whether to create audit log entries
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        name = tool_name or func.__name__

        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> T:
            existing_corr_id = get_correlation_id()
            corr_id = existing_corr_id or generate_correlation_id(prefix="tool")

            if not existing_corr_id:
                with sync_request_context(correlation_id=corr_id):
                    return await _async_tool_impl(corr_id, *args, **kwargs)
            return await _async_tool_impl(corr_id, *args, **kwargs)

        async def _async_tool_impl(_corr_id: str, *args: Any, **kwargs: Any) -> T:
            start = time.perf_counter()
            success = True
            error_msg = None
            try:
                return await func(*args, **kwargs)
            except Exception as e:
                success = False
                error_msg = str(e)
                raise
            finally:
                duration_ms = (time.perf_counter() - start) * 1000
                _record_invocation(name, _corr_id, success, duration_ms, error_msg, emit_metrics, audit)

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> T:
            existing_corr_id = get_correlation_id()
            corr_id = existing_corr_id or generate_correlation_id(prefix="tool")

            if not existing_corr_id:
                with sync_request_context(correlation_id=corr_id):
                    return _sync_tool_impl(corr_id, args, kwargs)
            return _sync_tool_impl(corr_id, args, kwargs)

        def _sync_tool_impl(_corr_id: str, _args: tuple, _kwargs: dict) -> T:
            """Run the wrapped tool.

            Parameters are passed positionally as a tuple/dict so they cannot
            collide with tool parameter names.
            """
            start = time.perf_counter()
            success = True
            error_msg = None
            try:
                return func(*_args, **_kwargs)
            except Exception as e:
                success = False
                error_msg = str(e)
                raise
            finally:
                duration_ms = (time.perf_counter() - start) * 1000
                _record_invocation(name, _corr_id, success, duration_ms, error_msg, emit_metrics, audit)

        if asyncio.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator
