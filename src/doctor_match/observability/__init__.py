"""Observability module for OpenTelemetry-aligned tracing, metrics, and logging."""

from doctor_match.observability.context import get_trace_context, set_trace_context, trace_context
from doctor_match.observability.logging import JsonFormatter, configure_logging
from doctor_match.observability.metrics import (
    CACHE_EVENTS,
    INDEX_REBUILDS,
    INDEXED_DOCTORS,
    OPERATION_COUNT,
    OPERATION_LATENCY,
    configure_metrics_exporter,
    get_metrics,
    init_metrics,
    track_latency,
    track_operation,
)
from doctor_match.observability.tracing import (
    configure_trace_exporter,
    create_span,
    get_tracer,
    init_tracing,
)


__all__ = [
    "CACHE_EVENTS",
    "INDEXED_DOCTORS",
    "INDEX_REBUILDS",
    "OPERATION_COUNT",
    "OPERATION_LATENCY",
    "JsonFormatter",
    "configure_logging",
    "configure_metrics_exporter",
    "configure_trace_exporter",
    "create_span",
    "get_metrics",
    "get_trace_context",
    "get_tracer",
    "init_metrics",
    "init_tracing",
    "set_trace_context",
    "trace_context",
    "track_latency",
    "track_operation",
]
