"""Observability for the record index: structured logging, tracing, and metrics."""

from record_index.observability.context import bind_index, get_trace_context, set_trace_context, trace_context
from record_index.observability.logging import JsonFormatter, configure_logging
from record_index.observability.metrics import (
    INDEX_DOC_COUNT,
    INDEX_UPDATES,
    OPTIMIZE_COUNT,
    SEARCH_LATENCY,
    get_metrics,
    get_metrics_content_type,
    init_metrics,
    track_latency,
)
from record_index.observability.tracing import create_span, get_tracer, init_tracing


__all__ = [
    "INDEX_DOC_COUNT",
    "INDEX_UPDATES",
    "OPTIMIZE_COUNT",
    "SEARCH_LATENCY",
    "JsonFormatter",
    "bind_index",
    "configure_logging",
    "create_span",
    "get_metrics",
    "get_metrics_content_type",
    "get_trace_context",
    "get_tracer",
    "init_metrics",
    "init_tracing",
    "set_trace_context",
    "trace_context",
    "track_latency",
]
