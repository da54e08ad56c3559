"""Minimal observability for logging and metrics.

Provides JSON logging with trace/tenant context and in-process metrics
without external dependencies.
"""
import uuid
from typing import Optional

from backend.core.logging import setup_logging_with_pii_redaction

from . import logging as logging_module
from . import metrics


def generate_trace_id() -> str:
    """Generate a new trace ID for request/CLI context."""
    return str(uuid.uuid4())


def set_trace_id(trace_id: Optional[str] = None) -> str:
    """Set or generate trace ID for current context."""
    if not trace_id:
        trace_id = generate_trace_id()
    logging_module.set_trace_id(trace_id)
    return trace_id


def set_tenant_id(tenant_id: Optional[str] = None) -> str:
    """Set tenant ID for current context (default 'unknown')."""
    tenant_id = tenant_id or "unknown"
    logging_module.set_tenant_id(tenant_id)
    return tenant_id


def init_observability(fresh_metrics: bool = False) -> None:
    """Initialize all observability components."""
    logging_module.init_logging()
    setup_logging_with_pii_redaction()
    if fresh_metrics:
        metrics.reset_metrics()


__all__ = [
    "logging_module",
    "metrics",
    "generate_trace_id",
    "set_trace_id",
    "set_tenant_id",
    "init_observability",
]
