"""In-process metrics counters and histograms."""

import time
from collections import defaultdict
from typing import Any

from backend.core.config import settings

# Global metrics storage
_metrics = defaultdict(lambda: {"count": 0, "sum": 0.0, "values": [], "buckets": defaultdict(int)})


def _key(name: str, labels: dict[str, str] | None) -> str:
    if not labels:
        return name
    return name + "{" + ",".join(f"{k}={v}" for k, v in sorted(labels.items())) + "}"


def increment_counter(name: str, labels: dict[str, str] | None = None, value: float = 1.0) -> None:
    """Increment a counter metric."""
    if not settings.enable_metrics:
        return

    _metrics[_key(name, labels)]["count"] += value


def record_histogram(name: str, value: float, labels: dict[str, str] | None = None) -> None:
    """Record a histogram measurement."""
    if not settings.enable_metrics:
        return

    metrics = _metrics[_key(name, labels)]
    metrics["count"] += 1
    metrics["sum"] += value
    metrics["values"].append(value)

    if value < 0.1:
        metrics["buckets"]["<0.1"] += 1
    elif value < 1:
        metrics["buckets"]["0.1-1.0"] += 1
    elif value < 10:
        metrics["buckets"]["1.0-10.0"] += 1
    elif value < 100:
        metrics["buckets"]["10.0-100.0"] += 1
    else:
        metrics["buckets"][">=100.0"] += 1


def observe_duration(start_time: float, name: str, labels: dict[str, str] | None = None) -> None:
    """Observe a duration measurement since ``start_time`` (perf_counter seconds)."""
    duration_ms = (time.perf_counter() - start_time) * 1000
    record_histogram(name, duration_ms, labels)


def get_metrics() -> dict[str, Any]:
    """Get current metrics snapshot."""
    if not settings.enable_metrics:
        return {"note": "metrics disabled"}

    result = {}
    for key, data in _metrics.items():
        metric_result = {"count": data["count"], "sum": data["sum"]}

        if data["values"]:
            values = data["values"]
            metric_result.update(
                {
                    "min": min(values),
                    "max": max(values),
                    "avg": data["sum"] / len(values),
                    "buckets": dict(data["buckets"]),
                }
            )

        result[key] = metric_result

    return result


def reset_metrics() -> None:
    """Reset all metrics (useful for testing)."""
    _metrics.clear()


# Case lifecycle metrics
def increment_case_transitions(from_status: str, to_status: str) -> None:
    increment_counter("case_transitions_total", labels={"from": from_status, "to": to_status})


def increment_transition_rejected(code: str) -> None:
    """Count a rejected transition by error code."""
    increment_counter("case_transition_rejected_total", labels={"code": code})


def increment_debt_acknowledged() -> None:
    increment_counter("debt_acknowledged_total")


# Inquiry metrics
def increment_inquiries_resolved() -> None:
    increment_counter("inquiries_resolved_total")


def increment_inquiry_rejected(code: str) -> None:
    increment_counter("inquiry_resolve_rejected_total", labels={"code": code})


# Ledger metrics
def record_accrual_duration(duration_ms: float) -> None:
    record_histogram("ledger_accrual_duration_ms", duration_ms)


# Persistence metrics
def increment_concurrency_conflicts() -> None:
    increment_counter("case_concurrency_conflicts_total")
