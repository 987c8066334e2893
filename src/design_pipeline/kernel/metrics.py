"""
Prometheus metrics for the design pipeline.

Counters live in the default registry; exposing them over HTTP is left to the
host process.
"""

import time
from collections.abc import Callable
from functools import wraps
from typing import ParamSpec, TypeVar

from prometheus_client import Counter, Histogram

# ============================================================================
# Event Store Metrics
# ============================================================================

design_events_appended_total = Counter(
    "design_pipeline_events_appended_total",
    "Total number of design events appended to the event log",
    ["event_type"],
)

duplicate_bid_decisions_total = Counter(
    "design_pipeline_duplicate_bid_decisions_total",
    "Accept/reject attempts refused because the bid was already decided",
    ["event_type"],
)

# ============================================================================
# Step Metrics
# ============================================================================

step_transitions_total = Counter(
    "design_pipeline_step_transitions_total",
    "Approval step state transitions",
    ["step_type", "from_state", "to_state"],
)

# ============================================================================
# Operation Metrics
# ============================================================================

operation_duration_seconds = Histogram(
    "design_pipeline_operation_duration_seconds",
    "Duration of workflow operations in seconds",
    ["operation"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)

operations_total = Counter(
    "design_pipeline_operations_total",
    "Total number of workflow operations",
    ["operation", "status"],  # status: success, failure
)

P = ParamSpec("P")
R = TypeVar("R")


def track_operation(operation: str) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """
    Decorator recording duration and outcome of a workflow operation.

    Args:
        operation: Operation label (e.g. "accept_bid")
    """

    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        @wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            start = time.perf_counter()
            status = "success"
            try:
                return func(*args, **kwargs)
            except Exception:
                status = "failure"
                raise
            finally:
                operation_duration_seconds.labels(operation=operation).observe(
                    time.perf_counter() - start
                )
                operations_total.labels(operation=operation, status=status).inc()

        return wrapper

    return decorator
