"""Prometheus metrics collection and export.

This module provides Prometheus instrumentation for VibeDev, covering
engagement writes, store operations, the action boundary, caches and
detached background tasks.

Metric Types:
    Counters (always increase):
        - views_recorded_total: View record attempts by kind and outcome
        - like_toggles_total: Like toggles by kind and resulting state
        - store_operations_total: Gateway operations by type, table, status
        - actions_total: Completed server actions
        - action_errors_total: Failed server actions by error kind
        - cache_events_total: Reference cache hits, misses, invalidations
        - detached_task_failures_total: Background tasks that raised

    Gauges (can go up or down):
        - detached_tasks_in_flight: Background tasks not yet finished

    Histograms (track distributions):
        - store_operation_duration_seconds: Gateway operation latency
        - batch_size: Number of ids per batched engagement lookup

Usage:
    ```python
    from vibedev.metrics import views_recorded_total

    views_recorded_total.labels(kind="project", outcome="recorded").inc()
    ```

References:
    - Prometheus Python Client: https://github.com/prometheus/client_python
    - Best Practices: https://prometheus.io/docs/practices/instrumentation/
"""

from __future__ import annotations

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

# Custom registry for explicit metric control
# This avoids default process/platform metrics unless explicitly added
registry = CollectorRegistry()

# Latency bucket definitions (in seconds)
# Local SQLite calls are sub-millisecond; remote stores reach seconds
DEFAULT_LATENCY_BUCKETS = (
    0.001,  # 1ms
    0.005,  # 5ms
    0.01,   # 10ms
    0.05,   # 50ms
    0.1,    # 100ms
    0.25,   # 250ms
    0.5,    # 500ms
    1.0,    # 1s
    2.5,    # 2.5s
)


# ========== COUNTER METRICS (always increase) ==========

views_recorded_total = Counter(
    "views_recorded_total",
    "Total number of view record attempts",
    labelnames=["kind", "outcome"],
    registry=registry,
)
"""Counter for view record attempts.

Labels:
    kind: Entity kind ("project" or "post")
    outcome: "recorded", "duplicate" (same session and day) or "error"

Example:
    ```python
    views_recorded_total.labels(kind="project", outcome="duplicate").inc()
    ```
"""

like_toggles_total = Counter(
    "like_toggles_total",
    "Total number of like toggles",
    labelnames=["kind", "state"],
    registry=registry,
)
"""Counter for like toggles.

Labels:
    kind: Entity kind ("project" or "post")
    state: Resulting state ("liked" or "unliked")
"""

store_operations_total = Counter(
    "store_operations_total",
    "Total number of data store operations",
    labelnames=["operation", "table", "status"],
    registry=registry,
)
"""Counter for gateway operations by type, table, and status.

Labels:
    operation: Operation type (e.g., "insert", "select", "count", "delete")
    table: Table name (e.g., "likes", "views", "projects")
    status: "success", "unique_violation" or "error"
"""

actions_total = Counter(
    "actions_total",
    "Total number of server actions completed",
    labelnames=["action"],
    registry=registry,
)

action_errors_total = Counter(
    "action_errors_total",
    "Total number of server actions that returned an error",
    labelnames=["action", "kind"],
    registry=registry,
)
"""Counter for actions translated into an error result.

Labels:
    action: Action name (e.g., "toggle_like", "delete_project")
    kind: Error kind (exception class name, "store" or "unexpected")
"""

cache_events_total = Counter(
    "cache_events_total",
    "Total number of reference cache events",
    labelnames=["cache", "event"],
    registry=registry,
)
"""Counter for reference cache activity.

Labels:
    cache: Cache name (e.g., "categories")
    event: "hit", "miss" or "invalidate"
"""

detached_task_failures_total = Counter(
    "detached_task_failures_total",
    "Total number of detached background tasks that raised",
    labelnames=["task"],
    registry=registry,
)


# ========== GAUGE METRICS (can go up or down) ==========

detached_tasks_in_flight = Gauge(
    "detached_tasks_in_flight",
    "Current number of detached background tasks",
    registry=registry,
)


# ========== HISTOGRAM METRICS (track distributions) ==========

store_operation_duration_seconds = Histogram(
    "store_operation_duration_seconds",
    "Duration of data store operations in seconds",
    labelnames=["operation", "table"],
    buckets=DEFAULT_LATENCY_BUCKETS,
    registry=registry,
)
"""Histogram for tracking gateway latency.

Labels:
    operation: Operation type (e.g., "insert", "select", "count")
    table: Table name (e.g., "likes", "views")

Example:
    ```python
    with store_operation_duration_seconds.labels("count", "likes").time():
        ...
    ```
"""

batch_size = Histogram(
    "batch_size",
    "Size of batches processed",
    labelnames=["operation"],
    buckets=(1, 5, 10, 25, 50, 100, 250, 500, 1000),
    registry=registry,
)
"""Histogram for tracking batch operation sizes.

Labels:
    operation: Operation type (e.g., "batch_like_status")
"""


# ========== HELPER FUNCTIONS ==========

def generate_metrics_output() -> bytes:
    """Generate Prometheus metrics output in text format.

    Returns:
        Metrics output as bytes in Prometheus exposition format

    Note:
        This uses the custom registry, so only explicitly registered metrics are included.
    """
    return generate_latest(registry)


def sample_value(name: str, labels: dict[str, str] | None = None) -> float:
    """Read the current value of a sample from the registry.

    Args:
        name: Sample name (e.g., "views_recorded_total")
        labels: Label values identifying the sample

    Returns:
        Sample value, or 0.0 if the sample has not been recorded yet
    """
    value = registry.get_sample_value(name, labels or {})
    return value if value is not None else 0.0


# Export public API
__all__ = [
    # Registry
    "registry",
    # Counters
    "views_recorded_total",
    "like_toggles_total",
    "store_operations_total",
    "actions_total",
    "action_errors_total",
    "cache_events_total",
    "detached_task_failures_total",
    # Gauges
    "detached_tasks_in_flight",
    # Histograms
    "store_operation_duration_seconds",
    "batch_size",
    # Helpers
    "generate_metrics_output",
    "sample_value",
    # Bucket definitions
    "DEFAULT_LATENCY_BUCKETS",
]
