"""Prometheus metrics for workflow engine operations."""
from prometheus_client import Counter, Histogram

# Metrics
engine_operations_total = Counter(
    "taskmarket_engine_operations_total",
    "Total workflow engine operations",
    ["operation", "outcome"],
)

engine_errors_total = Counter(
    "taskmarket_engine_errors_total",
    "Total workflow engine failures",
    ["operation", "error_type"],
)

recurrence_sweep_duration_seconds = Histogram(
    "taskmarket_recurrence_sweep_duration_seconds",
    "Recurrence sweep duration in seconds",
)

recurrence_tasks_reset_total = Counter(
    "taskmarket_recurrence_tasks_reset_total",
    "Recurring tasks reset by the sweep",
)

mutation_conflicts_total = Counter(
    "taskmarket_mutation_conflicts_total",
    "Optimistic version conflicts detected while mutating tasks",
)
