"""Prometheus metrics."""

from prometheus_client import Counter, Histogram

runs_started = Counter(
    "calculation_runs_started_total",
    "Total number of calculation runs started",
)

runs_succeeded = Counter(
    "calculation_runs_succeeded_total",
    "Total number of calculation runs succeeded",
    ["output_type"],
)

runs_failed = Counter(
    "calculation_runs_failed_total",
    "Total number of calculation runs failed",
    ["error_kind"],
)

run_duration_seconds = Histogram(
    "calculation_run_duration_seconds",
    "Duration of calculation runs in seconds",
    buckets=[0.01, 0.05, 0.1, 0.5, 1, 5, 10, 30],
)

points_fetched = Histogram(
    "calculation_points_fetched",
    "Observations fetched per indicator series",
    buckets=[10, 100, 1000, 10000, 100000],
)
