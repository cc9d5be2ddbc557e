"""Prometheus metrics for monitoring projections, health scores, and stress tests"""

from prometheus_client import Counter, Histogram

# Projection metrics
projection_counter = Counter(
    "retirement_projection_total",
    "Total retirement projections run",
    ["outcome"],  # computed | not_computable
)

# Health score metrics
health_score_histogram = Histogram(
    "retirement_health_score",
    "Distribution of financial health scores",
    buckets=[10, 20, 30, 40, 50, 60, 70, 80, 90, 100],
)

health_status_counter = Counter(
    "retirement_health_status_total",
    "Health reports by status tier",
    ["status"],  # excellent | good | needsWork | critical
)

# Stress test metrics
stress_test_counter = Counter(
    "retirement_stress_test_total",
    "Stress tests run by scenario",
    ["scenario", "outcome"],  # outcome: computed | not_computable | unknown
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_projection(computable: bool) -> None:
    """Record projection outcome"""
    projection_counter.labels(outcome="computed" if computable else "not_computable").inc()


def record_health_report(total_score: float, status: str) -> None:
    """Record health score distribution and status tier"""
    health_score_histogram.observe(total_score)
    health_status_counter.labels(status=status).inc()


def record_stress_test(scenario_key: str, outcome: str) -> None:
    stress_test_counter.labels(scenario=scenario_key, outcome=outcome).inc()
