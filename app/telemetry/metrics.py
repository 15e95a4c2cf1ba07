"""Prometheus metrics definitions and helpers."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests processed",
    ("method", "route", "status"),
)

REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ("method", "route"),
    buckets=(
        0.005,
        0.01,
        0.025,
        0.05,
        0.1,
        0.25,
        0.5,
        1.0,
        2.5,
        5.0,
        10.0,
        30.0,
        60.0,
        120.0,
    ),
)

ERROR_COUNTER = Counter(
    "app_internal_errors_total",
    "Number of requests ending in internal server error responses",
    ("method", "route"),
)

ANALYSIS_COUNT = Counter(
    "analysis_requests_total",
    "Media analyses by recording kind and final outcome",
    ("kind", "outcome"),
)

ANALYSIS_STAGE_LATENCY = Histogram(
    "analysis_stage_duration_seconds",
    "Time spent in each analysis pipeline stage",
    ("kind", "stage"),
    buckets=(0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0, 900.0),
)

CLEANUP_FAILURES = Counter(
    "analysis_cleanup_failures_total",
    "Transient media objects that could not be deleted",
)


def observe_request(
    method: str,
    route: str,
    status_code: int,
    duration_seconds: float,
) -> None:
    """Record metrics for a completed HTTP request."""

    safe_route = route or "unknown"
    safe_method = method or "UNKNOWN"
    observed_duration = duration_seconds if duration_seconds >= 0 else 0

    REQUEST_COUNT.labels(
        method=safe_method,
        route=safe_route,
        status=str(status_code),
    ).inc()
    REQUEST_LATENCY.labels(
        method=safe_method,
        route=safe_route,
    ).observe(observed_duration)

    if status_code >= 500:
        ERROR_COUNTER.labels(
            method=safe_method,
            route=safe_route,
        ).inc()


def observe_stage(kind: str, stage: str, duration_seconds: float) -> None:
    """Record how long one analysis stage took."""

    ANALYSIS_STAGE_LATENCY.labels(kind=kind, stage=stage).observe(max(duration_seconds, 0.0))


def increment_analysis(kind: str, outcome: str) -> None:
    """Count a finished analysis (``succeeded`` or the failing error name)."""

    ANALYSIS_COUNT.labels(kind=kind, outcome=outcome).inc()


def increment_cleanup_failure() -> None:
    CLEANUP_FAILURES.inc()
