"""Telemetry helpers and metrics."""

from .metrics import (
    ANALYSIS_COUNT,
    ANALYSIS_STAGE_LATENCY,
    CLEANUP_FAILURES,
    ERROR_COUNTER,
    REQUEST_COUNT,
    REQUEST_LATENCY,
    increment_analysis,
    increment_cleanup_failure,
    observe_request,
    observe_stage,
)

__all__ = [
    "ANALYSIS_COUNT",
    "ANALYSIS_STAGE_LATENCY",
    "CLEANUP_FAILURES",
    "ERROR_COUNTER",
    "REQUEST_COUNT",
    "REQUEST_LATENCY",
    "increment_analysis",
    "increment_cleanup_failure",
    "observe_request",
    "observe_stage",
]
