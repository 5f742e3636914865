"""Monitoring and metrics instrumentation for callscribe.

Exports custom Prometheus metrics for operational monitoring and alerting.
"""

from callscribe.monitoring.metrics import (
    circuit_breaker_rejections_total,
    circuit_breaker_state,
    circuit_breaker_transitions_total,
    resilient_calls_total,
    retry_attempts_total,
    transcription_latency_seconds,
    transcriptions_in_flight,
    transcriptions_total,
)

__all__ = [
    "circuit_breaker_transitions_total",
    "circuit_breaker_rejections_total",
    "circuit_breaker_state",
    "retry_attempts_total",
    "resilient_calls_total",
    "transcriptions_total",
    "transcriptions_in_flight",
    "transcription_latency_seconds",
]
