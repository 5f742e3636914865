"""Custom Prometheus metrics for the call-and-transcribe pipeline.

These metrics are exposed at /metrics endpoint and should be scraped by Prometheus.
Alert rules should be configured for:
- circuit_breaker_transitions_total (any transition to "open")
- circuit_breaker_rejections_total (callers being fast-failed)
- retry_attempts_total (high failure rate indicates an unhealthy provider)
- transcriptions_total (failed transcriptions surface only on call records)
"""

from prometheus_client import Counter, Gauge, Histogram

# === Circuit Breaker Metrics ===

circuit_breaker_transitions_total = Counter(
    "circuit_breaker_transitions_total",
    "Circuit breaker state transitions by breaker",
    ["breaker", "from_state", "to_state"],
)
"""
Circuit breaker transitions.

Labels:
- breaker: make_call, get_call_details, transcribe
- from_state / to_state: closed, open, half-open

Alert thresholds:
- WARN: any to_state="open"
- CRITICAL: breaker stays open for more than 5 minutes
"""

circuit_breaker_rejections_total = Counter(
    "circuit_breaker_rejections_total",
    "Calls rejected without being attempted because the breaker was open",
    ["breaker", "state"],
)

circuit_breaker_state = Gauge(
    "circuit_breaker_state",
    "Current breaker state (0 = closed, 1 = half-open, 2 = open)",
    ["breaker"],
)

# === Retry Metrics ===

retry_attempts_total = Counter(
    "retry_attempts_total",
    "Retry engine attempts by operation and outcome",
    ["operation", "outcome"],
)
"""
Attempts made by the retry engine.

Labels:
- operation: Operation name passed to RetryEngine.execute
- outcome: success, failure (will retry), terminal (not retryable), exhausted

Alert thresholds:
- WARN: failure rate > 10% of attempts
- CRITICAL: any sustained "exhausted" rate
"""

# === Facade Metrics ===

resilient_calls_total = Counter(
    "resilient_calls_total",
    "Resilient facade calls by facade, operation and result",
    ["facade", "operation", "result"],
)
"""
Labels:
- facade: voice, transcription
- operation: initiate_recorded_call, make_call, transcribe_recording, ...
- result: success, failure, circuit_open
"""

# === Transcription Orchestration Metrics ===

transcriptions_total = Counter(
    "transcriptions_total",
    "Background transcriptions by final status",
    ["status"],
)
"""
Labels:
- status: completed, failed, deduplicated

Alert thresholds:
- WARN: failed rate > 5%
"""

transcriptions_in_flight = Gauge(
    "transcriptions_in_flight",
    "Background transcription tasks currently running",
)

transcription_latency_seconds = Histogram(
    "transcription_latency_seconds",
    "End-to-end background transcription latency in seconds",
    ["status"],
    buckets=[1.0, 2.0, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0],
)
"""
Buckets sized for recordings of a few seconds up to long calls.

Alert thresholds:
- WARN: p95 > 60s
- CRITICAL: p95 > 120s
"""
