"""
Resilience layer: backoff, retries, circuit breaking and result envelopes.

Composition (per facade operation):

    breaker.fire(lambda: engine.execute(call, name))  ->  ResultEnvelope

Main Components:
    - compute_delay: Deterministic exponential backoff
    - RetryEngine: Bounded retries around any coroutine function
    - CircuitBreaker: Per-operation closed/open/half-open gate
    - ResilientFacade: Breaker + engine + envelope conversion
    - ResilientVoiceClient / ResilientTranscriptionClient: Provider facades

Usage:
    >>> from callscribe.resilience import ResilientVoiceClient, ResilienceConfig
    >>> voice = ResilientVoiceClient(plivo_manager, ResilienceConfig.for_voice(settings))
    >>> envelope = await voice.initiate_recorded_call(request)
    >>> envelope.success, envelope.retry_count, envelope.circuit_breaker_state
"""

from callscribe.resilience.backoff import compute_delay, delay_schedule
from callscribe.resilience.breaker import CircuitBreaker
from callscribe.resilience.engine import RetryEngine
from callscribe.resilience.exceptions import (
    CircuitOpenError,
    CircuitShutdownError,
    CircuitTimeoutError,
    ResilienceError,
    RetryExhausted,
)
from callscribe.resilience.facade import ResilientFacade
from callscribe.resilience.models import (
    BreakerStatus,
    CircuitBreakerState,
    ResilienceConfig,
    ResultEnvelope,
    RetryPolicy,
    WindowStats,
)
from callscribe.resilience.transcription import ResilientTranscriptionClient
from callscribe.resilience.voice import ResilientVoiceClient, is_retryable_voice_error

__all__ = [
    "compute_delay",
    "delay_schedule",
    "RetryEngine",
    "RetryPolicy",
    "CircuitBreaker",
    "CircuitBreakerState",
    "BreakerStatus",
    "WindowStats",
    "ResilienceConfig",
    "ResultEnvelope",
    "ResilientFacade",
    "ResilientVoiceClient",
    "ResilientTranscriptionClient",
    "is_retryable_voice_error",
    "ResilienceError",
    "CircuitOpenError",
    "CircuitTimeoutError",
    "CircuitShutdownError",
    "RetryExhausted",
]
