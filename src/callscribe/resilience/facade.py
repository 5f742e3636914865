"""
Resilient facade base class.

Composes a circuit breaker around the retry engine around one delegated
provider call, and reports every outcome as a ResultEnvelope:

    breaker.fire(lambda: engine.execute(counted(call), name))

The breaker sees the whole retried call as one sample, so a call that
succeeds on its third attempt counts as one success. Each operation kind
owns its own breaker; breakers are never shared between kinds.
"""

import asyncio
import time
from typing import Awaitable, Callable, Optional, TypeVar

import structlog

from callscribe.monitoring.metrics import resilient_calls_total
from callscribe.resilience.breaker import CircuitBreaker
from callscribe.resilience.engine import RetryEngine, RetryPredicate, Sleeper
from callscribe.resilience.exceptions import CircuitOpenError
from callscribe.resilience.models import (
    BreakerStatus,
    CircuitBreakerState,
    ResilienceConfig,
    ResultEnvelope,
)

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class ResilientFacade:
    """
    Shared machinery for the voice and transcription facades.

    Subclasses create their breakers in ``__init__`` via ``_create_breaker``
    and implement one public coroutine per capability on top of ``_invoke``.

    Attributes:
        name: Facade name used in logs and metrics (e.g. "voice")
        config: Immutable resilience configuration
    """

    def __init__(
        self,
        name: str,
        config: ResilienceConfig,
        *,
        sleep: Sleeper = asyncio.sleep,
        is_retryable: Optional[RetryPredicate] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self.config = config
        self._clock = clock
        self._engine = RetryEngine(
            config.retry_policy(),
            sleep=sleep,
            is_retryable=is_retryable,
        )
        self._breakers: dict[str, CircuitBreaker] = {}

    def _create_breaker(self, operation: str) -> CircuitBreaker:
        """Create and register the breaker guarding ``operation``."""
        if operation in self._breakers:
            raise ValueError(f"Breaker '{operation}' already exists on {self.name} facade")

        breaker = CircuitBreaker(
            operation,
            timeout=self.config.timeout,
            error_threshold_percentage=self.config.error_threshold_percentage,
            reset_timeout=self.config.reset_timeout,
            rolling_count_timeout=self.config.rolling_count_timeout,
            rolling_count_buckets=self.config.rolling_count_buckets,
            volume_threshold=self.config.volume_threshold,
            clock=self._clock,
            on_state_change=self._log_transition,
        )
        self._breakers[operation] = breaker
        return breaker

    def _log_transition(
        self, breaker: str, old: CircuitBreakerState, new: CircuitBreakerState
    ) -> None:
        log = logger.warning if new is CircuitBreakerState.OPEN else logger.info
        log(
            f"Circuit breaker {new.value}",
            facade=self.name,
            breaker=breaker,
            from_state=old.value,
            to_state=new.value,
        )

    def breaker(self, operation: str) -> CircuitBreaker:
        return self._breakers[operation]

    @property
    def breakers(self) -> dict[str, CircuitBreaker]:
        return dict(self._breakers)

    async def _invoke(
        self,
        breaker_name: str,
        operation_name: str,
        call: Callable[[], Awaitable[T]],
    ) -> ResultEnvelope[T]:
        """
        Run ``call`` through the named breaker and the retry engine.

        Args:
            breaker_name: Breaker guarding this capability
            operation_name: Name used by the retry engine in logs and errors
            call: Zero-argument coroutine function performing one attempt

        Returns:
            ResultEnvelope; never raises (cancellation aside)
        """
        breaker = self._breakers[breaker_name]
        attempts = 0

        async def counted() -> T:
            nonlocal attempts
            attempts += 1
            return await call()

        try:
            data = await breaker.fire(lambda: self._engine.execute(counted, operation_name))
        except Exception as e:
            result = "circuit_open" if isinstance(e, CircuitOpenError) else "failure"
            resilient_calls_total.labels(
                facade=self.name, operation=operation_name, result=result
            ).inc()
            logger.warning(
                "Resilient call failed",
                facade=self.name,
                operation=operation_name,
                attempts=attempts,
                error_type=type(e).__name__,
                error=str(e),
            )
            return ResultEnvelope.fail(
                e,
                retry_count=attempts,
                circuit_breaker_state=breaker.state.value,
            )

        resilient_calls_total.labels(
            facade=self.name, operation=operation_name, result="success"
        ).inc()
        return ResultEnvelope.ok(
            data,
            retry_count=attempts,
            circuit_breaker_state=breaker.state.value,
        )

    async def _invoke_without_breaker(
        self,
        operation_name: str,
        call: Callable[[], Awaitable[T]],
    ) -> ResultEnvelope[T]:
        """Retry-only variant for operations that are not breaker-gated."""
        attempts = 0

        async def counted() -> T:
            nonlocal attempts
            attempts += 1
            return await call()

        try:
            data = await self._engine.execute(counted, operation_name)
        except Exception as e:
            resilient_calls_total.labels(
                facade=self.name, operation=operation_name, result="failure"
            ).inc()
            logger.warning(
                "Resilient call failed",
                facade=self.name,
                operation=operation_name,
                attempts=attempts,
                error_type=type(e).__name__,
                error=str(e),
            )
            return ResultEnvelope.fail(e, retry_count=attempts)

        resilient_calls_total.labels(
            facade=self.name, operation=operation_name, result="success"
        ).inc()
        return ResultEnvelope.ok(data, retry_count=attempts)

    # === Monitoring & lifecycle ===

    def get_circuit_breaker_stats(self) -> dict[str, BreakerStatus]:
        return {name: breaker.status() for name, breaker in self._breakers.items()}

    def reset_circuit_breakers(self) -> None:
        for breaker in self._breakers.values():
            breaker.reset()
        logger.info("All circuit breakers reset", facade=self.name)

    def shutdown(self) -> None:
        """Release breaker timers. Further calls report CircuitShutdownError envelopes."""
        for breaker in self._breakers.values():
            breaker.shutdown()
        logger.info("Resilient facade shut down", facade=self.name)
