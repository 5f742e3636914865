"""
Retry engine with exponential backoff.

Wraps an arbitrary zero-argument coroutine function with bounded retries.
The engine is operation-agnostic: it knows nothing about the providers
it is retrying, only the policy and an optional retryability predicate.

Retry Policy:
    - Up to ``max_retries + 1`` attempts in total
    - Sleeps ``compute_delay(i, ...)`` between attempt i and i + 1
    - Every Exception is retryable unless ``is_retryable`` says otherwise
    - Exhaustion raises RetryExhausted chained from the last error

Usage:
    engine = RetryEngine(RetryPolicy(max_retries=3, initial_delay=1.0))
    result = await engine.execute(lambda: client.get_call_details(uuid), "get_call_details")
"""

import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

import structlog

from callscribe.monitoring.metrics import retry_attempts_total
from callscribe.resilience.backoff import compute_delay, delay_schedule
from callscribe.resilience.exceptions import RetryExhausted
from callscribe.resilience.models import RetryPolicy

logger = structlog.get_logger(__name__)

T = TypeVar("T")

Operation = Callable[[], Awaitable[T]]
RetryPredicate = Callable[[Exception], bool]
Sleeper = Callable[[float], Awaitable[None]]


class RetryEngine:
    """
    Bounded retry executor.

    Attributes:
        policy: Retry policy (attempt count and backoff parameters)
        is_retryable: Optional predicate; returning False stops retrying
    """

    def __init__(
        self,
        policy: RetryPolicy,
        *,
        sleep: Sleeper = asyncio.sleep,
        is_retryable: Optional[RetryPredicate] = None,
    ):
        """
        Initialize retry engine.

        Args:
            policy: Retry policy
            sleep: Coroutine used to wait between attempts (injectable for tests)
            is_retryable: Predicate classifying errors; None retries everything
        """
        self.policy = policy
        self.is_retryable = is_retryable
        self._sleep = sleep

        logger.debug(
            "RetryEngine initialized",
            max_retries=policy.max_retries,
            delays=delay_schedule(
                policy.max_retries,
                policy.initial_delay,
                policy.multiplier,
                policy.max_delay,
            ),
        )

    def delay_for(self, attempt_index: int) -> float:
        """Delay before retry number ``attempt_index`` (zero-based)."""
        return compute_delay(
            attempt_index,
            self.policy.initial_delay,
            self.policy.multiplier,
            self.policy.max_delay,
        )

    async def execute(self, operation: Operation[T], name: str) -> T:
        """
        Run ``operation`` until it succeeds or the policy is exhausted.

        Args:
            operation: Zero-argument coroutine function to attempt
            name: Operation name used in logs, metrics and the final error

        Returns:
            Whatever ``operation`` resolves to

        Raises:
            RetryExhausted: Every attempt failed, or an error was classified
                terminal. ``__cause__`` is the last error.
        """
        max_attempts = self.policy.max_attempts
        last_error: Optional[Exception] = None

        for attempt in range(1, max_attempts + 1):
            try:
                result = await operation()
            except Exception as e:
                last_error = e

                if self.is_retryable is not None and not self.is_retryable(e):
                    retry_attempts_total.labels(operation=name, outcome="terminal").inc()
                    logger.warning(
                        "Non-retryable error, giving up",
                        operation=name,
                        attempt=attempt,
                        error_type=type(e).__name__,
                        error=str(e),
                    )
                    raise RetryExhausted(name, attempt, e) from e

                if attempt == max_attempts:
                    break

                retry_attempts_total.labels(operation=name, outcome="failure").inc()
                delay = self.delay_for(attempt - 1)
                logger.warning(
                    "Attempt failed, retrying",
                    operation=name,
                    attempt=attempt,
                    max_attempts=max_attempts,
                    delay_seconds=delay,
                    error_type=type(e).__name__,
                    error=str(e),
                )
                await self._sleep(delay)
                continue

            retry_attempts_total.labels(operation=name, outcome="success").inc()
            if attempt > 1:
                logger.info("Operation succeeded after retry", operation=name, attempt=attempt)
            return result

        # Loop only falls through after the final attempt failed
        assert last_error is not None
        retry_attempts_total.labels(operation=name, outcome="exhausted").inc()
        logger.error(
            "All retry attempts exhausted",
            operation=name,
            attempts=max_attempts,
            error_type=type(last_error).__name__,
            error=str(last_error),
        )
        raise RetryExhausted(name, max_attempts, last_error) from last_error
