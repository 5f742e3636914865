"""
Resilience layer exceptions.

These exceptions let callers tell apart the ways a resilient call can end
without a result:
- the circuit breaker refused to attempt the call (CircuitOpenError)
- the fired operation exceeded the breaker timeout (CircuitTimeoutError)
- the breaker was shut down (CircuitShutdownError)
- every retry attempt failed (RetryExhausted)
"""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from callscribe.resilience.models import CircuitBreakerState


class ResilienceError(Exception):
    """
    Base exception for all resilience layer errors.

    Mirrors ProviderError: a human-readable message plus a details dict
    suitable for structured logging.
    """

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class CircuitOpenError(ResilienceError):
    """
    Raised when the breaker rejects a call without invoking the operation.

    Attributes:
        breaker_name: Operation kind the breaker guards
        state: Breaker state at rejection time (open or half-open)
        retry_after: Seconds until the breaker allows a trial call
    """

    def __init__(
        self,
        breaker_name: str,
        state: "CircuitBreakerState",
        retry_after: Optional[float] = None,
    ) -> None:
        self.breaker_name = breaker_name
        self.state = state
        self.retry_after = retry_after
        super().__init__(
            f"Circuit breaker '{breaker_name}' is {state.value}; request rejected",
            details={
                "breaker": breaker_name,
                "state": state.value,
                "retry_after": retry_after,
            },
        )


class CircuitTimeoutError(ResilienceError):
    """Raised when a fired operation exceeds the breaker timeout."""

    def __init__(self, breaker_name: str, timeout: float) -> None:
        self.breaker_name = breaker_name
        self.timeout = timeout
        super().__init__(
            f"Circuit breaker '{breaker_name}' timed out after {timeout}s",
            details={"breaker": breaker_name, "timeout": timeout},
        )


class CircuitShutdownError(ResilienceError):
    """Raised when firing a breaker that has been shut down."""

    def __init__(self, breaker_name: str) -> None:
        self.breaker_name = breaker_name
        super().__init__(
            f"Circuit breaker '{breaker_name}' has been shut down",
            details={"breaker": breaker_name},
        )


class RetryExhausted(ResilienceError):
    """
    Raised when an operation fails on every attempt.

    Also raised when the retry engine's predicate marks an error terminal,
    in which case ``attempts`` is lower than the policy allows.

    Attributes:
        operation: Name of the operation that failed
        attempts: Number of attempts made
        last_error: Final error observed
    """

    def __init__(self, operation: str, attempts: int, last_error: Exception) -> None:
        self.operation = operation
        self.attempts = attempts
        self.last_error = last_error

        super().__init__(
            f"{operation} failed after {attempts} attempt{'s' if attempts != 1 else ''}: "
            f"{last_error}",
            details={
                "operation": operation,
                "attempts": attempts,
                "last_error_type": type(last_error).__name__,
            },
        )
