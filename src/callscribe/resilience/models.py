"""
Resilience data models.

Defines the core types shared across the resilience package:
- CircuitBreakerState enum for the breaker state machine
- RetryPolicy and ResilienceConfig (immutable, validated)
- ResultEnvelope returned by every resilient facade operation
- WindowStats / BreakerStatus snapshots for monitoring
"""

from dataclasses import asdict, dataclass, fields, replace
from enum import Enum
from typing import TYPE_CHECKING, Any, Generic, Optional, TypeVar

from pydantic import BaseModel

from callscribe.resilience.exceptions import CircuitOpenError

if TYPE_CHECKING:
    from callscribe.config import Settings

T = TypeVar("T")


class CircuitBreakerState(str, Enum):
    """
    Circuit breaker states.

    State transitions:
        CLOSED → OPEN (error percentage over the rolling window >= threshold)
        OPEN → HALF_OPEN (after reset timeout)
        HALF_OPEN → CLOSED (trial call succeeded)
        HALF_OPEN → OPEN (trial call failed)
    """

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half-open"


@dataclass(frozen=True)
class RetryPolicy:
    """
    Bounded retry policy with exponential backoff.

    Attributes:
        max_retries: Retries after the first attempt (total attempts = max_retries + 1)
        initial_delay: Delay before the first retry (seconds)
        multiplier: Backoff growth factor
        max_delay: Cap on any single delay (seconds)
    """

    max_retries: int = 3
    initial_delay: float = 1.0
    multiplier: float = 2.0
    max_delay: float = 10.0

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.initial_delay < 0:
            raise ValueError("initial_delay must be >= 0")
        if self.multiplier < 1:
            raise ValueError("multiplier must be >= 1")
        if self.max_delay < self.initial_delay:
            raise ValueError("max_delay must be >= initial_delay")

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1


@dataclass(frozen=True)
class ResilienceConfig:
    """
    Per-facade resilience configuration.

    Only the fields below are recognized; ``with_overrides`` raises
    TypeError for anything else. Durations are in seconds.

    Attributes:
        timeout: Deadline for one fired operation (None or 0 disables)
        error_threshold_percentage: Error rate over the window that opens the breaker
        reset_timeout: Time spent open before allowing a trial call
        rolling_count_timeout: Length of the rolling statistics window
        rolling_count_buckets: Number of buckets the window is split into
        volume_threshold: Minimum samples in the window before the breaker may open
        max_retries: Retries after the first attempt
        retry_initial_delay: Delay before the first retry
        retry_multiplier: Backoff growth factor
        max_retry_delay: Cap on any single retry delay
    """

    timeout: Optional[float] = 30.0
    error_threshold_percentage: float = 50.0
    reset_timeout: float = 30.0
    rolling_count_timeout: float = 10.0
    rolling_count_buckets: int = 10
    volume_threshold: int = 0
    max_retries: int = 3
    retry_initial_delay: float = 1.0
    retry_multiplier: float = 2.0
    max_retry_delay: float = 10.0

    def __post_init__(self) -> None:
        if self.timeout is not None and self.timeout < 0:
            raise ValueError("timeout must be >= 0")
        if not 0 < self.error_threshold_percentage <= 100:
            raise ValueError("error_threshold_percentage must be in (0, 100]")
        if self.reset_timeout < 0:
            raise ValueError("reset_timeout must be >= 0")
        if self.rolling_count_timeout <= 0:
            raise ValueError("rolling_count_timeout must be > 0")
        if self.rolling_count_buckets < 1:
            raise ValueError("rolling_count_buckets must be >= 1")
        if self.volume_threshold < 0:
            raise ValueError("volume_threshold must be >= 0")
        # Validates the retry fields
        self.retry_policy()

    def retry_policy(self) -> RetryPolicy:
        """Build the retry policy described by this config."""
        return RetryPolicy(
            max_retries=self.max_retries,
            initial_delay=self.retry_initial_delay,
            multiplier=self.retry_multiplier,
            max_delay=self.max_retry_delay,
        )

    def with_overrides(self, **overrides: Any) -> "ResilienceConfig":
        """Return a copy with some options replaced (unknown keys raise TypeError)."""
        known = {f.name for f in fields(self)}
        unknown = set(overrides) - known
        if unknown:
            raise TypeError(f"Unknown resilience options: {', '.join(sorted(unknown))}")
        return replace(self, **overrides)

    @classmethod
    def _from_settings(cls, settings: "Settings", prefix: str) -> "ResilienceConfig":
        def get(name: str) -> Any:
            return getattr(settings, f"{prefix}_{name}")

        timeout = get("BREAKER_TIMEOUT")
        return cls(
            timeout=timeout or None,
            error_threshold_percentage=get("BREAKER_ERROR_THRESHOLD_PERCENTAGE"),
            reset_timeout=get("BREAKER_RESET_TIMEOUT"),
            rolling_count_timeout=get("BREAKER_ROLLING_COUNT_TIMEOUT"),
            rolling_count_buckets=get("BREAKER_ROLLING_COUNT_BUCKETS"),
            volume_threshold=get("BREAKER_VOLUME_THRESHOLD"),
            max_retries=get("RETRY_MAX_RETRIES"),
            retry_initial_delay=get("RETRY_INITIAL_DELAY"),
            retry_multiplier=get("RETRY_MULTIPLIER"),
            max_retry_delay=get("RETRY_MAX_DELAY"),
        )

    @classmethod
    def for_voice(cls, settings: "Settings") -> "ResilienceConfig":
        """Resilience settings for the voice API (short timeouts)."""
        return cls._from_settings(settings, "VOICE")

    @classmethod
    def for_transcription(cls, settings: "Settings") -> "ResilienceConfig":
        """Resilience settings for the transcription API (long timeouts)."""
        return cls._from_settings(settings, "TRANSCRIPTION")


@dataclass(frozen=True)
class ResultEnvelope(Generic[T]):
    """
    Uniform outcome of a resilient facade operation.

    Failed envelopes carry an error and no data. Successful envelopes carry
    no error; ``data`` may be None when the operation legitimately returns
    nothing.

    Attributes:
        success: Whether the operation produced a result
        data: Result on success (possibly None)
        error: Failure cause (never raised to the caller)
        retry_count: Attempts made (1 = succeeded first try, 0 = rejected by the breaker)
        circuit_breaker_state: Breaker state when the envelope was built
            (None for operations without a breaker)
    """

    success: bool
    data: Optional[T] = None
    error: Optional[Exception] = None
    retry_count: Optional[int] = None
    circuit_breaker_state: Optional[str] = None

    def __post_init__(self) -> None:
        if self.success:
            if self.error is not None:
                raise ValueError("successful envelope cannot carry an error")
        elif self.error is None or self.data is not None:
            raise ValueError("failed envelope requires an error and no data")

    @classmethod
    def ok(
        cls,
        data: T,
        retry_count: Optional[int] = None,
        circuit_breaker_state: Optional[str] = None,
    ) -> "ResultEnvelope[T]":
        return cls(
            success=True,
            data=data,
            retry_count=retry_count,
            circuit_breaker_state=circuit_breaker_state,
        )

    @classmethod
    def fail(
        cls,
        error: Exception,
        retry_count: Optional[int] = None,
        circuit_breaker_state: Optional[str] = None,
    ) -> "ResultEnvelope[T]":
        return cls(
            success=False,
            error=error,
            retry_count=retry_count,
            circuit_breaker_state=circuit_breaker_state,
        )

    @property
    def circuit_open(self) -> bool:
        """True when the breaker refused the call instead of the upstream failing."""
        return isinstance(self.error, CircuitOpenError)

    @property
    def error_message(self) -> Optional[str]:
        if self.error is None:
            return None
        return str(self.error) or type(self.error).__name__

    def to_dict(self) -> dict[str, Any]:
        """Render for JSON responses (the error becomes its message)."""
        data = self.data.model_dump(mode="json") if isinstance(self.data, BaseModel) else self.data
        return {
            "success": self.success,
            "data": data,
            "error": self.error_message,
            "retry_count": self.retry_count,
            "circuit_breaker_state": self.circuit_breaker_state,
        }


@dataclass(frozen=True)
class WindowStats:
    """Totals over the breaker's rolling window."""

    fires: int = 0
    successes: int = 0
    failures: int = 0
    timeouts: int = 0
    rejects: int = 0

    @property
    def samples(self) -> int:
        return self.successes + self.failures + self.timeouts

    @property
    def error_percentage(self) -> float:
        if self.samples == 0:
            return 0.0
        return (self.failures + self.timeouts) / self.samples * 100


@dataclass(frozen=True)
class BreakerStatus:
    """Point-in-time breaker snapshot for monitoring endpoints."""

    name: str
    state: CircuitBreakerState
    stats: WindowStats
    error_threshold_percentage: float
    reset_timeout: float
    timeout: Optional[float]

    @property
    def opened(self) -> bool:
        return self.state is CircuitBreakerState.OPEN

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "state": self.state.value,
            "opened": self.opened,
            "error_percentage": round(self.stats.error_percentage, 2),
            "stats": asdict(self.stats),
            "error_threshold_percentage": self.error_threshold_percentage,
            "reset_timeout": self.reset_timeout,
            "timeout": self.timeout,
        }
