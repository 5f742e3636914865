"""
Circuit breaker with a rolling statistics window.

One breaker guards one operation kind. It decides whether a fired
operation is attempted at all, and records the outcome of the whole
fired operation (retries included) as a single sample.

State machine:
    CLOSED    → OPEN       samples >= volume_threshold and error % >= threshold
    OPEN      → HALF_OPEN  reset_timeout elapsed (timer, or checked lazily on fire)
    HALF_OPEN → CLOSED     trial succeeded (window cleared)
    HALF_OPEN → OPEN       trial failed (reset timer restarted)

Only one trial runs while half-open; concurrent fires are rejected.
All state lives on the instance and is mutated from the event loop only,
so no locking is needed.
"""

import asyncio
import time
from collections import deque
from typing import Awaitable, Callable, Optional, TypeVar

import structlog

from callscribe.monitoring.metrics import (
    circuit_breaker_rejections_total,
    circuit_breaker_state,
    circuit_breaker_transitions_total,
)
from callscribe.resilience.exceptions import (
    CircuitOpenError,
    CircuitShutdownError,
    CircuitTimeoutError,
)
from callscribe.resilience.models import BreakerStatus, CircuitBreakerState, WindowStats

logger = structlog.get_logger(__name__)

T = TypeVar("T")

StateListener = Callable[[str, CircuitBreakerState, CircuitBreakerState], None]

_STATE_GAUGE_VALUES = {
    CircuitBreakerState.CLOSED: 0,
    CircuitBreakerState.HALF_OPEN: 1,
    CircuitBreakerState.OPEN: 2,
}


class _Bucket:
    __slots__ = ("slot", "fires", "successes", "failures", "timeouts", "rejects")

    def __init__(self, slot: int):
        self.slot = slot
        self.fires = 0
        self.successes = 0
        self.failures = 0
        self.timeouts = 0
        self.rejects = 0


class RollingWindow:
    """
    Fixed number of time buckets covering the last ``duration`` seconds.

    Buckets are keyed by ``int(clock() / bucket_span)``; buckets that fall
    out of the window are dropped whenever the window is touched.
    """

    def __init__(self, duration: float, buckets: int, clock: Callable[[], float]):
        self.duration = duration
        self.buckets = buckets
        self.bucket_span = duration / buckets
        self._clock = clock
        self._buckets: deque[_Bucket] = deque()

    def _slot(self) -> int:
        return int(self._clock() / self.bucket_span)

    def _expire(self, slot: int) -> None:
        oldest_live = slot - self.buckets + 1
        while self._buckets and self._buckets[0].slot < oldest_live:
            self._buckets.popleft()

    def record(self, field: str) -> None:
        slot = self._slot()
        self._expire(slot)
        if not self._buckets or self._buckets[-1].slot != slot:
            self._buckets.append(_Bucket(slot))
        bucket = self._buckets[-1]
        setattr(bucket, field, getattr(bucket, field) + 1)

    def totals(self) -> WindowStats:
        self._expire(self._slot())
        return WindowStats(
            fires=sum(b.fires for b in self._buckets),
            successes=sum(b.successes for b in self._buckets),
            failures=sum(b.failures for b in self._buckets),
            timeouts=sum(b.timeouts for b in self._buckets),
            rejects=sum(b.rejects for b in self._buckets),
        )

    def clear(self) -> None:
        self._buckets.clear()


class CircuitBreaker:
    """
    Per-operation circuit breaker.

    Attributes:
        name: Operation kind guarded by this breaker
        timeout: Deadline for one fired operation in seconds (None disables)
        error_threshold_percentage: Error rate that opens the breaker
        reset_timeout: Seconds spent open before a trial is allowed
        volume_threshold: Minimum samples in the window before opening
    """

    def __init__(
        self,
        name: str,
        *,
        timeout: Optional[float] = None,
        error_threshold_percentage: float = 50.0,
        reset_timeout: float = 30.0,
        rolling_count_timeout: float = 10.0,
        rolling_count_buckets: int = 10,
        volume_threshold: int = 0,
        clock: Callable[[], float] = time.monotonic,
        on_state_change: Optional[StateListener] = None,
    ):
        self.name = name
        self.timeout = timeout or None
        self.error_threshold_percentage = error_threshold_percentage
        self.reset_timeout = reset_timeout
        self.volume_threshold = volume_threshold

        self._clock = clock
        self._window = RollingWindow(rolling_count_timeout, rolling_count_buckets, clock)
        self._listeners: list[StateListener] = []
        if on_state_change is not None:
            self._listeners.append(on_state_change)

        self._state = CircuitBreakerState.CLOSED
        self._opened_at: Optional[float] = None
        self._reset_timer: Optional[asyncio.TimerHandle] = None
        self._trial_in_flight = False
        self._is_shutdown = False

        circuit_breaker_state.labels(breaker=name).set(_STATE_GAUGE_VALUES[self._state])

    # === State ===

    @property
    def state(self) -> CircuitBreakerState:
        self._maybe_half_open()
        return self._state

    @property
    def opened(self) -> bool:
        return self.state is CircuitBreakerState.OPEN

    @property
    def half_open(self) -> bool:
        return self.state is CircuitBreakerState.HALF_OPEN

    @property
    def closed(self) -> bool:
        return self.state is CircuitBreakerState.CLOSED

    @property
    def is_shutdown(self) -> bool:
        return self._is_shutdown

    def add_listener(self, listener: StateListener) -> None:
        """Register a callback invoked as ``listener(name, old_state, new_state)``."""
        self._listeners.append(listener)

    def stats(self) -> WindowStats:
        return self._window.totals()

    def status(self) -> BreakerStatus:
        return BreakerStatus(
            name=self.name,
            state=self.state,
            stats=self.stats(),
            error_threshold_percentage=self.error_threshold_percentage,
            reset_timeout=self.reset_timeout,
            timeout=self.timeout,
        )

    def retry_after(self) -> Optional[float]:
        """Seconds until a trial is allowed, or None when not open."""
        if self._state is not CircuitBreakerState.OPEN or self._opened_at is None:
            return None
        return max(0.0, self.reset_timeout - (self._clock() - self._opened_at))

    # === Firing ===

    async def fire(self, operation: Callable[[], Awaitable[T]]) -> T:
        """
        Attempt ``operation`` if the breaker allows it.

        Args:
            operation: Zero-argument coroutine function (normally already retrying)

        Returns:
            Whatever ``operation`` resolves to

        Raises:
            CircuitShutdownError: Breaker was shut down
            CircuitOpenError: Breaker is open, or a half-open trial is already running
            CircuitTimeoutError: Operation exceeded ``timeout``
            Exception: Whatever ``operation`` raised
        """
        if self._is_shutdown:
            raise CircuitShutdownError(self.name)

        self._window.record("fires")
        state = self.state

        if state is CircuitBreakerState.OPEN or (
            state is CircuitBreakerState.HALF_OPEN and self._trial_in_flight
        ):
            self._window.record("rejects")
            circuit_breaker_rejections_total.labels(breaker=self.name, state=state.value).inc()
            logger.info(
                "Circuit breaker rejected call",
                breaker=self.name,
                state=state.value,
                retry_after=self.retry_after(),
            )
            raise CircuitOpenError(self.name, state, self.retry_after())

        is_trial = state is CircuitBreakerState.HALF_OPEN
        if is_trial:
            self._trial_in_flight = True
            logger.info("Circuit breaker trial call", breaker=self.name)

        try:
            result = await self._run(operation)
        except CircuitTimeoutError:
            self._window.record("timeouts")
            self._on_failure(is_trial)
            raise
        except Exception:
            self._window.record("failures")
            self._on_failure(is_trial)
            raise
        finally:
            if is_trial:
                self._trial_in_flight = False

        self._window.record("successes")
        self._on_success(is_trial)
        return result

    async def _run(self, operation: Callable[[], Awaitable[T]]) -> T:
        if self.timeout is None:
            return await operation()
        try:
            return await asyncio.wait_for(operation(), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning("Circuit breaker timeout", breaker=self.name, timeout=self.timeout)
            raise CircuitTimeoutError(self.name, self.timeout) from None

    def _on_success(self, is_trial: bool) -> None:
        if is_trial and self._state is CircuitBreakerState.HALF_OPEN:
            self._window.clear()
            self._transition(CircuitBreakerState.CLOSED)

    def _on_failure(self, is_trial: bool) -> None:
        if is_trial and self._state is CircuitBreakerState.HALF_OPEN:
            self._open()
            return
        if self._state is not CircuitBreakerState.CLOSED:
            return

        stats = self._window.totals()
        if stats.samples < self.volume_threshold:
            return
        if stats.error_percentage >= self.error_threshold_percentage:
            logger.warning(
                "Error threshold reached",
                breaker=self.name,
                error_percentage=round(stats.error_percentage, 2),
                threshold=self.error_threshold_percentage,
                samples=stats.samples,
            )
            self._open()

    # === Transitions ===

    def _open(self) -> None:
        self._cancel_timer()
        self._opened_at = self._clock()
        self._transition(CircuitBreakerState.OPEN)
        loop = asyncio.get_running_loop()
        self._reset_timer = loop.call_later(self.reset_timeout, self._on_reset_timer)

    def _on_reset_timer(self) -> None:
        self._reset_timer = None
        if self._state is CircuitBreakerState.OPEN:
            self._transition(CircuitBreakerState.HALF_OPEN)

    def _maybe_half_open(self) -> None:
        # The timer and the injected clock can disagree; whichever fires first wins
        if self._state is CircuitBreakerState.OPEN and self.retry_after() == 0.0:
            self._cancel_timer()
            self._transition(CircuitBreakerState.HALF_OPEN)

    def _transition(self, new_state: CircuitBreakerState) -> None:
        old_state = self._state
        if old_state is new_state:
            return
        self._state = new_state
        if new_state is not CircuitBreakerState.OPEN:
            self._opened_at = None

        circuit_breaker_transitions_total.labels(
            breaker=self.name, from_state=old_state.value, to_state=new_state.value
        ).inc()
        circuit_breaker_state.labels(breaker=self.name).set(_STATE_GAUGE_VALUES[new_state])

        for listener in self._listeners:
            listener(self.name, old_state, new_state)

    def _cancel_timer(self) -> None:
        if self._reset_timer is not None:
            self._reset_timer.cancel()
            self._reset_timer = None

    # === Lifecycle ===

    def reset(self) -> None:
        """Force the breaker closed, discarding accumulated statistics."""
        self._cancel_timer()
        self._window.clear()
        self._trial_in_flight = False
        self._transition(CircuitBreakerState.CLOSED)
        logger.info("Circuit breaker reset", breaker=self.name)

    def shutdown(self) -> None:
        """Release the reset timer; later fires raise CircuitShutdownError."""
        self._cancel_timer()
        self._is_shutdown = True
        logger.debug("Circuit breaker shut down", breaker=self.name)
