"""
Unit tests for RetryEngine.

Tests attempt counting, backoff between attempts and the retryability predicate.
"""

from unittest.mock import AsyncMock

import pytest

from callscribe.resilience.engine import RetryEngine
from callscribe.resilience.exceptions import RetryExhausted
from callscribe.resilience.models import RetryPolicy


class TransientError(Exception):
    pass


class FatalError(Exception):
    pass


@pytest.mark.asyncio
async def test_success_on_first_attempt(no_sleep):
    """No retries and no sleeping when the first attempt succeeds."""
    engine = RetryEngine(RetryPolicy(max_retries=3), sleep=no_sleep)
    operation = AsyncMock(return_value="ok")

    result = await engine.execute(operation, "op")

    assert result == "ok"
    assert operation.await_count == 1
    assert no_sleep.delays == []


@pytest.mark.asyncio
async def test_success_after_transient_failures(no_sleep):
    engine = RetryEngine(RetryPolicy(max_retries=3, initial_delay=1.0), sleep=no_sleep)
    operation = AsyncMock(side_effect=[TransientError("a"), TransientError("b"), "ok"])

    result = await engine.execute(operation, "op")

    assert result == "ok"
    assert operation.await_count == 3
    assert no_sleep.delays == [1.0, 2.0]


@pytest.mark.asyncio
async def test_exhaustion_makes_max_retries_plus_one_attempts(no_sleep):
    engine = RetryEngine(
        RetryPolicy(max_retries=3, initial_delay=1.0, multiplier=2.0, max_delay=10.0),
        sleep=no_sleep,
    )
    last = TransientError("still down")
    operation = AsyncMock(side_effect=[TransientError("1"), TransientError("2"), TransientError("3"), last])

    with pytest.raises(RetryExhausted) as exc_info:
        await engine.execute(operation, "get_call_details")

    assert operation.await_count == 4
    assert no_sleep.delays == [1.0, 2.0, 4.0]
    assert exc_info.value.attempts == 4
    assert exc_info.value.operation == "get_call_details"
    assert exc_info.value.last_error is last
    assert exc_info.value.__cause__ is last
    assert "still down" in str(exc_info.value)


@pytest.mark.asyncio
async def test_no_sleep_after_final_attempt(no_sleep):
    engine = RetryEngine(RetryPolicy(max_retries=1, initial_delay=5.0, max_delay=5.0), sleep=no_sleep)
    operation = AsyncMock(side_effect=TransientError("down"))

    with pytest.raises(RetryExhausted):
        await engine.execute(operation, "op")

    assert no_sleep.delays == [5.0]


@pytest.mark.asyncio
async def test_zero_retries_means_single_attempt(no_sleep):
    engine = RetryEngine(RetryPolicy(max_retries=0), sleep=no_sleep)
    operation = AsyncMock(side_effect=TransientError("down"))

    with pytest.raises(RetryExhausted) as exc_info:
        await engine.execute(operation, "op")

    assert operation.await_count == 1
    assert exc_info.value.attempts == 1
    assert no_sleep.delays == []


@pytest.mark.asyncio
async def test_delays_are_capped(no_sleep):
    engine = RetryEngine(
        RetryPolicy(max_retries=4, initial_delay=2.0, multiplier=3.0, max_delay=10.0),
        sleep=no_sleep,
    )
    operation = AsyncMock(side_effect=TransientError("down"))

    with pytest.raises(RetryExhausted):
        await engine.execute(operation, "op")

    assert no_sleep.delays == [2.0, 6.0, 10.0, 10.0]


@pytest.mark.asyncio
async def test_non_retryable_error_stops_immediately(no_sleep):
    engine = RetryEngine(
        RetryPolicy(max_retries=3),
        sleep=no_sleep,
        is_retryable=lambda e: not isinstance(e, FatalError),
    )
    fatal = FatalError("bad request")
    operation = AsyncMock(side_effect=[TransientError("blip"), fatal, "never"])

    with pytest.raises(RetryExhausted) as exc_info:
        await engine.execute(operation, "op")

    assert operation.await_count == 2
    assert exc_info.value.attempts == 2
    assert exc_info.value.last_error is fatal
    assert no_sleep.delays == [1.0]


def test_delay_for_follows_policy():
    engine = RetryEngine(RetryPolicy(max_retries=3, initial_delay=2.0, multiplier=2.0, max_delay=20.0))

    assert [engine.delay_for(i) for i in range(3)] == [2.0, 4.0, 8.0]
