"""
Exponential backoff policy.

Pure functions computing the delay before each retry. There is no jitter:
the same inputs always produce the same schedule.
"""


def compute_delay(
    attempt_index: int,
    initial_delay: float,
    multiplier: float,
    max_delay: float,
) -> float:
    """
    Compute the delay before a retry.

    Args:
        attempt_index: Zero-based retry index (0 = delay before the first retry)
        initial_delay: Delay before the first retry (seconds)
        multiplier: Growth factor per retry
        max_delay: Upper bound for any single delay (seconds)

    Returns:
        ``min(initial_delay * multiplier ** attempt_index, max_delay)``

    Raises:
        ValueError: On a negative index or negative delays
    """
    if attempt_index < 0:
        raise ValueError(f"attempt_index must be >= 0, got {attempt_index}")
    if initial_delay < 0 or max_delay < 0:
        raise ValueError("delays must be >= 0")

    return min(initial_delay * (multiplier ** attempt_index), max_delay)


def delay_schedule(
    max_retries: int,
    initial_delay: float,
    multiplier: float,
    max_delay: float,
) -> list[float]:
    """Return the full list of delays a policy sleeps through when every attempt fails."""
    return [
        compute_delay(i, initial_delay, multiplier, max_delay)
        for i in range(max_retries)
    ]
