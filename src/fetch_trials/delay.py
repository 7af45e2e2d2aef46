"""
Delay strategies for fetch_trials
"""
import random
from typing import Callable, Optional


# Delay of the first retry before jitter (seconds)
BASE_DELAY_SECONDS = 0.1

# Upper bound of the jitter, as a fraction of the delay
JITTER_FACTOR = 0.2


def no_delay(attempt: int = 0, error: Optional[BaseException] = None) -> float:
    """Retry immediately."""
    return 0.0


def exponential_delay(
    attempt: int,
    error: Optional[BaseException] = None,
    *,
    random_fn: Optional[Callable[[], float]] = None,
) -> float:
    """
    Calculate exponential backoff delay with jitter.

    delay = 2^attempt * 0.1s, plus 0-20% of that as jitter.

    Args:
        attempt: The retry number (1-indexed)
        error: The failure being retried (unused)
        random_fn: Source of uniform values in [0, 1). Default: random.random

    Returns:
        Delay in seconds
    """
    rand = random_fn if random_fn is not None else random.random
    delay = (2 ** attempt) * BASE_DELAY_SECONDS
    jitter = delay * JITTER_FACTOR * rand()
    return delay + jitter


def create_exponential_delay(
    random_fn: Callable[[], float],
) -> Callable[[int, Optional[BaseException]], float]:
    """
    Create an exponential delay function bound to a randomness source.

    Example:
        rng = random.Random(42)
        config = RetryConfig(delay_fn=create_exponential_delay(rng.random))
    """

    def delay_fn(attempt: int, error: Optional[BaseException] = None) -> float:
        return exponential_delay(attempt, error, random_fn=random_fn)

    return delay_fn
