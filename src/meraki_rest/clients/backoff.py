"""Retry timing: jittered exponential backoff and Retry-After handling.

The pure functions (`compute_backoff`, `should_retry`, `retry_after_delay`)
carry the arithmetic. The tenacity adapters plug them into a `Retrying`
loop, where `retry_state.attempt_number - 1` is the number of attempts that
have already failed.
"""

import math
import random

from tenacity import RetryCallState
from tenacity.stop import stop_base
from tenacity.wait import wait_base

from meraki_rest.errors import RateLimitedError

DEFAULT_RETRY_AFTER_SECONDS = 15.0


def compute_backoff(attempt: int, min_delay: float, max_delay: float, factor: float) -> float:
    """Jittered exponential delay in seconds, always within [min_delay, max_delay].

    Args:
        attempt: Zero-based count of failed attempts so far
        min_delay: Lower bound in seconds
        max_delay: Upper bound in seconds
        factor: Growth factor per attempt

    Returns:
        min_delay + U(0.5, 1.0) * (capped - min_delay)
    """
    try:
        raw = min_delay * factor**attempt
    except OverflowError:
        raw = max_delay
    capped = min(max(raw, min_delay), max_delay)
    return min_delay + random.uniform(0.5, 1.0) * (capped - min_delay)


def should_retry(attempt: int, max_retries: int) -> bool:
    """False once the zero-based attempt count reaches max_retries."""
    return attempt < max_retries


def retry_after_delay(value: str | None) -> float:
    """Seconds to wait for a 429 response's Retry-After header.

    Zero or less means one second. A header that is missing or cannot be
    parsed means 15 seconds. Otherwise wait the (possibly fractional) number
    of seconds the server asked for.
    """
    if value is None:
        return DEFAULT_RETRY_AFTER_SECONDS
    value = value.strip()
    if not value:
        return DEFAULT_RETRY_AFTER_SECONDS
    try:
        seconds = float(value)
    except ValueError:
        return DEFAULT_RETRY_AFTER_SECONDS
    if not math.isfinite(seconds):
        return DEFAULT_RETRY_AFTER_SECONDS
    if seconds <= 0:
        return 1.0
    return seconds


class stop_when_retries_exhausted(stop_base):
    """Stop once should_retry() says the budget is spent."""

    def __init__(self, max_retries: int) -> None:
        self.max_retries = max_retries

    def __call__(self, retry_state: RetryCallState) -> bool:
        return not should_retry(retry_state.attempt_number - 1, self.max_retries)


class wait_retry_after_or_backoff(wait_base):
    """Honour Retry-After for 429 errors, exponential backoff for the rest."""

    def __init__(self, min_delay: float, max_delay: float, factor: float) -> None:
        self.min_delay = min_delay
        self.max_delay = max_delay
        self.factor = factor

    def __call__(self, retry_state: RetryCallState) -> float:
        outcome = retry_state.outcome
        exc = outcome.exception() if outcome is not None else None
        if isinstance(exc, RateLimitedError):
            return exc.retry_after
        return compute_backoff(
            retry_state.attempt_number - 1,
            self.min_delay,
            self.max_delay,
            self.factor,
        )
