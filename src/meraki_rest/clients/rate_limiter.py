"""
Token bucket rate limiter shared by all requests of one client.
"""

import threading
import time

import structlog

logger = structlog.get_logger()


class RateLimiter:
    """
    Thread-safe token bucket.

    Capacity and refill rate both equal requests_per_second. Tokens are
    debited under the lock as soon as they are requested; the balance may go
    negative, which reserves future tokens for the caller. The caller then
    sleeps off its deficit outside the lock, so waiters are served in order.
    """

    def __init__(self, requests_per_second: int = 10):
        if requests_per_second <= 0:
            raise ValueError("requests_per_second must be positive")
        self.capacity = float(requests_per_second)
        self.refill_rate = float(requests_per_second)  # tokens per second
        self.tokens = self.capacity
        self.last_refill = time.monotonic()
        self._lock = threading.Lock()

    def _refill(self, now: float) -> None:
        elapsed = now - self.last_refill
        if elapsed > 0:
            self.tokens = min(self.capacity, self.tokens + elapsed * self.refill_rate)
            self.last_refill = now

    def reserve(self, n: int = 1) -> float:
        """Debit n tokens and return how long the caller must wait for them."""
        if n <= 0:
            return 0.0
        if n > self.capacity:
            raise ValueError(f"cannot acquire {n} tokens from a bucket of {self.capacity:g}")

        with self._lock:
            self._refill(time.monotonic())
            self.tokens -= n
            if self.tokens >= 0:
                return 0.0
            return -self.tokens / self.refill_rate

    def acquire(self, n: int = 1) -> None:
        """Acquire n tokens, blocking if necessary."""
        wait_time = self.reserve(n)
        if wait_time > 0:
            logger.info("rate_limit_waiting", wait_seconds=round(wait_time, 3))
            time.sleep(wait_time)

    def available(self) -> float:
        """Tokens currently in the bucket (negative while reserved)."""
        with self._lock:
            self._refill(time.monotonic())
            return self.tokens
