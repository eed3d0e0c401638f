"""
Error taxonomy for API exchanges.

Every failure a caller can see derives from MerakiError. Retryable kinds
(transport, decode, 429 and 5xx status errors) are absorbed by the execution
loop; once the retry budget is spent they surface wrapped in RetriesExhausted.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from meraki_rest.models.response import ExchangeResult

__all__ = [
    "MerakiError",
    "ConfigurationError",
    "TransportError",
    "DecodeError",
    "StatusError",
    "RateLimitedError",
    "ApplicationError",
    "RetriesExhausted",
    "PaginationError",
]


class MerakiError(RuntimeError):
    """Base exception for all client failures."""

    retryable: bool = False

    @property
    def response(self) -> ExchangeResult | None:
        return None


class ConfigurationError(MerakiError):
    """Raised when client options are invalid."""


class TransportError(MerakiError):
    """Network or IO failure before a status code was received."""

    retryable = True
    summary = "HTTP connection error"

    def __init__(self, cause: BaseException, url: str = "") -> None:
        super().__init__(f"{self.summary} for {url or 'request'}: {cause}")
        self.cause = cause
        self.url = url


class DecodeError(TransportError):
    """The response arrived but its body could not be read."""

    summary = "Cannot read response body"


class StatusError(MerakiError):
    """HTTP status outside 2xx. Carries whatever body the server sent."""

    def __init__(self, status_code: int, result: ExchangeResult | None = None) -> None:
        super().__init__(f"HTTP Request failed: StatusCode {status_code}")
        self.status_code = status_code
        self._result = result

    @property
    def retryable(self) -> bool:  # type: ignore[override]
        return self.status_code == 429 or 500 <= self.status_code <= 599

    @property
    def response(self) -> ExchangeResult | None:
        return self._result


class RateLimitedError(StatusError):
    """429 Too Many Requests; retry_after is the delay the server asked for."""

    def __init__(self, result: ExchangeResult | None = None, retry_after: float = 15.0) -> None:
        super().__init__(429, result)
        self.retry_after = retry_after


class ApplicationError(MerakiError):
    """2xx response whose JSON body lists errors."""

    def __init__(self, errors: list[Any], result: ExchangeResult | None = None) -> None:
        super().__init__(f"JSON error: {errors}")
        self.errors = errors
        self._result = result

    @property
    def response(self) -> ExchangeResult | None:
        return self._result


class RetriesExhausted(MerakiError):
    """Terminal failure after the retry budget was spent."""

    def __init__(self, last_error: MerakiError, attempts: int) -> None:
        super().__init__(f"Giving up after {attempts} attempt(s): {last_error}")
        self.last_error = last_error
        self.attempts = attempts

    @property
    def response(self) -> ExchangeResult | None:
        return self.last_error.response


class PaginationError(MerakiError):
    """A follow-up page could not be merged into the accumulated result."""
