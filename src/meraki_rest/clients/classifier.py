"""
Outcome classification for a completed HTTP exchange.

Status classification runs first; the application-level error envelope is
only inspected on 2xx responses, so a 5xx that also lists errors reports as
a StatusError.
"""

from typing import Any

from meraki_rest.clients.backoff import retry_after_delay
from meraki_rest.errors import MerakiError, RateLimitedError, StatusError
from meraki_rest.models.response import ExchangeResult


def classify_status(result: ExchangeResult) -> StatusError | None:
    """Return the status error for a non-2xx result, or None on success."""
    if result.is_success:
        return None
    if result.status_code == 429:
        return RateLimitedError(result, retry_after_delay(result.headers.get("Retry-After")))
    return StatusError(result.status_code, result)


def extract_application_errors(result: ExchangeResult) -> list[Any]:
    """Return the 'errors' value of an object body as a list, else [].

    A single message or object is wrapped into a one-element list; null and
    empty values mean there is no envelope.
    """
    errors = result.get("errors")
    if errors is None or errors in ("", [], {}):
        return []
    if isinstance(errors, list):
        return errors
    return [errors]


def is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, MerakiError) and exc.retryable
