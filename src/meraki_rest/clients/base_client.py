"""
Meraki Dashboard API Client

Rate-limited HTTP client with retry logic and Link-header pagination.
Docs: https://developer.cisco.com/meraki/api-v1/
"""

import threading
import time
from typing import Any, NoReturn

import httpx
import structlog
from tenacity import RetryCallState, Retrying, retry_if_exception

from meraki_rest.clients.backoff import stop_when_retries_exhausted, wait_retry_after_or_backoff
from meraki_rest.clients.classifier import classify_status, extract_application_errors, is_retryable
from meraki_rest.clients.pagination import merge_pages, next_page_url
from meraki_rest.clients.rate_limiter import RateLimiter
from meraki_rest.config import ClientConfig
from meraki_rest.errors import (
    ApplicationError,
    DecodeError,
    MerakiError,
    RateLimitedError,
    RetriesExhausted,
    TransportError,
)
from meraki_rest.models.request import PendingRequest, build_request
from meraki_rest.models.response import ExchangeResult

logger = structlog.get_logger()


def _raise_exhausted(retry_state: RetryCallState) -> NoReturn:
    """Turn tenacity's give-up into RetriesExhausted wrapping the last error."""
    last_error = retry_state.outcome.exception()
    logger.error(
        "request_failed",
        attempts=retry_state.attempt_number,
        error=str(last_error),
    )
    raise RetriesExhausted(last_error, retry_state.attempt_number) from last_error


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception()
    delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
    if isinstance(exc, RateLimitedError):
        logger.warning(
            "rate_limited",
            wait_seconds=delay,
            retries=retry_state.attempt_number - 1,
        )
    else:
        logger.warning(
            "retrying",
            error=str(exc),
            wait_seconds=round(delay, 3),
            retries=retry_state.attempt_number - 1,
        )


class Client:
    """
    HTTP client for the Meraki Dashboard API.

    Every attempt, retries included, first takes a token from the shared
    rate limiter. Transport failures, 429 and 5xx responses are retried up to
    `max_retries` times; other non-2xx responses fail immediately.

    When `serialize_writes` is enabled, POST/PUT/DELETE calls on one client
    run one at a time. GET requests are never serialized.

    Example:
        >>> with Client(api_token="abc123", request_timeout=120) as client:
        ...     orgs = client.get("/organizations").data
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        *,
        transport: httpx.BaseTransport | None = None,
        **options: Any,
    ):
        config = config or ClientConfig()
        if options:
            config = config.replace(**options)
        self.config = config
        self.rate_limiter = RateLimiter(config.requests_per_second)
        self._transport = transport
        self._client: httpx.Client | None = None
        self._retired: list[httpx.Client] = []
        self._client_lock = threading.Lock()
        self._write_lock = threading.Lock()

    @classmethod
    def from_env(cls, *, transport: httpx.BaseTransport | None = None, **overrides: Any) -> "Client":
        """Build a client from MERAKI_* environment variables."""
        return cls(ClientConfig.from_env(**overrides), transport=transport)

    def configure(self, **changes: Any) -> None:
        """
        Reconfigure the client.

        A new requests_per_second gets a fresh rate-limiter bucket; a new
        request_timeout builds a new HTTP client on next use. The old one stays
        open for requests already using it and is closed by close().
        """
        old = self.config
        self.config = old.replace(**changes)
        if self.config.requests_per_second != old.requests_per_second:
            self.rate_limiter = RateLimiter(self.config.requests_per_second)
        if self.config.request_timeout != old.request_timeout:
            with self._client_lock:
                if self._client is not None:
                    self._retired.append(self._client)
                    self._client = None
        logger.debug("client_reconfigured", options=sorted(changes))

    def get_client(self) -> httpx.Client:
        """Get or create the HTTP client."""
        with self._client_lock:
            if self._client is None:
                self._client = httpx.Client(
                    timeout=self.config.request_timeout,
                    transport=self._transport,
                    follow_redirects=True,
                )
            return self._client

    def close(self) -> None:
        """Close the HTTP client and any replaced by configure()."""
        with self._client_lock:
            if self._client is not None:
                self._retired.append(self._client)
                self._client = None
            while self._retired:
                self._retired.pop().close()

    def __enter__(self) -> "Client":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Execution loop
    # ------------------------------------------------------------------

    def new_request(
        self,
        method: str,
        path: str,
        body: Any = None,
        params: dict[str, Any] | None = None,
        log_payload: bool = True,
    ) -> PendingRequest:
        """Build a request against this client's base URL."""
        return build_request(self.config, method, path, body=body, params=params, log_payload=log_payload)

    def do(self, request: PendingRequest) -> ExchangeResult:
        """
        Execute a request with rate limiting and retries.

        Returns:
            Result of the last (successful) attempt

        Raises:
            StatusError: Non-retryable HTTP status (e.g. 4xx other than 429)
            ApplicationError: 2xx response whose body lists errors
            RetriesExhausted: Retry budget spent on a retryable failure
        """
        if request.is_write and self.config.serialize_writes:
            with self._write_lock:
                return self._execute(request)
        return self._execute(request)

    def _execute(self, request: PendingRequest) -> ExchangeResult:
        config = self.config
        retrying = Retrying(
            stop=stop_when_retries_exhausted(config.max_retries),
            wait=wait_retry_after_or_backoff(
                config.backoff_min_delay,
                config.backoff_max_delay,
                config.backoff_delay_factor,
            ),
            retry=retry_if_exception(is_retryable),
            sleep=time.sleep,
            before_sleep=_log_retry,
            retry_error_callback=_raise_exhausted,
        )
        try:
            result = retrying(self._attempt, request)
        except MerakiError as exc:
            if not isinstance(exc, RetriesExhausted):
                logger.error("request_failed", method=request.method, url=request.url, error=str(exc))
            raise

        errors = extract_application_errors(result)
        if errors:
            logger.error("application_error", method=request.method, url=request.url, errors=errors)
            raise ApplicationError(errors, result)
        return result

    def _attempt(self, request: PendingRequest) -> ExchangeResult:
        """One network attempt: permit, send, read, classify."""
        self.rate_limiter.acquire(1)

        if request.log_payload:
            logger.debug(
                "api_request",
                method=request.method,
                url=request.url,
                headers=request.redacted_headers(),
                body=request.body.decode("utf-8", errors="replace") or None,
            )
        else:
            logger.debug("api_request", method=request.method, url=request.url)

        client = self.get_client()
        try:
            response = client.send(request.to_httpx(), stream=True)
        except httpx.RequestError as exc:
            raise TransportError(exc, request.url) from exc

        try:
            response.read()
        except httpx.RequestError as exc:
            raise DecodeError(exc, request.url) from exc
        finally:
            response.close()

        result = ExchangeResult.from_httpx(response)
        if request.log_payload:
            logger.debug("api_response", status_code=result.status_code, body=result.text or None)

        error = classify_status(result)
        if error is not None:
            raise error
        return result

    # ------------------------------------------------------------------
    # Verbs
    # ------------------------------------------------------------------

    def get(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        log_payload: bool = True,
        max_pages: int | None = None,
    ) -> ExchangeResult:
        """
        Make a GET request, following `next` Link relations.

        Args:
            path: Path relative to the base URL
            params: Query parameters for the first page
            log_payload: Log headers and bodies of each exchange
            max_pages: Stop after this many pages (None = all)

        Returns:
            Result whose data merges every page
        """
        first = self.do(self.new_request("GET", path, params=params, log_payload=log_payload))
        return self._collect_pages(first, log_payload, max_pages)

    def _collect_pages(
        self,
        first: ExchangeResult,
        log_payload: bool,
        max_pages: int | None,
    ) -> ExchangeResult:
        data = first.data
        last = first
        pages = 1
        seen = {first.url}
        next_url = next_page_url(first)

        while next_url:
            if max_pages is not None and pages >= max_pages:
                break
            if next_url in seen:
                logger.warning("pagination_loop_detected", url=next_url, pages=pages)
                break
            seen.add(next_url)

            page = self.do(self.new_request("GET", next_url, log_payload=log_payload))
            data = merge_pages(data, page.data)
            last = page
            pages += 1
            next_url = next_page_url(page)

        if pages == 1:
            return first
        logger.debug("pagination_complete", pages=pages)
        return first.merged_with(data, last)

    def delete(self, path: str, log_payload: bool = True) -> ExchangeResult:
        """Make a DELETE request."""
        return self.do(self.new_request("DELETE", path, log_payload=log_payload))

    def post(self, path: str, body: Any = None, log_payload: bool = True) -> ExchangeResult:
        """Make a POST request. `body` may be a JSON string, bytes or a JSON-serialisable object."""
        return self.do(self.new_request("POST", path, body=body, log_payload=log_payload))

    def put(self, path: str, body: Any = None, log_payload: bool = True) -> ExchangeResult:
        """Make a PUT request. `body` may be a JSON string, bytes or a JSON-serialisable object."""
        return self.do(self.new_request("PUT", path, body=body, log_payload=log_payload))
