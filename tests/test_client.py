"""Tests for the execution loop and verb entry points of Client."""

from __future__ import annotations

import json
import threading
import time
from unittest.mock import Mock, call, patch

import httpx
import pytest

from conftest import BASE_URL, FailingStream, scripted
from meraki_rest.clients import Client
from meraki_rest.config import ClientConfig
from meraki_rest.errors import (
    ApplicationError,
    ConfigurationError,
    DecodeError,
    RateLimitedError,
    RetriesExhausted,
    StatusError,
    TransportError,
)

SLEEP = "meraki_rest.clients.base_client.time.sleep"
JITTER = "meraki_rest.clients.backoff.random.uniform"


def test_new_client_applies_options() -> None:
    client = Client(api_token="abc123", request_timeout=120)
    assert client.config.api_token == "abc123"
    assert client.config.request_timeout == 120
    assert client.config.max_retries == 3
    assert client.get_client().timeout.read == 120
    client.close()


@pytest.mark.parametrize("method", ["get", "delete", "post", "put"])
def test_verbs_success(make_client, method: str) -> None:
    handler, seen = scripted(httpx.Response(200, json={"id": "N_1"}))
    client = make_client(handler)

    args = ("/url", {"name": "net"}) if method in ("post", "put") else ("/url",)
    result = getattr(client, method)(*args)

    assert result.status_code == 200
    assert result.data == {"id": "N_1"}
    assert result.get("id") == "N_1"
    assert seen[0].method == method.upper()
    assert str(seen[0].url) == f"{BASE_URL}/url"


def test_request_headers(make_client) -> None:
    handler, seen = scripted(httpx.Response(200))
    client = make_client(handler, user_agent="tests/1.0")

    client.post("/url", "{}")

    headers = seen[0].headers
    assert headers["Authorization"] == "Bearer abc123"
    assert headers["User-Agent"] == "tests/1.0"
    assert headers["Content-Type"] == "application/json"
    assert headers["Accept"] == "application/json"
    assert seen[0].content == b"{}"


def test_empty_body_is_neutral_success(make_client) -> None:
    handler, _ = scripted(httpx.Response(200))
    client = make_client(handler)

    result = client.get("/url")

    assert result.data is None
    assert result.content == b""


@pytest.mark.parametrize("method", ["get", "delete", "post", "put"])
def test_transport_error_without_retries(make_client, method: str) -> None:
    handler, seen = scripted(httpx.ConnectError("fail"))
    client = make_client(handler)

    args = ("/url", "{}") if method in ("post", "put") else ("/url",)
    with patch(SLEEP) as mock_sleep:
        with pytest.raises(RetriesExhausted) as excinfo:
            getattr(client, method)(*args)

    assert isinstance(excinfo.value.last_error, TransportError)
    assert excinfo.value.attempts == 1
    assert excinfo.value.response is None
    assert len(seen) == 1
    mock_sleep.assert_not_called()


def test_decode_error_without_retries(make_client) -> None:
    handler, _ = scripted(httpx.Response(200, stream=FailingStream()))
    client = make_client(handler)

    with pytest.raises(RetriesExhausted) as excinfo:
        client.get("/url")

    assert isinstance(excinfo.value.last_error, DecodeError)


@patch(SLEEP)
def test_decode_error_is_retried(mock_sleep: Mock, make_client) -> None:
    handler, seen = scripted(
        httpx.Response(200, stream=FailingStream()),
        httpx.Response(200, json=[1]),
    )
    client = make_client(handler, max_retries=1)

    assert client.get("/url").data == [1]
    assert len(seen) == 2
    assert mock_sleep.call_count == 1


@pytest.mark.parametrize("status", [400, 404, 405])
@patch(SLEEP)
def test_client_error_is_fatal_without_retry(mock_sleep: Mock, make_client, status: int) -> None:
    handler, seen = scripted(httpx.Response(status, json={"errors": ["nope"]}))
    client = make_client(handler, max_retries=3)

    with pytest.raises(StatusError) as excinfo:
        client.get("/url")

    assert not isinstance(excinfo.value, RetriesExhausted)
    assert excinfo.value.status_code == status
    assert excinfo.value.response.data == {"errors": ["nope"]}
    assert len(seen) == 1
    mock_sleep.assert_not_called()


@patch(JITTER, return_value=1.0)
@patch(SLEEP)
def test_server_errors_use_exponential_backoff(mock_sleep: Mock, _: Mock, make_client) -> None:
    handler, seen = scripted(
        httpx.Response(503),
        httpx.Response(500),
        httpx.Response(200, json={"ok": True}),
    )
    client = make_client(handler, max_retries=3)

    result = client.get("/url")

    assert result.data == {"ok": True}
    assert len(seen) == 3
    # min 2s, factor 3: 2 * 3**0, 2 * 3**1
    assert mock_sleep.call_args_list == [call(2.0), call(6.0)]


@patch(JITTER, return_value=1.0)
@patch(SLEEP)
def test_server_errors_exhaust_retries(mock_sleep: Mock, _: Mock, make_client) -> None:
    handler, seen = scripted(*[httpx.Response(502, json={"message": "down"}) for _ in range(3)])
    client = make_client(handler, max_retries=2)

    with pytest.raises(RetriesExhausted) as excinfo:
        client.get("/url")

    last = excinfo.value.last_error
    assert isinstance(last, StatusError)
    assert last.status_code == 502
    assert excinfo.value.response.data == {"message": "down"}
    assert excinfo.value.attempts == 3
    assert len(seen) == 3
    assert mock_sleep.call_count == 2


@patch(SLEEP)
def test_retry_after_overrides_backoff(mock_sleep: Mock, make_client) -> None:
    handler, _ = scripted(
        httpx.Response(429, headers={"Retry-After": "5"}),
        httpx.Response(200, json=[]),
    )
    client = make_client(handler, max_retries=3, backoff_min_delay=30, backoff_max_delay=60)

    client.get("/url")

    assert mock_sleep.call_args_list == [call(5.0)]


@patch(SLEEP)
def test_fractional_retry_after(mock_sleep: Mock, make_client) -> None:
    handler, _ = scripted(httpx.Response(429, headers={"Retry-After": "1.5"}), httpx.Response(200))
    client = make_client(handler, max_retries=1)

    client.get("/url")

    assert mock_sleep.call_args_list == [call(1.5)]


@pytest.mark.parametrize(
    "headers,expected",
    [({"Retry-After": "0"}, 1.0), ({}, 15.0), ({"Retry-After": ""}, 15.0)],
)
@patch(SLEEP)
def test_retry_after_defaults(mock_sleep: Mock, make_client, headers, expected: float) -> None:
    handler, _ = scripted(httpx.Response(429, headers=headers), httpx.Response(200))
    client = make_client(handler, max_retries=1)

    client.get("/url")

    assert mock_sleep.call_args_list == [call(expected)]


@patch(SLEEP)
def test_rate_limited_exhausts_retries(mock_sleep: Mock, make_client) -> None:
    handler, _ = scripted(httpx.Response(429, headers={"Retry-After": "2"}))
    client = make_client(handler, max_retries=0)

    with pytest.raises(RetriesExhausted) as excinfo:
        client.get("/url")

    assert isinstance(excinfo.value.last_error, RateLimitedError)
    assert excinfo.value.last_error.retry_after == 2.0
    mock_sleep.assert_not_called()


@patch(SLEEP)
def test_attempt_counter_shared_across_failure_kinds(mock_sleep: Mock, make_client) -> None:
    handler, seen = scripted(
        httpx.ConnectError("fail"),
        httpx.Response(500),
        httpx.Response(429, headers={"Retry-After": "1"}),
        httpx.Response(200),
    )
    client = make_client(handler, max_retries=2)

    with pytest.raises(RetriesExhausted) as excinfo:
        client.get("/url")

    assert isinstance(excinfo.value.last_error, RateLimitedError)
    assert len(seen) == 3
    assert mock_sleep.call_count == 2


@patch(SLEEP)
def test_body_is_identical_on_every_attempt(mock_sleep: Mock, make_client) -> None:
    handler, seen = scripted(
        httpx.ConnectError("fail"),
        httpx.Response(503),
        httpx.Response(200, json={"id": 1}),
    )
    client = make_client(handler, max_retries=3)
    payload = {"name": "net", "tags": ["a", "b"]}

    client.put("/networks/N_1", payload)

    assert len(seen) == 3
    assert {request.content for request in seen} == {json.dumps(payload).encode()}


def test_application_error_envelope(make_client) -> None:
    handler, _ = scripted(httpx.Response(200, json={"errors": ["bad field"]}))
    client = make_client(handler)

    with pytest.raises(ApplicationError) as excinfo:
        client.post("/url", "{}")

    assert excinfo.value.errors == ["bad field"]
    assert excinfo.value.response.status_code == 200


def test_scalar_errors_value_is_an_application_error(make_client) -> None:
    handler, _ = scripted(httpx.Response(200, json={"errors": "Invalid API key"}))
    client = make_client(handler)

    with pytest.raises(ApplicationError) as excinfo:
        client.get("/url")

    assert excinfo.value.errors == ["Invalid API key"]


def test_empty_errors_list_is_success(make_client) -> None:
    handler, _ = scripted(httpx.Response(200, json={"errors": [], "id": 1}))
    client = make_client(handler)

    assert client.get("/url").get("id") == 1


def test_server_error_takes_precedence_over_envelope(make_client) -> None:
    handler, _ = scripted(httpx.Response(500, json={"errors": ["boom"]}))
    client = make_client(handler)

    with pytest.raises(RetriesExhausted) as excinfo:
        client.get("/url")

    assert isinstance(excinfo.value.last_error, StatusError)
    assert not isinstance(excinfo.value.last_error, ApplicationError)


def test_every_attempt_takes_a_rate_limiter_token(make_client) -> None:
    handler, _ = scripted(httpx.Response(503), httpx.Response(200))
    client = make_client(handler, max_retries=1)
    client.rate_limiter = Mock(wraps=client.rate_limiter)

    with patch(SLEEP):
        client.get("/url")

    assert client.rate_limiter.acquire.call_args_list == [call(1), call(1)]


def test_get_passes_query_params(make_client) -> None:
    handler, seen = scripted(httpx.Response(200, json=[]))
    client = make_client(handler)

    client.get("/organizations/1/devices", params={"perPage": 3})

    assert seen[0].url.params["perPage"] == "3"


def test_configure_replaces_rate_limiter_and_transport(make_client) -> None:
    handler, _ = scripted(httpx.Response(200), httpx.Response(200))
    client = make_client(handler)
    limiter = client.rate_limiter
    http = client.get_client()

    client.configure(max_retries=5)
    assert client.rate_limiter is limiter
    assert client.get_client() is http

    client.configure(requests_per_second=2, request_timeout=5)
    assert client.rate_limiter is not limiter
    assert client.rate_limiter.capacity == 2
    assert client.get_client() is not http
    assert client.get_client().timeout.read == 5


def test_from_env(monkeypatch) -> None:
    monkeypatch.setenv("MERAKI_API_TOKEN", "from-env")
    monkeypatch.setenv("MERAKI_MAX_RETRIES", "7")

    client = Client.from_env(user_agent="override")

    assert isinstance(client.config, ClientConfig)
    assert client.config.api_token == "from-env"
    assert client.config.max_retries == 7
    assert client.config.user_agent == "override"


def _overlap_handler(barrier: threading.Barrier):
    def _handler(request: httpx.Request) -> httpx.Response:
        barrier.wait()
        return httpx.Response(200)

    return _handler


def _run_concurrently(*calls) -> list[BaseException]:
    errors: list[BaseException] = []

    def _run(fn):
        try:
            fn()
        except BaseException as exc:  # collected for the assertion below
            errors.append(exc)

    threads = [threading.Thread(target=_run, args=(fn,)) for fn in calls]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=10)
    return errors


def test_writes_are_serialized(make_client) -> None:
    active = 0
    peak = 0
    lock = threading.Lock()

    def _handler(request: httpx.Request) -> httpx.Response:
        nonlocal active, peak
        with lock:
            active += 1
            peak = max(peak, active)
        time.sleep(0.05)
        with lock:
            active -= 1
        return httpx.Response(200)

    client = make_client(_handler)

    errors = _run_concurrently(*[lambda: client.post("/url", "{}") for _ in range(4)])

    assert errors == []
    assert peak == 1


def test_reads_run_concurrently(make_client) -> None:
    client = make_client(_overlap_handler(threading.Barrier(2, timeout=5)))

    errors = _run_concurrently(lambda: client.get("/a"), lambda: client.get("/b"))

    assert errors == []


def test_write_serialization_can_be_disabled(make_client) -> None:
    client = make_client(_overlap_handler(threading.Barrier(2, timeout=5)), serialize_writes=False)

    errors = _run_concurrently(lambda: client.post("/a", "{}"), lambda: client.delete("/b"))

    assert errors == []


def test_fractional_rate_is_rejected_before_any_request(make_client) -> None:
    handler, seen = scripted(httpx.Response(200))

    with pytest.raises(ConfigurationError):
        make_client(handler, requests_per_second=0.5)

    assert seen == []


def test_configure_keeps_in_flight_client_open(make_client) -> None:
    clients: list[Client] = []

    def handler(request: httpx.Request) -> httpx.Response:
        clients[0].configure(request_timeout=5)
        return httpx.Response(200, json={"ok": True})

    client = make_client(handler)
    clients.append(client)
    old_http = client.get_client()

    assert client.get("/url").data == {"ok": True}
    assert not old_http.is_closed
    assert client.get_client() is not old_http

    client.close()
    assert old_http.is_closed
