"""Shared fixtures for meraki-rest tests."""

from __future__ import annotations

from typing import Callable

import httpx
import pytest
import structlog

from meraki_rest.clients import Client
from meraki_rest.utils import get_env_registry

BASE_URL = "https://api.meraki.com/api/v1"

Handler = Callable[[httpx.Request], httpx.Response]


class FailingStream(httpx.SyncByteStream):
    """Response body that fails on read."""

    def __iter__(self):
        raise httpx.ReadError("fail")
        yield b""  # pragma: no cover


@pytest.fixture(autouse=True)
def _reset_global_state():
    yield
    structlog.reset_defaults()
    get_env_registry().clear()


@pytest.fixture
def make_client() -> Callable[..., Client]:
    """Build a client over an httpx.MockTransport; max_retries defaults to 0."""

    clients: list[Client] = []

    def _make(handler: Handler, **options) -> Client:
        options.setdefault("api_token", "abc123")
        options.setdefault("max_retries", 0)
        options.setdefault("requests_per_second", 1000)
        client = Client(transport=httpx.MockTransport(handler), **options)
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.close()


def scripted(*responses: httpx.Response | Exception) -> tuple[Handler, list[httpx.Request]]:
    """Handler replaying the given responses (or raising the given errors) in order."""
    queue = list(responses)
    seen: list[httpx.Request] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        item = queue.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    return _handler, seen
