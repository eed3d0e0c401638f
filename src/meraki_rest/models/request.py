"""
Pending Request

Method, absolute URL, headers and a body captured once as bytes so every
retry attempt sends an identical payload.
"""

import json
from dataclasses import dataclass, field
from typing import Any

import httpx

from meraki_rest.utils import redact_headers


@dataclass(frozen=True)
class PendingRequest:
    """A request ready to be sent, possibly several times."""

    method: str
    url: str
    headers: tuple[tuple[str, str], ...] = ()
    body: bytes = b""
    params: tuple[tuple[str, str], ...] = field(default=())
    log_payload: bool = True

    @property
    def is_write(self) -> bool:
        return self.method in ("POST", "PUT", "DELETE", "PATCH")

    def to_httpx(self) -> httpx.Request:
        """Fresh httpx request over the same body bytes."""
        return httpx.Request(
            self.method,
            self.url,
            params=list(self.params) or None,
            headers=list(self.headers),
            content=self.body or None,
        )

    def redacted_headers(self) -> dict[str, str]:
        return redact_headers(self.headers)


def encode_body(body: Any) -> bytes:
    """Serialise a request body exactly once."""
    if body is None:
        return b""
    if isinstance(body, bytes):
        return body
    if isinstance(body, str):
        return body.encode("utf-8")
    return json.dumps(body).encode("utf-8")


def _is_absolute(path: str) -> bool:
    return path.startswith(("http://", "https://"))


def build_request(
    config: Any,
    method: str,
    path: str,
    body: Any = None,
    params: dict[str, Any] | None = None,
    log_payload: bool = True,
) -> PendingRequest:
    """
    Assemble a PendingRequest from a client config and call inputs.

    Args:
        config: ClientConfig supplying base URL, token and user agent
        method: HTTP verb
        path: Path relative to the base URL, or an absolute URL
        body: None, str, bytes or a JSON-serialisable object
        params: Optional query parameters
        log_payload: Whether headers and body are logged for this exchange

    Returns:
        Immutable PendingRequest
    """
    url = path if _is_absolute(path) else config.base_url.rstrip("/") + "/" + path.lstrip("/")
    headers = (
        ("Authorization", f"Bearer {config.api_token}"),
        ("User-Agent", config.user_agent),
        ("Content-Type", "application/json"),
        ("Accept", "application/json"),
    )
    query = tuple((str(k), str(v)) for k, v in (params or {}).items())
    return PendingRequest(
        method=method.upper(),
        url=url,
        headers=headers,
        body=encode_body(body),
        params=query,
        log_payload=log_payload,
    )
