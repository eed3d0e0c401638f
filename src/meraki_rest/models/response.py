"""
Exchange Result Model

Parsed view of one HTTP attempt: status, headers, raw body and the decoded
JSON tree.
"""

import json
from typing import Any

import httpx
import structlog
from pydantic import BaseModel, ConfigDict, Field

logger = structlog.get_logger()


def parse_json_body(content: bytes) -> Any:
    """Decode a JSON body; empty or non-JSON bodies yield None."""
    if not content.strip():
        return None
    try:
        return json.loads(content)
    except ValueError:
        logger.warning("response_not_json", size=len(content))
        return None


class ExchangeResult(BaseModel):
    """
    Result of a single HTTP exchange.

    `data` is the parsed JSON body (dict, list, scalar) or None when the
    body is empty. Merged pagination results carry the last page's headers.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    status_code: int = Field(description="HTTP status code")
    headers: httpx.Headers = Field(default_factory=httpx.Headers)
    content: bytes = Field(default=b"", description="Raw response body")
    data: Any = Field(default=None, description="Parsed JSON body")
    url: str = Field(default="", description="URL the request was sent to")
    links: dict[str, str] = Field(
        default_factory=dict,
        description="Link header relations (e.g. 'next', 'first') mapped to target URLs",
    )

    @classmethod
    def from_httpx(cls, response: httpx.Response) -> "ExchangeResult":
        """Build from an httpx response whose body has already been read."""
        links = {
            rel: link["url"]
            for rel, link in response.links.items()
            if rel and link.get("url")
        }
        return cls(
            status_code=response.status_code,
            headers=response.headers,
            content=response.content,
            data=parse_json_body(response.content),
            url=str(response.request.url),
            links=links,
        )

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code <= 299

    @property
    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")

    def get(self, key: str, default: Any = None) -> Any:
        """Top-level field of an object body."""
        if isinstance(self.data, dict):
            return self.data.get(key, default)
        return default

    def merged_with(self, data: Any, last_page: "ExchangeResult") -> "ExchangeResult":
        """Copy carrying merged page data and the last page's headers and links."""
        return self.model_copy(
            update={
                "data": data,
                "content": json.dumps(data).encode() if data is not None else b"",
                "headers": last_page.headers,
                "links": last_page.links,
            }
        )
