"""
Link-header pagination.

Only a `next` relation continues; `first` (the server wrapping back to the
beginning), `last`, `prev` or no Link header at all end the sequence.
"""

from typing import Any

from meraki_rest.errors import PaginationError
from meraki_rest.models.response import ExchangeResult


def next_page_url(result: ExchangeResult) -> str | None:
    """URL of the next page, or None when there are no more pages."""
    return result.links.get("next") or None


def merge_pages(accumulated: Any, page: Any) -> Any:
    """
    Append one page's elements to the accumulated body.

    Supports bare JSON arrays and objects holding an `items` array; for the
    latter every other field is kept from the accumulated (first) page.

    Raises:
        PaginationError: If the two bodies do not share a supported shape
    """
    if page is None:
        return accumulated
    if isinstance(accumulated, list) and isinstance(page, list):
        return accumulated + page
    if (
        isinstance(accumulated, dict)
        and isinstance(page, dict)
        and isinstance(accumulated.get("items"), list)
        and isinstance(page.get("items"), list)
    ):
        merged = dict(accumulated)
        merged["items"] = accumulated["items"] + page["items"]
        return merged
    raise PaginationError(
        f"Cannot merge page of type {type(page).__name__} "
        f"into {type(accumulated).__name__}"
    )
