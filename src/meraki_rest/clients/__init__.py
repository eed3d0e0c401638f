"""
API client infrastructure.

Provides the rate-limited, retrying Meraki client and its building blocks.
"""

from meraki_rest.clients.backoff import compute_backoff, retry_after_delay, should_retry
from meraki_rest.clients.base_client import Client
from meraki_rest.clients.classifier import classify_status, extract_application_errors, is_retryable
from meraki_rest.clients.pagination import merge_pages, next_page_url
from meraki_rest.clients.rate_limiter import RateLimiter

__all__ = [
    "Client",
    "RateLimiter",
    "classify_status",
    "compute_backoff",
    "extract_application_errors",
    "is_retryable",
    "merge_pages",
    "next_page_url",
    "retry_after_delay",
    "should_retry",
]
