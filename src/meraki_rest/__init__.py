"""
meraki-rest: Cisco Meraki Dashboard REST client.

This package provides:
- clients: Rate-limited client with retry, backoff and pagination
- models: Pending request and exchange result types
- errors: Failure taxonomy (transport, status, application, exhausted)
- config: Client configuration, loadable from MERAKI_* environment variables
- utils: Environment variable registry
"""

from meraki_rest.clients import Client, RateLimiter
from meraki_rest.config import ClientConfig
from meraki_rest.errors import (
    ApplicationError,
    ConfigurationError,
    DecodeError,
    MerakiError,
    PaginationError,
    RateLimitedError,
    RetriesExhausted,
    StatusError,
    TransportError,
)
from meraki_rest.models import ExchangeResult, PendingRequest
from meraki_rest.utils import (
    dump_env_config,
    get_env_registry,
    validate_env_config,
)

__version__ = "0.1.0"

__all__ = [
    # Client
    "Client",
    "ClientConfig",
    "RateLimiter",
    # Models
    "ExchangeResult",
    "PendingRequest",
    # Errors
    "ApplicationError",
    "ConfigurationError",
    "DecodeError",
    "MerakiError",
    "PaginationError",
    "RateLimitedError",
    "RetriesExhausted",
    "StatusError",
    "TransportError",
    # Utilities
    "dump_env_config",
    "get_env_registry",
    "validate_env_config",
    # Version
    "__version__",
]
