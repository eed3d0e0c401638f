"""Configuration handling for the Meraki client."""

from dataclasses import dataclass, fields, replace
from typing import Any

from meraki_rest.errors import ConfigurationError
from meraki_rest.utils import get_env_bool, get_env_float, get_env_int, get_env_str

DEFAULT_BASE_URL = "https://api.meraki.com/api/v1"
DEFAULT_USER_AGENT = "meraki-rest-python"
DEFAULT_REQUESTS_PER_SECOND = 10
DEFAULT_REQUEST_TIMEOUT = 60.0
DEFAULT_MAX_RETRIES = 3
DEFAULT_BACKOFF_MIN_DELAY = 2.0
DEFAULT_BACKOFF_MAX_DELAY = 60.0
DEFAULT_BACKOFF_DELAY_FACTOR = 3.0


@dataclass(frozen=True)
class ClientConfig:
    """Settings shared read-only by every request issued from one client."""

    api_token: str = ""
    base_url: str = DEFAULT_BASE_URL
    user_agent: str = DEFAULT_USER_AGENT
    requests_per_second: int = DEFAULT_REQUESTS_PER_SECOND
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    max_retries: int = DEFAULT_MAX_RETRIES
    backoff_min_delay: float = DEFAULT_BACKOFF_MIN_DELAY
    backoff_max_delay: float = DEFAULT_BACKOFF_MAX_DELAY
    backoff_delay_factor: float = DEFAULT_BACKOFF_DELAY_FACTOR
    serialize_writes: bool = True

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """Raise ConfigurationError if any option is out of range."""
        if not isinstance(self.requests_per_second, int) or self.requests_per_second < 1:
            raise ConfigurationError("requests_per_second must be a whole number of at least 1")
        if self.request_timeout <= 0:
            raise ConfigurationError("request_timeout must be positive")
        if self.max_retries < 0:
            raise ConfigurationError("max_retries must not be negative")
        if self.backoff_min_delay < 0 or self.backoff_max_delay < 0:
            raise ConfigurationError("backoff delays must not be negative")
        if self.backoff_min_delay > self.backoff_max_delay:
            raise ConfigurationError("backoff_min_delay must not exceed backoff_max_delay")
        if self.backoff_delay_factor < 1:
            raise ConfigurationError("backoff_delay_factor must be at least 1")

    def replace(self, **changes: Any) -> "ClientConfig":
        """Return a copy with the given options changed."""
        known = {f.name for f in fields(self)}
        unknown = sorted(set(changes) - known)
        if unknown:
            raise ConfigurationError(f"Unknown client option(s): {', '.join(unknown)}")
        return replace(self, **changes)

    @classmethod
    def from_env(cls, **overrides: Any) -> "ClientConfig":
        """Load configuration from MERAKI_* environment variables."""
        config = cls(
            api_token=get_env_str(
                "MERAKI_API_TOKEN", "",
                description="Meraki Dashboard API bearer token",
                section="client",
                required=True,
                secret=True,
            ),
            base_url=get_env_str(
                "MERAKI_BASE_URL", DEFAULT_BASE_URL,
                description="Dashboard API base URL",
                section="client",
            ),
            user_agent=get_env_str(
                "MERAKI_USER_AGENT", DEFAULT_USER_AGENT,
                description="HTTP User-Agent header",
                section="client",
            ),
            request_timeout=get_env_float(
                "MERAKI_REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT,
                description="Per-attempt HTTP timeout in seconds",
                section="client",
            ),
            serialize_writes=get_env_bool(
                "MERAKI_SERIALIZE_WRITES", True,
                description="Serialize POST/PUT/DELETE calls per client",
                section="client",
            ),
            requests_per_second=get_env_int(
                "MERAKI_REQUESTS_PER_SECOND", DEFAULT_REQUESTS_PER_SECOND,
                description="Token bucket capacity and refill rate",
                section="ratelimit",
            ),
            max_retries=get_env_int(
                "MERAKI_MAX_RETRIES", DEFAULT_MAX_RETRIES,
                description="Maximum number of retries per call",
                section="retry",
            ),
            backoff_min_delay=get_env_float(
                "MERAKI_BACKOFF_MIN_DELAY", DEFAULT_BACKOFF_MIN_DELAY,
                description="Minimum delay between two retries (seconds)",
                section="retry",
            ),
            backoff_max_delay=get_env_float(
                "MERAKI_BACKOFF_MAX_DELAY", DEFAULT_BACKOFF_MAX_DELAY,
                description="Maximum delay between two retries (seconds)",
                section="retry",
            ),
            backoff_delay_factor=get_env_float(
                "MERAKI_BACKOFF_DELAY_FACTOR", DEFAULT_BACKOFF_DELAY_FACTOR,
                description="Exponential backoff growth factor",
                section="retry",
            ),
        )
        return config.replace(**overrides) if overrides else config
