"""Service configuration resolved from the environment."""

__all__ = [
    "ServiceConfig",
    "DATABASE_URI_KEY",
    "DATABASE_NAME_KEY",
    "VELO_ENV_KEY",
    "CACHE_ENABLED_KEY",
    "RATE_LIMIT_MAX_REQUESTS_KEY",
    "RATE_LIMIT_WINDOW_SECONDS_KEY",
]

from dataclasses import dataclass
from typing import Optional

from aibs_informatics_core.utils.os_operations import get_env_var

from velo_altitude_lambda.common.exceptions import ConfigurationError

DATABASE_URI_KEY = "DATABASE_URI"
DATABASE_NAME_KEY = "DATABASE_NAME"
VELO_ENV_KEY = "VELO_ENV"
CACHE_ENABLED_KEY = "CACHE_ENABLED"
RATE_LIMIT_MAX_REQUESTS_KEY = "RATE_LIMIT_MAX_REQUESTS"
RATE_LIMIT_WINDOW_SECONDS_KEY = "RATE_LIMIT_WINDOW_SECONDS"

DEFAULT_DATABASE_NAME = "velo-altitude"
DEFAULT_RATE_LIMIT_MAX_REQUESTS = 120
DEFAULT_RATE_LIMIT_WINDOW_SECONDS = 60
DEVELOPMENT = "development"
PRODUCTION = "production"

_DEVELOPMENT_ALIASES = {"dev", "development", "local", "test"}
_FALSY = {"0", "false", "no", "off"}


def _int_env_var(key: str, default: int) -> int:
    value = get_env_var(key)
    if not value:
        return default
    try:
        return int(value)
    except ValueError as e:
        raise ConfigurationError(f"{key} must be an integer, got {value!r}") from e


@dataclass(frozen=True)
class ServiceConfig:
    """Configuration consumed by the request handlers.

    Attributes:
        database_uri: DynamoDB endpoint URL. Required to open a connection.
        database_name: Prefix of the tables backing each collection.
        environment: `development` or `production`. Controls error verbosity.
        cache_enabled: Whether reads go through the TTL cache.
        rate_limit_max_requests: Requests allowed per client and window. 0 disables limiting.
        rate_limit_window_seconds: Length of one rate limit window.
    """

    database_uri: Optional[str] = None
    database_name: str = DEFAULT_DATABASE_NAME
    environment: str = PRODUCTION
    cache_enabled: bool = True
    rate_limit_max_requests: int = DEFAULT_RATE_LIMIT_MAX_REQUESTS
    rate_limit_window_seconds: int = DEFAULT_RATE_LIMIT_WINDOW_SECONDS

    @property
    def is_production(self) -> bool:
        return self.environment != DEVELOPMENT

    @property
    def rate_limit_enabled(self) -> bool:
        return self.rate_limit_max_requests > 0

    def table_name(self, collection: str) -> str:
        return f"{self.database_name}-{collection}"

    @classmethod
    def from_env(cls) -> "ServiceConfig":
        """Read the configuration from environment variables.

        Raises:
            ConfigurationError: If a numeric setting is not an integer, or the
                rate limit window is not positive.
        """
        environment = get_env_var(VELO_ENV_KEY, default_value=PRODUCTION).strip().lower()
        cache_enabled = get_env_var(CACHE_ENABLED_KEY, default_value="true").strip().lower()
        window_seconds = _int_env_var(
            RATE_LIMIT_WINDOW_SECONDS_KEY, DEFAULT_RATE_LIMIT_WINDOW_SECONDS
        )
        if window_seconds <= 0:
            raise ConfigurationError(
                f"{RATE_LIMIT_WINDOW_SECONDS_KEY} must be positive, got {window_seconds}"
            )
        return cls(
            database_uri=get_env_var(DATABASE_URI_KEY) or None,
            database_name=get_env_var(DATABASE_NAME_KEY) or DEFAULT_DATABASE_NAME,
            environment=DEVELOPMENT if environment in _DEVELOPMENT_ALIASES else PRODUCTION,
            cache_enabled=cache_enabled not in _FALSY,
            rate_limit_max_requests=_int_env_var(
                RATE_LIMIT_MAX_REQUESTS_KEY, DEFAULT_RATE_LIMIT_MAX_REQUESTS
            ),
            rate_limit_window_seconds=window_seconds,
        )
