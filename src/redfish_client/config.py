# redfish_client/config.py
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from . import __version__


class RedfishSettings(BaseSettings):
    """
    Manages user-configurable settings for the Redfish client, primarily
    loaded from environment variables (prefixed with 'REDFISH_') or a .env file.

    The settings cover transport behavior, the response cache, the navigation
    policy of materialized resources and the polling budget of asynchronous
    operations.
    """

    model_config = SettingsConfigDict(
        env_file=(".env", "secrets.env"),
        env_file_encoding="utf-8",
        env_prefix="REDFISH_",
        extra="ignore",
        case_sensitive=False,
    )

    # --- Transport Settings ---
    request_timeout: float = Field(
        default=30.0, description="Default request timeout in seconds"
    )
    verify_ssl: bool = Field(
        default=True, description="Verify the TLS certificate of the service"
    )
    user_agent: str = Field(
        default=f"redfish-client/{__version__}",
        description="User-Agent header for requests",
    )
    prefix: str = Field(
        default="/redfish/v1", description="Path of the service root resource"
    )

    # --- Caching Settings ---
    use_cache: bool = Field(
        default=True, description="Cache successful GET responses per connector"
    )
    cache_max_size: int = Field(
        default=1024, description="Maximum number of cached responses"
    )
    cache_ttl_seconds: int = Field(
        default=0,
        description="TTL for cache entries in seconds (0 keeps entries until reset)",
    )

    # --- Navigation Settings ---
    strict_navigation: bool = Field(
        default=False,
        description="Raise on missing keys and indices instead of returning None",
    )
    memoize_resources: bool = Field(
        default=False,
        description="Memoize sub-resources per resource instance until refresh",
    )


@lru_cache
def get_settings() -> RedfishSettings:
    """
    Provides access to the client settings.

    Settings are loaded from environment variables or .env/secrets.env files.
    The instance is cached for performance.

    Returns:
        RedfishSettings: The settings instance.
    """
    return RedfishSettings()
