"""redfish_client: asynchronous client for Redfish management services.

The package turns the JSON document graph exposed by a Redfish service into
lazily fetched resources, and takes care of session or basic authentication,
transparent re-authentication, response caching and polling of asynchronous
operations.
"""

__version__ = "0.1.0"

from .cache import MemoryCache, NullCache, ResponseCache, build_cache
from .config import RedfishSettings, get_settings
from .connector import DEFAULT_HEADERS, Connector
from .events import EventListener, SseEventSource
from .exceptions import (
    AsyncTimeoutError,
    AuthenticationError,
    ConfigurationError,
    IndexOutOfRangeError,
    MissingKeyError,
    NoAddressableIdError,
    RedfishError,
    ResourceNotFoundError,
)
from .log_config import configure_logging, logger
from .resource import ID_FIELD, Resource
from .response import Response
from .root import Root


async def connect(
    url: str,
    *,
    prefix: str | None = None,
    verify: bool | None = None,
    use_cache: bool | None = None,
    settings: RedfishSettings | None = None,
) -> Root:
    """Create a new Redfish client and fetch the service root.

    Args:
        url: Base URL of the Redfish service, e.g. ``https://bmc.example.com``.
        prefix: Path of the service root. Defaults to the configured prefix.
        verify: Verify the TLS certificate of the service.
        use_cache: Cache successful GET responses.
        settings: Settings to start from. Defaults to ``get_settings()``.

    Returns:
        Root: The service root resource.

    Raises:
        ConfigurationError: If the URL is not absolute.
        ResourceNotFoundError: If the service root cannot be fetched.
    """
    current_settings = settings or get_settings()
    overrides = {
        key: value
        for key, value in (
            ("prefix", prefix),
            ("verify_ssl", verify),
            ("use_cache", use_cache),
        )
        if value is not None
    }
    if overrides:
        logger.debug(f"Overriding settings for this client: {overrides}")
        current_settings = current_settings.model_copy(update=overrides)

    connector = Connector(
        url, settings=current_settings, cache=build_cache(current_settings)
    )
    try:
        return await Root.from_id(
            connector,
            current_settings.prefix,
            strict=current_settings.strict_navigation,
            memoize=current_settings.memoize_resources,
        )
    except Exception:
        await connector.aclose()
        raise


__all__ = [
    "__version__",
    "connect",
    "AsyncTimeoutError",
    "AuthenticationError",
    "ConfigurationError",
    "Connector",
    "DEFAULT_HEADERS",
    "EventListener",
    "ID_FIELD",
    "IndexOutOfRangeError",
    "MemoryCache",
    "MissingKeyError",
    "NoAddressableIdError",
    "NullCache",
    "RedfishError",
    "RedfishSettings",
    "Resource",
    "ResourceNotFoundError",
    "Response",
    "ResponseCache",
    "Root",
    "SseEventSource",
    "build_cache",
    "configure_logging",
    "get_settings",
    "logger",
]
