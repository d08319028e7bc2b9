# redfish_client/cache.py
"""Response caches used by the connector.

Both variants satisfy the ``ResponseCache`` protocol, so the connector does not
need to know whether caching is enabled.
"""

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from cachetools import Cache, LRUCache, TTLCache  # type: ignore[import-untyped]

from .log_config import logger
from .response import Response

if TYPE_CHECKING:
    from .config import RedfishSettings


@runtime_checkable
class ResponseCache(Protocol):
    """Protocol for storing GET responses keyed by request path."""

    def get(self, key: str) -> Response | None:
        """Return the cached response for ``key`` or None on a miss."""
        ...

    def set(self, key: str, value: Response) -> Response:
        """Store ``value`` under ``key`` and return it."""
        ...

    def delete(self, key: str) -> None:
        """Evict ``key``. Missing keys are ignored."""
        ...

    def clear(self) -> None:
        """Evict every entry."""
        ...


class MemoryCache:
    """In-memory response cache backed by cachetools.

    Entries stay until evicted explicitly unless ``ttl`` is positive, and the
    least recently used entry is dropped once ``maxsize`` is exceeded.
    """

    def __init__(self, maxsize: int = 1024, ttl: float = 0):
        self._store: Cache
        if ttl > 0:
            self._store = TTLCache(maxsize=maxsize, ttl=ttl)
        else:
            self._store = LRUCache(maxsize=maxsize)

    def get(self, key: str) -> Response | None:
        return self._store.get(key)

    def set(self, key: str, value: Response) -> Response:
        self._store[key] = value
        return value

    def delete(self, key: str) -> None:
        self._store.pop(key, None)

    def clear(self) -> None:
        self._store.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._store

    def __len__(self) -> int:
        return len(self._store)


class NullCache:
    """Cache that never stores anything, used when caching is disabled."""

    def get(self, key: str) -> Response | None:
        return None

    def set(self, key: str, value: Response) -> Response:
        return value

    def delete(self, key: str) -> None:
        pass

    def clear(self) -> None:
        pass

    def __contains__(self, key: object) -> bool:
        return False

    def __len__(self) -> int:
        return 0


def build_cache(settings: "RedfishSettings") -> ResponseCache:
    """Create the cache variant selected by the settings."""
    if not settings.use_cache:
        logger.info("Response caching is disabled.")
        return NullCache()
    logger.info(
        f"Response caching enabled. Max size: {settings.cache_max_size}, "
        f"TTL: {settings.cache_ttl_seconds or 'none'}"
    )
    return MemoryCache(
        maxsize=settings.cache_max_size, ttl=settings.cache_ttl_seconds
    )
