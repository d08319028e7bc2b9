# redfish_client/events.py
"""Streaming of Redfish events over server-sent events (SSE).

A Redfish event carries several event records in its ``Events`` array. The
listener reports every record as a separate item.
"""

import json
from collections.abc import AsyncIterator
from typing import TYPE_CHECKING, Protocol

from httpx_sse import aconnect_sse

from .log_config import logger
from .types import JsonObject

if TYPE_CHECKING:
    from .connector import Connector


class ServerSentEvent(Protocol):
    """A single framed SSE event."""

    @property
    def data(self) -> str: ...


class EventSource(Protocol):
    """Protocol for anything that can subscribe to an SSE stream."""

    def subscribe(self, address: str) -> AsyncIterator[ServerSentEvent]:
        """Yield the events published at ``address``."""
        ...


class SseEventSource:
    """EventSource that streams over the HTTP client of a connector.

    Requests carry the connector's current headers, so an authenticated
    connector yields an authenticated subscription.
    """

    def __init__(self, connector: "Connector"):
        self._connector = connector

    async def subscribe(self, address: str) -> AsyncIterator[ServerSentEvent]:
        url = self._connector.url_for(address)
        logger.info(f"Subscribing to event stream {url}")
        async with aconnect_sse(
            self._connector.http_client,
            "GET",
            url,
            headers=self._connector.headers,
            timeout=None,
        ) as event_source:
            event_source.response.raise_for_status()
            async for event in event_source.aiter_sse():
                yield event


class EventListener:
    """Splits Redfish events from an event source into their records."""

    def __init__(self, source: EventSource, address: str):
        self._source = source
        self._address = address

    @property
    def address(self) -> str:
        return self._address

    async def listen(self) -> AsyncIterator[JsonObject]:
        """Yield event records as they arrive."""
        async for event in self._source.subscribe(self._address):
            records = json.loads(event.data).get("Events", [])
            logger.trace(f"Received event with {len(records)} record(s)")
            for record in records:
                yield record
