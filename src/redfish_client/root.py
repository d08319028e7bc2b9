# redfish_client/root.py
"""Service root resource with authentication support."""

from typing import Any

from .events import EventListener, SseEventSource
from .exceptions import ResourceNotFoundError
from .log_config import logger
from .resource import ID_FIELD, Resource


class Root(Resource):
    """Top-level entry point into the data of a Redfish service.

    Besides navigation, the root knows how to authenticate: services that
    expose a session collection get session authentication, all others basic
    authentication probed against any resource linked from the root.
    """

    def _session_path(self) -> str | None:
        links = self.raw.get("Links")
        sessions = links.get("Sessions") if isinstance(links, dict) else None
        if isinstance(sessions, dict):
            return sessions.get(ID_FIELD)
        return None

    def _auth_test_path(self) -> str | None:
        for value in self.raw.values():
            if isinstance(value, dict) and ID_FIELD in value:
                return value[ID_FIELD]
        return None

    async def login(self, username: str, password: str) -> None:
        """Authenticate against the service.

        Raises:
            AuthenticationError: If the credentials are rejected.
        """
        connector = self._require_connector()
        session_path = self._session_path()
        logger.info(
            f"Logging in as {username} using "
            f"{'session' if session_path else 'basic'} authentication"
        )
        connector.set_auth_info(
            username, password, self._auth_test_path(), session_path
        )
        await connector.login()

    async def logout(self) -> None:
        """Sign out of the service."""
        await self._require_connector().logout()

    async def find_or_raise(self, oid: str) -> Resource:
        """Fetch any service resource by id.

        Raises:
            ResourceNotFoundError: If the resource cannot be fetched.
        """
        return await Resource.from_id(
            self._require_connector(), oid, strict=self.strict, memoize=self.memoize
        )

    async def find(self, oid: str) -> Resource | None:
        """Fetch any service resource by id, returning None if it cannot be fetched."""
        try:
            return await self.find_or_raise(oid)
        except ResourceNotFoundError as e:
            logger.debug(f"find({oid!r}) failed: {e}")
            return None

    def event_listener(self) -> EventListener | None:
        """Return a listener for the service's SSE stream, if it has one."""
        event_service: Any = self.raw.get("EventService")
        if not isinstance(event_service, dict):
            return None
        address = event_service.get("ServerSentEventUri")
        if not address:
            return None
        return EventListener(SseEventSource(self._require_connector()), address)

    async def aclose(self) -> None:
        """Close the connector of this client."""
        await self._require_connector().aclose()

    async def __aenter__(self) -> "Root":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()
