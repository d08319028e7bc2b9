# redfish_client/connector.py
"""Authenticated request pipeline for Redfish services.

The connector owns the transport, the request headers, the response cache and
the credential state. Higher layers (resources) only ever call ``request`` and
``reset`` on it.
"""

import base64
import ssl
from collections.abc import Iterable, Mapping
from http import HTTPStatus
from types import MappingProxyType
from typing import Any, Self

import certifi
import httpx

from .cache import ResponseCache, build_cache
from .config import RedfishSettings, get_settings
from .exceptions import AuthenticationError, ConfigurationError
from .log_config import logger
from .response import Response, location_path
from .types import RequestData

DEFAULT_HEADERS: Mapping[str, str] = MappingProxyType(
    {
        "Accept": "application/json",
        "OData-Version": "4.0",
    }
)
"""Request headers required by the Redfish protocol."""

BASIC_AUTH_HEADER = "Authorization"
TOKEN_AUTH_HEADER = "X-Auth-Token"

_REDACTED_HEADERS = frozenset({BASIC_AUTH_HEADER.lower(), TOKEN_AUTH_HEADER.lower()})


def _redact(headers: Iterable[tuple[str, str]]) -> dict[str, str]:
    """Copy headers for logging with credential values masked."""
    return {
        key: "***" if key.lower() in _REDACTED_HEADERS else value
        for key, value in headers
    }


class Connector:
    """Asynchronous HTTP pipeline with authentication and caching.

    The connector sends one request at a time. Successful (200) GET responses
    are stored in the cache keyed by path. A 401 response triggers exactly one
    re-authentication followed by one retry of the original request, provided
    credentials have been set with ``set_auth_info``.

    Two authentication modes are supported. When a session path is known, a
    session is created on the service and its token is sent in the
    ``X-Auth-Token`` header. Otherwise basic authentication is used and
    validated by fetching a probe path.

    Attributes:
        _settings: Configuration settings for the connector.
        _base_url: Base URL of the service, without trailing slash.
        _headers: Headers sent with every request.
        _auth_headers: Headers set by the authentication state machine.
        _cache: Response cache (possibly a no-op cache).
        _session_id: Path of the server-side session, if one exists.
        _http_client: The underlying httpx.AsyncClient.
        _should_close_client: Flag indicating if this instance owns the _http_client.
    """

    def __init__(
        self,
        url: str,
        *,
        settings: RedfishSettings | None = None,
        cache: ResponseCache | None = None,
        headers: Mapping[str, str] | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        """Initialize the Connector.

        Args:
            url: Base URL of the service, e.g. ``https://bmc.example.com``.
            settings: Configuration settings. Defaults to ``get_settings()``.
            cache: Response cache. Defaults to the variant selected by settings.
            headers: Extra headers merged over the default headers.
            http_client: Optional pre-configured httpx.AsyncClient instance.

        Raises:
            ConfigurationError: If ``url`` is not an absolute http(s) URL.
        """
        self._settings = settings or get_settings()
        try:
            parsed = httpx.URL(url)
        except httpx.InvalidURL as e:
            raise ConfigurationError(f"Invalid service URL '{url}': {e}") from e
        if parsed.scheme not in ("http", "https") or not parsed.host:
            raise ConfigurationError(f"Invalid service URL '{url}'")
        self._base_url: str = url.rstrip("/")

        self._headers: dict[str, str] = {
            **DEFAULT_HEADERS,
            "User-Agent": self._settings.user_agent,
            **(headers or {}),
        }
        self._auth_headers: dict[str, str] = {}
        self._cache: ResponseCache = (
            cache if cache is not None else build_cache(self._settings)
        )

        self._username: str | None = None
        self._password: str | None = None
        self._auth_test_path: str | None = None
        self._session_path: str | None = None
        self._session_id: str | None = None

        self._should_close_client = http_client is None
        self._http_client = http_client or self._create_default_http_client()
        logger.debug(f"Connector initialized for {self._base_url}")

    def _create_default_http_client(self) -> httpx.AsyncClient:
        """Create a default httpx.AsyncClient with configured settings.

        Returns:
            httpx.AsyncClient: Client that follows redirects and verifies TLS
                certificates against the certifi bundle unless disabled.
        """
        verify: ssl.SSLContext | bool = False
        if self._settings.verify_ssl:
            try:
                verify = ssl.create_default_context(cafile=certifi.where())
                logger.debug("Using certifi SSL context.")
            except (OSError, ssl.SSLError):
                verify = True
                logger.warning(
                    "certifi bundle failed to load. Using default SSL verification."
                )
        else:
            logger.warning(f"TLS certificate verification disabled for {self._base_url}")

        return httpx.AsyncClient(
            timeout=self._settings.request_timeout,
            verify=verify,
            follow_redirects=True,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def headers(self) -> dict[str, str]:
        """Headers of the next request: default headers plus active auth headers."""
        return {**self._headers, **self._auth_headers}

    @property
    def http_client(self) -> httpx.AsyncClient:
        return self._http_client

    @property
    def session_id(self) -> str | None:
        """Path of the current server-side session, if any."""
        return self._session_id

    @property
    def authenticated(self) -> bool:
        return bool(self._auth_headers)

    def add_headers(self, headers: Mapping[str, str]) -> None:
        """Add headers to every subsequent request."""
        self._headers.update(headers)

    def remove_headers(self, names: Iterable[str]) -> None:
        """Remove headers from subsequent requests. Unknown names are ignored."""
        for name in names:
            self._headers.pop(name, None)

    def url_for(self, path: str) -> str:
        """Build the absolute URL of a service path."""
        if path.startswith(("http://", "https://")):
            return path
        return f"{self._base_url}/{path.lstrip('/')}"

    async def _send(
        self, method: str, path: str, payload: Any | None = None
    ) -> Response:
        """Issue a single request straight to the transport.

        Skips the cache and the 401 retry, so authentication code can use it
        without recursing into ``login``.
        """
        request = RequestData(
            method=method.upper(),
            url=self.url_for(path),
            payload=payload,
            headers=self.headers,
        ).build_request()

        logger.debug(f"Sending request: {request.method} {request.url}")
        try:
            response = await self._http_client.send(request)
        except httpx.HTTPError as e:
            logger.error(f"HTTP request error for {request.method} {request.url}: {e}")
            raise
        logger.debug(f"Received response: {response.status_code} for {request.url}")
        logger.trace(f"Response Headers: {_redact(response.headers.items())}")

        return Response(
            status=response.status_code,
            headers={key.lower(): value for key, value in response.headers.items()},
            body=response.content,
        )

    async def request(
        self, method: str, path: str, payload: Any | None = None
    ) -> Response:
        """Perform a request against the service.

        GET requests are answered from the cache when possible, and successful
        (200) GET responses are stored in it. A 401 response causes one
        re-authentication and one retry when credentials are known; the result
        of the retry is returned as-is.

        Args:
            method: HTTP method (GET, POST, PATCH, DELETE, ...).
            path: Request path relative to the base URL, including any query.
            payload: Optional JSON-encodable request body.

        Returns:
            Response: The service response.

        Raises:
            AuthenticationError: If re-authentication after a 401 fails.
            httpx.HTTPError: On transport failures.
        """
        method = method.upper()
        if method == "GET":
            cached = self._cache.get(path)
            if cached is not None:
                logger.debug(f"Cache hit for {path}")
                return cached

        response = await self._send(method, path, payload)
        if response.status == HTTPStatus.UNAUTHORIZED and self._username is not None:
            logger.warning(
                f"{method} {path} returned 401, re-authenticating and retrying once"
            )
            await self.login()
            response = await self._send(method, path, payload)

        if method == "GET" and response.status == HTTPStatus.OK:
            self._cache.set(path, response)
            logger.debug(f"Cached response for {path}")
        return response

    async def get(self, path: str) -> Response:
        return await self.request("GET", path)

    async def post(self, path: str, payload: Any | None = None) -> Response:
        return await self.request("POST", path, payload)

    async def patch(self, path: str, payload: Any | None = None) -> Response:
        return await self.request("PATCH", path, payload)

    async def delete(self, path: str, payload: Any | None = None) -> Response:
        return await self.request("DELETE", path, payload)

    def reset(self, path: str | None = None) -> None:
        """Evict one cached response, or the whole cache when no path is given."""
        if path is None:
            logger.debug("Clearing response cache")
            self._cache.clear()
        else:
            logger.debug(f"Evicting cached response for {path}")
            self._cache.delete(path)

    def set_auth_info(
        self,
        username: str,
        password: str,
        auth_test_path: str | None,
        session_path: str | None = None,
    ) -> None:
        """Store credentials for ``login`` and select the authentication mode.

        Session authentication is used when ``session_path`` is given, basic
        authentication (validated against ``auth_test_path``) otherwise. No
        request is made.
        """
        self._username = username
        self._password = password
        self._auth_test_path = auth_test_path
        self._session_path = session_path
        mode = "session" if session_path else "basic"
        logger.debug(f"Stored credentials for {mode} authentication")

    async def login(self) -> None:
        """Authenticate with the stored credentials.

        Raises:
            AuthenticationError: If the service rejects the credentials.
            ConfigurationError: If no credentials are stored, or basic
                authentication has no path to validate against.
        """
        if self._username is None or self._password is None:
            raise ConfigurationError("No credentials set, call set_auth_info first.")
        if self._session_path:
            await self._session_login()
        else:
            await self._basic_login()

    async def _session_login(self) -> None:
        assert self._session_path is not None
        self._auth_headers.pop(TOKEN_AUTH_HEADER, None)
        self._session_id = None
        response = await self._send(
            "POST",
            self._session_path,
            {"UserName": self._username, "Password": self._password},
        )
        if response.status != HTTPStatus.CREATED:
            logger.warning(f"Session login failed with status {response.status}")
            raise AuthenticationError("Invalid credentials", response=response)

        token = response.header(TOKEN_AUTH_HEADER)
        if not token:
            raise AuthenticationError(
                "Session created without an authentication token", response=response
            )
        self._auth_headers.pop(BASIC_AUTH_HEADER, None)
        self._auth_headers[TOKEN_AUTH_HEADER] = token
        self._session_id = self._extract_session_id(response)
        logger.info(f"Logged in, session {self._session_id or '<unknown>'}")

    @staticmethod
    def _extract_session_id(response: Response) -> str | None:
        """Find the path of a new session in the body or the Location header."""
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("@odata.id"):
            return str(body["@odata.id"])
        location = response.header("Location")
        return location_path(location) if location else None

    async def _basic_login(self) -> None:
        if not self._auth_test_path:
            raise ConfigurationError(
                "Basic authentication needs a path to validate the credentials."
            )
        credentials = f"{self._username}:{self._password}".encode("utf-8")
        self._auth_headers.pop(TOKEN_AUTH_HEADER, None)
        self._auth_headers[BASIC_AUTH_HEADER] = (
            f"Basic {base64.b64encode(credentials).decode('ascii')}"
        )

        response = await self._send("GET", self._auth_test_path)
        if response.status != HTTPStatus.OK:
            self._auth_headers.pop(BASIC_AUTH_HEADER, None)
            logger.warning(f"Basic login failed with status {response.status}")
            raise AuthenticationError("Invalid credentials", response=response)
        logger.info("Logged in using basic authentication")

    async def logout(self) -> None:
        """Delete the server-side session, if any, and drop all auth headers.

        The session DELETE bypasses the 401 retry, and its status is not
        checked: an expired session is as good as a deleted one.
        """
        try:
            if self._session_id:
                response = await self._send("DELETE", self._session_id)
                logger.info(
                    f"Deleted session {self._session_id} (status {response.status})"
                )
                self._session_id = None
        finally:
            self._auth_headers.pop(BASIC_AUTH_HEADER, None)
            self._auth_headers.pop(TOKEN_AUTH_HEADER, None)

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this connector created it."""
        if self._should_close_client and not self._http_client.is_closed:
            await self._http_client.aclose()
            logger.debug(f"Connector HTTP client closed for {self._base_url}")

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object | None,
    ) -> None:
        await self.aclose()
