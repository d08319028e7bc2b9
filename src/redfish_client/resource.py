# redfish_client/resource.py
"""Lazy resource graph over Redfish JSON documents.

A ``Resource`` wraps one JSON object. Nested objects are wrapped on access,
and objects carrying an ``@odata.id`` are treated as references that are
fetched through the connector when accessed.
"""

import asyncio
import json
from collections.abc import KeysView
from http import HTTPStatus
from typing import TYPE_CHECKING, Any, Self

from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_result,
    stop_after_attempt,
    wait_fixed,
)

from .exceptions import (
    AsyncTimeoutError,
    IndexOutOfRangeError,
    MissingKeyError,
    NoAddressableIdError,
    ResourceNotFoundError,
)
from .log_config import logger
from .response import Response
from .types import JsonObject

if TYPE_CHECKING:
    from .connector import Connector

ID_FIELD = "@odata.id"
"""Field holding the address of a resource."""

MAX_FRAGMENT_DEPTH = 32

_MISSING = object()


def _split_id(oid: str) -> tuple[str, str | None]:
    path, sep, fragment = oid.partition("#")
    return path, fragment if sep else None


def _resolve_fragment(document: Any, fragment: str, max_depth: int) -> Any:
    """Walk ``document`` along a ``/``-separated fragment.

    Numeric segments index arrays; on objects every segment is a key, so
    ``/5`` selects the key ``"5"``.

    Raises:
        LookupError: If a segment does not address anything.
    """
    segments = [segment for segment in fragment.split("/") if segment]
    if len(segments) > max_depth:
        raise LookupError(f"fragment deeper than {max_depth} segments")
    current = document
    for segment in segments:
        if isinstance(current, list):
            if not (segment.isascii() and segment.isdigit()):
                raise LookupError(f"'{segment}' is not an array index")
            current = current[int(segment)]
        elif isinstance(current, dict):
            current = current[segment]
        else:
            raise LookupError(f"cannot descend into scalar at '{segment}'")
    return current


class Resource:
    """Container for data retrieved from a Redfish service.

    Resources are created either from an id, in which case the data is fetched
    through the connector, or from already available data. Accessing a field
    with ``field`` or ``dig`` wraps nested objects into further resources and
    fetches referenced ones on demand:

    ```python
    systems = await root.field("Systems")
    first = await root.dig("Systems", "Members", 0)
    ```

    Two policies control navigation. With ``strict`` unset, missing keys and
    unresolvable references yield None; with it set, they raise. With
    ``memoize`` unset every access goes back to the connector (and its cache);
    with it set, resolved fields are kept on the instance until ``refresh``.

    Attributes:
        raw: The wrapped JSON object.
        headers: Response headers of the fetch that produced the resource.
    """

    def __init__(
        self,
        connector: "Connector | None",
        *,
        raw: JsonObject | None = None,
        headers: dict[str, str] | None = None,
        strict: bool = False,
        memoize: bool = False,
    ):
        self._connector = connector
        self.raw: JsonObject = raw if raw is not None else {}
        self.headers: dict[str, str] = headers or {}
        self.strict = strict
        self.memoize = memoize
        self._memo: dict[str, Any] = {}

    @classmethod
    async def from_id(
        cls,
        connector: "Connector",
        oid: str,
        *,
        strict: bool = False,
        memoize: bool = False,
    ) -> Self:
        """Fetch a resource by its id.

        The part of ``oid`` after ``#`` selects a sub-tree of the fetched
        document. The complete ``oid`` is stored in the ``@odata.id`` field of
        the result, even if the service omitted it.

        Raises:
            ResourceNotFoundError: If the service does not answer with 200 or
                the fragment does not address an object.
        """
        raw, headers = await cls._fetch(connector, oid)
        return cls(
            connector, raw=raw, headers=headers, strict=strict, memoize=memoize
        )

    @staticmethod
    async def _fetch(
        connector: "Connector", oid: str
    ) -> tuple[JsonObject, dict[str, str]]:
        path, fragment = _split_id(oid)
        response = await connector.request("GET", path)
        if response.status != HTTPStatus.OK:
            raise ResourceNotFoundError(
                f"Resource '{oid}' could not be fetched", response=response
            )
        try:
            document = response.json() if response.body else {}
        except ValueError as e:
            raise ResourceNotFoundError(
                f"Resource '{oid}' is not valid JSON", response=response
            ) from e

        if fragment is not None:
            try:
                document = _resolve_fragment(document, fragment, MAX_FRAGMENT_DEPTH)
            except (LookupError, TypeError) as e:
                raise ResourceNotFoundError(
                    f"Fragment of '{oid}' does not resolve: {e}", response=response
                ) from e
        if not isinstance(document, dict):
            raise ResourceNotFoundError(
                f"Resource '{oid}' is not a JSON object", response=response
            )

        document[ID_FIELD] = oid
        return document, dict(response.headers)

    @property
    def connector(self) -> "Connector | None":
        return self._connector

    @property
    def oid(self) -> str | None:
        """Id of the resource, if it is addressable."""
        value = self.raw.get(ID_FIELD)
        return value if isinstance(value, str) else None

    def __contains__(self, key: object) -> bool:
        return key in self.raw

    def keys(self) -> KeysView[str]:
        return self.raw.keys()

    def __str__(self) -> str:
        return json.dumps(self.raw, indent=2)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(oid={self.oid!r})"

    async def field(self, key: str) -> Any:
        """Access a field, materializing nested objects and references.

        Args:
            key: Name of the field.

        Returns:
            The literal value, a Resource for objects, a list with the same
            rule applied element-wise for arrays, or None for a missing key in
            tolerant mode.

        Raises:
            MissingKeyError: Missing key in strict mode.
            ResourceNotFoundError: Unresolvable reference in strict mode.
        """
        if self.memoize and key in self._memo:
            return self._memo[key]

        value = self.raw.get(key, _MISSING)
        if value is _MISSING:
            if self.strict:
                raise MissingKeyError(
                    f"Resource {self.oid or '<data>'} has no key '{key}'"
                )
            return None

        result = await self._build(value)
        if self.memoize:
            self._memo[key] = result
        return result

    async def dig(self, *keys: str | int) -> Any:
        """Access nested content, stopping at the first missing value.

        ``await res.dig("a", 0, "b")`` follows field ``a``, then the first
        array element, then field ``b``.

        Raises:
            MissingKeyError: Missing key in strict mode.
            IndexOutOfRangeError: Invalid array access in strict mode.
        """
        current: Any = self
        for key in keys:
            if current is None:
                return None
            if isinstance(current, Resource):
                current = await current.field(str(key))
            elif isinstance(current, list):
                current = self._index(current, key)
            elif self.strict:
                raise MissingKeyError(f"Cannot access '{key}' on a scalar value")
            else:
                return None
        return current

    def _index(self, items: list[Any], key: str | int) -> Any:
        if isinstance(key, int) and -len(items) <= key < len(items):
            return items[key]
        if self.strict:
            raise IndexOutOfRangeError(
                f"Invalid index {key!r} for array of {len(items)}"
            )
        return None

    async def _build(self, value: Any) -> Any:
        if isinstance(value, dict):
            return await self._build_object(value)
        if isinstance(value, list):
            return [await self._build(item) for item in value]
        return value

    async def _build_object(self, data: JsonObject) -> "Resource | None":
        if ID_FIELD not in data or self._connector is None:
            return Resource(
                self._connector, raw=data, strict=self.strict, memoize=self.memoize
            )
        try:
            return await Resource.from_id(
                self._connector,
                data[ID_FIELD],
                strict=self.strict,
                memoize=self.memoize,
            )
        except ResourceNotFoundError as e:
            if self.strict:
                raise
            logger.debug(f"Dropping unresolvable reference: {e}")
            return None

    def _target(self, field: str, path: str | None) -> str:
        if path is not None:
            return path
        value = self.raw.get(field)
        if value is None:
            raise NoAddressableIdError(
                f"Resource has no '{field}' field to address the request"
            )
        return str(value)

    def _require_connector(self) -> "Connector":
        if self._connector is None:
            raise NoAddressableIdError("Resource is not attached to a connector")
        return self._connector

    async def get(
        self, field: str = ID_FIELD, path: str | None = None, payload: Any | None = None
    ) -> Response:
        """Issue a GET request to ``path`` or the address stored in ``field``."""
        target = self._target(field, path)
        return await self._require_connector().request("GET", target, payload)

    async def post(
        self, field: str = ID_FIELD, path: str | None = None, payload: Any | None = None
    ) -> Response:
        """Issue a POST request to ``path`` or the address stored in ``field``.

        The payload is JSON-encoded by the connector.

        Raises:
            NoAddressableIdError: If neither ``path`` nor ``field`` gives an address.
        """
        target = self._target(field, path)
        return await self._require_connector().request("POST", target, payload)

    async def patch(
        self, field: str = ID_FIELD, path: str | None = None, payload: Any | None = None
    ) -> Response:
        """Issue a PATCH request, resolving the address like ``post``."""
        target = self._target(field, path)
        return await self._require_connector().request("PATCH", target, payload)

    async def delete(
        self, field: str = ID_FIELD, path: str | None = None, payload: Any | None = None
    ) -> Response:
        """Issue a DELETE request, resolving the address like ``post``."""
        target = self._target(field, path)
        return await self._require_connector().request("DELETE", target, payload)

    async def wait(
        self, response: Response, retries: int = 10, delay: float = 1.0
    ) -> Response:
        """Poll the monitor of an asynchronous operation until it finishes.

        A response that is already done is returned unchanged without any
        request. Otherwise the monitor is polled up to ``retries`` times,
        sleeping ``delay`` seconds before each poll.

        Args:
            response: Response of the request that started the operation.
            retries: Maximum number of monitor polls.
            delay: Seconds to sleep before each poll.

        Returns:
            Response: The first response that is done.

        Raises:
            AsyncTimeoutError: If the operation is still running after
                ``retries`` polls.
        """
        if response.done():
            return response

        connector = self._require_connector()
        monitor = response.monitor()
        if monitor is None:
            raise NoAddressableIdError(
                "Running operation has no monitor location", response=response
            )
        if retries <= 0:
            raise AsyncTimeoutError(
                "Operation still running, no polls allowed", response=response
            )

        last = response

        async def poll() -> Response:
            nonlocal last, monitor
            logger.debug(f"Polling operation monitor {monitor}")
            last = await connector.request("GET", monitor)
            monitor = last.monitor() or monitor
            return last

        retrying = AsyncRetrying(
            stop=stop_after_attempt(retries),
            wait=wait_fixed(delay),
            retry=retry_if_result(lambda polled: not polled.done()),
        )
        await asyncio.sleep(delay)
        try:
            return await retrying(poll)
        except RetryError as e:
            raise AsyncTimeoutError(
                f"Operation still running after {retries} polls", response=last
            ) from e

    async def refresh(self) -> None:
        """Re-fetch the resource, bypassing the connector cache.

        ``raw`` and ``headers`` are replaced in place. Resources without an id
        are left untouched.
        """
        oid = self.oid
        if oid is None or self._connector is None:
            return
        path, _ = _split_id(oid)
        self._connector.reset(path)
        self.raw, self.headers = await self._fetch(self._connector, oid)
        self._memo.clear()
        logger.debug(f"Refreshed resource {oid}")
