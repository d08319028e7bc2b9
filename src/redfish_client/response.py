# redfish_client/response.py
"""Immutable value object describing one completed HTTP exchange."""

import base64
import json
from http import HTTPStatus
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field


def location_path(location: str) -> str:
    """Strip scheme and authority from a location, keeping path and query.

    Both absolute (``http://host:1/p?q``) and relative (``/p?q``) locations
    are reduced to ``/p?q``.
    """
    return httpx.URL(location).raw_path.decode("ascii")


class Response(BaseModel):
    """Status, headers and body of a service response.

    A response with status 202 represents an asynchronous operation that is
    still running; its ``Location`` header points to the monitor that can be
    polled for progress.

    Attributes:
        status: HTTP status code.
        headers: Response headers. The connector stores names in lower case.
        body: Raw response body.
    """

    model_config = ConfigDict(frozen=True)

    status: int
    headers: dict[str, str] = Field(default_factory=dict)
    body: bytes = b""

    def header(self, name: str) -> str | None:
        """Case-insensitive header lookup."""
        wanted = name.lower()
        for key, value in self.headers.items():
            if key.lower() == wanted:
                return value
        return None

    def done(self) -> bool:
        """Return True unless the response belongs to a running operation."""
        return self.status != HTTPStatus.ACCEPTED

    def monitor(self) -> str | None:
        """Return the path and query of the monitor for a running operation."""
        if self.done():
            return None
        location = self.header("Location")
        return location_path(location) if location else None

    def json(self) -> Any:
        """Decode the body as JSON."""
        return json.loads(self.body)

    def to_record(self) -> dict[str, Any]:
        """Serialize into a plain record that can cross process boundaries.

        The body is stored base64-encoded so binary content survives.
        """
        record = self.model_dump(exclude={"body"})
        record["body"] = base64.b64encode(self.body).decode("ascii")
        return record

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> "Response":
        """Rebuild a response from a record produced by ``to_record``."""
        body = data.get("body") or ""
        return cls.model_validate(
            {**data, "body": base64.b64decode(body, validate=True)}
        )

    def __str__(self) -> str:
        body = self.body.decode("utf-8", errors="replace")
        return f"Response[status={self.status}, headers={self.headers}, body='{body}']"
