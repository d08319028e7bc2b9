# redfish_client/types.py
"""Core type definitions shared by the connector and the resource graph."""

import json
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field

JsonObject = dict[str, Any]
"""Type alias for a decoded JSON object."""


class RequestData(BaseModel):
    """Encapsulates data for a single HTTP request attempt."""

    method: str
    url: str
    payload: Any | None = None
    headers: dict[str, str] = Field(default_factory=dict)

    model_config = ConfigDict(extra="forbid")

    def build_request(self) -> httpx.Request:
        """Builds an httpx.Request object from the stored data.

        Requests with a payload carry it JSON-encoded together with a
        ``Content-Type: application/json`` header.
        """
        headers = dict(self.headers)
        content = None
        if self.payload is not None:
            headers["Content-Type"] = "application/json"
            content = json.dumps(self.payload).encode("utf-8")
        return httpx.Request(
            method=self.method,
            url=self.url,
            content=content,
            headers=headers,
        )
