"""HTTP endpoint descriptors."""

from __future__ import annotations

import json
from typing import Any
from urllib.parse import urlsplit

from pydantic import AliasChoices, Field, field_validator

from pyoutlet._constants import ms_to_seconds
from pyoutlet.models._base import OutletBaseModel


class BasicAuth(OutletBaseModel):
    """Basic-auth credentials attached to an endpoint."""

    username: str
    password: str
    send_immediately: bool = True
    """Send credentials with the first request instead of waiting for a 401 challenge."""


class Endpoint(OutletBaseModel):
    """A single request the outlet can issue.

    Config accepts either a bare URL string or an object::

        {"url": "http://plug.local/on", "method": "POST", "body": "...",
         "headers": {"X-Key": "..."}, "strictSSL": false, "requestTimeout": 2000}
    """

    url: str
    method: str = "GET"
    body: str | None = None
    auth: BasicAuth | None = None
    headers: dict[str, str] = Field(default_factory=dict)
    strict_ssl: bool = Field(default=True, validation_alias=AliasChoices("strictSSL", "strictSsl", "strict_ssl"))
    request_timeout_ms: float | None = Field(
        default=None,
        validation_alias=AliasChoices("requestTimeout", "request_timeout_ms"),
    )

    @classmethod
    def from_config(cls, value: Any) -> Endpoint:
        """Build an endpoint from a URL string or descriptor mapping.

        Raises :class:`ValueError` (or pydantic's ``ValidationError``, a
        subclass) when the value cannot be parsed.
        """
        if isinstance(value, str):
            return cls.model_validate({"url": value})
        if isinstance(value, dict):
            return cls.model_validate(value)
        raise ValueError(f"endpoint must be a URL string or an object, got {type(value).__name__}")

    @field_validator("url")
    @classmethod
    def _validate_url(cls, value: str) -> str:
        url = value.strip()
        parts = urlsplit(url)
        if parts.scheme not in ("http", "https") or not parts.netloc:
            raise ValueError(f"not an http(s) URL: {value!r}")
        return url

    @field_validator("method")
    @classmethod
    def _normalize_method(cls, value: str) -> str:
        method = value.strip().upper()
        if not method:
            raise ValueError("method must be non-empty")
        return method

    @field_validator("body", mode="before")
    @classmethod
    def _encode_body(cls, value: Any) -> Any:
        if isinstance(value, (dict, list)):
            return json.dumps(value)
        return value

    @property
    def request_timeout(self) -> float | None:
        """Request timeout in seconds, if configured."""
        if self.request_timeout_ms is None or self.request_timeout_ms <= 0:
            return None
        return ms_to_seconds(self.request_timeout_ms)

    def with_auth(self, auth: BasicAuth) -> Endpoint:
        return self.model_copy(update={"auth": auth})
