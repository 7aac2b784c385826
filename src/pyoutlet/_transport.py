"""HTTP transport for outlet endpoints."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol

import aiohttp

from pyoutlet._constants import USER_AGENT
from pyoutlet.exceptions import OutletTransportError
from pyoutlet.models.endpoint import Endpoint

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HttpResponse:
    """Status code and decoded body of a completed request."""

    status: int
    body: str


class Transport(Protocol):
    """Structural transport interface used by the status/command modules.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production implementation (`AiohttpTransport`) concrete.
    """

    async def request(self, endpoint: Endpoint) -> HttpResponse:
        ...


class AiohttpTransport:
    """Issue endpoint requests through a shared :class:`aiohttp.ClientSession`.

    Status codes are returned as-is; interpreting them is up to the caller.
    Connection errors and timeouts are raised as :class:`OutletTransportError`.
    """

    def __init__(self, http_session: aiohttp.ClientSession) -> None:
        self._http = http_session

    async def request(self, endpoint: Endpoint) -> HttpResponse:
        auth = endpoint.auth
        if auth is not None and not auth.send_immediately:
            # Wait for the challenge before sending credentials.
            response = await self._send(endpoint, with_auth=False)
            if response.status != 401:
                return response
            _logger.debug("%s %s answered 401, retrying with credentials", endpoint.method, endpoint.url)
        return await self._send(endpoint, with_auth=auth is not None)

    async def _send(self, endpoint: Endpoint, *, with_auth: bool) -> HttpResponse:
        headers = {"user-agent": USER_AGENT, **endpoint.headers}
        basic_auth: aiohttp.BasicAuth | None = None
        if with_auth and endpoint.auth is not None:
            basic_auth = aiohttp.BasicAuth(endpoint.auth.username, endpoint.auth.password)

        kwargs: dict[str, Any] = {}
        if endpoint.request_timeout is not None:
            kwargs["timeout"] = aiohttp.ClientTimeout(total=endpoint.request_timeout)
        if not endpoint.strict_ssl:
            kwargs["ssl"] = False

        _logger.debug("%s %s", endpoint.method, endpoint.url)

        try:
            async with self._http.request(
                endpoint.method,
                endpoint.url,
                data=endpoint.body,
                headers=headers,
                auth=basic_auth,
                **kwargs,
            ) as resp:
                text = await resp.text()
                return HttpResponse(status=resp.status, body=text)
        except aiohttp.ClientError as exc:
            raise OutletTransportError(
                f"Request to {endpoint.url} failed: {exc}",
                endpoint=endpoint.url,
            ) from exc
        except TimeoutError as exc:
            raise OutletTransportError(
                f"Request to {endpoint.url} timed out",
                endpoint=endpoint.url,
            ) from exc
