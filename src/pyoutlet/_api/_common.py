"""Shared helpers for the status and command modules.

It is internal to pyoutlet and may change at any time.
"""

from __future__ import annotations

from pyoutlet._constants import is_http_success
from pyoutlet._transport import HttpResponse, Transport
from pyoutlet.exceptions import OutletHttpStatusError
from pyoutlet.models.endpoint import Endpoint


def raise_for_status(response: HttpResponse, endpoint: Endpoint) -> None:
    """Raise :class:`OutletHttpStatusError` for non-2xx responses."""
    if is_http_success(response.status):
        return
    raise OutletHttpStatusError(
        f"HTTP {response.status} from {endpoint.url}: {response.body[:200]}",
        status_code=response.status,
        body=response.body,
        endpoint=endpoint.url,
    )


async def perform_request(transport: Transport, endpoint: Endpoint) -> HttpResponse:
    """Issue *endpoint* and return the response, raising on transport or status errors."""
    response = await transport.request(endpoint)
    raise_for_status(response, endpoint)
    return response
