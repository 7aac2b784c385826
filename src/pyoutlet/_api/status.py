"""Status reads: query an endpoint and interpret the body."""

from __future__ import annotations

import logging

from pyoutlet._api._common import perform_request
from pyoutlet._pattern import StatusPattern
from pyoutlet._transport import Transport
from pyoutlet.models.endpoint import Endpoint

_logger = logging.getLogger(__name__)


async def fetch_status(transport: Transport, endpoint: Endpoint, pattern: StatusPattern) -> bool:
    """Fetch a status endpoint and return whether *pattern* matches the body.

    Raises :class:`~pyoutlet.exceptions.OutletTransportError` on network
    failure and :class:`~pyoutlet.exceptions.OutletHttpStatusError` for
    non-2xx answers. A status query never changes device state.
    """
    response = await perform_request(transport, endpoint)
    matched = pattern.test(response.body)
    _logger.debug(
        "Status %s returned %d body=%r pattern=%r matched=%s",
        endpoint.url,
        response.status,
        response.body[:200],
        pattern.source,
        matched,
    )
    return matched
