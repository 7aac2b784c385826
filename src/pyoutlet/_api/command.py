"""Command writes: drive the outlet on or off."""

from __future__ import annotations

import logging

from pyoutlet._api._common import perform_request
from pyoutlet._transport import Transport
from pyoutlet.models.endpoint import Endpoint

_logger = logging.getLogger(__name__)


async def send_command(transport: Transport, endpoint: Endpoint) -> None:
    """Send a command request. Any 2xx answer counts as success; the body is ignored."""
    response = await perform_request(transport, endpoint)
    _logger.debug("Command %s %s returned %d", endpoint.method, endpoint.url, response.status)
