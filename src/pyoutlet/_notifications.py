"""Notification push channel.

Outlets register under their ``notificationID``; a notification server
(see :func:`create_notification_app`) looks the ID up and hands the body to
the registered handler.
"""

from __future__ import annotations

import hmac
import json
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from aiohttp import web

from pyoutlet.exceptions import OutletConfigError

_logger = logging.getLogger(__name__)

NotificationHandler = Callable[[Mapping[str, Any]], bool]


class DispatchResult(StrEnum):
    DELIVERED = "delivered"
    UNKNOWN_ID = "unknown_id"
    UNAUTHORIZED = "unauthorized"
    REJECTED = "rejected"


@dataclass(frozen=True)
class _Registration:
    handler: NotificationHandler
    password: str | None


class NotificationRegistry:
    """Maps notification IDs to handlers."""

    def __init__(self) -> None:
        self._registrations: dict[str, _Registration] = {}

    def __contains__(self, notification_id: object) -> bool:
        return notification_id in self._registrations

    def register(
        self,
        notification_id: str,
        handler: NotificationHandler,
        *,
        password: str | None = None,
    ) -> None:
        if notification_id in self._registrations:
            raise OutletConfigError(f"notificationID {notification_id!r} is already registered")
        self._registrations[notification_id] = _Registration(handler, password)
        _logger.debug("Registered notification handler id=%s", notification_id)

    def unregister(self, notification_id: str) -> None:
        self._registrations.pop(notification_id, None)

    def dispatch(
        self,
        notification_id: str,
        body: Mapping[str, Any],
        *,
        password: str | None = None,
    ) -> DispatchResult:
        registration = self._registrations.get(notification_id)
        if registration is None:
            _logger.info("Received notification for unknown id=%s", notification_id)
            return DispatchResult.UNKNOWN_ID

        expected = registration.password
        if expected is not None and (
            password is None or not hmac.compare_digest(password.encode(), expected.encode())
        ):
            _logger.warning("Rejected notification for id=%s: bad password", notification_id)
            return DispatchResult.UNAUTHORIZED

        try:
            accepted = registration.handler(body)
        except Exception:
            _logger.warning("Notification handler failed for id=%s", notification_id, exc_info=True)
            return DispatchResult.REJECTED
        return DispatchResult.DELIVERED if accepted else DispatchResult.REJECTED


def _password_from_request(request: web.Request) -> str | None:
    header = request.headers.get("Authorization")
    if header is None:
        return None
    if header.lower().startswith("bearer "):
        return header[7:].strip()
    return header.strip()


_STATUS_BY_RESULT: dict[DispatchResult, int] = {
    DispatchResult.DELIVERED: 200,
    DispatchResult.UNKNOWN_ID: 404,
    DispatchResult.UNAUTHORIZED: 401,
    DispatchResult.REJECTED: 400,
}


def create_notification_app(registry: NotificationRegistry) -> web.Application:
    """Build an aiohttp application accepting ``POST /{notification_id}``.

    The body is JSON ``{"characteristic": "On", "value": true}``; the
    password, if the outlet has one, goes in the ``Authorization`` header.
    """

    async def handle(request: web.Request) -> web.Response:
        notification_id = request.match_info["notification_id"]
        try:
            body = await request.json()
        except json.JSONDecodeError:
            return web.json_response({"error": "body is not valid JSON"}, status=400)
        if not isinstance(body, dict):
            return web.json_response({"error": "body must be a JSON object"}, status=400)

        result = registry.dispatch(notification_id, body, password=_password_from_request(request))
        status = _STATUS_BY_RESULT[result]
        return web.json_response({"result": result.value}, status=status)

    app = web.Application()
    app.router.add_post("/{notification_id}", handle)
    return app
