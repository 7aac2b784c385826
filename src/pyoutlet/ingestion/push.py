"""Push reconciliation.

Notification and MQTT updates arrive outside the poll cycle. The reconciler
resolves the pushed key to a property, writes the value into the state store
and, for the power property, defers the next scheduled poll.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any

from pydantic import ValidationError

from pyoutlet.exceptions import UnknownPropertyError
from pyoutlet.ingestion.normalize import coerce_bool
from pyoutlet.models.notification import NotificationBody
from pyoutlet.state.events import OutletProperty, StateUpdate, UpdateSource, resolve_property
from pyoutlet.state.store import DeviceState


class PushReconciler:
    """Apply pushed values to a :class:`DeviceState`.

    Push sources cannot be blocked, so nothing here raises: unknown keys and
    uninterpretable values are logged and dropped, and the return value only
    says whether the update was applied.
    """

    def __init__(
        self,
        state: DeviceState,
        *,
        reset_timer: Callable[[], None] | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._state = state
        self._reset_timer = reset_timer
        self._logger = logger or logging.getLogger(__name__)

    def resolve(self, key: str) -> OutletProperty:
        """Return the exposed property for *key* or raise :class:`UnknownPropertyError`."""
        prop = resolve_property(key)
        if prop is None or not self._state.exposes(prop):
            raise UnknownPropertyError(str(key))
        return prop

    def apply_notification(
        self,
        key: str,
        value: Any,
        *,
        source: UpdateSource = UpdateSource.NOTIFICATION,
    ) -> bool:
        try:
            prop = self.resolve(key)
        except UnknownPropertyError:
            self._logger.info(
                "Encountered unknown characteristic when handling %s update "
                "(or characteristic which wasn't added to the service): %s",
                source.value,
                key,
            )
            return False

        try:
            flag = coerce_bool(value)
        except ValueError as exc:
            self._logger.warning("Ignoring %s update for '%s': %s", source.value, prop.value, exc)
            return False

        if prop is OutletProperty.POWER and self._reset_timer is not None:
            self._reset_timer()

        self._logger.info("Updating '%s' to new value: %s", prop.value, flag)
        self._state.apply(StateUpdate(prop=prop, value=flag, source=source))
        return True

    def handle_notification(self, body: Mapping[str, Any]) -> bool:
        """Apply a notification-server body ``{"characteristic": ..., "value": ...}``."""
        try:
            notification = NotificationBody.model_validate(body)
        except ValidationError as exc:
            self._logger.warning("Ignoring malformed notification body: %s", exc)
            return False
        return self.apply_notification(notification.characteristic, notification.value)
