"""Authoritative in-memory outlet state.

This is the only component allowed to assign property values. Updates are
single scalar assignments applied on the event loop thread, so the last
update applied wins.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import datetime

from pydantic import BaseModel, ConfigDict

from pyoutlet.exceptions import UnknownPropertyError
from pyoutlet.state.events import OutletProperty, StateUpdate, UpdateSource

_logger = logging.getLogger(__name__)

StateListener = Callable[[OutletProperty, bool], None]


class PropertySnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    value: bool
    source: UpdateSource
    observed_at: datetime


class DeviceState:
    """Current boolean value of each exposed property.

    Values start unset (``None``) and are filled by the first poll, read,
    write or push. Listeners are called after every applied update.
    """

    def __init__(self, properties: Iterable[OutletProperty]) -> None:
        self._exposed: frozenset[OutletProperty] = frozenset(properties)
        self._snapshots: dict[OutletProperty, PropertySnapshot] = {}
        self._listeners: list[StateListener] = []

    @property
    def properties(self) -> frozenset[OutletProperty]:
        return self._exposed

    def exposes(self, prop: OutletProperty) -> bool:
        return prop in self._exposed

    def add_listener(self, listener: StateListener) -> Callable[[], None]:
        """Register *listener*; returns a callable that removes it."""
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    def apply(self, update: StateUpdate) -> None:
        """Assign the update's value. Raises :class:`UnknownPropertyError` for unexposed properties."""
        if update.prop not in self._exposed:
            raise UnknownPropertyError(update.prop.value)

        self._snapshots[update.prop] = PropertySnapshot(
            value=update.value,
            source=update.source,
            observed_at=update.observed_at,
        )
        for listener in list(self._listeners):
            try:
                listener(update.prop, update.value)
            except Exception:
                _logger.warning("State listener failed for %s", update.prop.value, exc_info=True)

    def get(self, prop: OutletProperty) -> bool | None:
        snapshot = self._snapshots.get(prop)
        return snapshot.value if snapshot is not None else None

    def snapshot(self, prop: OutletProperty) -> PropertySnapshot | None:
        return self._snapshots.get(prop)

    @property
    def power(self) -> bool | None:
        return self.get(OutletProperty.POWER)

    @property
    def outlet_in_use(self) -> bool | None:
        return self.get(OutletProperty.OUTLET_IN_USE)

    def as_dict(self) -> dict[str, bool | None]:
        return {prop.value: self.get(prop) for prop in sorted(self._exposed)}
