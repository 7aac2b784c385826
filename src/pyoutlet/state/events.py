"""Normalized state updates.

All update paths (poll, on-demand read, command write, notification, MQTT)
convert their inputs into these events. Only the state store applies them.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class OutletProperty(StrEnum):
    """Observable outlet properties, valued by their characteristic names."""

    POWER = "On"
    OUTLET_IN_USE = "OutletInUse"


_PROPERTY_ALIASES: dict[str, OutletProperty] = {
    "on": OutletProperty.POWER,
    "power": OutletProperty.POWER,
    "outletinuse": OutletProperty.OUTLET_IN_USE,
    "outlet_in_use": OutletProperty.OUTLET_IN_USE,
}


def resolve_property(key: str) -> OutletProperty | None:
    """Map a push key (``"On"``, ``"power"``, ``"OutletInUse"``...) to a property."""
    if not isinstance(key, str):
        return None
    return _PROPERTY_ALIASES.get(key.strip().lower())


class UpdateSource(StrEnum):
    POLL = "poll"
    READ = "read"
    WRITE = "write"
    NOTIFICATION = "notification"
    MQTT = "mqtt"


class StateUpdate(BaseModel):
    """A single boolean assignment to apply to the state store."""

    model_config = ConfigDict(frozen=True)

    prop: OutletProperty
    value: bool
    source: UpdateSource
    observed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @field_validator("observed_at")
    @classmethod
    def _ensure_tz_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value
