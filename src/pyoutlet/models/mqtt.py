"""MQTT subscription options."""

from __future__ import annotations

import re
from typing import Any, Literal

from pydantic import Field, field_validator, model_validator

from pyoutlet._constants import MQTT_DEFAULT_KEEPALIVE, MQTT_DEFAULT_PORT, MQTT_DEFAULT_TLS_PORT
from pyoutlet.models._base import OutletBaseModel


class MqttSubscription(OutletBaseModel):
    """One topic feeding one outlet property."""

    topic: str
    characteristic: str
    message_pattern: str | None = None
    """Optional regex applied to the payload; the extracted group is the value."""
    pattern_group_to_extract: int = Field(default=1, ge=0)

    @field_validator("topic", "characteristic")
    @classmethod
    def _non_empty(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("must be non-empty")
        return stripped

    @field_validator("message_pattern")
    @classmethod
    def _compiles(cls, value: str | None) -> str | None:
        if value is not None:
            try:
                re.compile(value)
            except re.error as exc:
                raise ValueError(f"invalid messagePattern: {exc}") from exc
        return value


class MqttOptions(OutletBaseModel):
    """Broker connection and subscription settings from the ``mqtt`` config block."""

    host: str
    port: int | None = Field(default=None, gt=0, lt=65536)
    protocol: Literal["mqtt", "mqtts"] = "mqtt"
    username: str | None = None
    password: str | None = None
    client_id: str | None = None
    keepalive: int = Field(default=MQTT_DEFAULT_KEEPALIVE, gt=0)
    qos: Literal[0, 1, 2] = 1
    subscriptions: list[MqttSubscription] = Field(..., min_length=1)

    @model_validator(mode="before")
    @classmethod
    def _flatten_credentials(cls, values: Any) -> Any:
        """Accept ``credentials: {username, password}`` as used by older configs."""
        if not isinstance(values, dict):
            return values
        credentials = values.get("credentials")
        if not isinstance(credentials, dict):
            return values
        merged = dict(values)
        merged.setdefault("username", credentials.get("username"))
        merged.setdefault("password", credentials.get("password"))
        return merged

    @field_validator("host")
    @classmethod
    def _strip_host(cls, value: str) -> str:
        host = value.strip()
        if "://" in host:
            host = host.split("://", 1)[1]
        if not host:
            raise ValueError("host must be non-empty")
        return host

    @property
    def use_tls(self) -> bool:
        return self.protocol == "mqtts"

    @property
    def resolved_port(self) -> int:
        if self.port is not None:
            return self.port
        return MQTT_DEFAULT_TLS_PORT if self.use_tls else MQTT_DEFAULT_PORT
