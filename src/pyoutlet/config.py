"""Outlet configuration for pyoutlet.

:func:`parse_config` validates an accessory config mapping (the JSON block a
host application hands over) and returns an immutable :class:`OutletConfig`.
Every problem is collected as a :class:`ConfigFinding`; warnings fall back
to defaults, errors are raised together as one
:class:`~pyoutlet.exceptions.OutletConfigError`.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Mapping
from enum import StrEnum
from typing import Any

from pydantic import ValidationError

from pyoutlet._cache import parse_cache_ttl
from pyoutlet._constants import DEFAULT_NAME, ms_to_seconds
from pyoutlet._pattern import DEFAULT_PATTERN, StatusPattern, compile_pattern
from pyoutlet.exceptions import OutletConfigError
from pyoutlet.models.endpoint import BasicAuth, Endpoint
from pyoutlet.models.mqtt import MqttOptions

_logger = logging.getLogger(__name__)


class FindingSeverity(StrEnum):
    ERROR = "error"
    WARNING = "warning"


@dataclasses.dataclass(frozen=True)
class ConfigFinding:
    """A single validation result for one config key."""

    key: str
    message: str
    severity: FindingSeverity

    def __str__(self) -> str:
        return f"{self.key}: {self.message}"


@dataclasses.dataclass(frozen=True)
class PowerConfig:
    """Endpoints and pattern for the on/off property."""

    on_endpoint: Endpoint
    off_endpoint: Endpoint
    status_endpoint: Endpoint
    status_pattern: StatusPattern = DEFAULT_PATTERN


@dataclasses.dataclass(frozen=True)
class OutletInUseConfig:
    """Endpoint and pattern for the optional outlet-in-use property."""

    status_endpoint: Endpoint
    status_pattern: StatusPattern = DEFAULT_PATTERN


@dataclasses.dataclass(frozen=True)
class OutletConfig:
    """Validated outlet configuration.

    Parameters
    ----------
    power : PowerConfig
        On, off and status endpoints plus the status pattern.
    name : str
        Accessory name, also used as the logger suffix.
    outlet_in_use : OutletInUseConfig or None
        Present when the outlet reports whether it draws load.
    status_cache_ttl : float
        Seconds a power status read stays fresh. ``0`` disables caching,
        ``math.inf`` caches forever after the first successful read.
    outlet_in_use_cache_ttl : float
        Same as ``status_cache_ttl`` for the outlet-in-use property.
    pull_interval : float or None
        Seconds between scheduled power polls. ``None`` disables polling.
    auth : BasicAuth or None
        Credentials applied to every endpoint.
    notification_id : str or None
        Key under which the outlet receives notification pushes.
    notification_password : str or None
        Password the notification sender must present.
    mqtt : MqttOptions or None
        Message-bus subscription settings.
    debug : bool
        Log at DEBUG level for this outlet.
    warnings : tuple of ConfigFinding
        Non-fatal findings resolved by falling back to defaults.
    """

    power: PowerConfig
    name: str = DEFAULT_NAME
    outlet_in_use: OutletInUseConfig | None = None
    status_cache_ttl: float = 0.0
    outlet_in_use_cache_ttl: float = 0.0
    pull_interval: float | None = None
    auth: BasicAuth | None = None
    notification_id: str | None = None
    notification_password: str | None = None
    mqtt: MqttOptions | None = None
    debug: bool = False
    warnings: tuple[ConfigFinding, ...] = ()

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any], *, logger: logging.Logger | None = None) -> OutletConfig:
        return parse_config(raw, logger=logger)

    def endpoints(self) -> list[Endpoint]:
        """All configured endpoints, power first."""
        result = [self.power.on_endpoint, self.power.off_endpoint, self.power.status_endpoint]
        if self.outlet_in_use is not None:
            result.append(self.outlet_in_use.status_endpoint)
        return result


class _ConfigBuilder:
    """Accumulates findings while reading a raw config mapping."""

    def __init__(self, raw: Mapping[str, Any], logger: logging.Logger) -> None:
        self._raw = raw
        self._logger = logger
        self.findings: list[ConfigFinding] = []

    @property
    def errors(self) -> list[ConfigFinding]:
        return [f for f in self.findings if f.severity is FindingSeverity.ERROR]

    @property
    def warnings(self) -> list[ConfigFinding]:
        return [f for f in self.findings if f.severity is FindingSeverity.WARNING]

    def error(self, key: str, message: str) -> None:
        self.findings.append(ConfigFinding(key, message, FindingSeverity.ERROR))
        self._logger.warning("Property '%s': %s", key, message)

    def warn(self, key: str, message: str) -> None:
        self.findings.append(ConfigFinding(key, message, FindingSeverity.WARNING))
        self._logger.warning("Property '%s': %s", key, message)

    def endpoint(self, source: Mapping[str, Any], key: str, label: str) -> Endpoint | None:
        value = source.get(key)
        if not value:
            self.error(label, "is required")
            return None
        try:
            return Endpoint.from_config(value)
        except ValueError as exc:
            self.error(label, f"could not be parsed: {exc}")
            return None

    def pattern(self, source: Mapping[str, Any], key: str, label: str) -> StatusPattern:
        try:
            return compile_pattern(source.get(key))
        except OutletConfigError as exc:
            self.warn(label, f"{exc}. Using the default one!")
            return DEFAULT_PATTERN

    def cache_ttl(self, key: str) -> float:
        try:
            return parse_cache_ttl(self._raw.get(key))
        except ValueError:
            self.warn(key, "was given in an unsupported type. Using default one!")
            return 0.0

    def pull_interval(self) -> float | None:
        value = self._raw.get("pullInterval")
        if not value:
            return None
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not value > 0:
            self.warn("pullInterval", "must be a positive number of milliseconds. Polling disabled!")
            return None
        return ms_to_seconds(value)

    def auth(self) -> BasicAuth | None:
        value = self._raw.get("auth")
        if value is None:
            return None
        if not isinstance(value, Mapping):
            self.warn("auth", "needs to be an object. Authentication disabled!")
            return None
        username = value.get("username")
        password = value.get("password")
        if not (username and password):
            self.warn("auth", "'auth.username' and/or 'auth.password' was not set!")
            return None
        send_immediately = value.get("sendImmediately")
        return BasicAuth(
            username=str(username),
            password=str(password),
            send_immediately=send_immediately if isinstance(send_immediately, bool) else True,
        )

    def mqtt(self) -> MqttOptions | None:
        value = self._raw.get("mqtt")
        if value is None:
            return None
        try:
            return MqttOptions.model_validate(value)
        except ValidationError as exc:
            self.findings.append(ConfigFinding("mqtt", str(exc), FindingSeverity.WARNING))
            self._logger.error("Error occurred while parsing MQTT property: %s", exc)
            self._logger.error("MQTT will not be enabled!")
            return None

    def optional_str(self, key: str) -> str | None:
        value = self._raw.get(key)
        if value is None or value == "":
            return None
        if isinstance(value, bool) or not isinstance(value, (str, int)):
            self.warn(key, "needs to be a string. Ignoring it!")
            return None
        return str(value)


def parse_config(raw: Mapping[str, Any], *, logger: logging.Logger | None = None) -> OutletConfig:
    """Validate *raw* and build an :class:`OutletConfig`.

    Raises
    ------
    OutletConfigError
        When any required property is missing or unparseable. ``errors``
        lists every fatal finding.
    """
    log = logger or _logger
    if not isinstance(raw, Mapping):
        raise OutletConfigError("Outlet configuration must be a mapping")

    builder = _ConfigBuilder(raw, log)

    on_endpoint = builder.endpoint(raw, "onUrl", "onUrl")
    off_endpoint = builder.endpoint(raw, "offUrl", "offUrl")
    status_endpoint = builder.endpoint(raw, "statusUrl", "statusUrl")
    status_pattern = builder.pattern(raw, "statusPattern", "statusPattern")

    outlet_in_use: OutletInUseConfig | None = None
    raw_in_use = raw.get("outletInUse")
    if raw_in_use is not None:
        if not isinstance(raw_in_use, Mapping):
            builder.error("outletInUse", "needs to be an object")
        else:
            in_use_endpoint = builder.endpoint(raw_in_use, "statusUrl", "outletInUse.statusUrl")
            in_use_pattern = builder.pattern(raw_in_use, "statusPattern", "outletInUse.statusPattern")
            if in_use_endpoint is not None:
                outlet_in_use = OutletInUseConfig(in_use_endpoint, in_use_pattern)

    status_cache_ttl = builder.cache_ttl("statusCache")
    outlet_in_use_cache_ttl = builder.cache_ttl("outletInUseCache")
    pull_interval = builder.pull_interval()
    auth = builder.auth()
    notification_id = builder.optional_str("notificationID")
    notification_password = builder.optional_str("notificationPassword")
    mqtt_options = builder.mqtt()

    name = raw.get("name")
    if name is not None and not isinstance(name, str):
        builder.warn("name", "needs to be a string. Using default one!")
        name = None

    errors = builder.errors
    if errors or on_endpoint is None or off_endpoint is None or status_endpoint is None:
        messages = [str(f) for f in errors]
        raise OutletConfigError(
            "Invalid outlet configuration: " + "; ".join(messages),
            errors=messages,
        )

    if auth is not None:
        on_endpoint = on_endpoint.with_auth(auth)
        off_endpoint = off_endpoint.with_auth(auth)
        status_endpoint = status_endpoint.with_auth(auth)
        if outlet_in_use is not None:
            outlet_in_use = dataclasses.replace(
                outlet_in_use,
                status_endpoint=outlet_in_use.status_endpoint.with_auth(auth),
            )

    return OutletConfig(
        power=PowerConfig(on_endpoint, off_endpoint, status_endpoint, status_pattern),
        name=name or DEFAULT_NAME,
        outlet_in_use=outlet_in_use,
        status_cache_ttl=status_cache_ttl,
        outlet_in_use_cache_ttl=outlet_in_use_cache_ttl,
        pull_interval=pull_interval,
        auth=auth,
        notification_id=notification_id,
        notification_password=notification_password,
        mqtt=mqtt_options,
        debug=bool(raw.get("debug", False)),
        warnings=tuple(builder.warnings),
    )
