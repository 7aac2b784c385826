"""High-level async HTTP outlet."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, Protocol

import aiohttp

from pyoutlet._api.command import send_command
from pyoutlet._api.status import fetch_status
from pyoutlet._cache import CacheGate
from pyoutlet._constants import MANUFACTURER, MODEL, SERIAL_NUMBER, VERSION
from pyoutlet._mqtt import OutletMqttRuntime
from pyoutlet._notifications import NotificationRegistry
from pyoutlet._pattern import StatusPattern
from pyoutlet._pull_timer import PullTimer
from pyoutlet._redact import redact_for_log
from pyoutlet._transport import AiohttpTransport, Transport
from pyoutlet.config import OutletConfig
from pyoutlet.exceptions import OutletError, OutletRequestError
from pyoutlet.ingestion.mqtt import extract_value
from pyoutlet.ingestion.push import PushReconciler
from pyoutlet.models.endpoint import Endpoint
from pyoutlet.models.mqtt import MqttSubscription
from pyoutlet.state.events import OutletProperty, StateUpdate, UpdateSource
from pyoutlet.state.store import DeviceState, StateListener

_logger = logging.getLogger(__name__)


class OutletDevice(Protocol):
    """What an accessory framework needs from an outlet."""

    async def read_power(self) -> bool:
        ...

    async def write_power(self, on: bool) -> None:
        ...

    async def read_outlet_in_use(self) -> bool:
        ...

    def apply_notification(self, key: str, value: Any) -> bool:
        ...


@dataclass(frozen=True)
class AccessoryInformation:
    manufacturer: str
    model: str
    serial_number: str
    firmware_revision: str


def _on_off(value: bool) -> str:
    return "ON" if value else "OFF"


class HttpOutlet:
    """Async outlet driven over HTTP, with optional polling and push updates.

    Usage::

        config = parse_config(raw_accessory_config)
        async with HttpOutlet(config, on_state_change=update_characteristic) as outlet:
            await outlet.write_power(True)
            is_on = await outlet.read_power()

    Reads consult the per-property cache first and only hit the status
    endpoint when the cached value is stale. Writes always go to the device.
    Notifications and MQTT messages are applied through the same
    :class:`PushReconciler`; a pushed power value defers the next poll.
    """

    def __init__(
        self,
        config: OutletConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        transport: Transport | None = None,
        on_state_change: StateListener | None = None,
        notification_registry: NotificationRegistry | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config
        self._logger = _logger.getChild(config.name)
        if config.debug:
            self._logger.setLevel(logging.DEBUG)

        self._http_session = session
        self._owns_session = False
        self._transport = transport
        self._owns_transport = transport is None
        self._notification_registry = notification_registry
        self._notification_registered = False
        self._mqtt_runtime: OutletMqttRuntime | None = None

        properties = [OutletProperty.POWER]
        if config.outlet_in_use is not None:
            properties.append(OutletProperty.OUTLET_IN_USE)
        self._state = DeviceState(properties)
        if on_state_change is not None:
            self._state.add_listener(on_state_change)

        self._status_cache = CacheGate(config.status_cache_ttl, clock=clock)
        self._outlet_in_use_cache = CacheGate(config.outlet_in_use_cache_ttl, clock=clock)

        self._pull_timer: PullTimer | None = None
        if config.pull_interval:
            # Only the power property is polled; it is the one that changes most.
            self._pull_timer = PullTimer(
                config.pull_interval,
                self._poll_power,
                self._apply_poll_result,
                logger=self._logger,
            )

        self._reconciler = PushReconciler(
            self._state,
            reset_timer=self._reset_pull_timer,
            logger=self._logger,
        )

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> HttpOutlet:
        await self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def start(self) -> None:
        """Open the transport and start polling and push channels."""
        if self._transport is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
                self._owns_session = True
            self._transport = AiohttpTransport(self._http_session)

        try:
            self._register_notifications()
            if self._pull_timer is not None:
                self._pull_timer.start()
            await self._ensure_mqtt_started()
        except BaseException:
            await self.close()
            raise

        self._logger.info("Outlet successfully configured...")
        self._log_configuration()

    async def close(self) -> None:
        if self._pull_timer is not None:
            self._pull_timer.stop()

        if self._notification_registered and self._notification_registry is not None:
            assert self._config.notification_id is not None  # noqa: S101
            self._notification_registry.unregister(self._config.notification_id)
            self._notification_registered = False

        await self._stop_mqtt()

        if self._owns_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
            self._owns_session = False
        if self._owns_transport:
            self._transport = None

    # ------------------------------------------------------------------
    # Public state
    # ------------------------------------------------------------------

    @property
    def config(self) -> OutletConfig:
        return self._config

    @property
    def name(self) -> str:
        return self._config.name

    @property
    def state(self) -> DeviceState:
        return self._state

    @property
    def pull_timer(self) -> PullTimer | None:
        return self._pull_timer

    @property
    def mqtt_runtime(self) -> OutletMqttRuntime | None:
        return self._mqtt_runtime

    @property
    def information(self) -> AccessoryInformation:
        return AccessoryInformation(
            manufacturer=MANUFACTURER,
            model=MODEL,
            serial_number=SERIAL_NUMBER,
            firmware_revision=VERSION,
        )

    def identify(self) -> None:
        self._logger.info("Identify requested!")

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_transport(self) -> Transport:
        if self._transport is None:
            raise OutletError("Outlet not initialized. Use 'async with HttpOutlet(...) as outlet:'")
        return self._transport

    def _reset_pull_timer(self) -> None:
        if self._pull_timer is not None:
            self._pull_timer.reset_timer()

    async def _read_status(
        self,
        operation: str,
        prop: OutletProperty,
        endpoint: Endpoint,
        pattern: StatusPattern,
        cache: CacheGate,
    ) -> tuple[bool, bool]:
        """Return ``(value, fetched)``, serving from state while the cache is fresh."""
        cached = self._state.get(prop)
        if cached is not None and not cache.should_query():
            self._logger.debug(
                "%s returning cached value '%s'%s",
                operation,
                cached,
                " (infinite cache)" if cache.is_infinite else "",
            )
            return cached, False

        transport = self._require_transport()
        try:
            value = await fetch_status(transport, endpoint, pattern)
        except OutletRequestError as exc:
            self._logger.warning("%s failed: %s", operation, exc)
            raise

        cache.mark_queried()
        return value, True

    async def _poll_power(self) -> bool:
        power = self._config.power
        value, _fetched = await self._read_status(
            "poll_power()",
            OutletProperty.POWER,
            power.status_endpoint,
            power.status_pattern,
            self._status_cache,
        )
        return value

    def _apply_poll_result(self, value: bool) -> None:
        self._state.apply(StateUpdate(prop=OutletProperty.POWER, value=value, source=UpdateSource.POLL))

    # ------------------------------------------------------------------
    # Read / write entry points
    # ------------------------------------------------------------------

    async def read_power(self) -> bool:
        """Return whether the outlet is on."""
        self._reset_pull_timer()
        power = self._config.power
        value, fetched = await self._read_status(
            "read_power()",
            OutletProperty.POWER,
            power.status_endpoint,
            power.status_pattern,
            self._status_cache,
        )
        if fetched:
            self._logger.debug("read_power() power is currently %s", _on_off(value))
            self._state.apply(StateUpdate(prop=OutletProperty.POWER, value=value, source=UpdateSource.READ))
        return value

    async def write_power(self, on: bool) -> None:
        """Switch the outlet. The new value is assumed until a poll or push says otherwise."""
        self._reset_pull_timer()
        power = self._config.power
        endpoint = power.on_endpoint if on else power.off_endpoint
        transport = self._require_transport()
        try:
            await send_command(transport, endpoint)
        except OutletRequestError as exc:
            self._logger.warning("write_power() failed: %s", exc)
            raise

        self._logger.debug("write_power() successfully set power to %s", _on_off(on))
        self._state.apply(StateUpdate(prop=OutletProperty.POWER, value=on, source=UpdateSource.WRITE))

    async def read_outlet_in_use(self) -> bool:
        """Return whether the outlet currently draws load."""
        in_use = self._config.outlet_in_use
        if in_use is None:
            raise OutletError("outletInUse is not configured for this outlet")
        value, fetched = await self._read_status(
            "read_outlet_in_use()",
            OutletProperty.OUTLET_IN_USE,
            in_use.status_endpoint,
            in_use.status_pattern,
            self._outlet_in_use_cache,
        )
        if fetched:
            self._logger.debug("read_outlet_in_use() outlet is currently %sIN USE", "" if value else "NOT ")
            self._state.apply(
                StateUpdate(prop=OutletProperty.OUTLET_IN_USE, value=value, source=UpdateSource.READ)
            )
        return value

    # ------------------------------------------------------------------
    # Push channels
    # ------------------------------------------------------------------

    def apply_notification(self, key: str, value: Any) -> bool:
        """Apply a pushed value. Never raises; returns whether it was applied."""
        return self._reconciler.apply_notification(key, value)

    def handle_notification(self, body: Mapping[str, Any]) -> bool:
        return self._reconciler.handle_notification(body)

    def _register_notifications(self) -> None:
        notification_id = self._config.notification_id
        if notification_id is None or self._notification_registered:
            return
        if self._notification_registry is None:
            self._logger.debug("notificationID %s set but no notification registry given", notification_id)
            return
        self._notification_registry.register(
            notification_id,
            self.handle_notification,
            password=self._config.notification_password,
        )
        self._notification_registered = True

    def _on_mqtt_message(self, subscription: MqttSubscription, payload: bytes) -> None:
        try:
            value = extract_value(subscription, payload)
        except ValueError as exc:
            self._logger.warning("Ignoring MQTT message on %s: %s", subscription.topic, exc)
            return
        self._reconciler.apply_notification(subscription.characteristic, value, source=UpdateSource.MQTT)

    async def _ensure_mqtt_started(self) -> None:
        """Start the MQTT client; a broker that is down is retried in the background.

        Only setup errors (e.g. TLS context creation) disable MQTT, and never the HTTP path.
        """
        options = self._config.mqtt
        if options is None:
            return
        if self._mqtt_runtime is not None and self._mqtt_runtime.is_running:
            return
        loop = asyncio.get_running_loop()
        runtime = OutletMqttRuntime(
            options=options,
            loop=loop,
            on_message=self._on_mqtt_message,
            logger=self._logger,
        )
        try:
            await loop.run_in_executor(None, runtime.start)
        except Exception as exc:
            self._logger.error("Error occurred creating MQTT client: %s", exc)
            self._logger.debug("MQTT startup failed", exc_info=True)
            return
        self._mqtt_runtime = runtime

    async def _stop_mqtt(self) -> None:
        runtime = self._mqtt_runtime
        self._mqtt_runtime = None
        if runtime is None:
            return
        try:
            await asyncio.get_running_loop().run_in_executor(None, runtime.stop)
        except Exception:
            self._logger.debug("MQTT runtime stop failed", exc_info=True)

    def _log_configuration(self) -> None:
        if not self._logger.isEnabledFor(logging.DEBUG):
            return
        config = self._config
        self._logger.debug("Outlet started with the following options:")
        self._logger.debug(
            "  - power: %s",
            redact_for_log(
                {
                    "onUrl": config.power.on_endpoint,
                    "offUrl": config.power.off_endpoint,
                    "statusUrl": config.power.status_endpoint,
                    "statusPattern": config.power.status_pattern.source,
                }
            ),
        )
        if config.outlet_in_use is not None:
            self._logger.debug(
                "  - outletInUse: %s",
                redact_for_log(
                    {
                        "statusUrl": config.outlet_in_use.status_endpoint,
                        "statusPattern": config.outlet_in_use.status_pattern.source,
                    }
                ),
            )
        if config.auth is not None:
            self._logger.debug("  - auth options: %s", redact_for_log(config.auth))
        if self._pull_timer is not None:
            self._logger.debug("  - pullTimer started with interval %ss", self._pull_timer.interval)
        if config.notification_id is not None:
            self._logger.debug("  - notificationID specified: %s", config.notification_id)
        if self._mqtt_runtime is not None:
            options = self._mqtt_runtime.options
            self._logger.debug(
                "  - mqtt client instantiated: %s://%s:%s",
                options.protocol,
                options.host,
                options.resolved_port,
            )
            for sub in options.subscriptions:
                self._logger.debug("     -> subscribed to topic %s", sub.topic)
