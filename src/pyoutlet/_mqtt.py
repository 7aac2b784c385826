"""MQTT subscriptions feeding pushed values into an outlet."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any, cast

import paho.mqtt.client as mqtt

from pyoutlet._redact import redact_for_log
from pyoutlet.models.mqtt import MqttOptions, MqttSubscription

MessageCallback = Callable[[MqttSubscription, bytes], None]


def match_subscriptions(options: MqttOptions, topic: str) -> list[MqttSubscription]:
    """Return every subscription whose topic filter matches *topic*."""
    return [sub for sub in options.subscriptions if mqtt.topic_matches_sub(sub.topic, topic)]


class OutletMqttRuntime:
    """paho-mqtt client bound to one outlet.

    paho's network loop runs on its own thread. Matched messages are handed
    to *on_message* on *loop* via ``call_soon_threadsafe`` so state is only
    ever mutated from the event loop thread.
    """

    def __init__(
        self,
        *,
        options: MqttOptions,
        loop: asyncio.AbstractEventLoop,
        on_message: MessageCallback,
        logger: logging.Logger | None = None,
    ) -> None:
        self._options = options
        self._loop = loop
        self._on_message = on_message
        self._logger = logger or logging.getLogger(__name__)
        self._client: mqtt.Client | None = None

    @property
    def is_running(self) -> bool:
        return self._client is not None

    @property
    def options(self) -> MqttOptions:
        return self._options

    def _build_client(self) -> mqtt.Client:
        options = self._options
        client = mqtt.Client(
            callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
            client_id=options.client_id or "",
            protocol=mqtt.MQTTv311,
        )
        client.enable_logger(self._logger)
        if options.username:
            client.username_pw_set(options.username, options.password)
        if options.use_tls:
            client.tls_set()
        client.on_connect = self._handle_connect
        client.on_message = self._handle_message
        client.on_disconnect = self._handle_disconnect
        return client

    def start(self) -> None:
        """Start the network thread and connect in the background.

        The first connection attempt happens on paho's thread, which keeps
        retrying until the broker is reachable, so an unavailable broker at
        startup does not raise here.
        """
        self.stop()
        options = self._options
        self._logger.debug("Starting MQTT client with %s", redact_for_log(options))

        client = self._build_client()
        client.connect_async(options.host, options.resolved_port, keepalive=options.keepalive)
        client.loop_start()
        self._client = client
        self._logger.debug("MQTT client connecting to %s:%s", options.host, options.resolved_port)

    def stop(self) -> None:
        client, self._client = self._client, None
        if client is None:
            return
        try:
            client.disconnect()
        finally:
            client.loop_stop()
        self._logger.debug("MQTT client stopped")

    def _handle_connect(
        self,
        client: mqtt.Client,
        _userdata: Any,
        _flags: Any,
        reason_code: Any,
        _properties: Any,
    ) -> None:
        if reason_code.value != 0:
            self._logger.warning("MQTT broker refused connection: %s", reason_code)
            return
        self._logger.info("MQTT connected to %s:%s", self._options.host, self._options.resolved_port)
        # Subscriptions are not persisted across reconnects with a clean session.
        for sub in self._options.subscriptions:
            self._logger.debug("Subscribing to topic %s (qos %s)", sub.topic, self._options.qos)
            client.subscribe(sub.topic, qos=self._options.qos)

    def _handle_message(self, _client: mqtt.Client, _userdata: Any, message: mqtt.MQTTMessage) -> None:
        matched = match_subscriptions(self._options, message.topic)
        if not matched:
            self._logger.debug("No subscription for topic %s", message.topic)
            return
        payload = bytes(message.payload)
        for sub in matched:
            try:
                self._loop.call_soon_threadsafe(self._on_message, sub, payload)
            except RuntimeError:
                # Loop already closed while paho was still delivering.
                self._logger.debug("Dropped MQTT message on %s", message.topic)
                return

    def _handle_disconnect(
        self,
        _client: mqtt.Client,
        _userdata: Any,
        _flags: Any,
        reason_code: Any,
        _properties: Any,
    ) -> None:
        if self._client is not None:
            self._logger.info("MQTT connection lost (%s), paho will reconnect", reason_code)
