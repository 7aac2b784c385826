from __future__ import annotations

from dataclasses import dataclass, field
from types import SimpleNamespace
from typing import Any

import pytest


class FakeMqttClient:
    """Stand-in for ``paho.mqtt.client.Client`` that never touches the network."""

    def __init__(self, registry: list[FakeMqttClient], **kwargs: Any) -> None:
        self.kwargs = kwargs
        self.connect_async_calls: list[tuple[str, int, int]] = []
        self.blocking_connects = 0
        self.loop_started = False
        self.loop_stopped = False
        self.disconnected = False
        self.subscriptions: list[tuple[str, int]] = []
        self.on_connect: Any = None
        self.on_message: Any = None
        self.on_disconnect: Any = None
        registry.append(self)

    def enable_logger(self, _logger: Any) -> None:
        pass

    def username_pw_set(self, username: str, password: str | None) -> None:
        self.kwargs["username"] = username
        self.kwargs["password"] = password

    def tls_set(self) -> None:
        self.kwargs["tls"] = True

    def connect(self, host: str, port: int, keepalive: int = 60) -> None:
        self.blocking_connects += 1
        raise ConnectionRefusedError("broker down")

    def connect_async(self, host: str, port: int, keepalive: int = 60) -> None:
        self.connect_async_calls.append((host, port, keepalive))

    def loop_start(self) -> None:
        self.loop_started = True

    def loop_stop(self) -> None:
        self.loop_stopped = True

    def disconnect(self) -> None:
        self.disconnected = True

    def subscribe(self, topic: str, qos: int = 0) -> None:
        self.subscriptions.append((topic, qos))

    def simulate_connect(self, rc: int = 0) -> None:
        self.on_connect(self, None, None, SimpleNamespace(value=rc), None)


@dataclass
class FakeMqttFactory:
    clients: list[FakeMqttClient] = field(default_factory=list)

    def __call__(self, **kwargs: Any) -> FakeMqttClient:
        return FakeMqttClient(self.clients, **kwargs)

    @property
    def last(self) -> FakeMqttClient:
        return self.clients[-1]


@pytest.fixture
def fake_mqtt(monkeypatch: pytest.MonkeyPatch) -> FakeMqttFactory:
    """Replace the paho client class used by the MQTT runtime."""
    factory = FakeMqttFactory()
    monkeypatch.setattr("pyoutlet._mqtt.mqtt.Client", factory)
    return factory
