from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any
from urllib.parse import urlsplit

import pytest

from pyoutlet._notifications import DispatchResult, NotificationRegistry
from pyoutlet._transport import HttpResponse
from pyoutlet.config import OutletConfig, parse_config
from pyoutlet.exceptions import (
    OutletConfigError,
    OutletError,
    OutletHttpStatusError,
    OutletTransportError,
)
from pyoutlet.models.endpoint import Endpoint
from pyoutlet.outlet import HttpOutlet
from pyoutlet.state.events import OutletProperty, UpdateSource

if TYPE_CHECKING:
    from conftest import FakeMqttFactory


@dataclass
class FakeOutletDevice:
    """In-memory stand-in for the outlet's HTTP interface."""

    power: bool = False
    in_use: bool = False
    status_code: int = 200
    fail_next: int = 0
    calls: dict[str, int] = field(default_factory=dict)

    def count(self, path: str) -> int:
        return self.calls.get(path, 0)

    async def request(self, endpoint: Endpoint) -> HttpResponse:
        path = urlsplit(endpoint.url).path
        self.calls[path] = self.calls.get(path, 0) + 1

        if self.fail_next:
            self.fail_next -= 1
            raise OutletTransportError("connection refused", endpoint=endpoint.url)
        if self.status_code != 200:
            return HttpResponse(status=self.status_code, body="boom")

        if path == "/on":
            self.power = True
            return HttpResponse(status=200, body="OK")
        if path == "/off":
            self.power = False
            return HttpResponse(status=200, body="OK")
        if path == "/status":
            return HttpResponse(status=200, body="1" if self.power else "0")
        if path == "/in-use":
            return HttpResponse(status=200, body="1" if self.in_use else "0")
        raise AssertionError(f"Unexpected endpoint in fake device: {endpoint.url}")


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def _config(**overrides: Any) -> OutletConfig:
    raw: dict[str, Any] = {
        "name": "Test Outlet",
        "onUrl": "http://plug.local/on",
        "offUrl": "http://plug.local/off",
        "statusUrl": "http://plug.local/status",
    }
    raw.update(overrides)
    return parse_config(raw)


@pytest.fixture
def device() -> FakeOutletDevice:
    return FakeOutletDevice()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.mark.asyncio
async def test_zero_ttl_fetches_every_read(device: FakeOutletDevice) -> None:
    async with HttpOutlet(_config(), transport=device) as outlet:
        assert await outlet.read_power() is False
        assert await outlet.read_power() is False

    assert device.count("/status") == 2


@pytest.mark.asyncio
async def test_finite_ttl_serves_cached_value_until_expiry(device: FakeOutletDevice, clock: FakeClock) -> None:
    device.power = True
    async with HttpOutlet(_config(statusCache=1000), transport=device, clock=clock) as outlet:
        assert await outlet.read_power() is True
        clock.now += 0.5
        device.power = False
        assert await outlet.read_power() is True
        assert device.count("/status") == 1

        clock.now += 0.5
        assert await outlet.read_power() is False
        assert device.count("/status") == 2


@pytest.mark.asyncio
async def test_infinite_ttl_fetches_once(device: FakeOutletDevice, clock: FakeClock) -> None:
    async with HttpOutlet(_config(statusCache=-1), transport=device, clock=clock) as outlet:
        for _ in range(5):
            await outlet.read_power()
            clock.now += 3600.0

    assert device.count("/status") == 1


@pytest.mark.asyncio
async def test_failed_fetch_does_not_mark_cache(device: FakeOutletDevice, clock: FakeClock) -> None:
    device.fail_next = 1
    async with HttpOutlet(_config(statusCache=10_000), transport=device, clock=clock) as outlet:
        with pytest.raises(OutletTransportError):
            await outlet.read_power()

        assert await outlet.read_power() is False
        assert await outlet.read_power() is False

    assert device.count("/status") == 2


@pytest.mark.asyncio
async def test_http_error_status_is_reported(device: FakeOutletDevice) -> None:
    device.status_code = 500
    async with HttpOutlet(_config(), transport=device) as outlet:
        with pytest.raises(OutletHttpStatusError) as exc_info:
            await outlet.read_power()

        assert exc_info.value.status_code == 500
        assert outlet.state.power is None


@pytest.mark.asyncio
async def test_write_is_never_cached_and_updates_state(device: FakeOutletDevice, clock: FakeClock) -> None:
    changes: list[tuple[OutletProperty, bool]] = []
    config = _config(statusCache=-1)
    async with HttpOutlet(config, transport=device, clock=clock, on_state_change=lambda p, v: changes.append((p, v))) as outlet:
        await outlet.write_power(True)
        await outlet.write_power(True)
        assert device.count("/on") == 2

        snapshot = outlet.state.snapshot(OutletProperty.POWER)
        assert snapshot is not None
        assert snapshot.value is True
        assert snapshot.source is UpdateSource.WRITE

        await outlet.write_power(False)
        assert device.power is False

    assert changes[-1] == (OutletProperty.POWER, False)


@pytest.mark.asyncio
async def test_failed_write_leaves_state_untouched(device: FakeOutletDevice) -> None:
    device.status_code = 503
    async with HttpOutlet(_config(), transport=device) as outlet:
        with pytest.raises(OutletHttpStatusError):
            await outlet.write_power(True)

        assert outlet.state.power is None


@pytest.mark.asyncio
async def test_cached_read_returns_pushed_value(device: FakeOutletDevice, clock: FakeClock) -> None:
    async with HttpOutlet(_config(statusCache=10_000), transport=device, clock=clock) as outlet:
        assert await outlet.read_power() is False

        assert outlet.apply_notification("On", True) is True
        assert await outlet.read_power() is True

    assert device.count("/status") == 1


@pytest.mark.asyncio
async def test_unknown_notification_is_ignored(device: FakeOutletDevice) -> None:
    async with HttpOutlet(_config(), transport=device) as outlet:
        assert outlet.apply_notification("unknown", True) is False
        assert outlet.state.power is None


@pytest.mark.asyncio
async def test_outlet_in_use(device: FakeOutletDevice) -> None:
    device.in_use = True
    config = _config(outletInUse={"statusUrl": "http://plug.local/in-use"})
    async with HttpOutlet(config, transport=device) as outlet:
        assert await outlet.read_outlet_in_use() is True
        assert outlet.state.outlet_in_use is True

        assert outlet.apply_notification("OutletInUse", False) is True
        assert outlet.state.outlet_in_use is False


@pytest.mark.asyncio
async def test_outlet_in_use_not_configured(device: FakeOutletDevice) -> None:
    async with HttpOutlet(_config(), transport=device) as outlet:
        with pytest.raises(OutletError):
            await outlet.read_outlet_in_use()
        assert outlet.apply_notification("OutletInUse", True) is False


@pytest.mark.asyncio
async def test_requires_start_before_requests(device: FakeOutletDevice) -> None:
    outlet = HttpOutlet(_config())

    with pytest.raises(OutletError):
        await outlet.read_power()


@pytest.mark.asyncio
async def test_pull_timer_polls_into_state(device: FakeOutletDevice) -> None:
    device.power = True
    changes: list[tuple[OutletProperty, bool]] = []
    config = _config(pullInterval=50)
    async with HttpOutlet(config, transport=device, on_state_change=lambda p, v: changes.append((p, v))) as outlet:
        await asyncio.sleep(0.3)

        snapshot = outlet.state.snapshot(OutletProperty.POWER)
        assert snapshot is not None
        assert snapshot.source is UpdateSource.POLL
        assert snapshot.value is True

    assert device.count("/status") >= 2
    assert changes[0] == (OutletProperty.POWER, True)


@pytest.mark.asyncio
async def test_power_notification_defers_next_poll(device: FakeOutletDevice) -> None:
    async with HttpOutlet(_config(pullInterval=600), transport=device) as outlet:
        await asyncio.sleep(0.35)
        outlet.apply_notification("power", True)
        assert outlet.state.power is True

        await asyncio.sleep(0.4)
        # Without the push the first poll would have run by now.
        assert device.count("/status") == 0

        await asyncio.sleep(0.6)
        assert device.count("/status") >= 1


@pytest.mark.asyncio
async def test_poll_errors_keep_timer_running(device: FakeOutletDevice) -> None:
    device.fail_next = 1
    async with HttpOutlet(_config(pullInterval=50), transport=device) as outlet:
        await asyncio.sleep(0.4)
        assert outlet.pull_timer is not None
        assert outlet.pull_timer.is_running

    assert device.count("/status") >= 2


@pytest.mark.asyncio
async def test_notification_registry_round_trip(device: FakeOutletDevice) -> None:
    registry = NotificationRegistry()
    config = _config(notificationID="desk-lamp", notificationPassword="pw")

    async with HttpOutlet(config, transport=device, notification_registry=registry) as outlet:
        assert "desk-lamp" in registry

        body = {"characteristic": "On", "value": True}
        assert registry.dispatch("desk-lamp", body, password="wrong") is DispatchResult.UNAUTHORIZED
        assert outlet.state.power is None

        assert registry.dispatch("desk-lamp", body, password="pw") is DispatchResult.DELIVERED
        assert outlet.state.power is True

    assert "desk-lamp" not in registry


@pytest.mark.asyncio
async def test_information_and_identify(device: FakeOutletDevice) -> None:
    outlet = HttpOutlet(_config(), transport=device)

    info = outlet.information
    assert info.model == "HTTP Outlet"
    assert info.serial_number == "OT01"
    outlet.identify()


_MQTT = {
    "host": "broker.local",
    "subscriptions": [
        {"topic": "plug/power", "characteristic": "On"},
        {"topic": "plug/load", "characteristic": "OutletInUse", "messagePattern": "load=(\\w+)"},
    ],
}


@pytest.mark.asyncio
async def test_mqtt_messages_update_state(device: FakeOutletDevice, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("pyoutlet._mqtt.OutletMqttRuntime.start", lambda self: None)
    monkeypatch.setattr("pyoutlet._mqtt.OutletMqttRuntime.stop", lambda self: None)
    config = _config(mqtt=_MQTT, outletInUse={"statusUrl": "http://plug.local/in-use"})

    async with HttpOutlet(config, transport=device) as outlet:
        runtime = outlet.mqtt_runtime
        assert runtime is not None
        power_sub, load_sub = runtime.options.subscriptions

        outlet._on_mqtt_message(power_sub, b"ON")
        outlet._on_mqtt_message(load_sub, b"load=true")
        # Payload without the expected shape is dropped.
        outlet._on_mqtt_message(load_sub, b"garbage")

        assert outlet.state.power is True
        assert outlet.state.outlet_in_use is True
        snapshot = outlet.state.snapshot(OutletProperty.POWER)
        assert snapshot is not None
        assert snapshot.source is UpdateSource.MQTT

    assert outlet.mqtt_runtime is None


@pytest.mark.asyncio
async def test_mqtt_broker_down_at_startup_is_retried(device: FakeOutletDevice, fake_mqtt: FakeMqttFactory) -> None:
    async with HttpOutlet(_config(mqtt=_MQTT), transport=device) as outlet:
        runtime = outlet.mqtt_runtime
        assert runtime is not None
        assert runtime.is_running

        client = fake_mqtt.last
        assert client.blocking_connects == 0
        assert client.connect_async_calls == [("broker.local", 1883, 60)]
        assert client.loop_started

        # The broker comes up later; paho's loop connects and topics get subscribed.
        client.simulate_connect()
        assert [topic for topic, _qos in client.subscriptions] == ["plug/power", "plug/load"]

        assert await outlet.read_power() is False

    assert client.loop_stopped


@pytest.mark.asyncio
async def test_mqtt_setup_failure_is_not_fatal(device: FakeOutletDevice, monkeypatch: pytest.MonkeyPatch) -> None:
    def broken_setup(self: Any) -> None:
        raise ValueError("bad TLS settings")

    monkeypatch.setattr("pyoutlet._mqtt.OutletMqttRuntime.start", broken_setup)

    async with HttpOutlet(_config(mqtt=_MQTT), transport=device) as outlet:
        assert outlet.mqtt_runtime is None
        assert await outlet.read_power() is False


@pytest.mark.asyncio
async def test_failed_start_releases_resources() -> None:
    registry = NotificationRegistry()
    registry.register("dup", lambda _body: True)
    outlet = HttpOutlet(_config(pullInterval=1000, notificationID="dup"), notification_registry=registry)

    with pytest.raises(OutletConfigError):
        async with outlet:
            pytest.fail("start() should have failed")

    assert outlet.pull_timer is not None
    assert outlet.pull_timer.is_running is False
    # The owned session was closed and dropped.
    assert outlet._http_session is None
    assert outlet._transport is None
    # The other outlet's registration is untouched.
    assert "dup" in registry
