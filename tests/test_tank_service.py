"""End-to-end tests for the TankService context object."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import httpx
import pytest
from conftest import FakeConnector, park, wait_for

from aquaremote.errors import CommandValidationError, ErrorCode
from aquaremote.events import TelemetryEvent
from aquaremote.models import ConnectionHealth, TelemetrySource
from aquaremote.settings import DeviceSettings
from aquaremote.tank_service import TankService, normalize_address

pytestmark = pytest.mark.asyncio


class FakeDevice:
    """Pull endpoint double; readings are keyed by host."""

    def __init__(self) -> None:
        self.readings = {
            "10.0.0.1": {"temperature": 24.0, "water_level": 11},
            "10.0.0.2": {"temperature": 20.0, "water_level": 5},
        }
        self.gate: asyncio.Event | None = None
        self.unresponsive: set[str] = set()
        self.requests: list[str] = []

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        host = request.url.host
        self.requests.append(host)
        if host in self.unresponsive:
            await asyncio.Event().wait()
        if self.gate is not None and host == "10.0.0.1":
            await self.gate.wait()
            return httpx.Response(200, json={"temperature": 99.0, "water_level": 16})
        return httpx.Response(200, json=self.readings[host])


@pytest.fixture
def device() -> FakeDevice:
    return FakeDevice()


@pytest.fixture
def connector() -> FakeConnector:
    return FakeConnector()


@pytest.fixture
def settings(tmp_path: Path) -> DeviceSettings:
    return DeviceSettings(tmp_path / "settings")


@pytest.fixture
def tank(device, connector, settings) -> TankService:
    return TankService(
        settings=settings,
        connector=connector,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(device)),
        sleep=park,
        feed_seconds=1800,
        water_change_seconds=1140,
    )


async def test_normalize_address():
    assert normalize_address(" 192.168.70.37 ") == "192.168.70.37"
    assert normalize_address("tank.local") == "tank.local"
    for bad in ["", "   ", None, "http://10.0.0.1", "10.0.0.1/data", "10.0.0.1:80", "a b"]:
        with pytest.raises(CommandValidationError) as excinfo:
            normalize_address(bad)
        assert excinfo.value.code is ErrorCode.INVALID_ADDRESS


async def test_initial_snapshot_before_start(tank):
    snapshot = tank.get_snapshot()

    assert snapshot["health"] == "disconnected"
    assert snapshot["tank"]["temperature_celsius"] is None
    assert snapshot["tank"]["water_level_percent"] is None
    assert snapshot["actuators"] == {
        "light": False,
        "fill": False,
        "empty": False,
        "dispenser": False,
    }
    assert snapshot["schedule"] == {"feeding_time": None, "water_change_interval_hours": None}
    assert snapshot["reminders"]["feed"]["text"] == "Feed in: 30:00"
    assert snapshot["reminders"]["water_change"]["text"] == "Water change in: 19:00"


async def test_start_connects_and_polls(tank, connector):
    await tank.start("10.0.0.1")
    await wait_for(lambda: tank.tank_state.temperature_celsius == 24.0)
    await wait_for(lambda: tank.health is ConnectionHealth.CONNECTED)

    assert connector.urls == ["ws://10.0.0.1:81/"]
    assert tank.tank_state.last_updated_source is TelemetrySource.PULL
    assert tank.water_level_percent == 50
    assert tank.is_running

    await tank.stop()


async def test_start_uses_persisted_address(tank, settings, device):
    settings.set_device_address("10.0.0.2")

    await tank.start()
    await wait_for(lambda: tank.tank_state.temperature_celsius == 20.0)

    assert tank.address == "10.0.0.2"
    await tank.stop()


async def test_start_falls_back_to_env_address(monkeypatch, device, connector):
    monkeypatch.setenv("AQUA_REMOTE_DEVICE_ADDRESS", "10.0.0.1")
    tank = TankService(
        connector=connector,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(device)),
        sleep=park,
    )

    await tank.start()
    assert tank.address == "10.0.0.1"
    await tank.stop()


async def test_push_after_pull_wins(tank, connector):
    await tank.start("10.0.0.1")
    await wait_for(lambda: tank.tank_state.temperature_celsius == 24.0)
    await wait_for(lambda: tank.health is ConnectionHealth.CONNECTED)

    connector.sockets[0].push(json.dumps({"temperature": 23.0, "water_level": 14}))
    await wait_for(lambda: tank.tank_state.last_updated_source is TelemetrySource.PUSH)

    assert tank.tank_state.temperature_celsius == 23.0
    assert tank.tank_state.water_level_distance_cm == 14

    await tank.stop()


async def test_malformed_push_leaves_state_and_health(tank, connector):
    await tank.start("10.0.0.1")
    await wait_for(lambda: tank.tank_state.temperature_celsius == 24.0)
    await wait_for(lambda: tank.health is ConnectionHealth.CONNECTED)
    before = tank.tank_state

    connector.sockets[0].push('{"temperature": "warm"}')
    connector.sockets[0].push("}{")
    await asyncio.sleep(0.05)

    assert tank.tank_state == before
    assert tank.health is ConnectionHealth.CONNECTED
    await tank.stop()


async def test_address_change_discards_stale_events(tank):
    await tank.start("10.0.0.1")
    await wait_for(lambda: tank.tank_state.temperature_celsius == 24.0)
    old_generation = tank.generation

    await tank.set_address("10.0.0.2")
    await wait_for(lambda: tank.tank_state.temperature_celsius == 20.0)

    stale = TelemetryEvent(
        source=TelemetrySource.PULL,
        payload={"temperature": 99.0},
        generation=old_generation,
        address="10.0.0.1",
    )
    assert tank._handle_event(stale) is False
    assert tank.tank_state.temperature_celsius == 20.0

    await tank.stop()


async def test_inflight_pull_for_old_address_is_discarded(tank, device):
    await tank.start("10.0.0.1")
    await wait_for(lambda: tank.tank_state.temperature_celsius == 24.0)

    device.gate = asyncio.Event()
    refresh = asyncio.create_task(tank.refresh_now())
    await wait_for(lambda: device.requests.count("10.0.0.1") == 2)

    await tank.set_address("10.0.0.2")
    await wait_for(lambda: tank.tank_state.temperature_celsius == 20.0)
    device.gate.set()
    await refresh

    assert tank.address == "10.0.0.2"
    assert tank.tank_state.temperature_celsius == 20.0
    assert tank.tank_state.water_level_distance_cm == 5

    await tank.stop()


async def test_address_change_rebuilds_connection_and_resets_state(
    tank, device, connector, settings
):
    await tank.start("10.0.0.1")
    await wait_for(lambda: tank.tank_state.temperature_celsius == 24.0)
    first_socket_count = len(connector.urls)

    device.unresponsive.add("10.0.0.2")
    await tank.set_address("10.0.0.2")
    await asyncio.sleep(0.02)

    # Nothing has arrived from the new device yet
    assert tank.tank_state.temperature_celsius is None
    assert connector.urls[first_socket_count:] == ["ws://10.0.0.2:81/"]
    assert settings.get_device_address() == "10.0.0.2"

    await tank.stop()


async def test_concurrent_address_changes_leave_one_connection(tank, connector):
    await tank.start("10.0.0.1")
    await wait_for(lambda: connector.open_count == 1)

    await asyncio.gather(tank.set_address("10.0.0.2"), tank.set_address("10.0.0.3"))
    await wait_for(lambda: connector.open_sessions.get("ws://10.0.0.3:81/") == 1)

    assert tank.address == "10.0.0.3"
    assert connector.open_count == 1

    await tank.stop()
    assert connector.open_count == 0
    assert tank.health is ConnectionHealth.DISCONNECTED


async def test_set_same_address_is_noop(tank, connector):
    await tank.start("10.0.0.1")
    generation = tank.generation

    await tank.set_address("10.0.0.1")

    assert tank.generation == generation
    assert connector.urls == ["ws://10.0.0.1:81/"]
    await tank.stop()


async def test_set_address_before_start(tank, settings):
    assert await tank.set_address(" 10.0.0.2 ") == "10.0.0.2"
    assert tank.address == "10.0.0.2"
    assert settings.get_device_address() == "10.0.0.2"


async def test_set_address_not_persisted_when_disabled(monkeypatch, settings, connector):
    monkeypatch.setenv("AQUA_REMOTE_PERSIST_ADDRESS", "false")
    tank = TankService(settings=settings, connector=connector, sleep=park)

    await tank.set_address("10.0.0.2")
    assert settings.get_device_address() is None


async def test_invalid_address_rejected(tank):
    with pytest.raises(CommandValidationError):
        await tank.set_address("")


async def test_reminders_keep_running_across_address_change(tank):
    await tank.start("10.0.0.1")
    reminders = tank._reminders

    await tank.set_address("10.0.0.2")

    assert tank._reminders is reminders
    assert reminders.is_running
    await tank.stop()
    assert not reminders.is_running


async def test_toggle_while_disconnected(device, settings):
    connector = FakeConnector(fail=True)
    tank = TankService(
        settings=settings,
        connector=connector,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(device)),
        sleep=park,
    )
    await tank.start("10.0.0.1")

    assert await tank.toggle_actuator("light") == (True, False)
    assert tank.actuators["light"] is True
    assert connector.sockets == []

    await tank.stop()


async def test_toggle_and_schedule_when_connected(tank, connector):
    await tank.start("10.0.0.1")
    await wait_for(lambda: tank.health is ConnectionHealth.CONNECTED)

    assert await tank.toggle_actuator("dispenser") == (True, True)
    assert await tank.set_schedule("feedingTime", "18:45") is True
    assert await tank.set_schedule("waterChangeInterval", 72) is True

    sent = connector.sockets[0].sent
    assert sent[0] == "pin4_on"
    assert json.loads(sent[1]) == {"action": "setFeedingTime", "time": "18:45"}
    assert json.loads(sent[2]) == {"action": "setWaterChangeInterval", "interval": "72"}
    assert tank.schedule.feeding_time == "18:45"

    await tank.stop()


async def test_empty_schedule_raises_and_sends_nothing(tank, connector):
    await tank.start("10.0.0.1")
    await wait_for(lambda: tank.health is ConnectionHealth.CONNECTED)

    with pytest.raises(CommandValidationError):
        await tank.set_schedule("feedingTime", "")

    assert connector.sockets[0].sent == []
    await tank.stop()


async def test_refresh_now_applies_immediately(tank, device):
    await tank.start("10.0.0.1")
    await wait_for(lambda: tank.tank_state.temperature_celsius == 24.0)
    device.readings["10.0.0.1"] = {"temperature": 25.5, "water_level": 8}

    state = await tank.refresh_now()

    assert state.temperature_celsius == 25.5
    assert state.water_level_distance_cm == 8
    await tank.stop()


async def test_stop_tears_everything_down(tank, connector):
    await tank.start("10.0.0.1")
    await wait_for(lambda: tank.health is ConnectionHealth.CONNECTED)

    await tank.stop()

    assert tank.health is ConnectionHealth.DISCONNECTED
    assert not tank.is_running
    assert not tank._poller.is_running
    assert len(connector.urls) == 1
