import asyncio
from unittest.mock import AsyncMock, patch

from bleak.exc import BleakError
import pytest

from scoreboard_ble import (
    ScoreboardConnectionError,
    ScoreboardConnectionManager,
    ScoreboardNotFoundError,
    TelemetryUpdate,
)
from scoreboard_ble.const import NOTIFY_CHARACTERISTIC_UUID, SERVICE_UUID, TRANSFER_CHARACTERISTIC_UUID

from .conftest import ADDRESS, make_advertisement, make_client, make_device, make_scanner_factory

ESTABLISH = "scoreboard_ble.connection.establish_connection"


@pytest.fixture
def scanner():
    return make_scanner_factory()


@pytest.fixture
def manager(scanner):
    factory, _ = scanner
    return ScoreboardConnectionManager(scanner_factory=factory, scan_duration=0.01, settle_delay=0)


def discover(manager, address=ADDRESS, **advertisement):
    manager.handle_discovered(make_device(address), make_advertisement(**advertisement))


async def connect(manager, client=None, address=ADDRESS):
    client = client or make_client(address)
    discover(manager, address)
    with patch(ESTABLISH, AsyncMock(return_value=client)) as establish:
        binding = await manager.async_connect(address)
    return binding, client, establish


async def test_scan_discovers_and_stops(manager, scanner):
    _, mock_scanner = scanner

    assert await manager.async_start_scan()
    assert manager.is_scanning
    mock_scanner.start.assert_awaited_once()

    mock_scanner.callback(make_device(), make_advertisement())
    assert ADDRESS in manager.discovered

    await asyncio.sleep(0.05)
    assert not manager.is_scanning
    mock_scanner.stop.assert_awaited_once()


async def test_second_scan_is_a_noop(manager, scanner):
    _, mock_scanner = scanner

    await manager.async_start_scan()
    discover(manager)
    assert not await manager.async_start_scan()

    # Discovered peripherals are kept and no second scan request went out
    assert ADDRESS in manager.discovered
    mock_scanner.start.assert_awaited_once()
    await manager.async_shutdown()


async def test_new_scan_clears_discovered(manager):
    discover(manager)
    await manager.async_start_scan()
    assert manager.discovered == {}
    await manager.async_shutdown()


async def test_scan_start_failure(scanner):
    factory, mock_scanner = scanner
    mock_scanner.start.side_effect = BleakError("adapter off")
    manager = ScoreboardConnectionManager(scanner_factory=factory)

    assert not await manager.async_start_scan()
    assert not manager.is_scanning


def test_discovery_filters_on_service_uuid(manager):
    discover(manager, "11:11:11:11:11:11", service_uuids=["0000180f-0000-1000-8000-00805f9b34fb"])
    discover(manager, "22:22:22:22:22:22", service_uuids=[SERVICE_UUID.upper()])
    discover(manager, "33:33:33:33:33:33", service_uuids=[], local_name=None)

    assert list(manager.discovered) == ["22:22:22:22:22:22"]
    entry = manager.discovered["22:22:22:22:22:22"]
    assert entry.name == "Scoreboard"
    assert entry.rssi == -60


async def test_connect_publishes_binding(manager):
    bindings = []
    manager.add_binding_listener(bindings.append)

    binding, client, establish = await connect(manager)

    assert binding is not None
    assert binding.peripheral_id == ADDRESS
    assert binding.transfer == TRANSFER_CHARACTERISTIC_UUID
    assert binding.notify_transfer == NOTIFY_CHARACTERISTIC_UUID
    assert manager.binding is binding
    assert manager.is_connected
    assert manager.notification_enabled
    assert bindings == [binding]
    assert manager.discovered[ADDRESS].connected
    assert not manager.discovered[ADDRESS].connecting
    assert manager.connection_stats["connection_attempts"] == 1
    establish.assert_awaited_once()
    client.start_notify.assert_awaited_once()
    assert client.start_notify.await_args.args[0] == NOTIFY_CHARACTERISTIC_UUID
    client.read_gatt_descriptor.assert_awaited()


@pytest.mark.parametrize(
    "characteristics",
    [(TRANSFER_CHARACTERISTIC_UUID,), (NOTIFY_CHARACTERISTIC_UUID,), ()],
)
async def test_missing_characteristics_never_bind(manager, characteristics):
    bindings = []
    manager.add_binding_listener(bindings.append)
    client = make_client(characteristics=characteristics)

    binding, _, _ = await connect(manager, client)

    assert binding is None
    assert manager.binding is None
    assert not manager.is_connected
    assert bindings == []
    client.disconnect.assert_awaited_once()
    client.start_notify.assert_not_awaited()


async def test_connect_failure(manager):
    discover(manager)
    with patch(ESTABLISH, AsyncMock(side_effect=BleakError("boom"))):
        assert await manager.async_connect(ADDRESS) is None

    assert manager.binding is None
    assert not manager.discovered[ADDRESS].connecting


async def test_connect_unknown_address(manager):
    assert await manager.async_connect(ADDRESS) is None


async def test_descriptor_read_failure_keeps_binding(manager):
    client = make_client()
    client.read_gatt_descriptor.side_effect = BleakError("not permitted")

    binding, _, _ = await connect(manager, client)

    assert binding is not None
    assert manager.is_connected


async def test_connect_first(manager):
    with pytest.raises(ScoreboardNotFoundError):
        await manager.async_connect_first()

    discover(manager)
    with patch(ESTABLISH, AsyncMock(return_value=make_client(characteristics=()))):
        with pytest.raises(ScoreboardConnectionError):
            await manager.async_connect_first()

    with patch(ESTABLISH, AsyncMock(return_value=make_client())):
        binding = await manager.async_connect_first()
    assert binding.peripheral_id == ADDRESS


async def test_disconnect_clears_everything(manager):
    bindings = []
    manager.add_binding_listener(bindings.append)
    _, client, _ = await connect(manager)

    await manager.async_disconnect(ADDRESS)

    client.disconnect.assert_awaited_once()
    assert manager.binding is None
    assert manager.discovered == {}
    assert not manager.notification_enabled
    assert bindings[-1] is None


async def test_disconnect_clears_state_even_if_transport_fails(manager):
    client = make_client()
    client.disconnect.side_effect = BleakError("already gone")
    await connect(manager, client)

    await manager.async_disconnect()

    assert manager.binding is None
    assert manager.discovered == {}


async def test_unsolicited_disconnect_unbinds(manager):
    bindings = []
    manager.add_binding_listener(bindings.append)
    _, client, establish = await connect(manager)
    on_disconnect = establish.await_args.kwargs["disconnected_callback"]

    on_disconnect(client)

    assert manager.binding is None
    assert not manager.is_connected
    assert not manager.discovered[ADDRESS].connected
    assert manager.connection_stats["total_disconnections"] == 1
    assert bindings[-1] is None


async def test_notifications_from_binding_are_decoded(manager):
    updates = []
    manager.add_telemetry_listener(updates.append)
    await connect(manager)

    manager.handle_notification(ADDRESS.lower(), NOTIFY_CHARACTERISTIC_UUID.upper(), b"T12:34,S08")
    manager.handle_notification(ADDRESS, NOTIFY_CHARACTERISTIC_UUID, b"garbage")
    manager.handle_notification("11:22:33:44:55:66", NOTIFY_CHARACTERISTIC_UUID, b"T01:00,S10")
    manager.handle_notification(ADDRESS, TRANSFER_CHARACTERISTIC_UUID, b"T01:00,S10")

    assert updates == [TelemetryUpdate(remaining_seconds=754, shot_clock=8)]


async def test_notify_callback_routes_through_binding(manager):
    updates = []
    manager.add_telemetry_listener(updates.append)
    _, client, _ = await connect(manager)
    callback = client.start_notify.await_args.args[1]

    callback(type("Char", (), {"uuid": NOTIFY_CHARACTERISTIC_UUID})(), bytearray(b"T00:30,S05"))

    assert updates == [TelemetryUpdate(30, 5)]


def test_notifications_without_binding_are_ignored(manager):
    updates = []
    manager.add_telemetry_listener(updates.append)

    manager.handle_notification(ADDRESS, NOTIFY_CHARACTERISTIC_UUID, b"T12:34,S08")

    assert updates == []


async def test_write(manager):
    assert not await manager.async_write(b"START")

    _, client, _ = await connect(manager)
    assert await manager.async_write(b"START")
    client.write_gatt_char.assert_awaited_once_with(TRANSFER_CHARACTERISTIC_UUID, b"START", response=True)

    client.write_gatt_char.side_effect = BleakError("write failed")
    assert not await manager.async_write(b"PAUSE")


async def test_read(manager):
    assert await manager.async_read() is None

    await connect(manager)
    assert await manager.async_read() == b"T10:00,S24"


async def test_shutdown(manager, scanner):
    _, mock_scanner = scanner
    await manager.async_start_scan()
    _, client, _ = await connect(manager)

    await manager.async_shutdown()

    mock_scanner.stop.assert_awaited_once()
    client.stop_notify.assert_awaited_once_with(NOTIFY_CHARACTERISTIC_UUID)
    client.disconnect.assert_awaited_once()
    assert not manager.is_scanning
    assert manager.binding is None


async def test_concurrent_connects_open_one_connection(scanner):
    factory, _ = scanner
    manager = ScoreboardConnectionManager(scanner_factory=factory, settle_delay=0.01)
    bindings = []
    manager.add_binding_listener(bindings.append)
    first, second = make_client(), make_client()
    discover(manager)

    with patch(ESTABLISH, AsyncMock(side_effect=[first, second])) as establish:
        results = await asyncio.gather(manager.async_connect(ADDRESS), manager.async_connect(ADDRESS))

    establish.assert_awaited_once()
    assert results[0] is results[1] is manager.binding
    assert len(bindings) == 1
    assert manager.connection_stats["connection_attempts"] == 1


async def test_requested_disconnect_is_not_counted(manager):
    _, client, establish = await connect(manager)
    on_disconnect = establish.await_args.kwargs["disconnected_callback"]
    # bleak reports requested disconnects through the same callback
    client.disconnect.side_effect = lambda: on_disconnect(client)

    await manager.async_disconnect()

    assert manager.connection_stats["total_disconnections"] == 0
    assert manager.binding is None


async def test_failed_bind_disconnect_is_not_counted(manager):
    client = make_client(characteristics=())
    discover(manager)
    with patch(ESTABLISH, AsyncMock(return_value=client)) as establish:
        client.disconnect.side_effect = lambda: establish.await_args.kwargs["disconnected_callback"](client)
        assert await manager.async_connect(ADDRESS) is None

    assert manager.connection_stats["total_disconnections"] == 0
