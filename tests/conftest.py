from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from scoreboard_ble import GameStateMachine, KeyValueStorage, SessionStore
from scoreboard_ble.const import (
    NOTIFY_CHARACTERISTIC_UUID,
    SERVICE_UUID,
    TRANSFER_CHARACTERISTIC_UUID,
)

ADDRESS = "AA:BB:CC:DD:EE:FF"


class MemoryStorage(KeyValueStorage):
    """Dict-backed storage."""

    def __init__(self, items: dict[str, str] | None = None) -> None:
        self.items = dict(items or {})
        self.writes = 0

    async def async_get_item(self, key: str) -> str | None:
        return self.items.get(key)

    async def async_set_item(self, key: str, value: str) -> None:
        self.items[key] = value
        self.writes += 1


class FakeClock:
    """Controllable wall clock in seconds."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def make_device(address: str = ADDRESS, name: str | None = "Scoreboard"):
    return SimpleNamespace(address=address, name=name)


def make_advertisement(service_uuids=(SERVICE_UUID,), rssi: int = -60, local_name: str | None = "Scoreboard"):
    return SimpleNamespace(service_uuids=list(service_uuids), rssi=rssi, local_name=local_name)


def make_client(address: str = ADDRESS, *, characteristics=(TRANSFER_CHARACTERISTIC_UUID, NOTIFY_CHARACTERISTIC_UUID)):
    """Mock BleakClient exposing the scoreboard service with the given characteristics."""
    descriptor = SimpleNamespace(handle=13, uuid="00002902-0000-1000-8000-00805f9b34fb")
    chars = {
        uuid: SimpleNamespace(uuid=uuid, descriptors=[descriptor])
        for uuid in characteristics
    }
    service = MagicMock()
    service.get_characteristic.side_effect = chars.get
    service.characteristics = list(chars.values())

    services = MagicMock()
    services.get_service.side_effect = lambda uuid: service if uuid == SERVICE_UUID else None
    services.__iter__.side_effect = lambda: iter([service])

    client = MagicMock()
    client.address = address
    client.is_connected = True
    client.services = services
    client.disconnect = AsyncMock(return_value=True)
    client.start_notify = AsyncMock()
    client.stop_notify = AsyncMock()
    client.write_gatt_char = AsyncMock()
    client.read_gatt_char = AsyncMock(return_value=bytearray(b"T10:00,S24"))
    client.read_gatt_descriptor = AsyncMock(return_value=bytearray(b"\x01\x00"))
    return client


def make_scanner_factory():
    """Return (factory, scanner) where factory captures the detection callback."""
    scanner = MagicMock()
    scanner.start = AsyncMock()
    scanner.stop = AsyncMock()

    def factory(callback):
        scanner.callback = callback
        return scanner

    return factory, scanner


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def store(storage: MemoryStorage) -> SessionStore:
    return SessionStore(storage)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def game(clock: FakeClock) -> GameStateMachine:
    return GameStateMachine(clock=clock)


@pytest.fixture
def commands(game: GameStateMachine) -> list[str]:
    """Collects every command the game emits."""
    sent: list[str] = []
    game.add_command_listener(sent.append)
    return sent
