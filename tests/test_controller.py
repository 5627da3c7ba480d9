import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from scoreboard_ble import (
    GameData,
    GameState,
    ScoreboardConnectionManager,
    ScoreboardController,
    ScoreboardNotFoundError,
    Session,
)

from .conftest import ADDRESS, make_advertisement, make_client, make_device, make_scanner_factory

ESTABLISH = "scoreboard_ble.connection.establish_connection"


async def settle():
    """Let background writes and persistence tasks run."""
    for _ in range(5):
        await asyncio.sleep(0)


@pytest.fixture
def scanner():
    return make_scanner_factory()


@pytest.fixture
def connection(scanner):
    factory, _ = scanner
    return ScoreboardConnectionManager(scanner_factory=factory, scan_duration=0.01, settle_delay=0)


@pytest.fixture
def client():
    return make_client()


@pytest.fixture
async def controller(connection, store, game, client):
    controller = ScoreboardController(connection, store, game=game, tick_interval=0.01)
    connection.handle_discovered(make_device(), make_advertisement())
    with patch(ESTABLISH, AsyncMock(return_value=client)):
        yield controller
    await controller.async_shutdown()


def written(client) -> list[bytes]:
    return [call.args[1] for call in client.write_gatt_char.await_args_list]


async def test_new_session_connects_and_persists(controller, connection, store):
    session = await controller.async_new_session()
    await settle()

    assert connection.binding is not None
    assert controller.game.state is GameState.PAUSED
    assert [s.id for s in await store.async_load()] == [session.id]


async def test_commands_are_written_in_order(controller, client):
    await controller.async_new_session()

    controller.game.increment_home(2)
    controller.game.increment_away(3)
    controller.game.set_period(2)
    controller.game.reset_shot_clock(14)
    await settle()

    assert written(client) == [b"SCR:H2", b"A3", b"SETPERIOD:1", b"SETSHOT:14", b"PAUSE"]


async def test_changes_are_persisted(controller, store):
    session = await controller.async_new_session()
    controller.game.increment_home(3)
    await settle()

    stored = await store.async_load()
    assert len(stored) == 1
    assert stored[0].id == session.id
    assert stored[0].game.home_score == 3


async def test_failed_write_keeps_local_state(controller, client):
    await controller.async_new_session()
    client.write_gatt_char.side_effect = TimeoutError

    controller.game.increment_home(1)
    await settle()

    assert controller.game.data.home_score == 1


async def test_clock_ticks_while_running(controller, client):
    await controller.async_new_session()
    controller.game.set_time(0, 30)

    controller.game.start()
    assert controller.clock_running
    await asyncio.sleep(0.05)
    controller.game.pause()
    await settle()

    assert not controller.clock_running
    assert controller.game.data.remaining_seconds < 30
    assert b"START" in written(client)
    assert any(payload.startswith(b"TIME:2") for payload in written(client))


async def test_telemetry_updates_game(controller, connection):
    await controller.async_new_session()

    connection.handle_notification(ADDRESS, connection.binding.notify_transfer, b"T08:15,S11")

    assert controller.game.data.remaining_seconds == 495
    assert controller.game.data.shot_clock == 11


async def test_losing_binding_ends_session(controller, connection, client, store):
    session = await controller.async_new_session()
    controller.game.start()

    connection._on_disconnect(client)
    await settle()

    assert controller.game.state is GameState.IDLE
    assert not controller.clock_running
    # The session stays resumable
    assert [s.id for s in await store.async_load()] == [session.id]


async def test_resume_session_removes_it_from_store(controller, store):
    old = Session(id="session_1", game=GameData(home_score=21, away_score=19, selected_period=3))
    other = Session(id="session_2")
    await store.async_save([old, other])

    resumed = await controller.async_resume_latest()
    assert resumed.id == "session_2"
    await controller.async_resume_session(old)

    assert controller.game.session_id == "session_1"
    assert controller.game.data.home_score == 21
    assert await store.async_load() == []


async def test_resume_latest_without_sessions(controller):
    assert await controller.async_resume_latest() is None
    assert controller.game.state is GameState.IDLE


async def test_not_found_starts_a_scan(store, game, scanner):
    factory, mock_scanner = scanner
    connection = ScoreboardConnectionManager(scanner_factory=factory, scan_duration=0.01, settle_delay=0)
    controller = ScoreboardController(connection, store, game=game)
    await store.async_save([Session(id="session_1")])

    with pytest.raises(ScoreboardNotFoundError):
        await controller.async_new_session()
    with pytest.raises(ScoreboardNotFoundError):
        await controller.async_resume_latest()

    mock_scanner.start.assert_awaited()
    assert game.state is GameState.IDLE
    # Failed resume leaves the store untouched
    assert len(await store.async_load()) == 1
    await controller.async_shutdown()


async def test_end_session_disconnects(controller, connection, client, store):
    session = await controller.async_new_session()

    await controller.async_end_session()
    await settle()

    assert controller.game.state is GameState.IDLE
    assert connection.binding is None
    client.disconnect.assert_awaited()
    assert [s.id for s in await controller.async_sessions()] == [session.id]


async def test_clear_sessions(controller, store):
    await controller.async_new_session()
    await settle()

    await controller.async_clear_sessions()

    assert await store.async_load() == []


async def test_listeners_are_notified(controller):
    calls = []
    controller.add_listener(lambda: calls.append(1))

    await controller.async_new_session()

    assert calls


async def test_overlapping_new_sessions_share_one_connection(store, game, scanner):
    factory, _ = scanner
    connection = ScoreboardConnectionManager(scanner_factory=factory, scan_duration=0.01, settle_delay=0.01)
    controller = ScoreboardController(connection, store, game=game)
    bindings = []
    connection.add_binding_listener(bindings.append)
    connection.handle_discovered(make_device(), make_advertisement())
    first, second = make_client(), make_client()

    with patch(ESTABLISH, AsyncMock(side_effect=[first, second])) as establish:
        await asyncio.gather(controller.async_new_session(), controller.async_new_session())

    establish.assert_awaited_once()
    assert len(bindings) == 1
    assert connection.binding.peripheral_id == ADDRESS
    assert game.state is GameState.PAUSED
    first.disconnect.assert_not_awaited()
    second.disconnect.assert_not_awaited()
    await controller.async_shutdown()
