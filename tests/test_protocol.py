import pytest

from scoreboard_ble import Possession, TransportMode, protocol
from scoreboard_ble.protocol import TelemetryUpdate, coerce_int, decode_telemetry, parse_int


@pytest.mark.parametrize(
    ("command", "expected"),
    [
        (protocol.start(), "START"),
        (protocol.pause(), "PAUSE"),
        (protocol.reset(), "RESET"),
        (protocol.home_score(2), "SCR:H2"),
        (protocol.home_score(-1), "SCR:H-1"),
        (protocol.away_score(3), "A3"),
        (protocol.away_score(-1), "A-1"),
        (protocol.set_time(754), "TIME:754"),
        (protocol.set_shot_clock(14), "SETSHOT:14"),
        (protocol.change_period(-2), "SETPERIOD:-2"),
        (protocol.possession(Possession.HOME), "POS:RIGHT"),
        (protocol.possession(Possession.AWAY), "POS:LEFT"),
        (protocol.horn(True), "PRESS"),
        (protocol.horn(False), "RELEASE"),
        (protocol.transport_mode(TransportMode.BLE), "MODE:BLE"),
        (protocol.transport_mode(TransportMode.ESPNOW), "MODE:ESPNOW"),
    ],
)
def test_command_text(command, expected):
    assert command == expected


def test_possession_none_has_no_command():
    with pytest.raises(ValueError):
        protocol.possession(Possession.NONE)


def test_encode_command_is_utf8():
    assert protocol.encode_command("SCR:H3") == b"SCR:H3"


def test_decode_telemetry():
    assert decode_telemetry(b"T12:34,S08") == TelemetryUpdate(remaining_seconds=754, shot_clock=8)


def test_decode_telemetry_finds_frame_inside_noise():
    assert decode_telemetry(bytearray(b"\x00xxT00:05,S24\r\n")) == TelemetryUpdate(5, 24)


@pytest.mark.parametrize("frame", [b"", b"garbage", b"T1:23,S08", b"T12:34;S08", b"\xff\xfe"])
def test_decode_telemetry_ignores_unrecognised_frames(frame):
    assert decode_telemetry(frame) is None


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("12", 12),
        (" 7abc", 7),
        ("-3", -3),
        ("+4", 4),
        ("abc", None),
        ("", None),
        (None, None),
        (True, None),
        (5, 5),
        (9.8, 9),
    ],
)
def test_parse_int(value, expected):
    assert parse_int(value) == expected


def test_coerce_int_clamps_and_falls_back():
    assert coerce_int("150", 0, 99) == 99
    assert coerce_int("-5", 0, 99) == 0
    assert coerce_int("", 1, 9, fallback=1) == 1
    assert coerce_int("0", 1, 9, fallback=1) == 1
    assert coerce_int("x", 0) == 0
    assert coerce_int("4000", 0) == 4000
