"""Wire protocol for the BLE scoreboard.

Outbound commands are short ASCII strings, one per characteristic write:

    START / PAUSE / RESET           clock control and full reset
    SCR:H{d} / A{d}                 home / away score delta
    TIME:{t}                        absolute game clock in seconds
    SETSHOT:{s}                     absolute shot clock
    SETPERIOD:{d}                   period delta
    POS:RIGHT / POS:LEFT            possession home / away (device naming)
    PRESS / RELEASE                 horn down / up
    MODE:BLE / MODE:ESPNOW          transport mode

Inbound notifications carry the device clocks as ``T{mm}:{ss},S{cc}``.
"""
from __future__ import annotations

from dataclasses import dataclass
import logging
import re

from .const import (
    COMMAND_AWAY_SCORE_PREFIX,
    COMMAND_ENCODING,
    COMMAND_HOME_SCORE_PREFIX,
    COMMAND_MODE_PREFIX,
    COMMAND_PAUSE,
    COMMAND_PERIOD_PREFIX,
    COMMAND_POSSESSION_AWAY,
    COMMAND_POSSESSION_HOME,
    COMMAND_PRESS,
    COMMAND_RELEASE,
    COMMAND_RESET,
    COMMAND_SHOT_PREFIX,
    COMMAND_START,
    COMMAND_TIME_PREFIX,
    TELEMETRY_ENCODING,
)
from .models import Possession, TransportMode
from .util import clamp

_LOGGER = logging.getLogger(__name__)

TELEMETRY_PATTERN = re.compile(r"T(\d{2}):(\d{2}),S(\d{2})", re.ASCII)
_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


@dataclass(frozen=True)
class TelemetryUpdate:
    """Partial game state reported by the scoreboard."""

    remaining_seconds: int
    shot_clock: int


# ==================== Encoder ====================


def start() -> str:
    """Start the game clock."""
    return COMMAND_START


def pause() -> str:
    """Stop the game clock."""
    return COMMAND_PAUSE


def reset() -> str:
    """Restore every value on the scoreboard to its default."""
    return COMMAND_RESET


def home_score(delta: int) -> str:
    """Home score change, e.g. SCR:H2 or SCR:H-1."""
    return f"{COMMAND_HOME_SCORE_PREFIX}{delta}"


def away_score(delta: int) -> str:
    """Away score change, e.g. A3 or A-1."""
    return f"{COMMAND_AWAY_SCORE_PREFIX}{delta}"


def set_time(total_seconds: int) -> str:
    """Absolute game clock in seconds, e.g. TIME:754 for 12:34."""
    return f"{COMMAND_TIME_PREFIX}{total_seconds}"


def set_shot_clock(seconds: int) -> str:
    """Absolute shot clock, e.g. SETSHOT:24."""
    return f"{COMMAND_SHOT_PREFIX}{seconds}"


def change_period(delta: int) -> str:
    """Period change relative to the current period."""
    return f"{COMMAND_PERIOD_PREFIX}{delta}"


def possession(team: Possession) -> str:
    """Possession command; home maps to RIGHT and away to LEFT on the device."""
    if team is Possession.HOME:
        return COMMAND_POSSESSION_HOME
    if team is Possession.AWAY:
        return COMMAND_POSSESSION_AWAY
    raise ValueError(f"no possession command for {team!r}")


def horn(pressed: bool) -> str:
    """Horn down (PRESS) or up (RELEASE)."""
    return COMMAND_PRESS if pressed else COMMAND_RELEASE


def transport_mode(mode: TransportMode) -> str:
    """Radio link towards the remote displays, e.g. MODE:ESPNOW."""
    return f"{COMMAND_MODE_PREFIX}{mode.value}"


def encode_command(command: str) -> bytes:
    """Encode a command string for a characteristic write."""
    return command.encode(COMMAND_ENCODING)


# ==================== Decoder ====================


def decode_telemetry(data: bytes | bytearray) -> TelemetryUpdate | None:
    """Decode a notification frame. Returns None for anything unrecognised."""
    if not data:
        return None

    text = bytes(data).decode(TELEMETRY_ENCODING)
    match = TELEMETRY_PATTERN.search(text)
    if match is None:
        _LOGGER.debug("Ignoring notification frame: %r", text)
        return None

    minutes, seconds, shot = (int(group) for group in match.groups())
    update = TelemetryUpdate(remaining_seconds=minutes * 60 + seconds, shot_clock=shot)
    _LOGGER.debug("Decoded telemetry %r -> %s", text, update)
    return update


# ==================== Input coercion ====================


def parse_int(value: float | str | None) -> int | None:
    """Parse a leading integer the way a numeric text field does.

    "12" -> 12, " 7abc" -> 7, "-3" -> -3, "abc" -> None, "" -> None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)

    match = _LEADING_INT.match(value)
    return int(match.group(1)) if match else None


def coerce_int(value: float | str | None, lower: int, upper: int | None = None, *, fallback: int = 0) -> int:
    """Parse user input, replacing empty, invalid or zero input by fallback, then clamp."""
    parsed = parse_int(value)
    return clamp(parsed or fallback, lower, upper)
