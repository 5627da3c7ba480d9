"""Constants for the BLE scoreboard protocol."""
from __future__ import annotations

from typing import Final

# Bluetooth service and characteristic UUIDs
SERVICE_UUID: Final = "7140efae-95ea-49d4-9b34-7aea29133e0f"
TRANSFER_CHARACTERISTIC_UUID: Final = "08a32d92-b94e-44d3-9e47-215dcfc2d79d"
RECEIVE_CHARACTERISTIC_UUID: Final = "08a32d92-b94e-44d3-9e47-215dcfc2d79d"  # Same as transfer
NOTIFY_CHARACTERISTIC_UUID: Final = "a57908f2-e036-44f9-8b8b-f5c0024cd800"

# Connection timings (seconds)
SCAN_DURATION: Final = 5.0
SETTLE_DELAY: Final = 0.9  # Let bonding finish before resolving services
TICK_INTERVAL: Final = 1.0

# Session persistence
SESSIONS_KEY: Final = "sessions"
MAX_SESSIONS: Final = 5
SESSION_ID_PREFIX: Final = "session_"

# Game defaults
DEFAULT_HOME_SCORE: Final = 0
DEFAULT_AWAY_SCORE: Final = 0
DEFAULT_REMAINING_SECONDS: Final = 600
DEFAULT_SHOT_CLOCK: Final = 24
DEFAULT_PERIOD: Final = 1

# Game limits
MIN_SCORE: Final = 0
MAX_SCORE: Final = 999
MIN_SHOT_CLOCK: Final = 0
MAX_SHOT_CLOCK: Final = 99
MIN_SHOT_CLOCK_ENTRY: Final = 1  # Manual entry range shown to users
MAX_SHOT_CLOCK_ENTRY: Final = 24
MIN_PERIOD: Final = 1
MAX_PERIOD: Final = 9
MAX_CLOCK_SECONDS_FIELD: Final = 59

SCORE_INCREMENTS: Final = (1, 2, 3)
SHOT_CLOCK_RESETS: Final = (24, 14)

# Command words
COMMAND_START: Final = "START"
COMMAND_PAUSE: Final = "PAUSE"
COMMAND_RESET: Final = "RESET"
COMMAND_PRESS: Final = "PRESS"
COMMAND_RELEASE: Final = "RELEASE"
COMMAND_HOME_SCORE_PREFIX: Final = "SCR:H"
COMMAND_AWAY_SCORE_PREFIX: Final = "A"
COMMAND_TIME_PREFIX: Final = "TIME:"
COMMAND_SHOT_PREFIX: Final = "SETSHOT:"
COMMAND_PERIOD_PREFIX: Final = "SETPERIOD:"
COMMAND_POSSESSION_HOME: Final = "POS:RIGHT"  # Inverted on the device side
COMMAND_POSSESSION_AWAY: Final = "POS:LEFT"
COMMAND_MODE_PREFIX: Final = "MODE:"

COMMAND_ENCODING: Final = "utf-8"
TELEMETRY_ENCODING: Final = "latin-1"
