"""Control a BLE sports scoreboard: command protocol, game session and connection handling."""
from __future__ import annotations

from .connection import ScoreboardConnectionManager
from .controller import ScoreboardController
from .exceptions import ScoreboardConnectionError, ScoreboardError, ScoreboardNotFoundError
from .game import GameStateMachine
from .models import (
    DiscoveredScoreboard,
    GameData,
    GameState,
    Possession,
    ScoreboardBinding,
    Session,
    TransportMode,
)
from .protocol import TelemetryUpdate, decode_telemetry, encode_command
from .session_store import SessionStore
from .storage import KeyValueStorage

__all__ = [
    "DiscoveredScoreboard",
    "GameData",
    "GameState",
    "GameStateMachine",
    "KeyValueStorage",
    "Possession",
    "ScoreboardBinding",
    "ScoreboardConnectionError",
    "ScoreboardConnectionManager",
    "ScoreboardController",
    "ScoreboardError",
    "ScoreboardNotFoundError",
    "Session",
    "SessionStore",
    "TelemetryUpdate",
    "TransportMode",
    "decode_telemetry",
    "encode_command",
]
