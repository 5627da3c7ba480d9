"""Data models for BLE Scoreboard integration."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from scoreboard_ble import GameData, GameState, Session, TransportMode

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry

    from .coordinator import ScoreboardDataUpdateCoordinator


@dataclass
class ScoreboardData:
    """Snapshot of the scoreboard shown by the entities."""

    game: GameData = field(default_factory=GameData)
    state: GameState = GameState.IDLE
    session_id: str | None = None
    transport_mode: TransportMode = TransportMode.BLE
    sessions: list[Session] = field(default_factory=list)
    rssi: int | None = None

    @property
    def has_session(self) -> bool:
        """Return True if a game session is bound."""
        return self.session_id is not None


type ScoreboardConfigEntry = ConfigEntry[ScoreboardDataUpdateCoordinator]
