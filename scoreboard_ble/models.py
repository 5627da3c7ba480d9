"""Data models for the BLE scoreboard."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import StrEnum
import logging
from typing import TYPE_CHECKING, Any

from .const import (
    DEFAULT_AWAY_SCORE,
    DEFAULT_HOME_SCORE,
    DEFAULT_PERIOD,
    DEFAULT_REMAINING_SECONDS,
    DEFAULT_SHOT_CLOCK,
    MAX_PERIOD,
    MAX_SCORE,
    MAX_SHOT_CLOCK,
    MIN_PERIOD,
    MIN_SCORE,
    MIN_SHOT_CLOCK,
)
from .util import clamp

if TYPE_CHECKING:
    from bleak.backends.device import BLEDevice

_LOGGER = logging.getLogger(__name__)


class Possession(StrEnum):
    """Team holding the ball. NONE serializes as an empty string."""

    HOME = "HOME"
    AWAY = "AWAY"
    NONE = ""


class TransportMode(StrEnum):
    """Radio link the scoreboard uses towards its remote displays."""

    BLE = "BLE"
    ESPNOW = "ESPNOW"


class GameState(StrEnum):
    """Lifecycle of the game session state machine."""

    IDLE = "idle"
    PAUSED = "paused"
    RUNNING = "running"


@dataclass
class GameData:
    """Authoritative game state."""

    home_score: int = DEFAULT_HOME_SCORE
    away_score: int = DEFAULT_AWAY_SCORE
    remaining_seconds: int = DEFAULT_REMAINING_SECONDS
    shot_clock: int = DEFAULT_SHOT_CLOCK
    selected_period: int = DEFAULT_PERIOD
    possession: Possession = Possession.NONE

    @property
    def clock_display(self) -> str:
        """Return the game clock as mm:ss."""
        minutes, seconds = divmod(self.remaining_seconds, 60)
        return f"{minutes:02d}:{seconds:02d}"

    def copy(self) -> GameData:
        """Return an independent snapshot."""
        return replace(self)

    def to_dict(self) -> dict[str, Any]:
        """Serialize using the scoreboard app's storage keys."""
        return {
            "homeScore": self.home_score,
            "awayScore": self.away_score,
            "remainingSeconds": self.remaining_seconds,
            "shotClock": self.shot_clock,
            "selectedPeriod": self.selected_period,
            "possession": self.possession.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GameData:
        """Build game data from stored values, clamping into valid ranges.

        Missing keys fall back to defaults. Raises TypeError, ValueError or
        OverflowError when a stored value cannot be read as an integer.
        """
        try:
            possession = Possession(data.get("possession") or "")
        except ValueError:
            _LOGGER.debug("Unknown possession %r, using none", data.get("possession"))
            possession = Possession.NONE

        return cls(
            home_score=clamp(int(data.get("homeScore", DEFAULT_HOME_SCORE)), MIN_SCORE, MAX_SCORE),
            away_score=clamp(int(data.get("awayScore", DEFAULT_AWAY_SCORE)), MIN_SCORE, MAX_SCORE),
            remaining_seconds=clamp(int(data.get("remainingSeconds", DEFAULT_REMAINING_SECONDS)), 0),
            shot_clock=clamp(int(data.get("shotClock", DEFAULT_SHOT_CLOCK)), MIN_SHOT_CLOCK, MAX_SHOT_CLOCK),
            selected_period=clamp(int(data.get("selectedPeriod", DEFAULT_PERIOD)), MIN_PERIOD, MAX_PERIOD),
            possession=possession,
        )


@dataclass
class Session:
    """Resumable snapshot of a game, keyed by a stable id."""

    id: str
    game: GameData = field(default_factory=GameData)

    def to_dict(self) -> dict[str, Any]:
        """Flatten to {id, ...game data}."""
        return {"id": self.id, **self.game.to_dict()}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Session:
        """Parse a stored session. Raises KeyError, TypeError, ValueError or OverflowError."""
        session_id = data["id"]
        if not isinstance(session_id, str) or not session_id:
            raise ValueError(f"invalid session id: {session_id!r}")
        return cls(id=session_id, game=GameData.from_dict(data))


@dataclass(frozen=True)
class ScoreboardBinding:
    """Resolved remote endpoint of a connected scoreboard."""

    peripheral_id: str
    service_id: str
    transfer: str
    receive: str
    notify_transfer: str

    def matches(self, peripheral_id: str, characteristic_id: str) -> bool:
        """Return True if a notification came from this binding's notify characteristic."""
        return (
            peripheral_id.upper() == self.peripheral_id.upper()
            and characteristic_id.lower() == self.notify_transfer.lower()
        )


@dataclass
class DiscoveredScoreboard:
    """A peripheral seen advertising the scoreboard service."""

    address: str
    name: str
    rssi: int | None = None
    device: BLEDevice | None = None
    connecting: bool = False
    connected: bool = False
